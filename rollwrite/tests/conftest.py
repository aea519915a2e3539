"""
Pytest fixtures for Rollwrite tests.
"""

import copy

import pytest

from ..games import get_compiled_template
from ..games.meteor_miners import TEMPLATE_ID
from ..session import GameSession
from ..template_compiler import CompiledTemplate, compile_template


ORE_TEMPLATE = {
    "id": "ore-test",
    "name": "Ore Test",
    "version": "1.0.0",
    "resources": [
        {"id": "ore", "label": "Ore", "initial": 0, "min": 0, "max": 100},
    ],
    "dice": [
        {"id": "d", "label": "Dice", "sides": 6, "count": 2},
    ],
    "actions": [
        {
            "id": "gather",
            "label": "Gather",
            "priority": 1,
            "effects": [{"resource": "ore", "expression": "roll_total"}],
        },
    ],
    "turn": {"limit": 3},
    "scoring": {"total": "ore"},
    "endConditions": [{"type": "turnLimit", "limit": 3}],
}


@pytest.fixture
def ore_template_dict() -> dict:
    """Single-resource template: each turn adds the roll total to ore."""
    return copy.deepcopy(ORE_TEMPLATE)


@pytest.fixture
def bounded_template_dict(ore_template_dict) -> dict:
    """
    Template exercising bounds.

    'spend' always drops ore by 5, 'overflow' adds 50 with no clamp, and
    'fill' adds 50 with clamp, against ore bounded to [0, 10].
    """
    data = ore_template_dict
    data["resources"][0]["max"] = 10
    data["actions"] = [
        {
            "id": "spend",
            "label": "Spend",
            "priority": 1,
            "effects": [{"resource": "ore", "expression": "-5"}],
        },
        {
            "id": "overflow",
            "label": "Overflow",
            "priority": 2,
            "effects": [{"resource": "ore", "expression": "50"}],
        },
        {
            "id": "fill",
            "label": "Fill",
            "priority": 3,
            "effects": [{"resource": "ore", "expression": "50", "clamp": True}],
        },
    ]
    return data


@pytest.fixture
def endless_template_dict(ore_template_dict) -> dict:
    """Ore template whose only end condition can never fire."""
    data = ore_template_dict
    del data["resources"][0]["max"]
    data["endConditions"] = [
        {"type": "resourceThreshold", "resource": "ore", "comparison": "<", "value": 0},
    ]
    return data


@pytest.fixture
def stuck_template_dict(ore_template_dict) -> dict:
    """Ore template whose only action is never available."""
    ore_template_dict["actions"][0]["condition"] = "roll_total > 100"
    return ore_template_dict


@pytest.fixture
def ore_template(ore_template_dict) -> CompiledTemplate:
    return compile_template(ore_template_dict)


@pytest.fixture
def meteor_template() -> CompiledTemplate:
    """The bundled Meteor Miners template, compiled."""
    return get_compiled_template(TEMPLATE_ID)


@pytest.fixture
def session(ore_template) -> GameSession:
    """Fresh session on the ore template with seed 42."""
    return GameSession(ore_template, seed=42)


@pytest.fixture
def meteor_session(meteor_template) -> GameSession:
    return GameSession(meteor_template, seed=42)
