"""
Games module - Bundled templates and sample replays.

Each game has its own subpackage with:
- A template factory
- The seeds its sample replays are generated from

Registries are built lazily on first use and never mutated afterwards.
"""

from __future__ import annotations
from functools import lru_cache
from types import MappingProxyType
from typing import Callable, Mapping

from ..engine_core.state import ReplayRecord
from ..spec_schema import GameTemplate, validate_template
from ..template_compiler import CompiledTemplate, compile_template
from . import meteor_miners

_FACTORIES: dict[str, Callable[[], GameTemplate]] = {
    meteor_miners.TEMPLATE_ID: meteor_miners.create_meteor_miners_template,
}

_REPLAY_SEEDS: dict[str, tuple[int, ...]] = {
    meteor_miners.TEMPLATE_ID: meteor_miners.SAMPLE_REPLAY_SEEDS,
}


class TemplateNotFoundError(KeyError):
    """Raised when no bundled template has the requested id."""

    def __init__(self, template_id: str):
        self.template_id = template_id
        super().__init__(template_id)

    def __str__(self) -> str:
        return f"Template '{self.template_id}' not found"


def list_templates() -> list[str]:
    """Ids of all bundled templates."""
    return sorted(_FACTORIES)


@lru_cache(maxsize=None)
def get_template(template_id: str) -> GameTemplate:
    """A bundled template document, validated once."""
    factory = _FACTORIES.get(template_id)
    if factory is None:
        raise TemplateNotFoundError(template_id)
    return validate_template(factory())


@lru_cache(maxsize=None)
def get_compiled_template(template_id: str) -> CompiledTemplate:
    return compile_template(get_template(template_id))


@lru_cache(maxsize=None)
def get_sample_replays(template_id: str) -> Mapping[int, ReplayRecord]:
    """
    Sample replays keyed by seed, played by the highest-priority policy.
    """
    from ..bots.policy import highest_priority_policy
    from ..session.autoplay import autoplay

    template = get_compiled_template(template_id)
    return MappingProxyType({
        seed: autoplay(template, highest_priority_policy, seed=seed)
        for seed in _REPLAY_SEEDS.get(template_id, ())
    })


__all__ = [
    "TemplateNotFoundError",
    "list_templates",
    "get_template",
    "get_compiled_template",
    "get_sample_replays",
]
