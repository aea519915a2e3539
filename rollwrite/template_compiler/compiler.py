"""
Template Compiler - Turns a validated GameTemplate into a playable form.

The compiler:
1. Validates the document (shape and cross-references)
2. Parses every formula once: action conditions, effects, scoring
3. Indexes resources by id
4. Returns an immutable CompiledTemplate

Malformed formulas fail here with ExpressionSyntaxError, never during play.
"""

from __future__ import annotations
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Union
import logging

from ..engine_core.expression import CompiledExpression, compile_expression
from ..spec_schema import (
    GameTemplate,
    ResourceDefinition,
    DiceDefinition,
    EndConditionDefinition,
    validate_template,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompiledEffect:
    """An effect with its expression parsed."""
    resource: str
    expression: CompiledExpression
    clamp: bool = False

    @property
    def source(self) -> str:
        return self.expression.source


@dataclass(frozen=True)
class CompiledAction:
    """
    A player-selectable move with parsed formulas.

    `condition` is None when the action is always available.
    """
    id: str
    label: str
    priority: int
    effects: tuple[CompiledEffect, ...]
    condition: CompiledExpression | None = None
    description: str | None = None
    once_per_turn: bool = False

    def identifiers(self) -> frozenset[str]:
        """Free identifiers referenced by the condition and every effect."""
        found: set[str] = set()
        if self.condition is not None:
            found |= self.condition.identifiers()
        for effect in self.effects:
            found |= effect.expression.identifiers()
        return frozenset(found)


@dataclass(frozen=True)
class CompiledScoring:
    total: CompiledExpression
    components: Mapping[str, CompiledExpression]


@dataclass(frozen=True)
class CompiledTemplate:
    """
    GameTemplate with every formula pre-parsed.

    Immutable, so one instance can back any number of sessions.
    """
    source: GameTemplate
    actions: tuple[CompiledAction, ...]
    scoring: CompiledScoring
    resource_map: Mapping[str, ResourceDefinition]

    @property
    def id(self) -> str:
        return self.source.id

    @property
    def name(self) -> str:
        return self.source.name

    @property
    def version(self) -> str:
        return self.source.version

    @property
    def resources(self) -> tuple[ResourceDefinition, ...]:
        return tuple(self.source.resources)

    @property
    def dice(self) -> tuple[DiceDefinition, ...]:
        return tuple(self.source.dice)

    @property
    def turn_limit(self) -> int:
        return self.source.turn.limit

    @property
    def end_conditions(self) -> tuple[EndConditionDefinition, ...]:
        return tuple(self.source.end_conditions)

    def get_action(self, action_id: str) -> CompiledAction | None:
        for action in self.actions:
            if action.id == action_id:
                return action
        return None

    def referenced_identifiers(self) -> frozenset[str]:
        """Every free identifier used by actions and scoring formulas."""
        found: set[str] = set()
        for action in self.actions:
            found |= action.identifiers()
        found |= self.scoring.total.identifiers()
        for component in self.scoring.components.values():
            found |= component.identifiers()
        return frozenset(found)

    def to_dict(self) -> dict[str, Any]:
        """The original template document in wire form."""
        return self.source.to_dict()


TemplateInput = Union[Mapping[str, Any], GameTemplate, CompiledTemplate]


def _compile_action(action) -> CompiledAction:
    condition = None
    if action.condition and action.condition.strip():
        condition = compile_expression(action.condition)
    effects = tuple(
        CompiledEffect(
            resource=effect.resource,
            expression=compile_expression(effect.expression),
            clamp=bool(effect.clamp),
        )
        for effect in action.effects
    )
    return CompiledAction(
        id=action.id,
        label=action.label,
        priority=action.priority,
        effects=effects,
        condition=condition,
        description=action.description,
        once_per_turn=bool(action.once_per_turn),
    )


def compile_template(template: TemplateInput) -> CompiledTemplate:
    """
    Compile a template document.

    Args:
        template: Decoded JSON mapping, GameTemplate, or CompiledTemplate
            (returned unchanged)

    Returns:
        CompiledTemplate

    Raises:
        TemplateValidationError: document is invalid
        ExpressionSyntaxError: a formula is malformed
    """
    if isinstance(template, CompiledTemplate):
        return template

    validated = validate_template(template)

    actions = tuple(_compile_action(action) for action in validated.actions)
    components = {
        name: compile_expression(expression)
        for name, expression in (validated.scoring.components or {}).items()
    }
    scoring = CompiledScoring(
        total=compile_expression(validated.scoring.total),
        components=MappingProxyType(components),
    )
    resource_map = MappingProxyType(
        {resource.id: resource for resource in validated.resources}
    )

    logger.info(
        "Compiled template '%s' v%s (%d actions, %d resources)",
        validated.id,
        validated.version,
        len(actions),
        len(resource_map),
    )

    return CompiledTemplate(
        source=validated,
        actions=actions,
        scoring=scoring,
        resource_map=resource_map,
    )
