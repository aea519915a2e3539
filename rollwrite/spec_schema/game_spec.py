"""
Game Template - the declarative document a game is built from.

A template defines:
- Resources (numeric tracks with optional bounds)
- Dice (the first entry is rolled every turn)
- Actions (priority, optional condition, resource effects)
- Turn structure and end conditions
- Scoring (total formula plus optional named components)

Documents arrive as decoded JSON. Keys follow the wire format
(`endConditions`, `oncePerTurn`); Python attribute names are accepted too.
All models are frozen once validated.
"""

from __future__ import annotations
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictFloat, StrictInt


Number = Union[StrictInt, StrictFloat]
NonEmptyStr = Annotated[str, Field(min_length=1)]

Comparison = Literal[">", ">=", "<", "<=", "==", "!="]

SEMVER_PATTERN = r"^\d+\.\d+\.\d+$"


class TemplateModel(BaseModel):
    """Base for template document models."""
    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        populate_by_name=True,
    )


class ResourceDefinition(TemplateModel):
    """A numeric track such as ore or energy."""
    id: NonEmptyStr
    label: NonEmptyStr
    initial: Number
    min: Optional[Number] = None
    max: Optional[Number] = None
    description: Optional[str] = None


class DiceDefinition(TemplateModel):
    """A pool of identical dice rolled together."""
    id: NonEmptyStr
    label: NonEmptyStr
    sides: Annotated[StrictInt, Field(ge=2)]
    count: Annotated[StrictInt, Field(ge=1)]


class ActionEffectDefinition(TemplateModel):
    """Formula computing a delta for one resource."""
    resource: NonEmptyStr
    expression: NonEmptyStr
    clamp: Optional[StrictBool] = None


class ActionDefinition(TemplateModel):
    """A player-selectable move."""
    id: NonEmptyStr
    label: NonEmptyStr
    description: Optional[str] = None
    priority: Annotated[StrictInt, Field(ge=0)]
    condition: Optional[str] = None
    once_per_turn: Optional[StrictBool] = Field(None, alias="oncePerTurn")
    effects: Annotated[list[ActionEffectDefinition], Field(min_length=1)]


class TurnLimitCondition(TemplateModel):
    """Game ends once the current turn reaches `limit`."""
    type: Literal["turnLimit"]
    limit: Annotated[StrictInt, Field(ge=1, le=200)]


class ResourceThresholdCondition(TemplateModel):
    """Game ends once a resource compares true against `value`."""
    type: Literal["resourceThreshold"]
    resource: NonEmptyStr
    comparison: Comparison
    value: Number


EndConditionDefinition = Annotated[
    Union[TurnLimitCondition, ResourceThresholdCondition],
    Field(discriminator="type"),
]


class ScoringDefinition(TemplateModel):
    """Final score formula plus optional named breakdown formulas."""
    total: NonEmptyStr
    components: Optional[dict[str, str]] = None


class TurnStructureDefinition(TemplateModel):
    limit: Annotated[StrictInt, Field(ge=1, le=100)]


class GameTemplate(TemplateModel):
    """
    Complete game template.

    Shape is checked by pydantic; cross-references (unique ids, resource
    references) are checked by validate_template().
    """
    id: NonEmptyStr
    name: NonEmptyStr
    version: Annotated[str, Field(pattern=SEMVER_PATTERN)]
    locale: Optional[str] = None
    description: Optional[str] = None
    resources: Annotated[list[ResourceDefinition], Field(min_length=1)]
    dice: Annotated[list[DiceDefinition], Field(min_length=1)]
    actions: Annotated[list[ActionDefinition], Field(min_length=1)]
    turn: TurnStructureDefinition
    scoring: ScoringDefinition
    end_conditions: Annotated[
        list[EndConditionDefinition], Field(min_length=1, alias="endConditions")
    ]
    metadata: Optional[dict[str, Any]] = None

    def get_resource(self, resource_id: str) -> ResourceDefinition | None:
        for resource in self.resources:
            if resource.id == resource_id:
                return resource
        return None

    def get_action(self, action_id: str) -> ActionDefinition | None:
        for action in self.actions:
            if action.id == action_id:
                return action
        return None

    def to_dict(self) -> dict[str, Any]:
        """Wire form (camelCase keys, unset optionals omitted)."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")
