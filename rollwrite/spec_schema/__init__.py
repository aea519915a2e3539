"""Game template schema - document models and validation."""

from .game_spec import (
    GameTemplate,
    ResourceDefinition,
    DiceDefinition,
    ActionDefinition,
    ActionEffectDefinition,
    TurnLimitCondition,
    ResourceThresholdCondition,
    EndConditionDefinition,
    ScoringDefinition,
    TurnStructureDefinition,
)
from .validation import (
    validate_template,
    check_template,
    TemplateValidationError,
    ValidationResult,
)

__all__ = [
    "GameTemplate",
    "ResourceDefinition",
    "DiceDefinition",
    "ActionDefinition",
    "ActionEffectDefinition",
    "TurnLimitCondition",
    "ResourceThresholdCondition",
    "EndConditionDefinition",
    "ScoringDefinition",
    "TurnStructureDefinition",
    "validate_template",
    "check_template",
    "TemplateValidationError",
    "ValidationResult",
]
