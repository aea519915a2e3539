"""
Template Validation - shape and cross-reference checks for game templates.

Validates that:
1. The document matches the GameTemplate shape (pydantic)
2. Resource, dice and action ids are unique
3. Action effects and threshold end conditions reference declared resources
4. Resource bounds are consistent (min <= initial <= max)

Every violated constraint becomes one human-readable issue string.
"""

from __future__ import annotations
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Mapping
import logging

from pydantic import ValidationError

from .game_spec import GameTemplate, ResourceThresholdCondition, TurnLimitCondition

logger = logging.getLogger(__name__)


class TemplateValidationError(Exception):
    """Raised when template validation fails."""

    def __init__(self, message: str, issues: list[str]):
        self.issues = issues
        super().__init__(f"{message}: {'; '.join(issues)}" if issues else message)
        self.message = message


@dataclass
class ValidationResult:
    """Result of validation, with errors and warnings."""
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    template: GameTemplate | None = None


def _format_pydantic_error(error: dict[str, Any]) -> str:
    path = "/".join(str(part) for part in error.get("loc", ()))
    return f"/{path} {error.get('msg', '')}".strip()


def _parse_document(data: Mapping[str, Any] | GameTemplate) -> GameTemplate:
    if isinstance(data, GameTemplate):
        return data
    if not isinstance(data, Mapping):
        raise TemplateValidationError(
            "Template validation failed", ["/ Template must be an object"]
        )
    try:
        return GameTemplate.model_validate(dict(data))
    except ValidationError as exc:
        issues = [_format_pydantic_error(e) for e in exc.errors()] or [
            "Unknown validation error"
        ]
        raise TemplateValidationError("Template validation failed", issues) from exc


def _duplicate_issues(ids: list[str], kind: str) -> list[str]:
    counts = Counter(ids)
    return [
        f"{kind} '{item_id}' is defined more than once"
        for item_id, count in counts.items()
        if count > 1
    ]


def _reference_issues(template: GameTemplate) -> list[str]:
    issues = []
    resource_ids = {resource.id for resource in template.resources}

    for action in template.actions:
        for effect in action.effects:
            if effect.resource not in resource_ids:
                issues.append(
                    f"Action '{action.id}' references missing resource '{effect.resource}'"
                )

    for index, condition in enumerate(template.end_conditions):
        if isinstance(condition, ResourceThresholdCondition):
            if condition.resource not in resource_ids:
                issues.append(
                    f"End condition {index} references missing resource '{condition.resource}'"
                )

    return issues


def _bounds_issues(template: GameTemplate) -> list[str]:
    issues = []
    for resource in template.resources:
        if resource.min is not None and resource.max is not None and resource.min > resource.max:
            issues.append(f"Resource '{resource.id}' has min greater than max")
            continue
        if resource.min is not None and resource.initial < resource.min:
            issues.append(f"Resource '{resource.id}' starts below its minimum")
        if resource.max is not None and resource.initial > resource.max:
            issues.append(f"Resource '{resource.id}' starts above its maximum")
    return issues


def _collect_warnings(template: GameTemplate) -> list[str]:
    warnings = []
    turn_limits = [
        c.limit for c in template.end_conditions if isinstance(c, TurnLimitCondition)
    ]
    if not turn_limits:
        warnings.append("No turnLimit end condition defined - game may never end")
    elif template.turn.limit not in turn_limits:
        warnings.append(
            f"turn.limit {template.turn.limit} does not match any turnLimit end condition"
        )
    return warnings


def validate_template(data: Mapping[str, Any] | GameTemplate) -> GameTemplate:
    """
    Validate a decoded template document.

    Returns the typed GameTemplate.
    Raises TemplateValidationError carrying every issue found.
    """
    template = _parse_document(data)

    issues: list[str] = []
    issues.extend(_duplicate_issues([r.id for r in template.resources], "Resource"))
    issues.extend(_duplicate_issues([d.id for d in template.dice], "Dice"))
    issues.extend(_duplicate_issues([a.id for a in template.actions], "Action"))
    issues.extend(_reference_issues(template))
    issues.extend(_bounds_issues(template))

    if issues:
        logger.warning("Template '%s' failed validation: %s", template.id, issues)
        raise TemplateValidationError("Template validation failed", issues)

    return template


def check_template(data: Mapping[str, Any] | GameTemplate) -> ValidationResult:
    """
    Validate without raising.

    Returns ValidationResult with errors, warnings and the typed template
    when valid.
    """
    try:
        template = validate_template(data)
    except TemplateValidationError as exc:
        return ValidationResult(valid=False, errors=list(exc.issues))

    return ValidationResult(
        valid=True,
        warnings=_collect_warnings(template),
        template=template,
    )
