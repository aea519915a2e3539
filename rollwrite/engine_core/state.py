"""
Session State - Phases, rolls, events and replay records.

Design principles:
- Immutable: every record is a frozen dataclass, snapshots are copied in
- Serializable: to_dict() produces the camelCase wire form
- Tagged: events carry a `type` discriminator and are matched exhaustively
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Mapping, Union, TYPE_CHECKING
import json

from .rng import SerializedRngState

if TYPE_CHECKING:
    from ..template_compiler.compiler import CompiledAction, CompiledTemplate


Number = Union[int, float]
ResourceSnapshot = dict[str, Number]


class GamePhase(Enum):
    """Turn phases of a session."""
    SETUP = "setup"
    ROLL = "roll"
    CHOOSE = "choose"
    APPLY = "apply"
    END = "end"
    COMPLETE = "complete"


def copy_resources(resources: Mapping[str, Number]) -> ResourceSnapshot:
    return dict(resources)


@dataclass(frozen=True)
class RollResult:
    """Dice drawn at the start of a turn."""
    dice_id: str
    values: tuple[int, ...]
    total: int
    highest: int
    lowest: int

    @classmethod
    def from_values(cls, dice_id: str, values: list[int] | tuple[int, ...]) -> RollResult:
        values = tuple(values)
        return cls(
            dice_id=dice_id,
            values=values,
            total=sum(values),
            highest=max(values),
            lowest=min(values),
        )

    def variables(self) -> dict[str, int]:
        """Formula bindings exposed while this roll is active."""
        bindings = {
            "roll_total": self.total,
            "roll_high": self.highest,
            "roll_low": self.lowest,
        }
        for index, value in enumerate(self.values, start=1):
            bindings[f"roll_{index}"] = value
        return bindings

    def to_dict(self) -> dict[str, Any]:
        return {
            "diceId": self.dice_id,
            "values": list(self.values),
            "total": self.total,
            "highest": self.highest,
            "lowest": self.lowest,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RollResult:
        return cls(
            dice_id=data["diceId"],
            values=tuple(data["values"]),
            total=data["total"],
            highest=data["highest"],
            lowest=data["lowest"],
        )


@dataclass(frozen=True)
class ApplyOutcome:
    """Per-resource deltas and the snapshot they produced."""
    deltas: dict[str, Number]
    resulting: ResourceSnapshot


# =============================================================================
# Events
# =============================================================================

@dataclass(frozen=True)
class _EventBase:
    turn: int
    phase: GamePhase
    timestamp: int

    type: ClassVar[str] = ""

    def _base_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "phase": self.phase.value,
            "turn": self.turn,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class SetupEvent(_EventBase):
    resources: ResourceSnapshot = field(default_factory=dict)

    type: ClassVar[str] = "setup"

    def to_dict(self) -> dict[str, Any]:
        return {**self._base_dict(), "resources": copy_resources(self.resources)}


@dataclass(frozen=True)
class RollEvent(_EventBase):
    roll: RollResult | None = None

    type: ClassVar[str] = "roll"

    def to_dict(self) -> dict[str, Any]:
        return {**self._base_dict(), "roll": self.roll.to_dict() if self.roll else None}


@dataclass(frozen=True)
class ChooseEvent(_EventBase):
    action_id: str = ""

    type: ClassVar[str] = "choose"

    def to_dict(self) -> dict[str, Any]:
        return {**self._base_dict(), "actionId": self.action_id}


@dataclass(frozen=True)
class ApplyEvent(_EventBase):
    deltas: dict[str, Number] = field(default_factory=dict)
    resulting: ResourceSnapshot = field(default_factory=dict)

    type: ClassVar[str] = "apply"

    def to_dict(self) -> dict[str, Any]:
        return {
            **self._base_dict(),
            "deltas": dict(self.deltas),
            "resulting": copy_resources(self.resulting),
        }


@dataclass(frozen=True)
class EndTurnEvent(_EventBase):
    resources: ResourceSnapshot = field(default_factory=dict)

    type: ClassVar[str] = "endTurn"

    def to_dict(self) -> dict[str, Any]:
        return {**self._base_dict(), "resources": copy_resources(self.resources)}


@dataclass(frozen=True)
class CompleteEvent(_EventBase):
    final_score: Number = 0
    resources: ResourceSnapshot = field(default_factory=dict)

    type: ClassVar[str] = "complete"

    def to_dict(self) -> dict[str, Any]:
        return {
            **self._base_dict(),
            "finalScore": self.final_score,
            "resources": copy_resources(self.resources),
        }


GameEvent = Union[SetupEvent, RollEvent, ChooseEvent, ApplyEvent, EndTurnEvent, CompleteEvent]


# =============================================================================
# Replay
# =============================================================================

@dataclass(frozen=True)
class ReplayTurn:
    """One completed turn: roll, chosen action, resulting resources."""
    turn: int
    roll: RollResult
    action_id: str
    resources: ResourceSnapshot

    def to_dict(self) -> dict[str, Any]:
        return {
            "turn": self.turn,
            "roll": self.roll.to_dict(),
            "actionId": self.action_id,
            "resources": copy_resources(self.resources),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ReplayTurn:
        return cls(
            turn=data["turn"],
            roll=RollResult.from_dict(data["roll"]),
            action_id=data["actionId"],
            resources=copy_resources(data["resources"]),
        )


@dataclass(frozen=True)
class ReplayRecord:
    """
    The durable, shareable result of a completed session.

    Given the same template and seed, replaying `turns` action by action
    reproduces every roll, snapshot and the final score.
    """
    template_id: str
    template_version: str
    seed: SerializedRngState
    turns: tuple[ReplayTurn, ...]
    final_score: Number

    def to_dict(self) -> dict[str, Any]:
        return {
            "templateId": self.template_id,
            "templateVersion": self.template_version,
            "seed": self.seed.to_dict(),
            "turns": [turn.to_dict() for turn in self.turns],
            "finalScore": self.final_score,
        }

    def to_json(self, indent: int | None = None) -> str:
        """Canonical JSON (sorted keys); equal records give equal text."""
        return json.dumps(self.to_dict(), sort_keys=True, indent=indent)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ReplayRecord:
        return cls(
            template_id=data["templateId"],
            template_version=data["templateVersion"],
            seed=SerializedRngState.from_dict(data["seed"]),
            turns=tuple(ReplayTurn.from_dict(turn) for turn in data["turns"]),
            final_score=data["finalScore"],
        )

    @classmethod
    def from_json(cls, text: str) -> ReplayRecord:
        return cls.from_dict(json.loads(text))


# =============================================================================
# Snapshot
# =============================================================================

@dataclass(frozen=True)
class GameSnapshot:
    """Read-only view of a session handed to policies and callers."""
    template: CompiledTemplate
    phase: GamePhase
    turn: int
    resources: ResourceSnapshot
    roll: RollResult | None = None
    available_actions: tuple[CompiledAction, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "templateId": self.template.id,
            "phase": self.phase.value,
            "turn": self.turn,
            "resources": copy_resources(self.resources),
            "roll": self.roll.to_dict() if self.roll else None,
            "availableActions": [action.id for action in self.available_actions],
        }


def _format_signed(value: Number) -> str:
    return f"+{value}" if value >= 0 else str(value)


def format_event(event: GameEvent) -> str:
    """One-line human-readable description of an event."""
    if isinstance(event, SetupEvent):
        return "Setup: " + ", ".join(f"{k}={v}" for k, v in event.resources.items())
    if isinstance(event, RollEvent):
        values = ", ".join(str(v) for v in event.roll.values) if event.roll else ""
        total = event.roll.total if event.roll else 0
        return f"Roll (turn {event.turn}): [{values}] -> total {total}"
    if isinstance(event, ChooseEvent):
        return f"Choose action '{event.action_id}'"
    if isinstance(event, ApplyEvent):
        return "Apply: " + ", ".join(
            f"{k}{_format_signed(v)}" for k, v in event.deltas.items()
        )
    if isinstance(event, EndTurnEvent):
        return f"End turn {event.turn}"
    if isinstance(event, CompleteEvent):
        return f"Game complete - score {event.final_score}"
    raise TypeError(f"Unknown event type: {type(event).__name__}")
