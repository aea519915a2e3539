"""
Session Commands - The replayable steps that drive a session.

A turn is always four commands:
1. roll
2. choose (with an action id)
3. apply
4. end_turn

A command list plus a seed fully determines a session, which is what
simulation and replay verification rely on.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping


class CommandType(Enum):
    """Types of session commands."""
    ROLL = "roll"
    CHOOSE = "choose"
    APPLY = "apply"
    END_TURN = "endTurn"


@dataclass(frozen=True)
class SessionCommand:
    """
    One step applied to a GameSession.

    Only CHOOSE carries an action id.
    """
    command_type: CommandType
    action_id: str | None = None

    @classmethod
    def roll(cls) -> SessionCommand:
        return cls(command_type=CommandType.ROLL)

    @classmethod
    def choose(cls, action_id: str) -> SessionCommand:
        return cls(command_type=CommandType.CHOOSE, action_id=action_id)

    @classmethod
    def apply(cls) -> SessionCommand:
        return cls(command_type=CommandType.APPLY)

    @classmethod
    def end_turn(cls) -> SessionCommand:
        return cls(command_type=CommandType.END_TURN)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.command_type.value}
        if self.command_type == CommandType.CHOOSE:
            data["actionId"] = self.action_id
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SessionCommand:
        command_type = CommandType(data["type"])
        if command_type == CommandType.CHOOSE:
            action_id = data.get("actionId")
            if not action_id:
                raise ValueError("choose command requires an actionId")
            return cls.choose(action_id)
        return cls(command_type=command_type)

    def __str__(self) -> str:
        if self.command_type == CommandType.CHOOSE:
            return f"choose({self.action_id})"
        return self.command_type.value
