"""
Session Module - Runs games from compiled templates.

A session represents one play-through of a template:
- Created from a compiled template and a seed
- Advanced through roll / choose / apply / end-turn
- Produces a ReplayRecord once complete

Sessions are EPHEMERAL: they live in memory only. The replay is the
durable artifact.
"""

from .engine import (
    GameSession,
    ScoreBreakdown,
    SessionError,
    PhaseMismatchError,
    ActionNotAvailableError,
    ResourceBoundsError,
    ResourceBelowMinimumError,
    ResourceAboveMaximumError,
)
from .autoplay import TurnCapExceededError, autoplay, play_turn, run_session
from .simulation import (
    SimulationResult,
    ReplayVerification,
    simulate_session,
    commands_from_replay,
    execute_command,
    verify_replay,
)
from .manager import SessionManager, Session

__all__ = [
    "GameSession",
    "ScoreBreakdown",
    "SessionError",
    "PhaseMismatchError",
    "ActionNotAvailableError",
    "ResourceBoundsError",
    "ResourceBelowMinimumError",
    "ResourceAboveMaximumError",
    "TurnCapExceededError",
    "autoplay",
    "play_turn",
    "run_session",
    "SimulationResult",
    "ReplayVerification",
    "simulate_session",
    "commands_from_replay",
    "execute_command",
    "verify_replay",
    "SessionManager",
    "Session",
]
