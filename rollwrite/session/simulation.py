"""
Simulation - Regenerates sessions from seeds and command lists.

Used to:
- Step through a recorded game command by command
- Expand a replay into its literal command sequence
- Verify a replay reproduces the same turns and score
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Sequence
import logging

from ..engine_core.action import CommandType, SessionCommand
from ..engine_core.expression import ExpressionEvaluationError
from ..engine_core.rng import SeedInput
from ..engine_core.state import GameEvent, GameSnapshot, ReplayRecord
from ..template_compiler import compile_template
from ..template_compiler.compiler import TemplateInput
from .engine import GameSession, SessionError

logger = logging.getLogger(__name__)


@dataclass
class SimulationResult:
    """
    Outcome of running a command list.

    `error` holds the message of the first failing command; the snapshot
    reflects the state reached before it.
    """
    snapshot: GameSnapshot
    events: list[GameEvent] = field(default_factory=list)
    replay: ReplayRecord | None = None
    error: str | None = None


@dataclass
class ReplayVerification:
    """Comparison between a recorded replay and its regeneration."""
    matches: bool
    regenerated: ReplayRecord | None = None
    mismatched_turns: list[int] = field(default_factory=list)
    error: str | None = None


def execute_command(session: GameSession, command: SessionCommand):
    """Apply one command to a session."""
    if command.command_type == CommandType.ROLL:
        session.roll()
    elif command.command_type == CommandType.CHOOSE:
        session.choose(command.action_id)
    elif command.command_type == CommandType.APPLY:
        session.apply()
    elif command.command_type == CommandType.END_TURN:
        session.end_turn()
    else:
        raise ValueError(f"Unknown command type: {command.command_type}")


def simulate_session(
    template: TemplateInput,
    seed: SeedInput,
    commands: Sequence[SessionCommand],
    pointer: int | None = None,
) -> SimulationResult:
    """
    Run the first `pointer` commands (all by default) on a fresh session.

    Stops at the first failing command and reports its message.
    """
    session = GameSession(template, seed=seed)
    limit = len(commands) if pointer is None else max(0, min(pointer, len(commands)))
    error = None

    for command in commands[:limit]:
        try:
            execute_command(session, command)
        except (SessionError, ExpressionEvaluationError) as exc:
            error = str(exc)
            logger.debug("Simulation stopped at %s: %s", command, error)
            break

    return SimulationResult(
        snapshot=session.get_snapshot(),
        events=list(session.events),
        replay=session.get_replay(),
        error=error,
    )


def commands_from_replay(record: ReplayRecord) -> list[SessionCommand]:
    """Expand a replay into roll/choose/apply/endTurn commands, four per turn."""
    commands = []
    for turn in record.turns:
        commands.append(SessionCommand.roll())
        commands.append(SessionCommand.choose(turn.action_id))
        commands.append(SessionCommand.apply())
        commands.append(SessionCommand.end_turn())
    return commands


def verify_replay(template: TemplateInput, record: ReplayRecord) -> ReplayVerification:
    """
    Regenerate a replay from its seed and recorded actions.

    Matches when every regenerated turn and the final score equal the record.
    """
    compiled = compile_template(template)
    if compiled.id != record.template_id or compiled.version != record.template_version:
        return ReplayVerification(
            matches=False,
            error=(
                f"Replay is for template '{record.template_id}' v{record.template_version}, "
                f"got '{compiled.id}' v{compiled.version}"
            ),
        )

    result = simulate_session(compiled, record.seed, commands_from_replay(record))
    regenerated = result.replay
    if result.error is not None or regenerated is None:
        return ReplayVerification(
            matches=False,
            regenerated=regenerated,
            error=result.error or "Replay did not reach the end of the game",
        )

    mismatched = [
        original.turn
        for original, replayed in zip(record.turns, regenerated.turns)
        if original != replayed
    ]
    matches = (
        not mismatched
        and len(record.turns) == len(regenerated.turns)
        and record.final_score == regenerated.final_score
    )
    return ReplayVerification(
        matches=matches,
        regenerated=regenerated,
        mismatched_turns=mismatched,
    )
