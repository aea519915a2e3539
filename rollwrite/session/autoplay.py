"""
Autoplay - Drives a session to completion with a decision policy.

The loop:
1. Roll
2. Ask the policy for an action (once per turn)
3. Choose and apply it
4. End the turn
5. Repeat until the game is complete, or until an optional turn cap is hit

Engine errors are never caught here: a broken template aborts the run
instead of producing a bogus replay.
"""

from __future__ import annotations
from typing import Optional
import logging

from ..bots.policy import Policy, highest_priority_policy
from ..engine_core.rng import SeedInput
from ..engine_core.state import GamePhase, ReplayRecord
from ..template_compiler.compiler import TemplateInput
from .engine import GameSession, SessionError

logger = logging.getLogger(__name__)


class TurnCapExceededError(SessionError):
    """Raised when an unattended run plays more turns than it was allowed."""

    def __init__(self, max_turns: int):
        self.max_turns = max_turns
        super().__init__(f"Game did not complete within {max_turns} turns")


def play_turn(session: GameSession, policy: Policy) -> str:
    """Run one full turn from the current phase. Returns the chosen action id."""
    action_id = None
    if session.phase == GamePhase.ROLL:
        session.roll()
    if session.phase == GamePhase.CHOOSE:
        snapshot = session.get_snapshot()
        action_id = policy(snapshot, snapshot.available_actions)
        session.choose(action_id)
    if session.phase == GamePhase.APPLY:
        session.apply()
    if session.phase == GamePhase.END:
        session.end_turn()
    return action_id


def run_session(
    session: GameSession,
    policy: Policy = highest_priority_policy,
    max_turns: Optional[int] = None,
) -> GameSession:
    """
    Play an existing session until it completes.

    With max_turns set, stops with TurnCapExceededError once that many
    turns have been played without the game ending.
    """
    played = 0
    while not session.is_complete():
        if max_turns is not None and played >= max_turns:
            raise TurnCapExceededError(max_turns)
        play_turn(session, policy)
        played += 1
    return session


def autoplay(
    template: TemplateInput,
    policy: Policy = highest_priority_policy,
    seed: SeedInput = None,
    max_turns: Optional[int] = None,
) -> ReplayRecord:
    """
    Play a fresh session to completion.

    Args:
        template: Template document, GameTemplate or CompiledTemplate
        policy: Decision policy, called once per turn
        seed: RNG seed for the session
        max_turns: Optional cap on the number of turns played

    Returns:
        ReplayRecord of the completed game
    """
    session = run_session(GameSession(template, seed=seed), policy, max_turns=max_turns)
    replay = session.get_replay()
    if replay is None:
        raise SessionError("Replay generation failed")
    logger.info(
        "Autoplayed '%s': %d turns, score %s",
        replay.template_id,
        len(replay.turns),
        replay.final_score,
    )
    return replay
