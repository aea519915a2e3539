"""
Session Engine - The turn-phase state machine.

Every turn runs the same cycle:
    roll -> choose -> apply -> end -> (roll | complete)

Rules:
- Each operation requires one phase; calling it in any other phase raises
  PhaseMismatchError and changes nothing
- Resource bounds are enforced per effect; a failed apply() commits nothing
- The session owns its RNG; replays regenerate identical histories from
  the same template and seed
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Mapping
import logging
import math
import operator

from ..engine_core.expression import (
    EvaluationContext,
    ExpressionEvaluationError,
    ExpressionEvaluator,
    MiniValue,
)
from ..engine_core.rng import SeedInput, SerializedRngState, Xorshift128Plus
from ..engine_core.state import (
    ApplyEvent,
    ApplyOutcome,
    ChooseEvent,
    CompleteEvent,
    EndTurnEvent,
    GameEvent,
    GamePhase,
    GameSnapshot,
    Number,
    ReplayRecord,
    ReplayTurn,
    ResourceSnapshot,
    RollEvent,
    RollResult,
    SetupEvent,
    copy_resources,
)
from ..spec_schema import ResourceThresholdCondition, TurnLimitCondition
from ..template_compiler import CompiledAction, CompiledTemplate, compile_template
from ..template_compiler.compiler import TemplateInput

logger = logging.getLogger(__name__)


# =============================================================================
# Errors
# =============================================================================

class SessionError(Exception):
    """Base class for session protocol violations."""


class PhaseMismatchError(SessionError):
    """Raised when an operation is invoked outside its phase."""

    def __init__(self, current: GamePhase, expected: GamePhase):
        self.current = current
        self.expected = expected
        super().__init__(
            f"Cannot perform action in phase '{current.value}'. "
            f"Expected '{expected.value}'."
        )


class ActionNotAvailableError(SessionError):
    """Raised when choose() names an action that is not currently available."""

    def __init__(self, action_id: str, turn: int):
        self.action_id = action_id
        self.turn = turn
        super().__init__(f"Action '{action_id}' is not available during turn {turn}")


class ResourceBoundsError(SessionError):
    """Raised when an effect would move a resource outside its bounds."""

    def __init__(self, resource: str, limit: Number, message: str):
        self.resource = resource
        self.limit = limit
        super().__init__(message)


class ResourceBelowMinimumError(ResourceBoundsError):
    def __init__(self, resource: str, limit: Number):
        super().__init__(resource, limit, f"Resource '{resource}' cannot drop below {limit}")


class ResourceAboveMaximumError(ResourceBoundsError):
    def __init__(self, resource: str, limit: Number):
        super().__init__(resource, limit, f"Resource '{resource}' cannot exceed {limit}")


# =============================================================================
# Scoring
# =============================================================================

@dataclass(frozen=True)
class ScoreBreakdown:
    """Scoring total plus every named component."""
    total: Number
    components: dict[str, Number]

    def to_dict(self) -> dict[str, Any]:
        return {"total": self.total, "components": dict(self.components)}


_COMPARISONS = {
    ">": operator.gt,
    ">=": operator.ge,
    "<": operator.lt,
    "<=": operator.le,
    "==": operator.eq,
    "!=": operator.ne,
}


def _require_number(value: MiniValue, message: str) -> Number:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ExpressionEvaluationError(message)
    if isinstance(value, float) and not math.isfinite(value):
        raise ExpressionEvaluationError(message)
    return value


@dataclass
class _TurnLog:
    """Replay buffer for the turn in progress."""
    turn: int
    roll: RollResult | None = None
    action_id: str | None = None
    resources: ResourceSnapshot | None = None

    def is_complete(self) -> bool:
        return self.roll is not None and self.action_id is not None and self.resources is not None

    def to_turn(self) -> ReplayTurn:
        return ReplayTurn(
            turn=self.turn,
            roll=self.roll,
            action_id=self.action_id,
            resources=self.resources,
        )


class GameSession:
    """
    One play-through of a compiled template.

    Usage:
        session = GameSession(template, seed=42)
        while not session.is_complete():
            session.roll()
            session.choose(session.list_available_actions()[0].id)
            session.apply()
            session.end_turn()
        replay = session.get_replay()
    """

    def __init__(self, template: TemplateInput, seed: SeedInput = None):
        self.template: CompiledTemplate = compile_template(template)
        self._rng = Xorshift128Plus(seed)
        self._initial_seed: SerializedRngState = self._rng.serialize()

        self._phase = GamePhase.SETUP
        self._turn = 1
        self._resources: ResourceSnapshot = {
            resource.id: resource.initial for resource in self.template.resources
        }
        self._history: list[GameEvent] = []
        self._roll: RollResult | None = None
        self._chosen: CompiledAction | None = None
        self._replay_turns: list[ReplayTurn] = []
        self._turn_log: _TurnLog | None = None
        self._final_score: Number | None = None
        self._timestamp = 0

        self._record(SetupEvent(
            turn=0,
            phase=GamePhase.SETUP,
            timestamp=self._next_timestamp(),
            resources=copy_resources(self._resources),
        ))
        self._phase = GamePhase.ROLL
        logger.debug("Session started for template '%s' seed=%s", self.template.id, self._initial_seed.state)

    # -------------------------------------------------------------------------
    # Read-only views
    # -------------------------------------------------------------------------

    @property
    def phase(self) -> GamePhase:
        return self._phase

    @property
    def turn(self) -> int:
        return self._turn

    @property
    def rng(self) -> Xorshift128Plus:
        return self._rng

    @property
    def seed(self) -> SerializedRngState:
        """Generator state captured before the first draw."""
        return self._initial_seed

    @property
    def events(self) -> tuple[GameEvent, ...]:
        return tuple(self._history)

    @property
    def resources(self) -> ResourceSnapshot:
        return copy_resources(self._resources)

    @property
    def current_roll(self) -> RollResult | None:
        return self._roll

    def is_complete(self) -> bool:
        return self._phase == GamePhase.COMPLETE

    def get_score(self) -> Number | None:
        """Final score, or None until the game is complete."""
        return self._final_score

    def get_snapshot(self) -> GameSnapshot:
        return GameSnapshot(
            template=self.template,
            phase=self._phase,
            turn=self._turn,
            resources=copy_resources(self._resources),
            roll=self._roll,
            available_actions=tuple(self.list_available_actions()),
        )

    def get_replay(self) -> ReplayRecord | None:
        """The replay record, or None while the game is still running."""
        if self._final_score is None:
            return None
        return ReplayRecord(
            template_id=self.template.id,
            template_version=self.template.version,
            seed=self._initial_seed,
            turns=tuple(self._replay_turns),
            final_score=self._final_score,
        )

    # -------------------------------------------------------------------------
    # Phase operations
    # -------------------------------------------------------------------------

    def roll(self) -> RollResult:
        """Roll the template's first dice pool and open the turn."""
        self._ensure_phase(GamePhase.ROLL)
        dice = self.template.dice[0]
        values = [self._rng.next_int(dice.sides) + 1 for _ in range(dice.count)]
        roll = RollResult.from_values(dice.id, values)

        self._roll = roll
        self._turn_log = _TurnLog(turn=self._turn, roll=roll)
        self._record(RollEvent(
            turn=self._turn,
            phase=GamePhase.ROLL,
            timestamp=self._next_timestamp(),
            roll=roll,
        ))
        self._phase = GamePhase.CHOOSE
        logger.debug("Turn %d rolled %s (total %d)", self._turn, list(values), roll.total)
        return roll

    def list_available_actions(self) -> list[CompiledAction]:
        """
        Actions whose condition holds right now, in template order.

        Empty until the turn's dice are rolled. A condition that does not
        evaluate to a boolean raises ExpressionEvaluationError.
        """
        if self._roll is None:
            return []

        variables = self._variables()
        available = []
        for action in self.template.actions:
            if action.condition is None:
                available.append(action)
                continue
            result = ExpressionEvaluator(EvaluationContext(variables=variables)).evaluate(
                action.condition.ast
            )
            if not isinstance(result, bool):
                raise ExpressionEvaluationError(
                    f"Condition for action '{action.id}' must evaluate to a boolean"
                )
            if result:
                available.append(action)
        return available

    def choose(self, action_id: str) -> CompiledAction:
        """Pick one of the currently available actions."""
        self._ensure_phase(GamePhase.CHOOSE)
        action = next(
            (candidate for candidate in self.list_available_actions() if candidate.id == action_id),
            None,
        )
        if action is None:
            raise ActionNotAvailableError(action_id, self._turn)

        self._chosen = action
        if self._turn_log is not None:
            self._turn_log.action_id = action.id
        self._record(ChooseEvent(
            turn=self._turn,
            phase=GamePhase.CHOOSE,
            timestamp=self._next_timestamp(),
            action_id=action.id,
        ))
        self._phase = GamePhase.APPLY
        logger.debug("Turn %d chose '%s'", self._turn, action.id)
        return action

    def apply(self) -> ApplyOutcome:
        """
        Apply the chosen action's effects in declaration order.

        Later effects see the values produced by earlier ones. All changes
        (resources and dice draws) are committed only if every effect succeeds.
        """
        self._ensure_phase(GamePhase.APPLY)
        outcome, rng = self._apply_chosen_action()

        self._resources = copy_resources(outcome.resulting)
        self._rng.restore_from(rng)
        self._record(ApplyEvent(
            turn=self._turn,
            phase=GamePhase.APPLY,
            timestamp=self._next_timestamp(),
            deltas=dict(outcome.deltas),
            resulting=copy_resources(self._resources),
        ))
        if self._turn_log is not None:
            self._turn_log.resources = copy_resources(self._resources)
        self._chosen = None
        self._phase = GamePhase.END
        return outcome

    def end_turn(self):
        """Close the turn; either start the next one or finish the game."""
        self._ensure_phase(GamePhase.END)
        finished = self._should_end_game()
        final_score = self._evaluate_score() if finished else None

        self._record(EndTurnEvent(
            turn=self._turn,
            phase=GamePhase.END,
            timestamp=self._next_timestamp(),
            resources=copy_resources(self._resources),
        ))
        self._finalize_turn_log()

        if finished:
            self._final_score = final_score
            self._phase = GamePhase.COMPLETE
            self._record(CompleteEvent(
                turn=self._turn,
                phase=GamePhase.COMPLETE,
                timestamp=self._next_timestamp(),
                final_score=final_score,
                resources=copy_resources(self._resources),
            ))
            logger.info(
                "Game '%s' complete after %d turns, score %s",
                self.template.id,
                self._turn,
                final_score,
            )
            return

        self._turn += 1
        self._roll = None
        self._chosen = None
        self._phase = GamePhase.ROLL

    def score_breakdown(self) -> ScoreBreakdown:
        """Evaluate the scoring total and every component against current values."""
        variables = self._variables()
        total = self._evaluate_score(variables)
        components = {}
        for name, expression in self.template.scoring.components.items():
            value = ExpressionEvaluator(EvaluationContext(variables=variables)).evaluate(expression.ast)
            components[name] = _require_number(
                value, f"Scoring component '{name}' must resolve to a number"
            )
        return ScoreBreakdown(total=total, components=components)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _next_timestamp(self) -> int:
        self._timestamp += 1
        return self._timestamp

    def _record(self, event: GameEvent):
        self._history.append(event)

    def _ensure_phase(self, expected: GamePhase):
        if self._phase != expected:
            raise PhaseMismatchError(self._phase, expected)

    def _variables(self) -> dict[str, MiniValue]:
        variables: dict[str, MiniValue] = {"turn": self._turn}
        variables.update(self._resources)
        if self._roll is not None:
            variables.update(self._roll.variables())
        return variables

    def _apply_chosen_action(self) -> tuple[ApplyOutcome, Xorshift128Plus]:
        action = self._chosen
        if action is None:
            raise SessionError("No action has been chosen.")

        deltas: dict[str, Number] = {}
        resulting = copy_resources(self._resources)
        variables = self._variables()
        rng = self._rng.clone()

        for effect in action.effects:
            value = ExpressionEvaluator(
                EvaluationContext(variables=variables, rng=rng)
            ).evaluate(effect.expression.ast)
            value = _require_number(
                value, f"Effect for resource '{effect.resource}' must evaluate to a number"
            )
            definition = self.template.resource_map.get(effect.resource)
            if definition is None:
                raise SessionError(
                    f"Unknown resource '{effect.resource}' referenced by action '{action.id}'"
                )

            previous = resulting[effect.resource]
            updated = previous + value
            if definition.min is not None and updated < definition.min:
                raise ResourceBelowMinimumError(effect.resource, definition.min)
            if definition.max is not None and updated > definition.max:
                if not effect.clamp:
                    raise ResourceAboveMaximumError(effect.resource, definition.max)
                updated = definition.max
                value = definition.max - previous

            deltas[effect.resource] = deltas.get(effect.resource, 0) + value
            resulting[effect.resource] = updated
            variables[effect.resource] = updated

        return ApplyOutcome(deltas=deltas, resulting=resulting), rng

    def _should_end_game(self) -> bool:
        for condition in self.template.end_conditions:
            if isinstance(condition, TurnLimitCondition):
                if self._turn >= condition.limit:
                    return True
            elif isinstance(condition, ResourceThresholdCondition):
                value = self._resources[condition.resource]
                if _COMPARISONS[condition.comparison](value, condition.value):
                    return True
        return False

    def _evaluate_score(self, variables: Mapping[str, MiniValue] | None = None) -> Number:
        context = EvaluationContext(variables=dict(variables or self._variables()))
        total = ExpressionEvaluator(context).evaluate(self.template.scoring.total.ast)
        return _require_number(total, "Scoring expression must resolve to a number")

    def _finalize_turn_log(self):
        if self._turn_log is not None and self._turn_log.is_complete():
            self._replay_turns.append(self._turn_log.to_turn())
        self._turn_log = None
