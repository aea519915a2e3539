"""
API Service - Business logic layer between API and engine.

The service:
1. Resolves templates (bundled or inline) through the compile cache
2. Manages sessions
3. Drives session phase operations
4. Maps engine errors to structured ErrorResponses

This layer is framework-agnostic (can be used with FastAPI, Flask, etc.)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Optional
import logging

from .schemas import (
    # Requests
    AutoplayRequest,
    ChooseActionRequest,
    CreateSessionRequest,
    ValidateTemplateRequest,
    # Responses
    ApplyResponse,
    ErrorResponse,
    EventsResponse,
    ReplayResponse,
    SessionResponse,
    TemplateListResponse,
    TemplateSummary,
    ValidateTemplateResponse,
    # Shared
    ActionInfo,
    RollInfo,
    # Enums
    ErrorCode,
    GamePhaseName,
)
from ..bots import NoActionsAvailableError, get_policy
from ..engine_core.expression import ExpressionEvaluationError, ExpressionSyntaxError
from ..engine_core.rng import RngRangeError, UnsupportedRngAlgorithmError
from ..games import TemplateNotFoundError, get_template, list_templates
from ..games.meteor_miners import TEMPLATE_ID as DEFAULT_TEMPLATE_ID
from ..session import (
    ActionNotAvailableError,
    PhaseMismatchError,
    ResourceBoundsError,
    Session,
    SessionError,
    SessionManager,
    TurnCapExceededError,
    autoplay,
)
from ..spec_schema import TemplateValidationError, check_template
from ..template_compiler import CompiledTemplate, TemplateCache

logger = logging.getLogger(__name__)

ENGINE_ERRORS = (
    TemplateNotFoundError,
    TemplateValidationError,
    ExpressionSyntaxError,
    ExpressionEvaluationError,
    SessionError,
    RngRangeError,
    UnsupportedRngAlgorithmError,
    NoActionsAvailableError,
)


def error_response(exc: Exception) -> ErrorResponse:
    """Translate an engine exception into a structured error."""
    if isinstance(exc, TemplateNotFoundError):
        return ErrorResponse(
            error=str(exc),
            error_code=ErrorCode.TEMPLATE_NOT_FOUND,
            details={"template_id": exc.template_id},
        )
    if isinstance(exc, TemplateValidationError):
        return ErrorResponse(
            error=exc.message,
            error_code=ErrorCode.VALIDATION_ERROR,
            details={"issues": exc.issues},
        )
    if isinstance(exc, ExpressionSyntaxError):
        return ErrorResponse(
            error=str(exc),
            error_code=ErrorCode.SYNTAX_ERROR,
            details={"start": exc.span.start, "end": exc.span.end},
        )
    if isinstance(exc, ExpressionEvaluationError):
        return ErrorResponse(error=str(exc), error_code=ErrorCode.EVALUATION_ERROR)
    if isinstance(exc, PhaseMismatchError):
        return ErrorResponse(
            error=str(exc),
            error_code=ErrorCode.PHASE_MISMATCH,
            details={"current": exc.current.value, "expected": exc.expected.value},
        )
    if isinstance(exc, ActionNotAvailableError):
        return ErrorResponse(
            error=str(exc),
            error_code=ErrorCode.ACTION_NOT_AVAILABLE,
            details={"action_id": exc.action_id, "turn": exc.turn},
        )
    if isinstance(exc, ResourceBoundsError):
        return ErrorResponse(
            error=str(exc),
            error_code=ErrorCode.RESOURCE_BOUNDS,
            details={"resource": exc.resource, "limit": exc.limit},
        )
    if isinstance(exc, TurnCapExceededError):
        return ErrorResponse(
            error=str(exc),
            error_code=ErrorCode.TURN_CAP_EXCEEDED,
            details={"max_turns": exc.max_turns},
        )
    if isinstance(exc, NoActionsAvailableError):
        return ErrorResponse(
            error=str(exc),
            error_code=ErrorCode.NO_ACTIONS_AVAILABLE,
            details={"turn": exc.turn},
        )
    if isinstance(exc, (RngRangeError, UnsupportedRngAlgorithmError)):
        return ErrorResponse(error=str(exc), error_code=ErrorCode.VALIDATION_ERROR)
    return ErrorResponse(error=str(exc), error_code=ErrorCode.INTERNAL_ERROR)


def session_not_found(session_id: str) -> ErrorResponse:
    return ErrorResponse(
        error="Session not found",
        error_code=ErrorCode.SESSION_NOT_FOUND,
        details={"session_id": session_id},
    )


@dataclass
class APIService:
    """
    Main API service.

    Usage:
        service = APIService()

        # Start a game
        session = service.create_session(CreateSessionRequest(seed=42))

        # Play a turn
        service.roll(session.session_id)
        service.choose(session.session_id, ChooseActionRequest(action_id="stabilize"))
        service.apply(session.session_id)
        service.end_turn(session.session_id)
    """
    session_manager: SessionManager = field(default_factory=SessionManager)
    template_cache: TemplateCache = field(default_factory=TemplateCache)

    # =========================================================================
    # Templates
    # =========================================================================

    def list_templates(self) -> TemplateListResponse:
        """Summaries of all bundled templates."""
        summaries = []
        for template_id in list_templates():
            template = get_template(template_id)
            summaries.append(
                TemplateSummary(
                    id=template.id,
                    name=template.name,
                    version=template.version,
                    description=template.description,
                    turn_limit=template.turn.limit,
                    resources=[r.id for r in template.resources],
                    actions=[a.id for a in template.actions],
                )
            )
        return TemplateListResponse(templates=summaries, count=len(summaries))

    def validate_template(self, request: ValidateTemplateRequest) -> ValidateTemplateResponse:
        """
        Validate a template document and check that its formulas parse.
        """
        result = check_template(request.template)
        if not result.valid:
            return ValidateTemplateResponse(valid=False, errors=result.errors)

        try:
            compiled = self.template_cache.get_or_compile(result.template)
        except ExpressionSyntaxError as e:
            return ValidateTemplateResponse(
                valid=False,
                template_id=result.template.id,
                errors=[str(e)],
                warnings=result.warnings,
            )

        return ValidateTemplateResponse(
            valid=True,
            template_id=compiled.id,
            warnings=result.warnings,
        )

    def resolve_template(
        self,
        template_id: Optional[str] = None,
        template: Optional[dict[str, Any]] = None,
    ) -> CompiledTemplate:
        """
        Compile an inline document, or the bundled template with the given id.

        Raises TemplateNotFoundError, TemplateValidationError or
        ExpressionSyntaxError.
        """
        if template is not None:
            return self.template_cache.get_or_compile(template)
        return self.template_cache.get_or_compile(get_template(template_id or DEFAULT_TEMPLATE_ID))

    # =========================================================================
    # Sessions
    # =========================================================================

    def create_session(self, request: CreateSessionRequest) -> SessionResponse | ErrorResponse:
        """
        Create a new game session.
        """
        try:
            compiled = self.resolve_template(request.template_id, request.template)
            session = self.session_manager.create_session(compiled, seed=request.seed)
        except ENGINE_ERRORS as e:
            logger.warning("Could not create session: %s", e)
            return error_response(e)
        return self._session_to_response(session)

    def get_session(self, session_id: str) -> SessionResponse | ErrorResponse:
        """
        Get session state.
        """
        session = self.session_manager.get_session(session_id)
        if not session:
            return session_not_found(session_id)
        try:
            return self._session_to_response(session)
        except ENGINE_ERRORS as e:
            return error_response(e)

    def end_session(self, session_id: str, reason: str = "user_ended") -> bool:
        """
        End a game session.
        """
        return self.session_manager.end_session(session_id, reason)

    def list_sessions(self) -> list[str]:
        """
        List session IDs, oldest first.
        """
        return [s.session_id for s in self.session_manager.list_sessions()]

    # =========================================================================
    # Phase operations
    # =========================================================================

    def roll(self, session_id: str) -> SessionResponse | ErrorResponse:
        return self._run(session_id, lambda session: session.game.roll())

    def choose(self, session_id: str, request: ChooseActionRequest) -> SessionResponse | ErrorResponse:
        return self._run(session_id, lambda session: session.game.choose(request.action_id))

    def end_turn(self, session_id: str) -> SessionResponse | ErrorResponse:
        return self._run(session_id, lambda session: session.game.end_turn())

    def apply(self, session_id: str) -> ApplyResponse | ErrorResponse:
        """
        Apply the chosen action.

        Returns the per-resource deltas along with the updated session.
        """
        session = self.session_manager.get_session(session_id)
        if not session:
            return session_not_found(session_id)
        try:
            outcome = session.game.apply()
            return ApplyResponse(
                deltas=outcome.deltas,
                resulting=outcome.resulting,
                session=self._session_to_response(session),
            )
        except ENGINE_ERRORS as e:
            return error_response(e)

    def get_events(self, session_id: str) -> EventsResponse | ErrorResponse:
        session = self.session_manager.get_session(session_id)
        if not session:
            return session_not_found(session_id)
        events = [event.to_dict() for event in session.game.events]
        return EventsResponse(session_id=session_id, events=events, count=len(events))

    def get_replay(self, session_id: str) -> ReplayResponse | ErrorResponse:
        """
        Get the replay of a completed session.
        """
        session = self.session_manager.get_session(session_id)
        if not session:
            return session_not_found(session_id)
        replay = session.game.get_replay()
        if replay is None:
            return ErrorResponse(
                error="Replay is not available until the game is complete",
                error_code=ErrorCode.REPLAY_NOT_AVAILABLE,
                details={"phase": session.game.phase.value},
            )
        return ReplayResponse(
            session_id=session_id,
            replay=replay.to_dict(),
            final_score=replay.final_score,
            turns=len(replay.turns),
        )

    def autoplay(self, request: AutoplayRequest) -> ReplayResponse | ErrorResponse:
        """
        Play a whole game with the requested policy and return its replay.
        """
        try:
            compiled = self.resolve_template(request.template_id, request.template)
            policy = get_policy(request.policy, seed=request.policy_seed)
            replay = autoplay(
                compiled, policy, seed=request.seed, max_turns=request.max_turns
            )
        except ENGINE_ERRORS as e:
            logger.warning("Autoplay failed: %s", e)
            return error_response(e)
        return ReplayResponse(
            replay=replay.to_dict(),
            final_score=replay.final_score,
            turns=len(replay.turns),
        )

    # =========================================================================
    # Helper methods
    # =========================================================================

    def _run(
        self,
        session_id: str,
        operation: Callable[[Session], Any],
    ) -> SessionResponse | ErrorResponse:
        """Run one phase operation and return the updated session."""
        session = self.session_manager.get_session(session_id)
        if not session:
            return session_not_found(session_id)
        try:
            operation(session)
            return self._session_to_response(session)
        except ENGINE_ERRORS as e:
            return error_response(e)

    def _session_to_response(self, session: Session) -> SessionResponse:
        """Convert Session to SessionResponse."""
        snapshot = session.game.get_snapshot()
        roll = None
        if snapshot.roll is not None:
            roll = RollInfo(
                dice_id=snapshot.roll.dice_id,
                values=list(snapshot.roll.values),
                total=snapshot.roll.total,
                highest=snapshot.roll.highest,
                lowest=snapshot.roll.lowest,
            )

        return SessionResponse(
            session_id=session.session_id,
            template_id=session.template.id,
            template_name=session.template.name,
            phase=GamePhaseName(snapshot.phase.value),
            turn=snapshot.turn,
            resources=snapshot.resources,
            roll=roll,
            available_actions=[
                ActionInfo(
                    id=action.id,
                    label=action.label,
                    priority=action.priority,
                    description=action.description,
                )
                for action in snapshot.available_actions
            ],
            is_complete=session.game.is_complete(),
            final_score=session.game.get_score(),
            created_at=session.created_at,
        )
