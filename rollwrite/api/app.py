"""
FastAPI Application - REST API for roll-and-write sessions.

Endpoints:
    GET    /api/v1/health                       Health check
    GET    /api/v1/templates                    List bundled templates
    POST   /api/v1/templates/validate           Validate a template document
    POST   /api/v1/sessions                     Create game session
    GET    /api/v1/sessions                     List sessions
    GET    /api/v1/sessions/{id}                Get session state
    DELETE /api/v1/sessions/{id}                End session
    POST   /api/v1/sessions/{id}/roll           Roll the dice
    POST   /api/v1/sessions/{id}/choose         Choose an action
    POST   /api/v1/sessions/{id}/apply          Apply the chosen action
    POST   /api/v1/sessions/{id}/end-turn       End the turn
    GET    /api/v1/sessions/{id}/events         Event log
    GET    /api/v1/sessions/{id}/replay         Replay of a completed game
    POST   /api/v1/autoplay                     Play a whole game unattended

Turn flow:
    roll -> choose -> apply -> end-turn, repeated until the session
    reports is_complete=true. Calling a step out of order returns
    PHASE_MISMATCH and leaves the session untouched.

All responses are JSON with explicit Pydantic schemas.
"""

from typing import Optional, Union
import logging
import os

# Environment configuration
ROLLWRITE_ENV = os.getenv("ROLLWRITE_ENV", "development")
ROLLWRITE_LOG_LEVEL = os.getenv("ROLLWRITE_LOG_LEVEL", "INFO")
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")

API_PREFIX = "/api/v1"

logger = logging.getLogger(__name__)


def create_app(service=None):
    """
    Create the FastAPI application.

    Args:
        service: Optional APIService instance (creates new if not provided)

    Returns:
        FastAPI application instance
    """
    try:
        from fastapi import FastAPI, Query
        from fastapi.middleware.cors import CORSMiddleware
        from fastapi.responses import JSONResponse
    except ImportError:
        raise ImportError(
            "FastAPI not installed. Install with: pip install fastapi uvicorn"
        )

    from .service import APIService
    from .schemas import (
        # Request models
        AutoplayRequest,
        ChooseActionRequest,
        CreateSessionRequest,
        ValidateTemplateRequest,
        # Response models
        ApplyResponse,
        EndSessionResponse,
        ErrorResponse,
        EventsResponse,
        HealthResponse,
        ReplayResponse,
        SessionListResponse,
        SessionResponse,
        TemplateListResponse,
        ValidateTemplateResponse,
        # Enums
        ErrorCode,
    )

    logging.getLogger("rollwrite").setLevel(ROLLWRITE_LOG_LEVEL.upper())

    app = FastAPI(
        title="Rollwrite Engine API",
        description="""
Roll-and-write game engine - deterministic sessions from declarative templates.

## Turn Flow

1. `POST /sessions/{id}/roll` rolls the template's dice
2. `POST /sessions/{id}/choose` picks one of `available_actions`
3. `POST /sessions/{id}/apply` applies its effects
4. `POST /sessions/{id}/end-turn` closes the turn

Once `is_complete` is true, `GET /sessions/{id}/replay` returns the replay.

## Error Codes

| Code | Description |
|------|-------------|
| `SESSION_NOT_FOUND` | Session does not exist |
| `TEMPLATE_NOT_FOUND` | No bundled template with that id |
| `VALIDATION_ERROR` | Template document or seed is invalid |
| `SYNTAX_ERROR` | A formula does not parse |
| `EVALUATION_ERROR` | A formula failed during evaluation |
| `PHASE_MISMATCH` | Step called out of order |
| `ACTION_NOT_AVAILABLE` | Action's condition does not hold |
| `RESOURCE_BOUNDS` | Effect would leave a resource's bounds |
| `REPLAY_NOT_AVAILABLE` | Game has not completed yet |
| `NO_ACTIONS_AVAILABLE` | Autoplay reached a turn with no available action |
| `TURN_CAP_EXCEEDED` | Autoplay hit its turn cap before the game ended |
        """,
        version="1.0.0",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Service instance
    api_service = service or APIService()

    # =========================================================================
    # Error helpers
    # =========================================================================

    status_codes = {
        ErrorCode.SESSION_NOT_FOUND: 404,
        ErrorCode.TEMPLATE_NOT_FOUND: 404,
        ErrorCode.VALIDATION_ERROR: 400,
        ErrorCode.SYNTAX_ERROR: 400,
        ErrorCode.EVALUATION_ERROR: 400,
        ErrorCode.PHASE_MISMATCH: 409,
        ErrorCode.ACTION_NOT_AVAILABLE: 409,
        ErrorCode.RESOURCE_BOUNDS: 409,
        ErrorCode.REPLAY_NOT_AVAILABLE: 409,
        ErrorCode.NO_ACTIONS_AVAILABLE: 409,
        ErrorCode.TURN_CAP_EXCEEDED: 409,
        ErrorCode.INTERNAL_ERROR: 500,
    }

    def make_error_response(error: ErrorResponse) -> JSONResponse:
        """Create a standardized error response."""
        return JSONResponse(
            status_code=status_codes.get(error.error_code, 400),
            content=error.model_dump(mode="json"),
        )

    def respond(response):
        if isinstance(response, ErrorResponse):
            return make_error_response(response)
        return response

    error_responses = {
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    }

    # =========================================================================
    # Template Endpoints
    # =========================================================================

    @app.get(
        f"{API_PREFIX}/templates",
        response_model=TemplateListResponse,
        tags=["Templates"],
        summary="List bundled templates",
    )
    async def list_templates() -> TemplateListResponse:
        return api_service.list_templates()

    @app.post(
        f"{API_PREFIX}/templates/validate",
        response_model=ValidateTemplateResponse,
        tags=["Templates"],
        summary="Validate a template document",
    )
    async def validate_template(request: ValidateTemplateRequest) -> ValidateTemplateResponse:
        """
        Validate a template document.

        Invalid documents return 200 with `valid=false` and one issue per
        violated constraint.
        """
        return api_service.validate_template(request)

    # =========================================================================
    # Session Endpoints
    # =========================================================================

    @app.post(
        f"{API_PREFIX}/sessions",
        response_model=SessionResponse,
        responses=error_responses,
        tags=["Sessions"],
        summary="Create a new game session",
    )
    async def create_session(request: CreateSessionRequest) -> Union[SessionResponse, JSONResponse]:
        """
        Create a new game session.

        Use `template_id` for a bundled template or `template` for an inline
        document. The same `seed` always produces the same rolls.
        """
        return respond(api_service.create_session(request))

    @app.get(
        f"{API_PREFIX}/sessions",
        response_model=SessionListResponse,
        tags=["Sessions"],
        summary="List sessions",
    )
    async def list_sessions() -> SessionListResponse:
        sessions = api_service.list_sessions()
        return SessionListResponse(sessions=sessions, count=len(sessions))

    @app.get(
        f"{API_PREFIX}/sessions/{{session_id}}",
        response_model=SessionResponse,
        responses=error_responses,
        tags=["Sessions"],
        summary="Get session state",
    )
    async def get_session(session_id: str) -> Union[SessionResponse, JSONResponse]:
        return respond(api_service.get_session(session_id))

    @app.delete(
        f"{API_PREFIX}/sessions/{{session_id}}",
        response_model=EndSessionResponse,
        tags=["Sessions"],
        summary="End a game session",
    )
    async def end_session(
        session_id: str,
        reason: Optional[str] = Query("user_ended", description="Reason for ending"),
    ) -> EndSessionResponse:
        """End a game session and release resources."""
        success = api_service.end_session(session_id, reason)
        return EndSessionResponse(success=success, session_id=session_id)

    # =========================================================================
    # Turn Endpoints
    # =========================================================================

    @app.post(
        f"{API_PREFIX}/sessions/{{session_id}}/roll",
        response_model=SessionResponse,
        responses=error_responses,
        tags=["Turn"],
        summary="Roll the dice",
    )
    async def roll(session_id: str) -> Union[SessionResponse, JSONResponse]:
        return respond(api_service.roll(session_id))

    @app.post(
        f"{API_PREFIX}/sessions/{{session_id}}/choose",
        response_model=SessionResponse,
        responses=error_responses,
        tags=["Turn"],
        summary="Choose an available action",
    )
    async def choose(
        session_id: str,
        request: ChooseActionRequest,
    ) -> Union[SessionResponse, JSONResponse]:
        return respond(api_service.choose(session_id, request))

    @app.post(
        f"{API_PREFIX}/sessions/{{session_id}}/apply",
        response_model=ApplyResponse,
        responses=error_responses,
        tags=["Turn"],
        summary="Apply the chosen action",
    )
    async def apply(session_id: str) -> Union[ApplyResponse, JSONResponse]:
        """
        Apply the chosen action's effects.

        Fails with RESOURCE_BOUNDS, leaving resources unchanged, when an
        effect would push a resource outside its bounds.
        """
        return respond(api_service.apply(session_id))

    @app.post(
        f"{API_PREFIX}/sessions/{{session_id}}/end-turn",
        response_model=SessionResponse,
        responses=error_responses,
        tags=["Turn"],
        summary="End the current turn",
    )
    async def end_turn(session_id: str) -> Union[SessionResponse, JSONResponse]:
        return respond(api_service.end_turn(session_id))

    @app.get(
        f"{API_PREFIX}/sessions/{{session_id}}/events",
        response_model=EventsResponse,
        responses=error_responses,
        tags=["Turn"],
        summary="Get the session event log",
    )
    async def get_events(session_id: str) -> Union[EventsResponse, JSONResponse]:
        return respond(api_service.get_events(session_id))

    @app.get(
        f"{API_PREFIX}/sessions/{{session_id}}/replay",
        response_model=ReplayResponse,
        responses=error_responses,
        tags=["Turn"],
        summary="Get the replay of a completed game",
    )
    async def get_replay(session_id: str) -> Union[ReplayResponse, JSONResponse]:
        return respond(api_service.get_replay(session_id))

    # =========================================================================
    # Autoplay
    # =========================================================================

    @app.post(
        f"{API_PREFIX}/autoplay",
        response_model=ReplayResponse,
        responses=error_responses,
        tags=["Autoplay"],
        summary="Play a whole game with a decision policy",
    )
    async def run_autoplay(request: AutoplayRequest) -> Union[ReplayResponse, JSONResponse]:
        return respond(api_service.autoplay(request))

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.get(
        f"{API_PREFIX}/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    async def health_check() -> HealthResponse:
        """Health check endpoint for load balancers."""
        return HealthResponse(
            status="healthy",
            service="rollwrite-engine",
            version="1.0.0",
        )

    @app.get("/", tags=["System"])
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Rollwrite Engine API",
            "version": "1.0.0",
            "environment": ROLLWRITE_ENV,
            "docs": "/api/docs",
            "health": f"{API_PREFIX}/health",
        }

    return app


# For running directly: uvicorn rollwrite.api.app:app
app = None
try:
    app = create_app()
except ImportError:
    # FastAPI not installed
    pass
