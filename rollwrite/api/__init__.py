"""
API Module - HTTP interface.

Exposes the engine via REST API. Clients:
1. List or validate templates
2. Create game sessions
3. Step through roll / choose / apply / end-turn
4. Fetch events and replays
5. Run unattended games via autoplay

All state is session-scoped and held in memory.
"""

from .schemas import (
    # Requests
    AutoplayRequest,
    ChooseActionRequest,
    CreateSessionRequest,
    ValidateTemplateRequest,
    # Responses
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
    # Shared
    ActionInfo,
    RollInfo,
    TemplateSummary,
    ErrorCode,
)
from .service import APIService
from .app import create_app

__all__ = [
    # Requests
    "AutoplayRequest",
    "ChooseActionRequest",
    "CreateSessionRequest",
    "ValidateTemplateRequest",
    # Responses
    "ApplyResponse",
    "EndSessionResponse",
    "ErrorResponse",
    "EventsResponse",
    "HealthResponse",
    "ReplayResponse",
    "SessionListResponse",
    "SessionResponse",
    "TemplateListResponse",
    "ValidateTemplateResponse",
    # Shared
    "ActionInfo",
    "RollInfo",
    "TemplateSummary",
    "ErrorCode",
    # Service
    "APIService",
    "create_app",
]
