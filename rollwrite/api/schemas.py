"""
Pydantic Schemas for API - Request/response models for OpenAPI.

These models define the exact contract between HTTP clients and the engine.
All responses include explicit types for OpenAPI schema generation.

Error Codes:
- SESSION_NOT_FOUND: Session does not exist or has expired
- TEMPLATE_NOT_FOUND: No bundled template with that id
- VALIDATION_ERROR: Template document (or seed) is invalid
- SYNTAX_ERROR: A template formula does not parse
- EVALUATION_ERROR: A formula failed while being evaluated
- PHASE_MISMATCH: Operation called in the wrong turn phase
- ACTION_NOT_AVAILABLE: Chosen action's condition does not hold
- RESOURCE_BOUNDS: An effect would leave a resource's bounds
- REPLAY_NOT_AVAILABLE: Game has not completed yet
"""

from enum import Enum
from typing import Any, Literal, Optional, Union
from pydantic import BaseModel, Field, StrictInt


# =============================================================================
# Enums
# =============================================================================

class ErrorCode(str, Enum):
    """Structured error codes."""
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    TEMPLATE_NOT_FOUND = "TEMPLATE_NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    SYNTAX_ERROR = "SYNTAX_ERROR"
    EVALUATION_ERROR = "EVALUATION_ERROR"
    PHASE_MISMATCH = "PHASE_MISMATCH"
    ACTION_NOT_AVAILABLE = "ACTION_NOT_AVAILABLE"
    RESOURCE_BOUNDS = "RESOURCE_BOUNDS"
    REPLAY_NOT_AVAILABLE = "REPLAY_NOT_AVAILABLE"
    NO_ACTIONS_AVAILABLE = "NO_ACTIONS_AVAILABLE"
    TURN_CAP_EXCEEDED = "TURN_CAP_EXCEEDED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class GamePhaseName(str, Enum):
    """Turn phases as exposed over HTTP."""
    SETUP = "setup"
    ROLL = "roll"
    CHOOSE = "choose"
    APPLY = "apply"
    END = "end"
    COMPLETE = "complete"


SeedValue = Union[StrictInt, str]
Number = Union[int, float]
PolicyName = Literal["highest", "first", "random"]


# =============================================================================
# Shared Models
# =============================================================================

class RollInfo(BaseModel):
    """Dice rolled this turn."""
    dice_id: str
    values: list[int]
    total: int
    highest: int
    lowest: int

    model_config = {"from_attributes": True}


class ActionInfo(BaseModel):
    """An action the player may choose."""
    id: str
    label: str
    priority: int
    description: Optional[str] = None

    model_config = {"from_attributes": True}


class TemplateSummary(BaseModel):
    """Bundled template information for display."""
    id: str
    name: str
    version: str
    description: Optional[str] = None
    turn_limit: int
    resources: list[str] = Field(default_factory=list)
    actions: list[str] = Field(default_factory=list)


# =============================================================================
# Request Models
# =============================================================================

class ValidateTemplateRequest(BaseModel):
    """Request to validate a template document."""
    template: dict[str, Any] = Field(..., description="Template document (camelCase keys)")


class CreateSessionRequest(BaseModel):
    """Request to create a new game session."""
    template_id: Optional[str] = Field(
        None, description="Bundled template id (defaults to meteor-miners)"
    )
    template: Optional[dict[str, Any]] = Field(
        None, description="Inline template document; takes precedence over template_id"
    )
    seed: Optional[SeedValue] = Field(None, description="Seed for reproducible games")


class ChooseActionRequest(BaseModel):
    """Request to choose an action for the current turn."""
    action_id: str = Field(..., min_length=1, description="Id of an available action")


class AutoplayRequest(BaseModel):
    """Request to play a whole game unattended."""
    template_id: Optional[str] = Field(None, description="Bundled template id")
    template: Optional[dict[str, Any]] = Field(None, description="Inline template document")
    seed: Optional[SeedValue] = Field(None, description="Session seed")
    policy: PolicyName = Field("highest", description="Decision policy")
    policy_seed: Optional[SeedValue] = Field(None, description="Seed for the random policy")
    max_turns: int = Field(1000, ge=1, le=100_000, description="Turns to play before giving up")


# =============================================================================
# Response Models
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorCode = Field(..., description="Machine-readable error code")
    details: Optional[dict[str, Any]] = Field(None, description="Additional error context")
    api_version: str = Field("v1", description="API version")


class TemplateListResponse(BaseModel):
    """Bundled templates."""
    templates: list[TemplateSummary]
    count: int


class ValidateTemplateResponse(BaseModel):
    """Outcome of validating and compiling a template document."""
    valid: bool
    template_id: Optional[str] = None
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    api_version: str = "v1"


class SessionResponse(BaseModel):
    """Current state of a game session."""
    session_id: str
    template_id: str
    template_name: str
    phase: GamePhaseName
    turn: int
    resources: dict[str, Number]
    roll: Optional[RollInfo] = None
    available_actions: list[ActionInfo] = Field(default_factory=list)
    is_complete: bool = False
    final_score: Optional[Number] = None
    created_at: float = 0.0
    api_version: str = "v1"


class ApplyResponse(BaseModel):
    """Result of applying the chosen action."""
    deltas: dict[str, Number]
    resulting: dict[str, Number]
    session: SessionResponse
    api_version: str = "v1"


class EventsResponse(BaseModel):
    """Ordered event log of a session."""
    session_id: str
    events: list[dict[str, Any]]
    count: int


class ReplayResponse(BaseModel):
    """Replay record of a completed session (camelCase wire form)."""
    session_id: Optional[str] = None
    replay: dict[str, Any]
    final_score: Number
    turns: int
    api_version: str = "v1"


class SessionListResponse(BaseModel):
    """Response listing sessions."""
    sessions: list[str]
    count: int


class EndSessionResponse(BaseModel):
    """Response after ending a session."""
    success: bool
    session_id: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
