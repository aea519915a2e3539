"""
Engine Core - Deterministic building blocks of a session.

The engine core provides:
1. A seedable, serializable xorshift128+ generator
2. The formula language (lexer, parser, evaluator)
3. Session records: phases, rolls, events, replays
4. Replayable session commands
"""

from .rng import (
    Xorshift128Plus,
    SerializedRngState,
    RngRangeError,
    UnsupportedRngAlgorithmError,
)
from .expression import (
    CompiledExpression,
    EvaluationContext,
    ExpressionEvaluationError,
    ExpressionSyntaxError,
    SourceSpan,
    compile_expression,
    evaluate_expression,
    list_identifiers,
    parse_expression,
)
from .state import (
    GamePhase,
    RollResult,
    ApplyOutcome,
    GameEvent,
    SetupEvent,
    RollEvent,
    ChooseEvent,
    ApplyEvent,
    EndTurnEvent,
    CompleteEvent,
    ReplayTurn,
    ReplayRecord,
    GameSnapshot,
    format_event,
)
from .action import SessionCommand, CommandType

__all__ = [
    "Xorshift128Plus",
    "SerializedRngState",
    "RngRangeError",
    "UnsupportedRngAlgorithmError",
    "CompiledExpression",
    "EvaluationContext",
    "ExpressionEvaluationError",
    "ExpressionSyntaxError",
    "SourceSpan",
    "compile_expression",
    "evaluate_expression",
    "list_identifiers",
    "parse_expression",
    "GamePhase",
    "RollResult",
    "ApplyOutcome",
    "GameEvent",
    "SetupEvent",
    "RollEvent",
    "ChooseEvent",
    "ApplyEvent",
    "EndTurnEvent",
    "CompleteEvent",
    "ReplayTurn",
    "ReplayRecord",
    "GameSnapshot",
    "format_event",
    "SessionCommand",
    "CommandType",
]
