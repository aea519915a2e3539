"""
Session Manager - Creates and tracks live game sessions.

LIFECYCLE:
1. Caller starts a session from a compiled template and a seed
2. Caller drives it through roll / choose / apply / end-turn
3. Game completes -> replay becomes available
4. Session is ended explicitly or cleaned up once stale

PERSISTENCE RULES:
- Sessions live in memory only
- A completed game survives as its ReplayRecord, which the caller keeps
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any
import logging
import os
import time
import uuid

from ..engine_core.rng import SeedInput
from ..template_compiler import CompiledTemplate
from .engine import GameSession

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TTL = int(os.getenv("ROLLWRITE_SESSION_TTL", "3600"))


@dataclass
class Session:
    """
    A tracked game session.

    Contains:
    - The GameSession state machine
    - Creation and last-activity timestamps
    - Session metadata
    """
    session_id: str
    game: GameSession
    created_at: float
    last_activity: float = 0.0
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def template(self) -> CompiledTemplate:
        return self.game.template

    def is_active(self) -> bool:
        """A session is active until its game completes."""
        return not self.game.is_complete()

    def touch(self):
        self.last_activity = time.time()


class SessionManager:
    """
    Manages game sessions.

    Responsibilities:
    - Create sessions from compiled templates
    - Track sessions by id
    - Clean up stale sessions

    No persistence - sessions are in-memory only.
    """

    def __init__(self, session_ttl: int = DEFAULT_SESSION_TTL):
        self.session_ttl = session_ttl
        self._sessions: dict[str, Session] = {}

    def create_session(
        self,
        template: CompiledTemplate,
        seed: SeedInput = None,
        metadata: dict[str, Any] | None = None,
    ) -> Session:
        """
        Create a new game session.

        Args:
            template: Compiled template (shared read-only)
            seed: RNG seed for the session
            metadata: Free-form data kept with the session

        Returns:
            New Session in the roll phase
        """
        session_id = str(uuid.uuid4())
        now = time.time()
        session = Session(
            session_id=session_id,
            game=GameSession(template, seed=seed),
            created_at=now,
            last_activity=now,
            metadata=metadata or {},
        )
        self._sessions[session_id] = session
        logger.info("Created session %s for template '%s'", session_id, template.id)
        return session

    def get_session(self, session_id: str) -> Session | None:
        """Get a session by ID, marking it as recently used."""
        session = self._sessions.get(session_id)
        if session:
            session.touch()
        return session

    def end_session(self, session_id: str, reason: str = "completed") -> bool:
        """
        End a session and drop it from memory.

        Returns False if the session did not exist.
        """
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        logger.info("Ended session %s (%s)", session_id, reason)
        return True

    def list_sessions(self) -> list[Session]:
        """All tracked sessions, oldest first."""
        return sorted(self._sessions.values(), key=lambda s: s.created_at)

    def list_active_sessions(self) -> list[str]:
        """List IDs of sessions whose game is still running."""
        return [
            sid for sid, session in self._sessions.items()
            if session.is_active()
        ]

    def cleanup_stale_sessions(self, max_age_seconds: int | None = None) -> int:
        """
        Drop sessions idle for longer than max_age_seconds.

        Returns the number of sessions removed.
        """
        max_age = self.session_ttl if max_age_seconds is None else max_age_seconds
        current_time = time.time()
        to_remove = [
            session_id
            for session_id, session in self._sessions.items()
            if current_time - session.last_activity > max_age
        ]

        for session_id in to_remove:
            self.end_session(session_id, reason="stale")
        return len(to_remove)

    def __len__(self) -> int:
        return len(self._sessions)
