"""Session lifecycle: create, restore, list and delete."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from photo_studio.domain.errors import InvalidRequestError
from photo_studio.domain.models import SessionSummary
from photo_studio.domain.sessions import SESSION_TYPES, Session, SessionBase

logger = logging.getLogger(__name__)


class SessionRepository(Protocol):
    """Persistence interface for production sessions."""

    def session_dir(self, session_id: str) -> Path:
        """Return the storage directory for a session without touching disk."""

    async def create_session(self, session_type: str) -> Session:
        """Allocate a new session, create its directories and persist it."""

    async def save_session(self, session: Session) -> None:
        """Stamp ``updated_at`` and persist the full session document."""

    async def load_session(self, session_id: str) -> Session:
        """Load a session or raise ``SessionNotFoundError``."""

    async def list_sessions(
        self, session_type: str | None = None
    ) -> list[SessionSummary]:
        """Return loadable sessions, newest first."""

    async def delete_session(self, session_id: str) -> None:
        """Remove a session directory and everything in it."""


@dataclass
class SessionService:
    """Application service wrapping the session repository."""

    repository: SessionRepository

    async def new_session(self, session_type: str) -> Session:
        """Create an empty session of the requested type."""
        if session_type not in SESSION_TYPES:
            raise InvalidRequestError(f"Unknown session type: {session_type}")
        session = await self.repository.create_session(session_type)
        logger.info("Created %s session %s", session_type, session.session_id)
        return session

    async def list_sessions(
        self, session_type: str | None = None
    ) -> list[SessionSummary]:
        return await self.repository.list_sessions(session_type)

    async def get_session(
        self, session_id: str, expected: type[SessionBase] | None = None
    ) -> Session:
        """Load a session, optionally insisting on its variant."""
        session = await self.repository.load_session(session_id)
        if expected is not None and not isinstance(session, expected):
            raise InvalidRequestError(
                f"Session {session_id} is a {session.type} session"
            )
        return session

    async def latest_session(self, session_type: str) -> Session | None:
        """Most recently created session of a type, if any."""
        summaries = await self.repository.list_sessions(session_type)
        if not summaries:
            return None
        return await self.repository.load_session(summaries[0].session_id)

    async def save(self, session: Session) -> None:
        await self.repository.save_session(session)

    async def delete_session(self, session_id: str) -> None:
        await self.repository.delete_session(session_id)
        logger.info("Deleted session %s", session_id)

    def session_dir(self, session_id: str) -> Path:
        return self.repository.session_dir(session_id)


@dataclass
class SessionLocks:
    """One lock per session id, for callers that may overlap requests.

    A lock lives only while some caller holds or awaits it.
    """

    _locks: dict[str, asyncio.Lock] = field(default_factory=dict)
    _users: dict[str, int] = field(default_factory=dict)

    @asynccontextmanager
    async def for_session(self, session_id: str) -> AsyncIterator[None]:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        self._users[session_id] = self._users.get(session_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[session_id] -= 1
            if not self._users[session_id]:
                del self._users[session_id]
                del self._locks[session_id]

    def __len__(self) -> int:
        return len(self._locks)
