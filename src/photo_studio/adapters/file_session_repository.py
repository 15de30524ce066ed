"""Filesystem-backed session repository."""

import asyncio
import json
import logging
import re
import secrets
import shutil
import time
from dataclasses import dataclass
from pathlib import Path

import aiofiles
import aiofiles.os
from pydantic import ValidationError

from photo_studio.domain.errors import SessionCorruptedError, SessionNotFoundError
from photo_studio.domain.models import SessionSummary
from photo_studio.domain.sessions import (
    DetailSession,
    Session,
    new_session,
    parse_session,
    utc_now,
)
from photo_studio.services.sessions import SessionRepository

logger = logging.getLogger(__name__)

META_FILE = "meta.json"

_SESSION_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")

_DIRECTORY_LAYOUTS: dict[str, tuple[str, ...]] = {
    "detail": (
        "input/model",
        "input/clothes",
        "input/detail-refs",
        "step1",
        "step2",
        "final",
    ),
    "retouch": ("input/retouch", "retouch"),
    "clothingDetail": ("input/clothing-detail", "clothing-detail"),
}


def new_session_id() -> str:
    """Time-ordered, filesystem-safe session id."""
    return f"{time.time_ns() // 1_000_000}-{secrets.token_hex(4)}"


@dataclass
class FileSessionRepository(SessionRepository):
    """Stores each session as ``<root>/<session_id>/meta.json`` plus its files."""

    root: Path

    def session_dir(self, session_id: str) -> Path:
        """Join the storage root and a session id."""
        if not _SESSION_ID_PATTERN.fullmatch(session_id):
            raise SessionNotFoundError(f"Invalid session id: {session_id!r}")
        return self.root / session_id

    def _meta_path(self, session_id: str) -> Path:
        return self.session_dir(session_id) / META_FILE

    async def create_session(self, session_type: str) -> Session:
        """Create the directory skeleton and persist an empty session."""
        session = new_session(session_type, new_session_id())
        base = self.session_dir(session.session_id)
        for relative in _DIRECTORY_LAYOUTS[session_type]:
            await aiofiles.os.makedirs(base / relative, exist_ok=True)
        await self.save_session(session)
        return session

    async def save_session(self, session: Session) -> None:
        """Stamp ``updated_at`` and write the full document."""
        session.updated_at = utc_now()
        path = self._meta_path(session.session_id)
        await aiofiles.os.makedirs(path.parent, exist_ok=True)
        async with aiofiles.open(path, "w", encoding="utf-8") as handle:
            await handle.write(session.model_dump_json(indent=2))

    async def load_session(self, session_id: str) -> Session:
        """Read and validate ``meta.json`` for a session."""
        path = self._meta_path(session_id)
        try:
            async with aiofiles.open(path, "rb") as handle:
                raw = await handle.read()
        except FileNotFoundError:
            raise SessionNotFoundError(f"Session not found: {session_id}") from None
        try:
            return parse_session(json.loads(raw.decode("utf-8")))
        except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as exc:
            raise SessionCorruptedError(
                f"Session metadata is unreadable: {session_id}"
            ) from exc

    async def list_sessions(
        self, session_type: str | None = None
    ) -> list[SessionSummary]:
        """Summaries of every loadable session, newest first."""
        if not self.root.is_dir():
            return []
        summaries: list[SessionSummary] = []
        for entry in self.root.iterdir():
            if not entry.is_dir():
                continue
            try:
                session = await self.load_session(entry.name)
            except (SessionNotFoundError, OSError):
                logger.debug("Skipping unreadable session directory %s", entry)
                continue
            if session_type and session.type != session_type:
                continue
            summaries.append(_summarize(session))
        summaries.sort(key=lambda summary: summary.created_at, reverse=True)
        return summaries

    async def delete_session(self, session_id: str) -> None:
        """Remove the whole session tree; a missing tree is fine."""
        base = self.session_dir(session_id)
        if await aiofiles.os.path.isdir(base):
            await asyncio.to_thread(shutil.rmtree, base)


def _summarize(session: Session) -> SessionSummary:
    if isinstance(session, DetailSession):
        reference_count = len(session.clothes_groups) + len(session.detail_refs)
        result_count = len(session.step1_results) + len(session.step2_results)
    else:
        reference_count = len(session.subject_refs) + len(session.material_refs)
        result_count = len(session.results)
    return SessionSummary(
        session_id=session.session_id,
        type=session.type,
        status=session.status,
        created_at=session.created_at,
        updated_at=session.updated_at,
        reference_count=reference_count,
        result_count=result_count,
    )
