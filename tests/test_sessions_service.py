"""Tests for the session service and per-session locks."""

import asyncio
from datetime import UTC, datetime

import pytest

from photo_studio.containers import AppContainer
from photo_studio.domain.errors import InvalidRequestError
from photo_studio.domain.sessions import DetailSession, RetouchSession
from photo_studio.services.sessions import SessionLocks


def test_new_session_rejects_unknown_type(container: AppContainer) -> None:
    with pytest.raises(InvalidRequestError, match="Unknown session type"):
        asyncio.run(container.session_service.new_session("collage"))


def test_get_session_checks_variant(container: AppContainer) -> None:
    service = container.session_service
    session = asyncio.run(service.new_session("retouch"))

    restored = asyncio.run(service.get_session(session.session_id, RetouchSession))

    assert restored == session
    with pytest.raises(InvalidRequestError, match="is a retouch session"):
        asyncio.run(service.get_session(session.session_id, DetailSession))


def test_latest_session_by_type(container: AppContainer) -> None:
    service = container.session_service
    assert asyncio.run(service.latest_session("detail")) is None

    older = asyncio.run(service.new_session("detail"))
    older.created_at = datetime(2024, 1, 1, tzinfo=UTC)
    asyncio.run(service.save(older))
    newer = asyncio.run(service.new_session("detail"))
    asyncio.run(service.new_session("retouch"))

    latest = asyncio.run(service.latest_session("detail"))

    assert latest is not None
    assert latest.session_id == newer.session_id


def test_session_locks_are_dropped_when_idle() -> None:
    locks = SessionLocks()
    sizes: list[int] = []

    async def run() -> None:
        async with locks.for_session("a"):
            sizes.append(len(locks))
            async with locks.for_session("b"):
                sizes.append(len(locks))
        sizes.append(len(locks))

    asyncio.run(run())

    assert sizes == [1, 2, 0]


def test_session_lock_is_released_on_error() -> None:
    locks = SessionLocks()

    async def run() -> None:
        async with locks.for_session("a"):
            raise InvalidRequestError("nothing to do")

    with pytest.raises(InvalidRequestError):
        asyncio.run(run())

    assert len(locks) == 0


def test_session_lock_serialises_callers() -> None:
    locks = SessionLocks()
    events: list[str] = []

    async def work(name: str) -> None:
        async with locks.for_session("shared"):
            events.append(f"{name}-start")
            await asyncio.sleep(0.001)
            events.append(f"{name}-end")

    async def run() -> None:
        await asyncio.gather(work("one"), work("two"))

    asyncio.run(run())

    assert events == ["one-start", "one-end", "two-start", "two-end"]
    assert len(locks) == 0
