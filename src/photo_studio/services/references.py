"""Shared bookkeeping for indexed references and their results."""

import base64
import binascii
import logging
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import TypeVar

from photo_studio.domain.errors import InvalidRequestError
from photo_studio.domain.models import UnitStatus, UploadedImage
from photo_studio.domain.sessions import (
    ReferenceItem,
    ResultItem,
    index_label,
    next_index,
)
from photo_studio.services.files import discard, extension_for, write_bytes

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=ReferenceItem)


def decode_upload(upload: UploadedImage) -> bytes:
    """Decode an uploaded base64 payload, rejecting malformed data."""
    try:
        data = base64.b64decode(upload.data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidRequestError(f"File {upload.name!r} is not valid base64") from exc
    if not data:
        raise InvalidRequestError(f"File {upload.name!r} is empty")
    return data


async def store_uploads(  # noqa: PLR0913
    session_dir: Path,
    refs: list[R],
    uploads: Sequence[UploadedImage],
    *,
    directory: str,
    prefix: str,
    factory: Callable[[int, str, str], R],
) -> list[R]:
    """Write uploads under ``directory`` and append them to ``refs``.

    Each upload gets the next permanent index. Every payload is decoded before
    anything touches disk, so a bad file leaves the collection unchanged.
    """
    if not uploads:
        raise InvalidRequestError("No files uploaded")
    decoded = [(upload, decode_upload(upload)) for upload in uploads]
    added: list[R] = []
    for upload, data in decoded:
        index = next_index(refs)
        relative = f"{directory}/{prefix}-{index_label(index)}"
        relative += extension_for(upload.name)
        await write_bytes(data, session_dir / relative)
        item = factory(index, upload.name, relative)
        refs.append(item)
        added.append(item)
    return added


def find_ref(refs: Sequence[R], index: int, kind: str) -> R:
    for ref in refs:
        if ref.index == index:
            return ref
    raise InvalidRequestError(f"{kind} reference {index} not found")


def pending(subjects: Sequence[R], results: Sequence[ResultItem]) -> list[R]:
    """Subjects without a result, in subject order."""
    done = {result.index for result in results}
    return [subject for subject in subjects if subject.index not in done]


def unit_statuses(
    subjects: Sequence[ReferenceItem], results: Sequence[ResultItem]
) -> list[UnitStatus]:
    """Status of every subject, generated or not."""
    by_index = {result.index: result for result in results}
    statuses = []
    for subject in subjects:
        result = by_index.get(subject.index)
        statuses.append(
            UnitStatus(
                index=subject.index,
                name=subject.name,
                generated=result is not None,
                result_path=result.path if result else None,
            )
        )
    return statuses


def upsert_result(results: list[ResultItem], item: ResultItem) -> None:
    """Replace the result with the same index, or add it in index order."""
    for position, existing in enumerate(results):
        if existing.index == item.index:
            results[position] = item
            return
    results.append(item)
    results.sort(key=lambda result: result.index)


async def remove_ref(
    session_dir: Path, refs: list[R], index: int, kind: str
) -> R:
    """Drop a reference and discard its file."""
    ref = find_ref(refs, index, kind)
    refs.remove(ref)
    await discard(session_dir / ref.path)
    logger.info("Removed %s reference %d", kind, index)
    return ref


async def remove_result(
    session_dir: Path, results: list[ResultItem], index: int
) -> None:
    """Drop the result for ``index`` if any and discard its file."""
    for existing in list(results):
        if existing.index == index:
            results.remove(existing)
            await discard(session_dir / existing.path)
