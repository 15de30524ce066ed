"""Whole-file byte I/O helpers for session storage."""

import base64
import logging
from pathlib import Path

import aiofiles
import aiofiles.os

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".webp"})

_MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
}


def mime_type_for(path: Path | str) -> str:
    """Return the MIME type for common image extensions, defaulting to JPEG."""
    return _MIME_TYPES.get(Path(path).suffix.lower(), "image/jpeg")


def extension_for(name: str) -> str:
    """Lower-cased extension of an uploaded file name, ``.jpg`` when absent."""
    return Path(name).suffix.lower() or ".jpg"


async def read_bytes(path: Path) -> bytes:
    async with aiofiles.open(path, "rb") as handle:
        return await handle.read()


async def write_bytes(data: bytes, path: Path) -> Path:
    """Write ``data`` to ``path``, creating parent directories."""
    await aiofiles.os.makedirs(path.parent, exist_ok=True)
    async with aiofiles.open(path, "wb") as handle:
        await handle.write(data)
    return path


async def read_base64(path: Path) -> str:
    data = await read_bytes(path)
    return base64.b64encode(data).decode("ascii")


async def write_base64(encoded: str, path: Path) -> Path:
    """Decode a base64 payload and write it to ``path``."""
    return await write_bytes(base64.b64decode(encoded), path)


async def discard(path: Path) -> None:
    """Delete a file as advisory cleanup.

    Callers have already dropped the record pointing at the file, so a missing
    or undeletable file is logged and otherwise ignored.
    """
    try:
        await aiofiles.os.remove(path)
    except OSError as exc:
        logger.debug("Could not remove %s: %s", path, exc)


def list_images(directory: Path) -> list[Path]:
    """Image files in ``directory`` sorted by name; empty if it is missing."""
    if not directory.is_dir():
        return []
    return sorted(
        entry
        for entry in directory.iterdir()
        if entry.is_file() and entry.suffix.lower() in IMAGE_EXTENSIONS
    )
