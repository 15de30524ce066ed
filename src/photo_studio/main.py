"""Command line entrypoint."""

import argparse
import asyncio
import sys
from collections.abc import Sequence
from pathlib import Path

import uvicorn

from photo_studio.adapters.file_session_repository import FileSessionRepository
from photo_studio.adapters.pillow_raster import PillowRaster
from photo_studio.api.app import create_app
from photo_studio.app_logging import configure_logging
from photo_studio.config import Settings
from photo_studio.containers import build_container
from photo_studio.domain.errors import StudioError
from photo_studio.domain.sessions import SESSION_TYPES, DetailSession
from photo_studio.services.composition import crop_to_ratio, letterbox_square
from photo_studio.services.sessions import SessionService


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="photo-studio")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)

    sessions = sub.add_parser("sessions", help="List stored sessions")
    sessions.add_argument("--type", choices=SESSION_TYPES, default=None)

    stitch = sub.add_parser("stitch", help="Stitch a detail session's sections")
    stitch.add_argument("session_id")

    thumbnail = sub.add_parser(
        "thumbnail", help="Letterbox an image onto a square canvas"
    )
    thumbnail.add_argument("source", type=Path)
    thumbnail.add_argument("output", type=Path)
    thumbnail.add_argument("--size", type=int, default=800)

    crop = sub.add_parser("crop", help="Centre crop an image to an exact size")
    crop.add_argument("source", type=Path)
    crop.add_argument("output", type=Path)
    crop.add_argument("--width", type=int, required=True)
    crop.add_argument("--height", type=int, required=True)

    return parser


def list_sessions(settings: Settings, session_type: str | None) -> int:
    service = SessionService(FileSessionRepository(settings.sessions_dir))
    for summary in asyncio.run(service.list_sessions(session_type)):
        print(
            f"{summary.session_id}\t{summary.type}\t{summary.status}\t"
            f"{summary.created_at:%Y-%m-%d %H:%M:%S}\t"
            f"{summary.result_count}/{summary.reference_count}"
        )
    return 0


async def stitch_session(settings: Settings, session_id: str) -> Path:
    container = build_container(settings)
    try:
        session = await container.session_service.get_session(
            session_id, DetailSession
        )
        return await container.detail_page_service.stitch(session)
    finally:
        await container.close_resources()


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(list(argv) if argv is not None else None)

    if args.command == "thumbnail":
        print(letterbox_square(PillowRaster(), args.source, args.output, args.size))
        return 0

    if args.command == "crop":
        try:
            output = crop_to_ratio(
                PillowRaster(), args.source, args.output, args.width, args.height
            )
        except ValueError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 2
        print(output)
        return 0

    settings = Settings()
    configure_logging(settings.log_level)

    if args.command == "serve":
        uvicorn.run(
            create_app(build_container(settings)),
            host=args.host or settings.host,
            port=args.port or settings.port,
        )
        return 0

    if args.command == "sessions":
        return list_sessions(settings, args.type)

    if args.command == "stitch":
        try:
            print(asyncio.run(stitch_session(settings, args.session_id)))
        except StudioError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 1
        return 0

    raise AssertionError(f"Unhandled command: {args.command}")


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main(sys.argv[1:]))
