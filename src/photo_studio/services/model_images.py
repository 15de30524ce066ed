"""Step 1 of a detail session: front/back model images per clothes group."""

import functools
import logging
import re
from dataclasses import dataclass
from pathlib import Path

from photo_studio.domain.errors import InvalidRequestError
from photo_studio.domain.models import BatchOutcome, GroupStatus, UploadedImage
from photo_studio.domain.sessions import (
    ClothesGroup,
    DetailSession,
    GroupResult,
    UploadedFile,
)
from photo_studio.prompts import PromptOptions, back_prompt, front_prompt
from photo_studio.services.files import discard, extension_for, write_bytes
from photo_studio.services.generation import ImageRenderer
from photo_studio.services.poses import PoseLibrary
from photo_studio.services.references import decode_upload
from photo_studio.services.runner import run_bounded
from photo_studio.services.sessions import SessionService

logger = logging.getLogger(__name__)

MODEL_DIR = "input/model"
CLOTHES_DIR = "input/clothes"
OUTPUT_DIR = "step1"

UPLOAD_KINDS = ("model_front", "model_back", "group_front", "group_back")
SIDES = ("front", "back")

_GROUP_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


def output_path(group_id: str, side: str) -> str:
    return f"{OUTPUT_DIR}/{group_id}-{side}.jpg"


def find_group(session: DetailSession, group_id: str) -> ClothesGroup:
    for group in session.clothes_groups:
        if group.group_id == group_id:
            return group
    raise InvalidRequestError(f"Clothes group {group_id!r} not found")


def find_group_result(session: DetailSession, group_id: str) -> GroupResult | None:
    for result in session.step1_results:
        if result.group_id == group_id:
            return result
    return None


def group_statuses(session: DetailSession) -> list[GroupStatus]:
    statuses = []
    for group in session.clothes_groups:
        result = find_group_result(session, group.group_id)
        statuses.append(
            GroupStatus(
                group_id=group.group_id,
                label=group.label,
                complete=group.is_complete,
                generated=result is not None,
                front_path=result.front if result else None,
                back_path=result.back if result else None,
            )
        )
    return statuses


@dataclass
class ModelImageService:
    """Dress the model in each clothes group, front and back."""

    sessions: SessionService
    renderer: ImageRenderer
    poses: PoseLibrary
    concurrency: int

    async def upload(
        self,
        session: DetailSession,
        kind: str,
        file: UploadedImage,
        group_id: str | None = None,
        label: str | None = None,
    ) -> None:
        """Store a model photo or one side of a clothes group.

        Model photos and group sides are replaced in place on re-upload.
        """
        if kind not in UPLOAD_KINDS:
            raise InvalidRequestError(f"Unknown upload kind: {kind}")
        data = decode_upload(file)
        session_dir = self.sessions.session_dir(session.session_id)
        extension = extension_for(file.name)

        if kind in ("model_front", "model_back"):
            side = kind.removeprefix("model_")
            relative = f"{MODEL_DIR}/{side}{extension}"
            previous = getattr(session, kind)
            await write_bytes(data, session_dir / relative)
            if previous is not None and previous.path != relative:
                await discard(session_dir / previous.path)
            setattr(session, kind, UploadedFile(name=file.name, path=relative))
        else:
            if not group_id or not _GROUP_ID_PATTERN.fullmatch(group_id):
                raise InvalidRequestError(f"Invalid clothes group id: {group_id!r}")
            side = kind.removeprefix("group_")
            relative = f"{CLOTHES_DIR}/{group_id}-{side}{extension}"
            group = self._group_for_upload(session, group_id, label)
            previous = getattr(group, f"{side}_path")
            await write_bytes(data, session_dir / relative)
            if previous is not None and previous != relative:
                await discard(session_dir / previous)
            setattr(group, f"{side}_name", file.name)
            setattr(group, f"{side}_path", relative)

        await self.sessions.save(session)
        logger.info("Session %s: stored %s upload", session.session_id, kind)

    @staticmethod
    def _group_for_upload(
        session: DetailSession, group_id: str, label: str | None
    ) -> ClothesGroup:
        for group in session.clothes_groups:
            if group.group_id == group_id:
                if label:
                    group.label = label
                return group
        group = ClothesGroup(group_id=group_id, label=label or group_id)
        session.clothes_groups.append(group)
        return group

    def _require_model_photos(self, session: DetailSession) -> tuple[str, str]:
        if session.model_front is None or session.model_back is None:
            raise InvalidRequestError("Upload both model front and back photos first")
        return session.model_front.path, session.model_back.path

    async def _render_side(  # noqa: PLR0913
        self,
        session_dir: Path,
        side: str,
        model_path: str,
        clothes_path: str,
        group_id: str,
        options: PromptOptions,
    ) -> str:
        prompt = front_prompt(options) if side == "front" else back_prompt(options)
        relative = output_path(group_id, side)
        await self.renderer.render(
            prompt,
            [
                session_dir / model_path,
                session_dir / clothes_path,
                self.poses.random_pose(),
            ],
            session_dir / relative,
        )
        return relative

    async def _run_group(
        self,
        session_dir: Path,
        model_paths: tuple[str, str],
        group: ClothesGroup,
        options: PromptOptions,
    ) -> GroupResult:
        model_front, model_back = model_paths
        front = await self._render_side(
            session_dir, "front", model_front, group.front_path, group.group_id, options
        )
        back = await self._render_side(
            session_dir, "back", model_back, group.back_path, group.group_id, options
        )
        return GroupResult(group_id=group.group_id, front=front, back=back)

    @staticmethod
    def _store_result(session: DetailSession, result: GroupResult) -> None:
        results = [
            existing
            for existing in session.step1_results
            if existing.group_id != result.group_id
        ]
        results.append(result)
        order = {
            group.group_id: position
            for position, group in enumerate(session.clothes_groups)
        }
        results.sort(key=lambda item: order.get(item.group_id, len(order)))
        session.step1_results = results

    async def generate(
        self, session: DetailSession, notes: str | None = None
    ) -> BatchOutcome:
        """Generate model images for every complete group without a result."""
        model_paths = self._require_model_photos(session)
        complete = [group for group in session.clothes_groups if group.is_complete]
        if not complete:
            raise InvalidRequestError(
                "Upload at least one complete clothes group (front and back) first"
            )
        todo = [
            group
            for group in complete
            if find_group_result(session, group.group_id) is None
        ]
        if not todo:
            raise InvalidRequestError(
                "Nothing pending: every complete clothes group already has images"
            )
        if notes is not None:
            session.additional_notes = notes

        session_dir = self.sessions.session_dir(session.session_id)
        options = PromptOptions(additional_notes=session.additional_notes)
        logger.info(
            "Session %s: generating model images for %d group(s)",
            session.session_id,
            len(todo),
        )
        tasks = [
            functools.partial(self._run_group, session_dir, model_paths, group, options)
            for group in todo
        ]
        outcomes = await run_bounded(tasks, self.concurrency, label="model-images")
        new_results = [result for result in outcomes if result is not None]
        for result in new_results:
            self._store_result(session, result)
        if new_results:
            session.status = "step1_done"
        await self.sessions.save(session)
        return BatchOutcome(
            statuses=group_statuses(session), new_count=len(new_results)
        )

    async def regenerate(
        self,
        session: DetailSession,
        group_id: str,
        side: str | None = None,
        adjustment: str | None = None,
    ) -> GroupResult:
        """Re-run one group, or only one side of an existing result."""
        group = find_group(session, group_id)
        if side is not None and side not in SIDES:
            raise InvalidRequestError(f"Unknown side: {side}")
        model_paths = self._require_model_photos(session)
        if not group.is_complete:
            raise InvalidRequestError(f"Clothes group {group_id!r} is incomplete")
        existing = find_group_result(session, group_id)
        if side is not None and existing is None:
            raise InvalidRequestError(
                f"Clothes group {group_id!r} has no images to regenerate yet"
            )

        session_dir = self.sessions.session_dir(session.session_id)
        options = PromptOptions(
            additional_notes=session.additional_notes,
            adjustment_prompt=adjustment or "",
        )
        if side is None:
            result = await self._run_group(session_dir, model_paths, group, options)
        else:
            model_path = model_paths[SIDES.index(side)]
            clothes_path = getattr(group, f"{side}_path")
            rendered = await self._render_side(
                session_dir, side, model_path, clothes_path, group_id, options
            )
            result = existing.model_copy(update={side: rendered})
        self._store_result(session, result)
        session.status = "step1_done"
        await self.sessions.save(session)
        return result

    async def delete_group(self, session: DetailSession, group_id: str) -> None:
        """Remove a group, its result and their files."""
        group = find_group(session, group_id)
        session_dir = self.sessions.session_dir(session.session_id)
        session.clothes_groups.remove(group)
        for path in (group.front_path, group.back_path):
            if path:
                await discard(session_dir / path)
        result = find_group_result(session, group_id)
        if result is not None:
            session.step1_results.remove(result)
            await discard(session_dir / result.front)
            await discard(session_dir / result.back)
        await self.sessions.save(session)
        logger.info(
            "Session %s: removed clothes group %s", session.session_id, group_id
        )
