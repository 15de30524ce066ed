"""Subject-by-subject generation against a shared set of clothing references.

Retouch and clothing-detail sessions share one engine. A profile says which
kinds of reference a session holds, where files live and which prompt to use.
"""

import asyncio
import functools
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from photo_studio.domain.errors import InvalidRequestError
from photo_studio.domain.models import BatchOutcome, UnitStatus, UploadedImage
from photo_studio.domain.sessions import (
    ClothingDetailSession,
    ReferenceItem,
    ReferenceSession,
    ResultItem,
    RetouchSession,
    index_label,
)
from photo_studio.prompts import PromptOptions, clothing_detail_prompt, retouch_prompt
from photo_studio.services.composition import Raster, aspect_ratio_for, match_size
from photo_studio.services.generation import ImageRenderer
from photo_studio.services.references import (
    find_ref,
    pending,
    remove_ref,
    remove_result,
    store_uploads,
    unit_statuses,
    upsert_result,
)
from photo_studio.services.runner import run_bounded
from photo_studio.services.sessions import SessionService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineProfile:
    """Static description of one reference pipeline."""

    slug: str
    session_class: type[ReferenceSession]
    input_dir: str
    output_dir: str
    subject_kind: str
    subject_prefix: str
    subject_description: str
    prompt: Callable[[PromptOptions], str]
    material_kind: str = "clothing"
    material_prefix: str = "clothing"

    def result_path(self, index: int) -> str:
        return f"{self.output_dir}/result-{index_label(index)}.jpg"


RETOUCH = PipelineProfile(
    slug="retouch",
    session_class=RetouchSession,
    input_dir="input/retouch",
    output_dir="retouch",
    subject_kind="model",
    subject_prefix="model-ref",
    subject_description="model photo",
    prompt=retouch_prompt,
)

CLOTHING_DETAIL = PipelineProfile(
    slug="clothing-detail",
    session_class=ClothingDetailSession,
    input_dir="input/clothing-detail",
    output_dir="clothing-detail",
    subject_kind="detail",
    subject_prefix="detail-ref",
    subject_description="detail reference photo",
    prompt=clothing_detail_prompt,
)

PROFILES: dict[str, PipelineProfile] = {
    profile.slug: profile for profile in (RETOUCH, CLOTHING_DETAIL)
}


@dataclass
class ReferencePipelineService:
    """Upload, generate, regenerate and delete for one pipeline profile."""

    profile: PipelineProfile
    sessions: SessionService
    renderer: ImageRenderer
    raster: Raster
    concurrency: int
    match_reference_size: bool = False

    def statuses(self, session: ReferenceSession) -> list[UnitStatus]:
        return unit_statuses(session.subject_refs, session.results)

    def _references(
        self, session: ReferenceSession, kind: str
    ) -> tuple[list[ReferenceItem], str]:
        if kind == self.profile.subject_kind:
            return session.subject_refs, self.profile.subject_prefix
        if kind == self.profile.material_kind:
            return session.material_refs, self.profile.material_prefix
        raise InvalidRequestError(f"Unknown reference kind: {kind}")

    async def upload(
        self,
        session: ReferenceSession,
        kind: str,
        files: Sequence[UploadedImage],
    ) -> list[ReferenceItem]:
        """Append uploaded references of ``kind`` and persist the session."""
        refs, prefix = self._references(session, kind)
        added = await store_uploads(
            self.sessions.session_dir(session.session_id),
            refs,
            files,
            directory=self.profile.input_dir,
            prefix=prefix,
            factory=lambda index, name, path: ReferenceItem(
                index=index, name=name, path=path
            ),
        )
        await self.sessions.save(session)
        logger.info(
            "Session %s: stored %d %s reference(s)",
            session.session_id,
            len(added),
            kind,
        )
        return added

    def _options(
        self, session: ReferenceSession, adjustment: str | None = None
    ) -> PromptOptions:
        return PromptOptions(
            additional_notes=session.notes,
            adjustment_prompt=adjustment or "",
            clothing_count=len(session.material_refs),
        )

    async def _run_unit(
        self,
        session_dir: Path,
        subject: ReferenceItem,
        materials: Sequence[Path],
        options: PromptOptions,
    ) -> ResultItem:
        relative = self.profile.result_path(subject.index)
        source = session_dir / subject.path
        output = session_dir / relative
        aspect_ratio = None
        if self.match_reference_size:
            width, height = await asyncio.to_thread(self._dimensions, source)
            aspect_ratio = aspect_ratio_for(width, height)
        await self.renderer.render(
            self.profile.prompt(options),
            [source, *materials],
            output,
            aspect_ratio=aspect_ratio,
        )
        if self.match_reference_size:
            await asyncio.to_thread(match_size, self.raster, output, source)
        return ResultItem(index=subject.index, path=relative)

    def _dimensions(self, path: Path) -> tuple[int, int]:
        return self.raster.size(self.raster.open(path))

    def _require_materials(self, session: ReferenceSession) -> None:
        if not session.material_refs:
            raise InvalidRequestError(
                f"Upload at least one {self.profile.material_kind} photo first"
            )

    async def generate(
        self, session: ReferenceSession, notes: str | None = None
    ) -> BatchOutcome:
        """Generate a result for every subject that does not have one yet."""
        if not session.subject_refs:
            raise InvalidRequestError(
                f"Upload at least one {self.profile.subject_description} first"
            )
        self._require_materials(session)
        todo = pending(session.subject_refs, session.results)
        if not todo:
            raise InvalidRequestError(
                "Nothing pending: every "
                f"{self.profile.subject_description} already has a result"
            )
        if notes is not None:
            session.notes = notes

        session_dir = self.sessions.session_dir(session.session_id)
        materials = [session_dir / ref.path for ref in session.material_refs]
        options = self._options(session)
        logger.info(
            "Session %s: generating %d %s unit(s) with %d %s reference(s)",
            session.session_id,
            len(todo),
            self.profile.slug,
            len(materials),
            self.profile.material_kind,
        )
        tasks = [
            functools.partial(self._run_unit, session_dir, subject, materials, options)
            for subject in todo
        ]
        outcomes = await run_bounded(tasks, self.concurrency, label=self.profile.slug)
        new_results = [result for result in outcomes if result is not None]
        for result in new_results:
            upsert_result(session.results, result)
        if new_results:
            session.status = "generated"
        await self.sessions.save(session)
        return BatchOutcome(statuses=self.statuses(session), new_count=len(new_results))

    async def regenerate(
        self,
        session: ReferenceSession,
        index: int,
        adjustment: str | None = None,
    ) -> ResultItem:
        """Re-run one unit and overwrite its result in place.

        Generation errors propagate and leave the session unchanged.
        """
        subject = find_ref(session.subject_refs, index, self.profile.subject_kind)
        self._require_materials(session)
        session_dir = self.sessions.session_dir(session.session_id)
        materials = [session_dir / ref.path for ref in session.material_refs]
        result = await self._run_unit(
            session_dir, subject, materials, self._options(session, adjustment)
        )
        upsert_result(session.results, result)
        session.status = "generated"
        await self.sessions.save(session)
        return result

    async def delete_ref(
        self, session: ReferenceSession, kind: str, index: int
    ) -> None:
        """Delete a reference; deleting a subject also drops its result."""
        refs, _ = self._references(session, kind)
        session_dir = self.sessions.session_dir(session.session_id)
        await remove_ref(session_dir, refs, index, kind)
        if kind == self.profile.subject_kind:
            await remove_result(session_dir, session.results, index)
        await self.sessions.save(session)
