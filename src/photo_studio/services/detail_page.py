"""Step 2 of a detail session: per-section generation and the final stitch."""

import asyncio
import functools
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from photo_studio.domain.errors import InvalidRequestError
from photo_studio.domain.models import BatchOutcome, UnitStatus, UploadedImage
from photo_studio.domain.sessions import (
    SECTION_TYPES,
    DetailSession,
    GroupResult,
    ResultItem,
    SectionReference,
    index_label,
)
from photo_studio.prompts import PromptOptions, detail_page_prompt
from photo_studio.services.composition import Raster, stitch_vertical
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

INPUT_DIR = "input/detail-refs"
OUTPUT_DIR = "step2"
FINAL_PATH = "final/detail-page.jpg"


def section_path(index: int) -> str:
    return f"{OUTPUT_DIR}/section-{index_label(index)}.jpg"


def route_model_images(
    ref: SectionReference,
    refs: Sequence[SectionReference],
    step1_results: Sequence[GroupResult],
) -> list[str]:
    """Pick the step 1 images a section is generated from.

    ``showcase`` sections take the group matching their position among
    showcase sections (by index), ``highlight`` sections take the first group,
    anything else takes every group. A showcase section without a matching
    group falls back to every group.
    """
    every_image = [
        path for result in step1_results for path in (result.front, result.back)
    ]
    if ref.section_type == "showcase":
        showcase = sorted(
            item.index for item in refs if item.section_type == "showcase"
        )
        ordinal = showcase.index(ref.index) if ref.index in showcase else len(showcase)
        if ordinal < len(step1_results):
            result = step1_results[ordinal]
            return [result.front, result.back]
        logger.warning(
            "Showcase section %d has no matching model group (%d groups); "
            "using every model image",
            ref.index,
            len(step1_results),
        )
        return every_image
    if ref.section_type == "highlight" and step1_results:
        first = step1_results[0]
        return [first.front, first.back]
    return every_image


@dataclass
class DetailPageService:
    """Generate detail-page sections from step 1 images and stitch them."""

    sessions: SessionService
    renderer: ImageRenderer
    raster: Raster
    concurrency: int
    page_width: int

    def statuses(self, session: DetailSession) -> list[UnitStatus]:
        return unit_statuses(session.detail_refs, session.step2_results)

    async def upload_sections(
        self,
        session: DetailSession,
        files: Sequence[UploadedImage],
        section_type: str = "detail",
    ) -> list[SectionReference]:
        """Append layout references tagged with ``section_type``."""
        if section_type not in SECTION_TYPES:
            raise InvalidRequestError(f"Unknown section type: {section_type}")
        added = await store_uploads(
            self.sessions.session_dir(session.session_id),
            session.detail_refs,
            files,
            directory=INPUT_DIR,
            prefix="detail-ref",
            factory=lambda index, name, path: SectionReference(
                index=index, name=name, path=path, section_type=section_type
            ),
        )
        await self.sessions.save(session)
        return added

    def _require_model_images(self, session: DetailSession) -> None:
        if not session.step1_results:
            raise InvalidRequestError("Generate model images (step 1) first")

    async def _run_section(
        self,
        session_dir: Path,
        session: DetailSession,
        ref: SectionReference,
        options: PromptOptions,
    ) -> ResultItem:
        materials = route_model_images(ref, session.detail_refs, session.step1_results)
        relative = section_path(ref.index)
        await self.renderer.render(
            detail_page_prompt(options),
            [session_dir / ref.path, *(session_dir / path for path in materials)],
            session_dir / relative,
        )
        return ResultItem(index=ref.index, path=relative)

    async def generate(self, session: DetailSession) -> BatchOutcome:
        """Generate every section that does not have a result yet."""
        if not session.detail_refs:
            raise InvalidRequestError("Upload at least one detail page reference first")
        self._require_model_images(session)
        todo = pending(session.detail_refs, session.step2_results)
        if not todo:
            raise InvalidRequestError(
                "Nothing pending: every detail page section already has a result"
            )

        session_dir = self.sessions.session_dir(session.session_id)
        options = PromptOptions()
        logger.info(
            "Session %s: generating %d detail page section(s)",
            session.session_id,
            len(todo),
        )
        tasks = [
            functools.partial(self._run_section, session_dir, session, ref, options)
            for ref in todo
        ]
        outcomes = await run_bounded(tasks, self.concurrency, label="sections")
        new_results = [result for result in outcomes if result is not None]
        for result in new_results:
            upsert_result(session.step2_results, result)
        if new_results:
            session.status = "step2_done"
        await self.sessions.save(session)
        return BatchOutcome(statuses=self.statuses(session), new_count=len(new_results))

    async def regenerate(
        self,
        session: DetailSession,
        index: int,
        adjustment: str | None = None,
    ) -> ResultItem:
        """Re-run one section and overwrite its result in place."""
        ref = find_ref(session.detail_refs, index, "section")
        self._require_model_images(session)
        session_dir = self.sessions.session_dir(session.session_id)
        result = await self._run_section(
            session_dir,
            session,
            ref,
            PromptOptions(adjustment_prompt=adjustment or ""),
        )
        upsert_result(session.step2_results, result)
        session.status = "step2_done"
        await self.sessions.save(session)
        return result

    async def delete_section(self, session: DetailSession, index: int) -> None:
        session_dir = self.sessions.session_dir(session.session_id)
        await remove_ref(session_dir, session.detail_refs, index, "section")
        await remove_result(session_dir, session.step2_results, index)
        await self.sessions.save(session)

    async def stitch(self, session: DetailSession) -> Path:
        """Stack every section result into the final detail page.

        Every uploaded section must have a result; the output is rewritten on
        each call.
        """
        if not session.detail_refs:
            raise InvalidRequestError("Upload at least one detail page reference first")
        results = {result.index: result for result in session.step2_results}
        refs = sorted(session.detail_refs, key=lambda ref: ref.index)
        missing = [ref.index for ref in refs if ref.index not in results]
        if missing:
            labels = ", ".join(str(index) for index in missing)
            raise InvalidRequestError(f"Sections without a result: {labels}")

        session_dir = self.sessions.session_dir(session.session_id)
        paths = [session_dir / results[ref.index].path for ref in refs]
        output = session_dir / FINAL_PATH
        await asyncio.to_thread(
            stitch_vertical, self.raster, paths, self.page_width, output
        )
        session.final_path = FINAL_PATH
        session.status = "finished"
        await self.sessions.save(session)
        return output
