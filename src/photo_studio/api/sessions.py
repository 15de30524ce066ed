"""Session endpoints. Every route names its session explicitly."""

from pathlib import Path

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import FileResponse

from photo_studio.api.schemas import (
    CreateSessionRequest,
    GenerateRequest,
    ModelImageRegenerateRequest,
    ModelImageUploadRequest,
    ReferenceUploadRequest,
    RegenerateRequest,
    SectionUploadRequest,
)
from photo_studio.api.views import file_url, outcome_view, session_view
from photo_studio.containers import AppContainer
from photo_studio.domain.sessions import DEFAULT_SESSION_TYPE, DetailSession
from photo_studio.services.reference_pipeline import ReferencePipelineService

router = APIRouter(prefix="/api/sessions", tags=["sessions"])


def _container(request: Request) -> AppContainer:
    return request.app.state.container


def _pipeline(container: AppContainer, pipeline: str) -> ReferencePipelineService:
    try:
        return container.pipelines[pipeline]
    except KeyError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown pipeline: {pipeline}",
        ) from None


def resolve_session_file(base: Path, relative: str) -> Path | None:
    """Resolve ``relative`` inside ``base``; ``None`` if it escapes or is missing."""
    root = base.resolve()
    target = (root / relative).resolve()
    if not target.is_relative_to(root) or not target.is_file():
        return None
    return target


@router.post("")
async def create_session(
    body: CreateSessionRequest, request: Request
) -> dict[str, object]:
    """Create an empty session of the requested type."""
    container = _container(request)
    session = await container.session_service.new_session(body.type)
    return session_view(session)


@router.get("")
async def list_sessions(
    request: Request, type: str | None = None
) -> dict[str, object]:
    """List stored sessions, newest first."""
    container = _container(request)
    summaries = await container.session_service.list_sessions(type)
    return {
        "sessions": [
            {
                "session_id": summary.session_id,
                "type": summary.type,
                "status": summary.status,
                "created_at": summary.created_at.isoformat(),
                "updated_at": summary.updated_at.isoformat(),
                "reference_count": summary.reference_count,
                "result_count": summary.result_count,
            }
            for summary in summaries
        ]
    }


@router.get("/latest")
async def latest_session(
    request: Request, type: str = DEFAULT_SESSION_TYPE
) -> dict[str, object]:
    """Return the most recently created session of a type."""
    container = _container(request)
    session = await container.session_service.latest_session(type)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No {type} session found",
        )
    return session_view(session)


@router.get("/{session_id}")
async def restore_session(session_id: str, request: Request) -> dict[str, object]:
    """Return the full status view of a stored session."""
    container = _container(request)
    session = await container.session_service.get_session(session_id)
    return session_view(session)


@router.delete("/{session_id}")
async def delete_session(session_id: str, request: Request) -> dict[str, object]:
    """Delete a session and every file it owns."""
    container = _container(request)
    async with container.session_locks.for_session(session_id):
        await container.session_service.delete_session(session_id)
    return {"deleted": session_id}


@router.get("/{session_id}/files/{file_path:path}")
async def session_file(
    session_id: str, file_path: str, request: Request
) -> FileResponse:
    """Serve a file from inside the session directory."""
    container = _container(request)
    target = resolve_session_file(
        container.session_service.session_dir(session_id), file_path
    )
    if target is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return FileResponse(target)


@router.post("/{session_id}/model-images/upload")
async def upload_model_image(
    session_id: str, body: ModelImageUploadRequest, request: Request
) -> dict[str, object]:
    container = _container(request)
    async with container.session_locks.for_session(session_id):
        session = await container.session_service.get_session(
            session_id, DetailSession
        )
        await container.model_image_service.upload(
            session,
            body.kind,
            body.file.to_upload(),
            group_id=body.group_id,
            label=body.label,
        )
    return session_view(session)


@router.post("/{session_id}/model-images/generate")
async def generate_model_images(
    session_id: str, body: GenerateRequest, request: Request
) -> dict[str, object]:
    """Generate front/back model images for every pending clothes group."""
    container = _container(request)
    async with container.session_locks.for_session(session_id):
        session = await container.session_service.get_session(
            session_id, DetailSession
        )
        outcome = await container.model_image_service.generate(session, body.notes)
    return outcome_view(session, outcome)


@router.post("/{session_id}/model-images/regenerate")
async def regenerate_model_images(
    session_id: str, body: ModelImageRegenerateRequest, request: Request
) -> dict[str, object]:
    container = _container(request)
    async with container.session_locks.for_session(session_id):
        session = await container.session_service.get_session(
            session_id, DetailSession
        )
        result = await container.model_image_service.regenerate(
            session, body.group_id, side=body.side, adjustment=body.adjustment
        )
    view = session_view(session)
    view["regenerated"] = {
        "group_id": result.group_id,
        "front_url": file_url(session_id, result.front),
        "back_url": file_url(session_id, result.back),
    }
    return view


@router.delete("/{session_id}/model-images/groups/{group_id}")
async def delete_clothes_group(
    session_id: str, group_id: str, request: Request
) -> dict[str, object]:
    container = _container(request)
    async with container.session_locks.for_session(session_id):
        session = await container.session_service.get_session(
            session_id, DetailSession
        )
        await container.model_image_service.delete_group(session, group_id)
    return session_view(session)


@router.post("/{session_id}/sections/upload")
async def upload_sections(
    session_id: str, body: SectionUploadRequest, request: Request
) -> dict[str, object]:
    container = _container(request)
    async with container.session_locks.for_session(session_id):
        session = await container.session_service.get_session(
            session_id, DetailSession
        )
        await container.detail_page_service.upload_sections(
            session,
            [file.to_upload() for file in body.files],
            section_type=body.section_type,
        )
    return session_view(session)


@router.post("/{session_id}/sections/generate")
async def generate_sections(session_id: str, request: Request) -> dict[str, object]:
    container = _container(request)
    async with container.session_locks.for_session(session_id):
        session = await container.session_service.get_session(
            session_id, DetailSession
        )
        outcome = await container.detail_page_service.generate(session)
    return outcome_view(session, outcome)


@router.post("/{session_id}/sections/regenerate")
async def regenerate_section(
    session_id: str, body: RegenerateRequest, request: Request
) -> dict[str, object]:
    container = _container(request)
    async with container.session_locks.for_session(session_id):
        session = await container.session_service.get_session(
            session_id, DetailSession
        )
        await container.detail_page_service.regenerate(
            session, body.index, adjustment=body.adjustment
        )
    return session_view(session)


@router.post("/{session_id}/sections/stitch")
async def stitch_sections(session_id: str, request: Request) -> dict[str, object]:
    """Stitch every section into the final detail page."""
    container = _container(request)
    async with container.session_locks.for_session(session_id):
        session = await container.session_service.get_session(
            session_id, DetailSession
        )
        await container.detail_page_service.stitch(session)
    return session_view(session)


@router.delete("/{session_id}/sections/{index}")
async def delete_section(
    session_id: str, index: int, request: Request
) -> dict[str, object]:
    container = _container(request)
    async with container.session_locks.for_session(session_id):
        session = await container.session_service.get_session(
            session_id, DetailSession
        )
        await container.detail_page_service.delete_section(session, index)
    return session_view(session)


@router.post("/{session_id}/{pipeline}/upload")
async def upload_references(
    session_id: str, pipeline: str, body: ReferenceUploadRequest, request: Request
) -> dict[str, object]:
    """Upload subject or material references for a retouch-style pipeline."""
    container = _container(request)
    service = _pipeline(container, pipeline)
    async with container.session_locks.for_session(session_id):
        session = await container.session_service.get_session(
            session_id, service.profile.session_class
        )
        await service.upload(
            session, body.kind, [file.to_upload() for file in body.files]
        )
    return session_view(session)


@router.post("/{session_id}/{pipeline}/generate")
async def generate_references(
    session_id: str, pipeline: str, body: GenerateRequest, request: Request
) -> dict[str, object]:
    """Generate results for every subject reference that lacks one."""
    container = _container(request)
    service = _pipeline(container, pipeline)
    async with container.session_locks.for_session(session_id):
        session = await container.session_service.get_session(
            session_id, service.profile.session_class
        )
        outcome = await service.generate(session, body.notes)
    return outcome_view(session, outcome)


@router.post("/{session_id}/{pipeline}/regenerate")
async def regenerate_reference(
    session_id: str, pipeline: str, body: RegenerateRequest, request: Request
) -> dict[str, object]:
    container = _container(request)
    service = _pipeline(container, pipeline)
    async with container.session_locks.for_session(session_id):
        session = await container.session_service.get_session(
            session_id, service.profile.session_class
        )
        await service.regenerate(session, body.index, adjustment=body.adjustment)
    return session_view(session)


@router.delete("/{session_id}/{pipeline}/{kind}/{index}")
async def delete_reference(
    session_id: str, pipeline: str, kind: str, index: int, request: Request
) -> dict[str, object]:
    container = _container(request)
    service = _pipeline(container, pipeline)
    async with container.session_locks.for_session(session_id):
        session = await container.session_service.get_session(
            session_id, service.profile.session_class
        )
        await service.delete_ref(session, kind, index)
    return session_view(session)

