"""JSON views of sessions and batch outcomes."""

from dataclasses import asdict

from photo_studio.domain.models import BatchOutcome, GroupStatus, UnitStatus
from photo_studio.domain.sessions import (
    DetailSession,
    ReferenceItem,
    ReferenceSession,
    Session,
    UploadedFile,
)
from photo_studio.services.model_images import group_statuses
from photo_studio.services.references import unit_statuses


def file_url(session_id: str, relative: str | None) -> str | None:
    if relative is None:
        return None
    return f"/api/sessions/{session_id}/files/{relative}"


def _uploaded(
    session_id: str, uploaded: UploadedFile | None
) -> dict[str, object] | None:
    if uploaded is None:
        return None
    return {"name": uploaded.name, "url": file_url(session_id, uploaded.path)}


def _reference(session_id: str, ref: ReferenceItem) -> dict[str, object]:
    view = ref.model_dump(exclude={"path"})
    view["url"] = file_url(session_id, ref.path)
    return view


def _unit(session_id: str, status: UnitStatus) -> dict[str, object]:
    return {
        "index": status.index,
        "name": status.name,
        "generated": status.generated,
        "url": file_url(session_id, status.result_path),
    }


def _group(session_id: str, status: GroupStatus) -> dict[str, object]:
    view = asdict(status)
    view["front_url"] = file_url(session_id, view.pop("front_path"))
    view["back_url"] = file_url(session_id, view.pop("back_path"))
    return view


def _detail_view(session: DetailSession) -> dict[str, object]:
    session_id = session.session_id
    return {
        "model_front": _uploaded(session_id, session.model_front),
        "model_back": _uploaded(session_id, session.model_back),
        "additional_notes": session.additional_notes,
        "clothes_groups": [
            _group(session_id, status) for status in group_statuses(session)
        ],
        "detail_refs": [_reference(session_id, ref) for ref in session.detail_refs],
        "sections": [
            _unit(session_id, status)
            for status in unit_statuses(session.detail_refs, session.step2_results)
        ],
        "final_url": file_url(session_id, session.final_path),
    }


def _reference_view(session: ReferenceSession) -> dict[str, object]:
    session_id = session.session_id
    return {
        "notes": session.notes,
        "subject_refs": [_reference(session_id, ref) for ref in session.subject_refs],
        "material_refs": [
            _reference(session_id, ref) for ref in session.material_refs
        ],
        "results": [
            _unit(session_id, status)
            for status in unit_statuses(session.subject_refs, session.results)
        ],
    }


def session_view(session: Session) -> dict[str, object]:
    """Complete status view of a session."""
    view: dict[str, object] = {
        "session_id": session.session_id,
        "type": session.type,
        "status": session.status,
        "created_at": session.created_at.isoformat(),
        "updated_at": session.updated_at.isoformat(),
    }
    if isinstance(session, DetailSession):
        view.update(_detail_view(session))
    else:
        view.update(_reference_view(session))
    return view


def outcome_view(session: Session, outcome: BatchOutcome) -> dict[str, object]:
    view = session_view(session)
    view["new_count"] = outcome.new_count
    return view
