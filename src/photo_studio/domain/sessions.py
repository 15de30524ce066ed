"""Domain models for production sessions.

A session is persisted as a single JSON document. The ``type`` field selects
one of three variants, each owned by a different orchestrator. Every path
stored on a session is relative to that session's directory.
"""

from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Annotated, Literal

from pydantic import BaseModel, Field, TypeAdapter, field_validator

SessionType = Literal["detail", "retouch", "clothingDetail"]
SESSION_TYPES: tuple[str, ...] = ("detail", "retouch", "clothingDetail")
DEFAULT_SESSION_TYPE = "detail"

SECTION_TYPES: tuple[str, ...] = ("detail", "showcase", "highlight")


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


class UploadedFile(BaseModel):
    """A single uploaded file without an index."""

    name: str
    path: str


class ReferenceItem(BaseModel):
    """Uploaded input image with a permanent index."""

    index: int
    name: str
    path: str


class SectionReference(ReferenceItem):
    """Detail-page layout template; ``section_type`` drives material routing."""

    section_type: str = "detail"


class ResultItem(BaseModel):
    """Output of one successful unit of work, keyed by its subject index."""

    index: int
    path: str


class ClothesGroup(BaseModel):
    """Flat-lay front/back pair for one garment colourway."""

    group_id: str
    label: str
    front_name: str | None = None
    front_path: str | None = None
    back_name: str | None = None
    back_path: str | None = None

    @property
    def is_complete(self) -> bool:
        return bool(self.front_path and self.back_path)


class GroupResult(BaseModel):
    """Generated front/back model images for one clothes group."""

    group_id: str
    front: str
    back: str


class SessionBase(BaseModel):
    session_id: str
    status: str = "uploading"
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("created_at", "updated_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        """Naive timestamps from hand-edited documents are read as UTC."""
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


class DetailSession(SessionBase):
    """Model images (step 1), detail-page sections (step 2) and the stitch."""

    type: Literal["detail"] = "detail"
    model_front: UploadedFile | None = None
    model_back: UploadedFile | None = None
    clothes_groups: list[ClothesGroup] = Field(default_factory=list)
    additional_notes: str = ""
    step1_results: list[GroupResult] = Field(default_factory=list)
    detail_refs: list[SectionReference] = Field(default_factory=list)
    step2_results: list[ResultItem] = Field(default_factory=list)
    final_path: str | None = None


class ReferenceSession(SessionBase):
    """Subjects each drive one unit; materials are shared by every unit."""

    subject_refs: list[ReferenceItem] = Field(default_factory=list)
    material_refs: list[ReferenceItem] = Field(default_factory=list)
    results: list[ResultItem] = Field(default_factory=list)
    notes: str = ""


class RetouchSession(ReferenceSession):
    """Model photos re-dressed in garments taken from real-world photos."""

    type: Literal["retouch"] = "retouch"


class ClothingDetailSession(ReferenceSession):
    """Detail close-ups with the fabric swapped for a new garment."""

    type: Literal["clothingDetail"] = "clothingDetail"


Session = Annotated[
    DetailSession | RetouchSession | ClothingDetailSession,
    Field(discriminator="type"),
]

SESSION_ADAPTER: TypeAdapter[Session] = TypeAdapter(Session)

_SESSION_CLASSES: dict[str, type[SessionBase]] = {
    "detail": DetailSession,
    "retouch": RetouchSession,
    "clothingDetail": ClothingDetailSession,
}


def new_session(session_type: str, session_id: str) -> Session:
    """Build an empty session of the given type."""
    try:
        session_class = _SESSION_CLASSES[session_type]
    except KeyError:
        raise ValueError(f"Unknown session type: {session_type}") from None
    return session_class(session_id=session_id)  # type: ignore[return-value]


def parse_session(payload: object) -> Session:
    """Validate a raw metadata document; untyped documents are detail sessions."""
    if isinstance(payload, dict) and "type" not in payload:
        payload = {**payload, "type": DEFAULT_SESSION_TYPE}
    return SESSION_ADAPTER.validate_python(payload)


def next_index(refs: Sequence[ReferenceItem]) -> int:
    """Return the next permanent index for a reference collection."""
    return max((ref.index for ref in refs), default=-1) + 1


def index_label(index: int) -> str:
    """Human-facing, 1-based, zero padded label used in file names."""
    return f"{index + 1:02d}"
