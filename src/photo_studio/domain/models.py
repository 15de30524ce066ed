"""Value objects passed between the HTTP layer and the services."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class UploadedImage:
    """An image received from a caller, base64 encoded."""

    name: str
    data: str


@dataclass(frozen=True)
class UnitStatus:
    """Whether one subject reference has a generated result."""

    index: int
    name: str
    generated: bool
    result_path: str | None = None


@dataclass(frozen=True)
class GroupStatus:
    """Whether one clothes group has generated front/back model images."""

    group_id: str
    label: str
    complete: bool
    generated: bool
    front_path: str | None = None
    back_path: str | None = None


@dataclass(frozen=True)
class BatchOutcome:
    """Full status view after a generate batch."""

    statuses: list[UnitStatus] | list[GroupStatus]
    new_count: int


@dataclass(frozen=True)
class SessionSummary:
    """Listing entry for a stored session."""

    session_id: str
    type: str
    status: str
    created_at: datetime
    updated_at: datetime
    reference_count: int
    result_count: int
