"""Request bodies accepted by the HTTP API."""

from pydantic import BaseModel, Field

from photo_studio.domain.models import UploadedImage
from photo_studio.domain.sessions import DEFAULT_SESSION_TYPE


class FilePayload(BaseModel):
    """One uploaded file with base64 content."""

    name: str
    data: str

    def to_upload(self) -> UploadedImage:
        return UploadedImage(name=self.name, data=self.data)


class CreateSessionRequest(BaseModel):
    type: str = DEFAULT_SESSION_TYPE


class GenerateRequest(BaseModel):
    notes: str | None = None


class ModelImageUploadRequest(BaseModel):
    kind: str
    file: FilePayload
    group_id: str | None = None
    label: str | None = None


class ModelImageRegenerateRequest(BaseModel):
    group_id: str
    side: str | None = None
    adjustment: str | None = None


class SectionUploadRequest(BaseModel):
    files: list[FilePayload] = Field(min_length=1)
    section_type: str = "detail"


class ReferenceUploadRequest(BaseModel):
    kind: str
    files: list[FilePayload] = Field(min_length=1)


class RegenerateRequest(BaseModel):
    index: int
    adjustment: str | None = None
