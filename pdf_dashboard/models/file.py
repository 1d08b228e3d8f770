from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class StorageEntry(BaseModel):
    """One record as reported by a storage backend listing."""

    model_config = ConfigDict(extra="ignore")

    name: str
    id: str | None = None
    created_at: datetime | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class UploadResult(BaseModel):
    id: str | None = None
    path: str


class StoredFile(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    url: str
    uploaded_at: datetime = Field(alias="uploadedAt")
    size: int = 0


class UploadedFile(StoredFile):
    original_name: str = Field(alias="originalName")
    path: str
    original_mime_type: str = Field(alias="originalMimeType")


class FileListing(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    files: list[StoredFile]
    bucket: str
    total_files: int = Field(alias="totalFiles")
    pdf_count: int = Field(alias="pdfCount")


class FileResponse(BaseModel):
    file: StoredFile


class UploadResponse(BaseModel):
    success: bool = True
    file: UploadedFile
    message: str = "File uploaded successfully"


class FileRef(BaseModel):
    id: str
    name: str


class FileDiagnosis(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    searching_for: str = Field(alias="searchingFor")
    found: bool
    matched_file: StoredFile | None = Field(default=None, alias="matchedFile")
    all_files: list[FileRef] = Field(alias="allFiles")
    total_files: int = Field(alias="totalFiles")
