from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

ALLOWED_CONTENT_TYPES = (
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
)
MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MiB


class CVRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    owner_id: str = Field(serialization_alias="ownerId")
    file_name: str = Field(serialization_alias="fileName")
    file_path: str = Field(serialization_alias="filePath")
    file_size: Optional[int] = Field(default=None, serialization_alias="fileSizeBytes")
    content_type: Optional[str] = Field(default=None, serialization_alias="contentType")
    uploaded_at: datetime = Field(serialization_alias="uploadedAt")

    @classmethod
    def from_doc(cls, doc: dict) -> "CVRecord":
        return cls(
            id=str(doc["_id"]),
            owner_id=str(doc["user_id"]),
            file_name=doc["file_name"],
            file_path=doc["file_path"],
            file_size=doc.get("file_size"),
            content_type=doc.get("content_type"),
            uploaded_at=doc["uploaded_at"],
        )


class IncomingFile(BaseModel):
    file_name: str
    content_type: Optional[str] = None
    data: bytes


class UploadOutcome(BaseModel):
    file_name: str = Field(serialization_alias="fileName")
    status: Literal["uploaded", "rejected", "failed"]
    reason: Optional[str] = None
    cv: Optional[CVRecord] = None


class UploadReport(BaseModel):
    uploaded_count: int = Field(serialization_alias="uploadedCount")
    results: List[UploadOutcome]
