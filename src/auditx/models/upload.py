"""Evidence upload data models."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class UploadStatus(str, Enum):
    PENDING = "pending"
    UPLOADING = "uploading"
    SUCCESS = "success"
    ERROR = "error"


class UploadItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    path: str
    name: str
    size: int
    content_type: str = "application/octet-stream"
    status: UploadStatus = UploadStatus.PENDING
    progress: int = 0
    uploaded_url: Optional[str] = None
    error_message: Optional[str] = None
