from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


TRANSFER_SUCCESS_MESSAGE = "Successfully uploaded file to OSS"


class MediaTransferRequest(BaseModel):
    url: str = Field(..., description="Public URL of the media to republish")
    ext: str = Field(..., description="Desired file extension, with or without a leading dot")
    prediction_uuid: str = Field(..., description="Identifier scoping the storage path")

    @field_validator("url")
    @classmethod
    def _strip_url(cls, value: str) -> str:
        return value.strip()


class MediaTransferResponse(BaseModel):
    success: bool
    message: str
    oss_url: str
    original_url: str
    file_size: int
    content_type: str


class ErrorResponse(BaseModel):
    error: str
    message: str
    details: dict[str, str] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
