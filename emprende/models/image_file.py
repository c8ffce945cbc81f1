from __future__ import annotations

from pydantic import BaseModel, Field


class ImageFile(BaseModel):
    """An in-memory image blob, either a user upload or a converted artifact."""

    name: str
    mime_type: str
    data: bytes = Field(repr=False)
    width: int | None = Field(default=None, ge=1)  # set on converted output
    height: int | None = Field(default=None, ge=1)

    @property
    def size(self) -> int:
        return len(self.data)


class ImageProcessingOptions(BaseModel):
    quality: float = Field(0.8, gt=0, le=1)
    max_width: int = Field(1200, gt=0)
    max_height: int = Field(1200, gt=0)


class CompressionInfo(BaseModel):
    original_size: int
    processed_size: int
    reduction: int  # percent, negative when the output grew
    original_size_mb: str
    processed_size_mb: str


class UploadedImage(BaseModel):
    url: str  # Signed or public GCS URL
    gcs_path: str
    name: str
    mime_type: str
    width: int = Field(..., ge=1)
    height: int = Field(..., ge=1)
    size: int
    compression: CompressionInfo
