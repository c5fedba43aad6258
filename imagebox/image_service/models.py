from typing import List
from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, Field
from uuid import uuid4

def new_image_id() -> str:
    """Generates a new unique image ID."""
    return str(uuid4())

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

class ImageRecord(BaseModel):
    """Metadata for one stored upload. Created once, never updated."""
    model_config = ConfigDict(frozen=True)

    image_id: str = Field(default_factory=new_image_id)
    filename: str
    original_name: str
    path: str
    size: int
    mime_type: str
    created_at: datetime = Field(default_factory=utc_now)

class ImageItem(BaseModel):
    id: str
    name: str
    url: str
    size: int
    uploadedAt: datetime

class UploadResponse(BaseModel):
    success: bool = True
    message: str = "Image uploaded successfully"
    image: ImageItem

class ListImagesResponse(BaseModel):
    success: bool = True
    count: int
    images: List[ImageItem]

class HealthResponse(BaseModel):
    status: str = "OK"
    timestamp: datetime = Field(default_factory=utc_now)
