import uuid
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field

class VideoCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = None

class VideoOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    title: str
    description: str | None
    thumbnail_url: str | None
    video_url: str | None
    created_at: datetime | None = None
    updated_at: datetime | None = None
