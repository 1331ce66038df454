import uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text
from tubely.core.base import Base, TimestampedMixin

class Video(Base, TimestampedMixin):
    user_id: Mapped[uuid.UUID] = mapped_column(index=True)  # owner
    title: Mapped[str] = mapped_column(String(200))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Locators of the stored artifacts, set by the upload endpoints.
    thumbnail_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    video_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    # Storage keys behind the locators, so the objects can be deleted with the record.
    thumbnail_key: Mapped[str | None] = mapped_column(String(512), nullable=True)
    video_key: Mapped[str | None] = mapped_column(String(512), nullable=True)
