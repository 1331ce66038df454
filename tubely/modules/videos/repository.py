import uuid
import logging
from typing import Sequence
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from tubely.core.errors import PersistenceError
from tubely.modules.videos.models import Video

log = logging.getLogger("videos.repository")

class VideoRepository:
    """Metadata store for video records.

    ``get`` and ``update`` are what the upload pipeline consumes
    (see ``VideoStorePort``); ``update`` commits so that the locator write is
    durable before the request returns.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, user_id: uuid.UUID, **data) -> Video:
        obj = Video(user_id=user_id, **data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, video_id: uuid.UUID) -> Video | None:
        res = await self.session.execute(select(Video).where(Video.id == video_id))
        return res.scalar_one_or_none()

    async def list_for_user(self, user_id: uuid.UUID, limit: int = 50, offset: int = 0) -> Sequence[Video]:
        q = select(Video).where(
            Video.user_id == user_id,
        ).order_by(Video.created_at.desc()).limit(limit).offset(offset)
        res = await self.session.execute(q)
        return res.scalars().all()

    async def update(self, video: Video) -> None:
        try:
            self.session.add(video)
            await self.session.commit()
            await self.session.refresh(video)
        except SQLAlchemyError as e:
            log.error(f"Update of video {video.id} failed: {e}")
            await self.session.rollback()
            raise PersistenceError(f"Couldn't update video {video.id}") from e

    async def delete(self, video: Video) -> None:
        await self.session.delete(video)
        await self.session.flush()
