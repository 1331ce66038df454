import asyncio
import logging
import uuid
from sqlalchemy.ext.asyncio import AsyncSession
from tubely.core.errors import NotFound, StorageError, Unauthorized
from tubely.modules.videos.repository import VideoRepository
from tubely.modules.videos.schemas import VideoCreate
from tubely.modules.videos.models import Video
from tubely.platform.ports.object_storage import ObjectStoragePort

log = logging.getLogger("videos.service")

class VideoService:
    def __init__(self, session: AsyncSession, storage: ObjectStoragePort):
        self.repo = VideoRepository(session)
        self.session = session
        self.storage = storage

    async def create(self, user_id: uuid.UUID, payload: VideoCreate) -> Video:
        obj = await self.repo.create(user_id, **payload.model_dump(exclude_unset=True))
        await self.session.commit()
        await self.session.refresh(obj)
        return obj

    async def get(self, video_id: uuid.UUID) -> Video:
        obj = await self.repo.get(video_id)
        if not obj:
            raise NotFound("Video not found")
        return obj

    async def get_owned(self, user_id: uuid.UUID, video_id: uuid.UUID) -> Video:
        obj = await self.get(video_id)
        if obj.user_id != user_id:
            raise Unauthorized("You can't access this video")
        return obj

    async def list(self, user_id: uuid.UUID, limit: int = 50, offset: int = 0):
        return await self.repo.list_for_user(user_id, limit, offset)

    async def delete(self, user_id: uuid.UUID, video_id: uuid.UUID) -> None:
        """Remove the record first, then the objects it pointed at.

        A failed object delete is only logged: the record is already gone.
        """
        obj = await self.get(video_id)
        if obj.user_id != user_id:
            raise Unauthorized("You can't delete this video")
        keys = [key for key in (obj.video_key, obj.thumbnail_key) if key]
        await self.repo.delete(obj)
        await self.session.commit()

        for key in keys:
            try:
                await asyncio.to_thread(self.storage.delete, key)
            except StorageError:
                log.exception(f"ORPHANED OBJECT: key={key} belonged to deleted video {video_id} and could not be removed")
