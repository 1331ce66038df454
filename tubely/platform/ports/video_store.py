import uuid
from typing import Protocol, runtime_checkable
from tubely.modules.videos.models import Video

@runtime_checkable
class VideoStorePort(Protocol):
    async def get(self, video_id: uuid.UUID) -> Video | None: ...
    async def update(self, video: Video) -> None: ...
