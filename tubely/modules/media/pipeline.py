"""
Video ingestion pipeline.

One upload moves through::

    Received -> Authorized -> Staged -> Probed -> Remuxed -> Uploaded -> Committed

and any stage may fail, which aborts the request. Each temporary file is
registered for removal the moment it exists, so cleanup runs on every exit
path and only for the files that were actually created.

If the locator update fails after the object was stored, the object is left
orphaned in storage. That case is logged at ERROR with the key and published
as ``video.orphaned_object`` so it can be reconciled by hand. A put that
finishes after its upload already timed out is deleted again; if that delete
fails it is logged the same way.
"""
import asyncio
import logging
import os
import tempfile
import threading
import uuid
from contextlib import ExitStack
from dataclasses import dataclass
from typing import BinaryIO

from tubely.core.config import Settings
from tubely.core.errors import (
    NotFound, PayloadTooLarge, PersistenceError, StorageError, Unauthorized, UnsupportedMediaType,
)
from tubely.modules.media.intake import UploadSource
from tubely.modules.media.keys import build_key, media_type
from tubely.modules.videos.models import Video
from tubely.platform.ports.event_bus import EventBusPort, VIDEO_EVENTS_TOPIC
from tubely.platform.ports.media_tools import MediaProberPort, RemuxerPort
from tubely.platform.ports.object_storage import ObjectStoragePort
from tubely.platform.ports.video_store import VideoStorePort

log = logging.getLogger("media.pipeline")

SUPPORTED_VIDEO_TYPE = "video/mp4"
CHUNK_SIZE = 1024 * 1024

@dataclass(frozen=True)
class UploadConfig:
    bucket: str
    max_video_bytes: int = 1 << 30
    temp_dir: str | None = None
    storage_timeout: float = 600.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "UploadConfig":
        return cls(
            bucket=settings.S3_BUCKET if settings.OBJECT_STORAGE_PROVIDER == "s3" else settings.LOCAL_STORAGE_ROOT,
            max_video_bytes=settings.MAX_VIDEO_UPLOAD_BYTES,
            temp_dir=settings.UPLOAD_TEMP_DIR,
            storage_timeout=settings.STORAGE_TIMEOUT_SECONDS,
        )

def _discard(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    else:
        log.debug(f"Removed temporary file {path}")

class _Transfer:
    """Shared by a storage put and its caller to agree on who cleans up a put that lands late."""

    def __init__(self):
        self._lock = threading.Lock()
        self.stored = False
        self.abandoned = False

    def mark_stored(self) -> bool:
        with self._lock:
            self.stored = True
            return self.abandoned

    def abandon(self) -> bool:
        with self._lock:
            self.abandoned = True
            return self.stored

class UploadOrchestrator:
    def __init__(
        self,
        *,
        store: VideoStorePort,
        storage: ObjectStoragePort,
        prober: MediaProberPort,
        remuxer: RemuxerPort,
        events: EventBusPort,
        config: UploadConfig,
    ):
        self.store = store
        self.storage = storage
        self.prober = prober
        self.remuxer = remuxer
        self.events = events
        self.config = config

    async def authorize(self, video_id: uuid.UUID, requester_id: uuid.UUID) -> Video:
        video = await self.store.get(video_id)
        if video is None:
            raise NotFound("Video not found")
        if video.user_id != requester_id:
            raise Unauthorized("User not authorized to upload to this video")
        return video

    async def upload_video(self, video_id: uuid.UUID, requester_id: uuid.UUID, source: UploadSource) -> Video:
        video = await self.authorize(video_id, requester_id)

        upload = await source.open()
        try:
            mtype = media_type(upload.content_type)
            if mtype != SUPPORTED_VIDEO_TYPE:
                raise UnsupportedMediaType(f"Invalid video format {mtype or 'unknown'!r}, expected {SUPPORTED_VIDEO_TYPE}")

            with ExitStack() as cleanup:
                staged_path = await self._stage(upload, cleanup)
                orientation = await self.prober.probe(staged_path)
                optimized_path = await self.remuxer.remux(staged_path)
                cleanup.callback(_discard, optimized_path)

                key = build_key(mtype, orientation)
                await self._transfer(optimized_path, key, mtype)
                await self.commit_locator(video, key)
        finally:
            await upload.close()

        log.info(f"Video {video.id} uploaded by {requester_id}: {key} ({orientation.value})")
        await self._publish("video.uploaded", video, {"key": key, "orientation": orientation.value, "video_url": video.video_url})
        return video

    async def _stage(self, upload, cleanup: ExitStack) -> str:
        staged = tempfile.NamedTemporaryFile(
            prefix="tubely-upload-", suffix=".mp4", dir=self.config.temp_dir, delete=False,
        )
        cleanup.callback(_discard, staged.name)
        with staged:
            written = 0
            while chunk := await upload.read(CHUNK_SIZE):
                written += len(chunk)
                if written > self.config.max_video_bytes:
                    raise PayloadTooLarge(f"Upload exceeds the {self.config.max_video_bytes:,} byte limit")
                staged.write(chunk)
        log.debug(f"Staged {written:,} bytes at {staged.name}")
        return staged.name

    async def _transfer(self, path: str, key: str, content_type: str) -> None:
        with open(path, "rb") as body:
            await self.store_object(body, key, content_type)

    async def store_object(self, body: BinaryIO, key: str, content_type: str) -> None:
        transfer = _Transfer()
        try:
            await asyncio.wait_for(
                asyncio.to_thread(self._put, transfer, body, key, content_type),
                timeout=self.config.storage_timeout,
            )
        except asyncio.CancelledError:
            self._abandon(transfer, key)
            raise
        except asyncio.TimeoutError as e:
            self._abandon(transfer, key)
            raise StorageError(f"Upload of {key} timed out after {self.config.storage_timeout}s") from e

    def _abandon(self, transfer: _Transfer, key: str) -> None:
        # the worker thread can't be stopped; whichever side finishes last removes a late object
        if transfer.abandon():
            asyncio.get_running_loop().run_in_executor(None, self._discard_late_object, key)

    def _put(self, transfer: _Transfer, body: BinaryIO, key: str, content_type: str) -> None:
        if transfer.abandoned:
            log.debug(f"Skipping put of {key}, its upload was already abandoned")
            return
        self.storage.put_object(key, body, content_type)
        if transfer.mark_stored():
            self._discard_late_object(key)

    def _discard_late_object(self, key: str) -> None:
        try:
            self.storage.delete(key)
        except Exception:
            log.exception(
                f"ORPHANED OBJECT: bucket={self.config.bucket} key={key} was stored "
                f"after its upload timed out and could not be removed"
            )
        else:
            log.warning(f"Removed {key}, which was stored after its upload timed out")

    async def commit_locator(self, video: Video, key: str, kind: str = "video") -> None:
        """Point ``video`` at a stored object; ``kind`` is ``video`` or ``thumbnail``."""
        setattr(video, f"{kind}_url", self.storage.locator_for(key))
        setattr(video, f"{kind}_key", key)
        try:
            await self.store.update(video)
        except PersistenceError:
            log.error(
                f"ORPHANED OBJECT: bucket={self.config.bucket} key={key} is stored "
                f"but video {video.id} was not updated to point at it"
            )
            await self._publish("video.orphaned_object", video, {"bucket": self.config.bucket, "key": key})
            raise

    async def _publish(self, event_type: str, video: Video, payload: dict) -> None:
        try:
            await self.events.publish(
                topic=VIDEO_EVENTS_TOPIC,
                key=str(video.id),
                value={"event_type": event_type, "video_id": str(video.id), "user_id": str(video.user_id), **payload},
            )
        except Exception:
            log.exception(f"Publishing {event_type} for video {video.id} failed")
