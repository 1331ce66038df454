import io
import logging
import uuid

from tubely.core.errors import PayloadTooLarge, UnsupportedMediaType
from tubely.modules.media.intake import UploadSource
from tubely.modules.media.keys import build_key, media_type
from tubely.modules.media.pipeline import UploadOrchestrator
from tubely.modules.videos.models import Video

log = logging.getLogger("media.thumbnails")

SUPPORTED_IMAGE_TYPES = {"image/jpeg", "image/png"}
THUMBNAIL_DIRECTORY = "thumbnails"

async def upload_thumbnail(
    orchestrator: UploadOrchestrator,
    video_id: uuid.UUID,
    requester_id: uuid.UUID,
    source: UploadSource,
) -> Video:
    """Small-file variant of the video upload: no staging, probing or remux.

    The image is read into memory (it is bounded by ``source.max_bytes``) and
    stored as-is under ``thumbnails/``.
    """
    video = await orchestrator.authorize(video_id, requester_id)

    upload = await source.open()
    try:
        mtype = media_type(upload.content_type)
        if mtype not in SUPPORTED_IMAGE_TYPES:
            raise UnsupportedMediaType(f"Invalid thumbnail format {mtype or 'unknown'!r}")
        data = await upload.read(source.max_bytes + 1)
        if len(data) > source.max_bytes:
            raise PayloadTooLarge(f"Thumbnail exceeds the {source.max_bytes:,} byte limit")
    finally:
        await upload.close()

    key = build_key(mtype, THUMBNAIL_DIRECTORY)
    await orchestrator.store_object(io.BytesIO(data), key, mtype)
    await orchestrator.commit_locator(video, key, "thumbnail")
    log.info(f"Thumbnail for video {video.id} stored at {key} ({len(data):,} bytes)")
    return video
