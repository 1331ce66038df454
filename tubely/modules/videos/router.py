import uuid
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from tubely.core.config import settings
from tubely.core.db import get_session
from tubely.core.errors import ValidationError
from tubely.core.security import get_principal, Principal
from tubely.modules.media.intake import MultipartUpload
from tubely.modules.media.pipeline import UploadConfig, UploadOrchestrator
from tubely.modules.media.thumbnails import upload_thumbnail
from tubely.modules.videos.repository import VideoRepository
from tubely.modules.videos.schemas import VideoCreate, VideoOut
from tubely.modules.videos.service import VideoService
from tubely.platform.provider_registry import registry

router = APIRouter()

def svc(session: AsyncSession = Depends(get_session)) -> VideoService:
    return VideoService(session, storage=registry.object_storage())

def orchestrator(session: AsyncSession = Depends(get_session)) -> UploadOrchestrator:
    return UploadOrchestrator(
        store=VideoRepository(session),
        storage=registry.object_storage(),
        prober=registry.media_prober(),
        remuxer=registry.remuxer(),
        events=registry.event_bus(),
        config=UploadConfig.from_settings(settings),
    )

def _parse_video_id(video_id: str) -> uuid.UUID:
    # parsed by hand so a malformed id is a 400, not FastAPI's 422
    try:
        return uuid.UUID(video_id)
    except ValueError as e:
        raise ValidationError("Invalid ID") from e

@router.post("", response_model=VideoOut, status_code=status.HTTP_201_CREATED)
async def create_video(
    payload: VideoCreate,
    principal: Principal = Depends(get_principal),
    service: VideoService = Depends(svc),
):
    return await service.create(principal.user_id, payload)

@router.get("", response_model=list[VideoOut])
async def list_videos(
    limit: int = 50, offset: int = 0,
    principal: Principal = Depends(get_principal),
    service: VideoService = Depends(svc),
):
    return await service.list(principal.user_id, limit, offset)

@router.get("/{video_id}", response_model=VideoOut)
async def get_video(
    video_id: str,
    principal: Principal = Depends(get_principal),
    service: VideoService = Depends(svc),
):
    return await service.get_owned(principal.user_id, _parse_video_id(video_id))

@router.delete("/{video_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_video(
    video_id: str,
    principal: Principal = Depends(get_principal),
    service: VideoService = Depends(svc),
):
    await service.delete(principal.user_id, _parse_video_id(video_id))

@router.post("/{video_id}/upload", response_model=VideoOut)
async def upload_video(
    video_id: str,
    request: Request,
    principal: Principal = Depends(get_principal),
    pipeline: UploadOrchestrator = Depends(orchestrator),
):
    source = MultipartUpload(request, field="video", max_bytes=settings.MAX_VIDEO_UPLOAD_BYTES)
    return await pipeline.upload_video(_parse_video_id(video_id), principal.user_id, source)

@router.post("/{video_id}/thumbnail", response_model=VideoOut)
async def upload_video_thumbnail(
    video_id: str,
    request: Request,
    principal: Principal = Depends(get_principal),
    pipeline: UploadOrchestrator = Depends(orchestrator),
):
    source = MultipartUpload(request, field="thumbnail", max_bytes=settings.MAX_THUMBNAIL_UPLOAD_BYTES)
    return await upload_thumbnail(pipeline, _parse_video_id(video_id), principal.user_id, source)
