"""
Shared fixtures for the upload pipeline tests.

Every collaborator of ``UploadOrchestrator`` has an in-memory stand-in here so
pipeline and route tests never spawn ffmpeg, touch S3 or open a database.
All of them append to one ``calls`` list so tests can assert ordering.
"""

from __future__ import annotations

import io
import stat
import time
import uuid
from pathlib import Path

import pytest

from tubely.core.errors import PersistenceError, ProbeFailure, RemuxFailure, StorageError
from tubely.modules.media.intake import IncomingUpload
from tubely.modules.media.orientation import Orientation
from tubely.modules.media.pipeline import UploadConfig, UploadOrchestrator
from tubely.modules.videos.models import Video


OWNER_ID = uuid.UUID("11111111-1111-1111-1111-111111111111")
STRANGER_ID = uuid.UUID("22222222-2222-2222-2222-222222222222")


# ── Fakes ────────────────────────────────────────────────────────


class FakeStore:
    def __init__(self, calls: list):
        self.calls = calls
        self.videos: dict[uuid.UUID, Video] = {}
        self.updates: list[dict] = []
        self.fail_update = False

    def add(self, owner_id: uuid.UUID = OWNER_ID, **fields) -> Video:
        video = Video(id=uuid.uuid4(), user_id=owner_id, title=fields.pop("title", "boots demo"), **fields)
        self.videos[video.id] = video
        return video

    async def get(self, video_id):
        self.calls.append(("get", video_id))
        return self.videos.get(video_id)

    async def update(self, video):
        self.calls.append(("update", video.id))
        if self.fail_update:
            raise PersistenceError(f"Couldn't update video {video.id}")
        self.updates.append({"video_url": video.video_url, "thumbnail_url": video.thumbnail_url})


class FakeStorage:
    def __init__(self, calls: list):
        self.calls = calls
        self.puts: list[tuple[str, bytes, str]] = []
        self.deleted: list[str] = []
        self.fail = False
        self.fail_delete = False
        self.delay = 0.0

    def put_object(self, key, body, content_type):
        self.calls.append(("put", key))
        if self.fail:
            raise StorageError(f"Couldn't upload {key}")
        # read up front like boto does for small bodies, so a slow put still lands
        data = body.read()
        if self.delay:
            time.sleep(self.delay)
        self.puts.append((key, data, content_type))

    def delete(self, key):
        self.calls.append(("delete", key))
        if self.fail_delete:
            raise StorageError(f"Couldn't delete {key}")
        self.deleted.append(key)

    def locator_for(self, key):
        return f"https://cdn.example.test/{key}"


class FakeProber:
    def __init__(self, calls: list):
        self.calls = calls
        self.orientation = Orientation.LANDSCAPE
        self.fail = False
        self.seen: list[bytes] = []

    async def probe(self, path):
        self.calls.append(("probe", path))
        # the staged file must be complete when probing starts
        self.seen.append(Path(path).read_bytes())
        if self.fail:
            raise ProbeFailure("ffprobe exited with 1: moov atom not found")
        return self.orientation


class FakeRemuxer:
    def __init__(self, calls: list):
        self.calls = calls
        self.fail = False

    async def remux(self, path):
        self.calls.append(("remux", path))
        if self.fail:
            raise RemuxFailure("Error processing video (exit 1): invalid data")
        output = f"{path}.processing"
        Path(output).write_bytes(b"faststart:" + Path(path).read_bytes())
        return output


class FakeEvents:
    def __init__(self):
        self.published: list[dict] = []

    async def publish(self, topic, key, value, headers=None):
        self.published.append(value)


class FakeSource:
    """An ``UploadSource`` over in-memory bytes."""

    def __init__(self, data: bytes = b"\x00\x00\x00\x18ftypmp42" * 64, content_type: str | None = "video/mp4", max_bytes: int = 1 << 20):
        self.data = data
        self.content_type = content_type
        self.max_bytes = max_bytes
        self.opened = False
        self.closed = False

    async def open(self) -> IncomingUpload:
        self.opened = True
        buf = io.BytesIO(self.data)

        async def read(size: int = -1) -> bytes:
            return buf.read(size)

        async def close() -> None:
            self.closed = True

        return IncomingUpload(content_type=self.content_type, filename="boots.mp4", read=read, close=close)


# ── Fixtures ─────────────────────────────────────────────────────


@pytest.fixture
def calls() -> list:
    return []


@pytest.fixture
def store(calls):
    return FakeStore(calls)


@pytest.fixture
def storage(calls):
    return FakeStorage(calls)


@pytest.fixture
def prober(calls):
    return FakeProber(calls)


@pytest.fixture
def remuxer(calls):
    return FakeRemuxer(calls)


@pytest.fixture
def events():
    return FakeEvents()


@pytest.fixture
def staging_dir(tmp_path: Path) -> Path:
    path = tmp_path / "staging"
    path.mkdir()
    return path


@pytest.fixture
def upload_config(staging_dir: Path) -> UploadConfig:
    return UploadConfig(bucket="tubely-test", max_video_bytes=1 << 20, temp_dir=str(staging_dir), storage_timeout=5.0)


@pytest.fixture
def orchestrator(store, storage, prober, remuxer, events, upload_config) -> UploadOrchestrator:
    return UploadOrchestrator(
        store=store,
        storage=storage,
        prober=prober,
        remuxer=remuxer,
        events=events,
        config=upload_config,
    )


@pytest.fixture
def source_factory():
    return FakeSource


@pytest.fixture
def make_tool(tmp_path: Path):
    """Write an executable shell script standing in for ffprobe/ffmpeg."""

    def _make(name: str, body: str) -> str:
        path = tmp_path / "bin" / name
        path.parent.mkdir(exist_ok=True)
        path.write_text("#!/bin/sh\n" + body + "\n", encoding="utf-8")
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(path)

    return _make


@pytest.fixture
def owner_id() -> uuid.UUID:
    return OWNER_ID


@pytest.fixture
def stranger_id() -> uuid.UUID:
    return STRANGER_ID


@pytest.fixture
def video(store) -> Video:
    """A draft video owned by ``owner_id`` with nothing uploaded yet."""
    return store.add()
