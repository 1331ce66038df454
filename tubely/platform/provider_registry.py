from tubely.core.config import settings
from tubely.platform.ports.object_storage import ObjectStoragePort
from tubely.platform.adapters.storage_local import LocalFilesystemStorage
from tubely.platform.adapters.storage_s3 import S3Storage
from tubely.platform.ports.event_bus import EventBusPort
from tubely.platform.adapters.bus_noop import NoopEventBus
from tubely.platform.adapters.bus_redis import RedisEventBus
from tubely.platform.ports.media_tools import MediaProberPort, RemuxerPort
from tubely.modules.media.prober import MediaProber
from tubely.modules.media.remuxer import FastStartRemuxer

class ProviderRegistry:
    _object_storage: ObjectStoragePort | None = None
    _event_bus: EventBusPort | None = None
    _media_prober: MediaProberPort | None = None
    _remuxer: RemuxerPort | None = None

    @classmethod
    def object_storage(cls) -> ObjectStoragePort:
        if cls._object_storage is None:
            if settings.OBJECT_STORAGE_PROVIDER == "s3":
                cls._object_storage = S3Storage()
            else:
                cls._object_storage = LocalFilesystemStorage(settings.LOCAL_STORAGE_ROOT)
        return cls._object_storage

    @classmethod
    def event_bus(cls) -> EventBusPort:
        if cls._event_bus is None:
            prov = (settings.EVENT_BUS_PROVIDER or "noop").lower()
            if prov == "redis":
                cls._event_bus = RedisEventBus()
            else:
                cls._event_bus = NoopEventBus()
        return cls._event_bus

    @classmethod
    def media_prober(cls) -> MediaProberPort:
        if cls._media_prober is None:
            cls._media_prober = MediaProber(settings.FFPROBE_PATH, timeout=settings.PROBE_TIMEOUT_SECONDS)
        return cls._media_prober

    @classmethod
    def remuxer(cls) -> RemuxerPort:
        if cls._remuxer is None:
            cls._remuxer = FastStartRemuxer(settings.FFMPEG_PATH, timeout=settings.REMUX_TIMEOUT_SECONDS)
        return cls._remuxer

    @classmethod
    async def close(cls) -> None:
        bus = cls._event_bus
        if isinstance(bus, RedisEventBus):
            await bus.close()
        cls._event_bus = None

registry = ProviderRegistry()
