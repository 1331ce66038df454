from typing import Protocol, runtime_checkable

VIDEO_EVENTS_TOPIC = "tubely.videos"

@runtime_checkable
class EventBusPort(Protocol):
    """Publishes video lifecycle events (``video.uploaded``, ``video.orphaned_object``)."""
    async def publish(self, topic: str, key: str, value: dict, headers: dict | None = None) -> None: ...
