from typing import Protocol, runtime_checkable
from tubely.modules.media.orientation import Orientation

@runtime_checkable
class MediaProberPort(Protocol):
    async def probe(self, path: str) -> Orientation: ...

@runtime_checkable
class RemuxerPort(Protocol):
    async def remux(self, path: str) -> str: ...
