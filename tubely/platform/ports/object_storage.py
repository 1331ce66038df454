from typing import BinaryIO, Protocol, runtime_checkable

@runtime_checkable
class ObjectStoragePort(Protocol):
    def put_object(self, key: str, body: BinaryIO, content_type: str) -> None: ...
    def locator_for(self, key: str) -> str: ...
    def delete(self, key: str) -> None: ...
