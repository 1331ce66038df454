import os
import shutil
from typing import BinaryIO
from urllib.parse import quote
from tubely.platform.ports.object_storage import ObjectStoragePort
from tubely.core.config import settings
from tubely.core.errors import StorageError

class LocalFilesystemStorage(ObjectStoragePort):
    def __init__(self, root: str | None = None, public_base_url: str | None = None):
        self.root = os.path.abspath(root or settings.LOCAL_STORAGE_ROOT)
        self.public_base_url = public_base_url or settings.LOCAL_PUBLIC_BASE_URL
        os.makedirs(self.root, exist_ok=True)

    def _path(self, key: str) -> str:
        safe = key.replace("..", "").strip("/")
        return os.path.join(self.root, safe)

    def put_object(self, key: str, body: BinaryIO, content_type: str) -> None:
        path = self._path(key)
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, "wb") as f:
                shutil.copyfileobj(body, f, 1024 * 1024)
        except OSError as e:
            raise StorageError(f"Couldn't write {key}: {e}") from e

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            if os.path.exists(path):
                os.remove(path)
        except OSError as e:
            raise StorageError(f"Couldn't delete {key}: {e}") from e

    def locator_for(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{key.strip('/')}"
        # Without a public base URL, point at the file itself.
        return f"file://{quote(self._path(key))}"

