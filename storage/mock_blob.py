from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Dict, Optional

from errors import StoreError
from settings import get_settings

CREDENTIAL_BLOB_NAME = "nest-token"


class MockBlobContainer:
    """Named blob container; each write overwrites the whole object."""

    def __init__(self, name: str, root_path: Optional[Path] = None) -> None:
        self.name = name
        self.root_path = root_path
        self._objects: Dict[str, str] = {}
        self._lock = Lock()
        if root_path:
            try:
                root_path.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise StoreError(f"Cannot create blob container at {root_path}: {exc}") from exc

    def upload_text(self, blob_name: str, content: str) -> None:
        with self._lock:
            if self.root_path:
                path = self.root_path / blob_name
                tmp_path = path.with_suffix(path.suffix + ".tmp")
                try:
                    tmp_path.write_text(content, encoding="utf-8")
                    tmp_path.replace(path)
                except OSError as exc:
                    raise StoreError(
                        f"Failed to write blob {blob_name!r} in container {self.name!r}: {exc}"
                    ) from exc
            self._objects[blob_name] = content

    def download_text(self, blob_name: str) -> Optional[str]:
        """Return the blob content, or ``None`` when the blob does not exist."""

        with self._lock:
            content = self._objects.get(blob_name)
            if content is not None:
                return content

            if not self.root_path:
                return None

            path = self.root_path / blob_name
            if not path.exists():
                return None
            try:
                content = path.read_text(encoding="utf-8")
            except OSError as exc:
                raise StoreError(
                    f"Failed to read blob {blob_name!r} from container {self.name!r}: {exc}"
                ) from exc
            self._objects[blob_name] = content
            return content

    def exists(self, blob_name: str) -> bool:
        return self.download_text(blob_name) is not None


@lru_cache
def build_default_container(
    name: Optional[str] = None,
    root_path: Optional[str] = None,
) -> MockBlobContainer:
    settings = get_settings()
    container_name = settings.blob_container if name is None else name
    container_root = settings.blob_root_path if root_path is None else root_path
    path = Path(container_root) / container_name if container_root else None
    return MockBlobContainer(name=container_name, root_path=path)
