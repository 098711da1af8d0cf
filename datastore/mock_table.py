from __future__ import annotations

import json
from pathlib import Path
from threading import Lock
from typing import Dict, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from errors import StoreError

ModelT = TypeVar("ModelT", bound=BaseModel)


class MockTable(Generic[ModelT]):
    """Partitioned append-only table.

    Items live under ``(partition_key, row_key)``. Row keys are plain strings,
    so range queries rely on their lexical order.
    """

    def __init__(
        self,
        name: str,
        model: Type[ModelT],
        persistence_path: Optional[Path] = None,
    ) -> None:
        self.name = name
        self.model = model
        self.persistence_path = persistence_path
        self._partitions: Dict[str, Dict[str, ModelT]] = {}
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def insert(self, partition_key: str, row_key: str, item: ModelT) -> None:
        with self._lock:
            partition = self._partitions.setdefault(partition_key, {})
            if row_key in partition:
                raise StoreError(
                    f"Entity ({partition_key!r}, {row_key!r}) already exists in table {self.name!r}."
                )
            partition[row_key] = item.model_copy(deep=True)
            try:
                self._persist()
            except StoreError:
                del partition[row_key]
                raise

    def get(self, partition_key: str, row_key: str) -> Optional[ModelT]:
        with self._lock:
            item = self._partitions.get(partition_key, {}).get(row_key)
            if item is None:
                return None
            return item.model_copy(deep=True)

    def query(self, partition_key: str, row_key_from: Optional[str] = None) -> List[ModelT]:
        """Return items of a partition with ``row_key >= row_key_from``, in key order."""

        with self._lock:
            partition = self._partitions.get(partition_key, {})
            keys = sorted(partition)
            if row_key_from is not None:
                keys = [key for key in keys if key >= row_key_from]
            return [partition[key].model_copy(deep=True) for key in keys]

    def partitions(self) -> List[str]:
        with self._lock:
            return sorted(self._partitions)

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = {
            partition_key: {
                row_key: item.model_dump(mode="json") for row_key, item in rows.items()
            }
            for partition_key, rows in self._partitions.items()
        }
        try:
            self.persistence_path.write_text(json.dumps(payload, indent=2, sort_keys=True))
        except OSError as exc:
            raise StoreError(f"Failed to persist table {self.name!r}: {exc}") from exc

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
            for partition_key, rows in data.items():
                self._partitions[partition_key] = {
                    row_key: self.model.model_validate(payload)
                    for row_key, payload in rows.items()
                }
        except (OSError, json.JSONDecodeError, ValidationError, AttributeError) as exc:
            raise StoreError(
                f"Failed to load table {self.name!r} from {self.persistence_path}: {exc}"
            ) from exc
