"""
Document store access.

The engine never talks to a store directly; it is handed a `Repository`.
Records are plain dicts in the store's camelCase shape, and every record
returned by `list_all` carries its store id under "id".
"""

import copy
import json
import logging
import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from .errors import StoreError

logger = logging.getLogger(__name__)


class Repository(ABC):
    """The store collaborator. Every method raises StoreError on failure."""

    @abstractmethod
    def list_all(self, collection: str) -> list[dict[str, Any]]:
        pass

    @abstractmethod
    def add(self, collection: str, record: dict[str, Any]) -> str:
        pass

    @abstractmethod
    def update(self, collection: str, record_id: str, partial: dict[str, Any]) -> None:
        pass

    @abstractmethod
    def remove(self, collection: str, record_id: str) -> None:
        pass


class InMemoryRepository(Repository):
    """Keeps every collection in insertion-ordered dicts."""

    def __init__(self, collections: dict[str, list[dict[str, Any]]] | None = None):
        self._data: dict[str, dict[str, dict[str, Any]]] = {}
        for name, records in (collections or {}).items():
            for record in records:
                record = dict(record)
                record_id = str(record.pop("id", None) or self._new_id())
                self._data.setdefault(name, {})[record_id] = record

    @staticmethod
    def _new_id() -> str:
        return uuid.uuid4().hex

    def list_all(self, collection: str) -> list[dict[str, Any]]:
        records = self._data.get(collection, {})
        return [{**copy.deepcopy(record), "id": record_id} for record_id, record in records.items()]

    def get(self, collection: str, record_id: str) -> dict[str, Any] | None:
        record = self._data.get(collection, {}).get(record_id)
        return None if record is None else {**copy.deepcopy(record), "id": record_id}

    def add(self, collection: str, record: dict[str, Any]) -> str:
        record_id = self._new_id()
        stored = copy.deepcopy(record)
        stored.pop("id", None)
        with self._mutation(collection) as records:
            records[record_id] = stored
        return record_id

    def update(self, collection: str, record_id: str, partial: dict[str, Any]) -> None:
        self._require(collection, record_id)
        partial = {k: v for k, v in copy.deepcopy(partial).items() if k != "id"}
        with self._mutation(collection) as records:
            records[record_id].update(partial)

    def remove(self, collection: str, record_id: str) -> None:
        self._require(collection, record_id)
        with self._mutation(collection) as records:
            del records[record_id]

    def _require(self, collection: str, record_id: str) -> None:
        if record_id not in self._data.get(collection, {}):
            raise StoreError(
                f"No document '{record_id}' in '{collection}'.",
                collection=collection,
                record_id=record_id,
            )

    @contextmanager
    def _mutation(self, collection: str) -> Iterator[dict[str, dict[str, Any]]]:
        """
        Applies one change to `collection` and persists it. When persisting
        fails the collection is restored to its previous state and the error
        propagates; memory never holds a write the durable copy refused.
        """
        existed = collection in self._data
        before = copy.deepcopy(self._data.get(collection, {}))
        yield self._data.setdefault(collection, {})
        try:
            self._persist()
        except Exception:
            if existed:
                self._data[collection] = before
            else:
                self._data.pop(collection, None)
            raise

    def _persist(self) -> None:
        """Hook for subclasses that keep a durable copy."""


class JsonFileRepository(InMemoryRepository):
    """
    An InMemoryRepository mirrored to a single JSON file, rewritten after
    every mutation. Meant for the command line and local runs.
    """

    def __init__(self, path: Path | str):
        super().__init__()
        self.path = Path(path)
        if self.path.exists():
            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    raw = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                raise StoreError(f"Could not read store file {self.path}: {e}") from e
            self._data = {name: dict(records) for name, records in raw.items()}
            logger.info(f"Loaded store from {self.path}")

    def _persist(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2, default=str)
            tmp_path.replace(self.path)
        except OSError as e:
            raise StoreError(f"Could not write store file {self.path}: {e}") from e
