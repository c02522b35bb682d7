from __future__ import annotations

import copy
import itertools
import json
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from whispr.errors import NotFound, StoreError
from whispr.state.models import new_id


class DocumentStore(ABC):
    """
    Minimal document-store interface: per-document reads and writes plus
    equality-filtered, ordered queries over a collection.
    Each call is atomic on its own; nothing spans calls.
    """

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def append(self, collection: str, doc_id: str, field: str, items: List[Any]) -> None:
        """Atomically extend a list field, like an array-union without de-duplication."""
        ...

    @abstractmethod
    def add(self, collection: str, data: Dict[str, Any]) -> str:
        """Create a new document under a fresh id and return the id."""
        ...

    @abstractmethod
    def query(
        self,
        collection: str,
        where: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        ...


class InMemoryDocumentStore(DocumentStore):
    """Dict-backed store used for tests and local runs."""

    def __init__(self):
        self._collections: Dict[str, Dict[str, Tuple[int, Dict[str, Any]]]] = {}
        self._seq = itertools.count()
        self._lock = threading.Lock()

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            entry = self._collections.get(collection, {}).get(doc_id)
            return copy.deepcopy(entry[1]) if entry else None

    def set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        with self._lock:
            docs = self._collections.setdefault(collection, {})
            seq = docs[doc_id][0] if doc_id in docs else next(self._seq)
            docs[doc_id] = (seq, copy.deepcopy(data))
            self._persist()

    def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        with self._lock:
            docs = self._collections.get(collection, {})
            if doc_id not in docs:
                raise NotFound(collection, doc_id)
            seq, data = docs[doc_id]
            data.update(copy.deepcopy(fields))
            docs[doc_id] = (seq, data)
            self._persist()

    def append(self, collection: str, doc_id: str, field: str, items: List[Any]) -> None:
        with self._lock:
            docs = self._collections.get(collection, {})
            if doc_id not in docs:
                raise NotFound(collection, doc_id)
            _, data = docs[doc_id]
            current = data.get(field) or []
            data[field] = list(current) + copy.deepcopy(list(items))
            self._persist()

    def add(self, collection: str, data: Dict[str, Any]) -> str:
        # Any id already in data is ignored; adding the same payload twice makes two documents.
        doc_id = new_id()
        with self._lock:
            docs = self._collections.setdefault(collection, {})
            docs[doc_id] = (next(self._seq), {**copy.deepcopy(data), "id": doc_id})
            self._persist()
        return doc_id

    def query(
        self,
        collection: str,
        where: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        with self._lock:
            entries = list(self._collections.get(collection, {}).values())

        if where:
            entries = [
                (seq, data) for seq, data in entries
                if all(data.get(key) == value for key, value in where.items())
            ]

        if order_by:
            def sort_key(entry):
                value = entry[1].get(order_by)
                return (value is not None, value, entry[0])
            entries.sort(key=sort_key, reverse=descending)
        else:
            entries.sort(key=lambda entry: entry[0])

        if limit is not None:
            entries = entries[: max(limit, 0)]
        return [copy.deepcopy(data) for _, data in entries]

    def _persist(self) -> None:
        """Hook for subclasses; called with the lock held after every write."""


class JsonFileDocumentStore(InMemoryDocumentStore):
    """
    Same semantics as the in-memory store, persisted to a single JSON file.
    The file is loaded on construction and rewritten after each write.
    """

    def __init__(self, path: Path):
        super().__init__()
        self.path = Path(path)
        if self.path.exists():
            self.load()

    def load(self) -> None:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"Could not read store file {self.path}: {e}") from e
        with self._lock:
            self._collections = {
                name: {doc_id: (next(self._seq), data) for doc_id, data in docs.items()}
                for name, docs in raw.items()
            }

    def _persist(self) -> None:
        payload = {
            name: {
                doc_id: data
                for doc_id, (_, data) in sorted(docs.items(), key=lambda item: item[1][0])
            }
            for name, docs in self._collections.items()
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError as e:
            raise StoreError(f"Could not write store file {self.path}: {e}") from e
