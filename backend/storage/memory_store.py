"""
In-process entity store used for local development and tests.
"""

import copy
import threading
from typing import Any, Dict, List, Optional, Tuple

from app.utils.exceptions import (
    DocumentExistsException,
    NotFoundException,
    VersionConflictException,
)
from storage.base import EntityStore, Predicate, StoredDocument, Stores


class MemoryEntityStore(EntityStore):
    """Thread-safe dict of ``key -> (version, data)``; callers only ever see copies."""

    def __init__(self, name: str):
        super().__init__(name)
        self._lock = threading.Lock()
        self._documents: Dict[str, Tuple[int, Dict[str, Any]]] = {}

    def _snapshot(self, key: str, version: int, data: Dict[str, Any]) -> StoredDocument:
        return StoredDocument(key=key, version=version, data=copy.deepcopy(data))

    def get(self, key: str) -> Optional[StoredDocument]:
        with self._lock:
            entry = self._documents.get(key)
            if entry is None:
                return None
            return self._snapshot(key, *entry)

    def insert(self, key: str, data: Dict[str, Any]) -> StoredDocument:
        with self._lock:
            if key in self._documents:
                raise DocumentExistsException(self.name, key)
            self._documents[key] = (1, copy.deepcopy(data))
            return self._snapshot(key, 1, data)

    def replace(
        self, key: str, data: Dict[str, Any], expected_version: Optional[int] = None
    ) -> StoredDocument:
        with self._lock:
            entry = self._documents.get(key)
            if entry is None:
                raise NotFoundException(f"{self.name}/{key} not found")
            version = entry[0]
            if expected_version is not None and expected_version != version:
                raise VersionConflictException(self.name, key)
            self._documents[key] = (version + 1, copy.deepcopy(data))
            return self._snapshot(key, version + 1, data)

    def scan(self, predicate: Optional[Predicate] = None) -> List[StoredDocument]:
        with self._lock:
            entries = list(self._documents.items())
        documents = [self._snapshot(key, version, data) for key, (version, data) in entries]
        if predicate is None:
            return documents
        return [doc for doc in documents if predicate(doc.data)]

    def ping(self) -> bool:
        return True


def build_memory_stores() -> Stores:
    return Stores(
        players=MemoryEntityStore("players"),
        teams=MemoryEntityStore("teams"),
        matches=MemoryEntityStore("matches"),
        trophies=MemoryEntityStore("trophies"),
    )
