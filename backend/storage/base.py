"""
Entity store contract.

Every collection (players, teams, matches, trophies) is reached through an
EntityStore handle. Documents are JSON-compatible dicts carrying an integer
version that grows by one on each replace; passing ``expected_version`` to
``replace`` turns it into a compare-and-set.
"""

import copy
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from app.utils.exceptions import NotFoundException, VersionConflictException

logger = logging.getLogger("matchday.storage")

Predicate = Callable[[Dict[str, Any]], bool]


@dataclass(frozen=True)
class StoredDocument:
    key: str
    version: int
    data: Dict[str, Any] = field(default_factory=dict)


class EntityStore(ABC):
    """Key-addressed document persistence for one collection."""

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    def get(self, key: str) -> Optional[StoredDocument]:
        """Return the document or None when the key is unknown."""

    @abstractmethod
    def insert(self, key: str, data: Dict[str, Any]) -> StoredDocument:
        """Create a document; raises DocumentExistsException if the key is taken."""

    @abstractmethod
    def replace(
        self, key: str, data: Dict[str, Any], expected_version: Optional[int] = None
    ) -> StoredDocument:
        """
        Replace the whole document.

        Raises NotFoundException when the key is unknown and
        VersionConflictException when ``expected_version`` no longer matches.
        """

    @abstractmethod
    def scan(self, predicate: Optional[Predicate] = None) -> List[StoredDocument]:
        """Return every document for which ``predicate`` holds (all when None)."""

    def ping(self) -> bool:
        try:
            self.get("__ping__")
        except Exception as e:
            logger.warning(f"Store {self.name} is not reachable: {e}")
            return False
        return True


@dataclass
class Stores:
    """The collections the match engine reads and writes."""

    players: EntityStore
    teams: EntityStore
    matches: EntityStore
    trophies: EntityStore

    def all(self) -> List[EntityStore]:
        return [self.players, self.teams, self.matches, self.trophies]


Mutator = Callable[[Dict[str, Any]], Optional[Dict[str, Any]]]


def update_document(
    store: EntityStore, key: str, mutate: Mutator, retries: int = 3
) -> Optional[StoredDocument]:
    """
    Read-modify-write one document with a conditional replace.

    ``mutate`` receives a private copy of the current data and returns the new
    data, or None to leave the document alone. On a version conflict the read is
    repeated, up to ``retries`` attempts in total. Returns the stored document,
    the unchanged one when ``mutate`` declined, or None if the key is unknown.
    """
    attempt = 0
    while True:
        attempt += 1
        current = store.get(key)
        if current is None:
            return None
        updated = mutate(copy.deepcopy(current.data))
        if updated is None:
            return current
        try:
            return store.replace(key, updated, expected_version=current.version)
        except VersionConflictException:
            if attempt >= retries:
                raise
            logger.info(
                f"Version conflict on {store.name}/{key}, retrying ({attempt}/{retries})"
            )
        except NotFoundException:
            return None
