"""
Supabase-backed entity store.

Each collection is a table with three columns:

    key      text primary key
    version  integer not null
    data     jsonb not null

A conditional replace is an UPDATE filtered on both key and version; when no
row comes back the write lost the race (or the key vanished).

Environment variables:
    - SUPABASE_URL: Supabase URL
    - SUPABASE_SERVICE_KEY: Supabase API key
    - STORE_TIMEOUT_SECONDS: per-request timeout
"""

import logging
from typing import Any, Callable, Dict, List, Optional

import httpx
from postgrest.exceptions import APIError
from supabase import Client, ClientOptions, create_client

from app.utils.config import Settings
from app.utils.exceptions import (
    DependencyTimeoutException,
    DocumentExistsException,
    NotFoundException,
    VersionConflictException,
)
from storage.base import EntityStore, Predicate, StoredDocument, Stores

logger = logging.getLogger("matchday.storage.supabase")

UNIQUE_VIOLATION = "23505"
SCAN_PAGE_SIZE = 1000
COLUMNS = "key, version, data"


class SupabaseEntityStore(EntityStore):
    """EntityStore over one Supabase table."""

    def __init__(self, client: Client, table: str):
        super().__init__(table)
        self.client = client
        self.table = table

    def _execute(self, build: Callable[[], Any]):
        try:
            return build().execute()
        except httpx.TransportError as e:
            logger.error(f"Supabase request on {self.table} failed: {type(e).__name__} - {e}")
            raise DependencyTimeoutException("supabase", str(e)) from e

    @staticmethod
    def _to_document(row: Dict[str, Any]) -> StoredDocument:
        return StoredDocument(key=row["key"], version=int(row["version"]), data=row.get("data") or {})

    def get(self, key: str) -> Optional[StoredDocument]:
        response = self._execute(
            lambda: self.client.table(self.table).select(COLUMNS).eq("key", key).limit(1)
        )
        rows = response.data or []
        return self._to_document(rows[0]) if rows else None

    def insert(self, key: str, data: Dict[str, Any]) -> StoredDocument:
        record = {"key": key, "version": 1, "data": data}
        try:
            self._execute(lambda: self.client.table(self.table).insert(record))
        except APIError as e:
            if getattr(e, "code", None) == UNIQUE_VIOLATION:
                raise DocumentExistsException(self.table, key) from e
            raise
        return StoredDocument(key=key, version=1, data=data)

    def replace(
        self, key: str, data: Dict[str, Any], expected_version: Optional[int] = None
    ) -> StoredDocument:
        if expected_version is None:
            current = self.get(key)
            if current is None:
                raise NotFoundException(f"{self.table}/{key} not found")
            expected_version = current.version

        new_version = expected_version + 1
        response = self._execute(
            lambda: self.client.table(self.table)
            .update({"data": data, "version": new_version})
            .eq("key", key)
            .eq("version", expected_version)
        )
        if response.data:
            return StoredDocument(key=key, version=new_version, data=data)

        if self.get(key) is None:
            raise NotFoundException(f"{self.table}/{key} not found")
        raise VersionConflictException(self.table, key)

    def scan(self, predicate: Optional[Predicate] = None) -> List[StoredDocument]:
        documents: List[StoredDocument] = []
        start = 0
        while True:
            end = start + SCAN_PAGE_SIZE - 1
            response = self._execute(
                lambda: self.client.table(self.table).select(COLUMNS).order("key").range(start, end)
            )
            rows = response.data or []
            for row in rows:
                document = self._to_document(row)
                if predicate is None or predicate(document.data):
                    documents.append(document)
            if len(rows) < SCAN_PAGE_SIZE:
                break
            start += SCAN_PAGE_SIZE
        return documents

    def ping(self) -> bool:
        try:
            self._execute(lambda: self.client.table(self.table).select("key").limit(1))
        except Exception as e:
            logger.warning(f"Supabase table {self.table} is not reachable: {e}")
            return False
        return True


def build_supabase_stores(settings: Settings) -> Stores:
    """Create one Supabase client and wrap each collection table."""
    options = ClientOptions(postgrest_client_timeout=settings.STORE_TIMEOUT_SECONDS)
    client = create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_KEY, options=options)
    logger.info(f"Supabase client initialized for URL: {settings.SUPABASE_URL[:20]}...")
    return Stores(
        players=SupabaseEntityStore(client, "players"),
        teams=SupabaseEntityStore(client, "teams"),
        matches=SupabaseEntityStore(client, "matches"),
        trophies=SupabaseEntityStore(client, "trophies"),
    )
