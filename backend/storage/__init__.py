"""
Storage Package

Entity store adapters for MatchDay:
- base contract with versioned documents and conditional replace
- in-memory store (development, tests)
- Supabase store (production)
"""

import logging

from app.utils.config import Settings

from .base import EntityStore, StoredDocument, Stores, update_document
from .memory_store import MemoryEntityStore, build_memory_stores

logger = logging.getLogger("matchday.storage")


def build_stores(settings: Settings) -> Stores:
    """Select the store backend named by STORE_BACKEND."""
    if settings.STORE_BACKEND == "supabase":
        # supabase backend only
        from .supabase_store import build_supabase_stores

        return build_supabase_stores(settings)
    if settings.STORE_BACKEND != "memory":
        logger.warning(f"Unknown STORE_BACKEND '{settings.STORE_BACKEND}', using memory")
    return build_memory_stores()


__all__ = [
    "EntityStore",
    "MemoryEntityStore",
    "StoredDocument",
    "Stores",
    "build_memory_stores",
    "build_stores",
    "update_document",
]
