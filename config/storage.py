"""
config/storage.py
Builds the record store for the configured substrate and exposes it as a
FastAPI dependency. Tests override `get_repositories`.
"""

import logging
from typing import Optional

from config import database, redis_client
from config.settings import settings
from shared.store.backends import MemoryStorage, RedisStorage, SqlStorage, StorageBackend
from shared.store.record_store import RecordStore
from shared.store.repositories import Repositories

logger = logging.getLogger(__name__)


# ── Global repositories (initialized on startup) ─────────────
repositories: Optional[Repositories] = None


async def build_backend(kind: str) -> StorageBackend:
    if kind == "redis":
        return RedisStorage(await redis_client.init_redis())
    if kind == "sql":
        await database.init_db()
        return SqlStorage(database.AsyncSessionLocal)
    return MemoryStorage()


async def init_storage() -> Repositories:
    global repositories
    backend = await build_backend(settings.STORAGE_BACKEND)
    store = RecordStore(backend, key_prefix=settings.STORAGE_KEY_PREFIX)
    repositories = Repositories.from_store(store)
    logger.info(f"Record store ready on '{backend.name}' substrate")
    return repositories


async def close_storage() -> None:
    global repositories
    if settings.STORAGE_BACKEND == "redis":
        await redis_client.close_redis()
    elif settings.STORAGE_BACKEND == "sql":
        await database.close_db()
    repositories = None


def get_repositories() -> Repositories:
    """FastAPI dependency returning the process-wide repositories."""
    if repositories is None:
        raise RuntimeError("Storage not initialized. Call init_storage() first.")
    return repositories
