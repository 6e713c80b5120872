"""
shared/store/backends.py
Key/value storage substrates. Each namespace is one key holding a JSON
array document. Substrates know nothing about records; they move text.

- MemoryStorage: in-process dict, used as the test double
- RedisStorage:  one string key per namespace (redis-py asyncio)
- SqlStorage:    one row per namespace (SQLAlchemy async)
"""

import logging
from datetime import datetime
from typing import Dict, Optional

import redis.asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError
from sqlalchemy import DateTime, String, Text, func, select, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import Mapped, mapped_column
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from config.database import Base
from config.settings import settings

logger = logging.getLogger(__name__)


class StorageUnavailable(Exception):
    """Raised by a substrate that refuses a write (quota exceeded, disabled)."""


class StorageBackend:
    """Interface every substrate implements."""

    name = "abstract"

    async def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    async def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    async def delete(self, key: str) -> None:
        raise NotImplementedError

    async def ping(self) -> None:
        """Raise if the substrate cannot be reached."""


# ── Memory ────────────────────────────────────────────────────

class MemoryStorage(StorageBackend):
    """
    Dict-backed substrate. `quota_bytes` and `disabled` let tests reproduce
    a full or switched-off browser storage.
    """

    name = "memory"

    def __init__(self, quota_bytes: Optional[int] = None):
        self.data: Dict[str, str] = {}
        self.quota_bytes = quota_bytes
        self.disabled = False

    def _used_bytes(self, excluding: str) -> int:
        return sum(len(v.encode("utf-8")) for k, v in self.data.items() if k != excluding)

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        if self.disabled:
            raise StorageUnavailable("storage is disabled")
        if self.quota_bytes is not None:
            needed = self._used_bytes(key) + len(value.encode("utf-8"))
            if needed > self.quota_bytes:
                raise StorageUnavailable(f"quota exceeded ({needed} > {self.quota_bytes} bytes)")
        self.data[key] = value

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)

    async def ping(self) -> None:
        if self.disabled:
            raise StorageUnavailable("storage is disabled")


# ── Redis ─────────────────────────────────────────────────────

_transient_redis_errors = retry_if_exception_type((RedisConnectionError, RedisTimeoutError))


class RedisStorage(StorageBackend):
    name = "redis"

    def __init__(self, client: aioredis.Redis):
        self.client = client

    @retry(
        retry=_transient_redis_errors,
        stop=stop_after_attempt(settings.REDIS_READ_RETRIES),
        wait=wait_exponential(multiplier=0.05, max=1),
        reraise=True,
    )
    async def get(self, key: str) -> Optional[str]:
        value = await self.client.get(key)
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def set(self, key: str, value: str) -> None:
        # Writes are not retried: a retried overwrite could land after a newer one
        await self.client.set(key, value)

    async def delete(self, key: str) -> None:
        await self.client.delete(key)

    async def ping(self) -> None:
        await self.client.ping()


# ── SQL ───────────────────────────────────────────────────────

class NamespaceSnapshot(Base):
    """Latest serialized snapshot of one namespace."""
    __tablename__ = "namespace_snapshots"

    key: Mapped[str] = mapped_column(String(128), primary_key=True)
    payload: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class SqlStorage(StorageBackend):
    name = "sql"

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def get(self, key: str) -> Optional[str]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(NamespaceSnapshot.payload).where(NamespaceSnapshot.key == key)
            )
            return result.scalar_one_or_none()

    async def set(self, key: str, value: str) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                await session.merge(NamespaceSnapshot(key=key, payload=value))

    async def delete(self, key: str) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                row = await session.get(NamespaceSnapshot, key)
                if row is not None:
                    await session.delete(row)

    async def ping(self) -> None:
        async with self.session_factory() as session:
            await session.execute(text("SELECT 1"))
