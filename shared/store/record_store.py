"""
shared/store/record_store.py
Generic load/save over the record namespaces.

`save` is a full-collection overwrite (last-writer-wins). Callers that
modify records should go through `transform`, which always starts from a
freshly loaded snapshot. Transforms on one namespace are serialized inside
this process only: another process (browser tab, API worker) writing the
same key can still overwrite a concurrent change. That race is a known gap
and is not detected.
"""

import asyncio
import logging
from enum import Enum as PyEnum
from typing import Any, Awaitable, Callable, Dict, List, Sequence, Type, TypeVar, Union

from shared.models.models import Activity, Booking, Notification, Program, Record, Report
from shared.store.backends import StorageBackend
from shared.store.codec import decode_collection, encode_collection, split_collection
from shared.utils.errors import StorageWriteError

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=Record)


class Namespace(str, PyEnum):
    PROGRAMS = "programs"
    BOOKINGS = "bookings"
    REPORTS = "reports"                     # Admin queue
    PROVIDER_REPORTS = "providerReports"    # Provider-scoped mirror
    NOTIFICATIONS = "notifications"
    ACTIVITIES = "activities"               # Provider activity log


NAMESPACE_MODELS: Dict[Namespace, Type[Record]] = {
    Namespace.PROGRAMS: Program,
    Namespace.BOOKINGS: Booking,
    Namespace.REPORTS: Report,
    Namespace.PROVIDER_REPORTS: Report,
    Namespace.NOTIFICATIONS: Notification,
    Namespace.ACTIVITIES: Activity,
}

Transform = Callable[[List[R]], Union[List[R], Awaitable[List[R]]]]


class RecordStore:
    """Typed access to namespace documents held by a storage substrate."""

    def __init__(self, backend: StorageBackend, key_prefix: str = ""):
        self.backend = backend
        self.key_prefix = key_prefix
        self._locks: Dict[Namespace, asyncio.Lock] = {}

    def key_for(self, namespace: Namespace) -> str:
        return f"{self.key_prefix}{namespace.value}"

    def _lock(self, namespace: Namespace) -> asyncio.Lock:
        if namespace not in self._locks:
            self._locks[namespace] = asyncio.Lock()
        return self._locks[namespace]

    async def _read_raw(self, namespace: Namespace):
        return await self.backend.get(self.key_for(namespace))

    async def load(self, namespace: Namespace) -> List[Record]:
        """
        Load a namespace. Missing, corrupt or unreadable content yields [].
        """
        try:
            raw = await self._read_raw(namespace)
        except Exception as e:
            logger.error(f"Reading '{namespace.value}' from {self.backend.name} failed: {e}")
            return []
        return decode_collection(raw, NAMESPACE_MODELS[namespace], namespace.value)

    async def save(
        self, namespace: Namespace, records: Sequence[Record], passthrough: Sequence[Any] = ()
    ) -> None:
        """
        Overwrite the whole namespace. Raises StorageWriteError on refusal.
        `passthrough` holds raw items that failed validation; they are written back unchanged.
        """
        model = NAMESPACE_MODELS[namespace]
        for record in records:
            if not isinstance(record, model):
                raise TypeError(f"{namespace.value} holds {model.__name__}, got {type(record).__name__}")

        payload = encode_collection(records, passthrough)
        try:
            await self.backend.set(self.key_for(namespace), payload)
        except Exception as e:
            logger.error(
                f"Writing {len(records)} record(s) to '{namespace.value}' on {self.backend.name} failed: {e}"
            )
            raise StorageWriteError(namespace.value, str(e)) from e

    async def transform(self, namespace: Namespace, fn: Transform) -> List[Record]:
        """
        Read-modify-write on a fresh snapshot.

        `fn` receives the loaded list and returns the list to persist (it may
        mutate and return the same list). Sync and async callables are both
        accepted. Returns what was saved. Stored items that fail validation are
        never shown to `fn` and are written back unchanged after its result.
        """
        async with self._lock(namespace):
            try:
                raw = await self._read_raw(namespace)
            except Exception as e:
                # Never persist over a snapshot we could not read
                logger.error(f"Snapshot read for '{namespace.value}' failed, aborting write: {e}")
                raise StorageWriteError(namespace.value, f"snapshot unavailable: {e}") from e

            records, rejected = split_collection(raw, NAMESPACE_MODELS[namespace], namespace.value)
            result = fn(records)
            if asyncio.iscoroutine(result):
                result = await result
            await self.save(namespace, result, passthrough=rejected)
            return result

    async def clear(self, namespace: Namespace) -> None:
        await self.backend.delete(self.key_for(namespace))
