"""
shared/store/repositories.py
One repository per collection. Dashboards and lifecycle code depend on
these, never on a substrate.
"""

from dataclasses import dataclass
from typing import Callable, Generic, List, Optional, Type, TypeVar

from shared.models.models import Activity, Booking, Notification, Program, Record, Report
from shared.store.record_store import Namespace, RecordStore, Transform
from shared.utils.errors import RecordNotFoundError

R = TypeVar("R", bound=Record)

ACTIVITY_LOG_LIMIT = 100


class Repository(Generic[R]):
    namespace: Namespace
    model: Type[R]
    kind: str = "Record"
    newest_first: bool = False    # New records go to the front of the array
    max_records: Optional[int] = None    # Oldest records past this are dropped on add

    def __init__(self, store: RecordStore):
        self.store = store

    async def all(self) -> List[R]:
        return await self.store.load(self.namespace)

    async def get(self, record_id: str) -> Optional[R]:
        for record in await self.all():
            if record.id == record_id:
                return record
        return None

    async def require(self, record_id: str) -> R:
        record = await self.get(record_id)
        if record is None:
            raise RecordNotFoundError(self.kind, record_id)
        return record

    async def save_all(self, records: List[R]) -> None:
        await self.store.save(self.namespace, records)

    async def transform(self, fn: Transform) -> List[R]:
        return await self.store.transform(self.namespace, fn)

    async def add(self, record: R) -> R:
        def _insert(records: List[R]) -> List[R]:
            if self.newest_first:
                records.insert(0, record)
            else:
                records.append(record)
            if self.max_records is not None:
                del records[self.max_records:]
            return records

        await self.transform(_insert)
        return record

    async def update(self, record_id: str, mutate: Callable[[R], None]) -> R:
        """
        Apply `mutate` to one record inside a transform. Raising from
        `mutate` aborts the write.
        """
        updated: List[R] = []

        def _apply(records: List[R]) -> List[R]:
            for record in records:
                if record.id == record_id:
                    mutate(record)
                    updated.append(record)
                    return records
            raise RecordNotFoundError(self.kind, record_id)

        await self.transform(_apply)
        return updated[0]


class ProgramRepository(Repository[Program]):
    namespace = Namespace.PROGRAMS
    model = Program
    kind = "Program"


class BookingRepository(Repository[Booking]):
    namespace = Namespace.BOOKINGS
    model = Booking
    kind = "Booking"


class ReportRepository(Repository[Report]):
    """Admin queue: every submitted report."""
    namespace = Namespace.REPORTS
    model = Report
    kind = "Report"
    newest_first = True


class ProviderReportRepository(Repository[Report]):
    """Provider-scoped mirror: reports that reference a provider or program."""
    namespace = Namespace.PROVIDER_REPORTS
    model = Report
    kind = "Report"
    newest_first = True


class NotificationRepository(Repository[Notification]):
    namespace = Namespace.NOTIFICATIONS
    model = Notification
    kind = "Notification"
    newest_first = True


class ActivityRepository(Repository[Activity]):
    """Provider activity log, newest first and capped."""
    namespace = Namespace.ACTIVITIES
    model = Activity
    kind = "Activity"
    newest_first = True
    max_records = ACTIVITY_LOG_LIMIT

    async def for_provider(self, provider_id: str) -> List[Activity]:
        return [a for a in await self.all() if a.provider_id == provider_id]

    async def recent(self, limit: int) -> List[Activity]:
        return (await self.all())[:limit]


@dataclass
class Repositories:
    store: RecordStore
    programs: ProgramRepository
    bookings: BookingRepository
    reports: ReportRepository
    provider_reports: ProviderReportRepository
    notifications: NotificationRepository
    activities: ActivityRepository

    @classmethod
    def from_store(cls, store: RecordStore) -> "Repositories":
        return cls(
            store=store,
            programs=ProgramRepository(store),
            bookings=BookingRepository(store),
            reports=ReportRepository(store),
            provider_reports=ProviderReportRepository(store),
            notifications=NotificationRepository(store),
            activities=ActivityRepository(store),
        )
