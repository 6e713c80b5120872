"""
shared/domain/ranker.py
Trusted-first recommendation ordering for the tourist dashboard.

A provider is "trusted" by a viewer who has booked from them before. The
ordering is a stable partition, not a score: trusted programs first, then
the rest, each in catalog order.
"""

from dataclasses import dataclass
from typing import List, Sequence, Set

from shared.models.models import Booking, Program, ProgramStatus

DEFAULT_LIMIT = 6


@dataclass
class Recommendation:
    program: Program
    is_trusted: bool


def trusted_provider_ids(bookings: Sequence[Booking], programs: Sequence[Program]) -> Set[str]:
    """
    Provider ids from the viewer's booking history. A booking without a
    denormalized provider id falls back to the owner of its program.
    """
    owners = {p.id: p.provider_id for p in programs}
    trusted = set()
    for booking in bookings:
        provider_id = booking.provider_id or owners.get(booking.program_id)
        if provider_id:
            trusted.add(provider_id)
    return trusted


def rank_recommendations(
    bookings: Sequence[Booking],
    programs: Sequence[Program],
    limit: int = DEFAULT_LIMIT,
) -> List[Recommendation]:
    """
    Approved programs the viewer has not booked yet, trusted providers
    first. If that leaves nothing, fall back to the first `limit` approved
    programs unfiltered.
    """
    approved = [p for p in programs if p.status == ProgramStatus.APPROVED]
    trusted = trusted_provider_ids(bookings, programs)
    booked = {b.program_id for b in bookings}

    candidates = [p for p in approved if p.id not in booked]
    from_trusted = [p for p in candidates if p.provider_id in trusted]
    from_new = [p for p in candidates if p.provider_id not in trusted]

    ranked = (from_trusted + from_new)[:limit]
    if not ranked:
        ranked = approved[:limit]

    return [Recommendation(program=p, is_trusted=p.provider_id in trusted) for p in ranked]
