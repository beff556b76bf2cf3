"""
Identifier Generator
====================

Allocates the two independently-sequenced booking identifiers.  Each call
is one atomic increment on the injected ``SequenceStore``; any store error
propagates so booking creation aborts before anything is persisted.
"""

from __future__ import annotations

from dispatch.config import settings
from dispatch.domain.identifiers import format_identifier
from dispatch.infrastructure.sequences import SequenceStore

RESERVATION_SEQUENCE = "reservation"
TRIP_SEQUENCE = "trip"


class IdentifierGenerator:
    def __init__(
        self,
        store: SequenceStore,
        reservation_prefix: str = settings.reservation_prefix,
        trip_prefix: str = settings.trip_prefix,
        width: int = settings.identifier_width,
    ):
        self.store = store
        self.reservation_prefix = reservation_prefix
        self.trip_prefix = trip_prefix
        self.width = width

    async def next_reservation_id(self) -> str:
        seq = await self.store.next_value(RESERVATION_SEQUENCE)
        return format_identifier(self.reservation_prefix, seq, self.width)

    async def next_trip_number(self) -> str:
        seq = await self.store.next_value(TRIP_SEQUENCE)
        return format_identifier(self.trip_prefix, seq, self.width)
