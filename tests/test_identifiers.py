"""Tests for identifier formatting and the sequence stores behind it."""

import asyncio
import re
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select

from dispatch.domain.identifiers import format_identifier
from dispatch.infrastructure.models import CounterModel
from dispatch.infrastructure.sequences import DatabaseSequenceStore, RedisSequenceStore
from dispatch.services.identifiers import IdentifierGenerator


class TestFormat:
    def test_zero_padded_to_six_digits(self):
        assert format_identifier("RES", 1) == "RES000001"
        assert format_identifier("TRP", 123456) == "TRP123456"

    def test_wider_numbers_are_not_truncated(self):
        assert format_identifier("RES", 1234567) == "RES1234567"

    def test_sequence_starts_at_one(self):
        with pytest.raises(ValueError):
            format_identifier("RES", 0)


class TestDatabaseSequenceStore:
    @pytest.mark.asyncio
    async def test_generated_ids_match_format(self, db_session):
        generator = IdentifierGenerator(DatabaseSequenceStore(db_session))
        assert re.fullmatch(r"RES\d{6}", await generator.next_reservation_id())
        assert re.fullmatch(r"TRP\d{6}", await generator.next_trip_number())

    @pytest.mark.asyncio
    async def test_sequences_are_independent(self, db_session):
        generator = IdentifierGenerator(DatabaseSequenceStore(db_session))
        assert await generator.next_reservation_id() == "RES000001"
        assert await generator.next_reservation_id() == "RES000002"
        assert await generator.next_trip_number() == "TRP000001"

    @pytest.mark.asyncio
    async def test_concurrent_callers_never_share_a_value(self, session_factory):
        async def allocate() -> int:
            async with session_factory() as session:
                seq = await DatabaseSequenceStore(session).next_value("reservation")
                await session.commit()
                return seq

        values = await asyncio.gather(*(allocate() for _ in range(20)))

        assert len(set(values)) == 20
        assert sorted(values) == list(range(1, 21))

    @pytest.mark.asyncio
    async def test_zero_counter_is_repaired_to_one(self, db_session):
        db_session.add(CounterModel(name="trip", seq=-1))
        await db_session.flush()

        assert await DatabaseSequenceStore(db_session).next_value("trip") == 1
        stored = await db_session.execute(
            select(CounterModel.seq).where(CounterModel.name == "trip")
        )
        assert stored.scalar_one() == 1
        assert await DatabaseSequenceStore(db_session).next_value("trip") == 2


class TestRedisSequenceStore:
    @pytest.mark.asyncio
    async def test_incr_per_sequence_name(self):
        mock_redis = AsyncMock()
        mock_redis.incr = AsyncMock(return_value=7)

        generator = IdentifierGenerator(RedisSequenceStore(mock_redis))
        assert await generator.next_trip_number() == "TRP000007"
        mock_redis.incr.assert_awaited_once_with("seq:trip")

    @pytest.mark.asyncio
    async def test_falsy_value_is_repaired(self):
        mock_redis = AsyncMock()
        mock_redis.incr = AsyncMock(return_value=0)
        mock_redis.set = AsyncMock(return_value=True)

        assert await RedisSequenceStore(mock_redis).next_value("reservation") == 1
        mock_redis.set.assert_awaited_once_with("seq:reservation", 1)

    @pytest.mark.asyncio
    async def test_store_errors_propagate(self):
        mock_redis = AsyncMock()
        mock_redis.incr = AsyncMock(side_effect=ConnectionError("redis down"))

        generator = IdentifierGenerator(RedisSequenceStore(mock_redis))
        with pytest.raises(ConnectionError):
            await generator.next_reservation_id()
