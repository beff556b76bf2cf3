"""
Monotonic sequence stores  (Strategy Pattern)
=============================================

Each store hands out the next integer of a named sequence with a single
atomic read-modify-write, so concurrent callers never observe the same
value.  Values are never reused: a caller that fails after allocating
leaves a gap, which is accepted.

* ``DatabaseSequenceStore`` -- one ``counters`` row per name, advanced with
  ``INSERT ... ON CONFLICT DO UPDATE SET seq = seq + 1 RETURNING seq``.
* ``RedisSequenceStore``    -- ``INCR seq:<name>``.

Both repair a store anomaly (a zero/empty result) by writing ``1``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import redis.asyncio as aioredis
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import CounterModel

logger = logging.getLogger(__name__)


class SequenceStore(ABC):
    @abstractmethod
    async def next_value(self, name: str) -> int: ...


class DatabaseSequenceStore(SequenceStore):
    def __init__(self, session: AsyncSession):
        self.session = session

    def _insert(self):
        dialect = self.session.get_bind().dialect.name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            raise NotImplementedError(
                f"No atomic counter upsert for dialect {dialect!r}"
            )
        return insert

    async def next_value(self, name: str) -> int:
        insert = self._insert()
        stmt = insert(CounterModel).values(name=name, seq=1)
        stmt = stmt.on_conflict_do_update(
            index_elements=[CounterModel.name],
            set_={"seq": CounterModel.seq + 1},
        ).returning(CounterModel.seq)

        seq = (await self.session.execute(stmt)).scalar_one()
        if not seq:
            logger.warning("Counter %r returned %r; resetting to 1", name, seq)
            await self.session.execute(
                update(CounterModel).where(CounterModel.name == name).values(seq=1)
            )
            seq = 1
        return seq


class RedisSequenceStore(SequenceStore):
    def __init__(self, client: aioredis.Redis):
        self.redis = client

    async def next_value(self, name: str) -> int:
        key = f"seq:{name}"
        seq = await self.redis.incr(key)
        if not seq:
            logger.warning("Sequence %r returned %r; resetting to 1", key, seq)
            await self.redis.set(key, 1)
            seq = 1
        return int(seq)
