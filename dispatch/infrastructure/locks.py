"""
Redis lease for the daily booking sweep.

Only one API process may run the sweep at a time, however many are
deployed.  The lease is ``SET NX PX`` with a random token; release is a Lua
script that deletes the key only while the token still matches, so a
process whose lease already expired never frees another process's lease.
"""

from __future__ import annotations

import uuid

import redis.asyncio as aioredis

_RELEASE_IF_OWNER = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


class LeaseNotAcquired(RuntimeError):
    pass


class SweepLease:
    def __init__(self, client: aioredis.Redis, name: str, ttl_seconds: int = 300):
        self.redis = client
        self.key = f"lease:{name}"
        self.ttl_ms = int(ttl_seconds * 1000)
        self.token = uuid.uuid4().hex
        self.held = False

    async def acquire(self) -> bool:
        """Take the lease if nobody holds it."""
        self.held = bool(
            await self.redis.set(self.key, self.token, nx=True, px=self.ttl_ms)
        )
        return self.held

    async def release(self) -> None:
        if not self.held:
            return
        await self.redis.eval(_RELEASE_IF_OWNER, 1, self.key, self.token)
        self.held = False

    async def __aenter__(self) -> "SweepLease":
        if not await self.acquire():
            raise LeaseNotAcquired(f"Lease {self.key} is held by another process")
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.release()
