"""
Rate Limiter

Sliding-window attempt counter with lockout, keyed by "<key_prefix>:<identifier>".

Business Rules:
- An active lockout rejects every attempt until it elapses
- A window opens on the first attempt; attempts after it elapses start a new one
- Exceeding max_attempts inside a window locks the key for lockout_ms
- Lockout dominates the window: an elapsed window does not lift a lockout
- Read-modify-write of a counter is serialized per key by the store
- The attempt that trips a lockout is reported with ``locked_now`` in the error details
"""

import asyncio
import logging
import math
import time
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Callable, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from account_security.domain.entities import ErrorCode
from account_security.libs.result import Result, Return
from .security_errors import client_error

logger = logging.getLogger(__name__)


class RateLimitConfig(BaseModel):
    """Limits for one protected action. Accepts camelCase keys as well."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    max_attempts: int = Field(..., gt=0, alias="maxAttempts")
    window_ms: int = Field(..., gt=0, alias="windowMs")
    lockout_ms: int = Field(..., ge=0, alias="lockoutMs")
    key_prefix: str = Field(..., min_length=1, alias="keyPrefix")


@dataclass
class RateLimitEntry:
    count: int
    window_start: float
    locked_until: Optional[float] = None


@dataclass(frozen=True)
class RateLimitStatus:
    limit: int
    remaining: int
    reset_at: float


class RateLimitStore(ABC):
    """Mapping of key -> RateLimitEntry with per-key mutual exclusion"""

    @abstractmethod
    async def get(self, key: str) -> Optional[RateLimitEntry]:
        pass

    @abstractmethod
    async def set(self, key: str, entry: RateLimitEntry) -> None:
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        pass

    @abstractmethod
    def lock(self, key: str):
        """Async context manager held across a read-modify-write of ``key``"""
        pass


class InMemoryRateLimitStore(RateLimitStore):
    """Process-local store. Counters are not shared between workers or restarts."""

    def __init__(self):
        self._entries: Dict[str, RateLimitEntry] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        # Coroutines holding or waiting on each lock; a lock is dropped when this reaches zero
        self._lock_users: Dict[str, int] = {}

    async def get(self, key: str) -> Optional[RateLimitEntry]:
        return self._entries.get(key)

    async def set(self, key: str, entry: RateLimitEntry) -> None:
        self._entries[key] = entry

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    @asynccontextmanager
    async def lock(self, key: str) -> AsyncIterator[None]:
        key_lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with key_lock:
                yield
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._locks[key]

    def prune(self, now: float, max_age: float) -> int:
        """Drop entries whose window started more than max_age seconds ago and are not locked"""
        stale = [
            key
            for key, entry in self._entries.items()
            if now - entry.window_start > max_age
            and (entry.locked_until is None or entry.locked_until <= now)
        ]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def __len__(self) -> int:
        return len(self._entries)


class RateLimiter:
    def __init__(self, store: RateLimitStore, clock: Callable[[], float] = time.time):
        self.store = store
        self.clock = clock

    @staticmethod
    def build_key(identifier: str, key_prefix: str) -> str:
        return f"{key_prefix}:{identifier}"

    async def check_rate_limit(
        self, identifier: str, config: RateLimitConfig
    ) -> Result[RateLimitStatus]:
        """
        Count one attempt for ``identifier`` under ``config``.

        Returns:
            Result with the remaining budget, or Error RATE_LIMITED whose
            details carry ``retry_after`` in whole seconds and, on the attempt
            that starts the lockout, ``locked_now``
        """
        key = self.build_key(identifier, config.key_prefix)
        window = config.window_ms / 1000
        lockout = config.lockout_ms / 1000

        async with self.store.lock(key):
            now = self.clock()
            entry = await self.store.get(key)

            if entry is not None and entry.locked_until is not None:
                if entry.locked_until > now:
                    return self._locked(config.key_prefix, entry.locked_until - now)
                # Lockout elapsed
                entry = None

            if entry is None or now - entry.window_start > window:
                entry = RateLimitEntry(count=1, window_start=now)
            else:
                entry.count += 1

            if entry.count > config.max_attempts:
                entry.locked_until = now + lockout
                await self.store.set(key, entry)
                return self._locked(config.key_prefix, lockout, locked_now=True)

            await self.store.set(key, entry)

        return Return.ok(
            RateLimitStatus(
                limit=config.max_attempts,
                remaining=config.max_attempts - entry.count,
                reset_at=entry.window_start + window,
            )
        )

    async def clear_rate_limit(self, identifier: str, key_prefix: Optional[str] = None) -> None:
        """Forget all attempts for ``identifier`` (or a full key when no prefix is given)"""
        key = identifier if key_prefix is None else self.build_key(identifier, key_prefix)
        async with self.store.lock(key):
            await self.store.delete(key)

    def _locked(
        self, key_prefix: str, remaining_seconds: float, locked_now: bool = False
    ) -> Result[RateLimitStatus]:
        retry_after = max(1, math.ceil(remaining_seconds))
        error = client_error(ErrorCode.RATE_LIMITED, retry_after=retry_after)
        if locked_now:
            logger.info(f"Lockout started for {key_prefix}, retry after {retry_after}s")
            error.details["locked_now"] = True
        else:
            logger.info(f"Rate limit active for {key_prefix}, retry after {retry_after}s")
        return Return.err(error)
