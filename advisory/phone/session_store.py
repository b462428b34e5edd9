"""
OTP Session Store

Holds at most one session per normalized phone key. All read-modify-write
sequences on a key must run inside `lock(key)`.
"""

import asyncio
import json
import logging
import time
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager, contextmanager
from dataclasses import asdict, dataclass
from typing import AsyncIterator, Callable, Dict, Iterator, Optional

from redis.exceptions import RedisError

from advisory.config import Settings

logger = logging.getLogger(__name__)


class SessionStoreError(Exception):
    """Backing store could not be read, written or locked"""
    pass


@dataclass
class OTPSession:
    key: str
    last_sent_at: float
    otp_expires_at: float
    attempts: int = 0

    def is_expired(self, now: float) -> bool:
        return now > self.otp_expires_at


class SessionStore(ABC):
    """Key -> OTPSession mapping with per-key mutual exclusion"""

    @abstractmethod
    async def get(self, key: str) -> Optional[OTPSession]:
        pass

    @abstractmethod
    async def put(self, session: OTPSession) -> None:
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        pass

    @abstractmethod
    def lock(self, key: str):
        """Async context manager serializing mutations of one key"""
        pass


# ---------------------------------------------------------
# In-Memory Store (single process)
# ---------------------------------------------------------
class _KeyLock:
    __slots__ = ("lock", "holders")

    def __init__(self):
        self.lock = asyncio.Lock()
        self.holders = 0


class InMemorySessionStore(SessionStore):
    """
    Process-local store. Sessions are lost on restart, which only forces the
    caller to request a new code.

    Codes that are never verified would otherwise stay forever, so `put`
    drops expired sessions at most once per `sweep_interval` seconds.
    """

    def __init__(self, clock: Callable[[], float] = time.time, sweep_interval: float = 60.0):
        self.clock = clock
        self.sweep_interval = sweep_interval
        self._sessions: Dict[str, OTPSession] = {}
        self._locks: Dict[str, _KeyLock] = {}
        self._next_sweep_at = 0.0

    async def get(self, key: str) -> Optional[OTPSession]:
        session = self._sessions.get(key)
        # hand out a copy so callers only change state through put()
        return OTPSession(**asdict(session)) if session else None

    async def put(self, session: OTPSession) -> None:
        self._sweep_expired()
        self._sessions[session.key] = OTPSession(**asdict(session))

    async def delete(self, key: str) -> None:
        self._sessions.pop(key, None)

    def _sweep_expired(self) -> None:
        now = self.clock()
        if now < self._next_sweep_at:
            return
        self._next_sweep_at = now + self.sweep_interval

        expired = [key for key, session in self._sessions.items() if session.is_expired(now)]
        for key in expired:
            del self._sessions[key]

        if expired:
            logger.info(f"Dropped {len(expired)} expired OTP sessions")

    @asynccontextmanager
    async def lock(self, key: str) -> AsyncIterator[None]:
        entry = self._locks.get(key)
        if entry is None:
            entry = self._locks[key] = _KeyLock()

        entry.holders += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.holders -= 1
            if entry.holders == 0:
                self._locks.pop(key, None)

    def __len__(self) -> int:
        return len(self._sessions)


# ---------------------------------------------------------
# Redis Store (multi process)
# ---------------------------------------------------------
@contextmanager
def _redis_errors(action: str) -> Iterator[None]:
    try:
        yield
    except (RedisError, OSError) as e:
        raise SessionStoreError(f"Redis {action} failed: {e}") from e


class RedisSessionStore(SessionStore):
    """
    Sessions stored as JSON with a TTL matching the code expiry, so stale
    sessions disappear without a sweeper. Connection and lock failures are
    raised as SessionStoreError.
    """

    SESSION_PREFIX = "otp:session:"
    LOCK_PREFIX = "otp:lock:"

    def __init__(self, redis_client, lock_timeout: float = 30.0, clock: Callable[[], float] = time.time):
        """
        Args:
            redis_client: Async Redis client (redis.asyncio.Redis)
            lock_timeout: Seconds after which an abandoned key lock is released,
                also the longest a caller waits to acquire it
            clock: Epoch-seconds source used to derive key TTLs
        """
        self.redis = redis_client
        self.lock_timeout = lock_timeout
        self.clock = clock

    async def get(self, key: str) -> Optional[OTPSession]:
        with _redis_errors("get"):
            raw = await self.redis.get(self.SESSION_PREFIX + key)
        if raw is None:
            return None

        try:
            return OTPSession(**json.loads(raw))
        except (ValueError, TypeError) as e:
            logger.error(f"Discarding unreadable OTP session: {e}")
            await self.delete(key)
            return None

    async def put(self, session: OTPSession) -> None:
        ttl_ms = max(1, int((session.otp_expires_at - self.clock()) * 1000))
        with _redis_errors("set"):
            await self.redis.set(
                self.SESSION_PREFIX + session.key,
                json.dumps(asdict(session)),
                px=ttl_ms,
            )

    async def delete(self, key: str) -> None:
        with _redis_errors("delete"):
            await self.redis.delete(self.SESSION_PREFIX + key)

    @asynccontextmanager
    async def lock(self, key: str) -> AsyncIterator[None]:
        with _redis_errors("lock acquire"):
            redis_lock = self.redis.lock(
                self.LOCK_PREFIX + key,
                timeout=self.lock_timeout,
                blocking_timeout=self.lock_timeout,
            )
            acquired = await redis_lock.acquire()
        if not acquired:
            raise SessionStoreError(f"Timed out waiting for OTP session lock after {self.lock_timeout}s")

        try:
            yield
        finally:
            with _redis_errors("lock release"):
                await redis_lock.release()


# ---------------------------------------------------------
# Factory
# ---------------------------------------------------------
def build_session_store(settings: Settings) -> SessionStore:
    backend = settings.otp_session_backend.lower()

    if backend == "memory":
        logger.info("Using in-memory OTP session store")
        return InMemorySessionStore()

    if backend == "redis":
        if not settings.redis_url:
            raise ValueError("REDIS_URL is required for the redis OTP session store")

        from redis import asyncio as aioredis

        logger.info("Using Redis OTP session store")
        client = aioredis.from_url(settings.redis_url, decode_responses=True)
        return RedisSessionStore(client, lock_timeout=settings.redis_lock_timeout_seconds)

    raise ValueError(f"Unknown OTP session backend: {backend}. Must be one of: memory, redis")
