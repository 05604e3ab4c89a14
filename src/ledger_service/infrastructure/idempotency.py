import asyncio
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Protocol

import structlog

from ledger_service.domain.models import IdempotencyRecord, IdempotencyStatus
from ledger_service.infrastructure.metrics import IDEMPOTENCY_KEYS_EVICTED_TOTAL


if TYPE_CHECKING:
    import redis.asyncio as redis

logger = structlog.get_logger()

Clock = Callable[[], datetime]

DEFAULT_TTL = timedelta(minutes=15)


def utc_now() -> datetime:
    return datetime.now(UTC)


class IdempotencyCache(Protocol):
    async def check_and_reserve(self, key: str) -> IdempotencyRecord | None:
        """Return the live record for ``key``, or reserve it and return None."""
        ...

    async def store(self, key: str, transaction_id: str) -> None: ...

    async def release(self, key: str) -> None: ...

    async def sweep_expired(self) -> int: ...


class InMemoryIdempotencyCache:
    """Process-local idempotency cache.

    Records live for ``ttl`` from the moment they are written, measured with
    the injected ``clock``. Expired records are dropped on every access and by
    ``sweep_expired``.
    """

    def __init__(self, ttl: timedelta = DEFAULT_TTL, clock: Clock = utc_now) -> None:
        self._ttl = ttl
        self._clock = clock
        self._records: dict[str, IdempotencyRecord] = {}
        self._lock = asyncio.Lock()

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def __len__(self) -> int:
        return len(self._records)

    async def check_and_reserve(self, key: str) -> IdempotencyRecord | None:
        async with self._lock:
            now = self._clock()
            self._evict_expired(now)

            existing = self._records.get(key)
            if existing is not None:
                return existing

            self._records[key] = IdempotencyRecord(
                key=key,
                status=IdempotencyStatus.PENDING,
                created_at=now,
                expires_at=now + self._ttl,
            )
            return None

    async def store(self, key: str, transaction_id: str) -> None:
        async with self._lock:
            now = self._clock()
            self._records[key] = IdempotencyRecord(
                key=key,
                status=IdempotencyStatus.COMPLETED,
                transaction_id=transaction_id,
                created_at=now,
                expires_at=now + self._ttl,
            )

    async def release(self, key: str) -> None:
        async with self._lock:
            record = self._records.get(key)
            if record is not None and record.status is IdempotencyStatus.PENDING:
                del self._records[key]

    async def sweep_expired(self) -> int:
        async with self._lock:
            return self._evict_expired(self._clock())

    def _evict_expired(self, now: datetime) -> int:
        expired = [
            key
            for key, record in self._records.items()
            if record.expires_at is not None and record.expires_at <= now
        ]
        for key in expired:
            del self._records[key]
        return len(expired)


# Deletes the key only while it still holds a reservation, never a completed result.
RELEASE_PENDING_SCRIPT = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
end
return 0
"""


class RedisIdempotencyCache:
    """Idempotency cache shared by every process talking to the same Redis.

    Reservation is a single ``SET NX PX`` so only one caller can win a key.
    Redis expires keys itself, so there is nothing to sweep.
    """

    PENDING_VALUE = "PENDING"
    COMPLETED_PREFIX = "COMPLETED:"
    MAX_RESERVE_ATTEMPTS = 3

    def __init__(
        self,
        redis_client: "redis.Redis[bytes]",
        ttl: timedelta = DEFAULT_TTL,
        key_prefix: str = "idempotency:transactions:",
    ) -> None:
        self._redis = redis_client
        self._ttl = ttl
        self._key_prefix = key_prefix

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    @property
    def _ttl_ms(self) -> int:
        return int(self._ttl.total_seconds() * 1000)

    async def check_and_reserve(self, key: str) -> IdempotencyRecord | None:
        redis_key = f"{self._key_prefix}{key}"

        for _ in range(self.MAX_RESERVE_ATTEMPTS):
            reserved = await self._redis.set(redis_key, self.PENDING_VALUE, nx=True, px=self._ttl_ms)
            if reserved:
                return None

            raw = await self._redis.get(redis_key)
            if raw is not None:
                return self._decode(key, raw)
            # The key expired between SET NX and GET; try to claim it again.

        logger.warning("idempotency_reserve_contended", key=key)
        return IdempotencyRecord(key=key, status=IdempotencyStatus.PENDING)

    async def store(self, key: str, transaction_id: str) -> None:
        await self._redis.set(
            f"{self._key_prefix}{key}",
            f"{self.COMPLETED_PREFIX}{transaction_id}",
            px=self._ttl_ms,
        )

    async def release(self, key: str) -> None:
        await self._redis.eval(RELEASE_PENDING_SCRIPT, 1, f"{self._key_prefix}{key}", self.PENDING_VALUE)

    async def sweep_expired(self) -> int:
        return 0

    def _decode(self, key: str, raw: bytes | str) -> IdempotencyRecord:
        value = raw.decode("utf-8") if isinstance(raw, bytes) else raw
        if value.startswith(self.COMPLETED_PREFIX):
            return IdempotencyRecord(
                key=key,
                status=IdempotencyStatus.COMPLETED,
                transaction_id=value.removeprefix(self.COMPLETED_PREFIX),
            )
        return IdempotencyRecord(key=key, status=IdempotencyStatus.PENDING)


class IdempotencySweeper:
    """Background task that periodically evicts expired idempotency records."""

    def __init__(self, cache: IdempotencyCache, interval_seconds: float = 300.0) -> None:
        self._cache = cache
        self._interval = interval_seconds
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        self._running = True
        logger.info("idempotency_sweeper_started", interval_seconds=self._interval)
        while self._running:
            await self.sweep_once()
            await asyncio.sleep(self._interval)

    async def sweep_once(self) -> int:
        try:
            evicted = await self._cache.sweep_expired()
        except Exception as e:
            logger.error("idempotency_sweep_error", error=str(e), exc_info=True)
            return 0

        if evicted:
            IDEMPOTENCY_KEYS_EVICTED_TOTAL.inc(evicted)
            logger.info("idempotency_keys_evicted", count=evicted)
        return evicted

    async def stop(self) -> None:
        self._running = False
        logger.info("idempotency_sweeper_stopped")
