import time
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import ParamSpec, TypeVar

from prometheus_client import Counter, Histogram


TRANSACTION_REQUESTS_TOTAL = Counter(
    "ledger_transaction_requests_total",
    "Total number of transaction creation requests",
    ["status", "error_code"],
)

ACCOUNT_REQUESTS_TOTAL = Counter(
    "ledger_account_requests_total",
    "Total number of account creation requests",
    ["status", "error_code"],
)

IDEMPOTENCY_LOOKUPS_TOTAL = Counter(
    "ledger_idempotency_lookups_total",
    "Idempotency cache lookups by outcome",
    ["result"],
)

IDEMPOTENCY_KEYS_EVICTED_TOTAL = Counter(
    "ledger_idempotency_keys_evicted_total",
    "Expired idempotency keys removed by the sweeper",
)

TRANSACTION_DURATION_SECONDS = Histogram(
    "ledger_transaction_duration_seconds",
    "Transaction creation duration",
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)


P = ParamSpec("P")
R = TypeVar("R")


def track_transaction_duration(
    func: Callable[P, Awaitable[R]],
) -> Callable[P, Awaitable[R]]:
    @wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        start = time.perf_counter()
        try:
            return await func(*args, **kwargs)
        finally:
            duration = time.perf_counter() - start
            TRANSACTION_DURATION_SECONDS.observe(duration)

    return wrapper
