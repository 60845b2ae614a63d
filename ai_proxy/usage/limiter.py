"""Per-project AI usage limits.

Two operations back the forwarding pipeline: a read-only pre-check before
dispatch, and an increment after a response has been relayed. The check and
the increment are not atomic as a pair; only the increment itself is.
"""

import threading
from abc import ABC, abstractmethod
from collections import OrderedDict, defaultdict
from enum import Enum


class UsageType(str, Enum):
    AI_TOKENS = "ai_tokens"


class UsageLimiter(ABC):
    """Abstract base for usage counter stores."""

    @abstractmethod
    async def check_exceeded(self, project_id: str, kind: UsageType = UsageType.AI_TOKENS) -> bool:
        """Return True when the project's usage meets or exceeds its limit."""
        ...

    @abstractmethod
    async def increment(
        self,
        project_id: str,
        amount: int,
        kind: UsageType = UsageType.AI_TOKENS,
        platform_id: str | None = None,
        idempotency_key: str | None = None,
    ) -> None:
        """Add ``amount`` to the project counter and the platform aggregate.

        A repeated call with the same ``idempotency_key`` is applied once.
        """
        ...


class InMemoryUsageLimiter(UsageLimiter):
    """Process-local counters. Suitable for a single worker and for tests."""

    MAX_TRACKED_KEYS = 10_000

    def __init__(self, default_limit: int | None = None, limits: dict[str, int] | None = None):
        self._default_limit = default_limit
        self._limits: dict[str, int] = dict(limits or {})
        self._project_usage: dict[tuple[str, UsageType], int] = defaultdict(int)
        self._platform_usage: dict[tuple[str, UsageType], int] = defaultdict(int)
        self._applied: OrderedDict[str, None] = OrderedDict()
        self._lock = threading.Lock()

    def set_limit(self, project_id: str, limit: int) -> None:
        self._limits[project_id] = limit

    def get_usage(self, project_id: str, kind: UsageType = UsageType.AI_TOKENS) -> int:
        return self._project_usage.get((project_id, kind), 0)

    def get_platform_usage(self, platform_id: str, kind: UsageType = UsageType.AI_TOKENS) -> int:
        return self._platform_usage.get((platform_id, kind), 0)

    async def check_exceeded(self, project_id: str, kind: UsageType = UsageType.AI_TOKENS) -> bool:
        limit = self._limits.get(project_id, self._default_limit)
        if limit is None:
            return False
        return self.get_usage(project_id, kind) >= limit

    async def increment(
        self,
        project_id: str,
        amount: int,
        kind: UsageType = UsageType.AI_TOKENS,
        platform_id: str | None = None,
        idempotency_key: str | None = None,
    ) -> None:
        with self._lock:
            if idempotency_key is not None:
                if idempotency_key in self._applied:
                    return
                self._applied[idempotency_key] = None
                if len(self._applied) > self.MAX_TRACKED_KEYS:
                    self._applied.popitem(last=False)

            self._project_usage[(project_id, kind)] += amount
            if platform_id:
                self._platform_usage[(platform_id, kind)] += amount
