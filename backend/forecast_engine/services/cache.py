from __future__ import annotations

import copy
import time
from collections import OrderedDict
from datetime import date
from typing import Any, Awaitable, Callable, Hashable, Iterable, Optional, Tuple, TypeVar

import anyio

from forecast_engine.config import Settings, get_settings
from forecast_engine.observability.metrics import record_cache

T = TypeVar("T")

_MISS = object()


# ---------- Keys ----------
# Plain strings built from identities and ISO dates: stable across processes.

def generate_key(user_id: int, config_id: Optional[int], start_date: date, horizon_days: int) -> str:
    return f"gen:{user_id}:{config_id}:{start_date.isoformat()}:{horizon_days}"


def backtest_key(
    user_id: int, config_id: Optional[int], start_date: date, horizon_days: int, lookback_days: int
) -> str:
    return f"bt:{user_id}:{config_id}:{start_date.isoformat()}:{horizon_days}:{lookback_days}"


def batch_key(user_id: int, config_ids: Iterable[Optional[int]], start_date: date, horizon_days: int) -> str:
    ids = ",".join(str(i) for i in sorted(-1 if i is None else int(i) for i in config_ids))
    return f"batch:{user_id}:{start_date.isoformat()}:{horizon_days}:[{ids}]"


class _InFlight:
    __slots__ = ("event", "ok", "value", "error")

    def __init__(self) -> None:
        self.event = anyio.Event()
        self.ok = False
        self.value: Any = None
        self.error: Optional[BaseException] = None


class ResultCache:
    """
    Async memoizer for engine operations.

    Entries expire after ``ttl_seconds`` and the least recently used entry is
    evicted beyond ``max_entries``. Concurrent callers with the same key share
    one in-flight computation. Failures are never stored.

    Every caller gets its own shallow copy of the stored container, so
    reordering or appending to a result never touches the cached entry. The
    items inside (persisted rows) are shared.
    """

    def __init__(
        self,
        *,
        max_entries: int = 512,
        ttl_seconds: float = 900.0,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_entries = max(1, int(max_entries))
        self.ttl_seconds = float(ttl_seconds)
        self.enabled = enabled
        self._clock = clock
        self._entries: "OrderedDict[Hashable, Tuple[float, Any]]" = OrderedDict()
        self._inflight: dict[Hashable, _InFlight] = {}

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "ResultCache":
        s = settings or get_settings()
        return cls(
            max_entries=s.CACHE_MAX_ENTRIES,
            ttl_seconds=s.CACHE_TTL_SECONDS,
            enabled=s.CACHE_ENABLED,
        )

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return self._lookup(key, touch=False) is not _MISS

    def _lookup(self, key: Hashable, *, touch: bool = True) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return _MISS
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return _MISS
        if touch:
            self._entries.move_to_end(key)
        return value

    def _store(self, key: Hashable, value: Any) -> None:
        self._entries[key] = (self._clock() + self.ttl_seconds, value)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def invalidate(self, key: Hashable | None = None) -> None:
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    async def get_or_compute(self, key: Hashable, factory: Callable[[], Awaitable[T]]) -> T:
        if not self.enabled:
            return await factory()

        cached = self._lookup(key)
        if cached is not _MISS:
            record_cache("hit")
            return copy.copy(cached)

        pending = self._inflight.get(key)
        if pending is not None:
            record_cache("coalesced")
            await pending.event.wait()
            if pending.ok:
                return copy.copy(pending.value)
            if isinstance(pending.error, Exception):
                raise pending.error
            # the owner was cancelled; compute on our own
            return await self.get_or_compute(key, factory)

        record_cache("miss")
        pending = _InFlight()
        self._inflight[key] = pending
        try:
            value = await factory()
        except BaseException as exc:
            pending.error = exc
            raise
        else:
            pending.ok = True
            pending.value = value
            self._store(key, value)
            return copy.copy(value)
        finally:
            self._inflight.pop(key, None)
            pending.event.set()


__all__ = ["ResultCache", "generate_key", "backtest_key", "batch_key"]
