"""Per-user, per-instance response caching with TTL support.

Two levels: a registry keyed by (user_id, instance_id) holding one UserCache
each, and inside a UserCache entries keyed "tool:subkey". Users never see each
other's entries; invalidating a tool is a prefix delete on "tool:".

Each UserCache has its own lock; the manager's lock guards only the registry.

Example:
    >>> manager = CacheManager(CacheConfig(max_entries_per_user=50))
    >>> manager.set("u-1", "inst-1", "list_alerts", "all", [{"id": "a1"}])
    >>> manager.get("u-1", "inst-1", "list_alerts", "all")
    [{'id': 'a1'}]
    >>> manager.get("u-2", "inst-1", "list_alerts", "all") is None
    True
"""

from __future__ import annotations

import hashlib
import threading
import time
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, replace
from types import MappingProxyType
from typing import TYPE_CHECKING, Callable, Generic, TypeVar

import orjson
from pydantic import BaseModel

from logbridge.foundation.config import DEFAULT_TOOL_TTLS
from logbridge.runtime.observability import get_logger

from .policy import invalidated_by

if TYPE_CHECKING:
    from collections.abc import Awaitable

    from logbridge.foundation.config import CacheSettings

DEFAULT_TTL: float = 300.0
DEFAULT_MAX_ENTRIES: int = 100
T = TypeVar("T")

log = get_logger("logbridge.cache")

Clock = Callable[[], float]


@dataclass(slots=True)
class CacheEntry(Generic[T]):
    """A cached value with creation/expiry timestamps and a hit counter."""
    value: T
    created_at: float
    expires_at: float
    hit_count: int = 0

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


@dataclass(frozen=True, slots=True)
class UserCacheStats:
    size: int
    max_size: int
    total_hits: int
    expired_count: int

    def as_dict(self) -> dict[str, object]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class GlobalCacheStats:
    user_cache_count: int
    total_entries: int
    total_hits: int
    enabled: bool

    def as_dict(self) -> dict[str, object]:
        return asdict(self)


class UserCache(Generic[T]):
    """Bounded TTL cache for one (user, instance) pair.

    Capacity pressure first drops expired entries, then the single entry with
    the oldest creation time. Overwriting an existing key never evicts.

    Args:
        max_size: Maximum resident entries after any set()
        clock: Time source in seconds (monotonic by default)
    """

    __slots__ = ("_entries", "_max_size", "_clock", "_lock")

    def __init__(self, max_size: int = DEFAULT_MAX_ENTRIES, *, clock: Clock = time.monotonic) -> None:
        if max_size <= 0:
            raise ValueError(f"max_size must be positive, got {max_size}")
        self._entries: dict[str, CacheEntry[T]] = {}
        self._max_size = max_size
        self._clock = clock
        self._lock = threading.Lock()

    @property
    def max_size(self) -> int:
        return self._max_size

    def get(self, key: str, default: T | None = None) -> T | None:
        """Value for `key`, or `default` when absent or expired (expired entries are dropped)."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            if entry.is_expired(self._clock()):
                del self._entries[key]
                return default
            entry.hit_count += 1
            return entry.value

    def entry(self, key: str) -> CacheEntry[T] | None:
        """Raw entry for inspection, expired or not. Does not count as a hit."""
        with self._lock:
            return self._entries.get(key)

    def set(self, key: str, value: T, ttl: float) -> None:
        now = self._clock()
        with self._lock:
            if key in self._entries:
                # Re-insert so dict order keeps tracking creation order.
                del self._entries[key]
            elif len(self._entries) >= self._max_size:
                self._evict_expired_locked(now)
                if len(self._entries) >= self._max_size:
                    self._evict_oldest_locked()
            self._entries[key] = CacheEntry(value=value, created_at=now, expires_at=now + ttl)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def delete_by_prefix(self, prefix: str) -> int:
        """Remove every key starting with `prefix`. Returns count removed."""
        with self._lock:
            keys = [k for k in self._entries if k.startswith(prefix)]
            for key in keys:
                del self._entries[key]
            return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def stats(self) -> UserCacheStats:
        now = self._clock()
        with self._lock:
            return UserCacheStats(
                size=len(self._entries),
                max_size=self._max_size,
                total_hits=sum(e.hit_count for e in self._entries.values()),
                expired_count=sum(1 for e in self._entries.values() if e.is_expired(now)),
            )

    def _evict_expired_locked(self, now: float) -> None:
        for key in [k for k, e in self._entries.items() if e.is_expired(now)]:
            del self._entries[key]

    def _evict_oldest_locked(self) -> None:
        if self._entries:
            # min() keeps the first of equal timestamps, i.e. the earliest inserted.
            oldest = min(self._entries, key=lambda k: self._entries[k].created_at)
            del self._entries[oldest]


@dataclass(slots=True)
class CacheConfig:
    """Manager configuration. `enabled` may be flipped at runtime."""
    max_entries_per_user: int = DEFAULT_MAX_ENTRIES
    default_ttl: float = DEFAULT_TTL
    ttl_by_tool: Mapping[str, float] = field(default_factory=lambda: MappingProxyType(dict(DEFAULT_TOOL_TTLS)))
    enabled: bool = True

    @classmethod
    def from_settings(cls, settings: CacheSettings) -> CacheConfig:
        return cls(
            max_entries_per_user=settings.max_entries_per_user,
            default_ttl=settings.default_ttl,
            ttl_by_tool=MappingProxyType(dict(settings.ttl_by_tool)),
            enabled=settings.enabled,
        )


UserKey = tuple[str, str]


def _entry_key(tool: str, key: str) -> str:
    return f"{tool}:{key}"


def make_cache_key(params: BaseModel | Mapping[str, object] | None) -> str:
    """Stable short key for a parameter set (order-insensitive)."""
    if params is None:
        return "default"
    data = params.model_dump(mode="json") if isinstance(params, BaseModel) else dict(params)
    raw = orjson.dumps(data, option=orjson.OPT_SORT_KEYS | orjson.OPT_NON_STR_KEYS, default=str)
    return hashlib.md5(raw, usedforsecurity=False).hexdigest()[:12]


class CacheManager:
    """Registry of UserCaches keyed by (user_id, instance_id).

    Get/set are no-ops while disabled and allocate nothing. Read-side helpers
    (stats, clear, invalidate) never create a user cache.
    """

    __slots__ = ("_config", "_caches", "_lock", "_clock")

    def __init__(self, config: CacheConfig | None = None, *, clock: Clock = time.monotonic) -> None:
        # Own copy: set_enabled() must not reach other managers built from the same config.
        self._config = replace(config) if config is not None else CacheConfig()
        self._caches: dict[UserKey, UserCache[object]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: CacheSettings) -> CacheManager:
        return cls(CacheConfig.from_settings(settings))

    @property
    def config(self) -> CacheConfig:
        return self._config

    def user_cache(self, user_id: str, instance_id: str) -> UserCache[object]:
        """Get or lazily create the cache for (user_id, instance_id)."""
        key = (user_id, instance_id)
        if (cache := self._caches.get(key)) is not None:
            return cache
        with self._lock:
            if (cache := self._caches.get(key)) is None:
                cache = UserCache(self._config.max_entries_per_user, clock=self._clock)
                self._caches[key] = cache
                log.debug("user cache created", user_id=user_id, instance_id=instance_id)
            return cache

    def _existing(self, user_id: str, instance_id: str) -> UserCache[object] | None:
        return self._caches.get((user_id, instance_id))

    def ttl_for(self, tool: str) -> float:
        return self._config.ttl_by_tool.get(tool, self._config.default_ttl)

    def get(self, user_id: str, instance_id: str, tool: str, key: str) -> object | None:
        if not self._config.enabled:
            return None
        return self.user_cache(user_id, instance_id).get(_entry_key(tool, key))

    def set(self, user_id: str, instance_id: str, tool: str, key: str, value: object) -> None:
        if not self._config.enabled:
            return
        self.user_cache(user_id, instance_id).set(_entry_key(tool, key), value, self.ttl_for(tool))

    async def get_or_fetch(
        self,
        user_id: str,
        instance_id: str,
        tool: str,
        key: str,
        fetch: Callable[[], Awaitable[T]],
    ) -> T:
        """Cache-through: cached value on hit, else await fetch() and store its result.

        Exceptions from fetch() propagate and nothing is stored.
        """
        if (cached := self.get(user_id, instance_id, tool, key)) is not None:
            return cached  # type: ignore[return-value]
        value = await fetch()
        self.set(user_id, instance_id, tool, key, value)
        return value

    def invalidate_tool(self, user_id: str, instance_id: str, tool: str) -> int:
        if (cache := self._existing(user_id, instance_id)) is None:
            return 0
        return cache.delete_by_prefix(f"{tool}:")

    def invalidate_related(self, user_id: str, instance_id: str, mutation_tool: str) -> int:
        """Purge every tool the mutation makes stale. Returns total entries removed."""
        removed = sum(self.invalidate_tool(user_id, instance_id, t) for t in invalidated_by(mutation_tool))
        if removed:
            log.debug("cache invalidated", mutation=mutation_tool, removed=removed,
                      user_id=user_id, instance_id=instance_id)
        return removed

    def clear_user(self, user_id: str, instance_id: str) -> None:
        if (cache := self._existing(user_id, instance_id)) is not None:
            cache.clear()

    def stats(self, user_id: str, instance_id: str) -> dict[str, object]:
        cache = self._existing(user_id, instance_id)
        base = cache.stats() if cache is not None else UserCacheStats(0, self._config.max_entries_per_user, 0, 0)
        return {**base.as_dict(), "user_id": user_id, "instance_id": instance_id, "enabled": self._config.enabled}

    def global_stats(self) -> GlobalCacheStats:
        with self._lock:
            per_user = [c.stats() for c in self._caches.values()]
        return GlobalCacheStats(
            user_cache_count=len(per_user),
            total_entries=sum(s.size for s in per_user),
            total_hits=sum(s.total_hits for s in per_user),
            enabled=self._config.enabled,
        )

    def set_enabled(self, enabled: bool) -> None:
        self._config.enabled = enabled

    def is_enabled(self) -> bool:
        return self._config.enabled


# Process-wide default manager
_manager: CacheManager | None = None
_manager_lock = threading.Lock()


def get_manager() -> CacheManager:
    """Get the default manager, built from get_settings().cache on first use."""
    global _manager
    if _manager is None:
        with _manager_lock:
            if _manager is None:
                from logbridge.foundation.config import get_settings
                _manager = CacheManager.from_settings(get_settings().cache)
    return _manager


def set_manager(manager: CacheManager) -> None:
    global _manager
    with _manager_lock:
        _manager = manager


def reset_manager() -> None:
    """Drop the default manager (useful for testing)."""
    global _manager
    with _manager_lock:
        _manager = None
