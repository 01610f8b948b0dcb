"""Per-user response caching with TTL and mutation-driven invalidation."""

from .cache import (
    DEFAULT_MAX_ENTRIES,
    DEFAULT_TTL,
    CacheConfig,
    CacheEntry,
    CacheManager,
    GlobalCacheStats,
    UserCache,
    UserCacheStats,
    get_manager,
    make_cache_key,
    reset_manager,
    set_manager,
)
from .policy import MUTATION_INVALIDATIONS, invalidated_by

__all__ = [
    "CacheEntry",
    "UserCache",
    "UserCacheStats",
    "GlobalCacheStats",
    "CacheConfig",
    "CacheManager",
    "make_cache_key",
    "get_manager",
    "set_manager",
    "reset_manager",
    "MUTATION_INVALIDATIONS",
    "invalidated_by",
    "DEFAULT_TTL",
    "DEFAULT_MAX_ENTRIES",
]
