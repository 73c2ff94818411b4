"""Response cache stores.

- MemoryCacheStore: process-local, inspectable (keys / get_entry)
- RedisCacheStore: shared Redis backend, selected by ``cache.redis_url``
"""

from prc_client.config import CacheConfig

from ..exceptions import PRCConfigurationError
from .base import CacheEntry, CacheLookup, CacheStore, InspectableCacheStore
from .memory import MemoryCacheStore


def create_cache_store(config: CacheConfig) -> CacheStore:
    """Build the cache backend described by ``config``.

    Raises:
        PRCConfigurationError: If Redis is requested but ``redis`` is not installed
    """
    if config.redis_url:
        try:
            from .redis_store import RedisCacheStore
        except ImportError as e:
            raise PRCConfigurationError(
                "cache.redis_url is set but the 'redis' package is not installed "
                "(pip install 'prc-client[redis]')"
            ) from e
        return RedisCacheStore.from_url(
            config.redis_url,
            prefix=config.prefix,
            redis_key_prefix=config.redis_key_prefix,
        )
    return MemoryCacheStore(prefix=config.prefix, max_items=config.max_items)


__all__ = [
    "CacheEntry",
    "CacheLookup",
    "CacheStore",
    "InspectableCacheStore",
    "MemoryCacheStore",
    "create_cache_store",
]
