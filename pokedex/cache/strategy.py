"""
Cache-loading policies: decide whether a loader reads the cache on construction.
"""
from abc import ABC, abstractmethod


class CacheLoadingStrategy(ABC):
    """Policy consulted once when a list loader is created."""

    @property
    @abstractmethod
    def should_load_cache_on_init(self) -> bool:
        pass


class DefaultCacheLoadingStrategy(CacheLoadingStrategy):
    """Production behaviour: load (or fetch) as soon as the loader exists."""

    @property
    def should_load_cache_on_init(self) -> bool:
        return True


class NoCacheLoadingStrategy(CacheLoadingStrategy):
    """Never loads on init. Used by tests that drive the loader explicitly."""

    @property
    def should_load_cache_on_init(self) -> bool:
        return False


def strategy_from_settings(settings) -> CacheLoadingStrategy:
    """Pick the strategy from `settings.load_cache_on_init`."""
    if settings.load_cache_on_init:
        return DefaultCacheLoadingStrategy()
    return NoCacheLoadingStrategy()
