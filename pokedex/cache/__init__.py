"""
Pokemon cache: expiring entries, a transactional store and loading policies.
"""
from .core import Base, CACHE_TTL, PokemonCacheEntry
from .store import CacheStore
from .strategy import (
    CacheLoadingStrategy,
    DefaultCacheLoadingStrategy,
    NoCacheLoadingStrategy,
    strategy_from_settings,
)

__all__ = [
    # Core types
    "Base",
    "CACHE_TTL",
    "PokemonCacheEntry",
    # Store
    "CacheStore",
    # Loading policies
    "CacheLoadingStrategy",
    "DefaultCacheLoadingStrategy",
    "NoCacheLoadingStrategy",
    "strategy_from_settings",
]
