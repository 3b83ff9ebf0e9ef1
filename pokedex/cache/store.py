"""
Transactional cache store over SQLAlchemy sessions.

Replacement is all-or-nothing: the delete of old entries and the insert of
the new batch share one commit, and concurrent writers are serialised.
"""
import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pokedex.schemas import Pokemon
from .core import CACHE_TTL, PokemonCacheEntry, sort_by_id

logger = logging.getLogger("cache.store")


class CacheStore:
    """
    Persistence for cached Pokemon entries.

    Each read or write opens its own session, so one store instance can be
    shared by several loaders without sharing in-flight collections.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        ttl: timedelta = CACHE_TTL,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        """
        Args:
            session_factory: Callable returning a new SQLAlchemy session
            ttl: Lifetime of newly written entries
            clock: Source of "now" (naive UTC)
        """
        self._session_factory = session_factory
        self._ttl = ttl
        self._clock = clock
        self._write_lock = threading.Lock()

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def fetch_all(self) -> List[PokemonCacheEntry]:
        """Return every persisted entry, whatever its validity."""
        with self._session_factory() as session:
            return list(session.query(PokemonCacheEntry).all())

    def fetch_valid(self, now: Optional[datetime] = None) -> List[PokemonCacheEntry]:
        """Valid entries only, sorted by id ascending."""
        now = now or self._clock()
        return sort_by_id([e for e in self.fetch_all() if e.is_valid_at(now)])

    def count(self) -> int:
        with self._session_factory() as session:
            return session.query(PokemonCacheEntry).count()

    def replace_all(self, items: Sequence[Pokemon]) -> bool:
        """
        Replace the whole cache with `items`.

        Skipped entirely (no delete) when `items` is empty or a valid entry
        already exists. Returns True when a new batch was committed.

        Raises:
            SQLAlchemyError: If the transaction fails (it is rolled back first)
        """
        if not items:
            return False

        with self._write_lock:
            with self._session_factory() as session:
                now = self._clock()
                existing = session.query(PokemonCacheEntry).all()
                if any(e.is_valid_at(now) for e in existing):
                    logger.info("Valid cache exists, skipping cache update")
                    return False

                try:
                    for entry in existing:
                        session.delete(entry)
                    # Deletes must reach the database before re-inserting the same ids
                    session.flush()
                    for pokemon in items:
                        session.add(PokemonCacheEntry.from_pokemon(pokemon, now=now, ttl=self._ttl))
                    session.commit()
                except SQLAlchemyError as e:
                    session.rollback()
                    logger.error(f"Cache replace failed, previous entries kept: {e}")
                    raise

        logger.info(
            f"Replaced {len(existing)} cache entries with {len(items)} "
            f"(expires at {now + self._ttl:%Y-%m-%d %H:%M:%S} UTC)"
        )
        return True

    def clear(self) -> int:
        """
        Delete every entry.

        Returns:
            Number of entries deleted
        """
        with self._write_lock:
            with self._session_factory() as session:
                count = session.query(PokemonCacheEntry).delete()
                session.commit()
        logger.info(f"Cleared {count} cache entries")
        return count

    def get_stats(self) -> dict:
        """Entry counts for diagnostics."""
        entries = self.fetch_all()
        now = self._clock()
        valid = [e for e in entries if e.is_valid_at(now)]
        expires = min((e.expires_at for e in valid), default=None)
        return {
            "entries": len(entries),
            "valid_entries": len(valid),
            "ttl_seconds": int(self._ttl.total_seconds()),
            "expires_at": expires.isoformat() + "Z" if expires else None,
        }
