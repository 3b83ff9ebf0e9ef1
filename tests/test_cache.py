"""
Unit tests for the Pokemon cache.

Covers entry validity, conversion to and from domain records, and the
transactional store (fetch, replace, skip-if-valid, rollback).
"""
import random
from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import SQLAlchemyError

from pokedex.cache import (
    CACHE_TTL,
    CacheStore,
    DefaultCacheLoadingStrategy,
    NoCacheLoadingStrategy,
    PokemonCacheEntry,
    strategy_from_settings,
)
from pokedex.db import create_cache_engine, create_session_factory, init_db
from pokedex.network.testing import build_pokemon


NOW = datetime(2025, 3, 21, 12, 0, 0)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def session_factory(tmp_path):
    engine = create_cache_engine(f"sqlite:///{tmp_path / 'cache.db'}")
    init_db(engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def store(session_factory):
    return CacheStore(session_factory, clock=lambda: NOW)


def make_entry(
    id=1,
    name="bulbasaur",
    sprite_url="https://example.com/1.png",
    last_updated=NOW - timedelta(minutes=1),
    expires_at=None,
):
    if expires_at is None:
        expires_at = last_updated + CACHE_TTL
    return PokemonCacheEntry(
        id=id,
        name=name,
        sprite_url=sprite_url,
        types=[],
        abilities=[],
        moves=[],
        last_updated=last_updated,
        expires_at=expires_at,
    )


def seed(session_factory, entries):
    with session_factory() as session:
        session.add_all(entries)
        session.commit()


# =============================================================================
# Entry validity
# =============================================================================

class TestEntryValidity:
    """Every condition must hold for an entry to be valid."""

    def test_fresh_entry_is_valid(self):
        assert make_entry().is_valid_at(NOW)

    def test_non_positive_id_is_invalid(self):
        assert not make_entry(id=0).is_valid_at(NOW)
        assert not make_entry(id=-4).is_valid_at(NOW)

    def test_empty_name_is_invalid(self):
        assert not make_entry(name="").is_valid_at(NOW)

    def test_empty_sprite_url_is_invalid(self):
        assert not make_entry(sprite_url="").is_valid_at(NOW)

    def test_written_in_the_future_is_invalid(self):
        entry = make_entry(last_updated=NOW + timedelta(seconds=1))
        assert not entry.is_valid_at(NOW)

    def test_expiry_not_after_write_is_invalid(self):
        written = NOW - timedelta(minutes=1)
        assert not make_entry(last_updated=written, expires_at=written).is_valid_at(NOW)
        assert not make_entry(
            last_updated=written, expires_at=written - timedelta(seconds=1)
        ).is_valid_at(NOW)

    def test_expired_entry_is_invalid(self):
        entry = make_entry(
            last_updated=NOW - timedelta(minutes=20),
            expires_at=NOW - timedelta(minutes=5),
        )
        assert not entry.is_valid_at(NOW)

    def test_expiry_boundary_is_invalid(self):
        entry = make_entry(last_updated=NOW - CACHE_TTL, expires_at=NOW)
        assert not entry.is_valid_at(NOW)

    def test_randomized_validity_matches_all_conditions(self):
        """Validity is exactly the conjunction of the five conditions."""
        rng = random.Random(1337)
        for _ in range(500):
            entry_id = rng.randint(-2, 5)
            name = rng.choice(["", "pikachu"])
            url = rng.choice(["", "https://example.com/25.png"])
            last_updated = NOW + timedelta(seconds=rng.randint(-1800, 300))
            expires_at = last_updated + timedelta(seconds=rng.randint(-300, 1800))
            entry = make_entry(entry_id, name, url, last_updated, expires_at)

            expected = (
                entry_id > 0
                and name != ""
                and url != ""
                and last_updated <= NOW
                and expires_at > last_updated
                and NOW < expires_at
            )
            assert entry.is_valid_at(NOW) == expected


# =============================================================================
# Conversion
# =============================================================================

class TestEntryConversion:

    def test_from_pokemon_sets_fifteen_minute_expiry(self):
        entry = PokemonCacheEntry.from_pokemon(build_pokemon(4), now=NOW)
        assert entry.id == 4
        assert entry.name == "charmander"
        assert entry.types == ["fire", "flying"]
        assert entry.abilities == ["ability-4"]
        assert entry.moves == ["move-4"]
        assert entry.last_updated == NOW
        assert entry.expires_at == NOW + timedelta(minutes=15)

    def test_round_trip_equals_network_record(self):
        """Cached records drop stats; equality ignores them."""
        pokemon = build_pokemon(1)
        restored = PokemonCacheEntry.from_pokemon(pokemon, now=NOW).to_pokemon()
        assert restored.stats == []
        assert restored == pokemon


# =============================================================================
# Store
# =============================================================================

class TestCacheStore:

    def test_empty_store(self, store):
        assert store.fetch_all() == []
        assert store.fetch_valid() == []
        assert store.count() == 0

    def test_fetch_valid_filters_and_sorts(self, store, session_factory):
        seed(session_factory, [
            make_entry(id=3, name="venusaur"),
            make_entry(id=1, name="bulbasaur"),
            make_entry(id=2, name="ivysaur", expires_at=NOW - timedelta(minutes=1),
                       last_updated=NOW - timedelta(minutes=16)),
        ])
        assert len(store.fetch_all()) == 3
        assert [e.id for e in store.fetch_valid()] == [1, 3]

    def test_replace_all_writes_valid_entries(self, store):
        items = [build_pokemon(i) for i in (1, 2, 3)]
        assert store.replace_all(items) is True
        valid = store.fetch_valid()
        assert [e.id for e in valid] == [1, 2, 3]
        assert all(e.expires_at == NOW + CACHE_TTL for e in valid)

    def test_replace_all_deletes_expired_entries(self, store, session_factory):
        seed(session_factory, [
            make_entry(id=id, last_updated=NOW - timedelta(minutes=30),
                       expires_at=NOW - timedelta(minutes=15))
            for id in (1, 2, 3, 4)
        ])
        assert store.replace_all([build_pokemon(5), build_pokemon(6)]) is True
        assert sorted(e.id for e in store.fetch_all()) == [5, 6]

    def test_replace_all_skipped_when_valid_entry_exists(self, store, session_factory):
        """No delete and no insert when the cache is still valid."""
        seed(session_factory, [make_entry(id=1, name="bulbasaur")])
        before = [(e.id, e.name, e.last_updated) for e in store.fetch_all()]

        assert store.replace_all([build_pokemon(i) for i in (1, 2, 3)]) is False

        after = [(e.id, e.name, e.last_updated) for e in store.fetch_all()]
        assert after == before
        assert store.count() == 1

    def test_replace_all_with_nothing_is_noop(self, store, session_factory):
        seed(session_factory, [make_entry(id=1, expires_at=NOW - timedelta(seconds=1),
                                          last_updated=NOW - timedelta(minutes=20))])
        assert store.replace_all([]) is False
        assert store.count() == 1

    def test_failed_replace_rolls_back(self, store, session_factory):
        """A failing insert leaves the previous entries in place."""
        seed(session_factory, [
            make_entry(id=id, last_updated=NOW - timedelta(minutes=30),
                       expires_at=NOW - timedelta(minutes=15))
            for id in (1, 2)
        ])
        duplicate = [build_pokemon(7), build_pokemon(7)]

        with pytest.raises(SQLAlchemyError):
            store.replace_all(duplicate)

        assert sorted(e.id for e in store.fetch_all()) == [1, 2]

    def test_clear(self, store):
        store.replace_all([build_pokemon(1), build_pokemon(2)])
        assert store.clear() == 2
        assert store.count() == 0

    def test_stats(self, store):
        store.replace_all([build_pokemon(1)])
        stats = store.get_stats()
        assert stats["entries"] == 1
        assert stats["valid_entries"] == 1
        assert stats["ttl_seconds"] == 900


# =============================================================================
# Loading strategy
# =============================================================================

class _Settings:
    def __init__(self, load_cache_on_init):
        self.load_cache_on_init = load_cache_on_init


def test_strategies():
    assert DefaultCacheLoadingStrategy().should_load_cache_on_init is True
    assert NoCacheLoadingStrategy().should_load_cache_on_init is False
    assert isinstance(strategy_from_settings(_Settings(True)), DefaultCacheLoadingStrategy)
    assert isinstance(strategy_from_settings(_Settings(False)), NoCacheLoadingStrategy)


def test_is_valid_uses_current_time():
    fresh = PokemonCacheEntry.from_pokemon(build_pokemon(1))
    stale = PokemonCacheEntry.from_pokemon(build_pokemon(1), now=datetime.utcnow() - timedelta(hours=1))
    assert fresh.is_valid
    assert not stale.is_valid
