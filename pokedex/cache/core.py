"""
Core cache data structures.

A cache entry is one persisted Pokemon with a fixed expiry window.
"""
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import Column, DateTime, Integer, JSON, String
from sqlalchemy.orm import declarative_base

from pokedex.schemas import (
    Ability,
    Move,
    NamedResource,
    Pokemon,
    PokemonTypeSlot,
    Sprites,
)

Base = declarative_base()

CACHE_TTL = timedelta(minutes=15)


class PokemonCacheEntry(Base):
    """
    Cached Pokemon - one row per Pokemon id, replaced all-or-nothing.
    Timestamps are naive UTC.
    """
    __tablename__ = "pokemon_cache"

    id = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(String, nullable=False)
    sprite_url = Column(String, nullable=False)
    types = Column(JSON, nullable=False, default=list)
    abilities = Column(JSON, nullable=False, default=list)
    moves = Column(JSON, nullable=False, default=list)
    last_updated = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False)

    @classmethod
    def from_pokemon(
        cls,
        pokemon: Pokemon,
        now: Optional[datetime] = None,
        ttl: timedelta = CACHE_TTL,
    ) -> "PokemonCacheEntry":
        """Build a fresh entry for `pokemon`, written at `now`."""
        written_at = now or datetime.utcnow()
        return cls(
            id=pokemon.id,
            name=pokemon.name,
            sprite_url=pokemon.sprites.front_default,
            types=pokemon.type_names,
            abilities=pokemon.ability_names,
            moves=pokemon.move_names,
            last_updated=written_at,
            expires_at=written_at + ttl,
        )

    def is_valid_at(self, now: datetime) -> bool:
        """
        True only when every condition holds:
        - positive id, non-empty name and sprite URL
        - written no later than `now`
        - expiry strictly after the write time
        - `now` still before expiry
        """
        if self.id is None or self.id <= 0:
            return False
        if not self.name or not self.sprite_url:
            return False
        if self.last_updated is None or self.expires_at is None:
            return False
        if self.last_updated > now:
            return False
        if self.expires_at <= self.last_updated:
            return False
        return now < self.expires_at

    @property
    def is_valid(self) -> bool:
        return self.is_valid_at(datetime.utcnow())

    def to_pokemon(self) -> Pokemon:
        """Rebuild the domain record (no stats; types keep their order, abilities are slot 1)."""
        return Pokemon(
            id=self.id,
            name=self.name,
            types=[_type_slot(slot, name) for slot, name in enumerate(self.types or [], start=1)],
            sprites=Sprites(front_default=self.sprite_url),
            abilities=[
                Ability(ability=NamedResource(name=name), is_hidden=False, slot=1)
                for name in (self.abilities or [])
            ],
            moves=[Move(move=NamedResource(name=name)) for name in (self.moves or [])],
        )

    def __repr__(self):
        return f"<PokemonCacheEntry(id={self.id}, name='{self.name}', expires_at={self.expires_at})>"


def _type_slot(slot: int, name: str) -> PokemonTypeSlot:
    return PokemonTypeSlot(slot=slot, type=NamedResource(name=name))


def sort_by_id(entries: List[PokemonCacheEntry]) -> List[PokemonCacheEntry]:
    return sorted(entries, key=lambda e: e.id)
