"""
Pydantic schemas for PokeAPI payloads and the Pokemon domain record.
Field aliases accept the snake_case wire format; all models are immutable.
"""
from typing import List, Optional

from pydantic import BaseModel, Field


# ===== LIST (SUMMARY) SCHEMAS =====

class PokemonListItem(BaseModel):
    """Lightweight reference to a Pokemon (name + detail URL)."""
    name: str
    url: str

    class Config:
        frozen = True

    @property
    def pokemon_id(self) -> Optional[int]:
        """Id parsed from the trailing path segment of the detail URL."""
        tail = self.url.rstrip("/").rsplit("/", 1)[-1]
        return int(tail) if tail.isdigit() else None


class PokemonListResponse(BaseModel):
    """Collection summary returned by /pokemon?limit=N."""
    count: int
    results: List[PokemonListItem] = Field(default_factory=list)

    class Config:
        frozen = True


# ===== DETAIL SCHEMAS =====

class NamedResource(BaseModel):
    """Named reference used by types, abilities and moves."""
    name: str

    class Config:
        frozen = True


class PokemonTypeSlot(BaseModel):
    slot: int
    type: NamedResource

    class Config:
        frozen = True


class Sprites(BaseModel):
    front_default: str

    class Config:
        frozen = True


class Ability(BaseModel):
    ability: NamedResource
    is_hidden: bool = False
    slot: int = 1

    class Config:
        frozen = True


class Move(BaseModel):
    move: NamedResource

    class Config:
        frozen = True


class StatDetail(BaseModel):
    name: str
    url: str = ""

    class Config:
        frozen = True


class Stat(BaseModel):
    base_stat: int
    effort: int = 0
    stat: StatDetail

    class Config:
        frozen = True


# Type name -> display colour name
TYPE_COLOR_NAMES = {
    "grass": "green",
    "bug": "green",
    "fire": "red",
    "water": "blue",
    "electric": "yellow",
    "poison": "purple",
    "ghost": "purple",
    "psychic": "purple",
    "ground": "brown",
    "rock": "brown",
    "normal": "gray",
    "fighting": "orange",
    "ice": "cyan",
    "dragon": "indigo",
    "dark": "darkGray",
    "steel": "lightGray",
    "fairy": "pink",
    "flying": "teal",
}


def color_name_for_type(type_name: str) -> str:
    """Colour name for a Pokemon type, gray for anything unknown."""
    return TYPE_COLOR_NAMES.get((type_name or "").lower(), "gray")


class Pokemon(BaseModel):
    """
    Full Pokemon record as returned by /pokemon/{id}.

    Equality intentionally ignores `stats`: records restored from the cache
    carry no stats and must still compare equal to their network counterpart.
    """
    id: int
    name: str
    types: List[PokemonTypeSlot] = Field(default_factory=list)
    sprites: Sprites
    abilities: List[Ability] = Field(default_factory=list)
    moves: List[Move] = Field(default_factory=list)
    stats: List[Stat] = Field(default_factory=list)

    class Config:
        frozen = True

    def _identity(self) -> tuple:
        return (
            self.id,
            self.name,
            self.sprites,
            tuple(self.types),
            tuple(self.abilities),
            tuple(self.moves),
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Pokemon):
            return NotImplemented
        return self._identity() == other._identity()

    def __hash__(self) -> int:
        return hash(self._identity())

    @property
    def primary_type(self) -> str:
        """First type name lower-cased, or "normal" when untyped."""
        if not self.types:
            return "normal"
        return self.types[0].type.name.lower()

    @property
    def color_name(self) -> str:
        return color_name_for_type(self.primary_type)

    @property
    def type_names(self) -> List[str]:
        return [t.type.name for t in self.types]

    @property
    def ability_names(self) -> List[str]:
        return [a.ability.name for a in self.abilities]

    @property
    def move_names(self) -> List[str]:
        return [m.move.name for m in self.moves]
