"""
View Models for UI Rendering
Mapping layer that converts Pokemon records into presentation-ready payloads.
"""
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List

from pokedex.schemas import Pokemon


# =============================================================================
# PAYLOAD CONTRACTS (UI-Stable View Models)
# =============================================================================
# The UI consumes these payloads, never raw PokeAPI records.

MAX_DISPLAYED_MOVES = 5
MAX_STAT_VALUE = 100

STAT_COLOR_NAMES = {
    "hp": "green",
    "attack": "red",
    "defense": "blue",
    "special-attack": "purple",
    "special attack": "purple",
    "special-defense": "teal",
    "special defense": "teal",
    "speed": "yellow",
}


def capitalize_name(name: str) -> str:
    """Title-case each hyphen-separated part: "special-attack" -> "Special-Attack"."""
    return "-".join(part.capitalize() for part in (name or "").split("-"))


def stat_color_name(stat_name: str) -> str:
    return STAT_COLOR_NAMES.get((stat_name or "").lower(), "gray")


@dataclass
class StatPayload:
    """One bar of the stats section."""
    name: str
    value: int
    color_name: str


@dataclass
class PokemonCardPayload:
    """Stable payload for a row of the Pokemon list."""
    id: int
    name: str
    image_url: str
    color_name: str

    @classmethod
    def from_pokemon(cls, pokemon: Pokemon) -> "PokemonCardPayload":
        return cls(
            id=pokemon.id,
            name=capitalize_name(pokemon.name),
            image_url=pokemon.sprites.front_default,
            color_name=pokemon.color_name,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PokemonDetailPayload:
    """
    Stable payload for the detail screen.

    - abilities carry a " (Hidden)" suffix when hidden
    - only the first five moves are shown
    - stat values are clamped to 100 for the bar display
    """
    id: int
    name: str
    image_url: str
    color_name: str
    type_names: List[str] = field(default_factory=list)
    abilities: List[str] = field(default_factory=list)
    moves: List[str] = field(default_factory=list)
    stats: List[StatPayload] = field(default_factory=list)

    @classmethod
    def from_pokemon(cls, pokemon: Pokemon) -> "PokemonDetailPayload":
        abilities = []
        for ability in pokemon.abilities:
            name = capitalize_name(ability.ability.name)
            abilities.append(f"{name} (Hidden)" if ability.is_hidden else name)

        stats = [
            StatPayload(
                name=capitalize_name(stat.stat.name),
                value=min(MAX_STAT_VALUE, stat.base_stat),
                color_name=stat_color_name(stat.stat.name),
            )
            for stat in pokemon.stats
        ]

        return cls(
            id=pokemon.id,
            name=capitalize_name(pokemon.name),
            image_url=pokemon.sprites.front_default,
            color_name=pokemon.color_name,
            type_names=[capitalize_name(t) for t in pokemon.type_names],
            abilities=abilities,
            moves=[capitalize_name(m) for m in pokemon.move_names[:MAX_DISPLAYED_MOVES]],
            stats=stats,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def pokemon_to_cards(pokemon: List[Pokemon]) -> List[Dict[str, Any]]:
    """Map a list of Pokemon to card payload dicts."""
    return [PokemonCardPayload.from_pokemon(p).to_dict() for p in pokemon]
