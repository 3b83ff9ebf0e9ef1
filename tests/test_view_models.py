"""
Tests for the presentation payloads.
"""
from pokedex.network.testing import build_pokemon
from pokedex.schemas import (
    Ability,
    Move,
    NamedResource,
    Pokemon,
    PokemonTypeSlot,
    Sprites,
    Stat,
    StatDetail,
)
from pokedex.view_models import (
    PokemonCardPayload,
    PokemonDetailPayload,
    capitalize_name,
    pokemon_to_cards,
    stat_color_name,
)


def make_detailed_pokemon():
    return Pokemon(
        id=6,
        name="charizard",
        types=[
            PokemonTypeSlot(slot=1, type=NamedResource(name="fire")),
            PokemonTypeSlot(slot=2, type=NamedResource(name="flying")),
        ],
        sprites=Sprites(front_default="https://example.com/6.png"),
        abilities=[
            Ability(ability=NamedResource(name="blaze"), is_hidden=False, slot=1),
            Ability(ability=NamedResource(name="solar-power"), is_hidden=True, slot=3),
        ],
        moves=[Move(move=NamedResource(name=f"move-{i}")) for i in range(8)],
        stats=[
            Stat(base_stat=78, stat=StatDetail(name="hp")),
            Stat(base_stat=109, stat=StatDetail(name="special-attack")),
            Stat(base_stat=100, stat=StatDetail(name="speed")),
        ],
    )


def test_capitalize_name():
    assert capitalize_name("bulbasaur") == "Bulbasaur"
    assert capitalize_name("special-attack") == "Special-Attack"
    assert capitalize_name("") == ""


def test_stat_color_name():
    assert stat_color_name("hp") == "green"
    assert stat_color_name("Special-Defense") == "teal"
    assert stat_color_name("accuracy") == "gray"


def test_card_payload():
    card = PokemonCardPayload.from_pokemon(build_pokemon(1))
    assert card.to_dict() == {
        "id": 1,
        "name": "Bulbasaur",
        "image_url": "https://raw.githubusercontent.com/PokeAPI/sprites/master/sprites/pokemon/1.png",
        "color_name": "green",
    }


def test_untyped_pokemon_card_is_gray():
    pokemon = Pokemon(id=132, name="ditto", sprites=Sprites(front_default="x"))
    assert PokemonCardPayload.from_pokemon(pokemon).color_name == "gray"


def test_detail_payload():
    payload = PokemonDetailPayload.from_pokemon(make_detailed_pokemon())

    assert payload.name == "Charizard"
    assert payload.color_name == "red"
    assert payload.type_names == ["Fire", "Flying"]
    assert payload.abilities == ["Blaze", "Solar-Power (Hidden)"]
    assert payload.moves == ["Move-0", "Move-1", "Move-2", "Move-3", "Move-4"]


def test_detail_stats_are_clamped():
    payload = PokemonDetailPayload.from_pokemon(make_detailed_pokemon())
    stats = {s.name: (s.value, s.color_name) for s in payload.stats}
    assert stats == {
        "Hp": (78, "green"),
        "Special-Attack": (100, "purple"),
        "Speed": (100, "yellow"),
    }


def test_pokemon_to_cards_keeps_order():
    cards = pokemon_to_cards([build_pokemon(4), build_pokemon(1)])
    assert [c["id"] for c in cards] == [4, 1]
    assert cards[0]["color_name"] == "red"
