"""
Deterministic network clients for tests, demos and scripted error scenarios.

No I/O happens here: data comes from a MockDataProvider and failures are
configured up front.
"""
import logging
import threading
import time
from abc import ABC, abstractmethod
from enum import Enum
from typing import Iterable, List, Optional, Set

from pokedex.schemas import (
    Ability,
    Move,
    NamedResource,
    Pokemon,
    PokemonListItem,
    PokemonListResponse,
    PokemonTypeSlot,
    Sprites,
    Stat,
    StatDetail,
)
from .client import NetworkClient

logger = logging.getLogger("network.testing")

SPRITE_URL = "https://raw.githubusercontent.com/PokeAPI/sprites/master/sprites/pokemon/{id}.png"
DETAIL_URL = "https://pokeapi.co/api/v2/pokemon/{id}/"

MOCK_NAMES = ["bulbasaur", "ivysaur", "venusaur", "charmander", "charmeleon", "charizard"]


class MockNetworkError(Exception):
    """
    Described errors raised by the mock clients.

    The description is what ends up in the list error state.
    """

    def __init__(self, kind: str, description: str):
        super().__init__(description)
        self.kind = kind
        self.description = description

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MockNetworkError):
            return NotImplemented
        return (self.kind, self.description) == (other.kind, other.description)

    def __hash__(self) -> int:
        return hash((self.kind, self.description))

    @classmethod
    def invalid_response(cls) -> "MockNetworkError":
        return cls("invalid_response", "Unable to fetch Pokemon data. The server returned an invalid response.")

    @classmethod
    def decoding_error(cls) -> "MockNetworkError":
        return cls("decoding_error", "Failed to decode Pokemon data.")

    @classmethod
    def configured_error(cls) -> "MockNetworkError":
        return cls("configured_error", "A test error occurred.")

    @classmethod
    def connection_failed(cls, message: str) -> "MockNetworkError":
        return cls("connection_failed", message)

    @classmethod
    def server_error(cls, message: str) -> "MockNetworkError":
        return cls("server_error", message)

    @classmethod
    def detail_fetch_failed(cls, message: str) -> "MockNetworkError":
        return cls("detail_fetch_failed", message)

    @classmethod
    def data_not_found(cls, message: str) -> "MockNetworkError":
        return cls("data_not_found", message)


class ErrorScenario(Enum):
    """Scripted failure modes for error-handling runs."""
    OFFLINE_WITH_CACHE = "offline_with_cache"   # every call fails
    ERROR_NO_CACHE = "error_no_cache"           # every call fails
    ERROR_THEN_SUCCESS = "error_then_success"   # first summary fails, then all succeed


# =============================================================================
# Mock data
# =============================================================================

def build_pokemon(pokemon_id: int, name: Optional[str] = None) -> Pokemon:
    """Deterministic Pokemon record for `pokemon_id`."""
    return Pokemon(
        id=pokemon_id,
        name=name or mock_name(pokemon_id),
        types=mock_types(pokemon_id),
        sprites=Sprites(front_default=SPRITE_URL.format(id=pokemon_id)),
        abilities=[Ability(ability=NamedResource(name=f"ability-{pokemon_id}"), is_hidden=False, slot=1)],
        moves=[Move(move=NamedResource(name=f"move-{pokemon_id}"))],
        stats=[
            Stat(
                base_stat=50,
                effort=0,
                stat=StatDetail(name="hp", url="https://pokeapi.co/api/v2/stat/1/"),
            )
        ],
    )


def build_summary(ids: Iterable[int]) -> PokemonListResponse:
    """Summary response referencing each id in order."""
    results = [
        PokemonListItem(name=mock_name(i), url=DETAIL_URL.format(id=i))
        for i in ids
    ]
    return PokemonListResponse(count=len(results), results=results)


def mock_name(pokemon_id: int) -> str:
    index = pokemon_id - 1
    if 0 <= index < len(MOCK_NAMES):
        return MOCK_NAMES[index]
    return f"pokemon-{pokemon_id}"


def mock_types(pokemon_id: int) -> List[PokemonTypeSlot]:
    if pokemon_id in (1, 2, 3):
        names = ["grass", "poison"]
    elif pokemon_id in (4, 5, 6):
        names = ["fire", "flying"]
    else:
        names = ["normal"]
    return [
        PokemonTypeSlot(slot=slot, type=NamedResource(name=name))
        for slot, name in enumerate(names, start=1)
    ]


class MockDataProvider(ABC):
    """Source of mock summaries and details."""

    @abstractmethod
    def provide_summary(self) -> PokemonListResponse:
        pass

    @abstractmethod
    def provide_detail(self, pokemon_id: int) -> Pokemon:
        pass


class DefaultMockDataProvider(MockDataProvider):
    """The six Gen 1 starters line: bulbasaur through charizard."""

    def __init__(self, count: int = len(MOCK_NAMES)):
        self.count = count

    def provide_summary(self) -> PokemonListResponse:
        return build_summary(range(1, self.count + 1))

    def provide_detail(self, pokemon_id: int) -> Pokemon:
        return build_pokemon(pokemon_id)


# =============================================================================
# Mock client
# =============================================================================

class MockNetworkClient(NetworkClient):
    """
    Configurable in-memory NetworkClient.

    Knobs:
    - should_succeed / error: fail every call with `error`
    - custom_summary / custom_detail: fixed responses
    - failing_ids: detail ids that raise `detail_error`
    - scenario: scripted ErrorScenario
    - delay: simulated latency per call (interrupted by cancel_all)
    """

    def __init__(
        self,
        data_provider: Optional[MockDataProvider] = None,
        delay: float = 0.0,
        scenario: Optional[ErrorScenario] = None,
    ):
        self.data_provider = data_provider or DefaultMockDataProvider()
        self.delay = delay
        self.scenario = scenario

        self.should_succeed = True
        self.error: Optional[Exception] = None
        self.custom_summary: Optional[PokemonListResponse] = None
        self.custom_detail: Optional[Pokemon] = None
        self.failing_ids: Set[int] = set()
        self.detail_error: Exception = MockNetworkError.invalid_response()

        self.summary_calls = 0
        self.detail_calls: List[int] = []
        self.cancel_calls = 0

        self._lock = threading.Lock()
        self._cancelled = threading.Event()
        self._retry_success = False

    # ---- factories ----

    @classmethod
    def create_failing(cls, error: Optional[Exception] = None) -> "MockNetworkClient":
        client = cls(delay=0.0)
        client.should_succeed = False
        client.error = error
        return client

    @classmethod
    def create_with_custom_responses(
        cls,
        summary: Optional[PokemonListResponse] = None,
        detail: Optional[Pokemon] = None,
    ) -> "MockNetworkClient":
        client = cls(delay=0.0)
        client.custom_summary = summary
        client.custom_detail = detail
        return client

    @classmethod
    def create_with_error_scenario(cls, scenario: ErrorScenario, delay: float = 1.0) -> "MockNetworkClient":
        return cls(delay=delay, scenario=scenario)

    # ---- NetworkClient ----

    def fetch_collection_summary(self) -> PokemonListResponse:
        with self._lock:
            self.summary_calls += 1
            call_number = self.summary_calls
        self._simulate_latency()

        if self.scenario is not None:
            if self.scenario is ErrorScenario.OFFLINE_WITH_CACHE:
                raise MockNetworkError.connection_failed(
                    "Network connection unavailable. Please check your internet connection."
                )
            if self.scenario is ErrorScenario.ERROR_NO_CACHE:
                raise MockNetworkError.invalid_response()
            if call_number == 1:
                raise MockNetworkError.server_error("Server error occurred. Please try again later.")
            self._retry_success = True
            return self.data_provider.provide_summary()

        if not self.should_succeed:
            raise self.error or MockNetworkError.invalid_response()
        if self.custom_summary is not None:
            return self.custom_summary
        return self.data_provider.provide_summary()

    def fetch_item_detail(self, pokemon_id: int) -> Pokemon:
        with self._lock:
            self.detail_calls.append(pokemon_id)
        self._simulate_latency()

        if self.scenario is not None:
            if self.scenario is ErrorScenario.ERROR_THEN_SUCCESS and self._retry_success:
                return build_pokemon(pokemon_id)
            raise MockNetworkError.detail_fetch_failed(
                "Failed to fetch Pokemon details. Please try again later."
            )

        if not self.should_succeed:
            raise self.error or MockNetworkError.invalid_response()
        if pokemon_id in self.failing_ids:
            raise self.detail_error
        if self.custom_detail is not None:
            return self.custom_detail
        return self.data_provider.provide_detail(pokemon_id)

    def cancel_all(self) -> None:
        with self._lock:
            self.cancel_calls += 1
        # Wake any simulated latency, then re-arm for later calls
        self._cancelled.set()
        self._cancelled.clear()
        logger.debug("Mock client: cancel_all() called")

    def _simulate_latency(self) -> None:
        if self.delay > 0:
            self._cancelled.wait(timeout=self.delay)


class SlowMockNetworkClient(MockNetworkClient):
    """
    MockNetworkClient whose summary call blocks until released.

    Lets tests hold a fetch in flight deterministically.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.summary_started = threading.Event()
        self.release = threading.Event()

    def fetch_collection_summary(self) -> PokemonListResponse:
        self.summary_started.set()
        self.release.wait(timeout=5.0)
        return super().fetch_collection_summary()


def wait_until(predicate, timeout: float = 2.0, interval: float = 0.01) -> bool:
    """Poll `predicate` until it is truthy or `timeout` elapses."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return bool(predicate())
