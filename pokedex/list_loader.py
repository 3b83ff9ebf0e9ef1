"""
Pokemon list loader: the state machine behind the Pokemon list.

Decides between the expiring local cache and the network, fetches details
one at a time while publishing progress, tolerates individual detail
failures, writes successful results back to the cache and keeps a debounced
search view of the loaded list.

State transitions:
    idle -> loading            fetch() / load_cached_or_fetch()
    loading -> loaded          cache hit, or at least one detail fetched
    loading -> error           summary failed, or no detail fetched
    loaded/error -> loading    any later fetch()
    loading -> loaded/idle     cancel_all_requests()

At most one load runs per loader. All published state changes happen under
one re-entrant lock, so subscribers always see an ordered sequence.
"""
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from pokedex.cache import CacheLoadingStrategy, CacheStore, DefaultCacheLoadingStrategy
from pokedex.network import (
    CancellationToken,
    NetworkClient,
    NetworkError,
    RequestCancelledError,
    describe_error,
    map_error,
)
from pokedex.observable import Debouncer, ObservableValue
from pokedex.schemas import Pokemon

logger = logging.getLogger("pokedex.list_loader")

FAILED_TO_LOAD_MESSAGE = "Failed to load Pokemon data"
DEFAULT_EXPECTED_TOTAL = 151
DEFAULT_DEBOUNCE_SECONDS = 0.3


class LoadPhase(Enum):
    """Phases of the list state machine."""
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"


@dataclass(frozen=True)
class ListState:
    """
    Immutable snapshot of the list state.

    Only the fields relevant to `phase` are meaningful: progress/total while
    loading, items when loaded, message on error.
    """
    phase: LoadPhase
    progress: int = 0
    total: int = 0
    items: Tuple[Pokemon, ...] = ()
    message: Optional[str] = None

    @classmethod
    def idle(cls) -> "ListState":
        return cls(LoadPhase.IDLE)

    @classmethod
    def loading(cls, progress: int, total: int) -> "ListState":
        return cls(LoadPhase.LOADING, progress=progress, total=total)

    @classmethod
    def loaded(cls, items: Sequence[Pokemon]) -> "ListState":
        return cls(LoadPhase.LOADED, items=tuple(items))

    @classmethod
    def error(cls, message: str) -> "ListState":
        return cls(LoadPhase.ERROR, message=message)

    @property
    def is_loading(self) -> bool:
        return self.phase is LoadPhase.LOADING

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON response."""
        result = {"phase": self.phase.value}
        if self.phase is LoadPhase.LOADING:
            result["progress"] = self.progress
            result["total"] = self.total
        elif self.phase is LoadPhase.LOADED:
            result["count"] = len(self.items)
        elif self.phase is LoadPhase.ERROR:
            result["message"] = self.message
        return result


class PokemonListLoader:
    """
    Owns the in-memory Pokemon list, its published state and the search view.

    Collaborators are injected: a CacheStore, a NetworkClient and a
    CacheLoadingStrategy that decides whether construction triggers
    `load_cached_or_fetch()` on the background worker.
    """

    def __init__(
        self,
        cache_store: CacheStore,
        network_client: NetworkClient,
        cache_strategy: Optional[CacheLoadingStrategy] = None,
        expected_total: int = DEFAULT_EXPECTED_TOTAL,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        keep_stale_on_error: bool = False,
    ):
        """
        Args:
            cache_store: Persistent cache of previously fetched Pokemon
            network_client: Source of summaries and details
            cache_strategy: Load-on-init policy (default: load)
            expected_total: Placeholder total published before the summary arrives
            debounce_seconds: Quiet window of the search pipeline
            keep_stale_on_error: Keep showing loaded items when a refresh fails
        """
        self._cache_store = cache_store
        self._client = network_client
        self._cache_strategy = cache_strategy or DefaultCacheLoadingStrategy()
        self.expected_total = expected_total
        self.keep_stale_on_error = keep_stale_on_error

        self._items: List[Pokemon] = []
        self.last_error_message: Optional[str] = None

        self.state_changes: ObservableValue[ListState] = ObservableValue(ListState.idle())
        self.filtered_items_changes: ObservableValue[List[Pokemon]] = ObservableValue([])
        self.search_text_changes: ObservableValue[str] = ObservableValue("")

        # Serialises every mutation of published state
        self._state_lock = threading.RLock()
        # Guards the single-flight flag and the active fan-out token
        self._flight_lock = threading.Lock()
        self._is_loading = False
        self._token: Optional[CancellationToken] = None

        self._debouncer = Debouncer(debounce_seconds, self._apply_search)
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="pokemon-list")
        self._task: Optional[Future] = None

        if self._cache_strategy.should_load_cache_on_init:
            self.start_load()

    # =========================================================================
    # Observable surface
    # =========================================================================

    @property
    def state(self) -> ListState:
        return self.state_changes.value

    @property
    def items(self) -> List[Pokemon]:
        with self._state_lock:
            return list(self._items)

    @property
    def filtered_items(self) -> List[Pokemon]:
        return list(self.filtered_items_changes.value)

    @property
    def search_text(self) -> str:
        return self.search_text_changes.value

    @search_text.setter
    def search_text(self, value: str) -> None:
        self.search_text_changes.set(value)
        self._debouncer.submit(value)

    @property
    def cache_store(self) -> CacheStore:
        return self._cache_store

    @property
    def is_loading(self) -> bool:
        with self._flight_lock:
            return self._is_loading

    def subscribe(self, callback: Callable[[ListState], None]) -> Callable[[], None]:
        """Shortcut for `state_changes.subscribe`."""
        return self.state_changes.subscribe(callback)

    # =========================================================================
    # Test seams
    # =========================================================================

    def set_items(self, items: Sequence[Pokemon]) -> None:
        """Replace the list directly, bypassing network and cache."""
        with self._state_lock:
            self._replace_items(items)

    def set_state(self, state: ListState) -> None:
        """Publish `state` directly."""
        with self._state_lock:
            self.state_changes.set(state)

    # =========================================================================
    # Loading
    # =========================================================================

    def start_fetch(self) -> Future:
        """
        Run `fetch()` on the background worker.

        While a load is queued or running, returns that load's Future
        instead of queueing another one.
        """
        return self._submit(self.fetch)[0]

    def start_load(self) -> Future:
        """Run `load_cached_or_fetch()` on the background worker (same single-flight rule)."""
        return self._submit(self.load_cached_or_fetch)[0]

    def request_fetch(self) -> bool:
        """Like `start_fetch()`; True if a new load was queued."""
        return self._submit(self.fetch)[1]

    def request_load(self) -> bool:
        """Like `start_load()`; True if a new load was queued."""
        return self._submit(self.load_cached_or_fetch)[1]

    def _submit(self, job: Callable[[], None]) -> Tuple[Future, bool]:
        with self._flight_lock:
            if self._task is not None and not self._task.done():
                return self._task, False
            if self._is_loading:
                # A synchronous load holds the flight; nothing to queue
                future: Future = Future()
                future.set_result(None)
                return future, False
            self._task = self._executor.submit(job)
            return self._task, True

    def load_cached_or_fetch(self) -> None:
        """
        Serve valid cache entries if there are any, otherwise fetch from the network.

        Cache read errors are logged and treated as a miss.
        """
        token = self._begin_flight()
        if token is None:
            logger.warning("Already loading Pokemon data")
            return

        try:
            self._publish(token, ListState.loading(0, 0))
            cached = self._read_cache()
            if cached:
                with self._state_lock:
                    token.raise_if_cancelled()
                    self._replace_items(cached)
                    self.last_error_message = None
                    self.state_changes.set(ListState.loaded(self._items))
                logger.info(f"CACHE HIT: loaded {len(cached)} Pokemon from cache")
                self._end_flight(token)
                return
        except RequestCancelledError:
            logger.info("Cache load cancelled")
            self._end_flight(token)
            return

        logger.info("CACHE MISS: no valid cache entries, fetching from network")
        # Release the flight first so the nested fetch is not blocked by this call
        self._end_flight(token)
        if not token.is_cancelled:
            self.fetch()

    def fetch(self) -> None:
        """
        Load the list from the network.

        No-op while another load is in flight. Individual detail failures
        are logged and skipped; the list state ends as `loaded` with the
        successfully fetched Pokemon sorted by id, or `error`.
        """
        token = self._begin_flight()
        if token is None:
            logger.warning("Network fetch already in progress")
            return

        try:
            self._fetch_from_network(token)
        except RequestCancelledError:
            logger.info("Network fetch cancelled")
        finally:
            self._end_flight(token)

    def _fetch_from_network(self, token: CancellationToken) -> None:
        self._publish(token, ListState.loading(0, self.expected_total))
        token.raise_if_cancelled()

        try:
            summary = self._client.fetch_collection_summary()
        except RequestCancelledError:
            raise
        except Exception as e:
            message = describe_error(e)
            logger.error(f"Failed to fetch Pokemon list: {message}")
            self._publish_failure(token, message)
            return

        token.raise_if_cancelled()
        total = len(summary.results)
        logger.info(f"Fetched Pokemon list with {total} entries")
        self._publish(token, ListState.loading(0, total))

        loaded: List[Pokemon] = []
        for index, entry in enumerate(summary.results):
            token.raise_if_cancelled()
            pokemon_id = entry.pokemon_id or index + 1
            try:
                pokemon = self._client.fetch_item_detail(pokemon_id)
            except RequestCancelledError:
                raise
            except Exception as e:
                logger.error(f"Error fetching Pokemon #{pokemon_id}: {describe_error(e)}")
                continue
            token.raise_if_cancelled()

            if pokemon.id != pokemon_id:
                logger.error(f"Requested Pokemon #{pokemon_id} but received #{pokemon.id}, skipping")
                continue
            loaded.append(pokemon)
            self._publish(token, ListState.loading(len(loaded), total))

        loaded.sort(key=lambda p: p.id)

        if not loaded:
            self._publish_failure(token, FAILED_TO_LOAD_MESSAGE)
            return

        with self._state_lock:
            token.raise_if_cancelled()
            self._replace_items(loaded)
            self.last_error_message = None
            self.state_changes.set(ListState.loaded(self._items))
        logger.info(f"Successfully loaded {len(loaded)} Pokemon")

        self.cache_items(loaded)

    def cache_items(self, items: Sequence[Pokemon]) -> bool:
        """
        Write `items` to the cache unless a valid cache already exists.

        Returns:
            True if the cache was replaced. Errors are logged, never raised.
        """
        if not items:
            return False
        try:
            return self._cache_store.replace_all(items)
        except Exception as e:
            logger.error(f"Error managing cache: {e}")
            return False

    def fetch_item_details(self, pokemon_id: int) -> Pokemon:
        """
        Fetch one Pokemon's full record, independent of the list state.

        NetworkErrors and described errors propagate unchanged; anything
        else is mapped to a NetworkError.
        """
        logger.info(f"Fetching detailed information for Pokemon #{pokemon_id}")
        try:
            return self._client.fetch_item_detail(pokemon_id)
        except (NetworkError, RequestCancelledError):
            raise
        except Exception as e:
            if str(e):
                logger.error(f"Error fetching Pokemon #{pokemon_id}: {e}")
                raise
            network_error = map_error(e)
            logger.error(f"Error fetching Pokemon #{pokemon_id}: {network_error.user_message}")
            raise network_error from e

    # =========================================================================
    # Cancellation
    # =========================================================================

    def cancel_all_requests(self) -> None:
        """
        Cancel the running load and every in-flight request.

        A `loading` state falls back to the last loaded items (or idle), and
        a new fetch can start immediately afterwards.
        """
        with self._state_lock:
            with self._flight_lock:
                token = self._token
                self._token = None
                self._is_loading = False
                task = self._task
                self._task = None
            if token is not None:
                token.cancel()
            if task is not None:
                task.cancel()
            self._client.cancel_all()

            if self.state.is_loading:
                if self._items:
                    self.state_changes.set(ListState.loaded(self._items))
                else:
                    self.state_changes.set(ListState.idle())
        logger.info("All requests cancelled")

    def close(self) -> None:
        """Cancel everything and release the worker and debounce timer."""
        self.cancel_all_requests()
        self._debouncer.cancel()
        self._executor.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> "PokemonListLoader":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # =========================================================================
    # Internals
    # =========================================================================

    def _begin_flight(self) -> Optional[CancellationToken]:
        with self._flight_lock:
            if self._is_loading:
                return None
            self._is_loading = True
            self._token = CancellationToken()
            return self._token

    def _end_flight(self, token: CancellationToken) -> None:
        # A cancelled flight may already have been replaced by a newer one
        with self._flight_lock:
            if self._token is token:
                self._is_loading = False
                self._token = None

    def _read_cache(self) -> List[Pokemon]:
        try:
            return [entry.to_pokemon() for entry in self._cache_store.fetch_valid()]
        except Exception as e:
            logger.error(f"Cache read failed, falling back to network: {e}")
            return []

    def _publish(self, token: CancellationToken, state: ListState) -> None:
        with self._state_lock:
            token.raise_if_cancelled()
            self.state_changes.set(state)

    def _publish_failure(self, token: CancellationToken, message: str) -> None:
        with self._state_lock:
            token.raise_if_cancelled()
            self.last_error_message = message
            if self.keep_stale_on_error and self._items:
                logger.warning(f"Keeping {len(self._items)} stale Pokemon after error: {message}")
                self.state_changes.set(ListState.loaded(self._items))
                return
            # An error state never shows items from an earlier load
            self._replace_items([])
            self.state_changes.set(ListState.error(message))

    def _replace_items(self, items: Sequence[Pokemon]) -> None:
        self._items = list(items)
        self.filtered_items_changes.set(filter_by_name(self._items, self.search_text))

    def _apply_search(self, query: str) -> None:
        with self._state_lock:
            self.filtered_items_changes.set(filter_by_name(self._items, query))


def filter_by_name(items: Sequence[Pokemon], query: str) -> List[Pokemon]:
    """Case-insensitive substring match on name; empty query keeps everything."""
    if not query:
        return list(items)
    needle = query.lower()
    return [p for p in items if needle in p.name.lower()]
