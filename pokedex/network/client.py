"""
Network client abstraction and the PokeAPI-backed implementation.
"""
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional, TypeVar

from pokedex.schemas import Pokemon, PokemonListResponse
from .cancellation import CancellationToken
from .errors import InvalidURLError, NetworkError, RequestCancelledError, map_error
from .http_client import HTTPClient

logger = logging.getLogger("network.client")

T = TypeVar("T")

POKEAPI_BASE_URL = "https://pokeapi.co/api/v2"
COLLECTION_LIMIT = 151


class NetworkClient(ABC):
    """
    Capability set the list loader depends on.

    Implementations raise NetworkError subclasses (or described errors) on
    failure and RequestCancelledError when cancelled.
    """

    @abstractmethod
    def fetch_collection_summary(self) -> PokemonListResponse:
        """Fetch the ordered list of lightweight Pokemon references."""
        pass

    @abstractmethod
    def fetch_item_detail(self, pokemon_id: int) -> Pokemon:
        """Fetch the full record for one Pokemon."""
        pass

    @abstractmethod
    def cancel_all(self) -> None:
        """Cancel every in-flight request. Idempotent."""
        pass


class PokeAPIClient(NetworkClient):
    """
    Production client for https://pokeapi.co.

    Every call registers a cancellable handle under a fresh id; the registry
    is guarded by a lock so `cancel_all` can run from any thread.
    """

    def __init__(
        self,
        http_client: Optional[HTTPClient] = None,
        base_url: str = POKEAPI_BASE_URL,
        limit: int = COLLECTION_LIMIT,
        summary_max_retries: int = 2,
        detail_max_retries: int = 3,
        retry_delay: float = 1.0,
    ):
        self._http = http_client or HTTPClient()
        self._base_url = base_url.rstrip("/")
        self._limit = limit
        self._summary_max_retries = summary_max_retries
        self._detail_max_retries = detail_max_retries
        self._retry_delay = retry_delay
        self._active: Dict[uuid.UUID, CancellationToken] = {}
        self._lock = threading.Lock()

    @property
    def active_requests(self) -> int:
        """Number of currently registered requests."""
        with self._lock:
            return len(self._active)

    def fetch_collection_summary(self) -> PokemonListResponse:
        url = f"{self._base_url}/pokemon?limit={self._limit}"
        return self._run(
            "Pokemon list",
            lambda token: self._http.get_model(
                url,
                PokemonListResponse,
                max_retries=self._summary_max_retries,
                retry_delay=self._retry_delay,
                token=token,
            ),
        )

    def fetch_item_detail(self, pokemon_id: int) -> Pokemon:
        if pokemon_id <= 0:
            raise InvalidURLError()
        url = f"{self._base_url}/pokemon/{pokemon_id}"
        return self._run(
            f"Pokemon detail #{pokemon_id}",
            lambda token: self._http.get_model(
                url,
                Pokemon,
                max_retries=self._detail_max_retries,
                retry_delay=self._retry_delay,
                token=token,
            ),
        )

    def cancel_all(self) -> None:
        with self._lock:
            tokens = list(self._active.values())
            self._active.clear()
        for token in tokens:
            token.cancel()
        logger.info(f"Cancelled {len(tokens)} in-flight API request(s)")

    def close(self) -> None:
        self.cancel_all()
        self._http.close()

    def _run(self, label: str, call: Callable[[CancellationToken], T]) -> T:
        request_id = uuid.uuid4()
        token = CancellationToken()
        self._register(request_id, token)
        try:
            return call(token)
        except RequestCancelledError:
            logger.info(f"Request cancelled: {label}")
            raise
        except NetworkError as e:
            logger.error(f"Network error fetching {label}: {e.user_message}")
            raise
        except Exception as e:
            network_error = map_error(e)
            logger.error(f"Error fetching {label}: {network_error.user_message}")
            raise network_error from e
        finally:
            self._remove(request_id)

    def _register(self, request_id: uuid.UUID, token: CancellationToken) -> None:
        with self._lock:
            self._active[request_id] = token

    def _remove(self, request_id: uuid.UUID) -> None:
        with self._lock:
            self._active.pop(request_id, None)
