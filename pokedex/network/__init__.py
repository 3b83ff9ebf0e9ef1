"""
Network layer: error taxonomy, retry/backoff, HTTP transport and clients.
"""
from .cancellation import CancellationToken
from .client import NetworkClient, PokeAPIClient
from .errors import (
    DecodingFailedError,
    InvalidURLError,
    NetworkError,
    NoDataError,
    NoInternetError,
    RequestCancelledError,
    RequestFailedError,
    RequestTimeoutError,
    ServerError,
    UnknownNetworkError,
    describe_error,
    map_error,
)
from .factory import create_network_client
from .http_client import HTTPClient
from .retry import RetryPolicy

__all__ = [
    "CancellationToken",
    # Clients
    "NetworkClient",
    "PokeAPIClient",
    "HTTPClient",
    "create_network_client",
    # Errors
    "NetworkError",
    "InvalidURLError",
    "RequestFailedError",
    "DecodingFailedError",
    "NoDataError",
    "NoInternetError",
    "RequestTimeoutError",
    "ServerError",
    "UnknownNetworkError",
    "RequestCancelledError",
    "describe_error",
    "map_error",
    # Retry
    "RetryPolicy",
]
