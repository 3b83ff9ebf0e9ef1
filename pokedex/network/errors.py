"""
Network error taxonomy.

Every NetworkError carries a fixed user-facing message and knows whether a
retry could help. Cancellation is a separate signal and never a NetworkError.
"""
import requests


class NetworkError(Exception):
    """Base class for failures raised by the network layer."""

    user_message = "An unexpected error occurred. Please try again later."

    def _payload(self) -> tuple:
        return ()

    @property
    def is_retryable(self) -> bool:
        return False

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NetworkError):
            return NotImplemented
        return type(self) is type(other) and self._payload() == other._payload()

    def __hash__(self) -> int:
        return hash((type(self), self._payload()))

    def __str__(self) -> str:
        return self.user_message


class InvalidURLError(NetworkError):
    user_message = "Invalid URL. Please contact technical support."


class RequestFailedError(NetworkError):
    """Non-2xx response that is not a server error."""

    def __init__(self, status_code: int):
        super().__init__(status_code)
        self.status_code = status_code

    def _payload(self) -> tuple:
        return (self.status_code,)

    @property
    def user_message(self) -> str:
        return f"Request failed with status code {self.status_code}. Please try again later."

    @property
    def is_retryable(self) -> bool:
        # 5xx and 429 Too Many Requests
        return self.status_code >= 500 or self.status_code == 429


class DecodingFailedError(NetworkError):
    user_message = "Could not process server response."

    def __init__(self, description: str):
        super().__init__(description)
        self.description = description

    def _payload(self) -> tuple:
        return (self.description,)


class NoDataError(NetworkError):
    user_message = "No data received from server."


class NoInternetError(NetworkError):
    user_message = "No internet connection. Please check your connection and try again."

    @property
    def is_retryable(self) -> bool:
        return True


class RequestTimeoutError(NetworkError):
    user_message = "Request timed out. Please try again later."

    @property
    def is_retryable(self) -> bool:
        return True


class ServerError(NetworkError):
    user_message = "Server error. Please try again later."

    @property
    def is_retryable(self) -> bool:
        return True


class UnknownNetworkError(NetworkError):
    def __init__(self, description: str):
        super().__init__(description)
        self.description = description

    def _payload(self) -> tuple:
        return (self.description,)


class RequestCancelledError(Exception):
    """Raised when a request or retry loop observes cancellation."""
    pass


UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred. Please try again."


def map_error(error: Exception) -> NetworkError:
    """
    Map a transport exception onto the NetworkError taxonomy.

    NetworkErrors pass through unchanged.
    """
    if isinstance(error, NetworkError):
        return error
    if isinstance(error, requests.exceptions.Timeout):
        return RequestTimeoutError()
    if isinstance(error, (requests.exceptions.InvalidURL, requests.exceptions.MissingSchema,
                          requests.exceptions.InvalidSchema)):
        return InvalidURLError()
    if isinstance(error, requests.exceptions.ConnectionError):
        return NoInternetError()
    return UnknownNetworkError(str(error))


def describe_error(error: Exception) -> str:
    """
    Human-readable message for any error that reaches the list state.

    NetworkErrors use their user message; other exceptions with a
    description use it; anything else gets a generic message.
    """
    if isinstance(error, NetworkError):
        return error.user_message
    description = str(error)
    return description if description else UNEXPECTED_ERROR_MESSAGE
