"""
HTTP layer: requests.Session wrapper with status interpretation, error
mapping, retry/backoff and cooperative cancellation.
"""
import json
import logging
from typing import Optional, Type, TypeVar

import requests
from pydantic import BaseModel, ValidationError

from .cancellation import CancellationToken
from .errors import (
    DecodingFailedError,
    NoDataError,
    RequestFailedError,
    ServerError,
    UnknownNetworkError,
    map_error,
)
from .retry import DEFAULT_BASE_DELAY, DEFAULT_MAX_RETRIES, RetryPolicy

logger = logging.getLogger("network.http_client")

M = TypeVar("M", bound=BaseModel)

DEFAULT_TIMEOUT = 30.0


def check_status(response: requests.Response) -> requests.Response:
    """
    Interpret an HTTP status code.

    2xx passes through; 4xx raises RequestFailedError (429 stays retryable);
    5xx raises ServerError; anything else is unexpected.
    """
    status = response.status_code
    if 200 <= status <= 299:
        return response
    if 400 <= status <= 499:
        raise RequestFailedError(status)
    if 500 <= status <= 599:
        raise ServerError()
    raise UnknownNetworkError(f"Unexpected status code: {status}")


class HTTPClient:
    """
    GET-only HTTP client used by the PokeAPI client.

    Retries transient failures with exponential backoff; a cancelled token
    aborts before, between and after attempts.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        """
        Args:
            session: requests session (a fake can be injected in tests)
            timeout: Per-request timeout in seconds
            retry_policy: Backoff policy (default RetryPolicy())
        """
        self._session = session or requests.Session()
        self._timeout = timeout
        self.retry_policy = retry_policy or RetryPolicy()

    def perform_request(
        self,
        url: str,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_BASE_DELAY,
        token: Optional[CancellationToken] = None,
    ) -> requests.Response:
        """GET `url` with retries. Returns the successful response."""

        def send() -> requests.Response:
            try:
                response = self._session.get(url, timeout=self._timeout)
            except requests.RequestException as e:
                raise map_error(e) from e
            return check_status(response)

        return self.retry_policy.call(
            send,
            max_retries=max_retries,
            base_delay=retry_delay,
            token=token,
        )

    def get(
        self,
        url: str,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_BASE_DELAY,
        token: Optional[CancellationToken] = None,
    ) -> bytes:
        """GET `url` and return the raw body."""
        response = self.perform_request(url, max_retries, retry_delay, token)
        if not response.content:
            raise NoDataError()
        return response.content

    def get_model(
        self,
        url: str,
        model: Type[M],
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_BASE_DELAY,
        token: Optional[CancellationToken] = None,
    ) -> M:
        """GET `url` and validate the JSON body into `model`."""
        body = self.get(url, max_retries, retry_delay, token)
        try:
            return model.model_validate(json.loads(body))
        except (ValueError, ValidationError) as e:
            logger.error(f"Decoding error for {url}: {e}")
            raise DecodingFailedError(str(e)) from e

    def close(self) -> None:
        self._session.close()
