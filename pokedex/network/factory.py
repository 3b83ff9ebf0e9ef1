"""
Select the NetworkClient variant from configuration.
"""
import logging

from .client import NetworkClient, PokeAPIClient
from .http_client import HTTPClient
from .testing import ErrorScenario, MockNetworkClient

logger = logging.getLogger("network.factory")

SCENARIOS = {
    "mock_offline_with_cache": ErrorScenario.OFFLINE_WITH_CACHE,
    "mock_error_no_cache": ErrorScenario.ERROR_NO_CACHE,
    "mock_error_then_success": ErrorScenario.ERROR_THEN_SUCCESS,
}


def create_network_client(settings) -> NetworkClient:
    """
    Build the client named by `settings.network_environment`.

    "production" talks to PokeAPI; "mock" serves deterministic data; the
    "mock_*" environments replay a scripted ErrorScenario.
    """
    environment = settings.network_environment
    if environment == "production":
        return PokeAPIClient(
            http_client=HTTPClient(timeout=settings.http_timeout_seconds),
            base_url=settings.pokeapi_base_url,
            limit=settings.collection_limit,
            summary_max_retries=settings.summary_max_retries,
            detail_max_retries=settings.detail_max_retries,
            retry_delay=settings.retry_base_delay,
        )
    if environment == "mock":
        logger.info("Using mock network client")
        return MockNetworkClient(delay=0.1)
    if environment in SCENARIOS:
        logger.info(f"Using mock network client with scenario {environment}")
        return MockNetworkClient.create_with_error_scenario(SCENARIOS[environment])
    raise ValueError(f"Unknown network environment: {environment}")
