"""Configuration management using pydantic-settings."""
from typing import Literal

from pydantic_settings import BaseSettings


NetworkEnvironment = Literal[
    "production",
    "mock",
    "mock_offline_with_cache",
    "mock_error_no_cache",
    "mock_error_then_success",
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # PokeAPI configuration
    pokeapi_base_url: str = "https://pokeapi.co/api/v2"
    collection_limit: int = 151  # Gen 1
    http_timeout_seconds: float = 30.0

    # Retry policy
    summary_max_retries: int = 2
    detail_max_retries: int = 3
    retry_base_delay: float = 1.0

    # Cache settings
    cache_database_url: str = "sqlite:///./pokedex_cache.db"
    cache_ttl_minutes: int = 15
    load_cache_on_init: bool = True

    # List behaviour
    search_debounce_ms: int = 300
    keep_stale_on_error: bool = False

    # Swaps the PokeAPI client for the deterministic mock variants
    network_environment: NetworkEnvironment = "production"

    log_level: str = "INFO"

    class Config:
        env_prefix = "POKEDEX_"
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
