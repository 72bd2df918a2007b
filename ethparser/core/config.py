from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    This uses pydantic-settings so that we get type validation and defaults.
    Settings are loaded from environment variables with optional .env file override.
    """

    # App basics
    ENV: Literal["development", "staging", "production"] = "development"
    """Environment mode: affects logging and the default RPC client."""

    DEBUG: bool = True
    """Enable debug mode: verbose logging and development features."""

    # RPC node
    RPC_CLIENT_TYPE: Literal["jsonrpc", "mock"] = "jsonrpc"
    """Which RPC client to build: a real JSON-RPC node or the synthetic mock chain."""

    RPC_URL: str = "https://cloudflare-eth.com"
    """Ethereum JSON-RPC endpoint."""

    RPC_TIMEOUT_SECONDS: float = 10.0
    """Per-request HTTP timeout for the JSON-RPC client."""

    RPC_MAX_ATTEMPTS: int = 3
    """Attempts per JSON-RPC request on connection errors and HTTP 429."""

    # Sync engine
    SYNC_ENABLED: bool = True
    """Start the block sync engine when the application starts."""

    SYNC_POLL_INTERVAL_SECONDS: float = 5.0
    """Sleep between sync iterations and after a failed iteration."""

    SYNC_BLOCK_INTERVAL_SECONDS: float = 1.0
    """Throttle between consecutive blocks to stay under node rate limits."""

    SYNC_STOP_TIMEOUT_SECONDS: float = 60.0
    """How long stop() waits for the loop to acknowledge before giving up."""

    # HTTP server
    HTTP_HOST: str = "0.0.0.0"
    HTTP_PORT: int = 8080
    HTTP_SHUTDOWN_GRACE_SECONDS: int = 5
    """Bound on draining in-flight HTTP requests on SIGINT/SIGTERM."""

    # Model config
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance to avoid re-parsing .env repeatedly.

    Uses LRU cache to ensure only one Settings instance exists per process,
    improving performance and ensuring consistency.
    """
    return Settings()
