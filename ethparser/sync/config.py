"""
Block sync configuration.

Defines the polling and throttling intervals of the sync engine,
the JSON-RPC client settings and its per-request retry policy.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from ethparser.core.config import Settings, get_settings


class RetryConfig(BaseModel):
    """Configuration for retry behavior with exponential backoff."""

    max_attempts: int = Field(default=3, ge=1, description="Maximum attempts per request")
    initial_delay: float = Field(
        default=0.5, gt=0, description="Initial delay in seconds"
    )
    max_delay: float = Field(default=10.0, gt=0, description="Maximum delay in seconds")
    exponential_base: float = Field(default=2.0, gt=1, description="Backoff multiplier")
    jitter: bool = Field(
        default=True, description="Add random jitter to prevent thundering herd"
    )


class RPCConfig(BaseModel):
    """Configuration for the node RPC client."""

    client_type: Literal["jsonrpc", "mock"] = Field(
        default="jsonrpc", description="Type of RPC client (jsonrpc, mock)"
    )
    url: str = Field(
        default="https://cloudflare-eth.com", description="Ethereum JSON-RPC endpoint"
    )
    timeout: float = Field(
        default=10.0, gt=0, description="HTTP request timeout in seconds"
    )
    retry: RetryConfig = Field(default_factory=RetryConfig)


class SyncConfig(BaseModel):
    """Main sync engine configuration."""

    enabled: bool = Field(default=True, description="Start the engine on app startup")
    poll_interval_seconds: float = Field(
        default=5.0,
        ge=0,
        description="Sleep between iterations, also the backoff after a failed one",
    )
    block_interval_seconds: float = Field(
        default=1.0, ge=0, description="Throttle between consecutive blocks"
    )
    stop_timeout_seconds: float = Field(
        default=60.0, gt=0, description="Upper bound on waiting for the loop to stop"
    )
    metrics_history_size: int = Field(
        default=100, ge=1, description="Sync iterations kept in memory for status"
    )
    rpc: RPCConfig = Field(default_factory=RPCConfig)

    @classmethod
    def from_settings(cls, settings: Settings) -> "SyncConfig":
        """Build the engine configuration from application settings."""
        return cls(
            enabled=settings.SYNC_ENABLED,
            poll_interval_seconds=settings.SYNC_POLL_INTERVAL_SECONDS,
            block_interval_seconds=settings.SYNC_BLOCK_INTERVAL_SECONDS,
            stop_timeout_seconds=settings.SYNC_STOP_TIMEOUT_SECONDS,
            rpc=RPCConfig(
                client_type=settings.RPC_CLIENT_TYPE,
                url=settings.RPC_URL,
                timeout=settings.RPC_TIMEOUT_SECONDS,
                retry=RetryConfig(max_attempts=settings.RPC_MAX_ATTEMPTS),
            ),
        )


def get_sync_config() -> SyncConfig:
    """Load the sync configuration from the cached application settings."""
    return SyncConfig.from_settings(get_settings())
