"""Node RPC client implementations."""

from ethparser.sync.clients.base import (
    BaseRPCClient,
    RPCConnectionError,
    RPCRateLimitError,
    RPCResponseError,
)
from ethparser.sync.clients.jsonrpc_client import JSONRPCClient
from ethparser.sync.clients.mock_client import MockRPCClient

__all__ = [
    "BaseRPCClient",
    "JSONRPCClient",
    "MockRPCClient",
    "RPCConnectionError",
    "RPCRateLimitError",
    "RPCResponseError",
]
