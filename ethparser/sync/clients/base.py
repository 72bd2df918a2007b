"""
Base node RPC client interface.

Defines the contract the sync engine relies on. Everything else about
talking to a node (transport, auth, retries) is up to the implementation.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List

from ethparser.sync.errors import TransientFetchError


class BaseRPCClient(ABC):
    """
    Abstract base class for node RPC clients.

    Block numbers cross this interface in the node's hex encoding
    (``"0x1b4"``); conversion is the engine's job.
    """

    @abstractmethod
    async def get_current_block(self) -> str:
        """
        Fetch the number of the most recent block.

        Returns:
            Head block number as a ``0x``-prefixed hex string

        Raises:
            TransientFetchError: If the node could not be queried
        """
        pass

    @abstractmethod
    async def get_transactions(self, block_number: str) -> List[Dict[str, Any]]:
        """
        Fetch the full transaction objects of one block.

        Args:
            block_number: Block number as a ``0x``-prefixed hex string

        Returns:
            Raw transaction records, in block order. May be empty.

        Raises:
            TransientFetchError: If the node could not be queried or
                returned no block
        """
        pass

    @abstractmethod
    def get_source_name(self) -> str:
        """
        Get the name of this block source.

        Returns:
            Source identifier (e.g., 'jsonrpc', 'mock')
        """
        pass

    async def close(self) -> None:
        """Release network resources. No-op by default."""
        return None


class RPCConnectionError(TransientFetchError):
    """Raised when the node can't be reached."""

    pass


class RPCRateLimitError(TransientFetchError):
    """Raised when the node answers HTTP 429."""

    pass


class RPCResponseError(TransientFetchError):
    """Raised when the node answers with an error or malformed payload."""

    pass
