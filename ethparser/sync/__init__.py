"""
Block synchronization module.

This module polls an Ethereum node for new blocks, parses their
transactions and keeps a per-address index that subscribed
addresses can be queried against.
"""

from ethparser.sync.engine import EngineState, SyncEngine
from ethparser.sync.clients.base import BaseRPCClient
from ethparser.sync.clients.jsonrpc_client import JSONRPCClient
from ethparser.sync.clients.mock_client import MockRPCClient
from ethparser.sync.metrics import SyncMetrics
from ethparser.sync.models import Transaction
from ethparser.sync.store import TransactionStore

__all__ = [
    "EngineState",
    "SyncEngine",
    "BaseRPCClient",
    "JSONRPCClient",
    "MockRPCClient",
    "SyncMetrics",
    "Transaction",
    "TransactionStore",
]
