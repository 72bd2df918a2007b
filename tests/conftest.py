import sys
from pathlib import Path
from typing import Optional

import pytest

# Ensure project root is on sys.path so `import ethparser` works when running pytest from root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from ethparser.sync.clients.base import BaseRPCClient  # noqa: E402
from ethparser.sync.config import SyncConfig  # noqa: E402
from ethparser.sync.engine import SyncEngine  # noqa: E402


@pytest.fixture
def fast_config() -> SyncConfig:
    """Engine config without real sleeps."""
    return SyncConfig(
        poll_interval_seconds=0,
        block_interval_seconds=0,
        stop_timeout_seconds=2.0,
    )


@pytest.fixture
def make_engine(fast_config):
    """Factory building an engine around a given client."""

    def _make(client: BaseRPCClient, config: Optional[SyncConfig] = None) -> SyncEngine:
        return SyncEngine(client=client, config=config or fast_config)

    return _make
