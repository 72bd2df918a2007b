"""
Block parser CLI commands.

Provides command-line entry points to serve the HTTP API, run a single
sync iteration against the configured node, or run the engine headless.
"""

import asyncio
import sys

import structlog
import uvicorn

from ethparser.core.config import get_settings
from ethparser.core.logging import configure_logging
from ethparser.sync.config import get_sync_config
from ethparser.sync.engine import SyncEngine

logger = structlog.get_logger()


def print_result(result: dict):
    """Pretty print one sync iteration."""
    print(f"\nRun ID: {result['run_id']}")
    print(f"Status: {result['status']}")
    print(f"Head: {result['head_block'] if result['head_block'] is not None else 'unknown'}")
    print(f"Watermark: {result['start_block']} -> {result['end_block']}")
    print(f"Blocks processed: {result['blocks_processed']}")
    print(f"Transactions indexed: {result['transactions_indexed']}")
    if result["transactions_skipped"]:
        print(f"Records skipped: {result['transactions_skipped']}")
    if result["error"]:
        print(f"Error: {result['error']}")
    print()


def serve_command():
    """Serve the HTTP API; the sync engine starts with the app."""
    settings = get_settings()
    uvicorn.run(
        "ethparser.main:app",
        host=settings.HTTP_HOST,
        port=settings.HTTP_PORT,
        timeout_graceful_shutdown=settings.HTTP_SHUTDOWN_GRACE_SECONDS,
    )
    return 0


async def sync_once_command():
    """Run a single sync iteration."""
    engine = SyncEngine.from_config(get_sync_config())
    print(f"Syncing from {engine.client.get_source_name()} node...")
    try:
        result = await engine.sync_once()
    finally:
        await engine.client.close()
    print_result(result)
    return 0 if result["status"] != "failed" else 1


async def run_command():
    """Run the sync engine continuously until interrupted."""
    config = get_sync_config()
    print("Starting block sync...")
    print(f"Poll interval: {config.poll_interval_seconds}s")
    print(f"Block interval: {config.block_interval_seconds}s")
    print("Press Ctrl+C to stop\n")

    engine = SyncEngine.from_config(config)
    await engine.start()
    try:
        while engine.running:
            await asyncio.sleep(1)
    finally:
        print("\nShutting down...")
        stopped = await asyncio.shield(engine.stop())
        await engine.client.close()
        print("Sync stopped." if stopped else "Sync did not stop in time.")
    return 0


def main():
    """Main CLI entry point."""
    if len(sys.argv) < 2:
        print("Usage: python -m ethparser.cli <command>")
        print("\nCommands:")
        print("  serve       Serve the HTTP API with the sync engine")
        print("  sync-once   Run a single sync iteration")
        print("  run         Run the sync engine without the HTTP API")
        return 1

    configure_logging(get_settings().ENV)
    command = sys.argv[1]

    try:
        if command == "serve":
            return serve_command()
        elif command == "sync-once":
            return asyncio.run(sync_once_command())
        elif command == "run":
            return asyncio.run(run_command())
        else:
            print(f"Unknown command: {command}")
            return 1
    except KeyboardInterrupt:
        print("\nInterrupted.")
        return 130
    except Exception as e:
        print(f"Error: {str(e)}")
        logger.exception("cli_error", command=command)
        return 1


if __name__ == "__main__":
    sys.exit(main())
