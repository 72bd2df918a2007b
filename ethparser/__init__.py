"""Ethereum block parser: per-address transaction history for subscribed addresses."""

__version__ = "0.1.0"
