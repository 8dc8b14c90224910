"""Configuration, node client, parallel block fetching, metrics and API helpers for a blockchain indexer."""

__version__ = "0.1.0"

__all__ = [
    "client",
    "config",
    "dburl",
    "errors",
    "fetch",
    "metrics",
    "pagination",
    "ws",
]