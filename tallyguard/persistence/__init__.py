"""
Data persistence layer.

Provides the abstract store interface and concrete implementations for
keeping voters and candidates.
"""

from __future__ import annotations

from typing import Optional

from ..config import Config, get_config
from ..exceptions import ConfigurationError
from .store import StoreSession, VotingStore
from .memory_store import MemoryStore
from .json_store import JSONFileStore


def create_store(config: Optional[Config] = None) -> VotingStore:
    """
    Build the store selected by ``STORE_BACKEND``.

    Args:
        config: Application configuration (global config by default)

    Returns:
        An unopened store; PostgreSQL connects lazily on first use
    """
    config = config or get_config()
    backend = config.store_backend
    if backend == "memory":
        return MemoryStore()
    if backend == "json":
        return JSONFileStore(config.store_path)
    if backend == "postgres":
        from .postgres import PostgresStore
        return PostgresStore(config.db)
    raise ConfigurationError(f"Unknown store backend: {backend!r}", config_key="STORE_BACKEND")


__all__ = [
    "StoreSession",
    "VotingStore",
    "MemoryStore",
    "JSONFileStore",
    "create_store",
]
