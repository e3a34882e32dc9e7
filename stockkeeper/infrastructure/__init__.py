"""
Infrastructure package for stockkeeper.

Centralizes database connectivity concerns (async pool, sync connections,
retry policy). Keep this layer focused on I/O and resource management,
decoupled from store and catalog logic.
"""

from stockkeeper.infrastructure.db_factory import get_sync_connection, open_async_pool

__all__ = [
    "get_sync_connection",
    "open_async_pool",
]
