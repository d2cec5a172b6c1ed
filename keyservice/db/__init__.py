"""Database connection management for the key service."""

from keyservice.db.connection import ConnectionFactory, close_pool, get_connection, get_pool

__all__ = ["ConnectionFactory", "close_pool", "get_connection", "get_pool"]
