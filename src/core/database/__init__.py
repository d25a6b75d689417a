"""Cassandra access for the forum API."""

from src.core.database.async_cassandra import (
    AsyncCassandraConnection,
    ensure_forum_schema,
    init_async_cassandra,
    shutdown_async_cassandra,
)


__all__ = [
    "AsyncCassandraConnection",
    "ensure_forum_schema",
    "init_async_cassandra",
    "shutdown_async_cassandra",
]
