"""Database connection module for LearnHub."""

from learnhub.core.database.async_cassandra import (
    AsyncCassandraConnection,
    init_async_cassandra,
    init_async_schema,
    shutdown_async_cassandra,
)


__all__ = [
    "AsyncCassandraConnection",
    "init_async_cassandra",
    "init_async_schema",
    "shutdown_async_cassandra",
]
