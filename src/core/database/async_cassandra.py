"""Cassandra session for the forum, driven through cassandra-asyncio-driver.

The asyncio driver adds ``session.aexecute()`` on top of cassandra-driver,
so repositories can await statements without blocking the event loop.
On startup the keyspace and the forum tables are created if missing.
"""

from typing import TYPE_CHECKING, Any

import structlog
from cassandra.auth import PlainTextAuthProvider
from cassandra.policies import DCAwareRoundRobinPolicy, TokenAwarePolicy
from cassandra_asyncio.cluster import Cluster

from src.config.settings import get_settings
from src.forum.models import FORUM_TABLES_CQL


if TYPE_CHECKING:
    from src.config.settings import Settings


logger = structlog.get_logger(__name__)


class AsyncCassandraConnection:
    """Process-wide cluster and session holder."""

    _cluster: Cluster | None = None
    _session: Any = None

    @classmethod
    def connect(cls) -> Any:
        """Open the session, reusing the existing one when already connected.

        Raises:
            ConnectionError: No contact point could be reached
        """
        if cls._session is not None:
            return cls._session

        settings = get_settings()
        cls._cluster = _build_cluster(settings)

        try:
            cls._session = cls._cluster.connect()
        except Exception as e:
            logger.error(
                "cassandra_connection_failed",
                hosts=settings.cassandra_hosts,
                error=str(e),
            )
            cls._cluster.shutdown()
            cls._cluster = None
            raise ConnectionError(f"Failed to connect to Cassandra: {e}") from e

        logger.info(
            "cassandra_connected",
            hosts=settings.cassandra_hosts,
            port=settings.cassandra_port,
        )
        return cls._session

    @classmethod
    def disconnect(cls) -> None:
        if cls._session is not None:
            cls._session.shutdown()
            cls._session = None
        if cls._cluster is not None:
            cls._cluster.shutdown()
            cls._cluster = None
            logger.info("cassandra_disconnected")

    @classmethod
    def is_connected(cls) -> bool:
        return cls._session is not None and not cls._session.is_shutdown


def _build_cluster(settings: "Settings") -> Cluster:
    auth_provider = None
    if settings.cassandra_username and settings.cassandra_password:
        auth_provider = PlainTextAuthProvider(
            username=settings.cassandra_username,
            password=settings.cassandra_password,
        )

    return Cluster(
        contact_points=settings.cassandra_hosts,
        port=settings.cassandra_port,
        auth_provider=auth_provider,
        protocol_version=settings.cassandra_protocol_version,
        load_balancing_policy=TokenAwarePolicy(
            DCAwareRoundRobinPolicy(local_dc=settings.cassandra_datacenter)
        ),
        connect_timeout=settings.cassandra_connect_timeout,
    )


def keyspace_cql(settings: "Settings") -> str:
    """CREATE KEYSPACE statement for the configured replication.

    A named datacenter selects NetworkTopologyStrategy; otherwise
    SimpleStrategy is used (single-node development clusters).
    """
    factor = settings.cassandra_replication_factor
    if settings.cassandra_datacenter:
        replication = (
            f"'class': 'NetworkTopologyStrategy', "
            f"'{settings.cassandra_datacenter}': {factor}"
        )
    else:
        replication = f"'class': 'SimpleStrategy', 'replication_factor': {factor}"

    return (
        f"CREATE KEYSPACE IF NOT EXISTS {settings.cassandra_keyspace} "
        f"WITH replication = {{{replication}}} AND durable_writes = true"
    )


async def ensure_forum_schema(session: Any, keyspace: str) -> None:
    """Create the forum tables and secondary indexes if missing."""
    for statement in FORUM_TABLES_CQL:
        await session.aexecute(statement.format(keyspace=keyspace))
    logger.info("forum_schema_ready", keyspace=keyspace, statements=len(FORUM_TABLES_CQL))


async def init_async_cassandra() -> Any:
    """Connect, then make sure the keyspace and forum schema exist.

    Returns:
        Session bound to the forum keyspace, with aexecute() support
    """
    settings = get_settings()
    session = AsyncCassandraConnection.connect()

    await session.aexecute(keyspace_cql(settings))
    session.set_keyspace(settings.cassandra_keyspace)
    await ensure_forum_schema(session, settings.cassandra_keyspace)

    return session


async def shutdown_async_cassandra() -> None:
    AsyncCassandraConnection.disconnect()
