"""
Test Pool Manager

Opens the connection pool a test runs against and tears it down together with
its database once the test is finished.
"""

import asyncio
import logging
from typing import Optional

import asyncpg

from pg_test_template.config.config_manager import ConfigManager
from pg_test_template.database.connection_manager import AdminConnectionManager, DRIVER_ERRORS
from pg_test_template.database.template_manager import drop_database_sql
from pg_test_template.exceptions import (
    ConfigError,
    DatabaseNotFoundError,
    DriverError,
    PoolCloseTimeoutError,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONNECTIONS = 1


async def create_test_pool(
    config: ConfigManager,
    database_name: str,
    max_connections: Optional[int] = None
) -> asyncpg.Pool:
    """
    Open a bounded pool whose every connection targets the test database.

    A single connection by default serializes the queries of a test; tests that
    need concurrency ask for more via max_connections. Idle connections are
    reaped after config.idle_timeout so server backends are released as soon as
    the test stops querying.

    Args:
        config: Configuration holding DATABASE_URL and timeouts
        database_name: Test database the pool is bound to
        max_connections: Pool ceiling, 1 when not given

    Returns:
        Connection pool

    Raises:
        ConfigError: If max_connections is below 1
        DriverError: If the pool cannot connect
    """
    max_size = DEFAULT_MAX_CONNECTIONS if max_connections is None else max_connections
    if max_size < 1:
        raise ConfigError(f"max_connections must be at least 1, got {max_connections}")

    try:
        pool = await asyncpg.create_pool(
            config.database_url,
            database=database_name,
            min_size=1,
            max_size=max_size,
            max_inactive_connection_lifetime=config.idle_timeout,
            timeout=config.connect_timeout,
        )
    except asyncio.TimeoutError as e:
        raise DriverError(f"Connection timeout opening pool for '{database_name}': {e}") from e
    except DRIVER_ERRORS as e:
        raise DriverError(f"Failed to open pool for '{database_name}': {e}") from e

    logger.debug(f"Opened test pool for '{database_name}' (max_size={max_size})")
    return pool


def bound_database_name(pool: asyncpg.Pool) -> str:
    """
    Get the database a test pool is bound to.

    The name is read back from the pool's own connect parameters, so teardown
    always drops the database the pool was created for.

    Raises:
        DatabaseNotFoundError: If the pool carries no database binding
    """
    connect_kwargs = getattr(pool, '_connect_kwargs', None) or {}
    database_name = connect_kwargs.get('database')
    if not isinstance(database_name, str) or not database_name:
        raise DatabaseNotFoundError()
    return database_name


async def close_test_pool(
    admin: AdminConnectionManager,
    pool: asyncpg.Pool,
    close_timeout: float
) -> str:
    """
    Close a test pool and drop its database.

    The server refuses to drop a database with open connections, so the pool is
    fully closed first. A pool that does not drain within close_timeout is
    terminated; its database is still dropped and PoolCloseTimeoutError is
    raised afterwards.

    Args:
        admin: Open administrative connection
        pool: Pool returned by create_test_pool()
        close_timeout: Seconds to wait for checked-out connections

    Returns:
        Name of the dropped database

    Raises:
        DatabaseNotFoundError: If the pool has no bound database
        PoolCloseTimeoutError: If the test held connections past close_timeout
        DriverError: If the pool cannot be closed or the drop fails
    """
    database_name = bound_database_name(pool)

    # Counted up front: a timed out Pool.close() terminates the pool itself and
    # the sizes read back as 0 afterwards
    outstanding = pool.get_size() - pool.get_idle_size()

    close_error: Optional[Exception] = None
    try:
        await asyncio.wait_for(pool.close(), timeout=close_timeout)
    except asyncio.TimeoutError:
        pool.terminate()
        close_error = PoolCloseTimeoutError(database_name, close_timeout, outstanding)
        logger.error(str(close_error))
    except DRIVER_ERRORS as e:
        pool.terminate()
        close_error = DriverError(f"Failed to close test pool for '{database_name}': {e}")
        close_error.__cause__ = e
        logger.error(str(close_error))

    await admin.execute(drop_database_sql(database_name))
    logger.info(f"Dropped test database '{database_name}'")

    if close_error is not None:
        raise close_error
    return database_name
