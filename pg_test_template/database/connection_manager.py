"""
Administrative Connection Manager for pg-test-template

Provides the short-lived control connection used for database-level DDL
(CREATE/DROP/COMMENT ON DATABASE) and maps asyncpg failures onto DriverError.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import asyncpg

from pg_test_template.config.config_manager import ConfigManager
from pg_test_template.exceptions import DriverError

logger = logging.getLogger(__name__)

DRIVER_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


def quote_identifier(name: str) -> str:
    """
    Quote a database name for DDL.

    Every name is double-quoted, so reserved words such as ``order`` and
    mixed-case names are taken literally.
    """
    return '"' + name.replace('"', '""') + '"'


def quote_literal(value: str) -> str:
    """Render a string as a standard-conforming SQL literal."""
    return "'" + value.replace("'", "''") + "'"


class AdminConnectionManager:
    """
    Manages one administrative connection to the maintenance database.

    The connection is never pooled: it is opened for a single phase of the
    per-test lifecycle (clone or teardown) and closed right after, see session().
    """

    def __init__(self, config_manager: ConfigManager):
        """
        Initialize AdminConnectionManager.

        Args:
            config_manager: Configuration holding DATABASE_URL and timeouts
        """
        self.config = config_manager
        self._connection: Optional[asyncpg.Connection] = None

    @property
    def database(self) -> str:
        """Name of the administrative database."""
        return self.config.admin_database

    async def connect(self, timeout: Optional[float] = None) -> asyncpg.Connection:
        """
        Establish the administrative connection.

        Args:
            timeout: Connection timeout in seconds

        Returns:
            Database connection

        Raises:
            DriverError: If connection fails
        """
        connection_string = self.config.get_admin_database_url()

        try:
            self._connection = await asyncpg.connect(
                connection_string,
                timeout=timeout or self.config.connect_timeout
            )
            logger.debug(f"Administrative connection to '{self.database}' established")
            return self._connection

        except asyncpg.InvalidPasswordError as e:
            raise DriverError(f"Invalid password: {e}") from e
        except asyncpg.InvalidCatalogNameError as e:
            raise DriverError(f"Database does not exist: {e}") from e
        except asyncpg.PostgresError as e:
            raise DriverError(f"PostgreSQL connection error: {e}") from e
        except asyncio.TimeoutError as e:
            raise DriverError(f"Connection timeout: {e}") from e
        except asyncpg.InterfaceError as e:
            raise DriverError(f"Connection interface error: {e}") from e
        except OSError as e:
            raise DriverError(f"Cannot connect to host: {e}") from e

    async def close(self):
        """Close the administrative connection."""
        if not self._connection:
            return
        connection, self._connection = self._connection, None
        try:
            await connection.close()
            logger.debug("Administrative connection closed")
        except DRIVER_ERRORS as e:
            logger.warning(f"Administrative connection did not close cleanly, terminating: {e}")
            connection.terminate()

    @asynccontextmanager
    async def session(self, timeout: Optional[float] = None) -> AsyncGenerator["AdminConnectionManager", None]:
        """
        Open the connection for the duration of one administrative phase.

        The connection is closed on every exit path, including errors raised by
        the statements issued inside the block.
        """
        await self.connect(timeout=timeout)
        try:
            yield self
        finally:
            await self.close()

    async def execute(self, query: str, timeout: Optional[float] = None) -> str:
        """
        Execute a DDL statement on the administrative connection.

        Args:
            query: SQL statement to execute
            timeout: Statement timeout in seconds

        Returns:
            Command status

        Raises:
            DriverError: If there is no open connection or execution fails
        """
        if not self._connection or self._connection.is_closed():
            raise DriverError("administrative connection is not open", statement=query)

        logger.debug(f"Executing: {query}")
        try:
            return await self._connection.execute(query, timeout=timeout)
        except asyncio.TimeoutError as e:
            raise DriverError(f"Query timeout exceeded: {query}", statement=query) from e
        except DRIVER_ERRORS as e:
            raise DriverError(f"Statement failed: {e} ({query})", statement=query) from e

    async def fetch(self, query: str, *args, timeout: Optional[float] = None):
        """Run a catalog query on the administrative connection."""
        if not self._connection or self._connection.is_closed():
            raise DriverError("administrative connection is not open", statement=query)

        try:
            return await self._connection.fetch(query, *args, timeout=timeout)
        except asyncio.TimeoutError as e:
            raise DriverError(f"Query timeout exceeded: {query}", statement=query) from e
        except DRIVER_ERRORS as e:
            raise DriverError(f"Query failed: {e}", statement=query) from e
