"""
Error taxonomy for the per-test database lifecycle.

Every failure raised by the pipeline derives from TestDatabaseError so a test
harness can catch and aggregate them in one place.
"""

from typing import Optional


class TestDatabaseError(Exception):
    """Base class for all per-test database failures."""

    __test__ = False


class ConfigError(TestDatabaseError):
    """Raised when DATABASE_URL or a tuning option is missing or unparsable."""
    pass


class ProtectedTemplateError(TestDatabaseError):
    """Raised when the administrative database is requested as a clone template."""

    def __init__(self, template_name: str):
        super().__init__(f"'{template_name}' database can not act as a template")
        self.template_name = template_name


class DatabaseNotFoundError(TestDatabaseError):
    """Raised when a test pool carries no bound database name."""

    def __init__(self, message: str = "database not found for an open connection pool"):
        super().__init__(message)


class DriverError(TestDatabaseError):
    """Wraps any asyncpg or network failure raised while talking to the server."""

    def __init__(self, message: str, statement: Optional[str] = None):
        super().__init__(message)
        self.statement = statement


class ExecutionTimeoutError(TestDatabaseError, TimeoutError):
    """Raised when a test body runs past its configured time bound."""

    def __init__(self, message: str, timeout: Optional[float] = None):
        super().__init__(message)
        self.timeout = timeout


class PoolCloseTimeoutError(ExecutionTimeoutError):
    """Raised when a test pool did not drain within the close timeout.

    The test kept connections checked out after its body finished; the pool is
    terminated and the database is still dropped before this is raised.
    """

    def __init__(self, database_name: str, timeout: float, outstanding: int = 0):
        super().__init__(
            f"test pool for '{database_name}' retained {outstanding} connection(s) "
            f"past test completion (close timeout {timeout}s)",
            timeout=timeout,
        )
        self.database_name = database_name
        self.outstanding = outstanding


class TeardownError(TestDatabaseError):
    """Raised when a test database could not be dropped after the test."""

    def __init__(self, database_name: str, cause: Exception):
        super().__init__(f"teardown of '{database_name}' failed: {cause}")
        self.database_name = database_name


class TestFailedError(TestDatabaseError):
    """Surface error for the synchronous entry point: 'test failed: <cause>'."""

    def __init__(self, cause: Exception):
        super().__init__(f"test failed: {cause}")
