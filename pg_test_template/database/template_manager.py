"""
Template Manager

Clones a template database into a fresh per-test database on the server side.
"""

import logging

from pg_test_template.database.connection_manager import (
    AdminConnectionManager,
    quote_identifier,
    quote_literal,
)
from pg_test_template.exceptions import ProtectedTemplateError

logger = logging.getLogger(__name__)


def drop_database_sql(database_name: str) -> str:
    return f"DROP DATABASE IF EXISTS {quote_identifier(database_name)}"


def create_database_sql(database_name: str, template_name: str) -> str:
    return (
        f"CREATE DATABASE {quote_identifier(database_name)} "
        f"WITH TEMPLATE {quote_identifier(template_name)}"
    )


def comment_database_sql(database_name: str, identity: str) -> str:
    return f"COMMENT ON DATABASE {quote_identifier(database_name)} IS {quote_literal(identity)}"


async def clone_template(
    admin: AdminConnectionManager,
    template_name: str,
    database_name: str,
    identity: str,
) -> str:
    """
    Create a test database from a template.

    A stale database left behind by an aborted run of the same test is dropped
    first. The new database is commented with the test identity so leaked
    databases can be traced back to their test afterwards.

    Steps 1 and 2 are not atomic: two concurrent runs of the same identity race
    on the same name, so callers must run each identity at most once at a time.

    Args:
        admin: Open administrative connection
        template_name: Database to copy
        database_name: Name of the database to create
        identity: Test identity stored as the database comment

    Returns:
        Name of the created database

    Raises:
        ProtectedTemplateError: If the template is the administrative database
        DriverError: If any statement fails (missing template, privileges,
            template still in use by another session)
    """
    if template_name == admin.database:
        raise ProtectedTemplateError(template_name)

    await admin.execute(drop_database_sql(database_name))
    await admin.execute(create_database_sql(database_name, template_name))
    await admin.execute(comment_database_sql(database_name, identity))

    logger.info(f"Created test database '{database_name}' from template '{template_name}' for {identity}")
    return database_name
