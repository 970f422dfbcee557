"""
Diagnostics for leaked test databases.

Every test database carries its test identity as a comment, so databases left
behind by crashed or interrupted runs can be listed and dropped by identity.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List

from pg_test_template.database.connection_manager import AdminConnectionManager
from pg_test_template.database.naming import DATABASE_NAME_PREFIX, is_test_database_name
from pg_test_template.database.template_manager import drop_database_sql

logger = logging.getLogger(__name__)

FIND_TEST_DATABASES_SQL = """
    SELECT
        d.datname AS database_name,
        sd.description AS comment
    FROM
        pg_database d
    JOIN
        pg_shdescription sd ON d.oid = sd.objoid
    WHERE
        sd.description ILIKE $1
        AND starts_with(d.datname, $2)
    ORDER BY d.datname
"""


@dataclass(frozen=True)
class TestDatabaseRecord:
    """A test database found on the server, with the identity it was created for."""

    __test__ = False

    name: str
    identity: str


async def find_test_databases(
    admin: AdminConnectionManager,
    pattern: str = "%"
) -> List[TestDatabaseRecord]:
    """
    List test databases whose identity matches an ILIKE pattern.

    Args:
        admin: Open administrative connection
        pattern: ILIKE pattern over the test identity, e.g. ``%test_users%``

    Returns:
        Matching databases ordered by name
    """
    rows = await admin.fetch(FIND_TEST_DATABASES_SQL, pattern, DATABASE_NAME_PREFIX)
    records = [
        TestDatabaseRecord(name=row['database_name'], identity=row['comment'])
        for row in rows
        if is_test_database_name(row['database_name'])
    ]
    logger.debug(f"Found {len(records)} test database(s) matching '{pattern}'")
    return records


async def drop_test_databases(
    admin: AdminConnectionManager,
    records: Iterable[TestDatabaseRecord]
) -> List[str]:
    """Drop the given test databases, returning the names that were dropped."""
    dropped = []
    for record in records:
        if not is_test_database_name(record.name):
            logger.warning(f"Refusing to drop '{record.name}': not a test database name")
            continue
        await admin.execute(drop_database_sql(record.name))
        logger.info(f"Dropped leaked test database '{record.name}' ({record.identity})")
        dropped.append(record.name)
    return dropped
