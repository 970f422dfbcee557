"""Deterministic database names for test identities."""

import hashlib
import re
from typing import Union

DATABASE_NAME_PREFIX = "_sqlx_"

# 8 bytes -> 16 hex chars; collisions stay negligible for any realistic suite
DIGEST_SIZE = 8

_TEST_DATABASE_NAME = re.compile(rf"^{DATABASE_NAME_PREFIX}[0-9a-f]{{{DIGEST_SIZE * 2}}}$")


def resolve_database_name(identity: Union[str, bytes]) -> str:
    """
    Derive the database name for a test identity.

    The digest is unkeyed BLAKE2b, so the same identity maps to the same name in
    every process and on every run.

    Args:
        identity: Unique test identity, e.g. ``pkg.tests.test_users::test_create``

    Returns:
        Name of the form ``_sqlx_<16 hex digits>``
    """
    if isinstance(identity, str):
        identity = identity.encode("utf-8", "surrogatepass")
    digest = hashlib.blake2b(identity, digest_size=DIGEST_SIZE).hexdigest()
    return f"{DATABASE_NAME_PREFIX}{digest}"


def is_test_database_name(name: str) -> bool:
    """Check whether a database name belongs to the per-test namespace."""
    return bool(_TEST_DATABASE_NAME.match(name))
