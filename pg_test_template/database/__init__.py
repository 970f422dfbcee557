"""
Database package for pg-test-template.

Provides deterministic naming, template cloning, test pool provisioning and
teardown, and diagnostics for leaked test databases.
"""

from .connection_manager import AdminConnectionManager, quote_identifier, quote_literal
from .diagnostics import TestDatabaseRecord, drop_test_databases, find_test_databases
from .naming import DATABASE_NAME_PREFIX, is_test_database_name, resolve_database_name
from .pool_manager import bound_database_name, close_test_pool, create_test_pool
from .template_manager import clone_template

__all__ = [
    'AdminConnectionManager',
    'DATABASE_NAME_PREFIX',
    'TestDatabaseRecord',
    'bound_database_name',
    'clone_template',
    'close_test_pool',
    'create_test_pool',
    'drop_test_databases',
    'find_test_databases',
    'is_test_database_name',
    'quote_identifier',
    'quote_literal',
    'resolve_database_name',
]
