"""
pg-test-template testing infrastructure

Per-test database isolation: a test database cloned from a template for every
test, the decorator and pytest plugin that provide it, and the Docker helper
used to start a throwaway PostgreSQL server for integration runs.
"""

from .decorators import function_identity, pg_test
from .runner import execute_test, run_test, run_test_async
from .test_database import TestConfig, TestDatabaseManager

__all__ = [
    'TestConfig',
    'TestDatabaseManager',
    'execute_test',
    'function_identity',
    'pg_test',
    'run_test',
    'run_test_async',
]
