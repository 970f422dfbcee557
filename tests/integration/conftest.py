"""
Integration test configuration.

Runs against a real PostgreSQL server: PG_TEST_INTEGRATION_URL when set,
otherwise a session-scoped container started through Docker. The database in
the URL is seeded once and used as the template for every test.
"""

import asyncio
import logging
import os

import asyncpg
import pytest
from docker.errors import DockerException

from pg_test_template.config.config_manager import ConfigManager

logger = logging.getLogger(__name__)

SEED_SQL = """
    DROP TABLE IF EXISTS widgets;
    CREATE TABLE widgets (
        id SERIAL PRIMARY KEY,
        name VARCHAR(255) NOT NULL
    );
    INSERT INTO widgets (name) VALUES ('sprocket'), ('gear');
"""


@pytest.fixture(scope="session")
def docker_manager():
    """Session-scoped Docker test manager, skipped when Docker is unavailable."""
    from pg_test_template.testing.docker_manager import DockerTestManager

    try:
        manager = DockerTestManager()
    except DockerException as e:
        pytest.skip(f"Docker not available: {e}")
    yield manager
    manager.cleanup_all()


@pytest.fixture(scope="session")
def postgres_url(request):
    """Connection string of the integration server, naming the template database."""
    url = os.getenv('PG_TEST_INTEGRATION_URL')
    if url:
        logger.info("Using PostgreSQL server from PG_TEST_INTEGRATION_URL")
        return url

    manager = request.getfixturevalue('docker_manager')
    container = manager.start_postgres(name="integration", database="test_template")
    if not manager.wait_for_health(container, timeout=90):
        pytest.fail("PostgreSQL container did not become healthy")
    logger.info(f"Using PostgreSQL container {container.name}")
    return manager.database_url(container, database="test_template")


async def _seed_template(url: str):
    # The template must have no open connections while it is cloned
    conn = await asyncpg.connect(url)
    try:
        await conn.execute(SEED_SQL)
    finally:
        await conn.close()


@pytest.fixture(scope="session", autouse=True)
def integration_environment(postgres_url):
    """Seed the template and export DATABASE_URL for code reading the environment."""
    asyncio.run(_seed_template(postgres_url))

    original_url = os.environ.get('DATABASE_URL')
    os.environ['DATABASE_URL'] = postgres_url

    yield postgres_url

    if original_url is None:
        os.environ.pop('DATABASE_URL', None)
    else:
        os.environ['DATABASE_URL'] = original_url


@pytest.fixture(scope="session")
def pg_config_manager(integration_environment, tmp_path_factory):
    """Configuration on the integration server, ignoring .env files of the checkout."""
    return ConfigManager(
        config_dir=str(tmp_path_factory.mktemp("config")),
        database_url=integration_environment,
    )
