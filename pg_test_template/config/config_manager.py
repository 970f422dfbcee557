"""
Configuration Manager for pg-test-template

Handles DATABASE_URL parsing, environment file loading and the tuning knobs of
the per-test database lifecycle (timeouts, pool idle reaping, admin database).
"""

import logging
import os
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import quote, unquote, urlsplit, urlunsplit

from pg_test_template.exceptions import ConfigError

logger = logging.getLogger(__name__)

# Kept for callers that think of configuration problems as validation failures
ConfigValidationError = ConfigError


class ConfigManager:
    """
    Central configuration for per-test databases.

    Provides:
    - DATABASE_URL loading and validation (host, credentials, template database)
    - Environment file loading with precedence
    - Administrative database selection
    - Timeouts for test bodies, pool shutdown and connecting
    """

    SUPPORTED_SCHEMES = ('postgres', 'postgresql')

    DEFAULT_ADMIN_DATABASE = 'postgres'

    # Tuning defaults, in seconds
    DEFAULT_TIMEOUTS = {
        'PG_TEST_TIMEOUT': 300.0,
        'PG_TEST_POOL_CLOSE_TIMEOUT': 10.0,
        'PG_TEST_IDLE_TIMEOUT': 1.0,
        'PG_TEST_CONNECT_TIMEOUT': 60.0,
    }

    def __init__(
        self,
        config_dir: Optional[str] = None,
        database_url: Optional[str] = None
    ):
        """
        Initialize ConfigManager.

        Args:
            config_dir: Directory containing environment files
            database_url: Explicit connection string, overrides DATABASE_URL

        Raises:
            ConfigError: If DATABASE_URL is missing or unparsable, or a tuning
                value is not a number
        """
        self.config_dir = Path(config_dir) if config_dir else Path.cwd()

        self._env_vars: Dict[str, str] = {}
        self._load_env_files()

        self._database_url = database_url or self._get('DATABASE_URL')
        self._parse_database_url()
        self._load_timeouts()

    def _load_env_files(self):
        """Load environment files with precedence: .env.prod > .env.staging > .env.dev > .env"""
        env = os.getenv('ENV', 'dev')

        env_files = ['.env']
        if env in ['dev', 'staging', 'prod']:
            env_files.append('.env.dev')
        if env in ['staging', 'prod']:
            env_files.append('.env.staging')
        if env == 'prod':
            env_files.append('.env.prod')

        # Later files override earlier ones
        for env_file in env_files:
            env_path = self.config_dir / env_file
            if env_path.exists():
                self._load_env_file(env_path)

    def _load_env_file(self, env_path: Path):
        """Load a single environment file into our internal env_vars dict."""
        try:
            with open(env_path, 'r') as f:
                for line in f:
                    line = line.strip()
                    if line and not line.startswith('#') and '=' in line:
                        key, value = line.split('=', 1)
                        self._env_vars[key.strip()] = value.strip().strip('"').strip("'")
        except OSError as e:
            logger.warning(f"Could not read environment file {env_path}: {e}")

    def _get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        # os.environ first (highest precedence), then file-loaded env_vars
        value = os.getenv(name) or self._env_vars.get(name)
        return value if value else default

    def _parse_database_url(self):
        """Split DATABASE_URL into its parts, failing before any network I/O."""
        if not self._database_url:
            raise ConfigError("DATABASE_URL is missing or invalid")

        try:
            parts = urlsplit(self._database_url)
            # Accessing .port validates it
            port = parts.port
        except ValueError as e:
            raise ConfigError(f"DATABASE_URL is missing or invalid: {e}")

        if parts.scheme not in self.SUPPORTED_SCHEMES:
            raise ConfigError(
                f"DATABASE_URL is missing or invalid: unsupported scheme '{parts.scheme}'"
            )

        self._url_parts = parts
        self._port = port
        database = unquote(parts.path.lstrip('/'))
        self._database = database or None

        logger.debug(
            f"Parsed DATABASE_URL: host={parts.hostname}, port={port}, database={self._database}"
        )

    def _load_timeouts(self):
        self._timeouts: Dict[str, Optional[float]] = {}
        for name, default in self.DEFAULT_TIMEOUTS.items():
            raw = self._get(name)
            if raw is None:
                self._timeouts[name] = default
                continue
            try:
                value = float(raw)
            except ValueError:
                raise ConfigError(f"Invalid {name}: '{raw}' - must be a number of seconds")
            if value < 0:
                raise ConfigError(f"Invalid {name}: '{raw}' - must not be negative")
            # 0 disables the test body timeout; the others need a real bound
            if value == 0 and name != 'PG_TEST_TIMEOUT':
                raise ConfigError(f"Invalid {name}: '{raw}' - must be greater than 0")
            self._timeouts[name] = value or None

    @property
    def database_url(self) -> str:
        """Get the configured connection string."""
        return self._database_url

    @property
    def default_database(self) -> Optional[str]:
        """Database named in DATABASE_URL, the implicit clone template."""
        return self._database

    @property
    def admin_database(self) -> str:
        """Database the administrative connection targets for CREATE/DROP/COMMENT."""
        return self._get('PG_TEST_ADMIN_DATABASE', self.DEFAULT_ADMIN_DATABASE)

    @property
    def postgres_host(self) -> Optional[str]:
        return self._url_parts.hostname

    @property
    def postgres_port(self) -> Optional[int]:
        return self._port

    @property
    def postgres_user(self) -> Optional[str]:
        return unquote(self._url_parts.username) if self._url_parts.username else None

    @property
    def test_timeout(self) -> Optional[float]:
        """Bound on a single test body in seconds, None when disabled."""
        return self._timeouts['PG_TEST_TIMEOUT']

    @property
    def pool_close_timeout(self) -> float:
        """Bound on draining a test pool after the body finished."""
        return self._timeouts['PG_TEST_POOL_CLOSE_TIMEOUT']

    @property
    def idle_timeout(self) -> float:
        """Idle connection reap interval of test pools."""
        return self._timeouts['PG_TEST_IDLE_TIMEOUT']

    @property
    def connect_timeout(self) -> float:
        return self._timeouts['PG_TEST_CONNECT_TIMEOUT']

    def resolve_template(self, template_name: Optional[str] = None) -> str:
        """
        Get the template database for a test.

        Args:
            template_name: Explicit template, falls back to the DATABASE_URL database

        Returns:
            Template database name

        Raises:
            ConfigError: If no template is given and DATABASE_URL names no database
        """
        template = template_name or self._database
        if not template:
            raise ConfigError("DATABASE_URL does not name a template database")
        return template

    def get_database_url(self, database: Optional[str] = None) -> str:
        """Get a connection string for another database on the same server."""
        if database is None:
            return self._database_url
        parts = self._url_parts
        return urlunsplit((
            parts.scheme,
            parts.netloc,
            '/' + quote(database, safe=''),
            parts.query,
            parts.fragment,
        ))

    def get_admin_database_url(self) -> str:
        """Get the connection string of the administrative database."""
        return self.get_database_url(self.admin_database)
