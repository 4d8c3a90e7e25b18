"""
Centralized configuration management.

Configuration is loaded from:
1. Environment variables
2. .env file (if present)
3. Default values

Usage:
    from tallyguard.config import get_config
    config = get_config()
    print(config.store_backend)  # "json" unless STORE_BACKEND is set
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


def _load_dotenv(dotenv_path: Optional[Path] = None) -> None:
    """
    Minimal .env loader (no external dependency).

    Supports KEY=VALUE, ignores blank lines and comments (#).
    Does not override existing environment variables.
    """
    if dotenv_path is None:
        dotenv_path = Path(__file__).resolve().parent.parent / ".env"

    if not dotenv_path.exists() or not dotenv_path.is_file():
        return

    for raw_line in dotenv_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if not key:
            continue
        # Only set if not already in environment
        if os.getenv(key) in (None, ""):
            os.environ[key] = value


# Load .env on module import
_load_dotenv()


def _get_bool_env(key: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    value = os.getenv(key, "").strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    return default


def _get_int_env(key: str, default: int) -> int:
    """Get integer from environment variable."""
    value = os.getenv(key, "").strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float_env(key: str, default: Optional[float] = None) -> Optional[float]:
    """Get float from environment variable."""
    value = os.getenv(key, "").strip()
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass
class DBConfig:
    """Database configuration (PostgreSQL)."""
    host: str = field(default_factory=lambda: os.getenv("DB_HOST", ""))
    port: int = field(default_factory=lambda: _get_int_env("DB_PORT", 5432))
    name: str = field(default_factory=lambda: os.getenv("DB_NAME", ""))
    user: str = field(default_factory=lambda: os.getenv("DB_USER", ""))
    password: str = field(default_factory=lambda: os.getenv("DB_PASSWORD", ""))
    ssl_mode: str = field(default_factory=lambda: os.getenv("DB_SSL_MODE", "prefer"))

    # Pool settings
    pool_min: int = field(default_factory=lambda: _get_int_env("DB_POOL_MIN", 1))
    pool_max: int = field(default_factory=lambda: _get_int_env("DB_POOL_MAX", 10))
    connect_timeout: int = field(default_factory=lambda: _get_int_env("DB_CONNECT_TIMEOUT", 10))

    @property
    def is_configured(self) -> bool:
        """Check if minimal DB config is present."""
        return bool(self.host and self.name and self.user)


@dataclass
class VotingConfig:
    """Behaviour of the voting core and its caller-facing facade."""

    # Retry configuration (only CONFLICT / UNAVAILABLE errors are retried)
    max_retries: int = field(default_factory=lambda: _get_int_env("VOTING_MAX_RETRIES", 3))
    retry_delay_sec: float = field(
        default_factory=lambda: _get_float_env("VOTING_RETRY_DELAY_SEC", 0.2) or 0.0
    )

    # Authorizing a never-registered address raises VoterNotFound when True,
    # and is a silent no-op when False.
    strict_authorize: bool = field(
        default_factory=lambda: _get_bool_env("VOTING_STRICT_AUTHORIZE", True)
    )

    # Applied when a caller passes no deadline; 0 disables it.
    default_timeout_sec: float = field(
        default_factory=lambda: _get_float_env("VOTING_DEFAULT_TIMEOUT_SEC", 0.0) or 0.0
    )


@dataclass
class Config:
    """
    Main application configuration.

    All settings are loaded from environment variables with sensible defaults.
    Set DEBUG=1 in environment to enable debug logging.
    """

    # Base directory (project root)
    base_dir: Path = field(default_factory=lambda: Path(__file__).resolve().parent.parent)

    # Directory / file paths
    logs_dir: Path = field(default=None)
    store_path: Path = field(default=None)

    debug: bool = field(default_factory=lambda: _get_bool_env("DEBUG", False))
    log_to_file: bool = field(default_factory=lambda: _get_bool_env("LOG_TO_FILE", False))

    # "memory", "json" or "postgres"
    store_backend: str = field(
        default_factory=lambda: os.getenv("STORE_BACKEND", "json").strip().lower()
    )

    election_name: str = field(
        default_factory=lambda: os.getenv("ELECTION_NAME", "Presidential Election")
    )
    owner: str = field(default_factory=lambda: os.getenv("ELECTION_OWNER", "ownerAddress"))

    # Sub-configurations
    db: DBConfig = field(default_factory=DBConfig)
    voting: VotingConfig = field(default_factory=VotingConfig)

    def __post_init__(self):
        """Resolve paths after initialization."""
        if self.logs_dir is None:
            self.logs_dir = self.base_dir / os.getenv("LOG_DIR", "logs")
        if self.store_path is None:
            self.store_path = self.base_dir / os.getenv("STORE_PATH", "data/election.json")
        self.logs_dir = Path(self.logs_dir)
        self.store_path = Path(self.store_path)


# Global config instance (lazily initialized)
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def reset_config() -> None:
    """Reset the global configuration (useful for testing)."""
    global _config
    _config = None
