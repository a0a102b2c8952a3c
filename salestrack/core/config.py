"""Configuration management for SalesTrack.

Loads configuration from environment variables and .env file.
Provides validation and sensible defaults.

Usage:
    from salestrack.core.config import get_config, validate_config

    config = get_config()
    issues = validate_config(config)
    if issues:
        for issue in issues:
            print(f"Config issue: {issue}")
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from salestrack.core.exceptions import ConfigurationError


@dataclass
class Config:
    """Application configuration.

    Attributes:
        db_path: Path to SQLite database file
        log_path: Directory for log files
        default_industry: Industry written on clients created by conversion
        min_password_length: Shortest password accepted at sign-up
        debug: Enable debug mode
    """

    db_path: Path = field(default_factory=lambda: Path.home() / ".salestrack" / "salestrack.db")
    log_path: Path = field(default_factory=lambda: Path.home() / ".salestrack" / "logs")
    default_industry: str = "General"
    min_password_length: int = 3
    debug: bool = False


def load_env_file(path: Path) -> dict[str, str]:
    """Parse .env file.

    Handles:
        - KEY=VALUE format
        - Comments (lines starting with #)
        - Blank lines
        - Quoted values
        - "export KEY=VALUE" lines and trailing " # comment"

    Args:
        path: Path to .env file

    Returns:
        Dictionary of environment variables
    """
    env_vars: dict[str, str] = {}

    if not path.exists():
        return env_vars

    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()

            # Skip blank lines and comments
            if not line or line.startswith("#"):
                continue

            # Shell-style files may prefix assignments with export
            if line.startswith("export "):
                line = line[len("export "):].lstrip()

            # Parse KEY=VALUE
            if "=" in line:
                key, _, value = line.partition("=")
                key = key.strip()
                value = value.strip()

                if value and value[0] in ('"', "'") and value[-1] == value[0]:
                    # Remove quotes; the quoted text is kept verbatim
                    value = value[1:-1]
                elif " #" in value:
                    # Trailing comment on an unquoted value
                    value = value.split(" #", 1)[0].rstrip()

                if key:
                    env_vars[key] = value

    return env_vars


def _get_path(key: str, default: Path, env_vars: dict[str, str]) -> Path:
    """Get path from environment, expanding ~ and resolving."""
    value = os.environ.get(key) or env_vars.get(key)
    if value:
        return Path(value).expanduser().resolve()
    return default


def _get_str(key: str, default: str, env_vars: dict[str, str]) -> str:
    """Get string from environment."""
    return os.environ.get(key) or env_vars.get(key) or default


def _get_int(key: str, default: int, env_vars: dict[str, str]) -> int:
    """Get integer from environment."""
    value = os.environ.get(key) or env_vars.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ConfigurationError(f"{key} must be an integer, got {value!r}") from e


def _get_bool(key: str, default: bool, env_vars: dict[str, str]) -> bool:
    """Get boolean from environment."""
    value = os.environ.get(key) or env_vars.get(key)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


DEFAULT_DB_PATH = Path.home() / ".salestrack" / "salestrack.db"
DEFAULT_LOG_PATH = Path.home() / ".salestrack" / "logs"
DEFAULT_INDUSTRY = "General"
DEFAULT_MIN_PASSWORD_LENGTH = 3


def load_config(env_file: Optional[Path] = None) -> Config:
    """Load configuration from environment and .env file.

    Priority:
        1. Environment variables (highest)
        2. .env file
        3. Default values (lowest)

    Args:
        env_file: Path to .env file. Defaults to .env in current directory.

    Returns:
        Loaded configuration

    Raises:
        ConfigurationError: If a numeric setting cannot be parsed
    """
    if env_file is None:
        env_file = Path.cwd() / ".env"

    env_vars = load_env_file(Path(env_file))

    return Config(
        db_path=_get_path("SALESTRACK_DB_PATH", DEFAULT_DB_PATH, env_vars),
        log_path=_get_path("SALESTRACK_LOG_PATH", DEFAULT_LOG_PATH, env_vars),
        default_industry=_get_str("SALESTRACK_DEFAULT_INDUSTRY", DEFAULT_INDUSTRY, env_vars),
        min_password_length=_get_int(
            "SALESTRACK_MIN_PASSWORD_LENGTH", DEFAULT_MIN_PASSWORD_LENGTH, env_vars
        ),
        debug=_get_bool("SALESTRACK_DEBUG", False, env_vars),
    )


def validate_config(config: Config) -> list[str]:
    """Validate configuration.

    Checks:
        - Required paths exist or can be created
        - Paths are writable
        - Settings are in range

    Args:
        config: Configuration to validate

    Returns:
        List of issues (empty if valid)
    """
    issues: list[str] = []

    db_dir = config.db_path.parent
    try:
        db_dir.mkdir(parents=True, exist_ok=True)
        if not os.access(db_dir, os.W_OK):
            issues.append(f"Database directory not writable: {db_dir}")
    except OSError as e:
        issues.append(f"Cannot create database directory {db_dir}: {e}")

    try:
        config.log_path.mkdir(parents=True, exist_ok=True)
        if not os.access(config.log_path, os.W_OK):
            issues.append(f"Log directory not writable: {config.log_path}")
    except OSError as e:
        issues.append(f"Cannot create log directory {config.log_path}: {e}")

    if config.min_password_length < 1:
        issues.append(
            f"SALESTRACK_MIN_PASSWORD_LENGTH must be at least 1, got {config.min_password_length}"
        )

    if not config.default_industry.strip():
        issues.append("SALESTRACK_DEFAULT_INDUSTRY is blank; converted clients need an industry")

    return issues


# Singleton config
_config: Optional[Config] = None


def get_config() -> Config:
    """Return cached configuration singleton.

    Loads configuration on first call, returns cached version thereafter.

    Returns:
        Application configuration
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Reset cached configuration.

    Used primarily for testing.
    """
    global _config
    _config = None
