"""Configuration for the whosfree server.

- ``Config`` is a typed dataclass with conservative coercion in ``from_dict``.
- ``load_config()`` reads YAML (or JSON, which YAML accepts) from disk.
- ``ConfigManager`` layers a ``.env`` file and ``WHOSFREE_*`` environment
  variables on top of the file values.
"""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

# Largest calendar feed accepted, in bytes
DEFAULT_MAX_ICS_BYTES = 10 * 1024 * 1024
DEFAULT_USER_HEADER = "X-User-Id"


@dataclass
class Config:
    """Typed configuration for whosfree.

    Fields:
        database_path: SQLite file holding busy blocks and group membership
        server_bind: host to bind the HTTP server to
        server_port: port for the HTTP server
        log_level: logging level name
        max_ics_bytes: largest calendar upload accepted
        user_header: request header carrying the authenticated user id
    """

    database_path: str = "whosfree.db"
    server_bind: str = "0.0.0.0"  # nosec: B104 - overridable via config/env
    server_port: int = 8080
    log_level: str = "INFO"
    max_ics_bytes: int = DEFAULT_MAX_ICS_BYTES
    user_header: str = DEFAULT_USER_HEADER

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Config:
        """Create Config from a plain mapping, applying defaults and validation.

        Numeric-like values are coerced to int; unusable values fall back to
        their defaults with a warning.
        """
        if data is None:
            data = {}

        def _coerce_int(key: str, default: int) -> int:
            raw = data.get(key, default)
            try:
                return int(raw)
            except (TypeError, ValueError):
                logger.warning("Config %s=%r is not an int; using default %d", key, raw, default)
                return default

        server_port = _coerce_int("server_port", 8080)
        if not 0 < server_port < 65536:
            logger.warning("server_port %d out of range; using 8080", server_port)
            server_port = 8080

        max_ics_bytes = _coerce_int("max_ics_bytes", DEFAULT_MAX_ICS_BYTES)
        if max_ics_bytes <= 0:
            logger.warning("max_ics_bytes %d must be positive; using default", max_ics_bytes)
            max_ics_bytes = DEFAULT_MAX_ICS_BYTES

        server_bind = data.get("server_bind") or "0.0.0.0"  # nosec: B104
        log_level = data.get("log_level") or "INFO"
        database_path = data.get("database_path") or "whosfree.db"
        user_header = data.get("user_header") or DEFAULT_USER_HEADER

        return cls(
            database_path=str(database_path),
            server_bind=str(server_bind),
            server_port=server_port,
            log_level=str(log_level).upper(),
            max_ics_bytes=max_ics_bytes,
            user_header=str(user_header),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _load_yaml(path: Path) -> Any:
    loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
    # safe_load returns None for empty files
    return {} if loaded is None else loaded


def load_config(path: str | None = None) -> Config:
    """Load configuration from a YAML file and return a Config instance.

    Args:
        path: Optional path to the config file. Defaults to ./whosfree.yaml.

    Returns:
        Config with values from the file, or defaults when it is missing.

    Raises:
        ValueError: If the file's top level is not a mapping.
    """
    p = Path(path) if path else Path.cwd() / "whosfree.yaml"
    logger.debug("Attempting to load config from %s", p)
    if not p.exists():
        logger.info("Config file %s not found; using defaults", p)
        return Config()

    raw = _load_yaml(p)
    if not isinstance(raw, dict):
        logger.warning("Config file %s parsed but top-level is not a mapping: %r", p, raw)
        raise ValueError("Config file must contain a mapping at top level")  # noqa: TRY004
    cfg = Config.from_dict(raw)
    logger.info("Loaded configuration from %s", p)
    return cfg


def parse_env_file(path: Path) -> dict[str, str]:
    """Parse a .env file into key-value pairs.

    Skips blank lines and comments, strips single and double quotes from
    values. Returns an empty dict if the file doesn't exist.
    """
    if not path.exists():
        return {}

    result: dict[str, str] = {}
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, val = line.split("=", 1)
        key = key.strip()
        if key:
            result[key] = val.strip().strip('"').strip("'")
    return result


class ConfigManager:
    """Builds the effective Config from a file, a .env file and the environment."""

    ENV_KEYS: dict[str, str] = {
        "WHOSFREE_DATABASE_PATH": "database_path",
        "WHOSFREE_WEB_HOST": "server_bind",
        "WHOSFREE_WEB_PORT": "server_port",
        "WHOSFREE_LOG_LEVEL": "log_level",
        "WHOSFREE_MAX_ICS_BYTES": "max_ics_bytes",
        "WHOSFREE_USER_HEADER": "user_header",
    }

    def __init__(self, env_file_path: Path | None = None):
        self.env_file_path = env_file_path or Path.cwd() / ".env"

    def load_env_file(self) -> list[str]:
        """Load the .env file into os.environ without overriding existing keys.

        Returns:
            Keys that were set from the file
        """
        parsed = parse_env_file(self.env_file_path)
        set_keys = []
        for key, val in parsed.items():
            if key not in os.environ:
                os.environ[key] = val
                set_keys.append(key)

        if set_keys:
            logger.debug("Loaded .env defaults for keys: %s", ", ".join(set_keys))
        return set_keys

    def build_config_from_env(self) -> dict[str, Any]:
        """Collect recognised WHOSFREE_* variables into a config mapping."""
        cfg: dict[str, Any] = {}
        for env_key, cfg_key in self.ENV_KEYS.items():
            value = os.environ.get(env_key)
            if value:
                cfg[cfg_key] = value
        return cfg

    def load_full_config(self, path: str | None = None) -> Config:
        """Load file config, then apply .env and environment overrides."""
        base = load_config(path)
        self.load_env_file()
        overrides = self.build_config_from_env()
        if not overrides:
            return base
        merged = base.to_dict()
        merged.update(overrides)
        return Config.from_dict(merged)
