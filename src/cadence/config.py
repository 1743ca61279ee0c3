"""Configuration management for Cadence."""

import json
import logging
import os
from dataclasses import dataclass
from datetime import tzinfo
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

CADENCE_HOME = Path(os.environ.get("CADENCE_HOME", Path.home() / "cadence"))
CONFIG_FILE = CADENCE_HOME / "config" / "cadence.conf"
TOKEN_FILE = CADENCE_HOME / "config" / ".tokens.json"
DATA_DIR = CADENCE_HOME / "data"

DEFAULT_API_BASE_URL = "https://api.cadence.app/v1"


@dataclass
class Config:
    """Cadence configuration."""

    api_base_url: str = DEFAULT_API_BASE_URL
    # IANA zone name; empty = system local zone
    timezone: str = ""
    local_store_file: str = ""
    upcoming_days: int = 7
    overdue_days: int = 7
    request_timeout: float = 10

    @property
    def store_path(self) -> Path:
        """Guest store file, defaulting to DATA_DIR/todos.json."""
        if self.local_store_file:
            return Path(self.local_store_file).expanduser()
        return DATA_DIR / "todos.json"

    def zone(self) -> tzinfo | None:
        """Configured zone, or None for the system local zone."""
        if not self.timezone:
            return None
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"Unknown timezone {self.timezone!r}, using system local zone")
            return None


@dataclass
class Tokens:
    """Credentials for the remote backend. An access token means signed in."""

    access_token: str = ""
    owner: str = ""

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token)

    def save(self) -> None:
        """Save tokens to file."""
        TOKEN_FILE.parent.mkdir(parents=True, exist_ok=True)
        TOKEN_FILE.write_text(
            json.dumps(
                {
                    "access_token": self.access_token,
                    "owner": self.owner,
                }
            )
        )
        TOKEN_FILE.chmod(0o600)

    @classmethod
    def load(cls) -> "Tokens":
        """Load tokens from file."""
        if not TOKEN_FILE.exists():
            return cls()
        try:
            data = json.loads(TOKEN_FILE.read_text())
            return cls(
                access_token=data.get("access_token", ""),
                owner=data.get("owner", ""),
            )
        except (json.JSONDecodeError, KeyError):
            return cls()

    @staticmethod
    def clear() -> None:
        """Forget stored credentials."""
        TOKEN_FILE.unlink(missing_ok=True)


def _parse_number(key: str, value: str, default, cast):
    try:
        return cast(value)
    except ValueError:
        logger.warning(f"Invalid value for {key}: {value!r}, using {default}")
        return default


def load_config() -> Config:
    """Load configuration from cadence.conf file."""
    config = Config()

    if not CONFIG_FILE.exists():
        return config

    for line in CONFIG_FILE.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if "=" not in line:
            continue

        key, _, value = line.partition("=")
        key = key.strip().lower()
        value = value.strip()

        # Quoted values may be followed by an inline comment: "value" # comment
        if value[:1] in ('"', "'"):
            quote = value[0]
            end_quote = value.find(quote, 1)
            value = value[1:end_quote] if end_quote != -1 else value[1:]
        elif "#" in value:
            value = value.split("#")[0].strip()

        match key:
            case "api_base_url":
                config.api_base_url = value.rstrip("/")
            case "timezone":
                config.timezone = value
            case "local_store_file":
                config.local_store_file = value
            case "upcoming_days":
                config.upcoming_days = _parse_number(key, value, config.upcoming_days, int)
            case "overdue_days":
                config.overdue_days = _parse_number(key, value, config.overdue_days, int)
            case "request_timeout":
                config.request_timeout = _parse_number(key, value, config.request_timeout, float)

    return config
