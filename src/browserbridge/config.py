"""
BrowserBridge - Configuration

Sources, lowest priority first:
    ~/.browserbridge/config.yaml   KEY: value pairs, shared by every project
    .env                          nearest one in the working directory or above
    environment variables         BROWSER_TYPE, EDGE_USER_DATA_DIR, ...

Priority: ENV > .env > config.yaml

Read once at process start. There is no hot-reload: a running server keeps
the BrowserSettings it was started with.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from browserbridge.errors import ConfigError

# ═══════════════════════════════════════════════════════════════════════════
# Config Paths
# ═══════════════════════════════════════════════════════════════════════════

BROWSERBRIDGE_HOME = Path.home() / ".browserbridge"
CONFIG_FILE = BROWSERBRIDGE_HOME / "config.yaml"

CONFIG_KEYS = [
    "BROWSER_TYPE",
    "EDGE_USER_DATA_DIR",
    "EDGE_PROFILE",
    "HEADLESS",
    "NAVIGATION_TIMEOUT",
    "ACTION_TIMEOUT",
    "MESSENGER_URL",
]

BROWSER_TYPES = ("msedge", "chrome", "chromium", "firefox")


# ═══════════════════════════════════════════════════════════════════════════
# Browser Settings
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class BrowserSettings:
    """Everything the session and workflows need from configuration."""

    browser_type: str = "msedge"
    user_data_dir: str | None = None
    profile: str = "Default"
    headless: bool = False  # Visible by default so the user can log in
    navigation_timeout: int = 30000
    action_timeout: int = 10000
    messenger_url: str = "https://www.messenger.com"


# ═══════════════════════════════════════════════════════════════════════════
# Config Loader
# ═══════════════════════════════════════════════════════════════════════════


class Config:
    """Layered settings: config.yaml, then .env, then the process environment."""

    def __init__(self, config_file: Path | None = None, cwd: Path | None = None):
        self.data: dict[str, Any] = {}
        self._config_file = config_file or CONFIG_FILE
        self._cwd = cwd or Path.cwd()
        self._load()

    def _load(self):
        if self._config_file.exists():
            try:
                loaded = yaml.safe_load(self._config_file.read_text(encoding="utf-8"))
            except yaml.YAMLError as e:
                raise ConfigError(f"{self._config_file} is not valid YAML: {e}") from e
            if loaded is not None and not isinstance(loaded, dict):
                raise ConfigError(f"{self._config_file} must contain a mapping of KEY: value")
            self.data.update(loaded or {})

        dotenv = _find_dotenv(self._cwd)
        if dotenv is not None:
            # .env beats config.yaml; real environment variables are applied last
            self.data.update({k: v for k, v in _parse_dotenv(dotenv).items() if k not in os.environ})

        self.data.update({key: os.environ[key] for key in CONFIG_KEYS if key in os.environ})

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def set(self, key: str, value: Any):
        """Override a value for this process only (nothing is written back)."""
        self.data[key] = value

    def _get_int(self, key: str, default: int) -> int:
        raw = self.get(key)
        if raw in (None, ""):
            return default
        try:
            value = int(raw)
        except (TypeError, ValueError):
            raise ConfigError(f"{key} must be an integer (milliseconds), got {raw!r}")
        if value <= 0:
            raise ConfigError(f"{key} must be positive, got {value}")
        return value

    def _get_bool(self, key: str, default: bool) -> bool:
        raw = self.get(key)
        if raw in (None, ""):
            return default
        if isinstance(raw, bool):
            return raw
        return str(raw).strip().lower() in ("1", "true", "yes", "on")

    def browser_settings(self) -> BrowserSettings:
        """Build validated BrowserSettings from the loaded values."""
        browser_type = str(self.get("BROWSER_TYPE") or "msedge").lower()
        if browser_type not in BROWSER_TYPES:
            raise ConfigError(
                f"BROWSER_TYPE must be one of {', '.join(BROWSER_TYPES)}, got {browser_type!r}"
            )

        user_data_dir = self.get("EDGE_USER_DATA_DIR") or None
        if user_data_dir:
            user_data_dir = str(Path(str(user_data_dir)).expanduser())

        return BrowserSettings(
            browser_type=browser_type,
            user_data_dir=user_data_dir,
            profile=str(self.get("EDGE_PROFILE") or "Default"),
            headless=self._get_bool("HEADLESS", False),
            navigation_timeout=self._get_int("NAVIGATION_TIMEOUT", 30000),
            action_timeout=self._get_int("ACTION_TIMEOUT", 10000),
            messenger_url=str(self.get("MESSENGER_URL") or "https://www.messenger.com").rstrip("/"),
        )


# ═══════════════════════════════════════════════════════════════════════════
# .env files
# ═══════════════════════════════════════════════════════════════════════════


def _find_dotenv(start: Path, levels: int = 5) -> Path | None:
    """Nearest .env in ``start`` or its parents (``levels`` directories in total)."""
    for directory in [start, *start.parents][:levels]:
        candidate = directory / ".env"
        if candidate.is_file():
            return candidate
    return None


def _parse_dotenv(path: Path) -> dict[str, str]:
    """KEY=value lines. Comments and blank lines are skipped, quotes stripped."""
    values: dict[str, str] = {}
    for raw in path.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        values[key.strip()] = value.strip().strip("\"'")
    return values


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════


def load_config() -> Config:
    """Load config from all sources."""
    return Config()


def load_settings() -> BrowserSettings:
    """Shortcut: load config and return BrowserSettings."""
    return load_config().browser_settings()
