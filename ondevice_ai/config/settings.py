# ondevice_ai/config/settings.py
"""
Launcher settings for ondevice-ai.

Settings are resolved in this order:
- dataclass defaults
- optional JSON settings file (unknown keys ignored)
- ONDEVICE_AI_* environment variables
"""

from __future__ import annotations

import json
import logging
import os
import sys
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

# Module logger
logger = logging.getLogger(__name__)

PACKAGE_LOGGER_NAME = "ondevice_ai"
CACHE_DIR_NAME = "ondevice-ai"
STATE_FILE_NAME = "state.json"

ENV_APP_PATH = "ONDEVICE_AI_APP_PATH"
ENV_STATE_PATH = "ONDEVICE_AI_STATE_PATH"
ENV_LOG_LEVEL = "ONDEVICE_AI_LOG_LEVEL"

LOG_LEVELS = ("silent", "info", "debug")

DEFAULT_TIMEOUT_S = 20.0
DEFAULT_POLL_INTERVAL_S = 0.5
DEFAULT_HEALTH_TIMEOUT_S = 1.0
DEFAULT_SHUTDOWN_TIMEOUT_S = 2.0


def get_cache_dir() -> Path:
    """Per-user cache directory holding the state file and server log."""
    if sys.platform == "darwin":
        base = Path.home() / "Library" / "Caches"
    elif os.name == "nt":
        local_app_data = os.environ.get("LOCALAPPDATA", "").strip()
        base = Path(local_app_data) if local_app_data else Path.home() / "AppData" / "Local"
    else:
        xdg = os.environ.get("XDG_CACHE_HOME", "").strip()
        base = Path(xdg) if xdg else Path.home() / ".cache"
    return base / CACHE_DIR_NAME


def get_default_state_path() -> Path:
    return get_cache_dir() / STATE_FILE_NAME


def get_server_log_path() -> Path:
    return get_cache_dir() / "logs" / "server.log"


def apply_log_level(level: str) -> None:
    """Map silent|info|debug onto the package logger."""
    package_logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    if level == "silent":
        package_logger.setLevel(logging.CRITICAL + 1)
    elif level == "debug":
        package_logger.setLevel(logging.DEBUG)
    else:
        package_logger.setLevel(logging.INFO)


@dataclass
class LauncherSettings:
    """Launcher settings"""

    # Readiness
    timeout_s: float = DEFAULT_TIMEOUT_S                  # Overall wait budget
    poll_interval_s: float = DEFAULT_POLL_INTERVAL_S
    health_timeout_s: float = DEFAULT_HEALTH_TIMEOUT_S    # Per-probe bound
    shutdown_timeout_s: float = DEFAULT_SHUTDOWN_TIMEOUT_S

    # Progress logging: "silent", "info", "debug"
    log_level: str = "info"

    # Paths (None = auto-detect)
    server_app_path: Optional[str] = None
    state_path: Optional[str] = None

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "LauncherSettings":
        """Load settings from a JSON file, then apply environment overrides.

        A missing file yields defaults. An unreadable file is logged and
        ignored rather than failing the launch.
        """
        data: dict = {}
        if path is not None and path.exists():
            try:
                with open(path, "r", encoding="utf-8-sig") as f:
                    loaded = json.load(f)
                if isinstance(loaded, dict):
                    data = loaded
                    logger.debug("Loaded settings from: %s", path)
                else:
                    logger.warning("Ignoring settings file (not an object): %s", path)
            except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
                logger.warning("Failed to load settings: %s", e)

        # Filter to only known fields
        known_fields = {f.name for f in fields(cls)}
        filtered_data = {k: v for k, v in data.items() if k in known_fields}

        settings = cls(**filtered_data)
        settings.apply_env()
        settings.validate()
        return settings

    @classmethod
    def from_env(cls) -> "LauncherSettings":
        return cls.load(None)

    def apply_env(self) -> None:
        app_path = os.environ.get(ENV_APP_PATH, "").strip()
        if app_path:
            self.server_app_path = app_path
        state_path = os.environ.get(ENV_STATE_PATH, "").strip()
        if state_path:
            self.state_path = state_path
        log_level = os.environ.get(ENV_LOG_LEVEL, "").strip().lower()
        if log_level:
            self.log_level = log_level

    def validate(self) -> None:
        """Reset invalid values to defaults with warnings."""
        if self.log_level not in LOG_LEVELS:
            logger.warning("Unknown log_level (%r), resetting to 'info'", self.log_level)
            self.log_level = "info"

        if not _is_positive_number(self.timeout_s):
            logger.warning("timeout_s must be positive (%r), resetting to %.1f", self.timeout_s, DEFAULT_TIMEOUT_S)
            self.timeout_s = DEFAULT_TIMEOUT_S
        if not _is_positive_number(self.poll_interval_s):
            logger.warning("poll_interval_s must be positive (%r), resetting to %.1f", self.poll_interval_s, DEFAULT_POLL_INTERVAL_S)
            self.poll_interval_s = DEFAULT_POLL_INTERVAL_S
        if self.poll_interval_s > self.timeout_s:
            logger.warning("poll_interval_s larger than timeout_s, clamping to %.1f", self.timeout_s)
            self.poll_interval_s = float(self.timeout_s)
        if not _is_positive_number(self.health_timeout_s):
            self.health_timeout_s = DEFAULT_HEALTH_TIMEOUT_S
        if not _is_positive_number(self.shutdown_timeout_s):
            self.shutdown_timeout_s = DEFAULT_SHUTDOWN_TIMEOUT_S

    def get_state_path(self) -> Path:
        if self.state_path:
            return Path(self.state_path).expanduser()
        return get_default_state_path()


def _is_positive_number(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return value > 0
