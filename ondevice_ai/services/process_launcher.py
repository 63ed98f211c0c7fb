# ondevice_ai/services/process_launcher.py
"""
Spawns the on-device AI server as a detached background process.

Launch is fire-and-forget: the spawned process writes the state file once it
is serving, and readiness is observed only through that file plus the health
probe. The child's exit code and output are never inspected (output goes to
a log file for humans).
"""

from __future__ import annotations

import importlib.util
import logging
import os
import secrets
import subprocess
import sys
from pathlib import Path
from typing import Optional

from ondevice_ai.config.settings import ENV_APP_PATH, LauncherSettings, get_server_log_path
from ondevice_ai.services.exceptions import ServerAppNotFoundError, ServerLaunchError

logger = logging.getLogger(__name__)

SERVER_APP_NAME = "OnDeviceAIServer"
SERVER_APP_BUNDLE = f"{SERVER_APP_NAME}.app"
PLATFORM_PACKAGE = "ondevice_ai_server_darwin_arm64"

# Port 0: the server picks a free port itself and reports it in the state file.
AUTO_PORT = 0


def generate_token() -> str:
    """Fresh per-launch bearer token (32 hex chars from a CSPRNG)."""
    return secrets.token_hex(16)


def _package_base_dir() -> Path:
    return Path(__file__).resolve().parent.parent.parent


def _platform_package_dir() -> Optional[Path]:
    try:
        spec = importlib.util.find_spec(PLATFORM_PACKAGE)
    except (ImportError, ValueError):
        return None
    if spec is None or not spec.submodule_search_locations:
        return None
    return Path(list(spec.submodule_search_locations)[0])


def _candidate_app_paths(explicit: Optional[str]) -> list[Path]:
    candidates: list[Path] = []
    if explicit:
        candidates.append(Path(explicit).expanduser())
    env_path = os.environ.get(ENV_APP_PATH, "").strip()
    if env_path:
        candidates.append(Path(env_path).expanduser())
    package_dir = _platform_package_dir()
    if package_dir is not None:
        candidates.append(package_dir / SERVER_APP_BUNDLE)
    candidates.append(_package_base_dir() / "apps" / SERVER_APP_NAME / SERVER_APP_BUNDLE)
    return candidates


def resolve_app_path(settings: Optional[LauncherSettings] = None) -> Optional[Path]:
    """First existing server app: settings, env var, platform package, dev checkout."""
    explicit = settings.server_app_path if settings is not None else None
    for candidate in _candidate_app_paths(explicit):
        if candidate.exists():
            return candidate
    return None


def bundle_executable(app_path: Path) -> Path:
    """Binary inside a macOS .app bundle (or the path itself for a plain executable)."""
    if app_path.suffix == ".app":
        return app_path / "Contents" / "MacOS" / app_path.stem
    return app_path


def build_args(app_path: Path, state_path: Path, token: str) -> list[str]:
    server_args = [
        "--state",
        str(state_path),
        "--port",
        str(AUTO_PORT),
        "--token",
        token,
    ]
    if app_path.suffix == ".app" and sys.platform == "darwin":
        # -g: do not bring to foreground, -j: launch hidden
        return ["open", "-g", "-j", str(app_path), "--args", *server_args]
    return [str(bundle_executable(app_path)), *server_args]


class ProcessLauncher:
    def __init__(
        self,
        app_path: Optional[Path] = None,
        log_path: Optional[Path] = None,
        settings: Optional[LauncherSettings] = None,
    ) -> None:
        self._app_path = app_path
        self._log_path = log_path
        self._settings = settings

    def get_log_path(self) -> Path:
        return self._log_path if self._log_path is not None else get_server_log_path()

    def resolve_app(self) -> Path:
        if self._app_path is not None:
            return self._app_path
        app_path = resolve_app_path(self._settings)
        if app_path is None:
            raise ServerAppNotFoundError(
                f"{SERVER_APP_BUNDLE} not found. Install the platform package "
                f"({PLATFORM_PACKAGE}) or set {ENV_APP_PATH}."
            )
        return app_path

    def launch(self, state_path: Path, token: str) -> None:
        app_path = self.resolve_app()
        args = build_args(app_path, state_path, token)

        log_path = self.get_log_path()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        state_path.parent.mkdir(parents=True, exist_ok=True)

        popen_kwargs: dict = {}
        if os.name == "nt":
            popen_kwargs["creationflags"] = (
                getattr(subprocess, "DETACHED_PROCESS", 0)
                | getattr(subprocess, "CREATE_NEW_PROCESS_GROUP", 0)
                | getattr(subprocess, "CREATE_NO_WINDOW", 0)
            )
        else:
            # New session: the server survives the launching process's exit.
            popen_kwargs["start_new_session"] = True

        # Token is a credential; keep it out of the log line.
        logger.info("Starting server: %s", " ".join(args[:-1] + ["<token>"]))
        with open(log_path, "a", encoding="utf-8", errors="replace") as log_fp:
            try:
                proc = subprocess.Popen(
                    args,
                    stdin=subprocess.DEVNULL,
                    stdout=log_fp,
                    stderr=log_fp,
                    close_fds=True,
                    **popen_kwargs,
                )
            except OSError as e:
                raise ServerLaunchError(
                    f"Failed to start server: {e}. See {log_path} for details."
                ) from e
        logger.debug("Server process spawned (pid %d)", proc.pid)
