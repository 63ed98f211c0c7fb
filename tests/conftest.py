from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Callable, Optional

import httpx
import pytest


# Ensure the project root is importable when running `pytest` via its entrypoint
# (e.g., `uv run --extra test pytest`), where `sys.path[0]` may not be the repo root.
_PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

from ondevice_ai.models.types import ServerState  # noqa: E402
from ondevice_ai.services.state_store import StateStore  # noqa: E402


def make_state(port: int = 9999, *, token: Optional[str] = "tok", api_root: bool = True) -> ServerState:
    suffix = "/v1" if api_root else ""
    return ServerState(
        ready=True,
        pid=4242,
        port=port,
        base_url=f"http://127.0.0.1:{port}{suffix}",
        version="1.0.0",
        started_at=1_700_000_000,
        token=token,
    )


def health_transport(
    healthy_ports: set[int], requests: Optional[list[httpx.Request]] = None
) -> httpx.MockTransport:
    """Mock server: /health answers 200 only on the given (mutable) set of ports."""

    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        if request.url.path == "/health" and request.url.port in healthy_ports:
            return httpx.Response(200, json={"ok": True})
        return httpx.Response(503)

    return httpx.MockTransport(handler)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in ("ONDEVICE_AI_APP_PATH", "ONDEVICE_AI_STATE_PATH", "ONDEVICE_AI_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))


@pytest.fixture
def state_path(tmp_path: Path) -> Path:
    return tmp_path / "state" / "state.json"


@pytest.fixture
def store(state_path: Path) -> StateStore:
    return StateStore(state_path)


class FakeLauncher:
    """Records launches; optionally plays the server by writing a state file."""

    def __init__(self, on_launch: Optional[Callable[[Path, str], None]] = None) -> None:
        self.calls: list[tuple[Path, str]] = []
        self._on_launch = on_launch

    def launch(self, state_path: Path, token: str) -> None:
        self.calls.append((state_path, token))
        if self._on_launch is not None:
            self._on_launch(state_path, token)


@pytest.fixture(autouse=True)
def _restore_package_logger():
    package_logger = logging.getLogger("ondevice_ai")
    handlers = package_logger.handlers[:]
    level = package_logger.level
    propagate = package_logger.propagate
    yield
    package_logger.handlers[:] = handlers
    package_logger.setLevel(level)
    package_logger.propagate = propagate
