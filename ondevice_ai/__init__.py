# ondevice_ai/__init__.py
"""
ondevice-ai - launcher and OpenAI-compatible client for a local on-device model server.

Typical use:

    client = await ondevice_ai.create_client()
    resp = await client.chat.completions.create(model="base", messages=[...])
    ...
    await ondevice_ai.shutdown()
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import Any, Optional

from ondevice_ai.config.settings import LauncherSettings, apply_log_level
from ondevice_ai.models.types import ServerState
from ondevice_ai.services.exceptions import (
    OnDeviceAIError,
    ReadinessCancelledError,
    ServerAppNotFoundError,
    ServerLaunchError,
    ServerNotReadyError,
)


def _get_version() -> str:
    import importlib.metadata

    try:
        return importlib.metadata.version("ondevice-ai")
    except importlib.metadata.PackageNotFoundError:
        # Fallback: source checkout without installed metadata
        return "0.1.0"


__version__ = _get_version()


def _resolve_settings(
    settings: Optional[LauncherSettings],
    timeout_s: Optional[float],
    log_level: Optional[str],
) -> LauncherSettings:
    # Per-call overrides apply to a copy
    settings = replace(settings) if settings is not None else LauncherSettings.from_env()
    if timeout_s is not None:
        settings.timeout_s = timeout_s
    if log_level is not None:
        settings.log_level = log_level
    settings.validate()
    # Package logger level is process-wide
    if log_level is not None:
        apply_log_level(settings.log_level)
    return settings


async def ensure_ready(
    settings: Optional[LauncherSettings] = None,
    *,
    timeout_s: Optional[float] = None,
    log_level: Optional[str] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> ServerState:
    """Return a healthy server's state, launching the server if needed."""
    from ondevice_ai.services.readiness import ReadinessCoordinator

    settings = _resolve_settings(settings, timeout_s, log_level)
    return await ReadinessCoordinator(settings=settings).ensure_ready(cancel_event=cancel_event)


async def create_client(
    settings: Optional[LauncherSettings] = None,
    *,
    timeout_s: Optional[float] = None,
    log_level: Optional[str] = None,
    cancel_event: Optional[asyncio.Event] = None,
    **client_kwargs: Any,
):
    """Ensure the server is ready and return an openai.AsyncOpenAI client bound to it."""
    from ondevice_ai.services import client_factory

    settings = _resolve_settings(settings, timeout_s, log_level)
    return await client_factory.create_client(
        settings, cancel_event=cancel_event, **client_kwargs
    )


async def shutdown(settings: Optional[LauncherSettings] = None) -> bool:
    """Ask the server to exit and clear the local state file."""
    from ondevice_ai.services.shutdown import ShutdownCoordinator
    from ondevice_ai.services.state_store import StateStore

    settings = settings or LauncherSettings.from_env()
    coordinator = ShutdownCoordinator(
        StateStore(settings.get_state_path()),
        timeout_s=settings.shutdown_timeout_s,
    )
    return await coordinator.shutdown()


__all__ = [
    "LauncherSettings",
    "OnDeviceAIError",
    "ReadinessCancelledError",
    "ServerAppNotFoundError",
    "ServerLaunchError",
    "ServerNotReadyError",
    "ServerState",
    "create_client",
    "ensure_ready",
    "shutdown",
    "__version__",
]
