# ondevice_ai/services/client_factory.py
"""
OpenAI-compatible clients bound to a ready local server.

No caching across calls: callers keep and reuse the returned client.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

from openai import AsyncOpenAI, OpenAI

from ondevice_ai.config.settings import LauncherSettings
from ondevice_ai.models.types import ServerState
from ondevice_ai.services.readiness import ReadinessCoordinator
from ondevice_ai.services.shutdown import auth_headers

# The OpenAI client refuses an empty api_key; the server ignores it without a token.
PLACEHOLDER_API_KEY = "local"


def _client_options(state: ServerState, client_kwargs: dict[str, Any]) -> dict[str, Any]:
    headers = dict(client_kwargs.pop("default_headers", None) or {})
    headers.update(auth_headers(state))
    return {
        "base_url": state.base_url,
        "api_key": state.token or PLACEHOLDER_API_KEY,
        "default_headers": headers,
        **client_kwargs,
    }


def build_client(state: ServerState, **client_kwargs: Any) -> AsyncOpenAI:
    return AsyncOpenAI(**_client_options(state, client_kwargs))


def build_sync_client(state: ServerState, **client_kwargs: Any) -> OpenAI:
    return OpenAI(**_client_options(state, client_kwargs))


async def create_client(
    settings: Optional[LauncherSettings] = None,
    *,
    coordinator: Optional[ReadinessCoordinator] = None,
    cancel_event: Optional[asyncio.Event] = None,
    **client_kwargs: Any,
) -> AsyncOpenAI:
    """Ensure the server is ready, then return an AsyncOpenAI client for it."""
    coordinator = coordinator or ReadinessCoordinator(settings=settings)
    state = await coordinator.ensure_ready(cancel_event=cancel_event)
    return build_client(state, **client_kwargs)
