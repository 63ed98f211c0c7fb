# ondevice_ai/services/shutdown.py
"""
Best-effort server stop.

The local state file is always deleted, even when the admin request fails, so
the client never keeps a reference to a server it asked to stop.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from ondevice_ai.config.settings import DEFAULT_SHUTDOWN_TIMEOUT_S
from ondevice_ai.models.types import ServerState
from ondevice_ai.services.state_store import StateStore

logger = logging.getLogger(__name__)


def auth_headers(state: ServerState) -> dict[str, str]:
    if state.token:
        return {"Authorization": f"Bearer {state.token}"}
    return {}


class ShutdownCoordinator:
    def __init__(
        self,
        store: Optional[StateStore] = None,
        timeout_s: float = DEFAULT_SHUTDOWN_TIMEOUT_S,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.store = store or StateStore()
        self.timeout_s = timeout_s
        self._transport = transport

    async def shutdown(self) -> bool:
        """Returns True when a server record was found and cleared."""
        state = self.store.read()
        if state is None:
            logger.debug("No server state; nothing to shut down")
            return False

        try:
            await self._request_shutdown(state)
        except Exception:
            logger.debug("Shutdown request failed: %s", state.base_url, exc_info=True)
        finally:
            self.store.delete()
        return True

    async def _request_shutdown(self, state: ServerState) -> None:
        url = f"{state.root_url}/admin/shutdown"
        logger.info("Requesting server shutdown: %s", url)
        async with httpx.AsyncClient(
            timeout=self.timeout_s,
            transport=self._transport,
            trust_env=False,
        ) as client:
            resp = await client.post(url, headers=auth_headers(state))
        logger.debug("Shutdown response: HTTP %d", resp.status_code)
