# ondevice_ai/services/health_probe.py
"""
Liveness check against a candidate server.

`GET <root>/health` is resolved against the server's HTTP root, not the /v1
API root. Every failure degrades to False.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from ondevice_ai.config.settings import DEFAULT_HEALTH_TIMEOUT_S
from ondevice_ai.models.types import server_root_url

logger = logging.getLogger(__name__)


def health_url(base_url: str) -> str:
    return f"{server_root_url(base_url)}/health"


class HealthProbe:
    def __init__(
        self,
        timeout_s: float = DEFAULT_HEALTH_TIMEOUT_S,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.timeout_s = timeout_s
        self._transport = transport

    async def check(self, base_url: str) -> bool:
        url = health_url(base_url)
        try:
            # trust_env=False: loopback requests must never go through a proxy
            async with httpx.AsyncClient(
                timeout=self.timeout_s,
                transport=self._transport,
                trust_env=False,
            ) as client:
                resp = await client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL, OSError, ValueError) as e:
            logger.debug("Health probe failed (%s): %s", url, e)
            return False

        if resp.is_success:
            return True
        logger.debug("Health probe failed (%s): HTTP %d", url, resp.status_code)
        return False
