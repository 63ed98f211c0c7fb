# ondevice_ai/services/readiness.py
"""
Readiness state machine: reuse, discard or spawn the server.

    NoState -> Reusable                      (fast path, no spawn)
    Stale -> Launching -> Polling -> Ready | TimedOut | Cancelled

A caller never receives a state whose baseURL has not just passed a health
probe in the same call. There is exactly one launch attempt per call.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional

from ondevice_ai.config.settings import LauncherSettings
from ondevice_ai.models.types import ServerState
from ondevice_ai.services.exceptions import ReadinessCancelledError, ServerNotReadyError
from ondevice_ai.services.health_probe import HealthProbe
from ondevice_ai.services.launch_lock import LaunchLock
from ondevice_ai.services.process_launcher import ProcessLauncher, generate_token
from ondevice_ai.services.state_store import StateStore

logger = logging.getLogger(__name__)


class ReadinessCoordinator:
    def __init__(
        self,
        store: Optional[StateStore] = None,
        probe: Optional[HealthProbe] = None,
        launcher: Optional[ProcessLauncher] = None,
        settings: Optional[LauncherSettings] = None,
        lock: Optional[LaunchLock] = None,
    ) -> None:
        self.settings = settings or LauncherSettings()
        self.store = store or StateStore(self.settings.get_state_path())
        self.probe = probe or HealthProbe(timeout_s=self.settings.health_timeout_s)
        self.launcher = launcher or ProcessLauncher(settings=self.settings)
        self.lock = lock or LaunchLock.for_state_path(self.store.path)

    async def _check_before(self, base_url: str, deadline: float) -> bool:
        """Health probe cut off at the deadline; a hung server counts as unhealthy."""
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return False
        try:
            return await asyncio.wait_for(self.probe.check(base_url), timeout=remaining)
        except asyncio.TimeoutError:
            logger.debug("Health probe cut off at deadline: %s", base_url)
            return False

    async def _probe_state(self, deadline: float) -> Optional[ServerState]:
        state = self.store.read()
        if state is None:
            return None
        if await self._check_before(state.base_url, deadline):
            return state
        return None

    async def ensure_ready(
        self,
        timeout_s: Optional[float] = None,
        poll_interval_s: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> ServerState:
        timeout_s = self.settings.timeout_s if timeout_s is None else timeout_s
        poll_interval_s = (
            self.settings.poll_interval_s if poll_interval_s is None else poll_interval_s
        )
        deadline = time.monotonic() + timeout_s

        existing = self.store.read()
        if existing is not None:
            if await self._check_before(existing.base_url, deadline):
                logger.info("Server already running: %s", existing.base_url)
                return existing
            # A dead server's record must never block a fresh launch.
            logger.info("Removing stale state file: %s", self.store.path)
            self.store.delete()

        acquired = self.lock.try_acquire()
        try:
            if acquired:
                logger.info("Launching server...")
                self.launcher.launch(self.store.path, generate_token())
            else:
                logger.info("Another launch is in progress; waiting for its server")

            return await self._poll_until_ready(deadline, poll_interval_s, cancel_event)
        finally:
            if acquired:
                self.lock.release()

    async def _poll_until_ready(
        self,
        deadline: float,
        poll_interval_s: float,
        cancel_event: Optional[asyncio.Event],
    ) -> ServerState:
        attempt = 0
        while True:
            if cancel_event is not None and cancel_event.is_set():
                raise ReadinessCancelledError("Cancelled while waiting for server to become ready")

            attempt += 1
            state = await self._probe_state(deadline)
            if state is not None:
                logger.info("Server ready: %s", state.base_url)
                return state

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise ServerNotReadyError(
                    f"Timed out waiting for server to become ready ({attempt} attempts)"
                )
            logger.debug("Server not ready yet (attempt %d, %.1fs left)", attempt, remaining)
            await _sleep_or_cancel(min(poll_interval_s, remaining), cancel_event)


async def _sleep_or_cancel(delay_s: float, cancel_event: Optional[asyncio.Event]) -> None:
    if cancel_event is None:
        await asyncio.sleep(delay_s)
        return
    try:
        await asyncio.wait_for(cancel_event.wait(), timeout=delay_s)
    except asyncio.TimeoutError:
        pass
