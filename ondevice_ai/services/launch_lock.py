# ondevice_ai/services/launch_lock.py
"""
Advisory lock guarding the decision to spawn a server.

Two callers that both find no usable state would otherwise both launch. The
lock is non-blocking: a caller that cannot take it skips the spawn and waits
for the holder's server to publish the shared state file. The OS drops the
lock if the holder dies.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import IO, Optional

try:
    import fcntl
except ImportError:  # Windows
    fcntl = None

logger = logging.getLogger(__name__)


class LaunchLock:
    """Not reentrant: a second try_acquire on a held instance returns False."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._fh: Optional[IO[str]] = None
        self._held = False

    @classmethod
    def for_state_path(cls, state_path: Path) -> "LaunchLock":
        return cls(state_path.with_suffix(state_path.suffix + ".lock"))

    @property
    def held(self) -> bool:
        return self._held

    def try_acquire(self) -> bool:
        if self._held:
            return False
        if fcntl is None:
            # No advisory locking on this platform; only this instance is guarded.
            self._held = True
            return True

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fh = open(self.path, "a+", encoding="utf-8")
        try:
            fcntl.flock(fh.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError:
            fh.close()
            logger.debug("Launch lock busy: %s", self.path)
            return False
        self._fh = fh
        self._held = True
        return True

    def release(self) -> None:
        fh = self._fh
        self._fh = None
        self._held = False
        if fh is None:
            return
        try:
            fcntl.flock(fh.fileno(), fcntl.LOCK_UN)
        finally:
            fh.close()
