# ondevice_ai/services/state_store.py
"""
On-disk readiness record shared between the server and its clients.

The server writes the file once it is serving; clients only read and delete.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

from ondevice_ai.config.settings import get_default_state_path
from ondevice_ai.models.types import ServerState

logger = logging.getLogger(__name__)


def _atomic_write_json(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)
        f.flush()
        os.fsync(f.fileno())
    tmp_path.replace(path)


def _safe_read_json(path: Path) -> Optional[dict]:
    try:
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8-sig") as f:
            obj = json.load(f)
        return obj if isinstance(obj, dict) else None
    except (OSError, ValueError):
        # ValueError covers JSONDecodeError and UnicodeDecodeError
        logger.debug("Failed to read json: %s", path, exc_info=True)
        return None


class StateStore:
    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = path if path is not None else get_default_state_path()

    def read_raw(self) -> Optional[dict]:
        return _safe_read_json(self.path)

    def read(self) -> Optional[ServerState]:
        raw = self.read_raw()
        if raw is None:
            return None
        state = ServerState.from_dict(raw)
        if state is None:
            logger.debug("Ignoring malformed state file: %s", self.path)
        return state

    def write(self, state: ServerState) -> None:
        """Server-side writer: atomic replace so readers never see a partial file."""
        _atomic_write_json(self.path, state.to_dict())

    def delete(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            return
        logger.debug("Deleted state file: %s", self.path)
