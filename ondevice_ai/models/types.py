# ondevice_ai/models/types.py
"""
Core data types for the on-device AI launcher.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

_API_ROOT_SUFFIX = "/v1"


def server_root_url(base_url: str) -> str:
    """Strip the /v1 API segment so health and admin routes hit the HTTP root."""
    url = base_url.strip().rstrip("/")
    if url.endswith(_API_ROOT_SUFFIX):
        url = url[: -len(_API_ROOT_SUFFIX)]
    return url


def _is_int(value: Any) -> bool:
    # bool is an int subclass; a JSON true/false is never a valid pid/port
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class ServerState:
    """Readiness record written by the server process once it is serving.

    The record is immutable: clients only read or delete the file.
    """

    ready: bool
    pid: int                  # Diagnostics only, never used for liveness
    port: int
    base_url: str             # e.g. http://127.0.0.1:<port>/v1
    version: str
    started_at: int           # Unix timestamp
    token: Optional[str] = None

    @property
    def root_url(self) -> str:
        return server_root_url(self.base_url)

    @classmethod
    def from_dict(cls, obj: Any) -> Optional["ServerState"]:
        if not isinstance(obj, dict):
            return None

        ready = obj.get("ready")
        pid = obj.get("pid")
        port = obj.get("port")
        base_url = obj.get("baseURL")
        version = obj.get("version")
        started_at = obj.get("startedAt")
        token = obj.get("token")

        if ready is not True:
            return None
        if not _is_int(pid) or not _is_int(port) or not _is_int(started_at):
            return None
        if not isinstance(base_url, str) or not base_url.strip():
            return None
        if not isinstance(version, str):
            return None
        if token is not None and not isinstance(token, str):
            return None

        return cls(
            ready=True,
            pid=pid,
            port=port,
            base_url=base_url,
            version=version,
            started_at=started_at,
            token=token or None,
        )

    def to_dict(self) -> dict:
        return {
            "ready": self.ready,
            "pid": self.pid,
            "port": self.port,
            "baseURL": self.base_url,
            "token": self.token,
            "version": self.version,
            "startedAt": self.started_at,
        }
