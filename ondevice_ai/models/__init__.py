# ondevice_ai/models/__init__.py
from .types import ServerState, server_root_url

__all__ = ["ServerState", "server_root_url"]
