# ondevice_ai/config/__init__.py
from .settings import (
    LauncherSettings,
    apply_log_level,
    get_cache_dir,
    get_default_state_path,
    get_server_log_path,
)

__all__ = [
    "LauncherSettings",
    "apply_log_level",
    "get_cache_dir",
    "get_default_state_path",
    "get_server_log_path",
]
