# ondevice_ai/services/__init__.py
"""
Service layer for ondevice-ai.

Modules that pull in third-party HTTP/OpenAI stacks are lazy-loaded.
Use explicit imports like:
    from ondevice_ai.services.readiness import ReadinessCoordinator
"""

# Fast imports - stdlib only
from .exceptions import (
    OnDeviceAIError,
    ReadinessCancelledError,
    ServerAppNotFoundError,
    ServerLaunchError,
    ServerNotReadyError,
)
from .state_store import StateStore

# Lazy-loaded services via __getattr__
_LAZY_IMPORTS = {
    'HealthProbe': 'health_probe',
    'LaunchLock': 'launch_lock',
    'ProcessLauncher': 'process_launcher',
    'ReadinessCoordinator': 'readiness',
    'ShutdownCoordinator': 'shutdown',
    'create_client': 'client_factory',
    'run_doctor': 'doctor',
}

# Submodules that can be accessed via __getattr__ (for patching support)
_SUBMODULES = {
    'health_probe', 'launch_lock', 'process_launcher', 'readiness',
    'shutdown', 'client_factory', 'doctor',
}


def __getattr__(name: str):
    """Lazy-load heavy service modules on first access."""
    import importlib
    # Support accessing submodules directly (for unittest.mock.patch)
    if name in _SUBMODULES:
        return importlib.import_module(f'.{name}', __package__)
    if name in _LAZY_IMPORTS:
        module_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(f'.{module_name}', __package__)
        return getattr(module, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'OnDeviceAIError',
    'ReadinessCancelledError',
    'ServerAppNotFoundError',
    'ServerLaunchError',
    'ServerNotReadyError',
    'StateStore',
    'HealthProbe',
    'LaunchLock',
    'ProcessLauncher',
    'ReadinessCoordinator',
    'ShutdownCoordinator',
    'create_client',
    'run_doctor',
]
