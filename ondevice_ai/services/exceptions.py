# ondevice_ai/services/exceptions.py
"""
Exception types raised by the launcher.

Only failures a caller can act on are raised. Missing or malformed state and
stale servers are recovered locally and never surface here.
"""


class OnDeviceAIError(RuntimeError):
    pass


class ServerAppNotFoundError(OnDeviceAIError):
    """Raised when the server app bundle or executable cannot be located."""

    pass


class ServerLaunchError(OnDeviceAIError):
    """Raised when spawning the server process itself fails."""

    pass


class ServerNotReadyError(OnDeviceAIError, TimeoutError):
    """Raised when no healthy server appears before the deadline."""

    pass


class ReadinessCancelledError(OnDeviceAIError):
    """Raised when the caller cancels an in-flight readiness wait."""

    pass
