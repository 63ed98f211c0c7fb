# ondevice_ai/cli.py
"""
ondevice-ai command line.

    ondevice-ai start [--timeout SECONDS] [--log-level silent|info|debug]
    ondevice-ai stop
    ondevice-ai status
    ondevice-ai doctor
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from ondevice_ai import __version__
from ondevice_ai.config.settings import LOG_LEVELS, LauncherSettings, apply_log_level
from ondevice_ai.services.exceptions import OnDeviceAIError

logger = logging.getLogger(__name__)

_LEVEL_MARKS = {"ok": "OK  ", "info": "INFO", "warn": "WARN", "error": "FAIL"}


def setup_logging(level: str) -> logging.Handler:
    """Console logging for the CLI. The library never touches the root logger."""
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(logging.Formatter(
        '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%H:%M:%S'
    ))

    package_logger = logging.getLogger("ondevice_ai")
    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)
    package_logger.addHandler(console_handler)
    package_logger.propagate = False
    apply_log_level(level)

    # Suppress per-request logging from the HTTP stack
    for name in ['httpx', 'httpcore', 'openai']:
        logging.getLogger(name).setLevel(logging.WARNING)
    return console_handler


def _load_settings(args: argparse.Namespace) -> LauncherSettings:
    settings = LauncherSettings.load(args.settings)
    if getattr(args, "timeout", None) is not None:
        settings.timeout_s = args.timeout
    if args.log_level is not None:
        settings.log_level = args.log_level
    settings.validate()
    return settings


async def _cmd_start(settings: LauncherSettings) -> int:
    from ondevice_ai.services.readiness import ReadinessCoordinator

    try:
        state = await ReadinessCoordinator(settings=settings).ensure_ready()
    except OnDeviceAIError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    print(state.base_url)
    return 0


async def _cmd_stop(settings: LauncherSettings) -> int:
    from ondevice_ai import shutdown

    if await shutdown(settings):
        print("Server stop requested; state cleared.")
    else:
        print("No server state found.")
    return 0


async def _cmd_status(settings: LauncherSettings) -> int:
    from ondevice_ai.services.health_probe import HealthProbe
    from ondevice_ai.services.state_store import StateStore

    state = StateStore(settings.get_state_path()).read()
    if state is None:
        print("No active server.")
        return 1
    healthy = await HealthProbe(timeout_s=settings.health_timeout_s).check(state.base_url)
    payload = state.to_dict()
    payload.pop("token", None)
    payload["healthy"] = healthy
    print(json.dumps(payload, indent=2))
    return 0 if healthy else 1


async def _cmd_doctor(settings: LauncherSettings) -> int:
    from ondevice_ai.services.doctor import run_doctor

    print(f"ondevice-ai doctor {__version__}")
    print(f"State file: {settings.get_state_path()}")
    report = await run_doctor(settings)
    for check in report.checks:
        print(f"[{_LEVEL_MARKS.get(check.level, check.level)}] {check.name}: {check.detail}")
    return 0 if report.ok else 1


_COMMANDS = {
    "start": _cmd_start,
    "stop": _cmd_stop,
    "status": _cmd_status,
    "doctor": _cmd_doctor,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ondevice-ai",
        description="Start, stop and inspect the local on-device AI server.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--settings",
        type=Path,
        default=None,
        help="JSON settings file",
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default=None,
        help="Progress logging verbosity",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    start = subparsers.add_parser("start", help="Ensure the server is running and print its base URL")
    start.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait for readiness (default: 20)",
    )
    subparsers.add_parser("stop", help="Request server shutdown and clear the state file")
    subparsers.add_parser("status", help="Show the state record and health")
    subparsers.add_parser("doctor", help="Diagnose the local environment")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = _load_settings(args)
    setup_logging(settings.log_level)
    logger.debug("Settings: %s", settings)
    return asyncio.run(_COMMANDS[args.command](settings))


if __name__ == "__main__":
    sys.exit(main())
