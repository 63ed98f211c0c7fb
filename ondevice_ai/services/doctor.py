# ondevice_ai/services/doctor.py
"""
Environment diagnostics for the on-device AI server.

Checks the platform, locates the server app, and inspects the current state
file. The recorded pid is looked up with psutil for information only; liveness
is always decided by the health probe.
"""

from __future__ import annotations

import os
import platform
from dataclasses import dataclass, field
from typing import Optional

import psutil

from ondevice_ai.config.settings import LauncherSettings
from ondevice_ai.models.types import ServerState
from ondevice_ai.services.health_probe import HealthProbe, health_url
from ondevice_ai.services.process_launcher import bundle_executable, resolve_app_path
from ondevice_ai.services.state_store import StateStore

# Darwin 24 = macOS 15
MIN_DARWIN_MAJOR = 24


@dataclass
class DoctorCheck:
    name: str
    level: str          # "ok", "info", "warn", "error"
    detail: str

    @property
    def ok(self) -> bool:
        return self.level != "error"


@dataclass
class DoctorReport:
    checks: list[DoctorCheck] = field(default_factory=list)
    state: Optional[ServerState] = None

    @property
    def ok(self) -> bool:
        return all(check.ok for check in self.checks)

    def add(self, name: str, level: str, detail: str) -> None:
        self.checks.append(DoctorCheck(name=name, level=level, detail=detail))


def _check_platform(report: DoctorReport) -> None:
    system = platform.system()
    machine = platform.machine()
    if system == "Darwin" and machine == "arm64":
        report.add("platform", "ok", f"{system} {machine} supported")
    else:
        report.add(
            "platform",
            "warn",
            f"{system} {machine}: the server is built for macOS on Apple Silicon",
        )


def _check_os_version(report: DoctorReport) -> None:
    if platform.system() != "Darwin":
        return
    try:
        major = int(platform.release().split(".")[0])
    except ValueError:
        report.add("os_version", "warn", f"Unrecognized Darwin release {platform.release()!r}")
        return
    if major >= MIN_DARWIN_MAJOR:
        report.add("os_version", "ok", f"Darwin {major}")
    else:
        report.add(
            "os_version",
            "warn",
            f"Darwin {major} may be too old for the on-device model",
        )


def _check_server_app(report: DoctorReport, settings: LauncherSettings) -> None:
    app_path = resolve_app_path(settings)
    if app_path is None:
        report.add("server_app", "error", "Server app not found")
        return
    report.add("server_app", "ok", f"Found at {app_path}")

    executable = bundle_executable(app_path)
    if executable.is_file() and os.access(executable, os.X_OK):
        report.add("server_executable", "ok", str(executable))
    else:
        report.add("server_executable", "error", f"{executable} is missing or not executable")


def _describe_pid(pid: int) -> str:
    try:
        proc = psutil.Process(pid)
        return f"pid {pid} running ({proc.name()})"
    except (psutil.NoSuchProcess, ValueError):
        return f"pid {pid} not running"
    except psutil.AccessDenied:
        return f"pid {pid} exists (access denied)"


async def _check_state(
    report: DoctorReport, store: StateStore, probe: HealthProbe
) -> None:
    if not store.path.exists():
        report.add("state", "info", "No state file (server likely stopped)")
        return

    state = store.read()
    if state is None:
        raw = store.read_raw()
        detail = "invalid JSON" if raw is None else "missing or invalid fields"
        report.add("state", "warn", f"Invalid state file ({detail}): {store.path}")
        return

    report.state = state
    report.add("state", "info", f"{state.base_url} version {state.version}, {_describe_pid(state.pid)}")
    if await probe.check(state.base_url):
        report.add("health", "ok", f"Healthy at {health_url(state.base_url)}")
    else:
        report.add("health", "warn", f"No healthy response from {health_url(state.base_url)} (stale state)")


async def run_doctor(
    settings: Optional[LauncherSettings] = None,
    *,
    store: Optional[StateStore] = None,
    probe: Optional[HealthProbe] = None,
) -> DoctorReport:
    settings = settings or LauncherSettings()
    store = store or StateStore(settings.get_state_path())
    probe = probe or HealthProbe(timeout_s=settings.health_timeout_s)

    report = DoctorReport()
    _check_platform(report)
    _check_os_version(report)
    _check_server_app(report, settings)
    await _check_state(report, store, probe)
    return report
