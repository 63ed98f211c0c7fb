from __future__ import annotations

import os
from dataclasses import replace
from pathlib import Path

import pytest

from ondevice_ai.config.settings import LauncherSettings
from ondevice_ai.services import doctor
from ondevice_ai.services import process_launcher as pl
from ondevice_ai.services.health_probe import HealthProbe
from ondevice_ai.services.state_store import StateStore

from conftest import health_transport, make_state


@pytest.fixture
def bundle(tmp_path: Path) -> Path:
    app = tmp_path / "OnDeviceAIServer.app"
    binary = app / "Contents" / "MacOS" / "OnDeviceAIServer"
    binary.parent.mkdir(parents=True)
    binary.write_text("#!/bin/sh\n", encoding="utf-8")
    binary.chmod(0o755)
    return app


@pytest.fixture
def apple_silicon(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(doctor.platform, "system", lambda: "Darwin")
    monkeypatch.setattr(doctor.platform, "machine", lambda: "arm64")
    monkeypatch.setattr(doctor.platform, "release", lambda: "25.0.0")


def _levels(report: doctor.DoctorReport) -> dict[str, str]:
    return {check.name: check.level for check in report.checks}


@pytest.mark.skipif(os.name == "nt", reason="executable bit")
async def test_doctor_healthy_environment(
    store: StateStore, bundle: Path, apple_silicon: None
) -> None:
    store.write(replace(make_state(port=9999), pid=os.getpid()))
    settings = LauncherSettings(server_app_path=str(bundle))

    report = await doctor.run_doctor(
        settings, store=store, probe=HealthProbe(transport=health_transport({9999}))
    )

    assert report.ok
    assert _levels(report) == {
        "platform": "ok",
        "os_version": "ok",
        "server_app": "ok",
        "server_executable": "ok",
        "state": "info",
        "health": "ok",
    }
    state_check = next(c for c in report.checks if c.name == "state")
    assert f"pid {os.getpid()} running" in state_check.detail
    assert report.state is not None


async def test_doctor_reports_missing_app_as_error(
    store: StateStore, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(pl, "_package_base_dir", lambda: tmp_path / "checkout")
    monkeypatch.setattr(pl, "_platform_package_dir", lambda: None)

    report = await doctor.run_doctor(LauncherSettings(), store=store)

    assert not report.ok
    assert _levels(report)["server_app"] == "error"
    assert _levels(report)["state"] == "info"


async def test_doctor_warns_on_unsupported_platform(
    store: StateStore, bundle: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(doctor.platform, "system", lambda: "Linux")
    monkeypatch.setattr(doctor.platform, "machine", lambda: "x86_64")

    report = await doctor.run_doctor(LauncherSettings(server_app_path=str(bundle)), store=store)

    levels = _levels(report)
    assert levels["platform"] == "warn"
    assert "os_version" not in levels


async def test_doctor_warns_on_old_macos(store: StateStore, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(doctor.platform, "system", lambda: "Darwin")
    monkeypatch.setattr(doctor.platform, "release", lambda: "23.4.0")

    report = await doctor.run_doctor(LauncherSettings(), store=store)

    assert _levels(report)["os_version"] == "warn"


async def test_doctor_flags_invalid_state_file(store: StateStore) -> None:
    store.path.parent.mkdir(parents=True, exist_ok=True)
    store.path.write_text("{oops", encoding="utf-8")

    report = await doctor.run_doctor(LauncherSettings(), store=store)

    state_check = next(c for c in report.checks if c.name == "state")
    assert state_check.level == "warn"
    assert "invalid JSON" in state_check.detail
    assert report.state is None


async def test_doctor_warns_on_stale_state(store: StateStore) -> None:
    store.write(make_state(port=9999))

    report = await doctor.run_doctor(
        LauncherSettings(), store=store, probe=HealthProbe(transport=health_transport(set()))
    )

    assert _levels(report)["health"] == "warn"
