"""Environment diagnostics for `navicli --doctor`."""

from __future__ import annotations

import importlib
import shutil
import subprocess
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

import requests

from .config import AppConfig, load_config
from .errors import ConfigInvalid
from .runtime_config import DEFAULT_ENGINE
from .services.catalog_client import SubsonicClient, SubsonicError

DoctorStatus = Literal["ok", "missing", "error", "skipped"]

ClientFactory = Callable[[AppConfig], SubsonicClient]


@dataclass(frozen=True)
class DoctorCheck:
    """One environment/tooling readiness check result."""

    name: str
    status: DoctorStatus
    required: bool
    detail: str
    hint: str | None = None


@dataclass(frozen=True)
class DoctorReport:
    engine: str
    checks: list[DoctorCheck]

    @property
    def exit_code(self) -> int:
        """Return non-zero when any required check did not pass."""
        for check in self.checks:
            if check.required and check.status != "ok":
                return 2
        return 0


def run_doctor(
    engine: str | None = None,
    *,
    config_path: Path | None = None,
    client_factory: ClientFactory | None = None,
) -> DoctorReport:
    """Run every check; `engine` defaults to the configured one."""
    config_check, config = probe_config(config_path)
    if engine is None:
        engine = config.player.engine if config is not None else DEFAULT_ENGINE
    checks = [config_check]
    if config is None:
        checks.append(
            DoctorCheck(
                name="server",
                status="skipped",
                required=True,
                detail="no usable config",
            )
        )
    else:
        checks.append(probe_server(config, client_factory=client_factory))
    checks.append(probe_mpv(required=engine == "mpv"))
    checks.append(probe_vlc(required=engine == "vlc"))
    return DoctorReport(engine=engine, checks=checks)


def render_report(report: DoctorReport) -> str:
    lines = [f"navicli doctor (engine={report.engine})", ""]
    for check in report.checks:
        req = "required" if check.required else "optional"
        lines.append(f"{_status_token(check.status)} {check.name:<10} [{req}] {check.detail}")
        if check.hint:
            lines.append(f"      hint: {check.hint}")
    lines.append("")
    lines.append("Result: OK" if report.exit_code == 0 else "Result: FAIL")
    return "\n".join(lines)


def probe_config(path: Path | None) -> tuple[DoctorCheck, AppConfig | None]:
    try:
        config = load_config(path)
    except ConfigInvalid as exc:
        return (
            DoctorCheck(
                name="config",
                status="error",
                required=True,
                detail="; ".join(exc.problems),
                hint="Create config.toml with [server] url, username and password.",
            ),
            None,
        )
    return (
        DoctorCheck(
            name="config", status="ok", required=True, detail=f"loaded {config.path}"
        ),
        config,
    )


def probe_server(
    config: AppConfig, *, client_factory: ClientFactory | None = None
) -> DoctorCheck:
    """Ping the configured server with the configured credentials."""
    factory = client_factory or _default_client
    client = factory(config)
    try:
        client.ping()
    except SubsonicError as exc:
        return DoctorCheck(
            name="server",
            status="error",
            required=True,
            detail=f"server rejected ping: {exc}",
            hint="Check server.username and server.password.",
        )
    except requests.RequestException as exc:
        return DoctorCheck(
            name="server",
            status="error",
            required=True,
            detail=f"unreachable ({exc.__class__.__name__})",
            hint="Check server.url and network connectivity.",
        )
    return DoctorCheck(
        name="server", status="ok", required=True, detail=f"ping ok ({client.base_url})"
    )


def probe_mpv(*, required: bool) -> DoctorCheck:
    mpv = shutil.which("mpv")
    if mpv is None:
        return DoctorCheck(
            name="mpv",
            status="missing",
            required=required,
            detail="binary not found on PATH",
            hint="Install mpv or run with --engine vlc.",
        )
    try:
        proc = subprocess.run(
            [mpv, "--version"],
            capture_output=True,
            text=True,
            timeout=2,
            check=False,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        return DoctorCheck(
            name="mpv",
            status="error",
            required=required,
            detail=f"launch failed ({exc.__class__.__name__})",
            hint="Reinstall mpv and verify PATH.",
        )
    if proc.returncode != 0:
        return DoctorCheck(
            name="mpv",
            status="error",
            required=required,
            detail=f"mpv --version failed (exit={proc.returncode})",
            hint="Reinstall mpv and verify PATH.",
        )
    first_line = proc.stdout.strip().splitlines()[0] if proc.stdout.strip() else ""
    return DoctorCheck(
        name="mpv",
        status="ok",
        required=required,
        detail=first_line or f"binary found at {mpv}",
    )


def probe_vlc(*, required: bool) -> DoctorCheck:
    """Verify python-vlc import and that libVLC can create a player."""
    try:
        vlc = importlib.import_module("vlc")
    except Exception as exc:
        return DoctorCheck(
            name="vlc",
            status="missing",
            required=required,
            detail=f"python-vlc import failed ({exc.__class__.__name__})",
            hint="Install VLC/libVLC and ensure python-vlc can locate libVLC.",
        )
    version = getattr(vlc, "__version__", "unknown")
    try:
        vlc.Instance("--no-video").media_player_new()
    except Exception as exc:
        return DoctorCheck(
            name="vlc",
            status="error",
            required=required,
            detail=f"python-vlc {version}; libVLC unavailable ({exc.__class__.__name__})",
            hint="Install VLC/libVLC and verify the runtime library search path.",
        )
    return DoctorCheck(
        name="vlc", status="ok", required=required, detail=f"python-vlc {version}"
    )


def _default_client(config: AppConfig) -> SubsonicClient:
    return SubsonicClient(
        config.server.url,
        config.server.username,
        config.server.password,
        timeout_s=5.0,
    )


def _status_token(status: DoctorStatus) -> str:
    return {
        "ok": "[OK]",
        "missing": "[MISS]",
        "error": "[ERR]",
        "skipped": "[SKIP]",
    }[status]
