"""Dependency readiness checks for the external tools ffimage drives."""

from __future__ import annotations

import json
from typing import List, Literal, Optional, Sequence, TypedDict

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from src.ffimage.toolchain import Toolchain

__all__ = ["DoctorCheck", "DoctorStatus", "collect_checks", "emit_results", "has_failures"]

DoctorStatus = Literal["pass", "warn", "fail"]


class DoctorCheck(TypedDict):
    id: str
    label: str
    status: DoctorStatus
    message: str


# ffmpeg/ffprobe are fatal when missing; the rest only degrade post-processing
_REQUIRED = frozenset({"ffmpeg", "ffprobe"})

_PURPOSE = {
    "ffmpeg": "transcoding engine",
    "ffprobe": "source probing",
    "exiftool": "metadata preservation",
    "pngquant": "PNG quality compaction",
    "gifsicle": "GIF quality compaction",
}

_STATUS_STYLE = {"pass": "green", "warn": "yellow", "fail": "red"}


def collect_checks(toolchain: Toolchain, *, config_issue: Optional[str] = None) -> List[DoctorCheck]:
    """Return one check per external tool, plus a config check when it failed to load."""

    checks: List[DoctorCheck] = []
    if config_issue:
        checks.append({"id": "config", "label": "Config", "status": "warn", "message": config_issue})
    for tool, purpose in _PURPOSE.items():
        capability = toolchain.capability(tool)
        if capability.available:
            status: DoctorStatus = "pass"
            message = f"{capability.path}"
        else:
            status = "fail" if tool in _REQUIRED else "warn"
            message = f"'{toolchain.executable(tool)}' not found on PATH; {purpose} unavailable"
        checks.append({"id": tool, "label": f"{tool} ({purpose})", "status": status, "message": message})
    return checks


def has_failures(checks: Sequence[DoctorCheck]) -> bool:
    return any(check["status"] == "fail" for check in checks)


def emit_results(
    checks: Sequence[DoctorCheck],
    *,
    json_mode: bool = False,
    console: Console | None = None,
) -> None:
    """Print ``checks`` as a rich table, or as a JSON document when ``json_mode`` is set."""

    if json_mode:
        # rich soft-wraps long lines, which would corrupt the document
        payload = {"checks": list(checks), "ok": not has_failures(checks)}
        click.echo(json.dumps(payload, indent=2))
        return

    console = console or Console()
    table = Table(title="ffimage doctor")
    table.add_column("Check")
    table.add_column("Status")
    table.add_column("Details", overflow="fold")
    for check in checks:
        style = _STATUS_STYLE[check["status"]]
        table.add_row(
            escape(check["label"]),
            f"[{style}]{check['status']}[/]",
            escape(check["message"]),
        )
    console.print(table)
