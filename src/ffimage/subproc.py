"""Thin wrapper around :func:`subprocess.run` used for every external tool call."""

from __future__ import annotations

import logging
import shlex
import subprocess
from typing import Any, Callable, Sequence

logger = logging.getLogger(__name__)

ProcessRunner = Callable[..., subprocess.CompletedProcess[Any]]

__all__ = ["ProcessRunner", "format_command", "run_checked"]


def format_command(cmd: Sequence[str]) -> str:
    """Return a shell-quoted rendering of ``cmd`` for log output."""

    return " ".join(shlex.quote(str(part)) for part in cmd)


def run_checked(cmd: Sequence[str], **kwargs: Any) -> subprocess.CompletedProcess[Any]:
    """
    Run ``cmd`` without a shell and return the completed process.

    The argument vector must be a non-empty sequence of strings; ``shell=True`` is
    rejected so filter strings are never interpreted by a shell.
    """

    if isinstance(cmd, (str, bytes)) or not cmd:
        raise ValueError("cmd must be a non-empty argument sequence")
    argv = [str(part) for part in cmd]
    if kwargs.get("shell"):
        raise ValueError("run_checked does not support shell=True")
    kwargs.setdefault("check", False)
    logger.debug("Executing: %s", format_command(argv))
    return subprocess.run(argv, **kwargs)
