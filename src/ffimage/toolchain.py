"""Resolution and invocation of the external binaries ffimage depends on."""

from __future__ import annotations

import logging
import shutil
import subprocess
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional, Sequence

from src.datatypes import EngineConfig, ToolsConfig
from src.ffimage import subproc as _subproc

logger = logging.getLogger(__name__)

WhichFunc = Callable[[str], Optional[str]]
WarningSink = Callable[[str], None]

TOOL_NAMES: tuple[str, ...] = ("ffmpeg", "ffprobe", "exiftool", "pngquant", "gifsicle")


class ToolStatus(str, Enum):
    """Whether an external helper can be launched on this machine."""

    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class ToolCapability:
    """Result of probing PATH for a single tool."""

    name: str
    status: ToolStatus
    path: str | None = None

    @property
    def available(self) -> bool:
        return self.status is ToolStatus.AVAILABLE


@dataclass
class Toolchain:
    """
    Bundle of tool configuration, process runner and capability cache.

    Capabilities are resolved once per tool and cached, so optional helpers are
    skipped by checking :meth:`capability` instead of relying on exec failures.
    """

    tools: ToolsConfig = field(default_factory=ToolsConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    runner: _subproc.ProcessRunner | None = None
    which: WhichFunc | None = None
    _capabilities: Dict[str, ToolCapability] = field(default_factory=dict, init=False, repr=False)

    def executable(self, tool: str) -> str:
        if tool not in TOOL_NAMES:
            raise KeyError(f"Unknown tool: {tool}")
        return str(getattr(self.tools, tool))

    def capability(self, tool: str) -> ToolCapability:
        cached = self._capabilities.get(tool)
        if cached is not None:
            return cached
        which = self.which or shutil.which
        resolved = which(self.executable(tool))
        if resolved:
            capability = ToolCapability(tool, ToolStatus.AVAILABLE, resolved)
        else:
            capability = ToolCapability(tool, ToolStatus.UNAVAILABLE)
            logger.debug("%s not found (looked for %r)", tool, self.executable(tool))
        self._capabilities[tool] = capability
        return capability

    def timeout(self) -> float | None:
        """Return the per-invocation deadline, or ``None`` when disabled."""

        try:
            value = float(self.engine.timeout_seconds)
        except (TypeError, ValueError):
            return None
        if value <= 0:
            return None
        return value

    def run(
        self,
        tool: str,
        args: Sequence[str],
        *,
        capture_stdout: bool = False,
    ) -> subprocess.CompletedProcess[Any]:
        """
        Run ``tool`` with ``args`` and return the completed process.

        stderr is always captured as text; stdout is captured only when requested.
        ``subprocess.TimeoutExpired`` and ``OSError`` propagate to the caller.
        """

        runner: _subproc.ProcessRunner = self.runner or _subproc.run_checked
        cmd = [self.executable(tool), *[str(arg) for arg in args]]
        logger.info("Running %s: %s", tool, _subproc.format_command(cmd))
        return runner(
            cmd,
            check=False,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE if capture_stdout else subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            timeout=self.timeout(),
            text=True,
        )


__all__ = ["TOOL_NAMES", "ToolCapability", "ToolStatus", "Toolchain", "WarningSink", "WhichFunc"]
