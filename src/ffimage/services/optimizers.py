"""Best-effort quality compaction for formats ffmpeg cannot tune natively."""
from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Callable, List, Mapping

from src.datatypes import ImageFormat
from src.ffimage.render.encoders import compaction_quality
from src.ffimage.toolchain import Toolchain, WarningSink

logger = logging.getLogger(__name__)


def _pngquant_args(path: Path, value: int) -> List[str]:
    return ["--quality", f"0-{value}", "-f", str(path), "-o", str(path)]


def _gifsicle_args(path: Path, value: int) -> List[str]:
    return ["-O3", f"--lossy={value}", str(path), "-o", str(path)]


_HELPERS: Mapping[ImageFormat, tuple[str, Callable[[Path, int], List[str]]]] = {
    ImageFormat.PNG: ("pngquant", _pngquant_args),
    ImageFormat.GIF: ("gifsicle", _gifsicle_args),
}


class QualityCompactor:
    """Runs pngquant for PNG and gifsicle for GIF outputs, in place."""

    def __init__(self, toolchain: Toolchain) -> None:
        self.toolchain = toolchain

    @staticmethod
    def handles(fmt: ImageFormat) -> bool:
        return fmt in _HELPERS

    def compact(
        self,
        fmt: ImageFormat,
        path: Path,
        quality: int,
        *,
        warn: WarningSink | None = None,
    ) -> bool:
        """
        Recompress ``path`` in place; return True when the helper succeeded.

        Never raises for a missing helper, a non-zero exit or a timeout; those are
        reported through the logger and ``warn``.
        """
        helper = _HELPERS.get(fmt)
        if helper is None or quality <= 0:
            return False
        tool, build_args = helper
        if not self.toolchain.capability(tool).available:
            message = f"{tool} not found; skipping {fmt.name} quality compaction"
            logger.warning(message)
            if warn is not None:
                warn(message)
            return False

        value = compaction_quality(quality)
        try:
            result = self.toolchain.run(tool, build_args(path, value))
        except (subprocess.TimeoutExpired, OSError) as exc:
            message = f"{tool} failed: {exc}"
        else:
            if result.returncode == 0:
                logger.debug("%s compacted %s at quality %d", tool, path.name, value)
                return True
            stderr = (result.stderr or "").strip()
            message = f"{tool} exited with code {result.returncode}" + (f": {stderr}" if stderr else "")
        logger.warning(message)
        if warn is not None:
            warn(message)
        return False


__all__ = ["QualityCompactor"]
