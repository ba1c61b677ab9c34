"""ffprobe wrapper returning the dimensions of the first usable video stream."""

from __future__ import annotations

import json
import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import cast

from src.ffimage.render.errors import ProbeError
from src.ffimage.toolchain import Toolchain

logger = logging.getLogger(__name__)

__all__ = ["StreamInfo", "probe_image"]


@dataclass(frozen=True)
class StreamInfo:
    """Native properties of the probed source stream."""

    width: int
    height: int
    nb_frames: str = ""

    @property
    def frames(self) -> int:
        """Frame count, 0 when ffprobe reported nothing numeric."""
        try:
            return max(0, int(self.nb_frames))
        except (TypeError, ValueError):
            return 0


def _to_int(value: object, default: int = 0) -> int:
    """Safely convert a JSON-derived value to an integer."""

    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return default
    return default


def probe_image(toolchain: Toolchain, path: Path) -> StreamInfo:
    """
    Probe ``path`` and return the first stream with a positive width and height.

    Raises:
        ProbeError: When ffprobe is missing, fails, returns unparsable output, or
            reports no stream with usable dimensions.
    """

    if not toolchain.capability("ffprobe").available:
        raise ProbeError("ffprobe not found in PATH")

    args = [
        "-v",
        "error",
        "-select_streams",
        "v",
        "-show_entries",
        "stream=width,height,nb_frames",
        "-of",
        "json",
        str(path),
    ]
    try:
        result = toolchain.run("ffprobe", args, capture_stdout=True)
    except subprocess.TimeoutExpired as exc:
        raise ProbeError(f"ffprobe timed out for {path.name}") from exc
    except OSError as exc:
        raise ProbeError(f"ffprobe could not be started: {exc}") from exc
    if result.returncode != 0:
        stderr = (result.stderr or "").strip()
        raise ProbeError(f"ffprobe failed for {path.name}: {stderr or 'unknown error'}")

    try:
        payload = json.loads(result.stdout or "{}")
    except json.JSONDecodeError as exc:
        raise ProbeError(f"Unable to parse ffprobe output for {path.name}") from exc

    streams = payload.get("streams") if isinstance(payload, dict) else None
    if not isinstance(streams, list):
        streams = []
    for entry in streams:
        if not isinstance(entry, dict):
            continue
        entry_dict = cast(dict[str, object], entry)
        width = _to_int(entry_dict.get("width"))
        height = _to_int(entry_dict.get("height"))
        if width > 0 and height > 0:
            nb_frames = entry_dict.get("nb_frames")
            info = StreamInfo(width=width, height=height, nb_frames="" if nb_frames is None else str(nb_frames))
            logger.debug("Probed %s: %dx%d frames=%s", path.name, width, height, info.nb_frames or "n/a")
            return info
    raise ProbeError(f"No stream with valid dimensions found in {path.name}")
