"""
Service wrapper for the exiftool CLI used to carry metadata across a transcode.
"""
from __future__ import annotations

import json
import logging
import os
import subprocess
import tempfile
from pathlib import Path
from typing import Any, List

from src.ffimage.toolchain import Toolchain, WarningSink

logger = logging.getLogger(__name__)


# Replaces SourceFile so the exported record applies to any target path.
WILDCARD_SOURCE = "*"


class ExifToolService:
    """Exports tags from a source image and re-applies them to a committed output."""

    def __init__(self, toolchain: Toolchain) -> None:
        self.toolchain = toolchain

    def is_available(self) -> bool:
        return self.toolchain.capability("exiftool").available

    def _warn(self, message: str, sink: WarningSink | None) -> None:
        logger.warning(message)
        if sink is not None:
            sink(message)

    def export_metadata(
        self,
        source: Path,
        *,
        temp_dir: str | None = None,
        warn: WarningSink | None = None,
    ) -> Path | None:
        """
        Write ``source``'s tags to a temporary JSON document and return its path.

        Returns ``None`` (after emitting a warning) when exiftool is missing, fails,
        or produces no record. The caller owns the returned file.
        """
        if not self.is_available():
            self._warn("exiftool not found; metadata will not be preserved", warn)
            return None

        try:
            result = self.toolchain.run("exiftool", ["-json", str(source)], capture_stdout=True)
        except (subprocess.TimeoutExpired, OSError) as exc:
            self._warn(f"exiftool export failed: {exc}", warn)
            return None
        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            self._warn(f"exiftool export failed: {stderr or 'exit code %d' % result.returncode}", warn)
            return None

        try:
            records = json.loads(result.stdout or "[]")
        except json.JSONDecodeError as exc:
            self._warn(f"Failed to parse exiftool output: {exc}", warn)
            return None
        if not isinstance(records, list) or not records or not isinstance(records[0], dict):
            self._warn(f"exiftool returned no metadata for {source.name}", warn)
            return None

        exported: List[Any] = list(records)
        exported[0] = dict(exported[0])
        exported[0]["SourceFile"] = WILDCARD_SOURCE

        fd, json_path = tempfile.mkstemp(prefix="ffimage-meta-", suffix=".json", dir=temp_dir or None)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(exported, handle)
        except OSError as exc:
            try:
                os.remove(json_path)
            except OSError:
                pass
            self._warn(f"Failed to write exported metadata: {exc}", warn)
            return None
        logger.debug("Exported %d metadata tags from %s", len(exported[0]), source.name)
        return Path(json_path)

    def import_metadata(
        self,
        document: Path,
        target: Path,
        *,
        warn: WarningSink | None = None,
    ) -> bool:
        """Apply an exported JSON document onto ``target``, overwriting its tags."""
        if not self.is_available():
            self._warn("exiftool not found; metadata was not re-applied", warn)
            return False
        args = ["-overwrite_original", f"-json={document}", str(target)]
        try:
            result = self.toolchain.run("exiftool", args)
        except (subprocess.TimeoutExpired, OSError) as exc:
            self._warn(f"exiftool import failed: {exc}", warn)
            return False
        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            self._warn(f"exiftool import failed: {stderr or 'exit code %d' % result.returncode}", warn)
            return False
        return True


__all__ = ["ExifToolService", "WILDCARD_SOURCE"]
