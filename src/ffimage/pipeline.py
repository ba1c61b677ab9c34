"""Commit state machine: resolve, run ffmpeg once, then best-effort post-processing."""

from __future__ import annotations

import logging
import os
import subprocess
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, List, Tuple

from src.datatypes import ImageFormat
from src.ffimage.output import render_filter_chain
from src.ffimage.render import encoders as _enc
from src.ffimage.render.errors import ExecutionError, GeometryViolationError, RenameError
from src.ffimage.resolver import ResolvedOutput, resolve_format, resolve_output
from src.ffimage.services.exiftool import ExifToolService
from src.ffimage.services.optimizers import QualityCompactor
from src.ffimage.toolchain import Toolchain

if TYPE_CHECKING:
    from src.ffimage.image import Image

logger = logging.getLogger(__name__)

__all__ = ["CommitPipeline", "CommitResult", "CommitState", "build_engine_args"]

_BASE_FLAGS = ("-hide_banner", "-nostdin")


class CommitState(str, Enum):
    BUILDING = "building"
    RESOLVING = "resolving"
    EXECUTING = "executing"
    POST_PROCESSING = "post_processing"
    COMMITTED = "committed"
    FAILED = "failed"


@dataclass
class CommitResult:
    """Outcome of one commit; ``warnings`` collects degraded post-processing steps."""

    destination: Path
    state: CommitState = CommitState.BUILDING
    format: ImageFormat | None = None
    warnings: List[str] = field(default_factory=list)

    def warn(self, message: str) -> None:
        self.warnings.append(message)


def _missing_directories(directory: Path) -> List[Path]:
    """Directories mkdir(parents=True) would create for ``directory``, deepest first."""

    missing: List[Path] = []
    current = directory
    while not current.exists() and current != current.parent:
        missing.append(current)
        current = current.parent
    return missing


def _remove_directories(directories: List[Path]) -> None:
    for directory in directories:
        try:
            directory.rmdir()
        except OSError as exc:
            logger.warning("Failed to remove directory %s: %s", directory, exc)
            return


def _palette_graph(chain: str) -> str:
    prefix = f"[0:v]{chain}," if chain else "[0:v]"
    return f"{prefix}split[a][b];[b]palettegen[p];[a][p]paletteuse"


def build_engine_args(
    source: Path,
    image: "Image",
    resolved: ResolvedOutput,
    write_target: Path,
    *,
    silent: bool = True,
) -> List[str]:
    """Assemble the ffmpeg argument vector (without the executable)."""

    args: List[str] = [*_BASE_FLAGS, "-loglevel", "error" if silent else "info", "-y", "-i", str(source)]
    chain = render_filter_chain(image.output.filters)
    if resolved.format is ImageFormat.GIF:
        args.extend(["-filter_complex", _palette_graph(chain)])
    elif chain:
        args.extend(["-vf", chain])
    args.extend(resolved.render_arguments())
    args.append(str(write_target))
    return args


class CommitPipeline:
    """
    Runs a built :class:`Image` request against the external toolchain.

    Output is always rendered into a uniquely named file next to the destination
    and moved into place with :func:`os.replace`, so overwriting the source never
    has ffmpeg read and write the same path.
    """

    def __init__(self, toolchain: Toolchain) -> None:
        self.toolchain = toolchain
        self.exiftool = ExifToolService(toolchain)
        self.compactor = QualityCompactor(toolchain)
        self.result: CommitResult | None = None

    def _temp_target(self, destination: Path, fmt: ImageFormat) -> Tuple[Path, List[Path]]:
        """Create the write target; also return the directories created for it."""

        suffix = destination.suffix if _enc.format_from_suffix(destination) is not None else _enc.canonical_suffix(fmt)
        directory = destination.parent
        created = _missing_directories(directory)
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, name = tempfile.mkstemp(prefix=f".{destination.stem}-", suffix=suffix, dir=directory)
        except OSError as exc:
            _remove_directories([path for path in created if path.exists()])
            raise ExecutionError(f"Cannot create a write target in {directory}: {exc}") from exc
        os.close(fd)
        return Path(name), created

    def commit(self, image: "Image", destination: str | os.PathLike[str] = "") -> CommitResult:
        """
        Execute ``image``'s request and write it to ``destination``.

        An empty destination overwrites the source. Raises the
        :mod:`src.ffimage.render.errors` hierarchy for fatal failures; helper
        failures after the engine succeeded only add to ``CommitResult.warnings``.
        """

        target = Path(destination) if str(destination) else image.path
        result = CommitResult(destination=target)
        self.result = result
        try:
            self._commit(image, result)
        except BaseException:
            result.state = CommitState.FAILED
            raise
        return result

    def _commit(self, image: "Image", result: CommitResult) -> None:
        spec = image.output
        destination = result.destination

        result.state = CommitState.RESOLVING
        fmt = resolve_format(spec, destination)
        if spec.violations:
            raise GeometryViolationError("; ".join(spec.violations))

        temp_target: Path | None = None
        metadata_doc: Path | None = None
        created_dirs: List[Path] = []
        try:
            temp_target, created_dirs = self._temp_target(destination, fmt)
            resolved = resolve_output(spec, destination, temp_target)
            result.format = resolved.format

            if spec.preserve_metadata:
                metadata_doc = self.exiftool.export_metadata(
                    image.path,
                    temp_dir=self.toolchain.engine.temp_dir or None,
                    warn=result.warn,
                )
                spec.metadata_path = str(metadata_doc) if metadata_doc else ""

            result.state = CommitState.EXECUTING
            self._execute(image, resolved, temp_target)
            try:
                os.replace(temp_target, destination)
            except OSError as exc:
                raise RenameError(f"Failed to move output into place at {destination}: {exc}") from exc
            temp_target = None
            created_dirs = []
            logger.info("Wrote %s (%s)", destination, resolved.format.name)

            result.state = CommitState.POST_PROCESSING
            if resolved.deferred_quality and self.compactor.handles(resolved.format):
                self.compactor.compact(resolved.format, destination, resolved.deferred_quality, warn=result.warn)
            if metadata_doc is not None:
                self.exiftool.import_metadata(metadata_doc, destination, warn=result.warn)
            result.state = CommitState.COMMITTED
        finally:
            for leftover in (temp_target, metadata_doc):
                if leftover is None:
                    continue
                try:
                    leftover.unlink(missing_ok=True)
                except OSError as exc:
                    logger.warning("Failed to remove temporary file %s: %s", leftover, exc)
            # directories made for a run that never produced output
            _remove_directories(created_dirs)
            spec.metadata_path = ""

    def _execute(self, image: "Image", resolved: ResolvedOutput, write_target: Path) -> None:
        args = build_engine_args(
            image.path,
            image,
            resolved,
            write_target,
            silent=self.toolchain.engine.silent,
        )
        try:
            completed = self.toolchain.run("ffmpeg", args)
        except subprocess.TimeoutExpired as exc:
            raise ExecutionError(f"ffmpeg timed out after {exc.timeout} seconds") from exc
        except OSError as exc:
            raise ExecutionError(f"Failed to start ffmpeg: {exc}") from exc
        if completed.returncode != 0:
            diagnostics = completed.stderr or ""
            message = f"ffmpeg exited with code {completed.returncode}"
            if diagnostics.strip():
                message = f"{message}: {diagnostics.strip()}"
            raise ExecutionError(
                message,
                diagnostics=diagnostics,
                returncode=completed.returncode,
            )
