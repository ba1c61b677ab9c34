"""Public shim exposing the ffimage CLI and library surface."""

from __future__ import annotations

import os
from typing import Callable, cast

import src.ffimage.cli_entry as _cli_entry
import src.ffimage.doctor as doctor_module
from src.config_loader import ConfigError, load_config, resolve_config
from src.datatypes import AppConfig, ImageFormat, PositionType, ResizeType
from src.ffimage.image import Image
from src.ffimage.pipeline import CommitPipeline, CommitResult, CommitState
from src.ffimage.recipe import RecipeError, apply_recipe, parse_recipe
from src.ffimage.render.errors import (
    ExecutionError,
    FFImageError,
    GeometryViolationError,
    ProbeError,
    RenameError,
    UnresolvedFormatError,
)
from src.ffimage.toolchain import Toolchain

CLIAppError = _cli_entry.CLIAppError
collect_doctor_checks = doctor_module.collect_checks
emit_doctor_results = doctor_module.emit_results
DoctorCheck = doctor_module.DoctorCheck

__all__ = (
    "open_image",
    "image_from_bytes",
    "toolchain_from_config",
    "main",
    "Image",
    "ImageFormat",
    "PositionType",
    "ResizeType",
    "Toolchain",
    "AppConfig",
    "ConfigError",
    "load_config",
    "resolve_config",
    "CommitPipeline",
    "CommitResult",
    "CommitState",
    "RecipeError",
    "apply_recipe",
    "parse_recipe",
    "FFImageError",
    "ProbeError",
    "UnresolvedFormatError",
    "GeometryViolationError",
    "ExecutionError",
    "RenameError",
    "CLIAppError",
    "collect_doctor_checks",
    "emit_doctor_results",
    "DoctorCheck",
)


def toolchain_from_config(config_path: str | None = None) -> Toolchain:
    """Build a :class:`Toolchain` from ``config_path`` (or ``$FFIMAGE_CONFIG``)."""
    cfg = resolve_config(config_path)
    return Toolchain(tools=cfg.tools, engine=cfg.engine)


def open_image(path: str | os.PathLike[str], *, toolchain: Toolchain | None = None) -> Image:
    return Image.open(path, toolchain=toolchain)


def image_from_bytes(data: bytes, *, toolchain: Toolchain | None = None) -> Image:
    return Image.from_bytes(data, toolchain=toolchain)


main = _cli_entry.main


if __name__ == "__main__":
    _entry_point = cast(Callable[[], None], main)
    _entry_point()
