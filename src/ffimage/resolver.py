"""Commit-time resolution of the output format and codec-specific arguments."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from src.datatypes import ImageFormat
from src.ffimage.output import Argument, OutputSpec, render_arguments
from src.ffimage.render import encoders as _enc
from src.ffimage.render.errors import UnresolvedFormatError

logger = logging.getLogger(__name__)

__all__ = ["ResolvedOutput", "resolve_format", "resolve_output"]


@dataclass
class ResolvedOutput:
    """Format plus the full, ordered argument list for one commit."""

    format: ImageFormat
    arguments: List[Argument] = field(default_factory=list)
    deferred_quality: int = 0

    def render_arguments(self) -> List[str]:
        return render_arguments(self.arguments)


def resolve_format(spec: OutputSpec, destination: str | Path) -> ImageFormat:
    """Return the explicit format, else the one named by ``destination``'s suffix."""

    if spec.format is not None:
        return spec.format
    inferred = _enc.format_from_suffix(destination)
    if inferred is None:
        raise UnresolvedFormatError(
            f"Cannot determine an image format for '{destination}'; set one explicitly"
        )
    logger.debug("Inferred format %s from %s", inferred.name, destination)
    return inferred


def resolve_output(spec: OutputSpec, destination: str | Path, write_target: str | Path) -> ResolvedOutput:
    """
    Resolve format, quality, loop and muxer arguments without mutating ``spec``.

    Builder arguments keep their order and come first; resolved arguments are
    appended after them. PNG and GIF quality is returned as ``deferred_quality``
    for the post-processing helpers.
    """

    fmt = resolve_format(spec, destination)
    resolved = ResolvedOutput(format=fmt, arguments=[Argument(a.key, a.value) for a in spec.arguments])

    def _put(key: str, value: object) -> None:
        for existing in resolved.arguments:
            if existing.key == key:
                existing.value = value
                return
        resolved.arguments.append(Argument(key, value))

    native = _enc.native_quality_argument(fmt, spec.quality)
    if native is not None:
        _put(*native)
    elif spec.quality > 0:
        resolved.deferred_quality = spec.quality

    loop = _enc.loop_argument(fmt, spec.loop)
    if loop is not None:
        _put(*loop)

    if spec.codec:
        _put("c:v", spec.codec)

    if _enc.format_from_suffix(write_target) is not fmt:
        muxer, codec = _enc.muxer_for(fmt)
        _put("f", muxer)
        if codec and not spec.codec:
            _put("c:v", codec)
        if muxer == "image2":
            # single output file rather than a numbered sequence
            _put("update", 1)

    return resolved
