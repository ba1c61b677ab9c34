"""Chainable image session: builder methods only describe work, ``write`` runs it."""

from __future__ import annotations

import logging
import math
import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Any

from src.datatypes import ImageFormat, PositionType, ResizeType
from src.ffimage.output import OutputSpec, is_valid_color
from src.ffimage.render import encoders as _enc
from src.ffimage.render import geometry as _geo
from src.ffimage.services.probe import StreamInfo, probe_image
from src.ffimage.sniff import sniff_suffix
from src.ffimage.toolchain import Toolchain

if TYPE_CHECKING:
    from src.ffimage.pipeline import CommitResult

logger = logging.getLogger(__name__)

__all__ = ["Image", "coerce_format", "coerce_position", "coerce_resize_type"]


def coerce_resize_type(value: ResizeType | str | None) -> ResizeType:
    """Return a ResizeType for enum members, their values, or ``None``."""

    if value is None:
        return ResizeType.NONE
    if isinstance(value, ResizeType):
        return value
    normalized = str(value).strip().lower()
    for member in ResizeType:
        if normalized == member.value:
            return member
    raise ValueError(f"Unknown fit mode {value!r}; expected one of: upscale, downscale, none")


def coerce_position(value: PositionType | str | None) -> PositionType:
    """Return a PositionType for enum members, their values, or ``None``."""

    if value is None:
        return PositionType.NONE
    if isinstance(value, PositionType):
        return value
    normalized = str(value).strip().lower().replace("-", "_")
    for member in PositionType:
        if normalized == member.value:
            return member
    raise ValueError(f"Unknown anchor {value!r}")


def coerce_format(value: ImageFormat | str) -> ImageFormat:
    """Accept an ImageFormat, its value (``jpg``), its name (``JPEG``) or a suffix."""

    if isinstance(value, ImageFormat):
        return value
    normalized = str(value).strip().lower().lstrip(".")
    for member in ImageFormat:
        if normalized in (member.value, member.name.lower()):
            return member
    inferred = _enc.format_from_suffix(f"x.{normalized}")
    if inferred is not None:
        return inferred
    raise ValueError(f"Unknown image format {value!r}")


def _require_dimension(label: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{label} must be an integer (got {value!r})")
    if value < 0:
        raise ValueError(f"{label} must not be negative (got {value})")
    return value


def _require_box(op: str, width: int, height: int) -> None:
    _require_dimension("width", width)
    _require_dimension("height", height)
    if width == 0 or height == 0:
        raise ValueError(f"{op} size must be positive (got {width}x{height})")


class Image:
    """
    One in-flight transformation of a single source file.

    Builder methods mutate :attr:`output` and return ``self``; tracked
    :attr:`width`/:attr:`height` follow every geometric step so later steps can
    anchor against the intermediate size. Nothing runs until :meth:`write`.
    """

    def __init__(
        self,
        path: str | os.PathLike[str],
        *,
        toolchain: Toolchain | None = None,
        is_temporary: bool = False,
    ) -> None:
        self.path = Path(path)
        self.toolchain = toolchain or Toolchain()
        self.is_temporary = is_temporary
        self.output = OutputSpec(background_color=self.toolchain.engine.background_color)
        self.stream: StreamInfo = probe_image(self.toolchain, self.path)
        self.width = self.stream.width
        self.height = self.stream.height
        # metadata is stripped unless preserve_metadata() re-applies it afterwards
        self.output.set_argument("map_metadata", -1)
        self.output.add_filter("format", "rgba")

    @classmethod
    def open(cls, path: str | os.PathLike[str], *, toolchain: Toolchain | None = None) -> "Image":
        return cls(path, toolchain=toolchain)

    @classmethod
    def from_bytes(cls, data: bytes, *, toolchain: Toolchain | None = None) -> "Image":
        """Materialise ``data`` into a temporary file and open it."""

        toolchain = toolchain or Toolchain()
        suffix = sniff_suffix(data)
        fd, name = tempfile.mkstemp(prefix="ffimage-", suffix=suffix, dir=toolchain.engine.temp_dir or None)
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
            return cls(name, toolchain=toolchain, is_temporary=True)
        except BaseException:
            try:
                os.remove(name)
            except OSError:
                pass
            raise

    def close(self) -> None:
        """Remove the backing file of a byte-backed session."""

        if self.is_temporary and self.path.exists():
            try:
                self.path.unlink()
            except OSError as exc:
                logger.warning("Failed to remove temporary source %s: %s", self.path, exc)
        self.is_temporary = False

    def __enter__(self) -> "Image":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Image(path={str(self.path)!r}, size={_geo.format_dimensions(self.width, self.height)})"

    @property
    def frames(self) -> int:
        """Probed frame count; 0 for static images."""
        return self.stream.frames

    @property
    def native_width(self) -> int:
        return self.stream.width

    @property
    def native_height(self) -> int:
        return self.stream.height

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    def _set_size(self, width: int, height: int) -> None:
        self.width = max(1, int(width))
        self.height = max(1, int(height))

    def resize(self, width: int, height: int, fit: ResizeType | str | None = None) -> "Image":
        """
        Scale to ``width``×``height``.

        A zero side is derived from the aspect ratio. With ``fit`` the result keeps
        the aspect ratio and lands inside (``downscale``) or around (``upscale``)
        the box; for example a 300×225 image fitted into 400×400 becomes 400×300
        with ``downscale`` and 533×400 with ``upscale``.
        """

        _require_dimension("width", width)
        _require_dimension("height", height)
        if width == 0 and height == 0:
            return self
        mode = coerce_resize_type(fit)
        if mode is not ResizeType.NONE:
            width = width or height
            height = height or width
            width, height = _geo.best_fit(self.width, self.height, width, height, mode)
        else:
            width, height = _geo.best_fit(self.width, self.height, width, height, None)
        self._set_size(width, height)
        self.output.add_filter("scale", f"{self.width}:{self.height}")
        return self

    def extent(
        self,
        width: int,
        height: int,
        x: int = 0,
        y: int = 0,
        anchor: PositionType | str | None = None,
    ) -> "Image":
        """Grow the canvas to ``width``×``height``; with ``anchor``, ``x``/``y`` are ignored."""

        _require_dimension("width", width)
        _require_dimension("height", height)
        _require_dimension("x", x)
        _require_dimension("y", y)
        position = coerce_position(anchor)
        if position is not PositionType.NONE:
            x, y = _geo.anchor_offset(self.width, self.height, width, height, position)
        if width < self.width or height < self.height:
            self.output.record_violation(
                f"pad {_geo.format_dimensions(width, height)} is smaller than the current "
                f"{_geo.format_dimensions(self.width, self.height)}"
            )
        elif x + self.width > width or y + self.height > height:
            self.output.record_violation(
                f"pad offset {x},{y} pushes {_geo.format_dimensions(self.width, self.height)} "
                f"outside {_geo.format_dimensions(width, height)}"
            )
        self._set_size(width, height)
        self.output.add_filter("pad", width, height, x, y, self.output.background_color)
        return self

    def crop(
        self,
        width: int,
        height: int,
        x: int = 0,
        y: int = 0,
        anchor: PositionType | str | None = None,
    ) -> "Image":
        """Extract a ``width``×``height`` region; with ``anchor``, ``x``/``y`` are ignored."""

        _require_box("crop", width, height)
        _require_dimension("x", x)
        _require_dimension("y", y)
        position = coerce_position(anchor)
        if position is not PositionType.NONE:
            x, y = _geo.anchor_offset(self.width, self.height, width, height, position)
        if width > self.width or height > self.height:
            self.output.record_violation(
                f"crop {_geo.format_dimensions(width, height)} exceeds the current "
                f"{_geo.format_dimensions(self.width, self.height)}"
            )
        elif x + width > self.width or y + height > self.height:
            self.output.record_violation(
                f"crop region at {x},{y} extends past "
                f"{_geo.format_dimensions(self.width, self.height)}"
            )
        self._set_size(width, height)
        self.output.add_filter("crop", width, height, x, y)
        return self

    def crop_thumbnail(self, width: int, height: int) -> "Image":
        """Fill ``width``×``height`` exactly, cropping the overflow around the center."""

        _require_box("crop_thumbnail", width, height)
        self.resize(width, height, ResizeType.UPSCALE).crop(width, height, 0, 0, PositionType.CENTER)
        self._set_size(width, height)
        return self

    def thumbnail(self, width: int, height: int) -> "Image":
        """Fit inside ``width``×``height`` and letterbox with the background colour."""

        _require_dimension("width", width)
        _require_dimension("height", height)
        inner_w, inner_h = _geo.best_pad(self.width, self.height, width, height)
        x, y = _geo.anchor_offset(inner_w, inner_h, width, height, PositionType.CENTER)
        self.resize(inner_w, inner_h, ResizeType.DOWNSCALE).extent(width, height, x, y)
        self._set_size(width, height)
        return self

    def rotate(self, degrees: float) -> "Image":
        """Rotate clockwise; exposed corners use the background colour."""

        radians = math.radians(float(degrees))
        self.output.add_filter("rotate", f"a={radians:.10g}", f"fillcolor={self.output.background_color}")
        return self

    def flip(self) -> "Image":
        """Mirror vertically."""
        self.output.add_filter("vflip")
        return self

    def flop(self) -> "Image":
        """Mirror horizontally."""
        self.output.add_filter("hflip")
        return self

    def set_background_color(self, color: str) -> "Image":
        """
        Set the fill colour used by later pad and rotate steps.

        Accepts colour names, ``#RRGGBB``, ``#RRGGBBAA`` or ``0xRRGGBB`` forms; the
        value reaches ffmpeg verbatim.
        """
        value = str(color).strip()
        if not is_valid_color(value):
            raise ValueError(f"Invalid background colour {color!r}")
        self.output.background_color = value
        return self

    def set_loop(self, count: int) -> "Image":
        """-1 plays once, 0 loops forever, N loops N extra times."""
        if isinstance(count, bool) or not isinstance(count, int) or count < -1:
            raise ValueError(f"loop count must be an integer >= -1 (got {count!r})")
        self.output.loop = count
        return self

    def set_quality(self, quality: int) -> "Image":
        """
        Set quality from 1 (smallest) to 100 (best); 0 restores the codec default.

        AVIF, JPEG, JPEG XL and WebP map it onto ffmpeg options. PNG and GIF are
        recompressed afterwards by pngquant/gifsicle when those are installed.
        """
        self.output.quality = _enc.normalise_quality(quality)
        return self

    def set_framerate(self, fps: int) -> "Image":
        if isinstance(fps, bool) or not isinstance(fps, (int, float)) or fps <= 0:
            raise ValueError(f"fps must be positive (got {fps!r})")
        self.output.set_argument("r", fps)
        return self

    def drop_frames(self) -> "Image":
        """Keep only the first frame."""
        self.output.set_argument("vframes", 1)
        return self

    def set_format(self, fmt: ImageFormat | str) -> "Image":
        resolved = coerce_format(fmt)
        if resolved in _enc.STATIC_FORMATS:
            self.drop_frames()
        self.output.format = resolved
        return self

    def set_codec(self, codec: str) -> "Image":
        value = str(codec).strip()
        if not value or any(char.isspace() for char in value):
            raise ValueError(f"Invalid codec name {codec!r}")
        self.output.codec = value
        return self

    def preserve_metadata(self) -> "Image":
        """Copy the source's tags onto the output with exiftool (may include GPS data)."""
        self.output.preserve_metadata = True
        return self

    def write(self, path: str | os.PathLike[str] = "") -> "CommitResult":
        """Commit the accumulated request; an empty ``path`` overwrites the source."""

        from src.ffimage.pipeline import CommitPipeline

        return CommitPipeline(self.toolchain).commit(self, path)
