from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from src.datatypes import ImageFormat
from src.ffimage.render.geometry import quality_factor

__all__ = [
    "COMPACTION_RANGE",
    "NATIVE_QUALITY",
    "STATIC_FORMATS",
    "NativeQuality",
    "canonical_suffix",
    "compaction_quality",
    "format_from_suffix",
    "loop_argument",
    "muxer_for",
    "native_quality_argument",
    "normalise_quality",
]


@dataclass(frozen=True)
class NativeQuality:
    """Codec option and value range accepted directly by ffmpeg."""

    option: str
    minimum: int
    maximum: int
    lower_is_better: bool


# Name    Worse  Best  Default  Option
# JPEG     31     2      17     -qscale:v
# WEBP     0     100     75     -quality
# JPEGXL   0     100     90     -qscale:v
# AVIF     63     0      50     -crf
NATIVE_QUALITY: Mapping[ImageFormat, NativeQuality] = {
    ImageFormat.AVIF: NativeQuality("crf", 0, 63, True),
    ImageFormat.JPEG: NativeQuality("qscale:v", 2, 31, True),
    ImageFormat.JPEGXL: NativeQuality("qscale:v", 0, 100, False),
    ImageFormat.WEBP: NativeQuality("quality", 0, 100, False),
}

# pngquant / gifsicle take a plain 0-100 value
COMPACTION_RANGE: tuple[int, int] = (0, 100)

STATIC_FORMATS = frozenset({ImageFormat.JPEG, ImageFormat.PNG, ImageFormat.BMP})

_LOOPING_FORMATS = frozenset({ImageFormat.WEBP, ImageFormat.AVIF})

_SUFFIXES: Mapping[str, ImageFormat] = {
    ".png": ImageFormat.PNG,
    ".apng": ImageFormat.APNG,
    ".jpg": ImageFormat.JPEG,
    ".jpeg": ImageFormat.JPEG,
    ".gif": ImageFormat.GIF,
    ".webp": ImageFormat.WEBP,
    ".avif": ImageFormat.AVIF,
    ".bmp": ImageFormat.BMP,
    ".jxl": ImageFormat.JPEGXL,
}

_MUXERS: Mapping[ImageFormat, str] = {
    ImageFormat.JPEG: "image2",
    ImageFormat.JPEGXL: "image2",
    ImageFormat.PNG: "image2",
    ImageFormat.BMP: "image2",
    ImageFormat.APNG: "apng",
    ImageFormat.GIF: "gif",
    ImageFormat.WEBP: "webp",
    ImageFormat.AVIF: "avif",
}

_DEFAULT_CODECS: Mapping[ImageFormat, str] = {
    ImageFormat.JPEG: "mjpeg",
    ImageFormat.JPEGXL: "libjxl",
    ImageFormat.PNG: "png",
    ImageFormat.BMP: "bmp",
}


def normalise_quality(quality: int) -> int:
    """Validate a 0–100 quality value (0 clears it)."""

    if isinstance(quality, bool):
        raise ValueError("quality must be an integer between 0 and 100")
    try:
        value = int(quality)
    except (ValueError, TypeError) as exc:
        raise ValueError("quality must be an integer between 0 and 100") from exc
    if value < 0 or value > 100:
        raise ValueError(f"quality must be between 0 and 100 (got {value})")
    return value


def format_from_suffix(path: str | Path) -> ImageFormat | None:
    """Return the format named by ``path``'s suffix, or ``None`` when unknown."""

    return _SUFFIXES.get(Path(path).suffix.lower())


def canonical_suffix(fmt: ImageFormat) -> str:
    """Return the file suffix ffmpeg associates with ``fmt``."""

    return f".{fmt.value}"


def muxer_for(fmt: ImageFormat) -> tuple[str, str | None]:
    """Return the ffmpeg muxer and, for image2 formats, the codec it needs."""

    return (_MUXERS[fmt], _DEFAULT_CODECS.get(fmt))


def native_quality_argument(fmt: ImageFormat, quality: int) -> tuple[str, int] | None:
    """Translate a configured quality into the codec's native ffmpeg option."""

    if quality <= 0:
        return None
    native = NATIVE_QUALITY.get(fmt)
    if native is None:
        return None
    value = quality_factor(native.minimum, native.maximum, quality, native.lower_is_better)
    return (native.option, value)


def compaction_quality(quality: int) -> int:
    """Map the configured quality onto the post-processing helpers' scale."""

    low, high = COMPACTION_RANGE
    return quality_factor(low, high, quality, False)


def loop_argument(fmt: ImageFormat, loop: int) -> tuple[str, int] | None:
    """
    Return the loop/plays option for animated containers.

    ``loop`` follows the GIF convention: -1 plays once, 0 loops forever and N adds
    N extra plays. APNG, WebP and AVIF count total plays instead, with 0 meaning
    forever, so their values are shifted.
    """

    if fmt is ImageFormat.GIF:
        return ("loop", loop)
    if fmt is ImageFormat.APNG or fmt in _LOOPING_FORMATS:
        option = "plays" if fmt is ImageFormat.APNG else "loop"
        if loop == 0:
            return (option, 0)
        return (option, 1 if loop < 0 else loop + 1)
    return None
