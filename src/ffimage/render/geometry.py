from __future__ import annotations

from src.datatypes import PositionType, ResizeType

__all__ = [
    "anchor_offset",
    "best_fit",
    "best_pad",
    "format_dimensions",
    "quality_factor",
]

_HORIZONTAL = {
    PositionType.TOP: 1,
    PositionType.CENTER: 1,
    PositionType.BOTTOM: 1,
    PositionType.TOP_RIGHT: 2,
    PositionType.RIGHT: 2,
    PositionType.BOTTOM_RIGHT: 2,
}
_VERTICAL = {
    PositionType.LEFT: 1,
    PositionType.CENTER: 1,
    PositionType.RIGHT: 1,
    PositionType.BOTTOM_LEFT: 2,
    PositionType.BOTTOM: 2,
    PositionType.BOTTOM_RIGHT: 2,
}


def format_dimensions(width: int, height: int) -> str:
    """Return width × height using integer values."""

    return f"{int(width)} × {int(height)}"


def _require_positive(label: str, width: int, height: int) -> None:
    if width <= 0 or height <= 0:
        raise ValueError(f"{label} dimensions must be positive (got {width}x{height})")


def best_fit(
    orig_w: int,
    orig_h: int,
    box_w: int,
    box_h: int,
    mode: ResizeType | None = None,
) -> tuple[int, int]:
    """
    Fit ``orig_w``×``orig_h`` into a ``box_w``×``box_h`` box while keeping the aspect ratio.

    The dominant axis of the source is fixed first (height for wide images, width for
    tall or square ones). ``DOWNSCALE`` switches the fixed axis when the derived side
    overflows the box; ``UPSCALE`` switches it when the derived side falls short. With
    no mode the box is returned verbatim, filling a zero side from the other one.
    """

    _require_positive("Source", orig_w, orig_h)
    if mode is None or mode is ResizeType.NONE:
        if box_w <= 0 and box_h <= 0:
            raise ValueError("At least one target dimension must be positive")
        if box_w <= 0:
            box_w = max(1, box_h * orig_w // orig_h)
        if box_h <= 0:
            box_h = max(1, box_w * orig_h // orig_w)
        return (box_w, box_h)

    _require_positive("Target", box_w, box_h)
    if orig_w > orig_h:
        new_h = box_h
        new_w = new_h * orig_w // orig_h
        if (mode is ResizeType.DOWNSCALE and new_w > box_w) or (
            mode is ResizeType.UPSCALE and box_w > new_w
        ):
            new_w = box_w
            new_h = new_w * orig_h // orig_w
    else:
        new_w = box_w
        new_h = new_w * orig_h // orig_w
        if (mode is ResizeType.DOWNSCALE and new_h > box_h) or (
            mode is ResizeType.UPSCALE and box_h > new_h
        ):
            new_h = box_h
            new_w = new_h * orig_w // orig_h
    return (max(1, new_w), max(1, new_h))


def best_pad(orig_w: int, orig_h: int, box_w: int, box_h: int) -> tuple[int, int]:
    """Scale the source uniformly by ``min(box_w/orig_w, box_h/orig_h)``."""

    _require_positive("Source", orig_w, orig_h)
    _require_positive("Target", box_w, box_h)
    # orig_w/box_w > orig_h/box_h, cross-multiplied to stay in integers
    if orig_w * box_h > orig_h * box_w:
        new_w = box_w
        new_h = orig_h * box_w // orig_w
    else:
        new_h = box_h
        new_w = orig_w * box_h // orig_h
    return (max(1, new_w), max(1, new_h))


def anchor_offset(
    orig_w: int,
    orig_h: int,
    width: int,
    height: int,
    anchor: PositionType | None,
) -> tuple[int, int]:
    """
    Return the ``(x, y)`` offset placing a ``width``×``height`` region on an anchor.

    Offsets are magnitudes: when the region is larger than the canvas (a pad) the
    result is where the canvas sits inside the region, which is exactly the offset
    ffmpeg's ``pad`` filter expects.
    """

    if anchor is None:
        return (0, 0)
    span_x = abs(orig_w - width)
    span_y = abs(orig_h - height)
    x_step = _HORIZONTAL.get(anchor, 0)
    y_step = _VERTICAL.get(anchor, 0)
    x = 0 if x_step == 0 else (span_x // 2 if x_step == 1 else span_x)
    y = 0 if y_step == 0 else (span_y // 2 if y_step == 1 else span_y)
    return (x, y)


def quality_factor(native_min: int, native_max: int, quality: int, lower_is_better: bool) -> int:
    """Map a 0–100 quality onto a codec's native range, truncating toward zero."""

    fraction = float(quality) / 100
    if lower_is_better:
        return native_max + int(fraction * (native_min - native_max))
    return native_min + int(fraction * (native_max - native_min))
