"""Parse ``op:arg:arg`` recipe steps and replay them against an :class:`Image`."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Sequence, Tuple

from src.ffimage.image import Image, coerce_format, coerce_position, coerce_resize_type

logger = logging.getLogger(__name__)

__all__ = ["RecipeError", "RecipeStep", "apply_recipe", "parse_recipe", "parse_step"]


class RecipeError(ValueError):
    """Raised when a recipe step is malformed or names an unknown operation."""


@dataclass(frozen=True)
class RecipeStep:
    op: str
    args: Tuple[str, ...] = ()
    raw: str = ""


def _int(step: RecipeStep, value: str, label: str) -> int:
    try:
        return int(value)
    except ValueError as exc:
        raise RecipeError(f"{step.raw!r}: {label} must be an integer (got {value!r})") from exc


def _float(step: RecipeStep, value: str, label: str) -> float:
    try:
        return float(value)
    except ValueError as exc:
        raise RecipeError(f"{step.raw!r}: {label} must be a number (got {value!r})") from exc


def _size(step: RecipeStep, value: str) -> Tuple[int, int]:
    parts = value.lower().split("x")
    if len(parts) != 2:
        raise RecipeError(f"{step.raw!r}: expected WIDTHxHEIGHT (got {value!r})")
    return (_int(step, parts[0] or "0", "width"), _int(step, parts[1] or "0", "height"))


def _expect(step: RecipeStep, minimum: int, maximum: int) -> None:
    count = len(step.args)
    if count < minimum or count > maximum:
        if minimum == maximum:
            expected = str(minimum)
        else:
            expected = f"{minimum}-{maximum}"
        raise RecipeError(f"{step.raw!r}: {step.op} takes {expected} argument(s), got {count}")


def _placement(step: RecipeStep) -> Dict[str, object]:
    """Translate the optional ``:anchor`` or ``:X:Y`` tail of extent/crop."""

    tail = step.args[1:]
    if not tail:
        return {}
    if len(tail) == 1:
        try:
            return {"anchor": coerce_position(tail[0])}
        except ValueError as exc:
            raise RecipeError(f"{step.raw!r}: {exc}") from exc
    return {"x": _int(step, tail[0], "x"), "y": _int(step, tail[1], "y")}


def _resize(image: Image, step: RecipeStep) -> None:
    _expect(step, 1, 2)
    width, height = _size(step, step.args[0])
    try:
        fit = coerce_resize_type(step.args[1]) if len(step.args) == 2 else None
    except ValueError as exc:
        raise RecipeError(f"{step.raw!r}: {exc}") from exc
    image.resize(width, height, fit)


def _extent(image: Image, step: RecipeStep) -> None:
    _expect(step, 1, 3)
    width, height = _size(step, step.args[0])
    image.extent(width, height, **_placement(step))  # type: ignore[arg-type]


def _crop(image: Image, step: RecipeStep) -> None:
    _expect(step, 1, 3)
    width, height = _size(step, step.args[0])
    image.crop(width, height, **_placement(step))  # type: ignore[arg-type]


def _thumbnail(image: Image, step: RecipeStep) -> None:
    _expect(step, 1, 1)
    image.thumbnail(*_size(step, step.args[0]))


def _crop_thumbnail(image: Image, step: RecipeStep) -> None:
    _expect(step, 1, 1)
    image.crop_thumbnail(*_size(step, step.args[0]))


def _rotate(image: Image, step: RecipeStep) -> None:
    _expect(step, 1, 1)
    image.rotate(_float(step, step.args[0], "angle"))


def _background(image: Image, step: RecipeStep) -> None:
    _expect(step, 1, 1)
    image.set_background_color(step.args[0])


def _quality(image: Image, step: RecipeStep) -> None:
    _expect(step, 1, 1)
    image.set_quality(_int(step, step.args[0], "quality"))


def _loop(image: Image, step: RecipeStep) -> None:
    _expect(step, 1, 1)
    image.set_loop(_int(step, step.args[0], "loop"))


def _fps(image: Image, step: RecipeStep) -> None:
    _expect(step, 1, 1)
    image.set_framerate(_int(step, step.args[0], "fps"))


def _format(image: Image, step: RecipeStep) -> None:
    _expect(step, 1, 1)
    try:
        fmt = coerce_format(step.args[0])
    except ValueError as exc:
        raise RecipeError(f"{step.raw!r}: {exc}") from exc
    image.set_format(fmt)


def _no_args(method: Callable[[Image], object]) -> Callable[[Image, RecipeStep], None]:
    def _apply(image: Image, step: RecipeStep) -> None:
        _expect(step, 0, 0)
        method(image)

    return _apply


_OPERATIONS: Dict[str, Callable[[Image, RecipeStep], None]] = {
    "resize": _resize,
    "extent": _extent,
    "crop": _crop,
    "thumbnail": _thumbnail,
    "crop_thumbnail": _crop_thumbnail,
    "rotate": _rotate,
    "flip": _no_args(Image.flip),
    "flop": _no_args(Image.flop),
    "background": _background,
    "quality": _quality,
    "loop": _loop,
    "fps": _fps,
    "drop_frames": _no_args(Image.drop_frames),
    "format": _format,
    "preserve_metadata": _no_args(Image.preserve_metadata),
}


def parse_step(text: str) -> RecipeStep:
    """Split ``text`` into an operation and its ``:``-separated arguments."""

    raw = text.strip()
    if not raw:
        raise RecipeError("Empty recipe step")
    # colour values never contain ':'
    op, *args = raw.split(":")
    op = op.strip().lower().replace("-", "_")
    if op not in _OPERATIONS:
        known = ", ".join(sorted(_OPERATIONS))
        raise RecipeError(f"Unknown recipe operation {op!r} (expected one of: {known})")
    return RecipeStep(op=op, args=tuple(arg.strip() for arg in args), raw=raw)


def parse_recipe(steps: Iterable[str]) -> List[RecipeStep]:
    return [parse_step(step) for step in steps]


def apply_recipe(image: Image, steps: Sequence[RecipeStep | str]) -> Image:
    """
    Apply ``steps`` to ``image`` in order and return it.

    Builder ``ValueError``s are re-raised as :class:`RecipeError` naming the step.
    """

    for item in steps:
        step = parse_step(item) if isinstance(item, str) else item
        logger.debug("Applying recipe step %s", step.raw or step.op)
        try:
            _OPERATIONS[step.op](image, step)
        except RecipeError:
            raise
        except ValueError as exc:
            raise RecipeError(f"{step.raw or step.op!r}: {exc}") from exc
    return image
