"""Mutable output specification accumulated by the builder methods."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Sequence

from src.datatypes import ImageFormat

__all__ = ["Argument", "Filter", "OutputSpec", "is_valid_color", "render_arguments", "render_filter_chain"]

DEFAULT_BACKGROUND = "black"

# characters that would split or escape an ffmpeg filter option
_COLOR_FORBIDDEN = frozenset(":,;[]= \t\n'\"\\")


def is_valid_color(value: str) -> bool:
    """True for a non-empty colour that can be embedded in a filter verbatim."""

    return bool(value) and not any(char in _COLOR_FORBIDDEN for char in value)


@dataclass(frozen=True)
class Filter:
    """One named filter stage; positional arguments are joined with ``:``."""

    name: str
    args: tuple[str, ...] = ()

    def render(self) -> str:
        if not self.args:
            return self.name
        return f"{self.name}={':'.join(self.args)}"


@dataclass
class Argument:
    """An ffmpeg output option emitted as ``-key value``."""

    key: str
    value: Any

    def render(self) -> List[str]:
        return [f"-{self.key}", str(self.value)]


def render_filter_chain(filters: Sequence[Filter]) -> str:
    """Join filters into a linear ffmpeg chain, preserving order."""

    return ",".join(item.render() for item in filters)


def render_arguments(arguments: Sequence[Argument]) -> List[str]:
    """Flatten arguments into ``-key value`` pairs, preserving order."""

    rendered: List[str] = []
    for argument in arguments:
        rendered.extend(argument.render())
    return rendered


@dataclass
class OutputSpec:
    """
    Everything the commit step needs, accumulated in call order.

    ``filters`` is append-only. ``arguments`` is keyed: re-setting a key keeps the
    original position and replaces the value.
    """

    path: str = ""
    filters: List[Filter] = field(default_factory=list)
    arguments: List[Argument] = field(default_factory=list)
    quality: int = 0
    loop: int = 0
    format: ImageFormat | None = None
    preserve_metadata: bool = False
    metadata_path: str = ""
    background_color: str = DEFAULT_BACKGROUND
    codec: str = ""
    violations: List[str] = field(default_factory=list)

    def add_filter(self, name: str, *args: Any) -> Filter:
        item = Filter(name, tuple(str(arg) for arg in args))
        self.filters.append(item)
        return item

    def set_argument(self, key: str, value: Any) -> None:
        for existing in self.arguments:
            if existing.key == key:
                existing.value = value
                return
        self.arguments.append(Argument(key, value))

    def get_argument(self, key: str) -> Any | None:
        for existing in self.arguments:
            if existing.key == key:
                return existing.value
        return None

    def record_violation(self, message: str) -> None:
        self.violations.append(message)
