"""Exception hierarchy raised while building or committing an image request."""

from __future__ import annotations

__all__ = [
    "ExecutionError",
    "FFImageError",
    "GeometryViolationError",
    "ProbeError",
    "RenameError",
    "UnresolvedFormatError",
]


class FFImageError(RuntimeError):
    """Base class for every fatal ffimage failure."""


class ProbeError(FFImageError):
    """Raised when the source has no stream with usable dimensions."""


class UnresolvedFormatError(FFImageError):
    """Raised when neither an explicit format nor the destination suffix names one."""


class GeometryViolationError(FFImageError):
    """Raised when a crop or pad request does not fit the tracked dimensions."""


class ExecutionError(FFImageError):
    """Raised when the transcoding engine exits non-zero or cannot be started."""

    def __init__(self, message: str, *, diagnostics: str = "", returncode: int | None = None) -> None:
        super().__init__(message)
        self.diagnostics = diagnostics
        self.returncode = returncode


class RenameError(FFImageError):
    """Raised when the temporary write target cannot replace the destination."""
