"""Enumerations and configuration dataclasses for ffimage."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List


class ImageFormat(str, Enum):
    """Output container formats understood by the commit pipeline."""

    JPEG = "jpg"
    JPEGXL = "jxl"
    WEBP = "webp"
    PNG = "png"
    AVIF = "avif"
    APNG = "apng"
    BMP = "bmp"
    GIF = "gif"


class ResizeType(str, Enum):
    """Aspect-preserving fit policies for resize requests."""

    NONE = "none"
    UPSCALE = "upscale"
    DOWNSCALE = "downscale"


class PositionType(str, Enum):
    """Anchor points used to place a region within a canvas."""

    NONE = ""
    TOP_LEFT = "top_left"
    TOP = "top"
    TOP_RIGHT = "top_right"
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"
    BOTTOM_LEFT = "bottom_left"
    BOTTOM = "bottom"
    BOTTOM_RIGHT = "bottom_right"


@dataclass
class ToolsConfig:
    """Executable names (or absolute paths) for every external collaborator."""

    ffmpeg: str = "ffmpeg"
    ffprobe: str = "ffprobe"
    exiftool: str = "exiftool"
    pngquant: str = "pngquant"
    gifsicle: str = "gifsicle"


@dataclass
class EngineConfig:
    """Execution settings shared by every external invocation."""

    timeout_seconds: float = 120.0
    silent: bool = True
    background_color: str = "black"
    temp_dir: str = ""


@dataclass
class RecipeConfig:
    """Named, ordered list of builder steps."""

    steps: List[str] = field(default_factory=list)


@dataclass
class AppConfig:
    """Top-level configuration object returned by the loader."""

    tools: ToolsConfig = field(default_factory=ToolsConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    recipes: Dict[str, RecipeConfig] = field(default_factory=dict)
