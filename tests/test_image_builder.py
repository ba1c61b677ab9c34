"""Builder semantics of :class:`Image` against a faked 431x324 probe."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from src.datatypes import ImageFormat, PositionType, ResizeType
from src.ffimage.image import Image, coerce_format, coerce_position
from src.ffimage.output import render_arguments
from src.ffimage.render.errors import ProbeError
from src.ffimage.toolchain import Toolchain
from tests.helpers.fakes import FakeRunner


def _chain(image: Image) -> list[str]:
    return [item.render() for item in image.output.filters]


def test_initial_state_strips_metadata_and_forces_rgba(image: Image) -> None:
    assert (image.width, image.height) == (431, 324)
    assert _chain(image) == ["format=rgba"]
    assert render_arguments(image.output.arguments) == ["-map_metadata", "-1"]
    assert image.output.background_color == "black"


def test_accessors_report_probe_values(image: Image) -> None:
    assert image.native_width == 431
    assert image.native_height == 324
    assert image.frames == 1
    assert image.aspect_ratio == pytest.approx(431 / 324)


def test_frames_non_numeric_is_zero(fake_runner: FakeRunner, source_path: Path, toolchain: Toolchain) -> None:
    fake_runner.probe_payload = {"streams": [{"width": 10, "height": 10, "nb_frames": "N/A"}]}
    assert Image.open(source_path, toolchain=toolchain).frames == 0


def test_probe_without_valid_stream_raises(fake_runner: FakeRunner, source_path: Path, toolchain: Toolchain) -> None:
    fake_runner.probe_payload = {"streams": [{"width": 0, "height": 0}]}
    with pytest.raises(ProbeError):
        Image.open(source_path, toolchain=toolchain)


def test_resize_exact(image: Image) -> None:
    image.resize(300, 300)
    assert (image.width, image.height) == (300, 300)
    assert _chain(image)[-1] == "scale=300:300"


def test_resize_derives_missing_height(image: Image) -> None:
    image.resize(300, 0)
    assert (image.width, image.height) == (300, 225)


def test_resize_derives_missing_width(image: Image) -> None:
    image.resize(0, 300)
    assert (image.width, image.height) == (399, 300)


def test_resize_downscale_fit(image: Image) -> None:
    image.resize(300, 300, ResizeType.DOWNSCALE)
    assert (image.width, image.height) == (300, 225)
    assert _chain(image)[-1] == "scale=300:225"


def test_resize_fit_accepts_string_and_zero_side(image: Image) -> None:
    image.resize(300, 0, "upscale")
    assert (image.width, image.height) == (399, 300)


def test_resize_zero_zero_is_noop(image: Image) -> None:
    image.resize(0, 0)
    assert _chain(image) == ["format=rgba"]
    assert (image.width, image.height) == (431, 324)


def test_resize_rejects_negative(image: Image) -> None:
    with pytest.raises(ValueError):
        image.resize(-1, 300)


def test_crop_thumbnail_fills_box(image: Image) -> None:
    result = image.crop_thumbnail(300, 300)
    assert result is image
    assert (image.width, image.height) == (300, 300)
    assert _chain(image)[1:] == ["scale=399:300", "crop=300:300:49:0"]
    assert image.output.violations == []


def test_thumbnail_letterboxes_with_background(image: Image) -> None:
    image.thumbnail(300, 300)
    assert (image.width, image.height) == (300, 300)
    assert _chain(image)[1:] == ["scale=299:225", "pad=300:300:0:37:black"]
    assert image.output.violations == []


def test_extent_with_anchor_centres_image(image: Image) -> None:
    image.set_background_color("#00ff00").extent(500, 400, anchor="center")
    assert _chain(image)[-1] == "pad=500:400:34:38:#00ff00"
    assert (image.width, image.height) == (500, 400)


def test_extent_smaller_than_image_is_recorded(image: Image) -> None:
    image.extent(100, 100)
    assert image.output.violations
    assert "smaller" in image.output.violations[0]


def test_extent_offset_outside_canvas_is_recorded(image: Image) -> None:
    image.extent(500, 400, 100, 0)
    assert image.output.violations


def test_crop_larger_than_image_is_recorded(image: Image) -> None:
    image.crop(500, 100)
    assert image.output.violations
    assert "exceeds" in image.output.violations[0]


def test_crop_past_edge_is_recorded(image: Image) -> None:
    image.crop(300, 300, 200, 0)
    assert image.output.violations


def test_crop_with_anchor(image: Image) -> None:
    image.crop(100, 100, anchor=PositionType.BOTTOM_RIGHT)
    assert _chain(image)[-1] == "crop=100:100:331:224"
    assert (image.width, image.height) == (100, 100)


@pytest.mark.parametrize("size", [(0, 0), (0, 100), (100, 0)])
def test_crop_rejects_empty_box(image: Image, size: tuple[int, int]) -> None:
    with pytest.raises(ValueError, match="crop size must be positive"):
        image.crop(*size)
    assert (image.width, image.height) == (431, 324)
    assert _chain(image) == ["format=rgba"]
    assert image.output.violations == []


def test_crop_thumbnail_rejects_empty_box_before_scaling(image: Image) -> None:
    with pytest.raises(ValueError, match="crop_thumbnail size must be positive"):
        image.crop_thumbnail(0, 300)
    assert (image.width, image.height) == (431, 324)
    assert _chain(image) == ["format=rgba"]


def test_rotate_converts_degrees_to_radians(image: Image) -> None:
    image.rotate(90)
    image.set_background_color("red").rotate(180)
    assert _chain(image)[1:] == [
        "rotate=a=1.570796327:fillcolor=black",
        "rotate=a=3.141592654:fillcolor=red",
    ]


def test_flip_and_flop(image: Image) -> None:
    image.flip().flop()
    assert _chain(image)[1:] == ["vflip", "hflip"]


@pytest.mark.parametrize("color", ["", "red:alpha", "a,b", "[x]", "white black"])
def test_background_color_rejects_filter_separators(image: Image, color: str) -> None:
    with pytest.raises(ValueError):
        image.set_background_color(color)


def test_quality_validation(image: Image) -> None:
    image.set_quality(80)
    assert image.output.quality == 80
    with pytest.raises(ValueError):
        image.set_quality(101)


def test_static_format_drops_frames_once(image: Image) -> None:
    image.set_format("jpeg").drop_frames()
    assert image.output.format is ImageFormat.JPEG
    assert render_arguments(image.output.arguments) == ["-map_metadata", "-1", "-vframes", "1"]


def test_animated_format_keeps_frames(image: Image) -> None:
    image.set_format(ImageFormat.GIF)
    assert image.output.get_argument("vframes") is None


def test_loop_and_framerate(image: Image) -> None:
    image.set_loop(-1).set_framerate(24)
    assert image.output.loop == -1
    assert image.output.get_argument("r") == 24
    with pytest.raises(ValueError):
        image.set_loop(-2)
    with pytest.raises(ValueError):
        image.set_framerate(0)


def test_codec_and_metadata_flags(image: Image) -> None:
    image.set_codec("libwebp").preserve_metadata()
    assert image.output.codec == "libwebp"
    assert image.output.preserve_metadata is True
    with pytest.raises(ValueError):
        image.set_codec("lib webp")


def test_from_bytes_materialises_and_closes(
    make_toolchain: Callable[..., Toolchain],
    tmp_path: Path,
) -> None:
    scratch = tmp_path / "scratch"
    scratch.mkdir()
    toolchain = make_toolchain(temp_dir=str(scratch))

    with Image.from_bytes(b"\x89PNG\r\n\x1a\npayload", toolchain=toolchain) as image:
        assert image.is_temporary
        assert image.path.suffix == ".png"
        assert image.path.parent == scratch
        assert image.path.read_bytes().endswith(b"payload")
        backing = image.path

    assert not backing.exists()
    assert list(scratch.iterdir()) == []


def test_from_bytes_probe_failure_removes_temp_file(
    fake_runner: FakeRunner,
    make_toolchain: Callable[..., Toolchain],
    tmp_path: Path,
) -> None:
    scratch = tmp_path / "scratch"
    scratch.mkdir()
    fake_runner.probe_payload = {"streams": []}

    with pytest.raises(ProbeError):
        Image.from_bytes(b"GIF89a....", toolchain=make_toolchain(temp_dir=str(scratch)))
    assert list(scratch.iterdir()) == []


def test_close_leaves_path_backed_source(image: Image, source_path: Path) -> None:
    image.close()
    assert source_path.exists()


def test_coercion_helpers() -> None:
    assert coerce_format("JPEG") is ImageFormat.JPEG
    assert coerce_format(".jpeg") is ImageFormat.JPEG
    assert coerce_format("jxl") is ImageFormat.JPEGXL
    assert coerce_position("bottom-right") is PositionType.BOTTOM_RIGHT
    with pytest.raises(ValueError):
        coerce_format("tiff")
    with pytest.raises(ValueError):
        coerce_position("middle")
