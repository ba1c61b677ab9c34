from __future__ import annotations

import pytest

from src.datatypes import ImageFormat
from src.ffimage.image import Image
from src.ffimage.recipe import RecipeError, RecipeStep, apply_recipe, parse_recipe, parse_step


def _chain(image: Image) -> list[str]:
    return [item.render() for item in image.output.filters][1:]


def test_parse_step_splits_operation_and_arguments() -> None:
    assert parse_step(" resize:300x300:downscale ") == RecipeStep(
        op="resize", args=("300x300", "downscale"), raw="resize:300x300:downscale"
    )
    assert parse_step("crop-thumbnail:64x64").op == "crop_thumbnail"


@pytest.mark.parametrize("text", ["", "   ", "sharpen:2", "blur"])
def test_parse_step_rejects_unknown_or_empty(text: str) -> None:
    with pytest.raises(RecipeError):
        parse_step(text)


def test_apply_recipe_replays_steps_in_order(image: Image) -> None:
    apply_recipe(
        image,
        parse_recipe(
            [
                "background:#112233",
                "thumbnail:300x300",
                "rotate:90",
                "flip",
                "flop",
                "format:webp",
                "quality:80",
                "loop:-1",
                "fps:12",
                "preserve_metadata",
            ]
        ),
    )

    assert _chain(image) == [
        "scale=299:225",
        "pad=300:300:0:37:#112233",
        "rotate=a=1.570796327:fillcolor=#112233",
        "vflip",
        "hflip",
    ]
    assert image.output.format is ImageFormat.WEBP
    assert image.output.quality == 80
    assert image.output.loop == -1
    assert image.output.get_argument("r") == 12
    assert image.output.preserve_metadata is True


def test_apply_recipe_accepts_raw_strings(image: Image) -> None:
    apply_recipe(image, ["resize:300x", "drop_frames"])
    assert (image.width, image.height) == (300, 225)
    assert image.output.get_argument("vframes") == 1


def test_extent_and_crop_placements(image: Image) -> None:
    apply_recipe(image, ["extent:500x400:center", "crop:100x100:10:20", "crop:50x50:bottom_right"])
    assert _chain(image) == [
        "pad=500:400:34:38:black",
        "crop=100:100:10:20",
        "crop=50:50:50:50",
    ]


def test_static_format_step_drops_frames(image: Image) -> None:
    apply_recipe(image, ["format:png"])
    assert image.output.get_argument("vframes") == 1


@pytest.mark.parametrize(
    "step",
    [
        "resize:300",
        "resize:axb",
        "resize:300x300:sideways",
        "extent:500x400:middle",
        "crop:10x10:1:2:3",
        "crop:0x0",
        "crop_thumbnail:0x300",
        "rotate:quarter",
        "quality:150",
        "loop:-5",
        "fps:0",
        "format:tiff",
        "background:bad,colour",
        "flip:1",
        "thumbnail",
    ],
)
def test_invalid_steps_raise_recipe_error(image: Image, step: str) -> None:
    with pytest.raises(RecipeError):
        apply_recipe(image, [step])


def test_recipe_error_is_value_error() -> None:
    assert issubclass(RecipeError, ValueError)
