"""Click CLI wiring and entry points for ffimage."""

from __future__ import annotations

import logging
import sys
from typing import Any, Dict, Optional, Sequence, cast

import click
from rich import print
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

import src.ffimage.doctor as doctor_module
from src.config_loader import ConfigError, resolve_config
from src.datatypes import AppConfig
from src.ffimage.image import Image
from src.ffimage.pipeline import CommitResult
from src.ffimage.recipe import RecipeError, apply_recipe, parse_recipe
from src.ffimage.render.errors import FFImageError
from src.ffimage.toolchain import Toolchain

logger = logging.getLogger(__name__)

STDIN_SOURCE = "-"


class CLIAppError(RuntimeError):
    """Raised when the CLI cannot complete its work."""

    def __init__(self, message: str, *, code: int = 1, rich_message: Optional[str] = None) -> None:
        super().__init__(message)
        self.code = code
        self.rich_message = rich_message or message


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, RichHandler):
            root.removeHandler(handler)
    root.addHandler(RichHandler(level=level, show_path=False, markup=False, rich_tracebacks=verbose))
    root.setLevel(level)


def _load_app_config(config_path: str | None) -> AppConfig:
    try:
        return resolve_config(config_path)
    except ConfigError as exc:
        raise CLIAppError(
            f"Config error: {exc}",
            code=2,
            rich_message=f"[red]Config error:[/red] {escape(str(exc))}",
        ) from exc


def _toolchain_from_context(ctx: click.Context) -> tuple[AppConfig, Toolchain]:
    params = cast(Dict[str, Any], ctx.ensure_object(dict))
    cfg = _load_app_config(params.get("config_path"))
    return cfg, Toolchain(tools=cfg.tools, engine=cfg.engine)


def _as_cli_error(exc: Exception) -> CLIAppError:
    if isinstance(exc, CLIAppError):
        return exc
    if isinstance(exc, RecipeError):
        return CLIAppError(f"Invalid step: {exc}", code=2, rich_message=f"[red]Invalid step:[/red] {escape(str(exc))}")
    return CLIAppError(str(exc), code=1, rich_message=f"[red]Error:[/red] {escape(str(exc))}")


def _open_source(source: str, toolchain: Toolchain) -> Image:
    if source == STDIN_SOURCE:
        data = sys.stdin.buffer.read()
        if not data:
            raise CLIAppError("No image data received on stdin", code=2)
        return Image.from_bytes(data, toolchain=toolchain)
    return Image.open(source, toolchain=toolchain)


def _run_convert(
    ctx: click.Context,
    *,
    source: str,
    dest: str | None,
    steps: Sequence[str],
    recipe_name: str | None,
    fmt: str | None,
    quality: int | None,
    loop: int | None,
    fps: int | None,
    drop_frames: bool,
    background: str | None,
    preserve_metadata: bool,
) -> CommitResult:
    cfg, toolchain = _toolchain_from_context(ctx)
    if source == STDIN_SOURCE and not dest:
        raise CLIAppError("DEST is required when reading from stdin", code=2)

    recipe_steps: list[str] = []
    if recipe_name:
        recipe = cfg.recipes.get(recipe_name)
        if recipe is None:
            known = ", ".join(sorted(cfg.recipes)) or "none configured"
            raise CLIAppError(
                f"Unknown recipe '{recipe_name}' (available: {known})",
                code=2,
                rich_message=f"[red]Unknown recipe[/red] '{escape(recipe_name)}' (available: {escape(known)})",
            )
        recipe_steps.extend(recipe.steps)
    recipe_steps.extend(steps)
    parsed = parse_recipe(recipe_steps)

    with _open_source(source, toolchain) as image:
        if background:
            image.set_background_color(background)
        apply_recipe(image, parsed)
        if fmt:
            image.set_format(fmt)
        if quality is not None:
            image.set_quality(quality)
        if loop is not None:
            image.set_loop(loop)
        if fps is not None:
            image.set_framerate(fps)
        if drop_frames:
            image.drop_frames()
        if preserve_metadata:
            image.preserve_metadata()
        return image.write(dest or "")


@click.group()
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(dir_okay=False),
    help="Path to a TOML config file (defaults to $FFIMAGE_CONFIG when set).",
)
@click.option("--verbose", is_flag=True, help="Log every external command and debug detail.")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """Build and run ffmpeg image transformations."""

    params = cast(Dict[str, Any], ctx.ensure_object(dict))
    params["config_path"] = config_path
    params["verbose"] = verbose
    _configure_logging(verbose)


@main.command("convert")
@click.argument("source")
@click.argument("dest", required=False)
@click.option("-o", "--op", "steps", multiple=True, help="Builder step such as resize:300x300:downscale (repeatable).")
@click.option("--recipe", "recipe_name", default=None, help="Apply a named recipe from [recipes] first.")
@click.option("--format", "fmt", default=None, help="Output format (png, jpg, webp, avif, gif, apng, bmp, jxl).")
@click.option("--quality", type=click.IntRange(0, 100), default=None, help="Quality 1-100 (0 keeps the codec default).")
@click.option("--loop", type=int, default=None, help="-1 plays once, 0 loops forever, N adds N plays.")
@click.option("--fps", type=click.IntRange(min=1), default=None, help="Output frame rate.")
@click.option("--drop-frames", is_flag=True, help="Keep only the first frame.")
@click.option("--background", default=None, help="Fill colour for pad and rotate steps.")
@click.option("--preserve-metadata", is_flag=True, help="Copy source tags with exiftool.")
@click.pass_context
def convert(
    ctx: click.Context,
    source: str,
    dest: str | None,
    steps: tuple[str, ...],
    recipe_name: str | None,
    fmt: str | None,
    quality: int | None,
    loop: int | None,
    fps: int | None,
    drop_frames: bool,
    background: str | None,
    preserve_metadata: bool,
) -> None:
    """Transform SOURCE and write it to DEST (in place when DEST is omitted; '-' reads stdin)."""

    try:
        result = _run_convert(
            ctx,
            source=source,
            dest=dest,
            steps=steps,
            recipe_name=recipe_name,
            fmt=fmt,
            quality=quality,
            loop=loop,
            fps=fps,
            drop_frames=drop_frames,
            background=background,
            preserve_metadata=preserve_metadata,
        )
    except (CLIAppError, FFImageError, ValueError) as exc:
        error = _as_cli_error(exc)
        print(error.rich_message)
        raise click.exceptions.Exit(error.code) from exc

    for warning in result.warnings:
        print(f"[yellow]Warning:[/yellow] {escape(warning)}")
    fmt_name = result.format.name if result.format is not None else "?"
    print(f"[green]Wrote[/green] {escape(str(result.destination))} ({fmt_name})")


@main.command("info")
@click.argument("source", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def info(ctx: click.Context, source: str) -> None:
    """Show the probed dimensions and frame count of SOURCE."""

    try:
        _, toolchain = _toolchain_from_context(ctx)
        image = Image.open(source, toolchain=toolchain)
    except (CLIAppError, FFImageError) as exc:
        error = _as_cli_error(exc)
        print(error.rich_message)
        raise click.exceptions.Exit(error.code) from exc

    table = Table(title=escape(source), show_header=False)
    table.add_column("Property")
    table.add_column("Value")
    table.add_row("Width", str(image.native_width))
    table.add_row("Height", str(image.native_height))
    table.add_row("Frames", str(image.frames))
    table.add_row("Aspect ratio", f"{image.aspect_ratio:.4f}")
    print(table)


@main.command("doctor")
@click.option("--json", "json_mode", is_flag=True, help="Emit machine-readable diagnostics.")
@click.pass_context
def doctor(ctx: click.Context, json_mode: bool) -> None:
    """Summarise external tool availability."""

    params = cast(Dict[str, Any], ctx.ensure_object(dict))
    config_issue: Optional[str] = None
    try:
        cfg = resolve_config(params.get("config_path"))
    except ConfigError as exc:
        config_issue = f"Config parsing failed: {exc}; using defaults."
        cfg = AppConfig()
    toolchain = Toolchain(tools=cfg.tools, engine=cfg.engine)
    checks = doctor_module.collect_checks(toolchain, config_issue=config_issue)
    doctor_module.emit_results(checks, json_mode=json_mode)
    if doctor_module.has_failures(checks):
        raise click.exceptions.Exit(1)


if __name__ == "__main__":
    main()
