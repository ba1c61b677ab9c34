from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest
from click.testing import CliRunner

from src.datatypes import EngineConfig, ToolsConfig
from src.ffimage.image import Image
from src.ffimage.toolchain import Toolchain
from tests.helpers.fakes import FakeRunner, which_from


@pytest.fixture
def fake_runner() -> FakeRunner:
    """Record external invocations; ffprobe reports a 431x324 single-frame image."""

    return FakeRunner()


@pytest.fixture
def make_toolchain(fake_runner: FakeRunner, tmp_path: Path) -> Callable[..., Toolchain]:
    """Return a factory building toolchains around ``fake_runner`` with selected tools missing."""

    def _build(missing: set[str] | None = None, **engine_overrides: object) -> Toolchain:
        engine_overrides.setdefault("temp_dir", str(tmp_path))
        engine = EngineConfig(**engine_overrides)  # type: ignore[arg-type]
        return Toolchain(tools=ToolsConfig(), engine=engine, runner=fake_runner, which=which_from(missing))

    return _build


@pytest.fixture
def toolchain(make_toolchain: Callable[..., Toolchain]) -> Toolchain:
    return make_toolchain()


@pytest.fixture
def source_path(tmp_path: Path) -> Path:
    """An on-disk source file; its content is irrelevant because probing is faked."""

    path = tmp_path / "source.png"
    path.write_bytes(b"\x89PNG\r\n\x1a\nsource")
    return path


@pytest.fixture
def image(source_path: Path, toolchain: Toolchain) -> Image:
    return Image.open(source_path, toolchain=toolchain)


@pytest.fixture
def runner() -> CliRunner:
    """Provide a Click runner configured for CLI smoke tests."""

    return CliRunner()
