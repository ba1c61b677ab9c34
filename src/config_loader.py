"""Configuration loader that parses and validates user-provided TOML."""

from __future__ import annotations

import logging
import math
import os
import tomllib
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict

from .datatypes import AppConfig, EngineConfig, RecipeConfig, ToolsConfig
from .ffimage.output import is_valid_color

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "FFIMAGE_CONFIG"


class ConfigError(ValueError):
    """Raised when the configuration file is malformed or fails validation."""


_TIMEOUT_NEGATIVE_MSG = "engine.timeout_seconds must be >= 0"


def _coerce_bool(value: Any, dotted_key: str) -> bool:
    """Return a bool, coercing simple 0/1 representations when necessary."""

    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"0", "1"}:
            return normalized == "1"
        if normalized in {"true", "false"}:
            return normalized == "true"
    raise ConfigError(f"{dotted_key} must be a boolean (use true/false).")


def _sanitize_section(raw: Any, name: str, cls):
    """
    Coerce a raw TOML table into an instance of ``cls`` with cleaned booleans.

    Parameters:
        raw (Any): Raw TOML section data.
        name (str): Section name used when reporting validation errors.
        cls: Dataclass type used to construct the section object.

    Returns:
        Any: Instantiated dataclass populated with values from ``raw``.

    Raises:
        ConfigError: If the section is not a table or contains invalid keys or values.
    """
    if not isinstance(raw, dict):
        raise ConfigError(f"[{name}] must be a table")
    cleaned: Dict[str, Any] = {}
    cls_fields = {field.name: field for field in fields(cls)}
    bool_fields = {field_name for field_name, field in cls_fields.items() if field.type is bool}
    str_fields = {field_name for field_name, field in cls_fields.items() if field.type is str}
    for key, value in raw.items():
        if key in bool_fields:
            cleaned[key] = _coerce_bool(value, f"{name}.{key}")
        elif key in str_fields:
            if not isinstance(value, str):
                raise ConfigError(f"{name}.{key} must be a string")
            cleaned[key] = value
        else:
            cleaned[key] = value
    try:
        return cls(**cleaned)
    except TypeError as exc:
        raise ConfigError(f"Invalid keys in [{name}]: {exc}") from exc


def _normalize_float(value: Any, dotted_key: str) -> float:
    """Return ``value`` as a finite float, raising ConfigError otherwise."""

    if isinstance(value, bool):
        raise ConfigError(f"{dotted_key} must be a number")
    try:
        numeric = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{dotted_key} must be a number") from exc
    if not math.isfinite(numeric):
        raise ConfigError(f"{dotted_key} must be a finite number")
    return numeric


def _validate_tools(tools: ToolsConfig) -> None:
    for field in fields(tools):
        value = str(getattr(tools, field.name)).strip()
        if not value:
            raise ConfigError(f"tools.{field.name} must not be empty")
        setattr(tools, field.name, value)


def _validate_engine(engine: EngineConfig) -> None:
    timeout = _normalize_float(engine.timeout_seconds, "engine.timeout_seconds")
    if timeout < 0:
        raise ConfigError(_TIMEOUT_NEGATIVE_MSG)
    engine.timeout_seconds = timeout

    color = engine.background_color.strip()
    if not is_valid_color(color):
        raise ConfigError("engine.background_color must be a colour name, #RRGGBB or #RRGGBBAA")
    engine.background_color = color

    if engine.temp_dir:
        temp_dir = Path(engine.temp_dir).expanduser()
        if not temp_dir.is_dir():
            raise ConfigError(f"engine.temp_dir does not exist: {temp_dir}")
        engine.temp_dir = str(temp_dir)


def _load_recipes(raw: Any) -> Dict[str, RecipeConfig]:
    if not isinstance(raw, dict):
        raise ConfigError("[recipes] must be a table of named recipes")
    recipes: Dict[str, RecipeConfig] = {}
    for name, section in raw.items():
        recipe = _sanitize_section(section, f"recipes.{name}", RecipeConfig)
        if not isinstance(recipe.steps, list) or not all(isinstance(step, str) for step in recipe.steps):
            raise ConfigError(f"recipes.{name}.steps must be a list of strings")
        if not recipe.steps:
            raise ConfigError(f"recipes.{name}.steps must not be empty")
        recipes[str(name)] = recipe
    return recipes


def load_config(path: str | os.PathLike[str]) -> AppConfig:
    """
    Load and validate an application configuration from a TOML file.

    Reads the file at `path`, parses it as UTF-8 TOML (BOM is accepted), coerces and
    validates the ``[tools]``, ``[engine]`` and ``[recipes]`` sections, and returns a
    populated AppConfig.

    Raises:
        ConfigError: If the file is not UTF-8, TOML parsing fails, or any validation rule is violated.
    """

    with open(path, "rb") as handle:
        raw_bytes = handle.read()
    if raw_bytes.startswith(b"\xef\xbb\xbf"):
        raw_bytes = raw_bytes[3:]
    try:
        raw = tomllib.loads(raw_bytes.decode("utf-8"))
    except UnicodeDecodeError as exc:
        raise ConfigError("Configuration file must be UTF-8 encoded") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Failed to parse TOML: {exc}") from exc

    unknown = sorted(set(raw) - {"tools", "engine", "recipes"})
    if unknown:
        raise ConfigError(f"Unknown configuration sections: {', '.join(unknown)}")

    app = AppConfig(
        tools=_sanitize_section(raw.get("tools", {}), "tools", ToolsConfig),
        engine=_sanitize_section(raw.get("engine", {}), "engine", EngineConfig),
        recipes=_load_recipes(raw.get("recipes", {})),
    )
    _validate_tools(app.tools)
    _validate_engine(app.engine)
    logger.debug("Loaded configuration from %s (%d recipes)", path, len(app.recipes))
    return app


def resolve_config(path: str | None) -> AppConfig:
    """Load ``path`` (or ``$FFIMAGE_CONFIG``) when given, else return defaults."""

    candidate = path or os.environ.get(CONFIG_ENV_VAR) or ""
    if not candidate:
        return AppConfig()
    if not Path(candidate).is_file():
        raise ConfigError(f"Configuration file not found: {candidate}")
    return load_config(candidate)
