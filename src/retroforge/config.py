"""YAML loading and writing of generation settings files.

A settings file is a flat mapping of :class:`GenerationSettings` fields,
with an optional nested ``texture_import`` mapping::

    prompt: "a pixel cat"
    prompt_style: retro
    width: 128
    height: 128
    num_images: 2
    texture_import:
      pixels_per_unit: 32
      create_animator_controller: true
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from retroforge.catalog import find_model, find_style
from retroforge.errors import ConfigError
from retroforge.logging import get_logger
from retroforge.models import GenerationMode, GenerationSettings

logger = get_logger("config")


def _parse_yaml(path: Path) -> dict[str, Any]:
    """Read and parse a YAML file into a mapping.

    Raises:
        ConfigError: If the YAML is malformed or not a mapping.
    """
    with open(path, "r", encoding="utf-8") as fh:
        try:
            data = yaml.safe_load(fh)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Malformed YAML in {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"Expected a YAML mapping at top level, got {type(data).__name__}"
        )
    return data


def load_settings(path: str | Path) -> GenerationSettings:
    """Load and validate a settings file.

    Relative ``input_image_path`` / ``input_palette_path`` values are
    resolved against the settings file's directory.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigError: If the YAML is malformed or fails validation.
    """
    resolved = Path(path)
    if not resolved.is_file():
        raise FileNotFoundError(f"Settings file not found: {resolved}")

    data = _parse_yaml(resolved)
    for key in ("input_image_path", "input_palette_path"):
        value = data.get(key)
        if value and not Path(value).is_absolute():
            data[key] = str((resolved.parent / value).resolve())

    try:
        settings = GenerationSettings(**data)
    except (ValidationError, TypeError) as exc:
        raise ConfigError(f"Invalid settings in {resolved}: {exc}") from exc

    logger.info(
        "Loaded settings: %s/%s %dx%d x%d",
        settings.model,
        settings.prompt_style,
        settings.width,
        settings.height,
        settings.num_images,
    )
    return settings


def write_settings(settings: GenerationSettings, path: str | Path) -> Path:
    """Dump *settings* as YAML, creating parent directories."""
    dest = Path(path)
    dest.parent.mkdir(parents=True, exist_ok=True)
    data = settings.model_dump(mode="json", exclude_none=True)
    dest.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    return dest


def validate_settings(settings: GenerationSettings) -> list[str]:
    """Check that *settings* can be submitted.

    Returns:
        Non-fatal warnings (unknown model or style).

    Raises:
        ConfigError: If the prompt is empty or a mode lacks its input file.
    """
    if not settings.prompt.strip():
        raise ConfigError("Please enter a prompt for the image")
    if (
        settings.generation_mode is GenerationMode.IMAGE_TO_IMAGE
        and not settings.input_image_path
    ):
        raise ConfigError("For Image-to-Image mode, you must select an input image")
    if (
        settings.generation_mode is GenerationMode.WITH_PALETTE
        and not settings.input_palette_path
    ):
        raise ConfigError("For Palette mode, you must select a palette image")

    warnings: list[str] = []
    if find_model(settings.model) is None:
        warnings.append(f"Unknown model {settings.model!r}")
    elif find_style(settings.model, settings.prompt_style) is None:
        warnings.append(
            f"Unknown style {settings.prompt_style!r} for model {settings.model!r}"
        )
    return warnings
