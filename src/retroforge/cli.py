"""Command-line interface for RetroForge.

Provides commands for checking credits, generating images, listing the
model catalog and managing stored preferences.
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Any

import click
from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from retroforge.catalog import get_models
from retroforge.client import RetroDiffusionClient
from retroforge.config import load_settings
from retroforge.errors import ConfigError, RetroForgeError
from retroforge.importer import FileSystemImporter
from retroforge.jobs import JobState
from retroforge.logging import mask_api_key, setup_logging
from retroforge.models import AnimationSettings, GenerationMode, GenerationSettings
from retroforge.preferences import JsonFilePreferenceStore, SettingsStorage
from retroforge.workflow import GenerationOutcome, GenerationWorkflow

console = Console()

API_KEY_ENV_VAR = "RETRODIFFUSION_API_KEY"
POLL_INTERVAL = 0.1


def _setup_logging(verbose: bool) -> None:
    """Configure logging based on verbose flag."""
    setup_logging(level=logging.DEBUG if verbose else logging.INFO, verbose=verbose)


def _storage(ctx: click.Context) -> SettingsStorage:
    return ctx.obj["storage"]


def _resolve_api_key(storage: SettingsStorage) -> str:
    return os.environ.get(API_KEY_ENV_VAR, "").strip() or storage.get_api_key()


def _fail(message: str, verbose: bool = False) -> None:
    console.print(f"[bold red]✗[/] {message}")
    if verbose:
        console.print_exception()
    sys.exit(1)


@click.group()
@click.version_option(package_name="retroforge")
@click.option(
    "--prefs",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Preference file (default: $RETROFORGE_PREFS or ~/.config/retroforge/preferences.json)",
)
@click.pass_context
def main(ctx: click.Context, prefs: Path | None) -> None:
    """RetroForge: pixel-art image and animation generation via Retro Diffusion."""
    load_dotenv(override=False)
    ctx.ensure_object(dict)
    ctx.obj["storage"] = SettingsStorage(JsonFilePreferenceStore(prefs))


# ---------------------------------------------------------------------------
# credits
# ---------------------------------------------------------------------------


@main.command()
@click.option("--verbose", "-v", is_flag=True, help="Enable detailed logging")
@click.pass_context
def credits(ctx: click.Context, verbose: bool) -> None:
    """Check the remaining credit balance."""
    _setup_logging(verbose)
    api_key = _resolve_api_key(_storage(ctx))

    async def _check() -> int:
        async with RetroDiffusionClient(api_key) as client:
            workflow = GenerationWorkflow(client, save_path=".")
            return await workflow.check_credits()

    try:
        with console.status("[bold blue]Checking credits..."):
            remaining = asyncio.run(_check())
    except RetroForgeError as e:
        _fail(f"Failed to check credits: {e}", verbose)
        return
    console.print(f"[bold green]✓[/] Remaining Credits: [bold]{remaining}[/]")


# ---------------------------------------------------------------------------
# generate
# ---------------------------------------------------------------------------


def _collect_overrides(options: dict[str, Any]) -> dict[str, Any]:
    """Map CLI option names onto settings fields, skipping unset ones."""
    mapping = {
        "prompt": "prompt",
        "style": "prompt_style",
        "model": "model",
        "width": "width",
        "height": "height",
        "num_images": "num_images",
        "mode": "generation_mode",
        "input_image": "input_image_path",
        "input_palette": "input_palette_path",
        "strength": "strength",
        "seed": "seed",
        "remove_bg": "remove_background",
        "tile_x": "tile_x",
        "tile_y": "tile_y",
        "spritesheet": "return_spritesheet",
        "upscale": "upscale_output_factor",
    }
    overrides: dict[str, Any] = {}
    for option, field_name in mapping.items():
        value = options.get(option)
        if value is None:
            continue
        if isinstance(value, Path):
            value = str(value)
        overrides[field_name] = value
    return overrides


def build_settings(
    base: GenerationSettings, overrides: dict[str, Any]
) -> GenerationSettings:
    """Apply *overrides* on top of *base* and re-validate.

    Raises:
        ConfigError: If the merged settings fail validation.
    """
    data = base.model_dump()
    data.update(overrides)
    try:
        return GenerationSettings(**data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid settings: {exc}") from exc


def apply_animation_settings(
    settings: GenerationSettings, animation: AnimationSettings
) -> GenerationSettings:
    """Take the spritesheet choice from stored animation settings.

    Only the walking style returns animations, so other styles are
    returned unchanged.
    """
    if not settings.is_walking_animation:
        return settings
    return build_settings(
        settings, {"return_spritesheet": animation.return_spritesheet}
    )


async def _run_generation(
    workflow: GenerationWorkflow, settings: GenerationSettings
) -> GenerationOutcome:
    """Submit the generation as a tracked job and poll until it finishes."""
    try:
        job = workflow.submit_generate(settings)
        with console.status(
            "[bold blue]Generating images... This may take up to 60 seconds."
        ):
            while workflow.is_busy():
                await asyncio.sleep(POLL_INTERVAL)
        workflow.orchestrator.poll_events()
    finally:
        await workflow.close()

    if job.state is JobState.FAILED and job.error is not None:
        raise job.error
    return job.result


@main.command()
@click.argument(
    "settings_path",
    required=False,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option("--prompt", "-p", help="Text prompt")
@click.option("--style", "-s", help="Prompt style (see `retroforge models`)")
@click.option("--model", "-m", help="Model identifier")
@click.option("--width", type=int, help="Output width in pixels")
@click.option("--height", type=int, help="Output height in pixels")
@click.option("--num-images", "-n", type=click.IntRange(1, 4), help="Images to generate (1-4)")
@click.option(
    "--mode",
    type=click.Choice([m.value for m in GenerationMode]),
    help="Generation mode",
)
@click.option(
    "--input-image",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Reference image for image_to_image mode",
)
@click.option(
    "--input-palette",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Palette image for with_palette mode",
)
@click.option("--strength", type=click.FloatRange(0.0, 1.0), help="Image-to-image strength")
@click.option("--seed", type=int, help="Fixed seed")
@click.option("--remove-bg/--keep-bg", default=None, help="Remove the background")
@click.option("--tile-x/--no-tile-x", default=None, help="Tile horizontally")
@click.option("--tile-y/--no-tile-y", default=None, help="Tile vertically")
@click.option(
    "--spritesheet/--no-spritesheet",
    default=None,
    help=(
        "Return walking animations as one spritesheet instead of GIFs "
        "(default: stored animation preference)"
    ),
)
@click.option("--upscale", type=float, help="Output upscale factor")
@click.option(
    "--output",
    "-o",
    type=click.Path(file_okay=False, path_type=Path),
    help="Save directory (overrides stored save path)",
)
@click.option(
    "--import/--no-import",
    "run_import",
    default=True,
    help="Slice frames and build animation files after saving",
)
@click.option("--remember", is_flag=True, help="Store the resulting settings as defaults")
@click.option("--verbose", "-v", is_flag=True, help="Enable detailed logging")
@click.pass_context
def generate(
    ctx: click.Context,
    settings_path: Path | None,
    output: Path | None,
    run_import: bool,
    remember: bool,
    verbose: bool,
    **options: Any,
) -> None:
    """Generate images from stored settings, a YAML file and/or options.

    SETTINGS_PATH: Optional YAML settings file

    Example:

        \b
        retroforge generate --prompt "a pixel cat" --width 128 --height 128
        retroforge generate cat.yaml --num-images 4 --seed 42
        retroforge generate --prompt "knight" --style animation_four_angle_walking
    """
    _setup_logging(verbose)
    storage = _storage(ctx)

    try:
        base = load_settings(settings_path) if settings_path else storage.load_settings()
        settings = build_settings(base, _collect_overrides(options))
        if settings_path is None and options.get("spritesheet") is None:
            settings = apply_animation_settings(
                settings, storage.load_animation_settings()
            )
        if remember:
            storage.save_settings(settings)
            if settings.is_walking_animation:
                storage.save_animation_settings(
                    AnimationSettings(
                        is_animation=settings.is_animation,
                        return_spritesheet=settings.return_spritesheet,
                    )
                )

        api_key = _resolve_api_key(storage)
        save_path = output or Path(storage.get_save_path())

        console.print(
            f"[bold green]✓[/] {settings.model}/{settings.prompt_style} "
            f"{settings.width}x{settings.height} x{settings.num_images}"
        )
        console.print(f"  Prompt: {settings.prompt!r}")
        console.print(f"  Output: {save_path}")
        console.print(f"  API key: {mask_api_key(api_key)}")
        console.print()

        workflow = GenerationWorkflow(
            RetroDiffusionClient(api_key),
            save_path=save_path,
            importer=FileSystemImporter() if run_import else None,
        )
        outcome = asyncio.run(_run_generation(workflow, settings))

    except RetroForgeError as e:
        _fail(f"Failed to generate images: {e}", verbose)
        return
    except FileNotFoundError as e:
        _fail(str(e), verbose)
        return
    except KeyboardInterrupt:
        console.print("\n[bold yellow]⚠[/] Generation interrupted by user")
        sys.exit(130)

    for warning in outcome.warnings:
        console.print(f"[bold yellow]⚠[/] {warning}")
    result = outcome.result
    console.print(
        f"[bold green]✓[/] Generated {len(result.base64_images)} image(s). "
        f"Cost: {result.credit_cost} credits. "
        f"Remaining: {result.remaining_credits} credits."
    )
    for path in outcome.paths:
        console.print(f"  • {path}")
    for asset in outcome.imported:
        if asset.clip_path is not None:
            console.print(
                f"  ▶ {asset.clip_path} ({len(asset.frame_paths)} frames)"
            )


# ---------------------------------------------------------------------------
# models
# ---------------------------------------------------------------------------


@main.command()
def models() -> None:
    """List available models and their styles."""
    for model in get_models():
        table = Table(title=f"{model.display_name} ({model.name})")
        table.add_column("Style")
        table.add_column("Name")
        for style in model.styles:
            table.add_row(style.name, style.display_name)
        console.print(table)


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------


@main.group()
def config() -> None:
    """Manage stored preferences."""


@config.command("set-key")
@click.argument("api_key")
@click.pass_context
def set_key(ctx: click.Context, api_key: str) -> None:
    """Store the Retro Diffusion API key."""
    _storage(ctx).set_api_key(api_key.strip())
    console.print(f"[bold green]✓[/] API key saved ({mask_api_key(api_key)})")


@config.command("set-path")
@click.argument("save_path", type=click.Path(file_okay=False, path_type=Path))
@click.pass_context
def set_path(ctx: click.Context, save_path: Path) -> None:
    """Store the directory generated images are saved to."""
    _storage(ctx).set_save_path(str(save_path))
    console.print(f"[bold green]✓[/] Save path set to {save_path}")


@config.command("show")
@click.pass_context
def show(ctx: click.Context) -> None:
    """Print stored preferences (the API key is masked)."""
    storage = _storage(ctx)
    settings = storage.load_settings()
    animation = storage.load_animation_settings()
    console.print(f"API key:   {mask_api_key(storage.get_api_key())}")
    console.print(f"Save path: {storage.get_save_path()}")
    console.print("Settings:")
    console.print_json(settings.model_dump_json())
    console.print("Animation:")
    console.print_json(animation.model_dump_json())


if __name__ == "__main__":
    main()
