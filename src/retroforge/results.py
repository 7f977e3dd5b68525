"""Post-processing of generation results.

Writes returned images into a per-call batch directory, decides which
assets are spritesheets, derives the grid used to slice them and builds
the looping animation descriptor handed to the asset importer.

Spritesheet detection and the grid layout are heuristics: a sheet is
recognized by name only, and cells are assumed square with a fixed
column count.  Both are exposed as parameters with the service's
defaults.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path

from PIL import Image, ImageSequence

from retroforge.codec import decide_output_extension, decode_image
from retroforge.errors import AssetWriteError
from retroforge.logging import get_logger
from retroforge.models import (
    AnimationDescriptor,
    AnimationKeyframe,
    FrameGrid,
    FrameRect,
    GenerationResult,
    GenerationSettings,
    ImportSpec,
    SpriteImportMode,
    TextureImportSettings,
    TextureType,
    pivot_coordinates,
)

logger = get_logger("results")

DEFAULT_COLUMNS = 4
SPRITESHEET_MARKERS: tuple[str, ...] = ("spritesheet", "animation")
PROMPT_SUMMARY_LENGTH = 20
BATCH_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


def batch_directory_name(prompt: str, now: datetime | None = None) -> str:
    """Return ``<UTC timestamp>_<first 20 prompt chars>`` with spaces as ``_``.

    Two batches started in the same second with the same prompt prefix
    share a directory.
    """
    stamp = (now or datetime.now(timezone.utc)).strftime(BATCH_TIMESTAMP_FORMAT)
    summary = prompt[:PROMPT_SUMMARY_LENGTH].replace(" ", "_")
    return f"{stamp}_{summary}"


def persist_result(
    result: GenerationResult,
    settings: GenerationSettings,
    base_path: str | Path,
    now: datetime | None = None,
) -> list[Path]:
    """Decode and write every image of *result* to a new batch directory.

    Args:
        result: The service response.
        settings: Settings the result was generated with (prompt and
            animation flags decide the directory name and extension).
        base_path: Root save directory, created if absent.
        now: Timestamp for the batch name (defaults to current UTC time).

    Returns:
        Written file paths, in response order.

    Raises:
        AssetWriteError: If a directory or file cannot be written.
        ResponseFormatError: If an image is not valid base64.  Every image
            is decoded before anything is written.
    """
    images = [decode_image(encoded) for encoded in result.base64_images]

    root = Path(base_path)
    batch_dir = root / batch_directory_name(settings.prompt, now)
    try:
        batch_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.error("Could not create batch directory %s: %s", batch_dir, exc)
        raise AssetWriteError(
            f"Could not create output directory {batch_dir}: {exc}",
            path=str(batch_dir),
        ) from exc

    extension = decide_output_extension(
        is_animation_frame=settings.is_animation and settings.is_walking_animation,
        is_spritesheet=settings.return_spritesheet,
    )

    written: list[Path] = []
    for index, data in enumerate(images):
        target = batch_dir / f"image_{index}.{extension}"
        try:
            target.write_bytes(data)
        except OSError as exc:
            logger.error("Could not write %s: %s", target, exc)
            raise AssetWriteError(
                f"Could not save image {target}: {exc}", path=str(target)
            ) from exc
        logger.info("Saved image to %s", target)
        written.append(target)
    return written


# ---------------------------------------------------------------------------
# Classification and geometry
# ---------------------------------------------------------------------------


def is_likely_spritesheet(
    path: str | Path,
    markers: Sequence[str] = SPRITESHEET_MARKERS,
    case_sensitive: bool = True,
) -> bool:
    """Guess from its name whether *path* holds a multi-frame sheet.

    True if the file stem or the name of its containing directory
    contains any of *markers*.
    """
    p = Path(path)
    haystacks = [p.stem, p.parent.name]
    needles = list(markers)
    if not case_sensitive:
        haystacks = [h.lower() for h in haystacks]
        needles = [n.lower() for n in needles]
    return any(needle in hay for hay in haystacks for needle in needles)


def compute_frame_grid(
    width: int, height: int, columns: int = DEFAULT_COLUMNS
) -> FrameGrid:
    """Derive square-cell slicing geometry for a sheet.

    ``cell_width = width // columns`` and cells are square.  Remainder
    pixels on the right and top are dropped.  Rectangles use a
    bottom-left origin: frame ``i`` sits in visual row ``i // columns``
    counted from the top, so its ``y`` is ``height - (row + 1) * cell``.

    Raises:
        ValueError: If *columns* is not positive or the image is narrower
            than one pixel per column.
    """
    if columns <= 0:
        raise ValueError(f"columns must be positive, got {columns}")
    cell_width = width // columns
    if cell_width <= 0:
        raise ValueError(
            f"Image width {width}px is too small for {columns} columns"
        )
    cell_height = cell_width
    rows = height // cell_height

    rects = []
    for i in range(rows * columns):
        row, col = divmod(i, columns)
        rects.append(
            FrameRect(
                name=f"frame_{i}",
                x=col * cell_width,
                y=height - (row + 1) * cell_height,
                width=cell_width,
                height=cell_height,
            )
        )

    if width % columns:
        logger.debug(
            "Width %d not divisible by %d columns; %d px dropped",
            width,
            columns,
            width % columns,
        )
    return FrameGrid(
        source_width=width,
        source_height=height,
        columns=columns,
        cell_width=cell_width,
        cell_height=cell_height,
        rows=rows,
        rects=tuple(rects),
    )


def build_animation(
    frames: Sequence[str], frame_rate: float, name: str = "Animation"
) -> AnimationDescriptor | None:
    """Lay *frames* out on a looping timeline at *frame_rate* fps.

    Returns:
        The descriptor, or ``None`` when fewer than two frames exist.

    Raises:
        ValueError: If *frame_rate* is not positive.
    """
    if frame_rate <= 0:
        raise ValueError(f"frame_rate must be positive, got {frame_rate}")
    if len(frames) < 2:
        return None
    step = 1.0 / frame_rate
    keyframes = tuple(
        AnimationKeyframe(time=i * step, frame=frame) for i, frame in enumerate(frames)
    )
    return AnimationDescriptor(
        name=name, frame_rate=frame_rate, loop=True, keyframes=keyframes
    )


def build_import_spec(
    path: str | Path,
    settings: TextureImportSettings,
    columns: int = DEFAULT_COLUMNS,
    markers: Sequence[str] = SPRITESHEET_MARKERS,
    case_sensitive: bool = True,
) -> ImportSpec:
    """Derive import instructions for one written asset.

    An animation is built when the settings ask for one and the asset is
    a GIF, or a PNG whose name marks it as a spritesheet.  Sheets also
    get a :class:`FrameGrid` computed from the image size.
    """
    asset = Path(path)
    suffix = asset.suffix.lower()
    is_gif = suffix == ".gif"
    is_sheet = suffix == ".png" and is_likely_spritesheet(
        asset, markers=markers, case_sensitive=case_sensitive
    )
    animated = settings.create_animator_controller and (is_gif or is_sheet)

    grid: FrameGrid | None = None
    if animated and is_sheet:
        with Image.open(asset) as img:
            grid = compute_frame_grid(img.width, img.height, columns=columns)

    is_sprite = settings.texture_type is TextureType.SPRITE
    return ImportSpec(
        asset_path=asset,
        texture_type=settings.texture_type,
        wrap_mode=settings.wrap_mode,
        filter_mode=settings.filter_mode,
        multiple=animated or settings.sprite_import_mode is SpriteImportMode.MULTIPLE,
        pixels_per_unit=settings.pixels_per_unit,
        pivot=pivot_coordinates(settings.sprite_pivot) if is_sprite else (0.5, 0.5),
        frame_rate=settings.frame_rate if animated else None,
        build_animation=animated,
        frame_grid=grid,
    )


def load_frames(spec: ImportSpec) -> list[Image.Image]:
    """Return the individual frames of an asset as RGBA images.

    GIFs yield each stored frame, sheets are cropped along
    ``spec.frame_grid`` (converted from bottom-left to Pillow's top-left
    origin) and anything else yields the single image.
    """
    with Image.open(spec.asset_path) as img:
        if spec.asset_path.suffix.lower() == ".gif":
            return [frame.convert("RGBA") for frame in ImageSequence.Iterator(img)]
        rgba = img.convert("RGBA")

    grid = spec.frame_grid
    if grid is None:
        return [rgba]

    frames = []
    for rect in grid.rects:
        top = grid.source_height - rect.y - rect.height
        frames.append(rgba.crop((rect.x, top, rect.x + rect.width, top + rect.height)))
    return frames
