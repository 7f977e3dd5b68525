"""Pydantic data models for generation settings, API results, and import geometry."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, model_validator

#: Style that produces a four-direction walking cycle.  The service only
#: supports 48x48 output for it.
WALKING_ANIMATION_STYLE = "animation_four_angle_walking"
WALKING_ANIMATION_SIZE = 48

DEFAULT_MODEL = "RD_FLUX"
DEFAULT_STYLE = "default"


class GenerationMode(str, Enum):
    """How the generation is seeded."""

    TEXT_TO_IMAGE = "text_to_image"
    IMAGE_TO_IMAGE = "image_to_image"
    WITH_PALETTE = "with_palette"


class TextureType(str, Enum):
    SPRITE = "sprite"
    DEFAULT = "default"


class WrapMode(str, Enum):
    CLAMP = "clamp"
    REPEAT = "repeat"
    MIRROR = "mirror"


class FilterMode(str, Enum):
    POINT = "point"
    BILINEAR = "bilinear"
    TRILINEAR = "trilinear"


class SpriteImportMode(str, Enum):
    SINGLE = "single"
    MULTIPLE = "multiple"


class SpritePivot(str, Enum):
    """Named sprite pivot positions."""

    CENTER = "center"
    TOP_LEFT = "top_left"
    TOP_CENTER = "top_center"
    TOP_RIGHT = "top_right"
    MIDDLE_LEFT = "middle_left"
    MIDDLE_RIGHT = "middle_right"
    BOTTOM_LEFT = "bottom_left"
    BOTTOM_CENTER = "bottom_center"
    BOTTOM_RIGHT = "bottom_right"
    CUSTOM = "custom"


_PIVOT_COORDINATES: dict[SpritePivot, tuple[float, float]] = {
    SpritePivot.CENTER: (0.5, 0.5),
    SpritePivot.TOP_LEFT: (0.0, 1.0),
    SpritePivot.TOP_CENTER: (0.5, 1.0),
    SpritePivot.TOP_RIGHT: (1.0, 1.0),
    SpritePivot.MIDDLE_LEFT: (0.0, 0.5),
    SpritePivot.MIDDLE_RIGHT: (1.0, 0.5),
    SpritePivot.BOTTOM_LEFT: (0.0, 0.0),
    SpritePivot.BOTTOM_CENTER: (0.5, 0.0),
    SpritePivot.BOTTOM_RIGHT: (1.0, 0.0),
}


def pivot_coordinates(pivot: SpritePivot) -> tuple[float, float]:
    """Return the normalized ``(x, y)`` pivot; ``CUSTOM`` falls back to center."""
    return _PIVOT_COORDINATES.get(pivot, (0.5, 0.5))


class TextureImportSettings(BaseModel):
    """How generated images should be imported by the host asset pipeline.

    Attributes:
        texture_type: Sprite or plain texture.
        is_readable: Keep pixel data CPU-readable after import.
        wrap_mode: Texture wrap mode.
        filter_mode: Sampling filter (point for pixel art).
        generate_mipmaps: Whether to build mipmaps.
        alpha_is_transparency: Treat alpha as transparency.
        sprite_import_mode: Single sprite or multiple sub-sprites.
        pixels_per_unit: Sprite pixels per world unit.
        sprite_pivot: Named pivot for every sprite.
        create_animator_controller: Build an animation clip + controller
            for multi-frame assets.
        frame_rate: Frames per second for built animation clips.
    """

    texture_type: TextureType = TextureType.SPRITE
    is_readable: bool = True
    wrap_mode: WrapMode = WrapMode.CLAMP
    filter_mode: FilterMode = FilterMode.POINT
    generate_mipmaps: bool = False
    alpha_is_transparency: bool = True
    sprite_import_mode: SpriteImportMode = SpriteImportMode.SINGLE
    pixels_per_unit: int = Field(default=16, gt=0)
    sprite_pivot: SpritePivot = SpritePivot.CENTER
    create_animator_controller: bool = False
    frame_rate: float = Field(default=8.0, gt=0)


class AnimationSettings(BaseModel):
    """Persisted animation toggles shown alongside the walking style."""

    is_animation: bool = False
    return_spritesheet: bool = True


class GenerationSettings(BaseModel):
    """User intent for one generation call.

    Attributes:
        model: Service model identifier.
        prompt_style: Style identifier (see :mod:`retroforge.catalog`).
        width: Output width in pixels.
        height: Output height in pixels.
        prompt: Text prompt.
        num_images: Number of images to generate (1-4).
        generation_mode: Text-to-image, image-to-image or palette-guided.
        strength: Image-to-image strength (0-1).
        seed: Optional fixed seed.
        remove_background: Ask the service to strip the background.
        tile_x: Make the output tile horizontally.
        tile_y: Make the output tile vertically.
        is_animation: Whether the style yields a multi-frame animation.
        return_spritesheet: Return animations as one combined sheet
            instead of a GIF.
        input_image_path: Reference image for image-to-image.
        input_palette_path: Palette image for palette-guided mode.
        upscale_output_factor: Optional output upscale factor.
        texture_import: Import settings applied to the written assets.
    """

    model_config = ConfigDict(validate_assignment=True)

    model: str = DEFAULT_MODEL
    prompt_style: str = DEFAULT_STYLE
    width: int = Field(default=256, gt=0)
    height: int = Field(default=256, gt=0)
    prompt: str = ""
    num_images: int = Field(default=1, ge=1, le=4)
    generation_mode: GenerationMode = GenerationMode.TEXT_TO_IMAGE
    strength: float = Field(default=0.8, ge=0.0, le=1.0)
    seed: int | None = None
    remove_background: bool = False
    tile_x: bool = False
    tile_y: bool = False
    is_animation: bool = False
    return_spritesheet: bool = False
    input_image_path: str = ""
    input_palette_path: str = ""
    upscale_output_factor: float | None = Field(default=None, gt=0)
    texture_import: TextureImportSettings = TextureImportSettings()

    @model_validator(mode="after")
    def _freeze_walking_animation_size(self) -> "GenerationSettings":
        # Written through __dict__ so assignment validation does not re-enter.
        if self.prompt_style == WALKING_ANIMATION_STYLE:
            self.__dict__.update(
                width=WALKING_ANIMATION_SIZE,
                height=WALKING_ANIMATION_SIZE,
                is_animation=True,
            )
        return self

    @property
    def is_walking_animation(self) -> bool:
        """True when the walking-animation style is selected."""
        return self.prompt_style == WALKING_ANIMATION_STYLE

    @property
    def wants_spritesheet(self) -> bool:
        """True when an animation was requested as a combined spritesheet."""
        return self.is_animation and self.is_walking_animation and self.return_spritesheet

    @property
    def yields_gif(self) -> bool:
        """True when the service returns each animation as a GIF."""
        return self.is_animation and self.is_walking_animation and not self.return_spritesheet


class GenerationResult(BaseModel):
    """Response body of a successful ``POST /inferences``."""

    model_config = ConfigDict(frozen=True)

    created_at: int = 0
    credit_cost: int
    base64_images: list[str]
    model: str = ""
    type: str = ""
    remaining_credits: int


class CreditInfo(BaseModel):
    """Response body of ``GET /inferences/credits``."""

    model_config = ConfigDict(frozen=True)

    credits: int


class FrameRect(BaseModel):
    """One cell of a sliced spritesheet.

    ``y`` is measured from the *bottom* edge of the source image.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    x: int
    y: int
    width: int
    height: int


class FrameGrid(BaseModel):
    """Grid geometry used to slice a spritesheet into square frames."""

    model_config = ConfigDict(frozen=True)

    source_width: int
    source_height: int
    columns: int
    cell_width: int
    cell_height: int
    rows: int
    rects: tuple[FrameRect, ...] = ()

    @property
    def total_cells(self) -> int:
        """Number of cells in the grid (``rows * columns``)."""
        return self.rows * self.columns


class AnimationKeyframe(BaseModel):
    """A frame reference placed at *time* seconds into a clip."""

    model_config = ConfigDict(frozen=True)

    time: float
    frame: str


class AnimationDescriptor(BaseModel):
    """Time-ordered, looping animation clip built from frames."""

    model_config = ConfigDict(frozen=True)

    name: str
    frame_rate: float
    loop: bool = True
    keyframes: tuple[AnimationKeyframe, ...]

    @property
    def duration(self) -> float:
        """Clip length in seconds (one frame interval past the last keyframe)."""
        return len(self.keyframes) / self.frame_rate


class ImportSpec(BaseModel):
    """Per-asset import instructions derived from :class:`TextureImportSettings`.

    Attributes:
        asset_path: The written image file.
        texture_type: Sprite or plain texture.
        wrap_mode: Texture wrap mode.
        filter_mode: Sampling filter.
        multiple: Whether the asset holds several sub-images.
        pixels_per_unit: Sprite pixels per world unit.
        pivot: Normalized ``(x, y)`` sprite pivot.
        frame_rate: Clip frame rate when *build_animation* is set.
        build_animation: Whether a looping clip should be created.
        frame_grid: Slicing geometry for spritesheets.
    """

    model_config = ConfigDict(frozen=True)

    asset_path: Path
    texture_type: TextureType = TextureType.SPRITE
    wrap_mode: WrapMode = WrapMode.CLAMP
    filter_mode: FilterMode = FilterMode.POINT
    multiple: bool = False
    pixels_per_unit: int = 16
    pivot: tuple[float, float] = (0.5, 0.5)
    frame_rate: float | None = None
    build_animation: bool = False
    frame_grid: FrameGrid | None = None
