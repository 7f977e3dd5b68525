"""Tests for retroforge.models: settings validation and derived flags."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from retroforge.models import (
    WALKING_ANIMATION_STYLE,
    AnimationDescriptor,
    AnimationKeyframe,
    FrameGrid,
    GenerationMode,
    GenerationResult,
    GenerationSettings,
    SpritePivot,
    TextureImportSettings,
    pivot_coordinates,
)


# ---------------------------------------------------------------------------
# GenerationSettings
# ---------------------------------------------------------------------------


class TestGenerationSettings:
    """Defaults, bounds and the walking-animation rule."""

    def test_defaults(self) -> None:
        s = GenerationSettings()
        assert s.model == "RD_FLUX"
        assert s.prompt_style == "default"
        assert (s.width, s.height) == (256, 256)
        assert s.num_images == 1
        assert s.generation_mode is GenerationMode.TEXT_TO_IMAGE
        assert s.strength == 0.8
        assert s.seed is None
        assert isinstance(s.texture_import, TextureImportSettings)

    @pytest.mark.parametrize("num_images", [0, 5])
    def test_num_images_bounds(self, num_images: int) -> None:
        with pytest.raises(ValidationError):
            GenerationSettings(num_images=num_images)

    @pytest.mark.parametrize("strength", [-0.1, 1.5])
    def test_strength_bounds(self, strength: float) -> None:
        with pytest.raises(ValidationError):
            GenerationSettings(strength=strength)

    def test_non_positive_size_rejected(self) -> None:
        with pytest.raises(ValidationError):
            GenerationSettings(width=0)

    def test_walking_style_forces_48(self) -> None:
        s = GenerationSettings(
            prompt_style=WALKING_ANIMATION_STYLE, width=256, height=128
        )
        assert (s.width, s.height) == (48, 48)
        assert s.is_animation is True
        assert s.is_walking_animation

    def test_walking_style_enforced_on_assignment(self) -> None:
        s = GenerationSettings(width=256, height=128)
        s.prompt_style = WALKING_ANIMATION_STYLE
        assert (s.width, s.height) == (48, 48)
        assert s.is_animation is True

        s.width = 256
        assert s.width == 48

    def test_assignment_is_validated(self) -> None:
        s = GenerationSettings()
        with pytest.raises(ValidationError):
            s.num_images = 9

    def test_other_styles_keep_size(self) -> None:
        s = GenerationSettings(prompt_style="retro", width=128, height=64)
        assert (s.width, s.height) == (128, 64)
        assert not s.is_walking_animation

    def test_mode_from_string(self) -> None:
        s = GenerationSettings(generation_mode="image_to_image")
        assert s.generation_mode is GenerationMode.IMAGE_TO_IMAGE


class TestAnimationFlags:
    def test_spritesheet_requested(self) -> None:
        s = GenerationSettings(
            prompt_style=WALKING_ANIMATION_STYLE, return_spritesheet=True
        )
        assert s.wants_spritesheet
        assert not s.yields_gif

    def test_gif_when_no_spritesheet(self) -> None:
        s = GenerationSettings(
            prompt_style=WALKING_ANIMATION_STYLE, return_spritesheet=False
        )
        assert s.yields_gif
        assert not s.wants_spritesheet

    def test_flags_ignored_for_other_styles(self) -> None:
        s = GenerationSettings(
            prompt_style="retro", is_animation=True, return_spritesheet=True
        )
        assert not s.wants_spritesheet
        assert not s.yields_gif


# ---------------------------------------------------------------------------
# Results and geometry
# ---------------------------------------------------------------------------


class TestGenerationResult:
    def test_parses_response(self) -> None:
        result = GenerationResult.model_validate(
            {
                "created_at": 1,
                "credit_cost": 2,
                "base64_images": ["aaaa"],
                "model": "RD_FLUX",
                "type": "txt2img",
                "remaining_credits": 8,
            }
        )
        assert result.credit_cost == 2
        assert result.remaining_credits == 8
        assert result.base64_images == ["aaaa"]

    def test_frozen(self) -> None:
        result = GenerationResult(
            credit_cost=1, base64_images=[], remaining_credits=3
        )
        with pytest.raises(ValidationError):
            result.credit_cost = 5  # type: ignore[misc]

    @pytest.mark.parametrize(
        "missing", ["base64_images", "remaining_credits", "credit_cost"]
    )
    def test_required_fields(self, missing: str) -> None:
        body = {"credit_cost": 1, "base64_images": ["aaaa"], "remaining_credits": 2}
        del body[missing]
        with pytest.raises(ValidationError):
            GenerationResult.model_validate(body)


class TestGeometryModels:
    def test_total_cells(self) -> None:
        grid = FrameGrid(
            source_width=64,
            source_height=32,
            columns=4,
            cell_width=16,
            cell_height=16,
            rows=2,
        )
        assert grid.total_cells == 8

    def test_animation_duration(self) -> None:
        anim = AnimationDescriptor(
            name="walk",
            frame_rate=4.0,
            keyframes=(
                AnimationKeyframe(time=0.0, frame="a"),
                AnimationKeyframe(time=0.25, frame="b"),
            ),
        )
        assert anim.duration == pytest.approx(0.5)
        assert anim.loop is True


class TestPivot:
    @pytest.mark.parametrize(
        "pivot, expected",
        [
            (SpritePivot.CENTER, (0.5, 0.5)),
            (SpritePivot.TOP_LEFT, (0.0, 1.0)),
            (SpritePivot.BOTTOM_CENTER, (0.5, 0.0)),
            (SpritePivot.MIDDLE_RIGHT, (1.0, 0.5)),
            (SpritePivot.CUSTOM, (0.5, 0.5)),
        ],
    )
    def test_coordinates(
        self, pivot: SpritePivot, expected: tuple[float, float]
    ) -> None:
        assert pivot_coordinates(pivot) == expected

    def test_import_settings_defaults(self) -> None:
        t = TextureImportSettings()
        assert t.pixels_per_unit == 16
        assert t.frame_rate == 8.0
        assert t.create_animator_controller is False
