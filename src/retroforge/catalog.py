"""Known models and their prompt styles."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from retroforge.models import WALKING_ANIMATION_STYLE


class ModelStyle(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    display_name: str


class ModelInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    display_name: str
    styles: tuple[ModelStyle, ...] = ()

    def style_names(self) -> list[str]:
        return [style.name for style in self.styles]


_RD_FLUX_STYLES: tuple[tuple[str, str], ...] = (
    ("default", "Default"),
    ("retro", "Retro"),
    ("simple", "Simple"),
    ("detailed", "Detailed"),
    ("anime", "Anime"),
    ("game_asset", "Game Asset"),
    ("portrait", "Portrait"),
    ("texture", "Texture"),
    ("ui", "UI"),
    ("item_sheet", "Item Sheet"),
    ("mc_texture", "MC Texture"),
    ("mc_item", "MC Item"),
    ("character_turnaround", "Character Turnaround"),
    ("1_bit", "1-Bit"),
    (WALKING_ANIMATION_STYLE, "Animation (4-angle walking)"),
    ("no_style", "No Style"),
)

MODELS: tuple[ModelInfo, ...] = (
    ModelInfo(
        name="RD_FLUX",
        display_name="RD FLUX",
        styles=tuple(ModelStyle(name=n, display_name=d) for n, d in _RD_FLUX_STYLES),
    ),
)


def get_models() -> tuple[ModelInfo, ...]:
    """Return every known model."""
    return MODELS


def find_model(name: str) -> ModelInfo | None:
    """Look up a model by identifier or display name."""
    for model in MODELS:
        if name in (model.name, model.display_name):
            return model
    return None


def find_style(model_name: str, style_name: str) -> ModelStyle | None:
    """Look up a style of *model_name* by identifier or display name."""
    model = find_model(model_name)
    if model is None:
        return None
    for style in model.styles:
        if style_name in (style.name, style.display_name):
            return style
    return None
