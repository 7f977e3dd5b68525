"""Request payload construction for ``POST /inferences``.

The service distinguishes an absent field from an explicit ``false`` or
``null`` for some parameters, so the payload is built as a plain mapping
where optional keys are only *added* when active.  Nothing is ever
serialized as ``null``.
"""

from __future__ import annotations

import json
from typing import Any

from retroforge.codec import image_to_base64
from retroforge.errors import ImageReadError
from retroforge.logging import get_logger
from retroforge.models import DEFAULT_STYLE, GenerationMode, GenerationSettings

logger = get_logger("payload")

RequestPayload = dict[str, Any]

REQUIRED_FIELDS: tuple[str, ...] = ("model", "width", "height", "prompt", "num_images")
OPTIONAL_FIELDS: tuple[str, ...] = (
    "prompt_style",
    "strength",
    "remove_bg",
    "tile_x",
    "tile_y",
    "seed",
    "return_spritesheet",
    "input_image",
    "input_palette",
    "upscale_output_factor",
)


def _embed_image(path: str, label: str) -> str | None:
    """Base64-encode *path*, returning None (and warning) on failure."""
    try:
        encoded = image_to_base64(path)
    except ImageReadError as exc:
        logger.warning(
            "Could not embed %s, sending request without it: %s", label, exc
        )
        return None
    return encoded or None


def build_payload(settings: GenerationSettings) -> RequestPayload:
    """Project *settings* onto the minimal wire payload.

    Required fields are always present.  Optional fields are included
    only when they differ from their inactive value:

    - ``prompt_style`` when not ``"default"``
    - ``remove_bg`` / ``tile_x`` / ``tile_y`` only when true
    - ``seed`` and ``upscale_output_factor`` when set
    - ``return_spritesheet`` only for a walking animation requested as
      a sheet
    - ``input_image`` + ``strength`` together, image-to-image only
    - ``input_palette``, palette mode only

    Reference images that cannot be read are dropped with a warning.

    Args:
        settings: The user's generation settings.

    Returns:
        A dict ready to be serialized as the request body.
    """
    payload: RequestPayload = {
        "model": settings.model,
        "width": settings.width,
        "height": settings.height,
        "prompt": settings.prompt,
        "num_images": settings.num_images,
    }

    if settings.prompt_style and settings.prompt_style != DEFAULT_STYLE:
        payload["prompt_style"] = settings.prompt_style

    if settings.remove_background:
        payload["remove_bg"] = True
    if settings.tile_x:
        payload["tile_x"] = True
    if settings.tile_y:
        payload["tile_y"] = True

    if settings.seed is not None:
        payload["seed"] = settings.seed

    if settings.wants_spritesheet:
        payload["return_spritesheet"] = True

    if (
        settings.generation_mode is GenerationMode.IMAGE_TO_IMAGE
        and settings.input_image_path
    ):
        encoded = _embed_image(settings.input_image_path, "input image")
        if encoded is not None:
            payload["input_image"] = encoded
            payload["strength"] = settings.strength

    if (
        settings.generation_mode is GenerationMode.WITH_PALETTE
        and settings.input_palette_path
    ):
        encoded = _embed_image(settings.input_palette_path, "input palette")
        if encoded is not None:
            payload["input_palette"] = encoded

    if settings.upscale_output_factor is not None:
        payload["upscale_output_factor"] = settings.upscale_output_factor

    return payload


def payload_to_json(payload: RequestPayload) -> str:
    """Serialize a payload to the JSON request body."""
    return json.dumps(payload, ensure_ascii=False)


def describe_payload(payload: RequestPayload) -> dict[str, Any]:
    """Return a log-safe copy of *payload* with embedded images summarized."""
    summary: dict[str, Any] = {}
    for key, value in payload.items():
        if key in ("input_image", "input_palette"):
            summary[key] = f"<{len(value)} base64 chars>"
        else:
            summary[key] = value
    return summary
