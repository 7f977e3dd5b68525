"""Base64 image conversion and output container selection."""

from __future__ import annotations

import base64
import binascii
import io
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from retroforge.errors import ImageReadError, ResponseFormatError
from retroforge.logging import get_logger

logger = get_logger("codec")


def image_to_base64(path: str | Path) -> str:
    """Load an image file and return it as a base64-encoded opaque PNG.

    The service rejects reference images with an alpha channel, so the
    image is flattened to 3-channel RGB and re-encoded as PNG before
    encoding.

    Args:
        path: Path to any raster format Pillow can read.

    Returns:
        Base64 (ASCII) string of the re-encoded PNG.

    Raises:
        ImageReadError: If the file is missing or cannot be decoded.
    """
    source = Path(path)
    if not source.is_file():
        raise ImageReadError(f"Image file not found: {source}", path=str(source))

    try:
        with Image.open(source) as img:
            rgb = img.convert("RGB")
    except (UnidentifiedImageError, OSError) as exc:
        raise ImageReadError(
            f"Could not read image {source}: {exc}", path=str(source)
        ) from exc

    buf = io.BytesIO()
    rgb.save(buf, format="PNG")
    encoded = base64.b64encode(buf.getvalue()).decode("ascii")
    logger.debug("Encoded %s (%dx%d) to %d base64 chars", source, *rgb.size, len(encoded))
    return encoded


def decode_image(data: str) -> bytes:
    """Decode one base64 image from a service response.

    Raises:
        ResponseFormatError: If *data* is not valid base64.
    """
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ResponseFormatError(
            f"Failed to decode base64 image: {exc}", body=data[:200]
        ) from exc


def decide_output_extension(is_animation_frame: bool, is_spritesheet: bool) -> str:
    """Pick the file extension for a returned image.

    Multi-frame animations arrive as GIFs unless they were requested as
    a combined spritesheet, in which case (like every other result) they
    are PNGs.

    Args:
        is_animation_frame: The result is a multi-frame animation.
        is_spritesheet: The animation was requested as one spritesheet.

    Returns:
        ``"gif"`` or ``"png"``.
    """
    if is_animation_frame and not is_spritesheet:
        return "gif"
    return "png"
