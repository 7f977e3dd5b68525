"""Shared fixtures for retroforge tests."""

from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path

import pytest
from dotenv import load_dotenv

# Auto-load .env from project root (gitignored, never pushed).
# Provides RETRODIFFUSION_API_KEY for integration tests.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_PROJECT_ROOT / ".env", override=False)

from retroforge.models import GenerationSettings

from mock_transport import png_bytes

# ---------------------------------------------------------------------------
# Auto-skip integration tests when no live key is configured
# ---------------------------------------------------------------------------


def _integration_enabled() -> bool:
    """True when live API tests were explicitly requested and a key exists."""
    if os.environ.get("RETROFORGE_RUN_INTEGRATION", "").strip().lower() not in (
        "1",
        "true",
        "yes",
        "on",
    ):
        return False
    return bool(os.environ.get("RETRODIFFUSION_API_KEY", "").strip())


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    """Auto-skip integration tests unless explicitly enabled."""
    if _integration_enabled():
        return
    skip_marker = pytest.mark.skip(
        reason=(
            "Integration test skipped: set RETROFORGE_RUN_INTEGRATION=1 and "
            "RETRODIFFUSION_API_KEY to run against the live API."
        )
    )
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_marker)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_png(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a solid-color PNG below ``tmp_path``."""

    def _make(
        name: str = "ref.png",
        width: int = 16,
        height: int = 16,
        color: tuple[int, ...] = (255, 0, 0),
        mode: str = "RGB",
    ) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(png_bytes(width, height, color, mode))
        return path

    return _make


@pytest.fixture()
def cat_settings() -> GenerationSettings:
    """Plain text-to-image settings."""
    return GenerationSettings(prompt="a pixel cat", width=256, height=256, num_images=1)


@pytest.fixture()
def live_api_key() -> str:
    """Live API key from the environment (integration tests only)."""
    key = os.environ.get("RETRODIFFUSION_API_KEY", "").strip()
    if not key:
        pytest.skip("RETRODIFFUSION_API_KEY not set")
    return key
