"""Tests for retroforge.cli: commands driven through click's CliRunner."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import httpx
import pytest
from click.testing import CliRunner

from retroforge import cli
from retroforge.cli import apply_animation_settings, build_settings, main
from retroforge.errors import ConfigError
from retroforge.models import (
    WALKING_ANIMATION_STYLE,
    AnimationSettings,
    GenerationSettings,
)
from retroforge.preferences import JsonFilePreferenceStore, SettingsStorage

from mock_transport import (
    CREDITS_PATH,
    GENERATE_PATH,
    VALID_KEY,
    RecordingHandler,
    make_client,
    result_body,
)


@pytest.fixture()
def prefs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolated preference file with no ambient API key."""
    monkeypatch.delenv(cli.API_KEY_ENV_VAR, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path / "prefs.json"


@pytest.fixture()
def fake_service(monkeypatch: pytest.MonkeyPatch) -> dict[str, Any]:
    """Route every client the CLI creates through a recording mock transport."""
    state: dict[str, Any] = {
        "routes": {
            CREDITS_PATH: httpx.Response(200, json={"credits": 25}),
            GENERATE_PATH: httpx.Response(200, json=result_body(2, remaining=23, cost=2)),
        },
        "handlers": [],
    }

    def _factory(api_key: str) -> Any:
        client, handler = make_client(state["routes"], api_key=api_key)
        state["handlers"].append(handler)
        return client

    monkeypatch.setattr(cli, "RetroDiffusionClient", _factory)
    return state


def _requests(state: dict[str, Any]) -> list[httpx.Request]:
    handlers: list[RecordingHandler] = state["handlers"]
    return [r for h in handlers for r in h.requests]


def _invoke(prefs: Path, *args: str) -> Any:
    return CliRunner().invoke(main, ["--prefs", str(prefs), *args])


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------


class TestConfigCommands:
    def test_set_key_and_show(self, prefs: Path) -> None:
        result = _invoke(prefs, "config", "set-key", VALID_KEY)
        assert result.exit_code == 0, result.output
        assert VALID_KEY not in result.output

        stored = SettingsStorage(JsonFilePreferenceStore(prefs))
        assert stored.get_api_key() == VALID_KEY

        shown = _invoke(prefs, "config", "show")
        assert shown.exit_code == 0, shown.output
        assert "rdpk..." in shown.output
        assert VALID_KEY not in shown.output

    def test_set_path(self, prefs: Path, tmp_path: Path) -> None:
        result = _invoke(prefs, "config", "set-path", str(tmp_path / "art"))
        assert result.exit_code == 0, result.output
        stored = SettingsStorage(JsonFilePreferenceStore(prefs))
        assert stored.get_save_path() == str(tmp_path / "art")


# ---------------------------------------------------------------------------
# models / credits
# ---------------------------------------------------------------------------


class TestModelsCommand:
    def test_lists_styles(self, prefs: Path) -> None:
        result = _invoke(prefs, "models")
        assert result.exit_code == 0, result.output
        assert "RD_FLUX" in result.output
        assert "game_asset" in result.output


class TestCreditsCommand:
    def test_reports_balance(
        self,
        prefs: Path,
        fake_service: dict[str, Any],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv(cli.API_KEY_ENV_VAR, VALID_KEY)
        result = _invoke(prefs, "credits")
        assert result.exit_code == 0, result.output
        assert "25" in result.output

    def test_stored_key_used(self, prefs: Path, fake_service: dict[str, Any]) -> None:
        SettingsStorage(JsonFilePreferenceStore(prefs)).set_api_key(VALID_KEY)
        result = _invoke(prefs, "credits")
        assert result.exit_code == 0, result.output
        (request,) = _requests(fake_service)
        assert request.headers["X-RD-Token"] == VALID_KEY

    def test_missing_key_fails(self, prefs: Path, fake_service: dict[str, Any]) -> None:
        result = _invoke(prefs, "credits")
        assert result.exit_code == 1
        assert "Failed to check credits" in result.output
        assert _requests(fake_service) == []


# ---------------------------------------------------------------------------
# generate
# ---------------------------------------------------------------------------


class TestGenerateCommand:
    @pytest.fixture(autouse=True)
    def _key(self, prefs: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(cli.API_KEY_ENV_VAR, VALID_KEY)

    def test_generates_into_output(
        self, prefs: Path, fake_service: dict[str, Any], tmp_path: Path
    ) -> None:
        out = tmp_path / "art"
        result = _invoke(
            prefs,
            "generate",
            "--prompt",
            "a pixel cat",
            "--num-images",
            "2",
            "--width",
            "128",
            "--height",
            "128",
            "--output",
            str(out),
        )
        assert result.exit_code == 0, result.output
        assert "Generated 2 image(s)" in result.output

        written = sorted(out.glob("*/image_*.png"))
        assert [p.name for p in written] == ["image_0.png", "image_1.png"]

        bodies = [json.loads(r.content) for r in _requests(fake_service) if r.content]
        assert bodies == [
            {
                "model": "RD_FLUX",
                "width": 128,
                "height": 128,
                "prompt": "a pixel cat",
                "num_images": 2,
            }
        ]

    def test_settings_file(
        self, prefs: Path, fake_service: dict[str, Any], tmp_path: Path
    ) -> None:
        settings_path = tmp_path / "tree.yaml"
        settings_path.write_text("prompt: a tree\nprompt_style: retro\nseed: 5\n")
        result = _invoke(
            prefs, "generate", str(settings_path), "--output", str(tmp_path / "out")
        )
        assert result.exit_code == 0, result.output
        (body,) = [json.loads(r.content) for r in _requests(fake_service) if r.content]
        assert body["prompt_style"] == "retro"
        assert body["seed"] == 5

    def test_remember_stores_settings(
        self, prefs: Path, fake_service: dict[str, Any], tmp_path: Path
    ) -> None:
        result = _invoke(
            prefs,
            "generate",
            "--prompt",
            "castle",
            "--tile-x",
            "--remember",
            "--output",
            str(tmp_path / "out"),
        )
        assert result.exit_code == 0, result.output
        stored = SettingsStorage(JsonFilePreferenceStore(prefs)).load_settings()
        assert stored.prompt == "castle"
        assert stored.tile_x is True

    def test_walking_style_uses_stored_spritesheet_choice(
        self, prefs: Path, fake_service: dict[str, Any], tmp_path: Path
    ) -> None:
        out = tmp_path / "out"
        result = _invoke(
            prefs,
            "generate",
            "--prompt",
            "knight",
            "--style",
            WALKING_ANIMATION_STYLE,
            "--output",
            str(out),
        )
        assert result.exit_code == 0, result.output
        (body,) = [json.loads(r.content) for r in _requests(fake_service) if r.content]
        assert body["return_spritesheet"] is True
        assert (body["width"], body["height"]) == (48, 48)
        assert len(list(out.glob("*/image_*.png"))) == 2
        assert list(out.glob("*/*.gif")) == []

    def test_stored_gif_choice(
        self, prefs: Path, fake_service: dict[str, Any], tmp_path: Path
    ) -> None:
        SettingsStorage(JsonFilePreferenceStore(prefs)).save_animation_settings(
            AnimationSettings(is_animation=True, return_spritesheet=False)
        )
        out = tmp_path / "out"
        result = _invoke(
            prefs,
            "generate",
            "--prompt",
            "knight",
            "--style",
            WALKING_ANIMATION_STYLE,
            "--output",
            str(out),
        )
        assert result.exit_code == 0, result.output
        (body,) = [json.loads(r.content) for r in _requests(fake_service) if r.content]
        assert "return_spritesheet" not in body
        assert len(list(out.glob("*/image_*.gif"))) == 2

    def test_remember_saves_spritesheet_choice(
        self, prefs: Path, fake_service: dict[str, Any], tmp_path: Path
    ) -> None:
        result = _invoke(
            prefs,
            "generate",
            "--prompt",
            "knight",
            "--style",
            WALKING_ANIMATION_STYLE,
            "--no-spritesheet",
            "--remember",
            "--output",
            str(tmp_path / "out"),
        )
        assert result.exit_code == 0, result.output
        (body,) = [json.loads(r.content) for r in _requests(fake_service) if r.content]
        assert "return_spritesheet" not in body
        animation = SettingsStorage(
            JsonFilePreferenceStore(prefs)
        ).load_animation_settings()
        assert animation.return_spritesheet is False
        assert animation.is_animation is True

    def test_empty_prompt_fails(self, prefs: Path, fake_service: dict[str, Any]) -> None:
        result = _invoke(prefs, "generate")
        assert result.exit_code == 1
        assert "Failed to generate images" in result.output
        assert _requests(fake_service) == []

    def test_service_error_reported(
        self, prefs: Path, fake_service: dict[str, Any], tmp_path: Path
    ) -> None:
        fake_service["routes"][GENERATE_PATH] = httpx.Response(500, text="down")
        result = _invoke(
            prefs, "generate", "--prompt", "x", "--output", str(tmp_path / "out")
        )
        assert result.exit_code == 1
        assert "Failed to generate images" in result.output

    def test_num_images_range_checked(self, prefs: Path) -> None:
        result = _invoke(prefs, "generate", "--prompt", "x", "--num-images", "9")
        assert result.exit_code == 2


class TestBuildSettings:
    def test_overrides_applied(self) -> None:
        merged = build_settings(
            GenerationSettings(prompt="old", width=64), {"prompt": "new"}
        )
        assert merged.prompt == "new"
        assert merged.width == 64

    def test_invalid_override(self) -> None:
        with pytest.raises(ConfigError):
            build_settings(GenerationSettings(), {"strength": 3.0})

    def test_animation_settings_only_touch_walking_style(self) -> None:
        stored = AnimationSettings(return_spritesheet=True)
        plain = GenerationSettings(prompt="x")
        assert apply_animation_settings(plain, stored) is plain

        walking = GenerationSettings(prompt="x", prompt_style=WALKING_ANIMATION_STYLE)
        assert apply_animation_settings(walking, stored).wants_spritesheet
