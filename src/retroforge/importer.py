"""Asset import hand-off.

After images are written, each path is passed to an :class:`AssetImporter`
together with the texture import settings.  :class:`FileSystemImporter`
is a host-neutral implementation: it records the derived
:class:`~retroforge.models.ImportSpec` next to the asset, slices
spritesheets and GIFs into individual frame PNGs and writes the looping
animation clip and its single-state controller as JSON.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from retroforge.errors import AssetWriteError
from retroforge.logging import get_logger
from retroforge.models import AnimationDescriptor, ImportSpec, TextureImportSettings
from retroforge.results import (
    DEFAULT_COLUMNS,
    SPRITESHEET_MARKERS,
    build_animation,
    build_import_spec,
    load_frames,
)

logger = get_logger("importer")

CONTROLLER_STATE_NAME = "Animation"


@dataclass
class ImportedAsset:
    """What the importer produced for one asset."""

    spec: ImportSpec
    frame_paths: list[Path] = field(default_factory=list)
    animation: AnimationDescriptor | None = None
    clip_path: Path | None = None
    controller_path: Path | None = None


class AssetImporter(ABC):
    """Abstract base for host-specific asset import."""

    @abstractmethod
    def import_assets(
        self, paths: Sequence[Path], settings: TextureImportSettings
    ) -> list[ImportedAsset]:
        """Configure and post-process freshly written assets.

        Args:
            paths: Written image files, in generation order.
            settings: Texture import settings to apply.

        Returns:
            One :class:`ImportedAsset` per path that was imported.
        """


class FileSystemImporter(AssetImporter):
    """Writes import metadata, frames and animation files beside each asset."""

    def __init__(
        self,
        columns: int = DEFAULT_COLUMNS,
        markers: Sequence[str] = SPRITESHEET_MARKERS,
        case_sensitive: bool = True,
    ) -> None:
        self.columns = columns
        self.markers = tuple(markers)
        self.case_sensitive = case_sensitive

    def import_assets(
        self, paths: Sequence[Path], settings: TextureImportSettings
    ) -> list[ImportedAsset]:
        imported: list[ImportedAsset] = []
        for path in paths:
            asset_path = Path(path)
            if not asset_path.is_file():
                logger.error(
                    "Cannot set import settings for %s: file does not exist",
                    asset_path,
                )
                continue
            imported.append(self._import_one(asset_path, settings))
        return imported

    def _import_one(
        self, asset_path: Path, settings: TextureImportSettings
    ) -> ImportedAsset:
        spec = build_import_spec(
            asset_path,
            settings,
            columns=self.columns,
            markers=self.markers,
            case_sensitive=self.case_sensitive,
        )
        asset = ImportedAsset(spec=spec)
        self._write_json(
            asset_path.with_name(f"{asset_path.stem}.import.json"),
            spec.model_dump(mode="json"),
        )
        logger.info("Applied import settings to %s", asset_path)

        if spec.build_animation and spec.frame_rate is not None:
            self._build_animation(asset, spec.frame_rate)
        return asset

    def _build_animation(self, asset: ImportedAsset, frame_rate: float) -> None:
        asset_path = asset.spec.asset_path
        frames = load_frames(asset.spec)
        names = (
            [rect.name for rect in asset.spec.frame_grid.rects]
            if asset.spec.frame_grid is not None
            else [f"frame_{i}" for i in range(len(frames))]
        )

        clip_name = f"{asset_path.stem}_Animation"
        animation = build_animation(names, frame_rate, name=clip_name)
        if animation is None:
            logger.debug("%s has a single frame, no animation built", asset_path)
            return

        frame_dir = asset_path.with_name(f"{asset_path.stem}_frames")
        try:
            frame_dir.mkdir(parents=True, exist_ok=True)
            for name, frame in zip(names, frames):
                target = frame_dir / f"{name}.png"
                frame.save(target, format="PNG")
                asset.frame_paths.append(target)
        except OSError as exc:
            raise AssetWriteError(
                f"Could not write frames for {asset_path}: {exc}", path=str(frame_dir)
            ) from exc

        clip_path = asset_path.with_name(f"{clip_name}.json")
        self._write_json(clip_path, animation.model_dump(mode="json"))

        controller_path = asset_path.with_name(f"{clip_name}_Controller.json")
        self._write_json(
            controller_path,
            {
                "name": f"{clip_name}_Controller",
                "states": [{"name": CONTROLLER_STATE_NAME, "motion": clip_path.name}],
                "default_state": CONTROLLER_STATE_NAME,
            },
        )

        asset.animation = animation
        asset.clip_path = clip_path
        asset.controller_path = controller_path
        logger.info("Created animation clip and controller at %s", clip_path)

    @staticmethod
    def _write_json(path: Path, payload: dict[str, Any]) -> None:
        try:
            path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
        except OSError as exc:
            raise AssetWriteError(f"Could not write {path}: {exc}", path=str(path)) from exc
