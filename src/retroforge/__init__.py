"""RetroForge: pixel-art image and animation generation via Retro Diffusion."""

from retroforge.catalog import ModelInfo, ModelStyle, find_model, find_style, get_models
from retroforge.client import RetroDiffusionClient, validate_api_key
from retroforge.codec import decide_output_extension, decode_image, image_to_base64
from retroforge.config import load_settings, validate_settings, write_settings
from retroforge.credits import CreditLedger
from retroforge.errors import (
    ApiError,
    AssetWriteError,
    AuthError,
    ConfigError,
    ErrorKind,
    ImageReadError,
    InsufficientCreditsError,
    NetworkError,
    RequestTimeoutError,
    ResponseFormatError,
    RetroForgeError,
    ServiceError,
)
from retroforge.importer import AssetImporter, FileSystemImporter, ImportedAsset
from retroforge.jobs import Job, JobEvent, JobKind, JobOrchestrator, JobState
from retroforge.logging import get_logger, setup_logging
from retroforge.models import (
    AnimationDescriptor,
    AnimationSettings,
    CreditInfo,
    FrameGrid,
    FrameRect,
    GenerationMode,
    GenerationResult,
    GenerationSettings,
    ImportSpec,
    SpritePivot,
    TextureImportSettings,
)
from retroforge.payload import RequestPayload, build_payload, payload_to_json
from retroforge.preferences import (
    JsonFilePreferenceStore,
    PreferenceStore,
    SettingsStorage,
)
from retroforge.results import (
    build_animation,
    build_import_spec,
    compute_frame_grid,
    is_likely_spritesheet,
    load_frames,
    persist_result,
)
from retroforge.workflow import GenerationOutcome, GenerationWorkflow

__all__ = [
    "AnimationDescriptor",
    "AnimationSettings",
    "ApiError",
    "AssetImporter",
    "AssetWriteError",
    "AuthError",
    "ConfigError",
    "CreditInfo",
    "CreditLedger",
    "ErrorKind",
    "FileSystemImporter",
    "FrameGrid",
    "FrameRect",
    "GenerationMode",
    "GenerationOutcome",
    "GenerationResult",
    "GenerationSettings",
    "GenerationWorkflow",
    "ImageReadError",
    "ImportSpec",
    "ImportedAsset",
    "InsufficientCreditsError",
    "Job",
    "JobEvent",
    "JobKind",
    "JobOrchestrator",
    "JobState",
    "JsonFilePreferenceStore",
    "ModelInfo",
    "ModelStyle",
    "NetworkError",
    "PreferenceStore",
    "RequestPayload",
    "RequestTimeoutError",
    "ResponseFormatError",
    "RetroDiffusionClient",
    "RetroForgeError",
    "ServiceError",
    "SettingsStorage",
    "SpritePivot",
    "TextureImportSettings",
    "build_animation",
    "build_import_spec",
    "build_payload",
    "compute_frame_grid",
    "decide_output_extension",
    "decode_image",
    "find_model",
    "find_style",
    "get_logger",
    "get_models",
    "image_to_base64",
    "is_likely_spritesheet",
    "load_frames",
    "load_settings",
    "payload_to_json",
    "persist_result",
    "setup_logging",
    "validate_api_key",
    "validate_settings",
    "write_settings",
]
