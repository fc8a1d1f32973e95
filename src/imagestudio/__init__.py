"""Image Studio - Gemini image generation, series orchestration and asset upload."""

__version__ = "0.3.0"

from imagestudio.core.config import StudioConfig, get_config
from imagestudio.core.consistency import build_reference_prompt, build_series_prompt
from imagestudio.core.generation_client import GeminiImageClient
from imagestudio.core.series import SeriesOrchestrator
from imagestudio.core.session_store import SessionStore
from imagestudio.core.upload import UploadPipeline

__all__ = [
    "GeminiImageClient",
    "SeriesOrchestrator",
    "SessionStore",
    "StudioConfig",
    "UploadPipeline",
    "build_reference_prompt",
    "build_series_prompt",
    "get_config",
]
