"""Configuration management for Image Studio.

This module provides centralized configuration management using Pydantic Settings.
Configuration is loaded from environment variables with the IMAGESTUDIO_ prefix,
allowing deployments to be customised without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (IMAGESTUDIO_* prefix)
2. .env file in the working directory
3. Default values defined in StudioConfig

The Gemini API key is the one exception to the prefix rule: it is read from
``GEMINI_API_KEY`` (the name every Gemini deployment already uses), with
``IMAGESTUDIO_GEMINI_API_KEY`` accepted as an alternative.

Example .env file:
    GEMINI_API_KEY=your-key
    IMAGESTUDIO_ACCESS_KEY=shared-secret
    IMAGESTUDIO_SANITY_PROJECT_ID=abc123
    IMAGESTUDIO_SANITY_TOKEN=sk...

Injection, Not Globals
----------------------
A ``StudioConfig`` is frozen once constructed.  The HTTP adapters build one
instance at start-up (see :func:`get_config`) and pass it to every component
that needs it; business logic never reads the environment directly.  Tests
construct their own instances with fake keys.

Usage Example
-------------
    from imagestudio.core.config import get_config

    config = get_config()
    print(config.gemini_model)
    print(config.has_gemini_key)
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class StudioConfig(BaseSettings):
    """Main configuration for Image Studio.

    Attributes
    ----------
    Vendor Settings:
        gemini_api_key : SecretStr | None
            Gemini API key.  Without it every generation request fails fast
            with a "not configured" error.
        gemini_model : str
            Gemini model used for generation and editing.

    Adapter Settings:
        access_key : SecretStr | None
            Optional pre-shared key callers must send in ``X-API-Key``.
        series_strategy : Literal["auto", "parallel", "sequential"]
            Series execution strategy.  ``auto`` runs sequentially when a
            reference image anchors the series and in parallel otherwise.
        sequential_delay_seconds : float
            Pause between consecutive vendor calls in sequential mode.
        item_timeout_seconds : float | None
            Optional upper bound on a single vendor call inside a series.

    Client Settings:
        api_endpoint : str
            URL of the generation endpoint used by ``StudioClient``.
        client_timeout_seconds : float
            Timeout for a single request to the generation endpoint.

    Asset Store Settings:
        sanity_project_id, sanity_dataset, sanity_api_version : str
            Coordinates of the Sanity asset upload endpoint.
        sanity_token : SecretStr | None
            Write token for asset uploads.
        asset_store_url : str | None
            Full upload URL; overrides the Sanity coordinates when set.

    Local State:
        sessions_path : Path
            JSON file backing the generation session history.

    Server Settings:
        server_host, server_port, log_level
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="IMAGESTUDIO_",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
        frozen=True,
    )

    # Vendor settings
    gemini_api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("GEMINI_API_KEY", "IMAGESTUDIO_GEMINI_API_KEY"),
        description="Gemini API key",
    )
    gemini_model: str = Field(
        default="gemini-2.5-flash-image",
        description="Gemini model used for image generation and editing",
    )

    # Adapter settings
    access_key: SecretStr | None = Field(
        default=None,
        description="Pre-shared key expected in the X-API-Key header (optional)",
    )
    series_strategy: Literal["auto", "parallel", "sequential"] = Field(
        default="auto",
        description="Series execution strategy",
    )
    sequential_delay_seconds: float = Field(
        default=0.5,
        ge=0.0,
        description="Delay between vendor calls in sequential series mode",
    )
    item_timeout_seconds: float | None = Field(
        default=None,
        gt=0.0,
        description="Timeout for a single vendor call inside a series (None = no limit)",
    )

    # Client settings
    api_endpoint: str = Field(
        default="http://localhost:7860/api/gemini/generate-image",
        description="Generation endpoint used by StudioClient",
    )
    client_timeout_seconds: float = Field(
        default=120.0,
        gt=0.0,
        description="Client-side timeout for requests to the generation endpoint",
    )

    # Asset store settings
    sanity_project_id: str = Field(default="", description="Sanity project id")
    sanity_dataset: str = Field(default="production", description="Sanity dataset")
    sanity_api_version: str = Field(default="2024-01-01", description="Sanity API version")
    sanity_token: SecretStr | None = Field(default=None, description="Sanity write token")
    asset_store_url: str | None = Field(
        default=None,
        description="Full asset upload URL (overrides the Sanity coordinates)",
    )

    # Local state
    sessions_path: Path = Field(
        default=Path("data") / "sessions.json",
        description="JSON file backing the generation session history",
    )

    # Server settings
    server_host: str = Field(default="0.0.0.0", description="Server bind address")
    server_port: int = Field(default=7860, ge=1024, le=65535, description="Server port")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Root log level configured by the CLI entry point",
    )

    @property
    def has_gemini_key(self) -> bool:
        """Whether a non-empty Gemini API key is configured."""
        return bool(self.gemini_api_key and self.gemini_api_key.get_secret_value())

    @property
    def resolved_asset_store_url(self) -> str:
        """Return the asset upload URL, built from the Sanity coordinates if needed."""
        if self.asset_store_url:
            return self.asset_store_url
        return (
            f"https://{self.sanity_project_id}.api.sanity.io"
            f"/v{self.sanity_api_version}/assets/images/{self.sanity_dataset}"
        )


@lru_cache
def get_config() -> StudioConfig:
    """Return the process-wide configuration, constructed on first use."""
    return StudioConfig()
