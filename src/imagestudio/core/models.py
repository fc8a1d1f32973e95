"""Data model shared by the generation, upload and session components.

Records that travel over HTTP or into the session store are Pydantic models
with camelCase aliases, so ``model_dump(by_alias=True)`` produces exactly the
JSON shape used on the wire.  State that never leaves the process (upload
progress, per-item upload errors) uses plain dataclasses.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

AspectRatio = Literal["1:1", "2:3", "3:2", "3:4", "4:3", "4:5", "5:4", "9:16", "16:9", "21:9"]

ASPECT_RATIOS: tuple[str, ...] = (
    "1:1",
    "2:3",
    "3:2",
    "3:4",
    "4:3",
    "4:5",
    "5:4",
    "9:16",
    "16:9",
    "21:9",
)

ConsistencyLevel = Literal["strict", "moderate", "loose"]
GenerationMode = Literal["generate", "edit"]
VariationType = Literal["angle", "context", "background", "lighting"]

DEFAULT_MIME_TYPE = "image/png"


def utc_now_iso() -> str:
    """Return the current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def strip_data_url(image_data: str) -> str:
    """Return the bare base64 payload of *image_data*, dropping a ``data:...,`` prefix."""
    if image_data.startswith("data:") and "," in image_data:
        return image_data.split(",", 1)[1]
    return image_data


class CamelModel(BaseModel):
    """Base model serialising field names as camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ImagePayload(CamelModel):
    """One generated image as base64 data plus its MIME type."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    image_data: str
    mime_type: str = DEFAULT_MIME_TYPE


class SeriesImageResult(ImagePayload):
    """A series image tagged with the variation that produced it.

    ``index`` is the position in the requested variation sequence, not the
    position among successful results.
    """

    variation: str
    index: int


class SeriesItemError(CamelModel):
    index: int
    variation: str
    error: str


class SeriesMetadata(CamelModel):
    base_prompt: str
    style_prompt: str = ""
    generated_at: str = Field(default_factory=utc_now_iso)
    quantity: int
    successful: int = 0
    failed: int = 0
    variation_type: VariationType | None = None
    consistency_level: ConsistencyLevel | None = None


class SeriesGenerationOutcome(CamelModel):
    """Result of one series run: successes, per-item failures and a summary."""

    images: list[SeriesImageResult] = Field(default_factory=list)
    errors: list[SeriesItemError] = Field(default_factory=list)
    metadata: SeriesMetadata

    @property
    def is_partial(self) -> bool:
        return bool(self.images) and bool(self.errors)

    def ordered_images(self) -> list[SeriesImageResult]:
        """Return the images sorted by their requested position."""
        return sorted(self.images, key=lambda image: image.index)


class GenerationMetadata(CamelModel):
    """Descriptive metadata attached to an uploaded asset."""

    prompt: str | None = None
    model: str | None = None
    generation_params: dict[str, Any] | None = None


class UploadedAsset(CamelModel):
    """Handle for an image stored in the asset store."""

    id: str
    url: str = ""
    original_filename: str | None = None
    mime_type: str | None = None

    def reference(self) -> dict:
        """Return the image-field value the host CMS expects for this asset."""
        return {"_type": "image", "asset": {"_type": "reference", "_ref": self.id}}


class GenerationSession(CamelModel):
    id: str
    timestamp: str = Field(default_factory=utc_now_iso)
    results: list[SeriesGenerationOutcome] = Field(default_factory=list)
    saved_images: list[str] = Field(default_factory=list)


def progress_percentage(completed: int, total: int) -> int:
    """Return ``completed / total`` as a whole percentage, rounding halves up."""
    if total <= 0:
        return 0
    return int(math.floor(completed / total * 100 + 0.5))


@dataclass(frozen=True)
class UploadProgress:
    completed: int = 0
    total: int = 0
    percentage: int = 0

    @classmethod
    def of(cls, completed: int, total: int) -> UploadProgress:
        return cls(completed=completed, total=total, percentage=progress_percentage(completed, total))


@dataclass(frozen=True)
class UploadItemError:
    index: int
    error: str
