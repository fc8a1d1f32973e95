"""Caller side of the generation endpoint.

:class:`StudioClient` is what an editor-facing tool uses to talk to the
generation endpoint exposed by :mod:`imagestudio.api`.  It sends exactly one
HTTP request per call; the endpoint fans a series out into per-image vendor
calls.

Status handling:

- ``200`` and ``207`` are both successes.  A ``207`` series body carries the
  per-item ``errors`` and a ``warning`` alongside the images.
- Any other status raises :class:`RemoteGenerationError` with the endpoint's
  ``error`` message and, for a failed series, its ``details``.
- Requests are bounded by ``timeout`` (120 seconds by default); running out
  raises :class:`GenerationTimeout`.
"""

from __future__ import annotations

import base64
import logging
from typing import Any

import httpx
from pydantic import Field, ValidationError

from imagestudio.core.config import StudioConfig
from imagestudio.core.consistency import get_consistency_prompt
from imagestudio.core.exceptions import (
    GenerationTimeout,
    MissingVariations,
    RemoteGenerationError,
)
from imagestudio.core.models import (
    AspectRatio,
    CamelModel,
    ConsistencyLevel,
    ImagePayload,
    SeriesGenerationOutcome,
    SeriesImageResult,
    SeriesItemError,
    SeriesMetadata,
    VariationType,
    strip_data_url,
    utc_now_iso,
)
from imagestudio.core.series import parse_quantity

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 120.0


class SeriesConfig(CamelModel):
    """Everything the editor chose for one series request."""

    quantity: Any
    consistency_level: ConsistencyLevel = "moderate"
    variations: list[str] = Field(default_factory=list)
    variation_type: VariationType | None = None
    style_anchor: str | None = None
    aspect_ratio: AspectRatio | None = None
    base_image: str | None = None


def encode_base_image(image: bytes | str) -> str:
    """Return *image* as bare base64 text.

    Raw bytes are encoded; a ``data:`` URL loses its prefix; any other string
    is assumed to be base64 already.
    """
    if isinstance(image, (bytes, bytearray)):
        return base64.b64encode(bytes(image)).decode("ascii")
    return strip_data_url(image)


class StudioClient:
    """HTTP client for the ``/api/gemini/generate-image`` endpoint.

    Args:
        endpoint: Full URL of the generation endpoint.
        api_key: Optional pre-shared key, sent as ``X-API-Key``.
        timeout: Seconds before a request is abandoned.
        transport: Optional ``httpx`` transport (tests use ``MockTransport``).
    """

    def __init__(
        self,
        endpoint: str,
        *,
        api_key: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.endpoint = endpoint
        self._api_key = api_key
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_config(cls, config: StudioConfig) -> StudioClient:
        api_key = config.access_key.get_secret_value() if config.access_key else None
        return cls(config.api_endpoint, api_key=api_key, timeout=config.client_timeout_seconds)

    async def _post(self, payload: dict) -> tuple[int, dict]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["X-API-Key"] = self._api_key

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.endpoint, json=payload, headers=headers)
        except httpx.TimeoutException as exc:
            raise GenerationTimeout(f"Request timed out after {self.timeout:g} seconds") from exc
        except httpx.HTTPError as exc:
            raise RemoteGenerationError(f"Request to generation endpoint failed: {exc}") from exc

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if response.status_code not in (200, 207):
            message = body.get("error") or f"Generation failed with status {response.status_code}"
            raise RemoteGenerationError(
                message, status_code=response.status_code, details=body.get("details")
            )
        return response.status_code, body

    async def _single(self, payload: dict) -> ImagePayload:
        _, body = await self._post(payload)
        if not body.get("imageData"):
            raise RemoteGenerationError("No image generated")
        return ImagePayload.model_validate(body)

    async def generate_image(self, prompt: str, aspect_ratio: str | None = None) -> ImagePayload:
        """Generate one image from *prompt*."""
        payload: dict[str, Any] = {"prompt": prompt, "mode": "generate"}
        if aspect_ratio:
            payload["aspectRatio"] = aspect_ratio
        return await self._single(payload)

    async def edit_image(
        self,
        base_image: bytes | str,
        prompt: str,
        aspect_ratio: str | None = None,
    ) -> ImagePayload:
        """Edit *base_image* (raw bytes, base64 or a data URL) following *prompt*."""
        payload: dict[str, Any] = {
            "prompt": prompt,
            "mode": "edit",
            "baseImage": encode_base_image(base_image),
        }
        if aspect_ratio:
            payload["aspectRatio"] = aspect_ratio
        return await self._single(payload)

    async def generate_series(self, base_prompt: str, config: SeriesConfig) -> SeriesGenerationOutcome:
        """Request a series and return its images sorted by requested position.

        Variations and quantity are checked locally before any request is
        sent, with the same rules the endpoint applies.

        Raises:
            MissingVariations: If ``config.variations`` is empty.
            InvalidQuantity: If ``config.quantity`` is not a number in range.
            GenerationTimeout: If the endpoint does not answer in time.
            RemoteGenerationError: On any non-2xx answer, or when the answer
                holds no images.
        """
        if not config.variations:
            raise MissingVariations()
        quantity = parse_quantity(config.quantity)

        payload: dict[str, Any] = {
            "prompt": base_prompt,
            "mode": "edit" if config.base_image else "generate",
            "series": {
                "quantity": quantity,
                "consistencyPrompt": get_consistency_prompt(config.consistency_level),
                "consistencyLevel": config.consistency_level,
                "variations": list(config.variations),
            },
        }
        if config.style_anchor:
            payload["series"]["styleAnchor"] = config.style_anchor
        if config.aspect_ratio:
            payload["aspectRatio"] = config.aspect_ratio
        if config.base_image:
            payload["baseImage"] = encode_base_image(config.base_image)

        status_code, body = await self._post(payload)
        if not body.get("images"):
            raise RemoteGenerationError("No images generated", status_code=status_code)
        if status_code == 207:
            logger.warning("%s", body.get("warning") or "Some image generations failed")

        errors = body.get("errors") or []
        metadata = body.get("metadata") or {}
        try:
            return SeriesGenerationOutcome(
                images=sorted(
                    (SeriesImageResult.model_validate(item) for item in body["images"]),
                    key=lambda image: image.index,
                ),
                errors=[SeriesItemError.model_validate(item) for item in errors],
                metadata=SeriesMetadata(
                    base_prompt=metadata.get("basePrompt", base_prompt),
                    style_prompt=metadata.get("stylePrompt", ""),
                    generated_at=metadata.get("generatedAt") or utc_now_iso(),
                    quantity=metadata.get("quantity", quantity),
                    successful=metadata.get("successful", len(body["images"])),
                    failed=metadata.get("failed", len(errors)),
                    variation_type=config.variation_type,
                    consistency_level=config.consistency_level,
                ),
            )
        except ValidationError as exc:
            raise RemoteGenerationError(f"Invalid series response: {exc}") from exc
