"""Request handling shared by every HTTP front end.

:class:`GenerationService` turns one generation request (single image, edit,
or series) into one :class:`AdapterResponse`.  The FastAPI app and the
serverless handler are thin wrappers that only translate their transport's
request and response shapes.

Response Contract
-----------------
Checks run in this order and the first that applies decides the answer:

======  ==========================================================
Status  When
======  ==========================================================
500     No Gemini API key configured
401     An access key is configured and ``X-API-Key`` does not match
400     Body is not a JSON object, or a field has the wrong type
400     ``prompt`` is missing or blank
400     ``mode`` is ``edit`` without a ``baseImage``
400     ``baseImage`` is not valid base64
400     Series validation failed (variations, quantity, level)
500     Every series item failed (``details`` lists the items)
207     Some series items failed (``errors`` and ``warning`` added)
200     Full success
500     Anything unexpected (logged with traceback)
======  ==========================================================

Bodies are always JSON objects; error bodies carry an ``error`` message and
never a traceback.
"""

from __future__ import annotations

import base64
import binascii
import hmac
import json
import logging
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from imagestudio.api.models import GenerateImageRequest
from imagestudio.core.config import StudioConfig
from imagestudio.core.exceptions import (
    AllGenerationsFailed,
    GenerationError,
    InvalidRequestError,
)
from imagestudio.core.generation_client import GeminiImageClient
from imagestudio.core.models import strip_data_url
from imagestudio.core.series import SeriesOrchestrator

logger = logging.getLogger(__name__)

PARTIAL_SUCCESS_WARNING = "Some image generations failed"


@dataclass(frozen=True)
class AdapterResponse:
    status_code: int
    body: dict = field(default_factory=dict)


def _error(status_code: int, message: str, **extra: Any) -> AdapterResponse:
    return AdapterResponse(status_code, {"error": message, **extra})


def _describe_validation_error(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"Invalid request: {location}: {first.get('msg')}" if location else "Invalid request"


def _bare_base64(data: str) -> str | None:
    """Return *data* without a ``data:`` URL prefix, or ``None`` if it is not base64."""
    data = strip_data_url(data)
    try:
        base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError):
        return None
    return data


class GenerationService:
    """Validate generation requests and run them against the Gemini client.

    The image client and orchestrator are created from *config* on first use
    unless supplied, so a service can be built (and can answer "not
    configured") even when no API key is present.
    """

    def __init__(
        self,
        config: StudioConfig,
        image_client: Any = None,
        orchestrator: SeriesOrchestrator | None = None,
    ) -> None:
        self.config = config
        self._image_client = image_client
        self._orchestrator = orchestrator

    @property
    def configured(self) -> bool:
        return self._image_client is not None or self.config.has_gemini_key

    @property
    def image_client(self) -> Any:
        if self._image_client is None:
            self._image_client = GeminiImageClient.from_config(self.config)
        return self._image_client

    @property
    def orchestrator(self) -> SeriesOrchestrator:
        if self._orchestrator is None:
            self._orchestrator = SeriesOrchestrator.from_config(self.image_client, self.config)
        return self._orchestrator

    def _authorized(self, api_key: str | None) -> bool:
        if self.config.access_key is None:
            return True
        expected = self.config.access_key.get_secret_value()
        if not expected:
            return True
        return api_key is not None and hmac.compare_digest(api_key.encode(), expected.encode())

    async def handle(self, payload: Any, api_key: str | None = None) -> AdapterResponse:
        """Answer one generation request.

        Args:
            payload: The request body, either already parsed (a dict) or as
                raw JSON text or bytes.
            api_key: Value of the ``X-API-Key`` header, if any.
        """
        if not self.configured:
            logger.error("Generation request rejected: no Gemini API key configured.")
            return _error(500, "Gemini API not configured")

        if not self._authorized(api_key):
            logger.warning("Generation request rejected: invalid access key.")
            return _error(401, "Unauthorized")

        try:
            return await self._handle(payload)
        except Exception as exc:
            logger.exception("Unexpected error while handling generation request")
            return _error(500, str(exc) or "Internal server error")

    async def _handle(self, payload: Any) -> AdapterResponse:
        if isinstance(payload, (bytes, bytearray, str)):
            try:
                payload = json.loads(payload or b"{}")
            except ValueError:
                return _error(400, "Invalid JSON body")
        if not isinstance(payload, dict):
            return _error(400, "Request body must be a JSON object")

        try:
            request = GenerateImageRequest.model_validate(payload)
        except ValidationError as exc:
            return _error(400, _describe_validation_error(exc))

        prompt = request.prompt.strip()
        if not prompt:
            return _error(400, "Prompt is required")
        if request.mode == "edit" and not request.base_image:
            return _error(400, "Base image is required for edit mode")
        if request.base_image:
            base_image = _bare_base64(request.base_image)
            if not base_image:
                return _error(400, "Invalid base image data")
            request = request.model_copy(update={"base_image": base_image})

        if request.series is not None:
            return await self._series(prompt, request)
        return await self._single(prompt, request)

    async def _single(self, prompt: str, request: GenerateImageRequest) -> AdapterResponse:
        try:
            payload = await self.image_client.generate_one(
                prompt, request.aspect_ratio, request.mode, request.base_image
            )
        except GenerationError as exc:
            logger.error("Image generation failed: %s", exc)
            return _error(500, str(exc))
        return AdapterResponse(200, payload.model_dump(by_alias=True))

    async def _series(self, prompt: str, request: GenerateImageRequest) -> AdapterResponse:
        series = request.series
        try:
            outcome = await self.orchestrator.generate_series(
                prompt,
                series.quantity,
                series.variations,
                consistency_level=series.consistency_level,
                consistency_prompt=series.consistency_prompt,
                style_anchor=series.style_anchor,
                aspect_ratio=request.aspect_ratio,
                base_image=request.base_image,
            )
        except InvalidRequestError as exc:
            return _error(400, str(exc))
        except AllGenerationsFailed as exc:
            return _error(
                500,
                str(exc),
                details=[error.model_dump(by_alias=True) for error in exc.errors],
            )

        body: dict[str, Any] = {
            "images": [image.model_dump(by_alias=True) for image in outcome.images],
            "metadata": outcome.metadata.model_dump(by_alias=True, exclude_none=True),
        }
        if outcome.errors:
            body["errors"] = [error.model_dump(by_alias=True) for error in outcome.errors]
            body["warning"] = PARTIAL_SUCCESS_WARNING
            return AdapterResponse(207, body)
        return AdapterResponse(200, body)
