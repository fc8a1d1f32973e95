"""Single-call access to the Gemini image model.

:class:`GeminiImageClient` issues exactly one ``generate_content`` call per
invocation and turns the response into an :class:`ImagePayload`.  It has no
retry or backoff of its own; callers that want either (the series
orchestrator, an HTTP adapter) own that policy.

Request Shapes
--------------
- **edit** with a base image: one user turn holding the base image as an
  inline PNG part followed by the instruction text.
- **generate** (or edit without a base image): the prompt text only.

Both request an image-modality response.  The aspect ratio is passed through
the image config when supplied and left unset otherwise.

Response Decoding
-----------------
The SDK response is treated as loosely structured.  :func:`extract_image_payload`
walks ``candidates[0].content.parts`` in order and returns the first part with
inline image data, raising :class:`NoImageInResponse` when the expected
fields are missing instead of failing somewhere downstream.

Usage
-----
::

    client = GeminiImageClient.from_config(config)
    payload = await client.generate_one("a red sneaker", aspect_ratio="1:1")
"""

from __future__ import annotations

import base64
import logging
from typing import Any

from imagestudio.core.config import StudioConfig
from imagestudio.core.exceptions import ConfigurationError, NoImageInResponse
from imagestudio.core.models import DEFAULT_MIME_TYPE, ImagePayload, strip_data_url

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash-image"

# Base images arrive from the studio as base64 without a MIME type; the
# studio always encodes them as PNG.
_BASE_IMAGE_MIME_TYPE = "image/png"


def extract_image_payload(response: Any) -> ImagePayload:
    """Return the first inline image carried by a ``generate_content`` response.

    Args:
        response: A ``GenerateContentResponse`` (or any object with the same
            ``candidates[0].content.parts[*].inline_data`` shape).

    Returns:
        The image as base64 text plus its MIME type (``image/png`` when the
        response does not declare one).

    Raises:
        NoImageInResponse: If there is no candidate, no content, or no part
            carrying image data.
    """
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        raise NoImageInResponse()

    content = getattr(candidates[0], "content", None)
    parts = getattr(content, "parts", None) or []

    for part in parts:
        inline = getattr(part, "inline_data", None)
        data = getattr(inline, "data", None) if inline is not None else None
        if not data:
            continue
        if isinstance(data, (bytes, bytearray)):
            image_data = base64.b64encode(bytes(data)).decode("ascii")
        else:
            image_data = str(data)
        return ImagePayload(
            image_data=image_data,
            mime_type=getattr(inline, "mime_type", None) or DEFAULT_MIME_TYPE,
        )

    raise NoImageInResponse()


class GeminiImageClient:
    """Generate or edit one image per call through the Gemini API.

    Attributes:
        model (str): Gemini model identifier.
        _client: Lazily created ``google.genai.Client`` (or an injected
            object exposing ``aio.models.generate_content``).
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        model: str = DEFAULT_MODEL,
        client: Any = None,
    ) -> None:
        if client is None and not api_key:
            raise ConfigurationError("Gemini API not configured", field="gemini_api_key")
        self._api_key = api_key
        self._client = client
        self.model = model

    @classmethod
    def from_config(cls, config: StudioConfig) -> GeminiImageClient:
        """Create a client from the application configuration.

        Raises:
            ConfigurationError: If no Gemini API key is configured.
        """
        if not config.has_gemini_key:
            raise ConfigurationError("Gemini API not configured", field="gemini_api_key")
        return cls(config.gemini_api_key.get_secret_value(), model=config.gemini_model)

    @property
    def client(self) -> Any:
        if self._client is None:
            from google import genai

            self._client = genai.Client(api_key=self._api_key)
        return self._client

    def build_request(
        self,
        prompt: str,
        aspect_ratio: str | None = None,
        mode: str = "generate",
        base_image: str | None = None,
    ) -> dict:
        """Return the keyword arguments for one ``generate_content`` call."""
        from google.genai import types

        image_config = types.ImageConfig(aspect_ratio=aspect_ratio) if aspect_ratio else None
        config = types.GenerateContentConfig(
            response_modalities=["IMAGE"],
            image_config=image_config,
        )

        if mode == "edit" and base_image:
            parts = [
                types.Part.from_bytes(
                    data=base64.b64decode(strip_data_url(base_image)),
                    mime_type=_BASE_IMAGE_MIME_TYPE,
                ),
                types.Part.from_text(text=prompt),
            ]
        else:
            parts = [types.Part.from_text(text=prompt)]

        return {
            "model": self.model,
            "contents": [types.Content(role="user", parts=parts)],
            "config": config,
        }

    async def generate_one(
        self,
        prompt: str,
        aspect_ratio: str | None = None,
        mode: str = "generate",
        base_image: str | None = None,
    ) -> ImagePayload:
        """Generate (or edit) exactly one image.

        Args:
            prompt: Generation prompt or edit instruction.
            aspect_ratio: Optional ratio such as ``"16:9"``.
            mode: ``"generate"`` or ``"edit"``.
            base_image: Base64 image to edit.  Ignored in generate mode; an
                edit without a base image is sent as a text-only request.

        Returns:
            The generated image.

        Raises:
            NoImageInResponse: If the response carries no image.
        """
        request = self.build_request(prompt, aspect_ratio, mode, base_image)
        logger.debug(
            "Calling %s (mode=%s, aspect_ratio=%s, base_image=%s).",
            self.model,
            mode,
            aspect_ratio,
            bool(base_image),
        )
        response = await self.client.aio.models.generate_content(**request)
        return extract_image_payload(response)
