"""Pydantic request models for the generation endpoint.

The endpoint speaks camelCase JSON.  Both models accept snake_case field names
too, so Python callers can build requests without aliases.

Models
------
SeriesRequest
    The optional ``series`` block of a request: how many images, which
    variations, and how tightly the subject must be held.
GenerateImageRequest
    Body of ``POST /api/gemini/generate-image`` for a single image, an edit,
    or (with ``series``) a whole series.

``quantity`` is left untyped here; the series orchestrator parses and
range-checks it.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field

from imagestudio.core.models import AspectRatio, CamelModel, ConsistencyLevel, GenerationMode


class SeriesRequest(CamelModel):
    """The ``series`` block of a generation request.

    Attributes:
        quantity: Requested number of images (2-10).
        consistency_prompt: Directive text composed into every prompt.  When
            empty the directive for ``consistency_level`` is used.
        variations: One directive per image, in display order.
        consistency_level: ``strict``, ``moderate`` or ``loose``.
        style_anchor: Optional shared style description.
    """

    quantity: Any = None
    consistency_prompt: str = ""
    variations: list[str] = Field(default_factory=list)
    consistency_level: ConsistencyLevel | None = None
    style_anchor: str | None = None


class GenerateImageRequest(CamelModel):
    """Body of ``POST /api/gemini/generate-image``.

    Attributes:
        prompt: Generation prompt, edit instruction or series base prompt.
        aspect_ratio: Optional ratio such as ``"16:9"``.
        mode: ``generate`` or ``edit``.  ``edit`` requires ``base_image``.
        base_image: Base64 image to edit or to anchor a series.
        series: Present for series generation, absent for one image.
    """

    prompt: str = ""
    aspect_ratio: AspectRatio | None = None
    mode: GenerationMode = "generate"
    base_image: str | None = None
    series: SeriesRequest | None = None
