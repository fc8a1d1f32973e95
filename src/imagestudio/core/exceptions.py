"""Exception hierarchy for Image Studio.

Every error raised by the core carries a human-readable message suitable for
returning to the caller as-is; the HTTP adapters never expose tracebacks.
"""

from __future__ import annotations

from typing import Any


class StudioError(Exception):
    """Base class for all Image Studio errors."""


class ConfigurationError(StudioError):
    """A required setting (typically the vendor API key) is missing."""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class InvalidRequestError(StudioError):
    """A request was rejected before any network call was made."""


class InvalidConsistencyLevel(InvalidRequestError):
    def __init__(self, level: Any):
        self.level = level
        super().__init__(f"Invalid consistency level: {level}")


class MissingVariations(InvalidRequestError):
    def __init__(self, message: str = "Variations are required for series generation"):
        super().__init__(message)


class InvalidQuantity(InvalidRequestError):
    def __init__(self, message: str, quantity: Any = None):
        self.quantity = quantity
        super().__init__(message)


class GenerationError(StudioError):
    """Base class for failures while producing images."""


class NoImageInResponse(GenerationError):
    def __init__(self, message: str = "No image generated in response"):
        super().__init__(message)


class AllGenerationsFailed(GenerationError):
    """Every item of a series failed; ``errors`` holds the per-item details."""

    def __init__(self, errors: list, message: str = "All image generations failed"):
        self.errors = list(errors)
        super().__init__(message)


class GenerationTimeout(GenerationError):
    """The request to the generation endpoint exceeded its time budget."""


class RemoteGenerationError(GenerationError):
    """The generation endpoint answered with an error payload."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: list | None = None,
    ):
        self.status_code = status_code
        self.details = details or []
        super().__init__(message)


class UploadError(StudioError):
    """An asset upload failed."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)
