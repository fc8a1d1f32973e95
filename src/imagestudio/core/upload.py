"""Asset-store uploads for generated images.

The pipeline takes in-memory base64 images (as produced by the generation
client), decodes them, and uploads them to the asset store one at a time.

Batch Behaviour
---------------
- Items are uploaded strictly in input order; upload N+1 never starts before
  upload N has resolved.
- Progress is reset to ``{0, N, 0}`` at the start of every batch.
  ``completed`` only increments on success and ``percentage`` is always
  ``round(completed / N * 100)``.
- A failed item is recorded in :attr:`UploadPipeline.errors` with its input
  index and the batch continues.  Failed items are simply absent from the
  returned list, so callers compare its length with the input length to
  detect gaps.
- There is no automatic retry.

The asset store itself is behind the small :class:`AssetStore` protocol;
:class:`SanityAssetStore` implements it over HTTP with ``httpx``.
"""

from __future__ import annotations

import base64
import binascii
import logging
import mimetypes
import time
from collections.abc import Callable, Sequence
from typing import Any, Protocol

import httpx

from imagestudio.core.config import StudioConfig
from imagestudio.core.exceptions import ConfigurationError, UploadError
from imagestudio.core.models import (
    DEFAULT_MIME_TYPE,
    GenerationMetadata,
    UploadedAsset,
    UploadItemError,
    UploadProgress,
    strip_data_url,
)

logger = logging.getLogger(__name__)

FILENAME_PREFIX = "gemini-series"


def decode_image_payload(image_data: str) -> bytes:
    """Decode a base64 image payload into raw bytes.

    A ``data:<mime>;base64,`` prefix is accepted and stripped.

    Raises:
        UploadError: If the payload is empty or not valid base64.
    """
    try:
        data = base64.b64decode(strip_data_url(image_data), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise UploadError(f"Invalid base64 image data: {exc}") from exc
    if not data:
        raise UploadError("Image data is required")
    return data


def extension_for(mime_type: str | None) -> str:
    """Return the file extension for *mime_type*, ``.png`` when unknown."""
    if mime_type == "image/jpeg":
        return ".jpg"
    return mimetypes.guess_extension(mime_type or "") or ".png"


class AssetStore(Protocol):
    async def upload_image(
        self,
        data: bytes,
        *,
        filename: str,
        content_type: str,
        title: str | None = None,
        description: str | None = None,
    ) -> UploadedAsset: ...


class SanityAssetStore:
    """Upload images to the Sanity assets API.

    Each upload is a single ``POST`` of the raw image bytes; filename, title
    and description travel as query parameters.
    """

    def __init__(
        self,
        upload_url: str,
        token: str | None = None,
        *,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.upload_url = upload_url
        self._token = token
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_config(cls, config: StudioConfig) -> SanityAssetStore:
        if not config.asset_store_url and not config.sanity_project_id:
            raise ConfigurationError(
                "Asset store not configured", field="sanity_project_id"
            )
        token = config.sanity_token.get_secret_value() if config.sanity_token else None
        return cls(config.resolved_asset_store_url, token)

    async def upload_image(
        self,
        data: bytes,
        *,
        filename: str,
        content_type: str,
        title: str | None = None,
        description: str | None = None,
    ) -> UploadedAsset:
        params = {"filename": filename}
        if title:
            params["title"] = title
        if description:
            params["description"] = description
        headers = {"Content-Type": content_type}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(
                    self.upload_url, params=params, headers=headers, content=data
                )
                response.raise_for_status()
                document = response.json().get("document") or {}
        except httpx.HTTPStatusError as exc:
            raise UploadError(
                f"Asset upload failed with status {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise UploadError(f"Asset upload failed: {exc}") from exc
        except ValueError as exc:
            raise UploadError("Asset store returned an invalid response") from exc

        if not document.get("_id"):
            raise UploadError("Asset store response did not include an asset id")

        return UploadedAsset(
            id=document["_id"],
            url=document.get("url", ""),
            original_filename=document.get("originalFilename", filename),
            mime_type=document.get("mimeType", content_type),
        )


class UploadPipeline:
    """Upload generated images to an asset store with progress reporting.

    Attributes:
        progress (UploadProgress): Progress of the current or last batch.
        errors (list[UploadItemError]): Failures of the current or last batch.
        uploading (bool): Whether a batch or single upload is in flight.
    """

    def __init__(self, store: AssetStore, *, clock: Callable[[], float] = time.time) -> None:
        self._store = store
        self._clock = clock
        self.progress = UploadProgress()
        self.errors: list[UploadItemError] = []
        self.uploading = False

    def make_filename(self, position: int, mime_type: str | None = None) -> str:
        """Return the upload filename for the item at 1-based *position*."""
        timestamp = int(self._clock() * 1000)
        return f"{FILENAME_PREFIX}-{timestamp}-{position}{extension_for(mime_type)}"

    async def _upload(
        self,
        image_data: str,
        filename: str,
        mime_type: str,
        metadata: GenerationMetadata | None,
    ) -> UploadedAsset:
        data = decode_image_payload(image_data)
        return await self._store.upload_image(
            data,
            filename=filename,
            content_type=mime_type or DEFAULT_MIME_TYPE,
            title=filename.rsplit(".", 1)[0],
            description=metadata.prompt if metadata else None,
        )

    async def upload_image(
        self,
        image_data: str,
        filename: str,
        metadata: GenerationMetadata | None = None,
        *,
        mime_type: str = DEFAULT_MIME_TYPE,
        on_select: Callable[[list[dict]], Any] | None = None,
    ) -> UploadedAsset:
        """Upload a single image.

        Args:
            image_data: Base64 image payload.
            filename: Name stored with the asset.
            metadata: Optional generation metadata; its prompt becomes the
                asset description.
            mime_type: MIME type of the payload.
            on_select: Host callback invoked with ``[asset reference]`` once
                the upload succeeded.

        Raises:
            UploadError: If decoding or the upload fails.
        """
        self.uploading = True
        try:
            asset = await self._upload(image_data, filename, mime_type, metadata)
        finally:
            self.uploading = False
        if on_select is not None:
            on_select([asset.reference()])
        return asset

    async def upload_batch(
        self,
        images: Sequence[Any],
        metadata: Sequence[GenerationMetadata | None] | None = None,
        *,
        on_progress: Callable[[UploadProgress], Any] | None = None,
        on_select: Callable[[list[dict]], Any] | None = None,
    ) -> list[UploadedAsset]:
        """Upload *images* one at a time, in input order.

        Args:
            images: Items exposing ``image_data`` and ``mime_type``
                (``ImagePayload`` or ``SeriesImageResult``), or mappings with
                ``imageData``/``mimeType`` keys.
            metadata: Optional sequence parallel to *images*.
            on_progress: Called with the new :class:`UploadProgress` at the
                start of the batch and after every item.
            on_select: Host callback invoked with the asset references of the
                successful uploads, when there is at least one.

        Returns:
            Successfully uploaded assets, in completion order.
        """
        total = len(images)
        self.uploading = True
        self.errors = []
        self._set_progress(UploadProgress.of(0, total), on_progress)

        uploaded: list[UploadedAsset] = []
        try:
            for index, image in enumerate(images):
                item_metadata = metadata[index] if metadata and index < len(metadata) else None
                filename = self.make_filename(index + 1)
                try:
                    image_data, mime_type = _unpack_image(image)
                    filename = self.make_filename(index + 1, mime_type)
                    asset = await self._upload(image_data, filename, mime_type, item_metadata)
                except Exception as exc:
                    message = str(exc) or "Upload failed"
                    logger.warning("Upload of item %d (%s) failed: %s", index, filename, message)
                    self.errors.append(UploadItemError(index=index, error=message))
                else:
                    uploaded.append(asset)
                self._set_progress(UploadProgress.of(len(uploaded), total), on_progress)
        finally:
            self.uploading = False

        if self.errors:
            logger.warning("Batch upload finished with %d of %d failure(s).", len(self.errors), total)
        if uploaded and on_select is not None:
            on_select([asset.reference() for asset in uploaded])
        return uploaded

    def _set_progress(self, progress: UploadProgress, on_progress) -> None:
        self.progress = progress
        if on_progress is not None:
            on_progress(progress)


def _unpack_image(image: Any) -> tuple[str, str]:
    if isinstance(image, dict):
        image_data = image.get("imageData") or image.get("image_data")
        mime_type = image.get("mimeType") or image.get("mime_type")
    else:
        image_data = getattr(image, "image_data", None)
        mime_type = getattr(image, "mime_type", None)
    if not image_data:
        raise UploadError("Image data is required")
    return image_data, mime_type or DEFAULT_MIME_TYPE
