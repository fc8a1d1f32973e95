"""Tests for imagestudio.core.upload — sequential asset uploads.

Tests cover:
- Base64 decoding (plain and data-URL payloads, invalid input).
- Filenames and extensions.
- Batch progress, per-item failures and strict ordering.
- The Sanity asset store over ``httpx.MockTransport``.
"""

from __future__ import annotations

import asyncio
import base64
import json

import httpx
import pytest

from imagestudio.core.config import StudioConfig
from imagestudio.core.exceptions import ConfigurationError, UploadError
from imagestudio.core.models import (
    GenerationMetadata,
    ImagePayload,
    SeriesImageResult,
    UploadedAsset,
    UploadItemError,
    UploadProgress,
    progress_percentage,
)
from imagestudio.core.upload import (
    SanityAssetStore,
    UploadPipeline,
    decode_image_payload,
    extension_for,
)


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


class FakeAssetStore:
    """Records uploads; fails those whose payload is in ``failing``."""

    def __init__(self, failing: set[bytes] | None = None):
        self.failing = failing or set()
        self.uploads: list[dict] = []
        self.active = 0
        self.max_active = 0

    async def upload_image(self, data, *, filename, content_type, title=None, description=None):
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(0)
            self.uploads.append(
                {
                    "data": data,
                    "filename": filename,
                    "content_type": content_type,
                    "title": title,
                    "description": description,
                }
            )
            if data in self.failing:
                raise UploadError("asset store unavailable", status_code=503)
            return UploadedAsset(id=f"image-{len(self.uploads)}", original_filename=filename)
        finally:
            self.active -= 1


def fixed_clock():
    return 1700000000.5


class TestDecodeImagePayload:
    def test_round_trip(self):
        raw = bytes(range(256))
        assert decode_image_payload(b64(raw)) == raw

    def test_data_url_prefix_stripped(self):
        assert decode_image_payload("data:image/png;base64," + b64(b"pixels")) == b"pixels"

    @pytest.mark.parametrize("payload", ["not base64!", "abc"])
    def test_invalid_payload(self, payload):
        with pytest.raises(UploadError, match="Invalid base64"):
            decode_image_payload(payload)

    @pytest.mark.parametrize("payload", ["", "data:image/png;base64,"])
    def test_empty_payload(self, payload):
        with pytest.raises(UploadError, match="Image data is required"):
            decode_image_payload(payload)


class TestFilenames:
    @pytest.mark.parametrize(
        "mime_type, extension",
        [("image/png", ".png"), ("image/jpeg", ".jpg"), (None, ".png"), ("image/x-unknown", ".png")],
    )
    def test_extension_for(self, mime_type, extension):
        assert extension_for(mime_type) == extension

    def test_make_filename(self):
        pipeline = UploadPipeline(FakeAssetStore(), clock=fixed_clock)
        assert pipeline.make_filename(2, "image/jpeg") == "gemini-series-1700000000500-2.jpg"


class TestProgress:
    @pytest.mark.parametrize(
        "completed, total, expected",
        [(0, 4, 0), (1, 4, 25), (3, 4, 75), (1, 3, 33), (2, 3, 67), (1, 8, 13), (5, 0, 0)],
    )
    def test_percentage(self, completed, total, expected):
        assert progress_percentage(completed, total) == expected

    def test_of(self):
        assert UploadProgress.of(3, 4) == UploadProgress(completed=3, total=4, percentage=75)


class TestUploadBatch:
    def test_failure_in_the_middle(self):
        images = [ImagePayload(image_data=b64(f"img-{n}".encode())) for n in range(4)]
        store = FakeAssetStore(failing={b"img-2"})
        pipeline = UploadPipeline(store, clock=fixed_clock)
        reported: list[UploadProgress] = []

        assets = asyncio.run(pipeline.upload_batch(images, on_progress=reported.append))

        assert len(assets) == 3
        assert pipeline.errors == [UploadItemError(index=2, error="asset store unavailable")]
        assert pipeline.progress == UploadProgress(completed=3, total=4, percentage=75)
        assert [(p.completed, p.percentage) for p in reported] == [
            (0, 0),
            (1, 25),
            (2, 50),
            (2, 50),
            (3, 75),
        ]
        assert not pipeline.uploading

    def test_strictly_sequential_in_input_order(self):
        images = [ImagePayload(image_data=b64(f"img-{n}".encode())) for n in range(5)]
        store = FakeAssetStore()
        pipeline = UploadPipeline(store, clock=fixed_clock)

        asyncio.run(pipeline.upload_batch(images))

        assert store.max_active == 1
        assert [upload["data"] for upload in store.uploads] == [f"img-{n}".encode() for n in range(5)]
        assert [upload["filename"] for upload in store.uploads] == [
            f"gemini-series-1700000000500-{position}.png" for position in range(1, 6)
        ]

    def test_completed_never_decreases(self):
        images = [ImagePayload(image_data=b64(f"img-{n}".encode())) for n in range(6)]
        store = FakeAssetStore(failing={b"img-0", b"img-3", b"img-4"})
        reported: list[UploadProgress] = []

        asyncio.run(UploadPipeline(store).upload_batch(images, on_progress=reported.append))

        completed = [p.completed for p in reported]
        assert completed == sorted(completed)
        assert reported[-1] == UploadProgress.of(3, 6)

    def test_new_batch_resets_state(self):
        store = FakeAssetStore(failing={b"bad"})
        pipeline = UploadPipeline(store)
        asyncio.run(pipeline.upload_batch([ImagePayload(image_data=b64(b"bad"))]))
        assert len(pipeline.errors) == 1

        asyncio.run(pipeline.upload_batch([ImagePayload(image_data=b64(b"good"))]))

        assert pipeline.errors == []
        assert pipeline.progress == UploadProgress(completed=1, total=1, percentage=100)

    def test_invalid_base64_is_a_per_item_failure(self):
        store = FakeAssetStore()
        pipeline = UploadPipeline(store)
        images = [ImagePayload(image_data="%%%"), ImagePayload(image_data=b64(b"ok"))]

        assets = asyncio.run(pipeline.upload_batch(images))

        assert len(assets) == 1
        assert pipeline.errors[0].index == 0
        assert "Invalid base64" in pipeline.errors[0].error

    def test_mapping_without_image_data_is_a_per_item_failure(self):
        store = FakeAssetStore()
        pipeline = UploadPipeline(store)
        images = [{"mimeType": "image/png"}, ImagePayload(image_data=b64(b"ok"))]

        assets = asyncio.run(pipeline.upload_batch(images))

        assert len(assets) == 1
        assert [upload["data"] for upload in store.uploads] == [b"ok"]
        assert pipeline.errors == [UploadItemError(index=0, error="Image data is required")]
        assert pipeline.progress == UploadProgress(completed=1, total=2, percentage=50)

    def test_item_without_image_data_attribute_does_not_abort_batch(self):
        store = FakeAssetStore()
        pipeline = UploadPipeline(store)
        images = [object(), ImagePayload(image_data=b64(b"ok"))]

        assets = asyncio.run(pipeline.upload_batch(images))

        assert len(assets) == 1
        assert pipeline.errors[0].index == 0
        assert not pipeline.uploading

    def test_metadata_becomes_description(self):
        store = FakeAssetStore()
        images = [
            SeriesImageResult(image_data=b64(b"a"), mime_type="image/jpeg", variation="front", index=0),
            {"imageData": b64(b"b"), "mimeType": "image/png"},
        ]
        metadata = [GenerationMetadata(prompt="red sneaker, front view"), None]

        asyncio.run(UploadPipeline(store, clock=fixed_clock).upload_batch(images, metadata))

        first, second = store.uploads
        assert first["description"] == "red sneaker, front view"
        assert first["content_type"] == "image/jpeg"
        assert first["title"] == "gemini-series-1700000000500-1"
        assert second["description"] is None
        assert second["filename"].endswith("-2.png")

    def test_on_select_receives_references(self):
        selected: list[list[dict]] = []
        images = [ImagePayload(image_data=b64(b"a")), ImagePayload(image_data=b64(b"b"))]

        asyncio.run(UploadPipeline(FakeAssetStore()).upload_batch(images, on_select=selected.append))

        assert selected == [
            [
                {"_type": "image", "asset": {"_type": "reference", "_ref": "image-1"}},
                {"_type": "image", "asset": {"_type": "reference", "_ref": "image-2"}},
            ]
        ]

    def test_on_select_not_called_when_everything_failed(self):
        selected: list = []
        store = FakeAssetStore(failing={b"a"})

        assets = asyncio.run(
            UploadPipeline(store).upload_batch(
                [ImagePayload(image_data=b64(b"a"))], on_select=selected.append
            )
        )

        assert assets == []
        assert selected == []

    def test_empty_batch(self):
        pipeline = UploadPipeline(FakeAssetStore())
        assert asyncio.run(pipeline.upload_batch([])) == []
        assert pipeline.progress == UploadProgress(completed=0, total=0, percentage=0)


class TestUploadImage:
    def test_single_upload(self):
        store = FakeAssetStore()
        selected: list = []
        asset = asyncio.run(
            UploadPipeline(store).upload_image(
                b64(b"pixels"), "hero.png", GenerationMetadata(prompt="hero"), on_select=selected.append
            )
        )
        assert asset.id == "image-1"
        assert store.uploads[0]["data"] == b"pixels"
        assert store.uploads[0]["title"] == "hero"
        assert selected == [[asset.reference()]]

    def test_single_upload_failure_raises(self):
        pipeline = UploadPipeline(FakeAssetStore(failing={b"pixels"}))
        with pytest.raises(UploadError):
            asyncio.run(pipeline.upload_image(b64(b"pixels"), "hero.png"))
        assert not pipeline.uploading


class TestSanityAssetStore:
    URL = "https://abc123.api.sanity.io/v2024-01-01/assets/images/production"

    def test_upload(self):
        seen: list[httpx.Request] = []

        def respond(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            document = {
                "_id": "image-abc-100x100-png",
                "url": "https://cdn.example/image.png",
                "originalFilename": "shot.png",
                "mimeType": "image/png",
            }
            return httpx.Response(200, json={"document": document})

        store = SanityAssetStore(self.URL, "token-1", transport=httpx.MockTransport(respond))
        asset = asyncio.run(
            store.upload_image(
                b"pixels", filename="shot.png", content_type="image/png", title="shot", description="a shot"
            )
        )

        assert asset.id == "image-abc-100x100-png"
        assert asset.url == "https://cdn.example/image.png"
        request = seen[0]
        assert request.method == "POST"
        assert request.content == b"pixels"
        assert request.headers["Authorization"] == "Bearer token-1"
        assert request.headers["Content-Type"] == "image/png"
        assert request.url.params["filename"] == "shot.png"
        assert request.url.params["description"] == "a shot"

    def test_http_error_status(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(401, json={"error": "nope"}))
        store = SanityAssetStore(self.URL, transport=transport)
        with pytest.raises(UploadError) as exc_info:
            asyncio.run(store.upload_image(b"x", filename="x.png", content_type="image/png"))
        assert exc_info.value.status_code == 401

    def test_transport_error(self):
        def fail(request):
            raise httpx.ConnectError("connection refused", request=request)

        store = SanityAssetStore(self.URL, transport=httpx.MockTransport(fail))
        with pytest.raises(UploadError, match="connection refused"):
            asyncio.run(store.upload_image(b"x", filename="x.png", content_type="image/png"))

    def test_missing_asset_id(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"document": {}}))
        store = SanityAssetStore(self.URL, transport=transport)
        with pytest.raises(UploadError, match="asset id"):
            asyncio.run(store.upload_image(b"x", filename="x.png", content_type="image/png"))

    def test_invalid_json(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"<html>"))
        store = SanityAssetStore(self.URL, transport=transport)
        with pytest.raises(UploadError, match="invalid response"):
            asyncio.run(store.upload_image(b"x", filename="x.png", content_type="image/png"))

    def test_from_config(self):
        config = StudioConfig(sanity_project_id="abc123", sanity_token="tok", _env_file=None)
        store = SanityAssetStore.from_config(config)
        assert store.upload_url == self.URL

    def test_from_config_override_url(self):
        config = StudioConfig(asset_store_url="http://assets.local/upload", _env_file=None)
        assert SanityAssetStore.from_config(config).upload_url == "http://assets.local/upload"

    def test_from_config_unconfigured(self, monkeypatch):
        monkeypatch.delenv("IMAGESTUDIO_SANITY_PROJECT_ID", raising=False)
        monkeypatch.delenv("IMAGESTUDIO_ASSET_STORE_URL", raising=False)
        with pytest.raises(ConfigurationError, match="Asset store not configured"):
            SanityAssetStore.from_config(StudioConfig(_env_file=None))


def test_payload_dump_is_camel_case():
    payload = ImagePayload(image_data="YWJj", mime_type="image/png")
    assert json.loads(payload.model_dump_json(by_alias=True)) == {
        "imageData": "YWJj",
        "mimeType": "image/png",
    }
