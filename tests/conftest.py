"""Shared pytest fixtures for Image Studio tests."""

from __future__ import annotations

import asyncio
import base64
import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient

from imagestudio.api.main import create_app
from imagestudio.api.service import GenerationService
from imagestudio.core.config import StudioConfig
from imagestudio.core.models import ImagePayload
from imagestudio.core.series import SeriesOrchestrator


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


class FakeImageClient:
    """Stand-in for :class:`GeminiImageClient` that never touches the network.

    Every call is recorded in ``calls``.  A call whose prompt contains a key
    of ``failures`` raises the mapped exception; ``delays`` maps prompt
    substrings to seconds to sleep before answering.
    """

    def __init__(self, failures: dict | None = None, delays: dict | None = None):
        self.failures = dict(failures or {})
        self.delays = dict(delays or {})
        self.calls: list[dict] = []

    async def generate_one(self, prompt, aspect_ratio=None, mode="generate", base_image=None):
        call_number = len(self.calls)
        self.calls.append(
            {
                "prompt": prompt,
                "aspect_ratio": aspect_ratio,
                "mode": mode,
                "base_image": base_image,
            }
        )
        for marker, seconds in self.delays.items():
            if marker in prompt:
                await asyncio.sleep(seconds)
        for marker, error in self.failures.items():
            if marker in prompt:
                raise error
        return ImagePayload(image_data=b64(f"image-{call_number}".encode()), mime_type="image/png")


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> StudioConfig:
    """Configuration with a fake Gemini key and no delays.

    Args:
        temp_dir: Temporary directory from fixture

    Returns:
        StudioConfig instance for testing
    """
    return StudioConfig(
        GEMINI_API_KEY="test-gemini-key",
        sessions_path=temp_dir / "sessions.json",
        sequential_delay_seconds=0.0,
        _env_file=None,
    )


@pytest.fixture
def fake_image_client() -> FakeImageClient:
    return FakeImageClient()


@pytest.fixture
def make_image_client():
    """Factory for fake image clients with scripted failures or delays."""
    return FakeImageClient


@pytest.fixture
def service(test_config: StudioConfig, fake_image_client: FakeImageClient) -> GenerationService:
    orchestrator = SeriesOrchestrator(fake_image_client, sequential_delay=0.0)
    return GenerationService(test_config, image_client=fake_image_client, orchestrator=orchestrator)


@pytest.fixture
def test_client(service: GenerationService) -> Generator[TestClient, None, None]:
    """FastAPI TestClient wired to the fake image client."""
    with TestClient(create_app(service=service)) as client:
        yield client


@pytest.fixture
def png_b64() -> str:
    """A small base64 payload that decodes cleanly."""
    return b64(b"\x89PNG\r\n\x1a\nfake-image-bytes")
