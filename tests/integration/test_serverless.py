"""Integration tests for imagestudio.api.serverless — function-runtime handlers."""

from __future__ import annotations

import base64
import json

import pytest

from imagestudio.api import serverless
from imagestudio.api.serverless import CORS_HEADERS, handler, lambda_handler
from imagestudio.api.service import GenerationService
from imagestudio.core.config import StudioConfig


@pytest.fixture
def installed_service(service, monkeypatch):
    """Make the module-level service the test service."""
    monkeypatch.setattr(serverless, "_service", service)
    return service


class TestHandler:
    def test_options_preflight(self, service):
        status, headers, body = handler("OPTIONS", {}, None, service=service)
        assert status == 204
        assert body == ""
        assert headers["Access-Control-Allow-Origin"] == "*"
        assert "X-API-Key" in headers["Access-Control-Allow-Headers"]

    @pytest.mark.parametrize("method", ["GET", "PUT", "DELETE"])
    def test_other_methods(self, service, method):
        status, headers, body = handler(method, {}, None, service=service)
        assert status == 405
        assert json.loads(body) == {"error": "Method not allowed"}
        assert headers["Content-Type"] == "application/json"

    def test_post_single(self, service, fake_image_client):
        status, headers, body = handler(
            "post", {"content-type": "application/json"}, json.dumps({"prompt": "a cat"}), service=service
        )
        assert status == 200
        assert set(json.loads(body)) == {"imageData", "mimeType"}
        assert headers["Access-Control-Allow-Origin"] == CORS_HEADERS["Access-Control-Allow-Origin"]
        assert len(fake_image_client.calls) == 1

    def test_post_empty_body(self, service):
        status, _, body = handler("POST", None, None, service=service)
        assert status == 400
        assert json.loads(body) == {"error": "Prompt is required"}

    def test_api_key_header_case_insensitive(self, fake_image_client):
        config = StudioConfig(GEMINI_API_KEY="k", access_key="shared", _env_file=None)
        service = GenerationService(config, image_client=fake_image_client)

        denied, _, _ = handler("POST", {}, json.dumps({"prompt": "a cat"}), service=service)
        allowed, _, _ = handler(
            "POST", {"x-api-key": "shared"}, json.dumps({"prompt": "a cat"}), service=service
        )

        assert denied == 401
        assert allowed == 200


class TestLambdaHandler:
    def test_rest_api_event(self, installed_service):
        event = {
            "httpMethod": "POST",
            "headers": {"Content-Type": "application/json"},
            "body": json.dumps(
                {
                    "prompt": "red sneaker",
                    "series": {"quantity": 2, "variations": ["front view", "side view"]},
                }
            ),
        }

        result = lambda_handler(event, None)

        assert result["statusCode"] == 200
        assert len(json.loads(result["body"])["images"]) == 2

    def test_http_api_event_base64_body(self, installed_service):
        raw = json.dumps({"prompt": "a cat"}).encode()
        event = {
            "requestContext": {"http": {"method": "POST"}},
            "headers": {},
            "body": base64.b64encode(raw).decode(),
            "isBase64Encoded": True,
        }

        assert lambda_handler(event)["statusCode"] == 200

    def test_options_event(self, installed_service):
        result = lambda_handler({"httpMethod": "OPTIONS"})
        assert result["statusCode"] == 204
        assert result["body"] == ""
