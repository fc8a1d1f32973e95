"""Framework-free entry point for serverless deployments.

:func:`handler` takes the pieces every function runtime can provide (method,
headers, raw body) and returns ``(status_code, headers, body_text)``.
:func:`lambda_handler` wraps it for API Gateway proxy events.

Both reuse :class:`~imagestudio.api.service.GenerationService`, so the
response contract is identical to the FastAPI app.  The service is built
from :func:`~imagestudio.core.config.get_config` on the first request and
kept for the lifetime of the runtime.
"""

from __future__ import annotations

import asyncio
import base64
import json
import logging
from collections.abc import Mapping
from typing import Any

from imagestudio.api.service import GenerationService
from imagestudio.core.config import get_config

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, X-API-Key",
}

_service: GenerationService | None = None


def get_service() -> GenerationService:
    global _service
    if _service is None:
        _service = GenerationService(get_config())
    return _service


def _header(headers: Mapping[str, str] | None, name: str) -> str | None:
    for key, value in (headers or {}).items():
        if key.lower() == name.lower():
            return value
    return None


def handler(
    method: str,
    headers: Mapping[str, str] | None,
    body: str | bytes | None,
    service: GenerationService | None = None,
) -> tuple[int, dict[str, str], str]:
    """Handle one HTTP request.

    Returns:
        ``(status_code, response_headers, json_body)``.  ``OPTIONS`` answers
        ``204`` with an empty body.
    """
    method = (method or "").upper()
    if method == "OPTIONS":
        return 204, dict(CORS_HEADERS), ""

    response_headers = {**CORS_HEADERS, "Content-Type": "application/json"}
    if method != "POST":
        return 405, response_headers, json.dumps({"error": "Method not allowed"})

    service = service or get_service()
    result = asyncio.run(service.handle(body or b"", api_key=_header(headers, "X-API-Key")))
    return result.status_code, response_headers, json.dumps(result.body)


def lambda_handler(event: dict, context: Any = None) -> dict:
    """Adapt an API Gateway proxy event to :func:`handler`."""
    method = event.get("httpMethod") or event.get("requestContext", {}).get("http", {}).get("method", "")
    body = event.get("body") or ""
    if body and event.get("isBase64Encoded"):
        body = base64.b64decode(body)

    status_code, headers, text = handler(method, event.get("headers"), body)
    return {"statusCode": status_code, "headers": headers, "body": text}
