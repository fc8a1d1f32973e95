"""Image Studio - FastAPI Application.

This module defines the FastAPI application factory, its routes, and the
``main()`` CLI function that launches the uvicorn server.

Architecture
------------
- **Configuration** is a frozen :class:`~imagestudio.core.config.StudioConfig`
  built once at start-up and shared by every component.
- **Request handling** lives in :class:`~imagestudio.api.service.GenerationService`;
  the routes here only read the raw body and the ``X-API-Key`` header and
  turn the service's :class:`~imagestudio.api.service.AdapterResponse` into
  a ``JSONResponse``.  The body is parsed by the service rather than by a
  FastAPI model so that malformed requests answer ``400 {"error": ...}``
  like every other rejection, instead of FastAPI's ``422`` detail list.
- **Presets** (prompt, edit and variation templates) are served to the
  studio via ``GET /api/config``.

Endpoints
---------
========  ================================  =================================
Method    Path                              Purpose
========  ================================  =================================
GET       ``/api/config``                   Version, ratios, levels, presets
POST      ``/api/gemini/generate-image``    Generate, edit, or run a series
other     ``/api/gemini/generate-image``    ``405 {"error": ...}``
========  ================================  =================================

Usage
-----
CLI (installed entry point)::

    imagestudio

Direct invocation::

    python -m imagestudio.api.main
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Header, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from imagestudio import __version__
from imagestudio.api.service import GenerationService
from imagestudio.core.config import StudioConfig, get_config
from imagestudio.core.consistency import CONSISTENCY_LEVELS
from imagestudio.core.models import ASPECT_RATIOS
from imagestudio.core.series import MAX_SERIES_QUANTITY, MIN_SERIES_QUANTITY
from imagestudio.core.templates import template_catalogue

logger = logging.getLogger(__name__)

GENERATE_PATH = "/api/gemini/generate-image"


def create_app(
    config: StudioConfig | None = None,
    service: GenerationService | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        config: Settings to use.  Defaults to :func:`get_config`.
        service: Request handler.  Defaults to a :class:`GenerationService`
            over *config*; tests inject one wired to a fake image client.

    Returns:
        The configured application.  The config and service are available on
        ``app.state``.
    """
    config = config or (service.config if service is not None else get_config())
    service = service or GenerationService(config)

    app = FastAPI(
        title="Image Studio",
        description="Gemini image generation, editing and series generation API.",
        version=__version__,
    )
    app.state.config = config
    app.state.service = service

    # The studio runs inside the CMS on another origin.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-API-Key"],
    )

    @app.get("/api/config")
    async def studio_config() -> dict:
        """Return what the studio needs to build its forms.

        The response includes:

        - ``version`` - API version string.
        - ``configured`` - whether a Gemini API key is present.
        - ``aspectRatios`` and ``consistencyLevels``.
        - ``series`` - quantity bounds and the execution strategy.
        - the prompt, edit and variation template catalogues.
        """
        return {
            "version": __version__,
            "configured": app.state.service.configured,
            "model": config.gemini_model,
            "aspectRatios": list(ASPECT_RATIOS),
            "consistencyLevels": list(CONSISTENCY_LEVELS),
            "series": {
                "minQuantity": MIN_SERIES_QUANTITY,
                "maxQuantity": MAX_SERIES_QUANTITY,
                "strategy": config.series_strategy,
            },
            **template_catalogue(),
        }

    @app.post(GENERATE_PATH)
    async def generate_image(
        request: Request,
        x_api_key: str | None = Header(default=None),
    ) -> JSONResponse:
        """Generate one image, edit one image, or run a series."""
        body = await request.body()
        result = await app.state.service.handle(body, api_key=x_api_key)
        return JSONResponse(status_code=result.status_code, content=result.body)

    @app.api_route(GENERATE_PATH, methods=["GET", "PUT", "PATCH", "DELETE", "OPTIONS"])
    async def method_not_allowed() -> JSONResponse:
        return JSONResponse(status_code=405, content={"error": "Method not allowed"})

    return app


app = create_app()


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host, port and log level from :func:`get_config` (which loads
    ``IMAGESTUDIO_SERVER_HOST``, ``IMAGESTUDIO_SERVER_PORT`` and
    ``IMAGESTUDIO_LOG_LEVEL``).  Defaults to ``0.0.0.0:7860``.

    This function is registered as the ``imagestudio`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    config = get_config()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.info("Starting Image Studio %s on %s:%d", __version__, config.server_host, config.server_port)

    uvicorn.run(
        "imagestudio.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
