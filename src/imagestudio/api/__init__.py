"""Image Studio - HTTP adapter layer.

This package exposes the generation endpoint over HTTP.

Modules
-------
main
    FastAPI application factory, routes, and the ``main()`` CLI entry point.
models
    Pydantic models for the camelCase request body.
service
    Transport-independent request handling and the response contract.
serverless
    Framework-free handler for function runtimes (API Gateway events).
"""
