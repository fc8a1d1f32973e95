"""Core functionality for Image Studio.

Everything here is independent of the HTTP layer:

- **config**: Settings loaded with Pydantic Settings (``IMAGESTUDIO_`` prefix)
- **consistency**: Prompt composition for consistent image series
- **generation_client**: One Gemini image call per invocation
- **series**: Series validation and parallel/sequential execution
- **upload**: Sequential asset-store uploads with progress reporting
- **session_store**: Saved history of generation sessions
- **studio_client**: HTTP client for the generation endpoint
- **templates**: Prompt, edit and variation presets

Data flow
---------
The studio sends one request to the generation endpoint (``studio_client``).
The endpoint runs one vendor call per image (``series`` over
``generation_client``, with prompts from ``consistency``).  Accepted images
go to the asset store (``upload``) and a summary is kept locally
(``session_store``).
"""
