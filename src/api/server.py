"""API server — runs uvicorn inside the existing asyncio event loop."""

from __future__ import annotations

import uvicorn
from loguru import logger

from src.api.registry import ServiceRegistry


async def run_api_server(services: ServiceRegistry, host: str, port: int) -> None:
    """Start uvicorn serving the FastAPI app.

    Runs as an asyncio task alongside the resync / auto-migration loops.
    """
    from src.api.app import create_app

    app = create_app(services)
    config = uvicorn.Config(
        app=app,
        host=host,
        port=port,
        log_level="warning",
        loop="none",  # use the existing event loop
    )
    server = uvicorn.Server(config)
    logger.info(f"Launchpad API starting on http://{host}:{port}")
    await server.serve()
