"""FastAPI application factory for the launchpad service."""

from __future__ import annotations

import os

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

from src.api.middleware import SecurityHeadersMiddleware
from src.api.registry import ServiceRegistry
from src.chain.rpc import RpcError
from src.ledger.models import PhaseTransitionError, UnknownMintError


def create_app(services: ServiceRegistry) -> FastAPI:
    """Build and configure the FastAPI application around ``services``."""
    app = FastAPI(
        title="Curve Launchpad API",
        version="0.1.0",
        docs_url="/api/docs" if os.getenv("API_DEBUG") else None,
        redoc_url=None,
        openapi_url="/api/openapi.json" if os.getenv("API_DEBUG") else None,
    )
    app.state.services = services

    app.add_middleware(SecurityHeadersMiddleware)

    # Browsers subscribe to the SSE stream cross-origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.exception_handler(UnknownMintError)
    async def _unknown_mint(_request: Request, exc: UnknownMintError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": f"Unknown mint {exc.args[0] if exc.args else ''}"})

    @app.exception_handler(PhaseTransitionError)
    async def _bad_phase(_request: Request, exc: PhaseTransitionError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(RpcError)
    async def _rpc_error(_request: Request, exc: RpcError) -> JSONResponse:
        return JSONResponse(status_code=502, content={"detail": str(exc)})

    # Import and include routers
    from src.api.routers.health import router as health_router
    from src.api.routers.ledger import router as ledger_router
    from src.api.routers.migration import router as migration_router
    from src.api.routers.quotes import router as quotes_router
    from src.api.routers.stream import router as stream_router

    app.include_router(health_router)
    app.include_router(migration_router)
    app.include_router(ledger_router)
    app.include_router(quotes_router)
    app.include_router(stream_router)

    return app
