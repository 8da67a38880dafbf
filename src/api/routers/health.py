"""Health check — no auth required."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from src.api.dependencies import get_services
from src.api.registry import ServiceRegistry

router = APIRouter(prefix="/api/v1", tags=["health"])


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_sec: int
    mints: int
    lut_nodes: int
    migration_enabled: bool
    subscribers: int


@router.get("/health", response_model=HealthResponse)
async def health_check(services: ServiceRegistry = Depends(get_services)) -> HealthResponse:
    return HealthResponse(
        status="ok",
        version="0.1.0",
        uptime_sec=services.uptime_sec,
        mints=len(services.store.mints()),
        lut_nodes=services.curve.nodes,
        migration_enabled=services.orchestrator is not None,
        subscribers=services.broker.subscriber_count,
    )
