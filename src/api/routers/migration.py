"""Migration endpoints — single mint, full scan, on-chain pool info."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from loguru import logger
from pydantic import BaseModel, Field

from src.api.dependencies import get_orchestrator, get_services
from src.api.registry import ServiceRegistry
from src.chain.addresses import CurveAddresses
from src.chain.curve_account import CurveAccountDecodeError, decode_curve_account
from src.chain.rpc import RpcError
from src.migration.errors import MigrationError
from src.migration.orchestrator import MigrationOrchestrator

router = APIRouter(prefix="/api/v1", tags=["migration"])


class MigrateOneRequest(BaseModel):
    mint: str = Field(min_length=32, max_length=44)


@router.post("/migrate/one")
async def migrate_one(
    body: MigrateOneRequest,
    orchestrator: MigrationOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    """Migrate one mint if its curve is capped. Skips are 200s."""
    try:
        outcome = await orchestrator.migrate_if_ready(body.mint)
    except MigrationError as e:
        logger.error(f"[MIGRATE] POST /migrate/one {body.mint[:12]}: {e}")
        code = status.HTTP_502_BAD_GATEWAY if e.retryable else status.HTTP_500_INTERNAL_SERVER_ERROR
        raise HTTPException(
            status_code=code,
            detail={
                "error": str(e),
                "reason": e.reason,
                "retryable": e.retryable,
                "signature": getattr(e, "signature", None),
            },
        ) from e
    except RpcError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e)) from e
    return outcome.to_dict()


@router.post("/migrate/scan")
async def migrate_scan(
    orchestrator: MigrationOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    outcomes = await orchestrator.migrate_all()
    return {"ok": True, "summary": [o.to_dict() for o in outcomes]}


@router.get("/pool-info")
async def pool_info(
    mint: str = Query(..., min_length=32, max_length=44),
    services: ServiceRegistry = Depends(get_services),
) -> dict[str, Any]:
    """Decoded curve account straight from chain."""
    if services.rpc is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="RPC unavailable")
    try:
        addrs = CurveAddresses.derive(mint, services.program_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid mint") from e

    try:
        info = await services.rpc.get_account_info(str(addrs.pool))
    except RpcError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e)) from e
    if info is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="curve not found")
    try:
        curve = decode_curve_account(info.data)
    except CurveAccountDecodeError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e)) from e

    return {
        "ok": True,
        "mint": mint,
        "poolPDA": str(addrs.pool),
        "phase": curve.phase.value,
        "raydiumPool": curve.raydium_pool,
        "totalSupply": str(curve.total_supply),
        "reserveToken": str(curve.reserve_token),
        "reserveSol": curve.reserve_sol,
        "tokensSold": str(curve.tokens_sold),
    }
