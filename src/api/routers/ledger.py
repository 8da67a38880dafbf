"""Ledger endpoints — chain resync and optimistic holdings updates."""

from __future__ import annotations

from typing import Any, Literal

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from src.api.dependencies import get_reconciler, get_services
from src.api.registry import ServiceRegistry
from src.ledger.models import UnknownMintError
from src.migration.reconcile import HolderReconciler

router = APIRouter(prefix="/api/v1", tags=["ledger"])


class ResyncRequest(BaseModel):
    mint: str | None = None


class UpdateHoldingsRequest(BaseModel):
    mint: str = Field(min_length=32, max_length=44)
    type: Literal["buy", "sell"]
    tokenAmountBase: int = Field(ge=0)
    solLamports: int = Field(ge=0)
    wallet: str | None = None


@router.post("/resync")
async def resync(
    body: ResyncRequest | None = None,
    reconciler: HolderReconciler = Depends(get_reconciler),
) -> dict[str, Any]:
    """Rebuild holders from chain for one mint, or all mints when none given."""
    mint = (body.mint or "").strip() if body else ""
    if mint:
        try:
            result = await reconciler.reconcile_mint(mint)
        except UnknownMintError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown mint") from e
        return {"ok": True, **result.to_dict()}
    results = await reconciler.reconcile_all()
    return {"ok": True, "results": [r.to_dict() for r in results]}


@router.post("/update-holdings")
async def update_holdings(
    body: UpdateHoldingsRequest,
    services: ServiceRegistry = Depends(get_services),
) -> dict[str, Any]:
    """Apply a trade to the local ledger ahead of the next chain resync."""
    try:
        result = await services.store.apply_trade_delta(
            body.mint,
            side=body.type,
            token_amount_base=body.tokenAmountBase,
            sol_lamports=body.solLamports,
            wallet=body.wallet,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    return {
        "ok": True,
        "mint": body.mint,
        "reserveSolLamports": result.reserve_sol_lamports,
        "poolBase": str(result.pool_base),
        "walletBase": None if result.wallet_base is None else str(result.wallet_base),
    }


@router.get("/ledger/{mint}")
async def get_ledger(mint: str, services: ServiceRegistry = Depends(get_services)) -> dict[str, Any]:
    try:
        record = services.store.get(mint)
    except UnknownMintError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown mint") from e
    led = record.ledger
    return {
        "mint": mint,
        "phase": led.phase.value,
        "tokensSold": str(led.tokens_sold),
        "reserveSolLamports": led.reserve_sol_lamports,
        "raydiumPool": led.raydium_pool,
        "raydiumBaseVault": led.raydium_base_vault,
        "raydiumVaultOwner": led.raydium_vault_owner,
        "bondingCurve": str(record.bonding_curve_base),
        "treasuryLocked": str(record.treasury_locked_base),
        "holders": {owner: str(amount) for owner, amount in record.circulating_holders.items()},
        "dev": record.dev,
    }
