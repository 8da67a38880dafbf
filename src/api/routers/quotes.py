"""Trade previews from the lookup table and the local ledger."""

from __future__ import annotations

import math
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.api.dependencies import get_services
from src.api.registry import ServiceRegistry
from src.curve.model import CurveModel
from src.ledger.models import Phase, UnknownMintError

router = APIRouter(prefix="/api/v1/quote", tags=["quotes"])


def _tokens_sold(services: ServiceRegistry, mint: str) -> int:
    try:
        led = services.store.ledger(mint)
    except UnknownMintError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown mint") from e
    if led.phase is not Phase.ACTIVE:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"trading closed: phase is {led.phase.value}",
        )
    return led.tokens_sold


def _price(curve: CurveModel, tokens_sold: int) -> float | None:
    price = curve.spot_price(curve.x_from_tokens_sold(tokens_sold))
    return None if math.isinf(price) else price


@router.get("/buy")
async def quote_buy(
    mint: str = Query(..., min_length=32, max_length=44),
    lamports: int = Query(..., gt=0),
    services: ServiceRegistry = Depends(get_services),
) -> dict[str, Any]:
    sold = _tokens_sold(services, mint)
    quote = services.curve.quote_buy(sold, lamports)
    return {
        "mint": mint,
        "lamportsIn": lamports,
        "tokensOut": str(quote.tokens_out),
        "lamportsUsed": quote.lamports_used,
        "spotPrice": _price(services.curve, sold),
    }


@router.get("/sell")
async def quote_sell(
    mint: str = Query(..., min_length=32, max_length=44),
    tokens: int = Query(..., gt=0, description="Base units"),
    services: ServiceRegistry = Depends(get_services),
) -> dict[str, Any]:
    sold = _tokens_sold(services, mint)
    if tokens > sold:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"cannot sell {tokens}: only {sold} sold",
        )
    lamports_out = services.curve.quote_sell(sold, tokens)
    return {
        "mint": mint,
        "tokensIn": str(tokens),
        "lamportsOut": lamports_out,
        "spotPrice": _price(services.curve, sold),
    }
