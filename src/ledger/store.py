"""JSON-backed ledger store keyed by mint.

Every mutation is a read-modify-write under that mint's asyncio.Lock,
followed by an atomic whole-document write (temp file + rename).
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from src.curve.constants import BONDING_CURVE
from src.ledger.events import EventSink, NullSink, holdings_event, phase_event
from src.ledger.models import MintRecord, Phase, ReserveLedger, UnknownMintError
from src.utils.atomic import atomic_write_json

DOC_VERSION = 1


@dataclass
class TradeDeltaResult:
    reserve_sol_lamports: int
    pool_base: int
    wallet_base: int | None


class LedgerStore:
    """Single source of truth for local curve bookkeeping."""

    def __init__(self, path: str | Path, *, sink: EventSink | None = None) -> None:
        self._path = Path(path)
        self._sink: EventSink = sink or NullSink()
        self._records: dict[str, MintRecord] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> None:
        if not self._path.exists():
            logger.info(f"[LEDGER] No ledger at {self._path}, starting empty")
            return
        with open(self._path, encoding="utf-8") as fh:
            doc = json.load(fh)
        mints = doc.get("mints", {}) if isinstance(doc, dict) else {}
        for mint, raw in mints.items():
            self._records[mint] = MintRecord.model_validate(raw)
        logger.info(f"[LEDGER] Loaded {len(self._records)} mints from {self._path}")

    def _save(self) -> None:
        doc = {
            "version": DOC_VERSION,
            "mints": {m: r.model_dump(mode="json") for m, r in self._records.items()},
        }
        atomic_write_json(self._path, doc)

    def _lock_for(self, mint: str) -> asyncio.Lock:
        lock = self._locks.get(mint)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[mint] = lock
        return lock

    # ─── Reads ────────────────────────────────────────────────────

    def mints(self) -> list[str]:
        return list(self._records)

    def has(self, mint: str) -> bool:
        return mint in self._records

    def get(self, mint: str) -> MintRecord:
        """Deep copy of a record; mutate through update() only."""
        record = self._records.get(mint)
        if record is None:
            raise UnknownMintError(mint)
        return record.model_copy(deep=True)

    def ledger(self, mint: str) -> ReserveLedger:
        return self.get(mint).ledger

    # ─── Writes ───────────────────────────────────────────────────

    async def register(self, mint: str, *, dev: str | None = None, total_supply: int = 0) -> MintRecord:
        """Add a mint if unknown. Existing records are left untouched."""
        async with self._lock_for(mint):
            record = self._records.get(mint)
            if record is None:
                record = MintRecord(
                    ledger=ReserveLedger(total_supply=total_supply, reserve_token_base=total_supply),
                    dev=dev,
                )
                self._records[mint] = record
                self._save()
                logger.info(f"[LEDGER] Registered {mint[:12]}")
            return record.model_copy(deep=True)

    async def update(self, mint: str, fn: Callable[[MintRecord], None]) -> MintRecord:
        """Apply ``fn`` to a working copy and commit it atomically.

        If ``fn`` raises, nothing is written.
        """
        async with self._lock_for(mint):
            return self._update_unlocked(mint, fn)

    def _update_unlocked(self, mint: str, fn: Callable[[MintRecord], None]) -> MintRecord:
        current = self._records.get(mint)
        if current is None:
            raise UnknownMintError(mint)
        working = current.model_copy(deep=True)
        fn(working)
        self._records[mint] = working
        self._save()
        return working.model_copy(deep=True)

    async def advance_phase(self, mint: str, phase: Phase) -> bool:
        changed = False

        def _apply(rec: MintRecord) -> None:
            nonlocal changed
            changed = rec.ledger.advance_to(phase)

        await self.update(mint, _apply)
        if changed:
            logger.info(f"[LEDGER] {mint[:12]} phase -> {phase.value}")
        return changed

    async def mark_raydium_live(
        self,
        mint: str,
        pool_id: str,
        *,
        base_vault: str | None = None,
        vault_owner: str | None = None,
    ) -> MintRecord:
        record = await self.update(
            mint,
            lambda rec: rec.ledger.mark_raydium_live(
                pool_id, base_vault=base_vault, vault_owner=vault_owner
            ),
        )
        logger.info(f"[LEDGER] {mint[:12]} RaydiumLive pool={pool_id}")
        return record

    async def apply_trade_delta(
        self,
        mint: str,
        *,
        side: str,
        token_amount_base: int,
        sol_lamports: int,
        wallet: str | None = None,
    ) -> TradeDeltaResult:
        """Optimistic local update ahead of ledger confirmation.

        buy:  curve tokens down, reserve SOL up, wallet tokens up.
        sell: curve tokens up, reserve SOL down, wallet tokens down.
        All balances clamp at zero. Reconciliation later replaces them.
        """
        if side not in ("buy", "sell"):
            raise ValueError(f"side must be 'buy' or 'sell', got {side!r}")
        if token_amount_base < 0 or sol_lamports < 0:
            raise ValueError("token_amount_base and sol_lamports must be >= 0")

        sign = 1 if side == "buy" else -1
        owner = (wallet or "").strip() or None
        result: TradeDeltaResult | None = None

        def _apply(rec: MintRecord) -> None:
            nonlocal result
            if rec.ledger.phase is not Phase.ACTIVE:
                raise ValueError(f"trading closed: phase is {rec.ledger.phase.value}")
            led = rec.ledger
            led.reserve_sol_lamports = max(0, led.reserve_sol_lamports + sign * sol_lamports)
            led.reserve_token_base = max(0, led.reserve_token_base - sign * token_amount_base)

            pool_base = max(0, rec.holders.get(BONDING_CURVE, 0) - sign * token_amount_base)
            rec.holders[BONDING_CURVE] = pool_base

            wallet_base = None
            if owner:
                wallet_base = max(0, rec.holders.get(owner, 0) + sign * token_amount_base)
                rec.holders[owner] = wallet_base

            result = TradeDeltaResult(
                reserve_sol_lamports=led.reserve_sol_lamports,
                pool_base=pool_base,
                wallet_base=wallet_base,
            )

        async with self._lock_for(mint):
            if mint not in self._records:
                self._records[mint] = MintRecord()
            self._update_unlocked(mint, _apply)

        assert result is not None
        dev = self._records[mint].dev
        self._sink.publish(
            holdings_event(
                mint,
                "internal",
                side=side,
                solLamports=sol_lamports,
                wallet=owner,
                isDev=bool(owner and dev and owner == dev),
                reserveSolLamports=result.reserve_sol_lamports,
                poolBase=str(result.pool_base),
            )
        )
        return result

    def publish_phase(self, mint: str, phase: Phase, **extra) -> None:
        self._sink.publish(phase_event(mint, phase.value, **extra))
