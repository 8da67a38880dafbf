"""Holder reconciliation — rebuild a mint's holders map and reserves from chain.

The chain is authoritative: every run replaces the holders map in full and
overwrites whatever optimistic trade deltas were applied in between.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from loguru import logger

from src.chain.addresses import CurveAddresses
from src.chain.curve_account import CurveAccount, decode_curve_account
from src.chain.rpc import SolanaRpcClient
from src.curve.constants import BONDING_CURVE, TREASURY_LOCKED
from src.ledger.events import EventSink, NullSink, holdings_event
from src.ledger.models import MintRecord, Phase, UnknownMintError
from src.ledger.store import LedgerStore


def build_holders_map(
    balances: Mapping[str, int] | Iterable[tuple[str, int]],
    pool_owner: str,
    treasury_owner: str,
) -> dict[str, int]:
    """Sum balances by owner, folding the curve's PDAs into pseudo-owners.

    Both pseudo-owner keys are always present (0 when nothing is held).
    """
    pairs = balances.items() if isinstance(balances, Mapping) else balances
    holders: dict[str, int] = {BONDING_CURVE: 0, TREASURY_LOCKED: 0}
    for owner, amount in pairs:
        if owner == pool_owner:
            key = BONDING_CURVE
        elif owner == treasury_owner:
            key = TREASURY_LOCKED
        else:
            key = owner
        holders[key] = holders.get(key, 0) + int(amount)
    return holders


@dataclass
class ReconcileResult:
    mint: str
    ok: bool
    holders: int = 0
    reserve_sol_lamports: int = 0
    pool_base: int = 0
    phase: str | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "mint": self.mint,
            "ok": self.ok,
            "holders": self.holders,
            "reserveSolLamports": self.reserve_sol_lamports,
            "poolBase": str(self.pool_base),
            "phase": self.phase,
            "error": self.error,
        }


class HolderReconciler:
    """Resync ledger + holders for one or all mints from on-chain state."""

    def __init__(
        self,
        rpc: SolanaRpcClient,
        store: LedgerStore,
        program_id: str,
        *,
        sink: EventSink | None = None,
    ) -> None:
        self._rpc = rpc
        self._store = store
        self._program_id = program_id
        self._sink: EventSink = sink or NullSink()

    async def reconcile_mint(self, mint: str) -> ReconcileResult:
        if not self._store.has(mint):
            raise UnknownMintError(mint)

        addrs = CurveAddresses.derive(mint, self._program_id)
        accounts = await self._rpc.get_token_accounts_for_mint(mint)
        holders = build_holders_map(
            ((acc.owner, acc.amount) for acc in accounts),
            pool_owner=str(addrs.pool),
            treasury_owner=str(addrs.treasury),
        )
        vault_lamports = await self._rpc.get_balance(str(addrs.sol_vault))

        curve: CurveAccount | None = None
        info = await self._rpc.get_account_info(str(addrs.pool))
        if info is not None:
            curve = decode_curve_account(info.data)

        def _apply(rec: MintRecord) -> None:
            rec.holders = holders
            led = rec.ledger
            led.reserve_sol_lamports = vault_lamports
            if curve is None:
                return
            led.total_supply = curve.total_supply
            led.reserve_token_base = curve.reserve_token
            if curve.reserve_snapshot_sol:
                led.reserve_snapshot_sol = curve.reserve_snapshot_sol
            if curve.reserve_snapshot_token:
                led.reserve_snapshot_token = curve.reserve_snapshot_token
            if rec.dev is None:
                rec.dev = curve.creator
            _sync_phase(rec, curve)

        record = await self._store.update(mint, _apply)
        pool_base = holders[BONDING_CURVE]

        self._sink.publish(
            holdings_event(
                mint,
                "chain",
                reserveSolLamports=vault_lamports,
                poolBase=str(pool_base),
                phase=record.ledger.phase.value,
            )
        )
        logger.info(
            f"[RECONCILE] {mint[:12]} holders={len(record.circulating_holders)} "
            f"pool={pool_base} vault={vault_lamports} phase={record.ledger.phase.value}"
        )
        return ReconcileResult(
            mint=mint,
            ok=True,
            holders=len(record.circulating_holders),
            reserve_sol_lamports=vault_lamports,
            pool_base=pool_base,
            phase=record.ledger.phase.value,
        )

    async def reconcile_all(self) -> list[ReconcileResult]:
        results: list[ReconcileResult] = []
        for mint in self._store.mints():
            try:
                results.append(await self.reconcile_mint(mint))
            except Exception as e:
                logger.warning(f"[RECONCILE] {mint[:12]} failed: {e}")
                results.append(ReconcileResult(mint=mint, ok=False, error=str(e)))
        ok = sum(1 for r in results if r.ok)
        logger.info(f"[RECONCILE] Resynced {ok}/{len(results)} mints")
        return results


def _sync_phase(rec: MintRecord, curve: CurveAccount) -> None:
    """Move the local phase forward to match chain; never backwards."""
    led = rec.ledger
    if curve.is_migrated:
        if led.raydium_pool == curve.raydium_pool:
            return
        led.mark_raydium_live(curve.raydium_pool)
    elif curve.phase.rank > led.phase.rank and curve.phase is not Phase.RAYDIUM_LIVE:
        led.advance_to(curve.phase)
