"""Reserve Ledger and holders map — per-mint bookkeeping for a curve."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from src.curve.constants import BONDING_CURVE, TREASURY_LOCKED


class PhaseTransitionError(ValueError):
    """Attempted to move a curve's phase backwards or skip finalization."""


class UnknownMintError(KeyError):
    pass


class Phase(str, Enum):
    ACTIVE = "Active"
    MIGRATING = "Migrating"
    RAYDIUM_LIVE = "RaydiumLive"

    @property
    def rank(self) -> int:
        return _PHASE_ORDER[self]


_PHASE_ORDER = {Phase.ACTIVE: 0, Phase.MIGRATING: 1, Phase.RAYDIUM_LIVE: 2}


class ReserveLedger(BaseModel):
    """Authoritative curve state for one mint.

    Phases only move forward; raydium_pool is set iff phase is RaydiumLive.
    """

    phase: Phase = Phase.ACTIVE
    total_supply: int = 0  # base units
    reserve_token_base: int = 0  # tokens still held by the curve
    reserve_sol_lamports: int = 0
    reserve_snapshot_sol: int | None = None
    reserve_snapshot_token: int | None = None
    raydium_pool: str | None = None
    raydium_base_vault: str | None = None
    raydium_vault_owner: str | None = None

    @property
    def tokens_sold(self) -> int:
        return self.total_supply - self.reserve_token_base

    def advance_to(self, phase: Phase) -> bool:
        """Move forward to ``phase``. Returns False if already there.

        RaydiumLive can only be reached through mark_raydium_live().
        """
        if phase is self.phase:
            return False
        if phase.rank < self.phase.rank:
            raise PhaseTransitionError(f"cannot move {self.phase.value} -> {phase.value}")
        if phase is Phase.RAYDIUM_LIVE:
            raise PhaseTransitionError("RaydiumLive requires a pool id; use mark_raydium_live()")
        self.phase = phase
        return True

    def mark_raydium_live(
        self,
        pool_id: str,
        *,
        base_vault: str | None = None,
        vault_owner: str | None = None,
    ) -> None:
        if not pool_id:
            raise PhaseTransitionError("RaydiumLive requires a non-empty pool id")
        if self.phase is Phase.RAYDIUM_LIVE and self.raydium_pool not in (None, pool_id):
            raise PhaseTransitionError(
                f"already RaydiumLive with pool {self.raydium_pool}, refusing {pool_id}"
            )
        self.phase = Phase.RAYDIUM_LIVE
        self.raydium_pool = pool_id
        self.raydium_base_vault = base_vault
        self.raydium_vault_owner = vault_owner


class MintRecord(BaseModel):
    """Persisted unit keyed by mint: ledger + derived holders map."""

    ledger: ReserveLedger = Field(default_factory=ReserveLedger)
    holders: dict[str, int] = Field(default_factory=dict)
    dev: str | None = None

    @property
    def bonding_curve_base(self) -> int:
        return self.holders.get(BONDING_CURVE, 0)

    @property
    def treasury_locked_base(self) -> int:
        return self.holders.get(TREASURY_LOCKED, 0)

    @property
    def circulating_holders(self) -> dict[str, int]:
        return {
            owner: amount
            for owner, amount in self.holders.items()
            if owner not in (BONDING_CURVE, TREASURY_LOCKED) and amount > 0
        }
