"""Migration error taxonomy.

Skips are expected outcomes and are converted to MigrationOutcome by the
orchestrator. Everything else aborts the current mint.
"""

from __future__ import annotations


class MigrationError(Exception):
    """Base for all migration failures."""

    retryable: bool = False
    reason: str = "error"

    def __init__(self, message: str = "", *, mint: str | None = None) -> None:
        super().__init__(message or self.reason)
        self.mint = mint


class MigrationSkipped(MigrationError):
    """Precondition not met; nothing was submitted."""

    reason = "skipped"


class CurveNotFound(MigrationSkipped):
    reason = "not_found"


class AlreadyMigrated(MigrationSkipped):
    reason = "already_migrated"

    def __init__(self, message: str = "", *, mint: str | None = None, raydium_pool: str | None = None) -> None:
        super().__init__(message, mint=mint)
        self.raydium_pool = raydium_pool


class CapNotReached(MigrationSkipped):
    reason = "cap_not_reached"


class NoLiquidityError(MigrationError):
    """Neither the snapshot nor the SOL vault holds lamports."""

    reason = "no_liquidity"


class InsufficientLiquidity(MigrationError):
    """Base tokens available after the drain do not cover the pool deposit."""

    reason = "insufficient_liquidity"

    def __init__(self, *, have_now: int, planned_topup: int, need: int, mint: str | None = None) -> None:
        super().__init__(
            f"base tokens short: have_now={have_now} topup={planned_topup} need={need}",
            mint=mint,
        )
        self.have_now = have_now
        self.planned_topup = planned_topup
        self.need = need


class RaydiumConfigError(MigrationError):
    reason = "raydium_config"


class SubmissionFailure(MigrationError):
    """Transaction rejected, or not confirmed and the curve is unchanged."""

    retryable = True
    reason = "submission_failed"

    def __init__(self, message: str = "", *, mint: str | None = None, signature: str | None = None) -> None:
        super().__init__(message, mint=mint)
        self.signature = signature


class VerificationFailure(MigrationError):
    """Transaction confirmed but the curve is not RaydiumLive with a pool."""

    reason = "verification_failed"

    def __init__(self, message: str = "", *, mint: str | None = None, signature: str | None = None) -> None:
        super().__init__(message, mint=mint)
        self.signature = signature
