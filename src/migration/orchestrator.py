"""Migration orchestrator — move a capped curve's reserves into a Raydium CPMM pool.

One atomic v0 transaction, signed by the migration authority:

  compute budget
  create authority token ATA (idempotent; destination of the drain)
  start_migration          drain pool/treasury tokens + vault SOL to authority
  create authority WSOL ATA (idempotent)
  system transfer + SyncNative
  CPMM initialize          token / WSOL deposit
  finalize_migration       record pool id, flip to RaydiumLive

After any submission the curve account is re-read; the chain decides success.
"""

from __future__ import annotations

import asyncio
import base64
from dataclasses import dataclass, field
from typing import Any

from loguru import logger
from solders.hash import Hash  # type: ignore[import-untyped]
from solders.message import MessageV0  # type: ignore[import-untyped]
from solders.pubkey import Pubkey  # type: ignore[import-untyped]
from solders.transaction import VersionedTransaction  # type: ignore[import-untyped]

from src.chain.addresses import WSOL_MINT, CurveAddresses, get_ata_address
from src.chain.curve_account import CurveAccount, CurveAccountDecodeError, decode_curve_account
from src.chain.instructions import (
    compute_unit_limit_ix,
    create_ata_idempotent_ix,
    finalize_migration_ix,
    start_migration_ix,
    sync_native_ix,
    transfer_lamports_ix,
)
from src.chain.rpc import Confirmation, RpcError, SolanaRpcClient
from src.chain.wallet import AuthorityWallet
from src.ledger.models import Phase
from src.ledger.store import LedgerStore
from src.migration.errors import (
    AlreadyMigrated,
    CapNotReached,
    CurveNotFound,
    InsufficientLiquidity,
    MigrationError,
    MigrationSkipped,
    NoLiquidityError,
    SubmissionFailure,
    VerificationFailure,
)
from src.migration.reconcile import HolderReconciler
from src.raydium.client import RaydiumApiClient
from src.raydium.cpmm import CreatePoolPlan, build_create_pool

DEFAULT_POOL_TOKENS = 200_000_000
DEFAULT_CAP_TOKENS = 800_000_000
DEFAULT_COMPUTE_UNITS = 400_000

STATUS_MIGRATED = "migrated"
STATUS_SKIPPED = "skipped"
STATUS_FAILED = "failed"


@dataclass
class MigrationOutcome:
    mint: str
    status: str
    reason: str | None = None
    signature: str | None = None
    raydium_pool: str | None = None
    raydium_base_vault: str | None = None
    raydium_vault_owner: str | None = None
    retryable: bool = False
    error: str | None = None
    links: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status != STATUS_FAILED

    def to_dict(self) -> dict[str, Any]:
        return {
            "mint": self.mint,
            "status": self.status,
            "reason": self.reason,
            "signature": self.signature,
            "raydiumPool": self.raydium_pool,
            "raydiumBaseVault": self.raydium_base_vault,
            "raydiumVaultOwner": self.raydium_vault_owner,
            "retryable": self.retryable,
            "error": self.error,
            "links": self.links,
        }


def check_base_liquidity(have_now: int, planned_topup: int, need: int) -> int:
    """Base tokens the authority holds once the drain lands.

    Raises InsufficientLiquidity if that does not cover ``need``.
    """
    have_post = have_now + planned_topup
    if have_post < need:
        raise InsufficientLiquidity(have_now=have_now, planned_topup=planned_topup, need=need)
    return have_post


def choose_liquidity_lamports(snapshot_sol: int, vault_lamports: int) -> int:
    """Snapshot taken at the Migrating flip wins; else the live vault balance."""
    lamports = snapshot_sol if snapshot_sol > 0 else vault_lamports
    if lamports <= 0:
        raise NoLiquidityError("no SOL in snapshot or vault")
    return lamports


def explorer_links(cluster: str, *, signature: str | None = None, pool: str | None = None) -> dict[str, str]:
    suffix = "?cluster=devnet" if cluster == "devnet" else ""
    links: dict[str, str] = {}
    if signature:
        links["explorerTx"] = f"https://explorer.solana.com/tx/{signature}{suffix}"
    if pool:
        links["explorerPool"] = f"https://explorer.solana.com/address/{pool}{suffix}"
    return links


class MigrationOrchestrator:
    """Checks preconditions, submits the migration batch, verifies on chain."""

    def __init__(
        self,
        rpc: SolanaRpcClient,
        raydium: RaydiumApiClient,
        store: LedgerStore,
        wallet: AuthorityWallet,
        program_id: str,
        *,
        reconciler: HolderReconciler | None = None,
        cluster: str = "devnet",
        cap_tokens: int = DEFAULT_CAP_TOKENS,
        pool_tokens: int = DEFAULT_POOL_TOKENS,
        fee_config_index: int | None = None,
        compute_units: int = DEFAULT_COMPUTE_UNITS,
        confirm_timeout: float = 60,
    ) -> None:
        self._rpc = rpc
        self._raydium = raydium
        self._store = store
        self._wallet = wallet
        self._program_id = program_id
        self._reconciler = reconciler
        self._cluster = cluster
        self._cap_tokens = cap_tokens
        self._pool_tokens = pool_tokens
        self._fee_config_index = fee_config_index
        self._compute_units = compute_units
        self._confirm_timeout = confirm_timeout
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, mint: str) -> asyncio.Lock:
        lock = self._locks.get(mint)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[mint] = lock
        return lock

    async def migrate_if_ready(self, mint: str) -> MigrationOutcome:
        """Migrate ``mint`` if its curve is capped and not yet live on Raydium.

        Skips come back as outcomes; other MigrationErrors and RpcError propagate.
        """
        async with self._lock_for(mint):
            try:
                return await self._migrate(mint)
            except MigrationSkipped as e:
                logger.info(f"[MIGRATE] {mint[:12]} skipped: {e.reason}")
                return MigrationOutcome(
                    mint=mint,
                    status=STATUS_SKIPPED,
                    reason=e.reason,
                    raydium_pool=getattr(e, "raydium_pool", None),
                    links=explorer_links(self._cluster, pool=getattr(e, "raydium_pool", None)),
                )

    async def migrate_all(self) -> list[MigrationOutcome]:
        """Run migrate_if_ready over every ledger mint; one failure never stops the rest."""
        outcomes: list[MigrationOutcome] = []
        for mint in self._store.mints():
            try:
                outcomes.append(await self.migrate_if_ready(mint))
            except MigrationError as e:
                logger.error(f"[MIGRATE] {mint[:12]} failed ({e.reason}): {e}")
                outcomes.append(
                    MigrationOutcome(
                        mint=mint,
                        status=STATUS_FAILED,
                        reason=e.reason,
                        signature=getattr(e, "signature", None),
                        retryable=e.retryable,
                        error=str(e),
                    )
                )
            except Exception as e:
                logger.error(f"[MIGRATE] {mint[:12]} failed: {type(e).__name__}: {e}")
                outcomes.append(
                    MigrationOutcome(
                        mint=mint,
                        status=STATUS_FAILED,
                        reason="error",
                        retryable=isinstance(e, RpcError),
                        error=str(e),
                    )
                )
        migrated = sum(1 for o in outcomes if o.status == STATUS_MIGRATED)
        failed = sum(1 for o in outcomes if o.status == STATUS_FAILED)
        logger.info(f"[MIGRATE] Scan done: {len(outcomes)} mints, {migrated} migrated, {failed} failed")
        return outcomes

    # ─── Single mint ──────────────────────────────────────────────

    async def _fetch_curve(self, addrs: CurveAddresses) -> CurveAccount | None:
        info = await self._rpc.get_account_info(str(addrs.pool))
        if info is None:
            return None
        try:
            return decode_curve_account(info.data)
        except CurveAccountDecodeError as e:
            # Not a curve account we can read; same as no curve
            logger.warning(f"[MIGRATE] {str(addrs.mint)[:12]} undecodable curve account at {addrs.pool}: {e}")
            return None

    async def _migrate(self, mint: str) -> MigrationOutcome:
        addrs = CurveAddresses.derive(mint, self._program_id)
        authority = self._wallet.pubkey

        curve = await self._fetch_curve(addrs)
        if curve is None:
            raise CurveNotFound(f"no curve account at {addrs.pool}", mint=mint)

        if curve.phase is Phase.RAYDIUM_LIVE or curve.raydium_pool:
            raise AlreadyMigrated(mint=mint, raydium_pool=curve.raydium_pool)

        decimals = await self._rpc.get_mint_decimals(mint)
        scale = 10**decimals
        cap_base = self._cap_tokens * scale
        if curve.phase is not Phase.MIGRATING and curve.tokens_sold < cap_base:
            raise CapNotReached(f"sold {curve.tokens_sold} < cap {cap_base}", mint=mint)

        token_ata = get_ata_address(authority, addrs.mint)
        wsol_ata = get_ata_address(authority, WSOL_MINT)

        # Tokens the drain will move to the authority
        pool_tokens_now = await self._rpc.get_token_account_balance(str(addrs.pool_token_account))
        treasury_tokens_now = await self._rpc.get_token_account_balance(str(addrs.treasury_token_account))
        planned_topup = pool_tokens_now + treasury_tokens_now

        vault_lamports = await self._rpc.get_balance(str(addrs.sol_vault))
        try:
            lamports = choose_liquidity_lamports(curve.reserve_snapshot_sol, vault_lamports)
        except NoLiquidityError as e:
            e.mint = mint
            raise

        need = self._pool_tokens * scale
        have_now = await self._rpc.get_token_account_balance(str(token_ata))
        try:
            check_base_liquidity(have_now, planned_topup, need)
        except InsufficientLiquidity as e:
            e.mint = mint
            raise

        fee_config = await self._raydium.select_fee_config(self._fee_config_index)
        plan = build_create_pool(
            cluster=self._cluster,
            creator=authority,
            fee_config=fee_config,
            base_mint=addrs.mint,
            quote_mint=WSOL_MINT,
            base_amount=need,
            quote_amount=lamports,
        )
        logger.info(
            f"[MIGRATE] {mint[:12]} ready: sold={curve.tokens_sold} tokens={need} "
            f"lamports={lamports} topup={planned_topup} pool={plan.keys.pool_state}"
        )

        instructions = [
            compute_unit_limit_ix(self._compute_units),
            create_ata_idempotent_ix(authority, token_ata, authority, addrs.mint),
            start_migration_ix(addrs, authority, token_ata),
            create_ata_idempotent_ix(authority, wsol_ata, authority, WSOL_MINT),
            transfer_lamports_ix(authority, wsol_ata, lamports),
            sync_native_ix(wsol_ata),
            plan.instruction,
            finalize_migration_ix(addrs, authority, Pubkey.from_string(plan.keys.pool_state)),
        ]

        tx_b64, signature = await self._build_and_sign(instructions)
        await self._mark_migrating(mint, curve)

        confirmation: Confirmation | None = None
        send_error: RpcError | None = None
        try:
            await self._rpc.send_transaction(tx_b64)
            confirmation = await self._rpc.wait_for_confirmation(
                signature, tx_b64, timeout=self._confirm_timeout
            )
        except RpcError as e:
            send_error = e
            logger.warning(f"[MIGRATE] {mint[:12]} send failed: {e}")

        return await self._verify(mint, addrs, plan, signature, confirmation, send_error)

    async def _mark_migrating(self, mint: str, curve: CurveAccount) -> None:
        """Record and announce Migrating before the batch goes out."""
        if not self._store.has(mint):
            await self._store.register(mint, dev=curve.creator, total_supply=curve.total_supply)

            def _seed(rec) -> None:
                rec.ledger.reserve_token_base = curve.reserve_token
                rec.ledger.reserve_sol_lamports = curve.reserve_sol

            await self._store.update(mint, _seed)
        if self._store.ledger(mint).phase is Phase.ACTIVE:
            await self._store.advance_phase(mint, Phase.MIGRATING)
        self._store.publish_phase(mint, Phase.MIGRATING)

    async def _build_and_sign(self, instructions: list) -> tuple[str, str]:
        blockhash = Hash.from_string(await self._rpc.get_latest_blockhash())
        msg = MessageV0.try_compile(
            payer=self._wallet.pubkey,
            instructions=instructions,
            address_lookup_table_accounts=[],
            recent_blockhash=blockhash,
        )
        tx = VersionedTransaction(msg, [self._wallet.keypair])
        tx_b64 = base64.b64encode(bytes(tx)).decode("ascii")
        signature = str(tx.signatures[0])
        logger.debug(f"[MIGRATE] TX built: {len(instructions)} instructions, sig={signature[:16]}")
        return tx_b64, signature

    async def _verify(
        self,
        mint: str,
        addrs: CurveAddresses,
        plan: CreatePoolPlan,
        signature: str,
        confirmation: Confirmation | None,
        send_error: RpcError | None,
    ) -> MigrationOutcome:
        try:
            after = await self._fetch_curve(addrs)
        except RpcError as e:
            raise SubmissionFailure(
                f"post-submit read failed: {e}", mint=mint, signature=signature
            ) from e

        if after is not None and after.is_migrated:
            return await self._on_success(mint, after.raydium_pool, plan, signature)

        confirmed = confirmation is not None and confirmation.confirmed
        if confirmed:
            got = after.phase.value if after is not None else "missing"
            raise VerificationFailure(
                f"confirmed but curve is {got}, pool={after.raydium_pool if after else None}",
                mint=mint,
                signature=signature,
            )

        if send_error is not None:
            detail = f"rejected: {send_error}"
        elif confirmation is not None and confirmation.err:
            detail = f"failed on-chain: {confirmation.err}"
        else:
            detail = "not confirmed before timeout"
        raise SubmissionFailure(detail, mint=mint, signature=signature)

    async def _on_success(
        self, mint: str, pool_id: str, plan: CreatePoolPlan, signature: str
    ) -> MigrationOutcome:
        # Vault meta is only known for the pool this batch created
        ours = pool_id == plan.keys.pool_state
        base_vault = plan.keys.base_vault if ours else None
        vault_owner = plan.keys.authority if ours else None

        await self._store.mark_raydium_live(mint, pool_id, base_vault=base_vault, vault_owner=vault_owner)
        self._store.publish_phase(
            mint,
            Phase.RAYDIUM_LIVE,
            raydiumPool=pool_id,
            raydiumBaseVault=base_vault,
            raydiumVaultOwner=vault_owner,
        )
        logger.info(f"[MIGRATE] {mint[:12]} RaydiumLive pool={pool_id} sig={signature}")

        if self._reconciler is not None:
            try:
                await self._reconciler.reconcile_mint(mint)
            except Exception as e:
                logger.error(f"[MIGRATE] post-migration resync failed for {mint[:12]}: {e}")

        return MigrationOutcome(
            mint=mint,
            status=STATUS_MIGRATED,
            signature=signature,
            raydium_pool=pool_id,
            raydium_base_vault=base_vault,
            raydium_vault_owner=vault_owner,
            links=explorer_links(self._cluster, signature=signature, pool=pool_id),
        )
