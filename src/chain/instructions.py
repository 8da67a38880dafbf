"""Instruction builders for the curve program and the SPL / system helpers
the migration batch needs."""

from __future__ import annotations

import hashlib

from solders.compute_budget import set_compute_unit_limit  # type: ignore[import-untyped]
from solders.instruction import AccountMeta, Instruction  # type: ignore[import-untyped]
from solders.pubkey import Pubkey  # type: ignore[import-untyped]
from solders.system_program import TransferParams, transfer  # type: ignore[import-untyped]

from src.chain.addresses import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    SYSTEM_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    CurveAddresses,
)

# SPL token instruction tags
SYNC_NATIVE_TAG = 17
# Associated token program: CreateIdempotent
ATA_CREATE_IDEMPOTENT_TAG = 1


def anchor_discriminator(name: str) -> bytes:
    """First 8 bytes of sha256("global:<name>")."""
    return hashlib.sha256(f"global:{name}".encode()).digest()[:8]


START_MIGRATION_DISCRIMINATOR = anchor_discriminator("start_migration")
FINALIZE_MIGRATION_DISCRIMINATOR = anchor_discriminator("finalize_migration")


def _meta(pubkey: Pubkey, *, signer: bool = False, writable: bool = False) -> AccountMeta:
    return AccountMeta(pubkey=pubkey, is_signer=signer, is_writable=writable)


def compute_unit_limit_ix(units: int) -> Instruction:
    return set_compute_unit_limit(units)


def create_ata_idempotent_ix(
    payer: Pubkey,
    ata: Pubkey,
    owner: Pubkey,
    mint: Pubkey,
    token_program: Pubkey = TOKEN_PROGRAM_ID,
) -> Instruction:
    """Create an associated token account; no-op if it already exists."""
    accounts = [
        _meta(payer, signer=True, writable=True),
        _meta(ata, writable=True),
        _meta(owner),
        _meta(mint),
        _meta(SYSTEM_PROGRAM_ID),
        _meta(token_program),
    ]
    return Instruction(ASSOCIATED_TOKEN_PROGRAM_ID, bytes([ATA_CREATE_IDEMPOTENT_TAG]), accounts)


def transfer_lamports_ix(source: Pubkey, dest: Pubkey, lamports: int) -> Instruction:
    return transfer(TransferParams(from_pubkey=source, to_pubkey=dest, lamports=lamports))


def sync_native_ix(wsol_account: Pubkey) -> Instruction:
    return Instruction(TOKEN_PROGRAM_ID, bytes([SYNC_NATIVE_TAG]), [_meta(wsol_account, writable=True)])


def start_migration_ix(
    addrs: CurveAddresses,
    authority: Pubkey,
    dest_token_account: Pubkey,
) -> Instruction:
    """Flip the curve to Migrating and drain pool/treasury tokens and vault SOL
    to the migration authority."""
    accounts = [
        _meta(addrs.pool, writable=True),
        _meta(addrs.mint),
        _meta(addrs.pool_token_account, writable=True),
        _meta(addrs.sol_vault, writable=True),
        _meta(addrs.treasury),
        _meta(addrs.treasury_token_account, writable=True),
        _meta(dest_token_account, writable=True),
        _meta(authority, signer=True, writable=True),
        _meta(TOKEN_PROGRAM_ID),
        _meta(SYSTEM_PROGRAM_ID),
    ]
    return Instruction(addrs.program_id, START_MIGRATION_DISCRIMINATOR, accounts)


def finalize_migration_ix(
    addrs: CurveAddresses,
    authority: Pubkey,
    raydium_pool: Pubkey,
    lp_timelock: Pubkey | None = None,
) -> Instruction:
    """Record the AMM pool id on the curve and flip it to RaydiumLive."""
    accounts = [
        _meta(addrs.pool, writable=True),
        _meta(addrs.mint),
        _meta(authority, signer=True),
        _meta(raydium_pool),
    ]
    if lp_timelock is not None:
        accounts.append(_meta(lp_timelock))
    return Instruction(addrs.program_id, FINALIZE_MIGRATION_DISCRIMINATOR, accounts)
