"""Tests for PDA derivation and instruction builders."""

import hashlib

from solders.pubkey import Pubkey  # type: ignore[import-untyped]

from src.chain.addresses import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    POOL_SEED,
    SYSTEM_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    WSOL_MINT,
    CurveAddresses,
    get_ata_address,
    to_pubkey,
)
from src.chain.instructions import (
    FINALIZE_MIGRATION_DISCRIMINATOR,
    START_MIGRATION_DISCRIMINATOR,
    anchor_discriminator,
    create_ata_idempotent_ix,
    finalize_migration_ix,
    start_migration_ix,
    sync_native_ix,
    transfer_lamports_ix,
)
from tests.conftest import new_address

PROGRAM_ID = "Djy6544xmrPBE59RSUuiK8yTFdrzZLpKUoFGFz9Y1PkT"


class TestAddresses:
    def test_to_pubkey_accepts_both(self) -> None:
        pk = Pubkey.from_string(PROGRAM_ID)
        assert to_pubkey(pk) is pk
        assert to_pubkey(PROGRAM_ID) == pk

    def test_derive_is_deterministic(self) -> None:
        mint = new_address()
        a = CurveAddresses.derive(mint, PROGRAM_ID)
        b = CurveAddresses.derive(Pubkey.from_string(mint), PROGRAM_ID)
        assert a == b

    def test_pool_pda(self) -> None:
        mint = Pubkey.from_string(new_address())
        program = Pubkey.from_string(PROGRAM_ID)
        expected, _ = Pubkey.find_program_address([POOL_SEED, bytes(mint)], program)
        assert CurveAddresses.derive(mint, program).pool == expected

    def test_token_accounts_are_atas(self) -> None:
        addrs = CurveAddresses.derive(new_address(), PROGRAM_ID)
        assert addrs.pool_token_account == get_ata_address(addrs.pool, addrs.mint)
        assert addrs.treasury_token_account == get_ata_address(addrs.treasury, addrs.mint)

    def test_different_mints_different_pools(self) -> None:
        a = CurveAddresses.derive(new_address(), PROGRAM_ID)
        b = CurveAddresses.derive(new_address(), PROGRAM_ID)
        assert a.pool != b.pool
        assert a.curve_config == b.curve_config

    def test_ata_depends_on_owner_and_mint(self) -> None:
        owner = Pubkey.from_string(new_address())
        assert get_ata_address(owner, WSOL_MINT) != get_ata_address(owner, Pubkey.from_string(new_address()))


class TestInstructions:
    def setup_method(self) -> None:
        self.addrs = CurveAddresses.derive(new_address(), PROGRAM_ID)
        self.authority = Pubkey.from_string(new_address())

    def test_anchor_discriminator(self) -> None:
        assert anchor_discriminator("start_migration") == hashlib.sha256(b"global:start_migration").digest()[:8]
        assert START_MIGRATION_DISCRIMINATOR != FINALIZE_MIGRATION_DISCRIMINATOR

    def test_start_migration_accounts(self) -> None:
        dest = get_ata_address(self.authority, self.addrs.mint)
        ix = start_migration_ix(self.addrs, self.authority, dest)
        assert ix.program_id == self.addrs.program_id
        assert bytes(ix.data) == START_MIGRATION_DISCRIMINATOR
        keys = [m.pubkey for m in ix.accounts]
        assert keys == [
            self.addrs.pool,
            self.addrs.mint,
            self.addrs.pool_token_account,
            self.addrs.sol_vault,
            self.addrs.treasury,
            self.addrs.treasury_token_account,
            dest,
            self.authority,
            TOKEN_PROGRAM_ID,
            SYSTEM_PROGRAM_ID,
        ]
        signers = [m.pubkey for m in ix.accounts if m.is_signer]
        assert signers == [self.authority]

    def test_finalize_migration_accounts(self) -> None:
        pool = Pubkey.from_string(new_address())
        ix = finalize_migration_ix(self.addrs, self.authority, pool)
        assert bytes(ix.data) == FINALIZE_MIGRATION_DISCRIMINATOR
        assert [m.pubkey for m in ix.accounts] == [self.addrs.pool, self.addrs.mint, self.authority, pool]
        assert ix.accounts[0].is_writable
        assert ix.accounts[2].is_signer

    def test_finalize_with_timelock(self) -> None:
        lock = Pubkey.from_string(new_address())
        ix = finalize_migration_ix(self.addrs, self.authority, Pubkey.from_string(new_address()), lock)
        assert len(ix.accounts) == 5
        assert ix.accounts[-1].pubkey == lock

    def test_create_ata_idempotent(self) -> None:
        ata = get_ata_address(self.authority, WSOL_MINT)
        ix = create_ata_idempotent_ix(self.authority, ata, self.authority, WSOL_MINT)
        assert ix.program_id == ASSOCIATED_TOKEN_PROGRAM_ID
        assert bytes(ix.data) == bytes([1])
        assert len(ix.accounts) == 6
        assert ix.accounts[0].is_signer

    def test_sync_native(self) -> None:
        wsol = get_ata_address(self.authority, WSOL_MINT)
        ix = sync_native_ix(wsol)
        assert ix.program_id == TOKEN_PROGRAM_ID
        assert bytes(ix.data) == bytes([17])
        assert ix.accounts[0].pubkey == wsol

    def test_transfer(self) -> None:
        dest = Pubkey.from_string(new_address())
        ix = transfer_lamports_ix(self.authority, dest, 5_000)
        assert ix.program_id == SYSTEM_PROGRAM_ID
        assert [m.pubkey for m in ix.accounts] == [self.authority, dest]
