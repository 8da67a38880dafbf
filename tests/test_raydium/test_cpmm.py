"""Tests for CPMM PDA derivation and the initialize instruction."""

import struct

import pytest
from solders.pubkey import Pubkey  # type: ignore[import-untyped]

from src.chain.addresses import WSOL_MINT, get_ata_address
from src.raydium.cpmm import (
    CPMM_PROGRAM_IDS,
    CREATE_POOL_FEE_ACCOUNTS,
    INITIALIZE_DISCRIMINATOR,
    POOL_SEED,
    build_create_pool,
    derive_pool_keys,
    sort_mints,
)
from src.raydium.models import CpmmFeeConfig
from tests.conftest import new_address

FEE_CONFIG = CpmmFeeConfig(id="D4FPEruKEHrG5TenZ2mpDGEfu1iUvTiqBxvpU8HLBvC2", index=0)


def _mint() -> Pubkey:
    return Pubkey.from_string(new_address())


class TestSortMints:
    def test_orders_by_bytes(self) -> None:
        a, b = _mint(), _mint()
        lo, hi = sort_mints(a, b)
        assert bytes(lo) < bytes(hi)
        assert sort_mints(b, a) == (lo, hi)

    def test_same_mint_rejected(self) -> None:
        m = _mint()
        with pytest.raises(ValueError):
            sort_mints(m, m)


class TestDerivePoolKeys:
    def test_pool_state_pda(self) -> None:
        program = CPMM_PROGRAM_IDS["devnet"]
        config = Pubkey.from_string(FEE_CONFIG.id)
        mint = _mint()
        keys = derive_pool_keys(program, config, mint, WSOL_MINT)
        t0, t1 = sort_mints(mint, WSOL_MINT)
        expected, _ = Pubkey.find_program_address([POOL_SEED, bytes(config), bytes(t0), bytes(t1)], program)
        assert keys.pool_state == str(expected)
        assert keys.token_0_mint == str(t0)
        assert keys.base_mint == str(mint)

    def test_order_independent(self) -> None:
        program = CPMM_PROGRAM_IDS["devnet"]
        config = Pubkey.from_string(FEE_CONFIG.id)
        mint = _mint()
        a = derive_pool_keys(program, config, mint, WSOL_MINT)
        b = derive_pool_keys(program, config, WSOL_MINT, mint)
        assert a.pool_state == b.pool_state
        assert a.token_0_vault == b.token_0_vault

    def test_base_vault_follows_base_mint(self) -> None:
        program = CPMM_PROGRAM_IDS["devnet"]
        config = Pubkey.from_string(FEE_CONFIG.id)
        mint = _mint()
        keys = derive_pool_keys(program, config, mint, WSOL_MINT)
        if keys.token_0_mint == str(mint):
            assert keys.base_vault == keys.token_0_vault
        else:
            assert keys.base_vault == keys.token_1_vault


class TestBuildCreatePool:
    def _plan(self, mint: Pubkey, creator: Pubkey, cluster: str = "devnet"):
        return build_create_pool(
            cluster=cluster,
            creator=creator,
            fee_config=FEE_CONFIG,
            base_mint=mint,
            quote_mint=WSOL_MINT,
            base_amount=200_000_000,
            quote_amount=85_000,
        )

    def test_instruction_layout(self) -> None:
        mint, creator = _mint(), _mint()
        plan = self._plan(mint, creator)
        ix = plan.instruction

        assert ix.program_id == CPMM_PROGRAM_IDS["devnet"]
        assert len(ix.accounts) == 20
        assert ix.accounts[0].pubkey == creator
        assert ix.accounts[0].is_signer
        assert ix.accounts[12].pubkey == CREATE_POOL_FEE_ACCOUNTS["devnet"]
        assert str(ix.accounts[3].pubkey) == plan.keys.pool_state

        data = bytes(ix.data)
        assert data[:8] == INITIALIZE_DISCRIMINATOR
        assert struct.unpack("<QQQ", data[8:]) == (plan.amount_0, plan.amount_1, 0)

    def test_amounts_follow_token_order(self) -> None:
        mint = _mint()
        plan = self._plan(mint, _mint())
        if plan.keys.token_0_mint == str(mint):
            assert (plan.amount_0, plan.amount_1) == (200_000_000, 85_000)
        else:
            assert (plan.amount_0, plan.amount_1) == (85_000, 200_000_000)

    def test_funds_from_creator_atas(self) -> None:
        mint, creator = _mint(), _mint()
        plan = self._plan(mint, creator)
        t0 = Pubkey.from_string(plan.keys.token_0_mint)
        t1 = Pubkey.from_string(plan.keys.token_1_mint)
        assert plan.instruction.accounts[7].pubkey == get_ata_address(creator, t0)
        assert plan.instruction.accounts[8].pubkey == get_ata_address(creator, t1)

    def test_mainnet_program(self) -> None:
        plan = self._plan(_mint(), _mint(), cluster="mainnet")
        assert plan.instruction.program_id == CPMM_PROGRAM_IDS["mainnet"]

    def test_unknown_cluster(self) -> None:
        with pytest.raises(ValueError):
            self._plan(_mint(), _mint(), cluster="testnet")

    def test_zero_amount_rejected(self) -> None:
        with pytest.raises(ValueError):
            build_create_pool(
                cluster="devnet",
                creator=_mint(),
                fee_config=FEE_CONFIG,
                base_mint=_mint(),
                quote_mint=WSOL_MINT,
                base_amount=0,
                quote_amount=1,
            )
