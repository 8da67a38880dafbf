"""Tests for LiquidityPool account decoding."""

import hashlib

import pytest

from src.chain.curve_account import (
    LIQUIDITY_POOL_DISCRIMINATOR,
    CurveAccount,
    CurveAccountDecodeError,
    decode_curve_account,
    encode_curve_account,
)
from src.ledger.models import Phase
from tests.conftest import new_address


def make_account(**overrides) -> CurveAccount:
    fields = dict(
        creator=new_address(),
        token=new_address(),
        total_supply=1_000_000_000 * 10**9,
        reserve_token=200_000_000 * 10**9,
        reserve_sol=85 * 10**9,
        bump=254,
        phase=Phase.ACTIVE,
        cap_reached_slot=None,
        raydium_pool=None,
        migration_authority=new_address(),
        reserve_snapshot_token=0,
        reserve_snapshot_sol=0,
    )
    fields.update(overrides)
    return CurveAccount(**fields)


def test_discriminator_is_anchor_account_hash() -> None:
    assert LIQUIDITY_POOL_DISCRIMINATOR == hashlib.sha256(b"account:LiquidityPool").digest()[:8]


def test_decode_active_account() -> None:
    account = make_account()
    decoded = decode_curve_account(encode_curve_account(account))
    assert decoded == account
    assert decoded.tokens_sold == 800_000_000 * 10**9
    assert not decoded.is_migrated


def test_decode_live_account_with_options() -> None:
    pool = new_address()
    account = make_account(
        phase=Phase.RAYDIUM_LIVE,
        cap_reached_slot=123456,
        raydium_pool=pool,
        reserve_snapshot_token=5,
        reserve_snapshot_sol=7,
        lp_timelock=new_address(),
    )
    decoded = decode_curve_account(encode_curve_account(account))
    assert decoded.phase is Phase.RAYDIUM_LIVE
    assert decoded.cap_reached_slot == 123456
    assert decoded.raydium_pool == pool
    assert decoded.is_migrated


def test_decode_tolerates_missing_timelock_field() -> None:
    data = encode_curve_account(make_account())
    # Drop the trailing Option tag written for lp_timelock=None
    decoded = decode_curve_account(data[:-1])
    assert decoded.lp_timelock is None


def test_live_without_pool_is_not_migrated() -> None:
    assert not make_account(phase=Phase.RAYDIUM_LIVE).is_migrated


def test_tokens_sold_never_negative() -> None:
    assert make_account(total_supply=5, reserve_token=10).tokens_sold == 0


class TestDecodeErrors:
    def test_wrong_discriminator(self) -> None:
        data = bytearray(encode_curve_account(make_account()))
        data[0] ^= 0xFF
        with pytest.raises(CurveAccountDecodeError, match="discriminator"):
            decode_curve_account(bytes(data))

    def test_truncated(self) -> None:
        data = encode_curve_account(make_account())
        with pytest.raises(CurveAccountDecodeError, match="too short"):
            decode_curve_account(data[:40])

    def test_unknown_phase_tag(self) -> None:
        data = bytearray(encode_curve_account(make_account()))
        # 8 disc + 2 pubkeys + 3 u64 + bump
        data[8 + 64 + 24 + 1] = 9
        with pytest.raises(CurveAccountDecodeError, match="phase"):
            decode_curve_account(bytes(data))

    def test_bad_option_tag(self) -> None:
        data = bytearray(encode_curve_account(make_account()))
        data[8 + 64 + 24 + 2] = 3
        with pytest.raises(CurveAccountDecodeError, match="Option"):
            decode_curve_account(bytes(data))

    def test_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            decode_curve_account(b"")
