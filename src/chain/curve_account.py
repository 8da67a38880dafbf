"""Decode the curve program's LiquidityPool account (Anchor / borsh).

Layout (after the 8-byte discriminator):
  creator             Pubkey
  token               Pubkey
  total_supply        u64 LE
  reserve_token       u64 LE
  reserve_sol         u64 LE
  bump                u8
  phase               u8 (0 Active, 1 Migrating, 2 RaydiumLive)
  cap_reached_slot    Option<u64>
  raydium_pool        Option<Pubkey>
  migration_authority Pubkey
  reserve_snapshot_token u64 LE
  reserve_snapshot_sol   u64 LE
  lp_timelock         Option<Pubkey>
"""

from __future__ import annotations

import hashlib
import struct
from dataclasses import dataclass

from solders.pubkey import Pubkey  # type: ignore[import-untyped]

from src.ledger.models import Phase

LIQUIDITY_POOL_DISCRIMINATOR = hashlib.sha256(b"account:LiquidityPool").digest()[:8]

PHASE_BY_TAG = {0: Phase.ACTIVE, 1: Phase.MIGRATING, 2: Phase.RAYDIUM_LIVE}


class CurveAccountDecodeError(ValueError):
    pass


@dataclass
class CurveAccount:
    creator: str
    token: str
    total_supply: int
    reserve_token: int
    reserve_sol: int
    bump: int
    phase: Phase
    cap_reached_slot: int | None
    raydium_pool: str | None
    migration_authority: str
    reserve_snapshot_token: int
    reserve_snapshot_sol: int
    lp_timelock: str | None = None

    @property
    def tokens_sold(self) -> int:
        return max(0, self.total_supply - self.reserve_token)

    @property
    def is_migrated(self) -> bool:
        return self.phase is Phase.RAYDIUM_LIVE and self.raydium_pool is not None


class _Reader:
    def __init__(self, data: bytes, offset: int = 0) -> None:
        self._data = data
        self.offset = offset

    def _take(self, size: int) -> bytes:
        end = self.offset + size
        if end > len(self._data):
            raise CurveAccountDecodeError(
                f"account data too short: need {end} bytes, have {len(self._data)}"
            )
        chunk = self._data[self.offset:end]
        self.offset = end
        return chunk

    def u8(self) -> int:
        return self._take(1)[0]

    def u64(self) -> int:
        return struct.unpack("<Q", self._take(8))[0]

    def pubkey(self) -> str:
        return str(Pubkey.from_bytes(self._take(32)))

    def option(self, read):
        tag = self.u8()
        if tag == 0:
            return None
        if tag != 1:
            raise CurveAccountDecodeError(f"bad Option tag {tag} at offset {self.offset - 1}")
        return read()


def decode_curve_account(data: bytes) -> CurveAccount:
    """Decode raw account bytes. Raises CurveAccountDecodeError on bad data."""
    if len(data) < 8 or data[:8] != LIQUIDITY_POOL_DISCRIMINATOR:
        raise CurveAccountDecodeError("not a LiquidityPool account (discriminator mismatch)")

    r = _Reader(data, 8)
    creator = r.pubkey()
    token = r.pubkey()
    total_supply = r.u64()
    reserve_token = r.u64()
    reserve_sol = r.u64()
    bump = r.u8()

    phase_tag = r.u8()
    phase = PHASE_BY_TAG.get(phase_tag)
    if phase is None:
        raise CurveAccountDecodeError(f"unknown phase tag {phase_tag}")

    cap_reached_slot = r.option(r.u64)
    raydium_pool = r.option(r.pubkey)
    migration_authority = r.pubkey()
    reserve_snapshot_token = r.u64()
    reserve_snapshot_sol = r.u64()
    # Older accounts may end before the timelock field
    lp_timelock = r.option(r.pubkey) if r.offset < len(data) else None

    return CurveAccount(
        creator=creator,
        token=token,
        total_supply=total_supply,
        reserve_token=reserve_token,
        reserve_sol=reserve_sol,
        bump=bump,
        phase=phase,
        cap_reached_slot=cap_reached_slot,
        raydium_pool=raydium_pool,
        migration_authority=migration_authority,
        reserve_snapshot_token=reserve_snapshot_token,
        reserve_snapshot_sol=reserve_snapshot_sol,
        lp_timelock=lp_timelock,
    )


def encode_curve_account(account: CurveAccount) -> bytes:
    """Serialize to the on-chain layout (fixtures and local tooling)."""
    tag_by_phase = {v: k for k, v in PHASE_BY_TAG.items()}
    out = bytearray(LIQUIDITY_POOL_DISCRIMINATOR)
    out += bytes(Pubkey.from_string(account.creator))
    out += bytes(Pubkey.from_string(account.token))
    out += struct.pack("<QQQB", account.total_supply, account.reserve_token, account.reserve_sol, account.bump)
    out.append(tag_by_phase[account.phase])
    if account.cap_reached_slot is None:
        out.append(0)
    else:
        out += b"\x01" + struct.pack("<Q", account.cap_reached_slot)
    if account.raydium_pool is None:
        out.append(0)
    else:
        out += b"\x01" + bytes(Pubkey.from_string(account.raydium_pool))
    out += bytes(Pubkey.from_string(account.migration_authority))
    out += struct.pack("<QQ", account.reserve_snapshot_token, account.reserve_snapshot_sol)
    if account.lp_timelock is None:
        out.append(0)
    else:
        out += b"\x01" + bytes(Pubkey.from_string(account.lp_timelock))
    return bytes(out)
