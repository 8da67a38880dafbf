"""Program ids and deterministic address derivation for the curve program."""

from __future__ import annotations

from dataclasses import dataclass

from solders.pubkey import Pubkey  # type: ignore[import-untyped]

# SPL / system constants
TOKEN_PROGRAM_ID = Pubkey.from_string("TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA")
ASSOCIATED_TOKEN_PROGRAM_ID = Pubkey.from_string(
    "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"
)
SYSTEM_PROGRAM_ID = Pubkey.from_string("11111111111111111111111111111111")
RENT_SYSVAR_ID = Pubkey.from_string("SysvarRent111111111111111111111111111111111")
WSOL_MINT = Pubkey.from_string("So11111111111111111111111111111111111111112")

# Curve program seeds
POOL_SEED = b"liquidity_pool"
SOL_VAULT_SEED = b"liquidity_sol_vault"
TREASURY_SEED = b"treasury"
CURVE_CONFIG_SEED = b"CurveConfiguration"


def to_pubkey(value: str | Pubkey) -> Pubkey:
    return value if isinstance(value, Pubkey) else Pubkey.from_string(value)


def get_ata_address(owner: Pubkey, mint: Pubkey, token_program: Pubkey = TOKEN_PROGRAM_ID) -> Pubkey:
    """Derive Associated Token Account address for (owner, mint)."""
    ata, _bump = Pubkey.find_program_address(
        [bytes(owner), bytes(token_program), bytes(mint)],
        ASSOCIATED_TOKEN_PROGRAM_ID,
    )
    return ata


@dataclass(frozen=True)
class CurveAddresses:
    """Every account the curve program keeps for one mint."""

    program_id: Pubkey
    mint: Pubkey
    pool: Pubkey
    sol_vault: Pubkey
    treasury: Pubkey
    curve_config: Pubkey
    pool_token_account: Pubkey
    treasury_token_account: Pubkey

    @classmethod
    def derive(cls, mint: str | Pubkey, program_id: str | Pubkey) -> CurveAddresses:
        mint_pk = to_pubkey(mint)
        program_pk = to_pubkey(program_id)
        pool, _ = Pubkey.find_program_address([POOL_SEED, bytes(mint_pk)], program_pk)
        sol_vault, _ = Pubkey.find_program_address([SOL_VAULT_SEED, bytes(mint_pk)], program_pk)
        treasury, _ = Pubkey.find_program_address([TREASURY_SEED, bytes(mint_pk)], program_pk)
        curve_config, _ = Pubkey.find_program_address([CURVE_CONFIG_SEED], program_pk)
        return cls(
            program_id=program_pk,
            mint=mint_pk,
            pool=pool,
            sol_vault=sol_vault,
            treasury=treasury,
            curve_config=curve_config,
            pool_token_account=get_ata_address(pool, mint_pk),
            treasury_token_account=get_ata_address(treasury, mint_pk),
        )
