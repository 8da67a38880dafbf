"""Raydium CPMM pool creation: PDA derivation and the `initialize` instruction.

Seeds (raydium-cp-swap):
  pool_state   ["pool", amm_config, token_0_mint, token_1_mint]
  authority    ["vault_and_lp_mint_auth_seed"]
  lp_mint      ["pool_lp_mint", pool_state]
  vault        ["pool_vault", pool_state, mint]
  observation  ["observation", pool_state]

token_0 < token_1 by raw pubkey bytes.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

from solders.instruction import AccountMeta, Instruction  # type: ignore[import-untyped]
from solders.pubkey import Pubkey  # type: ignore[import-untyped]

from src.chain.addresses import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    RENT_SYSVAR_ID,
    SYSTEM_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    get_ata_address,
)
from src.raydium.models import CpmmFeeConfig, CpmmPoolKeys

CPMM_PROGRAM_IDS = {
    "devnet": Pubkey.from_string("DRaycpLY18LhpbydsBWbVJtxpNv9oXPgjRSfpF2bWpYb"),
    "mainnet": Pubkey.from_string("CPMMoo8L3F4NbTegBCKVNunggL7H1ZpdTHKxQB5qKP1C"),
}
CREATE_POOL_FEE_ACCOUNTS = {
    "devnet": Pubkey.from_string("3oE58BKVt8KuYkGxx8zBojugnymWmBiyafWgMrnb6eYy"),
    "mainnet": Pubkey.from_string("DNXgeM9EiiaAbaWvwjHj9fQQLAX5ZsfHyvmYUNRAdNC8"),
}

INITIALIZE_DISCRIMINATOR = bytes([175, 175, 109, 31, 13, 152, 155, 237])

POOL_SEED = b"pool"
AUTH_SEED = b"vault_and_lp_mint_auth_seed"
LP_MINT_SEED = b"pool_lp_mint"
VAULT_SEED = b"pool_vault"
OBSERVATION_SEED = b"observation"


def sort_mints(mint_a: Pubkey, mint_b: Pubkey) -> tuple[Pubkey, Pubkey]:
    if bytes(mint_a) == bytes(mint_b):
        raise ValueError("CPMM pool needs two distinct mints")
    return (mint_a, mint_b) if bytes(mint_a) < bytes(mint_b) else (mint_b, mint_a)


def derive_pool_keys(
    program_id: Pubkey,
    amm_config: Pubkey,
    base_mint: Pubkey,
    quote_mint: Pubkey,
) -> CpmmPoolKeys:
    token_0, token_1 = sort_mints(base_mint, quote_mint)
    pool_state, _ = Pubkey.find_program_address(
        [POOL_SEED, bytes(amm_config), bytes(token_0), bytes(token_1)], program_id
    )
    authority, _ = Pubkey.find_program_address([AUTH_SEED], program_id)
    lp_mint, _ = Pubkey.find_program_address([LP_MINT_SEED, bytes(pool_state)], program_id)
    vault_0, _ = Pubkey.find_program_address(
        [VAULT_SEED, bytes(pool_state), bytes(token_0)], program_id
    )
    vault_1, _ = Pubkey.find_program_address(
        [VAULT_SEED, bytes(pool_state), bytes(token_1)], program_id
    )
    observation, _ = Pubkey.find_program_address(
        [OBSERVATION_SEED, bytes(pool_state)], program_id
    )
    return CpmmPoolKeys(
        program_id=str(program_id),
        amm_config=str(amm_config),
        pool_state=str(pool_state),
        authority=str(authority),
        lp_mint=str(lp_mint),
        token_0_mint=str(token_0),
        token_1_mint=str(token_1),
        token_0_vault=str(vault_0),
        token_1_vault=str(vault_1),
        observation_state=str(observation),
        base_mint=str(base_mint),
    )


@dataclass
class CreatePoolPlan:
    instruction: Instruction
    keys: CpmmPoolKeys
    amount_0: int
    amount_1: int


def build_create_pool(
    *,
    cluster: str,
    creator: Pubkey,
    fee_config: CpmmFeeConfig,
    base_mint: Pubkey,
    quote_mint: Pubkey,
    base_amount: int,
    quote_amount: int,
    open_time: int = 0,
) -> CreatePoolPlan:
    """Build the CPMM `initialize` instruction funding the pool from the
    creator's associated token accounts."""
    if cluster not in CPMM_PROGRAM_IDS:
        raise ValueError(f"Unknown Raydium cluster {cluster!r}")
    if base_amount <= 0 or quote_amount <= 0:
        raise ValueError("CPMM initial amounts must be positive")

    program_id = CPMM_PROGRAM_IDS[cluster]
    amm_config = Pubkey.from_string(fee_config.id)
    keys = derive_pool_keys(program_id, amm_config, base_mint, quote_mint)

    token_0 = Pubkey.from_string(keys.token_0_mint)
    token_1 = Pubkey.from_string(keys.token_1_mint)
    if token_0 == base_mint:
        amount_0, amount_1 = base_amount, quote_amount
    else:
        amount_0, amount_1 = quote_amount, base_amount

    pool_state = Pubkey.from_string(keys.pool_state)
    lp_mint = Pubkey.from_string(keys.lp_mint)

    def meta(pk: Pubkey, *, signer: bool = False, writable: bool = False) -> AccountMeta:
        return AccountMeta(pubkey=pk, is_signer=signer, is_writable=writable)

    accounts = [
        meta(creator, signer=True, writable=True),
        meta(amm_config),
        meta(Pubkey.from_string(keys.authority)),
        meta(pool_state, writable=True),
        meta(token_0),
        meta(token_1),
        meta(lp_mint, writable=True),
        meta(get_ata_address(creator, token_0), writable=True),
        meta(get_ata_address(creator, token_1), writable=True),
        meta(get_ata_address(creator, lp_mint), writable=True),
        meta(Pubkey.from_string(keys.token_0_vault), writable=True),
        meta(Pubkey.from_string(keys.token_1_vault), writable=True),
        meta(CREATE_POOL_FEE_ACCOUNTS[cluster], writable=True),
        meta(Pubkey.from_string(keys.observation_state), writable=True),
        meta(TOKEN_PROGRAM_ID),
        meta(TOKEN_PROGRAM_ID),
        meta(TOKEN_PROGRAM_ID),
        meta(ASSOCIATED_TOKEN_PROGRAM_ID),
        meta(SYSTEM_PROGRAM_ID),
        meta(RENT_SYSVAR_ID),
    ]
    data = INITIALIZE_DISCRIMINATOR + struct.pack("<QQQ", amount_0, amount_1, open_time)
    return CreatePoolPlan(
        instruction=Instruction(program_id, data, accounts),
        keys=keys,
        amount_0=amount_0,
        amount_1=amount_1,
    )
