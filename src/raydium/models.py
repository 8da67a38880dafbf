"""Data models for Raydium CPMM configuration and pool keys."""

from dataclasses import dataclass


@dataclass
class CpmmFeeConfig:
    """One CPMM AMM config (fee tier) from Raydium API v3 /main/cpmm-config."""

    id: str
    index: int
    trade_fee_rate: int = 0
    protocol_fee_rate: int = 0
    fund_fee_rate: int = 0
    create_pool_fee: int = 0  # lamports


@dataclass
class CpmmPoolKeys:
    """Addresses of a CPMM pool being created."""

    program_id: str
    amm_config: str
    pool_state: str
    authority: str
    lp_mint: str
    token_0_mint: str
    token_1_mint: str
    token_0_vault: str
    token_1_vault: str
    observation_state: str
    base_mint: str

    @property
    def base_vault(self) -> str:
        """Vault holding the launched token (not WSOL)."""
        return self.token_0_vault if self.token_0_mint == self.base_mint else self.token_1_vault
