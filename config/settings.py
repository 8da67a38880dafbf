from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Solana RPC
    solana_rpc_url: str = "https://api.devnet.solana.com"
    rpc_max_rps: float = 10.0

    # Bonding curve program
    program_id: str = "Djy6544xmrPBE59RSUuiK8yTFdrzZLpKUoFGFz9Y1PkT"

    # Migration authority: base58 or JSON byte array. NEVER LOG THIS
    migration_authority_secret_key: str = ""

    # Curve policy
    curve_decimals: int = 9
    curve_cap_tokens: int = 800_000_000
    curve_total_supply_tokens: int = 1_000_000_000

    # Lookup table artifact
    lut_path: str = "data/lut.dec9.json"
    lut_nodes: int = 4096

    # Ledger persistence (JSON document keyed by mint)
    ledger_path: str = "data/ledger.json"

    # Raydium CPMM
    raydium_cluster: str = "devnet"  # "devnet" | "mainnet"
    raydium_fee_config_index: int | None = None  # None = first config from API
    migration_pool_tokens: int = 200_000_000  # whole tokens seeded into the pool
    migration_compute_units: int = 400_000

    # Confirmation polling
    confirm_timeout_sec: int = 60

    # Background loops
    enable_auto_migration: bool = False
    auto_migration_interval_sec: int = 60
    enable_periodic_resync: bool = True
    resync_interval_sec: int = 120

    # HTTP / SSE transport
    api_host: str = "0.0.0.0"
    api_port: int = 8080
    sse_keepalive_sec: float = 25.0
    sse_queue_size: int = 256


settings = Settings()
