"""Run the Raydium migration for one mint or every mint in the ledger.

Usage:
    python scripts/migrate.py --mint <MINT>
    python scripts/migrate.py --all
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from loguru import logger  # noqa: E402

from config.settings import settings  # noqa: E402
from src.chain.rpc import SolanaRpcClient  # noqa: E402
from src.chain.wallet import AuthorityWallet  # noqa: E402
from src.ledger.store import LedgerStore  # noqa: E402
from src.migration.errors import MigrationError  # noqa: E402
from src.migration.orchestrator import MigrationOrchestrator  # noqa: E402
from src.migration.reconcile import HolderReconciler  # noqa: E402
from src.raydium.client import RaydiumApiClient  # noqa: E402
from src.utils.logger import setup_logger  # noqa: E402


async def run(mint: str | None) -> int:
    if not settings.migration_authority_secret_key:
        logger.error("MIGRATION_AUTHORITY_SECRET_KEY is not set")
        return 2

    store = LedgerStore(settings.ledger_path)
    rpc = SolanaRpcClient(settings.solana_rpc_url, max_rps=settings.rpc_max_rps)
    raydium = RaydiumApiClient(cluster=settings.raydium_cluster)
    orchestrator = MigrationOrchestrator(
        rpc,
        raydium,
        store,
        AuthorityWallet.from_secret(settings.migration_authority_secret_key),
        settings.program_id,
        reconciler=HolderReconciler(rpc, store, settings.program_id),
        cluster=settings.raydium_cluster,
        cap_tokens=settings.curve_cap_tokens,
        pool_tokens=settings.migration_pool_tokens,
        fee_config_index=settings.raydium_fee_config_index,
        compute_units=settings.migration_compute_units,
        confirm_timeout=settings.confirm_timeout_sec,
    )

    try:
        if mint:
            try:
                outcome = await orchestrator.migrate_if_ready(mint)
            except MigrationError as e:
                logger.error(f"Migration failed ({e.reason}, retryable={e.retryable}): {e}")
                return 1
            print(json.dumps(outcome.to_dict(), indent=2))
            return 0

        outcomes = await orchestrator.migrate_all()
        print(json.dumps([o.to_dict() for o in outcomes], indent=2))
        return 0 if all(o.ok for o in outcomes) else 1
    finally:
        await rpc.close()
        await raydium.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Migrate capped curves into Raydium CPMM pools")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--mint", help="Single mint to migrate")
    group.add_argument("--all", action="store_true", help="Scan every mint in the ledger")
    args = parser.parse_args()

    setup_logger(level="INFO")
    sys.exit(asyncio.run(run(args.mint)))


if __name__ == "__main__":
    main()
