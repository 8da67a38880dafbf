"""Entry point for the launchpad service: API + resync / auto-migration loops."""

import asyncio
import signal

from loguru import logger

from config.settings import settings
from src.api.registry import ServiceRegistry
from src.api.server import run_api_server
from src.chain.rpc import SolanaRpcClient
from src.chain.wallet import AuthorityWallet
from src.curve.constants import CurveConfig
from src.curve.lut import load_or_build_lut
from src.curve.model import CurveModel
from src.ledger.events import EventBroker
from src.ledger.store import LedgerStore
from src.migration.orchestrator import MigrationOrchestrator
from src.migration.reconcile import HolderReconciler
from src.raydium.client import RaydiumApiClient
from src.utils.logger import setup_logger


async def _resync_loop(reconciler: HolderReconciler) -> None:
    """Periodically rebuild every mint's holders from chain."""
    interval = settings.resync_interval_sec
    while True:
        await asyncio.sleep(interval)
        try:
            await reconciler.reconcile_all()
        except Exception as e:
            logger.error(f"[RECONCILE] Periodic resync error: {e}")


async def _auto_migration_loop(orchestrator: MigrationOrchestrator) -> None:
    """Periodically migrate every capped curve."""
    interval = settings.auto_migration_interval_sec
    while True:
        await asyncio.sleep(interval)
        try:
            await orchestrator.migrate_all()
        except Exception as e:
            logger.error(f"[MIGRATE] Auto-migration scan error: {e}")


def build_services() -> tuple[ServiceRegistry, list]:
    """Wire components from settings. Returns the registry and closables."""
    config = CurveConfig.from_settings(settings)
    lut = load_or_build_lut(settings.lut_path, config, nodes=settings.lut_nodes)
    curve = CurveModel(lut)

    broker = EventBroker(queue_size=settings.sse_queue_size)
    store = LedgerStore(settings.ledger_path, sink=broker)
    rpc = SolanaRpcClient(settings.solana_rpc_url, max_rps=settings.rpc_max_rps)
    reconciler = HolderReconciler(rpc, store, settings.program_id, sink=broker)
    closables: list = [rpc]

    orchestrator = None
    if settings.migration_authority_secret_key:
        raydium = RaydiumApiClient(cluster=settings.raydium_cluster)
        closables.append(raydium)
        orchestrator = MigrationOrchestrator(
            rpc,
            raydium,
            store,
            AuthorityWallet.from_secret(settings.migration_authority_secret_key),
            settings.program_id,
            reconciler=reconciler,
            cluster=settings.raydium_cluster,
            cap_tokens=settings.curve_cap_tokens,
            pool_tokens=settings.migration_pool_tokens,
            fee_config_index=settings.raydium_fee_config_index,
            compute_units=settings.migration_compute_units,
            confirm_timeout=settings.confirm_timeout_sec,
        )
    else:
        logger.warning("MIGRATION_AUTHORITY_SECRET_KEY not set, migration disabled")

    services = ServiceRegistry(
        store=store,
        broker=broker,
        curve=curve,
        rpc=rpc,
        program_id=settings.program_id,
        reconciler=reconciler,
        orchestrator=orchestrator,
        sse_keepalive_sec=settings.sse_keepalive_sec,
    )
    return services, closables


async def main() -> None:
    setup_logger(level="INFO")
    logger.info("Starting curve launchpad service...")

    services, closables = build_services()

    # Graceful shutdown on SIGINT/SIGTERM
    loop = asyncio.get_running_loop()
    shutdown_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("Shutdown signal received")
        shutdown_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _signal_handler)

    tasks = [asyncio.create_task(run_api_server(services, settings.api_host, settings.api_port))]
    if settings.enable_periodic_resync and services.reconciler is not None:
        tasks.append(asyncio.create_task(_resync_loop(services.reconciler)))
    if settings.enable_auto_migration and services.orchestrator is not None:
        tasks.append(asyncio.create_task(_auto_migration_loop(services.orchestrator)))

    # Wait for either the API to exit or a shutdown signal
    done, pending = await asyncio.wait(
        [*tasks, asyncio.create_task(shutdown_event.wait())],
        return_when=asyncio.FIRST_COMPLETED,
    )

    # Cancel remaining tasks
    for task in pending:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    for client in closables:
        await client.close()
    logger.info("Shutdown complete")


if __name__ == "__main__":
    asyncio.run(main())
