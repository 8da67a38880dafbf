"""Runtime objects shared between the service loops and the HTTP API.

Built once in ``src.main`` and attached to ``app.state.services``.
Everything runs in a single asyncio event loop, so no locking is needed
beyond what the components do themselves.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.chain.rpc import SolanaRpcClient
    from src.curve.model import CurveModel
    from src.ledger.events import EventBroker
    from src.ledger.store import LedgerStore
    from src.migration.orchestrator import MigrationOrchestrator
    from src.migration.reconcile import HolderReconciler


@dataclass
class ServiceRegistry:
    """Holds references to runtime objects for API access."""

    store: LedgerStore
    broker: EventBroker
    curve: CurveModel
    rpc: SolanaRpcClient | None = None
    program_id: str = ""
    reconciler: HolderReconciler | None = None
    orchestrator: MigrationOrchestrator | None = None  # None without an authority key
    sse_keepalive_sec: float = 25.0
    started_at: float = field(default_factory=time.monotonic)

    @property
    def uptime_sec(self) -> int:
        return int(time.monotonic() - self.started_at)
