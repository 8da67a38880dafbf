"""FastAPI dependency injection — service registry lookups."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from src.api.registry import ServiceRegistry
from src.migration.orchestrator import MigrationOrchestrator
from src.migration.reconcile import HolderReconciler


def get_services(request: Request) -> ServiceRegistry:
    """Return the registry attached by create_app()."""
    return request.app.state.services


def get_orchestrator(request: Request) -> MigrationOrchestrator:
    orchestrator = get_services(request).orchestrator
    if orchestrator is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Migration disabled: no migration authority configured",
        )
    return orchestrator


def get_reconciler(request: Request) -> HolderReconciler:
    reconciler = get_services(request).reconciler
    if reconciler is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Chain resync unavailable",
        )
    return reconciler
