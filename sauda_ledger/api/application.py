"""FastAPI application factory for the ledger service."""

from fastapi import FastAPI

from sauda_ledger.config import AppSettings
from sauda_ledger.db import DatabaseHealthPort, DerivedSnapshotRepositoryPort, RecalculationRunRepositoryPort
from sauda_ledger.jobs import LedgerRecalculationOrchestrator
from sauda_ledger.ledger import LedgerReconciliationService

from .routers import (
    api_create_health_router,
    api_create_ledger_router,
    api_create_pnl_router,
    api_create_recalculation_router,
    api_create_stock_router,
)


def create_api_application(
    settings: AppSettings,
    db_health_service: DatabaseHealthPort,
    reconciliation_service: LedgerReconciliationService,
    derived_repository: DerivedSnapshotRepositoryPort,
    run_repository: RecalculationRunRepositoryPort,
    orchestrator: LedgerRecalculationOrchestrator,
) -> FastAPI:
    """Create the FastAPI application instance for the service.

    Args:
        settings: Validated application settings.
        db_health_service: Database health service used by health endpoints.
        reconciliation_service: Ledger service for contract and delivery endpoints.
        derived_repository: Derived table service for stock and P&L reads.
        run_repository: Recalculation run log repository.
        orchestrator: Recalculation orchestrator shared by every router.

    Returns:
        FastAPI: Application with every router mounted.
    """
    application = FastAPI(title="Sauda Ledger")

    @application.get("/", tags=["foundation"])
    def foundation_index() -> dict[str, str]:
        """Return service identity for bootstrap verification."""

        return {
            "service": "sauda-ledger",
            "status": "ready",
            "environment": settings.environment_name,
        }

    application.include_router(api_create_health_router(db_health_service=db_health_service))
    application.include_router(
        api_create_ledger_router(
            settings=settings,
            reconciliation_service=reconciliation_service,
            orchestrator=orchestrator,
        )
    )
    application.include_router(
        api_create_stock_router(
            settings=settings,
            reconciliation_service=reconciliation_service,
            derived_repository=derived_repository,
            orchestrator=orchestrator,
        )
    )
    application.include_router(
        api_create_pnl_router(
            settings=settings,
            reconciliation_service=reconciliation_service,
            derived_repository=derived_repository,
            orchestrator=orchestrator,
        )
    )
    application.include_router(
        api_create_recalculation_router(
            settings=settings,
            run_repository=run_repository,
            orchestrator=orchestrator,
        )
    )

    return application
