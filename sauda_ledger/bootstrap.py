"""Application bootstrap wiring for startup validation and dependency assembly."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import FastAPI

from sauda_ledger.api import create_api_application
from sauda_ledger.config import AppSettings, config_load_settings
from sauda_ledger.db import (
    SQLAlchemyDatabaseHealthService,
    SQLAlchemyDerivedSnapshotService,
    SQLAlchemyLedgerStoreService,
    SQLAlchemyRecalculationRunService,
    db_create_engine,
)
from sauda_ledger.jobs import LedgerRecalculationOrchestrator
from sauda_ledger.ledger import LedgerReconciliationService


@dataclass(frozen=True)
class BootstrapServices:
    """Wired runtime services sharing one engine.

    Attributes:
        settings: Validated runtime settings.
        db_health_service: Database health service.
        reconciliation_service: Ledger read/write and rebuild planning service.
        derived_repository: Derived stock and P&L table service.
        run_repository: Recalculation run log service.
        orchestrator: Recalculation orchestrator holding the process lock.
    """

    settings: AppSettings
    db_health_service: SQLAlchemyDatabaseHealthService
    reconciliation_service: LedgerReconciliationService
    derived_repository: SQLAlchemyDerivedSnapshotService
    run_repository: SQLAlchemyRecalculationRunService
    orchestrator: LedgerRecalculationOrchestrator


def bootstrap_create_services(settings: AppSettings | None = None) -> BootstrapServices:
    """Assemble runtime services after validating startup configuration.

    Args:
        settings: Optional preloaded settings; loaded from the environment when omitted.

    Returns:
        BootstrapServices: Wired services.

    Raises:
        SettingsLoadError: Raised when startup configuration validation fails.
    """

    resolved_settings = settings or config_load_settings()
    engine = db_create_engine(database_url=resolved_settings.database_url)
    reconciliation_service = LedgerReconciliationService(store=SQLAlchemyLedgerStoreService(engine=engine))
    derived_repository = SQLAlchemyDerivedSnapshotService(engine=engine)
    run_repository = SQLAlchemyRecalculationRunService(engine=engine)
    orchestrator = LedgerRecalculationOrchestrator(
        reconciliation_service=reconciliation_service,
        derived_repository=derived_repository,
        run_repository=run_repository,
        lock_timeout_seconds=resolved_settings.recalculation_lock_timeout_seconds,
    )
    return BootstrapServices(
        settings=resolved_settings,
        db_health_service=SQLAlchemyDatabaseHealthService(engine=engine),
        reconciliation_service=reconciliation_service,
        derived_repository=derived_repository,
        run_repository=run_repository,
        orchestrator=orchestrator,
    )


def bootstrap_create_application(settings: AppSettings | None = None) -> FastAPI:
    """Assemble the runtime application.

    Returns:
        FastAPI: Fully initialized FastAPI application instance.

    Raises:
        SettingsLoadError: Raised when startup configuration validation fails.
    """

    services = bootstrap_create_services(settings)
    return create_api_application(
        settings=services.settings,
        db_health_service=services.db_health_service,
        reconciliation_service=services.reconciliation_service,
        derived_repository=services.derived_repository,
        run_repository=services.run_repository,
        orchestrator=services.orchestrator,
    )


def bootstrap_create_orchestrator(settings: AppSettings | None = None) -> LedgerRecalculationOrchestrator:
    """Build the recalculation orchestrator for non-HTTP trigger surfaces."""

    return bootstrap_create_services(settings).orchestrator
