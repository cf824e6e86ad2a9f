"""Shared fixtures: a migrated SQLite ledger database and the services wired on it."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from fastapi.testclient import TestClient
from sqlalchemy import Engine

from sauda_ledger.api import create_api_application
from sauda_ledger.config import AppSettings
from sauda_ledger.db import (
    ContractWriteRequest,
    SQLAlchemyDatabaseHealthService,
    SQLAlchemyDerivedSnapshotService,
    SQLAlchemyLedgerStoreService,
    SQLAlchemyRecalculationRunService,
    db_create_engine,
)
from sauda_ledger.domain import ContractDirection
from sauda_ledger.jobs import LedgerRecalculationOrchestrator
from sauda_ledger.ledger import LedgerReconciliationService

_PROJECT_ROOT = Path(__file__).resolve().parents[1]


def _build_contract_request(
    direction: ContractDirection = ContractDirection.PURCHASE,
    item_id: str = "item-wheat",
    party_id: str = "party-a",
    quantity_packs: str = "100",
    rate_per_10kg: str = "500",
    contract_date: date = date(2026, 4, 10),
    ex_plant_id: str | None = None,
    contract_no: str | None = None,
) -> ContractWriteRequest:
    """Build a contract write request with test defaults."""

    return ContractWriteRequest(
        direction=direction,
        contract_date=contract_date,
        party_id=party_id,
        item_id=item_id,
        quantity_packs=Decimal(quantity_packs),
        rate_per_10kg=Decimal(rate_per_10kg),
        contract_no=contract_no,
        ex_plant_id=ex_plant_id,
    )


@pytest.fixture
def migrated_database_url(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> str:
    """Create a SQLite database upgraded to the latest Alembic revision."""

    database_url = f"sqlite:///{tmp_path / 'ledger.db'}"
    monkeypatch.setenv("DATABASE_URL", database_url)

    alembic_config = Config()
    alembic_config.set_main_option("script_location", str(_PROJECT_ROOT / "alembic"))
    command.upgrade(alembic_config, "head")
    return database_url


@pytest.fixture
def ledger_engine(migrated_database_url: str) -> Engine:
    """Engine bound to the migrated test database."""

    engine = db_create_engine(migrated_database_url)
    yield engine
    engine.dispose()


@pytest.fixture
def ledger_store(ledger_engine: Engine) -> SQLAlchemyLedgerStoreService:
    return SQLAlchemyLedgerStoreService(engine=ledger_engine)


@pytest.fixture
def derived_repository(ledger_engine: Engine) -> SQLAlchemyDerivedSnapshotService:
    return SQLAlchemyDerivedSnapshotService(engine=ledger_engine)


@pytest.fixture
def run_repository(ledger_engine: Engine) -> SQLAlchemyRecalculationRunService:
    return SQLAlchemyRecalculationRunService(engine=ledger_engine)


@pytest.fixture
def reconciliation_service(ledger_store: SQLAlchemyLedgerStoreService) -> LedgerReconciliationService:
    return LedgerReconciliationService(store=ledger_store)


@pytest.fixture
def orchestrator(
    reconciliation_service: LedgerReconciliationService,
    derived_repository: SQLAlchemyDerivedSnapshotService,
    run_repository: SQLAlchemyRecalculationRunService,
) -> LedgerRecalculationOrchestrator:
    return LedgerRecalculationOrchestrator(
        reconciliation_service=reconciliation_service,
        derived_repository=derived_repository,
        run_repository=run_repository,
        lock_timeout_seconds=1.0,
    )


@pytest.fixture
def app_settings(migrated_database_url: str) -> AppSettings:
    return AppSettings(
        database_url=migrated_database_url,
        ledger_report_timezone="Asia/Kolkata",
        refresh_stock_on_write=True,
        api_default_limit=50,
        api_max_limit=200,
    )


@pytest.fixture
def make_contract_request():
    """Factory fixture building contract write requests with test defaults."""

    return _build_contract_request


@pytest.fixture
def api_client(
    app_settings: AppSettings,
    ledger_engine: Engine,
    reconciliation_service: LedgerReconciliationService,
    derived_repository: SQLAlchemyDerivedSnapshotService,
    run_repository: SQLAlchemyRecalculationRunService,
    orchestrator: LedgerRecalculationOrchestrator,
) -> TestClient:
    """Test client for the full API wired on the migrated database."""

    application = create_api_application(
        settings=app_settings,
        db_health_service=SQLAlchemyDatabaseHealthService(engine=ledger_engine),
        reconciliation_service=reconciliation_service,
        derived_repository=derived_repository,
        run_repository=run_repository,
        orchestrator=orchestrator,
    )
    return TestClient(application)
