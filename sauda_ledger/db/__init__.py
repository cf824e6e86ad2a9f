"""Database layer package for all SQL and persistence boundaries."""

from .derived_snapshot import SQLAlchemyDerivedSnapshotService
from .health import SQLAlchemyDatabaseHealthService
from .interfaces import (
	ContractListFilter,
	ContractQuantityGuard,
	ContractRecord,
	ContractWriteRequest,
	DatabaseHealthPort,
	DeliveryEventRecord,
	DeliveryEventWriteRequest,
	DeliveryGuard,
	DerivedSnapshotReplaceRequest,
	DerivedSnapshotRepositoryPort,
	LedgerStorePort,
	PnlRecord,
	RecalculationAlreadyActiveError,
	RecalculationRunRecord,
	RecalculationRunRepositoryPort,
	StockSnapshotRecord,
)
from .ledger_store import SQLAlchemyLedgerStoreService
from .recalculation_run import SQLAlchemyRecalculationRunService
from .session import db_create_engine

__all__ = [
	"ContractListFilter",
	"ContractQuantityGuard",
	"ContractRecord",
	"ContractWriteRequest",
	"DatabaseHealthPort",
	"DeliveryEventRecord",
	"DeliveryEventWriteRequest",
	"DeliveryGuard",
	"DerivedSnapshotReplaceRequest",
	"DerivedSnapshotRepositoryPort",
	"LedgerStorePort",
	"PnlRecord",
	"RecalculationAlreadyActiveError",
	"RecalculationRunRecord",
	"RecalculationRunRepositoryPort",
	"StockSnapshotRecord",
	"SQLAlchemyDatabaseHealthService",
	"SQLAlchemyDerivedSnapshotService",
	"SQLAlchemyLedgerStoreService",
	"SQLAlchemyRecalculationRunService",
	"db_create_engine",
]
