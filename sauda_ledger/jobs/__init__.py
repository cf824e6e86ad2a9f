"""Job layer package for workflow orchestration boundaries."""

from .interfaces import JobExecutionResult, JobOrchestratorPort
from .recalculation_orchestrator import (
	JOB_LEDGER_RECALCULATE,
	JOB_PNL_RECALCULATE,
	JOB_STOCK_RECALCULATE,
	LedgerRecalculationOrchestrator,
)

__all__ = [
	"JOB_LEDGER_RECALCULATE",
	"JOB_PNL_RECALCULATE",
	"JOB_STOCK_RECALCULATE",
	"JobExecutionResult",
	"JobOrchestratorPort",
	"LedgerRecalculationOrchestrator",
]
