"""Ledger layer package for pending quantities, stock and P&L engine boundaries."""

from .contract_numbers import contract_number_next, contract_number_prefix
from .interfaces import LedgerContractInput, LedgerDeliveryInput
from .pending import (
	PendingQuantityResult,
	pending_compute,
	pending_compute_lenient,
	pending_validate_new_delivery,
	pending_validate_quantity_change,
)
from .pnl_engine import (
	PNL_MODE_FUTURE,
	PNL_MODE_SETTLED,
	PnlComputation,
	PnlComputationResult,
	PnlPairs,
	PnlSummary,
	pnl_build_pairs,
	pnl_compute_future,
	pnl_compute_settled,
	pnl_summarize,
)
from .reconciliation_service import (
	LedgerRebuildPlan,
	LedgerReconciliationService,
	LedgerWriteResult,
	PendingContractView,
	ledger_build_contract_input,
	ledger_distinct_contract_dates,
	ledger_pnl_record_from_computation,
	ledger_stock_record_from_position,
)
from .report_dates import report_business_today, report_parse_date, report_resolve_business_date
from .stock_aggregator import (
	StockAggregationResult,
	StockPosition,
	StockSummary,
	stock_aggregate_item,
	stock_aggregate_ledger,
	stock_summarize,
)
from .weighted_average import weighted_average_rate

__all__ = [
	"LedgerContractInput",
	"LedgerDeliveryInput",
	"LedgerRebuildPlan",
	"LedgerReconciliationService",
	"LedgerWriteResult",
	"PNL_MODE_FUTURE",
	"PNL_MODE_SETTLED",
	"PendingContractView",
	"PendingQuantityResult",
	"PnlComputation",
	"PnlComputationResult",
	"PnlPairs",
	"PnlSummary",
	"StockAggregationResult",
	"StockPosition",
	"StockSummary",
	"contract_number_next",
	"contract_number_prefix",
	"ledger_build_contract_input",
	"ledger_distinct_contract_dates",
	"ledger_pnl_record_from_computation",
	"ledger_stock_record_from_position",
	"pending_compute",
	"pending_compute_lenient",
	"pending_validate_new_delivery",
	"pending_validate_quantity_change",
	"pnl_build_pairs",
	"pnl_compute_future",
	"pnl_compute_settled",
	"pnl_summarize",
	"report_business_today",
	"report_parse_date",
	"report_resolve_business_date",
	"stock_aggregate_item",
	"stock_aggregate_ledger",
	"stock_summarize",
	"weighted_average_rate",
]
