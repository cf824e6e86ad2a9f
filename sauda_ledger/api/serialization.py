"""JSON serialization and error payload helpers shared by API routers.

Decimal figures are rendered as strings so no precision is lost in transit.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from fastapi import status
from fastapi.responses import JSONResponse

from sauda_ledger.db import DeliveryEventRecord, PnlRecord, RecalculationRunRecord, StockSnapshotRecord
from sauda_ledger.domain import (
    LedgerRecalculationError,
    LedgerRecordNotFoundError,
    LedgerStoreError,
    LedgerValidationError,
    OverDeliveryValidationError,
    OverDeliveryViolation,
    RecalculationAlreadyRunningError,
)
from sauda_ledger.jobs import JobExecutionResult
from sauda_ledger.ledger import PendingContractView, PnlSummary, StockPosition, StockSummary

_API_DECIMAL_QUANTUM = Decimal("0.000001")

API_HANDLED_ERRORS = (
    LedgerValidationError,
    LedgerRecordNotFoundError,
    LedgerStoreError,
    LedgerRecalculationError,
    RecalculationAlreadyRunningError,
    ValueError,
)


def api_error_response(status_code: int, code: str, message: str, **extra: object) -> JSONResponse:
    """Build the standard error envelope."""

    payload: dict[str, object] = {"status": "error", "code": code, "message": message}
    payload.update(extra)
    return JSONResponse(content=payload, status_code=status_code)


def api_error_response_for_exception(error: Exception) -> JSONResponse:
    """Map a ledger exception to its HTTP error response.

    Args:
        error: Exception raised by a service or orchestrator call.

    Returns:
        JSONResponse: Error envelope with the mapped status code.

    Raises:
        Exception: Re-raises exceptions that have no HTTP mapping.
    """

    if isinstance(error, OverDeliveryValidationError):
        return api_error_response(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "OVER_DELIVERY",
            str(error),
            contract_id=error.contract_id,
            remaining_packs=api_decimal(error.remaining_packs),
            requested_packs=api_decimal(error.requested_packs),
        )
    if isinstance(error, (LedgerValidationError, ValueError)):
        return api_error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, "VALIDATION_ERROR", str(error))
    if isinstance(error, LedgerRecordNotFoundError):
        return api_error_response(status.HTTP_404_NOT_FOUND, "NOT_FOUND", str(error))
    if isinstance(error, RecalculationAlreadyRunningError):
        return api_error_response(status.HTTP_409_CONFLICT, "RECALCULATION_RUNNING", str(error))
    if isinstance(error, LedgerStoreError):
        return api_error_response(status.HTTP_503_SERVICE_UNAVAILABLE, "STORE_UNAVAILABLE", str(error))
    if isinstance(error, LedgerRecalculationError):
        return api_error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "RECALCULATION_FAILED", str(error))
    raise error


def api_decimal(value: Decimal | None) -> str | None:
    """Render a decimal at the stored scale without exponent notation or trailing zeros."""

    if value is None:
        return None
    rounded_value = value.quantize(_API_DECIMAL_QUANTUM, rounding=ROUND_HALF_UP)
    if rounded_value == 0:
        return "0"
    return format(rounded_value.normalize(), "f")


def api_serialize_contract_view(view: PendingContractView) -> dict[str, object]:
    """Serialize one contract with its pending status."""

    contract = view.contract
    return {
        "contract_id": contract.contract_id,
        "contract_no": contract.contract_no,
        "direction": contract.direction.value,
        "contract_date": contract.contract_date.isoformat(),
        "party_id": contract.party_id,
        "item_id": contract.item_id,
        "ex_plant_id": contract.ex_plant_id,
        "broker_id": contract.broker_id,
        "quantity_packs": api_decimal(contract.quantity_packs),
        "rate_per_10kg": api_decimal(contract.rate_per_10kg),
        "loading_due_date": None if contract.loading_due_date is None else contract.loading_due_date.isoformat(),
        "loaded_packs": api_decimal(view.pending.loaded_packs),
        "pending_packs": api_decimal(view.pending.pending_packs),
        "delivery_count": view.delivery_count,
        "violation": None if view.pending.violation is None else view.pending.violation.to_payload(),
        "created_at_utc": contract.created_at_utc.isoformat(),
    }


def api_serialize_delivery(delivery: DeliveryEventRecord) -> dict[str, object]:
    """Serialize one delivery event."""

    return {
        "delivery_event_id": delivery.delivery_event_id,
        "contract_id": delivery.contract_id,
        "delivery_date": delivery.delivery_date.isoformat(),
        "weight_kg": api_decimal(delivery.weight_kg),
        "transport_note": delivery.transport_note,
        "created_at_utc": delivery.created_at_utc.isoformat(),
    }


def api_serialize_stock_row(row: StockSnapshotRecord | StockPosition) -> dict[str, object]:
    """Serialize one persisted stock row or live stock position."""

    return {
        "scope": row.scope,
        "item_id": row.item_id,
        "party_id": row.party_id,
        "total_purchase_packs": api_decimal(row.total_purchase_packs),
        "total_sell_packs": api_decimal(row.total_sell_packs),
        "loaded_purchase_packs": api_decimal(row.loaded_purchase_packs),
        "loaded_sell_packs": api_decimal(row.loaded_sell_packs),
        "pending_purchase_packs": api_decimal(row.pending_purchase_packs),
        "pending_sell_packs": api_decimal(row.pending_sell_packs),
        "net_stock_packs": api_decimal(row.net_stock_packs),
        "purchase_value": api_decimal(row.purchase_value),
        "sell_value": api_decimal(row.sell_value),
        "loaded_purchase_value": api_decimal(row.loaded_purchase_value),
        "loaded_sell_value": api_decimal(row.loaded_sell_value),
        "avg_purchase_rate": api_decimal(row.avg_purchase_rate),
        "avg_sell_rate": api_decimal(row.avg_sell_rate),
        "contract_count": row.contract_count,
    }


def api_serialize_stock_summary(summary: StockSummary) -> dict[str, object]:
    """Serialize stock totals."""

    return {
        "item_count": summary.item_count,
        "total_purchase_packs": api_decimal(summary.total_purchase_packs),
        "total_sell_packs": api_decimal(summary.total_sell_packs),
        "loaded_purchase_packs": api_decimal(summary.loaded_purchase_packs),
        "loaded_sell_packs": api_decimal(summary.loaded_sell_packs),
        "pending_purchase_packs": api_decimal(summary.pending_purchase_packs),
        "pending_sell_packs": api_decimal(summary.pending_sell_packs),
        "net_stock_packs": api_decimal(summary.net_stock_packs),
        "purchase_value": api_decimal(summary.purchase_value),
        "sell_value": api_decimal(summary.sell_value),
        "avg_purchase_rate": api_decimal(summary.avg_purchase_rate),
        "avg_sell_rate": api_decimal(summary.avg_sell_rate),
    }


def api_serialize_pnl_record(record: PnlRecord) -> dict[str, object]:
    """Serialize one P&L row; `buy_quantity` is in packs and `sell_quantity` in kg."""

    return {
        "mode": record.mode,
        "report_date": None if record.report_date is None else record.report_date.isoformat(),
        "item_id": record.item_id,
        "buy_total_value": api_decimal(record.buy_total_value),
        "sell_total_value": api_decimal(record.sell_total_value),
        "buy_quantity_packs": api_decimal(record.buy_quantity),
        "sell_quantity_kg": api_decimal(record.sell_quantity),
        "avg_buy_rate": api_decimal(record.avg_buy_rate),
        "avg_sell_rate": api_decimal(record.avg_sell_rate),
        "profit": api_decimal(record.profit),
        "contract_count": record.contract_count,
        "market_rate_per_10kg": api_decimal(record.market_rate_per_10kg),
    }


def api_serialize_pnl_summary(summary: PnlSummary) -> dict[str, object]:
    """Serialize P&L report totals."""

    return {
        "item_count": summary.item_count,
        "buy_total_value": api_decimal(summary.buy_total_value),
        "sell_total_value": api_decimal(summary.sell_total_value),
        "buy_quantity_packs": api_decimal(summary.buy_quantity),
        "sell_quantity_kg": api_decimal(summary.sell_quantity),
        "avg_buy_rate": api_decimal(summary.avg_buy_rate),
        "avg_sell_rate": api_decimal(summary.avg_sell_rate),
        "profit": api_decimal(summary.profit),
    }


def api_serialize_violations(violations: tuple[OverDeliveryViolation, ...]) -> list[dict[str, object]]:
    """Serialize an integrity violation report."""

    return [violation.to_payload() for violation in violations]


def api_serialize_job_result(result: JobExecutionResult) -> dict[str, object]:
    """Serialize one job execution result; `violations` is always present."""

    return {
        "job_name": result.job_name,
        "status": result.status,
        "recalculation_run_id": result.recalculation_run_id,
        "details": result.details,
        "violations": api_serialize_violations(result.violations),
    }


def api_serialize_recalculation_run(run_record: RecalculationRunRecord) -> dict[str, object]:
    """Serialize one recalculation run row."""

    return {
        "recalculation_run_id": run_record.recalculation_run_id,
        "job_name": run_record.job_name,
        "status": run_record.status,
        "started_at_utc": run_record.started_at_utc.isoformat(),
        "ended_at_utc": None if run_record.ended_at_utc is None else run_record.ended_at_utc.isoformat(),
        "duration_ms": run_record.duration_ms,
        "violation_count": run_record.violation_count,
        "error_code": run_record.error_code,
        "error_message": run_record.error_message,
        "diagnostics": run_record.diagnostics,
    }


__all__ = [
    "API_HANDLED_ERRORS",
    "api_decimal",
    "api_error_response",
    "api_error_response_for_exception",
    "api_serialize_contract_view",
    "api_serialize_delivery",
    "api_serialize_job_result",
    "api_serialize_pnl_record",
    "api_serialize_pnl_summary",
    "api_serialize_recalculation_run",
    "api_serialize_stock_row",
    "api_serialize_stock_summary",
    "api_serialize_violations",
]
