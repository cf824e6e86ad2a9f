"""Stock API router composition for snapshot reads and stock rebuilds."""
# pylint: disable=duplicate-code

from __future__ import annotations

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse

from sauda_ledger.config import AppSettings
from sauda_ledger.db import DerivedSnapshotRepositoryPort
from sauda_ledger.jobs import JOB_STOCK_RECALCULATE, LedgerRecalculationOrchestrator
from sauda_ledger.ledger import LedgerReconciliationService, ledger_stock_record_from_position, stock_summarize

from ..serialization import (
    API_HANDLED_ERRORS,
    api_error_response,
    api_error_response_for_exception,
    api_serialize_job_result,
    api_serialize_stock_row,
    api_serialize_stock_summary,
    api_serialize_violations,
)

_STOCK_STATUS_FILTERS = {"all", "pending"}


def api_create_stock_router(
    settings: AppSettings,
    reconciliation_service: LedgerReconciliationService,
    derived_repository: DerivedSnapshotRepositoryPort,
    orchestrator: LedgerRecalculationOrchestrator,
) -> APIRouter:
    """Create stock router exposing item and party stock endpoints.

    Args:
        settings: Runtime settings.
        reconciliation_service: Ledger service used for live item slices.
        derived_repository: DB-layer derived table service.
        orchestrator: Recalculation orchestrator for stock rebuilds.

    Returns:
        APIRouter: Router exposing `/stock` endpoints.

    Raises:
        ValueError: Raised when dependencies are invalid.
    """

    if settings is None:
        raise ValueError("settings must not be None")
    if reconciliation_service is None:
        raise ValueError("reconciliation_service must not be None")
    if derived_repository is None:
        raise ValueError("derived_repository must not be None")
    if orchestrator is None:
        raise ValueError("orchestrator must not be None")

    router = APIRouter(prefix="/stock", tags=["stock"])

    def _invalid_status_response(value: str) -> JSONResponse:
        return api_error_response(
            status.HTTP_400_BAD_REQUEST,
            "INVALID_STATUS_FILTER",
            f"unsupported status={value}",
        )

    @router.get("")
    def api_stock_list(
        item_id: str | None = Query(default=None),
        status_filter: str = Query(default="all", alias="status"),
    ) -> JSONResponse:
        """List item-level stock rows from the last rebuild.

        Args:
            item_id: Optional item filter.
            status_filter: `all` or `pending` (rows with pending packs on either side).

        Returns:
            JSONResponse: Stock rows with totals.
        """

        normalized_status = status_filter.strip().lower()
        if normalized_status not in _STOCK_STATUS_FILTERS:
            return _invalid_status_response(normalized_status)

        try:
            rows = derived_repository.db_stock_snapshot_list(
                item_id=item_id,
                scope="item",
                pending_only=normalized_status == "pending",
            )
        except API_HANDLED_ERRORS as error:
            return api_error_response_for_exception(error)

        payload = {
            "items": [api_serialize_stock_row(row) for row in rows],
            "summary": api_serialize_stock_summary(stock_summarize(rows)),
            "filters": {"item_id": item_id, "status": normalized_status},
        }
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    @router.get("/party-breakdown")
    def api_stock_party_breakdown(
        status_filter: str = Query(default="pending", alias="status"),
    ) -> JSONResponse:
        """List party-level stock rows; only parties with pending packs by default."""

        normalized_status = status_filter.strip().lower()
        if normalized_status not in _STOCK_STATUS_FILTERS:
            return _invalid_status_response(normalized_status)

        try:
            rows = derived_repository.db_stock_snapshot_list(
                scope="party",
                pending_only=normalized_status == "pending",
            )
        except API_HANDLED_ERRORS as error:
            return api_error_response_for_exception(error)

        payload = {
            "items": [api_serialize_stock_row(row) for row in rows],
            "filters": {"status": normalized_status},
        }
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    @router.get("/summary")
    def api_stock_summary() -> JSONResponse:
        """Return stock totals across all items."""

        try:
            rows = derived_repository.db_stock_snapshot_list(scope="item")
        except API_HANDLED_ERRORS as error:
            return api_error_response_for_exception(error)

        return JSONResponse(
            content={"summary": api_serialize_stock_summary(stock_summarize(rows))},
            status_code=status.HTTP_200_OK,
        )

    @router.get("/items/{item_id}")
    def api_stock_item_live(
        item_id: str,
        ex_plant_id: str | None = Query(default=None),
    ) -> JSONResponse:
        """Compute one item's stock directly from the ledger, optionally for one ex-plant.

        The result is not persisted; it reflects the ledger at request time.
        """

        try:
            aggregation = reconciliation_service.ledger_live_item_stock(item_id, ex_plant_id=ex_plant_id)
        except API_HANDLED_ERRORS as error:
            return api_error_response_for_exception(error)

        item_rows = [ledger_stock_record_from_position(position) for position in aggregation.item_positions]
        party_rows = [ledger_stock_record_from_position(position) for position in aggregation.party_positions]
        payload = {
            "item_id": item_id,
            "ex_plant_id": ex_plant_id,
            "item": api_serialize_stock_row(item_rows[0]) if item_rows else None,
            "parties": [api_serialize_stock_row(row) for row in party_rows],
            "violations": api_serialize_violations(aggregation.violations),
        }
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    @router.get("/ex-plants/{ex_plant_id}")
    def api_stock_ex_plant_live(ex_plant_id: str) -> JSONResponse:
        """Compute every item's stock for one ex-plant directly from the ledger, ordered by item."""

        try:
            aggregation = reconciliation_service.ledger_live_ex_plant_stock(ex_plant_id)
        except API_HANDLED_ERRORS as error:
            return api_error_response_for_exception(error)

        item_rows = [ledger_stock_record_from_position(position) for position in aggregation.item_positions]
        party_rows = [ledger_stock_record_from_position(position) for position in aggregation.party_positions]
        payload = {
            "ex_plant_id": ex_plant_id,
            "items": [api_serialize_stock_row(row) for row in item_rows],
            "summary": api_serialize_stock_summary(stock_summarize(aggregation.item_positions)),
            "parties": [api_serialize_stock_row(row) for row in party_rows],
            "violations": api_serialize_violations(aggregation.violations),
        }
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    @router.post("/recalculate-all")
    def api_stock_recalculate_all() -> JSONResponse:
        """Rebuild every stock row from the ledger."""

        try:
            result = orchestrator.job_execute(JOB_STOCK_RECALCULATE)
        except API_HANDLED_ERRORS as error:
            return api_error_response_for_exception(error)

        return JSONResponse(content=api_serialize_job_result(result), status_code=status.HTTP_200_OK)

    return router


__all__ = ["api_create_stock_router"]
