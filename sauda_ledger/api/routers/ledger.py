"""Ledger API router composition for contract and delivery writes and listings."""
# pylint: disable=too-many-locals

from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse

from sauda_ledger.config import AppSettings
from sauda_ledger.db import ContractListFilter
from sauda_ledger.domain import ContractDirection, LedgerRecalculationError, RecalculationAlreadyRunningError
from sauda_ledger.jobs import LedgerRecalculationOrchestrator
from sauda_ledger.ledger import LedgerReconciliationService, LedgerWriteResult

from ..schemas import ContractWriteBody, DeliveryCreateBody, DeliveryUpdateBody, MarketRateBody
from ..serialization import (
    API_HANDLED_ERRORS,
    api_decimal,
    api_error_response,
    api_error_response_for_exception,
    api_serialize_contract_view,
    api_serialize_delivery,
)

logger = logging.getLogger("sauda_ledger.api.ledger")


def api_create_ledger_router(
    settings: AppSettings,
    reconciliation_service: LedgerReconciliationService,
    orchestrator: LedgerRecalculationOrchestrator,
) -> APIRouter:
    """Create ledger router exposing contract and delivery endpoints.

    Successful writes refresh the affected items' stock rows when
    `refresh_stock_on_write` is enabled.

    Args:
        settings: Runtime settings.
        reconciliation_service: Ledger service performing guarded writes.
        orchestrator: Recalculation orchestrator used for per-item stock refresh.

    Returns:
        APIRouter: Router exposing `/ledger` endpoints.

    Raises:
        ValueError: Raised when dependencies are invalid.
    """

    if settings is None:
        raise ValueError("settings must not be None")
    if reconciliation_service is None:
        raise ValueError("reconciliation_service must not be None")
    if orchestrator is None:
        raise ValueError("orchestrator must not be None")

    router = APIRouter(prefix="/ledger", tags=["ledger"])

    def _refresh_stock(write_result: LedgerWriteResult) -> str:
        """Refresh stock rows of the written items and report the outcome."""

        if not settings.refresh_stock_on_write:
            return "disabled"
        try:
            orchestrator.job_refresh_items_stock(write_result.affected_item_ids)
        except (RecalculationAlreadyRunningError, LedgerRecalculationError) as error:
            logger.warning(
                "stock_refresh_deferred",
                extra={"item_ids": list(write_result.affected_item_ids), "reason": str(error)},
            )
            return "deferred"
        return "refreshed"

    @router.get("/contracts")
    def api_contract_list(
        direction: ContractDirection | None = Query(default=None),
        item_id: str | None = Query(default=None),
        party_id: str | None = Query(default=None),
        ex_plant_id: str | None = Query(default=None),
        date_from: date | None = Query(default=None),
        date_to: date | None = Query(default=None),
        status_filter: str = Query(default="all", alias="status"),
        limit: int = Query(default=settings.api_default_limit, ge=1),
        offset: int = Query(default=0, ge=0),
    ) -> JSONResponse:
        """List contracts with loaded and pending quantities.

        Args:
            status_filter: `all` or `pending` (contracts with undelivered quantity).

        Returns:
            JSONResponse: Contract list envelope payload.
        """

        normalized_status = status_filter.strip().lower()
        if normalized_status not in {"all", "pending"}:
            return api_error_response(
                status.HTTP_400_BAD_REQUEST,
                "INVALID_STATUS_FILTER",
                f"unsupported status={normalized_status}",
            )

        contract_filter = ContractListFilter(
            direction=direction,
            item_id=item_id,
            party_id=party_id,
            ex_plant_id=ex_plant_id,
            date_from=date_from,
            date_to=date_to,
        )
        try:
            if normalized_status == "pending":
                views = reconciliation_service.ledger_list_pending_contracts(contract_filter)
            else:
                views = reconciliation_service.ledger_list_contracts(contract_filter)
        except API_HANDLED_ERRORS as error:
            return api_error_response_for_exception(error)

        applied_limit = min(limit, settings.api_max_limit)
        page_views = views[offset : offset + applied_limit]
        payload = {
            "items": [api_serialize_contract_view(view) for view in page_views],
            "page": {
                "limit": limit,
                "applied_limit": applied_limit,
                "offset": offset,
                "returned": len(page_views),
                "total": len(views),
            },
            "filters": {
                "direction": None if direction is None else direction.value,
                "item_id": item_id,
                "party_id": party_id,
                "ex_plant_id": ex_plant_id,
                "date_from": None if date_from is None else date_from.isoformat(),
                "date_to": None if date_to is None else date_to.isoformat(),
                "status": normalized_status,
            },
        }
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    @router.post("/contracts")
    def api_contract_create(body: ContractWriteBody) -> JSONResponse:
        """Create one contract, numbering it when no number is given."""

        try:
            write_result = reconciliation_service.ledger_create_contract(body.to_request())
            view = reconciliation_service.ledger_get_contract(write_result.record.contract_id)
        except API_HANDLED_ERRORS as error:
            return api_error_response_for_exception(error)

        payload = {"contract": api_serialize_contract_view(view), "stock_refresh": _refresh_stock(write_result)}
        return JSONResponse(content=payload, status_code=status.HTTP_201_CREATED)

    @router.get("/contracts/{contract_id}")
    def api_contract_detail(contract_id: str) -> JSONResponse:
        """Return one contract with its deliveries and pending quantity."""

        try:
            view = reconciliation_service.ledger_get_contract(contract_id)
            deliveries = reconciliation_service.ledger_list_deliveries(contract_id)
        except API_HANDLED_ERRORS as error:
            return api_error_response_for_exception(error)

        payload = {
            "contract": api_serialize_contract_view(view),
            "deliveries": [api_serialize_delivery(delivery) for delivery in deliveries],
        }
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    @router.put("/contracts/{contract_id}")
    def api_contract_update(contract_id: str, body: ContractWriteBody) -> JSONResponse:
        """Edit one contract; quantities below the loaded amount are rejected with 422."""

        try:
            write_result = reconciliation_service.ledger_update_contract(contract_id, body.to_request())
            view = reconciliation_service.ledger_get_contract(contract_id)
        except API_HANDLED_ERRORS as error:
            return api_error_response_for_exception(error)

        payload = {"contract": api_serialize_contract_view(view), "stock_refresh": _refresh_stock(write_result)}
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    @router.delete("/contracts/{contract_id}")
    def api_contract_delete(contract_id: str) -> JSONResponse:
        """Delete one contract together with its deliveries."""

        try:
            write_result = reconciliation_service.ledger_delete_contract(contract_id)
        except API_HANDLED_ERRORS as error:
            return api_error_response_for_exception(error)

        payload = {
            "contract_id": write_result.record.contract_id,
            "status": "deleted",
            "stock_refresh": _refresh_stock(write_result),
        }
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    @router.get("/contracts/{contract_id}/deliveries")
    def api_delivery_list(contract_id: str) -> JSONResponse:
        """List delivery events of one contract."""

        try:
            deliveries = reconciliation_service.ledger_list_deliveries(contract_id)
        except API_HANDLED_ERRORS as error:
            return api_error_response_for_exception(error)

        payload = {"items": [api_serialize_delivery(delivery) for delivery in deliveries]}
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    @router.post("/contracts/{contract_id}/deliveries")
    def api_delivery_create(contract_id: str, body: DeliveryCreateBody) -> JSONResponse:
        """Record one delivery; over-deliveries are rejected with 422 and nothing is stored."""

        try:
            write_result = reconciliation_service.ledger_record_delivery(body.to_request(contract_id))
            view = reconciliation_service.ledger_get_contract(contract_id)
        except API_HANDLED_ERRORS as error:
            return api_error_response_for_exception(error)

        payload = {
            "delivery": api_serialize_delivery(write_result.record),
            "contract": api_serialize_contract_view(view),
            "stock_refresh": _refresh_stock(write_result),
        }
        return JSONResponse(content=payload, status_code=status.HTTP_201_CREATED)

    @router.put("/deliveries/{delivery_event_id}")
    def api_delivery_update(delivery_event_id: str, body: DeliveryUpdateBody) -> JSONResponse:
        """Edit one delivery; the edit is checked against the contract's remaining quantity."""

        try:
            write_result = reconciliation_service.ledger_update_delivery(
                delivery_event_id,
                body.to_request(body.contract_id),
            )
        except API_HANDLED_ERRORS as error:
            return api_error_response_for_exception(error)

        payload = {
            "delivery": api_serialize_delivery(write_result.record),
            "stock_refresh": _refresh_stock(write_result),
        }
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    @router.delete("/deliveries/{delivery_event_id}")
    def api_delivery_delete(delivery_event_id: str) -> JSONResponse:
        """Delete one delivery event."""

        try:
            write_result = reconciliation_service.ledger_delete_delivery(delivery_event_id)
        except API_HANDLED_ERRORS as error:
            return api_error_response_for_exception(error)

        payload = {
            "delivery_event_id": write_result.record.delivery_event_id,
            "status": "deleted",
            "stock_refresh": _refresh_stock(write_result),
        }
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    @router.put("/market-rates")
    def api_market_rate_set(body: MarketRateBody) -> JSONResponse:
        """Record an item's market rate; it is shown beside future P&L only."""

        try:
            reconciliation_service.ledger_set_market_rate(body.item_id, body.effective_date, body.rate_per_10kg)
        except API_HANDLED_ERRORS as error:
            return api_error_response_for_exception(error)

        payload = {
            "item_id": body.item_id,
            "effective_date": body.effective_date.isoformat(),
            "rate_per_10kg": api_decimal(body.rate_per_10kg),
        }
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    return router


__all__ = ["api_create_ledger_router"]
