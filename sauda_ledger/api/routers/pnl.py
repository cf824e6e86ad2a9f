"""P&L API router composition for settled and future reports."""
# pylint: disable=duplicate-code

from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse

from sauda_ledger.config import AppSettings
from sauda_ledger.db import DerivedSnapshotRepositoryPort
from sauda_ledger.jobs import JOB_PNL_RECALCULATE, LedgerRecalculationOrchestrator
from sauda_ledger.ledger import LedgerReconciliationService, pnl_summarize, report_business_today

from ..schemas import SettledPnlGenerateBody
from ..serialization import (
    API_HANDLED_ERRORS,
    api_error_response_for_exception,
    api_serialize_job_result,
    api_serialize_pnl_record,
    api_serialize_pnl_summary,
)

logger = logging.getLogger("sauda_ledger.api.pnl")


def api_create_pnl_router(
    settings: AppSettings,
    reconciliation_service: LedgerReconciliationService,
    derived_repository: DerivedSnapshotRepositoryPort,
    orchestrator: LedgerRecalculationOrchestrator,
) -> APIRouter:
    """Create P&L router exposing settled and future report endpoints.

    Settled reports are generated on first read of a date and served from the
    derived table afterwards, so later ledger edits for that date surface only
    after `POST /pnl/settled/generate` or a full recalculation. A date before
    the first contract reads as an empty report without generating anything.

    Args:
        settings: Runtime settings used for the business timezone.
        reconciliation_service: Ledger service used to detect dates with no contracts.
        derived_repository: DB-layer derived table service.
        orchestrator: Recalculation orchestrator for P&L generation.

    Returns:
        APIRouter: Router exposing `/pnl` endpoints.

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

    router = APIRouter(prefix="/pnl", tags=["pnl"])

    def _settled_payload(report_date: date, generated: bool) -> dict[str, object]:
        records = derived_repository.db_pnl_record_list_settled(report_date)
        return {
            "mode": "settled",
            "report_date": report_date.isoformat(),
            "generated": generated,
            "items": [api_serialize_pnl_record(record) for record in records],
            "summary": api_serialize_pnl_summary(pnl_summarize(records)),
        }

    @router.get("/settled")
    def api_pnl_settled(report_date: date | None = Query(default=None)) -> JSONResponse:
        """Return settled P&L for one date, generating it when the date has no rows yet.

        Args:
            report_date: Inclusive report date; business today when omitted.

        Returns:
            JSONResponse: Item rows with report totals.
        """

        resolved_report_date = report_date or report_business_today(settings.ledger_report_timezone)
        try:
            generated = False
            if resolved_report_date not in derived_repository.db_pnl_settled_dates() and (
                reconciliation_service.ledger_has_contracts_through(resolved_report_date)
            ):
                orchestrator.job_generate_settled_pnl(resolved_report_date)
                generated = True
                logger.info("settled_pnl_generated_on_read", extra={"report_date": resolved_report_date.isoformat()})
            payload = _settled_payload(resolved_report_date, generated)
        except API_HANDLED_ERRORS as error:
            return api_error_response_for_exception(error)

        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    @router.post("/settled/generate")
    def api_pnl_settled_generate(body: SettledPnlGenerateBody) -> JSONResponse:
        """Regenerate settled P&L rows for one date from the current ledger."""

        resolved_report_date = body.report_date or report_business_today(settings.ledger_report_timezone)
        try:
            result = orchestrator.job_generate_settled_pnl(resolved_report_date)
            payload = _settled_payload(resolved_report_date, True)
        except API_HANDLED_ERRORS as error:
            return api_error_response_for_exception(error)

        payload["job"] = api_serialize_job_result(result)
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    @router.get("/future")
    def api_pnl_future(refresh: bool = Query(default=True)) -> JSONResponse:
        """Return future P&L on undelivered quantities.

        Args:
            refresh: Recompute from the current ledger before reading; when false,
                the rows of the last generation are returned.

        Returns:
            JSONResponse: Item rows with report totals and integrity violations.
        """

        try:
            result = orchestrator.job_generate_future_pnl() if refresh else None
            records = derived_repository.db_pnl_record_list_future()
        except API_HANDLED_ERRORS as error:
            return api_error_response_for_exception(error)

        payload = {
            "mode": "future",
            "refreshed": refresh,
            "items": [api_serialize_pnl_record(record) for record in records],
            "summary": api_serialize_pnl_summary(pnl_summarize(records)),
            "violations": [] if result is None else api_serialize_job_result(result)["violations"],
        }
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    @router.post("/recalculate-all")
    def api_pnl_recalculate_all() -> JSONResponse:
        """Rebuild settled P&L for every contract date plus the future view."""

        try:
            result = orchestrator.job_execute(JOB_PNL_RECALCULATE)
        except API_HANDLED_ERRORS as error:
            return api_error_response_for_exception(error)

        return JSONResponse(content=api_serialize_job_result(result), status_code=status.HTTP_200_OK)

    return router


__all__ = ["api_create_pnl_router"]
