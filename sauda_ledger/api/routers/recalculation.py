"""Recalculation API router composition for full rebuild trigger and run log endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse

from sauda_ledger.config import AppSettings
from sauda_ledger.db import RecalculationRunRepositoryPort
from sauda_ledger.jobs import JOB_LEDGER_RECALCULATE, LedgerRecalculationOrchestrator

from ..serialization import (
    API_HANDLED_ERRORS,
    api_error_response,
    api_error_response_for_exception,
    api_serialize_job_result,
    api_serialize_recalculation_run,
)


def api_create_recalculation_router(
    settings: AppSettings,
    run_repository: RecalculationRunRepositoryPort,
    orchestrator: LedgerRecalculationOrchestrator,
) -> APIRouter:
    """Create recalculation router with trigger and run list/detail endpoints.

    Args:
        settings: Runtime settings used for pagination defaults.
        run_repository: DB-layer recalculation run repository.
        orchestrator: Recalculation orchestrator.

    Returns:
        APIRouter: Router exposing `/recalculation` endpoints.

    Raises:
        ValueError: Raised when dependencies are invalid.
    """

    if settings is None:
        raise ValueError("settings must not be None")
    if run_repository is None:
        raise ValueError("run_repository must not be None")
    if orchestrator is None:
        raise ValueError("orchestrator must not be None")

    router = APIRouter(prefix="/recalculation", tags=["recalculation"])

    @router.post("/run")
    def api_recalculation_run_trigger() -> JSONResponse:
        """Rebuild every derived stock and P&L row from the ledger.

        Returns:
            JSONResponse: Job result with the integrity violation report.
        """

        try:
            execution_result = orchestrator.job_execute(JOB_LEDGER_RECALCULATE)
        except API_HANDLED_ERRORS as error:
            return api_error_response_for_exception(error)

        return JSONResponse(content=api_serialize_job_result(execution_result), status_code=status.HTTP_200_OK)

    @router.get("/runs")
    def api_recalculation_run_list(
        limit: int = Query(default=settings.api_default_limit, ge=1),
        offset: int = Query(default=0, ge=0),
    ) -> JSONResponse:
        """Return recalculation runs, latest first.

        Args:
            limit: Max rows to return.
            offset: Rows to skip.

        Returns:
            JSONResponse: Runs list payload.

        Raises:
            RuntimeError: Raised when repository read fails.
        """

        applied_limit = min(limit, settings.api_max_limit)
        run_rows = run_repository.db_recalculation_run_list(limit=applied_limit, offset=offset)
        payload = {
            "items": [api_serialize_recalculation_run(run_record) for run_record in run_rows],
            "page": {
                "limit": limit,
                "applied_limit": applied_limit,
                "offset": offset,
                "returned": len(run_rows),
            },
        }
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    @router.get("/runs/{recalculation_run_id}")
    def api_recalculation_run_detail(recalculation_run_id: str) -> JSONResponse:
        """Return one recalculation run with its stage timeline."""

        run_record = run_repository.db_recalculation_run_get_by_id(recalculation_run_id)
        if run_record is None:
            return api_error_response(status.HTTP_404_NOT_FOUND, "NOT_FOUND", "recalculation run not found")

        return JSONResponse(content=api_serialize_recalculation_run(run_record), status_code=status.HTTP_200_OK)

    return router


__all__ = ["api_create_recalculation_router"]
