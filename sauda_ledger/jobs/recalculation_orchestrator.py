"""Job-layer recalculation orchestrator with stage timeline persistence."""
# pylint: disable=duplicate-code

from __future__ import annotations

import logging
import threading
import traceback
from datetime import date, datetime, timezone
from typing import Callable, Iterable

from sauda_ledger.db import (
    ContractListFilter,
    DerivedSnapshotRepositoryPort,
    RecalculationAlreadyActiveError,
    RecalculationRunRepositoryPort,
)
from sauda_ledger.domain import (
    LedgerIntegrityError,
    LedgerRecalculationError,
    LedgerStoreError,
    RecalculationAlreadyRunningError,
    domain_build_stage_event,
)
from sauda_ledger.ledger import LedgerRebuildPlan, LedgerReconciliationService

from .interfaces import JobExecutionResult, JobOrchestratorPort

logger = logging.getLogger("sauda_ledger.jobs.recalculation")

JOB_STOCK_RECALCULATE = "stock_recalculate"
JOB_PNL_RECALCULATE = "pnl_recalculate"
JOB_LEDGER_RECALCULATE = "ledger_recalculate"


class LedgerRecalculationOrchestrator(JobOrchestratorPort):
    """Drives full and targeted rebuilds of the derived stock and P&L tables.

    Full rebuilds are logged as `recalculation_run` rows and rejected while
    another rebuild holds the lock. Targeted generations (one report date, the
    future view, one item's stock) wait for the lock up to the configured
    timeout. Every rebuild computes its rows first and swaps them into the
    derived tables in one transaction, so a failure leaves prior rows intact.
    """

    def __init__(
        self,
        reconciliation_service: LedgerReconciliationService,
        derived_repository: DerivedSnapshotRepositoryPort,
        run_repository: RecalculationRunRepositoryPort | None = None,
        lock_timeout_seconds: float = 30.0,
        lock: threading.Lock | None = None,
    ):
        """Initialize recalculation orchestrator dependencies.

        Args:
            reconciliation_service: Ledger loader and engine driver.
            derived_repository: DB-layer derived table service.
            run_repository: Optional DB-layer run log service.
            lock_timeout_seconds: Wait limit for targeted generations.
            lock: Optional shared process-wide lock.

        Returns:
            None: Initializer does not return a value.

        Raises:
            ValueError: Raised when dependencies or config values are invalid.
        """

        if reconciliation_service is None:
            raise ValueError("reconciliation_service must not be None")
        if derived_repository is None:
            raise ValueError("derived_repository must not be None")
        if lock_timeout_seconds <= 0:
            raise ValueError("lock_timeout_seconds must be > 0")

        self._reconciliation_service = reconciliation_service
        self._derived_repository = derived_repository
        self._run_repository = run_repository
        self._lock_timeout_seconds = lock_timeout_seconds
        self._lock = lock or threading.Lock()

    def job_supported_names(self) -> tuple[str, ...]:
        """Return supported full-rebuild job names."""

        return (JOB_STOCK_RECALCULATE, JOB_PNL_RECALCULATE, JOB_LEDGER_RECALCULATE)

    def job_execute(self, job_name: str) -> JobExecutionResult:
        """Execute one full rebuild job.

        Args:
            job_name: `stock_recalculate`, `pnl_recalculate` or `ledger_recalculate`.

        Returns:
            JobExecutionResult: Success payload with the violation report.

        Raises:
            ValueError: Raised when job name is unsupported.
            RecalculationAlreadyRunningError: Raised when another rebuild is running.
            LedgerRecalculationError: Raised when the rebuild fails; derived rows are unchanged.
        """

        normalized_job_name = job_name.strip()
        if normalized_job_name not in self.job_supported_names():
            raise ValueError(f"unsupported job_name={normalized_job_name}")

        if not self._lock.acquire(blocking=False):
            raise RecalculationAlreadyRunningError(f"{normalized_job_name} rejected: recalculation already running")
        try:
            return self._job_run_logged(normalized_job_name)
        finally:
            self._lock.release()

    def job_generate_settled_pnl(self, report_date: date) -> JobExecutionResult:
        """Regenerate settled P&L rows for one report date.

        Args:
            report_date: Inclusive report date.

        Returns:
            JobExecutionResult: Success payload with row counts.

        Raises:
            RecalculationAlreadyRunningError: Raised when the lock is not obtained in time.
            LedgerRecalculationError: Raised when generation fails.
        """

        if not isinstance(report_date, date):
            raise ValueError("report_date must be a date")

        def _plan() -> LedgerRebuildPlan:
            contracts = self._reconciliation_service.ledger_load_contracts(ContractListFilter(date_to=report_date))
            return self._reconciliation_service.ledger_build_pnl_plan(
                contracts,
                market_rates=None,
                settled_report_dates=(report_date,),
                include_future=False,
            )

        return self._job_run_targeted("settled_pnl_generate", _plan, {"report_date": report_date.isoformat()})

    def job_generate_future_pnl(self) -> JobExecutionResult:
        """Regenerate future P&L rows from the current ledger and market rates."""

        def _plan() -> LedgerRebuildPlan:
            contracts = self._reconciliation_service.ledger_load_contracts()
            return self._reconciliation_service.ledger_build_pnl_plan(
                contracts,
                market_rates=self._reconciliation_service.ledger_load_market_rates(),
                settled_report_dates=(),
                include_future=True,
            )

        return self._job_run_targeted("future_pnl_generate", _plan, {})

    def job_refresh_item_stock(self, item_id: str) -> JobExecutionResult:
        """Recompute and replace one item's stock rows.

        Args:
            item_id: Item identifier.

        Returns:
            JobExecutionResult: Success payload with the item's violations.

        Raises:
            ValueError: Raised when item_id is blank.
            RecalculationAlreadyRunningError: Raised when the lock is not obtained in time.
            LedgerRecalculationError: Raised when the refresh fails.
        """

        if not isinstance(item_id, str) or not item_id.strip():
            raise ValueError("item_id must not be blank")
        normalized_item_id = item_id.strip()

        def _plan() -> LedgerRebuildPlan:
            contracts = self._reconciliation_service.ledger_load_contracts(
                ContractListFilter(item_id=normalized_item_id)
            )
            return self._reconciliation_service.ledger_build_stock_plan(contracts, item_id=normalized_item_id)

        return self._job_run_targeted("item_stock_refresh", _plan, {"item_id": normalized_item_id})

    def job_refresh_items_stock(self, item_ids: Iterable[str]) -> list[JobExecutionResult]:
        """Refresh stock rows of several items, one replacement per item."""

        return [self.job_refresh_item_stock(item_id) for item_id in dict.fromkeys(item_ids)]

    def _job_run_logged(self, job_name: str) -> JobExecutionResult:
        """Run one full rebuild while holding the process lock and logging a run row."""

        timeline: list[dict[str, object]] = [domain_build_stage_event(stage="run", status="started")]
        run_id = None
        if self._run_repository is not None:
            try:
                run_id = self._run_repository.db_recalculation_run_create_started(job_name).recalculation_run_id
            except RecalculationAlreadyActiveError as error:
                raise RecalculationAlreadyRunningError(f"{job_name} rejected: recalculation already running") from error

        logger.info("recalculation_started", extra={"job_name": job_name, "recalculation_run_id": run_id})
        try:
            plan = self._job_build_full_plan(job_name, timeline)

            timeline.append(domain_build_stage_event(stage="replace", status="started"))
            self._derived_repository.db_derived_replace(plan.replace_request)
            details = self._job_plan_details(plan)
            timeline.append(domain_build_stage_event(stage="replace", status="completed", details=details))
        except Exception as error:
            timeline.append(
                domain_build_stage_event(
                    stage="run",
                    status="failed",
                    details={
                        "error_type": type(error).__name__,
                        "error_message": str(error),
                        "traceback": traceback.format_exc(),
                    },
                )
            )
            if self._run_repository is not None and run_id is not None:
                self._run_repository.db_recalculation_run_finalize(
                    recalculation_run_id=run_id,
                    status="failed",
                    violation_count=0,
                    error_code=self._job_error_code_for_exception(error),
                    error_message=str(error),
                    diagnostics=timeline,
                )
            logger.exception("recalculation_failed", extra={"job_name": job_name, "recalculation_run_id": run_id})
            raise LedgerRecalculationError(f"{job_name} failed: {error}") from error

        violation_payloads = [violation.to_payload() for violation in plan.violations]
        timeline.append(
            domain_build_stage_event(
                stage="run",
                status="success",
                details={"violation_count": len(plan.violations)},
            )
        )
        if self._run_repository is not None and run_id is not None:
            self._run_repository.db_recalculation_run_finalize(
                recalculation_run_id=run_id,
                status="success",
                violation_count=len(plan.violations),
                error_code=None,
                error_message=None,
                diagnostics=timeline,
            )
        if plan.violations:
            logger.warning(
                "recalculation_integrity_violations",
                extra={"job_name": job_name, "violations": violation_payloads},
            )
        logger.info(
            "recalculation_completed",
            extra={"job_name": job_name, "recalculation_run_id": run_id, **details},
        )
        return JobExecutionResult(
            job_name=job_name,
            status="success",
            violations=plan.violations,
            recalculation_run_id=run_id,
            details=details,
        )

    def _job_build_full_plan(self, job_name: str, timeline: list[dict[str, object]]) -> LedgerRebuildPlan:
        """Load the ledger and compute the derived rows of one full rebuild job."""

        timeline.append(domain_build_stage_event(stage="load", status="started"))
        load_started_at = datetime.now(timezone.utc)
        contracts = self._reconciliation_service.ledger_load_contracts()
        market_rates = self._reconciliation_service.ledger_load_market_rates()
        timeline.append(
            domain_build_stage_event(
                stage="load",
                status="completed",
                details={
                    "contract_count": len(contracts),
                    "load_duration_ms": max(
                        0,
                        int((datetime.now(timezone.utc) - load_started_at).total_seconds() * 1000),
                    ),
                },
            )
        )

        timeline.append(domain_build_stage_event(stage="scan", status="started"))
        violations = self._reconciliation_service.ledger_scan_violations(contracts)
        timeline.append(
            domain_build_stage_event(
                stage="scan",
                status="completed",
                details={"violations": [violation.to_payload() for violation in violations]},
            )
        )

        timeline.append(domain_build_stage_event(stage="compute", status="started"))
        if job_name == JOB_STOCK_RECALCULATE:
            plan = self._reconciliation_service.ledger_build_stock_plan(contracts)
        elif job_name == JOB_PNL_RECALCULATE:
            plan = self._reconciliation_service.ledger_build_pnl_plan(contracts, market_rates)
        else:
            plan = self._reconciliation_service.ledger_build_full_plan(contracts, market_rates)
        plan = LedgerRebuildPlan(
            replace_request=plan.replace_request,
            violations=violations,
            contract_count=plan.contract_count,
            settled_report_dates=plan.settled_report_dates,
        )
        timeline.append(domain_build_stage_event(stage="compute", status="completed"))
        return plan

    def _job_run_targeted(
        self,
        job_name: str,
        build_plan: Callable[[], LedgerRebuildPlan],
        scope: dict[str, object],
    ) -> JobExecutionResult:
        """Run one targeted generation while holding the process lock."""

        if not self._lock.acquire(timeout=self._lock_timeout_seconds):
            raise RecalculationAlreadyRunningError(
                f"{job_name} rejected: lock not acquired within {self._lock_timeout_seconds} seconds"
            )
        try:
            plan = build_plan()
            self._derived_repository.db_derived_replace(plan.replace_request)
        except Exception as error:
            logger.exception("recalculation_failed", extra={"job_name": job_name, **scope})
            raise LedgerRecalculationError(f"{job_name} failed: {error}") from error
        finally:
            self._lock.release()

        details = {**scope, **self._job_plan_details(plan)}
        logger.info("recalculation_completed", extra={"job_name": job_name, **details})
        return JobExecutionResult(
            job_name=job_name,
            status="success",
            violations=plan.violations,
            details=details,
        )

    def _job_plan_details(self, plan: LedgerRebuildPlan) -> dict[str, object]:
        """Summarize a plan's row counts for results and timelines."""

        return {
            "contract_count": plan.contract_count,
            "stock_row_count": len(plan.replace_request.stock_rows),
            "pnl_row_count": len(plan.replace_request.pnl_rows),
            "settled_report_date_count": len(plan.settled_report_dates),
            "violation_count": len(plan.violations),
        }

    def _job_error_code_for_exception(self, error: Exception) -> str:
        """Map exception type to a deterministic recalculation failure code.

        Args:
            error: Caught workflow exception.

        Returns:
            str: Deterministic error code.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        if isinstance(error, LedgerStoreError):
            return "RECALCULATION_STORE_ERROR"
        if isinstance(error, LedgerIntegrityError):
            return "RECALCULATION_INTEGRITY_ERROR"
        if isinstance(error, (ValueError, LookupError)):
            return "RECALCULATION_CONTRACT_ERROR"
        return "RECALCULATION_UNEXPECTED_ERROR"


__all__ = [
    "JOB_LEDGER_RECALCULATE",
    "JOB_PNL_RECALCULATE",
    "JOB_STOCK_RECALCULATE",
    "LedgerRecalculationOrchestrator",
]
