"""Typed interfaces for job-layer orchestration responsibilities."""

from dataclasses import dataclass, field
from typing import Any, Protocol

from sauda_ledger.domain import OverDeliveryViolation


@dataclass(frozen=True)
class JobExecutionResult:
    """Result contract for recalculation job execution.

    Attributes:
        job_name: Job identifier.
        status: Final execution state.
        violations: Integrity violations reported by the job, possibly empty.
        recalculation_run_id: Persisted run identifier when the job was logged.
        details: Row counts and scope of the job.
    """

    job_name: str
    status: str
    violations: tuple[OverDeliveryViolation, ...] = ()
    recalculation_run_id: str | None = None
    details: dict[str, Any] = field(default_factory=dict)


class JobOrchestratorPort(Protocol):
    """Port definition for orchestrating recalculation jobs."""

    def job_supported_names(self) -> tuple[str, ...]:
        """Return the set of workflow names this orchestrator can execute.

        Returns:
            tuple[str, ...]: Deterministic list of supported job names.

        Raises:
            RuntimeError: Raised when supported job metadata is unavailable.
        """

    def job_execute(self, job_name: str) -> JobExecutionResult:
        """Execute one named workflow in the job layer.

        Args:
            job_name: Workflow name.

        Returns:
            JobExecutionResult: Final execution status payload.

        Raises:
            RuntimeError: Raised when job execution fails.
        """
