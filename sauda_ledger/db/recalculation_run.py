"""Database service for recalculation run lifecycle persistence and lock enforcement."""

from __future__ import annotations

import hashlib
import json
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import uuid4

from sqlalchemy import Connection, Engine, text
from sqlalchemy.exc import SQLAlchemyError

from .interfaces import (
    RecalculationAlreadyActiveError,
    RecalculationRunRecord,
    RecalculationRunRepositoryPort,
)
from .values import (
    db_value_parse_datetime,
    db_value_parse_json_list,
    db_value_parse_optional_datetime,
    db_value_require_text,
)

_RUN_SELECT_COLUMNS = (
    "SELECT "
    "recalculation_run_id, job_name, status, started_at_utc, ended_at_utc, duration_ms, "
    "violation_count, error_code, error_message, diagnostics "
    "FROM recalculation_run "
)

_ADVISORY_LOCK_SCOPE = "sauda_ledger.recalculation"


class SQLAlchemyRecalculationRunService(RecalculationRunRepositoryPort):
    """SQLAlchemy-backed recalculation run service.

    A `started` row acts as the cross-process guard for full rebuilds. Rows
    left `started` by a crashed process stop blocking once they are older than
    `stale_after_seconds`; they are closed as failed with `stale_run`.
    """

    def __init__(self, engine: Engine, stale_after_seconds: float = 3600.0):
        """Initialize recalculation run persistence service.

        Args:
            engine: SQLAlchemy engine used for all persistence operations.
            stale_after_seconds: Age after which a `started` run no longer blocks new runs.

        Returns:
            None: This initializer does not return a value.

        Raises:
            ValueError: Raised when engine is None or the stale threshold is not positive.
        """

        if engine is None:
            raise ValueError("engine must not be None")
        if stale_after_seconds <= 0:
            raise ValueError("stale_after_seconds must be > 0")
        self._engine = engine
        self._stale_after = timedelta(seconds=stale_after_seconds)

    def db_recalculation_run_create_started(self, job_name: str) -> RecalculationRunRecord:
        """Create a started run while enforcing a single active recalculation run.

        Args:
            job_name: Executed job name.

        Returns:
            RecalculationRunRecord: Newly created started run.

        Raises:
            RecalculationAlreadyActiveError: Raised when lock cannot be obtained or active run exists.
            ValueError: Raised when job_name is blank.
            RuntimeError: Raised when persistence fails.
        """

        normalized_job_name = db_value_require_text(job_name, "job_name")
        now_utc = datetime.now(timezone.utc)
        recalculation_run_id = str(uuid4())

        try:
            with self._engine.begin() as connection:
                self._db_try_advisory_lock(connection)

                connection.execute(
                    text(
                        "UPDATE recalculation_run SET "
                        "status = 'failed', ended_at_utc = :ended_at_utc, error_code = 'stale_run', "
                        "error_message = 'run did not finish before the stale threshold' "
                        "WHERE status = 'started' AND started_at_utc < :stale_before_utc"
                    ),
                    {
                        "ended_at_utc": now_utc.isoformat(),
                        "stale_before_utc": (now_utc - self._stale_after).isoformat(),
                    },
                )

                active_row = connection.execute(
                    text("SELECT recalculation_run_id FROM recalculation_run WHERE status = 'started' LIMIT 1")
                ).first()
                if active_row is not None:
                    raise RecalculationAlreadyActiveError("recalculation run already active")

                connection.execute(
                    text(
                        "INSERT INTO recalculation_run ("
                        "recalculation_run_id, job_name, status, started_at_utc, violation_count"
                        ") VALUES ("
                        ":recalculation_run_id, :job_name, 'started', :started_at_utc, 0"
                        ")"
                    ),
                    {
                        "recalculation_run_id": recalculation_run_id,
                        "job_name": normalized_job_name,
                        "started_at_utc": now_utc.isoformat(),
                    },
                )
                return self._db_fetch_run_by_id_or_raise(connection, recalculation_run_id)
        except SQLAlchemyError as error:
            raise RuntimeError("failed to create started recalculation run") from error

    def db_recalculation_run_finalize(
        self,
        recalculation_run_id: str,
        status: str,
        violation_count: int,
        error_code: str | None,
        error_message: str | None,
        diagnostics: list[dict[str, Any]] | None,
    ) -> RecalculationRunRecord:
        """Finalize one run with end timestamp and duration.

        Args:
            recalculation_run_id: Run identifier.
            status: Final status (`success` or `failed`).
            violation_count: Number of integrity violations reported by the run.
            error_code: Optional deterministic error code.
            error_message: Optional human-readable message.
            diagnostics: Optional structured diagnostics payload.

        Returns:
            RecalculationRunRecord: Finalized run row.

        Raises:
            LookupError: Raised when run is not found.
            ValueError: Raised when final status or violation count is invalid.
            RuntimeError: Raised when persistence fails.
        """

        if status not in {"success", "failed"}:
            raise ValueError("status must be one of: success, failed")
        if violation_count < 0:
            raise ValueError("violation_count must be >= 0")
        normalized_run_id = db_value_require_text(recalculation_run_id, "recalculation_run_id")

        diagnostics_payload = None
        if diagnostics is not None:
            diagnostics_payload = json.dumps(diagnostics)

        try:
            with self._engine.begin() as connection:
                current_run = self._db_fetch_run_by_id_or_raise(connection, normalized_run_id)
                ended_at_utc = datetime.now(timezone.utc)
                duration_ms = max(0, int((ended_at_utc - current_run.started_at_utc).total_seconds() * 1000))
                connection.execute(
                    text(
                        "UPDATE recalculation_run SET "
                        "status = :status, "
                        "ended_at_utc = :ended_at_utc, "
                        "duration_ms = :duration_ms, "
                        "violation_count = :violation_count, "
                        "error_code = :error_code, "
                        "error_message = :error_message, "
                        "diagnostics = :diagnostics "
                        "WHERE recalculation_run_id = :recalculation_run_id"
                    ),
                    {
                        "status": status,
                        "ended_at_utc": ended_at_utc.isoformat(),
                        "duration_ms": duration_ms,
                        "violation_count": violation_count,
                        "error_code": error_code,
                        "error_message": error_message,
                        "diagnostics": diagnostics_payload,
                        "recalculation_run_id": normalized_run_id,
                    },
                )
                return self._db_fetch_run_by_id_or_raise(connection, normalized_run_id)
        except SQLAlchemyError as error:
            raise RuntimeError("failed to finalize recalculation run") from error

    def db_recalculation_run_get_by_id(self, recalculation_run_id: str) -> RecalculationRunRecord | None:
        """Fetch one recalculation run by id.

        Args:
            recalculation_run_id: Run identifier.

        Returns:
            RecalculationRunRecord | None: Matching run row or None.

        Raises:
            RuntimeError: Raised when database read fails.
        """

        normalized_run_id = db_value_require_text(recalculation_run_id, "recalculation_run_id")
        try:
            with self._engine.connect() as connection:
                row = connection.execute(
                    text(_RUN_SELECT_COLUMNS + "WHERE recalculation_run_id = :recalculation_run_id"),
                    {"recalculation_run_id": normalized_run_id},
                ).mappings().first()
                if row is None:
                    return None
                return self._map_recalculation_run_record(row)
        except SQLAlchemyError as error:
            raise RuntimeError("failed to fetch recalculation run by id") from error

    def db_recalculation_run_list(self, limit: int, offset: int) -> list[RecalculationRunRecord]:
        """List runs newest first.

        Args:
            limit: Maximum number of rows.
            offset: Number of rows to skip.

        Returns:
            list[RecalculationRunRecord]: Ordered run rows.

        Raises:
            ValueError: Raised when limit or offset are invalid.
            RuntimeError: Raised when database read fails.
        """

        if limit < 1:
            raise ValueError("limit must be >= 1")
        if offset < 0:
            raise ValueError("offset must be >= 0")

        try:
            with self._engine.connect() as connection:
                rows = connection.execute(
                    text(
                        _RUN_SELECT_COLUMNS
                        + "ORDER BY started_at_utc DESC, recalculation_run_id DESC "
                        + "LIMIT :limit OFFSET :offset"
                    ),
                    {"limit": limit, "offset": offset},
                ).mappings().all()

                return [self._map_recalculation_run_record(row) for row in rows]
        except SQLAlchemyError as error:
            raise RuntimeError("failed to list recalculation runs") from error

    def _db_try_advisory_lock(self, connection: Connection) -> None:
        """Take a transaction-scoped advisory lock on PostgreSQL.

        Other dialects rely on the `started` row check alone.

        Raises:
            RecalculationAlreadyActiveError: Raised when the lock is held elsewhere.
        """

        if connection.dialect.name != "postgresql":
            return

        advisory_key_1, advisory_key_2 = self._build_advisory_lock_keys(_ADVISORY_LOCK_SCOPE)
        lock_row = connection.execute(
            text("SELECT pg_try_advisory_xact_lock(:key_1, :key_2) AS lock_acquired"),
            {"key_1": advisory_key_1, "key_2": advisory_key_2},
        ).mappings().one()
        if not bool(lock_row["lock_acquired"]):
            raise RecalculationAlreadyActiveError("recalculation run already active")

    def _db_fetch_run_by_id_or_raise(self, connection: Connection, recalculation_run_id: str) -> RecalculationRunRecord:
        """Fetch one run inside active transaction and raise when missing.

        Args:
            connection: Active SQLAlchemy connection.
            recalculation_run_id: Run identifier.

        Returns:
            RecalculationRunRecord: Matching row.

        Raises:
            LookupError: Raised when row cannot be found.
        """

        row = connection.execute(
            text(_RUN_SELECT_COLUMNS + "WHERE recalculation_run_id = :recalculation_run_id"),
            {"recalculation_run_id": recalculation_run_id},
        ).mappings().first()
        if row is None:
            raise LookupError("recalculation run not found")
        return self._map_recalculation_run_record(row)

    def _map_recalculation_run_record(self, row: Any) -> RecalculationRunRecord:
        """Map SQLAlchemy row mapping to typed recalculation run record.

        Raises:
            TypeError: Raised when diagnostics are not a JSON array.
        """

        return RecalculationRunRecord(
            recalculation_run_id=str(row["recalculation_run_id"]),
            job_name=row["job_name"],
            status=row["status"],
            started_at_utc=db_value_parse_datetime(row["started_at_utc"]),
            ended_at_utc=db_value_parse_optional_datetime(row["ended_at_utc"]),
            duration_ms=None if row["duration_ms"] is None else int(row["duration_ms"]),
            violation_count=int(row["violation_count"] or 0),
            error_code=row["error_code"],
            error_message=row["error_message"],
            diagnostics=db_value_parse_json_list(row["diagnostics"], "recalculation_run.diagnostics"),
        )

    def _build_advisory_lock_keys(self, lock_scope: str) -> tuple[int, int]:
        """Create deterministic advisory lock keys for one lock scope.

        Args:
            lock_scope: Lock scope label.

        Returns:
            tuple[int, int]: Two signed int32 lock keys for PostgreSQL advisory lock.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        digest = hashlib.sha256(lock_scope.encode("utf-8")).digest()
        key_1 = int.from_bytes(digest[0:4], byteorder="big", signed=True)
        key_2 = int.from_bytes(digest[4:8], byteorder="big", signed=True)
        return key_1, key_2


__all__ = ["SQLAlchemyRecalculationRunService"]
