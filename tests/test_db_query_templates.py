"""Regression tests for fixed SQL template selection in db-layer query paths."""

from __future__ import annotations

from datetime import date

from sauda_ledger.db import (
    ContractListFilter,
    SQLAlchemyDerivedSnapshotService,
    SQLAlchemyLedgerStoreService,
    SQLAlchemyRecalculationRunService,
)
from sauda_ledger.domain import ContractDirection


class _MappingResultStub:
    """Stub mapping result wrapper for SQLAlchemy-like query responses."""

    def __init__(self, rows: list[dict]):
        self._rows = rows

    def mappings(self) -> _MappingResultStub:
        """Return self to emulate SQLAlchemy mappings chain."""

        return self

    def all(self) -> list[dict]:
        """Return all row mappings."""

        return self._rows


class _ConnectionStub:
    """Connection stub capturing executed SQL and parameters."""

    def __init__(self, rows: list[dict]):
        """Initialize connection capture state.

        Args:
            rows: Query rows returned by execute().

        Returns:
            None: Initializer does not return values.

        Raises:
            ValueError: This stub does not raise value errors.
        """

        self._rows = rows
        self.executed_queries: list[str] = []
        self.executed_parameters: list[dict] = []

    def __enter__(self) -> _ConnectionStub:
        return self

    def __exit__(self, exc_type, exc, traceback) -> bool:
        _ = (exc_type, exc, traceback)
        return False

    def execute(self, statement, parameters: dict):
        """Capture execute input and return deterministic row result.

        Args:
            statement: SQLAlchemy text clause or raw string.
            parameters: Bound query parameters.

        Returns:
            _MappingResultStub: Query result stub.

        Raises:
            RuntimeError: This stub does not raise runtime errors.
        """

        statement_text = getattr(statement, "text", str(statement))
        self.executed_queries.append(statement_text)
        self.executed_parameters.append(parameters)
        return _MappingResultStub(rows=self._rows)


class _EngineStub:
    """Engine stub that returns a predefined connection object."""

    def __init__(self, connection: _ConnectionStub):
        self._connection = connection

    def connect(self) -> _ConnectionStub:
        return self._connection

    def begin(self) -> _ConnectionStub:
        return self._connection


def test_db_contract_list_binds_only_provided_filters() -> None:
    """Select contract rows with WHERE fragments for provided filters only.

    Returns:
        None: Assertions validate SQL template selection.

    Raises:
        AssertionError: Raised when selected SQL diverges from policy.
    """

    connection = _ConnectionStub(rows=[])
    service = SQLAlchemyLedgerStoreService(engine=_EngineStub(connection=connection))

    service.db_contract_list(
        ContractListFilter(
            direction=ContractDirection.SELL,
            item_id=" item-wheat ",
            party_id="   ",
            date_to=date(2026, 10, 18),
        )
    )

    executed_query = connection.executed_queries[0]
    assert "WHERE direction = :direction AND item_id = :item_id AND contract_date <= :date_to " in executed_query
    assert "party_id = :party_id" not in executed_query
    assert executed_query.endswith("ORDER BY contract_date asc, contract_no asc, contract_id asc")
    assert connection.executed_parameters[0] == {
        "direction": "sell",
        "item_id": "item-wheat",
        "date_to": "2026-10-18",
    }


def test_db_contract_list_without_filter_has_no_where_clause() -> None:
    connection = _ConnectionStub(rows=[])
    service = SQLAlchemyLedgerStoreService(engine=_EngineStub(connection=connection))

    service.db_contract_list()

    assert "WHERE" not in connection.executed_queries[0]
    assert connection.executed_parameters[0] == {}


def test_db_stock_snapshot_list_uses_pending_predicate_for_party_scope() -> None:
    """Select party stock rows with the fixed pending-only predicate.

    Returns:
        None: Assertions validate SQL template selection.

    Raises:
        AssertionError: Raised when selected SQL diverges from policy.
    """

    connection = _ConnectionStub(rows=[])
    service = SQLAlchemyDerivedSnapshotService(engine=_EngineStub(connection=connection))

    service.db_stock_snapshot_list(scope="party", pending_only=True)

    executed_query = connection.executed_queries[0]
    assert "WHERE scope = :scope AND (pending_purchase_packs > 0 OR pending_sell_packs > 0)" in executed_query
    assert "ORDER BY item_id asc, party_id asc, stock_snapshot_id asc" in executed_query
    assert connection.executed_parameters[0] == {"scope": "party"}


def test_db_stock_snapshot_list_rejects_unsupported_scope() -> None:
    """Reject invalid scope before query execution.

    Returns:
        None: Assertions validate deterministic contract enforcement.

    Raises:
        AssertionError: Raised when validation behavior diverges.
    """

    connection = _ConnectionStub(rows=[])
    service = SQLAlchemyDerivedSnapshotService(engine=_EngineStub(connection=connection))

    try:
        service.db_stock_snapshot_list(scope="ex_plant")
        assert False, "Expected ValueError for unsupported scope"
    except ValueError as error:
        assert str(error) == "unsupported scope=ex_plant"
    assert len(connection.executed_queries) == 0


def test_db_recalculation_run_list_uses_fixed_sort_template() -> None:
    connection = _ConnectionStub(rows=[])
    service = SQLAlchemyRecalculationRunService(engine=_EngineStub(connection=connection))

    service.db_recalculation_run_list(limit=10, offset=5)

    executed_query = connection.executed_queries[0]
    assert "ORDER BY started_at_utc DESC, recalculation_run_id DESC LIMIT :limit OFFSET :offset" in executed_query
    assert connection.executed_parameters[0] == {"limit": 10, "offset": 5}
