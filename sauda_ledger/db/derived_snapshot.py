"""Database service for derived stock snapshot and P&L tables."""
# pylint: disable=duplicate-code

from __future__ import annotations

from datetime import date
from typing import Any

from sqlalchemy import Connection, Engine, text
from sqlalchemy.exc import SQLAlchemyError

from sauda_ledger.domain import LedgerStoreError

from .interfaces import (
    DerivedSnapshotReplaceRequest,
    DerivedSnapshotRepositoryPort,
    PnlRecord,
    StockSnapshotRecord,
)
from .values import (
    db_value_date_text,
    db_value_decimal_text,
    db_value_optional_decimal_text,
    db_value_optional_text,
    db_value_parse_date,
    db_value_parse_decimal,
    db_value_parse_optional_date,
    db_value_parse_optional_decimal,
    db_value_require_text,
)

_STOCK_SCOPES = {"item", "party"}
_PNL_MODES = {"settled", "future"}

_STOCK_DECIMAL_FIELDS = (
    "total_purchase_packs",
    "total_sell_packs",
    "loaded_purchase_packs",
    "loaded_sell_packs",
    "pending_purchase_packs",
    "pending_sell_packs",
    "purchase_value",
    "sell_value",
    "loaded_purchase_value",
    "loaded_sell_value",
    "avg_purchase_rate",
    "avg_sell_rate",
)

_PNL_DECIMAL_FIELDS = (
    "buy_total_value",
    "sell_total_value",
    "buy_quantity",
    "sell_quantity",
    "avg_buy_rate",
    "avg_sell_rate",
)


class SQLAlchemyDerivedSnapshotService(DerivedSnapshotRepositoryPort):
    """SQLAlchemy implementation for derived stock and P&L persistence.

    Every replacement is one transaction: readers observe either the previous
    rows or the complete new set, never a partial mix.
    """

    _STOCK_SELECT_COLUMNS = (
        "SELECT "
        "stock_snapshot_id, scope, item_id, party_id, total_purchase_packs, total_sell_packs, "
        "loaded_purchase_packs, loaded_sell_packs, pending_purchase_packs, pending_sell_packs, net_stock_packs, "
        "purchase_value, sell_value, loaded_purchase_value, loaded_sell_value, avg_purchase_rate, avg_sell_rate, "
        "contract_count "
        "FROM stock_snapshot "
    )

    _PNL_SELECT_COLUMNS = (
        "SELECT "
        "pnl_record_id, mode, report_date, item_id, buy_total_value, sell_total_value, buy_quantity, "
        "sell_quantity, avg_buy_rate, avg_sell_rate, profit, contract_count, market_rate_per_10kg "
        "FROM pnl_record "
    )

    def __init__(self, engine: Engine):
        """Initialize derived snapshot service.

        Args:
            engine: SQLAlchemy engine used for persistence and reads.

        Returns:
            None: Initializer does not return values.

        Raises:
            ValueError: Raised when engine is invalid.
        """

        if engine is None:
            raise ValueError("engine must not be None")
        self._engine = engine

    def db_derived_replace(self, request: DerivedSnapshotReplaceRequest) -> None:
        """Replace the requested derived rows inside one transaction.

        Args:
            request: Replacement scope and new rows.

        Returns:
            None: Persistence is applied as side effect.

        Raises:
            ValueError: Raised when rows fall outside the requested scope or are invalid.
            LedgerStoreError: Raised when persistence fails; previous rows stay intact.
        """

        if request is None:
            raise ValueError("request must not be None")

        stock_parameters = [self._db_derived_validate_stock_row(row) for row in request.stock_rows]
        pnl_parameters = [self._db_derived_validate_pnl_row(row) for row in request.pnl_rows]
        self._db_derived_validate_scope(request)

        try:
            with self._engine.begin() as connection:
                if request.stock_item_ids is not None:
                    self._db_derived_delete_scoped(
                        connection,
                        "DELETE FROM stock_snapshot",
                        "item_id",
                        list(request.stock_item_ids),
                    )
                if request.pnl_settled_dates is not None:
                    self._db_derived_delete_scoped(
                        connection,
                        "DELETE FROM pnl_record WHERE mode = 'settled'",
                        "report_date",
                        [report_date.isoformat() for report_date in request.pnl_settled_dates],
                    )
                if request.replace_future_pnl:
                    connection.execute(text("DELETE FROM pnl_record WHERE mode = 'future'"))

                if stock_parameters:
                    connection.execute(
                        text(
                            "INSERT INTO stock_snapshot ("
                            "stock_snapshot_id, scope, item_id, party_id, total_purchase_packs, total_sell_packs, "
                            "loaded_purchase_packs, loaded_sell_packs, pending_purchase_packs, pending_sell_packs, "
                            "net_stock_packs, purchase_value, sell_value, loaded_purchase_value, loaded_sell_value, "
                            "avg_purchase_rate, avg_sell_rate, contract_count"
                            ") VALUES ("
                            ":stock_snapshot_id, :scope, :item_id, :party_id, :total_purchase_packs, :total_sell_packs, "
                            ":loaded_purchase_packs, :loaded_sell_packs, :pending_purchase_packs, :pending_sell_packs, "
                            ":net_stock_packs, :purchase_value, :sell_value, :loaded_purchase_value, :loaded_sell_value, "
                            ":avg_purchase_rate, :avg_sell_rate, :contract_count"
                            ")"
                        ),
                        stock_parameters,
                    )
                if pnl_parameters:
                    connection.execute(
                        text(
                            "INSERT INTO pnl_record ("
                            "pnl_record_id, mode, report_date, item_id, buy_total_value, sell_total_value, "
                            "buy_quantity, sell_quantity, avg_buy_rate, avg_sell_rate, profit, contract_count, "
                            "market_rate_per_10kg"
                            ") VALUES ("
                            ":pnl_record_id, :mode, :report_date, :item_id, :buy_total_value, :sell_total_value, "
                            ":buy_quantity, :sell_quantity, :avg_buy_rate, :avg_sell_rate, :profit, :contract_count, "
                            ":market_rate_per_10kg"
                            ")"
                        ),
                        pnl_parameters,
                    )
        except SQLAlchemyError as error:
            raise LedgerStoreError("derived snapshot replace failed") from error

    def db_stock_snapshot_list(
        self,
        item_id: str | None = None,
        scope: str = "item",
        pending_only: bool = False,
    ) -> list[StockSnapshotRecord]:
        """List stock snapshot rows.

        Args:
            item_id: Optional item filter.
            scope: `item` roll-ups or `party` breakdown rows.
            pending_only: Restrict to rows with pending purchase or sell packs.

        Returns:
            list[StockSnapshotRecord]: Rows ordered by item and party.

        Raises:
            ValueError: Raised when scope is unsupported.
            LedgerStoreError: Raised when database read fails.
        """

        if scope not in _STOCK_SCOPES:
            raise ValueError(f"unsupported scope={scope}")

        conditions = ["scope = :scope"]
        parameters: dict[str, Any] = {"scope": scope}
        normalized_item_id = db_value_optional_text(item_id, "item_id")
        if normalized_item_id is not None:
            conditions.append("item_id = :item_id")
            parameters["item_id"] = normalized_item_id
        if pending_only:
            conditions.append("(pending_purchase_packs > 0 OR pending_sell_packs > 0)")

        try:
            with self._engine.connect() as connection:
                rows = connection.execute(
                    text(
                        self._STOCK_SELECT_COLUMNS
                        + "WHERE "
                        + " AND ".join(conditions)
                        + " ORDER BY item_id asc, party_id asc, stock_snapshot_id asc"
                    ),
                    parameters,
                ).mappings().all()
        except SQLAlchemyError as error:
            raise LedgerStoreError("stock snapshot read failed") from error

        return [self._db_derived_map_stock_row(row) for row in rows]

    def db_pnl_record_list_settled(self, report_date: date, item_id: str | None = None) -> list[PnlRecord]:
        """List settled P&L rows for one report date.

        Args:
            report_date: Report date.
            item_id: Optional item filter.

        Returns:
            list[PnlRecord]: Rows ordered by item.

        Raises:
            ValueError: Raised when report_date is invalid.
            LedgerStoreError: Raised when database read fails.
        """

        parameters: dict[str, Any] = {"report_date": db_value_date_text(report_date, "report_date")}
        item_clause = ""
        normalized_item_id = db_value_optional_text(item_id, "item_id")
        if normalized_item_id is not None:
            item_clause = "AND item_id = :item_id "
            parameters["item_id"] = normalized_item_id

        try:
            with self._engine.connect() as connection:
                rows = connection.execute(
                    text(
                        self._PNL_SELECT_COLUMNS
                        + "WHERE mode = 'settled' AND report_date = :report_date "
                        + item_clause
                        + "ORDER BY item_id asc"
                    ),
                    parameters,
                ).mappings().all()
        except SQLAlchemyError as error:
            raise LedgerStoreError("settled pnl read failed") from error

        return [self._db_derived_map_pnl_row(row) for row in rows]

    def db_pnl_record_list_future(self) -> list[PnlRecord]:
        """List future P&L rows ordered by item."""

        try:
            with self._engine.connect() as connection:
                rows = connection.execute(
                    text(self._PNL_SELECT_COLUMNS + "WHERE mode = 'future' ORDER BY item_id asc")
                ).mappings().all()
        except SQLAlchemyError as error:
            raise LedgerStoreError("future pnl read failed") from error

        return [self._db_derived_map_pnl_row(row) for row in rows]

    def db_pnl_settled_dates(self) -> list[date]:
        """List report dates with stored settled P&L rows, oldest first."""

        try:
            with self._engine.connect() as connection:
                rows = connection.execute(
                    text(
                        "SELECT DISTINCT report_date FROM pnl_record "
                        "WHERE mode = 'settled' ORDER BY report_date asc"
                    )
                ).mappings().all()
        except SQLAlchemyError as error:
            raise LedgerStoreError("settled pnl date read failed") from error

        return [db_value_parse_date(row["report_date"]) for row in rows]

    def _db_derived_delete_scoped(
        self,
        connection: Connection,
        delete_statement: str,
        column_name: str,
        values: list[str],
    ) -> None:
        """Delete rows matching the scope values; an empty list deletes every row of the statement."""

        if not values:
            connection.execute(text(delete_statement))
            return

        parameter_names = [f"scope_value_{index}" for index in range(len(values))]
        placeholders = ", ".join(f":{name}" for name in parameter_names)
        joiner = " AND " if " WHERE " in delete_statement else " WHERE "
        connection.execute(
            text(f"{delete_statement}{joiner}{column_name} IN ({placeholders})"),
            dict(zip(parameter_names, values)),
        )

    def _db_derived_validate_scope(self, request: DerivedSnapshotReplaceRequest) -> None:
        """Reject rows that would survive outside the deleted scope and collide on the next rebuild.

        Args:
            request: Replacement request.

        Returns:
            None: Validation succeeds silently.

        Raises:
            ValueError: Raised when a row falls outside the requested scope.
        """

        if request.stock_rows:
            if request.stock_item_ids is None:
                raise ValueError("stock rows require stock_item_ids scope")
            if request.stock_item_ids:
                allowed_item_ids = set(request.stock_item_ids)
                for row in request.stock_rows:
                    if row.item_id not in allowed_item_ids:
                        raise ValueError(f"stock row item_id={row.item_id} is outside the replacement scope")

        for row in request.pnl_rows:
            if row.mode == "future":
                if not request.replace_future_pnl:
                    raise ValueError("future pnl rows require replace_future_pnl=True")
                continue
            if request.pnl_settled_dates is None:
                raise ValueError("settled pnl rows require pnl_settled_dates scope")
            if request.pnl_settled_dates and row.report_date not in request.pnl_settled_dates:
                raise ValueError(f"settled pnl row report_date={row.report_date} is outside the replacement scope")

    def _db_derived_validate_stock_row(self, row: StockSnapshotRecord) -> dict[str, Any]:
        """Validate one stock row and convert it to SQL parameters."""

        if row.scope not in _STOCK_SCOPES:
            raise ValueError(f"unsupported scope={row.scope}")
        if row.scope == "party" and row.party_id is None:
            raise ValueError("party scope rows require party_id")

        parameters: dict[str, Any] = {
            "stock_snapshot_id": db_value_require_text(row.stock_snapshot_id, "stock_snapshot_id"),
            "scope": row.scope,
            "item_id": db_value_require_text(row.item_id, "item_id"),
            "party_id": db_value_optional_text(row.party_id, "party_id"),
            "net_stock_packs": db_value_decimal_text(row.net_stock_packs, "net_stock_packs", allow_negative=True),
            "contract_count": int(row.contract_count),
        }
        for field_name in _STOCK_DECIMAL_FIELDS:
            parameters[field_name] = db_value_decimal_text(getattr(row, field_name), field_name)
        return parameters

    def _db_derived_validate_pnl_row(self, row: PnlRecord) -> dict[str, Any]:
        """Validate one P&L row and convert it to SQL parameters."""

        if row.mode not in _PNL_MODES:
            raise ValueError(f"unsupported mode={row.mode}")
        if row.mode == "settled" and row.report_date is None:
            raise ValueError("settled rows require report_date")
        if row.mode == "future" and row.report_date is not None:
            raise ValueError("future rows must not carry report_date")

        parameters: dict[str, Any] = {
            "pnl_record_id": db_value_require_text(row.pnl_record_id, "pnl_record_id"),
            "mode": row.mode,
            "report_date": None if row.report_date is None else db_value_date_text(row.report_date, "report_date"),
            "item_id": db_value_require_text(row.item_id, "item_id"),
            "profit": db_value_decimal_text(row.profit, "profit", allow_negative=True),
            "contract_count": int(row.contract_count),
            "market_rate_per_10kg": db_value_optional_decimal_text(row.market_rate_per_10kg, "market_rate_per_10kg"),
        }
        for field_name in _PNL_DECIMAL_FIELDS:
            parameters[field_name] = db_value_decimal_text(getattr(row, field_name), field_name)
        return parameters

    def _db_derived_map_stock_row(self, row: Any) -> StockSnapshotRecord:
        """Map SQLAlchemy row mapping to typed stock snapshot record."""

        return StockSnapshotRecord(
            stock_snapshot_id=str(row["stock_snapshot_id"]),
            scope=str(row["scope"]),
            item_id=str(row["item_id"]),
            party_id=None if row["party_id"] is None else str(row["party_id"]),
            net_stock_packs=db_value_parse_decimal(row["net_stock_packs"]),
            contract_count=int(row["contract_count"]),
            **{field_name: db_value_parse_decimal(row[field_name]) for field_name in _STOCK_DECIMAL_FIELDS},
        )

    def _db_derived_map_pnl_row(self, row: Any) -> PnlRecord:
        """Map SQLAlchemy row mapping to typed P&L record."""

        return PnlRecord(
            pnl_record_id=str(row["pnl_record_id"]),
            mode=str(row["mode"]),
            report_date=db_value_parse_optional_date(row["report_date"]),
            item_id=str(row["item_id"]),
            profit=db_value_parse_decimal(row["profit"]),
            contract_count=int(row["contract_count"]),
            market_rate_per_10kg=db_value_parse_optional_decimal(row["market_rate_per_10kg"]),
            **{field_name: db_value_parse_decimal(row[field_name]) for field_name in _PNL_DECIMAL_FIELDS},
        )


__all__ = ["SQLAlchemyDerivedSnapshotService"]
