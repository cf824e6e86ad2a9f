"""Derived stock and P&L table replacement tests."""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from sauda_ledger.db import DerivedSnapshotReplaceRequest, PnlRecord, StockSnapshotRecord
from sauda_ledger.domain import LedgerStoreError


def _stock_row(item_id: str, pending_purchase_packs: str = "60", party_id: str | None = None) -> StockSnapshotRecord:
    scope = "item" if party_id is None else "party"
    return StockSnapshotRecord(
        stock_snapshot_id=f"stock-{scope}-{item_id}-{party_id}",
        scope=scope,
        item_id=item_id,
        party_id=party_id,
        total_purchase_packs=Decimal("100"),
        total_sell_packs=Decimal("0"),
        loaded_purchase_packs=Decimal("100") - Decimal(pending_purchase_packs),
        loaded_sell_packs=Decimal("0"),
        pending_purchase_packs=Decimal(pending_purchase_packs),
        pending_sell_packs=Decimal("0"),
        net_stock_packs=Decimal(pending_purchase_packs),
        purchase_value=Decimal("5000000"),
        sell_value=Decimal("0"),
        loaded_purchase_value=Decimal("2000000"),
        loaded_sell_value=Decimal("0"),
        avg_purchase_rate=Decimal("500"),
        avg_sell_rate=Decimal("0"),
        contract_count=1,
    )


def _pnl_row(mode: str, report_date: date | None, item_id: str = "item-wheat", profit: str = "-250.5") -> PnlRecord:
    return PnlRecord(
        pnl_record_id=f"pnl-{mode}-{report_date}-{item_id}",
        mode=mode,
        report_date=report_date,
        item_id=item_id,
        buy_total_value=Decimal("500000"),
        sell_total_value=Decimal("375000"),
        buy_quantity=Decimal("30"),
        sell_quantity=Decimal("15000"),
        avg_buy_rate=Decimal("166.666667"),
        avg_sell_rate=Decimal("250"),
        profit=Decimal(profit),
        contract_count=3,
    )


def test_db_derived_replace_scoped_item_keeps_other_items(derived_repository) -> None:
    """Verify a single-item replacement leaves other items' rows untouched.

    Args:
        derived_repository: Derived table service on the migrated database.

    Returns:
        None: Assertions validate item-scoped replacement.

    Raises:
        AssertionError: Raised when other items are deleted or duplicated.
    """

    derived_repository.db_derived_replace(
        DerivedSnapshotReplaceRequest(
            stock_rows=(_stock_row("item-wheat"), _stock_row("item-rice"), _stock_row("item-wheat", party_id="party-a")),
            stock_item_ids=(),
        )
    )
    derived_repository.db_derived_replace(
        DerivedSnapshotReplaceRequest(
            stock_rows=(_stock_row("item-wheat", pending_purchase_packs="0"),),
            stock_item_ids=("item-wheat",),
        )
    )

    item_rows = derived_repository.db_stock_snapshot_list(scope="item")
    assert [(row.item_id, row.pending_purchase_packs) for row in item_rows] == [
        ("item-rice", Decimal("60")),
        ("item-wheat", Decimal("0")),
    ]
    assert derived_repository.db_stock_snapshot_list(scope="party") == []
    assert [row.item_id for row in derived_repository.db_stock_snapshot_list(scope="item", pending_only=True)] == [
        "item-rice"
    ]


def test_db_derived_replace_rejects_rows_outside_scope(derived_repository) -> None:
    with pytest.raises(ValueError, match="outside the replacement scope"):
        derived_repository.db_derived_replace(
            DerivedSnapshotReplaceRequest(stock_rows=(_stock_row("item-rice"),), stock_item_ids=("item-wheat",))
        )
    with pytest.raises(ValueError, match="require stock_item_ids"):
        derived_repository.db_derived_replace(DerivedSnapshotReplaceRequest(stock_rows=(_stock_row("item-rice"),)))
    with pytest.raises(ValueError, match="require replace_future_pnl"):
        derived_repository.db_derived_replace(DerivedSnapshotReplaceRequest(pnl_rows=(_pnl_row("future", None),)))


def test_db_derived_replace_settled_dates_and_future_independently(derived_repository) -> None:
    """Verify settled report dates and future rows are replaced only when scoped.

    Args:
        derived_repository: Derived table service on the migrated database.

    Returns:
        None: Assertions validate per-date and future replacement.

    Raises:
        AssertionError: Raised when unrelated P&L rows are removed.
    """

    first_date = date(2026, 10, 1)
    second_date = date(2026, 10, 2)
    derived_repository.db_derived_replace(
        DerivedSnapshotReplaceRequest(
            pnl_rows=(_pnl_row("settled", first_date), _pnl_row("settled", second_date), _pnl_row("future", None)),
            pnl_settled_dates=(),
            replace_future_pnl=True,
        )
    )
    derived_repository.db_derived_replace(
        DerivedSnapshotReplaceRequest(
            pnl_rows=(_pnl_row("settled", second_date, profit="10"),),
            pnl_settled_dates=(second_date,),
        )
    )

    assert derived_repository.db_pnl_settled_dates() == [first_date, second_date]
    assert derived_repository.db_pnl_record_list_settled(first_date)[0].profit == Decimal("-250.5")
    assert derived_repository.db_pnl_record_list_settled(second_date)[0].profit == Decimal("10")
    future_rows = derived_repository.db_pnl_record_list_future()
    assert len(future_rows) == 1
    assert future_rows[0].report_date is None
    assert future_rows[0].avg_buy_rate == Decimal("166.666667")


def test_db_derived_replace_failure_keeps_previous_rows(derived_repository) -> None:
    """Verify a failing insert rolls back the delete of the previous rows.

    Args:
        derived_repository: Derived table service on the migrated database.

    Returns:
        None: Assertions validate transactional replacement.

    Raises:
        AssertionError: Raised when a failed swap leaves partial state.
    """

    derived_repository.db_derived_replace(
        DerivedSnapshotReplaceRequest(stock_rows=(_stock_row("item-wheat"),), stock_item_ids=())
    )
    duplicate = _stock_row("item-rice")
    colliding = replace(_stock_row("item-rice", pending_purchase_packs="1"), stock_snapshot_id=duplicate.stock_snapshot_id)

    with pytest.raises(LedgerStoreError):
        derived_repository.db_derived_replace(
            DerivedSnapshotReplaceRequest(stock_rows=(duplicate, colliding), stock_item_ids=())
        )

    assert [row.item_id for row in derived_repository.db_stock_snapshot_list()] == ["item-wheat"]
