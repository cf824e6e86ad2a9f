"""Settled and future P&L engine tests, including the weighted average helper."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from sauda_ledger.domain import ContractDirection
from sauda_ledger.ledger import (
    PNL_MODE_FUTURE,
    PNL_MODE_SETTLED,
    LedgerContractInput,
    LedgerDeliveryInput,
    pnl_build_pairs,
    pnl_compute_future,
    pnl_compute_settled,
    pnl_summarize,
    weighted_average_rate,
)

_CENT = Decimal("0.01")


def _contract(
    contract_id: str,
    direction: ContractDirection,
    quantity_packs: str,
    rate_per_10kg: str,
    contract_date: date = date(2026, 7, 1),
    delivered_kg: str | None = None,
    item_id: str = "item-wheat",
) -> LedgerContractInput:
    deliveries = ()
    if delivered_kg is not None:
        deliveries = (
            LedgerDeliveryInput(
                delivery_event_id=f"{contract_id}-delivery",
                delivery_date=contract_date,
                weight_kg=Decimal(delivered_kg),
            ),
        )
    return LedgerContractInput(
        contract_id=contract_id,
        direction=direction,
        contract_date=contract_date,
        party_id="party-a",
        item_id=item_id,
        ex_plant_id=None,
        quantity_packs=Decimal(quantity_packs),
        rate_per_10kg=Decimal(rate_per_10kg),
        deliveries=deliveries,
    )


def test_weighted_average_rate_weights_by_quantity() -> None:
    assert weighted_average_rate([(Decimal("10"), Decimal("100")), (Decimal("20"), Decimal("200"))]).quantize(
        _CENT
    ) == Decimal("166.67")


def test_weighted_average_rate_empty_and_zero_quantity_is_zero() -> None:
    assert weighted_average_rate([]) == Decimal("0")
    assert weighted_average_rate([(Decimal("0"), Decimal("450"))]) == Decimal("0")


def test_weighted_average_rate_rejects_negative_quantity() -> None:
    with pytest.raises(ValueError, match="quantity must be >= 0"):
        weighted_average_rate([(Decimal("-1"), Decimal("100"))])


def test_pnl_compute_settled_uses_sell_weight_in_kg() -> None:
    """Verify settled profit multiplies the rate difference by sold kilograms.

    Returns:
        None: Assertions validate quantities, averages and profit.

    Raises:
        AssertionError: Raised when the buy/sell unit convention changes.
    """

    contracts = [
        _contract("c-1", ContractDirection.PURCHASE, "10", "100"),
        _contract("c-2", ContractDirection.PURCHASE, "20", "200"),
        _contract("c-3", ContractDirection.SELL, "15", "250"),
    ]

    result = pnl_compute_settled(contracts, date(2026, 7, 1))

    assert result.mode == PNL_MODE_SETTLED
    item = result.items[0]
    assert item.buy_quantity == Decimal("30")
    assert item.sell_quantity == Decimal("15000")
    assert item.avg_buy_rate.quantize(_CENT) == Decimal("166.67")
    assert item.avg_sell_rate == Decimal("250")
    assert item.profit.quantize(_CENT) == Decimal("1250000.00")
    assert item.buy_total_value == Decimal("500000")
    assert item.sell_total_value == Decimal("375000")
    assert item.contract_count == 3


def test_pnl_compute_settled_excludes_contracts_after_report_date() -> None:
    """Verify contracts dated after the report date never enter settled rows.

    Returns:
        None: Assertions validate date filtering and delivery independence.

    Raises:
        AssertionError: Raised when later contracts leak into the report.
    """

    contracts = [
        _contract("c-1", ContractDirection.PURCHASE, "10", "500", date(2026, 7, 1), delivered_kg="10000"),
        _contract("c-2", ContractDirection.SELL, "10", "550", date(2026, 7, 1)),
        _contract("c-3", ContractDirection.SELL, "99", "999", date(2026, 7, 2)),
    ]

    result = pnl_compute_settled(contracts, date(2026, 7, 1))

    item = result.items[0]
    assert item.buy_quantity == Decimal("10")
    assert item.sell_quantity == Decimal("10000")
    assert item.profit == Decimal("500000")
    assert item.contract_count == 2


def test_pnl_compute_settled_without_sells_has_zero_profit() -> None:
    result = pnl_compute_settled([_contract("c-1", ContractDirection.PURCHASE, "5", "500")], date(2026, 7, 1))

    assert result.items[0].profit == Decimal("0")
    assert not result.items[0].profit.is_signed()


def test_pnl_compute_future_uses_pending_quantity_at_contract_rate() -> None:
    """Verify future P&L only values undelivered packs and ignores market rates.

    Returns:
        None: Assertions validate pending quantities, profit and market rate display.

    Raises:
        AssertionError: Raised when delivered quantity or market rate leaks into profit.
    """

    contracts = [
        _contract("c-1", ContractDirection.PURCHASE, "100", "500", delivered_kg="40000"),
        _contract("c-2", ContractDirection.SELL, "30", "560", delivered_kg="30000"),
        _contract("c-3", ContractDirection.SELL, "20", "550"),
        _contract("c-4", ContractDirection.PURCHASE, "10", "400", delivered_kg="10000", item_id="item-rice"),
    ]

    result = pnl_compute_future(contracts, market_rates={"item-wheat": Decimal("900")})

    assert result.mode == PNL_MODE_FUTURE
    assert result.report_date is None
    assert [item.item_id for item in result.items] == ["item-wheat"]
    item = result.items[0]
    assert item.buy_quantity == Decimal("60")
    assert item.sell_quantity == Decimal("20000")
    assert item.buy_total_value == Decimal("3000000")
    assert item.profit == Decimal("1000000")
    assert item.contract_count == 2
    assert item.market_rate_per_10kg == Decimal("900")


def test_pnl_compute_future_reports_over_delivery() -> None:
    result = pnl_compute_future([_contract("c-1", ContractDirection.SELL, "10", "500", delivered_kg="11000")])

    assert result.items == ()
    assert [violation.contract_id for violation in result.violations] == ["c-1"]


def test_pnl_build_pairs_groups_by_direction() -> None:
    contracts = [
        _contract("c-2", ContractDirection.PURCHASE, "20", "200"),
        _contract("c-1", ContractDirection.PURCHASE, "10", "100"),
        _contract("c-3", ContractDirection.SELL, "5", "300", delivered_kg="2000"),
    ]

    settled_pairs = pnl_build_pairs(contracts, PNL_MODE_SETTLED, date(2026, 7, 1))
    future_pairs = pnl_build_pairs(contracts, PNL_MODE_FUTURE)

    assert settled_pairs["item-wheat"].purchase == (
        (Decimal("10"), Decimal("100")),
        (Decimal("20"), Decimal("200")),
    )
    assert future_pairs["item-wheat"].sell == ((Decimal("3"), Decimal("300")),)


def test_pnl_build_pairs_future_matches_settled_for_undelivered_contracts() -> None:
    """Verify undelivered contracts pair identically in both modes and delivered ones drop out of future.

    Returns:
        None: Assertions validate pair equality and omission.

    Raises:
        AssertionError: Raised when future pairs diverge from settled pairs.
    """

    contracts = [
        _contract("c-1", ContractDirection.PURCHASE, "10", "100"),
        _contract("c-2", ContractDirection.PURCHASE, "20", "200"),
        _contract("c-3", ContractDirection.SELL, "5", "300"),
        _contract("c-4", ContractDirection.PURCHASE, "5", "250", delivered_kg="5000", item_id="item-rice"),
    ]

    settled_pairs = pnl_build_pairs(contracts, PNL_MODE_SETTLED, date(2026, 7, 1))
    future_pairs = pnl_build_pairs(contracts, PNL_MODE_FUTURE)

    assert future_pairs["item-wheat"].purchase == settled_pairs["item-wheat"].purchase
    assert future_pairs["item-wheat"].sell == settled_pairs["item-wheat"].sell
    assert settled_pairs["item-rice"].purchase == ((Decimal("5"), Decimal("250")),)
    assert "item-rice" not in future_pairs


def test_pnl_build_pairs_requires_report_date_in_settled_mode() -> None:
    with pytest.raises(ValueError, match="report_date is required"):
        pnl_build_pairs([], PNL_MODE_SETTLED)
    with pytest.raises(ValueError, match="unsupported mode"):
        pnl_build_pairs([], "monthly")


def test_pnl_summarize_totals_items() -> None:
    contracts = [
        _contract("c-1", ContractDirection.PURCHASE, "10", "500"),
        _contract("c-2", ContractDirection.SELL, "10", "520"),
        _contract("c-3", ContractDirection.PURCHASE, "5", "300", item_id="item-rice"),
        _contract("c-4", ContractDirection.SELL, "5", "290", item_id="item-rice"),
    ]

    summary = pnl_summarize(pnl_compute_settled(contracts, date(2026, 7, 1)).items)

    assert summary.item_count == 2
    assert summary.buy_quantity == Decimal("15")
    assert summary.sell_quantity == Decimal("15000")
    assert summary.profit == Decimal("200000") - Decimal("50000")
