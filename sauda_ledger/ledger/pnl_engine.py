"""Settled and future profit-and-loss computation per item.

Unit convention:

* every rate is a value per 10 kg;
* `buy_quantity` is reported in **packs**;
* `sell_quantity` is reported in **kilograms** (`packs * 1000`);
* `profit = (avg_sell_rate - avg_buy_rate) * sell_quantity`, i.e. the rate
  difference per 10 kg multiplied by the sold weight in kg.

Existing reports depend on these numbers, so the buy/sell asymmetry is kept
as-is and surfaced in the field names of every result.

Settled mode covers every contract dated on or before the report date, whatever
its delivery status. Future mode covers only the undelivered (clamped pending)
portion of each contract, valued at the contract's own rate; a current market
rate can be attached for display but never enters the computation.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Mapping

from sauda_ledger.domain import KG_PER_PACK, ContractDirection, OverDeliveryViolation, contract_total_value

from .interfaces import LedgerContractInput
from .pending import pending_compute_lenient
from .weighted_average import weighted_average_rate

_ZERO = Decimal("0")
PNL_MODE_SETTLED = "settled"
PNL_MODE_FUTURE = "future"


@dataclass(frozen=True)
class PnlComputation:
    """P&L figures for one item.

    Attributes:
        mode: `settled` or `future`.
        report_date: Report date in settled mode, None in future mode.
        item_id: Item identifier.
        buy_total_value: Sum of purchase values.
        sell_total_value: Sum of sell values.
        buy_quantity: Purchase quantity in packs.
        sell_quantity: Sell quantity in kilograms.
        avg_buy_rate: Quantity-weighted purchase rate.
        avg_sell_rate: Quantity-weighted sell rate.
        profit: `(avg_sell_rate - avg_buy_rate) * sell_quantity`.
        contract_count: Contracts contributing a non-zero quantity.
        market_rate_per_10kg: Current market rate in future mode when supplied.
    """

    mode: str
    report_date: date | None
    item_id: str
    buy_total_value: Decimal
    sell_total_value: Decimal
    buy_quantity: Decimal
    sell_quantity: Decimal
    avg_buy_rate: Decimal
    avg_sell_rate: Decimal
    profit: Decimal
    contract_count: int
    market_rate_per_10kg: Decimal | None = None


@dataclass(frozen=True)
class PnlComputationResult:
    """P&L rows plus integrity violations seen while computing them.

    Attributes:
        mode: `settled` or `future`.
        report_date: Report date in settled mode, None in future mode.
        items: One computation per item, ordered by item id.
        violations: Over-delivered contracts (future mode only).
    """

    mode: str
    report_date: date | None
    items: tuple[PnlComputation, ...] = ()
    violations: tuple[OverDeliveryViolation, ...] = ()


@dataclass(frozen=True)
class PnlPairs:
    """(quantity_packs, rate_per_10kg) pairs per direction for one item.

    Attributes:
        item_id: Item identifier.
        purchase: Purchase pairs ordered by contract id.
        sell: Sell pairs ordered by contract id.
    """

    item_id: str
    purchase: tuple[tuple[Decimal, Decimal], ...] = ()
    sell: tuple[tuple[Decimal, Decimal], ...] = ()


@dataclass(frozen=True)
class PnlSummary:
    """Totals across item P&L rows of one report.

    Attributes:
        item_count: Number of items summarized.
        buy_total_value: Sum of purchase values.
        sell_total_value: Sum of sell values.
        buy_quantity: Purchase quantity in packs.
        sell_quantity: Sell quantity in kilograms.
        avg_buy_rate: Overall purchase rate weighted by buy quantity.
        avg_sell_rate: Overall sell rate weighted by sell quantity.
        profit: Sum of item profits.
    """

    item_count: int
    buy_total_value: Decimal
    sell_total_value: Decimal
    buy_quantity: Decimal
    sell_quantity: Decimal
    avg_buy_rate: Decimal
    avg_sell_rate: Decimal
    profit: Decimal


def pnl_build_pairs(
    contracts: Iterable[LedgerContractInput],
    mode: str,
    report_date: date | None = None,
) -> dict[str, PnlPairs]:
    """Build per-item (quantity, rate) pairs for the requested mode.

    Settled mode uses the contracted quantity of contracts dated on or before
    `report_date`; future mode uses each contract's clamped pending packs and
    skips contracts with nothing pending.

    Args:
        contracts: Contracts with their deliveries.
        mode: `settled` or `future`.
        report_date: Required in settled mode.

    Returns:
        dict[str, PnlPairs]: Pairs keyed by item id.

    Raises:
        ValueError: Raised when mode is unsupported or report_date is missing in settled mode.
    """

    pairs_by_item, _ = _pnl_collect(contracts, mode, report_date)
    return {
        item_id: PnlPairs(
            item_id=item_id,
            purchase=tuple((quantity, rate) for quantity, rate, _ in entries[ContractDirection.PURCHASE]),
            sell=tuple((quantity, rate) for quantity, rate, _ in entries[ContractDirection.SELL]),
        )
        for item_id, entries in sorted(pairs_by_item.items())
    }


def pnl_compute_settled(contracts: Iterable[LedgerContractInput], report_date: date) -> PnlComputationResult:
    """Compute settled P&L for every item with contracts dated on or before the report date.

    Args:
        contracts: Contracts with their deliveries.
        report_date: Inclusive report date.

    Returns:
        PnlComputationResult: One row per item.

    Raises:
        ValueError: Raised when report_date is missing.
    """

    pairs_by_item, violations = _pnl_collect(contracts, PNL_MODE_SETTLED, report_date)
    items = tuple(
        _pnl_compute_item(PNL_MODE_SETTLED, report_date, item_id, entries, None)
        for item_id, entries in sorted(pairs_by_item.items())
    )
    return PnlComputationResult(
        mode=PNL_MODE_SETTLED,
        report_date=report_date,
        items=items,
        violations=violations,
    )


def pnl_compute_future(
    contracts: Iterable[LedgerContractInput],
    market_rates: Mapping[str, Decimal] | None = None,
) -> PnlComputationResult:
    """Compute future P&L on the undelivered portion of every contract.

    Items with nothing pending on either side are omitted.

    Args:
        contracts: Contracts with their deliveries.
        market_rates: Optional current rate per item, attached to rows for display only.

    Returns:
        PnlComputationResult: One row per item with pending quantity, plus violations.

    Raises:
        ValueError: Raised when contract quantities are negative.
    """

    pairs_by_item, violations = _pnl_collect(contracts, PNL_MODE_FUTURE, None)
    active_market_rates = market_rates or {}
    items = tuple(
        _pnl_compute_item(PNL_MODE_FUTURE, None, item_id, entries, active_market_rates.get(item_id))
        for item_id, entries in sorted(pairs_by_item.items())
    )
    return PnlComputationResult(
        mode=PNL_MODE_FUTURE,
        report_date=None,
        items=items,
        violations=violations,
    )


def pnl_summarize(records: Iterable[Any]) -> PnlSummary:
    """Total item P&L rows of one report.

    Accepts engine computations or persisted P&L rows. Overall average rates
    are weighted by each row's own quantity unit (packs for buy, kg for sell).

    Args:
        records: Rows exposing the P&L fields.

    Returns:
        PnlSummary: Report totals.

    Raises:
        ValueError: Raised when a row carries negative quantities.
    """

    rows = list(records)
    return PnlSummary(
        item_count=len(rows),
        buy_total_value=sum((row.buy_total_value for row in rows), _ZERO),
        sell_total_value=sum((row.sell_total_value for row in rows), _ZERO),
        buy_quantity=sum((row.buy_quantity for row in rows), _ZERO),
        sell_quantity=sum((row.sell_quantity for row in rows), _ZERO),
        avg_buy_rate=weighted_average_rate((row.buy_quantity, row.avg_buy_rate) for row in rows),
        avg_sell_rate=weighted_average_rate((row.sell_quantity, row.avg_sell_rate) for row in rows),
        profit=sum((row.profit for row in rows), _ZERO),
    )


def _pnl_collect(
    contracts: Iterable[LedgerContractInput],
    mode: str,
    report_date: date | None,
) -> tuple[dict[str, dict[ContractDirection, list[tuple[Decimal, Decimal, Decimal]]]], tuple[OverDeliveryViolation, ...]]:
    """Group (quantity_packs, rate, value) entries per item and direction."""

    if mode not in {PNL_MODE_SETTLED, PNL_MODE_FUTURE}:
        raise ValueError(f"unsupported mode={mode}")
    if mode == PNL_MODE_SETTLED and report_date is None:
        raise ValueError("report_date is required in settled mode")

    pairs_by_item: dict[str, dict[ContractDirection, list[tuple[Decimal, Decimal, Decimal]]]] = defaultdict(
        lambda: defaultdict(list)
    )
    violations: list[OverDeliveryViolation] = []

    for contract in sorted(contracts, key=lambda candidate: candidate.contract_id):
        if mode == PNL_MODE_SETTLED:
            if contract.contract_date > report_date:
                continue
            quantity_packs = contract.quantity_packs
            value = contract.total_value
        else:
            pending_result = pending_compute_lenient(contract)
            if pending_result.violation is not None:
                violations.append(pending_result.violation)
            quantity_packs = pending_result.pending_packs
            if quantity_packs == _ZERO:
                continue
            value = contract_total_value(quantity_packs, contract.rate_per_10kg)

        pairs_by_item[contract.item_id][contract.direction].append(
            (quantity_packs, contract.rate_per_10kg, value)
        )

    return pairs_by_item, tuple(violations)


def _pnl_compute_item(
    mode: str,
    report_date: date | None,
    item_id: str,
    entries: dict[ContractDirection, list[tuple[Decimal, Decimal, Decimal]]],
    market_rate_per_10kg: Decimal | None,
) -> PnlComputation:
    """Compute one item's P&L from its grouped entries."""

    purchase_entries = entries[ContractDirection.PURCHASE]
    sell_entries = entries[ContractDirection.SELL]

    avg_buy_rate = weighted_average_rate((quantity, rate) for quantity, rate, _ in purchase_entries)
    avg_sell_rate = weighted_average_rate((quantity, rate) for quantity, rate, _ in sell_entries)
    buy_quantity_packs = sum((quantity for quantity, _, _ in purchase_entries), _ZERO)
    sell_quantity_kg = sum((quantity for quantity, _, _ in sell_entries), _ZERO) * KG_PER_PACK

    return PnlComputation(
        mode=mode,
        report_date=report_date,
        item_id=item_id,
        buy_total_value=sum((value for _, _, value in purchase_entries), _ZERO),
        sell_total_value=sum((value for _, _, value in sell_entries), _ZERO),
        buy_quantity=buy_quantity_packs,
        sell_quantity=sell_quantity_kg,
        avg_buy_rate=avg_buy_rate,
        avg_sell_rate=avg_sell_rate,
        profit=(avg_sell_rate - avg_buy_rate) * sell_quantity_kg if sell_quantity_kg else _ZERO,
        contract_count=len(purchase_entries) + len(sell_entries),
        market_rate_per_10kg=market_rate_per_10kg,
    )


__all__ = [
    "PNL_MODE_FUTURE",
    "PNL_MODE_SETTLED",
    "PnlComputation",
    "PnlComputationResult",
    "PnlPairs",
    "PnlSummary",
    "pnl_build_pairs",
    "pnl_compute_future",
    "pnl_compute_settled",
    "pnl_summarize",
]
