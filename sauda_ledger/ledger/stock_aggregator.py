"""Stock aggregation over contracts and their deliveries.

Positions are produced per item and, optionally, per item and party. Loaded
packs are capped per contract at the contract quantity, so pending totals equal
the sum of clamped per-contract pending values and party rows add up exactly to
their item row. Over-delivered contracts are reported as violations and never
abort the aggregation.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Iterable

from sauda_ledger.domain import ContractDirection, OverDeliveryViolation, contract_total_value

from .interfaces import LedgerContractInput
from .pending import pending_compute_lenient
from .weighted_average import weighted_average_rate

_ZERO = Decimal("0")


@dataclass(frozen=True)
class StockPosition:
    """Aggregated stock position for one item or one item/party pair.

    Attributes:
        scope: `item` for item roll-ups, `party` for party breakdown rows.
        item_id: Item identifier.
        party_id: Party identifier on `party` rows, None on `item` rows.
        total_purchase_packs: Contracted purchase packs.
        total_sell_packs: Contracted sell packs.
        loaded_purchase_packs: Delivered purchase packs, capped per contract.
        loaded_sell_packs: Delivered sell packs, capped per contract.
        pending_purchase_packs: Undelivered purchase packs.
        pending_sell_packs: Undelivered sell packs.
        purchase_value: Contracted purchase value.
        sell_value: Contracted sell value.
        loaded_purchase_value: Value of delivered purchase packs.
        loaded_sell_value: Value of delivered sell packs.
        avg_purchase_rate: Quantity-weighted purchase rate.
        avg_sell_rate: Quantity-weighted sell rate.
        contract_count: Number of contracts aggregated.
    """

    scope: str
    item_id: str
    party_id: str | None
    total_purchase_packs: Decimal
    total_sell_packs: Decimal
    loaded_purchase_packs: Decimal
    loaded_sell_packs: Decimal
    pending_purchase_packs: Decimal
    pending_sell_packs: Decimal
    purchase_value: Decimal
    sell_value: Decimal
    loaded_purchase_value: Decimal
    loaded_sell_value: Decimal
    avg_purchase_rate: Decimal
    avg_sell_rate: Decimal
    contract_count: int

    @property
    def net_stock_packs(self) -> Decimal:
        """Pending purchase packs minus pending sell packs."""

        return self.pending_purchase_packs - self.pending_sell_packs

    @property
    def has_pending(self) -> bool:
        """Whether any purchase or sell quantity is still undelivered."""

        return self.pending_purchase_packs > _ZERO or self.pending_sell_packs > _ZERO


@dataclass(frozen=True)
class StockAggregationResult:
    """Stock positions and integrity violations from one aggregation.

    Attributes:
        item_positions: One `item` position per aggregated item, ordered by item id.
        party_positions: `party` positions ordered by item and party id.
        violations: Over-delivered contracts found while aggregating.
    """

    item_positions: tuple[StockPosition, ...] = ()
    party_positions: tuple[StockPosition, ...] = ()
    violations: tuple[OverDeliveryViolation, ...] = ()


@dataclass(frozen=True)
class StockSummary:
    """Totals across item stock rows.

    Attributes:
        item_count: Number of items summarized.
        total_purchase_packs: Contracted purchase packs.
        total_sell_packs: Contracted sell packs.
        loaded_purchase_packs: Delivered purchase packs.
        loaded_sell_packs: Delivered sell packs.
        pending_purchase_packs: Undelivered purchase packs.
        pending_sell_packs: Undelivered sell packs.
        net_stock_packs: Pending purchase minus pending sell.
        purchase_value: Contracted purchase value.
        sell_value: Contracted sell value.
        avg_purchase_rate: Overall quantity-weighted purchase rate.
        avg_sell_rate: Overall quantity-weighted sell rate.
    """

    item_count: int
    total_purchase_packs: Decimal
    total_sell_packs: Decimal
    loaded_purchase_packs: Decimal
    loaded_sell_packs: Decimal
    pending_purchase_packs: Decimal
    pending_sell_packs: Decimal
    net_stock_packs: Decimal
    purchase_value: Decimal
    sell_value: Decimal
    avg_purchase_rate: Decimal
    avg_sell_rate: Decimal


@dataclass
class _PositionAccumulator:
    """Mutable per-key totals used while aggregating."""

    total_packs: dict[ContractDirection, Decimal] = field(default_factory=lambda: defaultdict(Decimal))
    loaded_packs: dict[ContractDirection, Decimal] = field(default_factory=lambda: defaultdict(Decimal))
    pending_packs: dict[ContractDirection, Decimal] = field(default_factory=lambda: defaultdict(Decimal))
    total_value: dict[ContractDirection, Decimal] = field(default_factory=lambda: defaultdict(Decimal))
    loaded_value: dict[ContractDirection, Decimal] = field(default_factory=lambda: defaultdict(Decimal))
    rate_pairs: dict[ContractDirection, list[tuple[Decimal, Decimal]]] = field(
        default_factory=lambda: defaultdict(list)
    )
    contract_count: int = 0

    def add(self, contract: LedgerContractInput, loaded_packs: Decimal, pending_packs: Decimal) -> None:
        direction = contract.direction
        self.total_packs[direction] += contract.quantity_packs
        self.loaded_packs[direction] += loaded_packs
        self.pending_packs[direction] += pending_packs
        self.total_value[direction] += contract.total_value
        self.loaded_value[direction] += contract_total_value(loaded_packs, contract.rate_per_10kg)
        self.rate_pairs[direction].append((contract.quantity_packs, contract.rate_per_10kg))
        self.contract_count += 1

    def build(self, scope: str, item_id: str, party_id: str | None) -> StockPosition:
        purchase = ContractDirection.PURCHASE
        sell = ContractDirection.SELL
        return StockPosition(
            scope=scope,
            item_id=item_id,
            party_id=party_id,
            total_purchase_packs=self.total_packs[purchase],
            total_sell_packs=self.total_packs[sell],
            loaded_purchase_packs=self.loaded_packs[purchase],
            loaded_sell_packs=self.loaded_packs[sell],
            pending_purchase_packs=self.pending_packs[purchase],
            pending_sell_packs=self.pending_packs[sell],
            purchase_value=self.total_value[purchase],
            sell_value=self.total_value[sell],
            loaded_purchase_value=self.loaded_value[purchase],
            loaded_sell_value=self.loaded_value[sell],
            avg_purchase_rate=weighted_average_rate(self.rate_pairs[purchase]),
            avg_sell_rate=weighted_average_rate(self.rate_pairs[sell]),
            contract_count=self.contract_count,
        )


def stock_aggregate_item(
    item_id: str,
    contracts: Iterable[LedgerContractInput],
    ex_plant_id: str | None = None,
    party_breakdown: bool = True,
) -> StockAggregationResult:
    """Aggregate stock for one item, optionally restricted to one ex-plant.

    Contracts of other items are ignored. An item without contracts yields no
    positions.

    Args:
        item_id: Item identifier.
        contracts: Contracts with their deliveries.
        ex_plant_id: Optional ex-plant slice.
        party_breakdown: Whether to produce party positions.

    Returns:
        StockAggregationResult: Item position, party positions and violations.

    Raises:
        ValueError: Raised when item_id is blank or contract quantities are negative.
    """

    if not isinstance(item_id, str) or not item_id.strip():
        raise ValueError("item_id must not be blank")

    selected_contracts = [
        contract
        for contract in contracts
        if contract.item_id == item_id and (ex_plant_id is None or contract.ex_plant_id == ex_plant_id)
    ]
    return _stock_aggregate(selected_contracts, party_breakdown)


def stock_aggregate_ledger(
    contracts: Iterable[LedgerContractInput],
    ex_plant_id: str | None = None,
    party_breakdown: bool = True,
) -> StockAggregationResult:
    """Aggregate stock for every item present in the contracts.

    Args:
        contracts: Contracts with their deliveries.
        ex_plant_id: Optional ex-plant slice.
        party_breakdown: Whether to produce party positions.

    Returns:
        StockAggregationResult: Positions for all items and every violation found.

    Raises:
        ValueError: Raised when contract quantities are negative.
    """

    selected_contracts = [
        contract for contract in contracts if ex_plant_id is None or contract.ex_plant_id == ex_plant_id
    ]
    return _stock_aggregate(selected_contracts, party_breakdown)


def stock_summarize(positions: Iterable[Any]) -> StockSummary:
    """Total item-scope stock rows.

    Accepts stock positions or persisted stock snapshot rows; party rows are
    skipped so nothing is counted twice.

    Args:
        positions: Rows exposing the stock position fields and `scope`.

    Returns:
        StockSummary: Totals and overall weighted rates.

    Raises:
        ValueError: Raised when a row carries negative quantities.
    """

    item_rows = [position for position in positions if position.scope == "item"]
    pending_purchase_packs = sum((row.pending_purchase_packs for row in item_rows), _ZERO)
    pending_sell_packs = sum((row.pending_sell_packs for row in item_rows), _ZERO)
    return StockSummary(
        item_count=len(item_rows),
        total_purchase_packs=sum((row.total_purchase_packs for row in item_rows), _ZERO),
        total_sell_packs=sum((row.total_sell_packs for row in item_rows), _ZERO),
        loaded_purchase_packs=sum((row.loaded_purchase_packs for row in item_rows), _ZERO),
        loaded_sell_packs=sum((row.loaded_sell_packs for row in item_rows), _ZERO),
        pending_purchase_packs=pending_purchase_packs,
        pending_sell_packs=pending_sell_packs,
        net_stock_packs=pending_purchase_packs - pending_sell_packs,
        purchase_value=sum((row.purchase_value for row in item_rows), _ZERO),
        sell_value=sum((row.sell_value for row in item_rows), _ZERO),
        avg_purchase_rate=weighted_average_rate(
            (row.total_purchase_packs, row.avg_purchase_rate) for row in item_rows
        ),
        avg_sell_rate=weighted_average_rate((row.total_sell_packs, row.avg_sell_rate) for row in item_rows),
    )


def _stock_aggregate(contracts: list[LedgerContractInput], party_breakdown: bool) -> StockAggregationResult:
    """Aggregate already-selected contracts into item and party positions."""

    item_accumulators: dict[str, _PositionAccumulator] = defaultdict(_PositionAccumulator)
    party_accumulators: dict[tuple[str, str], _PositionAccumulator] = defaultdict(_PositionAccumulator)
    violations: list[OverDeliveryViolation] = []

    for contract in sorted(contracts, key=lambda candidate: candidate.contract_id):
        pending_result = pending_compute_lenient(contract)
        if pending_result.violation is not None:
            violations.append(pending_result.violation)

        loaded_packs = pending_result.loaded_packs_capped
        item_accumulators[contract.item_id].add(contract, loaded_packs, pending_result.pending_packs)
        if party_breakdown:
            party_accumulators[(contract.item_id, contract.party_id)].add(
                contract,
                loaded_packs,
                pending_result.pending_packs,
            )

    return StockAggregationResult(
        item_positions=tuple(
            item_accumulators[item_id].build("item", item_id, None) for item_id in sorted(item_accumulators)
        ),
        party_positions=tuple(
            party_accumulators[key].build("party", key[0], key[1]) for key in sorted(party_accumulators)
        ),
        violations=tuple(violations),
    )


__all__ = [
    "StockAggregationResult",
    "StockPosition",
    "StockSummary",
    "stock_aggregate_item",
    "stock_aggregate_ledger",
    "stock_summarize",
]
