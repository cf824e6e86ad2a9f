"""Reconciliation service: loads the ledger, drives the engines and guards writes."""
# pylint: disable=too-many-public-methods

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Mapping

from sauda_ledger.db import (
    ContractListFilter,
    ContractRecord,
    ContractWriteRequest,
    DeliveryEventRecord,
    DeliveryEventWriteRequest,
    DerivedSnapshotReplaceRequest,
    LedgerStorePort,
    PnlRecord,
    StockSnapshotRecord,
)
from sauda_ledger.db.values import db_value_deterministic_id
from sauda_ledger.domain import LedgerRecordNotFoundError, OverDeliveryViolation

from .contract_numbers import contract_number_next, contract_number_prefix
from .interfaces import LedgerContractInput, LedgerDeliveryInput
from .pending import (
    PendingQuantityResult,
    pending_compute_lenient,
    pending_validate_new_delivery,
    pending_validate_quantity_change,
)
from .pnl_engine import PnlComputation, pnl_compute_future, pnl_compute_settled
from .stock_aggregator import StockAggregationResult, StockPosition, stock_aggregate_item, stock_aggregate_ledger

logger = logging.getLogger("sauda_ledger.ledger.reconciliation")

_RECORD_QUANTUM = Decimal("0.000001")


@dataclass(frozen=True)
class LedgerWriteResult:
    """Outcome of one guarded ledger write.

    Attributes:
        record: Written (or deleted) contract or delivery record.
        affected_item_ids: Items whose derived stock rows are now out of date.
    """

    record: Any
    affected_item_ids: tuple[str, ...]


@dataclass(frozen=True)
class PendingContractView:
    """Contract together with its delivery status.

    Attributes:
        contract: Contract record.
        pending: Pending/loaded quantities of the contract.
        delivery_count: Number of recorded delivery events.
    """

    contract: ContractRecord
    pending: PendingQuantityResult
    delivery_count: int


@dataclass(frozen=True)
class LedgerRebuildPlan:
    """Derived rows computed for one rebuild, ready for an atomic replacement.

    Attributes:
        replace_request: Replacement scope and rows.
        violations: Over-delivered contracts found during the scan.
        contract_count: Number of contracts scanned.
        settled_report_dates: Report dates computed in settled mode.
    """

    replace_request: DerivedSnapshotReplaceRequest
    violations: tuple[OverDeliveryViolation, ...]
    contract_count: int
    settled_report_dates: tuple[date, ...]


class LedgerReconciliationService:
    """Bridge between the ledger store and the pure ledger engines."""

    def __init__(self, store: LedgerStorePort):
        """Initialize reconciliation service dependencies.

        Args:
            store: DB-layer ledger store.

        Returns:
            None: Initializer does not return values.

        Raises:
            ValueError: Raised when store is invalid.
        """

        if store is None:
            raise ValueError("store must not be None")
        self._store = store

    def ledger_load_contracts(self, contract_filter: ContractListFilter | None = None) -> list[LedgerContractInput]:
        """Load contracts with their deliveries in two bulk reads.

        Args:
            contract_filter: Optional contract filter.

        Returns:
            list[LedgerContractInput]: Engine inputs ordered like the store listing.

        Raises:
            LedgerStoreError: Raised when the store read fails.
        """

        contracts = self._store.db_contract_list(contract_filter)
        contract_ids = None if contract_filter is None else [contract.contract_id for contract in contracts]
        deliveries = self._store.db_delivery_event_list_for_contracts(contract_ids)
        deliveries_by_contract = self._group_deliveries_by_contract(deliveries)
        return [
            ledger_build_contract_input(contract, deliveries_by_contract.get(contract.contract_id, []))
            for contract in contracts
        ]

    def ledger_load_market_rates(self) -> dict[str, Decimal]:
        """Load the latest market rate per item."""

        return self._store.db_market_rate_current_map()

    def ledger_has_contracts_through(self, report_date: date) -> bool:
        """Return whether any contract is dated on or before report_date."""

        first_contract_date = self._store.db_contract_first_date()
        return first_contract_date is not None and first_contract_date <= report_date

    def ledger_scan_violations(self, contracts: Iterable[LedgerContractInput]) -> tuple[OverDeliveryViolation, ...]:
        """Return every over-delivered contract, ordered by contract id."""

        violations = []
        for contract in sorted(contracts, key=lambda candidate: candidate.contract_id):
            pending_result = pending_compute_lenient(contract)
            if pending_result.violation is not None:
                violations.append(pending_result.violation)
        return tuple(violations)

    def ledger_build_stock_records(self, aggregation: StockAggregationResult) -> tuple[StockSnapshotRecord, ...]:
        """Map stock positions to persisted rows with deterministic ids."""

        return tuple(
            ledger_stock_record_from_position(position)
            for position in (*aggregation.item_positions, *aggregation.party_positions)
        )

    def ledger_build_stock_plan(
        self,
        contracts: list[LedgerContractInput],
        item_id: str | None = None,
    ) -> LedgerRebuildPlan:
        """Compute stock rows for every item, or for one item only.

        Args:
            contracts: Full ledger inputs.
            item_id: Optional item to refresh; its rows alone are replaced.

        Returns:
            LedgerRebuildPlan: Stock replacement plan and violations.

        Raises:
            ValueError: Raised when inputs are invalid.
        """

        if item_id is None:
            aggregation = stock_aggregate_ledger(contracts)
            stock_item_ids: tuple[str, ...] = ()
        else:
            aggregation = stock_aggregate_item(item_id, contracts)
            stock_item_ids = (item_id,)

        return LedgerRebuildPlan(
            replace_request=DerivedSnapshotReplaceRequest(
                stock_rows=self.ledger_build_stock_records(aggregation),
                stock_item_ids=stock_item_ids,
            ),
            violations=aggregation.violations,
            contract_count=len(contracts),
            settled_report_dates=(),
        )

    def ledger_build_pnl_plan(
        self,
        contracts: list[LedgerContractInput],
        market_rates: Mapping[str, Decimal] | None,
        settled_report_dates: Iterable[date] | None = None,
        include_future: bool = True,
    ) -> LedgerRebuildPlan:
        """Compute settled and/or future P&L rows.

        Args:
            contracts: Full ledger inputs.
            market_rates: Current rate per item attached to future rows.
            settled_report_dates: Dates to compute; None computes every distinct contract date and
                replaces all settled rows, an empty iterable leaves settled rows untouched.
            include_future: Whether to compute and replace future rows.

        Returns:
            LedgerRebuildPlan: P&L replacement plan and violations.

        Raises:
            ValueError: Raised when inputs are invalid.
        """

        full_settled_rebuild = settled_report_dates is None
        report_dates = (
            ledger_distinct_contract_dates(contracts)
            if full_settled_rebuild
            else tuple(sorted(set(settled_report_dates)))
        )

        if full_settled_rebuild:
            settled_scope: tuple[date, ...] | None = ()
        else:
            settled_scope = report_dates or None

        pnl_rows: list[PnlRecord] = []
        for report_date in report_dates:
            settled_result = pnl_compute_settled(contracts, report_date)
            pnl_rows.extend(ledger_pnl_record_from_computation(item) for item in settled_result.items)

        violations: tuple[OverDeliveryViolation, ...] = ()
        if include_future:
            future_result = pnl_compute_future(contracts, market_rates)
            pnl_rows.extend(ledger_pnl_record_from_computation(item) for item in future_result.items)
            violations = future_result.violations

        return LedgerRebuildPlan(
            replace_request=DerivedSnapshotReplaceRequest(
                pnl_rows=tuple(pnl_rows),
                pnl_settled_dates=settled_scope,
                replace_future_pnl=include_future,
            ),
            violations=violations,
            contract_count=len(contracts),
            settled_report_dates=report_dates,
        )

    def ledger_build_full_plan(
        self,
        contracts: list[LedgerContractInput],
        market_rates: Mapping[str, Decimal] | None,
    ) -> LedgerRebuildPlan:
        """Compute every derived row: stock, settled P&L for each contract date and future P&L.

        Args:
            contracts: Full ledger inputs.
            market_rates: Current rate per item attached to future rows.

        Returns:
            LedgerRebuildPlan: Full replacement plan and the violation report.

        Raises:
            ValueError: Raised when inputs are invalid.
        """

        stock_plan = self.ledger_build_stock_plan(contracts)
        pnl_plan = self.ledger_build_pnl_plan(contracts, market_rates)
        return LedgerRebuildPlan(
            replace_request=DerivedSnapshotReplaceRequest(
                stock_rows=stock_plan.replace_request.stock_rows,
                stock_item_ids=(),
                pnl_rows=pnl_plan.replace_request.pnl_rows,
                pnl_settled_dates=(),
                replace_future_pnl=True,
            ),
            violations=self.ledger_scan_violations(contracts),
            contract_count=len(contracts),
            settled_report_dates=pnl_plan.settled_report_dates,
        )

    def ledger_live_item_stock(self, item_id: str, ex_plant_id: str | None = None) -> StockAggregationResult:
        """Aggregate one item's stock straight from the ledger, optionally for one ex-plant.

        Args:
            item_id: Item identifier.
            ex_plant_id: Optional ex-plant slice.

        Returns:
            StockAggregationResult: Live positions and violations.

        Raises:
            ValueError: Raised when item_id is blank.
            LedgerStoreError: Raised when the store read fails.
        """

        contracts = self.ledger_load_contracts(ContractListFilter(item_id=item_id, ex_plant_id=ex_plant_id))
        return stock_aggregate_item(item_id, contracts, ex_plant_id=ex_plant_id)

    def ledger_live_ex_plant_stock(self, ex_plant_id: str) -> StockAggregationResult:
        """Aggregate every item's stock for contracts of one ex-plant, straight from the ledger.

        Raises:
            ValueError: Raised when ex_plant_id is blank.
            LedgerStoreError: Raised when the store read fails.
        """

        if not isinstance(ex_plant_id, str) or not ex_plant_id.strip():
            raise ValueError("ex_plant_id must not be blank")
        normalized_ex_plant_id = ex_plant_id.strip()

        contracts = self.ledger_load_contracts(ContractListFilter(ex_plant_id=normalized_ex_plant_id))
        return stock_aggregate_ledger(contracts, ex_plant_id=normalized_ex_plant_id)

    def ledger_get_contract(self, contract_id: str) -> PendingContractView:
        """Fetch one contract with its pending status.

        Raises:
            LedgerRecordNotFoundError: Raised when the contract does not exist.
        """

        contract = self._store.db_contract_get(contract_id)
        if contract is None:
            raise LedgerRecordNotFoundError(f"contract_id={contract_id} not found")
        deliveries = self._store.db_delivery_event_list(contract.contract_id)
        return PendingContractView(
            contract=contract,
            pending=pending_compute_lenient(ledger_build_contract_input(contract, deliveries)),
            delivery_count=len(deliveries),
        )

    def ledger_list_contracts(self, contract_filter: ContractListFilter | None = None) -> list[PendingContractView]:
        """List contracts with their pending status."""

        contracts = self._store.db_contract_list(contract_filter)
        deliveries = self._store.db_delivery_event_list_for_contracts([contract.contract_id for contract in contracts])
        deliveries_by_contract = self._group_deliveries_by_contract(deliveries)
        views = []
        for contract in contracts:
            contract_deliveries = deliveries_by_contract.get(contract.contract_id, [])
            views.append(
                PendingContractView(
                    contract=contract,
                    pending=pending_compute_lenient(ledger_build_contract_input(contract, contract_deliveries)),
                    delivery_count=len(contract_deliveries),
                )
            )
        return views

    def ledger_list_pending_contracts(self, contract_filter: ContractListFilter | None = None) -> list[PendingContractView]:
        """List contracts that still have undelivered quantity."""

        return [view for view in self.ledger_list_contracts(contract_filter) if view.pending.pending_packs > 0]

    def ledger_list_deliveries(self, contract_id: str) -> list[DeliveryEventRecord]:
        """List delivery events of one existing contract.

        Raises:
            LedgerRecordNotFoundError: Raised when the contract does not exist.
        """

        if self._store.db_contract_get(contract_id) is None:
            raise LedgerRecordNotFoundError(f"contract_id={contract_id} not found")
        return self._store.db_delivery_event_list(contract_id)

    def ledger_create_contract(self, request: ContractWriteRequest) -> LedgerWriteResult:
        """Create a contract, assigning the next financial-year number when none is given.

        Args:
            request: Contract write request.

        Returns:
            LedgerWriteResult: Created contract and its item.

        Raises:
            ValueError: Raised when request values are invalid.
            LedgerValidationError: Raised when the contract number already exists.
            LedgerStoreError: Raised when persistence fails.
        """

        if request.contract_no is None or not request.contract_no.strip():
            last_contract_no = self._store.db_contract_last_number(contract_number_prefix(request.contract_date))
            request = replace(request, contract_no=contract_number_next(request.contract_date, last_contract_no))

        contract = self._store.db_contract_create(request)
        logger.info(
            "ledger_contract_created",
            extra={"contract_id": contract.contract_id, "contract_no": contract.contract_no, "item_id": contract.item_id},
        )
        return LedgerWriteResult(record=contract, affected_item_ids=(contract.item_id,))

    def ledger_update_contract(self, contract_id: str, request: ContractWriteRequest) -> LedgerWriteResult:
        """Edit a contract; the new quantity must still cover what was already loaded.

        Args:
            contract_id: Target contract identifier.
            request: Replacement contract values.

        Returns:
            LedgerWriteResult: Updated contract plus previous and new items.

        Raises:
            OverDeliveryValidationError: Raised when deliveries exceed the new quantity.
            LedgerRecordNotFoundError: Raised when the contract does not exist.
            LedgerStoreError: Raised when persistence fails.
        """

        previous_item_ids: list[str] = []

        def _guard(current: ContractRecord, deliveries: list[DeliveryEventRecord], new_quantity_packs: Decimal) -> None:
            previous_item_ids.append(current.item_id)
            pending_validate_quantity_change(ledger_build_contract_input(current, deliveries), new_quantity_packs)

        contract = self._store.db_contract_update_guarded(contract_id, request, _guard)
        logger.info("ledger_contract_updated", extra={"contract_id": contract.contract_id, "item_id": contract.item_id})
        return LedgerWriteResult(
            record=contract,
            affected_item_ids=_ordered_unique([*previous_item_ids, contract.item_id]),
        )

    def ledger_delete_contract(self, contract_id: str) -> LedgerWriteResult:
        """Delete a contract together with its deliveries."""

        contract = self._store.db_contract_delete(contract_id)
        logger.info("ledger_contract_deleted", extra={"contract_id": contract.contract_id, "item_id": contract.item_id})
        return LedgerWriteResult(record=contract, affected_item_ids=(contract.item_id,))

    def ledger_record_delivery(self, request: DeliveryEventWriteRequest) -> LedgerWriteResult:
        """Record a delivery after checking it against the contract's remaining quantity.

        Args:
            request: Delivery write request.

        Returns:
            LedgerWriteResult: Recorded delivery and the contract's item.

        Raises:
            OverDeliveryValidationError: Raised when the delivery would over-deliver; nothing is persisted.
            LedgerRecordNotFoundError: Raised when the contract does not exist.
            LedgerStoreError: Raised when persistence fails.
        """

        guard, guarded_item_ids = self._build_delivery_guard()
        delivery = self._store.db_delivery_event_create_guarded(request, guard)
        logger.info(
            "ledger_delivery_recorded",
            extra={"delivery_event_id": delivery.delivery_event_id, "contract_id": delivery.contract_id},
        )
        return LedgerWriteResult(record=delivery, affected_item_ids=_ordered_unique(guarded_item_ids))

    def ledger_update_delivery(self, delivery_event_id: str, request: DeliveryEventWriteRequest) -> LedgerWriteResult:
        """Edit a delivery; the edited weight replaces the old one in the remaining-quantity check.

        Raises:
            OverDeliveryValidationError: Raised when the edit would over-deliver; nothing is persisted.
            LedgerRecordNotFoundError: Raised when the delivery or contract does not exist.
            LedgerStoreError: Raised when persistence fails.
        """

        previous_delivery = self._store.db_delivery_event_get(delivery_event_id)
        if previous_delivery is None:
            raise LedgerRecordNotFoundError(f"delivery_event_id={delivery_event_id} not found")

        guard, guarded_item_ids = self._build_delivery_guard()
        delivery = self._store.db_delivery_event_update_guarded(delivery_event_id, request, guard)
        affected_item_ids = list(guarded_item_ids)
        if previous_delivery.contract_id != delivery.contract_id:
            previous_contract = self._store.db_contract_get(previous_delivery.contract_id)
            if previous_contract is not None:
                affected_item_ids.append(previous_contract.item_id)
        logger.info(
            "ledger_delivery_updated",
            extra={"delivery_event_id": delivery.delivery_event_id, "contract_id": delivery.contract_id},
        )
        return LedgerWriteResult(record=delivery, affected_item_ids=_ordered_unique(affected_item_ids))

    def ledger_delete_delivery(self, delivery_event_id: str) -> LedgerWriteResult:
        """Delete one delivery event."""

        delivery = self._store.db_delivery_event_delete(delivery_event_id)
        contract = self._store.db_contract_get(delivery.contract_id)
        logger.info(
            "ledger_delivery_deleted",
            extra={"delivery_event_id": delivery.delivery_event_id, "contract_id": delivery.contract_id},
        )
        return LedgerWriteResult(
            record=delivery,
            affected_item_ids=() if contract is None else (contract.item_id,),
        )

    def ledger_set_market_rate(self, item_id: str, effective_date: date, rate_per_10kg: Decimal) -> None:
        """Store an item's market rate for an effective date."""

        self._store.db_market_rate_upsert(item_id, effective_date, rate_per_10kg)

    def _build_delivery_guard(self):
        """Build a delivery guard that also records the guarded contract's item."""

        guarded_item_ids: list[str] = []

        def _guard(
            contract: ContractRecord,
            deliveries: list[DeliveryEventRecord],
            new_weight_kg: Decimal,
            replaced_weight_kg: Decimal,
        ) -> None:
            guarded_item_ids.append(contract.item_id)
            pending_validate_new_delivery(
                ledger_build_contract_input(contract, deliveries),
                new_weight_kg,
                replaced_weight_kg,
            )

        return _guard, guarded_item_ids

    def _group_deliveries_by_contract(
        self,
        deliveries: list[DeliveryEventRecord],
    ) -> dict[str, list[DeliveryEventRecord]]:
        """Group delivery records by owning contract id."""

        grouped: dict[str, list[DeliveryEventRecord]] = {}
        for delivery in deliveries:
            grouped.setdefault(delivery.contract_id, []).append(delivery)
        return grouped


def ledger_build_contract_input(
    contract: ContractRecord,
    deliveries: Iterable[DeliveryEventRecord],
) -> LedgerContractInput:
    """Map a contract record and its deliveries to an engine input."""

    return LedgerContractInput(
        contract_id=contract.contract_id,
        direction=contract.direction,
        contract_date=contract.contract_date,
        party_id=contract.party_id,
        item_id=contract.item_id,
        ex_plant_id=contract.ex_plant_id,
        quantity_packs=contract.quantity_packs,
        rate_per_10kg=contract.rate_per_10kg,
        deliveries=tuple(
            LedgerDeliveryInput(
                delivery_event_id=delivery.delivery_event_id,
                delivery_date=delivery.delivery_date,
                weight_kg=delivery.weight_kg,
            )
            for delivery in deliveries
            if delivery.contract_id == contract.contract_id
        ),
    )


def ledger_distinct_contract_dates(contracts: Iterable[LedgerContractInput]) -> tuple[date, ...]:
    """Return the distinct contract dates in ascending order."""

    return tuple(sorted({contract.contract_date for contract in contracts}))


def ledger_stock_record_from_position(position: StockPosition) -> StockSnapshotRecord:
    """Map one stock position to a persisted row with a deterministic id."""

    return StockSnapshotRecord(
        stock_snapshot_id=db_value_deterministic_id("stock_snapshot", position.scope, position.item_id, position.party_id),
        scope=position.scope,
        item_id=position.item_id,
        party_id=position.party_id,
        total_purchase_packs=_quantize(position.total_purchase_packs),
        total_sell_packs=_quantize(position.total_sell_packs),
        loaded_purchase_packs=_quantize(position.loaded_purchase_packs),
        loaded_sell_packs=_quantize(position.loaded_sell_packs),
        pending_purchase_packs=_quantize(position.pending_purchase_packs),
        pending_sell_packs=_quantize(position.pending_sell_packs),
        net_stock_packs=_quantize(position.net_stock_packs),
        purchase_value=_quantize(position.purchase_value),
        sell_value=_quantize(position.sell_value),
        loaded_purchase_value=_quantize(position.loaded_purchase_value),
        loaded_sell_value=_quantize(position.loaded_sell_value),
        avg_purchase_rate=_quantize(position.avg_purchase_rate),
        avg_sell_rate=_quantize(position.avg_sell_rate),
        contract_count=position.contract_count,
    )


def ledger_pnl_record_from_computation(computation: PnlComputation) -> PnlRecord:
    """Map one P&L computation to a persisted row with a deterministic id."""

    return PnlRecord(
        pnl_record_id=db_value_deterministic_id(
            "pnl_record",
            computation.mode,
            None if computation.report_date is None else computation.report_date.isoformat(),
            computation.item_id,
        ),
        mode=computation.mode,
        report_date=computation.report_date,
        item_id=computation.item_id,
        buy_total_value=_quantize(computation.buy_total_value),
        sell_total_value=_quantize(computation.sell_total_value),
        buy_quantity=_quantize(computation.buy_quantity),
        sell_quantity=_quantize(computation.sell_quantity),
        avg_buy_rate=_quantize(computation.avg_buy_rate),
        avg_sell_rate=_quantize(computation.avg_sell_rate),
        profit=_quantize(computation.profit),
        contract_count=computation.contract_count,
        market_rate_per_10kg=None
        if computation.market_rate_per_10kg is None
        else _quantize(computation.market_rate_per_10kg),
    )


def _quantize(value: Decimal) -> Decimal:
    """Round a persisted figure to the stored scale."""

    return value.quantize(_RECORD_QUANTUM, rounding=ROUND_HALF_UP)


def _ordered_unique(values: Iterable[str]) -> tuple[str, ...]:
    """Deduplicate while keeping first-seen order."""

    return tuple(dict.fromkeys(values))


__all__ = [
    "LedgerRebuildPlan",
    "LedgerReconciliationService",
    "LedgerWriteResult",
    "PendingContractView",
    "ledger_build_contract_input",
    "ledger_distinct_contract_dates",
    "ledger_pnl_record_from_computation",
    "ledger_stock_record_from_position",
]
