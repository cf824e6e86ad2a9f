"""Typed interfaces for database-layer services.

All SQL access must remain in the db package and its submodules.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Protocol

from sauda_ledger.domain import ContractDirection, HealthStatus


class DatabaseHealthPort(Protocol):
    """Port definition for database connectivity verification."""

    def db_connection_label(self) -> str:
        """Return a stable label for the active database connection target.

        Returns:
            str: Database target label for diagnostics.

        Raises:
            RuntimeError: Raised when connection metadata is unavailable.
        """

    def db_check_health(self) -> HealthStatus:
        """Check database connectivity and return deterministic health payload.

        Returns:
            HealthStatus: Database health status payload.

        Raises:
            ConnectionError: Raised when database cannot be reached.
        """


@dataclass(frozen=True)
class ContractRecord:
    """Persistence model for one contract (sauda) row.

    Attributes:
        contract_id: Contract identifier.
        contract_no: Human-facing contract number.
        direction: Contract direction.
        contract_date: Trade date.
        party_id: Counterparty identifier.
        item_id: Traded item identifier.
        ex_plant_id: Optional originating plant identifier.
        broker_id: Optional broker identifier.
        quantity_packs: Contracted quantity in packs.
        rate_per_10kg: Agreed rate per 10 kg.
        loading_due_date: Optional loading due date.
        created_at_utc: Row creation timestamp in UTC.
    """

    contract_id: str
    contract_no: str
    direction: ContractDirection
    contract_date: date
    party_id: str
    item_id: str
    ex_plant_id: str | None
    broker_id: str | None
    quantity_packs: Decimal
    rate_per_10kg: Decimal
    loading_due_date: date | None
    created_at_utc: datetime


@dataclass(frozen=True)
class ContractWriteRequest:
    """Input payload for contract create and administrative edit.

    Attributes:
        direction: Contract direction.
        contract_date: Trade date.
        party_id: Counterparty identifier.
        item_id: Traded item identifier.
        quantity_packs: Contracted quantity in packs.
        rate_per_10kg: Agreed rate per 10 kg.
        contract_no: Optional contract number; generated on create when absent.
        ex_plant_id: Optional originating plant identifier.
        broker_id: Optional broker identifier.
        loading_due_date: Optional loading due date.
    """

    direction: ContractDirection
    contract_date: date
    party_id: str
    item_id: str
    quantity_packs: Decimal
    rate_per_10kg: Decimal
    contract_no: str | None = None
    ex_plant_id: str | None = None
    broker_id: str | None = None
    loading_due_date: date | None = None


@dataclass(frozen=True)
class ContractListFilter:
    """Optional filters for contract listing.

    Attributes:
        direction: Optional direction filter.
        item_id: Optional item filter.
        party_id: Optional party filter.
        ex_plant_id: Optional ex-plant filter.
        date_from: Optional inclusive lower contract-date bound.
        date_to: Optional inclusive upper contract-date bound.
    """

    direction: ContractDirection | None = None
    item_id: str | None = None
    party_id: str | None = None
    ex_plant_id: str | None = None
    date_from: date | None = None
    date_to: date | None = None


@dataclass(frozen=True)
class DeliveryEventRecord:
    """Persistence model for one delivery (loading) event row.

    Attributes:
        delivery_event_id: Delivery event identifier.
        contract_id: Owning contract identifier.
        delivery_date: Loading date.
        weight_kg: Delivered weight in kilograms.
        transport_note: Optional transport metadata.
        created_at_utc: Row creation timestamp in UTC.
    """

    delivery_event_id: str
    contract_id: str
    delivery_date: date
    weight_kg: Decimal
    transport_note: str | None
    created_at_utc: datetime


@dataclass(frozen=True)
class DeliveryEventWriteRequest:
    """Input payload for delivery create and administrative edit.

    Attributes:
        contract_id: Owning contract identifier.
        delivery_date: Loading date.
        weight_kg: Delivered weight in kilograms.
        transport_note: Optional transport metadata.
    """

    contract_id: str
    delivery_date: date
    weight_kg: Decimal
    transport_note: str | None = None


DeliveryGuard = Callable[[ContractRecord, list[DeliveryEventRecord], Decimal, Decimal], None]
"""Write-time guard called as `guard(contract, deliveries, new_weight_kg, replaced_weight_kg)`."""

ContractQuantityGuard = Callable[[ContractRecord, list[DeliveryEventRecord], Decimal], None]
"""Write-time guard called as `guard(contract, deliveries, new_quantity_packs)`."""


class LedgerStorePort(Protocol):
    """Port definition for the ledger source of truth (contracts and deliveries)."""

    def db_contract_list(self, contract_filter: ContractListFilter | None = None) -> list[ContractRecord]:
        """List contracts matching the optional filter in deterministic order."""

    def db_contract_get(self, contract_id: str) -> ContractRecord | None:
        """Fetch one contract by id."""

    def db_contract_last_number(self, contract_no_prefix: str) -> str | None:
        """Return the highest `<prefix>/<digits>` contract number of one financial year by sequence value."""

    def db_contract_first_date(self) -> date | None:
        """Return the earliest contract date, or None for an empty ledger."""

    def db_contract_create(self, request: ContractWriteRequest) -> ContractRecord:
        """Persist one new contract."""

    def db_contract_update_guarded(
        self,
        contract_id: str,
        request: ContractWriteRequest,
        guard: ContractQuantityGuard,
    ) -> ContractRecord:
        """Apply an administrative contract edit after the guard accepts it."""

    def db_contract_delete(self, contract_id: str) -> ContractRecord:
        """Delete one contract together with its delivery events."""

    def db_delivery_event_list(self, contract_id: str) -> list[DeliveryEventRecord]:
        """List delivery events of one contract."""

    def db_delivery_event_list_for_contracts(self, contract_ids: list[str] | None = None) -> list[DeliveryEventRecord]:
        """List delivery events of many contracts (all when `contract_ids` is None)."""

    def db_delivery_event_create_guarded(
        self,
        request: DeliveryEventWriteRequest,
        guard: DeliveryGuard,
    ) -> DeliveryEventRecord:
        """Persist one delivery event after the guard accepts it."""

    def db_delivery_event_update_guarded(
        self,
        delivery_event_id: str,
        request: DeliveryEventWriteRequest,
        guard: DeliveryGuard,
    ) -> DeliveryEventRecord:
        """Apply an administrative delivery edit after the guard accepts it."""

    def db_delivery_event_get(self, delivery_event_id: str) -> DeliveryEventRecord | None:
        """Fetch one delivery event by id."""

    def db_delivery_event_delete(self, delivery_event_id: str) -> DeliveryEventRecord:
        """Delete one delivery event."""

    def db_market_rate_current_map(self) -> dict[str, Decimal]:
        """Return the latest market rate per item."""

    def db_market_rate_upsert(self, item_id: str, effective_date: date, rate_per_10kg: Decimal) -> None:
        """Insert or replace one item market rate for an effective date."""


@dataclass(frozen=True)
class StockSnapshotRecord:
    """Persistence model for one derived stock snapshot row.

    Attributes:
        stock_snapshot_id: Deterministic row identifier derived from scope/item/party.
        scope: Row scope (`item` roll-up or `party` breakdown).
        item_id: Item identifier.
        party_id: Party identifier for `party` rows, None for `item` rows.
        total_purchase_packs: Contracted purchase packs.
        total_sell_packs: Contracted sell packs.
        loaded_purchase_packs: Delivered purchase packs (capped per contract).
        loaded_sell_packs: Delivered sell packs (capped per contract).
        pending_purchase_packs: Undelivered purchase packs.
        pending_sell_packs: Undelivered sell packs.
        net_stock_packs: Pending purchase minus pending sell.
        purchase_value: Contracted purchase value.
        sell_value: Contracted sell value.
        loaded_purchase_value: Value of delivered purchase packs.
        loaded_sell_value: Value of delivered sell packs.
        avg_purchase_rate: Quantity-weighted purchase rate.
        avg_sell_rate: Quantity-weighted sell rate.
        contract_count: Number of contracts aggregated into the row.
    """

    stock_snapshot_id: str
    scope: str
    item_id: str
    party_id: str | None
    total_purchase_packs: Decimal
    total_sell_packs: Decimal
    loaded_purchase_packs: Decimal
    loaded_sell_packs: Decimal
    pending_purchase_packs: Decimal
    pending_sell_packs: Decimal
    net_stock_packs: Decimal
    purchase_value: Decimal
    sell_value: Decimal
    loaded_purchase_value: Decimal
    loaded_sell_value: Decimal
    avg_purchase_rate: Decimal
    avg_sell_rate: Decimal
    contract_count: int


@dataclass(frozen=True)
class PnlRecord:
    """Persistence model for one derived P&L row.

    `buy_quantity` is in packs while `sell_quantity` is in kilograms; see
    `sauda_ledger.ledger.pnl_engine` for the profit convention.

    Attributes:
        pnl_record_id: Deterministic row identifier derived from mode/date/item.
        mode: `settled` or `future`.
        report_date: Report date for settled rows, None for future rows.
        item_id: Item identifier.
        buy_total_value: Sum of purchase contract values.
        sell_total_value: Sum of sell contract values.
        buy_quantity: Purchase quantity in packs.
        sell_quantity: Sell quantity in kilograms.
        avg_buy_rate: Quantity-weighted purchase rate.
        avg_sell_rate: Quantity-weighted sell rate.
        profit: `(avg_sell_rate - avg_buy_rate) * sell_quantity`.
        contract_count: Number of contracts contributing to the row.
        market_rate_per_10kg: Current market rate on future rows when known.
    """

    pnl_record_id: str
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
class DerivedSnapshotReplaceRequest:
    """Replacement scope and rows for one atomic derived-table swap.

    A None scope leaves that table untouched. An empty tuple scope for
    `stock_item_ids`/`pnl_settled_dates` means "replace every row".

    Attributes:
        stock_rows: New stock snapshot rows.
        stock_item_ids: Items whose stock rows are replaced, `()` for all, None for none.
        pnl_rows: New P&L rows.
        pnl_settled_dates: Report dates whose settled rows are replaced, `()` for all, None for none.
        replace_future_pnl: Whether future P&L rows are replaced.
    """

    stock_rows: tuple[StockSnapshotRecord, ...] = ()
    stock_item_ids: tuple[str, ...] | None = None
    pnl_rows: tuple[PnlRecord, ...] = ()
    pnl_settled_dates: tuple[date, ...] | None = None
    replace_future_pnl: bool = False


class DerivedSnapshotRepositoryPort(Protocol):
    """Port definition for derived stock and P&L tables."""

    def db_derived_replace(self, request: DerivedSnapshotReplaceRequest) -> None:
        """Replace the requested derived rows inside one transaction."""

    def db_stock_snapshot_list(
        self,
        item_id: str | None = None,
        scope: str = "item",
        pending_only: bool = False,
    ) -> list[StockSnapshotRecord]:
        """List stock snapshot rows."""

    def db_pnl_record_list_settled(self, report_date: date, item_id: str | None = None) -> list[PnlRecord]:
        """List settled P&L rows for one report date."""

    def db_pnl_record_list_future(self) -> list[PnlRecord]:
        """List future P&L rows."""

    def db_pnl_settled_dates(self) -> list[date]:
        """List report dates with stored settled P&L rows."""


class RecalculationAlreadyActiveError(RuntimeError):
    """Raised when a recalculation run is rejected because one run is already active."""


@dataclass(frozen=True)
class RecalculationRunRecord:
    """Persistence model for one recalculation run row.

    Attributes:
        recalculation_run_id: Run identifier.
        job_name: Executed job name.
        status: Run status (`started`, `success`, `failed`).
        started_at_utc: Run start timestamp in UTC.
        ended_at_utc: Optional run end timestamp in UTC.
        duration_ms: Optional run duration in milliseconds.
        violation_count: Number of integrity violations reported by the run.
        error_code: Optional deterministic error code.
        error_message: Optional human-readable error message.
        diagnostics: Structured stage timeline.
    """

    recalculation_run_id: str
    job_name: str
    status: str
    started_at_utc: datetime
    ended_at_utc: datetime | None
    duration_ms: int | None
    violation_count: int
    error_code: str | None
    error_message: str | None
    diagnostics: list[dict[str, Any]] = field(default_factory=list)


class RecalculationRunRepositoryPort(Protocol):
    """Port definition for recalculation run lifecycle persistence."""

    def db_recalculation_run_create_started(self, job_name: str) -> RecalculationRunRecord:
        """Create a started run while enforcing a single active full rebuild."""

    def db_recalculation_run_finalize(
        self,
        recalculation_run_id: str,
        status: str,
        violation_count: int,
        error_code: str | None,
        error_message: str | None,
        diagnostics: list[dict[str, Any]] | None,
    ) -> RecalculationRunRecord:
        """Finalize one run."""

    def db_recalculation_run_get_by_id(self, recalculation_run_id: str) -> RecalculationRunRecord | None:
        """Fetch one run by id."""

    def db_recalculation_run_list(self, limit: int, offset: int) -> list[RecalculationRunRecord]:
        """List runs newest first."""
