"""Database service for the ledger source of truth: contracts, deliveries and market rates."""
# pylint: disable=duplicate-code

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any
from uuid import uuid4

from sqlalchemy import Connection, Engine, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from sauda_ledger.domain import (
    ContractDirection,
    LedgerRecordNotFoundError,
    LedgerStoreError,
    LedgerValidationError,
)

from .interfaces import (
    ContractListFilter,
    ContractQuantityGuard,
    ContractRecord,
    ContractWriteRequest,
    DeliveryEventRecord,
    DeliveryEventWriteRequest,
    DeliveryGuard,
    LedgerStorePort,
)
from .values import (
    db_value_date_text,
    db_value_decimal_text,
    db_value_optional_date_text,
    db_value_optional_text,
    db_value_parse_date,
    db_value_parse_datetime,
    db_value_parse_decimal,
    db_value_parse_optional_date,
    db_value_require_text,
    db_value_utc_now_text,
)


class SQLAlchemyLedgerStoreService(LedgerStorePort):
    """SQLAlchemy implementation of the ledger store.

    Guarded writes run the caller-supplied guard inside the write transaction,
    after re-reading the contract and its deliveries, so a rejected write never
    reaches the database and concurrent writers cannot both pass the guard.
    """

    _CONTRACT_SELECT_COLUMNS = (
        "SELECT "
        "contract_id, contract_no, direction, contract_date, party_id, item_id, ex_plant_id, broker_id, "
        "quantity_packs, rate_per_10kg, loading_due_date, created_at_utc "
        "FROM ledger_contract "
    )

    _DELIVERY_SELECT_COLUMNS = (
        "SELECT "
        "delivery_event_id, contract_id, delivery_date, weight_kg, transport_note, created_at_utc "
        "FROM ledger_delivery_event "
    )

    _CONTRACT_FILTER_FRAGMENTS = {
        "direction": "direction = :direction",
        "item_id": "item_id = :item_id",
        "party_id": "party_id = :party_id",
        "ex_plant_id": "ex_plant_id = :ex_plant_id",
        "date_from": "contract_date >= :date_from",
        "date_to": "contract_date <= :date_to",
    }

    def __init__(self, engine: Engine):
        """Initialize ledger store service.

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

    def db_contract_list(self, contract_filter: ContractListFilter | None = None) -> list[ContractRecord]:
        """List contracts in deterministic order (date, number, id).

        Args:
            contract_filter: Optional filter values; unset fields are ignored.

        Returns:
            list[ContractRecord]: Matching contracts.

        Raises:
            LedgerStoreError: Raised when database read fails.
        """

        active_filter = contract_filter or ContractListFilter()
        parameters: dict[str, Any] = {
            "direction": None if active_filter.direction is None else active_filter.direction.value,
            "item_id": db_value_optional_text(active_filter.item_id, "item_id"),
            "party_id": db_value_optional_text(active_filter.party_id, "party_id"),
            "ex_plant_id": db_value_optional_text(active_filter.ex_plant_id, "ex_plant_id"),
            "date_from": db_value_optional_date_text(active_filter.date_from, "date_from"),
            "date_to": db_value_optional_date_text(active_filter.date_to, "date_to"),
        }
        bound_parameters = {name: value for name, value in parameters.items() if value is not None}
        where_clause = ""
        if bound_parameters:
            where_clause = "WHERE " + " AND ".join(
                self._CONTRACT_FILTER_FRAGMENTS[name] for name in self._CONTRACT_FILTER_FRAGMENTS if name in bound_parameters
            ) + " "

        try:
            with self._engine.connect() as connection:
                rows = connection.execute(
                    text(
                        self._CONTRACT_SELECT_COLUMNS
                        + where_clause
                        + "ORDER BY contract_date asc, contract_no asc, contract_id asc"
                    ),
                    bound_parameters,
                ).mappings().all()
        except SQLAlchemyError as error:
            raise LedgerStoreError("contract list failed") from error

        return [self._db_ledger_map_contract_row(row) for row in rows]

    def db_contract_get(self, contract_id: str) -> ContractRecord | None:
        """Fetch one contract by id.

        Args:
            contract_id: Contract identifier.

        Returns:
            ContractRecord | None: Matching contract or None.

        Raises:
            ValueError: Raised when contract_id is blank.
            LedgerStoreError: Raised when database read fails.
        """

        normalized_contract_id = db_value_require_text(contract_id, "contract_id")
        try:
            with self._engine.connect() as connection:
                row = connection.execute(
                    text(self._CONTRACT_SELECT_COLUMNS + "WHERE contract_id = :contract_id"),
                    {"contract_id": normalized_contract_id},
                ).mappings().first()
        except SQLAlchemyError as error:
            raise LedgerStoreError("contract read failed") from error

        return None if row is None else self._db_ledger_map_contract_row(row)

    def db_contract_last_number(self, contract_no_prefix: str) -> str | None:
        """Return the highest sequenced contract number of a financial year.

        Only numbers shaped `<prefix>/<digits>` count, compared by sequence
        value; manual numbers with other suffixes are ignored.

        Args:
            contract_no_prefix: Financial-year prefix, for example `202627`.

        Returns:
            str | None: Highest sequenced contract number or None.

        Raises:
            LedgerStoreError: Raised when database read fails.
        """

        normalized_prefix = db_value_require_text(contract_no_prefix, "contract_no_prefix")
        try:
            with self._engine.connect() as connection:
                rows = connection.execute(
                    text("SELECT contract_no FROM ledger_contract WHERE contract_no LIKE :pattern"),
                    {"pattern": f"{normalized_prefix}/%"},
                ).mappings().all()
        except SQLAlchemyError as error:
            raise LedgerStoreError("contract number read failed") from error

        sequenced_numbers = {}
        for row in rows:
            contract_no = str(row["contract_no"])
            _, _, sequence = contract_no.partition("/")
            if sequence.isascii() and sequence.isdigit():
                sequenced_numbers[int(sequence)] = contract_no
        if not sequenced_numbers:
            return None
        return sequenced_numbers[max(sequenced_numbers)]

    def db_contract_first_date(self) -> date | None:
        """Return the earliest contract date in the ledger, or None when it is empty."""

        try:
            with self._engine.connect() as connection:
                value = connection.execute(text("SELECT MIN(contract_date) FROM ledger_contract")).scalar_one()
        except SQLAlchemyError as error:
            raise LedgerStoreError("contract date read failed") from error

        return db_value_parse_optional_date(value)

    def db_contract_create(self, request: ContractWriteRequest) -> ContractRecord:
        """Persist one new contract.

        Args:
            request: Contract write request with a resolved contract number.

        Returns:
            ContractRecord: Persisted contract.

        Raises:
            ValueError: Raised when request values are invalid.
            LedgerValidationError: Raised when the contract number already exists.
            LedgerStoreError: Raised when persistence fails.
        """

        parameters = self._db_ledger_validate_contract_request(request)
        if parameters["contract_no"] is None:
            raise ValueError("request.contract_no must be resolved before persistence")
        parameters["contract_id"] = str(uuid4())
        parameters["created_at_utc"] = db_value_utc_now_text()

        try:
            with self._engine.begin() as connection:
                connection.execute(
                    text(
                        "INSERT INTO ledger_contract ("
                        "contract_id, contract_no, direction, contract_date, party_id, item_id, ex_plant_id, broker_id, "
                        "quantity_packs, rate_per_10kg, loading_due_date, created_at_utc, updated_at_utc"
                        ") VALUES ("
                        ":contract_id, :contract_no, :direction, :contract_date, :party_id, :item_id, :ex_plant_id, "
                        ":broker_id, :quantity_packs, :rate_per_10kg, :loading_due_date, :created_at_utc, :created_at_utc"
                        ")"
                    ),
                    parameters,
                )
                return self._db_ledger_fetch_contract_or_raise(connection, parameters["contract_id"], lock=False)
        except IntegrityError as error:
            raise LedgerValidationError(f"contract_no={parameters['contract_no']} already exists") from error
        except SQLAlchemyError as error:
            raise LedgerStoreError("contract create failed") from error

    def db_contract_update_guarded(
        self,
        contract_id: str,
        request: ContractWriteRequest,
        guard: ContractQuantityGuard,
    ) -> ContractRecord:
        """Apply an administrative contract edit after the guard accepts it.

        Args:
            contract_id: Target contract identifier.
            request: Replacement contract values; a None number keeps the current one.
            guard: Callable validating the new quantity against recorded deliveries.

        Returns:
            ContractRecord: Updated contract.

        Raises:
            LedgerRecordNotFoundError: Raised when the contract does not exist.
            LedgerValidationError: Raised by the guard or on duplicate contract number.
            LedgerStoreError: Raised when persistence fails.
        """

        normalized_contract_id = db_value_require_text(contract_id, "contract_id")
        parameters = self._db_ledger_validate_contract_request(request)
        if guard is None:
            raise ValueError("guard must not be None")

        try:
            with self._engine.begin() as connection:
                current_contract = self._db_ledger_fetch_contract_or_raise(connection, normalized_contract_id, lock=True)
                deliveries = self._db_ledger_fetch_deliveries(connection, [normalized_contract_id])
                guard(current_contract, deliveries, request.quantity_packs)

                parameters["contract_id"] = normalized_contract_id
                parameters["contract_no"] = parameters["contract_no"] or current_contract.contract_no
                parameters["updated_at_utc"] = db_value_utc_now_text()
                connection.execute(
                    text(
                        "UPDATE ledger_contract SET "
                        "contract_no = :contract_no, direction = :direction, contract_date = :contract_date, "
                        "party_id = :party_id, item_id = :item_id, ex_plant_id = :ex_plant_id, broker_id = :broker_id, "
                        "quantity_packs = :quantity_packs, rate_per_10kg = :rate_per_10kg, "
                        "loading_due_date = :loading_due_date, updated_at_utc = :updated_at_utc "
                        "WHERE contract_id = :contract_id"
                    ),
                    parameters,
                )
                return self._db_ledger_fetch_contract_or_raise(connection, normalized_contract_id, lock=False)
        except IntegrityError as error:
            raise LedgerValidationError(f"contract_no={parameters['contract_no']} already exists") from error
        except SQLAlchemyError as error:
            raise LedgerStoreError("contract update failed") from error

    def db_contract_delete(self, contract_id: str) -> ContractRecord:
        """Delete one contract together with its delivery events.

        Args:
            contract_id: Target contract identifier.

        Returns:
            ContractRecord: Deleted contract.

        Raises:
            LedgerRecordNotFoundError: Raised when the contract does not exist.
            LedgerStoreError: Raised when persistence fails.
        """

        normalized_contract_id = db_value_require_text(contract_id, "contract_id")
        try:
            with self._engine.begin() as connection:
                current_contract = self._db_ledger_fetch_contract_or_raise(connection, normalized_contract_id, lock=True)
                connection.execute(
                    text("DELETE FROM ledger_delivery_event WHERE contract_id = :contract_id"),
                    {"contract_id": normalized_contract_id},
                )
                connection.execute(
                    text("DELETE FROM ledger_contract WHERE contract_id = :contract_id"),
                    {"contract_id": normalized_contract_id},
                )
                return current_contract
        except SQLAlchemyError as error:
            raise LedgerStoreError("contract delete failed") from error

    def db_delivery_event_list(self, contract_id: str) -> list[DeliveryEventRecord]:
        """List delivery events of one contract.

        Args:
            contract_id: Owning contract identifier.

        Returns:
            list[DeliveryEventRecord]: Deliveries ordered by date and id.

        Raises:
            LedgerStoreError: Raised when database read fails.
        """

        normalized_contract_id = db_value_require_text(contract_id, "contract_id")
        try:
            with self._engine.connect() as connection:
                return self._db_ledger_fetch_deliveries(connection, [normalized_contract_id])
        except SQLAlchemyError as error:
            raise LedgerStoreError("delivery event list failed") from error

    def db_delivery_event_list_for_contracts(self, contract_ids: list[str] | None = None) -> list[DeliveryEventRecord]:
        """List delivery events of many contracts in one read.

        Args:
            contract_ids: Owning contract identifiers; None lists every delivery event.

        Returns:
            list[DeliveryEventRecord]: Deliveries ordered by contract, date and id.

        Raises:
            LedgerStoreError: Raised when database read fails.
        """

        normalized_contract_ids = None
        if contract_ids is not None:
            normalized_contract_ids = [db_value_require_text(contract_id, "contract_id") for contract_id in contract_ids]
            if not normalized_contract_ids:
                return []

        try:
            with self._engine.connect() as connection:
                return self._db_ledger_fetch_deliveries(connection, normalized_contract_ids)
        except SQLAlchemyError as error:
            raise LedgerStoreError("delivery event list failed") from error

    def db_delivery_event_create_guarded(
        self,
        request: DeliveryEventWriteRequest,
        guard: DeliveryGuard,
    ) -> DeliveryEventRecord:
        """Persist one delivery event after the guard accepts it.

        Args:
            request: Delivery write request.
            guard: Callable validating the new weight against the contract's remaining quantity.

        Returns:
            DeliveryEventRecord: Persisted delivery event.

        Raises:
            LedgerRecordNotFoundError: Raised when the owning contract does not exist.
            LedgerValidationError: Raised by the guard; nothing is persisted.
            LedgerStoreError: Raised when persistence fails.
        """

        parameters = self._db_ledger_validate_delivery_request(request)
        if guard is None:
            raise ValueError("guard must not be None")
        parameters["delivery_event_id"] = str(uuid4())
        parameters["created_at_utc"] = db_value_utc_now_text()

        try:
            with self._engine.begin() as connection:
                contract = self._db_ledger_fetch_contract_or_raise(connection, parameters["contract_id"], lock=True)
                deliveries = self._db_ledger_fetch_deliveries(connection, [contract.contract_id])
                guard(contract, deliveries, request.weight_kg, Decimal("0"))

                connection.execute(
                    text(
                        "INSERT INTO ledger_delivery_event ("
                        "delivery_event_id, contract_id, delivery_date, weight_kg, transport_note, created_at_utc, updated_at_utc"
                        ") VALUES ("
                        ":delivery_event_id, :contract_id, :delivery_date, :weight_kg, :transport_note, "
                        ":created_at_utc, :created_at_utc"
                        ")"
                    ),
                    parameters,
                )
                return self._db_ledger_fetch_delivery_or_raise(connection, parameters["delivery_event_id"])
        except SQLAlchemyError as error:
            raise LedgerStoreError("delivery event create failed") from error

    def db_delivery_event_update_guarded(
        self,
        delivery_event_id: str,
        request: DeliveryEventWriteRequest,
        guard: DeliveryGuard,
    ) -> DeliveryEventRecord:
        """Apply an administrative delivery edit after the guard accepts it.

        Moving a delivery to another contract is guarded against the target
        contract with no replaced weight.

        Args:
            delivery_event_id: Target delivery identifier.
            request: Replacement delivery values.
            guard: Callable validating the new weight against the remaining quantity.

        Returns:
            DeliveryEventRecord: Updated delivery event.

        Raises:
            LedgerRecordNotFoundError: Raised when the delivery or target contract does not exist.
            LedgerValidationError: Raised by the guard; nothing is persisted.
            LedgerStoreError: Raised when persistence fails.
        """

        normalized_delivery_event_id = db_value_require_text(delivery_event_id, "delivery_event_id")
        parameters = self._db_ledger_validate_delivery_request(request)
        if guard is None:
            raise ValueError("guard must not be None")

        try:
            with self._engine.begin() as connection:
                current_delivery = self._db_ledger_fetch_delivery_or_raise(connection, normalized_delivery_event_id)
                contract = self._db_ledger_fetch_contract_or_raise(connection, parameters["contract_id"], lock=True)
                deliveries = self._db_ledger_fetch_deliveries(connection, [contract.contract_id])
                replaced_weight_kg = (
                    current_delivery.weight_kg if current_delivery.contract_id == contract.contract_id else Decimal("0")
                )
                guard(contract, deliveries, request.weight_kg, replaced_weight_kg)

                parameters["delivery_event_id"] = normalized_delivery_event_id
                parameters["updated_at_utc"] = db_value_utc_now_text()
                connection.execute(
                    text(
                        "UPDATE ledger_delivery_event SET "
                        "contract_id = :contract_id, delivery_date = :delivery_date, weight_kg = :weight_kg, "
                        "transport_note = :transport_note, updated_at_utc = :updated_at_utc "
                        "WHERE delivery_event_id = :delivery_event_id"
                    ),
                    parameters,
                )
                return self._db_ledger_fetch_delivery_or_raise(connection, normalized_delivery_event_id)
        except SQLAlchemyError as error:
            raise LedgerStoreError("delivery event update failed") from error

    def db_delivery_event_delete(self, delivery_event_id: str) -> DeliveryEventRecord:
        """Delete one delivery event.

        Args:
            delivery_event_id: Target delivery identifier.

        Returns:
            DeliveryEventRecord: Deleted delivery event.

        Raises:
            LedgerRecordNotFoundError: Raised when the delivery does not exist.
            LedgerStoreError: Raised when persistence fails.
        """

        normalized_delivery_event_id = db_value_require_text(delivery_event_id, "delivery_event_id")
        try:
            with self._engine.begin() as connection:
                current_delivery = self._db_ledger_fetch_delivery_or_raise(connection, normalized_delivery_event_id)
                connection.execute(
                    text("DELETE FROM ledger_delivery_event WHERE delivery_event_id = :delivery_event_id"),
                    {"delivery_event_id": normalized_delivery_event_id},
                )
                return current_delivery
        except SQLAlchemyError as error:
            raise LedgerStoreError("delivery event delete failed") from error

    def db_delivery_event_get(self, delivery_event_id: str) -> DeliveryEventRecord | None:
        """Fetch one delivery event by id.

        Args:
            delivery_event_id: Delivery identifier.

        Returns:
            DeliveryEventRecord | None: Matching delivery or None.

        Raises:
            LedgerStoreError: Raised when database read fails.
        """

        normalized_delivery_event_id = db_value_require_text(delivery_event_id, "delivery_event_id")
        try:
            with self._engine.connect() as connection:
                row = connection.execute(
                    text(self._DELIVERY_SELECT_COLUMNS + "WHERE delivery_event_id = :delivery_event_id"),
                    {"delivery_event_id": normalized_delivery_event_id},
                ).mappings().first()
        except SQLAlchemyError as error:
            raise LedgerStoreError("delivery event read failed") from error

        return None if row is None else self._db_ledger_map_delivery_row(row)

    def db_market_rate_current_map(self) -> dict[str, Decimal]:
        """Return the latest market rate per item by effective date.

        Returns:
            dict[str, Decimal]: Rate per 10 kg keyed by item id.

        Raises:
            LedgerStoreError: Raised when database read fails.
        """

        try:
            with self._engine.connect() as connection:
                rows = connection.execute(
                    text(
                        "SELECT r.item_id, r.rate_per_10kg "
                        "FROM item_market_rate r "
                        "WHERE r.effective_date = ("
                        "SELECT MAX(r2.effective_date) FROM item_market_rate r2 WHERE r2.item_id = r.item_id"
                        ") "
                        "ORDER BY r.item_id asc"
                    )
                ).mappings().all()
        except SQLAlchemyError as error:
            raise LedgerStoreError("market rate read failed") from error

        return {str(row["item_id"]): db_value_parse_decimal(row["rate_per_10kg"]) for row in rows}

    def db_market_rate_upsert(self, item_id: str, effective_date: date, rate_per_10kg: Decimal) -> None:
        """Insert or replace one item's market rate for an effective date.

        Args:
            item_id: Item identifier.
            effective_date: Date the rate applies from.
            rate_per_10kg: Market rate per 10 kg.

        Returns:
            None: Persistence is applied as side effect.

        Raises:
            ValueError: Raised when input values are invalid.
            LedgerStoreError: Raised when persistence fails.
        """

        parameters = {
            "item_id": db_value_require_text(item_id, "item_id"),
            "effective_date": db_value_date_text(effective_date, "effective_date"),
            "rate_per_10kg": db_value_decimal_text(rate_per_10kg, "rate_per_10kg"),
        }
        try:
            with self._engine.begin() as connection:
                connection.execute(
                    text(
                        "DELETE FROM item_market_rate "
                        "WHERE item_id = :item_id AND effective_date = :effective_date"
                    ),
                    parameters,
                )
                connection.execute(
                    text(
                        "INSERT INTO item_market_rate (item_id, effective_date, rate_per_10kg) "
                        "VALUES (:item_id, :effective_date, :rate_per_10kg)"
                    ),
                    parameters,
                )
        except SQLAlchemyError as error:
            raise LedgerStoreError("market rate upsert failed") from error

    def _db_ledger_fetch_contract_or_raise(self, connection: Connection, contract_id: str, lock: bool) -> ContractRecord:
        """Fetch one contract inside an active transaction and raise when missing.

        Args:
            connection: Active SQLAlchemy connection.
            contract_id: Contract identifier.
            lock: Whether to take a row lock (PostgreSQL only).

        Returns:
            ContractRecord: Matching contract.

        Raises:
            LedgerRecordNotFoundError: Raised when the contract does not exist.
        """

        lock_clause = " FOR UPDATE" if lock and connection.dialect.name == "postgresql" else ""
        row = connection.execute(
            text(self._CONTRACT_SELECT_COLUMNS + "WHERE contract_id = :contract_id" + lock_clause),
            {"contract_id": contract_id},
        ).mappings().first()
        if row is None:
            raise LedgerRecordNotFoundError(f"contract_id={contract_id} not found")
        return self._db_ledger_map_contract_row(row)

    def _db_ledger_fetch_delivery_or_raise(self, connection: Connection, delivery_event_id: str) -> DeliveryEventRecord:
        """Fetch one delivery event inside an active transaction and raise when missing."""

        row = connection.execute(
            text(self._DELIVERY_SELECT_COLUMNS + "WHERE delivery_event_id = :delivery_event_id"),
            {"delivery_event_id": delivery_event_id},
        ).mappings().first()
        if row is None:
            raise LedgerRecordNotFoundError(f"delivery_event_id={delivery_event_id} not found")
        return self._db_ledger_map_delivery_row(row)

    def _db_ledger_fetch_deliveries(
        self,
        connection: Connection,
        contract_ids: list[str] | None,
    ) -> list[DeliveryEventRecord]:
        """Fetch delivery events for the given contracts, or all when None.

        Args:
            connection: Active SQLAlchemy connection.
            contract_ids: Owning contract identifiers or None.

        Returns:
            list[DeliveryEventRecord]: Deliveries in deterministic order.

        Raises:
            SQLAlchemyError: Propagated to the calling public method.
        """

        order_clause = "ORDER BY contract_id asc, delivery_date asc, delivery_event_id asc"
        if contract_ids is None:
            rows = connection.execute(text(self._DELIVERY_SELECT_COLUMNS + order_clause)).mappings().all()
            return [self._db_ledger_map_delivery_row(row) for row in rows]

        parameter_names = [f"contract_id_{index}" for index in range(len(contract_ids))]
        placeholders = ", ".join(f":{name}" for name in parameter_names)
        rows = connection.execute(
            text(self._DELIVERY_SELECT_COLUMNS + f"WHERE contract_id IN ({placeholders}) " + order_clause),
            dict(zip(parameter_names, contract_ids)),
        ).mappings().all()
        return [self._db_ledger_map_delivery_row(row) for row in rows]

    def _db_ledger_validate_contract_request(self, request: ContractWriteRequest) -> dict[str, Any]:
        """Validate one contract write request.

        Args:
            request: Contract write request.

        Returns:
            dict[str, Any]: SQL-ready request payload.

        Raises:
            ValueError: Raised when request values are invalid.
        """

        if request is None:
            raise ValueError("request must not be None")

        direction = ContractDirection.parse(request.direction)
        quantity_packs = db_value_decimal_text(request.quantity_packs, "request.quantity_packs")
        if request.quantity_packs <= 0:
            raise ValueError("request.quantity_packs must be > 0")
        rate_per_10kg = db_value_decimal_text(request.rate_per_10kg, "request.rate_per_10kg")
        if request.rate_per_10kg <= 0:
            raise ValueError("request.rate_per_10kg must be > 0")

        return {
            "contract_no": db_value_optional_text(request.contract_no, "request.contract_no"),
            "direction": direction.value,
            "contract_date": db_value_date_text(request.contract_date, "request.contract_date"),
            "party_id": db_value_require_text(request.party_id, "request.party_id"),
            "item_id": db_value_require_text(request.item_id, "request.item_id"),
            "ex_plant_id": db_value_optional_text(request.ex_plant_id, "request.ex_plant_id"),
            "broker_id": db_value_optional_text(request.broker_id, "request.broker_id"),
            "quantity_packs": quantity_packs,
            "rate_per_10kg": rate_per_10kg,
            "loading_due_date": db_value_optional_date_text(request.loading_due_date, "request.loading_due_date"),
        }

    def _db_ledger_validate_delivery_request(self, request: DeliveryEventWriteRequest) -> dict[str, Any]:
        """Validate one delivery write request.

        Args:
            request: Delivery write request.

        Returns:
            dict[str, Any]: SQL-ready request payload.

        Raises:
            ValueError: Raised when request values are invalid.
        """

        if request is None:
            raise ValueError("request must not be None")

        weight_kg = db_value_decimal_text(request.weight_kg, "request.weight_kg")
        if request.weight_kg <= 0:
            raise ValueError("request.weight_kg must be > 0")

        return {
            "contract_id": db_value_require_text(request.contract_id, "request.contract_id"),
            "delivery_date": db_value_date_text(request.delivery_date, "request.delivery_date"),
            "weight_kg": weight_kg,
            "transport_note": db_value_optional_text(request.transport_note, "request.transport_note"),
        }

    def _db_ledger_map_contract_row(self, row: Any) -> ContractRecord:
        """Map SQLAlchemy row mapping to typed contract record."""

        return ContractRecord(
            contract_id=str(row["contract_id"]),
            contract_no=str(row["contract_no"]),
            direction=ContractDirection.parse(row["direction"]),
            contract_date=db_value_parse_date(row["contract_date"]),
            party_id=str(row["party_id"]),
            item_id=str(row["item_id"]),
            ex_plant_id=None if row["ex_plant_id"] is None else str(row["ex_plant_id"]),
            broker_id=None if row["broker_id"] is None else str(row["broker_id"]),
            quantity_packs=db_value_parse_decimal(row["quantity_packs"]),
            rate_per_10kg=db_value_parse_decimal(row["rate_per_10kg"]),
            loading_due_date=db_value_parse_optional_date(row["loading_due_date"]),
            created_at_utc=db_value_parse_datetime(row["created_at_utc"]),
        )

    def _db_ledger_map_delivery_row(self, row: Any) -> DeliveryEventRecord:
        """Map SQLAlchemy row mapping to typed delivery event record."""

        return DeliveryEventRecord(
            delivery_event_id=str(row["delivery_event_id"]),
            contract_id=str(row["contract_id"]),
            delivery_date=db_value_parse_date(row["delivery_date"]),
            weight_kg=db_value_parse_decimal(row["weight_kg"]),
            transport_note=row["transport_note"],
            created_at_utc=db_value_parse_datetime(row["created_at_utc"]),
        )


__all__ = ["SQLAlchemyLedgerStoreService"]
