"""Typed inputs for ledger-layer computations.

Engines in this package are pure: they receive contracts together with their
delivery events and never touch persistence.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sauda_ledger.domain import KG_PER_PACK, ContractDirection, contract_total_value


@dataclass(frozen=True)
class LedgerDeliveryInput:
    """Delivery event contract for ledger computation.

    Attributes:
        delivery_event_id: Delivery identifier.
        delivery_date: Loading date.
        weight_kg: Delivered weight in kilograms.
    """

    delivery_event_id: str
    delivery_date: date
    weight_kg: Decimal


@dataclass(frozen=True)
class LedgerContractInput:
    """Contract with its delivery events as consumed by the ledger engines.

    Attributes:
        contract_id: Contract identifier.
        direction: Purchase or sell.
        contract_date: Contract (sauda) date.
        party_id: Counterparty identifier.
        item_id: Item identifier.
        ex_plant_id: Optional ex-plant identifier.
        quantity_packs: Contracted quantity in packs.
        rate_per_10kg: Contract rate per 10 kg.
        deliveries: Delivery events recorded against the contract.
    """

    contract_id: str
    direction: ContractDirection
    contract_date: date
    party_id: str
    item_id: str
    ex_plant_id: str | None
    quantity_packs: Decimal
    rate_per_10kg: Decimal
    deliveries: tuple[LedgerDeliveryInput, ...] = ()

    @property
    def delivered_kg(self) -> Decimal:
        """Total delivered weight in kilograms."""

        return sum((delivery.weight_kg for delivery in self.deliveries), Decimal("0"))

    @property
    def delivered_packs(self) -> Decimal:
        """Total delivered weight in packs, uncapped."""

        return self.delivered_kg / KG_PER_PACK

    @property
    def total_value(self) -> Decimal:
        """Contract value for the full contracted quantity."""

        return contract_total_value(self.quantity_packs, self.rate_per_10kg)
