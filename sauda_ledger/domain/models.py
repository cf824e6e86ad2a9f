"""Typed domain models shared across runtime layers.

Units are fixed at the ledger boundary: contract quantities are in packs
(1 pack = 1000 kg), delivery weights are in kilograms and every rate is a
value per 10 kg.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


KG_PER_PACK = Decimal("1000")
KG_PER_RATE_UNIT = Decimal("10")


class ContractDirection(str, Enum):
    """Trade side of one contract (sauda)."""

    PURCHASE = "purchase"
    SELL = "sell"

    @classmethod
    def parse(cls, value: "str | ContractDirection") -> "ContractDirection":
        """Parse a direction label case-insensitively.

        Args:
            value: Direction label or enum member.

        Returns:
            ContractDirection: Matching direction.

        Raises:
            ValueError: Raised when the label is not a known direction.
        """

        if isinstance(value, ContractDirection):
            return value
        if not isinstance(value, str):
            raise ValueError("direction must be a string")
        normalized_value = value.strip().lower()
        for member in cls:
            if member.value == normalized_value:
                return member
        raise ValueError(f"unsupported direction={value}")


@dataclass(frozen=True)
class HealthStatus:
    """Health response contract used by health-check surfaces.

    Attributes:
        status: Overall status text for service health.
        detail: Additional message suitable for operational diagnostics.
    """

    status: str
    detail: str


@dataclass(frozen=True)
class OverDeliveryViolation:
    """Integrity violation for one contract whose deliveries exceed its quantity.

    Attributes:
        contract_id: Violating contract identifier.
        item_id: Contract item identifier.
        party_id: Contract party identifier.
        direction: Contract direction.
        quantity_packs: Contracted quantity in packs.
        loaded_packs: Delivered quantity in packs.
        excess_packs: Delivered quantity above the contract quantity.
    """

    contract_id: str
    item_id: str
    party_id: str
    direction: ContractDirection
    quantity_packs: Decimal
    loaded_packs: Decimal
    excess_packs: Decimal

    def to_payload(self) -> dict[str, object]:
        """Serialize violation to a JSON-friendly payload.

        Returns:
            dict[str, object]: Violation payload with decimal values as strings.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        return {
            "kind": "over_delivery",
            "contract_id": self.contract_id,
            "item_id": self.item_id,
            "party_id": self.party_id,
            "direction": self.direction.value,
            "quantity_packs": str(self.quantity_packs),
            "loaded_packs": str(self.loaded_packs),
            "excess_packs": str(self.excess_packs),
        }


def contract_total_value(quantity_packs: Decimal, rate_per_10kg: Decimal) -> Decimal:
    """Compute contract value as `quantity_kg / 10 * rate_per_10kg`.

    Args:
        quantity_packs: Quantity in packs.
        rate_per_10kg: Rate per 10 kg.

    Returns:
        Decimal: Contract value.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    return quantity_packs * KG_PER_PACK / KG_PER_RATE_UNIT * rate_per_10kg
