"""Pending-quantity computation for one contract.

`loaded_packs = Σ weight_kg / 1000` and `pending_packs = quantity - loaded`,
floored at zero. A negative raw pending value means the contract is
over-delivered: strict callers get `OverDeliveryViolationError`, rebuild scans
get the clamped result together with the violation record.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from sauda_ledger.domain import (
    KG_PER_PACK,
    OverDeliveryValidationError,
    OverDeliveryViolation,
    OverDeliveryViolationError,
)

from .interfaces import LedgerContractInput

_ZERO = Decimal("0")


@dataclass(frozen=True)
class PendingQuantityResult:
    """Pending and loaded quantities of one contract.

    Attributes:
        contract_id: Contract identifier.
        quantity_packs: Contracted quantity in packs.
        loaded_packs: Delivered packs, uncapped.
        pending_packs: Undelivered packs, never negative.
        violation: Over-delivery record when deliveries exceed the contract quantity.
    """

    contract_id: str
    quantity_packs: Decimal
    loaded_packs: Decimal
    pending_packs: Decimal
    violation: OverDeliveryViolation | None = None

    @property
    def loaded_packs_capped(self) -> Decimal:
        """Delivered packs capped at the contract quantity."""

        return min(self.loaded_packs, self.quantity_packs)


def pending_compute_lenient(contract: LedgerContractInput) -> PendingQuantityResult:
    """Compute pending quantity, reporting over-delivery instead of raising.

    Args:
        contract: Contract with its deliveries.

    Returns:
        PendingQuantityResult: Clamped result; `violation` is set for over-delivered contracts.

    Raises:
        ValueError: Raised when the contract or a delivery carries negative quantities.
    """

    if contract is None:
        raise ValueError("contract must not be None")
    if contract.quantity_packs < _ZERO:
        raise ValueError(f"quantity_packs must be >= 0 for contract_id={contract.contract_id}")
    for delivery in contract.deliveries:
        if delivery.weight_kg < _ZERO:
            raise ValueError(f"weight_kg must be >= 0 for delivery_event_id={delivery.delivery_event_id}")

    loaded_packs = contract.delivered_packs
    raw_pending = contract.quantity_packs - loaded_packs
    violation = None
    if raw_pending < _ZERO:
        violation = OverDeliveryViolation(
            contract_id=contract.contract_id,
            item_id=contract.item_id,
            party_id=contract.party_id,
            direction=contract.direction,
            quantity_packs=contract.quantity_packs,
            loaded_packs=loaded_packs,
            excess_packs=-raw_pending,
        )

    return PendingQuantityResult(
        contract_id=contract.contract_id,
        quantity_packs=contract.quantity_packs,
        loaded_packs=loaded_packs,
        pending_packs=max(raw_pending, _ZERO),
        violation=violation,
    )


def pending_compute(contract: LedgerContractInput) -> PendingQuantityResult:
    """Compute pending quantity for a contract that must not be over-delivered.

    Args:
        contract: Contract with its deliveries.

    Returns:
        PendingQuantityResult: Result with `pending + loaded == quantity`.

    Raises:
        OverDeliveryViolationError: Raised when deliveries exceed the contract quantity.
        ValueError: Raised when the contract carries negative quantities.
    """

    result = pending_compute_lenient(contract)
    if result.violation is not None:
        raise OverDeliveryViolationError(result.violation)
    return result


def pending_validate_new_delivery(
    contract: LedgerContractInput,
    weight_kg: Decimal,
    replaced_weight_kg: Decimal = _ZERO,
) -> Decimal:
    """Check that a new or edited delivery fits the contract's remaining quantity.

    For an edit, `replaced_weight_kg` is the weight of the delivery being
    replaced; it is released before the new weight is checked.

    Args:
        contract: Contract with its currently recorded deliveries.
        weight_kg: Weight of the new or edited delivery in kilograms.
        replaced_weight_kg: Weight released by the edited delivery.

    Returns:
        Decimal: Pending packs after the delivery would be applied.

    Raises:
        OverDeliveryValidationError: Raised when the delivery exceeds the remaining quantity.
        ValueError: Raised when weights are not positive or the replaced weight exceeds the recorded total.
    """

    if weight_kg <= _ZERO:
        raise ValueError("weight_kg must be > 0")
    if replaced_weight_kg < _ZERO:
        raise ValueError("replaced_weight_kg must be >= 0")

    delivered_kg = contract.delivered_kg
    if replaced_weight_kg > delivered_kg:
        raise ValueError("replaced_weight_kg must not exceed recorded deliveries")

    remaining_packs = contract.quantity_packs - (delivered_kg - replaced_weight_kg) / KG_PER_PACK
    requested_packs = weight_kg / KG_PER_PACK
    if requested_packs > remaining_packs:
        raise OverDeliveryValidationError(
            contract_id=contract.contract_id,
            remaining_packs=max(remaining_packs, _ZERO),
            requested_packs=requested_packs,
        )
    return remaining_packs - requested_packs


def pending_validate_quantity_change(contract: LedgerContractInput, new_quantity_packs: Decimal) -> Decimal:
    """Check that an edited contract quantity still covers what was already loaded.

    Args:
        contract: Contract with its recorded deliveries.
        new_quantity_packs: Proposed contract quantity in packs.

    Returns:
        Decimal: Pending packs under the new quantity.

    Raises:
        OverDeliveryValidationError: Raised when recorded deliveries exceed the new quantity.
        ValueError: Raised when the new quantity is not positive.
    """

    if new_quantity_packs <= _ZERO:
        raise ValueError("quantity_packs must be > 0")

    loaded_packs = contract.delivered_packs
    if loaded_packs > new_quantity_packs:
        raise OverDeliveryValidationError(
            contract_id=contract.contract_id,
            remaining_packs=new_quantity_packs,
            requested_packs=loaded_packs,
        )
    return new_quantity_packs - loaded_packs


__all__ = [
    "PendingQuantityResult",
    "pending_compute",
    "pending_compute_lenient",
    "pending_validate_new_delivery",
    "pending_validate_quantity_change",
]
