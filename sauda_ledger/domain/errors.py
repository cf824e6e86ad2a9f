"""Error taxonomy for ledger writes, rebuild scans and recalculation jobs."""

from __future__ import annotations

from decimal import Decimal

from .models import OverDeliveryViolation


class LedgerValidationError(ValueError):
    """Raised when a ledger write is rejected before anything is persisted."""


class OverDeliveryValidationError(LedgerValidationError):
    """Raised when a delivery would load more than the contract's remaining quantity."""

    def __init__(self, contract_id: str, remaining_packs: Decimal, requested_packs: Decimal):
        self.contract_id = contract_id
        self.remaining_packs = remaining_packs
        self.requested_packs = requested_packs
        super().__init__(
            f"delivery of {requested_packs} packs exceeds remaining {remaining_packs} packs "
            f"for contract_id={contract_id}"
        )


class LedgerIntegrityError(RuntimeError):
    """Raised when persisted ledger data breaks a ledger invariant."""


class OverDeliveryViolationError(LedgerIntegrityError):
    """Raised when a contract's recorded deliveries already exceed its quantity."""

    def __init__(self, violation: OverDeliveryViolation):
        self.violation = violation
        super().__init__(
            f"contract_id={violation.contract_id} is over-delivered by {violation.excess_packs} packs"
        )


class LedgerRecordNotFoundError(LookupError):
    """Raised when a contract or delivery event does not exist."""


class LedgerStoreError(RuntimeError):
    """Raised when the underlying persistence layer fails."""


class RecalculationAlreadyRunningError(RuntimeError):
    """Raised when a recalculation is rejected because another one holds the lock."""


class LedgerRecalculationError(RuntimeError):
    """Raised when a recalculation fails; prior derived data is left untouched."""
