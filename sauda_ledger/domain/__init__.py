"""Domain models used across application layer boundaries."""

from .errors import (
    LedgerIntegrityError,
    LedgerRecalculationError,
    LedgerRecordNotFoundError,
    LedgerStoreError,
    LedgerValidationError,
    OverDeliveryValidationError,
    OverDeliveryViolationError,
    RecalculationAlreadyRunningError,
)
from .models import (
    KG_PER_PACK,
    KG_PER_RATE_UNIT,
    ContractDirection,
    HealthStatus,
    OverDeliveryViolation,
    contract_total_value,
)
from .timeline import domain_build_stage_event

__all__ = [
    "KG_PER_PACK",
    "KG_PER_RATE_UNIT",
    "ContractDirection",
    "HealthStatus",
    "OverDeliveryViolation",
    "contract_total_value",
    "domain_build_stage_event",
    "LedgerValidationError",
    "OverDeliveryValidationError",
    "LedgerIntegrityError",
    "OverDeliveryViolationError",
    "LedgerRecordNotFoundError",
    "LedgerStoreError",
    "RecalculationAlreadyRunningError",
    "LedgerRecalculationError",
]
