"""Request body models for ledger write endpoints.

Decimal bounds match the `Numeric(20, 6)` ledger columns.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field

from sauda_ledger.db import ContractWriteRequest, DeliveryEventWriteRequest
from sauda_ledger.domain import ContractDirection


class ContractWriteBody(BaseModel):
    """Contract create/edit body; quantity in packs, rate per 10 kg."""

    direction: ContractDirection
    contract_date: date
    party_id: str = Field(min_length=1)
    item_id: str = Field(min_length=1)
    quantity_packs: Decimal = Field(gt=0, max_digits=20, decimal_places=6)
    rate_per_10kg: Decimal = Field(gt=0, max_digits=20, decimal_places=6)
    contract_no: str | None = None
    ex_plant_id: str | None = None
    broker_id: str | None = None
    loading_due_date: date | None = None

    def to_request(self) -> ContractWriteRequest:
        """Convert body to the db-layer write request."""

        return ContractWriteRequest(
            direction=self.direction,
            contract_date=self.contract_date,
            party_id=self.party_id,
            item_id=self.item_id,
            quantity_packs=self.quantity_packs,
            rate_per_10kg=self.rate_per_10kg,
            contract_no=self.contract_no,
            ex_plant_id=self.ex_plant_id,
            broker_id=self.broker_id,
            loading_due_date=self.loading_due_date,
        )


class DeliveryCreateBody(BaseModel):
    """Delivery body for recording a loading against the contract in the path."""

    delivery_date: date
    weight_kg: Decimal = Field(gt=0, max_digits=20, decimal_places=6)
    transport_note: str | None = None

    def to_request(self, contract_id: str) -> DeliveryEventWriteRequest:
        """Convert body to the db-layer write request."""

        return DeliveryEventWriteRequest(
            contract_id=contract_id,
            delivery_date=self.delivery_date,
            weight_kg=self.weight_kg,
            transport_note=self.transport_note,
        )


class DeliveryUpdateBody(DeliveryCreateBody):
    """Delivery edit body; `contract_id` may move the delivery to another contract."""

    contract_id: str = Field(min_length=1)


class MarketRateBody(BaseModel):
    """Current market rate of one item per 10 kg."""

    item_id: str = Field(min_length=1)
    effective_date: date
    rate_per_10kg: Decimal = Field(gt=0, max_digits=20, decimal_places=6)


class SettledPnlGenerateBody(BaseModel):
    """Settled P&L generation body; the business date of today when omitted."""

    report_date: date | None = None


__all__ = [
    "ContractWriteBody",
    "DeliveryCreateBody",
    "DeliveryUpdateBody",
    "MarketRateBody",
    "SettledPnlGenerateBody",
]
