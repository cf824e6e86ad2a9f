"""Quantity-weighted average rate."""

from __future__ import annotations

from decimal import Decimal, localcontext
from typing import Iterable

_ZERO = Decimal("0")
_ACCUMULATION_PRECISION = 50


def weighted_average_rate(pairs: Iterable[tuple[Decimal, Decimal]]) -> Decimal:
    """Compute `Σ(quantity * rate) / Σ quantity` for (quantity, rate) pairs.

    Sums are accumulated at widened precision and intermediate values are
    never rounded; callers round for display.

    Args:
        pairs: (quantity, rate) pairs; quantities may be in any one consistent unit.

    Returns:
        Decimal: Weighted average rate, `0` when the total quantity is zero.

    Raises:
        ValueError: Raised when a quantity is negative.
    """

    with localcontext() as context:
        context.prec = _ACCUMULATION_PRECISION
        total_quantity = _ZERO
        total_amount = _ZERO
        for quantity, rate in pairs:
            if quantity < _ZERO:
                raise ValueError(f"quantity must be >= 0, got {quantity}")
            total_quantity += quantity
            total_amount += quantity * rate

        if total_quantity == _ZERO:
            return _ZERO
        return total_amount / total_quantity


__all__ = ["weighted_average_rate"]
