"""Financial-year contract numbering.

Numbers look like `202627/0001`: the four-digit year the financial year starts
in, the two-digit year it ends in, then a four-digit sequence. The financial
year runs from April to March.
"""

from __future__ import annotations

from datetime import date

_FINANCIAL_YEAR_START_MONTH = 4
_SEQUENCE_WIDTH = 4


def contract_number_prefix(contract_date: date) -> str:
    """Return the financial-year prefix for a contract date.

    Args:
        contract_date: Contract date.

    Returns:
        str: Prefix such as `202627` for dates from April 2026 to March 2027.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    start_year = contract_date.year if contract_date.month >= _FINANCIAL_YEAR_START_MONTH else contract_date.year - 1
    return f"{start_year}{(start_year + 1) % 100:02d}"


def contract_number_next(contract_date: date, last_contract_no: str | None) -> str:
    """Return the contract number following the highest number of the same financial year.

    Args:
        contract_date: Date of the new contract.
        last_contract_no: Highest existing number with the same prefix, or None.

    Returns:
        str: Next contract number.

    Raises:
        ValueError: Raised when the last number does not belong to the contract's financial year.
    """

    prefix = contract_number_prefix(contract_date)
    if last_contract_no is None:
        return f"{prefix}/{1:0{_SEQUENCE_WIDTH}d}"

    last_prefix, separator, last_sequence = last_contract_no.partition("/")
    if separator != "/" or last_prefix != prefix or not last_sequence.isdigit():
        raise ValueError(f"contract_no={last_contract_no} does not match financial year prefix={prefix}")

    return f"{prefix}/{int(last_sequence) + 1:0{_SEQUENCE_WIDTH}d}"


__all__ = ["contract_number_next", "contract_number_prefix"]
