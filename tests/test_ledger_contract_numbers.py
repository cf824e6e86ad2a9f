"""Financial-year contract numbering tests."""

from __future__ import annotations

from datetime import date

import pytest

from sauda_ledger.ledger import contract_number_next, contract_number_prefix


@pytest.mark.parametrize(
    ("contract_date", "expected_prefix"),
    [
        (date(2026, 10, 18), "202627"),
        (date(2026, 4, 1), "202627"),
        (date(2027, 3, 31), "202627"),
        (date(2026, 3, 31), "202526"),
        (date(2099, 12, 1), "209900"),
    ],
)
def test_contract_number_prefix_follows_april_financial_year(contract_date: date, expected_prefix: str) -> None:
    assert contract_number_prefix(contract_date) == expected_prefix


def test_contract_number_next_starts_and_increments_sequence() -> None:
    """Verify numbering starts at 0001 and continues from the highest number.

    Returns:
        None: Assertions validate generated numbers.

    Raises:
        AssertionError: Raised when sequence formatting drifts.
    """

    assert contract_number_next(date(2026, 10, 18), None) == "202627/0001"
    assert contract_number_next(date(2026, 10, 18), "202627/0009") == "202627/0010"
    assert contract_number_next(date(2026, 10, 18), "202627/9999") == "202627/10000"


def test_contract_number_next_rejects_other_financial_year() -> None:
    with pytest.raises(ValueError, match="does not match financial year prefix=202627"):
        contract_number_next(date(2026, 10, 18), "202526/0042")
