"""
Tests for installment expansion.
"""

import pytest
from datetime import date
from decimal import Decimal

from gastocerto.engine.installments import expand_installments, installment_description
from gastocerto.models.transaction import TransactionEntry, TransactionKind
from gastocerto.validation import TransactionValidator, ValidationError


def purchase(description="Notebook", amount="300.00", on=date(2024, 1, 31), kind=TransactionKind.EXPENSE):
    return TransactionEntry(description=description, amount=Decimal(amount), date=on, kind=kind)


class TestExpandInstallments:
    """Tests for expand_installments()."""

    def test_notebook_three_installments(self):
        """Test the worked example: Jan 31 purchase in 3 installments."""
        records = expand_installments(purchase(), 3, validator=TransactionValidator(72))

        assert [r.date for r in records] == [
            date(2024, 2, 1),
            date(2024, 3, 1),
            date(2024, 4, 1),
        ]
        assert [r.description for r in records] == [
            "Notebook (1/3)",
            "Notebook (2/3)",
            "Notebook (3/3)",
        ]
        assert all(r.amount == Decimal("300.00") for r in records)

    def test_group_shares_one_id(self):
        """Test that all installments carry the same group id."""
        records = expand_installments(purchase(), 4, validator=TransactionValidator(72))
        group_ids = {r.installment_info.group_id for r in records}
        assert len(group_ids) == 1

    def test_indices_run_one_to_n(self):
        """Test installment positions."""
        records = expand_installments(purchase(), 5, validator=TransactionValidator(72))
        assert [r.installment_info.sequence_index for r in records] == [1, 2, 3, 4, 5]
        assert all(r.installment_info.sequence_total == 5 for r in records)

    def test_explicit_group_id(self):
        """Test that a supplied group id is used."""
        records = expand_installments(purchase(), 2, group_id="grupo-1", validator=TransactionValidator(72))
        assert all(r.installment_info.group_id == "grupo-1" for r in records)

    def test_separate_expansions_get_different_groups(self):
        """Test that each expansion gets a fresh group id."""
        validator = TransactionValidator(72)
        first = expand_installments(purchase(), 2, validator=validator)
        second = expand_installments(purchase(), 2, validator=validator)
        assert first[0].installment_info.group_id != second[0].installment_info.group_id

    def test_month_end_clamped(self):
        """Test that a day-31 start is clamped in shorter months."""
        records = expand_installments(purchase(on=date(2024, 1, 30)), 4, validator=TransactionValidator(72))
        assert [r.date for r in records] == [
            date(2024, 1, 31),
            date(2024, 2, 29),
            date(2024, 3, 31),
            date(2024, 4, 30),
        ]

    def test_month_end_non_leap_year(self):
        """Test February clamping outside a leap year."""
        records = expand_installments(purchase(on=date(2023, 1, 30)), 2, validator=TransactionValidator(72))
        assert [r.date for r in records] == [date(2023, 1, 31), date(2023, 2, 28)]

    def test_year_rollover(self):
        """Test that December rolls into January of the next year."""
        records = expand_installments(purchase(on=date(2024, 11, 14)), 3, validator=TransactionValidator(72))
        assert [r.date for r in records] == [
            date(2024, 11, 15),
            date(2024, 12, 15),
            date(2025, 1, 15),
        ]

    def test_last_day_of_year_start(self):
        """Test a purchase on Dec 31 starting on Jan 1."""
        records = expand_installments(purchase(on=date(2024, 12, 31)), 2, validator=TransactionValidator(72))
        assert [r.date for r in records] == [date(2025, 1, 1), date(2025, 2, 1)]

    def test_records_are_unpersisted(self):
        """Test that expansion produces candidates without ids."""
        records = expand_installments(purchase(), 2, validator=TransactionValidator(72))
        assert all(r.id is None for r in records)
        assert all(r.kind == TransactionKind.EXPENSE for r in records)

    def test_count_below_two_rejected(self):
        """Test that fewer than 2 installments is a ValidationError."""
        with pytest.raises(ValidationError) as exc_info:
            expand_installments(purchase(), 1, validator=TransactionValidator(72))
        assert exc_info.value.issues[0].field == "installment_count"

    def test_count_above_limit_rejected(self):
        """Test the configured maximum."""
        with pytest.raises(ValidationError):
            expand_installments(purchase(), 13, validator=TransactionValidator(12))

    def test_income_rejected(self):
        """Test that income cannot be split."""
        with pytest.raises(ValidationError) as exc_info:
            expand_installments(purchase(kind=TransactionKind.INCOME), 3, validator=TransactionValidator(72))
        assert exc_info.value.issues[0].issue_type == "invalid_kind"


class TestInstallmentDescription:
    """Tests for installment labels."""

    def test_label_format(self):
        """Test the "(k/n)" suffix."""
        assert installment_description("Geladeira", 2, 10) == "Geladeira (2/10)"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
