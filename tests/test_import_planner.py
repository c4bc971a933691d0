"""
Tests for statement import planning.
"""

import pytest
from datetime import date
from decimal import Decimal

from gastocerto.engine.import_planner import StatementImportPlan, plan_import
from gastocerto.models.transaction import TransactionKind, TransactionRecord


def record(description, amount, day, kind=TransactionKind.EXPENSE):
    return TransactionRecord(
        description=description,
        amount=Decimal(amount),
        date=date(2024, 3, day),
        kind=kind,
    )


LEDGER = [
    record("Aluguel", "1200.00", 5),
    record("Supermercado", "350.40", 8),
]

STATEMENT = [
    record("Salário", "5000.00", 1, TransactionKind.INCOME),
    record("Aluguel", "1200.00", 5),
    record("Farmácia", "42.90", 6),
    record("Supermercado", "350.40", 8),
]


class TestPlanImport:
    """Tests for classifying candidates."""

    def test_classification(self):
        """Test duplicate markers against the ledger."""
        planned = plan_import(STATEMENT, LEDGER)
        assert [p.is_duplicate for p in planned] == [False, True, False, True]
        assert [p.index for p in planned] == [0, 1, 2, 3]

    def test_existing_ledger_untouched(self):
        """Test that planning does not modify the ledger."""
        ledger = list(LEDGER)
        plan_import(STATEMENT, ledger)
        assert ledger == LEDGER


class TestStatementImportPlan:
    """Tests for the review selection."""

    def test_default_selection_excludes_duplicates(self):
        """Test that only unique candidates start selected."""
        plan = StatementImportPlan(STATEMENT, LEDGER)
        assert plan.selected == frozenset({0, 2})
        assert plan.selected_count == 2
        assert plan.duplicate_count == 2
        assert plan.candidate_count == 4

    def test_commit_without_toggles(self):
        """Test that committing untouched returns the unique subset in order."""
        plan = StatementImportPlan(STATEMENT, LEDGER)
        committed = plan.commit()
        assert [r.description for r in committed] == ["Salário", "Farmácia"]

    def test_toggle_includes_duplicate(self):
        """Test opting a duplicate into the import."""
        plan = StatementImportPlan(STATEMENT, LEDGER)

        assert plan.toggle(1) is True
        committed = plan.commit()

        assert [r.description for r in committed] == ["Salário", "Aluguel", "Farmácia"]
        assert plan.selected_duplicate_count() == 1

    def test_toggle_twice_restores(self):
        """Test that toggling is an involution."""
        plan = StatementImportPlan(STATEMENT, LEDGER)
        plan.toggle(0)
        assert not plan.is_selected(0)
        plan.toggle(0)
        assert plan.is_selected(0)

    def test_commit_keeps_statement_order(self):
        """Test that toggle order does not change commit order."""
        plan = StatementImportPlan(STATEMENT, LEDGER)
        plan.toggle(3)
        plan.toggle(1)
        assert [r.description for r in plan.commit()] == [
            "Salário", "Aluguel", "Farmácia", "Supermercado",
        ]

    def test_out_of_range_toggle(self):
        """Test that a bad index raises IndexError."""
        plan = StatementImportPlan(STATEMENT, LEDGER)
        with pytest.raises(IndexError):
            plan.toggle(4)
        with pytest.raises(IndexError):
            plan.toggle(-1)

    def test_non_int_toggle(self):
        """Test that a non-integer index raises TypeError."""
        plan = StatementImportPlan(STATEMENT, LEDGER)
        with pytest.raises(TypeError):
            plan.toggle("1")

    def test_empty_statement(self):
        """Test that zero candidates give an empty review."""
        plan = StatementImportPlan([], LEDGER)
        assert plan.is_empty
        assert plan.selected_count == 0
        assert plan.commit() == []

    def test_clear_selection_commits_nothing(self):
        """Test that an empty selection commits nothing."""
        plan = StatementImportPlan(STATEMENT, LEDGER)
        plan.clear_selection()
        assert plan.commit() == []

    def test_select_all(self):
        """Test selecting every candidate."""
        plan = StatementImportPlan(STATEMENT, LEDGER)
        plan.select_all()
        assert len(plan.commit()) == 4

    def test_refresh_reclassifies_and_keeps_selection(self):
        """Test re-running the plan against a newer snapshot."""
        plan = StatementImportPlan(STATEMENT, LEDGER)

        plan.refresh(LEDGER + [record("Farmácia", "42.90", 6)])

        assert plan.items[2].is_duplicate
        assert plan.is_selected(2)
        assert plan.duplicate_count == 3

    def test_committed_records_carry_no_marker(self):
        """Test that committed items are plain records."""
        plan = StatementImportPlan(STATEMENT, LEDGER)
        assert all(isinstance(r, TransactionRecord) for r in plan.commit())


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
