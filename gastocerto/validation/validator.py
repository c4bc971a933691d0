"""
Entry Validation

Every manual entry and every installment request is checked here
BEFORE anything is written. A rejected entry leaves the ledger and
any pending review state exactly as they were.

The validator collects all issues at once rather than stopping at the
first one, so the caller can show the user everything that needs fixing.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for human review.
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

import pydantic
from pydantic import BaseModel, Field

from gastocerto.config import get_settings
from gastocerto.models.transaction import (
    TransactionEntry,
    TransactionKind,
    as_utc_date,
)


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format', 'invalid_value')"
    )
    message: str
    severity: str = Field(
        default="error",
        pattern="^(error|warning|info)$",
    )
    suggested_fix: Optional[str] = None


class ValidationError(Exception):
    """
    Input rejected before any write was attempted.

    Carries every issue found so they can be shown together.
    """

    def __init__(self, issues: list[ValidationIssue]):
        self.issues = issues
        message = "; ".join(issue.message for issue in issues) or "Invalid input"
        super().__init__(message)

    @classmethod
    def single(
        cls,
        field: str,
        issue_type: str,
        message: str,
        suggested_fix: Optional[str] = None,
    ) -> "ValidationError":
        return cls([ValidationIssue(
            field=field,
            issue_type=issue_type,
            message=message,
            suggested_fix=suggested_fix,
        )])

    def to_dicts(self) -> list[dict]:
        return [
            {"field": i.field, "type": i.issue_type, "message": i.message}
            for i in self.issues
        ]


def _parse_amount(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, float):
            return Decimal(str(value))
        if isinstance(value, str):
            value = value.strip()
            if not value:
                return None
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount


class TransactionValidator:
    """
    Validates transaction entries and installment requests.

    Checks:
    - Description present and non-blank
    - Amount present, numeric, non-negative
    - Date present and readable
    - Kind is income or expense
    - Installment count: integer in [2, max_installments], expenses only
    """

    def __init__(self, max_installments: Optional[int] = None):
        self._max_installments = (
            max_installments or get_settings().app.max_installments
        )

    @property
    def max_installments(self) -> int:
        return self._max_installments

    def check_installments(
        self,
        kind: TransactionKind,
        count: Any,
    ) -> list[ValidationIssue]:
        """Issues with an installment request (empty list when valid)."""
        issues = []

        if kind != TransactionKind.EXPENSE:
            issues.append(ValidationIssue(
                field="installment_count",
                issue_type="invalid_kind",
                message="Only expenses can be split into installments",
                suggested_fix="Register income as a single transaction",
            ))

        if isinstance(count, bool) or not isinstance(count, int):
            issues.append(ValidationIssue(
                field="installment_count",
                issue_type="invalid_format",
                message=f"Installment count must be a whole number (got {count!r})",
            ))
        elif count < 2:
            issues.append(ValidationIssue(
                field="installment_count",
                issue_type="invalid_value",
                message=f"An installment purchase needs at least 2 installments (got {count})",
                suggested_fix="Register it as a single transaction instead",
            ))
        elif count > self._max_installments:
            issues.append(ValidationIssue(
                field="installment_count",
                issue_type="invalid_value",
                message=(
                    f"At most {self._max_installments} installments are allowed "
                    f"(got {count})"
                ),
            ))

        return issues

    def validate_entry(self, data: Mapping[str, Any]) -> TransactionEntry:
        """
        Validate raw entry fields and build a TransactionEntry.

        Accepts the keys description, amount, date, kind (or type),
        is_recurring and installment_count.

        Raises:
            ValidationError: With every issue found
        """
        issues = []

        description = data.get("description")
        if not isinstance(description, str) or not description.strip():
            issues.append(ValidationIssue(
                field="description",
                issue_type="missing",
                message="Description is required",
                suggested_fix="Pick a description or add a new one",
            ))

        raw_amount = data.get("amount")
        amount = _parse_amount(raw_amount)
        if raw_amount is None or (isinstance(raw_amount, str) and not raw_amount.strip()):
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Amount is required",
            ))
        elif amount is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_format",
                message=f"Amount is not a number: {raw_amount!r}",
            ))
        elif amount < 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount cannot be negative",
                suggested_fix="Use the income/expense choice for the direction",
            ))

        raw_date = data.get("date")
        entry_date: Optional[date] = None
        if raw_date is None or raw_date == "":
            issues.append(ValidationIssue(
                field="date",
                issue_type="missing",
                message="Date is required",
            ))
        else:
            try:
                entry_date = as_utc_date(raw_date)
            except ValueError:
                issues.append(ValidationIssue(
                    field="date",
                    issue_type="invalid_format",
                    message=f"Date is not valid: {raw_date!r}",
                    suggested_fix="Use the YYYY-MM-DD format",
                ))

        raw_kind = data.get("kind", data.get("type", TransactionKind.EXPENSE))
        kind: Optional[TransactionKind] = None
        try:
            kind = TransactionKind(raw_kind)
        except ValueError:
            issues.append(ValidationIssue(
                field="kind",
                issue_type="invalid_value",
                message=f"Kind must be 'income' or 'expense' (got {raw_kind!r})",
            ))

        installment_count = data.get("installment_count")
        if isinstance(installment_count, str):
            if not installment_count.strip():
                installment_count = None
            elif installment_count.strip().isdigit():
                installment_count = int(installment_count)
        if installment_count is not None and kind is not None:
            issues.extend(self.check_installments(kind, installment_count))

        if issues:
            raise ValidationError(issues)

        try:
            return TransactionEntry(
                description=description,
                amount=amount,
                date=entry_date,
                kind=kind,
                is_recurring=bool(data.get("is_recurring", False)),
                installment_count=installment_count,
            )
        except pydantic.ValidationError as e:
            raise ValidationError([
                ValidationIssue(
                    field=".".join(str(part) for part in err["loc"]) or "entry",
                    issue_type=err["type"],
                    message=err["msg"],
                )
                for err in e.errors()
            ])

    def validate_description_name(self, name: Any) -> str:
        """Trimmed description tag name, or ValidationError when blank."""
        if not isinstance(name, str) or not name.strip():
            raise ValidationError.single(
                field="name",
                issue_type="missing",
                message="Description name is required",
            )
        return name.strip()

    def get_user_friendly_summary(self, error: ValidationError) -> str:
        """
        Generate a user-friendly summary of a rejected entry.
        """
        lines = ["❌ The transaction could not be saved:"]
        for issue in error.issues:
            lines.append(f"   • {issue.message}")
            if issue.suggested_fix:
                lines.append(f"     💡 {issue.suggested_fix}")
        return "\n".join(lines)
