"""
Installment Expansion

Turns one purchase declaration into a series of monthly records that
share a group identifier.

Date rule:
- The first installment falls one day after the declared date.
- Installment i is the first installment's date moved forward i
  calendar months (relativedelta), always computed from the first
  installment's date rather than from the previous one.
- When the target month is shorter than that day, the day is clamped
  to the month's last day: a first installment on Jan 31 is followed by
  Feb 29 (leap year) or Feb 28, then Mar 31, Apr 30, ...
"""

from datetime import timedelta
from typing import Optional, Union
from uuid import uuid4

from dateutil.relativedelta import relativedelta

from gastocerto.models.transaction import (
    InstallmentInfo,
    TransactionEntry,
    TransactionRecord,
)
from gastocerto.validation import TransactionValidator, ValidationError


def installment_description(description: str, index: int, total: int) -> str:
    return f"{description} ({index}/{total})"


def expand_installments(
    base: Union[TransactionEntry, TransactionRecord],
    count: int,
    group_id: Optional[str] = None,
    validator: Optional[TransactionValidator] = None,
) -> list[TransactionRecord]:
    """
    Expand a purchase into `count` monthly installment records.

    Args:
        base: The declared purchase (description, amount, date, kind)
        count: Number of installments, at least 2
        group_id: Identifier for the group (a fresh one if omitted)
        validator: Supplies the installment limits

    Returns:
        Records ordered by installment index, ready for one atomic write

    Raises:
        ValidationError: If count is out of range or base is not an expense
    """
    validator = validator or TransactionValidator()
    issues = validator.check_installments(base.kind, count)
    if issues:
        raise ValidationError(issues)

    group_id = group_id or uuid4().hex
    start_date = base.date + timedelta(days=1)
    description = base.description.strip()

    return [
        TransactionRecord(
            description=installment_description(description, i + 1, count),
            amount=base.amount,
            date=start_date + relativedelta(months=i),
            kind=base.kind,
            is_recurring=base.is_recurring,
            installment_info=InstallmentInfo(
                sequence_index=i + 1,
                sequence_total=count,
                group_id=group_id,
            ),
        )
        for i in range(count)
    ]
