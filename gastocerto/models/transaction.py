"""
Core Data Models for the Household Ledger

These models define the schemas for every transaction flowing through
the engine, whether typed in by hand or recognized from a document.
They are designed to:
1. Enforce amount/description/date rules at construction time
2. Normalize dates to a UTC calendar day, whatever the source sent
3. Be immutable once built (records are never edited in place)
4. Be serializable for storage and logging

DESIGN DECISION: Amounts are Decimal, never float. Floats are converted
through their string form so 1200.01 stays exactly 1200.01 and the
duplicate tolerance check is not fooled by binary rounding.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# =============================================================================
# DATE / AMOUNT NORMALIZATION
# =============================================================================

def as_utc_date(value: Any) -> date:
    """
    Reduce a date-like value to its UTC calendar day.

    Accepts date, datetime (aware or naive) and ISO-8601 strings.
    Naive datetimes are taken to already be in UTC.

    Raises:
        ValueError: If the value cannot be read as a date
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()

    if isinstance(value, date):
        return value

    if isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            if len(text) == 10:
                return date.fromisoformat(text)
            return as_utc_date(datetime.fromisoformat(text))
        except ValueError:
            raise ValueError(f"Invalid date: {value!r}")

    raise ValueError(f"Invalid date: {value!r}")


def as_decimal_amount(value: Any) -> Any:
    """Convert floats through str so the decimal value matches what was typed."""
    if isinstance(value, bool):
        raise ValueError("Amount must be a number")
    if isinstance(value, float):
        return Decimal(str(value))
    return value


# =============================================================================
# ENUMS
# =============================================================================

class TransactionKind(str, Enum):
    """
    Direction of a transaction.

    Amounts are always non-negative; the sign is implied by the kind.
    """
    INCOME = "income"
    EXPENSE = "expense"


# =============================================================================
# TRANSACTION MODELS
# =============================================================================

class InstallmentInfo(BaseModel):
    """Position of a record inside an installment group."""

    model_config = ConfigDict(frozen=True)

    sequence_index: int = Field(
        ...,
        ge=1,
        description="1-based position of this installment"
    )
    sequence_total: int = Field(
        ...,
        ge=2,
        description="Number of installments in the group"
    )
    group_id: str = Field(
        ...,
        min_length=1,
        description="Identifier shared by every installment of one purchase"
    )

    @model_validator(mode='after')
    def validate_position(self) -> 'InstallmentInfo':
        if self.sequence_index > self.sequence_total:
            raise ValueError("Installment index cannot exceed the installment total")
        return self


class TransactionRecord(BaseModel):
    """
    A single income or expense record.

    The same model is used for candidates (not yet persisted, no id)
    and for persisted records. The store assigns the id; created_at and
    owner_ref are stamped at commit time.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: Optional[str] = Field(
        default=None,
        description="Store-assigned identifier (absent on candidates)"
    )
    description: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Display label"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Monetary magnitude (sign implied by kind)"
    )
    # Calendar date of the transaction (UTC day)
    date: date
    kind: TransactionKind = Field(
        default=TransactionKind.EXPENSE,
        description="Income or expense"
    )
    is_recurring: bool = Field(
        default=False,
        description="Informational flag, nothing is regenerated from it"
    )
    installment_info: Optional[InstallmentInfo] = None
    created_at: Optional[datetime] = Field(
        default=None,
        description="When the record was committed"
    )
    owner_ref: Optional[str] = Field(
        default=None,
        description="User who committed the record"
    )

    @field_validator('amount', mode='before')
    @classmethod
    def coerce_amount(cls, v: Any) -> Any:
        return as_decimal_amount(v)

    @field_validator('date', mode='before')
    @classmethod
    def normalize_date(cls, v: Any) -> Any:
        return as_utc_date(v)

    @property
    def is_persisted(self) -> bool:
        return self.id is not None

    @property
    def is_installment(self) -> bool:
        return self.installment_info is not None

    def stamped(
        self,
        owner_ref: Optional[str],
        now: Optional[datetime] = None,
    ) -> 'TransactionRecord':
        """Return a copy carrying commit-time metadata."""
        return self.model_copy(update={
            "created_at": now or datetime.now(timezone.utc),
            "owner_ref": owner_ref,
        })


class TransactionEntry(BaseModel):
    """
    A transaction declaration, as submitted from the entry form or
    produced by single-document recognition.

    CRITICAL: This is what gets duplicate-checked and held for
    confirmation. If installment_count is set, the entry expands into
    an installment group when written.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    description: str = Field(..., min_length=1, max_length=180)
    amount: Decimal = Field(..., ge=0)
    date: date
    kind: TransactionKind = TransactionKind.EXPENSE
    is_recurring: bool = False
    installment_count: Optional[int] = Field(
        default=None,
        ge=2,
        description="Number of monthly installments (expenses only)"
    )

    @field_validator('amount', mode='before')
    @classmethod
    def coerce_amount(cls, v: Any) -> Any:
        return as_decimal_amount(v)

    @field_validator('date', mode='before')
    @classmethod
    def normalize_date(cls, v: Any) -> Any:
        return as_utc_date(v)

    @property
    def is_installment_purchase(self) -> bool:
        return self.installment_count is not None

    def to_record(self) -> TransactionRecord:
        """The single (non-installment) record this entry stands for."""
        return TransactionRecord(
            description=self.description,
            amount=self.amount,
            date=self.date,
            kind=self.kind,
            is_recurring=self.is_recurring,
        )


# =============================================================================
# DESCRIPTION TAGS
# =============================================================================

class DescriptionTag(BaseModel):
    """A selectable transaction description label."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    name: str = Field(..., min_length=1, max_length=200)
    id: Optional[str] = None
    is_default: bool = False


# =============================================================================
# DERIVED VALUES
# =============================================================================

class LedgerTotals(BaseModel):
    """Totals derived from the full record set."""
    model_config = ConfigDict(frozen=True)

    total_income: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")
