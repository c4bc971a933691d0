"""Validation package."""

from gastocerto.validation.validator import (
    TransactionValidator,
    ValidationError,
    ValidationIssue,
)

__all__ = [
    "TransactionValidator",
    "ValidationError",
    "ValidationIssue",
]
