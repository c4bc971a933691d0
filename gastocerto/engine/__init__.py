"""
Reconciliation & Import Engine

Pure decision logic: duplicate detection, installment expansion,
statement import planning, single-entry confirmation, totals and the
description catalog. Nothing in here performs I/O.
"""

from gastocerto.engine.aggregator import LedgerView, aggregate
from gastocerto.engine.confirmation import (
    ConfirmationState,
    DuplicateReview,
    InvalidTransitionError,
    SingleEntryConfirmation,
)
from gastocerto.engine.descriptions import (
    DEFAULT_DESCRIPTIONS,
    DescriptionCatalog,
    contains_description,
    merge_descriptions,
)
from gastocerto.engine.duplicates import (
    AMOUNT_TOLERANCE,
    find_duplicates,
    is_duplicate,
    is_same_event,
)
from gastocerto.engine.import_planner import (
    PlannedCandidate,
    StatementImportPlan,
    plan_import,
)
from gastocerto.engine.installments import expand_installments

__all__ = [
    "AMOUNT_TOLERANCE",
    "ConfirmationState",
    "DEFAULT_DESCRIPTIONS",
    "DescriptionCatalog",
    "DuplicateReview",
    "InvalidTransitionError",
    "LedgerView",
    "PlannedCandidate",
    "SingleEntryConfirmation",
    "StatementImportPlan",
    "aggregate",
    "contains_description",
    "expand_installments",
    "find_duplicates",
    "is_duplicate",
    "is_same_event",
    "merge_descriptions",
    "plan_import",
]
