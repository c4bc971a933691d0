"""
GastoCerto - Household Ledger Engine

Shared income/expense ledger for a household, with installment
purchases and document/statement import through a recognition service.

DESIGN PRINCIPLES:
1. Recognition suggests → Human reviews → System commits
2. Duplicates are flagged, never silently dropped
3. Group and batch writes are all-or-nothing
4. Totals are always recomputed from the full record set
5. Storage and recognition backends are swappable
"""

__version__ = "1.0.0"
__author__ = "GastoCerto Team"
