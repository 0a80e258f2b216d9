"""Reconciliation: duplicate suppression and aggregate recomputation.

All functions are pure. Aggregates are always recomputed from the full
transaction set rather than maintained incrementally.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from .logging_setup import get_logger
from .models import LedgerSnapshot, MergeResult, Summary, Transaction
from .normalizers import month_sort_key

AMOUNT_TOLERANCE = 0.01

_logger = get_logger("statement_budget.merge")


def is_duplicate(a: Transaction, b: Transaction) -> bool:
    """Same date string, same description string, amounts within one cent."""

    return (
        a.date == b.date
        and a.description == b.description
        and abs(a.amount - b.amount) < AMOUNT_TOLERANCE
    )


def merge(existing: Sequence[Transaction], incoming: Iterable[Transaction]) -> MergeResult:
    """Split ``incoming`` into transactions new to ``existing`` and a duplicate count.

    Only ``existing`` is consulted; two identical incoming rows are both kept
    here and collapse later by ``id`` in :func:`build_snapshot`.
    """

    added: list[Transaction] = []
    duplicates = 0
    for txn in incoming:
        if any(is_duplicate(txn, e) for e in existing):
            duplicates += 1
            _logger.debug(
                "merge:duplicate date=%s description=%r amount=%.2f",
                txn.date,
                txn.description,
                txn.amount,
            )
            continue
        added.append(txn)
    return MergeResult(added=tuple(added), duplicates=duplicates)


def summarize(transactions: Iterable[Transaction]) -> Summary:
    return Summary.of(transactions)


def group_by_month(transactions: Iterable[Transaction]) -> dict[str, list[Transaction]]:
    """Group by month code; keys in calendar order, rows in input order."""

    groups: dict[str, list[Transaction]] = {}
    for t in transactions:
        groups.setdefault(t.month, []).append(t)
    return {m: groups[m] for m in sorted(groups, key=month_sort_key)}


def dedupe_by_id(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Collapse equal ids: the later row wins, the first position is kept."""

    by_id: dict[str, Transaction] = {}
    for t in transactions:
        by_id[t.id] = t
    return list(by_id.values())


def build_snapshot(transactions: Iterable[Transaction]) -> LedgerSnapshot:
    rows = dedupe_by_id(transactions)
    months = tuple(sorted({t.month for t in rows}, key=month_sort_key))
    return LedgerSnapshot(transactions=tuple(rows), months=months, summary=summarize(rows))


def category_totals(
    transactions: Iterable[Transaction], month: str | None = None
) -> dict[str, float]:
    """Absolute amount per category, optionally restricted to one month."""

    totals: dict[str, float] = {}
    for t in transactions:
        if month is not None and t.month != month:
            continue
        totals[t.category] = round(totals.get(t.category, 0.0) + abs(t.amount), 2)
    return totals


__all__ = [
    "AMOUNT_TOLERANCE",
    "build_snapshot",
    "category_totals",
    "dedupe_by_id",
    "group_by_month",
    "is_duplicate",
    "merge",
    "summarize",
]
