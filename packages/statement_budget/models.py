"""Data models for ``statement_budget``.

- :class:`RawTransaction`: one row as extracted from a statement, before
  categorization. Transient; lives only inside one extraction call.
- :class:`Transaction`: canonical, categorized transaction. ``type`` and
  ``month`` are derived from ``amount`` and ``date`` at construction time and
  ``id`` is a deterministic fingerprint of ``date + description + amount``.
- :class:`Summary` / :class:`LedgerSnapshot`: aggregates recomputed from
  scratch over a full transaction set.
- :class:`ExtractedTransaction`: Pydantic view of one element of
  the AI extraction response; see :func:`validate_extracted_items`.
"""

from __future__ import annotations

import hashlib
import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, replace
from typing import Any, Literal, TypeAlias

from pydantic import BaseModel, ConfigDict, StrictFloat, StrictInt, field_validator

from .normalizers import format_amount, month_of

TransactionType: TypeAlias = Literal["credit", "debit"]

REVIEW_THRESHOLD: float = 0.8
"""Transactions with confidence below this value are flagged for manual review."""


def compute_transaction_id(date: str, description: str, amount: float) -> str:
    """Return a stable SHA-256 based identifier for a transaction triple.

    Identical triples always map to the same id, which is what lets a result
    set collapse repeated rows into one transaction.
    """

    payload = f"{date}\x1f{description}\x1f{format_amount(amount)}"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:20]


def transaction_type_for(amount: float) -> TransactionType:
    return "credit" if amount >= 0 else "debit"


@dataclass(frozen=True, slots=True)
class RawTransaction:
    """A transaction as extracted from one statement file.

    ``date`` is free-form until normalized by the extractor; ``amount`` is
    signed (negative = outflow).
    """

    date: str
    description: str
    amount: float


@dataclass(frozen=True, slots=True)
class Transaction:
    """A canonical, categorized transaction.

    Build instances with :meth:`create` so derived fields (``id``, ``type``,
    ``month``) stay consistent with ``date`` and ``amount``. The only
    sanctioned mutation is a manual category correction via
    :meth:`with_category`.
    """

    id: str
    date: str
    description: str
    amount: float
    category: str
    type: TransactionType
    month: str
    confidence: float

    def __post_init__(self) -> None:
        if math.isnan(self.amount):
            raise ValueError("Transaction.amount must be a number")
        if self.type != transaction_type_for(self.amount):
            raise ValueError(
                f"Transaction.type {self.type!r} is inconsistent with amount {self.amount!r}"
            )
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError("Transaction.confidence must be within [0, 1]")

    @classmethod
    def create(
        cls,
        *,
        date: str,
        description: str,
        amount: float,
        category: str,
        confidence: float,
        month: str | None = None,
    ) -> Transaction:
        return cls(
            id=compute_transaction_id(date, description, amount),
            date=date,
            description=description,
            amount=float(amount),
            category=category,
            type=transaction_type_for(amount),
            month=month or month_of(date),
            confidence=float(confidence),
        )

    @property
    def needs_review(self) -> bool:
        return self.confidence < REVIEW_THRESHOLD

    def with_category(self, category: str) -> Transaction:
        """Return a manually corrected copy (confidence resets to 1.0)."""

        return replace(self, category=category, confidence=1.0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date,
            "description": self.description,
            "amount": self.amount,
            "category": self.category,
            "type": self.type,
            "month": self.month,
            "confidence": self.confidence,
        }


@dataclass(frozen=True, slots=True)
class Summary:
    total_income: float = 0.0
    total_expenses: float = 0.0

    @property
    def balance(self) -> float:
        return self.total_income - self.total_expenses

    @classmethod
    def of(cls, transactions: Iterable[Transaction]) -> Summary:
        income = 0.0
        expenses = 0.0
        for t in transactions:
            if t.type == "credit":
                income += t.amount
            else:
                expenses += abs(t.amount)
        return cls(total_income=round(income, 2), total_expenses=round(expenses, 2))

    def to_dict(self) -> dict[str, float]:
        return {
            "totalIncome": self.total_income,
            "totalExpenses": self.total_expenses,
            "balance": round(self.balance, 2),
        }


@dataclass(frozen=True, slots=True)
class LedgerSnapshot:
    """Derived view over a full transaction set; never edited in place."""

    transactions: tuple[Transaction, ...]
    months: tuple[str, ...]
    summary: Summary

    def to_dict(self) -> dict[str, Any]:
        return {
            "transactions": [t.to_dict() for t in self.transactions],
            "months": list(self.months),
            "summary": self.summary.to_dict(),
        }


@dataclass(frozen=True, slots=True)
class MergeResult:
    added: tuple[Transaction, ...]
    duplicates: int


@dataclass(frozen=True, slots=True)
class FileError:
    """A statement file that contributed nothing, with the reason."""

    filename: str
    error: Exception

    @property
    def message(self) -> str:
        return f"{type(self.error).__name__}: {self.error}"


@dataclass(frozen=True, slots=True)
class ProcessingResult:
    """Outcome of one pipeline request."""

    snapshot: LedgerSnapshot
    added: tuple[Transaction, ...]
    duplicates: int = 0
    file_errors: tuple[FileError, ...] = ()
    dropped_rows: int = 0
    ledger_size: int = 0

    def to_dict(self) -> dict[str, Any]:
        out = self.snapshot.to_dict()
        out["added"] = [t.id for t in self.added]
        out["duplicates"] = self.duplicates
        out["droppedRows"] = self.dropped_rows
        out["errors"] = [{"file": e.filename, "error": e.message} for e in self.file_errors]
        return out


# ---------------------------------------------------------------------------
# DTOs for AI extraction responses
# ---------------------------------------------------------------------------


class ExtractedTransaction(BaseModel):
    """One element of the AI extraction ``transactions`` array.

    ``amount`` must be a JSON number (booleans and numeric strings are
    rejected); ``date`` and ``description`` must be non-blank.
    """

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    date: str
    description: str
    amount: StrictInt | StrictFloat

    @field_validator("date", "description")
    @classmethod
    def _non_blank(cls, v: str) -> str:
        if not v:
            raise ValueError("must be a non-empty string")
        return v

    @field_validator("amount")
    @classmethod
    def _finite(cls, v: float) -> float:
        fv = float(v)
        if math.isnan(fv) or math.isinf(fv):
            raise ValueError("amount must be finite")
        return fv

    def to_raw(self) -> RawTransaction:
        return RawTransaction(date=self.date, description=self.description, amount=float(self.amount))


def validate_extracted_items(items: Sequence[Any]) -> tuple[list[RawTransaction], int]:
    """Validate each element independently; return ``(valid, discarded_count)``."""

    valid: list[RawTransaction] = []
    discarded = 0
    for item in items:
        if not isinstance(item, Mapping):
            discarded += 1
            continue
        try:
            valid.append(ExtractedTransaction.model_validate(dict(item)).to_raw())
        except ValueError:
            discarded += 1
    return valid, discarded


__all__ = [
    "REVIEW_THRESHOLD",
    "ExtractedTransaction",
    "FileError",
    "LedgerSnapshot",
    "MergeResult",
    "ProcessingResult",
    "RawTransaction",
    "Summary",
    "Transaction",
    "TransactionType",
    "compute_transaction_id",
    "transaction_type_for",
    "validate_extracted_items",
]
