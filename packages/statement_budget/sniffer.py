"""Delimited-text sniffing for bank statements without a fixed schema.

Banks export CSV/TXT tables with different delimiters, optional preambles,
and columns in different orders. Rather than modelling every layout, the
sniffer guesses:

1. the delimiter from the first line;
2. the header row from keyword hits in the first five rows;
3. per data row, which cell plays which role. Headers are unreliable across
   banks, so roles are assigned from cell contents using an ordered list of
   predicate->role rules (:data:`ROLE_RULES`).

The policy favours recall over precision: rows without a recognizable date or
a non-zero amount are dropped and counted, never reported as errors.
"""

from __future__ import annotations

import csv
import math
import re
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from io import StringIO
from typing import Literal, TypeAlias

from .logging_setup import get_logger
from .models import RawTransaction
from .normalizers import is_nonzero_amount, is_valid_date, normalize_date, parse_amount
from .taxonomy import fold_text

Role: TypeAlias = Literal["date", "amount", "description", "operation"]
OperationHint: TypeAlias = Literal["debit", "credit"]

DELIMITERS: tuple[str, ...] = (",", ";", "\t")
HEADER_SCAN_ROWS = 5
STATEMENT_HEADER_KEYWORDS: tuple[str, ...] = (
    "data",
    "date",
    "desc",
    "hist",
    "valor",
    "amount",
    "quantia",
    "operacao",
    "tipo",
    "type",
    "categoria",
    "category",
)
DEBIT_MARKERS: tuple[str, ...] = ("debito", "saida", "debit")
CREDIT_MARKERS: tuple[str, ...] = ("credito", "entrada", "credit")
DEFAULT_DESCRIPTION = "Transação"

_PURE_NUMBER_RE = re.compile(
    r"^[\s+\-(]*(?:R\$|US\$|\$)?[\s+\-(]*\d[\d.,\s]*[\s)\-]*$",
    re.IGNORECASE,
)

_logger = get_logger("statement_budget.sniffer")


# ---------------------------------------------------------------------------
# Delimiter and header detection
# ---------------------------------------------------------------------------


def detect_delimiter(first_line: str) -> str:
    """Pick the most frequent of ``,`` ``;`` and tab; comma wins ties."""

    commas = first_line.count(",")
    semicolons = first_line.count(";")
    tabs = first_line.count("\t")
    if semicolons > commas and semicolons > tabs:
        return ";"
    if tabs > commas and tabs > semicolons:
        return "\t"
    return ","


def split_rows(text: str, delimiter: str) -> list[list[str]]:
    """Split ``text`` into trimmed cells, honouring CSV quoting; blank lines skipped."""

    rows: list[list[str]] = []
    with StringIO(text) as f:
        for row in csv.reader(f, delimiter=delimiter):
            cells = [c.strip() for c in row]
            if any(cells):
                rows.append(cells)
    return rows


def find_header_row(
    rows: Sequence[Sequence[str]],
    keywords: Sequence[str] = STATEMENT_HEADER_KEYWORDS,
    *,
    scan: int = HEADER_SCAN_ROWS,
    is_data: Callable[[Sequence[str]], bool] | None = None,
) -> int:
    """Return the index of the first row (within ``scan``) with a keyword hit, else ``-1``.

    Matching is a substring test on lower-cased, accent-folded cells, so
    ``"Descrição"`` matches ``"desc"``. Rows for which ``is_data`` is true are
    never header candidates: ``"05/03/2024;TARIFA DESCONTO;-5,00"`` hits
    ``"desc"`` but is a transaction.
    """

    for i, row in enumerate(rows[:scan]):
        if is_data is not None and is_data(row):
            continue
        folded = [fold_text(cell) for cell in row]
        if any(kw in cell for cell in folded for kw in keywords):
            return i
    return -1


# ---------------------------------------------------------------------------
# Column role rules
# ---------------------------------------------------------------------------


def _is_number(cell: str) -> bool:
    """True for cells that are only a (possibly signed, currency-tagged) number."""

    return bool(_PURE_NUMBER_RE.match(cell)) and not math.isnan(parse_amount(cell))


def _is_nonzero_number(cell: str) -> bool:
    return _is_number(cell) and is_nonzero_amount(parse_amount(cell))


def operation_hint(cell: str) -> OperationHint | None:
    """Return ``"debit"``/``"credit"`` when the cell names an operation type."""

    folded = fold_text(cell)
    if any(m in folded for m in DEBIT_MARKERS):
        return "debit"
    if any(m in folded for m in CREDIT_MARKERS):
        return "credit"
    return None


def _first_three(cells: Sequence[str]) -> list[int]:
    return list(range(min(3, len(cells))))


def _last_four_reversed(cells: Sequence[str]) -> list[int]:
    return list(range(len(cells) - 1, max(len(cells) - 4, 0) - 1, -1))


def _all_columns(cells: Sequence[str]) -> list[int]:
    return list(range(len(cells)))


def _is_text(cell: str) -> bool:
    return bool(cell) and not is_valid_date(cell) and not _is_number(cell)


@dataclass(frozen=True, slots=True)
class RoleRule:
    """A single predicate->role rule.

    ``candidates`` yields column indices in priority order. With
    ``pick="first"`` the first candidate satisfying ``predicate`` wins; with
    ``pick="longest"`` the longest satisfying cell wins (earliest on ties).
    Columns already claimed by an earlier rule are skipped.
    """

    role: Role
    candidates: Callable[[Sequence[str]], list[int]]
    predicate: Callable[[str], bool]
    pick: Literal["first", "longest"] = "first"

    def select(self, cells: Sequence[str], claimed: set[int]) -> int | None:
        best: int | None = None
        for idx in self.candidates(cells):
            if idx in claimed or not self.predicate(cells[idx]):
                continue
            if self.pick == "first":
                return idx
            if best is None or len(cells[idx]) > len(cells[best]):
                best = idx
        return best


ROLE_RULES: tuple[RoleRule, ...] = (
    RoleRule("date", _first_three, is_valid_date),
    RoleRule("amount", _last_four_reversed, _is_nonzero_number),
    RoleRule("description", _all_columns, _is_text, pick="longest"),
    # Any column may carry the hint, the description included: "PAGAMENTO FATURA
    # CARTAO CREDITO" with -1500,00 reads as a credit of 1500,00.
    RoleRule("operation", _all_columns, lambda c: operation_hint(c) is not None),
)


@dataclass(frozen=True, slots=True)
class RowRoles:
    """Column index per role for one data row (``None`` when unassigned)."""

    date: int | None = None
    amount: int | None = None
    description: int | None = None
    operation: int | None = None


def assign_roles(cells: Sequence[str], rules: Iterable[RoleRule] = ROLE_RULES) -> RowRoles:
    """Apply ``rules`` in order to one row's cells."""

    claimed: set[int] = set()
    found: dict[str, int] = {}
    for rule in rules:
        # The operation hint may share a column with the description text.
        taken = claimed if rule.role != "operation" else set()
        idx = rule.select(cells, taken)
        if idx is not None:
            found[rule.role] = idx
            claimed.add(idx)
    return RowRoles(**found)


# ---------------------------------------------------------------------------
# Row materialization
# ---------------------------------------------------------------------------


def row_to_raw(cells: Sequence[str], roles: RowRoles | None = None) -> RawTransaction | None:
    """Build a :class:`RawTransaction` from one row, or ``None`` to drop it."""

    roles = roles or assign_roles(cells)
    if roles.date is None or roles.amount is None:
        return None
    amount = parse_amount(cells[roles.amount])
    if not is_nonzero_amount(amount):
        return None

    hint = operation_hint(cells[roles.operation]) if roles.operation is not None else None
    if hint == "debit" and amount > 0:
        amount = -amount
    elif hint == "credit" and amount < 0:
        amount = abs(amount)

    if roles.description is not None:
        description = cells[roles.description]
    elif len(cells) > 1 and cells[1]:
        description = cells[1]
    else:
        description = DEFAULT_DESCRIPTION

    return RawTransaction(
        date=normalize_date(cells[roles.date]),
        description=description.strip(),
        amount=amount,
    )


@dataclass(frozen=True, slots=True)
class SniffResult:
    delimiter: str
    header_row_index: int
    header: tuple[str, ...] = ()
    rows: tuple[RawTransaction, ...] = field(default_factory=tuple)
    dropped_rows: int = 0


def sniff(text: str) -> SniffResult:
    """Sniff ``text`` and return the surviving rows as raw transactions."""

    lines = [ln for ln in text.splitlines() if ln.strip()]
    if not lines:
        return SniffResult(delimiter=",", header_row_index=-1)

    delimiter = detect_delimiter(lines[0])
    table = split_rows("\n".join(lines), delimiter)
    header_idx = find_header_row(table, is_data=lambda cells: row_to_raw(cells) is not None)
    start = header_idx + 1 if header_idx >= 0 else 0
    _logger.debug(
        "sniff:layout delimiter=%r header_row=%d data_rows=%d",
        delimiter,
        header_idx,
        len(table) - start,
    )

    rows: list[RawTransaction] = []
    dropped = 0
    for line_no, cells in enumerate(table[start:], start=start + 1):
        if len(cells) < 2:
            dropped += 1
            continue
        raw = row_to_raw(cells)
        if raw is None:
            dropped += 1
            _logger.debug("sniff:row_dropped line=%d cells=%r", line_no, cells)
            continue
        rows.append(raw)

    return SniffResult(
        delimiter=delimiter,
        header_row_index=header_idx,
        header=tuple(table[header_idx]) if header_idx >= 0 else (),
        rows=tuple(rows),
        dropped_rows=dropped,
    )


__all__ = [
    "DEFAULT_DESCRIPTION",
    "ROLE_RULES",
    "STATEMENT_HEADER_KEYWORDS",
    "RoleRule",
    "RowRoles",
    "SniffResult",
    "assign_roles",
    "detect_delimiter",
    "find_header_row",
    "operation_hint",
    "row_to_raw",
    "sniff",
    "split_rows",
]
