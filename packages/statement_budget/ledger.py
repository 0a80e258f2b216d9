"""Read a previously exported ledger (CSV or XLSX) back into transactions.

The ledger is the system's own export (see :mod:`statement_budget.export`),
possibly edited by hand. Columns are positional:
``date, description, category, amount, type, month``. Everything read here
is user-confirmed data, so confidence is fixed at 1.0.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime
from io import BytesIO
from typing import Any
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from .errors import ParseError
from .extractor import StatementFile
from .logging_setup import get_logger
from .models import Transaction
from .normalizers import (
    MONTH_CODES,
    is_nonzero_amount,
    is_valid_date,
    month_of,
    normalize_date,
    parse_amount,
)
from .sniffer import detect_delimiter, find_header_row, split_rows
from .taxonomy import DEFAULT_CATEGORY, Taxonomy, fold_text, format_label, split_label

LEDGER_HEADER_KEYWORDS: tuple[str, ...] = (
    "data",
    "descri",
    "valor",
    "categoria",
    "tipo",
    "mes",
    "month",
)
TRANSACTION_SHEET_MARKERS: tuple[str, ...] = ("transac", "moviment")
_DEBIT_TYPE_MARKERS = ("debit", "despesa")
_CREDIT_TYPE_MARKERS = ("credit", "receita")

_DATE, _DESCRIPTION, _CATEGORY, _AMOUNT, _TYPE, _MONTH = range(6)

_logger = get_logger("statement_budget.ledger")


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date):
        return f"{value.day:02d}/{value.month:02d}/{value.year:04d}"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _cell(row: Sequence[Any], idx: int) -> Any:
    return row[idx] if idx < len(row) else None


def _resolve_sign(amount: float, type_cell: str) -> float:
    folded = fold_text(type_cell)
    if amount > 0 and any(m in folded for m in _DEBIT_TYPE_MARKERS):
        return -amount
    if amount < 0 and any(m in folded for m in _CREDIT_TYPE_MARKERS):
        return abs(amount)
    return amount


def _resolve_category(cell: str, taxonomy: Taxonomy) -> str:
    parts = split_label(cell)
    if parts is None or not taxonomy.is_compatible(cell):
        return DEFAULT_CATEGORY
    return format_label(*parts)


def row_to_transaction(row: Sequence[Any], taxonomy: Taxonomy) -> Transaction | None:
    """Materialize one ledger row, or ``None`` when it lacks required fields."""

    raw_date = _cell_text(_cell(row, _DATE))
    description = _cell_text(_cell(row, _DESCRIPTION))
    amount = parse_amount(_cell(row, _AMOUNT))
    if not raw_date or not description or not is_nonzero_amount(amount):
        return None

    amount = _resolve_sign(amount, _cell_text(_cell(row, _TYPE)))
    date_text = normalize_date(raw_date)
    month_cell = _cell_text(_cell(row, _MONTH)).upper()
    month = month_cell if month_cell in MONTH_CODES else month_of(date_text)

    return Transaction.create(
        date=date_text,
        description=description,
        amount=amount,
        category=_resolve_category(_cell_text(_cell(row, _CATEGORY)), taxonomy),
        confidence=1.0,
        month=month,
    )


def _rows_from_csv(file: StatementFile) -> list[list[str]]:
    text = file.text()
    first = next((ln for ln in text.splitlines() if ln.strip()), "")
    if not first:
        return []
    return split_rows(text, detect_delimiter(first))


def _pick_sheet(sheetnames: Sequence[str]) -> str:
    for name in sheetnames:
        folded = fold_text(name)
        if any(marker in folded for marker in TRANSACTION_SHEET_MARKERS):
            return name
    return sheetnames[0]


def _rows_from_workbook(file: StatementFile) -> list[list[Any]]:
    try:
        wb = load_workbook(BytesIO(file.content), read_only=True, data_only=True)
    except (InvalidFileException, BadZipFile, KeyError, OSError, ValueError) as e:
        raise ParseError(f"{file.name}: cannot be opened as a workbook ({e})") from e
    try:
        if not wb.sheetnames:
            return []
        sheet_name = _pick_sheet(wb.sheetnames)
        _logger.debug("ledger:sheet filename=%s sheet=%s", file.name, sheet_name)
        rows: list[list[Any]] = []
        for values in wb[sheet_name].iter_rows(values_only=True):
            cells = list(values)
            if any(_cell_text(c) for c in cells):
                rows.append(cells)
        return rows
    finally:
        wb.close()


def _is_csv(file: StatementFile) -> bool:
    return file.suffix == ".csv" or file.mime_type.lower() == "text/csv"


def _is_data_row(cells: Sequence[str]) -> bool:
    """True when the date and amount columns already hold a transaction."""

    return is_valid_date(_cell_text(_cell(cells, _DATE))) and is_nonzero_amount(
        parse_amount(_cell(cells, _AMOUNT))
    )


def _data_rows(rows: list[list[Any]]) -> list[list[Any]]:
    text_rows = [[_cell_text(c) for c in row] for row in rows]
    header_idx = find_header_row(text_rows, LEDGER_HEADER_KEYWORDS, is_data=_is_data_row)
    return rows[header_idx + 1 :] if header_idx >= 0 else rows


def read_ledger(file: StatementFile, *, taxonomy: Taxonomy) -> list[Transaction]:
    """Parse a CSV or XLSX ledger.

    Returns ``[]`` for an empty ledger (no rows, or a header only). Raises
    :class:`ParseError` when data rows exist but none survives, or when a
    spreadsheet cannot be opened.
    """

    rows = _rows_from_csv(file) if _is_csv(file) else _rows_from_workbook(file)
    data = _data_rows(rows)
    if not data:
        return []

    transactions: list[Transaction] = []
    for row in data:
        txn = row_to_transaction(row, taxonomy)
        if txn is not None:
            transactions.append(txn)

    if not transactions:
        raise ParseError(f"{file.name}: no valid transactions found in ledger")
    _logger.info(
        "ledger:read filename=%s rows=%d transactions=%d",
        file.name,
        len(data),
        len(transactions),
    )
    return transactions


__all__ = [
    "LEDGER_HEADER_KEYWORDS",
    "TRANSACTION_SHEET_MARKERS",
    "read_ledger",
    "row_to_transaction",
]
