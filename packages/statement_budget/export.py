"""Write ledgers in the shape :func:`statement_budget.ledger.read_ledger` reads.

Both formats use the positional columns
``Data, Descrição, Categoria, Valor, Tipo, Mês``.
"""

from __future__ import annotations

import csv
from collections.abc import Iterable
from io import BytesIO, StringIO

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.worksheet.worksheet import Worksheet

from .models import LedgerSnapshot, Transaction
from .normalizers import format_amount

LEDGER_COLUMNS: tuple[str, ...] = ("Data", "Descrição", "Categoria", "Valor", "Tipo", "Mês")
TRANSACTIONS_SHEET = "Transações"
SUMMARY_SHEET = "Resumo"

_HEADER_FILL = PatternFill("solid", fgColor="1F4E78")
_HEADER_FONT = Font(color="FFFFFF", bold=True)


def to_csv(transactions: Iterable[Transaction]) -> str:
    buf = StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(LEDGER_COLUMNS)
    for t in transactions:
        writer.writerow(
            [t.date, t.description, t.category, format_amount(t.amount), t.type, t.month]
        )
    return buf.getvalue()


def _type_label(t: Transaction) -> str:
    return "Receita" if t.type == "credit" else "Despesa"


def _append_header(ws: Worksheet, headers: Iterable[str]) -> None:
    ws.append(list(headers))
    for cell in ws[1]:
        cell.fill = _HEADER_FILL
        cell.font = _HEADER_FONT


def _auto_fit_columns(ws: Worksheet) -> None:
    for col in ws.columns:
        width = max(len(str(c.value)) if c.value is not None else 0 for c in col)
        ws.column_dimensions[col[0].column_letter].width = min(max(12, width + 2), 70)


def to_xlsx(snapshot: LedgerSnapshot) -> bytes:
    """Render a workbook with a transactions sheet and a summary sheet."""

    wb = Workbook()
    txn_ws = wb.active
    txn_ws.title = TRANSACTIONS_SHEET
    _append_header(txn_ws, LEDGER_COLUMNS)
    for t in snapshot.transactions:
        txn_ws.append(
            [t.date, t.description, t.category, round(t.amount, 2), _type_label(t), t.month]
        )
    _auto_fit_columns(txn_ws)

    summary_ws = wb.create_sheet(SUMMARY_SHEET)
    _append_header(summary_ws, ("Indicador", "Valor"))
    summary_ws.append(["Receitas Totais", snapshot.summary.total_income])
    summary_ws.append(["Gastos Totais", snapshot.summary.total_expenses])
    summary_ws.append(["Saldo", round(snapshot.summary.balance, 2)])
    _auto_fit_columns(summary_ws)

    buf = BytesIO()
    wb.save(buf)
    return buf.getvalue()


__all__ = ["LEDGER_COLUMNS", "SUMMARY_SHEET", "TRANSACTIONS_SHEET", "to_csv", "to_xlsx"]
