"""CLI for the ``statement_budget`` package.

A thin Typer wrapper over :func:`statement_budget.pipeline.process_statements`
and friends. The root callback loads ``.env`` from the working directory
(without overriding already-set variables) and configures logging; commands
then resolve :class:`~statement_budget.settings.Settings` from the
environment. Summaries go to stderr via ``rich`` so stdout stays
machine-readable.
"""

from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table
from typer.models import ArgumentInfo, OptionInfo

from .assistant import build_assistant
from .categorization import CategorizationEngine
from .errors import StatementBudgetError
from .export import to_csv, to_xlsx
from .extractor import StatementFile
from .logging_setup import configure_logging
from .models import ProcessingResult
from .normalizers import format_amount, parse_amount
from .pipeline import process_statements, split_inputs
from .settings import Settings
from .sniffer import sniff
from .taxonomy import Taxonomy, load_taxonomy

console = Console(stderr=True)

_OUTPUT_FORMATS = ("json", "csv", "xlsx")
DEFAULT_XLSX_OUTPUT = "orcamento.xlsx"


def _fail(message: str, code: int = 1) -> typer.Exit:
    console.print(f"[red]Error:[/red] {message}", highlight=False)
    return typer.Exit(code)


def _load_files(paths: list[Path]) -> list[StatementFile]:
    files: list[StatementFile] = []
    for p in paths:
        try:
            files.append(StatementFile.from_path(p))
        except FileNotFoundError:
            raise _fail(f"file not found: {p}") from None
        except OSError as e:
            raise _fail(f"cannot read {p}: {e}") from None
    return files


def _load_taxonomy(settings: Settings) -> Taxonomy:
    try:
        return load_taxonomy(settings.taxonomy_path)
    except (OSError, ValueError) as e:
        raise _fail(f"invalid taxonomy {settings.taxonomy_path}: {e}") from None


def _summary_table(result: ProcessingResult) -> Table:
    table = Table(title="Resumo", show_header=True)
    table.add_column("Mês")
    table.add_column("Transações", justify="right")
    table.add_column("Receitas", justify="right")
    table.add_column("Despesas", justify="right")
    for month in result.snapshot.months:
        rows = [t for t in result.snapshot.transactions if t.month == month]
        income = sum(t.amount for t in rows if t.type == "credit")
        expenses = sum(abs(t.amount) for t in rows if t.type == "debit")
        table.add_row(month, str(len(rows)), format_amount(income), format_amount(expenses))
    s = result.snapshot.summary
    table.add_section()
    table.add_row(
        "Total",
        str(len(result.snapshot.transactions)),
        format_amount(s.total_income),
        format_amount(s.total_expenses),
    )
    return table


def _write_output(result: ProcessingResult, output: Path | None, fmt: str) -> None:
    """Write ``result`` in ``fmt``; xlsx defaults to ``orcamento.xlsx`` in the working directory."""

    if fmt == "xlsx":
        (output or Path(DEFAULT_XLSX_OUTPUT)).write_bytes(to_xlsx(result.snapshot))
        return
    if fmt == "csv":
        text = to_csv(result.snapshot.transactions)
    else:
        text = json.dumps(result.to_dict(), ensure_ascii=False, indent=2) + "\n"
    if output is None:
        typer.echo(text, nl=False)
    else:
        output.write_text(text, encoding="utf-8")


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Extract, categorize, and reconcile bank-statement transactions. "
        "Loads OPENAI_API_KEY and SB_* settings from a local .env before running."
    ),
)

# Module-level argument/option objects keep calls out of parameter defaults
# (ruff B008). Used inside ``Annotated``, so they carry names but no defaults.
FILES_ARGUMENT: ArgumentInfo = typer.Argument(
    help="Statement files (.csv, .txt, .pdf). A spreadsheet among them is used as the ledger.",
    dir_okay=False,
)
LEDGER_OPTION: OptionInfo = typer.Option(
    "--ledger",
    help="Previously exported ledger (.csv or .xlsx) to deduplicate against.",
    dir_okay=False,
)
OUTPUT_OPTION: OptionInfo = typer.Option(
    "--output", "-o", help="Write the result here instead of stdout."
)
FORMAT_OPTION: OptionInfo = typer.Option(
    "--format", "-f", help="Output format: json, csv or xlsx."
)
OFFLINE_OPTION: OptionInfo = typer.Option(
    "--offline", help="Never call the AI; use keyword categorization only."
)
CONCURRENCY_OPTION: OptionInfo = typer.Option(
    "--concurrency",
    min=1,
    max=32,
    help="Override both extraction and categorization concurrency.",
)


@app.command("process")
def process_cmd(
    files: Annotated[list[Path], FILES_ARGUMENT],
    *,
    ledger: Annotated[Path | None, LEDGER_OPTION] = None,
    output: Annotated[Path | None, OUTPUT_OPTION] = None,
    fmt: Annotated[str, FORMAT_OPTION] = "json",
    offline: Annotated[bool, OFFLINE_OPTION] = False,
    concurrency: Annotated[int | None, CONCURRENCY_OPTION] = None,
) -> None:
    """Run the full pipeline over statement files."""

    fmt = fmt.strip().lower()
    if fmt not in _OUTPUT_FORMATS:
        raise _fail(f"unknown format {fmt!r}; expected one of {', '.join(_OUTPUT_FORMATS)}")

    settings = Settings.from_env().with_overrides(
        extract_concurrency=concurrency, category_concurrency=concurrency
    )
    statements, ledger_file = split_inputs(_load_files(files))
    if ledger is not None:
        ledger_file = _load_files([ledger])[0]

    taxonomy = _load_taxonomy(settings)
    try:
        result = process_statements(
            statements,
            ledger=ledger_file,
            assistant=build_assistant(settings, offline=offline),
            taxonomy=taxonomy,
            settings=settings,
        )
    except StatementBudgetError as e:
        raise _fail(str(e)) from None

    console.print(_summary_table(result))
    console.print(
        f"novas={len(result.added)} duplicadas={result.duplicates} "
        f"descartadas={result.dropped_rows} revisar="
        f"{sum(1 for t in result.added if t.needs_review)}",
        highlight=False,
    )
    for err in result.file_errors:
        console.print(f"[yellow]Aviso:[/yellow] {err.filename}: {err.message}", highlight=False)

    _write_output(result, output, fmt)


@app.command("categorize")
def categorize_cmd(
    description: str,
    amount: str,
    *,
    offline: Annotated[bool, OFFLINE_OPTION] = False,
) -> None:
    """Categorize a single transaction and print ``category<TAB>confidence<TAB>source``."""

    value = parse_amount(amount)
    if math.isnan(value):
        raise _fail(f"not a valid amount: {amount!r}")

    settings = Settings.from_env()
    engine = CategorizationEngine(
        build_assistant(settings, offline=offline), _load_taxonomy(settings)
    )
    decision = engine.categorize(description, value)
    typer.echo(f"{decision.category}\t{decision.confidence:.2f}\t{decision.source}")


@app.command("sniff")
def sniff_cmd(path: Path) -> None:
    """Show how a delimited statement file is interpreted."""

    file = _load_files([path])[0]
    result = sniff(file.text())
    delimiter = {"\t": "TAB"}.get(result.delimiter, result.delimiter)
    typer.echo(f"delimiter: {delimiter}")
    typer.echo(f"header_row: {result.header_row_index}")
    typer.echo(f"rows: {len(result.rows)}")
    typer.echo(f"dropped: {result.dropped_rows}")

    table = Table(show_header=True)
    table.add_column("Data")
    table.add_column("Descrição")
    table.add_column("Valor", justify="right")
    for raw in result.rows:
        table.add_row(raw.date, raw.description, format_amount(raw.amount))
    console.print(table)


@app.callback(invoke_without_command=True)
def _root(ctx: typer.Context) -> None:
    """Load ``.env`` from the working directory and configure logging at ``SB_LOG_LEVEL``."""

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(Settings.from_env().log_level)

    if ctx.invoked_subcommand is None:
        typer.echo("No subcommand provided. Use --help to see available commands.")
        raise typer.Exit(1)


if __name__ == "__main__":  # pragma: no cover
    app()
