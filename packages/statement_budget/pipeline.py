"""Request-scoped orchestration: statements (+ ledger) in, snapshot out.

Flow for one request::

    files --extract_many--> raw rows --categorize_all--> transactions
          --merge(ledger)--> added --build_snapshot--> ProcessingResult

Nothing is persisted between requests. Merging and aggregation run only after
every categorization call has completed, so a cancelled request never yields
a partial snapshot.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Sequence

from .assistant import Assistant
from .categorization import CategorizationEngine
from .errors import ValidationError
from .extractor import StatementFile, extract_many, is_ledger_file
from .ledger import read_ledger
from .logging_setup import get_logger
from .merge import build_snapshot, dedupe_by_id, merge
from .models import ProcessingResult, Transaction
from .settings import Settings
from .taxonomy import Taxonomy

_logger = get_logger("statement_budget.pipeline")


def split_inputs(
    files: Iterable[StatementFile],
) -> tuple[list[StatementFile], StatementFile | None]:
    """Separate statements from at most one ledger file.

    The first ledger-looking file wins; further ones are ignored with a
    warning.
    """

    statements: list[StatementFile] = []
    ledger: StatementFile | None = None
    for f in files:
        if not is_ledger_file(f):
            statements.append(f)
        elif ledger is None:
            ledger = f
        else:
            _logger.warning("pipeline:extra_ledger_ignored filename=%s", f.name)
    return statements, ledger


def process_statements(
    files: Sequence[StatementFile],
    *,
    ledger: StatementFile | None = None,
    assistant: Assistant,
    taxonomy: Taxonomy,
    settings: Settings,
    cancel: threading.Event | None = None,
) -> ProcessingResult:
    """Run one ingestion request.

    Raises
    ------
    ValidationError
        No statement file was given, or none yielded a transaction.
    ParseError
        The ledger is non-empty but unreadable.
    PipelineCancelled
        ``cancel`` was set before categorization finished.
    """

    if not files:
        raise ValidationError("at least one statement file is required")

    _logger.info(
        "pipeline:start num_files=%d ledger=%s ai=%s",
        len(files),
        ledger.name if ledger is not None else None,
        assistant.available,
    )
    batch = extract_many(
        files,
        assistant=assistant,
        concurrency=settings.extract_concurrency,
        cancel=cancel,
    )
    if not batch.transactions:
        details = "; ".join(e.message for e in batch.errors) or "no rows recognized"
        raise ValidationError(f"no transactions could be extracted ({details})")

    existing: list[Transaction] = (
        read_ledger(ledger, taxonomy=taxonomy) if ledger is not None else []
    )

    engine = CategorizationEngine(assistant, taxonomy)
    categorized = engine.categorize_all(
        batch.transactions,
        concurrency=settings.category_concurrency,
        cancel=cancel,
    )

    merged = merge(existing, categorized)
    # Repeats within the batch share an id and collapse to one ledger row.
    added = tuple(dedupe_by_id(merged.added))
    snapshot = build_snapshot([*existing, *added])
    _logger.info(
        "pipeline:done extracted=%d added=%d duplicates=%d ledger=%d file_errors=%d dropped=%d",
        len(categorized),
        len(added),
        merged.duplicates,
        len(existing),
        len(batch.errors),
        batch.dropped_rows,
    )
    return ProcessingResult(
        snapshot=snapshot,
        added=added,
        duplicates=merged.duplicates,
        file_errors=batch.errors,
        dropped_rows=batch.dropped_rows,
        ledger_size=len(existing),
    )


def recategorize(
    transactions: Sequence[Transaction],
    transaction_id: str,
    category: str,
    taxonomy: Taxonomy,
) -> list[Transaction]:
    """Apply a manual category correction; returns a new list.

    Raises ``KeyError`` for an unknown id and :class:`ValidationError` when
    ``category`` is not a ``Group: Item`` label of a known group.
    """

    if not taxonomy.is_compatible(category):
        raise ValidationError(f"category {category!r} is not in the taxonomy")
    if not any(t.id == transaction_id for t in transactions):
        raise KeyError(transaction_id)
    return [t.with_category(category) if t.id == transaction_id else t for t in transactions]


__all__ = ["process_statements", "recategorize", "split_inputs"]
