"""Bank-statement ingestion, categorization, and reconciliation.

Public API re-exports the pipeline entrypoint and the types callers need to
build its inputs and read its output.
"""

from .assistant import Assistant, OfflineAssistant, build_assistant
from .categorization import CategorizationEngine, CategoryDecision, fallback_categorize
from .errors import (
    ConfigurationError,
    ExtractionError,
    ParseError,
    PipelineCancelled,
    StatementBudgetError,
    ValidationError,
)
from .export import to_csv, to_xlsx
from .extractor import StatementFile, extract, extract_many, is_ledger_file
from .ledger import read_ledger
from .merge import build_snapshot, group_by_month, is_duplicate, merge, summarize
from .models import (
    FileError,
    LedgerSnapshot,
    MergeResult,
    ProcessingResult,
    RawTransaction,
    Summary,
    Transaction,
)
from .normalizers import month_of, normalize_date, parse_amount
from .pipeline import process_statements, recategorize, split_inputs
from .settings import Settings
from .taxonomy import Taxonomy, default_taxonomy, load_taxonomy

__all__ = [
    "Assistant",
    "CategorizationEngine",
    "CategoryDecision",
    "ConfigurationError",
    "ExtractionError",
    "FileError",
    "LedgerSnapshot",
    "MergeResult",
    "OfflineAssistant",
    "ParseError",
    "PipelineCancelled",
    "ProcessingResult",
    "RawTransaction",
    "Settings",
    "StatementBudgetError",
    "StatementFile",
    "Summary",
    "Taxonomy",
    "Transaction",
    "ValidationError",
    "build_assistant",
    "build_snapshot",
    "default_taxonomy",
    "extract",
    "extract_many",
    "fallback_categorize",
    "group_by_month",
    "is_duplicate",
    "is_ledger_file",
    "load_taxonomy",
    "merge",
    "month_of",
    "normalize_date",
    "parse_amount",
    "process_statements",
    "read_ledger",
    "recategorize",
    "split_inputs",
    "summarize",
    "to_csv",
    "to_xlsx",
]
