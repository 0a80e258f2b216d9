"""Exception hierarchy for ``statement_budget``.

Every error raised on purpose by the pipeline derives from
:class:`StatementBudgetError` so callers (the CLI, a host web app) can catch a
single base type and map subclasses to user-facing responses.
"""

from __future__ import annotations


class StatementBudgetError(Exception):
    """Base class for all pipeline errors."""


class ValidationError(StatementBudgetError):
    """Malformed or missing required input (a "bad request").

    Raised when no statement file is supplied, or when none of the supplied
    files yields a single transaction.
    """


class ExtractionError(StatementBudgetError):
    """A single statement file could not yield any transaction.

    Collected per file by the extractor; never aborts sibling files.
    """


class ConfigurationError(StatementBudgetError):
    """The AI collaborator is required but unavailable (e.g. no API key)."""


class ParseError(StatementBudgetError):
    """A non-empty ledger produced zero usable transactions."""


class PipelineCancelled(StatementBudgetError):
    """The request was cancelled before categorization completed."""


__all__ = [
    "StatementBudgetError",
    "ValidationError",
    "ExtractionError",
    "ConfigurationError",
    "ParseError",
    "PipelineCancelled",
]
