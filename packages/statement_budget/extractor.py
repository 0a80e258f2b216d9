"""Statement extraction: one uploaded file in, raw transactions out.

Routing by file kind:

- ``delimited`` (``.csv``/``text/csv``) and ``text`` (``.txt``/``text/plain``):
  :func:`statement_budget.sniffer.sniff` first; when non-blank text yields no
  row, the text goes to AI extraction, or :class:`ConfigurationError` is
  raised when no assistant is available.
- ``pdf``: AI extraction only (:class:`ConfigurationError` when unavailable).
- anything else: :class:`ExtractionError`.

:func:`extract_many` isolates failures per file so one unreadable statement
never aborts its siblings.
"""

from __future__ import annotations

import json
import mimetypes
import threading
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from os import PathLike
from pathlib import Path
from typing import Any, Literal, TypeAlias

from .assistant import Assistant
from .errors import ConfigurationError, ExtractionError, PipelineCancelled
from .logging_setup import get_logger
from .models import FileError, RawTransaction, validate_extracted_items
from .normalizers import normalize_date
from .openai_client import PDF_MIME_TYPE
from .pmap import p_map
from .sniffer import sniff

FileKind: TypeAlias = Literal["delimited", "text", "pdf", "unsupported"]

LARGE_CSV_LEDGER_BYTES = 50_000
_LEDGER_SUFFIXES = (".xlsx", ".xls")
_LEDGER_MIME_MARKERS = ("spreadsheet", "excel")
_MIME_BY_KIND: dict[str, str] = {
    "delimited": "text/csv",
    "text": "text/plain",
    "pdf": PDF_MIME_TYPE,
}

_logger = get_logger("statement_budget.extractor")


@dataclass(frozen=True, slots=True)
class StatementFile:
    """An uploaded file: name, raw bytes, and declared MIME type."""

    name: str
    content: bytes
    mime_type: str = ""

    @classmethod
    def from_path(cls, path: str | PathLike[str]) -> StatementFile:
        p = Path(path)
        guessed, _ = mimetypes.guess_type(p.name)
        return cls(name=p.name, content=p.read_bytes(), mime_type=guessed or "")

    @property
    def suffix(self) -> str:
        return Path(self.name).suffix.lower()

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def kind(self) -> FileKind:
        mime = self.mime_type.lower()
        if self.suffix == ".csv" or mime == "text/csv":
            return "delimited"
        if self.suffix == ".txt" or mime == "text/plain":
            return "text"
        if self.suffix == ".pdf" or mime == PDF_MIME_TYPE:
            return "pdf"
        return "unsupported"

    def text(self) -> str:
        """Decode as UTF-8 (BOM tolerated), falling back to latin-1."""

        try:
            return self.content.decode("utf-8-sig")
        except UnicodeDecodeError:
            return self.content.decode("latin-1")


def is_ledger_file(file: StatementFile) -> bool:
    """True for spreadsheets and for CSVs large enough to be a prior export."""

    mime = file.mime_type.lower()
    if file.suffix in _LEDGER_SUFFIXES:
        return True
    if any(marker in mime for marker in _LEDGER_MIME_MARKERS):
        return True
    return file.suffix == ".csv" and file.size > LARGE_CSV_LEDGER_BYTES


# ---------------------------------------------------------------------------
# AI extraction response
# ---------------------------------------------------------------------------


def find_json_payload(text: str) -> Any:
    """Return the first balanced JSON object or array embedded in ``text``.

    Models often wrap JSON in prose or code fences; scanning for the first
    position where a complete value decodes is enough to strip that.
    Raises ``ValueError`` when no JSON value is found.
    """

    decoder = json.JSONDecoder()
    for i, ch in enumerate(text):
        if ch not in "{[":
            continue
        try:
            value, _ = decoder.raw_decode(text, i)
        except json.JSONDecodeError:
            continue
        if isinstance(value, (dict, list)):
            return value
    raise ValueError("no JSON object or array found in model output")


def parse_extraction_response(text: str) -> tuple[list[RawTransaction], int]:
    """Decode an extraction answer into ``(valid_rows, discarded_count)``."""

    payload = find_json_payload(text)
    if isinstance(payload, dict):
        items = payload.get("transactions")
        if not isinstance(items, list):
            raise ValueError("JSON object has no 'transactions' array")
    else:
        items = payload
    return validate_extracted_items(items)


@dataclass(frozen=True, slots=True)
class FileExtraction:
    """Rows extracted from one file plus how many candidates were dropped."""

    rows: tuple[RawTransaction, ...]
    dropped_rows: int = 0


def _normalized(raw: RawTransaction) -> RawTransaction:
    return RawTransaction(
        date=normalize_date(raw.date),
        description=raw.description.strip(),
        amount=raw.amount,
    )


def _extract_with_ai(
    file: StatementFile, assistant: Assistant, document: bytes | str
) -> FileExtraction:
    # Uploads often declare a generic MIME (application/octet-stream); the
    # assistant routes on it, so send the one implied by the detected kind.
    mime_type = _MIME_BY_KIND[file.kind]
    try:
        answer = assistant.extract_transactions(document, filename=file.name, mime_type=mime_type)
    except (ConfigurationError, PipelineCancelled):
        raise
    except Exception as e:  # noqa: BLE001 - transport errors vary by SDK
        raise ExtractionError(f"{file.name}: AI extraction failed ({type(e).__name__}: {e})") from e
    try:
        rows, discarded = parse_extraction_response(answer)
    except ValueError as e:
        raise ExtractionError(f"{file.name}: {e}") from e
    if discarded:
        _logger.info("extract:ai_items_discarded filename=%s count=%d", file.name, discarded)
    return FileExtraction(rows=tuple(_normalized(r) for r in rows), dropped_rows=discarded)


def extract_file(file: StatementFile, *, assistant: Assistant) -> FileExtraction:
    """Like :func:`extract` but also reports the number of dropped rows."""

    kind = file.kind
    if kind == "unsupported":
        raise ExtractionError(
            f"{file.name}: unsupported file type (mime_type={file.mime_type or 'unknown'})"
        )

    if kind == "pdf":
        if not assistant.available:
            raise ConfigurationError(f"{file.name}: PDF statements require AI extraction")
        result = _extract_with_ai(file, assistant, file.content)
    else:
        text = file.text()
        sniffed = sniff(text)
        result = FileExtraction(rows=sniffed.rows, dropped_rows=sniffed.dropped_rows)
        if not result.rows and text.strip():
            if not assistant.available:
                raise ConfigurationError(
                    f"{file.name}: no table recognized; free-text statements require AI extraction"
                )
            _logger.info("extract:ai_fallback filename=%s kind=%s", file.name, kind)
            result = _extract_with_ai(file, assistant, text)

    if not result.rows:
        raise ExtractionError(f"{file.name}: no transactions found")
    return result


def extract(file: StatementFile, *, assistant: Assistant) -> list[RawTransaction]:
    """Extract raw transactions from a single statement file.

    Raises :class:`ExtractionError` when the file yields nothing and
    :class:`ConfigurationError` when it needs the AI and none is available.
    """

    return list(extract_file(file, assistant=assistant).rows)


@dataclass(frozen=True, slots=True)
class ExtractionBatch:
    transactions: tuple[RawTransaction, ...]
    errors: tuple[FileError, ...] = ()
    dropped_rows: int = 0


def extract_many(
    files: Iterable[StatementFile],
    *,
    assistant: Assistant,
    concurrency: int = 4,
    cancel: threading.Event | None = None,
) -> ExtractionBatch:
    """Extract every file independently; concatenate results in input order."""

    items: Sequence[StatementFile] = list(files)

    def _one(file: StatementFile) -> FileExtraction | FileError:
        try:
            res = extract_file(file, assistant=assistant)
        except PipelineCancelled:
            raise
        except Exception as e:  # noqa: BLE001 - isolate per-file failures
            _logger.warning(
                "extract:file_failed filename=%s error_type=%s error=%s",
                file.name,
                type(e).__name__,
                e,
            )
            return FileError(filename=file.name, error=e)
        _logger.info(
            "extract:file_done filename=%s rows=%d dropped=%d",
            file.name,
            len(res.rows),
            res.dropped_rows,
        )
        return res

    outcomes = p_map(items, _one, concurrency=concurrency, cancel=cancel)

    rows: list[RawTransaction] = []
    errors: list[FileError] = []
    dropped = 0
    for outcome in outcomes:
        if isinstance(outcome, FileError):
            errors.append(outcome)
        else:
            rows.extend(outcome.rows)
            dropped += outcome.dropped_rows
    return ExtractionBatch(transactions=tuple(rows), errors=tuple(errors), dropped_rows=dropped)


__all__ = [
    "LARGE_CSV_LEDGER_BYTES",
    "ExtractionBatch",
    "FileExtraction",
    "StatementFile",
    "extract",
    "extract_file",
    "extract_many",
    "find_json_payload",
    "is_ledger_file",
    "parse_extraction_response",
]
