"""Date and amount normalization for bank-statement fields.

Statements from different banks disagree on date order, zero padding, and
decimal separators. The helpers here convert raw cell text into the
canonical forms used throughout the package:

- dates: ``DD/MM/YYYY`` (day-first is the locale convention);
- amounts: ``float`` with sign (``NaN`` when unparseable);
- months: three-letter Portuguese codes (``JAN`` .. ``DEZ``).

None of these helpers raise on bad input. Callers treat an unparsed date or
a ``NaN`` amount as a soft, row-level failure.
"""

from __future__ import annotations

import math
import re
from datetime import date

from .logging_setup import get_logger

MONTH_CODES: tuple[str, ...] = (
    "JAN",
    "FEV",
    "MAR",
    "ABR",
    "MAI",
    "JUN",
    "JUL",
    "AGO",
    "SET",
    "OUT",
    "NOV",
    "DEZ",
)
_FALLBACK_MONTH = "JAN"

_DATE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^\d{1,2}/\d{1,2}/\d{4}$"),  # DD/MM/YYYY or MM/DD/YYYY
    re.compile(r"^\d{4}-\d{1,2}-\d{1,2}$"),  # YYYY-MM-DD
    re.compile(r"^\d{1,2}-\d{1,2}-\d{4}$"),  # DD-MM-YYYY
    re.compile(r"^\d{1,2}[/\-]\d{1,2}[/\-]\d{2}$"),  # two-digit year
)
_DATE_PARTS_RE = re.compile(r"^(\d{1,4})[/\-.](\d{1,2})[/\-.](\d{2,4})$")
_AMOUNT_CHARS_RE = re.compile(r"[^\d,.\-]")

_logger = get_logger("statement_budget.normalizers")


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


def is_valid_date(value: str | None) -> bool:
    """Return True when ``value`` has one of the accepted date shapes.

    Shape only: ``"31/02/2024"`` passes here and fails later in
    :func:`parse_date`.
    """

    if not value or not isinstance(value, str):
        return False
    s = value.strip()
    return any(p.match(s) for p in _DATE_PATTERNS)


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _expand_year(raw: str) -> int | None:
    if len(raw) == 4:
        return int(raw)
    if len(raw) == 2:
        return 2000 + int(raw)
    return None


def parse_date(value: str | None) -> date | None:
    """Parse a statement date into a :class:`datetime.date`.

    Resolution order:
    - a leading four-digit group is year-first (``YYYY-MM-DD``);
    - otherwise day-first (``DD/MM/YYYY``, ``DD-MM-YYYY``); when day-first is
      out of range but month-first is valid, month-first wins;
    - a trailing two-digit year is read as ``20YY``.
    """

    if not value:
        return None
    s = value.strip().split()[0] if value.strip() else ""
    m = _DATE_PARTS_RE.match(s)
    if not m:
        return None
    a, b, c = m.groups()

    if len(a) == 4:
        return _safe_date(int(a), int(b), int(c))
    if len(a) > 2:
        return None

    year = _expand_year(c)
    if year is None:
        return None
    first, second = int(a), int(b)
    day_first = _safe_date(year, second, first)
    if day_first is not None:
        return day_first
    return _safe_date(year, first, second)


def normalize_date(value: str) -> str:
    """Return ``value`` as ``DD/MM/YYYY``; the lower-cased input when unparseable."""

    parsed = parse_date(value)
    if parsed is None:
        return (value or "").strip().lower()
    return f"{parsed.day:02d}/{parsed.month:02d}/{parsed.year:04d}"


def month_of(value: str) -> str:
    """Return the three-letter month code of ``value``.

    Falls back to ``"JAN"`` when the date cannot be parsed. The fallback is
    lossy and is logged so operators can spot misfiled transactions.
    """

    parsed = parse_date(value)
    if parsed is None:
        _logger.warning("normalize:month_fallback date=%r month=%s", value, _FALLBACK_MONTH)
        return _FALLBACK_MONTH
    return MONTH_CODES[parsed.month - 1]


def month_sort_key(code: str) -> int:
    """Calendar position of a month code; unknown codes sort last."""

    try:
        return MONTH_CODES.index(code)
    except ValueError:
        return len(MONTH_CODES)


# ---------------------------------------------------------------------------
# Amounts
# ---------------------------------------------------------------------------


def _strip_sign_markers(s: str) -> tuple[str, bool]:
    """Remove sign markers, returning ``(digits_text, negative)``.

    Accepts a leading ``-``, a trailing ``-`` (``150,00-``) and surrounding
    parentheses (``(150,00)``), in any combination.
    """

    negative = False
    if s.startswith("(") and s.endswith(")") and len(s) >= 2:
        negative = True
        s = s[1:-1].strip()
    if s.endswith("-"):
        negative = True
        s = s[:-1]
    if s.startswith("-"):
        negative = True
        s = s[1:]
    return s, negative


def _resolve_separators(s: str) -> str:
    """Rewrite ``s`` so only a single ASCII dot marks the decimal position."""

    has_comma = "," in s
    has_dot = "." in s
    if has_comma and has_dot:
        # The separator that appears last is the decimal separator.
        if s.rfind(",") > s.rfind("."):
            return s.replace(".", "").replace(",", ".")
        return s.replace(",", "")
    if has_comma:
        parts = s.split(",")
        if len(parts) == 2 and len(parts[-1]) <= 2:
            return s.replace(",", ".")
        if len(parts) > 2 and len(parts[-1]) <= 2:
            # "1,234,56" is malformed; keep the comma-decimal reading of the tail.
            return "".join(parts[:-1]) + "." + parts[-1]
        return s.replace(",", "")
    if has_dot and s.count(".") > 1:
        parts = s.split(".")
        if len(parts[-1]) == 3:
            return s.replace(".", "")
        return "".join(parts[:-1]) + "." + parts[-1]
    return s


def parse_amount(value: str | float | int | None) -> float:
    """Parse a localized amount string into a signed ``float``.

    Returns ``math.nan`` on empty or unparseable input; callers must check
    with :func:`math.isnan` and skip the record.

    Examples: ``"1.234,56"`` and ``"1,234.56"`` -> ``1234.56``;
    ``"100,00"`` -> ``100.0``; ``"R$ -150,00"`` -> ``-150.0``.
    """

    if value is None:
        return math.nan
    if isinstance(value, bool):
        return math.nan
    if isinstance(value, (int, float)):
        return float(value)

    s = value.strip()
    negative_paren = s.startswith("(") and s.endswith(")")
    s = _AMOUNT_CHARS_RE.sub("", s)
    if negative_paren:
        s = f"({s})"
    if not s:
        return math.nan

    s, negative = _strip_sign_markers(s)
    if not s or "-" in s:
        return math.nan

    s = _resolve_separators(s)
    if not s or s == ".":
        return math.nan
    try:
        number = float(s)
    except ValueError:
        return math.nan
    return -number if negative else number


def is_nonzero_amount(value: float) -> bool:
    return not math.isnan(value) and value != 0


def format_amount(value: float) -> str:
    """Two-decimal ASCII rendering used for fingerprints and exports."""

    return f"{value:.2f}"


__all__ = [
    "MONTH_CODES",
    "format_amount",
    "is_nonzero_amount",
    "is_valid_date",
    "month_of",
    "month_sort_key",
    "normalize_date",
    "parse_amount",
    "parse_date",
]
