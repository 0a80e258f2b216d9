"""Transaction categorization: AI first, deterministic keyword fallback.

Every transaction ends up with a ``"Group: Item"`` label and a confidence.
The AI path asks the :class:`~statement_budget.assistant.Assistant` and
parses its ``Categoria:``/``Confiança:`` answer; any failure on that path
(transport error, unparseable or unknown label) degrades that single
transaction to :func:`fallback_categorize`. Failures never propagate out of
:meth:`CategorizationEngine.categorize`.
"""

from __future__ import annotations

import re
import threading
from collections.abc import Iterable, Sequence
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .assistant import Assistant
from .errors import StatementBudgetError
from .logging_setup import get_logger
from .models import REVIEW_THRESHOLD, RawTransaction, Transaction
from .pmap import p_map
from .taxonomy import (
    DEFAULT_CATEGORY,
    DEFAULT_REVENUE_CATEGORY,
    Taxonomy,
    fold_text,
    format_label,
    split_label,
)

_logger = get_logger("statement_budget.categorization")


class CategoryDecision(BaseModel):
    """A category label with its confidence and where it came from."""

    model_config = ConfigDict(frozen=True)

    category: str
    confidence: float = Field(ge=0.0, le=1.0)
    source: Literal["ai", "fallback"]


# ---------------------------------------------------------------------------
# Offline fallback
# ---------------------------------------------------------------------------

# (any-of keywords, all-of keywords, label, confidence), evaluated in order for
# positive amounts.
REVENUE_RULES: tuple[tuple[tuple[str, ...], tuple[str, ...], str, float], ...] = (
    (("salario", "remuneracao"), (), "Receita Fixa: Salário", 0.8),
    (("aposentadoria", "inss"), (), "Receita Fixa: Aposentadoria", 0.8),
    (("aluguel",), ("recebido",), "Receita Fixa: Aluguel Recebido", 0.8),
    (("freelance", "consultoria", "projeto"), (), "Receita Variável: Freelance", 0.7),
    (("transferencia", "pix", "ted"), ("recebid",), DEFAULT_REVENUE_CATEGORY, 0.6),
)
_UNKNOWN_REVENUE_CONFIDENCE = 0.5
KEYWORD_MATCH_CONFIDENCE = 0.7

# Applied when no expense keyword matched; all map to the default label.
LOW_CONFIDENCE_RULES: tuple[tuple[tuple[str, ...], float], ...] = (
    (("transferencia", "pix"), 0.3),
    (("pagamento", "debito automatico"), 0.2),
    (("compra cartao",), 0.4),
)
_UNKNOWN_EXPENSE_CONFIDENCE = 0.3


def _capitalize(keyword: str) -> str:
    return keyword[:1].upper() + keyword[1:]


def fallback_categorize(description: str, amount: float, taxonomy: Taxonomy) -> CategoryDecision:
    """Categorize from keywords alone. Deterministic and offline.

    Matching is a case- and accent-insensitive substring test. For expenses
    the first keyword hit (groups in declaration order, keywords in list order)
    wins and the item is the capitalized keyword.
    """

    text = fold_text(description)

    if amount > 0:
        for any_of, all_of, label, confidence in REVENUE_RULES:
            if any(k in text for k in any_of) and all(k in text for k in all_of):
                return CategoryDecision(category=label, confidence=confidence, source="fallback")
        return CategoryDecision(
            category=DEFAULT_REVENUE_CATEGORY,
            confidence=_UNKNOWN_REVENUE_CONFIDENCE,
            source="fallback",
        )

    for group in taxonomy.expense_groups():
        for keyword in group.keywords:
            if keyword and keyword in text:
                return CategoryDecision(
                    category=format_label(group.name, _capitalize(keyword)),
                    confidence=KEYWORD_MATCH_CONFIDENCE,
                    source="fallback",
                )

    for keywords, confidence in LOW_CONFIDENCE_RULES:
        if any(k in text for k in keywords):
            return CategoryDecision(category=DEFAULT_CATEGORY, confidence=confidence, source="fallback")
    return CategoryDecision(
        category=DEFAULT_CATEGORY,
        confidence=_UNKNOWN_EXPENSE_CONFIDENCE,
        source="fallback",
    )


# ---------------------------------------------------------------------------
# AI response parsing
# ---------------------------------------------------------------------------

_CATEGORY_LINE_RE = re.compile(
    r"^[\s*_>-]*(?:categoria|category)[\s*_]*:[\s*_]*(?P<label>.+?)[\s*_]*$",
    re.IGNORECASE | re.MULTILINE,
)
_CONFIDENCE_LINE_RE = re.compile(
    r"^[\s*_>-]*(?:confian[çc]a|confidence)[\s*_]*:[\s*_]*(?P<value>\d+(?:[.,]\d+)?)",
    re.IGNORECASE | re.MULTILINE,
)
_LABEL_STRIP = "[]\"'`. "


def parse_category_response(text: str, taxonomy: Taxonomy) -> tuple[str, float]:
    """Parse ``Categoria:``/``Confiança:`` lines into ``(label, confidence)``.

    Raises ``ValueError`` when either line is missing, the label is not a
    ``Group: Item`` with a known group, or the confidence is outside [0, 1].
    """

    cat_match = _CATEGORY_LINE_RE.search(text or "")
    if cat_match is None:
        raise ValueError("category line missing from model output")
    conf_match = _CONFIDENCE_LINE_RE.search(text or "")
    if conf_match is None:
        raise ValueError("confidence line missing from model output")

    raw_label = cat_match.group("label").strip(_LABEL_STRIP)
    parts = split_label(raw_label)
    if parts is None or not taxonomy.is_compatible(raw_label):
        raise ValueError(f"label {raw_label!r} is not in the taxonomy")
    label = format_label(*parts)

    confidence = float(conf_match.group("value").replace(",", "."))
    if not 0.0 <= confidence <= 1.0:
        raise ValueError(f"confidence {confidence!r} outside [0, 1]")
    return label, confidence


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


def needs_review(transaction: Transaction) -> bool:
    return transaction.confidence < REVIEW_THRESHOLD


class CategorizationEngine:
    """Categorizes transactions against one taxonomy with one assistant."""

    def __init__(self, assistant: Assistant, taxonomy: Taxonomy) -> None:
        self._assistant = assistant
        self._taxonomy = taxonomy

    @property
    def taxonomy(self) -> Taxonomy:
        return self._taxonomy

    def categorize(self, description: str, amount: float) -> CategoryDecision:
        if self._assistant.available:
            try:
                text = self._assistant.categorize(description, amount, self._taxonomy)
                label, confidence = parse_category_response(text, self._taxonomy)
                return CategoryDecision(category=label, confidence=confidence, source="ai")
            except (StatementBudgetError, ValueError) as e:
                _logger.warning(
                    "categorize:ai_unusable description=%r error=%s", description, e
                )
            except Exception as e:  # noqa: BLE001 - transport errors vary by SDK
                _logger.warning(
                    "categorize:ai_failed description=%r error_type=%s error=%s",
                    description,
                    type(e).__name__,
                    e,
                )
        decision = fallback_categorize(description, amount, self._taxonomy)
        _logger.debug(
            "categorize:fallback description=%r category=%s confidence=%.2f",
            description,
            decision.category,
            decision.confidence,
        )
        return decision

    def categorize_raw(self, raw: RawTransaction) -> Transaction:
        decision = self.categorize(raw.description, raw.amount)
        return Transaction.create(
            date=raw.date,
            description=raw.description,
            amount=raw.amount,
            category=decision.category,
            confidence=decision.confidence,
        )

    def categorize_all(
        self,
        raws: Iterable[RawTransaction],
        *,
        concurrency: int,
        cancel: threading.Event | None = None,
    ) -> list[Transaction]:
        """Categorize ``raws`` with at most ``concurrency`` calls in flight.

        Output order matches input order. A set ``cancel`` raises
        :class:`~statement_budget.errors.PipelineCancelled`.
        """

        items: Sequence[RawTransaction] = list(raws)
        _logger.info(
            "categorize:start num_transactions=%d concurrency=%d ai=%s",
            len(items),
            concurrency,
            self._assistant.available,
        )
        out = p_map(items, self.categorize_raw, concurrency=concurrency, cancel=cancel)
        _logger.info(
            "categorize:done num_transactions=%d needs_review=%d",
            len(out),
            sum(1 for t in out if needs_review(t)),
        )
        return out


__all__ = [
    "KEYWORD_MATCH_CONFIDENCE",
    "LOW_CONFIDENCE_RULES",
    "REVENUE_RULES",
    "CategorizationEngine",
    "CategoryDecision",
    "fallback_categorize",
    "needs_review",
    "parse_category_response",
]
