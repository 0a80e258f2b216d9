"""Runtime settings resolved from the environment.

Entrypoints load ``.env`` (see :mod:`statement_budget.cli`) and then call
:meth:`Settings.from_env`. Library functions receive a ``Settings`` instance
explicitly; nothing in the package reads the environment at import time.

Variables
---------
- ``OPENAI_API_KEY``: enables the network-backed assistant.
- ``SB_OPENAI_MODEL``: Responses API model name (default ``gpt-4.1-mini``).
- ``SB_EXTRACT_CONCURRENCY``: parallel statement files (default 4).
- ``SB_CATEGORY_CONCURRENCY``: parallel categorization calls (default 4).
- ``SB_TAXONOMY_PATH``: optional JSON file replacing the built-in taxonomy.
- ``SB_LOG_LEVEL``: logging level name for the CLI.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path

DEFAULT_MODEL = "gpt-4.1-mini"
_DEFAULT_CONCURRENCY = 4
# Upper bound to stay gentle on upstream rate limits.
_MAX_CONCURRENCY = 32


def _resolve_concurrency(raw: str | None, default: int = _DEFAULT_CONCURRENCY) -> int:
    """Parse a worker count, clamping to ``1.._MAX_CONCURRENCY``.

    Unparseable or non-positive values fall back to ``default``.
    """

    try:
        value = int(raw) if raw else None
    except ValueError:
        value = None
    if value is None or value <= 0:
        return default
    return max(1, min(value, _MAX_CONCURRENCY))


def _non_blank(raw: str | None) -> str | None:
    if raw is None:
        return None
    s = raw.strip()
    return s or None


@dataclass(frozen=True, slots=True)
class Settings:
    openai_api_key: str | None = None
    openai_model: str = DEFAULT_MODEL
    extract_concurrency: int = _DEFAULT_CONCURRENCY
    category_concurrency: int = _DEFAULT_CONCURRENCY
    taxonomy_path: Path | None = None
    log_level: str | None = None

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> Settings:
        """Build settings from ``env`` (defaults to ``os.environ``)."""

        src = os.environ if env is None else env
        taxonomy_raw = _non_blank(src.get("SB_TAXONOMY_PATH"))
        return cls(
            openai_api_key=_non_blank(src.get("OPENAI_API_KEY")),
            openai_model=_non_blank(src.get("SB_OPENAI_MODEL")) or DEFAULT_MODEL,
            extract_concurrency=_resolve_concurrency(src.get("SB_EXTRACT_CONCURRENCY")),
            category_concurrency=_resolve_concurrency(src.get("SB_CATEGORY_CONCURRENCY")),
            taxonomy_path=Path(taxonomy_raw).expanduser() if taxonomy_raw else None,
            log_level=_non_blank(src.get("SB_LOG_LEVEL")),
        )

    @property
    def ai_configured(self) -> bool:
        return self.openai_api_key is not None

    def with_overrides(self, **changes: object) -> Settings:
        """Return a copy with the given fields replaced (``None`` values ignored)."""

        return replace(self, **{k: v for k, v in changes.items() if v is not None})


__all__ = ["DEFAULT_MODEL", "Settings"]
