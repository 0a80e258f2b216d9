"""The AI collaborator interface.

The pipeline talks to a language model through exactly two calls, captured by
the :class:`Assistant` protocol:

- ``categorize``: free-text answer expected to contain ``Categoria:`` and
  ``Confiança:`` lines (parsed by
  :func:`statement_budget.categorization.parse_category_response`);
- ``extract_transactions``: free-text answer expected to contain a JSON
  object with a ``transactions`` array (parsed by the extractor).

Implementations return raw model text and raise on transport failures;
callers own parsing and fallbacks. :class:`OfflineAssistant` is the
"no AI configured" implementation: ``available`` is ``False`` and both calls
raise :class:`ConfigurationError`.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .errors import ConfigurationError
from .openai_client import OpenAIAssistant
from .settings import Settings
from .taxonomy import Taxonomy


@runtime_checkable
class Assistant(Protocol):
    @property
    def available(self) -> bool: ...

    def categorize(self, description: str, amount: float, taxonomy: Taxonomy) -> str: ...

    def extract_transactions(
        self,
        document: bytes | str,
        *,
        filename: str,
        mime_type: str,
    ) -> str: ...


class OfflineAssistant:
    """Assistant used when no credentials are configured or AI is disabled."""

    @property
    def available(self) -> bool:
        return False

    def categorize(self, description: str, amount: float, taxonomy: Taxonomy) -> str:
        raise ConfigurationError("AI categorization is not configured")

    def extract_transactions(
        self,
        document: bytes | str,
        *,
        filename: str,
        mime_type: str,
    ) -> str:
        raise ConfigurationError(f"AI extraction is not configured; cannot read {filename!r}")


def build_assistant(settings: Settings, *, offline: bool = False) -> Assistant:
    """Return the OpenAI-backed assistant when configured, else the offline one."""

    if offline or not settings.ai_configured:
        return OfflineAssistant()

    return OpenAIAssistant(model=settings.openai_model, api_key=settings.openai_api_key)


__all__ = ["Assistant", "OfflineAssistant", "build_assistant"]
