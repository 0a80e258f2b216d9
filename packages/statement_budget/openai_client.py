"""OpenAI Responses API implementation of :class:`~statement_budget.assistant.Assistant`.

One SDK client is created per assistant instance and shared by all worker
threads. Calls are single-shot: errors propagate to the caller, which decides
whether to fall back (categorization) or record a per-file failure
(extraction).
"""

from __future__ import annotations

import base64
import time
from typing import Any

from openai import OpenAI

from . import prompting
from .logging_setup import get_logger
from .taxonomy import Taxonomy

_logger = get_logger("statement_budget.openai_client")

PDF_MIME_TYPE = "application/pdf"


def _part_text(part: Any) -> str | None:
    text = getattr(part, "text", None)
    if isinstance(text, str):
        return text
    value = getattr(text, "value", None)
    return value if isinstance(value, str) else None


def _response_text(resp: Any) -> str:
    """Return the model's answer from a Responses API result.

    ``output_text`` when the SDK aggregates it; otherwise the text parts of
    every output message, joined in order. Reasoning items carry no text parts
    and are skipped. Raises ``ValueError`` when the result holds no text.
    """

    aggregated = getattr(resp, "output_text", None)
    if isinstance(aggregated, str) and aggregated:
        return aggregated
    parts = [
        text
        for item in getattr(resp, "output", None) or ()
        for part in getattr(item, "content", None) or ()
        if (text := _part_text(part))
    ]
    if not parts:
        raise ValueError("Responses API result holds no text output")
    return "".join(parts)


def _pdf_input(document: bytes, *, filename: str, prompt: str) -> list[dict[str, Any]]:
    encoded = base64.b64encode(document).decode("ascii")
    return [
        {
            "role": "user",
            "content": [
                {
                    "type": "input_file",
                    "filename": filename,
                    "file_data": f"data:{PDF_MIME_TYPE};base64,{encoded}",
                },
                {"type": "input_text", "text": prompt},
            ],
        }
    ]


class OpenAIAssistant:
    """Assistant backed by ``OpenAI().responses.create``."""

    def __init__(self, *, model: str, api_key: str | None = None) -> None:
        self._model = model
        self._client = OpenAI(api_key=api_key) if api_key else OpenAI()

    @property
    def available(self) -> bool:
        return True

    @property
    def model(self) -> str:
        return self._model

    def _respond(self, *, task: str, instructions: str, input: Any) -> str:
        t0 = time.perf_counter()
        resp = self._client.responses.create(
            model=self._model,
            instructions=instructions,
            input=input,
        )
        text = _response_text(resp)
        _logger.debug(
            "openai:%s_done model=%s latency_ms=%.2f chars=%d",
            task,
            self._model,
            (time.perf_counter() - t0) * 1000.0,
            len(text),
        )
        return text

    def categorize(self, description: str, amount: float, taxonomy: Taxonomy) -> str:
        return self._respond(
            task="categorize",
            instructions=prompting.CATEGORIZE_SYSTEM_INSTRUCTIONS,
            input=prompting.build_categorize_prompt(description, amount, taxonomy),
        )

    def extract_transactions(
        self,
        document: bytes | str,
        *,
        filename: str,
        mime_type: str,
    ) -> str:
        if isinstance(document, bytes) and mime_type == PDF_MIME_TYPE:
            prompt = prompting.build_extract_prompt(filename=filename)
            payload: Any = _pdf_input(document, filename=filename, prompt=prompt)
        else:
            if isinstance(document, bytes):
                document = document.decode("utf-8", errors="replace")
            payload = prompting.build_extract_prompt(filename=filename, document_text=document)
        _logger.info("openai:extract_request filename=%s mime_type=%s", filename, mime_type)
        return self._respond(
            task="extract",
            instructions=prompting.EXTRACT_SYSTEM_INSTRUCTIONS,
            input=payload,
        )


__all__ = ["PDF_MIME_TYPE", "OpenAIAssistant"]
