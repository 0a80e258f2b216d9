from __future__ import annotations

import base64
from types import SimpleNamespace
from typing import Any

import pytest

import statement_budget.openai_client as oc
from statement_budget import prompting
from statement_budget.assistant import OfflineAssistant, build_assistant
from statement_budget.settings import Settings
from statement_budget.taxonomy import default_taxonomy
from tests.helpers.openai_stub import OpenAIStub


def _install(monkeypatch: pytest.MonkeyPatch, respond) -> OpenAIStub:
    stub = OpenAIStub(respond)
    monkeypatch.setattr(oc, "OpenAI", stub)
    return stub


def test_categorize_sends_taxonomy_prompt(monkeypatch: pytest.MonkeyPatch) -> None:
    stub = _install(monkeypatch, lambda kw: "Categoria: Lazer: Cinema\nConfiança: 0.9")
    assistant = oc.OpenAIAssistant(model="gpt-test", api_key="sk-test")

    out = assistant.categorize("CINEMARK", -40.0, default_taxonomy())

    assert out == "Categoria: Lazer: Cinema\nConfiança: 0.9"
    assert stub.client_kwargs == [{"api_key": "sk-test"}]
    (call,) = stub.calls
    assert call["model"] == "gpt-test"
    assert call["instructions"] == prompting.CATEGORIZE_SYSTEM_INSTRUCTIONS
    assert 'DESCRIÇÃO: "CINEMARK"' in call["input"]
    assert "VALOR: R$ 40.00" in call["input"]
    assert "TIPO: DESPESA" in call["input"]
    assert "Lazer: " in call["input"]


def test_extract_pdf_attaches_file_part(monkeypatch: pytest.MonkeyPatch) -> None:
    stub = _install(monkeypatch, lambda kw: '{"transactions": []}')
    assistant = oc.OpenAIAssistant(model="gpt-test")

    assistant.extract_transactions(b"%PDF-1.4", filename="extrato.pdf", mime_type=oc.PDF_MIME_TYPE)

    assert stub.client_kwargs == [{}]
    call = stub.calls[0]
    assert call["instructions"] == prompting.EXTRACT_SYSTEM_INSTRUCTIONS
    (message,) = call["input"]
    file_part, text_part = message["content"]
    assert file_part["type"] == "input_file"
    assert file_part["filename"] == "extrato.pdf"
    encoded = base64.b64encode(b"%PDF-1.4").decode("ascii")
    assert file_part["file_data"] == f"data:application/pdf;base64,{encoded}"
    assert text_part["type"] == "input_text"
    assert "extrato.pdf" in text_part["text"]


def test_extract_text_embeds_document(monkeypatch: pytest.MonkeyPatch) -> None:
    stub = _install(monkeypatch, lambda kw: '{"transactions": []}')
    assistant = oc.OpenAIAssistant(model="gpt-test")

    assistant.extract_transactions(
        "05/03/2024 PADARIA -8,50", filename="extrato.txt", mime_type="text/plain"
    )

    prompt = stub.calls[0]["input"]
    assert isinstance(prompt, str)
    assert "05/03/2024 PADARIA -8,50" in prompt


def test_response_text_falls_back_to_output_content(monkeypatch: pytest.MonkeyPatch) -> None:
    nested = SimpleNamespace(
        output_text=None,
        output=[SimpleNamespace(content=[SimpleNamespace(text=SimpleNamespace(value="ok"))])],
    )
    _install(monkeypatch, lambda kw: nested)
    out = oc.OpenAIAssistant(model="m").categorize("X", -1.0, default_taxonomy())
    assert out == "ok"


def test_response_text_joins_message_parts_and_skips_reasoning(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    resp = SimpleNamespace(
        output=[
            SimpleNamespace(type="reasoning", summary=[]),
            SimpleNamespace(
                type="message",
                content=[
                    SimpleNamespace(type="output_text", text="Categoria: Lazer: Streaming\n"),
                    SimpleNamespace(type="output_text", text="Confiança: 0.9"),
                ],
            ),
        ],
    )
    _install(monkeypatch, lambda kw: resp)
    out = oc.OpenAIAssistant(model="m").categorize("NETFLIX", -39.9, default_taxonomy())
    assert out == "Categoria: Lazer: Streaming\nConfiança: 0.9"


def test_response_without_text_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    _install(monkeypatch, lambda kw: SimpleNamespace(output_text="", output=[]))
    with pytest.raises(ValueError):
        oc.OpenAIAssistant(model="m").categorize("X", -1.0, default_taxonomy())


def test_transport_errors_propagate(monkeypatch: pytest.MonkeyPatch) -> None:
    def boom(kw: dict[str, Any]) -> str:
        raise ConnectionError("down")

    _install(monkeypatch, boom)
    with pytest.raises(ConnectionError):
        oc.OpenAIAssistant(model="m").categorize("X", -1.0, default_taxonomy())


def test_build_assistant_selects_implementation(monkeypatch: pytest.MonkeyPatch) -> None:
    _install(monkeypatch, lambda kw: "")
    assert isinstance(build_assistant(Settings()), OfflineAssistant)
    keyed = Settings(openai_api_key="sk-test", openai_model="gpt-x")
    assert isinstance(build_assistant(keyed, offline=True), OfflineAssistant)
    online = build_assistant(keyed)
    assert isinstance(online, oc.OpenAIAssistant)
    assert online.available
    assert online.model == "gpt-x"
