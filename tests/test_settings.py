from __future__ import annotations

import logging
from pathlib import Path

import pytest

from statement_budget.logging_setup import resolve_level
from statement_budget.settings import DEFAULT_MODEL, Settings


def test_defaults_from_empty_env() -> None:
    s = Settings.from_env({})
    assert s.openai_api_key is None
    assert not s.ai_configured
    assert s.openai_model == DEFAULT_MODEL
    assert s.extract_concurrency == 4
    assert s.category_concurrency == 4
    assert s.taxonomy_path is None


def test_reads_values_from_env() -> None:
    s = Settings.from_env(
        {
            "OPENAI_API_KEY": " sk-test ",
            "SB_OPENAI_MODEL": "gpt-test",
            "SB_EXTRACT_CONCURRENCY": "2",
            "SB_CATEGORY_CONCURRENCY": "8",
            "SB_TAXONOMY_PATH": "/tmp/tax.json",
            "SB_LOG_LEVEL": "debug",
        }
    )
    assert s.openai_api_key == "sk-test"
    assert s.ai_configured
    assert s.openai_model == "gpt-test"
    assert (s.extract_concurrency, s.category_concurrency) == (2, 8)
    assert s.taxonomy_path == Path("/tmp/tax.json")
    assert s.log_level == "debug"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("0", 4), ("-3", 4), ("abc", 4), ("", 4), ("1000", 32), ("7", 7)],
)
def test_concurrency_is_clamped(raw: str, expected: int) -> None:
    assert Settings.from_env({"SB_CATEGORY_CONCURRENCY": raw}).category_concurrency == expected


def test_blank_api_key_means_unconfigured() -> None:
    assert not Settings.from_env({"OPENAI_API_KEY": "   "}).ai_configured


def test_from_env_reads_process_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SB_EXTRACT_CONCURRENCY", "3")
    assert Settings.from_env().extract_concurrency == 3


def test_with_overrides_ignores_none() -> None:
    s = Settings().with_overrides(extract_concurrency=None, category_concurrency=2)
    assert s.extract_concurrency == 4
    assert s.category_concurrency == 2


@pytest.mark.parametrize(
    ("level", "env", "expected"),
    [
        (logging.WARNING, None, logging.WARNING),
        ("debug", None, logging.DEBUG),
        (" 15 ", None, 15),
        (None, "error", logging.ERROR),
        (None, "loud", logging.INFO),
        (None, None, logging.INFO),
        ("nonsense", "debug", logging.INFO),
    ],
)
def test_resolve_log_level(
    monkeypatch: pytest.MonkeyPatch, level: int | str | None, env: str | None, expected: int
) -> None:
    if env is not None:
        monkeypatch.setenv("SB_LOG_LEVEL", env)
    assert resolve_level(level) == expected
