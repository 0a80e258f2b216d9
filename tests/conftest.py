"""Pytest configuration for test isolation.

The CLI loads ``.env`` from the working directory and ``Settings.from_env``
reads ``OPENAI_API_KEY`` and ``SB_*`` variables. A developer's real
environment would otherwise switch tests onto the network-backed assistant or
change concurrency limits, so every test starts from a clean slate.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Make sure the workspace `packages/` dir is on sys.path so `statement_budget`
# is importable without an editable install.
_ROOT = Path(__file__).resolve().parents[1]
_PKG_DIR = _ROOT / "packages"
sys.path[:0] = [p for p in [str(_PKG_DIR), str(_ROOT)] if p not in sys.path]

_ENV_VARS = (
    "OPENAI_API_KEY",
    "SB_OPENAI_MODEL",
    "SB_EXTRACT_CONCURRENCY",
    "SB_CATEGORY_CONCURRENCY",
    "SB_TAXONOMY_PATH",
    "SB_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _isolate_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Clear package env vars and run from a per-test working directory."""

    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
