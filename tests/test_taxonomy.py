from __future__ import annotations

import json
from pathlib import Path

import pytest

from statement_budget.taxonomy import (
    DEFAULT_CATEGORY,
    default_taxonomy,
    fold_text,
    load_taxonomy,
    split_label,
    taxonomy_from_json,
)


def test_default_taxonomy_shape() -> None:
    tax = default_taxonomy()
    assert len(tax.group_names()) == 11
    assert tax.group_names()[0] == "Receita Fixa"
    assert DEFAULT_CATEGORY in tax.labels()
    assert all(not g.is_revenue for g in tax.expense_groups())
    assert default_taxonomy() is tax


def test_is_compatible_requires_known_group() -> None:
    tax = default_taxonomy()
    assert tax.is_compatible("Alimentação: Supermercado")
    # Items are free-form; only the group must exist.
    assert tax.is_compatible("Transporte: Gasolina")
    assert not tax.is_compatible("Pets: Ração")
    assert not tax.is_compatible("Alimentação")
    assert not tax.is_compatible("Alimentação: ")


def test_split_label() -> None:
    assert split_label(" Saúde :  Exames ") == ("Saúde", "Exames")
    assert split_label("no separator") is None


def test_fold_text_strips_accents_and_case() -> None:
    assert fold_text("  SALÁRIO   Março ") == "salario marco"


def test_load_taxonomy_from_json(tmp_path: Path) -> None:
    path = tmp_path / "tax.json"
    path.write_text(
        json.dumps(
            [
                {"group": "Receita Fixa", "items": ["Salário"], "keywords": ["Salário"]},
                {"group": "Outros Gastos", "items": ["Outros"]},
            ]
        ),
        encoding="utf-8",
    )
    tax = load_taxonomy(path)
    assert tax.group_names() == ("Receita Fixa", "Outros Gastos")
    assert tax.group("Receita Fixa").keywords == ("salario",)
    assert tax.to_json()[1] == {"group": "Outros Gastos", "items": ["Outros"], "keywords": []}


def test_load_taxonomy_default_when_no_path() -> None:
    assert load_taxonomy(None) is default_taxonomy()


@pytest.mark.parametrize(
    "data",
    [
        {},
        [],
        [{"group": "Outros Gastos", "items": []}],
        [{"group": "Moradia", "items": ["Aluguel"]}],
        [
            {"group": "Outros Gastos", "items": ["Outros"]},
            {"group": "Outros Gastos", "items": ["Outros"]},
        ],
        [{"group": "Outros Gastos", "items": ["Outros"], "keywords": "taxa"}],
    ],
)
def test_taxonomy_from_json_rejects_malformed(data: object) -> None:
    with pytest.raises(ValueError):
        taxonomy_from_json(data)  # type: ignore[arg-type]
