"""Two-level budget category taxonomy.

The taxonomy is an ordered sequence of groups. Each group carries the item
names offered to users (``"Moradia" -> "Aluguel", "Condomínio", ...``) and
the ordered, accent-free keyword list the offline fallback categorizer scans.
Labels are always rendered as ``"Group: Item"``.

A :class:`Taxonomy` is immutable. Entrypoints build it once (either
:func:`default_taxonomy` or :func:`load_taxonomy` from a JSON file) and pass
it explicitly to the categorization engine, the ledger reader, and the
pipeline.

JSON shape accepted by :func:`load_taxonomy`::

    [
      {"group": "Moradia", "items": ["Aluguel", ...], "keywords": ["aluguel", ...]},
      ...
    ]
"""

from __future__ import annotations

import json
import unicodedata
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from functools import cache
from os import PathLike
from pathlib import Path
from typing import Any

DEFAULT_CATEGORY = "Outros Gastos: Outros"
DEFAULT_REVENUE_CATEGORY = "Receita Variável: Outros"
_REVENUE_PREFIX = "Receita"


def fold_text(value: str) -> str:
    """Lower-case ``value`` and strip accents (``"Salário"`` -> ``"salario"``)."""

    decomposed = unicodedata.normalize("NFKD", value)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return " ".join(stripped.split()).casefold()


def format_label(group: str, item: str) -> str:
    return f"{group}: {item}"


def split_label(label: str) -> tuple[str, str] | None:
    """Split ``"Group: Item"`` into its parts; ``None`` when malformed."""

    group, sep, item = label.partition(":")
    group, item = group.strip(), item.strip()
    if not sep or not group or not item:
        return None
    return group, item


@dataclass(frozen=True, slots=True)
class CategoryGroup:
    name: str
    items: tuple[str, ...]
    keywords: tuple[str, ...] = ()

    @property
    def is_revenue(self) -> bool:
        return self.name.startswith(_REVENUE_PREFIX)


@dataclass(frozen=True, slots=True)
class Taxonomy:
    """Immutable, ordered collection of :class:`CategoryGroup`."""

    groups: tuple[CategoryGroup, ...]

    def __post_init__(self) -> None:
        if not self.groups:
            raise ValueError("taxonomy must contain at least one group")
        names = [g.name for g in self.groups]
        if len(set(names)) != len(names):
            raise ValueError("taxonomy group names must be unique")
        if split_label(DEFAULT_CATEGORY)[0] not in names:  # type: ignore[index]
            raise ValueError(f"taxonomy must define the default group of {DEFAULT_CATEGORY!r}")

    def __iter__(self) -> Iterator[CategoryGroup]:
        return iter(self.groups)

    def group_names(self) -> tuple[str, ...]:
        return tuple(g.name for g in self.groups)

    def group(self, name: str) -> CategoryGroup | None:
        for g in self.groups:
            if g.name == name:
                return g
        return None

    def expense_groups(self) -> tuple[CategoryGroup, ...]:
        return tuple(g for g in self.groups if not g.is_revenue)

    def labels(self) -> tuple[str, ...]:
        """Every ``"Group: Item"`` label in declaration order."""

        return tuple(format_label(g.name, item) for g in self.groups for item in g.items)

    def is_compatible(self, label: str) -> bool:
        """True when ``label`` has the ``Group: Item`` shape with a known group.

        Items are not restricted to the declared list: the fallback derives
        items from matched keywords and users may type their own.
        """

        parts = split_label(label)
        return parts is not None and self.group(parts[0]) is not None

    def to_json(self) -> list[dict[str, Any]]:
        return [
            {"group": g.name, "items": list(g.items), "keywords": list(g.keywords)}
            for g in self.groups
        ]


_DEFAULT_GROUPS: tuple[tuple[str, tuple[str, ...], tuple[str, ...]], ...] = (
    (
        "Receita Fixa",
        ("Salário", "Aposentadoria", "Pensão", "Aluguel Recebido", "Outros"),
        ("salario", "aposentadoria", "pensao", "aluguel recebido", "remuneracao"),
    ),
    (
        "Receita Variável",
        ("Freelance", "Vendas", "Comissões", "Prêmios", "Outros"),
        ("freelance", "vendas", "comissoes", "premios", "consultoria", "projeto"),
    ),
    (
        "Moradia",
        (
            "Aluguel",
            "Financiamento",
            "Condomínio",
            "IPTU",
            "Luz",
            "Água",
            "Gás",
            "Internet",
            "Telefone",
            "Outros",
        ),
        (
            "aluguel",
            "financiamento",
            "condominio",
            "iptu",
            "luz",
            "agua",
            "comgas",
            "internet",
            "telefone",
            "energia",
        ),
    ),
    (
        "Alimentação",
        ("Supermercado", "Restaurante", "Delivery", "Lanche", "Outros"),
        (
            "supermercado",
            "restaurante",
            "delivery",
            "lanche",
            "ifood",
            "uber eats",
            "comida",
            "lanchonete",
            "padaria",
        ),
    ),
    (
        "Transporte",
        (
            "Combustível",
            "Transp. Público",
            "Transp. App/Taxi",
            "Estacionamento",
            "Manutenção Veículo",
            "Outros",
        ),
        (
            "combustivel",
            "gasolina",
            "etanol",
            "uber",
            "taxi",
            "99app",
            "metro",
            "onibus",
            "estacionamento",
            "posto",
        ),
    ),
    (
        "Saúde",
        ("Plano de Saúde", "Consultas", "Medicamentos", "Exames", "Outros"),
        (
            "plano de saude",
            "consulta",
            "medicamento",
            "farmacia",
            "drogaria",
            "exame",
            "medico",
            "hospital",
        ),
    ),
    (
        "Educação",
        ("Mensalidade", "Material Escolar", "Cursos", "Livros", "Outros"),
        ("mensalidade", "escola", "faculdade", "curso", "livraria", "livro", "universidade"),
    ),
    (
        "Lazer",
        ("Cinema", "Teatro", "Shows", "Viagens", "Jogos", "Outros"),
        ("cinema", "teatro", "show", "viagem", "hotel", "jogo", "academia", "esporte", "netflix"),
    ),
    (
        "Vestuário",
        ("Roupas", "Calçados", "Acessórios", "Outros"),
        ("roupa", "calcado", "sapato", "tenis", "shopping", "renner", "c&a"),
    ),
    (
        "Beleza",
        ("Cabelereiro", "Estética", "Cosméticos", "Outros"),
        ("cabelereiro", "salao", "estetica", "cosmetico", "perfume"),
    ),
    (
        "Outros Gastos",
        ("Presentes", "Doações", "Multas", "Taxas", "Outros"),
        ("presente", "doacao", "multa", "taxa", "tarifa", "anuidade", "iof", "saque"),
    ),
)


@cache
def default_taxonomy() -> Taxonomy:
    """Return the built-in taxonomy (constructed once per process)."""

    return Taxonomy(
        groups=tuple(
            CategoryGroup(name=name, items=items, keywords=keywords)
            for name, items, keywords in _DEFAULT_GROUPS
        )
    )


def _coerce_str_list(raw: Any, *, field: str, group: str) -> tuple[str, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list) or not all(isinstance(v, str) for v in raw):
        raise ValueError(f"taxonomy group {group!r}: {field!r} must be a list of strings")
    return tuple(v.strip() for v in raw if v.strip())


def taxonomy_from_json(data: Sequence[Any]) -> Taxonomy:
    """Build a :class:`Taxonomy` from the decoded JSON shape documented above."""

    if not isinstance(data, list):
        raise ValueError("taxonomy JSON must be a list of groups")
    groups: list[CategoryGroup] = []
    for entry in data:
        if not isinstance(entry, dict):
            raise ValueError("each taxonomy group must be an object")
        name = str(entry.get("group") or "").strip()
        if not name:
            raise ValueError("taxonomy group is missing a non-blank 'group'")
        items = _coerce_str_list(entry.get("items"), field="items", group=name)
        if not items:
            raise ValueError(f"taxonomy group {name!r} must list at least one item")
        keywords = tuple(
            fold_text(k) for k in _coerce_str_list(entry.get("keywords"), field="keywords", group=name)
        )
        groups.append(CategoryGroup(name=name, items=items, keywords=keywords))
    return Taxonomy(groups=tuple(groups))


def load_taxonomy(path: str | PathLike[str] | None = None) -> Taxonomy:
    """Load a taxonomy JSON file, or the built-in default when ``path`` is ``None``."""

    if path is None:
        return default_taxonomy()
    with Path(path).open("r", encoding="utf-8") as f:
        data = json.load(f)
    return taxonomy_from_json(data)


__all__ = [
    "DEFAULT_CATEGORY",
    "DEFAULT_REVENUE_CATEGORY",
    "CategoryGroup",
    "Taxonomy",
    "default_taxonomy",
    "fold_text",
    "format_label",
    "load_taxonomy",
    "split_label",
    "taxonomy_from_json",
]
