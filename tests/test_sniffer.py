from __future__ import annotations

import textwrap

import pytest

from statement_budget.sniffer import (
    DEFAULT_DESCRIPTION,
    ROLE_RULES,
    assign_roles,
    detect_delimiter,
    find_header_row,
    row_to_raw,
    sniff,
)


def _dedent(s: str) -> str:
    return textwrap.dedent(s).lstrip("\n")


@pytest.mark.parametrize(
    ("line", "expected"),
    [
        ("Data;Descrição;Valor", ";"),
        ("Data\tDescrição\tValor", "\t"),
        ("Data,Descrição,Valor", ","),
        ("Data;Descrição,Valor", ","),  # tie -> comma
        ("no delimiters at all", ","),
    ],
)
def test_detect_delimiter(line: str, expected: str) -> None:
    assert detect_delimiter(line) == expected


def test_find_header_row_skips_preamble_and_folds_accents() -> None:
    rows = [
        ["Banco Exemplo S.A."],
        ["Agência 0001", "Conta 12345-6"],
        ["DESCRIÇÃO", "VALOR (R$)"],
        ["05/03/2024", "PADARIA", "-12,00"],
    ]
    assert find_header_row(rows) == 2


def test_find_header_row_none_within_scan_window() -> None:
    rows = [["x"]] * 5 + [["Data", "Valor"]]
    assert find_header_row(rows) == -1


def test_sniff_semicolon_statement() -> None:
    text = _dedent(
        """
        Data;Descrição;Valor
        05/03/2024;SALARIO EMPRESA;3000,00
        06/03/2024;SUPERMERCADO ABC;-150,00
        """
    )
    res = sniff(text)
    assert res.delimiter == ";"
    assert res.header_row_index == 0
    assert [(r.date, r.description, r.amount) for r in res.rows] == [
        ("05/03/2024", "SALARIO EMPRESA", 3000.0),
        ("06/03/2024", "SUPERMERCADO ABC", -150.0),
    ]
    assert res.dropped_rows == 0


def test_sniff_without_header_starts_at_first_row() -> None:
    res = sniff("2024-03-05,PADARIA CENTRAL,-8.50\n2024-03-06,FARMACIA,-20.00\n")
    assert res.header_row_index == -1
    assert [r.date for r in res.rows] == ["05/03/2024", "06/03/2024"]


def test_sniff_drops_rows_without_date_or_amount() -> None:
    text = _dedent(
        """
        Data,Histórico,Valor
        05/03/2024,PADARIA,-8.50
        SALDO ANTERIOR,,1000.00
        06/03/2024,TARIFA,0
        solitary
        """
    )
    res = sniff(text)
    assert [r.description for r in res.rows] == ["PADARIA"]
    assert res.dropped_rows == 3


def test_operation_column_overrides_sign() -> None:
    text = _dedent(
        """
        Data;Histórico;Tipo;Valor
        05/03/2024;COMPRA MERCADO;Débito;150,00
        06/03/2024;TED RECEBIDA;Crédito;-200,00
        """
    )
    res = sniff(text)
    assert [r.amount for r in res.rows] == [-150.0, 200.0]
    assert [r.description for r in res.rows] == ["COMPRA MERCADO", "TED RECEBIDA"]


def test_amount_is_taken_from_the_rightmost_numeric_column() -> None:
    cells = ["05/03/2024", "PIX ENVIADO", "-50,00", "0"]
    roles = assign_roles(cells)
    assert roles.date == 0
    assert roles.amount == 2
    assert roles.description == 1


def test_description_is_longest_text_cell() -> None:
    cells = ["05/03/2024", "DOC", "PAGAMENTO BOLETO CONDOMINIO", "-800,00"]
    assert assign_roles(cells).description == 2


def test_description_falls_back_to_placeholder() -> None:
    raw = row_to_raw(["05/03/2024", "", "-10,00"])
    assert raw is not None
    assert raw.description == DEFAULT_DESCRIPTION


def test_description_may_contain_digits() -> None:
    raw = row_to_raw(["05/03/2024", "UBER *TRIP 99", "-23,90"])
    assert raw is not None
    assert raw.description == "UBER *TRIP 99"
    assert raw.amount == -23.90


def test_quoted_cells_follow_csv_rules() -> None:
    text = 'Data,Descrição,Valor\n05/03/2024,"LOJA A, CENTRO","1.234,56"\n'
    res = sniff(text)
    assert res.rows[0].description == "LOJA A, CENTRO"
    assert res.rows[0].amount == 1234.56


def test_role_rules_are_ordered() -> None:
    assert [r.role for r in ROLE_RULES] == ["date", "amount", "description", "operation"]


def test_sniff_empty_text() -> None:
    res = sniff("\n\n")
    assert res.rows == ()
    assert res.header_row_index == -1


def test_headerless_first_row_with_keyword_is_data() -> None:
    res = sniff("05/03/2024;TARIFA DESCONTO;-5,00\n06/03/2024;PADARIA;-8,00\n")
    assert res.header_row_index == -1
    assert [(r.description, r.amount) for r in res.rows] == [
        ("TARIFA DESCONTO", -5.0),
        ("PADARIA", -8.0),
    ]


def test_find_header_row_skips_rows_flagged_as_data() -> None:
    rows = [["05/03/2024", "DESCONTO", "-5,00"], ["Data", "Histórico", "Valor"]]
    assert find_header_row(rows) == 0
    assert find_header_row(rows, is_data=lambda cells: cells[0] == "05/03/2024") == 1


def test_description_naming_an_operation_sets_the_sign() -> None:
    res = sniff("05/03/2024;PAGAMENTO FATURA CARTAO CREDITO;-1500,00\n")
    assert [(r.description, r.amount) for r in res.rows] == [
        ("PAGAMENTO FATURA CARTAO CREDITO", 1500.0)
    ]
