from __future__ import annotations

import math

import pytest

from statement_budget.normalizers import (
    MONTH_CODES,
    format_amount,
    is_nonzero_amount,
    is_valid_date,
    month_of,
    month_sort_key,
    normalize_date,
    parse_amount,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("1.234,56", 1234.56),
        ("1,234.56", 1234.56),
        ("100,00", 100.0),
        ("R$ -150,00", -150.0),
        ("150,00-", -150.0),
        ("(1.234,56)", -1234.56),
        ("1.234.567", 1234567.0),
        ("1,234", 1234.0),
        ("12.5", 12.5),
        ("3000", 3000.0),
        ("  -0,99 ", -0.99),
    ],
)
def test_parse_amount_localized_formats(raw: str, expected: float) -> None:
    assert parse_amount(raw) == pytest.approx(expected)


@pytest.mark.parametrize("raw", ["", "   ", "abc", "-", ",", None, "--5"])
def test_parse_amount_unparseable_is_nan(raw: str | None) -> None:
    assert math.isnan(parse_amount(raw))


def test_parse_amount_single_dot_three_digits_is_decimal() -> None:
    # Ambiguous on purpose: a lone dot is always the decimal point.
    assert parse_amount("1.234") == pytest.approx(1.234)


def test_parse_amount_passes_numbers_through_and_rejects_bools() -> None:
    assert parse_amount(42) == 42.0
    assert parse_amount(-3.5) == -3.5
    assert math.isnan(parse_amount(True))


def test_is_nonzero_amount_rejects_zero_and_unparseable() -> None:
    assert is_nonzero_amount(parse_amount("-0,01"))
    assert is_nonzero_amount(parse_amount("1.500,00"))
    assert not is_nonzero_amount(parse_amount("0,00"))
    assert not is_nonzero_amount(parse_amount("-0"))
    assert not is_nonzero_amount(parse_amount("abc"))


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("05/03/2024", "05/03/2024"),
        ("2024-03-05", "05/03/2024"),
        ("05-03-2024", "05/03/2024"),
        ("5/3/2024", "05/03/2024"),
        ("05/03/24", "05/03/2024"),
        ("03/25/2024", "25/03/2024"),  # day-first out of range -> month-first
        ("05/03/2024 10:31", "05/03/2024"),
    ],
)
def test_normalize_date_shapes(raw: str, expected: str) -> None:
    assert normalize_date(raw) == expected


def test_equivalent_dates_normalize_identically() -> None:
    assert normalize_date("2024-03-05") == normalize_date("05/03/2024")


def test_normalize_date_failure_returns_lowercased_input() -> None:
    assert normalize_date("  Ontem ") == "ontem"
    assert normalize_date("31/02/2024") == "31/02/2024"


def test_is_valid_date_checks_shape_only() -> None:
    assert is_valid_date("05/03/2024")
    assert is_valid_date("2024-03-05")
    assert is_valid_date("05-03-2024")
    assert is_valid_date("31/02/2024")
    assert not is_valid_date("March 5")
    assert not is_valid_date("")
    assert not is_valid_date("100,00")


def test_month_of_codes_and_fallback() -> None:
    assert month_of("05/03/2024") == "MAR"
    assert month_of("2024-12-01") == "DEZ"
    assert month_of("garbage") == "JAN"


def test_month_sort_key_calendar_order() -> None:
    shuffled = ["DEZ", "JAN", "AGO", "FEV"]
    assert sorted(shuffled, key=month_sort_key) == ["JAN", "FEV", "AGO", "DEZ"]
    assert month_sort_key("XYZ") == len(MONTH_CODES)


def test_format_amount_two_decimals() -> None:
    assert format_amount(-150) == "-150.00"
    assert format_amount(1234.5) == "1234.50"
