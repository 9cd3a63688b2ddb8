from __future__ import annotations

import pytest

from pysemob.ingestion.normalize import (
    digits_only,
    first_present,
    format_fare,
    is_active_status,
    is_sentinel,
    line_codes_match,
    main_operator,
    matches_any_line,
    normalize_prefix,
    safe_float,
    safe_str,
)


@pytest.mark.parametrize(
    ("left", "right"),
    [
        ("0.123", "123"),
        ("0.123", "0123"),
        (" 110.1 ", "110.1"),
        ("0110", "110"),
        ("abc", "ABC"),
    ],
)
def test_line_codes_match(left: str, right: str) -> None:
    assert line_codes_match(left, right)
    assert line_codes_match(right, left)


@pytest.mark.parametrize(
    ("left", "right"),
    [
        ("0.123", "1230"),
        ("", ""),
        ("ABC", "ABD"),
        ("000", "0"),
        (None, "123"),
    ],
)
def test_line_codes_do_not_match(left: str | None, right: str) -> None:
    assert not line_codes_match(left, right)


def test_digits_only_strips_separators_and_leading_zeros() -> None:
    assert digits_only("0.123") == "123"
    assert digits_only("0.000") == ""
    assert digits_only(123) == "123"


def test_matches_any_line() -> None:
    assert matches_any_line("0.123", ["999", "123"])
    assert not matches_any_line("0.123", [])


def test_safe_float_accepts_comma_decimal() -> None:
    assert safe_float("42,5") == 42.5
    assert safe_float(" 7 ") == 7.0
    assert safe_float("NULL") is None
    assert safe_float("abc") is None
    assert safe_float(float("nan")) is None
    assert safe_float(True) is None


def test_safe_str_and_sentinels() -> None:
    assert safe_str(123.0) == "123"
    assert safe_str(0.123) == "0.123"
    assert safe_str("  ") is None
    assert safe_str("N/A") is None
    assert is_sentinel("null")
    assert is_sentinel(None)
    assert not is_sentinel(0)


def test_first_present_skips_sentinels() -> None:
    props = {"cd_linha": "", "linha": "NULL", "servico": "0.110"}
    assert first_present(props, ("cd_linha", "linha", "servico")) == "0.110"
    assert first_present(props, ("missing",)) is None


@pytest.mark.parametrize("value", [None, "", "NULL", "1", "S", "sim", "Ativa", "TRUE", "t", "desconhecido", 1, True])
def test_stop_status_active(value: object) -> None:
    assert is_active_status(value) is True


@pytest.mark.parametrize("value", ["0", "N", "nao", "NÃO", "inativa", "INATIVO", "false", "F", 0, False])
def test_stop_status_inactive(value: object) -> None:
    assert is_active_status(value) is False


def test_format_fare() -> None:
    assert format_fare(4.5) == "R$ 4,50"
    assert format_fare(10) == "R$ 10,00"
    assert format_fare(None) is None


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("URBI MOBILIDADE URBANA LTDA", ("URBI", "#2b97bbff")),
        ("Viação São José", ("SÃO JOSÉ", "#938326")),
        ("UNIÃO TRANSPORTE BRASÍLIA S.A.", ("UNIÃO TRANSPORTE BRASÍLIA", "cyan")),
        ("Cooperativa Alternativa", ("Cooperativa Alternativa", None)),
        (None, (None, None)),
    ],
)
def test_main_operator(name: str | None, expected: tuple[str | None, str | None]) -> None:
    assert main_operator(name) == expected


def test_normalize_prefix() -> None:
    assert normalize_prefix("00123") == "123"
    assert normalize_prefix(" 0 ") == "0"
    assert normalize_prefix("ab-12") == "AB-12"
    assert normalize_prefix(None) == ""
