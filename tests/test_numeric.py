from decimal import Decimal, ROUND_HALF_UP

import pytest

from fapiao_extraction.postprocessor.numeric import (
    BareAmount,
    NumericDisambiguator,
    QuantityPriceAmount,
    is_valid_number_format,
)


@pytest.fixture
def disambiguator(settings):
    return NumericDisambiguator(settings)


def test_split_bare_amount_before_rate(disambiguator):
    result = disambiguator.split("75.2213%")
    assert result.amount == "75.22"
    assert result.tax_rate == "13%"
    assert result.quantity is None
    assert result.unit_price is None
    assert result.tax_amount is None
    assert isinstance(result.candidate, BareAmount)
    assert not result.degraded


def test_split_quantity_price_amount_and_tax(disambiguator):
    result = disambiguator.split("145.7545.7513%5.95")
    assert (result.quantity, result.unit_price, result.amount) == ("1", "45.75", "45.75")
    assert result.tax_rate == "13%"
    assert result.tax_amount == "5.95"
    assert isinstance(result.candidate, QuantityPriceAmount)


def test_split_multi_digit_quantity(disambiguator):
    result = disambiguator.split("444.16176.6413%22.96")
    assert result.values() == [
        ("quantity", "4"),
        ("unit_price", "44.16"),
        ("amount", "176.64"),
        ("tax_amount", "22.96"),
    ]
    assert result.tax_rate == "13%"


def test_split_rate_with_tax_only(disambiguator):
    result = disambiguator.split("13%15.19")
    assert result.tax_rate == "13%"
    assert result.tax_amount == "15.19"
    assert result.amount is None


def test_split_without_whitelisted_rate_returns_none(disambiguator):
    assert disambiguator.split("12.50") is None
    assert disambiguator.split("45.0019%") is None


def test_split_falls_back_to_degraded_amount(disambiguator):
    # no partition of "99.99" gives a tax near 50.00 at 13%
    result = disambiguator.split("99.9913%50.00")
    assert result.degraded
    assert result.amount == "99.99"
    assert result.tax_amount == "50.00"
    assert result.candidate is None


def test_split_is_deterministic(disambiguator):
    results = {disambiguator.split("145.7545.7513%5.95") for _ in range(5)}
    assert len(results) == 1


def test_extract_all_numbers_glued_pair(disambiguator):
    assert disambiguator.extract_all_numbers("9.080.82") == ["9.08", "0.82"]


def test_extract_all_numbers_drops_sign(disambiguator):
    assert disambiguator.extract_all_numbers("-92.00") == ["92.00"]


def test_extract_all_numbers_backward_scan(disambiguator):
    assert disambiguator.extract_all_numbers("12.5003.5") == ["12.500", "3.5"]


def test_extract_all_numbers_thousands_grouping(disambiguator):
    assert disambiguator.extract_all_numbers("1,234.56") == ["1234.56"]
    assert disambiguator.extract_all_numbers("12,34.56") == []


def test_extract_all_numbers_skips_zero(disambiguator):
    assert disambiguator.extract_all_numbers("0") == []
    assert disambiguator.extract_all_numbers("-") == []


def test_split_amount_pair(disambiguator):
    assert disambiguator.split_amount_pair("9.080.82") == ("9.08", "0.82")
    # second value is not a plausible tax amount
    assert disambiguator.split_amount_pair("9.085.00") is None
    assert disambiguator.split_amount_pair("9.08") is None
    assert disambiguator.split_amount_pair(None) is None


@pytest.mark.parametrize(
    "value, expected",
    [
        ("123", True),
        ("123.45", True),
        ("0", True),
        ("0.45", True),
        ("55.", False),
        ("0055", False),
        ("00.5", False),
        ("", False),
        ("1.2.3", False),
    ],
)
def test_is_valid_number_format(value, expected):
    assert is_valid_number_format(value) is expected


def test_tolerance_has_floor(disambiguator):
    assert disambiguator.tolerance(1.0) == pytest.approx(0.02)
    assert disambiguator.tolerance(1000.0) == pytest.approx(10.0)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("45.0017%7.65", ("45.00", "17%", "7.65")),
        ("45.005%2.25", ("45.00", "5%", "2.25")),
        ("100.0010%", ("100.00", "10%", "")),
        ("45.007%1.00", ("45.007", None, "1.00")),
    ],
)
def test_partition_rate(disambiguator, text, expected):
    assert disambiguator.partition_rate(text) == expected


@pytest.mark.parametrize("rate", [3, 6, 13])
@pytest.mark.parametrize("unit_price", ["45.75", "8.50", "199.00"])
@pytest.mark.parametrize("quantity", ["1", "2", "3", "12"])
def test_split_recovers_concatenated_fields(disambiguator, quantity, unit_price, rate):
    amount = (Decimal(quantity) * Decimal(unit_price)).quantize(Decimal("0.01"))
    tax_amount = (amount * rate / Decimal(100)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    text = f"{quantity}{unit_price}{amount}{rate}%{tax_amount}"

    result = disambiguator.split(text)

    assert not result.degraded
    assert (result.quantity, result.unit_price, result.amount, result.tax_rate, result.tax_amount) == (
        quantity, unit_price, str(amount), f"{rate}%", str(tax_amount)
    )
