import pytest

from fapiao_extraction.postprocessor.validators import FieldValidator
from fapiao_extraction.records import InvoiceFields, LineItem, TaxRateEntry


@pytest.fixture
def validator(settings):
    return FieldValidator(settings)


def test_valid_item(validator):
    item = LineItem(line_number=1, quantity="4", unit_price="44.16", amount="176.64",
                    tax_rate="13%", tax_amount="22.96")
    assert validator.validate_item(item).is_valid


def test_item_number_format(validator):
    item = LineItem(line_number=1, quantity="0055", amount="55.")
    result = validator.validate_item(item)

    assert not result.is_valid
    assert [w.field for w in result.warnings] == ["quantity", "amount"]


def test_item_rate_not_whitelisted(validator):
    result = validator.validate_item(LineItem(line_number=1, tax_rate="19%"))
    assert result.messages == ["tax rate 19% is not an allowed rate"]


def test_exempt_label_is_allowed(validator, settings):
    item = LineItem(line_number=1, amount="200.00", tax_rate=settings.exempt_label, tax_amount="0")
    assert validator.validate_item(item).is_valid


def test_item_tax_mismatch(validator):
    item = LineItem(line_number=1, amount="100.00", tax_rate="13%", tax_amount="6.00")
    result = validator.validate_item(item)

    assert result.warnings[0].field == "tax_amount"
    assert result.warnings[0].expected == "13.00"


def test_item_tolerance_floor(validator):
    # 0.015 off is within the absolute floor of 0.02
    item = LineItem(line_number=1, quantity="3", unit_price="0.335", amount="1.02")
    assert validator.validate_item(item).is_valid


def test_document_total_within_cents(validator):
    fields = InvoiceFields(invoice_number="1" * 20, amount="135.75", tax_amount="17.65",
                           total_amount="153.43", tax_rates=[TaxRateEntry("13%")])
    assert validator.validate_document(fields).is_valid


def test_document_checks(validator):
    fields = InvoiceFields(invoice_number="12345", amount="-1", tax_amount="200.00",
                           total_amount="100.00", tax_rates=[TaxRateEntry("19%")])
    result = validator.validate_document(fields)

    fields_flagged = {w.field for w in result.warnings}
    assert {"invoice_number", "amount", "tax_amount", "tax_rates"} <= fields_flagged
    assert "; " in result.summary()
