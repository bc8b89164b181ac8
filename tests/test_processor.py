import pytest

from fapiao_extraction.postprocessor.processor import PostProcessor
from fapiao_extraction.records import FieldSource, InvoiceFields, LineItem, TaxRateEntry
from fapiao_extraction.table.anchors import AnchorLocator
from fapiao_extraction.table.columns import ColumnMapper
from fapiao_extraction.table.models import ClassifiedRow, ColumnMapping, NumericFragment, TableRegion
from fapiao_extraction.table.rows import RowSegmenter

from conftest import frag


@pytest.fixture
def processor(settings):
    return PostProcessor(settings)


@pytest.fixture
def classified_rows(settings, invoice_page):
    region = AnchorLocator(settings).detect_table_regions([invoice_page], ColumnMapper(settings))[0]
    segmenter = RowSegmenter(settings)
    rows = [
        segmenter.classify(raw, region, invoice_page.width)
        for raw in segmenter.segment(invoice_page, region)
    ]
    return region, rows


def test_build_item_from_columns(processor, classified_rows):
    region, rows = classified_rows
    item = processor.build_item(rows[0], region, 1, {"source_invoice_number": "1" * 20})

    assert (item.quantity, item.unit_price, item.amount) == ("2", "45.00", "90.00")
    assert (item.tax_rate, item.tax_amount) == ("13%", "11.70")
    assert item.source_of("amount") is FieldSource.COLUMN
    assert item.source_invoice_number == "1" * 20
    assert not processor.validate_item(item).failed


def test_build_item_from_glued_fragment(processor, classified_rows):
    region, rows = classified_rows
    item = processor.build_item(rows[1], region, 2)

    assert item.goods_name == "*食品*饼干"
    assert (item.quantity, item.unit_price, item.amount) == ("1", "45.75", "45.75")
    assert (item.tax_rate, item.tax_amount) == ("13%", "5.95")
    assert item.source_of("quantity") is FieldSource.ARITHMETIC_SPLIT


def test_split_outranks_column_match(processor):
    region = TableRegion(0, 600.0, 540.0, ColumnMapping())
    marker = frag("*食品*饼干", 30.0, 560.0)
    row = ClassifiedRow(marker=marker, name_parts=[marker.text],
                        rate_runs=[frag("75.2213%", 400.0, 560.0)])
    item = processor.build_item(row, region, 1)

    assert item.amount == "75.22"
    assert item.tax_rate == "13%"


def test_assign_unmatched_in_order(processor):
    item = LineItem(line_number=1)
    item.set_field("tax_amount", "11.70", FieldSource.COLUMN)
    processor.assign_unmatched(item, [
        NumericFragment("90.00", 390.0), NumericFragment("2", 280.0), NumericFragment("45.00", 330.0),
    ])

    assert (item.quantity, item.unit_price, item.amount) == ("2", "45.00", "90.00")
    assert item.source_of("quantity") is FieldSource.POSITIONAL


def test_assign_unmatched_fewer_values_keeps_amounts(processor):
    item = LineItem(line_number=1)
    processor.assign_unmatched(item, [NumericFragment("90.00", 390.0), NumericFragment("11.70", 510.0)])

    assert item.amount == "90.00"
    assert item.tax_amount == "11.70"
    assert item.quantity is None


def test_assign_by_shape_when_all_empty(processor):
    item = LineItem(line_number=1)
    processor.assign_unmatched(item, [
        NumericFragment("3", 300.0),
        NumericFragment("45.5", 310.0),
        NumericFragment("136.5", 320.0),
        NumericFragment("17.75", 330.0),
    ])

    assert item.quantity == "3"
    assert item.unit_price == "45.5"
    assert item.amount == "136.5"
    assert item.tax_amount == "17.75"


def test_repair_amount_pair(processor):
    item = LineItem(line_number=1)
    item.set_field("amount", "9.080.82", FieldSource.DEGRADED_SPLIT)
    processor.repair_amount_pair(item)

    assert item.amount == "9.08"
    assert item.tax_amount == "0.82"


def test_exempt_item_gets_zero_tax(processor):
    region = TableRegion(0, 600.0, 540.0, ColumnMapping())
    marker = frag("*农产品*大米", 30.0, 560.0)
    row = ClassifiedRow(marker=marker, name_parts=[marker.text], tax_rate="exempt")
    item = processor.build_item(row, region, 1)

    assert item.tax_amount == "0"


def test_is_item_row(processor):
    assert processor.is_item_row(LineItem(line_number=1, goods_name="*食品*饼干"))
    assert not processor.is_item_row(LineItem(line_number=1, goods_name="合 计", amount="1.00"))
    assert not processor.is_item_row(LineItem(line_number=1))


def test_validate_item_keeps_values(processor):
    item = LineItem(line_number=1, quantity="2", unit_price="45.00", amount="80.00",
                    tax_rate="13%", tax_amount="10.40")
    processor.validate_item(item)

    assert item.failed
    assert item.amount == "80.00"
    assert len(item.warnings) == 1
    assert "quantity x unit price" in item.error_message


def test_summarize_tax_rates_from_items(processor):
    items = [
        LineItem(line_number=1, amount="90.00", tax_rate="13%"),
        LineItem(line_number=2, amount="45.75", tax_rate="13%"),
        LineItem(line_number=3, amount="10.00", tax_rate="6%"),
    ]
    fields = processor.summarize_tax_rates(InvoiceFields(), items)

    assert [entry.to_dict() for entry in fields.tax_rates] == [
        {"rate": "13%", "amount": "135.75", "index": 1},
        {"rate": "6%", "amount": "10.00", "index": 2},
    ]


def test_finalize_fields_flags_total_mismatch(processor):
    fields = InvoiceFields(
        invoice_number="1" * 20,
        invoice_date="2024年3月5日",
        amount="100.00",
        tax_amount="13.00",
        total_amount="120.00",
        tax_rates=[TaxRateEntry("13%")],
    )
    processor.finalize_fields(fields, [])

    assert fields.invoice_date == "2024-03-05"
    assert fields.status == "failed"
    assert "differs from total" in fields.error_message


def test_rate_run_without_checkable_rate_keeps_its_numbers(processor):
    region = TableRegion(0, 600.0, 540.0, ColumnMapping())
    marker = frag("*食品*饼干", 30.0, 560.0)
    row = ClassifiedRow(marker=marker, name_parts=[marker.text],
                        rate_runs=[frag("45.0017%7.65", 400.0, 560.0)])
    item = processor.build_item(row, region, 1)

    assert item.amount == "45.00"
    assert item.tax_rate == "17%"
    assert item.tax_amount == "7.65"
    assert item.source_of("amount") is FieldSource.POSITIONAL
    assert not processor.validate_item(item).failed
