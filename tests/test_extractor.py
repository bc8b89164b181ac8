import pytest

from fapiao_extraction.layout.models import PageModel
from fapiao_extraction.layout.reconstructor import PageReconstructor
from fapiao_extraction.pipeline.extractor import InvoiceExtractor
from fapiao_extraction.pipeline.strategies import OutcomeStatus, StrategyOutcome, first_success
from fapiao_extraction.records import STATUS_FAILED
from fapiao_extraction.table.rows import RowSegmenter

from conftest import INVOICE_NUMBER, PAGE_HEIGHT, PAGE_WIDTH, frag, invoice_fragments, line


@pytest.fixture
def extractor(settings):
    return InvoiceExtractor(settings)


def test_extract_pages_end_to_end(extractor, invoice_page):
    result = extractor.extract_pages([invoice_page], "invoice.pdf")

    assert result.success
    assert result.invoice_number == INVOICE_NUMBER
    assert result.invoice_date == "2024-03-15"
    assert result.invoice_type == "专票"
    assert [item.line_number for item in result.items] == [1, 2]
    assert [item.amount for item in result.items] == ["90.00", "45.75"]
    assert all(item.source_file_name == "invoice.pdf" for item in result.items)
    assert all(item.source_invoice_number == INVOICE_NUMBER for item in result.items)
    assert result.failed_items == []
    assert result.fields.status == "success"
    assert result.fields.tax_rates[0].amount == "135.75"
    assert result.page_count == 1


def test_missing_fields_filled_from_full_text(extractor, settings):
    # no title line: the type comes from the invoice code in the full text
    fragments = [f for f in invoice_fragments() if "发票（" not in f.text]
    page = PageReconstructor(settings).reconstruct(fragments, 0, PAGE_WIDTH, PAGE_HEIGHT)
    result = extractor.extract_pages([page], "invoice.pdf", full_text=page.text + "\n发票代码：144031900111")

    assert result.fields.strategy == "coordinate"
    assert result.invoice_type == "专票"
    assert result.items[0].source_invoice_type == "专票"


def test_no_table_keeps_document_fields(extractor):
    page = PageModel(0, (
        line(780.0, ("发票号码：", 400.0, 50.0), (INVOICE_NUMBER, 455.0, 110.0)),
        line(700.0, ("Cover page", 30.0)),
    ), PAGE_WIDTH, PAGE_HEIGHT)
    result = extractor.extract_pages([page], "cover.pdf")

    assert not result.success
    assert result.error_message == "No line-item table header found"
    assert result.invoice_number == INVOICE_NUMBER


def test_empty_table_fails_document(extractor, settings):
    page = PageReconstructor(settings).reconstruct(
        [frag("货物或应税劳务、服务名称", 30.0, 600.0, 120.0), frag("金额", 390.0, 600.0, 20.0)],
        0, PAGE_WIDTH, PAGE_HEIGHT
    )
    result = extractor.extract_pages([page], "empty.pdf")

    assert result.status == STATUS_FAILED
    assert result.items == []
    assert result.error_message == "No line items found in table"


def test_row_failure_is_isolated(extractor, invoice_page, monkeypatch):
    original = RowSegmenter.classify
    calls = []

    def flaky_classify(self, row, region, page_width):
        calls.append(row.marker.text)
        if len(calls) == 1:
            raise ValueError("broken row")
        return original(self, row, region, page_width)

    monkeypatch.setattr(RowSegmenter, "classify", flaky_classify)
    result = extractor.extract_pages([invoice_page], "invoice.pdf")

    assert [item.status for item in result.items] == ["failed", "success"]
    assert "Failed to parse item row 1" in result.items[0].error_message
    assert result.items[1].amount == "45.75"


def test_extract_undecodable_bytes(extractor):
    result = extractor.extract(b"not a pdf", "broken.pdf")

    assert not result.success
    assert result.error_message == "Could not decode document: broken.pdf"
    assert result.processing_time >= 0


def test_first_success_falls_through():
    def failing(value):
        return StrategyOutcome.err("nothing", "first")

    def degraded(value):
        return StrategyOutcome.degraded(value * 2, "second")

    outcome = first_success([failing, degraded], 21)

    assert outcome.status is OutcomeStatus.DEGRADED
    assert outcome.value == 42
    assert outcome.strategy == "second"


def test_first_success_all_failing():
    outcome = first_success([lambda: StrategyOutcome.err("no", "only")])

    assert not outcome.succeeded
    assert outcome.error == "no"
