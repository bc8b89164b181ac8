import pytest

from config.parser_settings import ParserSettings
from fapiao_extraction.layout.models import PageModel
from fapiao_extraction.layout.reconstructor import PageReconstructor
from fapiao_extraction.table.anchors import AnchorLocator
from fapiao_extraction.table.columns import ColumnMapper
from fapiao_extraction.table.fallback import TextAnchorLocator
from fapiao_extraction.utils.exceptions import TableNotFoundError

from conftest import INVOICE_NUMBER, PAGE_HEIGHT, PAGE_WIDTH, frag, line


@pytest.fixture
def locator(settings):
    return AnchorLocator(settings)


def test_header_and_footer_lines(locator, invoice_page):
    assert locator.find_header_line(invoice_page).y == 600.0
    # the grand-total row also contains the footer keyword
    assert locator.find_footer_line(invoice_page).y == 540.0


def test_extracts_document_fields(locator, invoice_page):
    fields = locator.extract_invoice_fields([invoice_page])

    assert fields.invoice_number == INVOICE_NUMBER
    assert fields.invoice_type == "专票"
    assert fields.invoice_date == "2024-03-15"
    assert fields.amount == "135.75"
    assert fields.tax_amount == "17.65"
    assert fields.total_amount == "153.40"
    assert [entry.rate for entry in fields.tax_rates] == ["13%"]
    assert fields.strategy == "coordinate"
    assert not fields.degraded


def test_invoice_number_in_same_fragment(locator):
    page = PageModel(0, (line(780.0, (f"发票号码：{INVOICE_NUMBER}", 400.0)),), PAGE_WIDTH, PAGE_HEIGHT)
    assert locator.extract_invoice_number(page) == INVOICE_NUMBER


def test_invoice_number_wrong_length_rejected(locator):
    page = PageModel(0, (line(780.0, ("发票号码：", 400.0), ("12345678", 455.0)),), PAGE_WIDTH, PAGE_HEIGHT)
    assert locator.extract_invoice_number(page) is None


def test_invoice_type_only_in_header_region(locator):
    low = PageModel(0, (line(300.0, ("增值税专用发票", 200.0)),), PAGE_WIDTH, PAGE_HEIGHT)
    high = PageModel(0, (line(760.0, ("电子发票（普通发票）", 200.0)),), PAGE_WIDTH, PAGE_HEIGHT)

    assert locator.extract_invoice_type(low) is None
    assert locator.extract_invoice_type(high) == "普票"


def test_exempt_invoice_fields(locator, settings):
    fragments = [
        frag("货物或应税劳务、服务名称", 30.0, 600.0, 120.0),
        frag("金额", 390.0, 600.0, 20.0),
        frag("税率", 450.0, 600.0, 20.0),
        frag("*农产品*大米", 30.0, 580.0),
        frag("免税", 452.0, 580.0, 12.0),
        frag("合计", 60.0, 540.0, 30.0),
        frag("¥200.00", 385.0, 540.0, 40.0),
    ]
    page = PageReconstructor(settings).reconstruct(fragments, 0, PAGE_WIDTH, PAGE_HEIGHT)
    fields = locator.extract_invoice_fields([page])

    assert fields.amount == "200.00"
    assert fields.tax_amount == "0.00"
    assert [entry.rate for entry in fields.tax_rates] == [settings.exempt_label]


def test_detect_table_regions_with_continuation_page(locator, settings, invoice_page):
    continuation = PageReconstructor(settings).reconstruct(
        [frag("*食品*饼干", 30.0, 780.0, page_index=1), frag("合计", 60.0, 700.0, 30.0, page_index=1)],
        1, PAGE_WIDTH, PAGE_HEIGHT
    )
    regions = locator.detect_table_regions([invoice_page, continuation], ColumnMapper(settings))

    assert regions[0].header_y == 600.0
    assert regions[0].footer_y == 540.0
    assert regions[1].header_y == PAGE_HEIGHT
    assert regions[1].footer_y == 700.0
    assert regions[1].column_mapping is regions[0].column_mapping


def test_leading_page_without_table(locator, settings, invoice_page):
    cover = PageModel(0, (line(700.0, ("Cover page", 30.0)),), PAGE_WIDTH, PAGE_HEIGHT)
    regions = locator.detect_table_regions([cover, invoice_page], ColumnMapper(settings))

    assert regions[0] is None
    assert regions[1].header_y == 600.0


def test_no_header_raises(locator, settings):
    page = PageModel(0, (line(700.0, ("Cover page", 30.0)),), PAGE_WIDTH, PAGE_HEIGHT)
    with pytest.raises(TableNotFoundError):
        locator.detect_table_regions([page], ColumnMapper(settings), "cover.pdf")


FULL_TEXT = "\n".join([
    "电子发票（普通发票）",
    f"发票号码：{INVOICE_NUMBER}",
    "开票日期：2024年3月5日",
    "*纸制品*打印纸 90.00 13% 11.70",
    "合 计 ¥135.75 ¥17.65",
    "价税合计（大写）壹佰伍拾叁圆肆角整 （小写）¥153.40",
])


def test_full_text_fields(settings):
    fields = TextAnchorLocator(settings).extract_invoice_fields(FULL_TEXT)

    assert fields.invoice_number == INVOICE_NUMBER
    assert fields.invoice_type == "普票"
    assert fields.invoice_date == "2024-03-05"
    assert fields.amount == "135.75"
    assert fields.tax_amount == "17.65"
    assert fields.total_amount == "153.40"
    assert [entry.rate for entry in fields.tax_rates] == ["13%"]
    assert fields.degraded


def test_full_text_type_from_invoice_code(settings):
    locator = TextAnchorLocator(settings)

    assert locator.extract_invoice_type("发票代码：144031900111") == "专票"
    assert locator.extract_invoice_type("发票代码：044031900111") is None
    assert locator.extract_invoice_type("免税 发票代码：044031900111", exempt=True) == "普票"


def test_full_text_empty(settings):
    assert TextAnchorLocator(settings).extract_invoice_fields("").is_empty()


def test_full_text_number_uses_configured_length():
    short = TextAnchorLocator(ParserSettings.from_mapping({"invoice_number_length": 8}))
    default = TextAnchorLocator(ParserSettings())

    assert short.extract_invoice_number("发票号码：12345678") == "12345678"
    assert short.extract_invoice_number("代码 123456789") is None
    assert default.extract_invoice_number("发票号码：12345678") is None
    assert default.extract_invoice_number(f"号码 {INVOICE_NUMBER} 日期") == INVOICE_NUMBER
