import pytest

from fapiao_extraction.layout.models import PageModel
from fapiao_extraction.table.anchors import AnchorLocator
from fapiao_extraction.table.columns import ColumnMapper
from fapiao_extraction.table.models import ColumnMapping, ColumnSpan, RawRow, TableRegion
from fapiao_extraction.table.rows import RowSegmenter

from conftest import PAGE_HEIGHT, PAGE_WIDTH, frag, line


@pytest.fixture
def segmenter(settings):
    return RowSegmenter(settings)


@pytest.fixture
def region(settings, invoice_page):
    return AnchorLocator(settings).detect_table_regions([invoice_page], ColumnMapper(settings))[0]


def test_segments_rows_by_marker(segmenter, invoice_page, region):
    rows = segmenter.segment(invoice_page, region)

    assert [row.marker.text for row in rows] == ["*纸制品*打印纸", "*食品*饼干"]
    assert [f.text for f in rows[0].fragments] == [
        "*纸制品*打印纸", "A4", "箱", "2", "45.00", "90.00", "13%", "11.70"
    ]
    assert rows[0].bottom_y == rows[1].top_y


def test_wrapped_name_stays_in_its_row(segmenter, region):
    page = PageModel(0, (
        line(580.0, ("*纸制品*打印", 30.0), ("90.00", 392.0, 25.0)),
        line(570.0, ("纸", 30.0)),
        line(555.0, ("*食品*饼干", 30.0)),
    ), PAGE_WIDTH, PAGE_HEIGHT)
    rows = segmenter.segment(page, region)

    assert len(rows) == 2
    assert [f.text for f in rows[0].fragments] == ["*纸制品*打印", "纸", "90.00"]
    assert [f.text for f in rows[1].fragments] == ["*食品*饼干"]


def test_no_markers_yields_no_rows(segmenter, region):
    page = PageModel(0, (line(580.0, ("90.00", 392.0)),), PAGE_WIDTH, PAGE_HEIGHT)
    assert segmenter.segment(page, region) == []


def test_classify_columned_row(segmenter, invoice_page, region):
    raw = segmenter.segment(invoice_page, region)[0]
    row = segmenter.classify(raw, region, invoice_page.width)

    assert row.goods_name == "*纸制品*打印纸"
    assert row.specification == "A4"
    assert row.unit == "箱"
    assert row.tax_rate == "13%"
    assert [f.text for f in row.numeric_runs] == ["2", "45.00", "90.00", "11.70"]
    assert row.rate_runs == []


def test_classify_glued_row(segmenter, invoice_page, region):
    raw = segmenter.segment(invoice_page, region)[1]
    row = segmenter.classify(raw, region, invoice_page.width)

    assert row.goods_name == "*食品*饼干"
    assert row.specification == "500g"
    assert row.unit == "盒"
    assert [f.text for f in row.rate_runs] == ["145.7545.7513%5.95"]
    assert row.numeric_runs == []


def test_classify_filters_invalid_fragments(segmenter, region):
    marker = frag("*服务*咨询费", 30.0, 580.0)
    raw = RawRow(0, 590.0, 540.0, marker, [
        marker,
        frag("¥100.00", 392.0, 580.0),
        frag("壹佰圆整", 150.0, 580.0),
        frag("免税", 452.0, 580.0),
    ])
    row = segmenter.classify(raw, region, PAGE_WIDTH)

    assert row.name_parts == ["*服务*咨询费"]
    assert row.tax_rate == "exempt"
    assert row.numeric_runs == []


def test_classify_without_columns_uses_page_fractions(segmenter):
    region = TableRegion(0, 600.0, 540.0, ColumnMapping())
    marker = frag("*服务*咨询费", 30.0, 580.0)
    raw = RawRow(0, 590.0, 540.0, marker, [
        marker,
        frag("费用", 120.0, 580.0),
        frag("100.00", 400.0, 580.0),
    ])
    row = segmenter.classify(raw, region, PAGE_WIDTH)

    # name right edge is 30 + 0.28 * 595
    assert row.goods_name == "*服务*咨询费费用"
    assert [f.text for f in row.numeric_runs] == ["100.00"]


def test_boundaries_from_spec_and_unit(segmenter):
    mapping = ColumnMapping(
        specification=ColumnSpan(190.0, 40.0),
        unit=ColumnSpan(240.0, 20.0),
        quantity=ColumnSpan(280.0, 20.0),
    )
    bounds = segmenter.boundaries(30.0, mapping, PAGE_WIDTH)

    assert bounds.name_right == pytest.approx(160.0)
    assert bounds.spec_left == pytest.approx(155.0)
    assert bounds.spec_right == pytest.approx(225.0)
    assert bounds.unit_left == pytest.approx(215.0)
    assert bounds.data_start == pytest.approx(240.0)
