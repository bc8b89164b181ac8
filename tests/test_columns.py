import pytest

from fapiao_extraction.table.columns import ColumnMapper
from fapiao_extraction.table.models import ColumnMapping, ColumnSpan

from conftest import header_line, line


@pytest.fixture
def mapper(settings):
    return ColumnMapper(settings)


def test_detects_every_labelled_column(mapper):
    mapping = mapper.detect(header_line())

    assert mapping.detected_count == 8
    assert mapping.missing() == []
    assert mapping.goods_name.center_x == pytest.approx(90.0)
    assert mapping.specification.center_x == pytest.approx(190.0)
    assert mapping.quantity.center_x == pytest.approx(280.0)
    assert mapping.amount.center_x == pytest.approx(400.0)
    assert mapping.tax_amount.center_x == pytest.approx(520.0)
    assert not any(span.inferred for _, span in mapping.detected())


def test_pairs_split_glyph_labels(mapper):
    header = line(
        600.0,
        ("项目名称", 30.0, 48.0),
        ("数", 270.0, 10.0),
        ("量", 282.0, 10.0),
        ("金", 390.0, 10.0),
        ("额", 402.0, 10.0),
    )
    mapping = mapper.detect(header)

    assert mapping.quantity.center_x == pytest.approx(281.0)
    assert mapping.quantity.width == pytest.approx(22.0)
    assert mapping.amount.center_x == pytest.approx(401.0)
    assert not mapping.quantity.inferred


def test_tax_rate_label_joined_with_suffix(mapper):
    header = line(
        600.0,
        ("项目名称", 30.0, 48.0),
        ("金额", 390.0, 20.0),
        ("税率/", 450.0, 18.0),
        ("征收率", 470.0, 20.0),
    )
    mapping = mapper.detect(header)

    assert mapping.tax_rate.center_x == pytest.approx(470.0)
    assert mapping.tax_rate.width == pytest.approx(40.0)


def test_whitespace_fragments_ignored(mapper):
    header = line(600.0, ("  ", 10.0, 5.0), ("项目名称", 30.0, 48.0), ("金额", 390.0, 20.0))
    mapping = mapper.detect(header)

    assert mapping.goods_name.center_x == pytest.approx(54.0)


def test_infers_missing_columns_between_neighbours(mapper):
    header = line(
        600.0,
        ("货物或应税劳务、服务名称", 30.0, 120.0),
        ("规格型号", 170.0, 40.0),
        ("数量", 270.0, 20.0),
        ("金额", 390.0, 20.0),
        ("税额", 510.0, 20.0),
    )
    mapping = mapper.detect(header)

    assert mapping.unit.center_x == pytest.approx(235.0)
    assert mapping.unit_price.center_x == pytest.approx(340.0)
    assert mapping.tax_rate.center_x == pytest.approx(460.0)
    assert mapping.unit.inferred and mapping.unit_price.inferred
    assert mapping.unit.width == pytest.approx(30.0)


def test_infers_trailing_columns_from_median_gap(mapper):
    mapping = mapper.infer_missing(ColumnMapping(
        goods_name=ColumnSpan(90.0, 120.0),
        specification=ColumnSpan(190.0, 40.0),
        unit=ColumnSpan(240.0, 20.0),
        quantity=ColumnSpan(280.0, 20.0),
    ))

    # gaps 100, 50, 40: the median gap is 50
    assert mapping.unit_price.center_x == pytest.approx(330.0)
    assert mapping.amount.center_x == pytest.approx(380.0)
    assert mapping.tax_amount.center_x == pytest.approx(480.0)


def test_single_column_is_not_inferred(mapper):
    mapping = mapper.detect(line(600.0, ("金额", 390.0, 20.0)))

    assert mapping.detected_count == 1
    assert len(mapping.missing()) == 7


def test_match_numeric_prefers_closest_column(mapper):
    mapping = mapper.detect(header_line())

    assert mapping.match_numeric(278.0) == "quantity"
    assert mapping.match_numeric(322.0) == "unit_price"
    assert mapping.match_numeric(392.0) == "amount"
    assert mapping.match_numeric(150.0) is None
