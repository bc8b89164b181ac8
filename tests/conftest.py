import sys
from pathlib import Path

import fitz  # PyMuPDF
import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config.parser_settings import ParserSettings  # noqa: E402
from fapiao_extraction.layout.models import Line, TextFragment  # noqa: E402
from fapiao_extraction.layout.reconstructor import PageReconstructor  # noqa: E402

PAGE_WIDTH = 595.0
PAGE_HEIGHT = 842.0
INVOICE_NUMBER = "24442000000123456789"

# (text, x, width) of the header labels; centers are x + width / 2
HEADER_LABELS = [
    ("货物或应税劳务、服务名称", 30.0, 120.0),
    ("规格型号", 170.0, 40.0),
    ("单位", 230.0, 20.0),
    ("数量", 270.0, 20.0),
    ("单价", 320.0, 20.0),
    ("金额", 390.0, 20.0),
    ("税率", 450.0, 20.0),
    ("税额", 510.0, 20.0),
]


def frag(text, x, y, width=None, page_index=0):
    """Build a fragment; width defaults to 6 units per character."""
    if width is None:
        width = 6.0 * len(text)
    return TextFragment(text=text, x=x, y=y, width=width, height=9.0, page_index=page_index)


def line(y, *items):
    """Build a line from (text, x[, width]) tuples."""
    fragments = tuple(frag(item[0], item[1], y, *item[2:]) for item in items)
    return Line(y=y, fragments=fragments)


def header_line(y=600.0, labels=None):
    return line(y, *(labels or HEADER_LABELS))


def invoice_fragments(page_index=0):
    """
    Fragments of a two-item special VAT invoice, in shuffled order.

    Item 1 has every value in its own column; item 2 packs quantity,
    unit price, amount, tax rate and tax amount into one fragment.
    """
    rows = [
        # grand total
        ("价税合计（大写）", 30.0, 520.0, 90.0),
        ("壹佰伍拾叁圆肆角整", 150.0, 520.0, 100.0),
        ("（小写）", 400.0, 520.0, 36.0),
        ("¥153.40", 440.0, 520.0, 40.0),
        # item 2
        ("145.7545.7513%5.95", 275.0, 560.0, 200.0),
        ("*食品*饼干", 30.0, 560.0, 60.0),
        ("500g", 175.0, 560.0, 24.0),
        ("盒", 235.0, 560.0, 10.0),
        # title and anchors
        ("电子发票（增值税专用发票）", 200.0, 800.0, 200.0),
        ("发票号码：", 400.0, 780.0, 50.0),
        (INVOICE_NUMBER, 455.0, 780.0, 110.0),
        ("开票日期：", 400.0, 765.0, 50.0),
        ("2024年03月15日", 455.0, 765.0, 80.0),
        # item 1
        ("*纸制品*打印纸", 30.0, 580.0, 80.0),
        ("A4", 175.0, 580.0, 15.0),
        ("箱", 235.0, 580.0, 10.0),
        ("2", 278.0, 580.0, 5.0),
        ("45.00", 322.0, 580.0, 25.0),
        ("90.00", 392.0, 580.0, 25.0),
        ("13%", 452.0, 580.0, 15.0),
        ("11.70", 512.0, 580.0, 25.0),
        # subtotal
        ("合计", 60.0, 540.0, 30.0),
        ("¥135.75", 385.0, 540.0, 40.0),
        ("¥17.65", 505.0, 540.0, 35.0),
    ]
    fragments = [frag(text, x, y, width, page_index) for text, x, y, width in rows]
    fragments += [frag(text, x, 600.0, width, page_index) for text, x, width in HEADER_LABELS]
    return fragments


@pytest.fixture
def settings():
    return ParserSettings()


@pytest.fixture
def invoice_page(settings):
    return PageReconstructor(settings).reconstruct(
        invoice_fragments(), 0, PAGE_WIDTH, PAGE_HEIGHT
    )


@pytest.fixture
def ascii_pdf_bytes():
    """A one-page PDF whose text layer has no invoice table."""
    doc = fitz.open()
    page = doc.new_page(width=PAGE_WIDTH, height=PAGE_HEIGHT)
    page.insert_text((72, 100), "INVOICE 2024", fontsize=12)
    page.insert_text((72, 130), "Total 12.50", fontsize=12)
    data = doc.tobytes()
    doc.close()
    return data
