import pytest

from fapiao_extraction.input_handler import InputHandler, PDFProcessor
from fapiao_extraction.utils.exceptions import DecodeError, FileNotFoundError, UnsupportedFileTypeError

from conftest import PAGE_HEIGHT, PAGE_WIDTH


def test_pymupdf_fragments_use_bottom_origin(ascii_pdf_bytes):
    document = PDFProcessor().decode(ascii_pdf_bytes, "plain.pdf")

    assert document.page_count == 1
    page = document.pages[0]
    assert page.width == pytest.approx(PAGE_WIDTH)
    assert page.height == pytest.approx(PAGE_HEIGHT)

    fragment = next(f for f in page.fragments if f.text == "INVOICE 2024")
    assert fragment.x == pytest.approx(72.0, abs=1.0)
    assert fragment.y == pytest.approx(PAGE_HEIGHT - 100.0, abs=1.0)
    assert fragment.width > 0
    assert "Total 12.50" in document.full_text
    assert document.metadata["total_pages"] == 1


def test_pdfplumber_backend_gives_words(ascii_pdf_bytes):
    document = PDFProcessor(backend="pdfplumber").decode(ascii_pdf_bytes, "plain.pdf")
    texts = [f.text for f in document.pages[0].fragments]

    assert "INVOICE" in texts
    assert "12.50" in texts
    assert document.backend == "pdfplumber"


def test_decode_rejects_garbage():
    with pytest.raises(DecodeError):
        PDFProcessor().decode(b"%PDF-garbage", "broken.pdf")
    with pytest.raises(DecodeError):
        PDFProcessor().decode(b"", "empty.pdf")


def test_unknown_backend():
    with pytest.raises(ValueError):
        PDFProcessor(backend="ocr")


def test_input_handler_validates_paths(tmp_path, ascii_pdf_bytes):
    handler = InputHandler()
    (tmp_path / "b.pdf").write_bytes(ascii_pdf_bytes)
    (tmp_path / "a.PDF").write_bytes(ascii_pdf_bytes)
    (tmp_path / "notes.txt").write_text("skip me")

    assert [p.name for p in handler.collect(tmp_path)] == ["a.PDF", "b.pdf"]
    assert handler.load(tmp_path / "b.pdf").page_count == 1

    with pytest.raises(FileNotFoundError):
        handler.read_bytes(tmp_path / "missing.pdf")
    with pytest.raises(UnsupportedFileTypeError):
        handler.read_bytes(tmp_path / "notes.txt")
