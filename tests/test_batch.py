import asyncio

import pytest

from fapiao_extraction.pipeline.batch_processor import BatchProcessor
from fapiao_extraction.pipeline.extractor import InvoiceExtractor


@pytest.fixture
def processor(settings):
    return BatchProcessor(InvoiceExtractor(settings), batch_size=2)


def test_every_source_yields_one_result(processor, ascii_pdf_bytes):
    sources = [
        ("broken.pdf", b"not a pdf"),
        ("plain.pdf", ascii_pdf_bytes),
        ("empty.pdf", b""),
    ]
    results = processor.run(sources)

    assert [r.file_name for r in results] == ["broken.pdf", "plain.pdf", "empty.pdf"]
    assert not any(r.success for r in results)
    assert results[0].error_message.startswith("Could not decode document")
    assert results[1].error_message == "No line-item table header found"
    assert results[1].page_count == 1


def test_progress_reported_after_each_document(processor, ascii_pdf_bytes):
    calls = []
    sources = [(f"doc{i}.pdf", ascii_pdf_bytes) for i in range(3)]
    processor.run(sources, progress=lambda percent, name: calls.append((percent, name)))

    assert len(calls) == 3
    assert calls[-1][0] == pytest.approx(100.0)
    assert {name for _, name in calls} == {"doc0.pdf", "doc1.pdf", "doc2.pdf"}


def test_reads_paths_from_disk(processor, ascii_pdf_bytes, tmp_path):
    path = tmp_path / "scan.pdf"
    path.write_bytes(ascii_pdf_bytes)
    missing = tmp_path / "missing.pdf"

    results = asyncio.run(processor.process([path, missing]))

    assert results[0].file_name == "scan.pdf"
    assert results[0].page_count == 1
    assert results[1].error_message.startswith("File not found")


def test_batch_size_must_be_positive(settings):
    with pytest.raises(ValueError):
        BatchProcessor(InvoiceExtractor(settings), batch_size=-1)
