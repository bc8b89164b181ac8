import main


def test_cli_writes_excel_and_reports_failures(tmp_path, ascii_pdf_bytes):
    (tmp_path / "plain.pdf").write_bytes(ascii_pdf_bytes)
    output = tmp_path / "out" / "result.xlsx"

    exit_code = main.main(["--input", str(tmp_path / "plain.pdf"), "--output", str(output), "--quiet"])

    # the document has no table, so the run reports a failure
    assert exit_code == 1
    assert output.exists()


def test_cli_json_output_to_directory(tmp_path, ascii_pdf_bytes):
    (tmp_path / "in").mkdir()
    (tmp_path / "in" / "plain.pdf").write_bytes(ascii_pdf_bytes)
    out_dir = tmp_path / "out"

    main.main(["-i", str(tmp_path / "in"), "-o", str(out_dir), "--json", "--no-excel", "-q"])

    assert len(list(out_dir.glob("*.json"))) == 1
    assert list(out_dir.glob("*.xlsx")) == []


def test_cli_missing_input(tmp_path):
    assert main.main(["--input", str(tmp_path / "missing.pdf"), "-q"]) == 1
