"""Tests for .docx extraction and export."""

from __future__ import annotations

import io

import pytest
from docx import Document

from lab_report_mcp.documents import clean_markdown, export_docx, extract_text, load_report, render_docx
from lab_report_mcp.errors import DocumentExtractionError, ErrorCategory, ExportError


def _docx_bytes() -> bytes:
    doc = Document()
    doc.add_heading("Density Lab", level=1)
    doc.add_heading("Method", level=2)
    p = doc.add_paragraph("Mass was ")
    p.add_run("2.0 g").bold = True
    p.add_run(" at room temperature.")
    doc.add_paragraph("Weighed sample", style="List Bullet")
    table = doc.add_table(rows=2, cols=2)
    table.cell(0, 0).text = "Trial"
    table.cell(0, 1).text = "Mass"
    table.cell(1, 0).text = "1"
    table.cell(1, 1).text = "2.0 g"
    doc.add_paragraph("Conclusion text.")
    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


class TestExtractText:
    def test_structure_is_preserved(self):
        text = extract_text(_docx_bytes(), "lab.docx")
        blocks = text.split("\n\n")
        assert blocks[0] == "# Density Lab"
        assert blocks[1] == "## Method"
        assert blocks[2] == "Mass was **2.0 g** at room temperature."
        assert blocks[3] == "- Weighed sample"
        assert blocks[4] == "| Trial | Mass |\n| --- | --- |\n| 1 | 2.0 g |"
        assert blocks[5] == "Conclusion text."

    def test_empty_file(self):
        with pytest.raises(DocumentExtractionError) as exc_info:
            extract_text(b"", "empty.docx")
        assert exc_info.value.category == ErrorCategory.DOCUMENT_EMPTY

    def test_not_a_docx(self):
        with pytest.raises(DocumentExtractionError) as exc_info:
            extract_text(b"%PDF-1.7 not a word file", "report.pdf")
        assert exc_info.value.category == ErrorCategory.DOCUMENT_INVALID_FORMAT

    def test_corrupted_zip(self):
        with pytest.raises(DocumentExtractionError) as exc_info:
            extract_text(b"PK\x03\x04garbage-bytes", "broken.docx")
        assert exc_info.value.category == ErrorCategory.DOCUMENT_CORRUPTED


class TestLoadReport:
    def test_load_from_disk(self, tmp_path):
        path = tmp_path / "lab.docx"
        path.write_bytes(_docx_bytes())

        doc = load_report(path)

        assert doc.name == "lab.docx"
        assert doc.content == doc.original_content
        assert doc.content.startswith("# Density Lab")

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_report(tmp_path / "missing.docx")


class TestExport:
    def test_clean_markdown(self):
        assert clean_markdown("**Bold** and [link](http://x) `code`") == "Bold and link code"

    def test_render_headings_lists_and_tables(self):
        doc = render_docx("# Title\n## Results\n- item one\n\n| A | B |\n| --- | --- |\n| 1 | 2 |\nEnd")
        headings = [p.text for p in doc.paragraphs if p.style.name.startswith("Heading")]
        assert headings == ["Title", "Results"]
        bullets = [p.text for p in doc.paragraphs if p.style.name == "List Bullet"]
        assert bullets == ["item one"]
        assert len(doc.tables) == 1
        assert doc.tables[0].cell(1, 1).text == "2"
        assert doc.paragraphs[-1].text == "End"

    def test_ragged_table_rows(self):
        doc = render_docx("| A | B | C |\n| --- | --- | --- |\n| 1 |")
        assert len(doc.tables) == 1
        assert doc.tables[0].cell(1, 0).text == "1"

    def test_export_roundtrip(self, tmp_path):
        path = export_docx("# Report\nMass: **2.0 g**", "lab", tmp_path / "out")
        assert path.name == "lab.docx"
        text = extract_text(path.read_bytes(), path.name)
        assert "# Report" in text
        assert "Mass: 2.0 g" in text

    def test_export_keeps_docx_suffix(self, tmp_path):
        assert export_docx("x", "report.docx", tmp_path).name == "report.docx"

    def test_export_strips_control_characters(self, tmp_path):
        path = export_docx("bad\x01char", "ctl", tmp_path)
        assert "badchar" in extract_text(path.read_bytes())

    @pytest.mark.parametrize("text,expected", [
        ("# Title\n\nResult \ufffe value\n", "Result  value"),
        ("Lone \ud800 surrogate", "Lone  surrogate"),
        ("Tail \uffff end", "Tail  end"),
        ("| A | B |\n|---|---|\n| 1\ufffe | 2 |", "| 1 | 2 |"),
    ])
    def test_export_drops_xml_illegal_code_points(self, tmp_path, text, expected):
        path = export_docx(text, "unicode", tmp_path)
        assert expected in extract_text(path.read_bytes())

    def test_export_failure_raises_export_error(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        with pytest.raises(ExportError):
            export_docx("x", "lab", blocker / "sub")
