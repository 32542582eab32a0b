"""Document source and sink — .docx to Markdown-ish text and back.

``extract_text`` keeps headings, bullet lists, bold runs, and tables (as
GFM pipe tables) so the collaborator sees the report's structure.
``export_docx`` renders the edited text back to Word, degrading to plain
paragraphs for anything it cannot interpret.
"""

from __future__ import annotations

import io
import logging
import re
from pathlib import Path

from docx import Document
from docx.shared import Pt
from docx.table import Table
from docx.text.paragraph import Paragraph

from .errors import DocumentExtractionError, ErrorCategory, ExportError
from .models.report import ReportDocument

logger = logging.getLogger(__name__)

ZIP_SIGNATURE = b"PK\x03\x04"
_XML_INVALID = re.compile(r"[^\x09\x0a\x0d\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")
_LINK = re.compile(r"\[([^\]]+)\]\([^)]+\)")
_CODE = re.compile(r"`([^`]+)`")


# ── Extraction ───────────────────────────────────────────────────────────────


def _paragraph_markdown(paragraph: Paragraph) -> str:
    parts: list[str] = []
    for run in paragraph.runs:
        text = run.text
        if not text:
            continue
        parts.append(f"**{text}**" if run.bold and text.strip() else text)
    text = "".join(parts).strip() or paragraph.text.strip()
    if not text:
        return ""

    style = (paragraph.style.name if paragraph.style is not None else "") or ""
    if style.startswith("Heading"):
        level = style.rsplit(" ", 1)[-1]
        hashes = "#" * int(level) if level.isdigit() else "#"
        return f"{hashes} {text.replace('**', '')}"
    if style == "Title":
        return f"# {text.replace('**', '')}"
    if "List" in style:
        return f"- {text}"
    return text


def _table_markdown(table: Table) -> str:
    rows: list[str] = []
    for i, row in enumerate(table.rows):
        cells = [c.text.strip().replace("\n", " ").replace("|", "\\|") for c in row.cells]
        rows.append("| " + " | ".join(cells) + " |")
        if i == 0:
            rows.append("|" + "|".join(" --- " for _ in cells) + "|")
    return "\n".join(rows)


def extract_text(data: bytes, filename: str = "report.docx") -> str:
    """Convert .docx bytes into Markdown-ish plain text.

    Raises:
        DocumentExtractionError: Empty file, not a .docx, or unreadable contents.
    """
    if not data:
        raise DocumentExtractionError(
            ErrorCategory.DOCUMENT_EMPTY, f"'{filename}' is empty — choose a file with content",
        )
    if not data.startswith(ZIP_SIGNATURE):
        raise DocumentExtractionError(
            ErrorCategory.DOCUMENT_INVALID_FORMAT,
            f"'{filename}' is not a .docx file — save it as a Word document and try again",
        )
    try:
        doc = Document(io.BytesIO(data))
        blocks: list[str] = []
        for item in doc.iter_inner_content():
            block = _table_markdown(item) if isinstance(item, Table) else _paragraph_markdown(item)
            if block:
                blocks.append(block)
    except Exception as exc:
        logger.warning("Failed to parse %s: %s", filename, exc)
        raise DocumentExtractionError(
            ErrorCategory.DOCUMENT_CORRUPTED,
            f"'{filename}' looks corrupted and could not be read — re-save it in Word and retry",
        ) from exc
    return "\n\n".join(blocks)


def load_report(path: str | Path) -> ReportDocument:
    """Read a .docx from disk into a new ReportDocument."""
    path = Path(path).expanduser()
    if not path.is_file():
        raise FileNotFoundError(f"Report not found: {path}")
    text = extract_text(path.read_bytes(), path.name)
    return ReportDocument.from_text(path.name, text)


# ── Export ───────────────────────────────────────────────────────────────────


def clean_markdown(text: str) -> str:
    text = text.replace("**", "").replace("*", "")
    text = _LINK.sub(r"\1", text)
    text = _CODE.sub(r"\1", text)
    return _XML_INVALID.sub("", text).strip()


def _is_table_row(line: str) -> bool:
    return "|" in line and len(line.strip()) > 1


def _split_row(line: str) -> list[str]:
    cells = [c.strip() for c in line.strip().split("|")]
    if cells and cells[0] == "":
        cells = cells[1:]
    if cells and cells[-1] == "":
        cells = cells[:-1]
    return cells


def _add_table(doc, lines: list[str]) -> None:
    rows = [_split_row(line) for i, line in enumerate(lines) if not (i == 1 and "---" in line)]
    width = max(len(r) for r in rows)
    table = doc.add_table(rows=len(rows), cols=width)
    table.style = "Table Grid"
    for r, cells in enumerate(rows):
        for c, value in enumerate(cells):
            cell = table.cell(r, c)
            cell.text = clean_markdown(value)
            if r == 0:
                for run in cell.paragraphs[0].runs:
                    run.bold = True


def _add_line(doc, line: str) -> None:
    for prefix, level in (("### ", 3), ("## ", 2), ("# ", 1)):
        if line.startswith(prefix):
            doc.add_heading(clean_markdown(line[len(prefix):]), level=level)
            return
    if line.startswith(("- ", "* ")):
        doc.add_paragraph(clean_markdown(line[2:]), style="List Bullet")
        return
    doc.add_paragraph(clean_markdown(line))


def render_docx(text: str):
    """Build a python-docx Document from Markdown-ish *text*."""
    doc = Document()
    normal = doc.styles["Normal"]
    normal.font.name = "Calibri"
    normal.font.size = Pt(11)

    lines = text.split("\n")
    i = 0
    while i < len(lines):
        line = lines[i].strip()
        if not line:
            doc.add_paragraph("")
            i += 1
            continue

        next_line = lines[i + 1].strip() if i + 1 < len(lines) else ""
        if _is_table_row(line) and "|" in next_line and "---" in next_line:
            table_lines: list[str] = []
            while i < len(lines) and _is_table_row(lines[i]):
                table_lines.append(lines[i].strip())
                i += 1
            try:
                _add_table(doc, table_lines)
            except (ValueError, IndexError, KeyError) as exc:
                logger.warning("Table rendering failed, writing plain rows: %s", exc)
                for row in table_lines:
                    doc.add_paragraph(clean_markdown(row))
            doc.add_paragraph("")
            continue

        _add_line(doc, line)
        i += 1
    return doc


def export_docx(text: str, filename: str, output_dir: str | Path) -> Path:
    """Write *text* as a .docx named after *filename* under *output_dir*.

    Raises:
        ExportError: The file could not be produced. Session state is untouched.
    """
    name = Path(filename).name or "report"
    if not name.lower().endswith(".docx"):
        name = f"{name}.docx"
    target = Path(output_dir).expanduser() / name
    try:
        doc = render_docx(text)
        target.parent.mkdir(parents=True, exist_ok=True)
        doc.save(str(target))
    except Exception as exc:
        raise ExportError(f"could not write {name}: {exc}") from exc
    logger.info("Exported report to %s", target)
    return target
