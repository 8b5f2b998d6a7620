"""
Default download handler: turn the (markdown-ish) draft into DOCX with python-docx,
and into PDF by converting that DOCX with LibreOffice in headless mode.
"""
import logging
import os
import re
import subprocess
import tempfile
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path

from docx import Document

from docpreview.config import Config
from docpreview.errors import ExportError

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("docx", "pdf")
MIME_TYPES = {
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "pdf": "application/pdf",
}
PDF_CONVERSION_TIMEOUT = 120

_HEADING = re.compile(r"^(#{1,6})\s+(.*)$")
_BOLD = re.compile(r"\*\*(.+?)\*\*")


@dataclass
class ExportedFile:
    filename: str
    mimetype: str
    data: bytes


def _add_block(doc, block: str) -> None:
    m = _HEADING.match(block)
    if m and "\n" not in block:
        # "#" is the document title (level 0), "##" heading 1, and so on.
        level = min(len(m.group(1)), 4) - 1
        doc.add_heading(m.group(2).strip().strip("*_"), level=level)
        return
    paragraph = doc.add_paragraph()
    text = block.replace("\n", " ")
    pos = 0
    for bold in _BOLD.finditer(text):
        if bold.start() > pos:
            paragraph.add_run(text[pos:bold.start()])
        paragraph.add_run(bold.group(1)).bold = True
        pos = bold.end()
    if pos < len(text):
        paragraph.add_run(text[pos:])


def text_to_docx_bytes(text: str) -> bytes:
    """Build a .docx in memory from plain text (paragraphs split on double newline, # lines as headings)."""
    doc = Document()
    for block in (text or "").split("\n\n"):
        block = block.strip()
        if not block:
            continue
        lines = block.split("\n")
        # A heading line followed directly by body text becomes heading + paragraph.
        if _HEADING.match(lines[0]) and len(lines) > 1:
            _add_block(doc, lines[0])
            _add_block(doc, "\n".join(lines[1:]))
        else:
            _add_block(doc, block)
    buf = BytesIO()
    doc.save(buf)
    buf.seek(0)
    return buf.read()


class DocumentExporter:
    """
    Callable usable as the session's on_download hook; also returns the bytes for hosts
    that stream the file themselves.
    """

    def __init__(self, config: Config | None = None, output_dir: str | Path | None = None):
        cfg = config or Config()
        self._soffice = cfg.SOFFICE_PATH
        self._output_dir = Path(output_dir) if output_dir else None

    def export(self, content: str, fmt: str, filename: str) -> ExportedFile:
        if fmt not in EXPORT_FORMATS:
            raise ExportError(f"Unsupported export format: {fmt}")
        docx_bytes = text_to_docx_bytes(content)
        data = docx_bytes if fmt == "docx" else self._docx_to_pdf(docx_bytes)
        exported = ExportedFile(filename=filename, mimetype=MIME_TYPES[fmt], data=data)
        if self._output_dir is not None:
            self._output_dir.mkdir(parents=True, exist_ok=True)
            (self._output_dir / filename).write_bytes(data)
        logger.info(f"Exported {filename} ({len(data)} bytes)")
        return exported

    __call__ = export

    def _docx_to_pdf(self, docx_bytes: bytes) -> bytes:
        with tempfile.TemporaryDirectory() as tmp:
            src = os.path.join(tmp, "document.docx")
            with open(src, "wb") as f:
                f.write(docx_bytes)
            try:
                r = subprocess.run(
                    [self._soffice, "--headless", "--convert-to", "pdf", "--outdir", tmp, src],
                    capture_output=True,
                    text=True,
                    timeout=PDF_CONVERSION_TIMEOUT,
                )
            except (OSError, subprocess.TimeoutExpired) as e:
                raise ExportError(f"PDF conversion unavailable: {e}") from e
            out = os.path.join(tmp, "document.pdf")
            if r.returncode != 0 or not os.path.isfile(out):
                raise ExportError(r.stderr.strip() or r.stdout.strip() or "PDF conversion failed")
            with open(out, "rb") as f:
                return f.read()
