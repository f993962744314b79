"""Renderings of document text for download."""
import io
import os
from typing import Tuple

from docx import Document as DocxDocument
from jinja2 import Environment, FileSystemLoader, select_autoescape

TEMPLATES_DIR = os.path.join(os.path.dirname(__file__), "templates")
env = Environment(loader=FileSystemLoader(TEMPLATES_DIR), autoescape=select_autoescape(["html"]))

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
EXPORT_FORMATS = ("txt", "gdoc", "docx", "pdf")


def render_text(content: str) -> bytes:
    return content.encode("utf-8")


def render_docx(content: str, title: str = "") -> bytes:
    doc = DocxDocument()
    if title:
        doc.core_properties.title = title
    for line in content.split("\n"):
        doc.add_paragraph(line)
    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


def render_pdf(content: str, title: str = "") -> bytes:
    # WeasyPrint pulls in pango/cairo at import; only pay for it when a PDF is requested
    from weasyprint import HTML

    html = env.get_template("document.html").render(title=title, lines=content.split("\n"))
    return HTML(string=html, base_url=TEMPLATES_DIR).write_pdf()


def render_document(content: str, fmt: str, title: str = "") -> Tuple[bytes, str]:
    """Return ``(body, media_type)`` for an export format."""
    if fmt in ("txt", "gdoc"):
        # Google Docs imports plain text uploads directly
        return render_text(content), "text/plain; charset=utf-8"
    if fmt == "docx":
        return render_docx(content, title), DOCX_MEDIA_TYPE
    if fmt == "pdf":
        return render_pdf(content, title), "application/pdf"
    raise ValueError(f"Unsupported export format: {fmt}")
