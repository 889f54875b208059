"""PDF page rendering for blueprint submission.

Processing flow:
1. Open the raw PDF bytes with PyMuPDF (`fitz`).
2. Rasterize the requested page(s) with a uniform scale matrix.
3. Convert the pixmap to RGB with Pillow and encode it as JPEG.
4. Return raw base64 (for requests) or a data URL (for display).

Rendering order:
- Pages are rendered strictly sequentially, one pixmap at a time.

Error handling strategy:
- Any failure to open or rasterize a document is raised as `PdfRenderError`;
  callers turn it into a user-facing message and discard partial output.
"""

import base64
import io
import os
from dataclasses import dataclass

import fitz
from dotenv import load_dotenv
from PIL import Image

load_dotenv()


JPEG_MIME_TYPE = "image/jpeg"
JPEG_QUALITY = 85


@dataclass(frozen=True)
class RenderConfig:
    """Render scales used by `BlueprintAnalyzer`.

    Relevant environment variables:
        - `THUMBNAIL_SCALE`: page-picker thumbnails.
        - `PAGE_SCALE`: the single selected page sent for analysis.
        - `DOCUMENT_PAGE_SCALE`: every page in whole-document analysis.
    """

    thumbnail_scale: float = float(os.getenv("THUMBNAIL_SCALE", "0.5"))
    page_scale: float = float(os.getenv("PAGE_SCALE", "2.0"))
    document_page_scale: float = float(os.getenv("DOCUMENT_PAGE_SCALE", "1.5"))


class PdfRenderError(RuntimeError):
    """Raised when a PDF cannot be opened or one of its pages cannot be rendered."""


def to_data_url(image_base64: str, mime_type: str = JPEG_MIME_TYPE) -> str:
    return f"data:{mime_type};base64,{image_base64}"


def _open_document(data: bytes) -> fitz.Document:
    """Open PDF bytes or raise `PdfRenderError`."""
    if not data:
        raise PdfRenderError("Empty PDF payload")
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except Exception as err:
        raise PdfRenderError("Could not open PDF document") from err
    if doc.page_count < 1:
        doc.close()
        raise PdfRenderError("PDF document has no pages")
    return doc


def _render_page(doc: fitz.Document, page_index: int, scale: float) -> str:
    """Rasterize one 0-based page and return base64 JPEG bytes."""
    try:
        page = doc.load_page(page_index)
        pixmap = page.get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
        image = Image.frombytes("RGB", (pixmap.width, pixmap.height), pixmap.samples)
        buffer = io.BytesIO()
        image.save(buffer, format="JPEG", quality=JPEG_QUALITY)
    except Exception as err:
        raise PdfRenderError(f"Could not render page {page_index + 1}") from err
    return base64.b64encode(buffer.getvalue()).decode("ascii")


def count_pages(data: bytes) -> int:
    """Return the number of pages in a PDF."""
    doc = _open_document(data)
    try:
        return doc.page_count
    finally:
        doc.close()


def render_pdf_page_thumbnails(data: bytes, scale: float) -> list[str]:
    """Render one thumbnail per page, in ascending page order, as JPEG data URLs.

    Partial output is never returned: a failure on any page raises
    `PdfRenderError`.
    """
    doc = _open_document(data)
    try:
        return [
            to_data_url(_render_page(doc, index, scale))
            for index in range(doc.page_count)
        ]
    finally:
        doc.close()


def render_page(data: bytes, page_number: int, scale: float) -> str:
    """Render 1-based `page_number` and return base64 JPEG bytes.

    Raises:
        PdfRenderError: unreadable document or page outside the document.
    """
    doc = _open_document(data)
    try:
        if page_number < 1 or page_number > doc.page_count:
            raise PdfRenderError(f"Page {page_number} is out of range")
        return _render_page(doc, page_number - 1, scale)
    finally:
        doc.close()


def render_all_pages(data: bytes, scale: float) -> list[str]:
    """Render every page in order and return base64 JPEG bytes per page."""
    doc = _open_document(data)
    try:
        return [_render_page(doc, index, scale) for index in range(doc.page_count)]
    finally:
        doc.close()
