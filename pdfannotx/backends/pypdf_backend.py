"""pypdf + reportlab backend implementation.

pypdf copies pages between documents and serialises the result; reportlab
renders each page's overlay into a single-page PDF that is then stamped onto
the copied page with :meth:`pypdf.PageObject.merge_page`.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from typing import Mapping, Sequence

from pypdf import PageObject, PdfReader, PdfWriter
from pypdf.errors import PdfReadError
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfgen import canvas

from ..exceptions import InvalidPDFError, PdfBackendError
from ..geometry import Color
from .base import BackendDocument, PageGeometry, PDFBackend

LOGGER = logging.getLogger("pdfannotx.backends")


def _open_reader(raw_bytes: bytes) -> PdfReader:
    try:
        reader = PdfReader(io.BytesIO(raw_bytes))
    except PdfReadError as exc:
        raise InvalidPDFError(f"Corrupted or invalid PDF data: {exc}") from exc
    except Exception as exc:  # pragma: no cover - dependency exceptions vary
        raise InvalidPDFError(f"Unexpected error reading PDF data: {exc}") from exc

    if reader.is_encrypted:
        LOGGER.debug("Attempting to decrypt encrypted PDF source")
        try:
            reader.decrypt("")
        except Exception as exc:  # pragma: no cover - decrypt errors vary
            raise InvalidPDFError("Unable to decrypt encrypted PDF source") from exc
    return reader


@dataclass
class PypdfDocument(BackendDocument):
    reader: PdfReader
    raw_bytes: bytes
    _copied: set[int] = field(default_factory=set)
    _extra_readers: list[PdfReader] = field(default_factory=list)

    def _check_index(self, index: int) -> None:
        if index < 0 or index >= self.num_pages:
            raise PdfBackendError(
                f"Page index {index} is out of range for a {self.num_pages}-page source"
            )

    def page_geometry(self, index: int) -> PageGeometry:
        self._check_index(index)
        page = self.reader.pages[index]
        box = page.cropbox
        return PageGeometry(
            left=float(box.left),
            bottom=float(box.bottom),
            right=float(box.right),
            top=float(box.top),
            rotation=int(page.rotation or 0) % 360,
        )

    def take_page(self, index: int) -> PageObject:
        """Return page *index*, read from a fresh reader if it was taken before.

        Reusing the same source page object for two output pages would make
        both share one page dictionary inside the writer.
        """

        self._check_index(index)
        if index not in self._copied:
            self._copied.add(index)
            return self.reader.pages[index]
        LOGGER.debug("Page %d requested again; reading an independent copy", index)
        reader = _open_reader(self.raw_bytes)
        self._extra_readers.append(reader)
        return reader.pages[index]


@dataclass(frozen=True)
class StandardFont:
    """One of the standard 14 PDF fonts, measured with reportlab metrics."""

    name: str

    def width_of_text_at_size(self, text: str, size: float) -> float:
        return pdfmetrics.stringWidth(text, self.name, size)


class PypdfPage:
    """Writer page plus a lazily created reportlab overlay canvas."""

    def __init__(self, page: PageObject) -> None:
        self.page = page
        box = page.cropbox
        self.origin = (float(box.left), float(box.bottom))
        self.width = float(box.width)
        self.height = float(box.height)
        self.rotation = int(page.rotation or 0) % 360
        self._buffer: io.BytesIO | None = None
        self._canvas: canvas.Canvas | None = None

    def _ensure_canvas(self) -> canvas.Canvas:
        if self._canvas is None:
            self._buffer = io.BytesIO()
            pagesize = (
                max(self.origin[0] + self.width, 1.0),
                max(self.origin[1] + self.height, 1.0),
            )
            self._canvas = canvas.Canvas(self._buffer, pagesize=pagesize)
        return self._canvas

    def draw_text(
        self,
        text: str,
        *,
        x: float,
        y: float,
        size: float,
        font: StandardFont,
        color: Color,
        opacity: float = 1.0,
        angle: float = 0.0,
    ) -> None:
        pdf_canvas = self._ensure_canvas()
        pdf_canvas.saveState()
        pdf_canvas.setFillColorRGB(*color)
        pdf_canvas.setFillAlpha(opacity)
        pdf_canvas.setFont(font.name, size)
        pdf_canvas.translate(x, y)
        if angle:
            pdf_canvas.rotate(angle)
        pdf_canvas.drawString(0, 0, text)
        pdf_canvas.restoreState()

    def draw_rectangle(
        self,
        *,
        x: float,
        y: float,
        width: float,
        height: float,
        color: Color | None = None,
        opacity: float = 1.0,
        border_color: Color | None = None,
        border_width: float = 0.0,
        border_opacity: float = 1.0,
    ) -> None:
        fill = color is not None
        stroke = border_color is not None and border_width > 0
        if not fill and not stroke:
            return
        pdf_canvas = self._ensure_canvas()
        pdf_canvas.saveState()
        if fill:
            pdf_canvas.setFillColorRGB(*color)
            pdf_canvas.setFillAlpha(opacity)
        if stroke:
            pdf_canvas.setStrokeColorRGB(*border_color)
            pdf_canvas.setStrokeAlpha(border_opacity)
            pdf_canvas.setLineWidth(border_width)
        pdf_canvas.rect(x, y, width, height, stroke=int(stroke), fill=int(fill))
        pdf_canvas.restoreState()

    def draw_path(
        self,
        points: Sequence[tuple[float, float]],
        *,
        closed: bool = False,
        stroke_color: Color | None = None,
        stroke_width: float = 1.0,
        fill_color: Color | None = None,
        opacity: float = 1.0,
    ) -> None:
        if len(points) < 2 or (stroke_color is None and fill_color is None):
            return
        pdf_canvas = self._ensure_canvas()
        pdf_canvas.saveState()
        path = pdf_canvas.beginPath()
        path.moveTo(*points[0])
        for point in points[1:]:
            path.lineTo(*point)
        if closed:
            path.close()
        if stroke_color is not None:
            pdf_canvas.setStrokeColorRGB(*stroke_color)
            pdf_canvas.setStrokeAlpha(opacity)
            pdf_canvas.setLineWidth(stroke_width)
        if fill_color is not None:
            pdf_canvas.setFillColorRGB(*fill_color)
            pdf_canvas.setFillAlpha(opacity)
        pdf_canvas.drawPath(
            path,
            stroke=int(stroke_color is not None),
            fill=int(fill_color is not None),
        )
        pdf_canvas.restoreState()

    def commit(self) -> None:
        if self._canvas is None or self._buffer is None:
            return
        self._canvas.save()
        self._buffer.seek(0)
        overlay = PdfReader(self._buffer).pages[0]
        self.page.merge_page(overlay)
        self._canvas = None
        self._buffer = None


class PypdfOutputDocument:
    def __init__(self) -> None:
        self.writer = PdfWriter()
        self._pages: list[PypdfPage] = []

    def copy_page(self, source: PypdfDocument, index: int) -> PageObject:
        return source.take_page(index)

    def add_page(self, page: PageObject) -> PypdfPage:
        try:
            added = self.writer.add_page(page)
        except Exception as exc:  # pragma: no cover - dependency exceptions vary
            raise PdfBackendError(f"Failed to append page: {exc}") from exc
        output_page = PypdfPage(added)
        self._pages.append(output_page)
        return output_page

    def embed_font(self, font_id: str) -> StandardFont:
        try:
            pdfmetrics.getFont(font_id)
        except Exception as exc:  # reportlab raises KeyError or ValueError
            raise PdfBackendError(f"Font '{font_id}' is not available") from exc
        return StandardFont(font_id)

    def set_metadata(self, metadata: Mapping[str, str]) -> None:
        if metadata:
            self.writer.add_metadata(dict(metadata))

    def save(self) -> bytes:
        for page in self._pages:
            page.commit()
        buffer = io.BytesIO()
        try:
            self.writer.write(buffer)
        except Exception as exc:  # pragma: no cover - dependency exceptions vary
            raise PdfBackendError(f"Failed to serialise PDF: {exc}") from exc
        return buffer.getvalue()


class PypdfBackend(PDFBackend):
    """Backend implementation that uses `pypdf` and `reportlab` under the hood."""

    def load(self, data: bytes) -> PypdfDocument:
        raw_bytes = bytes(data)
        if not raw_bytes:
            raise InvalidPDFError("PDF data is empty")
        reader = _open_reader(raw_bytes)
        try:
            num_pages = len(reader.pages)
        except Exception as exc:  # pragma: no cover - dependency exceptions vary
            raise InvalidPDFError(f"Unable to read PDF page tree: {exc}") from exc
        if num_pages == 0:
            raise InvalidPDFError("PDF has no pages")
        LOGGER.debug("Loaded PDF source with %d page(s)", num_pages)
        return PypdfDocument(num_pages=num_pages, reader=reader, raw_bytes=raw_bytes)

    def create(self) -> PypdfOutputDocument:
        return PypdfOutputDocument()


__all__ = ["PypdfBackend", "PypdfDocument", "PypdfOutputDocument", "PypdfPage", "StandardFont"]
