"""Backend protocol for loading, copying, drawing on and saving PDFs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Protocol, Sequence

from ..geometry import Color


@dataclass(frozen=True)
class PageGeometry:
    """Visible page box and ``/Rotate`` value of a source page."""

    left: float
    bottom: float
    right: float
    top: float
    rotation: int = 0

    @property
    def width(self) -> float:
        return abs(self.right - self.left)

    @property
    def height(self) -> float:
        return abs(self.top - self.bottom)


@dataclass
class BackendDocument:
    """Represents a loaded source PDF with backend-specific helpers."""

    num_pages: int

    def page_geometry(self, index: int) -> PageGeometry:
        raise NotImplementedError


class OverlayFont(Protocol):
    """Embedded font able to measure text."""

    name: str

    def width_of_text_at_size(self, text: str, size: float) -> float:
        """Return the advance width of *text* at *size* points."""


class OutputPage(Protocol):
    """Page appended to an output document that overlays can be drawn on.

    ``origin`` is the lower-left corner of the page box in user space and
    ``rotation`` the page's ``/Rotate`` value in degrees.
    """

    width: float
    height: float
    origin: tuple[float, float]
    rotation: int

    def draw_text(
        self,
        text: str,
        *,
        x: float,
        y: float,
        size: float,
        font: OverlayFont,
        color: Color,
        opacity: float = 1.0,
        angle: float = 0.0,
    ) -> None:
        """Draw *text* with its baseline starting at ``(x, y)``.

        *angle* turns the baseline counter-clockwise, in degrees.
        """

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
        """Fill and/or stroke a rectangle whose lower-left corner is ``(x, y)``."""

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
        """Draw a polyline (or polygon when *closed*) through *points*."""

    def commit(self) -> None:
        """Flush pending drawing operations into the page content."""


class OutputDocument(Protocol):
    """Fresh document that pages are copied into."""

    def copy_page(self, source: BackendDocument, index: int) -> object:
        """Return an independent copy of page *index* of *source*."""

    def add_page(self, page: object) -> OutputPage:
        """Append a page returned by :meth:`copy_page`."""

    def embed_font(self, font_id: str) -> OverlayFont:
        """Embed a standard font, raising ``PdfBackendError`` if unknown."""

    def set_metadata(self, metadata: Mapping[str, str]) -> None:
        """Apply document information entries such as ``/Title``."""

    def save(self) -> bytes:
        """Serialise the document and return its bytes."""


class PDFBackend(Protocol):
    """Protocol defining backend operations for PDF reading/writing."""

    def load(self, data: bytes) -> BackendDocument:
        """Load PDF bytes and return a backend document wrapper."""

    def create(self) -> OutputDocument:
        """Return a new, empty output document."""
