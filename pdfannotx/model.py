"""In-memory document model for the annotation editor.

All overlay coordinates are stored in editor canvas-space (top-left origin,
Y grows downward). Whether that canvas is the page's native unit space or
the fixed 612-unit legacy canvas is decided by
:attr:`DocumentState.coordinate_space`.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import ClassVar, Iterator

from .constants import (
    COORDINATE_SPACE_PDF,
    DEFAULT_BORDER_WIDTH,
    DEFAULT_HIGHLIGHT_COLOR,
    DEFAULT_HIGHLIGHT_OPACITY,
    FOOTER_SEPARATOR,
)


@dataclass(slots=True)
class TextElement:
    """Single-line (per paragraph) text box."""

    kind: ClassVar[str] = "text"
    scalable_fields: ClassVar[tuple[str, ...]] = ("font_size",)

    id: str
    x: float = 0.0
    y: float = 0.0
    width: float = 200.0
    height: float = 40.0
    color: str = "#000000"
    content: str = "New Text"
    font_size: float = 16.0
    bold: bool = False
    text_align: str = "left"


@dataclass(slots=True)
class HighlightElement:
    """Filled and/or bordered rectangle.

    ``color``/``opacity`` are the legacy single-color fields; the ``fill_*``
    and ``border_*`` fields override them when present.
    """

    kind: ClassVar[str] = "highlight"
    scalable_fields: ClassVar[tuple[str, ...]] = ("border_width",)

    id: str
    x: float = 100.0
    y: float = 100.0
    width: float = 200.0
    height: float = 50.0
    color: str = DEFAULT_HIGHLIGHT_COLOR
    opacity: float = DEFAULT_HIGHLIGHT_OPACITY
    fill_color: str | None = None
    fill_opacity: float | None = None
    border_color: str | None = None
    border_opacity: float | None = None
    style: str = "fill"
    border_width: float = DEFAULT_BORDER_WIDTH


@dataclass(slots=True)
class ArrowElement:
    """Arrow drawn left-to-right across its box, rotated about the left-center."""

    kind: ClassVar[str] = "arrow"
    scalable_fields: ClassVar[tuple[str, ...]] = ("thickness",)

    id: str
    x: float = 100.0
    y: float = 150.0
    width: float = 150.0
    height: float = 30.0
    color: str = "#ff0000"
    thickness: float = 3.0
    angle: float = 0.0


OverlayElement = TextElement | HighlightElement | ArrowElement

ELEMENT_TYPES: dict[str, type] = {
    TextElement.kind: TextElement,
    HighlightElement.kind: HighlightElement,
    ArrowElement.kind: ArrowElement,
}


@dataclass(slots=True)
class Footer:
    """Manual footer text used when automatic pagination is disabled."""

    number: str = ""
    detail: str = ""

    @property
    def text(self) -> str:
        parts = [part.strip() for part in (self.number, self.detail)]
        return FOOTER_SEPARATOR.join(part for part in parts if part)


@dataclass(slots=True)
class PageData:
    """Overlay collections owned by one page."""

    texts: list[TextElement] = field(default_factory=list)
    highlights: list[HighlightElement] = field(default_factory=list)
    arrows: list[ArrowElement] = field(default_factory=list)
    footer: Footer = field(default_factory=Footer)

    def collections(self) -> tuple[list, list, list]:
        return (self.texts, self.highlights, self.arrows)

    def collection_for(self, kind: str) -> list:
        return {
            TextElement.kind: self.texts,
            HighlightElement.kind: self.highlights,
            ArrowElement.kind: self.arrows,
        }[kind]

    def elements(self) -> Iterator[OverlayElement]:
        for collection in self.collections():
            yield from collection

    def find(self, element_id: str) -> OverlayElement | None:
        for element in self.elements():
            if element.id == element_id:
                return element
        return None

    def remove(self, element_ids: set[str]) -> bool:
        """Drop every element whose id is in *element_ids*."""

        removed = False
        for collection in self.collections():
            kept = [element for element in collection if element.id not in element_ids]
            if len(kept) != len(collection):
                collection[:] = kept
                removed = True
        return removed


@dataclass(slots=True)
class PageMetrics:
    """Native size and source attribution of a page.

    ``transform`` is the rasterizer's scale-1 viewport matrix
    ``(a, b, c, d, e, f)`` mapping page-space onto canvas-space.
    """

    width: float
    height: float
    page_index: int
    source_index: int = 0
    transform: tuple[float, float, float, float, float, float] | None = None

    @property
    def has_size(self) -> bool:
        return self.width > 0 and self.height > 0


@dataclass(slots=True)
class PaginationSettings:
    enabled: bool = False
    position: str = "bottom-center"
    start_at: int = 1
    background_box: bool = False


@dataclass(slots=True)
class DocumentInfo:
    name: str
    created_at: str
    page_order: list[str] = field(default_factory=list)


@dataclass(slots=True)
class DocumentState:
    """Complete editable document, including the original PDF bytes."""

    document: DocumentInfo | None = None
    pages: dict[str, PageData] = field(default_factory=dict)
    pagination: PaginationSettings = field(default_factory=PaginationSettings)
    language: str = "en"
    coordinate_space: str = COORDINATE_SPACE_PDF
    original_pdf_bytes: bytes | None = None
    original_pdf_sources: list[bytes] = field(default_factory=list)
    page_metrics: dict[str, PageMetrics] = field(default_factory=dict)

    @property
    def page_order(self) -> list[str]:
        if self.document is None:
            return []
        return self.document.page_order

    def clone(self) -> "DocumentState":
        """Return a fully independent copy (source bytes are immutable and shared)."""

        return copy.deepcopy(self)


__all__ = [
    "TextElement",
    "HighlightElement",
    "ArrowElement",
    "OverlayElement",
    "ELEMENT_TYPES",
    "Footer",
    "PageData",
    "PageMetrics",
    "PaginationSettings",
    "DocumentInfo",
    "DocumentState",
]
