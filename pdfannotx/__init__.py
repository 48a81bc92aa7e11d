"""Overlay annotation editing and export for PDF documents."""

from __future__ import annotations

__version__ = "1.0.0"

from .exceptions import (
    InvalidPDFError,
    PdfAnnotError,
    PdfBackendError,
    PdfExportError,
    StateFormatError,
)
from .export import ExportOptions, export_final_pdf, export_to_file
from .geometry import (
    Color,
    MappedRect,
    Matrix,
    Size,
    canvas_to_pdf_y,
    denormalize_coordinates,
    hex_to_rgb,
    map_element_rect,
    normalize_coordinates,
)
from .importer import create_document_state, read_page_metrics
from .model import (
    ArrowElement,
    DocumentInfo,
    DocumentState,
    Footer,
    HighlightElement,
    PageData,
    PageMetrics,
    PaginationSettings,
    TextElement,
)
from .serializer import (
    RestoredDocument,
    deserialize,
    load_state_file,
    migrate_coordinate_space,
    save_state_file,
    serialize,
)
from .session import EditorSession

__all__ = [
    "__version__",
    "EditorSession",
    "DocumentState",
    "DocumentInfo",
    "PageData",
    "PageMetrics",
    "PaginationSettings",
    "Footer",
    "TextElement",
    "HighlightElement",
    "ArrowElement",
    "Color",
    "Matrix",
    "Size",
    "MappedRect",
    "map_element_rect",
    "normalize_coordinates",
    "denormalize_coordinates",
    "canvas_to_pdf_y",
    "hex_to_rgb",
    "create_document_state",
    "read_page_metrics",
    "serialize",
    "deserialize",
    "migrate_coordinate_space",
    "save_state_file",
    "load_state_file",
    "RestoredDocument",
    "ExportOptions",
    "export_final_pdf",
    "export_to_file",
    "PdfAnnotError",
    "PdfExportError",
    "PdfBackendError",
    "InvalidPDFError",
    "StateFormatError",
]
