"""Backend abstractions for the PDF document capability."""

from .base import BackendDocument, OutputDocument, OutputPage, OverlayFont, PageGeometry, PDFBackend
from .pypdf_backend import PypdfBackend

__all__ = [
    "BackendDocument",
    "OutputDocument",
    "OutputPage",
    "OverlayFont",
    "PageGeometry",
    "PDFBackend",
    "PypdfBackend",
]
