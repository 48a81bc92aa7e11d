"""Build document state from imported PDF bytes.

Page metrics mirror what a browser page rasterizer reports for a page at
scale 1: the rotated viewport size and the viewport transform that maps
PDF user space onto the top-left-origin canvas.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from .backends import PageGeometry, PDFBackend, PypdfBackend
from .constants import COORDINATE_SPACE_PDF
from .geometry import Matrix
from .model import DocumentInfo, DocumentState, PageData, PageMetrics
from .utils import new_id

LOGGER = logging.getLogger("pdfannotx.importer")

_ROTATIONS = {
    0: (1.0, 0.0, 0.0, -1.0),
    90: (0.0, 1.0, 1.0, 0.0),
    180: (-1.0, 0.0, 0.0, 1.0),
    270: (0.0, -1.0, -1.0, 0.0),
}


def viewport_transform(
    geometry: PageGeometry, scale: float = 1.0
) -> tuple[float, float, Matrix]:
    """Return ``(width, height, transform)`` of the page viewport at *scale*."""

    rotation = geometry.rotation % 360
    if rotation not in _ROTATIONS:
        LOGGER.warning("Unsupported page rotation %s; treating as 0", geometry.rotation)
        rotation = 0
    rotate_a, rotate_b, rotate_c, rotate_d = _ROTATIONS[rotation]

    center_x = (geometry.left + geometry.right) / 2
    center_y = (geometry.bottom + geometry.top) / 2
    if rotate_a == 0:
        offset_x = abs(center_y - geometry.bottom) * scale
        offset_y = abs(center_x - geometry.left) * scale
        width = geometry.height * scale
        height = geometry.width * scale
    else:
        offset_x = abs(center_x - geometry.left) * scale
        offset_y = abs(center_y - geometry.bottom) * scale
        width = geometry.width * scale
        height = geometry.height * scale

    transform = Matrix(
        rotate_a * scale,
        rotate_b * scale,
        rotate_c * scale,
        rotate_d * scale,
        offset_x - rotate_a * scale * center_x - rotate_c * scale * center_y,
        offset_y - rotate_b * scale * center_x - rotate_d * scale * center_y,
    )
    return width, height, transform


def read_page_metrics(
    data: bytes,
    source_index: int = 0,
    *,
    backend: PDFBackend | None = None,
) -> list[PageMetrics]:
    """Return one :class:`PageMetrics` per page of the PDF in *data*."""

    backend = backend or PypdfBackend()
    document = backend.load(data)
    metrics: list[PageMetrics] = []
    for page_index in range(document.num_pages):
        geometry = document.page_geometry(page_index)
        width, height, transform = viewport_transform(geometry)
        metrics.append(
            PageMetrics(
                width=width,
                height=height,
                page_index=page_index,
                source_index=source_index,
                transform=transform.as_tuple(),
            )
        )
    LOGGER.debug("Read metrics for %d page(s) of source %d", len(metrics), source_index)
    return metrics


def build_pages(
    data: bytes,
    source_index: int,
    *,
    backend: PDFBackend | None = None,
) -> tuple[list[str], dict[str, PageData], dict[str, PageMetrics]]:
    """Create fresh page ids, empty page data and metrics for a source."""

    page_ids: list[str] = []
    pages: dict[str, PageData] = {}
    page_metrics: dict[str, PageMetrics] = {}
    for metrics in read_page_metrics(data, source_index, backend=backend):
        page_id = new_id("page")
        page_ids.append(page_id)
        pages[page_id] = PageData()
        page_metrics[page_id] = metrics
    return page_ids, pages, page_metrics


def create_document_state(
    data: bytes,
    name: str,
    *,
    backend: PDFBackend | None = None,
) -> DocumentState:
    """Return a new native-coordinate document with one page per PDF page.

    Raises:
        InvalidPDFError: If *data* is not a readable PDF with pages.
    """

    raw_bytes = bytes(data)
    page_ids, pages, page_metrics = build_pages(raw_bytes, 0, backend=backend)
    state = DocumentState(
        document=DocumentInfo(
            name=name,
            created_at=datetime.now(timezone.utc).isoformat(),
            page_order=page_ids,
        ),
        pages=pages,
        coordinate_space=COORDINATE_SPACE_PDF,
        original_pdf_bytes=raw_bytes,
        original_pdf_sources=[raw_bytes],
        page_metrics=page_metrics,
    )
    LOGGER.info("Imported %s with %d page(s)", name, len(page_ids))
    return state


__all__ = ["viewport_transform", "read_page_metrics", "build_pages", "create_document_state"]
