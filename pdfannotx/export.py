"""Render a :class:`DocumentState` into the final annotated PDF.

Pages are copied from their original sources into a fresh output document in
``page_order``, then page numbers or footers, text boxes, highlights and
arrows are drawn on top. Each page is fully drawn and committed before the
next one is copied. The state passed in is never modified.
"""

from __future__ import annotations

import dataclasses
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from .backends import (
    BackendDocument,
    OutputDocument,
    OutputPage,
    OverlayFont,
    PageGeometry,
    PDFBackend,
    PypdfBackend,
)
from .constants import (
    COORDINATE_SPACE_LEGACY,
    DEFAULT_BOLD_FONT,
    DEFAULT_FONT,
    PAGE_NUMBER_BOX_PADDING,
    PAGE_NUMBER_FONT_SIZE,
    PAGE_NUMBER_MARGIN,
    TEXT_BOX_PADDING,
    TEXT_LINE_HEIGHT,
)
from .exceptions import PdfBackendError, PdfExportError
from .geometry import (
    Color,
    MappedRect,
    Matrix,
    Rect,
    RectLike,
    Size,
    hex_to_rgb,
    legacy_canvas_size,
    map_element_rect,
    rotate_point,
)
from .importer import viewport_transform
from .model import (
    ArrowElement,
    DocumentState,
    HighlightElement,
    PageData,
    PaginationSettings,
    TextElement,
)
from .utils import PathLike, ensure_path

LOGGER = logging.getLogger("pdfannotx.export")

_BLACK = Color(0.0, 0.0, 0.0)
_WHITE = Color(1.0, 1.0, 1.0)


@dataclass(slots=True)
class ExportOptions:
    """Tunables for :func:`export_final_pdf`."""

    page_number_font_size: float = PAGE_NUMBER_FONT_SIZE
    page_number_margin: float = PAGE_NUMBER_MARGIN
    page_number_box_padding: float = PAGE_NUMBER_BOX_PADDING
    text_padding: float = TEXT_BOX_PADDING
    line_height: float = TEXT_LINE_HEIGHT
    font: str = DEFAULT_FONT
    bold_font: str = DEFAULT_BOLD_FONT
    producer: str | None = "pdfannotx"
    include_title: bool = True
    metadata: dict[str, str] = field(default_factory=dict)


class _PageFrame:
    """Maps canvas-space overlays onto one output page.

    Canvas units times ``factor`` are viewport units, and ``transform`` (the
    page viewport matrix) maps viewport units to page space. Offsets passed
    to :meth:`place` are page units measured along the canvas axes, so the
    same drawing code serves rotated and unrotated pages.
    """

    __slots__ = ("canvas", "transform", "factor", "scale", "_inverse", "_across", "_down")

    def __init__(self, canvas: Size, transform: Matrix, factor: float = 1.0) -> None:
        self.canvas = canvas
        self.transform = transform
        self.factor = factor
        self._inverse = transform.inverse()
        across = math.hypot(self._inverse.a, self._inverse.b) or 1.0
        down = math.hypot(self._inverse.c, self._inverse.d) or 1.0
        self._across = (self._inverse.a / across, self._inverse.b / across)
        self._down = (self._inverse.c / down, self._inverse.d / down)
        self.scale = factor * (across + down) / 2

    @property
    def angle(self) -> float:
        """Direction of the canvas X axis on the page, in degrees."""

        return math.degrees(math.atan2(self._across[1], self._across[0]))

    @property
    def size(self) -> Size:
        """Visible page size in page units, as the viewer shows it."""

        return Size(self.canvas.width * self.scale, self.canvas.height * self.scale)

    def map(self, element: RectLike) -> MappedRect:
        scaled = Rect(
            element.x * self.factor,
            element.y * self.factor,
            element.width * self.factor,
            element.height * self.factor,
        )
        viewport = Size(self.canvas.width * self.factor, self.canvas.height * self.factor)
        mapped = map_element_rect(scaled, viewport, viewport, self.transform)
        return dataclasses.replace(mapped, scale=mapped.scale * self.factor)

    def place(
        self, x: float, y: float, along: float = 0.0, down: float = 0.0
    ) -> tuple[float, float]:
        """Page point at canvas ``(x, y)`` moved *along* and *down* the canvas axes."""

        page_x, page_y = self._inverse.apply(x * self.factor, y * self.factor)
        return (
            page_x + along * self._across[0] + down * self._down[0],
            page_y + along * self._across[1] + down * self._down[1],
        )

    def box(self, along: float, down: float, width: float, height: float) -> MappedRect:
        """Page-space bounds of a box given in page units from the canvas origin."""

        corners = [
            self.place(0.0, 0.0, along + width * i, down + height * j)
            for i in (0, 1)
            for j in (0, 1)
        ]
        xs = [point[0] for point in corners]
        ys = [point[1] for point in corners]
        return MappedRect(min(xs), min(ys), max(xs) - min(xs), max(ys) - min(ys), self.scale)


class _FontCache:
    """Embeds each font once; a missing bold face falls back to regular."""

    def __init__(self, output: OutputDocument, options: ExportOptions) -> None:
        self._output = output
        self._options = options
        self._fonts: dict[bool, OverlayFont] = {}

    def get(self, bold: bool = False) -> OverlayFont:
        if bold in self._fonts:
            return self._fonts[bold]
        font_id = self._options.bold_font if bold else self._options.font
        try:
            font = self._output.embed_font(font_id)
        except PdfBackendError as exc:
            if not bold:
                LOGGER.error("Failed to embed font %s: %s", font_id, exc)
                raise PdfExportError(f"Failed to embed font '{font_id}': {exc}") from exc
            LOGGER.warning("Bold font %s unavailable, falling back to %s", font_id, self._options.font)
            font = self.get(False)
        self._fonts[bold] = font
        return font


def _resolve_color(value: str | None, owner: str) -> Color:
    color = hex_to_rgb(value) if value is not None else Color(math.nan, math.nan, math.nan)
    if color.is_valid:
        return color
    LOGGER.warning("Invalid color %r on %s, drawing in black", value, owner)
    return _BLACK


def _first_set(*values):
    for value in values:
        if value is not None:
            return value
    return None


def _collect_sources(state: DocumentState, sources: Sequence[bytes] | None) -> list[bytes]:
    # Positional: entry N must stay source N for every page's source_index.
    if sources is not None:
        return [bytes(source) for source in sources]
    if state.original_pdf_sources:
        return list(state.original_pdf_sources)
    if state.original_pdf_bytes:
        return [state.original_pdf_bytes]
    return []


def _load_sources(backend: PDFBackend, sources: list[bytes]) -> list[BackendDocument]:
    documents = []
    for index, data in enumerate(sources):
        try:
            documents.append(backend.load(data))
        except PdfBackendError as exc:
            LOGGER.error("Failed to load PDF source %d: %s", index, exc)
            raise PdfExportError(f"Failed to load PDF source {index}: {exc}") from exc
    return documents


def _page_frame(state: DocumentState, page_id: str, page: OutputPage) -> _PageFrame:
    origin_x, origin_y = page.origin
    geometry = PageGeometry(
        left=origin_x,
        bottom=origin_y,
        right=origin_x + page.width,
        top=origin_y + page.height,
        rotation=page.rotation,
    )
    view_width, view_height, page_transform = viewport_transform(geometry)

    metrics = state.page_metrics.get(page_id)
    transform = Matrix.from_values(metrics.transform) if metrics is not None else None
    if metrics is not None and metrics.has_size:
        native = Size(metrics.width, metrics.height)
    else:
        native = Size(view_width, view_height)

    canvas = native
    factor = 1.0
    if state.coordinate_space == COORDINATE_SPACE_LEGACY:
        canvas = legacy_canvas_size(native.width, native.height)
        factor = native.width / canvas.width

    if transform is None:
        # Stretch the recorded width onto the rotated page box.
        if native.width > 0:
            factor *= view_width / native.width
        transform = page_transform
    return _PageFrame(canvas, transform, factor)


# ----------------------------------------------------------------- drawing


def _draw_label(
    page: OutputPage,
    frame: _PageFrame,
    text: str,
    pagination: PaginationSettings,
    fonts: _FontCache,
    options: ExportOptions,
) -> None:
    """Draw a page number or footer at the configured pagination position.

    Positions are worked out on the page as displayed, with Y measured up
    from its visible bottom edge.
    """

    font = fonts.get(False)
    size = options.page_number_font_size
    margin = options.page_number_margin
    text_width = font.width_of_text_at_size(text, size)
    visible = frame.size

    if pagination.position == "bottom-right":
        x, y = visible.width - text_width - margin, margin
    elif pagination.position == "top-right":
        x, y = visible.width - text_width - margin, visible.height - margin - size
    else:
        x, y = (visible.width - text_width) / 2, margin

    if pagination.background_box:
        padding = options.page_number_box_padding
        box = frame.box(
            x - padding,
            visible.height - (y + size + padding),
            text_width + padding * 2,
            size + padding * 2,
        )
        page.draw_rectangle(x=box.x, y=box.y, width=box.width, height=box.height, color=_WHITE)

    baseline_x, baseline_y = frame.place(0.0, 0.0, x, visible.height - y)
    page.draw_text(
        text,
        x=baseline_x,
        y=baseline_y,
        size=size,
        font=font,
        color=_BLACK,
        angle=frame.angle,
    )


def _draw_text_element(
    page: OutputPage,
    element: TextElement,
    frame: _PageFrame,
    fonts: _FontCache,
    options: ExportOptions,
) -> None:
    mapped = frame.map(element)
    size = element.font_size * mapped.scale
    if not math.isfinite(size) or size <= 0:
        LOGGER.warning("Skipping text %s with unusable font size %s", element.id, size)
        return

    font = fonts.get(element.bold)
    color = _resolve_color(element.color, element.id)
    padding = options.text_padding * mapped.scale
    box_width = element.width * mapped.scale
    down = padding + size

    for line in element.content.split("\n"):
        if line:
            line_width = font.width_of_text_at_size(line, size)
            if element.text_align == "center":
                along = padding + (box_width - padding * 2 - line_width) / 2
            elif element.text_align == "right":
                along = box_width - padding - line_width
            else:
                along = padding
            x, y = frame.place(element.x, element.y, along, down)
            page.draw_text(
                line, x=x, y=y, size=size, font=font, color=color, angle=frame.angle
            )
        down += size * options.line_height


def _draw_highlight(page: OutputPage, element: HighlightElement, frame: _PageFrame) -> None:
    mapped = frame.map(element)
    if mapped.width <= 0 or mapped.height <= 0:
        LOGGER.debug("Skipping zero-area highlight %s", element.id)
        return

    fill = None
    fill_opacity = 1.0
    if element.style != "border":
        fill = _resolve_color(_first_set(element.fill_color, element.color), element.id)
        fill_opacity = _first_set(element.fill_opacity, element.opacity)

    border = None
    border_opacity = 1.0
    border_width = 0.0
    if element.style != "fill":
        border = _resolve_color(_first_set(element.border_color, element.color), element.id)
        border_opacity = _first_set(element.border_opacity, element.opacity)
        border_width = max(1.0, element.border_width * mapped.scale)

    page.draw_rectangle(
        x=mapped.x,
        y=mapped.y,
        width=mapped.width,
        height=mapped.height,
        color=fill,
        opacity=fill_opacity,
        border_color=border,
        border_width=border_width,
        border_opacity=border_opacity,
    )


def _draw_arrow(page: OutputPage, element: ArrowElement, frame: _PageFrame) -> None:
    mapped = frame.map(element)
    length = element.width * mapped.scale
    if not length > 0:
        LOGGER.debug("Skipping zero-length arrow %s", element.id)
        return

    stroke = max(1.0, element.thickness * mapped.scale)
    head = min(max(stroke * 3, element.height * mapped.scale * 0.35), length / 2)
    anchor_y = element.y + element.height / 2

    def place(along: float, down: float) -> tuple[float, float]:
        # Local axes point right and down on screen, so positive angles turn clockwise.
        along, down = rotate_point(along, down, element.angle)
        return frame.place(element.x, anchor_y, along, down)

    color = _resolve_color(element.color, element.id)
    shaft_end = length - head
    page.draw_path(
        [place(0.0, 0.0), place(shaft_end, 0.0)],
        stroke_color=color,
        stroke_width=stroke,
    )
    page.draw_path(
        [place(shaft_end, head / 2), place(length, 0.0), place(shaft_end, -head / 2)],
        closed=True,
        fill_color=color,
    )


def _draw_page(
    page: OutputPage,
    position: int,
    page_id: str,
    state: DocumentState,
    fonts: _FontCache,
    options: ExportOptions,
) -> None:
    page_data: PageData | None = state.pages.get(page_id)
    frame = _page_frame(state, page_id, page)

    if state.pagination.enabled:
        label = str(position + state.pagination.start_at)
        _draw_label(page, frame, label, state.pagination, fonts, options)
    elif page_data is not None and page_data.footer.text:
        _draw_label(page, frame, page_data.footer.text, state.pagination, fonts, options)

    if page_data is None:
        LOGGER.warning("No overlay data for page %s", page_id)
        return

    for text in page_data.texts:
        _draw_text_element(page, text, frame, fonts, options)
    for highlight in page_data.highlights:
        _draw_highlight(page, highlight, frame)
    for arrow in page_data.arrows:
        _draw_arrow(page, arrow, frame)


# --------------------------------------------------------------- pipeline


def export_final_pdf(
    state: DocumentState,
    sources: Sequence[bytes] | None = None,
    *,
    backend: PDFBackend | None = None,
    options: ExportOptions | None = None,
) -> bytes:
    """Return the bytes of the annotated PDF described by *state*.

    Args:
        state: Document to export. It is snapshotted and never modified.
        sources: Override for ``state.original_pdf_sources``.
        backend: PDF backend, :class:`PypdfBackend` by default.
        options: Layout and font settings.

    Raises:
        PdfExportError: If there is no document or source, or the PDF
            library fails while loading, copying, embedding or saving.
    """

    if state.document is None:
        raise PdfExportError("No document in state")
    raw_sources = _collect_sources(state, sources)
    if not raw_sources:
        raise PdfExportError("No PDF sources available to export")

    snapshot = state.clone()
    backend = backend or PypdfBackend()
    options = options or ExportOptions()

    documents = _load_sources(backend, raw_sources)
    output = backend.create()
    fonts = _FontCache(output, options)

    for position, page_id in enumerate(snapshot.page_order):
        metrics = snapshot.page_metrics.get(page_id)
        if metrics is None:
            LOGGER.warning("Missing metrics for page %s; using source 0 page %d", page_id, position)
            source_index, page_index = 0, position
        else:
            source_index, page_index = metrics.source_index, metrics.page_index
        if not 0 <= source_index < len(documents):
            LOGGER.warning("Page %s refers to unknown source %d; using source 0", page_id, source_index)
            source_index = 0

        try:
            copied = output.copy_page(documents[source_index], page_index)
            page = output.add_page(copied)
        except PdfBackendError as exc:
            LOGGER.error("Failed to copy page %s: %s", page_id, exc)
            raise PdfExportError(f"Failed to copy page {page_id}: {exc}") from exc

        LOGGER.debug("Drawing page %d (%s) from source %d", position + 1, page_id, source_index)
        _draw_page(page, position, page_id, snapshot, fonts, options)
        page.commit()

    metadata = dict(options.metadata)
    if options.producer:
        metadata.setdefault("/Producer", options.producer)
    if options.include_title and snapshot.document.name:
        metadata.setdefault("/Title", snapshot.document.name)
    output.set_metadata(metadata)

    try:
        data = output.save()
    except PdfBackendError as exc:
        LOGGER.error("Failed to save exported PDF: %s", exc)
        raise PdfExportError(f"Failed to save exported PDF: {exc}") from exc

    LOGGER.info("Exported %d page(s) (%d bytes)", len(snapshot.page_order), len(data))
    return data


def export_to_file(
    state: DocumentState,
    output_path: PathLike,
    sources: Sequence[bytes] | None = None,
    *,
    backend: PDFBackend | None = None,
    options: ExportOptions | None = None,
) -> Path:
    """Export *state* and write the PDF to *output_path*."""

    data = export_final_pdf(state, sources, backend=backend, options=options)
    path = ensure_path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


__all__ = ["ExportOptions", "export_final_pdf", "export_to_file"]
