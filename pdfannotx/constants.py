"""Shared constants for the annotation editor core."""

from __future__ import annotations

__all__ = [
    "LEGACY_CANVAS_WIDTH",
    "LEGACY_CANVAS_HEIGHT",
    "COORDINATE_SPACE_LEGACY",
    "COORDINATE_SPACE_PDF",
    "COORDINATE_SPACES",
    "PAGINATION_POSITIONS",
    "TEXT_ALIGNMENTS",
    "HIGHLIGHT_STYLES",
    "HISTORY_LIMIT",
    "PAGE_NUMBER_FONT_SIZE",
    "PAGE_NUMBER_MARGIN",
    "PAGE_NUMBER_BOX_PADDING",
    "TEXT_BOX_PADDING",
    "TEXT_LINE_HEIGHT",
    "FOOTER_SEPARATOR",
    "DEFAULT_FONT",
    "DEFAULT_BOLD_FONT",
    "DEFAULT_HIGHLIGHT_COLOR",
    "DEFAULT_HIGHLIGHT_OPACITY",
    "DEFAULT_BORDER_WIDTH",
]

# Fixed virtual canvas used by documents saved before native page-space
# coordinates were introduced.
LEGACY_CANVAS_WIDTH = 612.0
LEGACY_CANVAS_HEIGHT = 792.0

COORDINATE_SPACE_LEGACY = "legacy-612"
COORDINATE_SPACE_PDF = "pdf"
COORDINATE_SPACES = (COORDINATE_SPACE_LEGACY, COORDINATE_SPACE_PDF)

PAGINATION_POSITIONS = ("bottom-center", "bottom-right", "top-right")
TEXT_ALIGNMENTS = ("left", "center", "right", "justify")
HIGHLIGHT_STYLES = ("fill", "border", "both")

HISTORY_LIMIT = 20

PAGE_NUMBER_FONT_SIZE = 12.0
PAGE_NUMBER_MARGIN = 20.0
PAGE_NUMBER_BOX_PADDING = 5.0
TEXT_BOX_PADDING = 4.0
TEXT_LINE_HEIGHT = 1.2
FOOTER_SEPARATOR = " - "

DEFAULT_FONT = "Helvetica"
DEFAULT_BOLD_FONT = "Helvetica-Bold"

DEFAULT_HIGHLIGHT_COLOR = "#ffff00"
DEFAULT_HIGHLIGHT_OPACITY = 0.3
DEFAULT_BORDER_WIDTH = 2.0
