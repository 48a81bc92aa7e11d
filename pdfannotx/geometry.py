"""Coordinate mapping between the editor canvas and PDF page space.

The editor positions overlays on a canvas whose origin is the top-left
corner and whose Y axis grows downward. PDF pages use a bottom-left origin
with Y growing upward. Everything in this module is pure: no function here
raises on malformed numeric input, callers decide how to treat ``NaN``.
"""

from __future__ import annotations

import math
import string
from dataclasses import dataclass
from typing import NamedTuple, Protocol, Sequence

from .constants import LEGACY_CANVAS_HEIGHT, LEGACY_CANVAS_WIDTH

__all__ = [
    "RectLike",
    "Rect",
    "Size",
    "MappedRect",
    "Color",
    "Matrix",
    "normalize_coordinates",
    "denormalize_coordinates",
    "canvas_to_pdf_y",
    "hex_to_rgb",
    "rotate_point",
    "legacy_canvas_size",
    "map_element_rect",
]


class RectLike(Protocol):
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True, slots=True)
class Rect:
    """Axis-aligned rectangle in canvas-space."""

    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True, slots=True)
class Size:
    width: float
    height: float


@dataclass(frozen=True, slots=True)
class MappedRect:
    """Rectangle in page-space plus the uniform scale used to get there.

    ``y`` is the bottom edge of the rectangle in PDF coordinates.
    """

    x: float
    y: float
    width: float
    height: float
    scale: float


class Color(NamedTuple):
    """RGB color with channels normalised to ``[0, 1]``."""

    r: float
    g: float
    b: float

    @property
    def is_valid(self) -> bool:
        return all(math.isfinite(channel) for channel in self)


@dataclass(frozen=True, slots=True)
class Matrix:
    """2×3 affine matrix ``[a, b, c, d, e, f]`` in PDF operand order.

    A point ``(x, y)`` maps to ``(a*x + c*y + e, b*x + d*y + f)``.
    """

    a: float = 1.0
    b: float = 0.0
    c: float = 0.0
    d: float = 1.0
    e: float = 0.0
    f: float = 0.0

    @classmethod
    def identity(cls) -> "Matrix":
        return cls()

    @classmethod
    def from_values(cls, values: Sequence[float] | None) -> "Matrix | None":
        """Build a matrix from six numbers, or return ``None`` if unusable."""

        if values is None:
            return None
        try:
            numbers = [float(value) for value in values]
        except (TypeError, ValueError):
            return None
        if len(numbers) != 6 or not all(math.isfinite(value) for value in numbers):
            return None
        return cls(*numbers)

    def as_tuple(self) -> tuple[float, float, float, float, float, float]:
        return (self.a, self.b, self.c, self.d, self.e, self.f)

    @property
    def determinant(self) -> float:
        return self.a * self.d - self.b * self.c

    def inverse(self) -> "Matrix":
        """Return the inverse matrix, or identity when singular."""

        det = self.determinant
        if det == 0 or not math.isfinite(det):
            return Matrix.identity()
        return Matrix(
            self.d / det,
            -self.b / det,
            -self.c / det,
            self.a / det,
            (self.c * self.f - self.d * self.e) / det,
            (self.b * self.e - self.a * self.f) / det,
        )

    def multiply(self, other: "Matrix") -> "Matrix":
        """Return ``self`` followed by ``other``."""

        return Matrix(
            self.a * other.a + self.b * other.c,
            self.a * other.b + self.b * other.d,
            self.c * other.a + self.d * other.c,
            self.c * other.b + self.d * other.d,
            self.e * other.a + self.f * other.c + other.e,
            self.e * other.b + self.f * other.d + other.f,
        )

    def apply(self, x: float, y: float) -> tuple[float, float]:
        return (
            self.a * x + self.c * y + self.e,
            self.b * x + self.d * y + self.f,
        )


def _ratio(value: float, total: float) -> float:
    if not total:
        return 0.0
    return value / total


def normalize_coordinates(
    x: float, y: float, page_width: float, page_height: float
) -> tuple[float, float]:
    """Convert absolute coordinates into ``[0, 1]`` fractions of the page."""

    return _ratio(x, page_width), _ratio(y, page_height)


def denormalize_coordinates(
    normalized_x: float, normalized_y: float, page_width: float, page_height: float
) -> tuple[float, float]:
    return normalized_x * page_width, normalized_y * page_height


def canvas_to_pdf_y(canvas_y: float, element_height: float, page_height: float) -> float:
    """Flip a top-left canvas Y into the bottom edge in PDF coordinates."""

    return page_height - canvas_y - element_height


def _channel(pair: str) -> float:
    if len(pair) != 2 or not all(char in string.hexdigits for char in pair):
        return math.nan
    return int(pair, 16) / 255


def hex_to_rgb(value: str) -> Color:
    """Parse ``#rgb`` or ``#rrggbb`` into a :class:`Color`.

    Malformed input yields ``NaN`` channels instead of raising.
    """

    if not isinstance(value, str):
        return Color(math.nan, math.nan, math.nan)
    digits = value[1:] if value.startswith("#") else value
    if len(digits) == 3:
        digits = "".join(char * 2 for char in digits)
    return Color(_channel(digits[0:2]), _channel(digits[2:4]), _channel(digits[4:6]))


def rotate_point(x: float, y: float, degrees: float) -> tuple[float, float]:
    """Rotate ``(x, y)`` counter-clockwise about the origin (Y-up axes)."""

    radians = math.radians(degrees)
    cos_a = math.cos(radians)
    sin_a = math.sin(radians)
    return x * cos_a - y * sin_a, x * sin_a + y * cos_a


def legacy_canvas_size(page_width: float, page_height: float) -> Size:
    """Return the fixed-width legacy canvas matching the page aspect ratio."""

    if page_width > 0 and page_height > 0:
        return Size(LEGACY_CANVAS_WIDTH, page_height / page_width * LEGACY_CANVAS_WIDTH)
    return Size(LEGACY_CANVAS_WIDTH, LEGACY_CANVAS_HEIGHT)


def _map_with_transform(element: RectLike, transform: Matrix) -> MappedRect:
    inverse = transform.inverse()
    x1, y1 = inverse.apply(element.x, element.y)
    x2, y2 = inverse.apply(element.x + element.width, element.y + element.height)

    left, right = min(x1, x2), max(x1, x2)
    bottom, top = min(y1, y2), max(y1, y2)
    width = right - left
    height = top - bottom

    # Per-axis lengths of the inverse, so quarter turns keep a unit scale.
    scale_x = math.hypot(inverse.a, inverse.b)
    scale_y = math.hypot(inverse.c, inverse.d)
    scale = (scale_x + scale_y) / 2
    if not math.isfinite(scale):
        scale = 1.0
    return MappedRect(left, bottom, width, height, scale)


def map_element_rect(
    element: RectLike,
    canvas_size: Size,
    page_size: Size,
    transform: Matrix | None = None,
) -> MappedRect:
    """Map *element* from canvas-space into page-space.

    With a *transform* (the page's viewport matrix) the inverse matrix is
    applied to the element corners. Without one the rectangle is normalised
    against *canvas_size*, stretched onto *page_size* and Y-flipped.
    """

    if transform is not None:
        return _map_with_transform(element, transform)

    norm_x, norm_y = normalize_coordinates(
        element.x, element.y, canvas_size.width, canvas_size.height
    )
    norm_width, norm_height = normalize_coordinates(
        element.width, element.height, canvas_size.width, canvas_size.height
    )
    abs_x, abs_y = denormalize_coordinates(norm_x, norm_y, page_size.width, page_size.height)
    abs_width, abs_height = denormalize_coordinates(
        norm_width, norm_height, page_size.width, page_size.height
    )
    pdf_y = canvas_to_pdf_y(abs_y, abs_height, page_size.height)
    scale = page_size.height / canvas_size.height if canvas_size.height > 0 else 1.0
    return MappedRect(abs_x, pdf_y, abs_width, abs_height, scale)
