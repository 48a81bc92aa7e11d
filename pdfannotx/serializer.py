"""Persist and restore :class:`~pdfannotx.model.DocumentState` as JSON.

The persisted form keeps the camelCase keys of the browser editor so files
written by either side stay interchangeable. Binary PDF sources are stored
inline as base64.
"""

from __future__ import annotations

import base64
import json
import logging
import math
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping

from .constants import (
    COORDINATE_SPACE_LEGACY,
    COORDINATE_SPACE_PDF,
    COORDINATE_SPACES,
    DEFAULT_BORDER_WIDTH,
    DEFAULT_HIGHLIGHT_COLOR,
    DEFAULT_HIGHLIGHT_OPACITY,
    LEGACY_CANVAS_WIDTH,
)
from .exceptions import StateFormatError
from .geometry import Matrix
from .model import (
    ArrowElement,
    DocumentInfo,
    DocumentState,
    Footer,
    HighlightElement,
    OverlayElement,
    PageData,
    PageMetrics,
    PaginationSettings,
    TextElement,
)
from .utils import PathLike, ensure_path, new_id, to_camel_case, to_snake_case

LOGGER = logging.getLogger("pdfannotx.serializer")

_GEOMETRY_FIELDS = ("x", "y", "width", "height")


@dataclass(frozen=True)
class RestoredDocument:
    """Result of :func:`deserialize`."""

    state: DocumentState
    current_page_id: str | None


def _encode_bytes(data: bytes | None) -> str | None:
    if data is None:
        return None
    return base64.b64encode(data).decode("ascii")


def _decode_bytes(value: Any) -> bytes | None:
    if value is None:
        return None
    return base64.b64decode(value, validate=True)


# --------------------------------------------------------------------- dump


def _element_to_dict(element: OverlayElement) -> dict[str, Any]:
    payload: dict[str, Any] = {"type": element.kind}
    for item in fields(element):
        value = getattr(element, item.name)
        if value is None:
            continue
        payload[to_camel_case(item.name)] = value
    return payload


def _page_to_dict(page: PageData) -> dict[str, Any]:
    return {
        "texts": [_element_to_dict(element) for element in page.texts],
        "highlights": [_element_to_dict(element) for element in page.highlights],
        "arrows": [_element_to_dict(element) for element in page.arrows],
        "footer": {"number": page.footer.number, "detail": page.footer.detail},
    }


def _metrics_to_dict(metrics: PageMetrics) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "width": metrics.width,
        "height": metrics.height,
        "pageIndex": metrics.page_index,
        "sourceIndex": metrics.source_index,
    }
    if metrics.transform is not None:
        payload["transform"] = list(metrics.transform)
    return payload


def serialize(state: DocumentState) -> str:
    """Return the JSON text for *state*, PDF bytes base64-encoded inline."""

    document = None
    if state.document is not None:
        document = {
            "name": state.document.name,
            "createdAt": state.document.created_at,
            "pageOrder": list(state.document.page_order),
        }
    payload = {
        "document": document,
        "pages": {page_id: _page_to_dict(page) for page_id, page in state.pages.items()},
        "pagination": {
            "enabled": state.pagination.enabled,
            "position": state.pagination.position,
            "startAt": state.pagination.start_at,
            "backgroundBox": state.pagination.background_box,
        },
        "language": state.language,
        "coordinateSpace": state.coordinate_space,
        "originalPdfBytes": _encode_bytes(state.original_pdf_bytes),
        "originalPdfSources": [_encode_bytes(source) for source in state.original_pdf_sources],
        "pageMetrics": {
            page_id: _metrics_to_dict(metrics)
            for page_id, metrics in state.page_metrics.items()
        },
    }
    return json.dumps(payload, indent=2)


# --------------------------------------------------------------------- load


def _as_float(value: Any) -> float:
    if isinstance(value, bool):
        raise TypeError(f"expected a number, got {value!r}")
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"expected a finite number, got {value!r}")
    return number


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        raise TypeError(f"expected a boolean, got {value!r}")
    return bool(value)


def _as_str(value: Any) -> str:
    if isinstance(value, (Mapping, list)):
        raise TypeError(f"expected a string, got {type(value).__name__}")
    return str(value)


# Keyed by the field annotation with any "| None" stripped.
_COERCERS = {"float": _as_float, "bool": _as_bool, "str": _as_str}


def _element_from_dict(element_type: type, raw: Mapping[str, Any]) -> OverlayElement:
    """Build an element from persisted keys, coercing values to the field types.

    Raises ``TypeError``/``ValueError`` on values that cannot be coerced.
    """

    coercers = {
        item.name: _COERCERS[str(item.type).replace(" | None", "")]
        for item in fields(element_type)
    }
    values = {}
    for key, value in raw.items():
        name = to_snake_case(key)
        if name in coercers and value is not None:
            values[name] = coercers[name](value)
    if not values.get("id"):
        values["id"] = new_id(element_type.kind)
    return element_type(**values)


def _normalize_highlight(raw: Mapping[str, Any]) -> dict[str, Any]:
    """Backfill the border/fill fields missing from single-color highlights."""

    item = dict(raw)
    color = item.get("color") or DEFAULT_HIGHLIGHT_COLOR
    opacity = item.get("opacity")
    if opacity is None:
        opacity = DEFAULT_HIGHLIGHT_OPACITY
    item["color"] = color
    item["opacity"] = opacity
    if item.get("style") is None:
        item["style"] = "fill"
    if item.get("borderWidth") is None:
        item["borderWidth"] = DEFAULT_BORDER_WIDTH
    if item.get("fillColor") is None:
        item["fillColor"] = color
    if item.get("fillOpacity") is None:
        item["fillOpacity"] = opacity
    if item.get("borderColor") is None:
        item["borderColor"] = color
    if item.get("borderOpacity") is None:
        item["borderOpacity"] = 1
    return item


def _normalize_arrow(raw: Mapping[str, Any]) -> dict[str, Any]:
    item = dict(raw)
    if item.get("angle") is None:
        item["angle"] = 0
    return item


def _footer_from_dict(raw: Mapping[str, Any] | None, legacy: Footer | None) -> Footer:
    if isinstance(raw, Mapping):
        return Footer(
            number=str(raw.get("number") or ""),
            detail=str(raw.get("detail") or ""),
        )
    if legacy is not None:
        return Footer(number=legacy.number, detail=legacy.detail)
    return Footer()


def _page_from_dict(page_id: str, raw: Mapping[str, Any], legacy_footer: Footer | None) -> PageData:
    if raw.get("underlines"):
        LOGGER.warning(
            "Dropping %d legacy underline element(s) on page %s",
            len(raw["underlines"]),
            page_id,
        )
    return PageData(
        texts=[_element_from_dict(TextElement, item) for item in raw.get("texts") or []],
        highlights=[
            _element_from_dict(HighlightElement, _normalize_highlight(item))
            for item in raw.get("highlights") or []
        ],
        arrows=[
            _element_from_dict(ArrowElement, _normalize_arrow(item))
            for item in raw.get("arrows") or []
        ],
        footer=_footer_from_dict(raw.get("footer"), legacy_footer),
    )


def _metrics_from_dict(raw: Mapping[str, Any]) -> PageMetrics:
    transform = Matrix.from_values(raw.get("transform"))
    return PageMetrics(
        width=float(raw.get("width") or 0),
        height=float(raw.get("height") or 0),
        page_index=int(raw.get("pageIndex") or 0),
        source_index=int(raw.get("sourceIndex") or 0),
        transform=transform.as_tuple() if transform is not None else None,
    )


def _state_from_payload(payload: Mapping[str, Any]) -> DocumentState:
    raw_document = payload.get("document")
    document = None
    if isinstance(raw_document, Mapping):
        document = DocumentInfo(
            name=str(raw_document.get("name") or ""),
            created_at=str(raw_document.get("createdAt") or ""),
            page_order=[str(page_id) for page_id in raw_document.get("pageOrder") or []],
        )

    raw_pagination = payload.get("pagination") or {}
    pagination = PaginationSettings(
        enabled=bool(raw_pagination.get("enabled", False)),
        position=str(raw_pagination.get("position") or "bottom-center"),
        start_at=int(raw_pagination.get("startAt", 1)),
        background_box=bool(raw_pagination.get("backgroundBox", False)),
    )
    legacy_footer = None
    if raw_pagination.get("manualNumber") or raw_pagination.get("manualDetail"):
        legacy_footer = Footer(
            number=str(raw_pagination.get("manualNumber") or ""),
            detail=str(raw_pagination.get("manualDetail") or ""),
        )

    pages = {
        str(page_id): _page_from_dict(str(page_id), raw_page, legacy_footer)
        for page_id, raw_page in (payload.get("pages") or {}).items()
    }

    coordinate_space = payload.get("coordinateSpace")
    if coordinate_space not in COORDINATE_SPACES:
        if coordinate_space is not None:
            LOGGER.warning("Unknown coordinate space %r; assuming legacy", coordinate_space)
        coordinate_space = COORDINATE_SPACE_LEGACY

    original_bytes = _decode_bytes(payload.get("originalPdfBytes"))
    sources = [_decode_bytes(item) for item in payload.get("originalPdfSources") or []]
    sources = [source for source in sources if source is not None]
    if not sources and original_bytes is not None:
        sources = [original_bytes]

    page_metrics = {
        str(page_id): _metrics_from_dict(raw_metrics)
        for page_id, raw_metrics in (payload.get("pageMetrics") or {}).items()
    }

    return DocumentState(
        document=document,
        pages=pages,
        pagination=pagination,
        language=str(payload.get("language") or "en"),
        coordinate_space=coordinate_space,
        original_pdf_bytes=original_bytes,
        original_pdf_sources=sources,
        page_metrics=page_metrics,
    )


def deserialize(text: str) -> RestoredDocument | None:
    """Restore a document from :func:`serialize` output.

    Returns ``None`` (after logging) when the text cannot be parsed; this
    function never raises for malformed input.
    """

    try:
        payload = json.loads(text)
    except (TypeError, ValueError) as exc:
        LOGGER.error("Failed to parse saved state: %s", exc)
        return None
    if not isinstance(payload, Mapping):
        LOGGER.error("Saved state must be a JSON object, got %s", type(payload).__name__)
        return None

    try:
        state = _state_from_payload(payload)
        state = migrate_coordinate_space(state)
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        LOGGER.error("Saved state is malformed: %s", exc)
        return None

    current_page_id = state.page_order[0] if state.page_order else None
    LOGGER.info(
        "Restored state with %d page(s) and %d source(s)",
        len(state.page_order),
        len(state.original_pdf_sources),
    )
    return RestoredDocument(state=state, current_page_id=current_page_id)


# ---------------------------------------------------------------- migration


def can_migrate(state: DocumentState) -> bool:
    """Return ``True`` if *state* is legacy and every page has a usable size."""

    if state.coordinate_space != COORDINATE_SPACE_LEGACY or state.document is None:
        return False
    for page_id in state.page_order:
        metrics = state.page_metrics.get(page_id)
        if metrics is None or not metrics.has_size:
            return False
    return True


def _scale_element(element: OverlayElement, factor: float) -> None:
    for name in _GEOMETRY_FIELDS + element.scalable_fields:
        setattr(element, name, getattr(element, name) * factor)


def migrate_coordinate_space(state: DocumentState) -> DocumentState:
    """Convert legacy 612-wide canvas coordinates into native page units.

    Returns a migrated copy, or *state* itself when it is already native or
    its page metrics are incomplete.
    """

    if state.coordinate_space == COORDINATE_SPACE_PDF:
        return state
    if not can_migrate(state):
        LOGGER.info("Page metrics incomplete; keeping legacy coordinate space")
        return state

    migrated = state.clone()
    for page_id in migrated.page_order:
        page = migrated.pages.get(page_id)
        if page is None:
            continue
        factor = migrated.page_metrics[page_id].width / LEGACY_CANVAS_WIDTH
        for element in page.elements():
            _scale_element(element, factor)
    migrated.coordinate_space = COORDINATE_SPACE_PDF
    LOGGER.info("Migrated %d page(s) to native page coordinates", len(migrated.page_order))
    return migrated


# -------------------------------------------------------------------- files


def save_state_file(state: DocumentState, path: PathLike) -> Path:
    output_path = ensure_path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(serialize(state), encoding="utf-8")
    return output_path


def load_state_file(path: PathLike) -> RestoredDocument:
    """Read a saved state file, raising :class:`StateFormatError` on failure."""

    state_path = ensure_path(path)
    try:
        text = state_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise StateFormatError(f"Unable to read state file: {state_path}") from exc
    restored = deserialize(text)
    if restored is None:
        raise StateFormatError(f"State file is malformed: {state_path}")
    return restored


__all__ = [
    "RestoredDocument",
    "serialize",
    "deserialize",
    "can_migrate",
    "migrate_coordinate_space",
    "save_state_file",
    "load_state_file",
]
