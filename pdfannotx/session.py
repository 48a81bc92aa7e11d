"""Editing session owning the live :class:`DocumentState` and its undo history.

Every mutating operation works on a deep-copied draft of the current state.
When the draft actually changed, the previous state is pushed onto a bounded
history and the draft becomes current, so snapshots are never mutated after
they are recorded. Unknown ids and a missing current page turn operations
into no-ops instead of errors.
"""

from __future__ import annotations

import copy
import dataclasses
import logging
from collections import deque
from typing import Any, Callable, Iterable, Mapping

from .backends import PDFBackend
from .constants import (
    DEFAULT_HIGHLIGHT_COLOR,
    DEFAULT_HIGHLIGHT_OPACITY,
    HIGHLIGHT_STYLES,
    HISTORY_LIMIT,
    PAGINATION_POSITIONS,
    TEXT_ALIGNMENTS,
)
from .export import ExportOptions, export_final_pdf
from .importer import build_pages, create_document_state
from .model import (
    ArrowElement,
    DocumentState,
    HighlightElement,
    OverlayElement,
    TextElement,
)
from .serializer import deserialize, serialize
from .utils import new_id, to_snake_case

LOGGER = logging.getLogger("pdfannotx.session")

_PROTECTED_FIELDS = frozenset({"id"})
_CHOICES = {"text_align": TEXT_ALIGNMENTS, "style": HIGHLIGHT_STYLES}


def _apply_updates(element: OverlayElement, updates: Mapping[str, Any]) -> bool:
    known = {item.name for item in dataclasses.fields(element)}
    changed = False
    for key, value in updates.items():
        name = to_snake_case(key)
        if name in _PROTECTED_FIELDS:
            LOGGER.debug("Ignoring update of field %r on %s", key, element.id)
            continue
        if name not in known:
            LOGGER.warning("Ignoring unknown field %r on %s", key, element.id)
            continue
        choices = _CHOICES.get(name)
        if choices is not None and value not in choices:
            LOGGER.warning("Ignoring invalid %s %r on %s", name, value, element.id)
            continue
        setattr(element, name, value)
        changed = True
    return changed


class EditorSession:
    """Document state, current page, selection and undo history."""

    def __init__(
        self,
        state: DocumentState | None = None,
        *,
        history_limit: int = HISTORY_LIMIT,
        backend: PDFBackend | None = None,
    ) -> None:
        if history_limit < 1:
            raise ValueError("history_limit must be at least 1")
        self._state = state if state is not None else DocumentState()
        self._history: deque[DocumentState] = deque(maxlen=history_limit)
        self._backend = backend
        order = self._state.page_order
        self._current_page_id: str | None = order[0] if order else None
        self._selected_ids: list[str] = []

    # ----------------------------------------------------------- properties

    @property
    def state(self) -> DocumentState:
        return self._state

    @property
    def current_page_id(self) -> str | None:
        return self._current_page_id

    @property
    def selected_ids(self) -> list[str]:
        return list(self._selected_ids)

    @property
    def can_undo(self) -> bool:
        return bool(self._history)

    @property
    def selected_element(self) -> OverlayElement | None:
        """The selected element when exactly one is selected on the current page."""

        if len(self._selected_ids) != 1 or self._current_page_id is None:
            return None
        page = self._state.pages.get(self._current_page_id)
        if page is None:
            return None
        return page.find(self._selected_ids[0])

    # -------------------------------------------------------------- history

    def _mutate(self, action: Callable[[DocumentState], bool]) -> bool:
        draft = self._state.clone()
        if not action(draft):
            return False
        self._history.append(self._state)
        self._state = draft
        return True

    def undo(self) -> bool:
        """Restore the most recent snapshot; return ``False`` if there is none."""

        if not self._history:
            return False
        self._state = self._history.pop()
        order = self._state.page_order
        if self._current_page_id not in order:
            self._current_page_id = order[0] if order else None
        page = self._state.pages.get(self._current_page_id) if self._current_page_id else None
        self._selected_ids = [
            element_id
            for element_id in self._selected_ids
            if page is not None and page.find(element_id) is not None
        ]
        LOGGER.debug("Undo applied; %d snapshot(s) left", len(self._history))
        return True

    # ----------------------------------------------------- navigation/select

    def set_current_page(self, page_id: str) -> bool:
        if page_id not in self._state.page_order:
            return False
        if page_id != self._current_page_id:
            self._current_page_id = page_id
            self._selected_ids = []
        return True

    def select(self, element_ids: Iterable[str] | str | None) -> None:
        if element_ids is None:
            self._selected_ids = []
        elif isinstance(element_ids, str):
            self._selected_ids = [element_ids]
        else:
            self._selected_ids = list(dict.fromkeys(element_ids))

    # ------------------------------------------------------------- elements

    def _target_page(self, page_id: str | None) -> str | None:
        target = page_id or self._current_page_id
        if target is None or target not in self._state.pages:
            return None
        return target

    def _add_element(self, page_id: str | None, element: OverlayElement) -> str | None:
        target = self._target_page(page_id)
        if target is None:
            LOGGER.debug("No page to add %s element to", element.kind)
            return None

        def action(draft: DocumentState) -> bool:
            draft.pages[target].collection_for(element.kind).append(element)
            return True

        self._mutate(action)
        self._selected_ids = [element.id]
        return element.id

    def add_text_element(self, page_id: str | None, x: float, y: float) -> str | None:
        """Add a default text box with its top-left corner at ``(x, y)``."""

        return self._add_element(page_id, TextElement(id=new_id(TextElement.kind), x=x, y=y))

    def add_highlight(self, page_id: str | None = None) -> str | None:
        highlight = HighlightElement(
            id=new_id(HighlightElement.kind),
            fill_color=DEFAULT_HIGHLIGHT_COLOR,
            fill_opacity=DEFAULT_HIGHLIGHT_OPACITY,
            border_color=DEFAULT_HIGHLIGHT_COLOR,
            border_opacity=1.0,
        )
        return self._add_element(page_id, highlight)

    def add_arrow(self, page_id: str | None = None) -> str | None:
        return self._add_element(page_id, ArrowElement(id=new_id(ArrowElement.kind)))

    def update_element(self, element_id: str, updates: Mapping[str, Any]) -> bool:
        return self.update_elements({element_id: updates})

    def update_elements(self, updates: Mapping[str, Mapping[str, Any]]) -> bool:
        """Merge partial field updates into elements of the current page.

        Keys are element ids, values map field names, in snake_case or the
        persisted camelCase, to new values. Unknown ids and fields are ignored.
        """

        page_id = self._current_page_id
        if page_id is None or not updates:
            return False

        def action(draft: DocumentState) -> bool:
            page = draft.pages.get(page_id)
            if page is None:
                return False
            changed = False
            for element_id, fields in updates.items():
                element = page.find(element_id)
                if element is not None and _apply_updates(element, fields):
                    changed = True
            return changed

        return self._mutate(action)

    def delete_element(self, element_id: str) -> bool:
        return self.delete_elements([element_id])

    def delete_elements(self, element_ids: Iterable[str]) -> bool:
        page_id = self._current_page_id
        doomed = set(element_ids)
        self._selected_ids = []
        if page_id is None or not doomed:
            return False

        def action(draft: DocumentState) -> bool:
            page = draft.pages.get(page_id)
            return page is not None and page.remove(doomed)

        return self._mutate(action)

    # ---------------------------------------------------------------- pages

    def duplicate_page(self, page_id: str) -> str | None:
        """Insert a copy of *page_id* right after it and return the new id."""

        if page_id not in self._state.page_order or page_id not in self._state.pages:
            return None
        new_page_id = new_id("page")

        def action(draft: DocumentState) -> bool:
            order = draft.page_order
            page = copy.deepcopy(draft.pages[page_id])
            for element in page.elements():
                element.id = new_id(element.kind)
            draft.pages[new_page_id] = page
            metrics = draft.page_metrics.get(page_id)
            if metrics is not None:
                draft.page_metrics[new_page_id] = dataclasses.replace(metrics)
            order.insert(order.index(page_id) + 1, new_page_id)
            return True

        self._mutate(action)
        LOGGER.debug("Duplicated page %s as %s", page_id, new_page_id)
        return new_page_id

    def delete_page(self, page_id: str) -> bool:
        """Remove a page unless it is the last one left."""

        order = self._state.page_order
        if page_id not in order or len(order) <= 1:
            return False
        index = order.index(page_id)

        def action(draft: DocumentState) -> bool:
            draft.page_order.remove(page_id)
            draft.pages.pop(page_id, None)
            draft.page_metrics.pop(page_id, None)
            return True

        self._mutate(action)
        if self._current_page_id == page_id:
            remaining = self._state.page_order
            self._current_page_id = remaining[min(index, len(remaining) - 1)]
            self._selected_ids = []
        return True

    def reorder_pages(self, dragged_id: str, target_id: str) -> bool:
        """Move *dragged_id* to the position currently held by *target_id*."""

        order = self._state.page_order
        if dragged_id == target_id or dragged_id not in order or target_id not in order:
            return False

        def action(draft: DocumentState) -> bool:
            new_order = draft.page_order
            target_index = new_order.index(target_id)
            new_order.remove(dragged_id)
            new_order.insert(target_index, dragged_id)
            return True

        return self._mutate(action)

    # ------------------------------------------------------------- settings

    def update_pagination(self, **fields: Any) -> bool:
        known = {item.name for item in dataclasses.fields(self._state.pagination)}
        unknown = set(fields) - known
        if unknown:
            raise TypeError(f"Unknown pagination setting(s): {', '.join(sorted(unknown))}")
        position = fields.get("position")
        if position is not None and position not in PAGINATION_POSITIONS:
            raise ValueError(
                f"Invalid pagination position '{position}'. "
                f"Choose from: {', '.join(PAGINATION_POSITIONS)}"
            )
        if not fields:
            return False

        def action(draft: DocumentState) -> bool:
            for name, value in fields.items():
                setattr(draft.pagination, name, value)
            return True

        return self._mutate(action)

    def update_page_footer(
        self, page_id: str, number: str | None = None, detail: str | None = None
    ) -> bool:
        if page_id not in self._state.pages or (number is None and detail is None):
            return False

        def action(draft: DocumentState) -> bool:
            footer = draft.pages[page_id].footer
            if number is not None:
                footer.number = number
            if detail is not None:
                footer.detail = detail
            return True

        return self._mutate(action)

    def set_language(self, code: str) -> None:
        self._state.language = code

    # ------------------------------------------------------- import/persist

    def load_pdf(self, data: bytes, name: str) -> DocumentState:
        """Replace the session with a fresh document built from *data*."""

        self._state = create_document_state(data, name, backend=self._backend)
        self._history.clear()
        self._current_page_id = self._state.page_order[0]
        self._selected_ids = []
        return self._state

    def append_pdf(self, data: bytes) -> list[str]:
        """Append every page of another PDF to the end of the document."""

        if self._state.document is None:
            return []
        raw_bytes = bytes(data)
        existing = self._state.original_pdf_sources
        if not existing and self._state.original_pdf_bytes is not None:
            existing = [self._state.original_pdf_bytes]
        source_index = len(existing)
        page_ids, pages, metrics = build_pages(raw_bytes, source_index, backend=self._backend)

        def action(draft: DocumentState) -> bool:
            if not draft.original_pdf_sources and draft.original_pdf_bytes is not None:
                draft.original_pdf_sources.append(draft.original_pdf_bytes)
            draft.original_pdf_sources.append(raw_bytes)
            draft.pages.update(pages)
            draft.page_metrics.update(metrics)
            draft.page_order.extend(page_ids)
            return True

        self._mutate(action)
        LOGGER.info("Appended %d page(s) from source %d", len(page_ids), source_index)
        return page_ids

    def save(self) -> str:
        return serialize(self._state)

    def restore(self, text: str) -> bool:
        """Load serialized state; the session is untouched on failure."""

        restored = deserialize(text)
        if restored is None:
            return False
        self._state = restored.state
        self._current_page_id = restored.current_page_id
        self._selected_ids = []
        self._history.clear()
        return True

    def export(self, options: ExportOptions | None = None) -> bytes:
        return export_final_pdf(self._state, backend=self._backend, options=options)


__all__ = ["EditorSession"]
