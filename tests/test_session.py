from __future__ import annotations

import io
import logging

import pytest
from pypdf import PdfReader

from pdfannotx import EditorSession, InvalidPDFError, TextElement


def test_add_text_element_selects_new_element(session: EditorSession) -> None:
    page_id = session.current_page_id

    element_id = session.add_text_element(page_id, 30, 40)

    assert element_id is not None and element_id.startswith("text-")
    assert session.selected_ids == [element_id]
    element = session.selected_element
    assert isinstance(element, TextElement)
    assert (element.x, element.y, element.width, element.height) == (30, 40, 200, 40)
    assert element.content == "New Text"
    assert session.can_undo


def test_add_elements_default_to_current_page(session: EditorSession) -> None:
    highlight_id = session.add_highlight()
    arrow_id = session.add_arrow()

    page = session.state.pages[session.current_page_id]
    assert [h.id for h in page.highlights] == [highlight_id]
    assert [a.id for a in page.arrows] == [arrow_id]
    assert page.highlights[0].opacity == pytest.approx(0.3)
    assert page.arrows[0].angle == 0


def test_operations_without_document_are_noops() -> None:
    editor = EditorSession()

    assert editor.add_highlight() is None
    assert editor.add_text_element(None, 0, 0) is None
    assert editor.update_element("missing", {"x": 1}) is False
    assert editor.delete_page("missing") is False
    assert editor.append_pdf(b"ignored") == []
    assert not editor.can_undo


def test_update_element_merges_fields(session: EditorSession) -> None:
    element_id = session.add_text_element(session.current_page_id, 0, 0)

    assert session.update_element(element_id, {"content": "Hello", "bold": True, "id": "x", "bogus": 1})

    element = session.state.pages[session.current_page_id].find(element_id)
    assert element.content == "Hello"
    assert element.bold is True
    assert element.id == element_id


def test_update_elements_unknown_id_leaves_state_unchanged(session: EditorSession) -> None:
    session.add_highlight()
    before = session.state.clone()
    state_object = session.state

    assert session.update_elements({"highlight-missing": {"x": 5}}) is False

    assert session.state is state_object
    assert session.state == before


def test_update_elements_batch(session: EditorSession) -> None:
    first = session.add_highlight()
    second = session.add_arrow()

    session.update_elements({first: {"x": 1.5}, second: {"angle": 45}})

    page = session.state.pages[session.current_page_id]
    assert page.find(first).x == 1.5
    assert page.find(second).angle == 45


def test_snapshots_are_independent(session: EditorSession) -> None:
    element_id = session.add_text_element(session.current_page_id, 0, 0)
    snapshot = session.state

    session.update_element(element_id, {"content": "Changed"})

    assert snapshot.pages[session.current_page_id].find(element_id).content == "New Text"
    assert session.undo()
    assert session.state.pages[session.current_page_id].find(element_id).content == "New Text"


def test_delete_elements_clears_selection(session: EditorSession) -> None:
    first = session.add_highlight()
    second = session.add_arrow()
    session.select([first, second])

    assert session.delete_elements([first, second])

    page = session.state.pages[session.current_page_id]
    assert list(page.elements()) == []
    assert session.selected_ids == []


def test_duplicate_page_inserts_after_source(session: EditorSession) -> None:
    first, second, third = session.state.page_order
    element_id = session.add_highlight(first)

    copy_id = session.duplicate_page(first)

    assert session.state.page_order == [first, copy_id, second, third]
    copied = session.state.pages[copy_id].highlights
    assert len(copied) == 1
    assert copied[0].id != element_id
    assert session.state.page_metrics[copy_id] == session.state.page_metrics[first]
    assert session.state.page_metrics[copy_id] is not session.state.page_metrics[first]

    session.set_current_page(copy_id)
    session.update_element(copied[0].id, {"x": 1})
    assert session.state.pages[first].highlights[0].x == 100


def test_delete_only_page_is_noop(pdf_bytes) -> None:
    editor = EditorSession()
    editor.load_pdf(pdf_bytes((200, 300)), "one.pdf")

    assert editor.delete_page(editor.current_page_id) is False
    assert len(editor.state.page_order) == 1
    assert not editor.can_undo


def test_delete_page_advances_current_page(session: EditorSession) -> None:
    first, second, third = session.state.page_order

    session.set_current_page(second)
    assert session.delete_page(second)
    assert session.current_page_id == third
    assert second not in session.state.pages
    assert second not in session.state.page_metrics

    assert session.delete_page(third)
    assert session.current_page_id == first


def test_reorder_pages(session: EditorSession) -> None:
    first, second, third = session.state.page_order

    session.reorder_pages(third, first)
    assert session.state.page_order == [third, first, second]

    session.reorder_pages(third, second)
    assert session.state.page_order == [first, second, third]

    assert session.reorder_pages(first, first) is False
    assert session.reorder_pages(first, "page-unknown") is False


def test_undo_history_is_bounded(pdf_bytes) -> None:
    editor = EditorSession(history_limit=3)
    editor.load_pdf(pdf_bytes((200, 300)), "one.pdf")
    for _ in range(5):
        editor.add_highlight()

    undone = 0
    while editor.undo():
        undone += 1

    assert undone == 3
    assert len(editor.state.pages[editor.current_page_id].highlights) == 2


def test_undo_revalidates_current_page_and_selection(session: EditorSession) -> None:
    first = session.state.page_order[0]
    copy_id = session.duplicate_page(first)
    session.set_current_page(copy_id)
    element_id = session.add_highlight()

    session.undo()
    assert session.current_page_id == copy_id
    assert element_id not in session.selected_ids

    session.undo()
    assert session.current_page_id == first


def test_selection_and_navigation_do_not_push_history(session: EditorSession) -> None:
    session.set_current_page(session.state.page_order[1])
    session.select("text-anything")
    session.set_language("es")

    assert not session.can_undo
    assert session.state.language == "es"
    assert session.set_current_page("page-unknown") is False


def test_update_pagination(session: EditorSession) -> None:
    assert session.update_pagination(enabled=True, position="top-right", start_at=4)

    assert session.state.pagination.enabled is True
    assert session.state.pagination.position == "top-right"
    assert session.state.pagination.start_at == 4

    with pytest.raises(ValueError):
        session.update_pagination(position="middle")
    with pytest.raises(TypeError):
        session.update_pagination(colour="red")


def test_update_page_footer(session: EditorSession) -> None:
    page_id = session.current_page_id

    assert session.update_page_footer(page_id, number="12", detail="Summary")

    assert session.state.pages[page_id].footer.text == "12 - Summary"
    assert session.update_page_footer("page-unknown", number="1") is False


def test_append_pdf_adds_source_and_pages(session: EditorSession, pdf_bytes) -> None:
    extra = pdf_bytes((100, 150), (120, 160))

    new_ids = session.append_pdf(extra)

    assert session.state.page_order[-2:] == new_ids
    assert session.state.original_pdf_sources[1] == extra
    metrics = [session.state.page_metrics[page_id] for page_id in new_ids]
    assert [(m.source_index, m.page_index) for m in metrics] == [(1, 0), (1, 1)]
    assert session.undo()
    assert len(session.state.original_pdf_sources) == 1


def test_append_invalid_pdf_raises(session: EditorSession) -> None:
    with pytest.raises(InvalidPDFError):
        session.append_pdf(b"nope")
    assert not session.can_undo


def test_save_and_restore(session: EditorSession) -> None:
    session.add_highlight()
    text = session.save()

    restored = EditorSession()
    assert restored.restore(text)
    assert restored.state.page_order == session.state.page_order
    assert restored.current_page_id == session.state.page_order[0]


def test_restore_failure_leaves_session_untouched(session: EditorSession) -> None:
    state = session.state
    current = session.current_page_id

    assert session.restore("{broken") is False

    assert session.state is state
    assert session.current_page_id == current


def test_export_from_session(session: EditorSession) -> None:
    session.add_text_element(session.current_page_id, 10, 10)

    reader = PdfReader(io.BytesIO(session.export()))

    assert len(reader.pages) == 3


def test_update_rejects_unknown_choices(session: EditorSession) -> None:
    text_id = session.add_text_element(session.current_page_id, 0, 0)
    highlight_id = session.add_highlight()

    assert session.update_elements(
        {text_id: {"text_align": "diagonal"}, highlight_id: {"style": "dotted"}}
    ) is False

    page = session.state.pages[session.current_page_id]
    assert page.find(text_id).text_align == "left"
    assert page.find(highlight_id).style == "fill"


def test_update_accepts_persisted_camel_case_names(session: EditorSession) -> None:
    text_id = session.add_text_element(session.current_page_id, 0, 0)
    highlight_id = session.add_highlight()

    assert session.update_elements(
        {
            text_id: {"fontSize": 24, "textAlign": "right"},
            highlight_id: {"borderWidth": 5, "fill_opacity": 0.8},
        }
    )

    page = session.state.pages[session.current_page_id]
    assert page.find(text_id).font_size == 24
    assert page.find(text_id).text_align == "right"
    assert page.find(highlight_id).border_width == 5
    assert page.find(highlight_id).fill_opacity == 0.8


def test_update_warns_about_unknown_fields(
    session: EditorSession, caplog: pytest.LogCaptureFixture
) -> None:
    text_id = session.add_text_element(session.current_page_id, 0, 0)

    with caplog.at_level(logging.WARNING, logger="pdfannotx.session"):
        assert session.update_element(text_id, {"fontColour": "#ff0000"}) is False

    assert "fontColour" in caplog.text
