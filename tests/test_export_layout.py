"""Exact placement of overlays in exported pages.

Drawing calls are recorded on their way to the pypdf backend, so these tests
check page-space coordinates rather than extracted text.
"""

from __future__ import annotations

import pytest
from reportlab.pdfbase.pdfmetrics import stringWidth

from pdfannotx import (
    ArrowElement,
    ExportOptions,
    HighlightElement,
    TextElement,
    create_document_state,
    export_final_pdf,
    migrate_coordinate_space,
)
from pdfannotx.backends.pypdf_backend import PypdfPage
from pdfannotx.constants import COORDINATE_SPACE_LEGACY
from pdfannotx.geometry import Color


@pytest.fixture()
def drawn(monkeypatch: pytest.MonkeyPatch) -> dict[str, list]:
    calls: dict[str, list] = {"draw_text": [], "draw_rectangle": [], "draw_path": []}
    for name in calls:
        original = getattr(PypdfPage, name)

        def record(self, *args, _name=name, _original=original, **kwargs):
            calls[_name].append((args, kwargs))
            return _original(self, *args, **kwargs)

        monkeypatch.setattr(PypdfPage, name, record)
    return calls


def _state_with(pdf_bytes, size, *elements, rotation=0, legacy=False):
    state = create_document_state(pdf_bytes(size, rotation=rotation), "layout.pdf")
    if legacy:
        state.coordinate_space = COORDINATE_SPACE_LEGACY
    page = state.pages[state.page_order[0]]
    for element in elements:
        page.collection_for(element.kind).append(element)
    return state


def _rect(call) -> tuple[float, float, float, float]:
    _, kwargs = call
    return kwargs["x"], kwargs["y"], kwargs["width"], kwargs["height"]


def _points(call) -> list[float]:
    args, _ = call
    return [coordinate for point in args[0] for coordinate in point]


def _highlight(**fields) -> HighlightElement:
    values = dict(
        id="highlight-1",
        x=10,
        y=20,
        width=60,
        height=30,
        fill_color="#ff0000",
        fill_opacity=0.5,
        border_color="#0000ff",
        border_opacity=1.0,
        style="both",
        border_width=2,
    )
    values.update(fields)
    return HighlightElement(**values)


@pytest.mark.parametrize("with_transform", [True, False])
def test_highlight_is_flipped_onto_the_page(pdf_bytes, drawn, with_transform: bool) -> None:
    state = _state_with(pdf_bytes, (200, 300), _highlight())
    if not with_transform:
        state.page_metrics[state.page_order[0]].transform = None

    export_final_pdf(state)

    [call] = drawn["draw_rectangle"]
    assert _rect(call) == pytest.approx((10, 250, 60, 30))
    _, kwargs = call
    assert kwargs["color"] == Color(1.0, 0.0, 0.0)
    assert kwargs["opacity"] == 0.5
    assert kwargs["border_color"] == Color(0.0, 0.0, 1.0)
    assert kwargs["border_width"] == pytest.approx(2)


@pytest.mark.parametrize(
    "style, filled, bordered",
    [("fill", True, False), ("border", False, True), ("both", True, True)],
)
def test_highlight_style_selects_fill_and_border(
    pdf_bytes, drawn, style: str, filled: bool, bordered: bool
) -> None:
    export_final_pdf(_state_with(pdf_bytes, (200, 300), _highlight(style=style)))

    [(_, kwargs)] = drawn["draw_rectangle"]
    assert (kwargs["color"] is not None) is filled
    assert (kwargs["border_color"] is not None) is bordered
    assert kwargs["border_width"] == (pytest.approx(2) if bordered else 0)


@pytest.mark.parametrize("border_width, expected", [(1, 1), (4, 2)])
def test_legacy_highlight_is_scaled_with_minimum_border(
    pdf_bytes, drawn, border_width: float, expected: float
) -> None:
    highlight = _highlight(x=100, y=200, width=60, height=40, border_width=border_width)
    state = _state_with(pdf_bytes, (306, 396), highlight, legacy=True)

    export_final_pdf(state)

    [call] = drawn["draw_rectangle"]
    assert _rect(call) == pytest.approx((50, 276, 30, 20))
    assert call[1]["border_width"] == pytest.approx(expected)


def test_rotated_legacy_page_matches_its_migrated_copy(pdf_bytes, drawn) -> None:
    highlight = _highlight(x=0, y=0, width=61.2, height=40.8)
    legacy = _state_with(pdf_bytes, (200, 300), highlight, rotation=90, legacy=True)
    migrated = migrate_coordinate_space(legacy)

    export_final_pdf(legacy)
    export_final_pdf(migrated)

    legacy_call, migrated_call = drawn["draw_rectangle"]
    assert _rect(legacy_call) == pytest.approx((0, 0, 20, 30))
    assert _rect(migrated_call) == pytest.approx((0, 0, 20, 30))


def test_rotated_page_without_transform_uses_page_rotation(pdf_bytes, drawn) -> None:
    state = _state_with(pdf_bytes, (200, 300), _highlight(x=0, y=0, width=30, height=20), rotation=90)
    state.page_metrics[state.page_order[0]].transform = None

    export_final_pdf(state)

    [call] = drawn["draw_rectangle"]
    assert _rect(call) == pytest.approx((0, 0, 20, 30))


def _text(content: str = "Placed", **fields) -> TextElement:
    values = dict(id="text-1", x=20, y=30, width=200, height=40, content=content, font_size=16)
    values.update(fields)
    return TextElement(**values)


@pytest.mark.parametrize("align", ["left", "center", "right"])
def test_text_baseline_padding_and_alignment(pdf_bytes, drawn, align: str) -> None:
    export_final_pdf(_state_with(pdf_bytes, (400, 500), _text(text_align=align)))

    line_width = stringWidth("Placed", "Helvetica", 16)
    expected_x = {
        "left": 20 + 4,
        "center": 20 + 4 + (200 - 8 - line_width) / 2,
        "right": 20 + 200 - 4 - line_width,
    }[align]
    [(args, kwargs)] = drawn["draw_text"]
    assert args == ("Placed",)
    assert (kwargs["x"], kwargs["y"]) == pytest.approx((expected_x, 500 - 30 - 4 - 16))
    assert kwargs["size"] == 16
    assert kwargs["angle"] == pytest.approx(0)


def test_text_lines_step_down_and_skip_empty_lines(pdf_bytes, drawn) -> None:
    options = ExportOptions()
    export_final_pdf(_state_with(pdf_bytes, (400, 500), _text("First\n\nThird")), options=options)

    first, third = drawn["draw_text"]
    step = 16 * options.line_height
    assert first[0] == ("First",)
    assert third[0] == ("Third",)
    assert third[1]["y"] == pytest.approx(first[1]["y"] - 2 * step)


def test_legacy_text_scales_font_and_padding(pdf_bytes, drawn) -> None:
    export_final_pdf(_state_with(pdf_bytes, (306, 396), _text(x=40, y=40), legacy=True))

    [(_, kwargs)] = drawn["draw_text"]
    assert kwargs["size"] == pytest.approx(8)
    assert (kwargs["x"], kwargs["y"]) == pytest.approx((20 + 2, 396 - 20 - 2 - 8))


def test_text_on_rotated_page_follows_the_viewer(pdf_bytes, drawn) -> None:
    export_final_pdf(_state_with(pdf_bytes, (200, 300), _text(x=10, y=20), rotation=90))

    [(_, kwargs)] = drawn["draw_text"]
    assert (kwargs["x"], kwargs["y"]) == pytest.approx((40, 14))
    assert kwargs["angle"] == pytest.approx(90)


def _arrow(**fields) -> ArrowElement:
    values = dict(id="arrow-1", x=100, y=150, width=150, height=30, thickness=3, color="#000000")
    values.update(fields)
    return ArrowElement(**values)


def test_arrow_shaft_and_head(pdf_bytes, drawn) -> None:
    export_final_pdf(_state_with(pdf_bytes, (400, 500), _arrow()))

    shaft, head = drawn["draw_path"]
    assert _points(shaft) == pytest.approx([100, 335, 239.5, 335])
    assert shaft[1]["stroke_width"] == pytest.approx(3)
    assert _points(head) == pytest.approx([239.5, 329.75, 250, 335, 239.5, 340.25])
    assert head[1]["closed"] is True


def test_arrow_head_is_clamped_to_half_the_length(pdf_bytes, drawn) -> None:
    export_final_pdf(_state_with(pdf_bytes, (400, 500), _arrow(width=10)))

    shaft, head = drawn["draw_path"]
    assert _points(shaft) == pytest.approx([100, 335, 105, 335])
    assert head[0][0][1] == pytest.approx((110, 335))


def test_arrow_angle_turns_clockwise_on_screen(pdf_bytes, drawn) -> None:
    export_final_pdf(_state_with(pdf_bytes, (400, 500), _arrow(angle=90)))

    shaft, head = drawn["draw_path"]
    assert shaft[0][0][1] == pytest.approx((100, 195.5))
    assert head[0][0][1] == pytest.approx((100, 185))


def test_page_number_box_on_plain_page(pdf_bytes, drawn) -> None:
    state = _state_with(pdf_bytes, (200, 300))
    state.pagination.enabled = True
    state.pagination.position = "bottom-right"
    state.pagination.background_box = True

    export_final_pdf(state)

    width = stringWidth("1", "Helvetica", 12)
    x = 200 - width - 20
    [box] = drawn["draw_rectangle"]
    assert _rect(box) == pytest.approx((x - 5, 15, width + 10, 22))
    [(args, kwargs)] = drawn["draw_text"]
    assert args == ("1",)
    assert (kwargs["x"], kwargs["y"]) == pytest.approx((x, 20))


def test_page_number_on_rotated_page_sits_on_the_visible_bottom(pdf_bytes, drawn) -> None:
    state = _state_with(pdf_bytes, (200, 300), rotation=90)
    state.pagination.enabled = True

    export_final_pdf(state)

    width = stringWidth("1", "Helvetica", 12)
    [(_, kwargs)] = drawn["draw_text"]
    assert (kwargs["x"], kwargs["y"]) == pytest.approx((200 - 20, (300 - width) / 2))
    assert kwargs["angle"] == pytest.approx(90)
