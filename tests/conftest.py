from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Callable
import sys

import pytest
from pypdf import PdfWriter

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from pdfannotx import EditorSession, create_document_state  # noqa: E402

PdfFactory = Callable[..., bytes]


def _write_pdf(sizes, rotation: int = 0) -> bytes:
    writer = PdfWriter()
    for width, height in sizes:
        page = writer.add_blank_page(width=width, height=height)
        if rotation:
            page.rotate(rotation)
    writer.add_metadata({"/Producer": "pdfannotx-tests"})
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


@pytest.fixture()
def pdf_bytes() -> PdfFactory:
    def _create(*sizes: tuple[float, float], rotation: int = 0) -> bytes:
        return _write_pdf(sizes or [(200, 300)], rotation)

    return _create


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    buffer = io.BytesIO()
    PdfWriter().write(buffer)
    return buffer.getvalue()


@pytest.fixture()
def two_page_state(pdf_bytes: PdfFactory):
    return create_document_state(pdf_bytes((200, 300), (300, 400)), "two.pdf")


@pytest.fixture()
def session(pdf_bytes: PdfFactory) -> EditorSession:
    editor = EditorSession()
    editor.load_pdf(pdf_bytes((400, 500), (400, 500), (400, 500)), "three.pdf")
    return editor


@pytest.fixture()
def sample_pdf(tmp_path: Path, pdf_bytes: PdfFactory) -> Path:
    pdf_path = tmp_path / "sample.pdf"
    pdf_path.write_bytes(pdf_bytes((400, 500), (300, 400)))
    return pdf_path


@pytest.fixture(autouse=True)
def reset_package_logger():
    yield
    logger = logging.getLogger("pdfannotx")
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
