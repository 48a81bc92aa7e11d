"""Custom exceptions for :mod:`pdfannotx`."""

from __future__ import annotations


class PdfAnnotError(Exception):
    """Base exception for all pdfannotx errors."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    @property
    def default_message(self) -> str:
        return "An unknown PDF annotation error occurred."


class PdfExportError(PdfAnnotError):
    """Raised when the final PDF cannot be produced."""

    @property
    def default_message(self) -> str:
        return "Failed to export the annotated PDF."


class PdfBackendError(PdfAnnotError):
    """Raised when the underlying PDF library cannot complete an operation."""

    @property
    def default_message(self) -> str:
        return "The PDF backend failed to complete the operation."


class InvalidPDFError(PdfBackendError):
    """Raised when PDF bytes are unreadable or contain no pages."""

    @property
    def default_message(self) -> str:
        return "Invalid or corrupted PDF file."


class StateFormatError(PdfAnnotError):
    """Raised when a saved document state cannot be read."""

    @property
    def default_message(self) -> str:
        return "Saved document state is malformed."


__all__ = [
    "PdfAnnotError",
    "PdfExportError",
    "PdfBackendError",
    "InvalidPDFError",
    "StateFormatError",
]
