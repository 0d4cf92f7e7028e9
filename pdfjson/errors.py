"""Exceptions and warning records shared by the JSON reader and writer."""

from __future__ import annotations

from dataclasses import dataclass


class PDFJSONError(RuntimeError):
    """Base class for errors raised by pdfjson."""


class JSONSyntaxError(PDFJSONError):
    """Raised when the input is not well formed JSON."""

    def __init__(self, message: str, offset: int):
        super().__init__(f"JSON syntax error at offset {offset}: {message}")
        self.offset = offset


class JSONStructureError(PDFJSONError):
    """Raised when the document cannot be processed at all (e.g. not a dictionary)."""


class JSONImportError(PDFJSONError):
    """Raised after an import in which at least one error was recorded."""


class PDFJSONLogicError(PDFJSONError):
    """Internal invariant violation; indicates a bug or API misuse."""


@dataclass(frozen=True)
class PDFWarning:
    """A problem found while importing JSON.

    ``obj`` is the label of the object entry being processed (``"trailer"``,
    ``"obj:1 0 R"`` or an empty string when outside of any entry).
    """

    filename: str
    obj: str
    offset: int
    message: str

    def __str__(self) -> str:
        location = f"{self.obj}, offset {self.offset}" if self.obj else f"offset {self.offset}"
        return f"{self.filename} ({location}): {self.message}"
