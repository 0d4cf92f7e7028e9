"""Read and write PDF object graphs as ``qpdf-v2`` JSON."""

from .document import PDFDocument
from .errors import (
    JSONImportError,
    JSONStructureError,
    JSONSyntaxError,
    PDFJSONError,
    PDFJSONLogicError,
    PDFWarning,
)
from .filters import DecodeLevel
from .input_source import BufferInputSource, FileInputSource, InputSource
from .primitives import PDFName, PDFObject, PDFReal, PDFReference, PDFStream
from .writer import JSONStreamData, JSONWriteOptions, write_json

__all__ = [
    "BufferInputSource",
    "DecodeLevel",
    "FileInputSource",
    "InputSource",
    "JSONImportError",
    "JSONStreamData",
    "JSONStructureError",
    "JSONSyntaxError",
    "JSONWriteOptions",
    "PDFDocument",
    "PDFJSONError",
    "PDFJSONLogicError",
    "PDFName",
    "PDFObject",
    "PDFReal",
    "PDFReference",
    "PDFStream",
    "PDFWarning",
    "write_json",
]
