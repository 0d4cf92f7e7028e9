"""Helpers for serialising a document as ``qpdf-v2`` JSON."""

from __future__ import annotations

import base64
import enum
import json
import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, BinaryIO, FrozenSet

from .filters import DecodeLevel, decode_stream_data
from .primitives import PDFName, PDFObject, PDFReal, PDFReference

if TYPE_CHECKING:
    from .document import PDFDocument

logger = logging.getLogger(__name__)

INDENT = "  "

_JSON_NUMBER_RE = re.compile(r"-?(?:0|[1-9][0-9]*)(?:\.[0-9]+)?(?:[eE][+-]?[0-9]+)?")
_DECIMAL_RE = re.compile(r"([+-]?)([0-9]*)(?:\.([0-9]*))?")


class JSONStreamData(enum.Enum):
    """Where stream payloads go when writing JSON."""

    NONE = "none"
    INLINE = "inline"
    FILE = "file"


@dataclass(frozen=True)
class JSONWriteOptions:
    """Settings for :func:`write_json`.

    ``wanted_objects`` restricts output to the given ``"obj:n g R"`` keys
    and/or ``"trailer"``; an empty set means everything.  With
    ``JSONStreamData.FILE`` each payload is written to
    ``f"{file_prefix}-{obj_id}"``.
    """

    version: int = 2
    decode_level: DecodeLevel = DecodeLevel.GENERALIZED
    stream_data: JSONStreamData = JSONStreamData.INLINE
    file_prefix: str = ""
    wanted_objects: FrozenSet[str] = frozenset()

    def __post_init__(self) -> None:
        object.__setattr__(self, "wanted_objects", frozenset(self.wanted_objects))


def _quote(text: str) -> str:
    quoted = json.dumps(text, ensure_ascii=False)
    try:
        quoted.encode("utf-8")
    except UnicodeEncodeError:
        quoted = json.dumps(text)
    return quoted


def _real_text(real: PDFReal) -> str:
    text = real.text.strip()
    if _JSON_NUMBER_RE.fullmatch(text):
        return text
    match = _DECIMAL_RE.fullmatch(text)
    if not match or not (match.group(2) or match.group(3)):
        raise ValueError(f"Invalid real number: {real.text!r}")
    sign = "-" if match.group(1) == "-" else ""
    whole = match.group(2).lstrip("0") or "0"
    fraction = match.group(3)
    if fraction:
        return f"{sign}{whole}.{fraction}"
    return f"{sign}{whole}"


def to_json_value(value: Any) -> Any:
    """Map a PDF object to the JSON-ready form used by ``qpdf-v2``."""

    if isinstance(value, PDFName):
        return value.value
    if isinstance(value, PDFReference):
        return str(value)
    if isinstance(value, PDFObject):
        return str(value.reference)
    if value is None or isinstance(value, (bool, int, PDFReal)):
        return value
    if isinstance(value, str):
        return "u:" + value
    if isinstance(value, (bytes, bytearray)):
        return "b:" + bytes(value).hex()
    if isinstance(value, dict):
        return {str(key): to_json_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json_value(item) for item in value]
    raise TypeError(f"Unsupported value type: {type(value)!r}")


def dump(node: Any, depth: int = 0) -> str:
    """Render a JSON-ready value with qpdf's two-space layout."""

    if isinstance(node, dict):
        if not node:
            return "{}"
        items = ",".join(
            f"\n{INDENT * (depth + 1)}{_quote(key)}: {dump(item, depth + 1)}" for key, item in node.items()
        )
        return "{" + items + "\n" + INDENT * depth + "}"
    if isinstance(node, list):
        if not node:
            return "[]"
        items = ",".join(f"\n{INDENT * (depth + 1)}{dump(item, depth + 1)}" for item in node)
        return "[" + items + "\n" + INDENT * depth + "]"
    if node is None:
        return "null"
    if isinstance(node, bool):
        return "true" if node else "false"
    if isinstance(node, int):
        return str(node)
    if isinstance(node, PDFReal):
        return _real_text(node)
    if isinstance(node, str):
        return _quote(node)
    raise TypeError(f"Unsupported JSON node: {type(node)!r}")


class _DictionaryWriter:
    """Writes one JSON dictionary item by item."""

    def __init__(self, sink: BinaryIO, depth: int):
        self.sink = sink
        self.depth = depth
        self.first = True
        self._write("{")

    def _write(self, text: str) -> None:
        self.sink.write(text.encode("utf-8"))

    def key(self, key: str) -> None:
        self._write(("" if self.first else ",") + f"\n{INDENT * (self.depth + 1)}{_quote(key)}: ")
        self.first = False

    def item(self, key: str, node: Any) -> None:
        self.key(key)
        self._write(dump(node, self.depth + 1))

    def close(self) -> None:
        self._write("}" if self.first else f"\n{INDENT * self.depth}}}")


def _stream_json(obj: PDFObject, options: JSONWriteOptions) -> dict:
    stream = obj.stream
    if options.stream_data is JSONStreamData.NONE:
        return {"dict": to_json_value(stream.dictionary)}
    data, dictionary, filtered = decode_stream_data(
        stream.dictionary, stream.get_raw_data(), options.decode_level
    )
    if filtered:
        logger.debug("Decoded stream %s for JSON output", obj.key)
    result = {"dict": to_json_value(dictionary)}
    if options.stream_data is JSONStreamData.INLINE:
        result["data"] = base64.b64encode(data).decode("ascii")
    else:
        filename = f"{options.file_prefix}-{obj.obj_id}"
        with open(filename, "wb") as handle:
            handle.write(data)
        result["datafile"] = filename
    return result


def write_json(document: "PDFDocument", sink: BinaryIO, options: JSONWriteOptions | None = None) -> None:
    """Write *document* to the binary *sink* as ``qpdf-v2`` JSON."""

    options = options or JSONWriteOptions()
    if options.version != 2:
        raise ValueError("write_json: only version 2 is supported")
    if options.stream_data is JSONStreamData.FILE and not options.file_prefix:
        raise ValueError("write_json: a file prefix is required to write stream data to files")

    wanted = options.wanted_objects
    top = _DictionaryWriter(sink, 0)
    top.key("qpdf-v2")
    qpdf = _DictionaryWriter(sink, 1)
    qpdf.item("pdfversion", document.pdf_version)
    qpdf.item("maxobjectid", document.get_object_count())
    qpdf.key("objects")
    objects = _DictionaryWriter(sink, 2)
    for obj in document.get_all_objects():
        if wanted and obj.key not in wanted:
            continue
        if obj.is_stream:
            objects.item(obj.key, {"stream": _stream_json(obj, options)})
        else:
            objects.item(obj.key, {"value": to_json_value(obj.value)})
    if not wanted or "trailer" in wanted:
        objects.item("trailer", {"value": to_json_value(document.trailer)})
    objects.close()
    qpdf.close()
    top.close()
    sink.write(b"\n")


__all__ = ["JSONStreamData", "JSONWriteOptions", "dump", "to_json_value", "write_json"]
