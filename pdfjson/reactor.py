"""Import ``qpdf-v2`` JSON into a :class:`~pdfjson.document.PDFDocument`.

This chart shows the state transitions that occur while reading a minimal
file::

                                    | INITIAL
    {                               |   -> TOP
      "qpdf-v2": {                  |   -> QPDF
        "objects": {                |   -> OBJECTS
          "obj:1 0 R": {            |   -> OBJECT_TOP
            "value": {              |   -> OBJECT
              "/Pages": "2 0 R",    |   ...
              "/Type": "/Catalog"   |   ...
            }                       |   <- OBJECT_TOP
          },                        |   <- OBJECTS
          "obj:4 0 R": {            |   -> OBJECT_TOP
            "stream": {             |   -> STREAM
              "data": "cG90YXRv",   |   ...
              "dict": {             |   -> OBJECT
                "/K": true          |   ...
              }                     |   <- STREAM
            }                       |   <- OBJECT_TOP
          },                        |   <- OBJECTS
          "trailer": {              |   -> TRAILER
            "value": {              |   -> OBJECT
              "/Root": "1 0 R",     |   ...
              "/Size": 7            |   ...
            }                       |   <- TRAILER
          }                         |   <- OBJECTS
        }                           |   <- QPDF
      }                             |   <- TOP
    }                               |   <- INITIAL

Problems with the content are recorded as warnings on the document and the
import fails at the end if there were any.  Only a document that is not a
dictionary at all stops the import immediately.
"""

from __future__ import annotations

import enum
import logging
import re
from typing import TYPE_CHECKING, Any, List, Set, Tuple

from .errors import (
    JSONImportError,
    JSONStructureError,
    JSONSyntaxError,
    PDFJSONLogicError,
    PDFWarning,
)
from .input_source import InputSource, SourceLike, as_input_source
from .json_parser import JSONKind, JSONReactor, JSONValue, parse_json
from .primitives import PDFName, PDFObject, PDFReal
from .providers import EmbeddedDataProvider, FileDataProvider

if TYPE_CHECKING:
    from .document import PDFDocument

logger = logging.getLogger(__name__)

_PDF_VERSION_RE = re.compile(r"\d+\.\d+", re.ASCII)
_OBJ_KEY_RE = re.compile(r"obj:(\d+) (\d+) R", re.ASCII)
_INDIRECT_OBJ_RE = re.compile(r"(\d+) (\d+) R", re.ASCII)
_UNICODE_RE = re.compile(r"u:(.*)", re.DOTALL)
_BINARY_RE = re.compile(r"b:((?:[0-9a-fA-F]{2})*)")
_NAME_RE = re.compile(r"/.*", re.DOTALL)
_INTEGER_RE = re.compile(r"-?\d+", re.ASCII)

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


class State(enum.Enum):
    INITIAL = "initial"
    TOP = "top"
    QPDF = "qpdf"
    OBJECTS = "objects"
    OBJECT_TOP = "object_top"
    OBJECT = "object"
    TRAILER = "trailer"
    STREAM = "stream"
    IGNORE = "ignore"


def _parse_integer(text: str):
    if not _INTEGER_RE.fullmatch(text):
        return None
    number = int(text)
    if _INT64_MIN <= number <= _INT64_MAX:
        return number
    return None


class PDFJSONReactor(JSONReactor):
    """Builds document objects from JSON parse events.

    ``state`` says what the innermost open JSON container means.  Opening a
    container pushes the current state and switches to ``next_state``, which
    the preceding dictionary item chose; closing a container pops it.  The
    ``object_stack`` holds the arrays and dictionaries being filled in.
    """

    def __init__(self, document: "PDFDocument", source: InputSource, must_be_complete: bool):
        self.document = document
        self.source = source
        self.must_be_complete = must_be_complete
        self.errors = False
        self.parse_error = False
        self.saw_qpdf = False
        self.saw_objects = False
        self.saw_pdf_version = False
        self.saw_trailer = False
        self.state = State.INITIAL
        self.next_state = State.TOP
        self.state_stack: List[State] = [State.INITIAL]
        self.object_stack: List[Any] = []
        self.reserved: Set[Tuple[int, int]] = set()
        self.cur_object = ""
        self.saw_value = False
        self.saw_stream = False
        self.saw_dict = False
        self.saw_data = False
        self.saw_datafile = False
        self.created_stream = False

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------
    def error(self, offset: int, message: str) -> None:
        self.errors = True
        self.document.warn(PDFWarning(self.source.name, self.cur_object, offset, message))

    def any_errors(self) -> bool:
        return self.errors

    def describe(self, value: JSONValue) -> str:
        return f"{self.source.name} offset {value.start}"

    def _reset_entry(self) -> None:
        self.object_stack.clear()
        self.cur_object = ""
        self.parse_error = False
        self.saw_value = False
        self.saw_stream = False
        self.saw_dict = False
        self.saw_data = False
        self.saw_datafile = False
        self.created_stream = False

    def _reserve_object(self, obj_id: str, generation: str) -> PDFObject:
        obj = self.document.reserve_object_if_not_exists(int(obj_id), int(generation))
        if obj.reserved:
            self.reserved.add((obj.obj_id, obj.generation))
        return obj

    def _replace_object(self, obj: PDFObject, value: Any, description: str) -> None:
        self.reserved.discard((obj.obj_id, obj.generation))
        obj.replace(value, description=description)

    def _top_object(self, where: str) -> Any:
        if not self.object_stack:
            raise PDFJSONLogicError(f"no object on stack in {where}")
        return self.object_stack[-1]

    def _nested_state(self, key: str, value: JSONValue, next_state: State) -> bool:
        """Enter *next_state* for a value that must be a dictionary."""

        if value.is_dictionary:
            self.next_state = next_state
            return True
        self.error(value.start, f'"{key}" must be a dictionary')
        self.next_state = State.IGNORE
        self.parse_error = True
        return False

    # ------------------------------------------------------------------
    # Container events
    # ------------------------------------------------------------------
    def _container_start(self) -> None:
        self.state_stack.append(self.state)
        self.state = self.next_state

    def dictionary_start(self) -> None:
        self._container_start()

    def array_start(self) -> None:
        self._container_start()
        if self.state is State.TOP:
            raise JSONStructureError("qpdf JSON must be a dictionary")

    def top_level_scalar(self) -> None:
        raise JSONStructureError("qpdf JSON must be a dictionary")

    def container_end(self, value: JSONValue) -> None:
        closing = self.state
        self.state = self.state_stack.pop()

        if closing is State.OBJECT and not self.parse_error:
            self._top_object("closing container")
            self.object_stack.pop()
        elif closing is State.STREAM:
            self._check_stream(value)
        elif closing is State.QPDF:
            for obj_id, generation in sorted(self.reserved):
                self.document.replace_object(obj_id, generation, None)
            self.reserved.clear()

        if self.state is State.INITIAL:
            self._check_document()
        elif self.state is State.OBJECTS:
            self._check_entry(value)
            self._reset_entry()

    def _check_document(self) -> None:
        if not self.saw_qpdf:
            self.error(0, '"qpdf-v2" object was not seen')
            return
        if self.must_be_complete and not self.saw_pdf_version:
            self.error(0, '"qpdf-v2.pdfversion" was not seen')
        if not self.saw_objects:
            self.error(0, '"qpdf-v2.objects" was not seen')
        elif self.must_be_complete and not self.saw_trailer:
            self.error(0, '"qpdf-v2.objects.trailer" was not seen')

    def _check_entry(self, value: JSONValue) -> None:
        if self.parse_error:
            logger.debug("Skipping checks for %s after a parse error", self.cur_object or "entry")
        elif self.cur_object == "trailer":
            if not self.saw_value:
                self.error(value.start, '"trailer" is missing "value"')
        elif self.saw_value == self.saw_stream:
            self.error(value.start, 'object must have exactly one of "value" or "stream"')

    def _check_stream(self, value: JSONValue) -> None:
        if self.parse_error:
            return
        if not self.saw_dict:
            self.error(value.start, '"stream" is missing "dict"')
        if self.must_be_complete:
            if self.saw_data == self.saw_datafile:
                self.error(value.start, '"stream" must have exactly one of "data" or "datafile"')
        elif self.saw_data and self.saw_datafile:
            self.error(value.start, '"stream" may have at most one of "data" or "datafile"')
        elif not (self.saw_data or self.saw_datafile) and self.created_stream:
            self.error(
                value.start,
                '"stream" has no "data" or "datafile" and the object was not already a stream',
            )

    # ------------------------------------------------------------------
    # Item events
    # ------------------------------------------------------------------
    def dictionary_item(self, key: str, value: JSONValue) -> bool:
        handler = self._HANDLERS.get(self.state)
        if handler is None:
            raise PDFJSONLogicError(f"unknown state {self.state!r}")
        handler(self, key, value)
        return False

    def array_item(self, value: JSONValue) -> bool:
        if self.state is State.OBJECT and not self.parse_error:
            target = self._top_object("array")
            if not isinstance(target, list):
                raise PDFJSONLogicError("array item outside of an array")
            target.append(self.make_object(value))
        return False

    def _in_ignore(self, key: str, value: JSONValue) -> None:
        pass

    def _in_top(self, key: str, value: JSONValue) -> None:
        if key == "qpdf-v2":
            self.saw_qpdf = True
            self._nested_state(key, value, State.QPDF)
        else:
            # Other top-level keys are left for the caller's own use.
            self.next_state = State.IGNORE

    def _in_qpdf(self, key: str, value: JSONValue) -> None:
        if key == "pdfversion":
            self.saw_pdf_version = True
            self.next_state = State.IGNORE
            version = value.get_string()
            if version is not None and _PDF_VERSION_RE.fullmatch(version):
                self.document.pdf_version = version
            else:
                self.error(value.start, "invalid PDF version (must be x.y)")
        elif key == "objects":
            self.saw_objects = True
            self._nested_state(key, value, State.OBJECTS)
        else:
            # "maxobjectid" and unknown keys
            self.next_state = State.IGNORE

    def _in_objects(self, key: str, value: JSONValue) -> None:
        self._reset_entry()
        if key == "trailer":
            self.saw_trailer = True
            self.cur_object = "trailer"
            self._nested_state(key, value, State.TRAILER)
            return
        match = _OBJ_KEY_RE.fullmatch(key)
        if match:
            self.cur_object = key
            self.object_stack.append(self._reserve_object(match.group(1), match.group(2)))
            self._nested_state(key, value, State.OBJECT_TOP)
        else:
            self.error(value.start, 'object key should be "trailer" or "obj:n n R"')
            self.next_state = State.IGNORE
            self.parse_error = True

    def _in_object_top(self, key: str, value: JSONValue) -> None:
        tos = self._top_object("object_top")
        if key == "value":
            self.saw_value = True
            if self.parse_error:
                self.next_state = State.IGNORE
                return
            # Any type is allowed here, so no _nested_state.
            self.next_state = State.OBJECT
            self._replace_object(tos, self.make_object(value), self.describe(value))
        elif key == "stream":
            self.saw_stream = True
            if self.parse_error:
                self.next_state = State.IGNORE
                return
            if not self._nested_state(key, value, State.STREAM):
                return
            if not tos.is_stream:
                self.document.reserve_stream(tos.obj_id, tos.generation)
                self.reserved.discard((tos.obj_id, tos.generation))
                self.created_stream = True
            tos.description = self.describe(value)
        else:
            self.next_state = State.IGNORE

    def _in_trailer(self, key: str, value: JSONValue) -> None:
        if key == "value":
            self.saw_value = True
            if self.parse_error:
                self.next_state = State.IGNORE
                return
            if self._nested_state("trailer.value", value, State.OBJECT):
                self.document.trailer = self.make_object(value)
                self.document.trailer_description = self.describe(value)
        elif key == "stream":
            self.error(value.start, "the trailer may not be a stream")
            self.next_state = State.IGNORE
            self.parse_error = True
        else:
            self.next_state = State.IGNORE

    def _in_stream(self, key: str, value: JSONValue) -> None:
        tos = self._top_object("stream")
        self.next_state = State.IGNORE
        if self.parse_error:
            return
        if not isinstance(tos, PDFObject) or not tos.is_stream:
            self.error(value.start, "this object is not a stream")
            self.parse_error = True
        elif key == "dict":
            self.saw_dict = True
            if self._nested_state("stream.dict", value, State.OBJECT):
                tos.replace_dict(self.make_object(value), self.describe(value))
        elif key == "data":
            self.saw_data = True
            if value.get_string() is None:
                self.error(value.start, '"stream.data" must be a string')
            else:
                # The value's range includes the quotes.
                provider = EmbeddedDataProvider(self.source, value.start + 1, value.end - 1)
                tos.stream.replace_data(provider)
        elif key == "datafile":
            self.saw_datafile = True
            filename = value.get_string()
            if filename is None:
                self.error(value.start, '"stream.datafile" must be a string containing a file name')
            else:
                tos.stream.replace_data(FileDataProvider(filename))

    def _in_object(self, key: str, value: JSONValue) -> None:
        if self.parse_error:
            return
        target = self._top_object("object")
        if isinstance(target, PDFObject) and target.is_stream:
            target = target.stream.dictionary
        if not isinstance(target, dict):
            raise PDFJSONLogicError("dictionary item outside of a dictionary")
        target[key] = self.make_object(value)

    _HANDLERS = {
        State.IGNORE: _in_ignore,
        State.TOP: _in_top,
        State.QPDF: _in_qpdf,
        State.OBJECTS: _in_objects,
        State.OBJECT_TOP: _in_object_top,
        State.TRAILER: _in_trailer,
        State.STREAM: _in_stream,
        State.OBJECT: _in_object,
    }

    # ------------------------------------------------------------------
    # Values
    # ------------------------------------------------------------------
    def make_object(self, value: JSONValue) -> Any:
        """Convert a JSON value to a PDF object.

        Containers come back empty and are pushed on the object stack; the
        parser fills them in through later item events.
        """

        kind = value.kind
        if kind is JSONKind.DICTIONARY:
            result: Any = {}
            self.object_stack.append(result)
        elif kind is JSONKind.ARRAY:
            result = []
            self.object_stack.append(result)
        elif kind is JSONKind.NULL:
            result = None
        elif kind is JSONKind.BOOLEAN:
            result = bool(value.value)
        elif kind is JSONKind.NUMBER:
            number = _parse_integer(value.value)
            result = number if number is not None else PDFReal(value.value)
        elif kind is JSONKind.STRING:
            result = self._make_string_object(value)
        else:
            raise PDFJSONLogicError(f"make_object didn't handle {kind!r}")
        return result

    def _make_string_object(self, value: JSONValue) -> Any:
        text = value.value
        match = _INDIRECT_OBJ_RE.fullmatch(text)
        if match:
            return self._reserve_object(match.group(1), match.group(2)).reference
        match = _UNICODE_RE.fullmatch(text)
        if match:
            return match.group(1)
        match = _BINARY_RE.fullmatch(text)
        if match:
            return bytes.fromhex(match.group(1))
        if _NAME_RE.fullmatch(text):
            return PDFName(text)
        self.error(value.start, "unrecognized string value")
        return None


def import_json(document: "PDFDocument", source: SourceLike, must_be_complete: bool) -> None:
    """Read ``qpdf-v2`` JSON from *source* into *document*.

    Raises :class:`JSONImportError` if any problem was found.  Objects read
    before the failure stay in the document.
    """

    source = as_input_source(source)
    reactor = PDFJSONReactor(document, source, must_be_complete)
    logger.debug("Importing JSON from %s (complete=%s)", source.name, must_be_complete)
    try:
        parse_json(source.read_all(), reactor)
    except JSONStructureError as exc:
        raise JSONStructureError(f"{source.name}: {exc}") from exc
    except JSONSyntaxError as exc:
        raise JSONImportError(f"{source.name}: {exc}") from exc
    if reactor.any_errors():
        raise JSONImportError(f"{source.name}: errors found in JSON")
    logger.debug("Imported JSON from %s", source.name)


__all__ = ["PDFJSONReactor", "State", "import_json"]
