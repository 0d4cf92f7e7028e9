"""Core PDF primitive data structures used by the pdfjson object graph.

Direct objects are plain Python values wherever a natural mapping exists
(``None``, ``bool``, ``int``, ``str`` for text strings, ``bytes`` for binary
strings, ``list`` and ``dict``).  The classes below cover the remaining PDF
object kinds and the indirect object handles stored in a document.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Callable, Optional

logger = logging.getLogger(__name__)

DataProvider = Callable[[BinaryIO], None]


@dataclass(frozen=True)
class PDFName:
    """Represents a PDF name object (e.g. ``/Page``).

    Unlike most PDF libraries the value keeps its leading slash, so
    ``PDFName("/Type").value`` is exactly the text written to JSON.
    """

    value: str

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.value

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"PDFName({self.value!r})"


@dataclass(frozen=True)
class PDFReal:
    """Real number stored as its literal text so no precision is lost."""

    text: str

    def __float__(self) -> float:
        return float(self.text)

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"PDFReal({self.text!r})"


@dataclass(frozen=True)
class PDFReference:
    """Object reference (``12 0 R``)."""

    obj_id: int
    generation: int = 0

    def __str__(self) -> str:
        return f"{self.obj_id} {self.generation} R"

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"PDFReference({self.obj_id}, {self.generation})"


@dataclass
class PDFStream:
    """Holds a PDF stream dictionary and the associated bytes.

    The payload is either available as ``data`` or, until first use, as a
    ``provider`` that writes the bytes to a sink.  A provider that succeeds
    is replaced by its output and is not called again.
    """

    dictionary: dict
    data: Optional[bytes] = None
    provider: Optional[DataProvider] = field(default=None, repr=False)
    description: str = ""

    def replace_data(self, data: bytes | DataProvider) -> None:
        if isinstance(data, (bytes, bytearray)):
            self.data = bytes(data)
            self.provider = None
        else:
            self.data = None
            self.provider = data

    def has_data(self) -> bool:
        return self.data is not None or self.provider is not None

    def get_raw_data(self) -> bytes:
        if self.provider is not None:
            sink = io.BytesIO()
            logger.debug("Materializing stream data %s", self.description or "(no description)")
            # Kept until it succeeds.
            self.provider(sink)
            self.data = sink.getvalue()
            self.provider = None
        return self.data or b""

    def write_raw_data(self, sink: BinaryIO) -> int:
        data = self.get_raw_data()
        sink.write(data)
        return len(data)


@dataclass
class PDFObject:
    """Indirect object handle.

    Attributes
    ----------
    obj_id:
        Integer identifier of the object.
    generation:
        Generation number.
    value:
        Python representation of the object.  For streams this is the
        stream dictionary.
    stream:
        Optional :class:`PDFStream` when the object is a stream.
    reserved:
        ``True`` while the handle is a placeholder for an object that has
        been referenced but not yet defined.
    description:
        Human readable provenance used in diagnostics.
    """

    obj_id: int
    generation: int
    value: Any = None
    stream: PDFStream | None = None
    reserved: bool = False
    description: str = ""

    @property
    def is_stream(self) -> bool:
        return self.stream is not None

    @property
    def reference(self) -> PDFReference:
        return PDFReference(self.obj_id, self.generation)

    @property
    def key(self) -> str:
        return f"obj:{self.obj_id} {self.generation} R"

    def replace(self, value: Any, stream: PDFStream | None = None, description: str = "") -> None:
        """Replace the object's content in place, keeping its identity."""

        self.value = stream.dictionary if stream is not None else value
        self.stream = stream
        self.reserved = False
        if description:
            self.description = description

    def replace_dict(self, dictionary: dict, description: str = "") -> None:
        if self.stream is None:
            raise TypeError(f"{self.key} is not a stream")
        self.stream.dictionary = dictionary
        self.value = dictionary
        if description:
            self.stream.description = description
