"""In-memory PDF object graph and its JSON entry points."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Dict, List, Optional, Tuple

from .errors import PDFWarning
from .input_source import SourceLike
from .primitives import PDFObject, PDFReference, PDFStream

logger = logging.getLogger(__name__)

ObjGen = Tuple[int, int]


@dataclass
class PDFDocument:
    """A graph of indirect objects plus a trailer dictionary.

    Objects are addressed by ``(obj_id, generation)``.  Handles returned by
    the lookup and reservation methods stay valid when an object is
    replaced, so references taken before an object is defined keep
    pointing at the right thing.
    """

    objects: Dict[ObjGen, PDFObject] = field(default_factory=dict)
    trailer: dict = field(default_factory=dict)
    pdf_version: str = "1.3"
    warnings: List[PDFWarning] = field(default_factory=list)
    trailer_description: str = ""

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------
    @classmethod
    def empty(cls) -> "PDFDocument":
        return cls(trailer={"/Size": 1}, pdf_version="1.3")

    @classmethod
    def create_from_json(cls, source: SourceLike) -> "PDFDocument":
        """Build a new document from a complete ``qpdf-v2`` JSON file."""

        from .reactor import import_json

        document = cls.empty()
        import_json(document, source, must_be_complete=True)
        return document

    def update_from_json(self, source: SourceLike) -> None:
        """Apply a partial ``qpdf-v2`` JSON file to this document."""

        from .reactor import import_json

        import_json(self, source, must_be_complete=False)

    # ------------------------------------------------------------------
    # Object graph
    # ------------------------------------------------------------------
    def get_object(self, obj_id: int, generation: int = 0) -> Optional[PDFObject]:
        return self.objects.get((obj_id, generation))

    def resolve(self, value: Any) -> Any:
        """Follow *value* if it is a reference; reserved or missing targets resolve to ``None``."""

        if isinstance(value, PDFReference):
            obj = self.get_object(value.obj_id, value.generation)
            if obj is None or obj.reserved:
                return None
            return obj.value
        return value

    def reserve_object_if_not_exists(self, obj_id: int, generation: int) -> PDFObject:
        obj = self.objects.get((obj_id, generation))
        if obj is None:
            obj = PDFObject(obj_id, generation, reserved=True)
            self.objects[(obj_id, generation)] = obj
        return obj

    def reserve_stream(self, obj_id: int, generation: int) -> PDFObject:
        """Turn the object into a stream with an empty dictionary and no data."""

        obj = self.reserve_object_if_not_exists(obj_id, generation)
        obj.replace(None, stream=PDFStream({}))
        return obj

    def replace_object(self, obj_id: int, generation: int, value: Any, description: str = "") -> PDFObject:
        if isinstance(value, PDFObject):
            raise TypeError("replacement must be a direct object")
        obj = self.reserve_object_if_not_exists(obj_id, generation)
        obj.replace(value, description=description)
        return obj

    def add_object(self, value: Any, stream: PDFStream | None = None) -> PDFObject:
        """Store *value* (or *stream*) as a new indirect object."""

        obj_id = self.get_object_count() + 1
        obj = PDFObject(obj_id, 0)
        obj.replace(value, stream=stream)
        self.objects[(obj_id, 0)] = obj
        return obj

    def make_stream(self, data: bytes, dictionary: Optional[dict] = None) -> PDFObject:
        stream = PDFStream(dict(dictionary or {}))
        stream.replace_data(data)
        return self.add_object(None, stream=stream)

    def get_all_objects(self) -> List[PDFObject]:
        return [self.objects[key] for key in sorted(self.objects)]

    def get_object_count(self) -> int:
        """Return the highest object number in use."""

        return max((obj_id for obj_id, _ in self.objects), default=0)

    def warn(self, warning: PDFWarning) -> None:
        self.warnings.append(warning)
        logger.warning("%s", warning)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def write_json(self, sink: BinaryIO, **options) -> None:
        """Write the document as ``qpdf-v2`` JSON; see :class:`JSONWriteOptions`."""

        from .writer import JSONWriteOptions, write_json

        write_json(self, sink, JSONWriteOptions(**options))

    def to_json_bytes(self, **options) -> bytes:
        buffer = io.BytesIO()
        self.write_json(buffer, **options)
        return buffer.getvalue()


__all__ = ["ObjGen", "PDFDocument"]
