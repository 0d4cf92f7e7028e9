"""Re-readable byte sources for JSON input.

The reader keeps a source around after parsing so that embedded stream data
can be decoded later, straight from the original bytes.
"""

from __future__ import annotations

import io
import os
from pathlib import Path
from typing import BinaryIO, Union


class InputSource:
    """Named source of bytes that can be opened any number of times."""

    name: str = ""

    def open(self) -> BinaryIO:
        raise NotImplementedError

    def read_all(self) -> bytes:
        with self.open() as handle:
            return handle.read()


class FileInputSource(InputSource):
    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)
        self.name = str(path)

    def open(self) -> BinaryIO:
        return open(self.path, "rb")

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"FileInputSource({self.name!r})"


class BufferInputSource(InputSource):
    def __init__(self, name: str, data: bytes):
        self.name = name
        self.data = bytes(data)

    def open(self) -> BinaryIO:
        return io.BytesIO(self.data)

    def read_all(self) -> bytes:
        return self.data

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"BufferInputSource({self.name!r}, {len(self.data)} bytes)"


SourceLike = Union[InputSource, bytes, str, os.PathLike]


def as_input_source(source: SourceLike, name: str = "json input") -> InputSource:
    if isinstance(source, InputSource):
        return source
    if isinstance(source, (bytes, bytearray)):
        return BufferInputSource(name, bytes(source))
    return FileInputSource(source)


__all__ = ["BufferInputSource", "FileInputSource", "InputSource", "SourceLike", "as_input_source"]
