"""Deferred stream data providers.

Stream payloads are not read while JSON is being imported.  Instead the
stream is given one of the providers below, which produces the bytes when
somebody actually asks for them.
"""

from __future__ import annotations

import base64
import binascii
import logging
import os
from pathlib import Path
from typing import BinaryIO

from .input_source import InputSource

logger = logging.getLogger(__name__)

CHUNK_SIZE = 8192

_BASE64_WHITESPACE = b" \t\r\n\f\v"


class Base64Decoder:
    """Incremental base64 decoder writing decoded bytes to *sink*.

    Input may be split at arbitrary points and may contain whitespace.  A
    trailing partial quantum is padded when :meth:`finish` is called.
    """

    def __init__(self, sink: BinaryIO):
        self._sink = sink
        self._pending = b""

    def write(self, chunk: bytes) -> None:
        data = self._pending + chunk.translate(None, _BASE64_WHITESPACE)
        usable = len(data) - len(data) % 4
        if usable:
            self._sink.write(self._decode(data[:usable]))
        self._pending = data[usable:]

    def finish(self) -> None:
        if self._pending:
            padded = self._pending + b"=" * (-len(self._pending) % 4)
            self._pending = b""
            self._sink.write(self._decode(padded))

    @staticmethod
    def _decode(data: bytes) -> bytes:
        try:
            return base64.b64decode(data, validate=True)
        except binascii.Error as exc:
            raise ValueError(f"invalid base64 data: {exc}") from exc


class EmbeddedDataProvider:
    """Decodes a base64 string found between *start* and *end* in *source*."""

    def __init__(self, source: InputSource, start: int, end: int):
        if end < start:
            raise ValueError("embedded data range has negative length")
        self.source = source
        self.start = start
        self.end = end

    def __call__(self, sink: BinaryIO) -> None:
        logger.debug("Decoding embedded data from %s bytes %d-%d", self.source.name, self.start, self.end)
        decoder = Base64Decoder(sink)
        remaining = self.end - self.start
        with self.source.open() as handle:
            handle.seek(self.start)
            while remaining > 0:
                chunk = handle.read(min(remaining, CHUNK_SIZE))
                if not chunk:
                    break
                decoder.write(chunk)
                remaining -= len(chunk)
        decoder.finish()

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"EmbeddedDataProvider({self.source.name!r}, {self.start}, {self.end})"


class FileDataProvider:
    """Copies the raw contents of *path*."""

    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)

    def __call__(self, sink: BinaryIO) -> None:
        logger.debug("Reading stream data from %s", self.path)
        with open(self.path, "rb") as handle:
            while True:
                chunk = handle.read(CHUNK_SIZE)
                if not chunk:
                    break
                sink.write(chunk)

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"FileDataProvider({str(self.path)!r})"


__all__ = ["Base64Decoder", "CHUNK_SIZE", "EmbeddedDataProvider", "FileDataProvider"]
