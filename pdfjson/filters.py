"""Stream filter decoding used when exporting stream data."""

from __future__ import annotations

import base64
import binascii
import enum
import logging
import zlib
from typing import Callable, Dict, List, Optional, Tuple

from .primitives import PDFName

logger = logging.getLogger(__name__)


class DecodeLevel(enum.IntEnum):
    """How much of a stream's encoding to undo before exporting it.

    ``GENERALIZED`` covers Flate (with or without a PNG or TIFF predictor),
    ASCIIHex and ASCII85; ``SPECIALIZED`` adds RunLength.  ``ALL`` would also
    take in the lossy image filters, which are never decoded here, so it
    currently exports the same data as ``SPECIALIZED``.
    """

    NONE = 0
    GENERALIZED = 1
    SPECIALIZED = 2
    ALL = 3


def _flate_decode(data: bytes) -> bytes:
    return zlib.decompress(data)


def _ascii_hex_decode(data: bytes) -> bytes:
    text = bytes(byte for byte in data if byte not in b" \t\r\n\f\x00")
    end = text.find(b">")
    if end != -1:
        text = text[:end]
    if len(text) % 2:
        text += b"0"
    return bytes.fromhex(text.decode("ascii"))


def _ascii85_decode(data: bytes) -> bytes:
    text = data.strip()
    if text.startswith(b"<~"):
        text = text[2:]
    if not text.endswith(b"~>"):
        text += b"~>"
    return base64.a85decode(b"<~" + text, adobe=True, ignorechars=b" \t\n\r\f\v\x00")


def _run_length_decode(data: bytes) -> bytes:
    output = bytearray()
    index = 0
    while index < len(data):
        length = data[index]
        index += 1
        if length == 128:
            break
        if length < 128:
            output.extend(data[index:index + length + 1])
            index += length + 1
        else:
            output.extend(data[index:index + 1] * (257 - length))
            index += 1
    return bytes(output)


_FILTERS: Dict[str, Tuple[DecodeLevel, Callable[[bytes], bytes]]] = {
    "/FlateDecode": (DecodeLevel.GENERALIZED, _flate_decode),
    "/ASCIIHexDecode": (DecodeLevel.GENERALIZED, _ascii_hex_decode),
    "/ASCII85Decode": (DecodeLevel.GENERALIZED, _ascii85_decode),
    "/RunLengthDecode": (DecodeLevel.SPECIALIZED, _run_length_decode),
}


def _as_list(value) -> List:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _paeth(left: int, up: int, up_left: int) -> int:
    estimate = left + up - up_left
    distance_left = abs(estimate - left)
    distance_up = abs(estimate - up)
    distance_up_left = abs(estimate - up_left)
    if distance_left <= distance_up and distance_left <= distance_up_left:
        return left
    if distance_up <= distance_up_left:
        return up
    return up_left


def _png_unpredict(data: bytes, row_length: int, pixel_bytes: int) -> bytes:
    stride = row_length + 1
    if len(data) % stride:
        raise ValueError("PNG predictor data is not a whole number of rows")
    output = bytearray()
    previous = bytearray(row_length)
    for offset in range(0, len(data), stride):
        kind = data[offset]
        row = bytearray(data[offset + 1:offset + stride])
        for index in range(row_length):
            left = row[index - pixel_bytes] if index >= pixel_bytes else 0
            up = previous[index]
            if kind == 0:
                continue
            elif kind == 1:
                row[index] = (row[index] + left) & 0xFF
            elif kind == 2:
                row[index] = (row[index] + up) & 0xFF
            elif kind == 3:
                row[index] = (row[index] + (left + up) // 2) & 0xFF
            elif kind == 4:
                up_left = previous[index - pixel_bytes] if index >= pixel_bytes else 0
                row[index] = (row[index] + _paeth(left, up, up_left)) & 0xFF
            else:
                raise ValueError(f"unknown PNG predictor row type {kind}")
        output.extend(row)
        previous = row
    return bytes(output)


def _tiff_unpredict(data: bytes, row_length: int, colors: int) -> bytes:
    output = bytearray(data)
    for start in range(0, len(output), row_length):
        for index in range(start + colors, min(start + row_length, len(output))):
            output[index] = (output[index] + output[index - colors]) & 0xFF
    return bytes(output)


def _predictor_decoder(parms) -> Optional[Callable[[bytes], bytes]]:
    """Return a function undoing the predictor in *parms*.

    Returns ``None`` when no predictor applies and raises ``ValueError`` for
    parameters that can't be handled.
    """

    if not isinstance(parms, dict):
        return None
    predictor = parms.get("/Predictor", 1)
    colors = parms.get("/Colors", 1)
    bits = parms.get("/BitsPerComponent", 8)
    columns = parms.get("/Columns", 1)
    for number in (predictor, colors, bits, columns):
        if not isinstance(number, int) or isinstance(number, bool) or number < 1:
            raise ValueError("invalid predictor parameters")
    if predictor == 1:
        return None
    row_length = (colors * bits * columns + 7) // 8
    if predictor >= 10:
        pixel_bytes = max(1, colors * bits // 8)
        return lambda data: _png_unpredict(data, row_length, pixel_bytes)
    if predictor == 2 and bits == 8:
        return lambda data: _tiff_unpredict(data, row_length, colors)
    raise ValueError(f"unsupported predictor {predictor} with {bits} bits per component")


def _filter_chain(dictionary: dict, decode_level: DecodeLevel) -> Optional[List[Callable[[bytes], bytes]]]:
    """Return the decoders for the stream, or ``None`` if it can't be decoded at this level."""

    filters = _as_list(dictionary.get("/Filter"))
    parms = _as_list(dictionary.get("/DecodeParms"))
    chain = []
    for position, name in enumerate(filters):
        if not isinstance(name, PDFName) or name.value not in _FILTERS:
            return None
        level, decoder = _FILTERS[name.value]
        if level > decode_level:
            return None
        chain.append(decoder)
        if name.value == "/FlateDecode" and position < len(parms):
            try:
                predictor = _predictor_decoder(parms[position])
            except ValueError as exc:
                logger.debug("Leaving Flate stream encoded: %s", exc)
                return None
            if predictor is not None:
                chain.append(predictor)
    return chain


def decode_stream_data(dictionary: dict, raw: bytes, decode_level: DecodeLevel) -> Tuple[bytes, dict, bool]:
    """Undo the stream's filters as far as *decode_level* allows.

    Returns the data, the dictionary to export with it and whether the data
    was decoded.  Filters are removed only if every filter could be applied;
    otherwise the raw data and the unchanged dictionary are returned.
    """

    if decode_level is DecodeLevel.NONE or "/Filter" not in dictionary:
        return raw, dictionary, False
    chain = _filter_chain(dictionary, decode_level)
    if chain is None:
        return raw, dictionary, False
    data = raw
    try:
        for decoder in chain:
            data = decoder(data)
    except (zlib.error, ValueError, binascii.Error) as exc:
        logger.warning("Unable to decode stream data, exporting it unfiltered: %s", exc)
        return raw, dictionary, False
    decoded = {key: value for key, value in dictionary.items() if key not in ("/Filter", "/DecodeParms")}
    if "/Length" in decoded:
        decoded["/Length"] = len(data)
    return data, decoded, True


__all__ = ["DecodeLevel", "decode_stream_data"]
