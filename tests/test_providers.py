from __future__ import annotations

import base64
import io
import os
from pathlib import Path

import pytest

from pdfjson import BufferInputSource, FileInputSource, PDFStream
from pdfjson.providers import CHUNK_SIZE, Base64Decoder, EmbeddedDataProvider, FileDataProvider


def decode_pieces(*pieces: bytes) -> bytes:
    sink = io.BytesIO()
    decoder = Base64Decoder(sink)
    for piece in pieces:
        decoder.write(piece)
    decoder.finish()
    return sink.getvalue()


def test_base64_decoder_handles_split_input():
    assert decode_pieces(b"cG9", b"0YX", b"Rv") == b"potato"
    assert decode_pieces(b"cG90\n", b"  YX\r\nRv") == b"potato"


def test_base64_decoder_pads_final_quantum():
    assert decode_pieces(b"YQ") == b"a"
    assert decode_pieces(b"YWI") == b"ab"
    assert decode_pieces(b"") == b""


def test_base64_decoder_rejects_garbage():
    with pytest.raises(ValueError, match="invalid base64"):
        decode_pieces(b"cG9*YXRv")


def test_embedded_provider_reads_range():
    source = BufferInputSource("memory", b'xx"cG90YXRv"yy')
    sink = io.BytesIO()
    EmbeddedDataProvider(source, 3, 11)(sink)
    assert sink.getvalue() == b"potato"


def test_embedded_provider_reads_large_payload_in_chunks(tmp_path: Path):
    payload = os.urandom(CHUNK_SIZE * 3 + 17)
    encoded = base64.b64encode(payload)
    path = tmp_path / "data.json"
    path.write_bytes(b'{"data": "' + encoded + b'"}')
    start = len(b'{"data": "')
    sink = io.BytesIO()
    EmbeddedDataProvider(FileInputSource(path), start, start + len(encoded))(sink)
    assert sink.getvalue() == payload


def test_embedded_provider_rejects_negative_range():
    with pytest.raises(ValueError):
        EmbeddedDataProvider(BufferInputSource("memory", b""), 5, 4)


def test_file_provider_copies_file(tmp_path: Path):
    path = tmp_path / "raw.bin"
    path.write_bytes(b"\x00\x01" * CHUNK_SIZE)
    sink = io.BytesIO()
    FileDataProvider(path)(sink)
    assert sink.getvalue() == b"\x00\x01" * CHUNK_SIZE


def test_stream_provider_runs_once():
    calls = []

    def provider(sink):
        calls.append(sink)
        sink.write(b"payload")

    stream = PDFStream({})
    stream.replace_data(provider)
    assert stream.has_data()
    assert stream.get_raw_data() == b"payload"
    out = io.BytesIO()
    assert stream.write_raw_data(out) == 7
    assert out.getvalue() == b"payload"
    assert len(calls) == 1


def test_failed_provider_is_kept_for_retry():
    calls = []

    def provider(sink):
        calls.append(sink)
        if len(calls) == 1:
            raise OSError("source unavailable")
        sink.write(b"payload")

    stream = PDFStream({})
    stream.replace_data(provider)
    with pytest.raises(OSError):
        stream.get_raw_data()
    assert stream.has_data()
    assert stream.get_raw_data() == b"payload"
    assert stream.get_raw_data() == b"payload"
    assert len(calls) == 2


def test_stream_without_data_is_empty():
    stream = PDFStream({})
    assert not stream.has_data()
    assert stream.get_raw_data() == b""
