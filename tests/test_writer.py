from __future__ import annotations

import base64
import io
import json
import zlib
from pathlib import Path

import pytest

from pdfjson import (
    DecodeLevel,
    JSONStreamData,
    JSONWriteOptions,
    PDFDocument,
    PDFName,
    PDFReal,
    PDFReference,
    write_json,
)
from pdfjson.writer import dump, to_json_value

MINIMAL = (
    b'{"qpdf-v2":{"pdfversion":"1.7","objects":{"obj:1 0 R":{"value":"/Catalog"},'
    b'"trailer":{"value":{"/Root":"1 0 R"}}}}}'
)


def exported(document: PDFDocument, **options) -> dict:
    return json.loads(document.to_json_bytes(**options))


def stream_entry(document: PDFDocument, obj_id: int, **options) -> dict:
    return exported(document, **options)["qpdf-v2"]["objects"][f"obj:{obj_id} 0 R"]["stream"]


def test_minimal_document_round_trip():
    document = PDFDocument.create_from_json(MINIMAL)
    output = document.to_json_bytes(wanted_objects={"obj:1 0 R", "trailer"})
    assert output == (
        b"{\n"
        b'  "qpdf-v2": {\n'
        b'    "pdfversion": "1.7",\n'
        b'    "maxobjectid": 1,\n'
        b'    "objects": {\n'
        b'      "obj:1 0 R": {\n'
        b'        "value": "/Catalog"\n'
        b"      },\n"
        b'      "trailer": {\n'
        b'        "value": {\n'
        b'          "/Root": "1 0 R"\n'
        b"        }\n"
        b"      }\n"
        b"    }\n"
        b"  }\n"
        b"}\n"
    )
    assert json.loads(output) == {
        "qpdf-v2": {
            "pdfversion": "1.7",
            "maxobjectid": 1,
            "objects": json.loads(MINIMAL)["qpdf-v2"]["objects"],
        }
    }


def test_full_round_trip(tmp_path: Path):
    source = {
        "qpdf-v2": {
            "pdfversion": "2.0",
            "maxobjectid": 4,
            "objects": {
                "obj:1 0 R": {"value": {"/Type": "/Catalog", "/Pages": "2 0 R"}},
                "obj:2 0 R": {
                    "value": {
                        "/Kids": ["3 0 R"],
                        "/Count": 1,
                        "/Scale": 0.75,
                        "/Title": "u:Grüße",
                        "/ID": "b:00ff10",
                        "/Flag": False,
                        "/Nothing": None,
                        "/Empty": [],
                        "/Nested": {"/A": [{"/B": {}}]},
                    }
                },
                "obj:3 0 R": {
                    "stream": {"dict": {"/Length": 6}, "data": base64.b64encode(b"potato").decode()}
                },
                "obj:4 1 R": {"value": "/Name"},
                "trailer": {"value": {"/Root": "1 0 R", "/Size": 5}},
            },
        }
    }
    path = tmp_path / "in.json"
    path.write_text(json.dumps(source, indent=1), encoding="utf-8")
    document = PDFDocument.create_from_json(path)
    assert exported(document) == source


def test_export_is_deterministic_in_declaration_order():
    document = PDFDocument.empty()
    document.add_object({"/Z": 1, "/A": 2, "/M": 3})
    text = document.to_json_bytes().decode("utf-8")
    assert text.index('"/Z"') < text.index('"/A"') < text.index('"/M"')
    assert text.endswith("}\n")
    assert text == document.to_json_bytes().decode("utf-8")


def test_wanted_objects_filter():
    document = PDFDocument.empty()
    for number in range(3):
        document.add_object(number)
    objects = exported(document, wanted_objects={"obj:2 0 R"})["qpdf-v2"]["objects"]
    assert objects == {"obj:2 0 R": {"value": 1}}
    objects = exported(document, wanted_objects={"trailer"})["qpdf-v2"]["objects"]
    assert objects == {"trailer": {"value": {"/Size": 1}}}
    assert len(exported(document)["qpdf-v2"]["objects"]) == 4


def test_scalar_rendering():
    value = [
        None,
        True,
        -3,
        PDFReal("1.50"),
        PDFReal(".5"),
        PDFReal("-.25"),
        PDFReal("5."),
        PDFReal("007.10"),
        PDFName("/N"),
        "text",
        b"\x01\xab",
        PDFReference(7, 1),
    ]
    rendered = dump(to_json_value(value))
    assert json.loads(rendered) == [
        None,
        True,
        -3,
        1.5,
        0.5,
        -0.25,
        5,
        7.1,
        "/N",
        "u:text",
        "b:01ab",
        "7 1 R",
    ]
    assert "1.50" in rendered
    assert "7.10" in rendered


def test_invalid_real_is_rejected():
    with pytest.raises(ValueError, match="Invalid real number"):
        dump(PDFReal("abc"))


def test_unsupported_value_type():
    with pytest.raises(TypeError):
        to_json_value(object())


def test_only_version_2_is_supported():
    with pytest.raises(ValueError, match="only version 2"):
        write_json(PDFDocument.empty(), io.BytesIO(), JSONWriteOptions(version=1))


def test_flate_stream_decoded_by_default():
    document = PDFDocument.empty()
    compressed = zlib.compress(b"hello world")
    document.make_stream(compressed, {"/Filter": PDFName("/FlateDecode"), "/Length": len(compressed)})
    entry = stream_entry(document, 1)
    assert entry == {"dict": {"/Length": 11}, "data": base64.b64encode(b"hello world").decode()}


def test_decode_level_none_keeps_raw_data():
    document = PDFDocument.empty()
    compressed = zlib.compress(b"hello world")
    document.make_stream(compressed, {"/Filter": PDFName("/FlateDecode")})
    entry = stream_entry(document, 1, decode_level=DecodeLevel.NONE)
    assert entry == {"dict": {"/Filter": "/FlateDecode"}, "data": base64.b64encode(compressed).decode()}


def test_run_length_needs_specialized_level():
    document = PDFDocument.empty()
    encoded = b"\xfea\x02xyz\x80"
    document.make_stream(encoded, {"/Filter": PDFName("/RunLengthDecode")})
    generalized = stream_entry(document, 1)
    assert generalized["dict"] == {"/Filter": "/RunLengthDecode"}
    assert base64.b64decode(generalized["data"]) == encoded
    specialized = stream_entry(document, 1, decode_level=DecodeLevel.SPECIALIZED)
    assert specialized["dict"] == {}
    assert base64.b64decode(specialized["data"]) == b"aaaxyz"


def test_filter_chain_decoding():
    document = PDFDocument.empty()
    data = zlib.compress(b"chained").hex().encode("ascii") + b">"
    document.make_stream(
        data,
        {"/Filter": [PDFName("/ASCIIHexDecode"), PDFName("/FlateDecode")], "/DecodeParms": [None, None]},
    )
    entry = stream_entry(document, 1)
    assert entry["dict"] == {}
    assert base64.b64decode(entry["data"]) == b"chained"


def test_ascii85_decoding():
    document = PDFDocument.empty()
    document.make_stream(base64.a85encode(b"hello") + b"~>", {"/Filter": PDFName("/ASCII85Decode")})
    assert base64.b64decode(stream_entry(document, 1)["data"]) == b"hello"


def test_png_predictor_is_undone():
    rows = bytes([2, 1, 2, 3, 1, 5, 1, 1, 2, 1, 1, 1, 3, 2, 2, 2, 4, 0, 0, 0])
    document = PDFDocument.empty()
    document.make_stream(
        zlib.compress(rows),
        {"/Filter": PDFName("/FlateDecode"), "/DecodeParms": {"/Predictor": 12, "/Columns": 3}},
    )
    entry = stream_entry(document, 1)
    assert entry["dict"] == {}
    assert base64.b64decode(entry["data"]) == bytes([1, 2, 3, 5, 6, 7, 6, 7, 8, 5, 8, 10, 5, 8, 10])


def test_tiff_predictor_is_undone():
    document = PDFDocument.empty()
    document.make_stream(
        zlib.compress(bytes([1, 1, 1, 1, 10, 2, 2, 2])),
        {"/Filter": PDFName("/FlateDecode"), "/DecodeParms": {"/Predictor": 2, "/Columns": 4}},
    )
    assert base64.b64decode(stream_entry(document, 1)["data"]) == bytes([1, 2, 3, 4, 10, 12, 14, 16])


def test_bad_predictor_data_is_exported_raw():
    document = PDFDocument.empty()
    compressed = zlib.compress(b"row data")
    parms = {"/Predictor": 12, "/Columns": 4}
    document.make_stream(compressed, {"/Filter": PDFName("/FlateDecode"), "/DecodeParms": parms})
    document.make_stream(
        compressed,
        {"/Filter": PDFName("/FlateDecode"), "/DecodeParms": {"/Predictor": 2, "/BitsPerComponent": 4}},
    )
    first = stream_entry(document, 1)
    assert first["dict"] == {"/Filter": "/FlateDecode", "/DecodeParms": parms}
    assert base64.b64decode(first["data"]) == compressed
    assert stream_entry(document, 2)["dict"]["/Filter"] == "/FlateDecode"


def test_lossy_filters_are_left_alone():
    document = PDFDocument.empty()
    document.make_stream(b"\xff\xd8jpeg", {"/Filter": PDFName("/DCTDecode")})
    entry = stream_entry(document, 1, decode_level=DecodeLevel.ALL)
    assert entry["dict"] == {"/Filter": "/DCTDecode"}
    assert base64.b64decode(entry["data"]) == b"\xff\xd8jpeg"


def test_corrupt_stream_is_exported_raw():
    document = PDFDocument.empty()
    document.make_stream(b"not zlib", {"/Filter": PDFName("/FlateDecode")})
    entry = stream_entry(document, 1)
    assert entry["dict"] == {"/Filter": "/FlateDecode"}
    assert base64.b64decode(entry["data"]) == b"not zlib"


def test_stream_data_none_does_not_read_payload():
    calls = []

    def provider(sink):
        calls.append(sink)
        sink.write(b"data")

    document = PDFDocument.empty()
    obj = document.make_stream(b"", {"/K": 1})
    obj.stream.replace_data(provider)
    entry = stream_entry(document, 1, stream_data=JSONStreamData.NONE)
    assert entry == {"dict": {"/K": 1}}
    assert calls == []


def test_stream_data_written_to_files(tmp_path: Path):
    document = PDFDocument.empty()
    document.make_stream(b"first payload")
    document.add_object(7)
    document.make_stream(b"third payload")
    prefix = str(tmp_path / "out")
    output = document.to_json_bytes(stream_data=JSONStreamData.FILE, file_prefix=prefix)
    objects = json.loads(output)["qpdf-v2"]["objects"]
    assert objects["obj:1 0 R"]["stream"] == {"dict": {}, "datafile": f"{prefix}-1"}
    assert objects["obj:3 0 R"]["stream"]["datafile"] == f"{prefix}-3"
    assert Path(f"{prefix}-1").read_bytes() == b"first payload"
    assert Path(f"{prefix}-3").read_bytes() == b"third payload"
    assert not Path(f"{prefix}-2").exists()

    reloaded = PDFDocument.create_from_json(output)
    assert reloaded.get_object(3, 0).stream.get_raw_data() == b"third payload"


def test_file_placement_requires_prefix():
    with pytest.raises(ValueError, match="file prefix"):
        PDFDocument.empty().to_json_bytes(stream_data=JSONStreamData.FILE)


def test_empty_document_export():
    document = PDFDocument.empty()
    assert exported(document, wanted_objects={"obj:1 0 R"}) == {
        "qpdf-v2": {"pdfversion": "1.3", "maxobjectid": 0, "objects": {}}
    }
    assert b'"objects": {}' in document.to_json_bytes(wanted_objects={"obj:1 0 R"})
