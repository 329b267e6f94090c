"""Tests for draw.io page compression."""

import base64
import zlib
from urllib.parse import quote

import pytest

from drawio_builder.compression import DecodeError, compress_xml, decompress_xml


def test_round_trip() -> None:
    xml = '<mxGraphModel><root><mxCell id="0"/></root></mxGraphModel>'
    assert decompress_xml(compress_xml(xml)) == xml


def test_non_ascii_text() -> None:
    xml = '<mxCell value="Café → 東京"/>'
    assert decompress_xml(compress_xml(xml)) == xml


def test_output_is_base64() -> None:
    data = compress_xml("<a/>")
    base64.b64decode(data, validate=True)


def test_decodes_drawio_payload() -> None:
    # as produced by the draw.io editor: encodeURIComponent, raw deflate, base64
    xml = "<mxGraphModel a='1'>x y</mxGraphModel>"
    compressor = zlib.compressobj(9, zlib.DEFLATED, -15)
    raw = compressor.compress(quote(xml, safe="-_.!~*'()").encode()) + compressor.flush()
    assert decompress_xml(base64.b64encode(raw).decode()) == xml


def test_surrounding_whitespace_is_ignored() -> None:
    data = compress_xml("<a/>")
    assert decompress_xml(f"\n  {data}\n") == "<a/>"


class TestDecodeErrors:
    def test_not_base64(self) -> None:
        with pytest.raises(DecodeError):
            decompress_xml("not base64 at all!")

    def test_not_deflate(self) -> None:
        with pytest.raises(DecodeError):
            decompress_xml(base64.b64encode(b"plain bytes").decode())

    def test_is_a_value_error(self) -> None:
        assert issubclass(DecodeError, ValueError)
