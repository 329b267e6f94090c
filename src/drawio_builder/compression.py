"""
draw.io diagram compression.

Compressed ``<diagram>`` payloads are the percent-encoded model XML, run
through raw DEFLATE (no zlib header) and base64 encoded.  This is the same
pipeline the draw.io editor uses, so payloads produced here open there and
vice versa.
"""

from __future__ import annotations

import base64
import binascii
import zlib
from urllib.parse import quote, unquote


# Characters encodeURIComponent leaves untouched besides alphanumerics
_URI_COMPONENT_SAFE = "-_.!~*'()"


class DecodeError(ValueError):
    """Raised when a compressed payload cannot be decoded."""


def compress_xml(xml: str) -> str:
    encoded = quote(xml, safe=_URI_COMPONENT_SAFE)
    compressor = zlib.compressobj(zlib.Z_DEFAULT_COMPRESSION, zlib.DEFLATED, -15)
    raw = compressor.compress(encoded.encode("utf-8")) + compressor.flush()
    return base64.b64encode(raw).decode("ascii")


def decompress_xml(data: str) -> str:
    """Reverse :func:`compress_xml`.

    Raises:
        DecodeError: the payload is not valid base64, not a raw DEFLATE
            stream, or does not inflate to UTF-8 text.
    """
    try:
        raw = base64.b64decode(data.strip(), validate=True)
        inflated = zlib.decompress(raw, -15)
        text = inflated.decode("utf-8")
    except (binascii.Error, zlib.error, UnicodeDecodeError) as exc:
        raise DecodeError(f"Invalid compressed diagram data: {exc}") from exc
    return unquote(text)
