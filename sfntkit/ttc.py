"""TrueType Collection files."""

from __future__ import annotations

import struct
from typing import Iterable

from .font import Font
from .sfnt import FontError

TTC_TAG = b"ttcf"
TTC_VERSIONS = (0x00010000, 0x00020000)

_U32 = struct.Struct(">I")
_HEADER_SIZE = 12
_DIRECTORY_START = 12
_DIRECTORY_ENTRY_SIZE = 16
_ENTRY_OFFSET_FIELD = 8


def parse_ttc(data: bytes) -> list[Font]:
    """Parse every font of a TrueType Collection."""
    data = bytes(data)
    if len(data) < _HEADER_SIZE:
        raise FontError("TTC file too small")
    if data[:4] != TTC_TAG:
        raise FontError("invalid TTC tag")
    version, num_fonts = struct.unpack_from(">II", data, 4)
    if version not in TTC_VERSIONS:
        raise FontError(f"unsupported TTC version: 0x{version:08X}")
    if num_fonts == 0:
        raise FontError("TTC contains no fonts")
    if _HEADER_SIZE + num_fonts * 4 > len(data):
        raise FontError("TTC offset table out of bounds")

    fonts = []
    for index, offset in enumerate(struct.unpack_from(f">{num_fonts}I", data, _HEADER_SIZE)):
        if offset >= len(data):
            raise FontError(f"TTC font {index} offset out of bounds")
        try:
            fonts.append(Font.parse(data, offset))
        except FontError as exc:
            raise FontError(f"TTC font {index}: {exc}") from exc
    return fonts


def serialize_ttc(fonts: Iterable[Font]) -> bytes:
    """Encode fonts as a version 1.0 TrueType Collection.

    Every font but the last is padded to a 4-byte boundary, and the table
    offsets of each font are rewritten relative to the collection.
    """
    fonts = list(fonts)
    if not fonts:
        raise FontError("no fonts to serialize")

    blobs = []
    for index, font in enumerate(fonts):
        try:
            blobs.append(font.serialize())
        except FontError as exc:
            raise FontError(f"font {index}: {exc}") from exc

    count = len(blobs)
    position = _HEADER_SIZE + 4 * count
    starts = []
    for index, blob in enumerate(blobs):
        starts.append(position)
        position += len(blob)
        if index < count - 1:
            position = (position + 3) & ~3

    out = bytearray(position)
    struct.pack_into(f">4sII{count}I", out, 0, TTC_TAG, 0x00010000, count, *starts)
    for start, blob in zip(starts, blobs):
        out[start:start + len(blob)] = blob
        (num_tables,) = struct.unpack_from(">H", blob, 4)
        for entry in range(num_tables):
            field_pos = (
                start
                + _DIRECTORY_START
                + entry * _DIRECTORY_ENTRY_SIZE
                + _ENTRY_OFFSET_FIELD
            )
            (relative,) = _U32.unpack_from(out, field_pos)
            _U32.pack_into(out, field_pos, (relative + start) & 0xFFFFFFFF)
    return bytes(out)