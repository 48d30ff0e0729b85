"""WOFF (Web Open Font Format 1.0) files."""

from __future__ import annotations

import struct
import zlib

from .font import Font
from .sfnt import FontError, write_sfnt

WOFF_SIGNATURE = 0x774F4646

_HEADER = struct.Struct(">IIIHHIHHIIIII")
_WOFF_ENTRY = struct.Struct(">4sIIII")
_SFNT_HEADER = struct.Struct(">IH")
_SFNT_ENTRY = struct.Struct(">4sIII")
_SFNT_HEADER_SIZE = 12


def parse_woff(data: bytes) -> Font:
    """Decompress a WOFF file and parse the font inside it."""
    data = bytes(data)
    if len(data) < _HEADER.size:
        raise FontError("WOFF file too small")
    header = _HEADER.unpack_from(data)
    signature, flavor, _length, num_tables = header[:4]
    if signature != WOFF_SIGNATURE:
        raise FontError("invalid WOFF signature")

    directory_end = _HEADER.size + _WOFF_ENTRY.size * num_tables
    if directory_end > len(data):
        raise FontError("WOFF table directory out of bounds")

    entries = []
    for raw_tag, offset, comp_length, orig_length, _checksum in _WOFF_ENTRY.iter_unpack(
        data[_HEADER.size:directory_end]
    ):
        if offset + comp_length > len(data):
            raise FontError("WOFF table data out of bounds")
        packed = data[offset:offset + comp_length]
        if comp_length == orig_length:
            table = packed
        else:
            try:
                table = zlib.decompress(packed)
            except zlib.error as exc:
                raise FontError(f"WOFF decompression failed: {exc}") from exc
        if len(table) != orig_length:
            raise FontError("WOFF decompressed size mismatch")
        entries.append((raw_tag.decode("latin-1"), table))

    return Font.parse(write_sfnt(flavor, entries, pad_final=True))


def serialize_woff(font: Font) -> bytes:
    """Encode a font as WOFF, compressing each table where that saves space."""
    sfnt = font.serialize()
    if len(sfnt) < _SFNT_HEADER_SIZE:
        raise FontError("TTF data too small")
    flavor, num_tables = _SFNT_HEADER.unpack_from(sfnt)
    directory_end = _SFNT_HEADER_SIZE + _SFNT_ENTRY.size * num_tables

    tables = []
    for raw_tag, checksum, offset, length in _SFNT_ENTRY.iter_unpack(
        sfnt[_SFNT_HEADER_SIZE:directory_end]
    ):
        table = sfnt[offset:offset + length]
        packed = zlib.compress(table)
        if len(packed) >= len(table):
            packed = table
        tables.append((raw_tag, checksum, packed, length))

    position = _HEADER.size + _WOFF_ENTRY.size * num_tables
    directory = []
    for raw_tag, checksum, packed, length in tables:
        directory.append(_WOFF_ENTRY.pack(raw_tag, position, len(packed), length, checksum))
        position += len(packed)

    header = _HEADER.pack(
        WOFF_SIGNATURE, flavor, position, num_tables, 0, len(sfnt), 0, 0, 0, 0, 0, 0, 0
    )
    return b"".join([header, *directory, *(packed for _, _, packed, _ in tables)])