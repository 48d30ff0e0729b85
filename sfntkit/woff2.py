"""WOFF2 (Web Open Font Format 2.0) files."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Optional

import brotli

from .font import Font
from .sfnt import FontError, write_sfnt
from .woff2_transform import (
    read_uint_base128,
    reconstruct_glyf_loca,
    reconstruct_hmtx,
    write_uint_base128,
)

WOFF2_SIGNATURE = 0x774F4632

#: The 63 table tags that a WOFF2 directory can name by index.
KNOWN_TAGS = (
    "cmap", "head", "hhea", "hmtx",
    "maxp", "name", "OS/2", "post",
    "cvt ", "fpgm", "glyf", "loca",
    "prep", "CFF ", "VORG", "EBDT",
    "EBLC", "gasp", "hdmx", "kern",
    "LTSH", "PCLT", "VDMX", "vhea",
    "vmtx", "BASE", "GDEF", "GPOS",
    "GSUB", "EBSC", "JSTF", "MATH",
    "CBDT", "CBLC", "COLR", "CPAL",
    "SVG ", "sbix", "acnt", "avar",
    "bdat", "bloc", "bsln", "cvar",
    "fdsc", "feat", "fmtx", "fvar",
    "gvar", "hsty", "just", "lcar",
    "mort", "morx", "opbd", "prop",
    "trak", "Zapf", "Silf", "Glat",
    "Gloc", "Feat", "Sill",
)

#: Directory index meaning that an explicit four-byte tag follows.
CUSTOM_TAG_INDEX = 63

#: Transform version that leaves 'glyf' and 'loca' untransformed.
NULL_GLYF_TRANSFORM = 3

_HEADER = struct.Struct(">IIIHHIIHHIIIII")
_SFNT_HEADER = struct.Struct(">IH")
_SFNT_ENTRY = struct.Struct(">4sIII")
_SFNT_HEADER_SIZE = 12
_U32_MAX = 0xFFFFFFFF
_HEAD_FLAGS_OFFSET = 16
_HEAD_LOSSLESS_FLAG = 0x0800


@dataclass
class _Entry:
    tag: str
    transform_version: int
    orig_length: int
    transform_length: int
    data: Optional[bytes] = None

    @property
    def stored_length(self) -> int:
        return self.transform_length or self.orig_length


def _read_directory(data: bytes, num_tables: int) -> tuple[list[_Entry], int, int]:
    entries: list[_Entry] = []
    seen: set[str] = set()
    uncompressed = 0
    pos = _HEADER.size
    for _ in range(num_tables):
        if pos >= len(data):
            raise FontError("WOFF2: table directory out of bounds")
        flags = data[pos]
        pos += 1
        tag_index = flags & 0x3F
        version = (flags & 0xC0) >> 6
        if tag_index == CUSTOM_TAG_INDEX:
            if pos + 4 > len(data):
                raise FontError("WOFF2: custom tag out of bounds")
            tag = data[pos:pos + 4].decode("latin-1")
            pos += 4
        else:
            tag = KNOWN_TAGS[tag_index]

        orig_length, pos = read_uint_base128(data, pos)
        transform_length = 0
        glyf_or_loca = tag in ("glyf", "loca")
        if glyf_or_loca and version == 0:
            transform_length, pos = read_uint_base128(data, pos)
            if tag != "loca" and transform_length == 0:
                raise FontError("WOFF2: glyf transformLength must be non-zero")
            stored = transform_length
        elif version == 0 or (version == NULL_GLYF_TRANSFORM and glyf_or_loca):
            stored = orig_length
        elif tag == "hmtx" and version == 1:
            transform_length, pos = read_uint_base128(data, pos)
            stored = transform_length
        else:
            raise FontError(f"WOFF2: invalid transform for table {tag}")

        if uncompressed + stored > _U32_MAX:
            raise FontError("WOFF2: uncompressed size overflow")
        uncompressed += stored
        if tag in seen:
            raise FontError(f"WOFF2: duplicate table {tag}")
        seen.add(tag)
        entries.append(_Entry(tag, version, orig_length, transform_length))
    return entries, pos, uncompressed


def parse_woff2(data: bytes) -> Font:
    """Decompress a WOFF2 file, undo its table transforms and parse the font."""
    data = bytes(data)
    if len(data) < _HEADER.size:
        raise FontError("WOFF2 file too small")
    header = _HEADER.unpack_from(data)
    signature, flavor, num_tables, total_compressed = header[0], header[1], header[3], header[6]
    if signature != WOFF2_SIGNATURE:
        raise FontError("invalid WOFF2 signature")

    entries, comp_start, uncompressed_size = _read_directory(data, num_tables)
    by_tag = {entry.tag: entry for entry in entries}
    glyf = by_tag.get("glyf")
    loca = by_tag.get("loca")
    if (glyf is None) != (loca is None):
        raise FontError("WOFF2: glyf and loca must both be present or absent")
    if loca is not None and loca.transform_length != 0:
        raise FontError("WOFF2: loca transformLength must be zero")

    comp_end = comp_start + total_compressed
    if comp_end > len(data):
        raise FontError("WOFF2: compressed data out of bounds")
    try:
        decompressed = brotli.decompress(data[comp_start:comp_end])
    except brotli.error as exc:
        raise FontError(f"WOFF2: Brotli decompression failed: {exc}") from exc
    if len(decompressed) != uncompressed_size:
        raise FontError("WOFF2: decompressed size mismatch")

    position = 0
    for entry in entries:
        if entry.tag == "loca" and entry.transform_version == 0:
            continue
        length = entry.stored_length
        if len(decompressed) - position < length:
            raise FontError("WOFF2: table data out of bounds in decompressed stream")
        entry.data = decompressed[position:position + length]
        position += length

    if glyf is not None and loca is not None and glyf.transform_version == 0:
        glyf.data, loca.data = reconstruct_glyf_loca(glyf.data or b"", loca.orig_length)

    hmtx = by_tag.get("hmtx")
    if hmtx is not None and hmtx.transform_version == 1:
        required = {"head": "head", "maxp": "maxp", "hhea": "hhea"}
        if "head" not in by_tag:
            raise FontError("WOFF2: hmtx transform requires head table")
        if glyf is None or loca is None:
            raise FontError("WOFF2: hmtx transform requires glyf/loca tables")
        for tag in ("maxp", "hhea"):
            if tag not in by_tag:
                raise FontError(f"WOFF2: hmtx transform requires {required[tag]} table")
        hmtx.data = reconstruct_hmtx(
            hmtx.data or b"",
            by_tag["head"].data or b"",
            glyf.data or b"",
            loca.data or b"",
            by_tag["maxp"].data or b"",
            by_tag["hhea"].data or b"",
        )

    head = by_tag.get("head")
    if head is not None and head.data is not None and len(head.data) >= 18:
        patched = bytearray(head.data)
        struct.pack_into(">I", patched, 8, 0)
        (flags,) = struct.unpack_from(">H", patched, _HEAD_FLAGS_OFFSET)
        struct.pack_into(">H", patched, _HEAD_FLAGS_OFFSET, flags | _HEAD_LOSSLESS_FLAG)
        head.data = bytes(patched)

    sfnt = write_sfnt(
        flavor, [(entry.tag, entry.data or b"") for entry in entries], pad_final=True
    )
    return Font.parse(sfnt)


def serialize_woff2(font: Font) -> bytes:
    """Encode a font as WOFF2 with every table stored untransformed.

    A 'DSIG' table is dropped, since its signature would no longer match.
    """
    sfnt = font.serialize()
    if len(sfnt) < _SFNT_HEADER_SIZE:
        raise FontError("TTF data too small")
    flavor, num_tables = _SFNT_HEADER.unpack_from(sfnt)
    directory_end = _SFNT_HEADER_SIZE + _SFNT_ENTRY.size * num_tables

    directory = bytearray()
    payload = bytearray()
    written = 0
    for raw_tag, _checksum, offset, length in _SFNT_ENTRY.iter_unpack(
        sfnt[_SFNT_HEADER_SIZE:directory_end]
    ):
        tag = raw_tag.decode("latin-1")
        if tag == "DSIG":
            continue
        tag_index = KNOWN_TAGS.index(tag) if tag in KNOWN_TAGS else CUSTOM_TAG_INDEX
        version = NULL_GLYF_TRANSFORM if tag in ("glyf", "loca") else 0
        directory.append((version << 6) | (tag_index & 0x3F))
        if tag_index == CUSTOM_TAG_INDEX:
            directory += raw_tag
        directory += write_uint_base128(length)
        payload += sfnt[offset:offset + length]
        written += 1

    compressed = brotli.compress(bytes(payload))
    unpadded = _HEADER.size + len(directory) + len(compressed)
    total_length = unpadded + (-unpadded % 4)

    header = _HEADER.pack(
        WOFF2_SIGNATURE,
        flavor,
        total_length,
        written,
        0,
        len(sfnt),
        len(compressed),
        1,
        0,
        0,
        0,
        0,
        0,
        0,
    )
    return header + bytes(directory) + compressed + bytes(total_length - unpadded)