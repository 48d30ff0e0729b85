"""The 'post' (PostScript) table."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field

from .sfnt import FontError

_HEADER = struct.Struct(">IihhIIIII")
_U16 = struct.Struct(">H")

VERSION_2 = 0x00020000

#: Glyph name indices from this value on refer to custom Pascal strings.
FIRST_CUSTOM_NAME_INDEX = 258


@dataclass
class PostTable:
    """PostScript information, with glyph names for version 2.0."""

    version: int = 0x00030000
    italic_angle: int = 0
    underline_position: int = 0
    underline_thickness: int = 0
    is_fixed_pitch: int = 0
    min_mem_type42: int = 0
    max_mem_type42: int = 0
    min_mem_type1: int = 0
    max_mem_type1: int = 0
    glyph_name_index: list[int] = field(default_factory=list)
    string_data: bytes = b""

    @property
    def num_glyphs(self) -> int:
        return len(self.glyph_name_index)

    @classmethod
    def parse(cls, data: bytes) -> "PostTable":
        """Parse the table; glyph names are read only for version 2.0."""
        data = bytes(data)
        if len(data) < _HEADER.size:
            raise FontError("post table too small")
        post = cls(*_HEADER.unpack_from(data))
        if post.version != VERSION_2:
            return post
        if len(data) < _HEADER.size + _U16.size:
            raise FontError("post format 2.0 table too small")
        (num_glyphs,) = _U16.unpack_from(data, _HEADER.size)
        start = _HEADER.size + _U16.size
        end = start + 2 * num_glyphs
        if end > len(data):
            raise FontError("post format 2.0 glyph name index truncated")
        post.glyph_name_index = list(struct.unpack_from(f">{num_glyphs}H", data, start))
        if post.glyph_name_index and max(post.glyph_name_index) >= FIRST_CUSTOM_NAME_INDEX:
            post.string_data = data[end:]
        return post

    def to_bytes(self) -> bytes:
        """Encode the table."""
        try:
            header = _HEADER.pack(
                self.version,
                self.italic_angle,
                self.underline_position,
                self.underline_thickness,
                self.is_fixed_pitch,
                self.min_mem_type42,
                self.max_mem_type42,
                self.min_mem_type1,
                self.max_mem_type1,
            )
            if self.version != VERSION_2:
                return header
            count = self.num_glyphs
            return (
                header
                + _U16.pack(count)
                + struct.pack(f">{count}H", *self.glyph_name_index)
                + bytes(self.string_data)
            )
        except struct.error as exc:
            raise FontError(f"post field out of range: {exc}") from exc