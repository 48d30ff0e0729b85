"""The 'loca' (index to location) table."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field

from .sfnt import FontError


@dataclass
class Loca:
    """Glyph offsets into 'glyf', one per glyph plus a final end offset."""

    offsets: list[int] = field(default_factory=list)

    @classmethod
    def parse(cls, data: bytes, num_glyphs: int, index_to_loc_format: int) -> "Loca":
        """Parse ``num_glyphs + 1`` offsets in short (0) or long (1) format."""
        count = num_glyphs + 1
        if index_to_loc_format == 0:
            if len(data) < count * 2:
                raise FontError("loca table too small for short format")
            return cls([value * 2 for value in struct.unpack_from(f">{count}H", data)])
        if index_to_loc_format == 1:
            if len(data) < count * 4:
                raise FontError("loca table too small for long format")
            return cls(list(struct.unpack_from(f">{count}I", data)))
        raise FontError("invalid indexToLocFormat")

    def to_bytes(self, index_to_loc_format: int) -> bytes:
        """Encode the offsets in short (0) or long (1) format."""
        if index_to_loc_format == 0:
            values = [(offset // 2) & 0xFFFF for offset in self.offsets]
            return struct.pack(f">{len(values)}H", *values)
        if index_to_loc_format == 1:
            values = [offset & 0xFFFFFFFF for offset in self.offsets]
            return struct.pack(f">{len(values)}I", *values)
        raise FontError("invalid indexToLocFormat")