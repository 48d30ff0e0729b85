"""The 'maxp' (maximum profile) table."""

from __future__ import annotations

import struct
from dataclasses import astuple, dataclass

from .sfnt import FontError

_MAXP = struct.Struct(">I14H")


@dataclass
class Maxp:
    """Version 1.0 maximum profile."""

    version: int = 0x00010000
    num_glyphs: int = 0
    max_points: int = 0
    max_contours: int = 0
    max_composite_points: int = 0
    max_composite_contours: int = 0
    max_zones: int = 0
    max_twilight_points: int = 0
    max_storage: int = 0
    max_function_defs: int = 0
    max_instruction_defs: int = 0
    max_stack_elements: int = 0
    max_size_of_instructions: int = 0
    max_component_elements: int = 0
    max_component_depth: int = 0

    @classmethod
    def parse(cls, data: bytes) -> "Maxp":
        """Parse a 32-byte maxp table."""
        if len(data) < _MAXP.size:
            raise FontError("maxp table too short")
        return cls(*_MAXP.unpack_from(bytes(data)))

    def to_bytes(self) -> bytes:
        """Encode the table as 32 bytes."""
        try:
            return _MAXP.pack(*astuple(self))
        except struct.error as exc:
            raise FontError(f"maxp field out of range: {exc}") from exc