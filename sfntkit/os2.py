"""The 'OS/2' (OS/2 and Windows metrics) table."""

from __future__ import annotations

import struct
from dataclasses import astuple, dataclass

from .sfnt import FontError

_V0 = struct.Struct(">HhHHH11h10s4I4s3H3h2H")
_V1 = struct.Struct(">II")
_V4 = struct.Struct(">hhHHH")
_V5 = struct.Struct(">HH")

_V0_FIELDS = 30
_V1_FIELDS = _V0_FIELDS + 2
_V4_FIELDS = _V1_FIELDS + 5

MAX_VERSION = 5

_REQUIRED_SIZE = {
    0: _V0.size,
    1: _V0.size + _V1.size,
    2: _V0.size + _V1.size + _V4.size,
    3: _V0.size + _V1.size + _V4.size,
    4: _V0.size + _V1.size + _V4.size,
    5: _V0.size + _V1.size + _V4.size + _V5.size,
}


@dataclass
class OS2Table:
    """OS/2 metrics, versions 0 to 5."""

    version: int = 4
    x_avg_char_width: int = 0
    us_weight_class: int = 400
    us_width_class: int = 5
    fs_type: int = 0
    y_subscript_x_size: int = 0
    y_subscript_y_size: int = 0
    y_subscript_x_offset: int = 0
    y_subscript_y_offset: int = 0
    y_superscript_x_size: int = 0
    y_superscript_y_size: int = 0
    y_superscript_x_offset: int = 0
    y_superscript_y_offset: int = 0
    y_strikeout_size: int = 0
    y_strikeout_position: int = 0
    s_family_class: int = 0
    panose: bytes = bytes(10)
    ul_unicode_range1: int = 0
    ul_unicode_range2: int = 0
    ul_unicode_range3: int = 0
    ul_unicode_range4: int = 0
    ach_vend_id: bytes = bytes(4)
    fs_selection: int = 0
    us_first_char_index: int = 0
    us_last_char_index: int = 0
    s_typo_ascender: int = 0
    s_typo_descender: int = 0
    s_typo_line_gap: int = 0
    us_win_ascent: int = 0
    us_win_descent: int = 0
    ul_code_page_range1: int = 0
    ul_code_page_range2: int = 0
    sx_height: int = 0
    s_cap_height: int = 0
    us_default_char: int = 0
    us_break_char: int = 0
    us_max_context: int = 0
    us_lower_optical_point_size: int = 0
    us_upper_optical_point_size: int = 0

    @classmethod
    def parse(cls, data: bytes) -> "OS2Table":
        """Parse the table, reading the fields its version defines."""
        data = bytes(data)
        if len(data) < _V0.size:
            raise FontError("os/2 table too short")
        (version,) = struct.unpack_from(">H", data)
        if version > MAX_VERSION:
            raise FontError("invalid OS/2 table version")
        if len(data) < _REQUIRED_SIZE[version]:
            raise FontError("os/2 table too short")

        table = cls(*_V0.unpack_from(data))
        pos = _V0.size
        if version >= 1:
            table.ul_code_page_range1, table.ul_code_page_range2 = _V1.unpack_from(data, pos)
            pos += _V1.size
        if version >= 2:
            (
                table.sx_height,
                table.s_cap_height,
                table.us_default_char,
                table.us_break_char,
                table.us_max_context,
            ) = _V4.unpack_from(data, pos)
            pos += _V4.size
        if version == 5:
            (
                table.us_lower_optical_point_size,
                table.us_upper_optical_point_size,
            ) = _V5.unpack_from(data, pos)
        return table

    def to_bytes(self) -> bytes:
        """Encode the fields that belong to the table's version."""
        values = astuple(self)
        try:
            parts = [_V0.pack(*values[:_V0_FIELDS])]
            if self.version >= 1:
                parts.append(_V1.pack(*values[_V0_FIELDS:_V1_FIELDS]))
            if self.version >= 2:
                parts.append(_V4.pack(*values[_V1_FIELDS:_V4_FIELDS]))
            if self.version == 5:
                parts.append(_V5.pack(*values[_V4_FIELDS:]))
        except struct.error as exc:
            raise FontError(f"OS/2 field out of range: {exc}") from exc
        return b"".join(parts)