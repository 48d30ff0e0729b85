"""WOFF2 variable-length integers and the reversal of the glyf/loca and
hmtx table transforms."""

from __future__ import annotations

import struct

from .sfnt import FontError

_U16 = struct.Struct(">H")
_I16 = struct.Struct(">h")
_U32 = struct.Struct(">I")
_GLYF_HEADER = struct.Struct(">4H7I")
_BBOX = struct.Struct(">4h")

#: Lookup flag bits of a composite glyph component.
_ARG_1_AND_2_ARE_WORDS = 0x0001
_WE_HAVE_A_SCALE = 0x0008
_MORE_COMPONENTS = 0x0020
_WE_HAVE_AN_X_AND_Y_SCALE = 0x0040
_WE_HAVE_A_TWO_BY_TWO = 0x0080
_WE_HAVE_INSTRUCTIONS = 0x0100

_ON_CURVE = 0x01
_OVERLAP_SIMPLE = 0x40


def _int16(value: int) -> int:
    value &= 0xFFFF
    return value - 0x10000 if value & 0x8000 else value


def _signed(flag: int, bit: int, magnitude: int) -> int:
    """Negate ``magnitude`` when ``bit`` of ``flag`` is set; wrap to int16."""
    if flag & (1 << bit):
        magnitude = -magnitude
    return _int16(magnitude)


def read_uint_base128(data: bytes, offset: int) -> tuple[int, int]:
    """Read a UIntBase128 at ``offset``; return the value and the next offset."""
    accum = 0
    for i in range(5):
        if offset >= len(data):
            raise FontError("WOFF2: unexpected end of UIntBase128")
        byte = data[offset]
        offset += 1
        if i == 0 and byte == 0x80:
            raise FontError("WOFF2: UIntBase128 leading zero")
        if accum & 0xFE000000:
            raise FontError("WOFF2: UIntBase128 overflow")
        accum = (accum << 7) | (byte & 0x7F)
        if not byte & 0x80:
            return accum, offset
    raise FontError("WOFF2: UIntBase128 exceeds 5 bytes")


def write_uint_base128(value: int) -> bytes:
    """Encode a 32-bit unsigned value as UIntBase128."""
    if not 0 <= value <= 0xFFFFFFFF:
        raise FontError("WOFF2: UIntBase128 value out of range")
    if value == 0:
        return b"\x00"
    out = bytearray()
    for i in range(4, -1, -1):
        group = (value >> (i * 7)) & 0x7F
        if out or group:
            out.append(group | 0x80 if i > 0 else group)
    return bytes(out)


def read_255_uint16(data: bytes, offset: int) -> tuple[int, int]:
    """Read a 255UInt16 at ``offset``; return the value and the next offset."""
    if offset >= len(data):
        raise FontError("WOFF2: unexpected end of 255UInt16")
    code = data[offset]
    offset += 1
    if code == 253:
        if offset + 2 > len(data):
            raise FontError("WOFF2: unexpected end of 255UInt16")
        return _U16.unpack_from(data, offset)[0], offset + 2
    if code in (254, 255):
        if offset >= len(data):
            raise FontError("WOFF2: unexpected end of 255UInt16")
        base = 253 * 2 if code == 254 else 253
        return data[offset] + base, offset + 1
    return code, offset


def _bit_set(bitmap: bytes | None, index: int) -> bool:
    if bitmap is None:
        return False
    byte_index = index // 8
    if byte_index >= len(bitmap):
        return False
    return bool(bitmap[byte_index] & (1 << (7 - index % 8)))


class _Stream:
    """A cursor over one of the transformed glyf sub-streams."""

    def __init__(self, data: bytes) -> None:
        self.data = data
        self.pos = 0

    def remaining(self) -> int:
        return len(self.data) - self.pos

    def take(self, count: int, message: str) -> bytes:
        if count > self.remaining():
            raise FontError(message)
        chunk = self.data[self.pos:self.pos + count]
        self.pos += count
        return chunk

    def read_255(self) -> int:
        value, self.pos = read_255_uint16(self.data, self.pos)
        return value


def _decode_point(flag: int, glyphs: _Stream) -> tuple[int, int]:
    exhausted = "WOFF2: glyphStream exhausted"
    if flag < 10:
        (c0,) = glyphs.take(1, exhausted)
        return 0, _signed(flag, 0, ((flag & 0x0E) << 7) + c0)
    if flag < 20:
        (c0,) = glyphs.take(1, exhausted)
        return _signed(flag, 0, (((flag - 10) & 0x0E) << 7) + c0), 0
    if flag < 84:
        (c0,) = glyphs.take(1, exhausted)
        dx = _signed(flag, 0, 1 + ((flag - 20) & 0x30) + (c0 >> 4))
        dy = _signed(flag, 1, 1 + (((flag - 20) & 0x0C) << 2) + (c0 & 0x0F))
        return dx, dy
    if flag < 120:
        c0, c1 = glyphs.take(2, exhausted)
        dx = _signed(flag, 0, 1 + (((flag - 84) // 12) << 8) + c0)
        dy = _signed(flag, 1, 1 + ((((flag - 84) % 12) >> 2) << 8) + c1)
        return dx, dy
    if flag < 124:
        c0, c1, c2 = glyphs.take(3, exhausted)
        dx = _signed(flag, 0, (c0 << 4) + (c1 >> 4))
        dy = _signed(flag, 1, ((c1 & 0x0F) << 8) + c2)
        return dx, dy
    c0, c1, c2, c3 = glyphs.take(4, exhausted)
    dx = _signed(flag, 0, (c0 << 8) + c1)
    dy = _signed(flag, 1, (c2 << 8) + c3)
    return dx, dy


def _pad4(buf: bytearray) -> None:
    buf.extend(bytes(-len(buf) % 4))


def _simple_glyph(
    n_contours: int,
    explicit_bbox: bool,
    has_overlap: bool,
    points: _Stream,
    flags: _Stream,
    glyphs: _Stream,
    bboxes: _Stream,
    instructions: _Stream,
) -> bytes:
    x_min = y_min = x_max = y_max = 0
    if explicit_bbox and bboxes.remaining() >= _BBOX.size:
        x_min, y_min, x_max, y_max = _BBOX.unpack(bboxes.take(_BBOX.size, ""))

    n_points = 0
    end_points = []
    for _ in range(n_contours):
        count = points.read_255()
        if n_points + count > 0xFFFF:
            raise FontError("WOFF2: point count overflow")
        n_points += count
        end_points.append((n_points - 1) & 0xFFFF)

    outline_flags = bytearray()
    xs: list[int] = []
    ys: list[int] = []
    x = y = 0
    for index in range(n_points):
        (raw,) = flags.take(1, "WOFF2: flagStream exhausted")
        on_curve = not raw & 0x80
        dx, dy = _decode_point(raw & 0x7F, glyphs)
        xs.append(dx)
        ys.append(dy)
        outline_flags.append(
            (_ON_CURVE if on_curve else 0) | (_OVERLAP_SIMPLE if has_overlap else 0)
        )
        if not explicit_bbox:
            x = _int16(x + dx)
            y = _int16(y + dy)
            if index == 0:
                x_min = x_max = x
                y_min = y_max = y
            else:
                x_min, x_max = min(x_min, x), max(x_max, x)
                y_min, y_max = min(y_min, y), max(y_max, y)

    instruction_length = glyphs.read_255()
    code = b""
    if instruction_length <= instructions.remaining():
        code = instructions.take(instruction_length, "")

    out = bytearray(struct.pack(">h4h", n_contours, x_min, y_min, x_max, y_max))
    out += struct.pack(f">{len(end_points)}H", *end_points)
    out += _U16.pack(instruction_length)
    out += code
    out += outline_flags
    out += struct.pack(f">{n_points}h", *xs)
    out += struct.pack(f">{n_points}h", *ys)
    _pad4(out)
    return bytes(out)


def _composite_glyph(
    n_contours: int,
    explicit_bbox: bool,
    composites: _Stream,
    glyphs: _Stream,
    bboxes: _Stream,
    instructions: _Stream,
) -> bytes:
    if not explicit_bbox:
        raise FontError("WOFF2: composite glyph must have explicit bbox")
    bbox = bboxes.take(_BBOX.size, "WOFF2: bboxStream exhausted")
    out = bytearray(_I16.pack(n_contours) + bbox)

    exhausted = "WOFF2: compositeStream exhausted"
    has_instructions = False
    while True:
        component_flag = _U16.unpack(composites.take(2, exhausted))[0]
        size = 4
        if component_flag & _ARG_1_AND_2_ARE_WORDS:
            size += 2
        if component_flag & _WE_HAVE_A_SCALE:
            size += 2
        elif component_flag & _WE_HAVE_AN_X_AND_Y_SCALE:
            size += 4
        elif component_flag & _WE_HAVE_A_TWO_BY_TWO:
            size += 8
        out += _U16.pack(component_flag)
        out += composites.take(size, exhausted)
        if component_flag & _WE_HAVE_INSTRUCTIONS:
            has_instructions = True
        if not component_flag & _MORE_COMPONENTS:
            break

    if has_instructions:
        instruction_length = glyphs.read_255()
        out += _U16.pack(instruction_length)
        if instruction_length <= instructions.remaining():
            out += instructions.take(instruction_length, "")
    _pad4(out)
    return bytes(out)


def reconstruct_glyf_loca(data: bytes, orig_loca_length: int) -> tuple[bytes, bytes]:
    """Rebuild 'glyf' and 'loca' from a transformed WOFF2 glyf table."""
    data = bytes(data)
    if len(data) < _GLYF_HEADER.size:
        raise FontError("WOFF2: transformed glyf data too small")
    (
        _version,
        option_flags,
        num_glyphs,
        index_format,
        *stream_sizes,
    ) = _GLYF_HEADER.unpack_from(data)

    loca_length = (num_glyphs + 1) * 2 * (2 if index_format else 1)
    if loca_length != orig_loca_length:
        raise FontError("WOFF2: loca origLength mismatch")

    streams = []
    position = _GLYF_HEADER.size
    for size in stream_sizes:
        if position + size > len(data):
            raise FontError("WOFF2: transformed glyf stream out of bounds")
        streams.append(data[position:position + size])
        position += size
    n_contour_data, n_points_data, flag_data, glyph_data, composite_data, bbox_data, instr_data = (
        streams
    )
    # The overlap bitmap is located where the instruction stream begins.
    overlap_start = position - len(instr_data)

    bitmap_size = ((num_glyphs + 31) >> 5) << 2
    bbox_bitmap = None
    bboxes = _Stream(b"")
    if len(bbox_data) >= bitmap_size:
        bbox_bitmap = bbox_data[:bitmap_size]
        bboxes = _Stream(bbox_data[bitmap_size:])

    overlap_bitmap = None
    if option_flags & 0x0001 and overlap_start + bitmap_size <= len(data):
        overlap_bitmap = data[overlap_start:overlap_start + bitmap_size]

    points = _Stream(n_points_data)
    flags = _Stream(flag_data)
    glyphs = _Stream(glyph_data)
    composites = _Stream(composite_data)
    instructions = _Stream(instr_data)

    glyf = bytearray()
    loca_offsets = []
    contour_pos = 0
    for glyph_id in range(num_glyphs):
        loca_offsets.append(len(glyf))
        explicit_bbox = _bit_set(bbox_bitmap, glyph_id)
        has_overlap = _bit_set(overlap_bitmap, glyph_id)

        if contour_pos + 2 > len(n_contour_data):
            continue
        (n_contours,) = _I16.unpack_from(n_contour_data, contour_pos)
        contour_pos += 2

        if n_contours == 0:
            if explicit_bbox:
                raise FontError("WOFF2: empty glyph with explicit bbox")
            continue
        if n_contours > 0:
            glyf += _simple_glyph(
                n_contours, explicit_bbox, has_overlap,
                points, flags, glyphs, bboxes, instructions,
            )
        else:
            glyf += _composite_glyph(
                n_contours, explicit_bbox, composites, glyphs, bboxes, instructions
            )
    loca_offsets.append(len(glyf))

    if index_format == 0:
        loca = struct.pack(
            f">{len(loca_offsets)}H", *((offset >> 1) & 0xFFFF for offset in loca_offsets)
        )
    else:
        loca = struct.pack(
            f">{len(loca_offsets)}I", *(offset & 0xFFFFFFFF for offset in loca_offsets)
        )
    return bytes(glyf), loca


def reconstruct_hmtx(
    data: bytes, head: bytes, glyf: bytes, loca: bytes, maxp: bytes, hhea: bytes
) -> bytes:
    """Rebuild 'hmtx' from a transformed WOFF2 hmtx table and its companions."""
    if len(data) < 1:
        raise FontError("WOFF2: hmtx transform data too small")
    if len(head) < 52:
        raise FontError("WOFF2: head table too small for hmtx transform")
    (index_format,) = _U16.unpack_from(head, 50)
    if len(maxp) < 6:
        raise FontError("WOFF2: maxp table too small for hmtx transform")
    (num_glyphs,) = _U16.unpack_from(maxp, 4)
    if len(hhea) < 36:
        raise FontError("WOFF2: hhea table too small for hmtx transform")
    (num_h_metrics,) = _U16.unpack_from(hhea, 34)

    if num_h_metrics < 1:
        raise FontError("WOFF2: numHMetrics must be >= 1")
    if num_glyphs < num_h_metrics:
        raise FontError("WOFF2: numGlyphs must be >= numHMetrics")

    flags = data[0]
    proportional = bool(flags & 0x01)
    monospaced = bool(flags & 0x02)
    if not proportional and not monospaced:
        raise FontError("WOFF2: hmtx must reconstruct at least one LSB array")

    stream = _Stream(bytes(data))
    stream.pos = 1
    truncated = "WOFF2: hmtx transform data truncated"

    def read_words(count: int, fmt: str) -> list[int]:
        return list(struct.unpack(f">{count}{fmt}", stream.take(2 * count, truncated)))

    advance_widths = read_words(num_h_metrics, "H")
    lsbs = [0] * num_glyphs
    if not proportional:
        lsbs[:num_h_metrics] = read_words(num_h_metrics, "h")
    if not monospaced:
        lsbs[num_h_metrics:] = read_words(num_glyphs - num_h_metrics, "h")

    first = num_h_metrics if not proportional else 0
    last = num_h_metrics if not monospaced else num_glyphs
    entry = struct.Struct(">I" if index_format else ">H")
    scale = 1 if index_format else 2

    def glyph_offset(glyph_id: int) -> int:
        position = glyph_id * entry.size
        if position + entry.size > len(loca):
            raise FontError("WOFF2: loca table too small for hmtx transform")
        return entry.unpack_from(loca, position)[0] * scale

    for glyph_id in range(first, last):
        start = glyph_offset(glyph_id)
        if glyph_offset(glyph_id + 1) == start:
            lsbs[glyph_id] = 0
        else:
            if start + 4 > len(glyf):
                raise FontError("WOFF2: glyf table too small for hmtx transform")
            lsbs[glyph_id] = _I16.unpack_from(glyf, start + 2)[0]

    out = bytearray()
    for advance, lsb in zip(advance_widths, lsbs):
        out += struct.pack(">Hh", advance, lsb)
    extra = lsbs[num_h_metrics:]
    out += struct.pack(f">{len(extra)}h", *extra)
    return bytes(out)