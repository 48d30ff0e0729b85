import struct

import pytest

from sfntkit.sfnt import FontError
from sfntkit.woff2_transform import (
    read_255_uint16,
    read_uint_base128,
    reconstruct_glyf_loca,
    reconstruct_hmtx,
    write_uint_base128,
)


def _transformed(
    num_glyphs,
    index_format,
    n_contours,
    n_points=b"",
    flags=b"",
    glyphs=b"",
    composite=b"",
    bbox=None,
    instructions=b"",
    option_flags=0,
):
    bitmap_size = ((num_glyphs + 31) >> 5) << 2
    bbox_part = bbox if bbox is not None else bytes(bitmap_size)
    contour_data = struct.pack(f">{len(n_contours)}h", *n_contours)
    header = struct.pack(
        ">4H7I",
        0,
        option_flags,
        num_glyphs,
        index_format,
        len(contour_data),
        len(n_points),
        len(flags),
        len(glyphs),
        len(composite),
        len(bbox_part),
        len(instructions),
    )
    return header + contour_data + n_points + flags + glyphs + composite + bbox_part + instructions


def _simple_font():
    # glyph 0 empty; glyph 1: one contour, two points (dx=100), (dy=50)
    return _transformed(
        num_glyphs=2,
        index_format=0,
        n_contours=[0, 1],
        n_points=bytes([2]),
        flags=bytes([10, 0]),
        glyphs=bytes([100, 50, 0]),
    )


def _loca_short(loca):
    return [value * 2 for value in struct.unpack(f">{len(loca) // 2}H", loca)]


# --- UIntBase128 ---


@pytest.mark.parametrize("value", [0, 1, 127, 128, 16383, 16384, 0x0FFFFFFF, 0xFFFFFFFF])
def test_uint_base128_round_trip(value):
    encoded = write_uint_base128(value)
    decoded, offset = read_uint_base128(encoded, 0)
    assert decoded == value
    assert offset == len(encoded)


def test_uint_base128_wire_bytes():
    assert write_uint_base128(0) == b"\x00"
    assert write_uint_base128(128) == b"\x81\x00"


def test_uint_base128_reads_from_offset():
    data = b"\xaa" + write_uint_base128(300) + b"\xbb"
    value, offset = read_uint_base128(data, 1)
    assert value == 300
    assert data[offset] == 0xBB


def test_uint_base128_rejects_leading_zero():
    with pytest.raises(FontError):
        read_uint_base128(b"\x80\x01", 0)


def test_uint_base128_rejects_truncation():
    with pytest.raises(FontError):
        read_uint_base128(b"\x81", 0)


def test_uint_base128_rejects_overflow():
    with pytest.raises(FontError):
        read_uint_base128(b"\xff\xff\xff\xff\xff\x7f", 0)


def test_write_uint_base128_rejects_out_of_range():
    with pytest.raises(FontError):
        write_uint_base128(0x100000000)
    with pytest.raises(FontError):
        write_uint_base128(-1)


# --- 255UInt16 ---


def test_255_uint16_plain_byte():
    assert read_255_uint16(b"\x05", 0) == (5, 1)


def test_255_uint16_one_more_byte_code():
    value, offset = read_255_uint16(b"\xff\x07", 0)
    assert value == 253 + 7
    assert offset == 2


def test_255_uint16_one_more_byte_code_2():
    value, offset = read_255_uint16(b"\xfe\x07", 0)
    assert value == 253 * 2 + 7
    assert offset == 2


def test_255_uint16_word_code():
    value, offset = read_255_uint16(b"\x00\xfd\x12\x34", 1)
    assert value == 0x1234
    assert offset == 4


@pytest.mark.parametrize("data", [b"", b"\xfd\x01", b"\xfe", b"\xff"])
def test_255_uint16_truncated(data):
    with pytest.raises(FontError):
        read_255_uint16(data, 0)


# --- glyf / loca ---


def test_reconstruct_simple_glyph():
    glyf, loca = reconstruct_glyf_loca(_simple_font(), 6)
    offsets = _loca_short(loca)
    assert offsets[0] == 0
    assert offsets[1] == 0  # empty glyph occupies nothing
    assert offsets[2] == len(glyf)
    assert len(glyf) % 4 == 0

    n_contours, x_min, y_min, x_max, y_max = struct.unpack_from(">h4h", glyf, 0)
    assert n_contours == 1
    assert (x_min, y_min, x_max, y_max) == (100, 0, 100, 50)
    end_point, instruction_length = struct.unpack_from(">HH", glyf, 10)
    assert end_point == 1
    assert instruction_length == 0
    assert glyf[14:16] == b"\x01\x01"
    assert struct.unpack_from(">2h2h", glyf, 16) == (100, 0, 0, 50)


def test_reconstruct_long_loca():
    data = _transformed(
        num_glyphs=2,
        index_format=1,
        n_contours=[0, 1],
        n_points=bytes([2]),
        flags=bytes([10, 0]),
        glyphs=bytes([100, 50, 0]),
    )
    glyf, loca = reconstruct_glyf_loca(data, 12)
    offsets = struct.unpack(">3I", loca)
    assert offsets[0] == offsets[1] == 0
    assert offsets[2] == len(glyf)


def test_reconstruct_off_curve_and_negative_delta():
    data = _transformed(
        num_glyphs=1,
        index_format=0,
        n_contours=[1],
        n_points=bytes([1]),
        flags=bytes([0x80 | 11]),
        glyphs=bytes([30, 0]),
    )
    glyf, _ = reconstruct_glyf_loca(data, 4)
    assert struct.unpack_from(">h", glyf, 2)[0] == -30
    assert glyf[14] == 0  # off-curve point
    assert struct.unpack_from(">h", glyf, 15)[0] == -30


def test_reconstruct_instructions_are_copied():
    data = _transformed(
        num_glyphs=1,
        index_format=0,
        n_contours=[1],
        n_points=bytes([1]),
        flags=bytes([10]),
        glyphs=bytes([5, 3]),
        instructions=b"\xb0\x01\x2c",
    )
    glyf, _ = reconstruct_glyf_loca(data, 4)
    assert struct.unpack_from(">H", glyf, 12)[0] == 3
    assert glyf[14:17] == b"\xb0\x01\x2c"


def test_reconstruct_composite_glyph():
    component = struct.pack(">HH", 7, 0x0102)
    bbox = bytes([0x80, 0, 0, 0]) + struct.pack(">4h", -10, -20, 30, 40)
    data = _transformed(
        num_glyphs=1,
        index_format=0,
        n_contours=[-1],
        composite=struct.pack(">H", 0) + component,
        bbox=bbox,
    )
    glyf, loca = reconstruct_glyf_loca(data, 4)
    assert struct.unpack_from(">h4h", glyf, 0) == (-1, -10, -20, 30, 40)
    assert glyf[10:12] == b"\x00\x00"
    assert glyf[12:16] == component
    assert _loca_short(loca)[-1] == len(glyf)


def test_composite_without_bbox_fails():
    data = _transformed(
        num_glyphs=1,
        index_format=0,
        n_contours=[-1],
        composite=struct.pack(">H", 0) + bytes(4),
    )
    with pytest.raises(FontError):
        reconstruct_glyf_loca(data, 4)


def test_empty_glyph_with_explicit_bbox_fails():
    data = _transformed(
        num_glyphs=1,
        index_format=0,
        n_contours=[0],
        bbox=bytes([0x80, 0, 0, 0]) + bytes(8),
    )
    with pytest.raises(FontError):
        reconstruct_glyf_loca(data, 4)


def test_loca_length_mismatch_fails():
    with pytest.raises(FontError):
        reconstruct_glyf_loca(_simple_font(), 8)


def test_transformed_data_too_small():
    with pytest.raises(FontError):
        reconstruct_glyf_loca(bytes(20), 0)


def test_exhausted_flag_stream_fails():
    data = _transformed(
        num_glyphs=1,
        index_format=0,
        n_contours=[1],
        n_points=bytes([2]),
        flags=bytes([10]),
        glyphs=bytes([1, 1, 0]),
    )
    with pytest.raises(FontError):
        reconstruct_glyf_loca(data, 4)


def test_exhausted_glyph_stream_fails():
    data = _transformed(
        num_glyphs=1,
        index_format=0,
        n_contours=[1],
        n_points=bytes([1]),
        flags=bytes([124]),
        glyphs=bytes([1, 2]),
    )
    with pytest.raises(FontError):
        reconstruct_glyf_loca(data, 4)


# --- hmtx ---


def _companions(num_glyphs, num_h_metrics, index_format=0):
    head = bytearray(54)
    struct.pack_into(">H", head, 50, index_format)
    maxp = struct.pack(">IH", 0x00005000, num_glyphs)
    hhea = bytearray(36)
    struct.pack_into(">H", hhea, 34, num_h_metrics)
    return bytes(head), maxp, bytes(hhea)


def test_reconstruct_hmtx_proportional():
    glyf, loca = reconstruct_glyf_loca(_simple_font(), 6)
    head, maxp, hhea = _companions(2, 2)
    data = bytes([0x01]) + struct.pack(">HH", 500, 600)
    hmtx = reconstruct_hmtx(data, head, glyf, loca, maxp, hhea)
    assert struct.unpack(">HhHh", hmtx) == (500, 0, 600, 100)


def test_reconstruct_hmtx_monospaced_tail():
    glyf, loca = reconstruct_glyf_loca(_simple_font(), 6)
    head, maxp, hhea = _companions(2, 1)
    data = bytes([0x02]) + struct.pack(">Hh", 500, -7)
    hmtx = reconstruct_hmtx(data, head, glyf, loca, maxp, hhea)
    assert len(hmtx) == 6
    assert struct.unpack(">Hhh", hmtx) == (500, -7, 100)


def test_reconstruct_hmtx_needs_a_flag():
    glyf, loca = reconstruct_glyf_loca(_simple_font(), 6)
    head, maxp, hhea = _companions(2, 2)
    with pytest.raises(FontError):
        reconstruct_hmtx(bytes([0]) + bytes(4), head, glyf, loca, maxp, hhea)


def test_reconstruct_hmtx_truncated():
    glyf, loca = reconstruct_glyf_loca(_simple_font(), 6)
    head, maxp, hhea = _companions(2, 2)
    with pytest.raises(FontError):
        reconstruct_hmtx(bytes([1, 0, 1]), head, glyf, loca, maxp, hhea)


def test_reconstruct_hmtx_metric_counts():
    glyf, loca = reconstruct_glyf_loca(_simple_font(), 6)
    head, maxp, hhea = _companions(2, 0)
    with pytest.raises(FontError):
        reconstruct_hmtx(bytes([1]), head, glyf, loca, maxp, hhea)
    head, maxp, hhea = _companions(1, 2)
    with pytest.raises(FontError):
        reconstruct_hmtx(bytes([1]) + bytes(4), head, glyf, loca, maxp, hhea)


def test_reconstruct_hmtx_short_tables():
    glyf, loca = reconstruct_glyf_loca(_simple_font(), 6)
    head, maxp, hhea = _companions(2, 2)
    data = bytes([1]) + bytes(4)
    with pytest.raises(FontError):
        reconstruct_hmtx(b"", head, glyf, loca, maxp, hhea)
    with pytest.raises(FontError):
        reconstruct_hmtx(data, head[:40], glyf, loca, maxp, hhea)
    with pytest.raises(FontError):
        reconstruct_hmtx(data, head, glyf, loca, maxp[:4], hhea)
    with pytest.raises(FontError):
        reconstruct_hmtx(data, head, glyf, loca, maxp, hhea[:30])
    with pytest.raises(FontError):
        reconstruct_hmtx(data, head, glyf[:2], loca, maxp, hhea)