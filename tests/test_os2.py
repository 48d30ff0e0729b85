import struct

import pytest

from sfntkit.os2 import OS2Table
from sfntkit.sfnt import FontError

PANOSE = bytes([2, 0, 6, 3, 0, 0, 0, 0, 0, 0])


def _v0_part(version):
    return struct.pack(
        ">HhHHH11h10s4I4s3H3h2H",
        version,
        942,
        400,
        5,
        0,
        *([0] * 11),
        PANOSE,
        0,
        0,
        0,
        0,
        b"PfEd",
        0x00C0,
        0xE001,
        0xE030,
        812,
        -212,
        92,
        812,
        212,
    )


def _v4_table():
    return (
        _v0_part(4)
        + struct.pack(">II", 0x00000001, 0x00000000)
        + struct.pack(">hhHHH", 792, 0, 0, 32, 1)
    )


def test_parse_os2_version4():
    os2 = OS2Table.parse(_v4_table())
    assert os2.version == 4
    assert os2.x_avg_char_width == 942
    assert os2.us_weight_class == 400
    assert os2.us_width_class == 5
    assert os2.fs_type == 0
    assert os2.s_family_class == 0
    assert os2.panose == PANOSE
    assert os2.ach_vend_id == b"PfEd"
    assert os2.fs_selection == 0x00C0
    assert os2.us_first_char_index == 0xE001
    assert os2.us_last_char_index == 0xE030
    assert os2.s_typo_ascender == 812
    assert os2.s_typo_descender == -212
    assert os2.s_typo_line_gap == 92
    assert os2.us_win_ascent == 812
    assert os2.us_win_descent == 212
    assert os2.ul_code_page_range1 == 0x00000001
    assert os2.ul_code_page_range2 == 0x00000000
    assert os2.sx_height == 792
    assert os2.us_break_char == 32
    assert os2.us_max_context == 1


def test_round_trip_os2():
    original = OS2Table.parse(_v4_table())
    again = OS2Table.parse(original.to_bytes())
    assert again == original


def test_write_reproduces_bytes():
    data = _v4_table()
    assert OS2Table.parse(data).to_bytes() == data


def test_version0_leaves_later_fields_zero():
    os2 = OS2Table.parse(_v0_part(0))
    assert os2.version == 0
    assert os2.ul_code_page_range1 == 0
    assert os2.sx_height == 0
    assert os2.us_win_descent == 212


@pytest.mark.parametrize("version, size", [(0, 78), (1, 86), (2, 96), (3, 96), (4, 96), (5, 100)])
def test_written_size_by_version(version, size):
    assert len(OS2Table(version=version).to_bytes()) == size


def test_version5_round_trip_keeps_optical_sizes():
    table = OS2Table(version=5, us_lower_optical_point_size=8, us_upper_optical_point_size=72)
    parsed = OS2Table.parse(table.to_bytes())
    assert parsed.us_lower_optical_point_size == 8
    assert parsed.us_upper_optical_point_size == 72
    assert parsed == table


def test_too_short():
    with pytest.raises(FontError):
        OS2Table.parse(bytes(77))


def test_invalid_version():
    data = struct.pack(">H", 6) + bytes(98)
    with pytest.raises(FontError, match="version"):
        OS2Table.parse(data)


@pytest.mark.parametrize("version, size", [(1, 80), (4, 90), (5, 96)])
def test_truncated_for_version(version, size):
    data = struct.pack(">H", version) + bytes(size - 2)
    with pytest.raises(FontError):
        OS2Table.parse(data)


def test_out_of_range_field():
    with pytest.raises(FontError):
        OS2Table(us_weight_class=70000).to_bytes()