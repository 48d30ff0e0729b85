import struct

import pytest

from sfntkit.font import Font
from sfntkit.loca import Loca
from sfntkit.maxp import Maxp
from sfntkit.name import NameRecord, NameTable
from sfntkit.os2 import OS2Table
from sfntkit.post import PostTable
from sfntkit.sfnt import FontError, calc_table_checksum, write_sfnt

GLYF = bytes(range(24))


def _head(index_to_loc_format=0):
    return struct.pack(
        ">IIIIHHqq4hHHhhh",
        0x00010000, 0x00010000, 0, 0x5F0F3CF5, 0x000B, 1024, 0, 0,
        50, -112, 379, 712, 0, 8, 2, index_to_loc_format, 0,
    )


def _tables(index_to_loc_format=0):
    name = NameTable(
        format=0,
        string_offset=30,
        name_records=[NameRecord(1, 0, 0, 1, 4, 0), NameRecord(1, 0, 0, 4, 9, 4)],
        string_storage=b"TestTest Bold",
    )
    return {
        "head": _head(index_to_loc_format),
        "maxp": Maxp(num_glyphs=2, max_points=8, max_contours=2, max_zones=2).to_bytes(),
        "hhea": bytes(34) + struct.pack(">H", 2),
        "hmtx": struct.pack(">4h", 500, 50, 600, 10),
        "loca": Loca([0, 12, 24]).to_bytes(index_to_loc_format),
        "glyf": GLYF,
        "name": name.to_bytes(),
        "post": PostTable(
            version=0x00020000, underline_position=50,
            glyph_name_index=[0, 258], string_data=b"\x07uniE001",
        ).to_bytes(),
        "OS/2": OS2Table(version=4, x_avg_char_width=942, ach_vend_id=b"TEST").to_bytes(),
        "cmap": bytes(4),
        "gasp": struct.pack(">HHHH", 1, 1, 0xFFFF, 0x000F),
    }


def _font_bytes(version=0x00010000, omit=()):
    return write_sfnt(version, {t: d for t, d in _tables().items() if t not in omit})


def test_parse_decodes_known_tables():
    font = Font.parse(_font_bytes())
    assert font.num_glyphs() == 2
    assert font.index_to_loc_format() == 0
    assert font.loca.offsets == [0, 12, 24]
    assert font.os2.x_avg_char_width == 942
    assert font.post.glyph_name_index == [0, 258]
    assert font.name.name_records[1].name_id == 4


def test_serialize_round_trip():
    font = Font.parse(_font_bytes())
    again = Font.parse(font.serialize())
    head = again.table("head")
    assert struct.unpack_from(">I", head, 12)[0] == 0x5F0F3CF5
    assert struct.unpack_from(">H", head, 18)[0] == 1024
    assert again.maxp == font.maxp
    assert again.name == font.name
    assert again.post == font.post
    assert again.os2 == font.os2
    assert again.loca.offsets == font.loca.offsets
    assert again.table("glyf") == GLYF
    assert again.table("hmtx") == font.table("hmtx")
    assert again.table("cmap") == bytes(4)


def test_serialize_sets_checksum_adjustment():
    data = Font.parse(_font_bytes()).serialize()
    assert calc_table_checksum(data) == 0xB1B0AFBA


def test_serialize_drops_unknown_tables():
    font = Font.parse(_font_bytes())
    assert "gasp" in font.tables
    again = Font.parse(font.serialize())
    assert "gasp" not in again.tables


def test_serialize_keeps_version():
    font = Font.parse(_font_bytes(version=0x74727565))
    assert Font.parse(font.serialize()).version == 0x74727565


def test_serialize_drops_hmtx_without_hhea():
    font = Font.parse(_font_bytes(omit=("hhea",)))
    again = Font.parse(font.serialize())
    assert "hmtx" not in again.tables
    assert "maxp" in again.tables


def test_serialize_drops_glyf_and_loca_without_head():
    font = Font.parse(_font_bytes(omit=("head",)))
    assert font.loca is None
    again = Font.parse(font.serialize())
    assert "glyf" not in again.tables
    assert "loca" not in again.tables


def test_edited_table_is_serialized():
    font = Font.parse(_font_bytes())
    font.maxp.max_points = 99
    again = Font.parse(font.serialize())
    assert again.maxp.max_points == 99


def test_set_head_to_long_loca_format():
    font = Font.parse(_font_bytes())
    font.set_table("head", _head(1))
    again = Font.parse(font.serialize())
    assert again.index_to_loc_format() == 1
    assert len(again.tables["loca"]) == 12
    assert again.loca.offsets == [0, 12, 24]


def test_set_table_maxp_updates_glyph_count():
    font = Font.parse(_font_bytes())
    font.set_table("maxp", Maxp(num_glyphs=7).to_bytes())
    assert font.num_glyphs() == 7


def test_set_table_rejects_bad_data():
    font = Font.parse(_font_bytes())
    with pytest.raises(FontError):
        font.set_table("maxp", bytes(10))
    with pytest.raises(FontError, match="head table too short"):
        font.set_table("head", bytes(20))


def test_missing_table_raises_key_error():
    font = Font.parse(_font_bytes())
    with pytest.raises(KeyError):
        font.table("GPOS")


def test_index_to_loc_format_without_head():
    font = Font.parse(_font_bytes(omit=("head",)))
    with pytest.raises(FontError, match="no head"):
        font.index_to_loc_format()


def test_num_glyphs_without_maxp():
    assert Font().num_glyphs() == 0


def test_parse_rejects_bad_version():
    data = bytearray(_font_bytes())
    data[0:4] = b"OTTX"
    with pytest.raises(FontError, match="invalid version"):
        Font.parse(bytes(data))