import struct

import pytest

from sfntkit.loca import Loca
from sfntkit.sfnt import FontError

OFFSETS = [min(40 * i, 6564) for i in range(43)] + [6564]


def test_parse_short_format():
    loca = Loca.parse(struct.pack(">3H", 0, 20, 3282), 2, 0)
    assert loca.offsets == [0, 40, 6564]


def test_parse_long_format():
    loca = Loca.parse(struct.pack(">3I", 0, 40, 100000), 2, 1)
    assert loca.offsets == [0, 40, 100000]


def test_round_trip_short():
    loca = Loca(list(OFFSETS))
    written = loca.to_bytes(0)
    assert len(written) == 44 * 2
    loca2 = Loca.parse(written, 43, 0)
    assert len(loca2.offsets) == 44
    assert loca2.offsets[0] == 0
    assert loca2.offsets[1] == 40
    assert loca2.offsets[43] == 6564
    assert loca2 == loca


def test_round_trip_long():
    loca = Loca([0, 3, 70000, 200001])
    assert Loca.parse(loca.to_bytes(1), 3, 1) == loca


def test_short_format_drops_odd_bit():
    assert Loca.parse(Loca([0, 3]).to_bytes(0), 1, 0).offsets == [0, 2]


def test_short_too_small():
    with pytest.raises(FontError, match="short format"):
        Loca.parse(b"\x00\x00\x00\x14", 2, 0)


def test_long_too_small():
    with pytest.raises(FontError, match="long format"):
        Loca.parse(bytes(8), 2, 1)


def test_invalid_format():
    with pytest.raises(FontError, match="indexToLocFormat"):
        Loca.parse(bytes(16), 1, 2)
    with pytest.raises(FontError, match="indexToLocFormat"):
        Loca([0]).to_bytes(5)