"""A TrueType font held as its sfnt tables, with the common tables decoded."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Optional

from .loca import Loca
from .maxp import Maxp
from .name import NameTable
from .os2 import OS2Table
from .post import PostTable
from .sfnt import FontError, read_sfnt, write_sfnt

#: Minimum size of a 'head' table.
HEAD_SIZE = 54

_INDEX_TO_LOC_FORMAT = struct.Struct(">h")
_INDEX_TO_LOC_FORMAT_OFFSET = 50

#: Decoded tables: sfnt tag to (attribute name, table class).
_DECODED = {
    "maxp": ("maxp", Maxp),
    "name": ("name", NameTable),
    "post": ("post", PostTable),
    "OS/2": ("os2", OS2Table),
}

#: Tables written by :meth:`Font.serialize`, apart from 'glyf' and 'loca'.
_SERIALIZED_TAGS = (
    "head",
    "OS/2",
    "name",
    "maxp",
    "hhea",
    "hmtx",
    "cmap",
    "post",
    "kern",
    "GPOS",
    "GSUB",
)


@dataclass
class Font:
    """An sfnt font: raw tables plus decoded maxp, name, post, OS/2 and loca."""

    version: int = 0x00010000
    tables: dict[str, bytes] = field(default_factory=dict)
    maxp: Optional[Maxp] = None
    name: Optional[NameTable] = None
    post: Optional[PostTable] = None
    os2: Optional[OS2Table] = None
    loca: Optional[Loca] = None

    @classmethod
    def parse(cls, data: bytes, offset: int = 0) -> "Font":
        """Parse the font whose sfnt header starts at ``offset`` in ``data``."""
        sfnt = read_sfnt(data, offset)
        font = cls(version=sfnt.version)
        for tag, table in sfnt.tables.items():
            font._store(tag, table)
        font._parse_loca()
        return font

    def _store(self, tag: str, data: bytes) -> None:
        data = bytes(data)
        if tag == "head" and len(data) < HEAD_SIZE:
            raise FontError("head table too short")
        decoded = _DECODED.get(tag)
        if decoded is not None:
            attribute, table_class = decoded
            setattr(self, attribute, table_class.parse(data))
        self.tables[tag] = data

    def _parse_loca(self) -> None:
        raw = self.tables.get("loca")
        if raw is None or "head" not in self.tables or self.maxp is None:
            self.loca = None
            return
        self.loca = Loca.parse(raw, self.maxp.num_glyphs, self.index_to_loc_format())

    def _has(self, tag: str) -> bool:
        decoded = _DECODED.get(tag)
        if decoded is not None and getattr(self, decoded[0]) is not None:
            return True
        return tag in self.tables

    def table(self, tag: str) -> bytes:
        """Return the encoded data of a table; decoded tables are re-encoded."""
        decoded = _DECODED.get(tag)
        if decoded is not None:
            value = getattr(self, decoded[0])
            if value is not None:
                return value.to_bytes()
        if tag == "loca" and self.loca is not None:
            return self.loca.to_bytes(self.index_to_loc_format())
        try:
            return self.tables[tag]
        except KeyError:
            raise KeyError(tag) from None

    def set_table(self, tag: str, data: bytes) -> None:
        """Replace a table, decoding it where the font knows its format."""
        self._store(tag, data)
        if tag == "loca" or (tag in ("head", "maxp") and self.loca is None):
            self._parse_loca()

    def num_glyphs(self) -> int:
        """The glyph count from 'maxp', or 0 without one."""
        return self.maxp.num_glyphs if self.maxp is not None else 0

    def index_to_loc_format(self) -> int:
        """The loca format recorded in 'head': 0 for short, 1 for long."""
        head = self.tables.get("head")
        if head is None:
            raise FontError("font has no head table")
        if len(head) < HEAD_SIZE:
            raise FontError("head table too short")
        return _INDEX_TO_LOC_FORMAT.unpack_from(head, _INDEX_TO_LOC_FORMAT_OFFSET)[0]

    def serialize(self) -> bytes:
        """Encode the font as a TrueType file.

        Only the tables the font understands are written; 'hmtx' needs 'hhea'
        and 'maxp', and 'glyf' with 'loca' need 'head' and a decoded 'loca'.
        """
        entries: list[tuple[str, bytes]] = []
        for tag in _SERIALIZED_TAGS:
            if tag == "hmtx" and ("hhea" not in self.tables or self.maxp is None):
                continue
            if self._has(tag):
                entries.append((tag, self.table(tag)))
        if "head" in self.tables and "glyf" in self.tables and self.loca is not None:
            entries.append(("glyf", self.tables["glyf"]))
            entries.append(("loca", self.table("loca")))
        return write_sfnt(self.version, entries)