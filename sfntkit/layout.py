"""Common OpenType Layout structures: coverage, class definitions,
script, feature and lookup lists."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Optional

from .sfnt import FontError

_U16 = struct.Struct(">H")

#: Lookup flag bit signalling that a markFilteringSet field follows.
USE_MARK_FILTERING_SET = 0x0010


def _u16(data: bytes, pos: int) -> int:
    if pos + 2 > len(data):
        raise FontError("layout table truncated")
    return _U16.unpack_from(data, pos)[0]


def _u16_array(data: bytes, pos: int, count: int) -> tuple[list[int], int]:
    end = pos + 2 * count
    if end > len(data):
        raise FontError("layout table truncated")
    return list(struct.unpack_from(f">{count}H", data, pos)), end


def _triples(values: list[int]):
    it = iter(values)
    return zip(it, it, it)


def _read_tag(data: bytes, pos: int) -> str:
    if pos + 4 > len(data):
        raise FontError("layout table truncated")
    return bytes(data[pos:pos + 4]).decode("latin-1")


def _tag_bytes(tag: str) -> bytes:
    return tag.encode("latin-1").ljust(4, b"\0")[:4]


def _pack_u16(*values: int) -> bytes:
    try:
        return struct.pack(f">{len(values)}H", *values)
    except struct.error as exc:
        raise FontError(f"layout value out of range: {exc}") from exc


def _tagged_list(records, bodies: list[bytes]) -> bytes:
    """Encode count, tag/offset records and bodies laid out after them."""
    position = 2 + 6 * len(bodies)
    header = [_pack_u16(len(bodies))]
    for record, body in zip(records, bodies):
        header.append(_tag_bytes(record.tag) + _pack_u16(position))
        position += len(body)
    return b"".join(header + bodies)


# --- Coverage ---


@dataclass(frozen=True)
class CoverageRange:
    """A range record of a format 2 coverage table."""

    start: int
    end: int
    index: int


@dataclass
class Coverage:
    """A coverage table: a glyph list (format 1) or ranges (format 2)."""

    format: int = 0
    glyphs: list[int] = field(default_factory=list)
    ranges: list[CoverageRange] = field(default_factory=list)

    @classmethod
    def parse(cls, data: bytes, offset: int) -> "Coverage":
        """Parse the table at ``offset``; an offset past the data gives an empty one."""
        if offset >= len(data):
            return cls()
        cov = cls(format=_u16(data, offset))
        if cov.format == 1:
            count = _u16(data, offset + 2)
            cov.glyphs, _ = _u16_array(data, offset + 4, count)
        elif cov.format == 2:
            count = _u16(data, offset + 2)
            values, _ = _u16_array(data, offset + 4, count * 3)
            cov.ranges = [CoverageRange(*triple) for triple in _triples(values)]
        return cov

    def to_bytes(self) -> bytes:
        """Encode the table; an unknown format encodes as nothing."""
        if self.format == 1:
            return _pack_u16(1, len(self.glyphs), *self.glyphs)
        if self.format == 2:
            flat = [v for r in self.ranges for v in (r.start, r.end, r.index)]
            return _pack_u16(2, len(self.ranges), *flat)
        return b""


# --- ClassDef ---


@dataclass(frozen=True)
class ClassRangeRecord:
    """A range record of a format 2 class definition table."""

    start: int
    end: int
    class_value: int


@dataclass
class ClassDef:
    """A class definition table: sequential (format 1) or ranges (format 2)."""

    format: int = 0
    start_glyph: int = 0
    class_values: list[int] = field(default_factory=list)
    ranges: list[ClassRangeRecord] = field(default_factory=list)

    @classmethod
    def parse(cls, data: bytes, offset: int) -> "ClassDef":
        """Parse the table at ``offset``; an offset past the data gives an empty one."""
        if offset >= len(data):
            return cls()
        cd = cls(format=_u16(data, offset))
        if cd.format == 1:
            cd.start_glyph = _u16(data, offset + 2)
            count = _u16(data, offset + 4)
            cd.class_values, _ = _u16_array(data, offset + 6, count)
        elif cd.format == 2:
            count = _u16(data, offset + 2)
            values, _ = _u16_array(data, offset + 4, count * 3)
            cd.ranges = [ClassRangeRecord(*triple) for triple in _triples(values)]
        return cd

    def to_bytes(self) -> bytes:
        """Encode the table; an unknown format encodes as nothing."""
        if self.format == 1:
            return _pack_u16(1, self.start_glyph, len(self.class_values), *self.class_values)
        if self.format == 2:
            flat = [v for r in self.ranges for v in (r.start, r.end, r.class_value)]
            return _pack_u16(2, len(self.ranges), *flat)
        return b""


# --- Script list ---


@dataclass
class LangSys:
    """A language system table."""

    req_feature_index: int = 0
    feature_indices: list[int] = field(default_factory=list)

    @classmethod
    def parse(cls, data: bytes, offset: int) -> "LangSys":
        """Parse the table at ``offset``; the reserved lookupOrder field is skipped."""
        if offset >= len(data):
            return cls()
        req = _u16(data, offset + 2)
        count = _u16(data, offset + 4)
        indices, _ = _u16_array(data, offset + 6, count)
        return cls(req, indices)

    def to_bytes(self) -> bytes:
        """Encode the table with a zero lookupOrder field."""
        return _pack_u16(
            0, self.req_feature_index, len(self.feature_indices), *self.feature_indices
        )


@dataclass
class LangSysRecord:
    """Maps a language tag to its language system table."""

    tag: str
    lang_sys: LangSys


@dataclass
class ScriptTable:
    """A script table with an optional default language system."""

    default_lang_sys: Optional[LangSys] = None
    lang_sys_records: list[LangSysRecord] = field(default_factory=list)

    @classmethod
    def parse(cls, data: bytes, offset: int) -> "ScriptTable":
        """Parse the table at ``offset``; a zero default offset means none."""
        if offset >= len(data):
            return cls()
        default_offset = _u16(data, offset)
        count = _u16(data, offset + 2)
        table = cls()
        if default_offset:
            table.default_lang_sys = LangSys.parse(data, offset + default_offset)
        pos = offset + 4
        for _ in range(count):
            tag = _read_tag(data, pos)
            ls_offset = _u16(data, pos + 4)
            table.lang_sys_records.append(
                LangSysRecord(tag, LangSys.parse(data, offset + ls_offset))
            )
            pos += 6
        return table

    def to_bytes(self) -> bytes:
        """Encode the table with its language systems laid out after the header."""
        default_data = (
            self.default_lang_sys.to_bytes() if self.default_lang_sys is not None else None
        )
        bodies = [record.lang_sys.to_bytes() for record in self.lang_sys_records]
        position = 4 + 6 * len(bodies)
        default_offset = 0
        if default_data is not None:
            default_offset = position
            position += len(default_data)
        parts = [_pack_u16(default_offset, len(bodies))]
        for record, body in zip(self.lang_sys_records, bodies):
            parts.append(_tag_bytes(record.tag) + _pack_u16(position))
            position += len(body)
        if default_data is not None:
            parts.append(default_data)
        parts.extend(bodies)
        return b"".join(parts)


@dataclass
class ScriptRecord:
    """Maps a script tag to its script table."""

    tag: str
    script: ScriptTable


@dataclass
class ScriptList:
    """The script list of a layout table."""

    records: list[ScriptRecord] = field(default_factory=list)

    @classmethod
    def parse(cls, data: bytes, offset: int) -> "ScriptList":
        """Parse the list at ``offset``; an offset past the data gives an empty one."""
        if offset >= len(data):
            return cls()
        count = _u16(data, offset)
        records = []
        pos = offset + 2
        for _ in range(count):
            tag = _read_tag(data, pos)
            script_offset = _u16(data, pos + 4)
            records.append(ScriptRecord(tag, ScriptTable.parse(data, offset + script_offset)))
            pos += 6
        return cls(records)

    def to_bytes(self) -> bytes:
        """Encode the list with the script tables after the records."""
        return _tagged_list(self.records, [r.script.to_bytes() for r in self.records])


# --- Feature list ---


@dataclass
class FeatureTable:
    """A feature table listing the lookups it uses."""

    feature_params: int = 0
    lookup_indices: list[int] = field(default_factory=list)

    @classmethod
    def parse(cls, data: bytes, offset: int) -> "FeatureTable":
        """Parse the table at ``offset``; an offset past the data gives an empty one."""
        if offset >= len(data):
            return cls()
        params = _u16(data, offset)
        count = _u16(data, offset + 2)
        indices, _ = _u16_array(data, offset + 4, count)
        return cls(params, indices)

    def to_bytes(self) -> bytes:
        """Encode the table."""
        return _pack_u16(self.feature_params, len(self.lookup_indices), *self.lookup_indices)


@dataclass
class FeatureRecord:
    """Maps a feature tag to its feature table."""

    tag: str
    feature: FeatureTable


@dataclass
class FeatureList:
    """The feature list of a layout table."""

    records: list[FeatureRecord] = field(default_factory=list)

    @classmethod
    def parse(cls, data: bytes, offset: int) -> "FeatureList":
        """Parse the list at ``offset``; an offset past the data gives an empty one."""
        if offset >= len(data):
            return cls()
        count = _u16(data, offset)
        records = []
        pos = offset + 2
        for _ in range(count):
            tag = _read_tag(data, pos)
            feature_offset = _u16(data, pos + 4)
            records.append(
                FeatureRecord(tag, FeatureTable.parse(data, offset + feature_offset))
            )
            pos += 6
        return cls(records)

    def to_bytes(self) -> bytes:
        """Encode the list with the feature tables after the records."""
        return _tagged_list(self.records, [r.feature.to_bytes() for r in self.records])


# --- Lookup list ---


@dataclass
class Lookup:
    """A lookup table whose subtables are kept as raw bytes."""

    lookup_type: int = 0
    lookup_flag: int = 0
    mark_filtering_set: int = 0
    subtables: list[bytes] = field(default_factory=list)

    @property
    def has_mark_filtering_set(self) -> bool:
        return bool(self.lookup_flag & USE_MARK_FILTERING_SET)

    @classmethod
    def parse(cls, data: bytes, offset: int, end: int) -> "Lookup":
        """Parse the lookup at ``offset``; its last subtable runs up to ``end``.

        Each other subtable runs up to the start of the one after it.
        """
        if offset + 6 > len(data):
            return cls()
        lookup_type = _u16(data, offset)
        lookup_flag = _u16(data, offset + 2)
        count = _u16(data, offset + 4)
        sub_offsets, pos = _u16_array(data, offset + 6, count)
        lookup = cls(lookup_type, lookup_flag)
        if lookup.has_mark_filtering_set:
            lookup.mark_filtering_set = _u16(data, pos)

        available = len(data) - offset
        bounds = sub_offsets[1:] + [end - offset]
        for start, stop in zip(sub_offsets, bounds):
            stop = min(stop, available)
            length = max(stop - start, 0)
            lookup.subtables.append(bytes(data[offset + start:offset + start + length]))
        return lookup

    def to_bytes(self) -> bytes:
        """Encode the lookup with its subtables directly after the header."""
        position = 6 + 2 * len(self.subtables)
        if self.has_mark_filtering_set:
            position += 2
        offsets = []
        for sub in self.subtables:
            offsets.append(position)
            position += len(sub)
        parts = [_pack_u16(self.lookup_type, self.lookup_flag, len(self.subtables), *offsets)]
        if self.has_mark_filtering_set:
            parts.append(_pack_u16(self.mark_filtering_set))
        parts.extend(bytes(sub) for sub in self.subtables)
        return b"".join(parts)


@dataclass
class LookupList:
    """The lookup list of a layout table."""

    lookups: list[Lookup] = field(default_factory=list)

    @classmethod
    def parse(cls, data: bytes, offset: int) -> "LookupList":
        """Parse the list at ``offset``; each lookup ends where the next begins."""
        if offset >= len(data):
            return cls()
        count = _u16(data, offset)
        offsets, _ = _u16_array(data, offset + 2, count)
        starts = [offset + o for o in offsets]
        ends = starts[1:] + [len(data)]
        return cls([Lookup.parse(data, start, end) for start, end in zip(starts, ends)])

    def to_bytes(self) -> bytes:
        """Encode the list with the lookups after the offset array."""
        bodies = [lookup.to_bytes() for lookup in self.lookups]
        position = 2 + 2 * len(bodies)
        offsets = []
        for body in bodies:
            offsets.append(position)
            position += len(body)
        return b"".join([_pack_u16(len(bodies), *offsets)] + bodies)