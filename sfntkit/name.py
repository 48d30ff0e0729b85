"""The 'name' (naming) table."""

from __future__ import annotations

import struct
from dataclasses import astuple, dataclass, field

from .sfnt import FontError

_HEADER = struct.Struct(">HHH")
_NAME_RECORD = struct.Struct(">6H")
_LANG_TAG_RECORD = struct.Struct(">2H")
_U16 = struct.Struct(">H")


@dataclass(frozen=True)
class NameRecord:
    """A name record pointing into string storage."""

    platform_id: int
    encoding_id: int
    language_id: int
    name_id: int
    length: int
    offset: int


@dataclass(frozen=True)
class LangTagRecord:
    """A language-tag record (format 1) pointing into string storage."""

    length: int
    offset: int


def _unpack_records(layout: struct.Struct, data: bytes, pos: int, count: int):
    end = pos + layout.size * count
    if end > len(data):
        raise FontError("name table truncated")
    return list(layout.iter_unpack(data[pos:end])), end


@dataclass
class NameTable:
    """Naming table with its records and raw string storage."""

    format: int = 0
    string_offset: int = 0
    name_records: list[NameRecord] = field(default_factory=list)
    lang_tag_records: list[LangTagRecord] = field(default_factory=list)
    string_storage: bytes = b""

    @property
    def count(self) -> int:
        return len(self.name_records)

    @property
    def lang_tag_count(self) -> int:
        return len(self.lang_tag_records)

    @classmethod
    def parse(cls, data: bytes) -> "NameTable":
        """Parse a format 0 or format 1 naming table."""
        data = bytes(data)
        if len(data) < _HEADER.size:
            raise FontError("name table too short")
        fmt, count, string_offset = _HEADER.unpack_from(data)
        raw_records, pos = _unpack_records(_NAME_RECORD, data, _HEADER.size, count)
        lang_tags: list[LangTagRecord] = []
        if fmt == 1:
            if pos + _U16.size > len(data):
                raise FontError("name table truncated")
            (lang_tag_count,) = _U16.unpack_from(data, pos)
            raw_tags, pos = _unpack_records(
                _LANG_TAG_RECORD, data, pos + _U16.size, lang_tag_count
            )
            lang_tags = [LangTagRecord(*values) for values in raw_tags]
        if string_offset > len(data):
            raise FontError("name string storage out of bounds")
        return cls(
            format=fmt,
            string_offset=string_offset,
            name_records=[NameRecord(*values) for values in raw_records],
            lang_tag_records=lang_tags,
            string_storage=data[string_offset:],
        )

    def to_bytes(self) -> bytes:
        """Encode the table; string storage follows the records directly."""
        parts = [_HEADER.pack(self.format, self.count, self.string_offset)]
        parts.extend(_NAME_RECORD.pack(*astuple(record)) for record in self.name_records)
        if self.format == 1:
            parts.append(_U16.pack(self.lang_tag_count))
            parts.extend(
                _LANG_TAG_RECORD.pack(*astuple(record)) for record in self.lang_tag_records
            )
        parts.append(bytes(self.string_storage))
        return b"".join(parts)