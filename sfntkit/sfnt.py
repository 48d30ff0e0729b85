"""Low-level sfnt container handling: table directory, checksums and assembly."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Tuple, Union

#: The whole-file checksum a correctly adjusted font must add up to.
CHECKSUM_MAGIC = 0xB1B0AFBA

#: Accepted sfnt versions: TrueType 1.0 and the legacy Apple 'true' tag.
SFNT_VERSIONS = (0x00010000, 0x74727565)

_HEADER = struct.Struct(">IHHHH")
_DIRECTORY_ENTRY = struct.Struct(">4sIII")
_U32 = struct.Struct(">I")

TableSource = Union[Mapping[str, bytes], Iterable[Tuple[str, bytes]]]


class FontError(ValueError):
    """Raised when font data is malformed or cannot be processed."""


@dataclass(frozen=True)
class TableRecord:
    """One entry of an sfnt table directory."""

    tag: str
    checksum: int
    offset: int
    length: int


@dataclass
class SfntFile:
    """The directory and raw table data of an sfnt font."""

    version: int
    num_tables: int
    search_range: int
    entry_selector: int
    range_shift: int
    records: dict[str, TableRecord] = field(default_factory=dict)
    tables: dict[str, bytes] = field(default_factory=dict)


def calc_table_checksum(data: bytes) -> int:
    """Sum the data as big-endian 32-bit words, zero padded, modulo 2**32."""
    data = bytes(data)
    remainder = len(data) % 4
    if remainder:
        data += bytes(4 - remainder)
    return sum(word for (word,) in _U32.iter_unpack(data)) & 0xFFFFFFFF


def calc_search_params(num_tables: int) -> tuple[int, int, int]:
    """Return (searchRange, entrySelector, rangeShift) for a table count."""
    if num_tables <= 0:
        return 0, 0, 0
    entry_selector = num_tables.bit_length() - 1
    search_range = ((1 << entry_selector) * 16) & 0xFFFF
    range_shift = (num_tables * 16 - search_range) & 0xFFFF
    return search_range, entry_selector, range_shift


def _without_checksum_adjustment(table: bytes) -> bytes:
    return table[:8] + bytes(4) + table[12:]


def _table_checksum(tag: str, table: bytes) -> int:
    if tag == "head" and len(table) >= 12:
        return calc_table_checksum(_without_checksum_adjustment(table))
    return calc_table_checksum(table)


def read_sfnt(data: bytes, offset: int = 0) -> SfntFile:
    """Read the sfnt header at ``offset`` and every table it lists.

    Table offsets are taken relative to the start of ``data``. Each table's
    checksum is verified; for 'head' the checksumAdjustment field is ignored.
    """
    data = bytes(data)
    if offset < 0 or offset + _HEADER.size > len(data):
        raise FontError("sfnt header truncated")
    version, num_tables, search_range, entry_selector, range_shift = _HEADER.unpack_from(
        data, offset
    )
    if version not in SFNT_VERSIONS:
        raise FontError(f"invalid version: {version:x}")

    directory_start = offset + _HEADER.size
    directory_end = directory_start + _DIRECTORY_ENTRY.size * num_tables
    if directory_end > len(data):
        raise FontError("table directory truncated")

    sfnt = SfntFile(version, num_tables, search_range, entry_selector, range_shift)
    for raw_tag, checksum, table_offset, length in _DIRECTORY_ENTRY.iter_unpack(
        data[directory_start:directory_end]
    ):
        tag = raw_tag.decode("latin-1")
        end = table_offset + length
        if end > len(data):
            raise FontError(f"invalid table directory: {tag}")
        table = data[table_offset:end]
        if tag == "head" and len(table) < 12:
            raise FontError("head table too short")
        if _table_checksum(tag, table) != checksum:
            raise FontError(f"invalid checksum: {tag}")
        sfnt.records[tag] = TableRecord(tag, checksum, table_offset, length)
        sfnt.tables[tag] = table
    return sfnt


def _align4(value: int) -> int:
    return (value + 3) & ~3


def write_sfnt(version: int, tables: TableSource, pad_final: bool = False) -> bytes:
    """Assemble an sfnt file from tag/data pairs.

    Tables are sorted by tag and each starts on a 4-byte boundary. The final
    table is padded only when ``pad_final`` is set. If a 'head' table is
    present its checksumAdjustment is computed and written.
    """
    items = tables.items() if isinstance(tables, Mapping) else tables
    entries = sorted(
        ((tag, bytes(payload)) for tag, payload in items),
        key=lambda entry: entry[0].encode("latin-1"),
    )
    num_tables = len(entries)
    if num_tables > 0xFFFF:
        raise FontError("too many tables")

    placed = []
    position = _HEADER.size + _DIRECTORY_ENTRY.size * num_tables
    for tag, payload in entries:
        position = _align4(position)
        placed.append((tag, payload, position, _table_checksum(tag, payload)))
        position += len(payload)
    total = _align4(position) if pad_final else position

    out = bytearray(total)
    _HEADER.pack_into(out, 0, version, num_tables, *calc_search_params(num_tables))
    for index, (tag, payload, table_offset, checksum) in enumerate(placed):
        _DIRECTORY_ENTRY.pack_into(
            out,
            _HEADER.size + index * _DIRECTORY_ENTRY.size,
            tag.encode("latin-1"),
            checksum,
            table_offset,
            len(payload),
        )
        out[table_offset:table_offset + len(payload)] = payload

    head = next(
        (entry for entry in placed if entry[0] == "head" and len(entry[1]) >= 12), None
    )
    if head is not None:
        head_start = head[2]
        out[head_start + 8:head_start + 12] = bytes(4)
        adjustment = (CHECKSUM_MAGIC - calc_table_checksum(out)) & 0xFFFFFFFF
        _U32.pack_into(out, head_start + 8, adjustment)
    return bytes(out)