# sfntkit

sfntkit reads and writes the sfnt font container in its common forms:

- plain TrueType fonts (`.ttf`)
- TrueType collections (`.ttc`)
- WOFF (zlib-compressed tables)
- WOFF2 (Brotli-compressed tables; the transformed `glyf`/`loca` and `hmtx`
  tables are reconstructed on reading)

It decodes the `maxp`, `loca`, `name`, `post` and `OS/2` tables into
dataclasses and writes them back, and it handles the common OpenType Layout
structures: coverage tables, class definitions, script, feature and lookup
lists.

## Installation

```
pip install sfntkit
```

The `test` extra pulls in pytest for running the test suite.

## Usage

### Loading and saving a TrueType font

```python
from sfntkit.font import Font

with open("MyFont.ttf", "rb") as fh:
    font = Font.parse(fh.read())

print(font.num_glyphs())          # from 'maxp', 0 without one
print(font.index_to_loc_format()) # 0 = short loca, 1 = long loca

with open("Copy.ttf", "wb") as fh:
    fh.write(font.serialize())
```

`Font.parse(data, offset=0)` raises `sfntkit.sfnt.FontError` (a subclass of
`ValueError`) for data it cannot read: a version other than `0x00010000` or
`'true'`, a table directory or table running past the end of the data, a table
whose checksum does not match (for `head` the checksumAdjustment field is left
out of the sum), or a decoded table that is too short.

A parsed `Font` keeps every table's raw bytes in `font.tables` and the decoded
tables in `font.maxp`, `font.name`, `font.post`, `font.os2` and `font.loca`.

`Font.serialize()` writes only these tables: `head`, `OS/2`, `name`, `maxp`,
`hhea`, `hmtx` (when `hhea` and `maxp` are present), `cmap`, `post`, `kern`,
`GPOS`, `GSUB`, and `glyf` with `loca` (when `head` is present and `loca` was
decoded). Other tables are dropped. Tables are sorted by tag, aligned to four
bytes, and `head.checksumAdjustment` is recomputed.

### Working with tables

`Font.table(tag)` returns a table's bytes; decoded tables are re-encoded from
their current values. `Font.set_table(tag, data)` replaces a table and decodes
it where the font knows the format. A missing table raises `KeyError`.

```python
from sfntkit.name import NameTable

names = NameTable.parse(font.table("name"))
font.set_table("name", names.to_bytes())

font.maxp.max_points = 200       # edited in place, written by serialize()
```

Each table class has a `parse` class method and a `to_bytes` method:

- `sfntkit.maxp.Maxp`
- `sfntkit.name.NameTable` (with `NameRecord` and `LangTagRecord`)
- `sfntkit.post.PostTable` (glyph names are read for version 2.0 only)
- `sfntkit.os2.OS2Table` (versions 0 to 5)
- `sfntkit.loca.Loca` — `Loca.parse(data, num_glyphs, index_to_loc_format)`
  and `to_bytes(index_to_loc_format)`

### OpenType Layout structures

`sfntkit.layout` provides `Coverage`, `ClassDef`, `LangSys`, `ScriptTable`,
`ScriptList`, `FeatureTable`, `FeatureList`, `Lookup` and `LookupList`. Each
parses from `(data, offset)` (`Lookup.parse` also takes the end of its data)
and encodes with `to_bytes()`. Lookup subtables are kept as raw bytes.

```python
from sfntkit.layout import Coverage

cov = Coverage.parse(data, 0)
assert Coverage.parse(cov.to_bytes(), 0) == cov
```

### Collections

```python
from sfntkit.ttc import parse_ttc, serialize_ttc

fonts = parse_ttc(ttc_bytes)       # list of Font
ttc_bytes = serialize_ttc(fonts)   # version 1.0 collection
```

### WOFF and WOFF2

```python
from sfntkit.woff import parse_woff, serialize_woff
from sfntkit.woff2 import parse_woff2, serialize_woff2

font = parse_woff2(woff2_bytes)
woff_bytes = serialize_woff(font)
woff2_bytes = serialize_woff2(font)
```

`serialize_woff` compresses each table with zlib when that makes it smaller.
`serialize_woff2` stores every table untransformed in one Brotli stream and
leaves out any `DSIG` table. `parse_woff2` reverses the `glyf`/`loca` and
`hmtx` transforms; the helpers it uses (`read_uint_base128`,
`write_uint_base128`, `read_255_uint16`, `reconstruct_glyf_loca`,
`reconstruct_hmtx`) live in `sfntkit.woff2_transform`.

### Low-level sfnt helpers

`sfntkit.sfnt` holds the shared container code: `calc_table_checksum`,
`calc_search_params`, `read_sfnt` (returns an `SfntFile` with its
`TableRecord`s and table bytes) and `write_sfnt`.

## What it does not do

- There is no command-line tool; sfntkit is a library only.
- `cmap`, `head`, `hhea`, `hmtx`, `glyf`, `kern`, `GPOS` and `GSUB` are kept
  as raw bytes; there is no API for glyph outlines, character mapping,
  metrics or kerning.
- Only TrueType-flavoured data is accepted; CFF-based (`OTTO`) fonts and EOT
  files are not read or written.
- WOFF2 output never applies table transforms, and WOFF/WOFF2 metadata and
  private blocks are ignored.