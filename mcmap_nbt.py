#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Minimal NBT (named binary tag) codec for map data files.

Values are written big-endian. Python values map to tags as follows:
    Byte/Short/Int/Long/Float/Double wrappers -> the matching numeric tag
    bool -> TAG_Byte, int -> TAG_Int, float -> TAG_Double
    str -> TAG_String, bytes/ByteArray -> TAG_Byte_Array
    dict -> TAG_Compound, list/TagList -> TAG_List
    IntArray/LongArray -> TAG_Int_Array/TAG_Long_Array
The decoder returns the wrapper types, so a decoded document re-encodes to the
same bytes.
"""

import gzip
import io
import struct
import zlib
from dataclasses import dataclass, field

# --- Tag Ids ---
TAG_END = 0
TAG_BYTE = 1
TAG_SHORT = 2
TAG_INT = 3
TAG_LONG = 4
TAG_FLOAT = 5
TAG_DOUBLE = 6
TAG_BYTE_ARRAY = 7
TAG_STRING = 8
TAG_LIST = 9
TAG_COMPOUND = 10
TAG_INT_ARRAY = 11
TAG_LONG_ARRAY = 12

MAX_DEPTH = 512


class NbtError(Exception):
    pass


# --- Typed Wrappers ---
class Byte(int):
    pass


class Short(int):
    pass


class Int(int):
    pass


class Long(int):
    pass


class Float(float):
    pass


class Double(float):
    pass


class ByteArray(bytes):
    pass


class IntArray(list):
    pass


class LongArray(list):
    pass


@dataclass
class TagList:
    inner_tag: int
    items: list = field(default_factory=list)


_NUMERIC_FORMATS = {
    TAG_BYTE: ">b",
    TAG_SHORT: ">h",
    TAG_INT: ">i",
    TAG_LONG: ">q",
    TAG_FLOAT: ">f",
    TAG_DOUBLE: ">d",
}

_NUMERIC_WRAPPERS = {
    TAG_BYTE: Byte,
    TAG_SHORT: Short,
    TAG_INT: Int,
    TAG_LONG: Long,
    TAG_FLOAT: Float,
    TAG_DOUBLE: Double,
}


def tag_type(value):
    # Wrappers first: they subclass int/float/bytes/list.
    if isinstance(value, Byte) or isinstance(value, bool):
        return TAG_BYTE
    if isinstance(value, Short):
        return TAG_SHORT
    if isinstance(value, Long):
        return TAG_LONG
    if isinstance(value, int):
        return TAG_INT
    if isinstance(value, Float):
        return TAG_FLOAT
    if isinstance(value, float):
        return TAG_DOUBLE
    if isinstance(value, str):
        return TAG_STRING
    if isinstance(value, (bytes, bytearray)):
        return TAG_BYTE_ARRAY
    if isinstance(value, IntArray):
        return TAG_INT_ARRAY
    if isinstance(value, LongArray):
        return TAG_LONG_ARRAY
    if isinstance(value, (TagList, list)):
        return TAG_LIST
    if isinstance(value, dict):
        return TAG_COMPOUND
    raise NbtError(f"Unsupported Python type for NBT: {type(value).__name__}")


# --- Encoding ---
def _write_string(out, s):
    raw = s.encode("utf-8")
    if len(raw) > 0xFFFF:
        raise NbtError("NBT string too long.")
    out.write(struct.pack(">H", len(raw)))
    out.write(raw)


def _write_payload(out, tag, value, depth=0):
    if depth > MAX_DEPTH:
        raise NbtError("NBT nesting too deep.")
    try:
        if tag in _NUMERIC_FORMATS:
            if tag == TAG_BYTE and isinstance(value, bool):
                value = int(value)
            out.write(struct.pack(_NUMERIC_FORMATS[tag], value))
        elif tag == TAG_BYTE_ARRAY:
            out.write(struct.pack(">i", len(value)))
            out.write(bytes(value))
        elif tag == TAG_STRING:
            _write_string(out, value)
        elif tag == TAG_LIST:
            if isinstance(value, TagList):
                inner, items = value.inner_tag, value.items
            else:
                items = value
                inner = tag_type(items[0]) if items else TAG_END
            if items and inner == TAG_END:
                raise NbtError("Non-empty NBT list cannot have element type TAG_End.")
            out.write(struct.pack(">bi", inner, len(items)))
            for item in items:
                if tag_type(item) != inner and not (inner in _NUMERIC_FORMATS and isinstance(item, (int, float))):
                    raise NbtError(f"NBT list item {item!r} does not match element tag {inner}.")
                _write_payload(out, inner, item, depth + 1)
        elif tag == TAG_COMPOUND:
            for key, item in value.items():
                item_tag = tag_type(item)
                out.write(struct.pack(">b", item_tag))
                _write_string(out, key)
                _write_payload(out, item_tag, item, depth + 1)
            out.write(struct.pack(">b", TAG_END))
        elif tag == TAG_INT_ARRAY:
            out.write(struct.pack(f">i{len(value)}i", len(value), *value))
        elif tag == TAG_LONG_ARRAY:
            out.write(struct.pack(f">i{len(value)}q", len(value), *value))
        else:
            raise NbtError(f"Unsupported NBT tag {tag}.")
    except struct.error as e:
        raise NbtError(f"Value {value!r} does not fit NBT tag {tag}: {e}") from e


def encode_nbt(root, name=""):
    """Encodes a dict as an uncompressed NBT document with a root compound."""
    if not isinstance(root, dict):
        raise NbtError("NBT root must be a compound (dict).")
    out = io.BytesIO()
    out.write(struct.pack(">b", TAG_COMPOUND))
    _write_string(out, name)
    _write_payload(out, TAG_COMPOUND, root)
    return out.getvalue()


# --- Decoding ---
class _Reader:
    def __init__(self, data):
        self.data = data
        self.pos = 0

    def read(self, n):
        if self.pos + n > len(self.data):
            raise NbtError("Unexpected end of NBT data.")
        chunk = self.data[self.pos:self.pos + n]
        self.pos += n
        return chunk

    def unpack(self, fmt):
        size = struct.calcsize(fmt)
        return struct.unpack(fmt, self.read(size))

    def read_string(self):
        (length,) = self.unpack(">H")
        try:
            return self.read(length).decode("utf-8")
        except UnicodeDecodeError as e:
            raise NbtError(f"Invalid UTF-8 in NBT string: {e}") from e


def _read_length(reader):
    (length,) = reader.unpack(">i")
    if length < 0:
        raise NbtError("Negative length in NBT data.")
    return length


def _read_payload(reader, tag, depth=0):
    if depth > MAX_DEPTH:
        raise NbtError("NBT nesting too deep.")
    if tag in _NUMERIC_FORMATS:
        (value,) = reader.unpack(_NUMERIC_FORMATS[tag])
        return _NUMERIC_WRAPPERS[tag](value)
    if tag == TAG_BYTE_ARRAY:
        return ByteArray(reader.read(_read_length(reader)))
    if tag == TAG_STRING:
        return reader.read_string()
    if tag == TAG_LIST:
        (inner,) = reader.unpack(">b")
        length = _read_length(reader)
        return TagList(inner, [_read_payload(reader, inner, depth + 1) for _ in range(length)])
    if tag == TAG_COMPOUND:
        compound = {}
        while True:
            (item_tag,) = reader.unpack(">b")
            if item_tag == TAG_END:
                return compound
            key = reader.read_string()
            compound[key] = _read_payload(reader, item_tag, depth + 1)
    if tag == TAG_INT_ARRAY:
        length = _read_length(reader)
        return IntArray(reader.unpack(f">{length}i"))
    if tag == TAG_LONG_ARRAY:
        length = _read_length(reader)
        return LongArray(reader.unpack(f">{length}q"))
    raise NbtError(f"Unknown NBT tag {tag}.")


def decode_nbt(raw):
    """
    Decodes an uncompressed NBT document.

    Returns:
        (root_name, root_compound)
    """
    reader = _Reader(raw)
    (root_tag,) = reader.unpack(">b")
    if root_tag != TAG_COMPOUND:
        raise NbtError(f"NBT root tag must be TAG_Compound, found {root_tag}.")
    name = reader.read_string()
    root = _read_payload(reader, TAG_COMPOUND)
    if reader.pos != len(raw):
        raise NbtError(f"{len(raw) - reader.pos} trailing bytes after NBT root.")
    return name, root


# --- Compression ---
def gzip_nbt(root, name=""):
    return gzip.compress(encode_nbt(root, name))


def gunzip_nbt(data):
    try:
        raw = gzip.decompress(data)
    except (OSError, EOFError, zlib.error) as e:
        raise NbtError(f"Not a gzip-compressed NBT file: {e}") from e
    return decode_nbt(raw)
