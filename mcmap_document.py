#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import os
import tempfile

import numpy as np

from mcmap_nbt import (
    NbtError, Byte, Int, ByteArray, TagList, TAG_END,
    gzip_nbt, gunzip_nbt,
)
from mcmap_palette import MAP_PALETTE, NO_MATCH, map_color_code, base_id_from_code

# --- Constants ---
MAP_SIZE = 128
MAP_PIXELS = MAP_SIZE * MAP_SIZE
DATA_VERSION = 3955  # 1.21.1
DIMENSION_OVERWORLD = "minecraft:overworld"
MAP_FIELDS = (
    "zCenter", "unlimitedTracking", "trackingPosition", "frames", "scale",
    "locked", "dimension", "banners", "xCenter", "colors",
)
MAP_INT_FIELDS = ("zCenter", "unlimitedTracking", "trackingPosition", "scale", "locked", "xCenter")


class MapEncodingError(Exception):
    pass


def map_filename(map_id):
    if isinstance(map_id, bool) or not isinstance(map_id, (int, np.integer)) or map_id < 0:
        raise ValueError(f"Map id must be a non-negative integer, got {map_id!r}.")
    return f"map_{int(map_id)}.dat"


def id_grid_to_colors(id_grid, palette=MAP_PALETTE):
    """
    Flattens a 128x128 grid of palette ids into the 16384 map color bytes,
    row by row (y outer, x inner). Id 0 is written as byte 0.
    """
    grid = np.asarray(id_grid)
    if grid.shape != (MAP_SIZE, MAP_SIZE):
        raise MapEncodingError(f"Map grid must be {MAP_SIZE}x{MAP_SIZE}, got {'x'.join(map(str, grid.shape))}.")

    valid_ids = {NO_MATCH} | {entry.id for entry in palette}
    present = set(np.unique(grid).tolist())
    unknown = present - valid_ids
    if unknown:
        raise MapEncodingError(f"Map grid contains ids that are not in the palette: {sorted(unknown)}")

    lut = np.zeros(256, dtype=np.uint8)
    for entry in palette:
        lut[entry.id] = map_color_code(entry.id)
    return lut[grid.astype(np.intp)].tobytes()


def colors_to_id_grid(colors):
    """Inverse of id_grid_to_colors. The shade bits are dropped."""
    if len(colors) != MAP_PIXELS:
        raise MapEncodingError(f"Map colors must hold {MAP_PIXELS} bytes, found {len(colors)}.")
    codes = np.frombuffer(bytes(colors), dtype=np.uint8)
    return (codes >> 2).reshape((MAP_SIZE, MAP_SIZE))


def build_map_document(id_grid, data_version=DATA_VERSION, palette=MAP_PALETTE):
    """
    Assembles the map data document for a quantized grid.

    The map is locked, centered at (0, 0), scale 0, in the overworld, with no
    frames or banners.
    """
    colors = id_grid_to_colors(id_grid, palette)
    return {
        "DataVersion": Int(data_version),
        "data": {
            "zCenter": Int(0),
            "unlimitedTracking": Byte(0),
            "trackingPosition": Byte(0),
            "frames": TagList(TAG_END, []),
            "scale": Byte(0),
            "locked": Byte(1),
            "dimension": DIMENSION_OVERWORLD,
            "banners": TagList(TAG_END, []),
            "xCenter": Int(0),
            "colors": ByteArray(colors),
        },
    }


def encode_map_document(document):
    try:
        return gzip_nbt(document)
    except NbtError as e:
        raise MapEncodingError(f"Could not encode map document: {e}") from e


def decode_map_document(data):
    try:
        _, document = gunzip_nbt(data)
    except NbtError as e:
        raise MapEncodingError(f"Could not decode map document: {e}") from e

    map_data = document.get("data")
    if not isinstance(map_data, dict):
        raise MapEncodingError("Map document has no 'data' compound.")
    missing = [name for name in MAP_FIELDS if name not in map_data]
    if missing:
        raise MapEncodingError(f"Map document is missing fields: {', '.join(missing)}")

    if not isinstance(document.get("DataVersion", 0), int):
        raise MapEncodingError("Map document field 'DataVersion' must be an integer tag.")
    for name in MAP_INT_FIELDS:
        if not isinstance(map_data[name], int):
            raise MapEncodingError(f"Map field '{name}' must be an integer tag, found {type(map_data[name]).__name__}.")
    if not isinstance(map_data["dimension"], str):
        raise MapEncodingError("Map field 'dimension' must be a string tag.")
    for name in ("frames", "banners"):
        if not isinstance(map_data[name], TagList):
            raise MapEncodingError(f"Map field '{name}' must be a list tag, found {type(map_data[name]).__name__}.")
    if not isinstance(map_data["colors"], ByteArray):
        raise MapEncodingError(f"Map field 'colors' must be a byte array tag, found {type(map_data['colors']).__name__}.")
    if len(map_data["colors"]) != MAP_PIXELS:
        raise MapEncodingError(f"Map colors must hold {MAP_PIXELS} bytes, found {len(map_data['colors'])}.")
    return document


def _default_file_mode():
    """Mode a plainly created file gets under the current umask."""
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def write_map_file(id_grid, map_id, output_dir=".", data_version=DATA_VERSION, palette=MAP_PALETTE):
    """
    Writes map_<id>.dat for a quantized grid.

    The whole file is encoded in memory, written to a temporary file next to
    the target and renamed over it, so the target is either complete or absent.

    Returns:
        str: Path of the written file.
    """
    filename = map_filename(map_id)
    payload = encode_map_document(build_map_document(id_grid, data_version, palette))
    filepath = os.path.join(output_dir, filename)

    tmp_path = None
    try:
        os.makedirs(output_dir, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=f".{filename}.", suffix=".tmp", dir=output_dir)
        with os.fdopen(fd, "wb") as f:
            f.write(payload)
        os.chmod(tmp_path, _default_file_mode())
        os.replace(tmp_path, filepath)
        tmp_path = None
    except OSError as e:
        raise MapEncodingError(f"Could not write '{filepath}': {e}") from e
    finally:
        if tmp_path is not None and os.path.exists(tmp_path):
            os.remove(tmp_path)
    return filepath


def read_map_file(filepath):
    try:
        with open(filepath, "rb") as f:
            data = f.read()
    except OSError as e:
        raise MapEncodingError(f"Could not read '{filepath}': {e}") from e
    return decode_map_document(data)


def describe_map_document(document):
    """Summary of the metadata fields, for reports."""
    map_data = document["data"]
    codes = np.frombuffer(bytes(map_data["colors"]), dtype=np.uint8)
    return {
        "DataVersion": int(document.get("DataVersion", 0)),
        "center": (int(map_data["xCenter"]), int(map_data["zCenter"])),
        "scale": int(map_data["scale"]),
        "locked": bool(map_data["locked"]),
        "dimension": str(map_data["dimension"]),
        "frames": len(map_data["frames"].items),
        "banners": len(map_data["banners"].items),
        "unset_pixels": int(np.count_nonzero(base_id_from_code(codes) == NO_MATCH)),
    }
