#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import os
import argparse

import numpy as np
from PIL import Image

from mcmap_palette import (
    MAP_PALETTE, SHADE_MULTIPLIERS, NO_MATCH,
    palette_by_id, base_id_from_code, shade_from_code,
)
from mcmap_document import (
    MAP_SIZE, MapEncodingError, read_map_file, describe_map_document,
)
from mcmap_report import print_banner, fail

# --- Constants ---
VIEWER_VERSION = "0.1.0"
VIEWER_NAME = "MC Map View"

def build_color_lut(palette=MAP_PALETTE):
    """
    RGBA lookup table for every map color byte: base color times the shade
    multiplier / 255. Base id 0 and ids missing from the palette stay
    transparent.
    """
    entries = palette_by_id(palette)
    lut = np.zeros((256, 4), dtype=np.uint8)
    for code in range(256):
        entry = entries.get(base_id_from_code(code))
        if entry is None:
            continue
        r, g, b, a = entry.color
        multiplier = SHADE_MULTIPLIERS[shade_from_code(code)]
        lut[code] = (r * multiplier // 255, g * multiplier // 255, b * multiplier // 255, a)
    return lut

class MapDataConverter:
    """
    Loads a map_<id>.dat file from disk and renders it back into an image.
    """
    def __init__(self, palette=MAP_PALETTE):
        self.palette = palette
        self.known_ids = {entry.id for entry in palette}
        self.document = None
        self.codes = None

    def load_map_from_disk(self, source_filepath):
        if not os.path.exists(source_filepath):
            raise FileNotFoundError(f"Map file not found: {source_filepath}")

        self.document = read_map_file(source_filepath)
        colors = self.document["data"]["colors"]
        self.codes = np.frombuffer(bytes(colors), dtype=np.uint8).reshape((MAP_SIZE, MAP_SIZE))
        print("Map data loaded successfully.")

    def describe(self):
        return describe_map_document(self.document)

    def unknown_color_count(self):
        base_ids = base_id_from_code(self.codes)
        known = np.isin(base_ids, list(self.known_ids | {NO_MATCH}))
        return int(np.count_nonzero(~known))

    def to_image(self):
        lut = build_color_lut(self.palette)
        return Image.fromarray(lut[self.codes])

    def export_image(self, filepath):
        self.to_image().save(filepath)
        print(f"Exported image: {os.path.basename(filepath)}")

def main(argv=None):
    print_banner(VIEWER_NAME, VIEWER_VERSION)

    parser = argparse.ArgumentParser(description="Renders a map_<id>.dat file back into a PNG image.",
        formatter_class=argparse.RawTextHelpFormatter
    )
    parser.add_argument("map_file", help="Path to a map data file (e.g., map_0.dat).")
    parser.add_argument("--output", help="PNG file to write. (Defaults to the map file's name with a .png extension).")
    args = parser.parse_args(argv)

    if not args.output:
        args.output = os.path.splitext(args.map_file)[0] + ".png"

    try:
        converter = MapDataConverter()
        converter.load_map_from_disk(args.map_file)

        info = converter.describe()
        print(f"   DataVersion: {info['DataVersion']}")
        print(f"   Dimension:   {info['dimension']}")
        print(f"   Center:      {info['center'][0]}, {info['center'][1]} (scale {info['scale']})")
        print(f"   Locked:      {'yes' if info['locked'] else 'no'}")
        print(f"   Unset:       {info['unset_pixels']} pixels")
        unknown = converter.unknown_color_count()
        if unknown:
            print(f"   [INFO] {unknown} pixels use colors outside the known palette and are left transparent.")

        converter.export_image(args.output)
        print("\nExport complete.")

    except (FileNotFoundError, MapEncodingError, OSError) as e:
        fail(e)
    return 0

if __name__ == "__main__":
    main()
