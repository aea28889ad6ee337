#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from dataclasses import dataclass

# --- Map Color Constants ---
NO_MATCH = 0        # base id 0 is the game's "no color" entry
SHADE_NORMAL = 2    # shade rendered at full brightness, i.e. exactly the table color
SHADE_MULTIPLIERS = (180, 220, 255, 135)

# Base map colors in game order. Position + 1 is the base color id.
MAP_COLOR_TABLE = (
    ("GRASS", (127, 178, 56, 255), "Grass Block"),
    ("SAND", (247, 233, 163, 255), "Sand"),
    ("WOOL", (199, 199, 199, 255), "Cobweb"),
    ("FIRE", (255, 0, 0, 255), "Redstone Block"),
    ("ICE", (160, 160, 255, 255), "Ice"),
    ("METAL", (167, 167, 167, 255), "Block of Iron"),
    ("PLANT", (0, 124, 0, 255), "Wheat"),
    ("SNOW", (255, 255, 255, 255), "White Wool"),
    ("CLAY", (164, 168, 184, 255), "Clay"),
    ("DIRT", (151, 109, 77, 255), "Dirt"),
    ("STONE", (112, 112, 112, 255), "Stone"),
    ("WATER", (64, 64, 255, 255), "Water"),
    ("WOOD", (143, 119, 72, 255), "Oak Planks"),
    ("QUARTZ", (255, 252, 245, 255), "Quartz Block"),
    ("COLOR_ORANGE", (216, 127, 51, 255), "Orange Wool"),
    ("COLOR_MAGENTA", (178, 76, 216, 255), "Magenta Wool"),
    ("COLOR_LIGHT_BLUE", (102, 153, 216, 255), "Light Blue Wool"),
    ("COLOR_YELLOW", (229, 229, 51, 255), "Yellow Wool"),
    ("COLOR_LIGHT_GREEN", (127, 204, 25, 255), "Lime Wool"),
    ("COLOR_PINK", (242, 127, 165, 255), "Pink Wool"),
    ("COLOR_GRAY", (76, 76, 76, 255), "Gray Wool"),
    ("COLOR_LIGHT_GRAY", (153, 153, 153, 255), "Light Gray Wool"),
    ("COLOR_CYAN", (76, 127, 153, 255), "Cyan Wool"),
    ("COLOR_PURPLE", (127, 63, 178, 255), "Purple Wool"),
    ("COLOR_BLUE", (51, 76, 178, 255), "Blue Wool"),
    ("COLOR_BROWN", (102, 76, 51, 255), "Brown Wool"),
    ("COLOR_GREEN", (102, 127, 51, 255), "Green Wool"),
    ("COLOR_RED", (153, 51, 51, 255), "Red Wool"),
    ("COLOR_BLACK", (25, 25, 25, 255), "Black Wool"),
    ("GOLD", (250, 238, 77, 255), "Block of Gold"),
    ("DIAMOND", (92, 219, 213, 255), "Block of Diamond"),
    ("LAPIS", (74, 128, 255, 255), "Block of Lapis Lazuli"),
    ("EMERALD", (0, 217, 58, 255), "Block of Emerald"),
    ("PODZOL", (129, 86, 49, 255), "Podzol"),
    ("NETHER", (112, 2, 0, 255), "Netherrack"),
    ("TERRACOTTA_WHITE", (209, 177, 161, 255), "White Terracotta"),
    ("TERRACOTTA_ORANGE", (159, 82, 36, 255), "Orange Terracotta"),
    ("TERRACOTTA_MAGENTA", (149, 87, 108, 255), "Magenta Terracotta"),
    ("TERRACOTTA_LIGHT_BLUE", (112, 108, 138, 255), "Light Blue Terracotta"),
    ("TERRACOTTA_YELLOW", (186, 133, 36, 255), "Yellow Terracotta"),
    ("TERRACOTTA_LIGHT_GREEN", (103, 117, 53, 255), "Lime Terracotta"),
    ("TERRACOTTA_PINK", (160, 77, 78, 255), "Pink Terracotta"),
    ("TERRACOTTA_GRAY", (57, 41, 35, 255), "Gray Terracotta"),
    ("TERRACOTTA_LIGHT_GRAY", (135, 107, 98, 255), "Light Gray Terracotta"),
    ("TERRACOTTA_CYAN", (187, 92, 92, 255), "Cyan Terracotta"),
    ("TERRACOTTA_PURPLE", (122, 73, 88, 255), "Purple Terracotta"),
    ("TERRACOTTA_BLUE", (76, 62, 92, 255), "Blue Terracotta"),
    ("TERRACOTTA_BROWN", (76, 50, 35, 255), "Brown Terracotta"),
    ("TERRACOTTA_GREEN", (76, 82, 42, 255), "Green Terracotta"),
    ("TERRACOTTA_RED", (142, 60, 46, 255), "Red Terracotta"),
    ("TERRACOTTA_BLACK", (37, 22, 16, 255), "Black Terracotta"),
    ("CRIMSON_NYLIUM", (189, 48, 49, 255), "Crimson Nylium"),
    ("CRIMSON_STEM", (148, 63, 97, 255), "Crimson Stem"),
    ("CRIMSON_HYPHAE", (92, 25, 29, 255), "Crimson Hyphae"),
    ("WARPED_NYLIUM", (22, 126, 134, 255), "Warped Nylium"),
    ("WARPED_STEM", (58, 142, 140, 255), "Warped Stem"),
    ("WARPED_HYPHAE", (86, 44, 62, 255), "Warped Hyphae"),
    ("WARPED_WART_BLOCK", (20, 180, 133, 255), "Warped Wart Block"),
    ("DEEPSLATE", (100, 100, 100, 255), "Deepslate"),
    ("RAW_IRON", (216, 175, 147, 255), "Block of Raw Iron"),
    ("GLOW_LICHEN", (127, 167, 150, 255), "Glow Lichen"),
)


class PaletteError(ValueError):
    """Raised when the palette table is malformed. Never recovered from."""


@dataclass(frozen=True)
class PaletteEntry:
    id: int
    name: str
    color: tuple
    material: str

    @property
    def map_color(self):
        return map_color_code(self.id)


def map_color_code(entry_id, shade=SHADE_NORMAL):
    """Returns the byte the map file stores for a base color id. Id 0 stays 0."""
    if entry_id == NO_MATCH:
        return 0
    return entry_id * 4 + shade


def base_id_from_code(code):
    return (code & 0xFF) >> 2


def shade_from_code(code):
    return code & 0x03


def _validate_channel(value, name, record_idx):
    if isinstance(value, bool) or not isinstance(value, int):
        raise PaletteError(f"Record {record_idx} ({name}): channel {value!r} is not an integer.")
    if not 0 <= value <= 255:
        raise PaletteError(f"Record {record_idx} ({name}): channel {value} is outside 0-255.")
    return value


def load_palette(table=MAP_COLOR_TABLE):
    """
    Validates a palette table and builds the immutable palette from it.

    Each record must be (name, (r, g, b, a), material). Ids are assigned from
    the record position, starting at 1. Any malformed record aborts the whole
    load; a partial palette is never returned.

    Returns:
        tuple[PaletteEntry, ...]
    """
    entries = []
    seen_names = set()
    for record_idx, record in enumerate(table):
        if not isinstance(record, (tuple, list)) or len(record) != 3:
            raise PaletteError(f"Record {record_idx}: expected 3 fields (name, color, material), got {record!r}.")
        name, color, material = record
        if not isinstance(name, str) or not name:
            raise PaletteError(f"Record {record_idx}: name must be a non-empty string.")
        if name in seen_names:
            raise PaletteError(f"Record {record_idx}: duplicate palette name '{name}'.")
        if not isinstance(color, (tuple, list)) or len(color) != 4:
            raise PaletteError(f"Record {record_idx} ({name}): color must have 4 channels (r, g, b, a).")
        rgba = tuple(_validate_channel(c, name, record_idx) for c in color)
        if not isinstance(material, str):
            raise PaletteError(f"Record {record_idx} ({name}): material must be a string.")

        entry_id = record_idx + 1
        if map_color_code(entry_id) > 0xFF:
            raise PaletteError(f"Record {record_idx} ({name}): palette holds more colors than a map byte can address.")
        seen_names.add(name)
        entries.append(PaletteEntry(entry_id, name, rgba, material))

    if not entries:
        raise PaletteError("Palette table is empty.")
    return tuple(entries)


def parse_palette_text(text):
    """
    Parses the compact text form of the table, one color per line:

        [code|]NAME|r, g, b, a|Material

    The optional leading code must agree with the position-derived map color.
    """
    records = []
    for line_no, line in enumerate(text.strip().splitlines(), start=1):
        line = line.strip()
        if not line:
            continue
        fields = line.split('|')
        if len(fields) == 4:
            code_str, name, color_str, material = fields
            try:
                code = int(code_str)
            except ValueError:
                raise PaletteError(f"Line {line_no}: code '{code_str}' is not numeric.") from None
            expected = map_color_code(len(records) + 1)
            if code != expected:
                raise PaletteError(f"Line {line_no}: code {code} does not match position (expected {expected}).")
        elif len(fields) == 3:
            name, color_str, material = fields
        else:
            raise PaletteError(f"Line {line_no}: expected 3 or 4 '|' separated fields, got {len(fields)}.")

        try:
            color = tuple(int(c.strip()) for c in color_str.split(','))
        except ValueError:
            raise PaletteError(f"Line {line_no}: non-numeric color channel in '{color_str}'.") from None
        records.append((name.strip(), color, material.strip()))

    return load_palette(records)


def palette_by_id(palette):
    return {entry.id: entry for entry in palette}


def entry_by_name(name, palette=None):
    if palette is None:
        palette = MAP_PALETTE
    for entry in palette:
        if entry.name == name:
            return entry
    raise KeyError(name)


# Built once at import; shared read-only by every consumer.
MAP_PALETTE = load_palette()
