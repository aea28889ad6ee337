#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import sys

from mcmap_palette import entry_by_name

BLOCK = "\u2588" * 2
RULE_WIDTH = 60

# Logo rows as palette color names, drawn as a grass block seen from the side.
LOGO_ROWS = (
    ("GRASS", "COLOR_LIGHT_GREEN", "GRASS", "PLANT"),
    ("COLOR_LIGHT_GREEN", "GRASS", "PLANT", "GRASS"),
    ("DIRT", "PODZOL", "DIRT", "DIRT"),
    ("PODZOL", "DIRT", "DIRT", "PODZOL"),
)


def _swatch(name, use_color):
    if not use_color:
        return BLOCK
    r, g, b, _ = entry_by_name(name).color
    return f"\033[38;2;{r};{g};{b}m{BLOCK}\033[0m"


def print_banner(title, version, subtitle=None):
    """
    Prints a tool header: a small block logo in map colors with the title
    and version on its right. Plain text when stdout is not a terminal.
    """
    use_color = sys.stdout.isatty()
    bold, reset = ("\033[1;97m", "\033[0m") if use_color else ("", "")

    logo = ["".join(_swatch(name, use_color) for name in row) for row in LOGO_ROWS]
    text = {1: f"{bold}{title}{reset} (v{version})"}
    if subtitle:
        text[2] = subtitle

    print()
    for row_idx, logo_line in enumerate(logo):
        line = text.get(row_idx)
        print(f"{logo_line}  {line}" if line else logo_line)
    print("-" * RULE_WIDTH)


def fail(error):
    """Reports a fatal error on stderr and exits with status 1."""
    print(f"\nERROR: {error}", file=sys.stderr)
    sys.exit(1)
