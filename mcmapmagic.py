#!/usr/bin/env python3
# -*- coding: utf-8 -*-

# --- Program Identification ---
APP_VERSION = "0.3.0"
SCRIPT_NAME = "MC Map Magic"
SCRIPT_VERSION = APP_VERSION

# --- Imports ---
import os
import argparse
import multiprocessing
import numpy as np
from PIL import Image, UnidentifiedImageError
from tqdm import tqdm

from mcmap_palette import MAP_PALETTE, NO_MATCH
from mcmap_document import (
    MAP_SIZE, DATA_VERSION, MapEncodingError, write_map_file,
)
from mcmap_report import print_banner, fail

# --- Conversion Constants ---
MATCH_THRESHOLD = 550
PREVIEW_FILENAME = "image-map.png"
BAND_HEIGHT = 8


class MapInputError(Exception):
    pass


# --- Color Difference ---
def color_distance(c1_rgba, c2_rgba):
    """
    Sum of absolute R, G and B differences; alpha is ignored.

    Returns:
        (is_match, score): is_match is True when score < MATCH_THRESHOLD.
    """
    r1, g1, b1 = (int(c) for c in c1_rgba[:3])
    r2, g2, b2 = (int(c) for c in c2_rgba[:3])
    score = abs(r1 - r2) + abs(g1 - g2) + abs(b1 - b2)
    return score < MATCH_THRESHOLD, score

def find_closest_map_color(rgba, palette=MAP_PALETTE):
    """
    Returns the matching palette entry with the lowest score, or None when no
    entry is within the threshold. Earlier entries win ties.
    """
    best_entry = None
    best_score = MATCH_THRESHOLD
    for entry in palette:
        is_match, score = color_distance(rgba, entry.color)
        if is_match and score < best_score:
            best_score = score
            best_entry = entry
            if score == 0:
                break
    return best_entry

def palette_arrays(palette):
    palette_rgb = np.array([entry.color[:3] for entry in palette], dtype=np.int32)
    palette_ids = np.array([entry.id for entry in palette], dtype=np.uint8)
    return palette_rgb, palette_ids

# --- Resampling ---
def _as_rgba_array(image):
    if isinstance(image, Image.Image):
        return np.asarray(image.convert('RGBA'), dtype=np.uint8)

    pixels = np.asarray(image)
    if pixels.ndim != 3 or pixels.shape[2] not in (3, 4):
        raise ValueError(f"Expected an (H, W, 3) or (H, W, 4) pixel array, got shape {pixels.shape}.")
    pixels = pixels.astype(np.uint8, copy=False)
    if pixels.shape[2] == 3:
        alpha = np.full(pixels.shape[:2] + (1,), 255, dtype=np.uint8)
        pixels = np.concatenate([pixels, alpha], axis=2)
    return pixels

def resample_nearest(image, target_width, target_height):
    """
    Nearest-neighbor resize: output (x, y) takes source
    (floor(x * W / target_width), floor(y * H / target_height)).
    """
    pixels = _as_rgba_array(image)
    src_height, src_width = pixels.shape[:2]
    if src_width == 0 or src_height == 0:
        raise ValueError("Cannot resample an empty image.")
    if target_width <= 0 or target_height <= 0:
        raise ValueError(f"Invalid target size {target_width}x{target_height}.")

    src_x = (np.arange(target_width, dtype=np.int64) * src_width) // target_width
    src_y = (np.arange(target_height, dtype=np.int64) * src_height) // target_height
    return np.ascontiguousarray(pixels[src_y[:, None], src_x[None, :]])

def resample_to_map_grid(image, size=MAP_SIZE):
    return resample_nearest(image, size, size)

# --- Quantization ---
def quantize_rows(pixels, palette_rgb, palette_ids):
    """
    Vectorized closest-color search over a block of pixels.

    Walks the palette in order keeping a running best score per pixel. The
    running best starts at the threshold, so an entry is taken only when it
    matches and strictly improves on every earlier match.
    """
    rgb = np.asarray(pixels)[..., :3].astype(np.int32)
    best_score = np.full(rgb.shape[:2], MATCH_THRESHOLD, dtype=np.int32)
    best_id = np.full(rgb.shape[:2], NO_MATCH, dtype=np.uint8)

    for color, entry_id in zip(palette_rgb, palette_ids):
        score = np.abs(rgb - color).sum(axis=2)
        better = score < best_score
        best_score[better] = score[better]
        best_id[better] = entry_id
    return best_id

def _init_quantize_worker(palette_rgb, palette_ids):
    global worker_palette_rgb, worker_palette_ids
    worker_palette_rgb = palette_rgb
    worker_palette_ids = palette_ids

def _quantize_band_worker(task):
    row_start, band_pixels = task
    return row_start, quantize_rows(band_pixels, worker_palette_rgb, worker_palette_ids)

def quantize_map_grid(grid, palette=MAP_PALETTE, num_cores=1, progress=True):
    """
    Maps every pixel of a grid to the id of its closest palette entry.

    Pixels with no entry within the threshold get NO_MATCH (0). With more than
    one core the rows are split in bands and processed by a process pool; the
    result does not depend on the number of cores.

    Returns:
        np.ndarray: uint8 array of palette ids with the grid's height and width.
    """
    pixels = _as_rgba_array(grid)
    height, width = pixels.shape[:2]
    palette_rgb, palette_ids = palette_arrays(palette)
    id_grid = np.zeros((height, width), dtype=np.uint8)

    tasks = [(row, pixels[row:row + BAND_HEIGHT]) for row in range(0, height, BAND_HEIGHT)]

    with tqdm(total=height, desc="   Quantizing rows", unit="row", leave=False, disable=not progress) as pbar:
        if num_cores <= 1 or len(tasks) <= 1:
            for row_start, band_pixels in tasks:
                id_grid[row_start:row_start + band_pixels.shape[0]] = quantize_rows(band_pixels, palette_rgb, palette_ids)
                pbar.update(band_pixels.shape[0])
        else:
            init_args = (palette_rgb, palette_ids)
            with multiprocessing.Pool(processes=num_cores, initializer=_init_quantize_worker, initargs=init_args) as pool:
                for row_start, band_ids in pool.imap_unordered(_quantize_band_worker, tasks):
                    id_grid[row_start:row_start + band_ids.shape[0]] = band_ids
                    pbar.update(band_ids.shape[0])
    return id_grid

def count_unmatched(id_grid):
    return int(np.count_nonzero(np.asarray(id_grid) == NO_MATCH))

# --- Preview ---
def render_preview_image(id_grid, palette=MAP_PALETTE):
    """RGBA image of the quantized grid; unset pixels stay transparent black."""
    lut = np.zeros((256, 4), dtype=np.uint8)
    for entry in palette:
        lut[entry.id] = entry.color
    return Image.fromarray(lut[np.asarray(id_grid, dtype=np.uint8)])

# --- Input ---
def load_source_image(filepath):
    try:
        with Image.open(filepath) as img:
            img.load()
            return img.convert('RGBA')
    except FileNotFoundError:
        raise MapInputError(f"Input image '{filepath}' not found.") from None
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise MapInputError(f"Could not decode '{filepath}': {e}") from e

def convert_image(input_image, map_id=0, output_dir=".", write_map=True, write_preview=False,
                  num_cores=1, data_version=DATA_VERSION, palette=MAP_PALETTE, progress=True):
    """
    Runs the whole conversion for one image.

    Returns:
        dict: 'id_grid', 'unmatched', and the written 'map_file' / 'preview_file'
        paths (None when not written).
    """
    print(f"1. Loading image '{input_image}'...")
    source = load_source_image(input_image)
    print(f"   [INFO] Source size: {source.width}x{source.height}")

    print(f"2. Resampling to {MAP_SIZE}x{MAP_SIZE} (nearest neighbor)...")
    grid = resample_to_map_grid(source)

    cores_label = "core" if num_cores <= 1 else "cores"
    print(f"3. Matching pixels against {len(palette)} map colors on {max(1, num_cores)} {cores_label}...")
    id_grid = quantize_map_grid(grid, palette, num_cores=num_cores, progress=progress)
    unmatched = count_unmatched(id_grid)
    print(f"   [INFO] {len(np.unique(id_grid[id_grid != NO_MATCH]))} distinct map colors used.")
    if unmatched:
        print(f"   [INFO] {unmatched} pixels had no map color within range and are left unset.")

    print("4. Generating output files...")
    map_file = None
    preview_file = None
    if write_map:
        map_file = write_map_file(id_grid, map_id, output_dir, data_version, palette)
        print(f"   Exported map data: {os.path.basename(map_file)}")
    if write_preview:
        preview_file = os.path.join(output_dir, PREVIEW_FILENAME)
        try:
            os.makedirs(output_dir, exist_ok=True)
            render_preview_image(id_grid, palette).save(preview_file)
        except OSError as e:
            raise MapEncodingError(f"Could not write preview '{preview_file}': {e}") from e
        print(f"   Exported preview image: {os.path.basename(preview_file)}")

    return {
        "id_grid": id_grid,
        "unmatched": unmatched,
        "map_file": map_file,
        "preview_file": preview_file,
    }

def non_negative_int(value):
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"'{value}' is not an integer.") from None
    if number < 0:
        raise argparse.ArgumentTypeError(f"'{value}' must be zero or positive.")
    return number

def build_parser():
    parser = argparse.ArgumentParser(
        description=f"Converts an image into a {MAP_SIZE}x{MAP_SIZE} map item data file (map_<id>.dat).",
        formatter_class=argparse.RawTextHelpFormatter
    )
    parser.add_argument("input_image", help="Input image file path (PNG).")
    parser.add_argument("--id", dest="map_id", type=non_negative_int, default=0, help="Map id used in the output file name map_<id>.dat. Default: 0")
    parser.add_argument("--output-dir", default=".", help="Directory for output files (defaults to current directory).")
    parser.add_argument("--preview", action="store_true", help=f"Also write a preview of the quantized map as '{PREVIEW_FILENAME}'.")
    parser.add_argument("--no-map-file", action="store_true", help="Skip writing map_<id>.dat (use with --preview).")
    parser.add_argument("--cores", type=int, default=1, help="Number of CPU cores used for color matching. Default: 1")
    parser.add_argument("--data-version", type=non_negative_int, default=DATA_VERSION,
                        help=f"DataVersion stamped into the map file. Default: {DATA_VERSION}")
    return parser

def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.no_map_file and not args.preview:
        parser.error("--no-map-file without --preview leaves nothing to write.")
    if args.cores < 1:
        parser.error("--cores must be at least 1.")

    print_banner(SCRIPT_NAME, SCRIPT_VERSION, f"Image to {MAP_SIZE}x{MAP_SIZE} map item converter")

    try:
        convert_image(
            args.input_image,
            map_id=args.map_id,
            output_dir=args.output_dir,
            write_map=not args.no_map_file,
            write_preview=args.preview,
            num_cores=args.cores,
            data_version=args.data_version,
        )
    except (MapInputError, MapEncodingError, ValueError) as e:
        fail(e)

    print("\nProcessing complete.")
    return 0

if __name__ == "__main__":
    main()
