import os

import numpy as np
import pytest
from PIL import Image

import mcmapmagic
from mcmap_document import read_map_file, colors_to_id_grid, MAP_PIXELS
from mcmap_palette import MAP_PALETTE, NO_MATCH, entry_by_name, load_palette


def four_quadrant_pixels(size=256):
    half = size // 2
    pixels = np.zeros((size, size, 4), dtype=np.uint8)
    pixels[:half, :half] = entry_by_name("SNOW").color
    pixels[:half, half:] = entry_by_name("FIRE").color
    pixels[half:, :half] = entry_by_name("WATER").color
    pixels[half:, half:] = (0, 0, 0, 255)
    return pixels


def test_convert_image_writes_map_file(write_png, tmp_path):
    source = write_png(four_quadrant_pixels())
    result = mcmapmagic.convert_image(str(source), map_id=5, output_dir=str(tmp_path), progress=False)

    assert result["map_file"] == os.path.join(str(tmp_path), "map_5.dat")
    assert result["preview_file"] is None
    assert result["unmatched"] == 0

    document = read_map_file(result["map_file"])
    colors = document["data"]["colors"]
    assert len(colors) == MAP_PIXELS
    ids = colors_to_id_grid(colors)
    assert ids[0, 0] == entry_by_name("SNOW").id
    assert ids[0, 127] == entry_by_name("FIRE").id
    assert ids[127, 0] == entry_by_name("WATER").id
    assert ids[127, 127] == entry_by_name("COLOR_BLACK").id
    assert colors[0] == entry_by_name("SNOW").map_color
    assert np.array_equal(ids, result["id_grid"])


def test_convert_image_preview(write_png, tmp_path):
    source = write_png(four_quadrant_pixels(100))
    result = mcmapmagic.convert_image(str(source), output_dir=str(tmp_path), write_map=False,
                                      write_preview=True, progress=False)
    assert result["map_file"] is None
    assert "map_0.dat" not in os.listdir(tmp_path)

    with Image.open(result["preview_file"]) as preview:
        assert preview.size == (128, 128)
        assert preview.mode == "RGBA"
        assert preview.getpixel((0, 0)) == entry_by_name("SNOW").color
        assert preview.getpixel((127, 127)) == entry_by_name("COLOR_BLACK").color


def test_preview_leaves_unmatched_pixels_transparent():
    palette = load_palette([("BLACK", (0, 0, 0, 255), "Coal")])
    id_grid = np.zeros((128, 128), dtype=np.uint8)
    id_grid[64:] = 1
    preview = mcmapmagic.render_preview_image(id_grid, palette)
    assert preview.getpixel((0, 0)) == (0, 0, 0, 0)
    assert preview.getpixel((0, 100)) == (0, 0, 0, 255)


def test_preview_of_full_palette():
    id_grid = np.zeros((128, 128), dtype=np.uint8)
    for entry in MAP_PALETTE:
        id_grid[0, entry.id] = entry.id
    preview = mcmapmagic.render_preview_image(id_grid)
    for entry in MAP_PALETTE:
        assert preview.getpixel((entry.id, 0)) == entry.color
    assert preview.getpixel((0, 0)) == (0, 0, 0, 0)
    assert NO_MATCH == 0


def test_main_default_id(write_png, tmp_path, capsys):
    source = write_png(size=(300, 200), color=(127, 178, 56, 255))
    assert mcmapmagic.main([str(source), "--output-dir", str(tmp_path)]) == 0
    out = capsys.readouterr().out
    assert "Processing complete." in out
    document = read_map_file(str(tmp_path / "map_0.dat"))
    assert set(document["data"]["colors"]) == {entry_by_name("GRASS").map_color}


def test_main_with_id_preview_and_data_version(write_png, tmp_path):
    source = write_png()
    mcmapmagic.main([str(source), "--id", "12", "--preview", "--data-version", "3700",
                     "--output-dir", str(tmp_path)])
    assert (tmp_path / "map_12.dat").exists()
    assert (tmp_path / "image-map.png").exists()
    assert read_map_file(str(tmp_path / "map_12.dat"))["DataVersion"] == 3700


def test_main_with_pool(write_png, tmp_path):
    source = write_png(four_quadrant_pixels())
    mcmapmagic.main([str(source), "--cores", "2", "--output-dir", str(tmp_path)])
    ids = colors_to_id_grid(read_map_file(str(tmp_path / "map_0.dat"))["data"]["colors"])
    assert ids[0, 0] == entry_by_name("SNOW").id


def test_main_without_input_prints_usage(capsys):
    with pytest.raises(SystemExit) as excinfo:
        mcmapmagic.main([])
    assert excinfo.value.code == 2
    assert "usage" in capsys.readouterr().err


@pytest.mark.parametrize("args", [
    ["in.png", "--id", "-1"],
    ["in.png", "--id", "abc"],
    ["in.png", "--no-map-file"],
    ["in.png", "--cores", "0"],
])
def test_main_rejects_bad_arguments(args):
    with pytest.raises(SystemExit) as excinfo:
        mcmapmagic.main(args)
    assert excinfo.value.code == 2


def test_main_missing_file(tmp_path, capsys):
    with pytest.raises(SystemExit) as excinfo:
        mcmapmagic.main([str(tmp_path / "nope.png"), "--output-dir", str(tmp_path)])
    assert excinfo.value.code == 1
    assert "ERROR:" in capsys.readouterr().err
    assert os.listdir(tmp_path) == []


def test_main_undecodable_file(tmp_path, capsys):
    bogus = tmp_path / "bogus.png"
    bogus.write_bytes(b"not an image at all")
    with pytest.raises(SystemExit) as excinfo:
        mcmapmagic.main([str(bogus), "--output-dir", str(tmp_path)])
    assert excinfo.value.code == 1
    assert "Could not decode" in capsys.readouterr().err


def test_load_source_image_errors(tmp_path):
    with pytest.raises(mcmapmagic.MapInputError):
        mcmapmagic.load_source_image(str(tmp_path / "missing.png"))


def test_main_oversized_image(write_png, tmp_path, monkeypatch, capsys):
    source = write_png(size=(64, 64))
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)
    with pytest.raises(SystemExit) as excinfo:
        mcmapmagic.main([str(source), "--output-dir", str(tmp_path)])
    assert excinfo.value.code == 1
    assert "ERROR:" in capsys.readouterr().err
    assert "map_0.dat" not in os.listdir(tmp_path)
