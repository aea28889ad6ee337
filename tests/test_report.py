import pytest

from mcmap_report import print_banner, fail, LOGO_ROWS, RULE_WIDTH
from mcmap_palette import entry_by_name


def test_logo_uses_palette_colors():
    for row in LOGO_ROWS:
        for name in row:
            entry_by_name(name)


def test_banner_is_plain_when_not_a_terminal(capsys):
    print_banner("MC Map Magic", "0.3.0", "Image to 128x128 map item converter")
    out = capsys.readouterr().out
    assert "\033[" not in out
    assert "MC Map Magic (v0.3.0)" in out
    assert "Image to 128x128 map item converter" in out
    assert out.rstrip("\n").endswith("-" * RULE_WIDTH)


def test_banner_without_subtitle(capsys):
    print_banner("MC Map View", "0.1.0")
    lines = capsys.readouterr().out.splitlines()
    assert lines[2].endswith("MC Map View (v0.1.0)")
    assert "  " not in lines[3]


def test_fail_exits_with_status_one(capsys):
    with pytest.raises(SystemExit) as excinfo:
        fail(ValueError("bad input"))
    assert excinfo.value.code == 1
    assert "ERROR: bad input" in capsys.readouterr().err
