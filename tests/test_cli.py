"""End-to-end tests for the perceptual-diff command.

Tests for perceptual_diff.cli:
    - Exit codes (0 equal, 1 differ, 2 error)
    - Text and JSON reports
    - Diff image written only when images differ
    - Config file loading and flag overrides

Run:
    pytest tests/test_cli.py -v
"""

import json

import numpy as np
import pytest
import yaml

from perceptual_diff import cli
from perceptual_diff.utils import fs


def write_png(path, img):
    fs.atomic_save_image(img, path)
    return str(path)


@pytest.fixture
def black(tmp_path):
    return write_png(tmp_path / "black.png", np.zeros((4, 4, 3), dtype=np.uint8))


@pytest.fixture
def black_copy(tmp_path):
    return write_png(tmp_path / "black_copy.png", np.zeros((4, 4, 3), dtype=np.uint8))


@pytest.fixture
def one_white(tmp_path):
    """4x4 black image with a white pixel at x=1, y=2."""
    img = np.zeros((4, 4, 3), dtype=np.uint8)
    img[2, 1] = 255
    return write_png(tmp_path / "one_white.png", img)


@pytest.fixture
def near_gray(tmp_path):
    a = np.full((3, 3, 3), 100, dtype=np.uint8)
    b = a.copy()
    b[0, 0, 2] = 101
    return write_png(tmp_path / "gray_a.png", a), write_png(tmp_path / "gray_b.png", b)


# ============================================================================
# EXIT CODES
# ============================================================================

def test_identical_images_exit_0(black, black_copy, capsys):
    assert cli.main([black, black_copy]) == cli.EXIT_EQUAL
    assert "differ" not in capsys.readouterr().out


def test_differing_images_write_diff(black, one_white, tmp_path, capsys):
    out_path = tmp_path / "out" / "diff.png"
    code = cli.main([black, one_white, "-t", "2", "-d", str(out_path)])

    assert code == cli.EXIT_DIFFERENT
    stdout = capsys.readouterr().out
    assert f"Images {black} and {one_white} differ!" in stdout
    assert "Diff area xmin=1 ymin=2 xmax=1 ymax=2 (1 pixels)" in stdout
    assert "diff image saved to" in stdout

    diff = fs.load_image(out_path)
    assert diff.shape == (4, 4, 3)
    expected = np.zeros((4, 4, 3), dtype=np.uint8)
    expected[2, 1] = (200, 1, 1)
    np.testing.assert_array_equal(diff, expected)


def test_no_diff_image_when_equal(black, black_copy, tmp_path):
    out_path = tmp_path / "diff.png"
    assert cli.main([black, black_copy, "-d", str(out_path)]) == cli.EXIT_EQUAL
    assert not out_path.exists()


def test_size_mismatch_reported(black, tmp_path, capsys):
    small = write_png(tmp_path / "small.png", np.zeros((2, 2, 3), dtype=np.uint8))
    assert cli.main([small, black]) == cli.EXIT_DIFFERENT
    stdout = capsys.readouterr().out
    assert "Image sizes differ: 2x2 vs 4x4" in stdout
    assert "Diff area" not in stdout


def test_missing_file_exit_2(black, tmp_path, capsys):
    code = cli.main([black, str(tmp_path / "nope.png")])
    assert code == cli.EXIT_ERROR
    assert "error:" in capsys.readouterr().err


def test_non_image_exit_2(black, tmp_path):
    bogus = tmp_path / "bogus.png"
    bogus.write_text("not an image")
    assert cli.main([black, str(bogus)]) == cli.EXIT_ERROR


def test_negative_tolerance_exit_2(black, black_copy, capsys):
    assert cli.main([black, black_copy, "--tolerance=-1"]) == cli.EXIT_ERROR
    assert "Invalid options" in capsys.readouterr().err


def test_zero_workers_exit_2(black, black_copy):
    assert cli.main([black, black_copy, "--workers", "0"]) == cli.EXIT_ERROR


def test_uncreatable_diff_dir_exit_2(black, one_white, tmp_path, capsys):
    blocker = tmp_path / "blocker"
    blocker.write_text("regular file")
    code = cli.main([black, one_white, "-d", str(blocker / "diff.png")])
    assert code == cli.EXIT_ERROR
    assert "error:" in capsys.readouterr().err


def test_uncreatable_log_dir_exit_2(black, black_copy, tmp_path, capsys):
    blocker = tmp_path / "blocker"
    blocker.write_text("regular file")
    cfg = tmp_path / "diff.yaml"
    cfg.write_text(yaml.safe_dump({"logging": {"file": str(blocker / "logs" / "run.log")}}))
    assert cli.main([black, black_copy, "--config", str(cfg)]) == cli.EXIT_ERROR
    assert "cannot set up logging" in capsys.readouterr().err


# ============================================================================
# STRATEGY SELECTION
# ============================================================================

def test_tolerance_flag(near_gray):
    a, b = near_gray
    assert cli.main([a, b]) == cli.EXIT_DIFFERENT
    assert cli.main([a, b, "-t", "2"]) == cli.EXIT_EQUAL


def test_exact_flag_overrides_tolerance(near_gray):
    a, b = near_gray
    assert cli.main([a, b, "-t", "2", "--exact"]) == cli.EXIT_DIFFERENT


def test_partitioning_flags(black, one_white, capsys):
    code = cli.main([black, one_white, "-t", "2", "--workers", "3", "--chunk-rows", "1"])
    assert code == cli.EXIT_DIFFERENT
    assert "xmin=1 ymin=2 xmax=1 ymax=2" in capsys.readouterr().out


# ============================================================================
# CONFIG
# ============================================================================

def test_config_file(near_gray, tmp_path):
    a, b = near_gray
    cfg = tmp_path / "diff.yaml"
    cfg.write_text(yaml.safe_dump({"schema": "diff.v1", "tolerance": 2.0}))
    assert cli.main([a, b, "--config", str(cfg)]) == cli.EXIT_EQUAL
    assert cli.main([a, b, "--config", str(cfg), "-t", "0"]) == cli.EXIT_DIFFERENT


def test_config_highlight_color(black, one_white, tmp_path):
    cfg = tmp_path / "diff.yaml"
    cfg.write_text(yaml.safe_dump({"highlight_color": [0, 0, 255]}))
    out_path = tmp_path / "diff.png"
    cli.main([black, one_white, "--config", str(cfg), "-d", str(out_path)])
    assert tuple(fs.load_image(out_path)[2, 1]) == (0, 0, 255)


def test_invalid_config_exit_2(black, black_copy, tmp_path, capsys):
    cfg = tmp_path / "diff.yaml"
    cfg.write_text(yaml.safe_dump({"schema": "diff.v2"}))
    assert cli.main([black, black_copy, "--config", str(cfg)]) == cli.EXIT_ERROR
    assert "diff.v1" in capsys.readouterr().err


def test_missing_config_exit_2(black, black_copy, tmp_path):
    assert cli.main([black, black_copy, "--config", str(tmp_path / "none.yaml")]) == cli.EXIT_ERROR


def test_resolve_config_overrides():
    args = cli.parse_args([
        "a.png", "b.png", "-t", "3", "--exact", "--workers", "2",
        "--chunk-rows", "8", "--log-level", "DEBUG", "--log-json",
    ])
    cfg = cli.resolve_config(args)
    assert cfg.tolerance == 3.0
    assert cfg.mode == "exact"
    assert cfg.workers == 2
    assert cfg.chunk_rows == 8
    assert cfg.logging.level == "DEBUG"
    assert cfg.logging.json_format


def test_resolve_config_defaults():
    cfg = cli.resolve_config(cli.parse_args(["a.png", "b.png"]))
    assert cfg.mode == "perceptual"
    assert cfg.tolerance == 0.0
    assert cfg.highlight_color == (200, 1, 1)


# ============================================================================
# JSON REPORT
# ============================================================================

def test_json_report(black, one_white, capsys):
    assert cli.main([black, one_white, "--json"]) == cli.EXIT_DIFFERENT
    payload = json.loads(capsys.readouterr().out)
    assert payload["equal"] is False
    assert payload["bounding_box"] == {"xmin": 1, "ymin": 2, "xmax": 1, "ymax": 2}
    assert payload["differing_pixels"] == 1
    assert payload["diff_image"] is None
    assert payload["size1"] == {"width": 4, "height": 4}


def test_json_report_when_equal(black, black_copy, capsys):
    assert cli.main([black, black_copy, "--json"]) == cli.EXIT_EQUAL
    payload = json.loads(capsys.readouterr().out)
    assert payload["equal"] is True
    assert payload["bounding_box"] is None
