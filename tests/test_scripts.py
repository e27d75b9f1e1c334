import csv
import os

import cv2
import numpy as np
import pytest

import main as cli
from scripts import analyze_log, build_line_cache, eval_run, make_gif
from utils.line_cache import load_line_cache
from utils.pin_layout import PinLayout


def test_build_line_cache_script(tmp_path):
    path = build_line_cache.main(["--pins", "10", "--radius", "12", "--out_dir", str(tmp_path), "--workers", "2"])
    cache = load_line_cache(path, PinLayout(10, 12))
    assert len(cache) == 45


def test_analyze_log(tmp_path):
    log = tmp_path / "run_log.csv"
    with open(log, "w", newline="", encoding="utf-8") as f:
        w = csv.writer(f)
        w.writerow(["t", "from", "to", "score", "length"])
        for t in range(1, 6):
            w.writerow([t, t - 1, t, 1.0 / t, 10 + t])
    out = analyze_log.main([str(log)])
    assert out.endswith("run_log_scores.png")
    assert os.path.getsize(out) > 0


def test_make_gif(tmp_path):
    for t in (1, 2, 3):
        cv2.imwrite(str(tmp_path / f"progress_{t:05d}.png"), np.full((8, 8), 80 * t, np.uint8))
    out = make_gif.main([str(tmp_path), "--fps", "5"])
    assert os.path.exists(out)
    with pytest.raises(FileNotFoundError):
        make_gif.main([str(tmp_path / "empty")])


def test_eval_run(tmp_path):
    img = np.full((30, 30), 255, np.uint8)
    cv2.circle(img, (15, 15), 8, 0, -1)
    src = tmp_path / "disc.png"
    cv2.imwrite(str(src), img)
    cli.main([str(src), "-p", "12", "-t", "10", "-o", str(tmp_path), "--quiet"])

    score = eval_run.main(["--recipe", str(tmp_path / "disc_12_10_recipe.json")])
    assert -1.0 <= score <= 1.0
    assert eval_run.ssim_simple(np.ones((20, 20)), np.ones((20, 20))) == pytest.approx(1.0)
