import numpy as np
import pytest

from rendering.canvas import export_svg, render_canvas, sequence_to_lines, to_image_u8
from utils.errors import ConfigurationError, DegenerateChordError
from utils.line_cache import build_line_cache
from utils.pin_layout import PinLayout


@pytest.fixture(scope="module")
def layout():
    return PinLayout(8, 10)


@pytest.fixture(scope="module")
def cache(layout):
    return build_line_cache(layout, workers=1)


def test_single_thread_darkens_only_its_path(cache):
    canvas = render_canvas([0, 4], cache, thread_darkness=0.3)
    ys, xs = cache.path(0, 4)
    assert np.allclose(canvas[ys, xs], 0.3)
    mask = np.ones(canvas.shape, bool)
    mask[ys, xs] = False
    assert not canvas[mask].any()


def test_start_pin_alone_renders_blank(cache):
    assert not render_canvas([3], cache).any()


def test_darkness_saturates(cache):
    canvas = render_canvas([0, 4] * 10, cache, thread_darkness=0.3, max_darkness=1.0)
    ys, xs = cache.path(0, 4)
    assert canvas.max() == 1.0
    assert np.allclose(canvas[ys, xs], 1.0)


def test_same_chords_in_any_order_give_the_same_canvas(cache):
    a = render_canvas([0, 3, 6, 1], cache, thread_darkness=0.4)
    b = render_canvas([1, 6, 3, 0], cache, thread_darkness=0.4)
    assert np.array_equal(a, b)


def test_repeated_pin_is_degenerate(cache):
    with pytest.raises(DegenerateChordError):
        render_canvas([0, 2, 2], cache)


def test_dimension_mismatch(cache):
    with pytest.raises(ConfigurationError):
        render_canvas([0, 1], cache, shape_hw=(20, 20))


def test_snapshots(cache):
    frames = []
    render_canvas([0, 4, 1, 5, 2, 6, 3], cache, snapshot_every=2,
                  on_snapshot=lambda t, c: frames.append((t, float(c.sum()))))
    assert [t for t, _ in frames] == [2, 4, 6]
    sums = [s for _, s in frames]
    assert sums == sorted(sums)


def test_to_image_u8():
    img = to_image_u8(np.array([[0.0, 0.5, 1.0, 3.0]]))
    assert img.dtype == np.uint8
    assert img.tolist() == [[255, 128, 0, 0]]


def test_svg_export(tmp_path, layout):
    lines = sequence_to_lines([0, 4, 2], layout)
    assert lines == [(20, 10, 0, 10), (0, 10, 10, 20)]
    out = tmp_path / "svg" / "lines.svg"
    export_svg(str(out), lines, w=21, h=21)
    text = out.read_text(encoding="utf-8")
    assert text.count("<line ") == 2
    assert 'viewBox="0 0 21 21"' in text


@pytest.mark.parametrize("darkness", [-0.5, 0.0, float("nan"), None])
def test_thread_darkness_must_be_positive(cache, darkness):
    with pytest.raises(ConfigurationError):
        render_canvas([0, 2], cache, thread_darkness=darkness)
