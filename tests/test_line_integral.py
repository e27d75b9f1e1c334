import numpy as np

from scoring.line_integral import digital_line, line_pixels


def _steps(ys, xs):
    return np.abs(np.diff(ys)), np.abs(np.diff(xs))


def test_horizontal_and_vertical_lines():
    ys, xs = digital_line(0, 3, 5, 3)
    assert xs.tolist() == [0, 1, 2, 3, 4, 5]
    assert ys.tolist() == [3] * 6

    ys, xs = digital_line(2, 4, 2, 0)
    assert ys.tolist() == [4, 3, 2, 1, 0]
    assert xs.tolist() == [2] * 5


def test_diagonal_line():
    ys, xs = digital_line(0, 0, 4, -4)
    assert xs.tolist() == [0, 1, 2, 3, 4]
    assert ys.tolist() == [0, -1, -2, -3, -4]


def test_line_is_eight_connected_and_hits_both_endpoints():
    for (x0, y0, x1, y1) in [(0, 0, 17, 5), (3, 20, 9, 0), (20, 10, 3, 17), (7, 7, 0, 1)]:
        ys, xs = digital_line(x0, y0, x1, y1)
        assert (xs[0], ys[0]) == (x0, y0)
        assert (xs[-1], ys[-1]) == (x1, y1)
        dy, dx = _steps(ys, xs)
        assert dy.max() <= 1 and dx.max() <= 1
        assert len(xs) == max(abs(x1 - x0), abs(y1 - y0)) + 1


def test_single_point():
    ys, xs = digital_line(4, 2, 4, 2)
    assert ys.tolist() == [2] and xs.tolist() == [4]


def test_line_pixels_are_clipped_to_the_grid():
    ys, xs = line_pixels((-3, 1), (3, 1), (5, 5))
    assert xs.tolist() == [0, 1, 2, 3]
    assert ys.tolist() == [1, 1, 1, 1]
