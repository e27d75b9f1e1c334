# scoring/line_integral.py
import numpy as np


def digital_line(x0, y0, x1, y1):
    """
    Integer pixels of the segment (x0, y0) -> (x1, y1), endpoints included.

    Steps one pixel at a time along the major axis and rounds the minor axis
    to the nearest pixel (halves round away from the start), which is the
    pixel set Bresenham's algorithm produces. Always walks from the first
    endpoint, so the caller decides orientation.
    """
    x0, y0, x1, y1 = int(x0), int(y0), int(x1), int(y1)
    dx, dy = x1 - x0, y1 - y0
    n = max(abs(dx), abs(dy))
    if n == 0:
        return np.array([y0], np.int32), np.array([x0], np.int32)
    t = np.arange(n + 1, dtype=np.int64)
    # round(t * |d| / n) in integer arithmetic
    xs = x0 + np.sign(dx) * ((2 * abs(dx) * t + n) // (2 * n))
    ys = y0 + np.sign(dy) * ((2 * abs(dy) * t + n) // (2 * n))
    return ys.astype(np.int32), xs.astype(np.int32)  # row, col


def line_pixels(p1, p2, shape_hw):
    """Pixels of the chord p1 -> p2, clipped to the (h, w) bounding box."""
    h, w = shape_hw
    x1, y1 = p1; x2, y2 = p2
    ys, xs = digital_line(x1, y1, x2, y2)
    keep = (ys >= 0) & (ys < h) & (xs >= 0) & (xs < w)
    return ys[keep], xs[keep]

