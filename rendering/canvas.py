# rendering/canvas.py
import os
from typing import List, Tuple

import numpy as np

from utils.errors import ConfigurationError


def render_canvas(sequence, cache, thread_darkness=0.2, max_darkness=1.0, shape_hw=None,
                  snapshot_every=0, on_snapshot=None):
    """
    Replay a thread sequence onto a blank canvas.

    Every chord adds `thread_darkness` to the pixels it crosses; a pixel
    saturates at `max_darkness`. Chords are drawn in sequence order.

    Returns float64 [H, W] darkness, 0 = bare, max_darkness = fully covered.
    """
    if shape_hw is not None and tuple(shape_hw) != tuple(cache.shape_hw):
        raise ConfigurationError(
            f"canvas {shape_hw[0]}x{shape_hw[1]} does not match the pin disc "
            f"{cache.shape_hw[0]}x{cache.shape_hw[1]}"
        )
    if not float(max_darkness) > 0.0:
        raise ConfigurationError(f"max_darkness must be > 0, got {max_darkness!r}")
    if (isinstance(thread_darkness, bool) or not isinstance(thread_darkness, (int, float, np.number))
            or not np.isfinite(thread_darkness) or not thread_darkness > 0.0):
        raise ConfigurationError(f"thread_darkness must be > 0, got {thread_darkness!r}")

    canvas = np.zeros(cache.shape_hw, np.float64)
    flat = canvas.reshape(-1)
    seq = [int(p) for p in sequence]
    for t, (a, b) in enumerate(zip(seq, seq[1:]), start=1):
        idx = cache.flat_path(a, b)
        v = flat.take(idx)
        v += thread_darkness
        np.minimum(v, max_darkness, out=v)
        flat.put(idx, v)
        if snapshot_every and on_snapshot and t % snapshot_every == 0:
            on_snapshot(t, canvas.copy())
    return canvas


def to_image_u8(canvas, max_darkness=1.0):
    """White background, black thread."""
    d = np.clip(canvas / float(max_darkness), 0.0, 1.0)
    return np.round(255.0 * (1.0 - d)).astype(np.uint8)


def sequence_to_lines(sequence, layout) -> List[Tuple[int, int, int, int]]:
    '''(x1, y1, x2, y2) pin pixels of each thread.'''
    out = []
    for a, b in zip(sequence, sequence[1:]):
        x1, y1 = layout.pixel(a)
        x2, y2 = layout.pixel(b)
        out.append((x1, y1, x2, y2))
    return out


def export_svg(out_path: str, lines_xyxy: List[Tuple[int, int, int, int]], w: int, h: int, stroke_px: float = 1.0):
    '''
    Minimal SVG of the thread sequence at pixel coordinates.
    '''
    os.makedirs(os.path.dirname(os.path.abspath(out_path)), exist_ok=True)
    header = f'<svg xmlns="http://www.w3.org/2000/svg" width="{w}" height="{h}" viewBox="0 0 {w} {h}">\n'
    style = f'  <g fill="none" stroke="black" stroke-width="{stroke_px}" stroke-linecap="round">\n'
    parts = [header, style]
    for (x1, y1, x2, y2) in lines_xyxy:
        parts.append(f'    <line x1="{x1}" y1="{y1}" x2="{x2}" y2="{y2}" />\n')
    parts.append('  </g>\n</svg>\n')
    with open(out_path, 'w', encoding='utf-8') as f:
        f.writelines(parts)
