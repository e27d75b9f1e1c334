# utils/line_cache.py
import os, json
from concurrent.futures import ThreadPoolExecutor

import numpy as np
from tqdm import tqdm

from scoring.line_integral import line_pixels
from utils.errors import ConfigurationError, DegenerateChordError


def num_pairs(num_pins):
    return num_pins * (num_pins - 1) // 2


def pair_index(i, j, num_pins):
    """Flat slot of the unordered pair {i, j}; pairs are ordered (0,1), (0,2), ..., (P-2,P-1)."""
    if i > j:
        i, j = j, i
    return i * (2 * num_pins - i - 1) // 2 + (j - i - 1)


class LineCache:
    """
    Rasterized path of every unordered pin pair, stored arena-style.

    Paths are concatenated into flat `ys` / `xs` arrays; pair k owns
    `offsets[k]:offsets[k + 1]`. Each path is walked from the lower pin index
    to the higher one, and `path(b, a)` is the exact reverse of `path(a, b)`.
    Read-only once built.
    """

    def __init__(self, pins_xy, shape_hw, ys, xs, offsets):
        self.pins = np.asarray(pins_xy, np.int32)
        self.num_pins = int(len(self.pins))
        self.shape_hw = (int(shape_hw[0]), int(shape_hw[1]))
        self.ys = np.asarray(ys, np.int32)
        self.xs = np.asarray(xs, np.int32)
        self.offsets = np.asarray(offsets, np.int64)
        if len(self.offsets) != num_pairs(self.num_pins) + 1:
            raise ValueError(
                f"offsets has {len(self.offsets)} entries, expected {num_pairs(self.num_pins) + 1}"
            )
        self.lengths = np.diff(self.offsets).astype(np.int32)
        # row-major index into a flattened (h, w) grid
        self.flat = self.ys.astype(np.intp) * self.shape_hw[1] + self.xs

        # pair_table[a, b] -> slot, -1 on the diagonal
        P = self.num_pins
        ii, jj = np.meshgrid(np.arange(P), np.arange(P), indexing="ij")
        lo, hi = np.minimum(ii, jj), np.maximum(ii, jj)
        table = lo * (2 * P - lo - 1) // 2 + (hi - lo - 1)
        table[ii == jj] = -1
        self.pair_table = table.astype(np.int64)

        for arr in (self.pins, self.ys, self.xs, self.offsets, self.lengths, self.flat, self.pair_table):
            arr.setflags(write=False)

    def __len__(self):
        return len(self.lengths)

    @property
    def pairs(self):
        P = self.num_pins
        i, j = np.triu_indices(P, k=1)
        return np.stack([i, j], axis=1).astype(np.int32)

    def index(self, a: int, b: int) -> int:
        """Slot of chord (a, b); rejects identical or unknown pins."""
        a, b = int(a), int(b)
        if not (0 <= a < self.num_pins and 0 <= b < self.num_pins):
            raise DegenerateChordError(f"chord ({a}, {b}) references a pin outside [0, {self.num_pins})")
        if a == b:
            raise DegenerateChordError(f"chord ({a}, {b}) joins a pin to itself")
        return pair_index(a, b, self.num_pins)

    def _span(self, a, b):
        k = self.index(a, b)
        return slice(int(self.offsets[k]), int(self.offsets[k + 1])), a > b

    def path(self, a: int, b: int):
        """(ys, xs) of chord a -> b, ordered from pin a to pin b."""
        span, rev = self._span(a, b)
        ys, xs = self.ys[span], self.xs[span]
        return (ys[::-1], xs[::-1]) if rev else (ys, xs)

    def flat_path(self, a: int, b: int):
        span, rev = self._span(a, b)
        idx = self.flat[span]
        return idx[::-1] if rev else idx

    def flat_path_at(self, k: int):
        return self.flat[int(self.offsets[k]):int(self.offsets[k + 1])]

    def length(self, a: int, b: int) -> int:
        return int(self.lengths[self.index(a, b)])

    def indices_from(self, pin: int):
        """Slots of the chords from `pin` to every pin (by pin index); -1 at `pin` itself."""
        return self.pair_table[int(pin)]

    def matches(self, pins_xy, shape_hw) -> bool:
        return (tuple(shape_hw) == self.shape_hw
                and len(pins_xy) == self.num_pins
                and np.array_equal(np.asarray(pins_xy, np.int32), self.pins))


def _rasterize_from(i, pins_xy, shape_hw):
    """Paths of chords (i, j) for every j > i."""
    out = []
    p1 = (int(pins_xy[i][0]), int(pins_xy[i][1]))
    for j in range(i + 1, len(pins_xy)):
        p2 = (int(pins_xy[j][0]), int(pins_xy[j][1]))
        if p1 == p2:
            raise DegenerateChordError(f"pins {i} and {j} share pixel {p1}")
        ys, xs = line_pixels(p1, p2, shape_hw)
        if len(xs) < 2:
            raise DegenerateChordError(f"chord ({i}, {j}) rasterized to {len(xs)} pixel(s)")
        out.append((ys, xs))
    return i, out


def build_line_cache(layout, workers=None, progress=False):
    """
    Rasterize all C(P, 2) chords of a PinLayout.

    Rows of the pair table (all chords starting at pin i) are independent and
    are farmed out to a thread pool; each worker fills only its own slots.
    """
    pins_xy = layout.pixels
    shape_hw = layout.shape_hw
    P = layout.num_pins
    workers = workers or min(32, (os.cpu_count() or 1) + 4)

    slots = [None] * num_pairs(P)
    bar = tqdm(total=P - 1, desc="Rasterizing chords", disable=not progress, leave=False)
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(_rasterize_from, i, pins_xy, shape_hw) for i in range(P - 1)]
        for fut in futures:
            i, paths = fut.result()
            base = pair_index(i, i + 1, P)
            slots[base:base + len(paths)] = paths
            bar.update(1)
    bar.close()

    lengths = np.fromiter((len(xs) for _, xs in slots), dtype=np.int64, count=len(slots))
    offsets = np.zeros(len(slots) + 1, np.int64)
    np.cumsum(lengths, out=offsets[1:])
    ys = np.concatenate([ys for ys, _ in slots]) if slots else np.zeros(0, np.int32)
    xs = np.concatenate([xs for _, xs in slots]) if slots else np.zeros(0, np.int32)
    return LineCache(pins_xy, shape_hw, ys, xs, offsets)


# ---------------------------
# persistence
# ---------------------------

def cache_filename(num_pins, radius):
    size = 2 * int(radius) + 1
    return f"lines_circle_{int(num_pins)}_{size}x{size}_r{int(radius)}.npz"


def save_line_cache(cache, path):
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    meta = {
        "shape_hw": list(cache.shape_hw),
        "num_pins": cache.num_pins,
        "num_pairs": len(cache),
    }
    np.savez_compressed(
        path,
        ys=cache.ys,
        xs=cache.xs,
        offsets=cache.offsets,
        pins=cache.pins,
        meta=json.dumps(meta),
    )
    return path


def load_line_cache(path, layout=None):
    """
    Load a cache written by save_line_cache.

    Returns None when the file does not exist. With a layout, the stored
    geometry has to match it exactly.
    """
    if not os.path.exists(path):
        return None
    with np.load(path, allow_pickle=False) as z:
        meta = json.loads(str(z["meta"]))
        cache = LineCache(z["pins"], meta["shape_hw"], z["ys"], z["xs"], z["offsets"])
    if layout is not None and not cache.matches(layout.pixels, layout.shape_hw):
        raise ConfigurationError(
            f"line cache {path} was built for {cache.num_pins} pins on {cache.shape_hw}, "
            f"not {layout.num_pins} pins on {layout.shape_hw}"
        )
    return cache
