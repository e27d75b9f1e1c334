#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import os, argparse, time

from utils.line_cache import build_line_cache, cache_filename, save_line_cache
from utils.pin_layout import PinLayout


def main(argv=None):
    ap = argparse.ArgumentParser()
    ap.add_argument("--pins", type=int, default=200)
    ap.add_argument("--radius", type=int, required=True, help="Disc radius in pixels")
    ap.add_argument("--out_dir", type=str, default="cache")
    ap.add_argument("--workers", type=int, default=None, help="Rasterizer threads (default: CPU based)")
    args = ap.parse_args(argv)

    layout = PinLayout(args.pins, args.radius)
    print(f"🧷 Precomputing chords for {layout.num_pins} pins ({layout.size}x{layout.size})…")
    t0 = time.time()
    cache = build_line_cache(layout, workers=args.workers, progress=True)
    path = save_line_cache(cache, os.path.join(args.out_dir, cache_filename(args.pins, args.radius)))
    print(f"✅ Saved {len(cache)} chords ({int(cache.lengths.sum())} px) in {time.time() - t0:.2f}s: {path}")
    return path


if __name__ == "__main__":
    main()
