#!/usr/bin/env python3
# -*- coding: utf-8 -*-
'''
Thread an image: pins on a circle, greedy chord selection, rendered result.

  python main.py data/A.png --pins 200 --threads 1000 --csv --header
'''
import argparse
import csv
import json
import os
import time

import cv2

from rendering.canvas import export_svg, render_canvas, sequence_to_lines, to_image_u8
from selection.greedy import GreedyThreadPlanner, validate_params
from scoring.residual import ResidualField
from utils.errors import ConfigurationError
from utils.line_cache import build_line_cache, cache_filename, load_line_cache, save_line_cache
from utils.pin_layout import PinLayout
from utils.preprocess_image import load_image_gray, preprocess_image, resolve_radius


# ---------------------------
# output writers
# ---------------------------

def write_threads_csv(path, sequence, layout, write_coords=False, header=False):
    with open(path, 'w', newline='', encoding='utf-8') as f:
        w = csv.writer(f)
        if write_coords:
            if header:
                w.writerow(['x1', 'y1', 'x2', 'y2'])
            for line in sequence_to_lines(sequence, layout):
                w.writerow(line)
        else:
            if header:
                w.writerow(['pins'])
            for pin in sequence:
                w.writerow([pin])


def write_step_log(path, log):
    with open(path, 'w', newline='', encoding='utf-8') as f:
        w = csv.writer(f)
        w.writerow(['t', 'from', 'to', 'score', 'length'])
        for row in log:
            w.writerow([row['t'], row['from'], row['to'], f"{row['score']:.6f}", row['length']])


def _apply_recipe(args):
    '''Algorithm knobs come from the recipe; output/export flags stay as typed.'''
    if not args.recipe:
        return args
    with open(args.recipe, 'r', encoding='utf-8') as f:
        R = json.load(f)

    if not (args.image and os.path.exists(args.image)) and R.get('image'):
        base = os.path.dirname(os.path.abspath(args.recipe))
        cand = R['image'] if os.path.isabs(R['image']) else os.path.join(base, R['image'])
        if os.path.exists(cand):
            args.image = cand

    args.pins = int(R.get('pins', args.pins))
    args.radius = int(R['radius']) if R.get('radius') is not None else args.radius
    P = R.get('params', {})
    args.threads        = int(P.get('num_lines', args.threads))
    args.start_pin      = int(P.get('start_pin', args.start_pin))
    args.darkness       = float(P.get('thread_darkness', args.darkness))
    args.recent_window  = int(P.get('recent_window', args.recent_window))
    args.min_score      = float(P.get('min_score', args.min_score))
    args.tie_break      = str(P.get('tie_break', args.tie_break))
    return args


def build_parser():
    ap = argparse.ArgumentParser(description='Approximate an image with straight threads strung between pins on a circle.')
    ap.add_argument('image', nargs='?', default=None, help='Path to the target image')
    ap.add_argument('-p', '--pins', type=int, default=200, help='Number of pins on the loom')
    ap.add_argument('-t', '--threads', type=int, default=1000, help='Maximum number of threads used')
    ap.add_argument('-r', '--radius', type=int, default=None,
                    help='Radius of the output in pixels; capped at min(width, height), which is also the default')
    ap.add_argument('-o', '--output', type=str, default=None,
                    help="Output directory. Defaults to the input image's directory")

    ap.add_argument('--csv', action='store_true', help='Save thread information to a CSV')
    ap.add_argument('--no_img', action='store_true', help='Skip image generation (requires --csv)')
    ap.add_argument('--write_coords', action='store_true',
                    help='Write pixel coordinates of both ends of each thread instead of pin numbers (requires --csv)')
    ap.add_argument('--header', action='store_true',
                    help='Include a CSV header line: `x1,y1,x2,y2` with --write_coords, otherwise `pins` (requires --csv)')

    # thread model + selection policy
    ap.add_argument('--darkness', type=float, default=0.2, help='Darkness one thread removes from each pixel')
    ap.add_argument('--max_darkness', type=float, default=1.0, help='Saturation level of the rendered canvas')
    ap.add_argument('--recent_window', type=int, default=20, help='Recently used chords that may not be reused')
    ap.add_argument('--min_score', type=float, default=0.0, help='Stop once the best chord scores at or below this')
    ap.add_argument('--tie_break', type=str, default='lowest', choices=['lowest', 'highest'])
    ap.add_argument('--start_pin', type=int, default=0)
    ap.add_argument('--workers', type=int, default=1, help='Threads used to score candidates')

    # extras
    ap.add_argument('--cache_dir', type=str, default=None,
                    help='Reuse (or create) a chord cache in this directory')
    ap.add_argument('--save_every', type=int, default=0, help='Write a progress frame every N threads')
    ap.add_argument('--export_svg', action='store_true')
    ap.add_argument('--svg_stroke', type=float, default=1.0)
    ap.add_argument('--log_csv', action='store_true', help='Write per-step scores to <prefix>_log.csv')
    ap.add_argument('--recipe', type=str, default=None, help='Replay the settings of a saved recipe.json')
    ap.add_argument('--quiet', action='store_true', help='No progress bars')
    return ap


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    args = _apply_recipe(args)

    if not args.csv:
        for flag in ('no_img', 'write_coords', 'header'):
            if getattr(args, flag):
                parser.error(f'--{flag} requires --csv')
    if args.image is None:
        parser.error('an image path is required (directly or through --recipe)')

    raw = load_image_gray(args.image)
    try:
        radius = resolve_radius(raw.shape, args.radius)
        layout = PinLayout(args.pins, radius)
        target = preprocess_image(raw, radius)
        params = dict(
            num_lines=args.threads,
            start_pin=args.start_pin,
            thread_darkness=args.darkness,
            recent_window=args.recent_window,
            min_score=args.min_score,
            tie_break=args.tie_break,
            workers=args.workers,
        )
        params = validate_params(params, layout.num_pins)

        # chord cache
        cache = None
        if args.cache_dir:
            cache_path = os.path.join(args.cache_dir, cache_filename(layout.num_pins, radius))
            cache = load_line_cache(cache_path, layout)
            if cache is not None:
                print(f'📦 Loaded chord cache: {cache_path}')
        if cache is None:
            print(f'🧷 Precomputing chords for {layout.num_pins} pins ({layout.size}x{layout.size})…')
            cache = build_line_cache(layout, progress=not args.quiet)
            if args.cache_dir:
                save_line_cache(cache, cache_path)
                print(f'✅ Saved chord cache: {cache_path}')

        field = ResidualField(target, shape_hw=layout.shape_hw)
        planner = GreedyThreadPlanner(field, cache, params)
    except ConfigurationError as e:
        parser.error(str(e))

    t0 = time.time()
    sequence, log = planner.run(progress=not args.quiet)
    dt = time.time() - t0
    if planner.stop_reason != 'line_budget':
        print(f'⚠️ Stopped early after {len(log)} threads ({planner.stop_reason})')

    stem = os.path.splitext(os.path.basename(args.image))[0]
    prefix = f'{stem}_{args.pins}_{args.threads}'
    out_dir = args.output or os.path.dirname(os.path.abspath(args.image))
    os.makedirs(out_dir, exist_ok=True)

    if not args.no_img:
        frames_dir = os.path.join(out_dir, f'{prefix}_frames')

        def _save_frame(t, canvas):
            os.makedirs(frames_dir, exist_ok=True)
            cv2.imwrite(os.path.join(frames_dir, f'progress_{t:05d}.png'), to_image_u8(canvas, args.max_darkness))

        canvas = render_canvas(sequence, cache, thread_darkness=args.darkness, max_darkness=args.max_darkness,
                               shape_hw=layout.shape_hw, snapshot_every=args.save_every, on_snapshot=_save_frame)
        img_path = os.path.join(out_dir, f'{prefix}_threaded.png')
        cv2.imwrite(img_path, to_image_u8(canvas, args.max_darkness))
        print(f'🖼️ image: {img_path}')

    if args.csv:
        csv_path = os.path.join(out_dir, f'{prefix}_threads.csv')
        write_threads_csv(csv_path, sequence, layout, write_coords=args.write_coords, header=args.header)
        print(f'📝 threads: {csv_path}')

    if args.log_csv:
        log_path = os.path.join(out_dir, f'{prefix}_log.csv')
        write_step_log(log_path, log)
        print(f'📝 log: {log_path}')

    if args.export_svg:
        svg_path = os.path.join(out_dir, f'{prefix}.svg')
        export_svg(svg_path, sequence_to_lines(sequence, layout), w=layout.size, h=layout.size, stroke_px=args.svg_stroke)
        print(f'🖨️  SVG: {svg_path}')

    recipe_path = os.path.join(out_dir, f'{prefix}_recipe.json')
    img_for_recipe = os.path.relpath(os.path.abspath(args.image), start=os.path.dirname(os.path.abspath(recipe_path)))
    recipe = dict(
        image=img_for_recipe,
        pins=layout.num_pins,
        radius=radius,
        params={k: v for k, v in planner.P.items() if k != 'workers'},
        sequence=sequence,
        stats=dict(lines_drawn=len(sequence) - 1, stop_reason=planner.stop_reason, seconds=dt),
    )
    with open(recipe_path, 'w', encoding='utf-8') as f:
        json.dump(recipe, f, indent=2)

    print(f'✅ threads drawn: {len(sequence) - 1} in {dt:.2f}s')
    return sequence


if __name__ == '__main__':
    main()
