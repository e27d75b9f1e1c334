import os, glob, argparse
import imageio.v2 as imageio


def main(argv=None):
    ap = argparse.ArgumentParser()
    ap.add_argument("src", help="Directory of progress_*.png frames (main.py --save_every)")
    ap.add_argument("--out", default=None)
    ap.add_argument("--fps", type=int, default=20)
    args = ap.parse_args(argv)

    frames = sorted(glob.glob(os.path.join(args.src, "progress_*.png")))
    if not frames:
        raise FileNotFoundError(f"No progress_*.png frames in {args.src}")
    out = args.out or os.path.join(args.src, "progress.gif")
    imgs = [imageio.imread(f) for f in frames]
    imageio.mimsave(out, imgs, duration=1000.0 / max(1, args.fps), loop=0)
    print(f"✅ saved {out} ({len(frames)} frames)")
    return out


if __name__ == "__main__":
    main()
