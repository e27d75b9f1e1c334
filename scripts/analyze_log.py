import csv, os, argparse
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt


def read_log(path):
    ts, scores, lengths = [], [], []
    with open(path, newline="", encoding="utf-8") as f:
        r = csv.DictReader(f)
        for row in r:
            ts.append(int(row["t"]))
            scores.append(float(row["score"]))
            lengths.append(int(row["length"]))
    return ts, scores, lengths


def main(argv=None):
    ap = argparse.ArgumentParser()
    ap.add_argument("log", help="CSV written by main.py --log_csv")
    ap.add_argument("--out", default=None)
    args = ap.parse_args(argv)

    ts, scores, lengths = read_log(args.log)
    fig, ax = plt.subplots()
    ax.plot(ts, scores, label="score (mean residual)")
    ax.set_xlabel("step (t)"); ax.set_ylabel("score")
    ax2 = ax.twinx()
    ax2.plot(ts, lengths, color="tab:gray", alpha=0.4, linewidth=0.8, label="chord length")
    ax2.set_ylabel("pixels")
    ax.set_title("Line selection dynamics")
    fig.tight_layout()
    out = args.out or os.path.splitext(args.log)[0] + "_scores.png"
    fig.savefig(out, dpi=150)
    plt.close(fig)
    print(f"✅ saved {out}")
    return out


if __name__ == "__main__":
    main()
