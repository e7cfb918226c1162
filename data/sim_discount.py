from __future__ import annotations

import argparse
import random

import pandas as pd


def simulate(
    n: int,
    base_price: float = 1.99,
    seg_len_min: int = 40,
    seg_len_max: int = 160,
    level_step: float = 0.2,
    p_discount: float = 0.04,
    discount_len_max: int = 2,
    discount_depth: tuple[float, float] = (0.1, 0.3),
    p_missing: float = 0.0,
    seed: int = 42,
) -> pd.DataFrame:
    """
    Piecewise-constant regular price with short temporary discounts.

    Columns: t (1..n), actual, regular, cp.
    cp=1 on the LAST index of each regular-price regime (except the very last),
    which is where a perfect segmentation would split.
    """
    rnd = random.Random(seed)
    t: list[int] = []
    actual: list[float | None] = []
    regular: list[float] = []
    cp: list[int] = []

    level = float(base_price)
    i = 0
    while i < n:
        seg_len = min(rnd.randint(seg_len_min, seg_len_max), n - i)
        if i > 0:
            # new regime: move the regular price, keep it positive
            step = level_step * rnd.choice((-1.0, 1.0))
            level = round(level + step if level + step >= level_step else level + abs(step), 2)

        k = 0
        while k < seg_len:
            if rnd.random() < p_discount:
                run = min(rnd.randint(1, discount_len_max), seg_len - k)
                depth = rnd.uniform(*discount_depth)
                for _ in range(run):
                    regular.append(level)
                    actual.append(round(level * (1.0 - depth), 2))
                    k += 1
                continue
            regular.append(level)
            actual.append(level)
            k += 1

        for k in range(seg_len):
            t.append(i + k + 1)
            cp.append(1 if (k == seg_len - 1 and i + seg_len < n) else 0)
        i += seg_len

    if p_missing > 0.0:
        for j in range(len(actual)):
            if rnd.random() < p_missing:
                actual[j] = None

    return pd.DataFrame({"t": t, "actual": actual, "regular": regular, "cp": cp})


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--n", type=int, default=780)
    ap.add_argument("--out", required=True)
    ap.add_argument("--seed", type=int, default=42)
    ap.add_argument("--base_price", type=float, default=1.99)
    ap.add_argument("--seg_min", type=int, default=40)
    ap.add_argument("--seg_max", type=int, default=160)
    ap.add_argument("--level_step", type=float, default=0.2)
    ap.add_argument("--p_discount", type=float, default=0.04)
    ap.add_argument("--discount_len_max", type=int, default=2)
    ap.add_argument("--p_missing", type=float, default=0.0)
    args = ap.parse_args()

    df = simulate(
        n=args.n,
        base_price=args.base_price,
        seg_len_min=args.seg_min,
        seg_len_max=args.seg_max,
        level_step=args.level_step,
        p_discount=args.p_discount,
        discount_len_max=args.discount_len_max,
        p_missing=args.p_missing,
        seed=args.seed,
    )
    df.to_csv(args.out, index=False)
    print(f"wrote {len(df)} rows to {args.out}")


if __name__ == "__main__":
    main()
