#!/usr/bin/env python3
"""Dirty CSV generation script for manual performance runs.

Generates a synthetic CSV with the kinds of problems the cleaner repairs:
- exact and case/space variant duplicates
- null sentinels (N/A, null, #REF!, ...)
- typo'd email domains and upper-case addresses
- phone numbers in mixed formats
- dates in mixed formats
- HTML fragments and currency-formatted amounts
- malformed rows with missing or extra cells
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

import numpy as np
import pandas as pd

NULL_TOKENS = ["", "N/A", "null", "NONE", "-", "#REF!", "..."]
EMAIL_DOMAINS = ["gmail.com", "gmial.com", "yahooo.com", "hotmail.com", "outlook.com"]
CITIES = ["new york", "LOS ANGELES", "Chicago", "houston", "  phoenix  "]


def _phones(rng: np.random.Generator, rows: int) -> list[str]:
    digits = rng.integers(2_000_000_000, 9_999_999_999, rows)
    styles = rng.integers(0, 4, rows)
    out = []
    for d, s in zip(digits, styles):
        t = str(d)
        if s == 0:
            out.append(t)
        elif s == 1:
            out.append(f"{t[:3]}-{t[3:6]}-{t[6:]}")
        elif s == 2:
            out.append(f"+1 {t[:3]}.{t[3:6]}.{t[6:]}")
        else:
            out.append(f"1{t}")
    return out


def _dates(rng: np.random.Generator, rows: int) -> list[str]:
    base = pd.date_range("2020-01-01", "2024-12-31", periods=365)
    picks = rng.choice(len(base), rows)
    formats = ["%Y-%m-%d", "%d/%m/%Y", "%m/%d/%Y", "%b %d, %Y", "%d %B %Y"]
    fmt_idx = rng.integers(0, len(formats), rows)
    return [base[p].strftime(formats[f]) for p, f in zip(picks, fmt_idx)]


def generate_dirty_frame(rows: int, seed: int = 42, null_rate: float = 0.05) -> pd.DataFrame:
    """Build a DataFrame of dirty string cells (before duplicates are injected)."""
    rng = np.random.default_rng(seed)
    first = rng.choice(["john", "JANE", "Alice", "bob", "\u00c9mile"], rows)
    last = rng.choice(["doe", "SMITH", "Brown", "o'neil"], rows)
    names = [f"{f} {l}" for f, l in zip(first, last)]
    domains = rng.choice(EMAIL_DOMAINS, rows)
    emails = [
        (f"{f}.{l}@{d}".upper() if i % 7 == 0 else f"{f}.{l}@{d}").replace(" ", "")
        for i, (f, l, d) in enumerate(zip(first, last, domains))
    ]
    amounts = rng.uniform(1, 50_000, rows)
    amount_cells = [f"${a:,.2f}" if i % 3 == 0 else f"{a:.2f}" for i, a in enumerate(amounts)]
    notes = rng.choice(["<b>priority</b>", "call back", "&amp; more", "ok", "1234567"], rows)

    df = pd.DataFrame(
        {
            "ID": np.arange(1, rows + 1),
            "Full Name": names,
            "E-mail": emails,
            "Phone": _phones(rng, rows),
            "City": rng.choice(CITIES, rows),
            "Signup Date": _dates(rng, rows),
            "Amount": amount_cells,
            "Description": notes,
        }
    ).astype(str)

    mask = rng.random(df.shape) < null_rate
    mask[:, 0] = False
    tokens = rng.choice(NULL_TOKENS, df.shape)
    return df.mask(mask, pd.DataFrame(tokens, columns=df.columns, index=df.index))


def inject_duplicates(df: pd.DataFrame, rate: float, seed: int = 42) -> pd.DataFrame:
    """Append exact copies and case/space variants of random rows."""
    rng = np.random.default_rng(seed + 1)
    n = int(len(df) * rate)
    if n == 0:
        return df
    exact = df.sample(n=n, random_state=seed).copy()
    variant = df.sample(n=n, random_state=seed + 2).copy()
    variant["Full Name"] = variant["Full Name"].str.upper().str.replace(" ", "  ", regex=False)
    combined = pd.concat([df, exact, variant], ignore_index=True)
    return combined.iloc[rng.permutation(len(combined))].reset_index(drop=True)


def write_dirty_csv(df: pd.DataFrame, output_path: Path, malformed_every: int = 0) -> int:
    """Write the frame as CSV, breaking every ``malformed_every``-th row. Returns bytes written."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    text = df.to_csv(index=False)
    if malformed_every > 0:
        lines = text.splitlines()
        for i in range(1 + malformed_every, len(lines), malformed_every):
            # 1 列欠落 / 1 列余分 を交互に
            lines[i] = lines[i].rsplit(",", 1)[0] if (i // malformed_every) % 2 else lines[i] + ",extra"
        text = "\n".join(lines) + "\n"
    output_path.write_text(text, encoding="utf-8")
    return len(text.encode("utf-8"))


def main() -> int:
    """Main CLI interface for dataset generation."""
    parser = argparse.ArgumentParser(
        description="Generate synthetic dirty CSV datasets for performance runs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # 100k rows with 5% duplicates
  %(prog)s data/dirty.csv

  # 1M rows, 10% duplicates, a malformed row every 500 lines
  %(prog)s data/big.csv --rows 1000000 --dup-rate 0.1 --malformed-every 500
        """,
    )
    parser.add_argument("output", type=Path, help="Output CSV file path")
    parser.add_argument("--rows", type=int, default=100_000, help="Number of base rows (default: 100,000)")
    parser.add_argument("--dup-rate", type=float, default=0.05, help="Share of rows duplicated (default: 0.05)")
    parser.add_argument("--null-rate", type=float, default=0.05, help="Share of null-token cells (default: 0.05)")
    parser.add_argument("--malformed-every", type=int, default=0, help="Break every N-th row (default: off)")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    parser.add_argument("--dry-run", action="store_true", help="Show the plan without creating files")
    args = parser.parse_args()

    if args.rows <= 0:
        print("Error: --rows must be positive", file=sys.stderr)
        return 1
    if not 0 <= args.dup_rate <= 1 or not 0 <= args.null_rate <= 1:
        print("Error: rates must be within [0, 1]", file=sys.stderr)
        return 1

    print("Dataset generation plan:")
    print(f"  Output file: {args.output}")
    print(f"  Base rows: {args.rows:,} (+ {int(args.rows * args.dup_rate) * 2:,} duplicates)")
    print(f"  Null rate: {args.null_rate}  Malformed every: {args.malformed_every or 'off'}")
    print(f"  Random seed: {args.seed}")
    if args.dry_run:
        print("\n[DRY RUN] Would generate the file but not creating it.")
        return 0

    df = generate_dirty_frame(args.rows, args.seed, args.null_rate)
    df = inject_duplicates(df, args.dup_rate, args.seed)
    size = write_dirty_csv(df, args.output, args.malformed_every)
    print(f"\nCreated {args.output}: {len(df):,} rows, {size / (1024 * 1024):.1f} MB")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
