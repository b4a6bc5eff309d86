# Synthetic input for perf tests
from __future__ import annotations
from collections.abc import Callable

import numpy as np
import pandas as pd
import pytest


def generate_synthetic_csv(rows: int = 20_000, seed: int = 42) -> bytes:
    """Representative messy CSV: names, emails, phones, dates, amounts and free text."""
    rng = np.random.default_rng(seed)
    first = np.array(["john", "Jane", "ALICE", "bob ", "  carol"])
    domains = np.array(["gmail.com", "gmial.com", "yahooo.com", "example.org"])
    df = pd.DataFrame(
        {
            "name": [f"{first[i]} doe{j}" for i, j in zip(rng.integers(0, 5, rows), rng.integers(0, 500, rows))],
            "email": [f"user{n}@{domains[d]}" for n, d in zip(rng.integers(0, 10_000, rows), rng.integers(0, 4, rows))],
            "phone": [str(p) for p in rng.integers(2_000_000_000, 9_999_999_999, rows)],
            "signup_date": pd.to_datetime(rng.integers(1_500_000_000, 1_700_000_000, rows), unit="s").strftime("%d/%m/%Y"),
            "amount": [f"${a:,.2f}" for a in np.round(rng.uniform(1, 50_000, rows), 2)],
            "notes": rng.choice(["<b>vip</b>", "N/A", "call back", "", "null"], rows),
        }
    )
    return df.to_csv(index=False).encode("utf-8")


@pytest.fixture()
def synthetic_csv() -> Callable[..., bytes]:
    return generate_synthetic_csv
