from __future__ import annotations

import time

import pytest

from datascrub.models.config_models import AdvancedOptions, CleaningConfig, CleaningMode
from datascrub.services.pipeline import clean_file

"""Performance test: cleaning throughput budget.

Cleans a synthetic 20k row CSV in memory and checks:
- standard mode finishes within 30 seconds
- throughput >= 1000 rows/sec
- advanced mode stays within 3x of standard mode on the same input

Budgets are lenient so shared CI runners stay green.
"""


@pytest.mark.perf
def test_throughput_budget_standard_20k_rows(synthetic_csv):
    data = synthetic_csv()

    start = time.perf_counter()
    result = clean_file(data)
    elapsed_sec = time.perf_counter() - start

    assert result.stats.original == 20_000
    assert result.stats.malformed_rows == 0
    assert result.stats.column_mismatches == 0

    throughput_rps = result.stats.original / elapsed_sec if elapsed_sec > 0 else float("inf")
    assert elapsed_sec <= 30.0, f"Cleaning took {elapsed_sec:.3f}s, exceeds 30s budget"
    assert throughput_rps >= 1000.0, f"Throughput {throughput_rps:.1f} rows/sec below 1000 rows/sec"


@pytest.mark.perf
def test_advanced_mode_overhead_bounded(synthetic_csv):
    data = synthetic_csv(rows=5_000, seed=7)
    advanced = CleaningConfig(
        mode=CleaningMode.ADVANCED, generate_id=True, advanced=AdvancedOptions.advanced_defaults()
    )

    start = time.perf_counter()
    clean_file(data)
    standard_sec = time.perf_counter() - start

    start = time.perf_counter()
    result = clean_file(data, advanced)
    advanced_sec = time.perf_counter() - start

    assert result.stats.fixed > 0
    # 下限 0.05s: 極端に速い環境での比率のブレを避ける
    assert advanced_sec <= max(standard_sec, 0.05) * 3 + 1.0, (
        f"advanced {advanced_sec:.3f}s vs standard {standard_sec:.3f}s"
    )
