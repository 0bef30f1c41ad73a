from __future__ import annotations

from typing import List, Optional
import numpy as np
import pandas as pd

from .models import ExposureHistogram
from .reach import ReachResult


# ---------------------------- helpers ---------------------------------


def _quantile(values: List[float], q: float) -> float:
    if len(values) == 0:
        return float("nan")
    return float(np.quantile(np.asarray(values, dtype=float), q))


def hour_label(hour_idx: int) -> str:
    """Chart label for an absolute hour: hour-of-day as HH:00."""
    return f"{int(hour_idx) % 24:02d}:00"


# ---------------------------- tables ---------------------------------


def histogram_frame(hist: ExposureHistogram) -> pd.DataFrame:
    """Long-format hourly series (one row per absolute hour) for charts/CSV."""
    idx = np.arange(hist.horizon_h, dtype=int)
    return pd.DataFrame(
        {
            "hour_idx": idx,
            "day": idx // 24,
            "hour_of_day": idx % 24,
            "label": [hour_label(i) for i in idx],
            "count": hist.counts.astype(int),
        }
    )


def summarize_exposure(
    hist: ExposureHistogram,
    scenario: str = "",
    *,
    n_entities: Optional[int] = None,
) -> pd.DataFrame:
    """1-row summary of an exposure histogram.

    Fields:
      - total_increments: sum over all hourly buckets
      - peak_count / peak_hour_idx / peak_hour_of_day
      - mean_count, p95_count over hourly buckets
      - zero_hour_share: fraction of hours with no open window
      - peak_to_mean: peak_count / mean_count (NaN for an empty run)
    """
    counts = hist.counts.astype(float)
    mean = float(np.mean(counts)) if counts.size else float("nan")
    peak = int(np.max(hist.counts)) if counts.size else 0
    peak_idx = hist.peak_hour()

    row = {
        "scenario": scenario,
        "horizon_days": int(hist.horizon_days),
        "total_increments": hist.total(),
        "peak_count": peak,
        "peak_hour_idx": peak_idx,
        "peak_hour_of_day": peak_idx % 24,
        "mean_count": mean,
        "p95_count": _quantile(list(counts), 0.95),
        "zero_hour_share": float(np.mean(hist.counts == 0)),
        "peak_to_mean": (peak / mean) if mean > 0 else float("nan"),
    }
    if n_entities is not None:
        row["n_entities"] = int(n_entities)
        row["peak_share_of_entities"] = (peak / n_entities) if n_entities > 0 else float("nan")

    return pd.DataFrame([row])


def summarize_reachability(
    result: ReachResult,
    max_hops: int,
    scenario: str = "",
    hour_idx: Optional[int] = None,
    n_targets: Optional[int] = None,
) -> pd.DataFrame:
    """1-row summary of a Monte-Carlo reachability run.

    Undefined statistics (no successful trial) are reported as NaN.
    """
    hops = [float(h) for h in result.hops]
    row = {
        "scenario": scenario,
        "hour_idx": hour_idx if hour_idx is not None else -1,
        "hour_label": hour_label(hour_idx) if hour_idx is not None else "--",
        "n_targets": n_targets if n_targets is not None else -1,
        "trials": int(result.trials),
        "successes": result.successes,
        "failures": result.failures,
        "mean_hops": result.mean_hops(),
        "hops_p50": _quantile(hops, 0.50),
        "hops_p90": _quantile(hops, 0.90),
        "max_hops": int(max_hops),
        "p_within_max_hops": result.probability_within(max_hops),
    }
    return pd.DataFrame([row])
