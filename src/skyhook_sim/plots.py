from __future__ import annotations

from typing import Dict, List, Sequence, Optional
import numpy as np
import matplotlib.pyplot as plt

from .metrics import hour_label
from .models import ExposureHistogram
from .reach import ReachResult


def _ordered_keys(
    keys: Sequence[str],
    order: Optional[Sequence[str]] = None,
) -> List[str]:
    if not order:
        return list(keys)
    out = [k for k in order if k in keys]
    rest = [k for k in keys if k not in out]
    return out + rest


# ---------------------------- Figures ----------------------------

def plot_exposure_timeseries(
    hists_by_label: Dict[str, ExposureHistogram],
    outpath: str,
    title: str = "",
    *,
    order: Optional[Sequence[str]] = None,
    tick_every_h: int = 12,
) -> None:
    """
    Plot open vulnerability windows per hour across the horizon.

    One line per label (e.g. per scenario or seed); x ticks show HH:00.
    """
    plt.figure(figsize=(6.2, 3.9))

    horizon_h = 0
    for label in _ordered_keys(list(hists_by_label.keys()), order):
        hist = hists_by_label[label]
        x = np.arange(hist.horizon_h, dtype=int)
        plt.plot(x, hist.counts, label=str(label))
        horizon_h = max(horizon_h, hist.horizon_h)

    if horizon_h:
        ticks = np.arange(0, horizon_h, max(1, int(tick_every_h)))
        plt.xticks(ticks, [hour_label(t) for t in ticks], rotation=90, fontsize=7)

    plt.xlabel("Hour (UTC)")
    plt.ylabel("Vulnerable skyhooks")
    if title:
        plt.title(title)

    plt.grid(True, alpha=0.3)
    if hists_by_label:
        plt.legend()
    plt.tight_layout()
    plt.savefig(outpath)
    plt.close()


def plot_daily_profile(
    counts: Sequence[int],
    outpath: str,
    title: str = "",
) -> None:
    """
    Bar chart over 24 hour-of-day buckets (single-day start time distribution,
    or an exposure histogram folded with ExposureHistogram.daily_profile()).
    """
    y = np.asarray(list(counts), dtype=float)
    if y.size != 24:
        raise ValueError(f"expected 24 hour-of-day buckets, got {y.size}")

    plt.figure(figsize=(6.2, 3.9))
    x = np.arange(24, dtype=int)
    plt.bar(x, y, label="count")
    plt.xticks(x, [hour_label(h) for h in x], rotation=90, fontsize=7)

    plt.xlabel("Hour of day (UTC)")
    plt.ylabel("Count")
    if title:
        plt.title(title)

    plt.grid(True, alpha=0.3)
    plt.legend()
    plt.tight_layout()
    plt.savefig(outpath)
    plt.close()


def plot_hop_distribution(
    results_by_label: Dict[str, ReachResult],
    outpath: str,
    title: str = "",
    *,
    max_hops: Optional[int] = None,
) -> None:
    """
    Plot the share of trials per hop count for each analysed bucket.

    Shares are relative to successful trials; labels with no success are skipped.
    A dashed vertical line marks the max_hops threshold if given.
    """
    plt.figure(figsize=(6.2, 3.9))

    for label in _ordered_keys(list(results_by_label.keys())):
        counts = results_by_label[label].hop_counts()
        if counts.size == 0:
            continue
        share = counts / float(counts.sum())
        plt.step(np.arange(counts.size), share, where="mid", label=str(label))

    if max_hops is not None:
        plt.axvline(float(max_hops), linestyle="--", color="gray", alpha=0.7)

    plt.xlabel("Jumps to nearest vulnerable skyhook")
    plt.ylabel("Share of trials")
    plt.ylim(0.0, 1.02)
    if title:
        plt.title(title)

    plt.grid(True, alpha=0.3)
    plt.legend()
    plt.tight_layout()
    plt.savefig(outpath)
    plt.close()
