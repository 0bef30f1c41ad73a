from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, List
import logging

import numpy as np

from .graph import NOT_FOUND, NodeId, ReachabilityGraph
from .models import ExposureHistogram


logger = logging.getLogger(__name__)


# ------------------------------ Configs ------------------------------

@dataclass(frozen=True)
class ReachConfig:
    trials: int = 10000   # random start systems per estimate
    max_hops: int = 5     # threshold k for probability_within

    def validate(self) -> None:
        if self.trials < 0:
            raise ValueError("trials must be >= 0.")
        if self.max_hops < 0:
            raise ValueError("max_hops must be >= 0.")


# ------------------------------ Results ------------------------------

@dataclass
class ReachResult:
    """Hop counts of the successful trials of one Monte-Carlo run.

    Trials whose start node cannot reach any target are not part of `hops`;
    they are only counted in `failures`.
    """
    hops: List[int] = field(default_factory=list)
    trials: int = 0

    @property
    def successes(self) -> int:
        return len(self.hops)

    @property
    def failures(self) -> int:
        return int(self.trials) - len(self.hops)

    def __len__(self) -> int:
        return len(self.hops)

    def as_array(self) -> np.ndarray:
        return np.asarray(self.hops, dtype=np.int64)

    def mean_hops(self) -> float:
        """Mean hop count; NaN when no trial reached a target."""
        if not self.hops:
            return float("nan")
        return float(np.mean(self.as_array()))

    def probability_within(self, k: int) -> float:
        """Share of successful trials with hops <= k; NaN when undefined."""
        if not self.hops:
            return float("nan")
        return float(np.count_nonzero(self.as_array() <= int(k)) / len(self.hops))

    def hop_counts(self) -> np.ndarray:
        """Histogram of hops: entry h is the number of trials with h hops."""
        if not self.hops:
            return np.zeros(0, dtype=np.int64)
        return np.bincount(self.as_array())


@dataclass(frozen=True)
class ReachSummary:
    hour_idx: int
    n_targets: int
    mean_hops: float
    probability: float
    max_hops: int
    result: ReachResult


# ------------------------------ Estimation ------------------------------

def sample_targets(graph: ReachabilityGraph, count: int, rng: np.random.Generator) -> FrozenSet[NodeId]:
    """`count` distinct systems drawn without replacement (clamped to the system count)."""
    systems = graph.systems
    n = min(max(0, int(count)), len(systems))
    if n == 0:
        return frozenset()
    picks = rng.choice(len(systems), size=n, replace=False)
    return frozenset(systems[int(i)] for i in picks)


def estimate_reachability(
    graph: ReachabilityGraph,
    targets: Iterable[NodeId],
    trials: int,
    rng: np.random.Generator,
) -> ReachResult:
    """Hops from uniformly drawn start systems (with replacement) to the nearest target."""
    target_set = frozenset(targets)
    systems = graph.systems
    n_trials = max(0, int(trials))
    result = ReachResult(trials=n_trials)

    if not systems or not target_set:
        logger.debug(
            "estimate_reachability: degenerate input (systems=%d, targets=%d)",
            len(systems), len(target_set),
        )
        return result

    starts = rng.integers(0, len(systems), size=n_trials)
    for idx in starts:
        hops = graph.shortest_hops_to_any(systems[int(idx)], target_set)
        if hops != NOT_FOUND:
            result.hops.append(int(hops))

    if result.failures:
        logger.debug("estimate_reachability: %d/%d trials found no target", result.failures, n_trials)
    return result


def analyze_bucket(
    hist: ExposureHistogram,
    hour_idx: int,
    graph: ReachabilityGraph,
    cfg: ReachConfig,
    rng: np.random.Generator,
) -> ReachSummary:
    """Reachability for the number of skyhooks vulnerable at `hour_idx`.

    That many systems are marked vulnerable at random; a bucket with zero
    count yields probability 0 and an undefined (NaN) mean.
    """
    cfg.validate()
    n_targets = hist[hour_idx]

    if n_targets == 0:
        return ReachSummary(
            hour_idx=int(hour_idx), n_targets=0, mean_hops=float("nan"),
            probability=0.0, max_hops=cfg.max_hops, result=ReachResult(),
        )

    if len(graph) == 0:
        logger.warning("analyze_bucket: graph has no eligible systems; result undefined")
        return ReachSummary(
            hour_idx=int(hour_idx), n_targets=int(n_targets), mean_hops=float("nan"),
            probability=float("nan"), max_hops=cfg.max_hops, result=ReachResult(),
        )

    targets = sample_targets(graph, n_targets, rng)
    result = estimate_reachability(graph, targets, cfg.trials, rng)
    return ReachSummary(
        hour_idx=int(hour_idx),
        n_targets=len(targets),
        mean_hops=result.mean_hops(),
        probability=result.probability_within(cfg.max_hops),
        max_hops=cfg.max_hops,
        result=result,
    )
