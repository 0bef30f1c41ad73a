from __future__ import annotations

import math
from typing import List, Sequence, TypeVar

import numpy as np


T = TypeVar("T")

HOURS_PER_DAY = 24

# Candidate anchor offsets (hours) an owner population may drift to.
OFFSET_CATALOG = (-12, -10, -9, -6, -5, -3, -2, 0, 2, 3, 5, 6, 9, 10, 12)


# ---------------------------------------------------------------------
# Time sampling
# ---------------------------------------------------------------------

def sample_time(center: float, stddev: float, rng: np.random.Generator) -> float:
    """Draw one start time ~ Normal(center, stddev) via Box–Muller.

    The result is NOT wrapped; use `wrap_hour` when a circular hour is needed.
    """
    u1 = float(rng.random())
    while u1 == 0.0:
        u1 = float(rng.random())
    u2 = float(rng.random())
    return float(center) + float(stddev) * math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)


def wrap_hour(x: float) -> float:
    """Map any hour value into [0, 24)."""
    return ((float(x) % HOURS_PER_DAY) + HOURS_PER_DAY) % HOURS_PER_DAY


# ---------------------------------------------------------------------
# Weighted categorical draw
# ---------------------------------------------------------------------

def weighted_choice(outcomes: Sequence[T], weights: Sequence[float], rng: np.random.Generator) -> T:
    """Pick one outcome by walking cumulative weights with a single uniform draw.

    Falls back to the last outcome when float rounding leaves the draw
    above the accumulated weight.
    """
    if len(outcomes) == 0:
        raise ValueError("outcomes must be non-empty.")
    if len(outcomes) != len(weights):
        raise ValueError("outcomes and weights must have the same length.")

    r = float(rng.random())
    for outcome, w in zip(outcomes, weights):
        r -= float(w)
        if r <= 0:
            return outcome
    return outcomes[-1]


# ---------------------------------------------------------------------
# Anchor diversification
# ---------------------------------------------------------------------

def _shuffle(items: List[T], rng: np.random.Generator) -> List[T]:
    """In-place Fisher–Yates shuffle."""
    for i in range(len(items) - 1, 0, -1):
        j = int(rng.integers(0, i + 1))
        items[i], items[j] = items[j], items[i]
    return items


def select_offsets(
    base_anchor: int,
    spread: float,
    rng: np.random.Generator,
    catalog: Sequence[int] = OFFSET_CATALOG,
) -> List[int]:
    """Randomized subset of anchor hours derived from `catalog`.

    The subset size is max(1, floor(len(catalog) * spread)); offset 0 is
    always kept so `base_anchor` itself is an option. Returned hours are
    wrapped into [0, 24) and sorted ascending.
    """
    if not (0.0 <= float(spread) <= 1.0):
        raise ValueError("spread must be in [0,1].")
    if 0 not in catalog:
        raise ValueError("catalog must contain offset 0.")

    count = max(1, int(math.floor(len(catalog) * float(spread))))
    selected = _shuffle(list(catalog), rng)[:count]
    if 0 not in selected:
        selected[-1] = 0

    return sorted((int(base_anchor) + int(off) + HOURS_PER_DAY) % HOURS_PER_DAY for off in selected)


def choose_center(
    base_anchor: int,
    spread: float,
    offsets: Sequence[int],
    rng: np.random.Generator,
) -> int:
    """Anchor hour for one entity: base with weight 1-spread, others share spread."""
    if spread == 0:
        return int(base_anchor)

    options = [int(base_anchor)] + [int(o) for o in offsets if int(o) != int(base_anchor)]
    weights = [
        1.0 - float(spread) if i == 0 else float(spread) / (len(options) - 1)
        for i in range(len(options))
    ]
    return int(weighted_choice(options, weights, rng))


# ---------------------------------------------------------------------
# Cycle phase
# ---------------------------------------------------------------------

def phase_probabilities(randomness: float) -> List[float]:
    """P(phase = 0, step, 2*step); the middle outcome never weighs less than the edges."""
    r = float(randomness)
    return [r / 3.0, 1.0 - 2.0 * r / 3.0, r / 3.0]


def choose_phase(randomness: float, step_h: float, rng: np.random.Generator) -> float:
    """Start phase in {0, step_h, 2*step_h}; randomness=0 pins every entity to step_h."""
    if not (0.0 <= float(randomness) <= 1.0):
        raise ValueError("randomness must be in [0,1].")
    if randomness == 0:
        return float(step_h)

    values = [0.0, float(step_h), 2.0 * float(step_h)]
    return float(weighted_choice(values, phase_probabilities(randomness), rng))
