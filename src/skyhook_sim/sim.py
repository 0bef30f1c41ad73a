from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional
import logging
import math

import numpy as np

from .models import Entity, ExposureHistogram
from .sampling import (
    HOURS_PER_DAY,
    choose_center,
    choose_phase,
    sample_time,
    select_offsets,
    wrap_hour,
)


logger = logging.getLogger(__name__)


# ------------------------------ Configs ------------------------------

@dataclass(frozen=True)
class ExposureConfig:
    """Population and window parameters for one exposure run.

    Start phases are 0, phase_step_h and 2*phase_step_h. Setting
    phase_step_h = cycle_length_h gives whole-cycle phase offsets instead,
    which only drop repetitions at the start of the horizon.
    """

    n_entities: int = 4000          # skyhooks in the population
    center_hour: int = 12           # base anchor hour (UTC)
    stddev_h: float = 3.0           # jitter of the window start around its anchor
    duration_h: float = 1.0         # vulnerability window length
    cycle_length_h: float = 72.0    # recurrence period of a window
    phase_step_h: float = 24.0      # spacing of the three possible start phases
    cycle_randomness: float = 0.0   # 0 = same start day for all, 1 = uniform over 3
    center_spread: float = 0.0      # 0 = all on center_hour, 1 = spread over catalog
    horizon_days: int = 9

    @property
    def horizon_h(self) -> int:
        return int(self.horizon_days) * HOURS_PER_DAY

    def validate(self) -> None:
        if self.center_hour < 0 or self.center_hour > 23:
            raise ValueError("center_hour must be in [0,23].")
        if self.stddev_h < 0:
            raise ValueError("stddev_h must be >= 0.")
        if self.horizon_days < 1:
            raise ValueError("horizon_days must be >= 1.")
        if self.duration_h <= 0 or self.duration_h >= self.horizon_h:
            raise ValueError("duration_h must be in (0, horizon_h).")
        if self.cycle_length_h <= 0:
            raise ValueError("cycle_length_h must be > 0.")
        if self.phase_step_h < 0:
            raise ValueError("phase_step_h must be >= 0.")
        if not (0.0 <= self.cycle_randomness <= 1.0):
            raise ValueError("cycle_randomness must be in [0,1].")
        if not (0.0 <= self.center_spread <= 1.0):
            raise ValueError("center_spread must be in [0,1].")


# ------------------------------ Histogram updates ------------------------------

def increment_window(counts: np.ndarray, start: float, end: float) -> int:
    """Add one window [start, end) to `counts`, treating the horizon as circular.

    Buckets floor(start), floor(start+1), ... below `end` are incremented;
    when end <= start the window wraps and continues from hour 0.
    Returns the number of increments performed.
    """
    total = int(counts.size)
    # float modulo of tiny negatives can land exactly on `total`
    start = float(start) % total
    end = float(end) % total
    if start >= total:
        start = 0.0
    if end >= total:
        end = 0.0

    n = 0
    if end > start:
        h = start
        while h < end:
            counts[int(math.floor(h))] += 1
            n += 1
            h += 1.0
    else:
        h = start
        while h < total:
            counts[int(math.floor(h))] += 1
            n += 1
            h += 1.0
        h = 0.0
        while h < end:
            counts[int(math.floor(h))] += 1
            n += 1
            h += 1.0
    return n


# ------------------------------ Generators ------------------------------

def generate_entities(
    cfg: ExposureConfig,
    rng: np.random.Generator,
    offsets: Optional[List[int]] = None,
) -> List[Entity]:
    """Draw anchor hour and start phase for every entity of one run.

    A negative `n_entities` is clamped to 0 (empty population).
    """
    cfg.validate()
    if offsets is None:
        offsets = select_offsets(cfg.center_hour, cfg.center_spread, rng)

    n = max(0, int(cfg.n_entities))
    entities: List[Entity] = []
    for eid in range(n):
        anchor = choose_center(cfg.center_hour, cfg.center_spread, offsets, rng)
        phase = choose_phase(cfg.cycle_randomness, cfg.phase_step_h, rng)
        entities.append(Entity(entity_id=eid, anchor_hour=anchor, phase_h=phase))
    return entities


def aggregate_exposure(cfg: ExposureConfig, rng: np.random.Generator) -> ExposureHistogram:
    """Hourly count of open vulnerability windows over `horizon_days`.

    Offsets are drawn once per run; every entity then repeats its window
    each `cycle_length_h` starting at its phase, with a fresh start-time
    draw per repetition.
    """
    cfg.validate()
    hist = ExposureHistogram.empty(cfg.horizon_days)
    horizon_h = float(hist.horizon_h)

    offsets = select_offsets(cfg.center_hour, cfg.center_spread, rng)
    entities = generate_entities(cfg, rng, offsets=offsets)

    windows = 0
    increments = 0
    for ent in entities:
        for hour in ent.cycle_starts_h(horizon_h, cfg.cycle_length_h):
            t = sample_time(ent.anchor_hour, cfg.stddev_h, rng)
            start = (hour + t) % horizon_h
            end = (start + cfg.duration_h) % horizon_h
            increments += increment_window(hist.counts, start, end)
            windows += 1

    logger.debug(
        "aggregate_exposure: entities=%d windows=%d increments=%d offsets=%s",
        len(entities), windows, increments, offsets,
    )
    return hist


def daily_time_histogram(
    n: int,
    center_hour: float,
    stddev_h: float,
    rng: np.random.Generator,
) -> np.ndarray:
    """Single-day view: 24 buckets counting wrapped start times of `n` windows."""
    counts = np.zeros(HOURS_PER_DAY, dtype=np.int64)
    for _ in range(max(0, int(n))):
        hour = int(math.floor(wrap_hour(sample_time(center_hour, stddev_h, rng))))
        # wrap_hour can round up to exactly 24.0 for values a hair below 0
        counts[hour % HOURS_PER_DAY] += 1
    return counts
