from __future__ import annotations

from dataclasses import dataclass
from typing import List

import numpy as np


# ------------------------------- Entity ---------------------------------


@dataclass
class Entity:
    """One simulated skyhook (window owner) inside a single run.

    Times are expressed in hours since simulation start (t=0).

    Mapping to the exposure model:
      - anchor_hour -> owner-chosen center hour of the vulnerability window
      - phase_h     -> hour of the first cycle within the horizon
    """
    entity_id: int
    anchor_hour: int
    phase_h: float

    def cycle_starts_h(self, horizon_h: float, cycle_length_h: float) -> List[float]:
        """Cycle reference hours inside the horizon: phase, phase+L, ..."""
        if cycle_length_h <= 0:
            raise ValueError("cycle_length_h must be > 0")
        out: List[float] = []
        hour = float(self.phase_h)
        while hour < float(horizon_h):
            out.append(hour)
            hour += float(cycle_length_h)
        return out


# ------------------------- ExposureHistogram ----------------------------


@dataclass
class ExposureHistogram:
    """Hourly counters of open vulnerability windows over the horizon.

    counts[i] is the number of windows covering absolute hour i,
    i in [0, 24 * horizon_days).
    """
    counts: np.ndarray
    horizon_days: int

    def __post_init__(self) -> None:
        if self.horizon_days < 1:
            raise ValueError("horizon_days must be >= 1")
        self.counts = np.asarray(self.counts, dtype=np.int64)
        if self.counts.shape != (self.horizon_h,):
            raise ValueError(
                f"counts must have shape ({self.horizon_h},), got {self.counts.shape}"
            )

    @classmethod
    def empty(cls, horizon_days: int) -> "ExposureHistogram":
        return cls(counts=np.zeros(int(horizon_days) * 24, dtype=np.int64), horizon_days=int(horizon_days))

    @property
    def horizon_h(self) -> int:
        return int(self.horizon_days) * 24

    def __len__(self) -> int:
        return int(self.counts.size)

    def __getitem__(self, hour_idx: int) -> int:
        return int(self.counts[hour_idx])

    def total(self) -> int:
        return int(self.counts.sum())

    def peak_hour(self) -> int:
        """Index of the first hour with the maximum count."""
        return int(np.argmax(self.counts))

    def daily_profile(self) -> np.ndarray:
        """Counts folded onto hour-of-day (shape (24,))."""
        return self.counts.reshape(self.horizon_days, 24).sum(axis=0)

    def nonzero_hours(self) -> List[int]:
        return [int(i) for i in np.flatnonzero(self.counts)]
