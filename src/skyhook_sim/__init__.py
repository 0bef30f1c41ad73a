"""skyhook_sim

A small, reproducible Monte-Carlo model of recurring skyhook vulnerability
windows and of how far a roaming fleet has to travel to find one.

Two independent estimators:
- Exposure: owners pick an anchor hour, the game jitters each window start
  (normal, 3h stddev), windows recur every 72h from one of three start days.
  The result is an hourly count of open windows over a multi-day horizon.
- Reachability: mark N random systems as vulnerable (N taken from an hourly
  bucket), then BFS from random start systems over the jump graph to
  estimate mean jumps and P(reach within k jumps).

Design goals:
- Minimal dependencies (PyYAML, numpy, pandas, matplotlib)
- Every random draw goes through an injected numpy Generator (seedable)
- Sampling estimators only; no closed-form distributions
"""

# Sampling primitives
from .sampling import (
    OFFSET_CATALOG,
    sample_time,
    wrap_hour,
    weighted_choice,
    select_offsets,
    choose_center,
    choose_phase,
)

# Exposure simulation
from .models import Entity, ExposureHistogram
from .sim import (
    ExposureConfig,
    increment_window,
    generate_entities,
    aggregate_exposure,
    daily_time_histogram,
)

# Graph + reachability
from .graph import (
    NOT_FOUND,
    ReachabilityGraph,
    read_records,
    load_systems,
    load_connections,
    load_graph,
)
from .reach import (
    ReachConfig,
    ReachResult,
    ReachSummary,
    sample_targets,
    estimate_reachability,
    analyze_bucket,
)

# Outputs
from .metrics import histogram_frame, summarize_exposure, summarize_reachability
from .plots import plot_exposure_timeseries, plot_daily_profile, plot_hop_distribution


__all__ = [
    # sampling
    "OFFSET_CATALOG",
    "sample_time",
    "wrap_hour",
    "weighted_choice",
    "select_offsets",
    "choose_center",
    "choose_phase",
    # exposure
    "Entity",
    "ExposureHistogram",
    "ExposureConfig",
    "increment_window",
    "generate_entities",
    "aggregate_exposure",
    "daily_time_histogram",
    # reachability
    "NOT_FOUND",
    "ReachabilityGraph",
    "read_records",
    "load_systems",
    "load_connections",
    "load_graph",
    "ReachConfig",
    "ReachResult",
    "ReachSummary",
    "sample_targets",
    "estimate_reachability",
    "analyze_bucket",
    # outputs
    "histogram_frame",
    "summarize_exposure",
    "summarize_reachability",
    "plot_exposure_timeseries",
    "plot_daily_profile",
    "plot_hop_distribution",
]
