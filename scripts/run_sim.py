#!/usr/bin/env python
from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys
from typing import Dict, List, Optional

# Allow running without installing the package:
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

import yaml
import pandas as pd

import numpy as np
from skyhook_sim.sim import ExposureConfig, aggregate_exposure, daily_time_histogram
from skyhook_sim.models import ExposureHistogram
from skyhook_sim.graph import ReachabilityGraph, load_graph
from skyhook_sim.reach import ReachConfig, ReachResult, analyze_bucket
from skyhook_sim.metrics import (
    histogram_frame,
    hour_label,
    summarize_exposure,
    summarize_reachability,
)
from skyhook_sim.plots import plot_exposure_timeseries, plot_daily_profile, plot_hop_distribution


def _scenario_names_in_stable_order(cfg: dict) -> List[str]:
    """Preserve YAML dict order; fall back to a single default scenario."""
    scen = cfg.get("scenarios") or {}
    return list(scen.keys()) or ["default"]


def _parse_seeds_arg(s: str) -> list[int]:
    s = (s or "").strip()
    if not s:
        return []
    parts = [p.strip() for p in s.split(",") if p.strip()]
    seeds = []
    for p in parts:
        if "-" in p:
            a, b = p.split("-", 1)
            a_i = int(a.strip())
            b_i = int(b.strip())
            if b_i < a_i:
                raise ValueError(f"Bad seed range '{p}' (end < start).")
            seeds.extend(list(range(a_i, b_i + 1)))
        else:
            seeds.append(int(p))
    # de-dup while preserving order
    out = []
    seen = set()
    for x in seeds:
        if x not in seen:
            out.append(x)
            seen.add(x)
    return out


def _resolve_seeds(cfg: dict, args) -> list[int]:
    # CLI > config 'seeds' > config 'seed'
    if args.seeds:
        seeds = _parse_seeds_arg(args.seeds)
        if not seeds:
            raise ValueError("--seeds provided but parsed empty.")
        return seeds

    if args.n_seeds is not None:
        start = int(args.seed_start)
        n = int(args.n_seeds)
        if n <= 0:
            raise ValueError("--n_seeds must be > 0.")
        return list(range(start, start + n))

    if isinstance(cfg.get("seeds", None), (list, tuple)) and len(cfg["seeds"]) > 0:
        return [int(x) for x in cfg["seeds"]]

    return [int(cfg.get("seed", 42))]


def _exposure_config(cfg: dict, scen_cfg: dict) -> ExposureConfig:
    """Base `exposure` block overridden by scenario keys."""
    base = dict(cfg.get("exposure") or {})
    base.update(scen_cfg or {})
    defaults = ExposureConfig()
    ec = ExposureConfig(
        n_entities=int(base.get("n_entities", defaults.n_entities)),
        center_hour=int(base.get("center_hour", defaults.center_hour)),
        stddev_h=float(base.get("stddev_h", defaults.stddev_h)),
        duration_h=float(base.get("duration_h", defaults.duration_h)),
        cycle_length_h=float(base.get("cycle_length_h", defaults.cycle_length_h)),
        phase_step_h=float(base.get("phase_step_h", defaults.phase_step_h)),
        cycle_randomness=float(base.get("cycle_randomness", defaults.cycle_randomness)),
        center_spread=float(base.get("center_spread", defaults.center_spread)),
        horizon_days=int(cfg.get("horizon_days", base.get("horizon_days", defaults.horizon_days))),
    )
    ec.validate()
    return ec


def _reach_hours(hist: ExposureHistogram, hours_cfg) -> List[int]:
    """Buckets to analyse: 'peak' or an explicit list of hour indices."""
    if hours_cfg is None or hours_cfg == "peak":
        return [hist.peak_hour()]
    if isinstance(hours_cfg, (list, tuple)):
        return [int(h) for h in hours_cfg if 0 <= int(h) < hist.horizon_h]
    raise ValueError(f"Unsupported reachability.hours: {hours_cfg!r} (use 'peak' or a list of hour indices)")


def _load_reach_graph(cfg: dict) -> Optional[ReachabilityGraph]:
    rc = cfg.get("reachability") or {}
    if not rc.get("enabled", False):
        return None
    systems_path = ROOT / str(rc["systems"])
    connections_path = ROOT / str(rc["connections"])
    return load_graph(
        systems_path,
        connections_path,
        field=str(rc.get("field", "security")),
        value=str(rc.get("value", "0.0")),
        id_field=str(rc.get("id_field", "id")),
        conn_id_field=str(rc.get("conn_id_field", "systemId")),
        neighbors_field=str(rc.get("neighbors_field", "jumpNodes")),
        delimiter=str(rc.get("delimiter", ":")),
    )


def _agg_seed_interval(series: pd.Series, qlo: float = 0.025, qhi: float = 0.975):
    vals = pd.to_numeric(series, errors="coerce").dropna().to_numpy(dtype=float)
    if len(vals) == 0:
        return (np.nan, np.nan, np.nan, 0)
    mean = float(np.mean(vals))
    lo = float(np.quantile(vals, qlo)) if len(vals) >= 2 else np.nan
    hi = float(np.quantile(vals, qhi)) if len(vals) >= 2 else np.nan
    return (mean, lo, hi, int(len(vals)))


def _aggregate(df: pd.DataFrame, cols: List[str]) -> pd.DataFrame:
    rows = []
    for scenario, g in df.groupby("scenario", dropna=False):
        row = {"scenario": scenario, "seed_count": int(g["seed"].nunique())}
        for col in cols:
            mean, lo, hi, n = _agg_seed_interval(g[col])
            row[f"{col}_mean"] = mean
            row[f"{col}_lo"] = lo
            row[f"{col}_hi"] = hi
            row[f"{col}_n"] = n
        rows.append(row)
    return pd.DataFrame(rows).sort_values("scenario").reset_index(drop=True)


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--config", type=str, required=True, help="Path to YAML config (e.g., configs/run_default.yaml)")

    ap.add_argument("--seeds", type=str, default=None,
                    help="Seeds as CSV or ranges, e.g., '42,43,44' or '1-30'. Overrides config.")
    ap.add_argument("--n_seeds", type=int, default=None,
                    help="Number of seeds to run (uses --seed_start). Overrides config.")
    ap.add_argument("--seed_start", type=int, default=1, help="Start seed for --n_seeds. Default=1.")
    ap.add_argument("--plots_seed", type=int, default=None,
                    help="Generate plots/artifacts only for this seed. Default: first seed in the list.")
    ap.add_argument("--no_plots", action="store_true",
                    help="Disable plot/artifact generation (metrics only).")
    ap.add_argument("--no_reach", action="store_true",
                    help="Skip the reachability estimate even if enabled in the config.")
    ap.add_argument("--outdir", type=str, default=None,
                    help="Output directory. Default: results/<run_name> under the repo root.")
    ap.add_argument("--log_level", type=str, default="WARNING",
                    help="Logging level for the skyhook_sim package (DEBUG, INFO, WARNING, ...).")

    args = ap.parse_args()

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    cfg_path = Path(args.config)
    cfg = yaml.safe_load(cfg_path.read_text(encoding="utf-8")) or {}

    run_name = str(cfg.get("run_name", cfg_path.stem))
    outdir = Path(args.outdir) if args.outdir else ROOT / "results" / run_name
    outdir.mkdir(parents=True, exist_ok=True)

    seeds = _resolve_seeds(cfg, args)
    plots_seed = int(args.plots_seed) if args.plots_seed is not None else int(seeds[0])
    do_plots = (not args.no_plots)

    print(f"[INFO] Run: {run_name} | seeds={seeds}")
    if do_plots:
        print(f"[INFO] Plot/artifact seed: {plots_seed}")
    else:
        print("[INFO] Plots disabled (--no_plots)")

    graph = None if args.no_reach else _load_reach_graph(cfg)
    rc = cfg.get("reachability") or {}
    reach_cfg = ReachConfig(
        trials=int(rc.get("trials", ReachConfig.trials)),
        max_hops=int(rc.get("max_hops", ReachConfig.max_hops)),
    )
    reach_cfg.validate()
    if graph is not None:
        print(f"[INFO] Reachability graph: {len(graph)} eligible systems, {graph.node_count()} nodes")

    scen_names = _scenario_names_in_stable_order(cfg)
    exposure_by_seed: list[pd.DataFrame] = []
    reach_by_seed: list[pd.DataFrame] = []

    for seed in seeds:
        write_artifacts = do_plots and (seed == plots_seed)
        print(f"[INFO] Seed {seed}: {'metrics + artifacts' if write_artifacts else 'metrics only'}")

        hists: Dict[str, ExposureHistogram] = {}
        reach_results: Dict[str, ReachResult] = {}

        for scen_idx, scen_name in enumerate(scen_names):
            ecfg = _exposure_config(cfg, (cfg.get("scenarios") or {}).get(scen_name) or {})

            # deterministic per-scenario seed
            scen_seed = int(seed) + 1000 * scen_idx
            rng = np.random.default_rng(scen_seed)

            hist = aggregate_exposure(ecfg, rng)
            hists[scen_name] = hist

            dfm = summarize_exposure(hist, scenario=scen_name, n_entities=ecfg.n_entities)
            dfm["seed"] = int(seed)
            exposure_by_seed.append(dfm)

            if graph is not None:
                for hour_idx in _reach_hours(hist, rc.get("hours", "peak")):
                    summary = analyze_bucket(hist, hour_idx, graph, reach_cfg, rng)
                    dfr = summarize_reachability(
                        summary.result,
                        reach_cfg.max_hops,
                        scenario=scen_name,
                        hour_idx=hour_idx,
                        n_targets=summary.n_targets,
                    )
                    dfr["seed"] = int(seed)
                    reach_by_seed.append(dfr)
                    reach_results[f"{scen_name} @ {hour_label(hour_idx)}"] = summary.result
                    print(
                        f"[INFO]   {scen_name} hour {hour_idx} ({hour_label(hour_idx)}): "
                        f"{summary.n_targets} vulnerable, mean jumps {summary.mean_hops:.2f}, "
                        f"P(<= {reach_cfg.max_hops} jumps) {summary.probability * 100:.2f}%"
                    )

            if write_artifacts:
                scen_dir = outdir / scen_name
                scen_dir.mkdir(parents=True, exist_ok=True)
                histogram_frame(hist).to_csv(scen_dir / "exposure_hourly.csv", index=False)
                plot_exposure_timeseries(
                    {scen_name: hist},
                    str(scen_dir / f"fig_{scen_name}_exposure.pdf"),
                    title=f"{scen_name}: vulnerable skyhooks per hour",
                )
                plot_daily_profile(
                    hist.daily_profile(),
                    str(scen_dir / f"fig_{scen_name}_daily_profile.pdf"),
                    title=f"{scen_name}: windows by hour of day",
                )

        if write_artifacts:
            plot_exposure_timeseries(
                hists,
                str(outdir / "fig_exposure_all_scenarios.pdf"),
                title="Vulnerable skyhooks per hour",
                order=scen_names,
            )
            if reach_results:
                plot_hop_distribution(
                    reach_results,
                    str(outdir / "fig_hop_distribution.pdf"),
                    title="Jumps to nearest vulnerable skyhook",
                    max_hops=reach_cfg.max_hops,
                )

            dc = cfg.get("daily") or {}
            if dc:
                daily = daily_time_histogram(
                    int(dc.get("n_entities", 20)),
                    float(dc.get("center_hour", 18)),
                    float(dc.get("stddev_h", 3.0)),
                    np.random.default_rng(int(seed)),
                )
                pd.DataFrame(
                    {"hour_of_day": np.arange(24), "label": [hour_label(h) for h in range(24)], "count": daily}
                ).to_csv(outdir / "daily_start_times.csv", index=False)
                plot_daily_profile(daily, str(outdir / "fig_daily_start_times.pdf"),
                                   title="Window start times (single day)")

    exposure_df = pd.concat(exposure_by_seed, ignore_index=True)
    exposure_df.to_csv(outdir / "exposure_by_seed.csv", index=False)
    _aggregate(exposure_df, ["total_increments", "peak_count", "mean_count", "p95_count", "zero_hour_share"]).to_csv(
        outdir / "exposure_agg.csv", index=False
    )
    print(f"[OK] Wrote exposure metrics:\n - {outdir/'exposure_by_seed.csv'}\n - {outdir/'exposure_agg.csv'}")

    if reach_by_seed:
        reach_df = pd.concat(reach_by_seed, ignore_index=True)
        reach_df.to_csv(outdir / "reach_by_seed.csv", index=False)
        _aggregate(reach_df, ["n_targets", "mean_hops", "p_within_max_hops"]).to_csv(
            outdir / "reach_agg.csv", index=False
        )
        print(f"[OK] Wrote reachability metrics:\n - {outdir/'reach_by_seed.csv'}\n - {outdir/'reach_agg.csv'}")

    if do_plots:
        print(f"[OK] Plots/artifacts written for seed={plots_seed} into {outdir}.")


if __name__ == "__main__":
    main()
