"""Tests for the batch driver."""

import importlib.util
from pathlib import Path
import sys

import numpy as np
import pandas as pd
import pytest
import yaml

from skyhook_sim.models import ExposureHistogram
from skyhook_sim.reach import ReachConfig, analyze_bucket
from skyhook_sim.sim import aggregate_exposure


ROOT = Path(__file__).resolve().parents[1]


@pytest.fixture(scope="module")
def run_sim():
    spec = importlib.util.spec_from_file_location("run_sim", ROOT / "scripts" / "run_sim.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def default_cfg() -> dict:
    return yaml.safe_load((ROOT / "configs" / "run_default.yaml").read_text(encoding="utf-8"))


def test_parse_seeds(run_sim) -> None:
    assert run_sim._parse_seeds_arg("1-3,5,2") == [1, 2, 3, 5]
    assert run_sim._parse_seeds_arg("") == []
    with pytest.raises(ValueError):
        run_sim._parse_seeds_arg("5-1")


def test_exposure_config_from_yaml(run_sim, default_cfg) -> None:
    names = run_sim._scenario_names_in_stable_order(default_cfg)
    assert names[0] == "S1_aligned"
    ec = run_sim._exposure_config(default_cfg, default_cfg["scenarios"]["S3_spread_hours"])
    assert ec.n_entities == 4000
    assert ec.horizon_days == 9
    assert ec.cycle_randomness == 0.5
    assert ec.center_spread == 0.5


def test_reach_hours(run_sim) -> None:
    counts = np.zeros(24, dtype=np.int64)
    counts[7] = 3
    hist = ExposureHistogram(counts=counts, horizon_days=1)
    assert run_sim._reach_hours(hist, "peak") == [7]
    assert run_sim._reach_hours(hist, [1, 30, 5]) == [1, 5]
    with pytest.raises(ValueError):
        run_sim._reach_hours(hist, "all")


def test_load_reach_graph(run_sim, default_cfg) -> None:
    graph = run_sim._load_reach_graph(default_cfg)
    assert graph is not None
    assert len(graph) == 12
    assert run_sim._load_reach_graph({"reachability": {"enabled": False}}) is None


def _write_small_config(tmp_path: Path, cfg: dict) -> Path:
    small = dict(cfg)
    small["seeds"] = [3, 4]
    small["exposure"] = dict(cfg["exposure"], n_entities=30)
    small["scenarios"] = {
        "S1_aligned": {"cycle_randomness": 0.0, "center_spread": 0.0},
        "S4_fully_spread": {"cycle_randomness": 1.0, "center_spread": 1.0},
    }
    small["daily"] = {"n_entities": 10, "center_hour": 18, "stddev_h": 3.0}
    small["reachability"] = dict(cfg["reachability"], trials=40, max_hops=3)
    path = tmp_path / "small.yaml"
    path.write_text(yaml.safe_dump(small, sort_keys=False), encoding="utf-8")
    return path


class TestMain:
    """End-to-end runs of the batch driver on a small config."""

    def _run(self, run_sim, monkeypatch, *argv: str) -> None:
        monkeypatch.setattr(sys, "argv", ["run_sim.py", *argv])
        run_sim.main()

    def test_metrics_only(self, run_sim, default_cfg, tmp_path, monkeypatch) -> None:
        cfg_path = _write_small_config(tmp_path, default_cfg)
        outdir = tmp_path / "out"
        self._run(run_sim, monkeypatch, "--config", str(cfg_path), "--no_plots", "--outdir", str(outdir))

        exposure = pd.read_csv(outdir / "exposure_by_seed.csv")
        assert len(exposure) == 4
        assert sorted(exposure["seed"].unique()) == [3, 4]
        assert set(exposure["scenario"]) == {"S1_aligned", "S4_fully_spread"}
        assert (exposure["total_increments"] >= 3 * 30).all()

        reach = pd.read_csv(outdir / "reach_by_seed.csv")
        assert len(reach) == 4
        assert (reach["trials"] == 40).all()
        assert (reach["max_hops"] == 3).all()

        agg = pd.read_csv(outdir / "exposure_agg.csv")
        assert list(agg["scenario"]) == ["S1_aligned", "S4_fully_spread"]
        assert (agg["seed_count"] == 2).all()
        assert (outdir / "reach_agg.csv").exists()
        assert not list(outdir.glob("*.pdf"))

    def test_no_reach_skips_reachability_outputs(self, run_sim, default_cfg, tmp_path, monkeypatch) -> None:
        cfg_path = _write_small_config(tmp_path, default_cfg)
        outdir = tmp_path / "out"
        self._run(
            run_sim, monkeypatch,
            "--config", str(cfg_path), "--no_plots", "--no_reach", "--seeds", "7", "--outdir", str(outdir),
        )
        assert len(pd.read_csv(outdir / "exposure_by_seed.csv")) == 2
        assert not (outdir / "reach_by_seed.csv").exists()

    def test_artifacts_for_plot_seed(self, run_sim, default_cfg, tmp_path, monkeypatch) -> None:
        cfg_path = _write_small_config(tmp_path, default_cfg)
        outdir = tmp_path / "out"
        self._run(run_sim, monkeypatch, "--config", str(cfg_path), "--plots_seed", "4", "--outdir", str(outdir))

        for scen in ("S1_aligned", "S4_fully_spread"):
            hourly = pd.read_csv(outdir / scen / "exposure_hourly.csv")
            assert len(hourly) == 9 * 24
            assert (outdir / scen / f"fig_{scen}_exposure.pdf").exists()
        assert (outdir / "fig_exposure_all_scenarios.pdf").exists()
        assert (outdir / "fig_hop_distribution.pdf").exists()
        daily = pd.read_csv(outdir / "daily_start_times.csv")
        assert daily["count"].sum() == 10


def test_few_skyhooks_scenario_gives_partial_targets(run_sim, default_cfg) -> None:
    """Each skyhook adds at most one count per bucket, so the peak stays below the graph size."""
    ec = run_sim._exposure_config(default_cfg, default_cfg["scenarios"]["S5_few_skyhooks"])
    assert ec.n_entities == 6
    graph = run_sim._load_reach_graph(default_cfg)
    rng = np.random.default_rng(42)
    hist = aggregate_exposure(ec, rng)
    hour_idx = run_sim._reach_hours(hist, "peak")[0]
    summary = analyze_bucket(hist, hour_idx, graph, ReachConfig(trials=2000, max_hops=5), rng)
    assert 0 < summary.n_targets <= 6 < len(graph)
    assert summary.mean_hops > 0.0
    assert summary.result.probability_within(0) < 1.0
