"""Pytest configuration and shared fixtures."""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest
from pathlib import Path

from skyhook_sim.graph import ReachabilityGraph


@pytest.fixture
def rng() -> np.random.Generator:
    """Seeded generator for reproducible draws."""
    return np.random.default_rng(12345)


@pytest.fixture
def data_dir() -> Path:
    """Return the path to the sample graph data shipped with the repo."""
    return Path(__file__).resolve().parents[1] / "data"


@pytest.fixture
def path_graph() -> ReachabilityGraph:
    """Undirected path A - B - C - D (edges stored both ways)."""
    return ReachabilityGraph.from_mappings(
        ["A", "B", "C", "D"],
        {"A": ["B"], "B": ["A", "C"], "C": ["B", "D"], "D": ["C"]},
    )


@pytest.fixture
def star_graph() -> ReachabilityGraph:
    """Hub C with leaves L0..L9, edges mirrored; only the leaves are start systems."""
    leaves = [f"L{i}" for i in range(10)]
    connections = {"C": list(leaves)}
    for leaf in leaves:
        connections[leaf] = ["C"]
    return ReachabilityGraph.from_mappings(leaves, connections)


class StubRandom:
    """Minimal generator stand-in returning a fixed sequence from random()."""

    def __init__(self, values):
        self._values = list(values)
        self.calls = 0

    def random(self):
        v = self._values[min(self.calls, len(self._values) - 1)]
        self.calls += 1
        return v


@pytest.fixture
def stub_random():
    return StubRandom
