"""Tests for the sampling primitives."""

import math

import numpy as np
import pytest

from skyhook_sim.sampling import (
    OFFSET_CATALOG,
    choose_center,
    choose_phase,
    phase_probabilities,
    sample_time,
    select_offsets,
    weighted_choice,
    wrap_hour,
)


class TestSampleTime:
    """Box–Muller start time draws."""

    def test_known_draw(self, stub_random) -> None:
        """u1 = e^-0.5, u2 = 0 gives exactly one stddev above center."""
        r = stub_random([math.exp(-0.5), 0.0])
        assert sample_time(12.0, 3.0, r) == pytest.approx(15.0)

    def test_zero_draw_is_resampled(self, stub_random) -> None:
        """A zero first draw is rejected instead of feeding log(0)."""
        r = stub_random([0.0, 0.0, math.exp(-0.5), 0.0])
        value = sample_time(6.0, 2.0, r)
        assert math.isfinite(value)
        assert value == pytest.approx(8.0)
        assert r.calls == 4

    def test_not_wrapped(self, stub_random) -> None:
        r = stub_random([math.exp(-0.5), 0.5])
        # cos(pi) = -1 -> center - stddev, below zero
        assert sample_time(1.0, 3.0, r) == pytest.approx(-2.0)

    def test_moments(self, rng) -> None:
        draws = np.array([sample_time(12.0, 3.0, rng) for _ in range(20000)])
        assert np.all(np.isfinite(draws))
        assert abs(draws.mean() - 12.0) < 0.1
        assert abs(draws.std() - 3.0) < 0.1

    def test_zero_stddev_is_center(self, rng) -> None:
        assert all(sample_time(7.0, 0.0, rng) == 7.0 for _ in range(100))


class TestWrapHour:
    def test_values(self) -> None:
        assert wrap_hour(-1.0) == pytest.approx(23.0)
        assert wrap_hour(25.5) == pytest.approx(1.5)
        assert wrap_hour(48.0) == 0.0
        assert wrap_hour(13.25) == pytest.approx(13.25)


class TestWeightedChoice:
    def test_walks_cumulative_weights(self, stub_random) -> None:
        outcomes = ["a", "b", "c"]
        weights = [0.2, 0.5, 0.3]
        assert weighted_choice(outcomes, weights, stub_random([0.1])) == "a"
        assert weighted_choice(outcomes, weights, stub_random([0.2])) == "a"
        assert weighted_choice(outcomes, weights, stub_random([0.6])) == "b"
        assert weighted_choice(outcomes, weights, stub_random([0.95])) == "c"

    def test_fallback_returns_last(self, stub_random) -> None:
        """Draw above the total weight still yields an outcome (the last)."""
        assert weighted_choice(["a", "b"], [0.1, 0.1], stub_random([0.5])) == "b"

    def test_invalid_inputs(self, rng) -> None:
        with pytest.raises(ValueError):
            weighted_choice([], [], rng)
        with pytest.raises(ValueError):
            weighted_choice([1, 2], [1.0], rng)

    def test_frequencies(self, rng) -> None:
        picks = [weighted_choice([0, 1], [0.25, 0.75], rng) for _ in range(8000)]
        assert abs(np.mean(picks) - 0.75) < 0.03


class TestSelectOffsets:
    """Anchor diversification subset."""

    def test_base_always_present(self, rng) -> None:
        for spread in np.linspace(0.0, 1.0, 11):
            for base in range(24):
                offsets = select_offsets(base, float(spread), rng)
                assert base % 24 in offsets

    def test_size_and_order(self, rng) -> None:
        for spread in (0.0, 0.05, 0.2, 0.5, 0.99, 1.0):
            offsets = select_offsets(12, spread, rng)
            expected = max(1, math.floor(len(OFFSET_CATALOG) * spread))
            assert len(offsets) == expected
            assert offsets == sorted(offsets)
            assert all(0 <= h < 24 for h in offsets)

    def test_zero_spread_is_base_only(self, rng) -> None:
        assert select_offsets(5, 0.0, rng) == [5]

    def test_full_spread_uses_whole_catalog(self, rng) -> None:
        offsets = select_offsets(0, 1.0, rng)
        assert offsets == sorted((o + 24) % 24 for o in OFFSET_CATALOG)

    def test_wraps_around_midnight(self, rng) -> None:
        offsets = select_offsets(23, 1.0, rng)
        assert 11 in offsets  # 23 + 12
        assert 1 in offsets   # 23 + 2

    def test_invalid_spread(self, rng) -> None:
        with pytest.raises(ValueError):
            select_offsets(12, 1.5, rng)


class TestChooseCenter:
    def test_zero_spread_short_circuit(self, rng) -> None:
        for base in range(24):
            assert choose_center(base, 0, [0, 6, 12, 18], rng) == base
            assert choose_center(base, 0.0, [], rng) == base

    def test_fallback_returns_last_option(self, stub_random) -> None:
        """Rounding fallback: a draw above every cumulative weight picks the last option."""
        r = stub_random([1.5])
        assert choose_center(12, 0.5, [9, 12, 15], r) == 15

    def test_single_option_collapses_to_base(self, rng) -> None:
        """Non-zero spread that still selects one offset behaves like zero spread."""
        offsets = select_offsets(12, 0.05, rng)
        assert offsets == [12]
        assert all(choose_center(12, 0.05, offsets, rng) == 12 for _ in range(500))

    def test_base_weight(self, rng) -> None:
        offsets = [3, 12, 18, 21]
        picks = [choose_center(12, 0.5, offsets, rng) for _ in range(6000)]
        share_base = picks.count(12) / len(picks)
        assert abs(share_base - 0.5) < 0.03
        assert set(picks) <= {3, 12, 18, 21}


class TestChoosePhase:
    def test_zero_randomness_pins_middle(self, rng) -> None:
        assert all(choose_phase(0, 24.0, rng) == 24.0 for _ in range(1000))

    def test_outcomes(self, rng) -> None:
        phases = {choose_phase(0.6, 72.0, rng) for _ in range(2000)}
        assert phases == {0.0, 72.0, 144.0}

    def test_full_randomness_is_uniform(self, rng) -> None:
        phases = np.array([choose_phase(1.0, 24.0, rng) for _ in range(9000)])
        for value in (0.0, 24.0, 48.0):
            assert abs(np.mean(phases == value) - 1.0 / 3.0) < 0.03

    def test_middle_never_lighter_than_edges(self) -> None:
        for r in np.linspace(0.0, 1.0, 21):
            lo, mid, hi = phase_probabilities(float(r))
            assert mid >= lo - 1e-12
            assert mid >= hi - 1e-12
            assert lo + mid + hi == pytest.approx(1.0)

    def test_invalid_randomness(self, rng) -> None:
        with pytest.raises(ValueError):
            choose_phase(-0.1, 24.0, rng)
