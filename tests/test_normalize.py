"""Tests for the normalization curves."""

from __future__ import annotations

import math

import pytest

from vintner.config import NO_DEBT_SENTINEL
from vintner.metrics.normalize import (
    age_modifier,
    clamp_unit,
    consistency_score,
    curve_frame,
    inverted_skewed,
    normalize_against_reference,
    normalize_coverage,
    normalize_debt_to_asset,
    normalize_fixed_asset_ratio,
    normalize_liquidity,
    normalize_missed_payments,
    normalize_prestige,
    quality_multiplier,
    stepped_balance,
)

NORMALIZERS = [
    clamp_unit,
    normalize_debt_to_asset,
    normalize_coverage,
    normalize_liquidity,
    normalize_fixed_asset_ratio,
    normalize_missed_payments,
    age_modifier,
    normalize_prestige,
    stepped_balance,
    inverted_skewed,
]

EXTREME_INPUTS = [
    -math.inf, -1e12, -1.0, 0.0, 1e-9, 0.5, 1.0, 2.5, 42.0, 1e12, math.inf, math.nan,
]


def _jump(func, boundary: float, eps: float = 1e-9) -> float:
    return abs(func(boundary + eps) - func(boundary - eps))


class TestBoundedness:
    """Every normalizer stays within [0, 1] for any input."""

    @pytest.mark.parametrize("func", NORMALIZERS, ids=lambda f: f.__name__)
    @pytest.mark.parametrize("value", EXTREME_INPUTS)
    def test_output_in_unit_interval(self, func, value: float) -> None:
        """Output is a finite number in [0, 1]."""
        result = func(value)
        assert not math.isnan(result)
        assert 0.0 <= result <= 1.0


class TestDebtToAsset:
    """Tests for normalize_debt_to_asset."""

    def test_half_ratio(self) -> None:
        """Ratio 0.5 maps to 1 - 0.5^1.5."""
        assert normalize_debt_to_asset(0.5) == pytest.approx(0.646, abs=1e-3)

    def test_no_debt_is_perfect(self) -> None:
        """Zero ratio maps to 1.0."""
        assert normalize_debt_to_asset(0.0) == 1.0

    def test_fully_indebted(self) -> None:
        """Ratio >= 1 maps to 0."""
        assert normalize_debt_to_asset(1.0) == 0.0
        assert normalize_debt_to_asset(3.0) == 0.0

    def test_nan_uses_no_debt_sentinel(self) -> None:
        """NaN degenerates to the no-debt case."""
        assert normalize_debt_to_asset(math.nan) == 1.0


class TestBandedNormalizers:
    """Tests for coverage, liquidity and fixed-asset bands."""

    @pytest.mark.parametrize(
        "coverage,expected",
        [(0.0, 0.0), (1.0, 0.165), (2.0, 0.33), (2.5, 0.5), (3.0, 0.67),
         (4.0, 0.835), (5.0, 1.0), (50.0, 1.0)],
    )
    def test_coverage_bands(self, coverage: float, expected: float) -> None:
        """Coverage interpolates linearly between bands."""
        assert normalize_coverage(coverage) == pytest.approx(expected)

    def test_coverage_sentinel(self) -> None:
        """The no-debt sentinel maps to 1.0."""
        assert normalize_coverage(NO_DEBT_SENTINEL) == 1.0

    @pytest.mark.parametrize(
        "liquidity,expected",
        [(0.25, 0.085), (0.5, 0.17), (0.75, 0.335), (1.0, 0.5), (1.5, 0.75), (3.0, 1.0)],
    )
    def test_liquidity_bands(self, liquidity: float, expected: float) -> None:
        """Liquidity interpolates linearly between bands."""
        assert normalize_liquidity(liquidity) == pytest.approx(expected)

    @pytest.mark.parametrize(
        "ratio,expected",
        [(0.1, 0.165), (0.2, 0.33), (0.3, 0.5), (0.5, 0.835), (0.8, 1.0)],
    )
    def test_fixed_asset_bands(self, ratio: float, expected: float) -> None:
        """Fixed-asset ratio interpolates linearly between bands."""
        assert normalize_fixed_asset_ratio(ratio) == pytest.approx(expected)

    @pytest.mark.parametrize("boundary", [2.0, 3.0, 5.0])
    def test_coverage_continuous(self, boundary: float) -> None:
        """No value jump at coverage band boundaries."""
        assert _jump(normalize_coverage, boundary) < 1e-6


class TestMissedPayments:
    """Tests for normalize_missed_payments."""

    @pytest.mark.parametrize(
        "missed,expected", [(0, 1.0), (1, 0.5), (2, 0.25), (3, 0.0), (10, 0.0)]
    )
    def test_inverse_step(self, missed: int, expected: float) -> None:
        """Each missed payment steps the score down."""
        assert normalize_missed_payments(missed) == expected

    def test_reference_saturates(self) -> None:
        """Counts beyond the reference saturate at 1."""
        assert normalize_against_reference(10, 20) == pytest.approx(0.5)
        assert normalize_against_reference(40, 20) == 1.0


class TestAgeModifier:
    """Tests for the segmented age curve."""

    @pytest.mark.parametrize(
        "years,expected",
        [(0.0, 0.0), (3.0, 0.1), (25.0, 0.5), (100.0, 0.95), (250.0, 0.95)],
    )
    def test_anchor_points(self, years: float, expected: float) -> None:
        """Segment end points hit their documented values."""
        assert age_modifier(years) == pytest.approx(expected)

    @pytest.mark.parametrize("boundary", [0.0, 3.0, 25.0, 100.0])
    def test_continuous_at_boundaries(self, boundary: float) -> None:
        """No value jump at segment boundaries."""
        assert _jump(age_modifier, boundary) < 1e-6

    def test_monotonic(self) -> None:
        """Older is never worse."""
        values = [age_modifier(y / 4) for y in range(0, 600)]
        assert all(b >= a for a, b in zip(values, values[1:]))


class TestPrestigeCurve:
    """Tests for normalize_prestige."""

    @pytest.mark.parametrize(
        "prestige,expected",
        [(0.0, 0.1), (10.0, 0.7), (100.0, 0.9), (1000.0, 0.98)],
    )
    def test_anchor_points(self, prestige: float, expected: float) -> None:
        """Segment end points hit their documented values."""
        assert normalize_prestige(prestige) == pytest.approx(expected)

    @pytest.mark.parametrize("boundary", [0.0, 10.0, 100.0, 1000.0])
    def test_continuous_at_boundaries(self, boundary: float) -> None:
        """No value jump at segment boundaries."""
        assert _jump(normalize_prestige, boundary) < 1e-6

    def test_tail_below_one(self) -> None:
        """Huge prestige approaches but never reaches 1."""
        assert normalize_prestige(1e9) < 1.0
        assert normalize_prestige(math.inf) == pytest.approx(0.999)

    def test_monotonic(self) -> None:
        """More prestige never lowers the normalized value."""
        values = [normalize_prestige(x) for x in range(0, 5000, 7)]
        assert all(b >= a for a, b in zip(values, values[1:]))


class TestSteppedBalance:
    """Tests for stepped_balance and inverted_skewed."""

    @pytest.mark.parametrize("boundary", [0.4, 0.7, 0.9, 0.95, 0.99])
    def test_continuous_at_boundaries(self, boundary: float) -> None:
        """No value jump at segment boundaries."""
        assert _jump(stepped_balance, boundary) < 1e-6

    def test_end_points(self) -> None:
        """0 maps to 0 and 1 maps to 1."""
        assert stepped_balance(0.0) == 0.0
        assert stepped_balance(1.0) == 1.0

    def test_inverted_end_points(self) -> None:
        """The inverted curve maps 0 to 0 and 1 to 1."""
        assert inverted_skewed(0.0) == pytest.approx(0.0)
        assert inverted_skewed(1.0) == pytest.approx(1.0)

    def test_inverted_skews_high(self) -> None:
        """Inverted curve lies above the identity for mid inputs."""
        assert inverted_skewed(0.3) > 0.3
        assert stepped_balance(0.3) < 0.3


class TestConsistencyScore:
    """Tests for consistency_score."""

    def test_constant_values_are_perfect(self) -> None:
        """Zero variation gives 1.0."""
        assert consistency_score([100.0, 100.0, 100.0, 100.0]) == pytest.approx(1.0)

    def test_coefficient_of_variation(self) -> None:
        """CV 0.1 gives 0.9."""
        assert consistency_score([90.0, 110.0]) == pytest.approx(0.9)

    def test_insufficient_samples_use_default(self) -> None:
        """Fewer samples than the minimum return the default."""
        assert consistency_score([100.0], min_samples=2, default=0.7) == 0.7

    def test_zero_mean_is_unstable(self) -> None:
        """A zero mean scores 0."""
        assert consistency_score([100.0, -100.0]) == 0.0

    def test_nan_values_ignored(self) -> None:
        """NaN observations are dropped before scoring."""
        assert consistency_score([100.0, math.nan, 100.0]) == pytest.approx(1.0)


class TestQualityMultiplier:
    """Tests for quality_multiplier."""

    @pytest.mark.parametrize(
        "value,expected", [(0.0, 1.0), (0.5, 1.1), (0.9, 3.0), (0.95, 10.0)]
    )
    def test_segment_values(self, value: float, expected: float) -> None:
        """Segment starts hit their documented multipliers."""
        assert quality_multiplier(value) == pytest.approx(expected, rel=1e-3)

    def test_extreme_growth(self) -> None:
        """Values near 1 produce very large multipliers."""
        assert quality_multiplier(0.99) > 50.0
        assert quality_multiplier(0.99) > quality_multiplier(0.98)


class TestCurveFrame:
    """Tests for curve_frame."""

    def test_samples_curve(self) -> None:
        """DataFrame has one row per input with x and y columns."""
        frame = curve_frame(age_modifier, [0, 3, 25])
        assert list(frame.columns) == ["x", "y"]
        assert frame["y"].tolist() == pytest.approx([0.0, 0.1, 0.5])
