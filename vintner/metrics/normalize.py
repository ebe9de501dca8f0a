"""Normalization curves: squash raw quantities into bounded ranges.

Every normalizer here is total: it accepts any float (negative, huge,
infinite or NaN) and returns a value in [0, 1]. NaN inputs map to the
sentinel documented on each function instead of propagating.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence

import numpy as np
import pandas as pd
from scipy.stats import variation

from vintner.config import NO_DEBT_SENTINEL

# Banded piecewise-linear tables: (breakpoints, normalized values).
# Values saturate at the last band and at zero below the first.
COVERAGE_BANDS: tuple[list[float], list[float]] = (
    [0.0, 2.0, 3.0, 5.0],
    [0.0, 0.33, 0.67, 1.0],
)
LIQUIDITY_BANDS: tuple[list[float], list[float]] = (
    [0.0, 0.5, 1.0, 2.0],
    [0.0, 0.17, 0.5, 1.0],
)
FIXED_ASSET_BANDS: tuple[list[float], list[float]] = (
    [0.0, 0.2, 0.4, 0.6],
    [0.0, 0.33, 0.67, 1.0],
)

# Age modifier: cap beyond MAX_AGE_YEARS.
MAX_AGE_YEARS: float = 100.0
MAX_AGE_MODIFIER: float = 0.95

# Prestige curve tail asymptote.
PRESTIGE_TAIL_LIMIT: float = 0.999


def _is_nan(x: float) -> bool:
    return isinstance(x, float) and math.isnan(x)


def clamp_unit(x: float) -> float:
    """Clamp to [0, 1]. NaN maps to 0."""
    if _is_nan(x):
        return 0.0
    return min(1.0, max(0.0, x))


def _banded(x: float, bands: tuple[list[float], list[float]]) -> float:
    """Piecewise-linear interpolation between named bands."""
    xs, ys = bands
    return clamp_unit(float(np.interp(x, xs, ys)))


def normalize_debt_to_asset(ratio: float) -> float:
    """Debt-to-asset ratio, lower is better: ``1 - ratio^1.5``.

    NaN is treated as "no debt" (1.0).
    """
    if _is_nan(ratio) or ratio <= 0:
        return 1.0
    if ratio >= 1:
        return 0.0
    return clamp_unit(1.0 - ratio**1.5)


def normalize_coverage(coverage: float) -> float:
    """Asset coverage (assets / debt), higher is better.

    <2x maps to [0, 0.33], 2-3x to [0.33, 0.67], 3-5x to [0.67, 1.0] and
    >=5x to 1.0. NaN and the no-debt sentinel map to 1.0.
    """
    if _is_nan(coverage) or coverage >= NO_DEBT_SENTINEL:
        return 1.0
    return _banded(coverage, COVERAGE_BANDS)


def normalize_liquidity(liquidity: float) -> float:
    """Liquidity ((cash + liquid assets) / debt), higher is better.

    NaN and the no-debt sentinel map to 1.0.
    """
    if _is_nan(liquidity) or liquidity >= NO_DEBT_SENTINEL:
        return 1.0
    return _banded(liquidity, LIQUIDITY_BANDS)


def normalize_fixed_asset_ratio(ratio: float) -> float:
    """Fixed assets / total assets, higher is better. NaN maps to 0."""
    if _is_nan(ratio):
        return 0.0
    return _banded(ratio, FIXED_ASSET_BANDS)


def normalize_missed_payments(missed: float) -> float:
    """Inverse step: 0 missed -> 1.0, 1 -> 0.5, 2 -> 0.25, 3+ -> 0."""
    if _is_nan(missed) or missed <= 0:
        return 1.0
    if missed < 2:
        return 0.5
    if missed < 3:
        return 0.25
    return 0.0


def normalize_against_reference(count: float, reference: float) -> float:
    """Linear count / reference, saturating at 1."""
    if _is_nan(count) or reference <= 0:
        return 0.0
    return clamp_unit(count / reference)


def age_modifier(years: float) -> float:
    """Segmented age curve shared by vine age and company age.

    Quadratic up to 3 years (0 -> 0.1), linear to 25 years (0.1 -> 0.5),
    arctangent to 100 years (0.5 -> 0.95), flat 0.95 beyond.
    """
    if _is_nan(years) or years <= 0:
        return 0.0
    if years <= 3:
        return years * years / 100.0 + 0.01 * years / 3.0
    if years <= 25:
        return 0.1 + (years - 3) * 0.4 / 22.0
    if years <= MAX_AGE_YEARS:
        return 0.5 + (MAX_AGE_MODIFIER - 0.5) * (
            math.atan((years - 25) / 20.0) / math.atan(75.0 / 20.0)
        )
    return MAX_AGE_MODIFIER


def normalize_prestige(prestige: float) -> float:
    """Map an open-ended prestige total onto [0.1, 0.999).

    Power curve up to 10, logarithmic to 100, square-root to 1000 and an
    exponential tail above.
    """
    if _is_nan(prestige) or prestige <= 0:
        return 0.1
    if prestige <= 10:
        return 0.1 + 0.6 * (prestige / 10.0) ** 0.8
    if prestige <= 100:
        return 0.7 + 0.2 * math.log10(prestige / 10.0)
    if prestige <= 1000:
        return 0.9 + 0.08 * math.sqrt((prestige - 100) / 900.0)
    if math.isinf(prestige):
        return PRESTIGE_TAIL_LIMIT
    return 0.98 + (PRESTIGE_TAIL_LIMIT - 0.98) * (
        1.0 - math.exp(-(prestige - 1000) / 1000.0)
    )


def stepped_balance(score: float) -> float:
    """Multi-segment 0-1 curve, skewed toward low outputs."""
    if _is_nan(score) or score <= 0:
        return 0.0
    if score < 0.4:
        return score * score * 1.5
    if score < 0.7:
        return 0.24 + 0.32 * math.log(1 + (score - 0.4) * 3.33) / math.log(1 + 0.3 * 3.33)
    if score < 0.9:
        return 0.56 + (score - 0.7) * 1.5
    if score < 0.95:
        return 0.86 + (score - 0.9) * 2.0
    if score < 0.99:
        return 0.96 + (score - 0.95) * 0.8
    if score >= 1:
        return 1.0
    return 0.992 + 0.008 * (1 - math.exp(-(score - 0.99) * 10)) / (1 - math.exp(-0.1))


def inverted_skewed(value: float) -> float:
    """Mirror of stepped_balance: skewed toward high outputs."""
    if _is_nan(value):
        return 0.0
    return clamp_unit(1.0 - stepped_balance(1.0 - clamp_unit(value)))


def consistency_score(
    values: Sequence[float],
    min_samples: int = 2,
    default: float = 0.7,
    max_cv: float = 1.0,
) -> float:
    """Inverted coefficient of variation, normalized to [0, 1].

    Args:
        values: Observations (e.g. seasonal profits).
        min_samples: Fewer observations than this return ``default``.
        default: Neutral score when history is insufficient.
        max_cv: Coefficient of variation that maps to a score of 0.

    Returns:
        1.0 for perfectly stable values, falling to 0 at ``max_cv``.
        A mean of zero is maximally unstable (0.0).
    """
    arr = np.asarray([v for v in values if not _is_nan(v)], dtype=float)
    if len(arr) < min_samples:
        return default
    if np.allclose(arr.mean(), 0.0):
        return 0.0
    cv = abs(float(variation(arr)))
    if not math.isfinite(cv) or max_cv <= 0:
        return 0.0
    return clamp_unit(1.0 - cv / max_cv)


def quality_multiplier(value: float) -> float:
    """Price/prestige multiplier for a 0-1 quality value.

    Roughly 1x for average values, 3x around 0.9, 10-50x above 0.95 and
    exponential growth beyond 0.98. Not bounded; not a normalizer.
    """
    if _is_nan(value):
        value = 0.0
    v = min(0.99999, max(0.0, value))
    if v < 0.5:
        return 1 + v * 0.4
    if v < 0.7:
        return 1.1 + (v - 0.5) * 0.5
    if v < 0.9:
        return 1.25 + (v - 0.7) * 8.75
    if v < 0.95:
        return 3 + (v - 0.9) * 140
    if v < 0.98:
        return 10 + (v - 0.95) * 1333.33
    return 50 * 10000 ** ((v - 0.98) * 5)


def curve_frame(
    func: Callable[[float], float], inputs: Sequence[float]
) -> pd.DataFrame:
    """Sample a curve into a DataFrame with columns x, y."""
    xs = [float(x) for x in inputs]
    return pd.DataFrame({"x": xs, "y": [func(x) for x in xs]})
