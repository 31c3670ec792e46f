"""
Numeric building blocks for the scoring pipeline.

Min-max normalization with percentile outlier capping, weighted averaging
and rank assignment. Everything here is pure and deterministic.
"""

import math
from typing import Iterable, List, Sequence, Tuple

from league.core.models import Polarity

LOWER_PERCENTILE = 2.0
UPPER_PERCENTILE = 98.0

# Score given to every region when a metric cannot discriminate between them
NEUTRAL_SCORE = 50.0


def round_half_up(value: float, digits: int = 2) -> float:
    """Round with halves going up (0.125 -> 0.13), unlike built-in round()."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def percentile(sorted_values: Sequence[float], p: float) -> float:
    """
    Percentile of an ascending sequence by linear interpolation.

    The index is p/100 * (n - 1); values between two order statistics are
    interpolated.
    """
    idx = (p / 100.0) * (len(sorted_values) - 1)
    lower = math.floor(idx)
    upper = math.ceil(idx)
    if lower == upper:
        return sorted_values[lower]
    return sorted_values[lower] + (sorted_values[upper] - sorted_values[lower]) * (idx - lower)


def cap_outliers(
    values: Sequence[float],
    lower_pct: float = LOWER_PERCENTILE,
    upper_pct: float = UPPER_PERCENTILE,
) -> Tuple[List[float], float, float]:
    """
    Clamp every value into [P_lower, P_upper].

    Returns the capped values (same order as the input) and the two bounds.
    """
    if not values:
        raise ValueError("cap_outliers requires at least one value")

    ordered = sorted(values)
    low = percentile(ordered, lower_pct)
    high = percentile(ordered, upper_pct)
    capped = [max(low, min(high, v)) for v in values]
    return capped, low, high


def normalize(
    value: float,
    min_value: float,
    max_value: float,
    polarity: Polarity,
) -> float:
    """Map a capped value onto 0-100, inverted for negative polarity."""
    if max_value == min_value:
        return NEUTRAL_SCORE
    raw = (value - min_value) / (max_value - min_value)
    if Polarity(polarity) == Polarity.NEGATIVE:
        raw = 1 - raw
    return round_half_up(raw * 100, 2)


def weighted_average(scores: Iterable[Tuple[float, float]]) -> float:
    """
    Weighted mean of (score, weight) pairs, rounded to 2 decimals.

    An empty input or a zero total weight gives 0.0.
    """
    pairs = list(scores)
    if not pairs:
        return 0.0
    total_weight = sum(w for _, w in pairs)
    if total_weight == 0:
        return 0.0
    weighted = sum(s * w for s, w in pairs)
    return round_half_up(weighted / total_weight, 2)


def rank_descending(scored: Sequence[Tuple[str, float]]) -> List[Tuple[str, float, int]]:
    """
    Rank (key, score) pairs from highest to lowest score.

    Ranks run 1..N without gaps or shared positions. The sort is stable, so
    equal scores keep their input order.
    """
    ordered = sorted(scored, key=lambda item: item[1], reverse=True)
    return [(key, score, position) for position, (key, score) in enumerate(ordered, start=1)]
