"""
Statistics Utilities

Shared statistical helpers for the scoring and insight stages. Every helper
returns a finite float: empty populations and zero spreads collapse to 0.0
instead of NaN or infinity.

Usage:
    from teamlight.utils.statistics import calculate_percentile, z_scores

    p95 = calculate_percentile(workloads, 95)
    scores = z_scores([12.0, 20.0, 31.0])
"""

import math
from collections.abc import Sequence

from teamlight.core import get_logger

logger = get_logger(__name__)


def finite_or_zero(value: float) -> float:
    """Coerce NaN and +/-infinity to 0.0."""
    if value is None or not math.isfinite(value):
        return 0.0
    return float(value)


def safe_divide(numerator: float, denominator: float) -> float:
    """
    Divide, returning 0.0 when the denominator is zero or the result is not finite.

    Example:
        >>> safe_divide(3, 0)
        0.0
    """
    if not denominator:
        return 0.0
    return finite_or_zero(numerator / denominator)


def mean(data: Sequence[float]) -> float:
    """Arithmetic mean, 0.0 for an empty sequence."""
    if not data:
        return 0.0
    return finite_or_zero(math.fsum(data) / len(data))


def population_stdev(data: Sequence[float]) -> float:
    """Population standard deviation (divides by N), 0.0 for an empty sequence."""
    if not data:
        return 0.0
    avg = math.fsum(data) / len(data)
    variance = math.fsum((value - avg) ** 2 for value in data) / len(data)
    return finite_or_zero(math.sqrt(variance))


def z_scores(data: Sequence[float]) -> list[float]:
    """
    Population z-score of every value.

    Returns all zeros when the population is empty or has no spread.

    Example:
        >>> z_scores([1.0, 2.0, 3.0])
        [-1.224744871391589, 0.0, 1.224744871391589]
    """
    if not data:
        return []
    avg = mean(data)
    std = population_stdev(data)
    if std == 0:
        return [0.0 for _ in data]
    return [finite_or_zero((value - avg) / std) for value in data]


def calculate_percentile(data: Sequence[float], percentile: float) -> float:
    """
    Calculate a single percentile value.

    Uses linear interpolation between values (same as numpy.percentile).

    Args:
        data: Sequence of numeric values
        percentile: Percentile to calculate (0-100)

    Returns:
        Percentile value

    Raises:
        ValueError: If data is empty or percentile is out of range

    Example:
        workloads = [8, 13, 21, 13, 18]
        p95 = calculate_percentile(workloads, 95)
    """
    if not data:
        raise ValueError("Cannot calculate percentile of empty data")

    if not 0 <= percentile <= 100:
        raise ValueError(f"Percentile must be 0-100, got {percentile}")

    sorted_data = sorted(data)
    n = len(sorted_data)

    index = (n - 1) * (percentile / 100.0)
    lower_index = int(index)
    upper_index = min(lower_index + 1, n - 1)

    lower_value = sorted_data[lower_index]
    upper_value = sorted_data[upper_index]
    fraction = index - lower_index

    return float(lower_value + fraction * (upper_value - lower_value))


def floor_index_percentile(data: Sequence[float], fraction: float) -> float:
    """
    Nearest-rank style percentile: the sorted value at ``floor(n * fraction)``.

    Used for quartiles and the 90th-percentile baseline, where the index is
    clamped to the last element. Returns 0.0 for empty data.
    """
    if not data:
        return 0.0
    sorted_data = sorted(data)
    index = min(int(len(sorted_data) * fraction), len(sorted_data) - 1)
    return float(sorted_data[index])


def median(data: Sequence[float]) -> float:
    """Median (average of the two middle values for even sizes), 0.0 when empty."""
    if not data:
        return 0.0
    return calculate_percentile(data, 50)


def remove_outliers_iqr(
    data: Sequence[float],
    min_samples: int = 4,
    multiplier: float = 1.5,
    min_retained: float = 0.6,
) -> list[float]:
    """
    Drop values outside ``[Q1 - k*IQR, Q3 + k*IQR]``.

    Quartiles are read at ``floor(n * 0.25)`` and ``floor(n * 0.75)`` of the
    sorted data. The original values are returned unchanged when there are
    fewer than ``min_samples`` values or when filtering would keep less than
    ``min_retained`` of them.

    Args:
        data: Numeric samples
        min_samples: Smallest sample size the filter is applied to
        multiplier: IQR fence multiplier
        min_retained: Minimum share of samples that must survive

    Returns:
        Filtered list (or a copy of the input)

    Example:
        >>> remove_outliers_iqr([10, 11, 12, 13, 95])
        [10, 11, 12, 13]
    """
    values = list(data)
    if len(values) < min_samples:
        return values

    q1 = floor_index_percentile(values, 0.25)
    q3 = floor_index_percentile(values, 0.75)
    iqr = q3 - q1
    lower = q1 - multiplier * iqr
    upper = q3 + multiplier * iqr

    filtered = [value for value in values if lower <= value <= upper]
    if len(filtered) < len(values) * min_retained:
        logger.debug(
            "Outlier filter would discard too many samples, keeping originals",
            extra={"samples": len(values), "retained": len(filtered)},
        )
        return values
    return filtered
