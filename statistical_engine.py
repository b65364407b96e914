import math
import numpy as np
import pandas as pd
from scipy import stats
from scipy.stats import chi2_contingency
from typing import Dict, List, Sequence, Tuple


# Abramowitz & Stegun 26.2.23 rational approximation
_NUMERATOR = (2.515517, 0.802853, 0.010328)
_DENOMINATOR = (1.432788, 0.189269, 0.001308)
_SQRT_2PI = math.sqrt(2 * math.pi)


def inverse_normal_cdf(p: float, refinement_steps: int = 2) -> float:
    """Return z such that the standard normal CDF at z equals p.

    A rational approximation on t = sqrt(-2 ln q) gives a starting point
    accurate to ~4.5e-4, then Halley steps against the exact CDF tighten it
    well below 1e-4 across (0, 1).
    """
    if not 0 < p < 1:
        raise ValueError(f"Probability must be strictly between 0 and 1, got {p}")

    q = p if p < 0.5 else 1 - p
    t = math.sqrt(-2 * math.log(q))
    c0, c1, c2 = _NUMERATOR
    d1, d2, d3 = _DENOMINATOR
    z = t - (c0 + c1 * t + c2 * t ** 2) / (1 + d1 * t + d2 * t ** 2 + d3 * t ** 3)
    if p < 0.5:
        z = -z

    for _ in range(refinement_steps):
        error = normal_cdf(z) - p
        u = error * _SQRT_2PI * math.exp(z * z / 2)
        z -= u / (1 + z * u / 2)

    return z


def normal_cdf(z: float) -> float:
    """Standard normal cumulative distribution function"""
    return float(stats.norm.cdf(z))


def bonferroni_alpha(alpha: float, comparisons: int) -> float:
    """Family-wise alpha split evenly across comparisons"""
    if comparisons < 1:
        raise ValueError(f"Number of comparisons must be at least 1, got {comparisons}")
    return alpha / comparisons


def pairwise_comparisons(num_arms: int) -> int:
    """Number of unordered arm pairs"""
    return num_arms * (num_arms - 1) // 2


def truncated_percentile(sorted_values: Sequence[float], fraction: float) -> float:
    """Pick sorted_values[floor(n * fraction)] without interpolation"""
    n = len(sorted_values)
    if n == 0:
        raise ValueError("Cannot take a percentile of an empty sequence")
    index = min(int(math.floor(n * fraction)), n - 1)
    return float(sorted_values[index])


def population_moments(values: np.ndarray) -> Dict[str, float]:
    """Mean, population standard deviation, skewness and excess kurtosis.

    Shape statistics fall back to 0 when there are fewer than two values or
    the values have no spread.
    """
    n = len(values)
    mean = float(np.mean(values))
    if n < 2:
        return {'mean': mean, 'standard_deviation': 0.0, 'skewness': 0.0, 'kurtosis': 0.0}

    deviations = values - mean
    variance = float(np.mean(deviations ** 2))
    std = math.sqrt(variance)
    if std == 0:
        return {'mean': mean, 'standard_deviation': 0.0, 'skewness': 0.0, 'kurtosis': 0.0}

    m3 = float(np.mean(deviations ** 3))
    m4 = float(np.mean(deviations ** 4))
    return {
        'mean': mean,
        'standard_deviation': std,
        'skewness': m3 / std ** 3,
        'kurtosis': m4 / std ** 4 - 3,
    }


def pearson_correlation(x: Sequence[float], y: Sequence[float]) -> float:
    """Pearson's r; 0.0 for degenerate inputs (too short or no variance)"""
    if len(x) != len(y):
        raise ValueError(f"Correlation needs equal-length inputs, got {len(x)} and {len(y)}")
    if len(x) < 2:
        return 0.0

    x_arr = np.asarray(x, dtype=float)
    y_arr = np.asarray(y, dtype=float)
    dx = x_arr - x_arr.mean()
    dy = y_arr - y_arr.mean()

    denominator = math.sqrt(float(np.sum(dx ** 2)) * float(np.sum(dy ** 2)))
    if denominator == 0:
        return 0.0

    r = float(np.sum(dx * dy)) / denominator
    return max(-1.0, min(1.0, r))


def cramers_v(a: Sequence[str], b: Sequence[str]) -> float:
    """Cramér's V from the chi-square statistic of the contingency table"""
    if len(a) != len(b):
        raise ValueError(f"Association needs equal-length inputs, got {len(a)} and {len(b)}")
    n = len(a)
    if n == 0:
        return 0.0

    contingency_table = pd.crosstab(pd.Series(list(a), name='a'), pd.Series(list(b), name='b'))
    min_dimension = min(contingency_table.shape) - 1
    if min_dimension == 0:
        return 0.0

    chi2_stat, _, _, _ = chi2_contingency(contingency_table.values, correction=False)
    v = math.sqrt(chi2_stat / (n * min_dimension))
    return min(v, 1.0)


def correlation_strength_label(r: float) -> str:
    """Verbal label for the magnitude of a correlation"""
    magnitude = abs(r)
    if magnitude >= 0.9:
        return "Very strong"
    if magnitude >= 0.7:
        return "Strong"
    if magnitude >= 0.5:
        return "Moderate"
    if magnitude >= 0.3:
        return "Weak"
    return "Very weak"


def arm_pairs(num_arms: int) -> List[Tuple[int, int]]:
    """All unordered (i, j) arm index pairs with i < j"""
    return [(i, j) for i in range(num_arms) for j in range(i + 1, num_arms)]
