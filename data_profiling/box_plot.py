from dataclasses import dataclass
from typing import Dict, Sequence, Tuple

from statistical_engine import truncated_percentile

FENCE_MULTIPLIER = 1.5


@dataclass(frozen=True)
class BoxPlotSummary:
    column: str
    min: float
    q1: float
    median: float
    q3: float
    max: float
    outliers: Tuple[float, ...]

    @property
    def iqr(self) -> float:
        return self.q3 - self.q1


def calculate_quartiles(values: Sequence[float]) -> Dict[str, float]:
    """Quartiles by truncating-index selection on the sorted values"""
    sorted_values = sorted(values)
    return {
        'q1': truncated_percentile(sorted_values, 0.25),
        'median': truncated_percentile(sorted_values, 0.5),
        'q3': truncated_percentile(sorted_values, 0.75),
    }


def summarize_box_plot(values: Sequence[float], column: str = "") -> BoxPlotSummary:
    """Box-plot summary with Tukey fences; whiskers stop at the last in-fence value"""
    if len(values) == 0:
        raise ValueError(f"Box plot for column '{column}' needs at least one numeric value")

    sorted_values = sorted(float(v) for v in values)
    quartiles = calculate_quartiles(sorted_values)
    iqr = quartiles['q3'] - quartiles['q1']
    lower_fence = quartiles['q1'] - FENCE_MULTIPLIER * iqr
    upper_fence = quartiles['q3'] + FENCE_MULTIPLIER * iqr

    outliers = tuple(v for v in sorted_values if v < lower_fence or v > upper_fence)
    whisker_low = next((v for v in sorted_values if v >= lower_fence), sorted_values[0])
    whisker_high = next((v for v in reversed(sorted_values) if v <= upper_fence), sorted_values[-1])

    return BoxPlotSummary(
        column=column,
        min=whisker_low,
        q1=quartiles['q1'],
        median=quartiles['median'],
        q3=quartiles['q3'],
        max=whisker_high,
        outliers=outliers,
    )
