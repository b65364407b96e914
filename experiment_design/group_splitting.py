import logging
import numpy as np
import pandas as pd
from dataclasses import dataclass, field
from typing import List, Optional

from data_profiling.column_types import ColumnType
from data_profiling.dataset import format_value, is_valid, to_number
from data_profiling.profiler import DatasetProfile
from statistical_engine import truncated_percentile

logger = logging.getLogger(__name__)


@dataclass
class MetricSummary:
    mean: Optional[float] = None
    median: Optional[float] = None
    standard_deviation: Optional[float] = None
    conversion_rate: Optional[float] = None


@dataclass
class CategoryAnalysis:
    name: str
    count: int
    percentage: float
    metric_stats: MetricSummary


@dataclass
class SplitColumnAnalysis:
    column_name: str
    is_suitable: bool
    suitability_score: int
    categories: List[CategoryAnalysis] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)


@dataclass
class GroupSizePlan:
    users_per_group: int
    total_users: int
    expected_split: str


class GroupSplitAnalyzer:
    """Scores columns as candidates for splitting users into experiment groups"""

    def __init__(
        self,
        min_sample_size: int = 100,
        num_bins: int = 5,
        max_share_deviation: float = 20.0,
        max_metric_deviation: float = 0.2
    ):
        self.min_sample_size = min_sample_size
        self.num_bins = num_bins
        self.max_share_deviation = max_share_deviation
        self.max_metric_deviation = max_metric_deviation

    def analyze_columns(self, profile: DatasetProfile, metric: str) -> List[SplitColumnAnalysis]:
        """Analyze every column except the metric, best candidates first"""
        analyses = [
            self.analyze_column(profile, column, metric)
            for column in profile.dataset.columns
            if column != metric
        ]
        return sorted(analyses, key=lambda a: a.suitability_score, reverse=True)

    def analyze_column(self, profile: DatasetProfile, column: str, metric: str) -> SplitColumnAnalysis:
        """Score one column as a split key for the given primary metric"""
        if column not in profile.outcomes or metric not in profile.outcomes:
            return SplitColumnAnalysis(
                column_name=column,
                is_suitable=False,
                suitability_score=0,
                warnings=["Column or metric not found in data"],
                recommendations=["Please check column names"]
            )

        metric_is_continuous = profile.column_statistics(metric).type == ColumnType.NUMERIC
        frame = self._split_frame(profile, column, metric)

        if profile.column_statistics(column).type == ColumnType.NUMERIC:
            categories = self._binned_categories(frame, metric_is_continuous)
        else:
            categories = self._categorical_categories(frame, profile, column, metric_is_continuous)

        if not categories:
            return SplitColumnAnalysis(
                column_name=column,
                is_suitable=False,
                suitability_score=0,
                warnings=["Column has no valid values"],
                recommendations=["Not recommended for splitting test groups"]
            )

        warnings = []
        small_sample_warning = f"Some categories have less than {self.min_sample_size} samples"
        has_small_groups = any(c.count < self.min_sample_size for c in categories)
        if has_small_groups:
            warnings.append(small_sample_warning)

        if any(c.metric_stats.mean is None and c.metric_stats.conversion_rate is None for c in categories):
            warnings.append("Some categories have no valid metric values")

        even_share = 100 / len(categories)
        share_deviation = max(abs(c.percentage - even_share) for c in categories)
        if share_deviation > self.max_share_deviation:
            warnings.append("Categories are not evenly distributed")

        metric_deviation = self._metric_deviation(categories, metric_is_continuous)
        if metric_deviation > self.max_metric_deviation:
            warnings.append("Primary metric is not evenly distributed across categories")

        score = 100
        score -= 30 if has_small_groups else 0
        score -= 30 if share_deviation > self.max_share_deviation else 0
        score -= 40 if metric_deviation > self.max_metric_deviation else 0

        if score >= 70:
            recommendations = ["This column is suitable for splitting test groups"]
        elif score >= 40:
            recommendations = ["This column can be used but may introduce bias"]
        else:
            recommendations = ["Not recommended for splitting test groups"]

        logger.debug("Split column '%s' scored %d for metric '%s'", column, score, metric)
        return SplitColumnAnalysis(
            column_name=column,
            is_suitable=score >= 70,
            suitability_score=score,
            categories=categories,
            warnings=warnings,
            recommendations=recommendations
        )

    def plan_group_sizes(self, total_users: int, num_groups: int) -> GroupSizePlan:
        """Even split of the available users across groups"""
        if num_groups < 2:
            raise ValueError(f"Need at least 2 groups, got {num_groups}")
        return GroupSizePlan(
            users_per_group=total_users // num_groups,
            total_users=total_users,
            expected_split=f"{100 / num_groups:.1f}%"
        )

    def _split_frame(self, profile: DatasetProfile, column: str, metric: str) -> pd.DataFrame:
        # One row per record with a valid split value; metric is NaN when it does not parse
        keys, raw_keys, metric_values = [], [], []
        for split_value, metric_value in zip(
            profile.dataset.column_values(column), profile.dataset.column_values(metric)
        ):
            if not is_valid(split_value):
                continue
            raw_keys.append(to_number(split_value))
            keys.append(format_value(split_value))
            number = to_number(metric_value) if is_valid(metric_value) else None
            metric_values.append(np.nan if number is None else number)
        return pd.DataFrame({'key': keys, 'numeric_key': raw_keys, 'metric': metric_values}, dtype=object)

    def _binned_categories(self, frame: pd.DataFrame, metric_is_continuous: bool) -> List[CategoryAnalysis]:
        frame = frame[frame['numeric_key'].notna()]
        if frame.empty:
            return []

        values = frame['numeric_key'].astype(float)
        low, high = values.min(), values.max()
        bin_size = (high - low) / self.num_bins
        if bin_size == 0:
            bin_index = pd.Series(0, index=frame.index)
        else:
            bin_index = ((values - low) // bin_size).clip(upper=self.num_bins - 1).astype(int)

        categories = []
        total = len(frame)
        for b in range(self.num_bins):
            in_bin = frame[bin_index == b]
            start = low + b * bin_size
            end = low + (b + 1) * bin_size
            categories.append(CategoryAnalysis(
                name=f"{start:.2f} - {end:.2f}",
                count=len(in_bin),
                percentage=len(in_bin) / total * 100,
                metric_stats=self._summarize_metric(in_bin['metric'], metric_is_continuous)
            ))
        return categories

    def _categorical_categories(
        self,
        frame: pd.DataFrame,
        profile: DatasetProfile,
        column: str,
        metric_is_continuous: bool
    ) -> List[CategoryAnalysis]:
        frequencies = profile.column_statistics(column).frequencies
        grouped = dict(tuple(frame.groupby('key', sort=False)['metric']))
        total_rows = profile.row_count

        categories = []
        for name, count in frequencies.items():
            metric_values = grouped.get(name, pd.Series([], dtype=object))
            categories.append(CategoryAnalysis(
                name=name,
                count=count,
                percentage=count / total_rows * 100 if total_rows else 0.0,
                metric_stats=self._summarize_metric(metric_values, metric_is_continuous)
            ))
        return categories

    def _summarize_metric(self, metric_values: pd.Series, metric_is_continuous: bool) -> MetricSummary:
        numbers = metric_values.dropna().astype(float).to_numpy()
        if len(numbers) == 0:
            return MetricSummary()

        sorted_numbers = np.sort(numbers)
        summary = MetricSummary(
            mean=float(np.mean(numbers)),
            median=truncated_percentile(sorted_numbers, 0.5),
            standard_deviation=float(np.std(numbers)),
        )
        if not metric_is_continuous:
            summary.conversion_rate = float(np.mean(numbers == 1) * 100)
        return summary

    def _metric_deviation(self, categories: List[CategoryAnalysis], metric_is_continuous: bool) -> float:
        """Largest relative gap between a category's metric and the category average"""
        if metric_is_continuous:
            levels = [c.metric_stats.mean for c in categories if c.metric_stats.mean is not None]
        else:
            levels = [c.metric_stats.conversion_rate for c in categories if c.metric_stats.conversion_rate is not None]
        if not levels:
            return 0.0

        overall = sum(levels) / len(levels)
        if overall == 0:
            return 0.0
        return max(abs((level - overall) / overall) for level in levels)
