import logging
import numpy as np
import pandas as pd
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from data_profiling.column_types import ColumnType
from data_profiling.dataset import Dataset, format_value, is_valid, to_number
from data_profiling.descriptive_statistics import ColumnStatistics
from statistical_engine import correlation_strength_label, cramers_v, pearson_correlation

logger = logging.getLogger(__name__)


class DependencyKind(Enum):
    CORRELATION = "correlation"
    CATEGORICAL_ASSOCIATION = "categorical_association"


@dataclass(frozen=True)
class DependencyMetric:
    column1: str
    column2: str
    kind: DependencyKind
    strength: float
    description: str


@dataclass(frozen=True)
class CorrelationPair:
    source: str
    target: str
    value: float
    description: str


@dataclass(frozen=True)
class CorrelationMatrix:
    columns: Tuple[str, ...]
    matrix: pd.DataFrame
    pairs: List[CorrelationPair]


BUSINESS_METRIC_KEYWORDS = (
    'retention', 'ltv', 'revenue', 'churn', 'conversion',
    'sales', 'profit', 'income', 'roi', 'return',
    'engagement', 'satisfaction', 'nps', 'csat',
    'acquisition', 'growth', 'performance', 'success',
    'outcome', 'target', 'goal', 'kpi', 'metric',
    'dependent', 'output', 'result',
)
BUSINESS_METRIC_SUFFIXES = ('_rate', '_score', '_value')


def identify_dependent_metrics(columns: Sequence[str]) -> List[str]:
    """Column names that look like business outcome metrics"""
    detected = []
    for column in columns:
        lowered = column.lower()
        if any(keyword in lowered for keyword in BUSINESS_METRIC_KEYWORDS) or lowered.endswith(BUSINESS_METRIC_SUFFIXES):
            detected.append(column)
    return detected


class AssociationDetector:
    """Pairwise correlation and categorical association scans over a profiled dataset"""

    def __init__(
        self,
        correlation_threshold: float = 0.5,
        association_threshold: float = 0.3,
        target_correlation_threshold: float = 0.3,
        target_association_threshold: float = 0.2,
        min_completeness: float = 50.0
    ):
        self.correlation_threshold = correlation_threshold
        self.association_threshold = association_threshold
        self.target_correlation_threshold = target_correlation_threshold
        self.target_association_threshold = target_association_threshold
        self.min_completeness = min_completeness

    def find_dependencies(
        self,
        dataset: Dataset,
        statistics: Dict[str, ColumnStatistics]
    ) -> List[DependencyMetric]:
        """Scan every column pair and keep the strong relationships"""
        dependencies = []
        columns = dataset.columns

        for i in range(len(columns)):
            for j in range(i + 1, len(columns)):
                dependency = self._score_pair(
                    dataset, statistics, columns[i], columns[j], target=None
                )
                if dependency is not None:
                    dependencies.append(dependency)

        return sorted(dependencies, key=lambda d: d.strength, reverse=True)

    def find_dependencies_with_target(
        self,
        dataset: Dataset,
        statistics: Dict[str, ColumnStatistics],
        target: str
    ) -> List[DependencyMetric]:
        """Relationships between every other column and a nominated dependent metric"""
        dataset.column_index(target)
        dependencies = []

        for column in dataset.columns:
            if column == target:
                continue
            dependency = self._score_pair(dataset, statistics, column, target, target=target)
            if dependency is not None:
                dependencies.append(dependency)

        return sorted(dependencies, key=lambda d: d.strength, reverse=True)

    def correlation_matrix(
        self,
        dataset: Dataset,
        statistics: Dict[str, ColumnStatistics],
        dependent_metric: Optional[str] = None
    ) -> CorrelationMatrix:
        """Full numeric correlation matrix with a described pair for each off-diagonal cell"""
        numeric_columns = [
            column for column in dataset.columns
            if statistics[column].type == ColumnType.NUMERIC
        ]
        matrix = pd.DataFrame(
            np.eye(len(numeric_columns)), index=numeric_columns, columns=numeric_columns
        )
        pairs = []

        if dependent_metric is not None and dependent_metric in numeric_columns:
            for column in numeric_columns:
                if column == dependent_metric:
                    continue
                r = self.correlation(dataset, column, dependent_metric)
                pairs.append(CorrelationPair(
                    source=column,
                    target=dependent_metric,
                    value=r,
                    description=self._describe_trend(column, dependent_metric, r)
                ))

        for i, first in enumerate(numeric_columns):
            for j in range(i + 1, len(numeric_columns)):
                second = numeric_columns[j]
                r = self.correlation(dataset, first, second)
                matrix.loc[first, second] = r
                matrix.loc[second, first] = r

                if dependent_metric in (first, second):
                    continue
                pairs.append(CorrelationPair(
                    source=first,
                    target=second,
                    value=r,
                    description=self._describe_trend(first, second, r)
                ))

        pairs.sort(key=lambda pair: abs(pair.value), reverse=True)
        return CorrelationMatrix(columns=tuple(numeric_columns), matrix=matrix, pairs=pairs)

    def correlation(self, dataset: Dataset, first: str, second: str) -> float:
        """Pearson's r over rows where both columns hold numbers"""
        x, y = self._paired_numbers(dataset, first, second)
        return pearson_correlation(x, y)

    def association(self, dataset: Dataset, first: str, second: str) -> float:
        """Cramér's V over rows where both columns hold valid values"""
        a, b = self._paired_categories(dataset, first, second)
        return cramers_v(a, b)

    def _score_pair(
        self,
        dataset: Dataset,
        statistics: Dict[str, ColumnStatistics],
        first: str,
        second: str,
        target: Optional[str]
    ) -> Optional[DependencyMetric]:
        stats1 = statistics[first]
        stats2 = statistics[second]
        if stats1.completeness < self.min_completeness or stats2.completeness < self.min_completeness:
            return None

        if stats1.type == ColumnType.NUMERIC and stats2.type == ColumnType.NUMERIC:
            r = self.correlation(dataset, first, second)
            threshold = self.correlation_threshold if target is None else self.target_correlation_threshold
            if abs(r) <= threshold:
                return None
            if target is None:
                description = f"Strong {'positive' if r > 0 else 'negative'} correlation ({r * 100:.1f}%)"
            else:
                description = f"{'Positive' if r > 0 else 'Negative'} correlation with {target} ({r * 100:.1f}%)"
            return DependencyMetric(first, second, DependencyKind.CORRELATION, abs(r), description)

        if stats1.type == ColumnType.CATEGORICAL and stats2.type == ColumnType.CATEGORICAL:
            v = self.association(dataset, first, second)
            threshold = self.association_threshold if target is None else self.target_association_threshold
            if v <= threshold:
                return None
            if target is None:
                description = f"Strong categorical association ({v * 100:.1f}%)"
            else:
                description = f"Association with {target} ({v * 100:.1f}%)"
            return DependencyMetric(first, second, DependencyKind.CATEGORICAL_ASSOCIATION, v, description)

        return None

    def _paired_numbers(self, dataset: Dataset, first: str, second: str) -> Tuple[List[float], List[float]]:
        x, y = [], []
        for a, b in zip(dataset.column_values(first), dataset.column_values(second)):
            a_number, b_number = to_number(a), to_number(b)
            if a_number is not None and b_number is not None:
                x.append(a_number)
                y.append(b_number)
        return x, y

    def _paired_categories(self, dataset: Dataset, first: str, second: str) -> Tuple[List[str], List[str]]:
        a_values, b_values = [], []
        for a, b in zip(dataset.column_values(first), dataset.column_values(second)):
            if is_valid(a) and is_valid(b):
                a_values.append(format_value(a))
                b_values.append(format_value(b))
        return a_values, b_values

    def _describe_trend(self, first: str, second: str, r: float) -> str:
        strength = correlation_strength_label(r)
        direction = 'positive' if r > 0 else 'negative'
        return (
            f"{strength} {direction} correlation: As {first} "
            f"increases, {second} tends to "
            f"{'increase' if r > 0 else 'decrease'}"
        )
