import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional

from data_profiling.association_detector import (
    AssociationDetector, CorrelationMatrix, DependencyMetric, identify_dependent_metrics
)
from data_profiling.box_plot import BoxPlotSummary, summarize_box_plot
from data_profiling.column_types import TYPE_FRACTION_THRESHOLD, ColumnType, DateParser
from data_profiling.dataset import Dataset
from data_profiling.descriptive_statistics import ColumnStatistics, StatisticsOutcome, profile_column
from data_profiling.visualization_selector import VisualizationType, select_visualization_type

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DatasetProfile:
    """Immutable profiling snapshot for one version of a dataset"""
    dataset: Dataset = field(repr=False)
    outcomes: Dict[str, StatisticsOutcome]
    dependencies: List[DependencyMetric]
    dependent_metrics: List[str]

    @property
    def statistics(self) -> Dict[str, ColumnStatistics]:
        return {name: outcome.statistics for name, outcome in self.outcomes.items()}

    @property
    def row_count(self) -> int:
        return self.dataset.row_count

    @property
    def column_count(self) -> int:
        return self.dataset.column_count

    @property
    def recovered_columns(self) -> Dict[str, str]:
        """Columns whose statistics are fallbacks, mapped to the failure reason"""
        return {name: outcome.error for name, outcome in self.outcomes.items() if outcome.recovered}

    def column_statistics(self, column: str) -> ColumnStatistics:
        if column not in self.outcomes:
            raise ValueError(f"Column '{column}' not found in dataset")
        return self.outcomes[column].statistics

    def visualization_type(self, column: str) -> VisualizationType:
        return select_visualization_type(self.column_statistics(column), column)

    def box_plot(self, column: str) -> Optional[BoxPlotSummary]:
        """Box-plot summary for a numeric column, None when there is nothing to plot"""
        if self.column_statistics(column).type != ColumnType.NUMERIC:
            return None
        values = self.dataset.numeric_values(column)
        if not values:
            return None
        return summarize_box_plot(values, column)


class DatasetProfiler:
    """Column statistics, dependent-metric detection and association scans in one pass"""

    def __init__(
        self,
        association_detector: Optional[AssociationDetector] = None,
        date_parser: Optional[DateParser] = None,
        type_threshold: float = TYPE_FRACTION_THRESHOLD
    ):
        self.association_detector = association_detector or AssociationDetector()
        self.date_parser = date_parser
        self.type_threshold = type_threshold

    def profile(
        self,
        dataset: Dataset,
        column_types: Optional[Dict[str, ColumnType]] = None
    ) -> DatasetProfile:
        """Profile every column, then score relationships between them"""
        column_types = column_types or {}
        unknown = set(column_types) - set(dataset.columns)
        if unknown:
            raise ValueError(f"Type overrides name unknown columns: {sorted(unknown)}")

        outcomes = {}
        for name in dataset.columns:
            outcomes[name] = profile_column(
                name,
                dataset.column_values(name),
                column_type=column_types.get(name),
                date_parser=self.date_parser,
                type_threshold=self.type_threshold
            )

        dependent_metrics = identify_dependent_metrics(dataset.columns)
        statistics = {name: outcome.statistics for name, outcome in outcomes.items()}
        dependencies = self._collect_dependencies(
            dataset, statistics, dependent_metrics[0] if dependent_metrics else None
        )

        recovered = [name for name, outcome in outcomes.items() if outcome.recovered]
        logger.debug(
            "Profiled %d columns over %d rows: %d dependencies, %d recovered columns",
            dataset.column_count, dataset.row_count, len(dependencies), len(recovered)
        )

        return DatasetProfile(
            dataset=dataset,
            outcomes=outcomes,
            dependencies=dependencies,
            dependent_metrics=dependent_metrics,
        )

    def select_dependent_metric(self, profile: DatasetProfile, metric: str) -> DatasetProfile:
        """New profile whose dependencies are recomputed around a chosen metric"""
        profile.dataset.column_index(metric)
        dependencies = self._collect_dependencies(profile.dataset, profile.statistics, metric)
        return replace(profile, dependencies=dependencies, dependent_metrics=[metric])

    def correlation_matrix(self, profile: DatasetProfile, dependent_metric: Optional[str] = None) -> CorrelationMatrix:
        return self.association_detector.correlation_matrix(
            profile.dataset, profile.statistics, dependent_metric
        )

    def _collect_dependencies(
        self,
        dataset: Dataset,
        statistics: Dict[str, ColumnStatistics],
        target: Optional[str]
    ) -> List[DependencyMetric]:
        # General scan first, then the target-relative scan appended as-is
        dependencies = self.association_detector.find_dependencies(dataset, statistics)
        if target is not None:
            dependencies = dependencies + self.association_detector.find_dependencies_with_target(
                dataset, statistics, target
            )
        return dependencies
