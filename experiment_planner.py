import logging
import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ab_testing.power_analysis import CalculationResults, PowerAnalysisInputs, SampleSizeCalculator
from data_profiling.association_detector import AssociationDetector, CorrelationMatrix
from data_profiling.column_types import DEFAULT_DATE_FORMATS, ColumnType, DateParser
from data_profiling.dataset import Dataset
from data_profiling.profiler import DatasetProfile, DatasetProfiler
from experiment_design.group_splitting import GroupSizePlan, GroupSplitAnalyzer, SplitColumnAnalysis

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Root logging setup; the level defaults to $PLANNER_LOG_LEVEL or INFO"""
    level = (level or os.getenv("PLANNER_LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)


@dataclass
class PlannerConfig:
    type_fraction_threshold: float = 0.8
    min_completeness: float = 50.0
    correlation_threshold: float = 0.5
    association_threshold: float = 0.3
    target_correlation_threshold: float = 0.3
    target_association_threshold: float = 0.2
    allocation_tolerance: float = 0.01
    bonferroni_advisory_threshold: int = 10
    min_group_sample_size: int = 100
    split_bins: int = 5
    date_formats: Tuple[str, ...] = field(default=DEFAULT_DATE_FORMATS)

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> 'PlannerConfig':
        known = {f.name for f in fields(cls)}
        unknown = set(config) - known
        if unknown:
            raise ValueError(f"Unknown planner configuration keys: {sorted(unknown)}")
        values = dict(config)
        if 'date_formats' in values:
            values['date_formats'] = tuple(values['date_formats'])
        return cls(**values)


class ExperimentPlanner:
    """Profiles a dataset and plans an A/B/n experiment on one of its metrics"""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = PlannerConfig.from_dict(config or {})
        self.date_parser = DateParser(self.config.date_formats)
        self.profiler = DatasetProfiler(
            association_detector=AssociationDetector(
                correlation_threshold=self.config.correlation_threshold,
                association_threshold=self.config.association_threshold,
                target_correlation_threshold=self.config.target_correlation_threshold,
                target_association_threshold=self.config.target_association_threshold,
                min_completeness=self.config.min_completeness
            ),
            date_parser=self.date_parser,
            type_threshold=self.config.type_fraction_threshold
        )
        self.sample_size_calculator = SampleSizeCalculator(
            allocation_tolerance=self.config.allocation_tolerance,
            advisory_threshold=self.config.bonferroni_advisory_threshold
        )
        self.group_split_analyzer = GroupSplitAnalyzer(
            min_sample_size=self.config.min_group_sample_size,
            num_bins=self.config.split_bins
        )

    def profile(
        self,
        dataset: Dataset,
        column_types: Optional[Dict[str, ColumnType]] = None
    ) -> DatasetProfile:
        """Statistics, dependent metrics and dependencies for one dataset version"""
        profile = self.profiler.profile(dataset, column_types)
        for column, reason in profile.recovered_columns.items():
            logger.warning("Column '%s' profiled with fallback statistics: %s", column, reason)
        return profile

    def select_dependent_metric(self, profile: DatasetProfile, metric: str) -> DatasetProfile:
        return self.profiler.select_dependent_metric(profile, metric)

    def correlation_matrix(self, profile: DatasetProfile, dependent_metric: Optional[str] = None) -> CorrelationMatrix:
        return self.profiler.correlation_matrix(profile, dependent_metric)

    def calculate_sample_size(self, profile: DatasetProfile, inputs: PowerAnalysisInputs) -> CalculationResults:
        """Required sample sizes for the chosen metric, computed from the profile snapshot"""
        return self.sample_size_calculator.calculate(profile.statistics, inputs)

    def calculate_achieved_power(
        self,
        results: CalculationResults,
        arm_sizes: Sequence[int]
    ) -> Dict[Tuple[int, int], float]:
        return self.sample_size_calculator.calculate_achieved_power(results, arm_sizes)

    def estimate_duration_days(self, results: CalculationResults, users_per_day: float) -> int:
        return self.sample_size_calculator.estimate_duration_days(results.required_sample_size, users_per_day)

    def analyze_group_splits(self, profile: DatasetProfile, metric: str) -> List[SplitColumnAnalysis]:
        return self.group_split_analyzer.analyze_columns(profile, metric)

    def plan_group_sizes(self, profile: DatasetProfile, num_groups: int) -> GroupSizePlan:
        return self.group_split_analyzer.plan_group_sizes(profile.row_count, num_groups)
