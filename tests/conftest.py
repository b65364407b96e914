"""
Shared fixtures for the experiment planning test suite.

Run: pytest tests/ -v
"""

import pytest

from data_profiling.column_types import ColumnType
from data_profiling.dataset import Dataset
from data_profiling.descriptive_statistics import ColumnStatistics


def build_metric_statistics(name="revenue", mean=100.0, standard_deviation=20.0, total_count=1000):
    """Numeric column statistics with just the fields power analysis reads."""
    return ColumnStatistics(
        name=name,
        type=ColumnType.NUMERIC,
        total_count=total_count,
        null_count=0,
        missing_count=0,
        completeness=100.0,
        frequencies={"100": total_count},
        unique_values=1,
        mean=mean,
        standard_deviation=standard_deviation,
    )


def build_experiment_dataset(rows=400):
    """Users with a balanced plan column, an age column and a revenue metric."""
    header = ["user_id", "plan", "age", "sessions", "revenue"]
    plans = ["basic", "pro"]
    data = []
    for i in range(rows):
        sessions = (i % 10) + 1
        data.append([
            i + 1,
            plans[i % 2],
            20 + (i % 40),
            sessions,
            10.0 * sessions + (i % 3),
        ])
    return Dataset.from_rows(header, data)


@pytest.fixture
def metric_statistics():
    return build_metric_statistics


@pytest.fixture
def scenario_statistics():
    """Metric with mean 100 and standard deviation 20."""
    return {"revenue": build_metric_statistics()}


@pytest.fixture
def experiment_dataset():
    return build_experiment_dataset()
