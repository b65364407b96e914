from enum import Enum

from data_profiling.column_types import ColumnType
from data_profiling.descriptive_statistics import ColumnStatistics


class VisualizationType(Enum):
    NONE = "none"
    BAR = "bar"
    PIE = "pie"
    BOX = "box"
    SIMPLE = "simple"


BOX_PLOT_MIN_UNIQUE = 5
PIE_MAX_UNIQUE = 8
SUMMARY_MAX_UNIQUE = 20
SUMMARY_MIN_UNIQUE = 2


def is_id_like(statistics: ColumnStatistics, column_name: str) -> bool:
    """Every value distinct, or a name that reads like an identifier"""
    name = column_name.lower()
    return (
        statistics.unique_values == statistics.total_count
        or 'id' in name
        or 'identifier' in name
    )


def select_visualization_type(statistics: ColumnStatistics, column_name: str) -> VisualizationType:
    """Pick a chart category for a column from its summary statistics"""
    if statistics.type == ColumnType.NUMERIC:
        if is_id_like(statistics, column_name):
            return VisualizationType.NONE
        if statistics.unique_values > BOX_PLOT_MIN_UNIQUE:
            return VisualizationType.BOX
        return VisualizationType.BAR

    if statistics.type == ColumnType.CATEGORICAL:
        if is_id_like(statistics, column_name):
            return VisualizationType.NONE

        counts = list(statistics.frequencies.values())
        all_same_frequency = all(count == counts[0] for count in counts)
        if all_same_frequency or statistics.unique_values > SUMMARY_MAX_UNIQUE:
            return VisualizationType.SIMPLE
        if statistics.unique_values <= SUMMARY_MIN_UNIQUE:
            return VisualizationType.SIMPLE
        if statistics.unique_values <= PIE_MAX_UNIQUE:
            return VisualizationType.PIE
        return VisualizationType.BAR

    return VisualizationType.NONE
