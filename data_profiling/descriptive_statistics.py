import logging
import numpy as np
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from data_profiling.column_types import TYPE_FRACTION_THRESHOLD, ColumnType, DateParser, detect_column_type
from data_profiling.dataset import format_value, is_missing, is_null, is_valid, to_number
from statistical_engine import population_moments, truncated_percentile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ColumnStatistics:
    name: str
    type: ColumnType
    total_count: int
    null_count: int
    missing_count: int
    completeness: float
    frequencies: Dict[str, int] = field(default_factory=dict)
    unique_values: int = 0
    mode: Optional[Union[float, str]] = None
    mean: Optional[float] = None
    median: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None
    standard_deviation: Optional[float] = None
    skewness: Optional[float] = None
    kurtosis: Optional[float] = None
    percentile25: Optional[float] = None
    percentile75: Optional[float] = None

    @property
    def valid_count(self) -> int:
        return sum(self.frequencies.values())

    @property
    def variance(self) -> Optional[float]:
        if self.standard_deviation is None:
            return None
        return self.standard_deviation ** 2

    @property
    def is_numeric(self) -> bool:
        return self.type == ColumnType.NUMERIC and self.mean is not None

    def to_dict(self) -> Dict[str, Any]:
        record = asdict(self)
        record['type'] = self.type.value
        return record


@dataclass(frozen=True)
class StatisticsOutcome:
    """Statistics for one column, plus the failure reason when they are a fallback"""
    statistics: ColumnStatistics
    error: Optional[str] = None

    @property
    def recovered(self) -> bool:
        return self.error is not None


def calculate_column_statistics(
    name: str,
    values: Sequence[Any],
    column_type: Optional[ColumnType] = None,
    date_parser: Optional[DateParser] = None,
    type_threshold: float = TYPE_FRACTION_THRESHOLD
) -> ColumnStatistics:
    """Summarize one column.

    When ``column_type`` is given the caller vouches for it, so a declared
    numeric column must coerce cleanly and raises ``ValueError`` otherwise.
    An inferred numeric column simply skips values that do not parse.
    """
    strict = column_type is not None
    column_type = column_type or detect_column_type(values, date_parser, type_threshold)

    total_count = len(values)
    valid_values = [value for value in values if is_valid(value)]
    completeness = (len(valid_values) / total_count * 100) if total_count else 0.0

    numeric_fields: Dict[str, Optional[float]] = {}
    if column_type == ColumnType.NUMERIC:
        numbers = _coerce_numbers(name, valid_values, strict)
        if numbers:
            numeric_fields = _numeric_summary(numbers)

    frequencies: Dict[str, int] = {}
    for value in valid_values:
        key = format_value(value)
        frequencies[key] = frequencies.get(key, 0) + 1

    mode: Optional[Union[float, str]] = None
    if frequencies:
        # max() keeps the first key among equal counts
        mode = max(frequencies, key=frequencies.get)
        if column_type == ColumnType.NUMERIC:
            number = to_number(mode)
            mode = number if number is not None else mode

    return ColumnStatistics(
        name=name,
        type=column_type,
        total_count=total_count,
        null_count=sum(1 for value in values if is_null(value)),
        missing_count=sum(1 for value in values if is_missing(value)),
        completeness=completeness,
        frequencies=frequencies,
        unique_values=len(frequencies),
        mode=mode,
        **numeric_fields
    )


def profile_column(
    name: str,
    values: Sequence[Any],
    column_type: Optional[ColumnType] = None,
    date_parser: Optional[DateParser] = None,
    type_threshold: float = TYPE_FRACTION_THRESHOLD
) -> StatisticsOutcome:
    """Statistics for a column that never raise; failures come back as a zeroed fallback"""
    try:
        return StatisticsOutcome(calculate_column_statistics(
            name, values, column_type, date_parser, type_threshold
        ))
    except (ValueError, TypeError, ArithmeticError) as exc:
        logger.warning("Statistics for column '%s' fell back to defaults: %s", name, exc)
        return StatisticsOutcome(zeroed_statistics(name, len(values)), error=str(exc))


def zeroed_statistics(name: str, total_count: int) -> ColumnStatistics:
    """Categorical-shaped placeholder used when a column cannot be summarized"""
    return ColumnStatistics(
        name=name,
        type=ColumnType.CATEGORICAL,
        total_count=total_count,
        null_count=0,
        missing_count=0,
        completeness=0.0,
    )


def _coerce_numbers(name: str, valid_values: List[Any], strict: bool) -> List[float]:
    numbers = []
    for value in valid_values:
        number = to_number(value)
        if number is None:
            if strict:
                raise ValueError(f"Non-numeric value {value!r} in numeric column '{name}'")
            continue
        numbers.append(number)
    return numbers


def _numeric_summary(numbers: List[float]) -> Dict[str, float]:
    # Overflow in the higher moments must surface as an error, not inf/nan
    with np.errstate(over='raise', invalid='raise'):
        sorted_numbers = np.sort(np.asarray(numbers, dtype=float))
        moments = population_moments(sorted_numbers)

    return {
        'mean': moments['mean'],
        'median': truncated_percentile(sorted_numbers, 0.5),
        'min': float(sorted_numbers[0]),
        'max': float(sorted_numbers[-1]),
        'standard_deviation': moments['standard_deviation'],
        'skewness': moments['skewness'],
        'kurtosis': moments['kurtosis'],
        'percentile25': truncated_percentile(sorted_numbers, 0.25),
        'percentile75': truncated_percentile(sorted_numbers, 0.75),
    }
