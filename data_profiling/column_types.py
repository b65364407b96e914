from datetime import datetime
from enum import Enum
from typing import Any, Optional, Sequence

from data_profiling.dataset import is_valid, to_number


class ColumnType(Enum):
    NUMERIC = "numeric"
    CATEGORICAL = "categorical"
    DATE = "date"


TYPE_FRACTION_THRESHOLD = 0.8

# Numeric-only strptime layouts; the ISO-8601 extended forms are listed
# explicitly so acceptance does not vary with the interpreter version
ISO_DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y-%m-%dT%H:%M",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%dT%H:%M%z",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d %H:%M:%S",
)

DEFAULT_DATE_FORMATS = ISO_DATE_FORMATS + (
    "%Y/%m/%d",
    "%Y/%m/%d %H:%M",
    "%Y/%m/%d %H:%M:%S",
    "%m/%d/%Y",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y %H:%M:%S",
    "%d.%m.%Y",
    "%d.%m.%Y %H:%M",
    "%d.%m.%Y %H:%M:%S",
)


class DateParser:
    """Deterministic date recognition over a fixed list of strptime layouts"""

    def __init__(self, formats: Sequence[str] = DEFAULT_DATE_FORMATS):
        self.formats = tuple(formats)

    def parse(self, value: Any) -> Optional[datetime]:
        """Return the parsed datetime, or None when the value is not a date"""
        if not isinstance(value, str):
            return None
        text = value.strip()
        if not text:
            return None

        for date_format in self.formats:
            try:
                return datetime.strptime(text, date_format)
            except ValueError:
                continue
        return None

    def is_date(self, value: Any) -> bool:
        return self.parse(value) is not None


DEFAULT_DATE_PARSER = DateParser()


def detect_column_type(
    values: Sequence[Any],
    date_parser: Optional[DateParser] = None,
    threshold: float = TYPE_FRACTION_THRESHOLD
) -> ColumnType:
    """Classify a column as numeric, date or categorical from its raw cells"""
    present = [value for value in values if is_valid(value) and not _is_blank(value)]
    if not present:
        return ColumnType.CATEGORICAL

    parser = date_parser or DEFAULT_DATE_PARSER
    numeric_count = sum(1 for value in present if to_number(value) is not None)
    if numeric_count / len(present) > threshold:
        return ColumnType.NUMERIC

    date_count = sum(1 for value in present if parser.is_date(value))
    if date_count / len(present) > threshold:
        return ColumnType.DATE

    return ColumnType.CATEGORICAL


def _is_blank(value: Any) -> bool:
    return isinstance(value, str) and not value.strip()
