import logging
import math
import numpy as np
import pandas as pd
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, IO, List, Optional, Sequence, Tuple, Union

logger = logging.getLogger(__name__)

CellValue = Union[float, int, str, None]

NULL_TOKEN = "null"


def is_null(value: Any) -> bool:
    """True for None, NaN and the literal "null" token"""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and value == NULL_TOKEN


def is_missing(value: Any) -> bool:
    """True for the empty string (undefined cells arrive as None)"""
    return isinstance(value, str) and value == ""


def is_valid(value: Any) -> bool:
    return not is_null(value) and not is_missing(value)


def to_number(value: Any) -> Optional[float]:
    """Parse a cell as a finite number, or return None"""
    if isinstance(value, (bool, np.bool_)):
        return None
    if isinstance(value, (int, float, np.integer, np.floating)):
        number = float(value)
        return number if math.isfinite(number) else None
    if isinstance(value, str):
        text = value.strip()
        if not text or "_" in text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


def format_value(value: Any) -> str:
    """Stringify a cell the way frequency tables key it (30.0 -> "30")"""
    if isinstance(value, (float, np.floating)) and float(value).is_integer():
        return str(int(value))
    if isinstance(value, (np.integer, np.floating)):
        return str(value.item())
    return str(value)


def normalize_cell(raw: Any) -> CellValue:
    """Map a raw parsed cell to number, text or None"""
    if raw is None or raw is pd.NA or raw is pd.NaT:
        return None
    if isinstance(raw, (bool, np.bool_)):
        return str(bool(raw)).lower()
    if isinstance(raw, (np.integer,)):
        return int(raw)
    if isinstance(raw, (float, np.floating)):
        return None if math.isnan(raw) else float(raw)
    if isinstance(raw, int):
        return raw
    if isinstance(raw, (datetime, date, pd.Timestamp)):
        return raw.isoformat()
    text = str(raw)
    if text.strip() == "":
        return None
    number = to_number(text)
    return number if number is not None else text


@dataclass(frozen=True)
class Dataset:
    """Header plus fixed-length rows of normalized cells"""
    columns: Tuple[str, ...]
    rows: Tuple[Tuple[CellValue, ...], ...]

    def __post_init__(self):
        duplicates = [name for name, count in Counter(self.columns).items() if count > 1]
        if duplicates:
            # Uniqueness is the caller's contract; lookups by name resolve to the first match
            logger.warning("Dataset has duplicate column names: %s", duplicates)

    @classmethod
    def from_rows(
        cls,
        header: Sequence[Any],
        rows: Sequence[Sequence[Any]],
        normalize: bool = True
    ) -> 'Dataset':
        """Build a dataset, padding short rows with None"""
        columns = tuple(str(name) for name in header)
        width = len(columns)
        built_rows = []

        for row_number, row in enumerate(rows, start=1):
            cells = list(row)
            if len(cells) > width:
                raise ValueError(
                    f"Row {row_number} has {len(cells)} cells but the header has {width} columns"
                )
            cells.extend([None] * (width - len(cells)))
            if normalize:
                cells = [normalize_cell(cell) for cell in cells]
            built_rows.append(tuple(cells))

        return cls(columns=columns, rows=tuple(built_rows))

    @classmethod
    def from_dataframe(cls, data: pd.DataFrame) -> 'Dataset':
        """Build a dataset from a DataFrame, normalizing every cell"""
        return cls.from_rows(list(data.columns), data.astype(object).values.tolist())

    @classmethod
    def read_csv(cls, source: Union[str, IO[str]], **kwargs) -> 'Dataset':
        """Read a CSV as text cells and normalize them (blank -> None, numeric text -> number)"""
        data = pd.read_csv(source, dtype=str, keep_default_na=False, skip_blank_lines=True, **kwargs)
        logger.debug("Read CSV with %d rows and %d columns", len(data), len(data.columns))
        return cls.from_rows(list(data.columns), data.values.tolist())

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def column_count(self) -> int:
        return len(self.columns)

    def column_index(self, name: str) -> int:
        try:
            return self.columns.index(name)
        except ValueError:
            raise ValueError(f"Column '{name}' not found in dataset") from None

    def column_values(self, name: str) -> List[CellValue]:
        index = self.column_index(name)
        return [row[index] for row in self.rows]

    def numeric_values(self, name: str) -> List[float]:
        """Valid values of a column that parse as finite numbers"""
        numbers = (to_number(value) for value in self.column_values(name) if is_valid(value))
        return [number for number in numbers if number is not None]

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(list(self.rows), columns=list(self.columns))
