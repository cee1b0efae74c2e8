"""Utilities to load records, lexicons, stopwords and companion series from delimited files."""
from __future__ import annotations

import pathlib
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Dict, FrozenSet, Iterator, Optional

import polars as pl  # type: ignore[import-not-found]

from .models import POLARITIES, Record
from ..utils.logging import get_logger

LOGGER = get_logger(__name__)


@dataclass(slots=True)
class RecordSourceConfig:
    """Configuration describing how to read and interpret the record table."""

    path: str | pathlib.Path
    limit: int = 0
    id_column: str = "id"
    location_column: str = "location"
    text_column: str = "text"
    timestamp_column: str = "created_at"
    timestamp_format: Optional[str] = None
    encoding: str = "utf-8"
    separator: str = ","


class RecordLoader:
    """Load `Record` rows from a CSV/TSV file."""

    def __init__(self, config: RecordSourceConfig) -> None:
        self.config = config

    def iter_records(self) -> Iterator[Record]:
        table = self._read_table()
        if table is None or table.height == 0:
            LOGGER.warning("Record source %s produced no rows", self.config.path)
            return

        missing = [
            column
            for column in (self.config.text_column, self.config.timestamp_column)
            if column not in table.columns
        ]
        if missing:
            raise KeyError(f"Record source {self.config.path} lacks columns: {missing}")

        ids = self._column(table, self.config.id_column)
        locations = self._column(table, self.config.location_column)
        texts = table[self.config.text_column].to_list()
        timestamps = table[self.config.timestamp_column].to_list()

        produced = 0
        skipped = 0
        duplicates = 0
        seen_ids: set[int] = set()
        for idx in range(table.height):
            if self.config.limit and produced >= self.config.limit:
                break
            timestamp = self._parse_date(timestamps[idx])
            if timestamp is None:
                skipped += 1
                continue
            record_id = idx if ids is None else self._parse_id(ids[idx], idx)
            if record_id is None:
                skipped += 1
                continue
            if record_id in seen_ids:
                duplicates += 1
                continue
            seen_ids.add(record_id)
            location = locations[idx] if locations is not None else None
            yield Record(
                id=record_id,
                raw_location=location if location else None,
                text=texts[idx] or "",
                timestamp=timestamp,
            )
            produced += 1
        if skipped:
            LOGGER.warning("Skipped %s malformed rows from %s", skipped, self.config.path)
        if duplicates:
            LOGGER.warning(
                "Skipped %s rows repeating an earlier record id in %s", duplicates, self.config.path
            )

    def _read_table(self) -> Optional[pl.DataFrame]:
        path = pathlib.Path(self.config.path)
        if not path.exists():
            LOGGER.warning("Record source path %s does not exist", path)
            return None
        return pl.read_csv(
            path,
            separator=self.config.separator,
            encoding=self.config.encoding,
            infer_schema_length=0,
            truncate_ragged_lines=True,
        )

    @staticmethod
    def _column(table: pl.DataFrame, name: str) -> Optional[list]:
        if name not in table.columns:
            return None
        return table[name].to_list()

    @staticmethod
    def _parse_id(raw_value, idx: int) -> Optional[int]:
        if raw_value is None or not str(raw_value).strip():
            LOGGER.debug("Missing record id at row %s", idx)
            return None
        try:
            return int(str(raw_value).strip())
        except ValueError:
            LOGGER.debug("Invalid record id %s at row %s", raw_value, idx)
            return None

    def _parse_date(self, raw_value) -> Optional[date]:
        return parse_date(raw_value, self.config.timestamp_format)


def parse_date(raw_value, timestamp_format: Optional[str] = None) -> Optional[date]:
    """Parse an ISO (or explicitly formatted) timestamp string into a date."""
    if raw_value is None:
        return None
    if isinstance(raw_value, datetime):
        return raw_value.date()
    if isinstance(raw_value, date):
        return raw_value
    value = str(raw_value).strip()
    if not value:
        return None
    try:
        if timestamp_format:
            return datetime.strptime(value, timestamp_format).date()
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except ValueError:
        LOGGER.debug("Failed to parse date from %s", value)
        return None


def load_lexicon(
    path: str | pathlib.Path,
    word_column: str = "word",
    polarity_column: str = "sentiment",
    separator: str = ",",
) -> Dict[str, str]:
    """Load a ``word -> polarity`` lexicon, keeping only positive/negative entries."""
    lexicon_path = pathlib.Path(path)
    if not lexicon_path.exists():
        raise FileNotFoundError(f"Lexicon file not found: {lexicon_path}")
    table = pl.read_csv(lexicon_path, separator=separator, infer_schema_length=0)
    lexicon: Dict[str, str] = {}
    dropped = 0
    for word, polarity in zip(table[word_column].to_list(), table[polarity_column].to_list()):
        if not word or polarity not in POLARITIES:
            dropped += 1
            continue
        lexicon[word.strip().lower()] = polarity
    if dropped:
        LOGGER.warning("Dropped %s lexicon rows without a usable polarity", dropped)
    LOGGER.info("Loaded %s lexicon entries from %s", len(lexicon), lexicon_path)
    return lexicon


def load_stopwords(path: str | pathlib.Path | None) -> FrozenSet[str]:
    """Load one stopword per line; blank lines and ``#`` comments are ignored."""
    if path is None:
        return frozenset()
    stopword_path = pathlib.Path(path)
    if not stopword_path.exists():
        raise FileNotFoundError(f"Stopword file not found: {stopword_path}")
    with stopword_path.open("r", encoding="utf-8") as handle:
        words = {
            line.strip().lower()
            for line in handle
            if line.strip() and not line.lstrip().startswith("#")
        }
    return frozenset(words)


def load_series(
    path: str | pathlib.Path,
    time_bucket: Callable[[date], str],
    region_column: str = "region",
    date_column: str = "date",
    value_column: str = "value",
    aggregation: str = "sum",
    separator: str = ",",
) -> pl.DataFrame:
    """Load the companion numeric time series bucketed to ``(region, bucket, value)``."""
    series_path = pathlib.Path(path)
    if not series_path.exists():
        raise FileNotFoundError(f"Series file not found: {series_path}")
    if aggregation not in {"sum", "mean"}:
        raise ValueError(f"Unsupported series aggregation: {aggregation}")

    table = pl.read_csv(series_path, separator=separator, infer_schema_length=0)
    rows = []
    for region, raw_date, raw_value in zip(
        table[region_column].to_list(),
        table[date_column].to_list(),
        table[value_column].to_list(),
    ):
        parsed = parse_date(raw_date)
        if not region or parsed is None or raw_value in (None, ""):
            continue
        try:
            value = float(raw_value)
        except ValueError:
            continue
        rows.append({"region": region, "bucket": time_bucket(parsed), "value": value})

    if not rows:
        return pl.DataFrame(schema={"region": pl.Utf8, "bucket": pl.Utf8, "value": pl.Float64})
    frame = pl.DataFrame(rows)
    agg = pl.col("value").sum() if aggregation == "sum" else pl.col("value").mean()
    return frame.group_by(["region", "bucket"]).agg(agg.alias("value")).sort(["region", "bucket"])
