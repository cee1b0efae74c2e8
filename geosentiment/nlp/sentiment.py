"""Lexicon-based sentiment counts aggregated by region and time bucket."""
from __future__ import annotations

from collections import Counter
from datetime import date, timedelta
from typing import Callable, Dict, FrozenSet, Iterable, List, Mapping, Tuple

import polars as pl  # type: ignore[import-not-found]

from ..data.models import POLARITIES, Record, SentimentBucket
from ..data.preprocess import remove_stopwords, tokenize
from ..utils.logging import get_logger

LOGGER = get_logger(__name__)

TimeBucket = Callable[[date], str]
CountKey = Tuple[str, str, str]


def daily_bucket(timestamp: date) -> str:
    return timestamp.isoformat()[:10]


def weekly_bucket(timestamp: date) -> str:
    """Bucket on the Monday that starts the ISO week."""
    day = date(timestamp.year, timestamp.month, timestamp.day)
    return (day - timedelta(days=day.weekday())).isoformat()


def monthly_bucket(timestamp: date) -> str:
    return f"{timestamp.year:04d}-{timestamp.month:02d}"


_TIME_BUCKETS: Dict[str, TimeBucket] = {
    "day": daily_bucket,
    "week": weekly_bucket,
    "month": monthly_bucket,
}


def get_time_bucket(name: str) -> TimeBucket:
    try:
        return _TIME_BUCKETS[name]
    except KeyError:
        raise ValueError(
            f"Unknown time bucket '{name}'. Expected one of {sorted(_TIME_BUCKETS)}"
        ) from None


class SentimentAggregator:
    """Count lexicon hits per (region, time bucket, polarity).

    Only records resolved to exactly one region take part. The map step
    (`count_polarities`) and the merge (`merge_counts`) are exposed so batches
    can be counted independently and combined in any order.
    """

    def __init__(
        self,
        lexicon: Mapping[str, str],
        stopwords: Iterable[str] = (),
        time_bucket: TimeBucket = monthly_bucket,
    ) -> None:
        invalid = {polarity for polarity in lexicon.values() if polarity not in POLARITIES}
        if invalid:
            raise ValueError(f"Lexicon contains unsupported polarities: {sorted(invalid)}")
        self.lexicon = dict(lexicon)
        self.stopwords: FrozenSet[str] = frozenset(stopwords)
        self.time_bucket = time_bucket

    def count_polarities(self, records: Iterable[Record]) -> Counter:
        counts: Counter = Counter()
        for record in records:
            if not record.has_single_region:
                continue
            bucket = self.time_bucket(record.timestamp)
            for token in remove_stopwords(tokenize(record.text), self.stopwords):
                polarity = self.lexicon.get(token)
                if polarity is None:
                    continue
                counts[(record.resolved_region, bucket, polarity)] += 1
        return counts

    def aggregate(self, records: Iterable[Record]) -> List[SentimentBucket]:
        record_list = list(records)
        buckets = buckets_from_counts(self.count_polarities(record_list))
        LOGGER.info(
            "Aggregated %s records into %s sentiment buckets", len(record_list), len(buckets)
        )
        return buckets


def merge_counts(*partials: Counter) -> Counter:
    merged: Counter = Counter()
    for partial in partials:
        merged.update(partial)
    return merged


def buckets_from_counts(counts: Mapping[CountKey, int]) -> List[SentimentBucket]:
    """Fold polarity counts into buckets sorted by (region, bucket)."""
    buckets: Dict[Tuple[str, str], SentimentBucket] = {}
    for (region, bucket_key, polarity), count in counts.items():
        bucket = buckets.setdefault(
            (region, bucket_key), SentimentBucket(region=region, bucket=bucket_key)
        )
        if polarity == "positive":
            bucket.positive += count
        else:
            bucket.negative += count
    return [buckets[key] for key in sorted(buckets)]


def buckets_to_frame(buckets: Iterable[SentimentBucket]) -> pl.DataFrame:
    rows = [
        {
            "region": bucket.region,
            "bucket": bucket.bucket,
            "positive": bucket.positive,
            "negative": bucket.negative,
            "net_sentiment": bucket.net,
        }
        for bucket in buckets
    ]
    if not rows:
        return pl.DataFrame(
            schema={
                "region": pl.Utf8,
                "bucket": pl.Utf8,
                "positive": pl.Int64,
                "negative": pl.Int64,
                "net_sentiment": pl.Int64,
            }
        )
    return pl.DataFrame(rows)


def join_with_series(buckets: Iterable[SentimentBucket], series: pl.DataFrame) -> pl.DataFrame:
    """Left-join sentiment buckets with a ``(region, bucket, value)`` series frame."""
    frame = buckets_to_frame(buckets)
    return frame.join(series.select(["region", "bucket", "value"]), on=["region", "bucket"], how="left")
