"""Pipeline: load records, resolve regions, aggregate sentiment, write dashboard metrics."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

import polars as pl  # type: ignore[import-not-found]

from ..analytics.metrics import compute_sentiment_metrics
from ..data.csv_loader import load_lexicon, load_series, load_stopwords
from ..data.models import Record, SentimentBucket
from ..data.regions import load_regions
from ..nlp.region_matcher import RegionMatcher, RegionMatcherConfig
from ..nlp.sentiment import SentimentAggregator, get_time_bucket, join_with_series
from ..utils.config import get_section, load_config
from ..utils.io import write_json, write_jsonl
from ..utils.logging import get_logger
from .common import load_records

LOGGER = get_logger(__name__)


def run_sentiment_pipeline(config_path: str | Path = "config/pipeline.yaml") -> List[SentimentBucket]:
    config = load_config(config_path)
    data_cfg = get_section(config, "data")
    analytics_cfg = get_section(config, "analytics")

    records = load_records(config)
    regions = load_regions(data_cfg.get("regions_path"))
    matching_cfg = get_section(config, "matching")
    matcher = RegionMatcher(
        regions,
        RegionMatcherConfig(
            max_workers=matching_cfg.get("max_workers", 1),
            chunk_size=matching_cfg.get("chunk_size", 5000),
        ),
    )
    resolved, summary = matcher.resolve_records(records)
    if summary.total and summary.coverage < matching_cfg.get("min_coverage", 0.0):
        LOGGER.warning(
            "Region coverage %.1f%% is below the configured minimum of %.1f%%",
            summary.coverage * 100,
            matching_cfg["min_coverage"] * 100,
        )

    resolved_path = analytics_cfg.get("resolved_records_path")
    if resolved_path:
        _write_resolved_records(resolved, resolved_path)

    time_bucket = get_time_bucket(get_section(config, "sentiment").get("time_bucket", "month"))
    aggregator = SentimentAggregator(
        lexicon=_load_lexicon(data_cfg),
        stopwords=load_stopwords(data_cfg.get("stopwords_path")),
        time_bucket=time_bucket,
    )
    buckets = aggregator.aggregate(resolved)

    joined = _join_series(data_cfg, buckets, time_bucket)
    metrics_payload = compute_sentiment_metrics(buckets, summary, joined=joined, regions=regions)
    metadata = metrics_payload["metadata"]
    metadata["config_path"] = str(config_path)
    metadata["time_bucket"] = get_section(config, "sentiment").get("time_bucket", "month")
    metrics_path = analytics_cfg.get(
        "sentiment_metrics_path", "artifacts/sentiment_metrics.json"
    )
    write_json(metrics_path, metrics_payload)
    LOGGER.info("Sentiment metrics saved to %s", metrics_path)
    return buckets


def _load_lexicon(data_cfg: Dict[str, Any]) -> Dict[str, str]:
    lexicon_cfg = get_section(data_cfg, "lexicon")
    if not lexicon_cfg.get("path"):
        raise ValueError("data.lexicon.path must be set in the pipeline configuration")
    return load_lexicon(
        lexicon_cfg["path"],
        word_column=lexicon_cfg.get("word_column", "word"),
        polarity_column=lexicon_cfg.get("polarity_column", "sentiment"),
        separator=lexicon_cfg.get("separator", ","),
    )


def _join_series(data_cfg, buckets, time_bucket) -> Optional[pl.DataFrame]:
    series_cfg = get_section(data_cfg, "series")
    if not series_cfg.get("path"):
        return None
    series = load_series(
        series_cfg["path"],
        time_bucket,
        region_column=series_cfg.get("region_column", "region"),
        date_column=series_cfg.get("date_column", "date"),
        value_column=series_cfg.get("value_column", "value"),
        aggregation=series_cfg.get("aggregation", "sum"),
        separator=series_cfg.get("separator", ","),
    )
    joined = join_with_series(buckets, series)
    LOGGER.info("Joined %s sentiment buckets with %s series rows", joined.height, series.height)
    return joined


def _write_resolved_records(records: List[Record], path: str | Path) -> None:
    payload = [
        {
            "id": record.id,
            "raw_location": record.raw_location,
            "resolved_region": record.resolved_region,
            "timestamp": record.timestamp.isoformat(),
        }
        for record in records
    ]
    write_jsonl(path, payload)
