"""Aggregation helpers producing dashboard-ready metrics."""
from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from statistics import median, pstdev
from typing import DefaultDict, Dict, List, Mapping, Optional, Sequence

import numpy as np
import polars as pl  # type: ignore[import-not-found]

from ..data.models import SentimentBucket
from ..data.regions import STATE_FIPS, US_STATES, abbreviation_lookup
from ..nlp.region_matcher import ResolutionSummary
from .clustering import ClusterResult


def compute_sentiment_metrics(
    buckets: Sequence[SentimentBucket],
    summary: ResolutionSummary,
    joined: Optional[pl.DataFrame] = None,
    regions=US_STATES,
) -> Dict[str, object]:
    """Compute aggregate sentiment metrics.

    The returned dictionary is JSON-serialisable and suitable for dashboard consumption.
    """
    abbreviations = abbreviation_lookup(regions)
    metrics: Dict[str, object] = {
        "metadata": {
            "generated_at": datetime.utcnow().isoformat(),
            "num_buckets": len(buckets),
            "num_regions": len({bucket.region for bucket in buckets}),
        },
        "coverage": summary.as_dict(),
        "regions": [],
        "timeline": {"buckets": [], "total_buckets": 0},
        "top_positive_regions": [],
        "top_negative_regions": [],
        "net_sentiment_summary": {
            "mean": 0.0,
            "median": 0.0,
            "std": 0.0,
        },
    }
    if not buckets:
        return metrics

    region_totals: DefaultDict[str, Dict[str, int]] = defaultdict(
        lambda: {"positive": 0, "negative": 0}
    )
    bucket_totals: DefaultDict[str, Dict[str, int]] = defaultdict(
        lambda: {"positive": 0, "negative": 0}
    )
    by_region_bucket: List[Dict[str, object]] = []
    for bucket in buckets:
        region_totals[bucket.region]["positive"] += bucket.positive
        region_totals[bucket.region]["negative"] += bucket.negative
        bucket_totals[bucket.bucket]["positive"] += bucket.positive
        bucket_totals[bucket.bucket]["negative"] += bucket.negative
        by_region_bucket.append(
            {
                "region": bucket.region,
                "bucket": bucket.bucket,
                "positive": bucket.positive,
                "negative": bucket.negative,
                "net_sentiment": bucket.net,
            }
        )

    region_rows: List[Dict[str, object]] = []
    for region, totals in sorted(region_totals.items()):
        abbreviation = abbreviations.get(region)
        region_rows.append(
            {
                "region": region,
                "abbreviation": abbreviation,
                "fips": STATE_FIPS.get(abbreviation) if abbreviation else None,
                "positive": totals["positive"],
                "negative": totals["negative"],
                "net_sentiment": totals["positive"] - totals["negative"],
            }
        )

    ranked = sorted(region_rows, key=lambda row: (row["net_sentiment"], row["region"]))
    net_values = [row["net_sentiment"] for row in region_rows]

    metrics.update(
        {
            "regions": region_rows,
            "region_buckets": by_region_bucket,
            "timeline": {
                "buckets": [
                    {
                        "bucket": bucket_key,
                        "positive": totals["positive"],
                        "negative": totals["negative"],
                        "net_sentiment": totals["positive"] - totals["negative"],
                    }
                    for bucket_key, totals in sorted(bucket_totals.items())
                ],
                "total_buckets": len(bucket_totals),
            },
            "top_positive_regions": [row["region"] for row in reversed(ranked[-5:])],
            "top_negative_regions": [row["region"] for row in ranked[:5]],
            "net_sentiment_summary": {
                "mean": sum(net_values) / len(net_values),
                "median": median(net_values),
                "std": pstdev(net_values) if len(net_values) > 1 else 0.0,
            },
        }
    )

    if joined is not None and "value" in joined.columns:
        metrics["series"] = _series_summary(joined)
    return metrics


def _series_summary(joined: pl.DataFrame) -> Dict[str, object]:
    paired = joined.drop_nulls(["value"])
    summary: Dict[str, object] = {
        "matched_buckets": paired.height,
        "unmatched_buckets": joined.height - paired.height,
        "correlation": None,
    }
    if paired.height > 1:
        net = paired["net_sentiment"].cast(pl.Float64).to_numpy()
        value = paired["value"].cast(pl.Float64).to_numpy()
        if np.std(net) > 0 and np.std(value) > 0:
            summary["correlation"] = float(np.corrcoef(net, value)[0, 1])
    return summary


def compute_cluster_metrics(
    results: Mapping[int, ClusterResult],
    record_ids: Sequence[int],
) -> Dict[str, object]:
    """Summarise clustered similarity rows keyed by their reference position."""
    profiles: List[Dict[str, object]] = []
    for position, result in sorted(results.items()):
        profiles.append(
            {
                "reference_position": position,
                "reference_record_id": record_ids[position] if position < len(record_ids) else None,
                "cluster_count": result.cluster_count,
                "boundaries": [float(value) for value in result.boundaries],
                "extrema": [{"x": point.x, "kind": point.kind} for point in result.extrema],
                "label_counts": result.label_counts(),
                "density": {
                    "x": result.curve.x.tolist(),
                    "y": result.curve.y.tolist(),
                    "label": result.labels.tolist(),
                },
            }
        )
    cluster_counts = [profile["cluster_count"] for profile in profiles]
    return {
        "metadata": {
            "generated_at": datetime.utcnow().isoformat(),
            "num_graphs": len(record_ids),
            "num_profiles": len(profiles),
        },
        "profiles": profiles,
        "cluster_summary": {
            "max_clusters": max(cluster_counts, default=0),
            "median_clusters": median(cluster_counts) if cluster_counts else 0,
        },
    }
