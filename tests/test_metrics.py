import json

import polars as pl
import pytest

from geosentiment.analytics.clustering import cluster_similarity_row
from geosentiment.analytics.metrics import compute_cluster_metrics, compute_sentiment_metrics
from geosentiment.data.models import SentimentBucket
from geosentiment.nlp.region_matcher import ResolutionSummary


def sample_buckets():
    return [
        SentimentBucket(region="California", bucket="2020-03", positive=4, negative=1),
        SentimentBucket(region="Ohio", bucket="2020-03", positive=0, negative=2),
        SentimentBucket(region="Texas", bucket="2020-03", positive=2, negative=1),
        SentimentBucket(region="Texas", bucket="2020-04", positive=1, negative=3),
    ]


def test_sentiment_metrics_summarise_regions_and_timeline():
    summary = ResolutionSummary(total=10, resolved=6, ambiguous=1, unresolved=3)
    metrics = compute_sentiment_metrics(sample_buckets(), summary)

    assert metrics["coverage"]["coverage"] == pytest.approx(0.6)
    regions = {row["region"]: row for row in metrics["regions"]}
    assert regions["Texas"]["net_sentiment"] == -1
    assert regions["Texas"]["abbreviation"] == "TX"
    assert regions["Texas"]["fips"] == 48
    assert regions["California"]["fips"] == 6

    assert metrics["top_positive_regions"][0] == "California"
    assert metrics["top_negative_regions"][0] == "Ohio"
    assert [row["bucket"] for row in metrics["timeline"]["buckets"]] == ["2020-03", "2020-04"]
    assert metrics["timeline"]["buckets"][0]["net_sentiment"] == 2
    assert len(metrics["region_buckets"]) == 4
    assert "series" not in metrics
    json.dumps(metrics)


def test_sentiment_metrics_without_buckets():
    metrics = compute_sentiment_metrics([], ResolutionSummary())

    assert metrics["regions"] == []
    assert metrics["coverage"]["coverage"] == 0.0
    assert metrics["net_sentiment_summary"]["mean"] == 0.0


def test_sentiment_metrics_series_correlation():
    joined = pl.DataFrame(
        {
            "region": ["Texas", "Texas", "Ohio", "Utah"],
            "bucket": ["2020-03", "2020-04", "2020-03", "2020-03"],
            "net_sentiment": [1, -2, 3, 0],
            "value": [2.0, -4.0, 6.0, None],
        }
    )
    metrics = compute_sentiment_metrics(sample_buckets(), ResolutionSummary(total=1, resolved=1), joined)

    series = metrics["series"]
    assert series["matched_buckets"] == 3
    assert series["unmatched_buckets"] == 1
    assert series["correlation"] == pytest.approx(1.0)


def test_cluster_metrics_describe_each_profile():
    result = cluster_similarity_row([1, 1, 1, 1, 1, 10, 10, 10, 10, 10], bandwidth=1.0, sample_count=128)
    metrics = compute_cluster_metrics({0: result}, record_ids=[101, 102])

    profile = metrics["profiles"][0]
    assert profile["reference_record_id"] == 101
    assert profile["cluster_count"] == 2
    assert len(profile["boundaries"]) == 1
    assert len(profile["density"]["x"]) == 128
    assert sum(profile["label_counts"].values()) == 128
    assert metrics["cluster_summary"]["max_clusters"] == 2
    assert metrics["metadata"]["num_graphs"] == 2
    json.dumps(metrics)


def test_cluster_metrics_without_results():
    metrics = compute_cluster_metrics({}, record_ids=[])
    assert metrics["profiles"] == []
    assert metrics["cluster_summary"] == {"max_clusters": 0, "median_clusters": 0}
