"""Mage block: resolve regions and aggregate sentiment buckets."""
from geosentiment.pipelines.sentiment_pipeline import run_sentiment_pipeline


def execute(config_path: str = "config/pipeline.yaml"):
    buckets = run_sentiment_pipeline(config_path)
    return {
        "buckets": len(buckets),
        "regions": len({bucket.region for bucket in buckets}),
    }
