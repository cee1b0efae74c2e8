"""Run both pipelines from one configuration file."""
from __future__ import annotations

from pathlib import Path

from ..utils.logging import get_logger
from .sentiment_pipeline import run_sentiment_pipeline
from .similarity_pipeline import run_similarity_pipeline

LOGGER = get_logger(__name__)

STAGES = ("sentiment", "similarity", "all")


def run_pipeline(config_path: str | Path = "config/pipeline.yaml", stage: str = "all") -> None:
    if stage not in STAGES:
        raise ValueError(f"Unknown stage '{stage}'. Expected one of {STAGES}")
    if stage in {"sentiment", "all"}:
        buckets = run_sentiment_pipeline(config_path)
        LOGGER.info("Sentiment stage produced %s buckets", len(buckets))
    if stage in {"similarity", "all"}:
        results = run_similarity_pipeline(config_path)
        LOGGER.info("Similarity stage clustered %s reference rows", len(results))
