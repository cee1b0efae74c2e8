"""Mage block: word-graph similarity and density-minimum clustering of reference rows."""
from geosentiment.pipelines.similarity_pipeline import run_similarity_pipeline


def execute(config_path: str = "config/pipeline.yaml"):
    results = run_similarity_pipeline(config_path)
    return {position: result.cluster_count for position, result in results.items()}
