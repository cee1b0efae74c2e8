"""Pipeline: sample records, build word graphs, compute similarity, cluster reference rows."""
from __future__ import annotations

from functools import partial
from pathlib import Path
from typing import Any, Dict, List

import numpy as np

from ..analytics.clustering import (
    ClusterResult,
    ClustererConfig,
    InconsistentDerivative,
    InvalidInput,
    SimilarityProfileClusterer,
)
from ..analytics.metrics import compute_cluster_metrics
from ..data.csv_loader import load_stopwords
from ..graph.similarity import (
    compute_similarity_matrix,
    get_kernel,
    sample_graph_indices,
    weisfeiler_lehman_kernel,
)
from ..graph.word_graph import GraphBuilder, GraphBuilderConfig
from ..utils.config import get_section, load_config
from ..utils.io import write_json
from ..utils.logging import get_logger
from .common import load_records

LOGGER = get_logger(__name__)


def run_similarity_pipeline(config_path: str | Path = "config/pipeline.yaml") -> Dict[int, ClusterResult]:
    config = load_config(config_path)
    records = load_records(config)
    if not records:
        LOGGER.warning("No records were loaded; skipping similarity clustering")
        return {}

    graph_cfg = get_section(config, "graph")
    indices = sample_graph_indices(
        len(records),
        graph_cfg.get("sample_size", 200),
        seed=graph_cfg.get("seed", 0),
    )
    sampled = [records[index] for index in indices]
    stopwords = frozenset()
    if graph_cfg.get("use_stopwords"):
        stopwords = load_stopwords(get_section(config, "data").get("stopwords_path"))
    graphs = GraphBuilder(GraphBuilderConfig(stopwords=stopwords)).build_many(sampled)

    similarity_cfg = get_section(config, "similarity")
    matrix = compute_similarity_matrix(
        graphs,
        kernel=_resolve_kernel(similarity_cfg),
        timeout=similarity_cfg.get("timeout"),
    )
    results = cluster_rows(matrix, get_section(config, "clustering"))

    metrics_path = get_section(config, "analytics").get(
        "cluster_metrics_path", "artifacts/cluster_metrics.json"
    )
    payload = compute_cluster_metrics(results, [record.id for record in sampled])
    payload["metadata"]["config_path"] = str(config_path)
    write_json(metrics_path, payload)
    LOGGER.info("Cluster metrics saved to %s", metrics_path)
    return results


def cluster_rows(matrix: np.ndarray, clustering_cfg: Dict[str, Any]) -> Dict[int, ClusterResult]:
    """Cluster the configured reference rows of ``matrix``.

    With ``on_error: abort`` (the default) the first invalid or inconsistent row
    propagates its error; with ``on_error: skip`` it is logged and left out.
    """
    if "bandwidth" not in clustering_cfg:
        raise ValueError("clustering.bandwidth must be set in the pipeline configuration")
    on_error = clustering_cfg.get("on_error", "abort")
    if on_error not in {"abort", "skip"}:
        raise ValueError(f"clustering.on_error must be 'abort' or 'skip', got {on_error!r}")

    clusterer = SimilarityProfileClusterer(
        ClustererConfig(
            bandwidth=float(clustering_cfg["bandwidth"]),
            sample_count=int(clustering_cfg.get("sample_count", 512)),
            kernel=clustering_cfg.get("kernel", "gaussian"),
            cut=float(clustering_cfg.get("cut", 3.0)),
        )
    )
    positions: List[int] = clustering_cfg.get("reference_positions") or [0]
    exclude_self = clustering_cfg.get("exclude_self", False)

    results: Dict[int, ClusterResult] = {}
    for position in positions:
        if not 0 <= position < matrix.shape[0]:
            raise ValueError(f"Reference position {position} outside a {matrix.shape[0]}-row matrix")
        row = np.delete(matrix[position], position) if exclude_self else matrix[position]
        try:
            results[position] = clusterer.cluster(row)
        except (InvalidInput, InconsistentDerivative) as exc:
            if on_error == "abort":
                raise
            LOGGER.warning("Skipping reference row %s: %s", position, exc)
    LOGGER.info("Clustered %s of %s reference rows", len(results), len(positions))
    return results


def _resolve_kernel(similarity_cfg: Dict[str, Any]):
    name = similarity_cfg.get("kernel", "weisfeiler_lehman")
    kernel = get_kernel(name)
    if kernel is weisfeiler_lehman_kernel:
        return partial(kernel, iterations=similarity_cfg.get("iterations", 2))
    return kernel
