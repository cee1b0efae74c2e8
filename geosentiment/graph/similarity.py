"""Graph-kernel similarity matrices over word graphs, run behind a timeout."""
from __future__ import annotations

import inspect
import threading
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Callable, Dict, List, Optional, Sequence

import networkx as nx
import numpy as np

from ..utils.logging import get_logger

LOGGER = get_logger(__name__)

# kernel(graphs) or kernel(graphs, cancel_event) -> square matrix. A kernel that
# takes the event must poll it and return early once set; compute_similarity_matrix
# cannot stop a worker thread, so a kernel that ignores it keeps running after a
# timeout and holds interpreter exit until it finishes.
Kernel = Callable[..., np.ndarray]


class SimilarityTimeoutError(TimeoutError):
    """Raised when the similarity computation exceeds its time budget."""


class SimilarityCancelled(RuntimeError):
    """Raised inside a kernel once its cancellation event is set."""


def _check_cancelled(cancel_event: Optional[threading.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise SimilarityCancelled("Similarity computation cancelled")


def _normalized_gram(features: List[Counter], cancel_event: Optional[threading.Event]) -> np.ndarray:
    size = len(features)
    gram = np.zeros((size, size), dtype=np.float64)
    for i in range(size):
        _check_cancelled(cancel_event)
        for j in range(i, size):
            left, right = features[i], features[j]
            if len(left) > len(right):
                left, right = right, left
            value = float(sum(count * right[key] for key, count in left.items() if key in right))
            gram[i, j] = gram[j, i] = value
    diagonal = np.sqrt(np.diag(gram))
    denominator = np.outer(diagonal, diagonal)
    # Pairs touching an empty graph have a zero denominator and stay at 0.
    return np.divide(gram, denominator, out=np.zeros_like(gram), where=denominator > 0)


def _wl_features(graph: nx.DiGraph, iterations: int) -> Counter:
    features: Counter = Counter(f"0:{label}" for _, label in graph.nodes(data="label"))
    if graph.number_of_nodes() == 0 or iterations == 0:
        return features
    hashes = nx.weisfeiler_lehman_subgraph_hashes(graph, node_attr="label", iterations=iterations)
    for node_hashes in hashes.values():
        for depth, value in enumerate(node_hashes, start=1):
            features[f"{depth}:{value}"] += 1
    return features


def weisfeiler_lehman_kernel(
    graphs: Sequence[nx.DiGraph],
    cancel_event: Optional[threading.Event] = None,
    iterations: int = 2,
) -> np.ndarray:
    """Cosine-normalised Weisfeiler-Lehman subtree kernel on token labels."""
    features = []
    for graph in graphs:
        _check_cancelled(cancel_event)
        features.append(_wl_features(graph, iterations))
    return _normalized_gram(features, cancel_event)


def edge_overlap_kernel(
    graphs: Sequence[nx.DiGraph],
    cancel_event: Optional[threading.Event] = None,
) -> np.ndarray:
    """Cosine-normalised kernel over weighted edge counts."""
    features = [
        Counter({(u, v): weight for u, v, weight in graph.edges(data="weight", default=1)})
        for graph in graphs
    ]
    return _normalized_gram(features, cancel_event)


KERNELS: Dict[str, Kernel] = {
    "weisfeiler_lehman": weisfeiler_lehman_kernel,
    "edge_overlap": edge_overlap_kernel,
}


def get_kernel(name: str) -> Kernel:
    try:
        return KERNELS[name]
    except KeyError:
        raise ValueError(f"Unknown similarity kernel '{name}'. Expected one of {sorted(KERNELS)}") from None


def compute_similarity_matrix(
    graphs: Sequence[nx.DiGraph],
    kernel: Kernel = weisfeiler_lehman_kernel,
    timeout: Optional[float] = None,
) -> np.ndarray:
    """Run ``kernel`` on a worker thread and return its square similarity matrix.

    Kernels taking a second positional argument receive a cancellation event,
    which is set when ``timeout`` elapses; `SimilarityTimeoutError` is raised
    either way. One-argument kernels run unchanged but cannot be interrupted.
    """
    graph_list = list(graphs)
    cancel_event = threading.Event()
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="similarity")
    try:
        if _accepts_cancel_event(kernel):
            future = executor.submit(kernel, graph_list, cancel_event)
        else:
            future = executor.submit(kernel, graph_list)
        try:
            matrix = future.result(timeout=timeout)
        except FutureTimeoutError as exc:
            cancel_event.set()
            future.cancel()
            raise SimilarityTimeoutError(
                f"Similarity over {len(graph_list)} graphs exceeded {timeout}s"
            ) from exc
    finally:
        executor.shutdown(wait=False)

    matrix = np.asarray(matrix, dtype=np.float64)
    if matrix.shape != (len(graph_list), len(graph_list)):
        raise ValueError(
            f"Kernel returned shape {matrix.shape}, expected {(len(graph_list), len(graph_list))}"
        )
    LOGGER.info("Computed %sx%s similarity matrix", *matrix.shape)
    return matrix


def _accepts_cancel_event(kernel: Kernel) -> bool:
    try:
        parameters = inspect.signature(kernel).parameters.values()
    except (TypeError, ValueError):
        return True
    positional = [
        parameter
        for parameter in parameters
        if parameter.kind in (parameter.POSITIONAL_ONLY, parameter.POSITIONAL_OR_KEYWORD)
    ]
    return len(positional) >= 2 or any(parameter.kind is parameter.VAR_POSITIONAL for parameter in parameters)


def sample_graph_indices(total: int, sample_size: int, seed: int = 0) -> List[int]:
    """Deterministically pick ``sample_size`` distinct indices out of ``total``, in order."""
    if sample_size <= 0 or sample_size >= total:
        return list(range(total))
    rng = np.random.default_rng(seed)
    chosen = rng.choice(total, size=sample_size, replace=False)
    return sorted(int(index) for index in chosen)
