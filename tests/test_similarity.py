import threading
from datetime import date
from functools import partial

import numpy as np
import pytest

from geosentiment.data.models import Record
from geosentiment.graph.similarity import (
    SimilarityTimeoutError,
    compute_similarity_matrix,
    edge_overlap_kernel,
    get_kernel,
    sample_graph_indices,
    weisfeiler_lehman_kernel,
)
from geosentiment.graph.word_graph import GraphBuilder


def build_graphs(*texts):
    builder = GraphBuilder()
    return [
        builder.build(Record(id=idx, raw_location=None, text=text, timestamp=date(2021, 1, 1)))
        for idx, text in enumerate(texts)
    ]


@pytest.mark.parametrize("kernel", [weisfeiler_lehman_kernel, edge_overlap_kernel])
def test_kernels_return_symmetric_normalised_matrix(kernel):
    graphs = build_graphs(
        "the cat sat on the mat",
        "the cat sat on the mat",
        "a dog ran in the park",
    )
    matrix = kernel(graphs)

    assert matrix.shape == (3, 3)
    assert np.allclose(matrix, matrix.T)
    assert np.allclose(np.diag(matrix), 1.0)
    assert matrix[0, 1] == pytest.approx(1.0)
    assert matrix[0, 2] < matrix[0, 1]
    assert np.all(matrix >= 0.0)


@pytest.mark.parametrize("kernel", [weisfeiler_lehman_kernel, edge_overlap_kernel])
def test_empty_graphs_are_neutral(kernel):
    graphs = build_graphs("hello", "good morning sunshine")
    matrix = kernel(graphs)
    assert matrix[0, 0] == 0.0
    assert matrix[0, 1] == 0.0
    assert matrix[1, 0] == 0.0
    assert matrix[1, 1] == pytest.approx(1.0)


def test_compute_similarity_matrix_runs_kernel():
    graphs = build_graphs("one two three", "one two four")
    matrix = compute_similarity_matrix(graphs, kernel=edge_overlap_kernel, timeout=30)
    assert matrix.shape == (2, 2)
    assert 0.0 < matrix[0, 1] < 1.0


def test_compute_similarity_matrix_times_out_and_signals_cancel():
    started = threading.Event()
    observed = {}

    def slow_kernel(graphs, cancel_event):
        observed["event"] = cancel_event
        started.set()
        cancel_event.wait(5)
        return np.zeros((len(graphs), len(graphs)))

    with pytest.raises(SimilarityTimeoutError):
        compute_similarity_matrix(build_graphs("a b"), kernel=slow_kernel, timeout=0.5)
    assert started.wait(1)
    assert observed["event"].is_set()


def test_compute_similarity_matrix_accepts_single_argument_kernel():
    graphs = build_graphs("a b", "c d")
    matrix = compute_similarity_matrix(graphs, kernel=lambda graphs: np.eye(len(graphs)), timeout=5)
    assert np.array_equal(matrix, np.eye(2))


def test_compute_similarity_matrix_passes_event_to_partial_kernel():
    kernel = partial(weisfeiler_lehman_kernel, iterations=1)
    matrix = compute_similarity_matrix(build_graphs("a b", "a b"), kernel=kernel, timeout=30)
    assert matrix[0, 1] == pytest.approx(1.0)


def test_compute_similarity_matrix_rejects_wrong_shape():
    def broken_kernel(graphs, cancel_event):
        return np.zeros((1, 2))

    with pytest.raises(ValueError):
        compute_similarity_matrix(build_graphs("a b", "c d"), kernel=broken_kernel)


def test_get_kernel_by_name():
    assert get_kernel("edge_overlap") is edge_overlap_kernel
    with pytest.raises(ValueError):
        get_kernel("random_walk")


def test_sample_graph_indices_is_deterministic():
    first = sample_graph_indices(100, 10, seed=7)
    second = sample_graph_indices(100, 10, seed=7)
    assert first == second
    assert len(set(first)) == 10
    assert first == sorted(first)
    assert sample_graph_indices(5, 10) == [0, 1, 2, 3, 4]
    assert sample_graph_indices(5, 0) == [0, 1, 2, 3, 4]
