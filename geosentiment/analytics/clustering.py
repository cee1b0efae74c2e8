"""Cluster a one-dimensional similarity profile at the minima of its density estimate.

The profile (one row of a similarity matrix) is smoothed with a kernel density
estimate sampled on a regular grid. Critical points are located where the
finite-difference derivative of that curve changes sign; the local minima
become cluster boundaries and every grid point is labelled with the interval
it falls into.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Sequence

import numpy as np
from sklearn.neighbors import KernelDensity

from ..utils.logging import get_logger

LOGGER = get_logger(__name__)

LOCAL_MAX = "local_max"
LOCAL_MIN = "local_min"
LEFTMOST_LABEL = 0


class InvalidInput(ValueError):
    """Raised when clustering parameters or the input row are unusable."""


class InconsistentDerivative(RuntimeError):
    """Raised when a flagged root pair is neither a local maximum nor a local minimum."""


@dataclass(slots=True)
class DensityCurve:
    """Density samples; ``x`` is strictly increasing."""

    x: np.ndarray
    y: np.ndarray

    def __len__(self) -> int:
        return int(self.x.shape[0])


@dataclass(slots=True, frozen=True)
class CriticalPoint:
    x: float
    kind: str


@dataclass(slots=True)
class ClusterResult:
    """Output of clustering one similarity row.

    Attributes:
        curve: The discretised density estimate.
        extrema: Classified critical points in increasing ``x`` order.
        boundaries: ``x`` positions of the local minima, strictly increasing.
        labels: Interval index for every curve sample. ``0`` is the leftmost
            cluster and ``len(boundaries)`` the rightmost one.
    """

    curve: DensityCurve
    extrema: List[CriticalPoint] = field(default_factory=list)
    boundaries: np.ndarray = field(default_factory=lambda: np.empty(0))
    labels: np.ndarray = field(default_factory=lambda: np.empty(0, dtype=np.int64))

    @property
    def cluster_count(self) -> int:
        return int(self.boundaries.shape[0]) + 1

    @property
    def rightmost_label(self) -> int:
        return int(self.boundaries.shape[0])

    def label_name(self, label: int) -> str:
        if label == LEFTMOST_LABEL:
            return "leftmost"
        if label == self.rightmost_label:
            return "rightmost"
        return f"cluster_{label}"

    def label_counts(self) -> Dict[str, int]:
        values, counts = np.unique(self.labels, return_counts=True)
        return {self.label_name(int(value)): int(count) for value, count in zip(values, counts)}


@dataclass(slots=True)
class ClustererConfig:
    """Density estimation settings for `SimilarityProfileClusterer`."""

    bandwidth: float
    sample_count: int = 512
    kernel: str = "gaussian"
    cut: float = 3.0


def estimate_density(
    row: np.ndarray, bandwidth: float, sample_count: int, kernel: str = "gaussian", cut: float = 3.0
) -> DensityCurve:
    """Sample a kernel density estimate of ``row`` on ``sample_count`` evenly spaced points.

    The grid spans ``cut * bandwidth`` beyond the smallest and largest values.
    """
    padding = cut * bandwidth
    x = np.linspace(row.min() - padding, row.max() + padding, sample_count)
    estimator = KernelDensity(kernel=kernel, bandwidth=bandwidth).fit(row.reshape(-1, 1))
    y = np.exp(estimator.score_samples(x.reshape(-1, 1)))
    return DensityCurve(x=x, y=y)


def finite_difference(curve: DensityCurve) -> np.ndarray:
    """Slope between consecutive samples, one value per sample after the first."""
    return (curve.y[:-1] - curve.y[1:]) / (curve.x[:-1] - curve.x[1:])


def derivative_signs(slopes: np.ndarray) -> np.ndarray:
    """Signs of ``slopes`` where an exact zero inherits the sign before it.

    Leading zeros take the first non-zero sign; an all-zero input stays zero.
    A flat run therefore never introduces a sign change of its own, and the
    change across it is attributed to the sample that ends the run. When a
    narrow bandwidth underflows the density to exactly zero across a wide
    valley, the resulting minimum sits at the right end of the zero run and the
    whole valley joins the cluster on its left.
    """
    signs = np.sign(slopes).astype(np.int8)
    nonzero = np.flatnonzero(signs)
    if nonzero.size == 0:
        return signs
    last_seen = np.maximum.accumulate(np.where(signs != 0, np.arange(signs.size), -1))
    last_seen[last_seen < 0] = nonzero[0]
    return signs[last_seen]


def flag_roots(signs: np.ndarray) -> np.ndarray:
    """Indices whose sign differs from either neighbour.

    Both samples flanking a sign change are flagged, so roots come in adjacent
    pairs. The first and last samples lack a neighbour and are never flagged.
    """
    if signs.size < 3:
        return np.empty(0, dtype=np.int64)
    inner = signs[1:-1]
    flagged = (inner != signs[:-2]) | (inner != signs[2:])
    return np.flatnonzero(flagged) + 1


def classify_roots(x: np.ndarray, signs: np.ndarray, roots: np.ndarray) -> List[CriticalPoint]:
    """Pair consecutive roots and classify each pair as a local maximum or minimum.

    An odd trailing root is discarded.
    """
    extrema: List[CriticalPoint] = []
    for first, second in zip(roots[0::2], roots[1::2]):
        estimate = float((x[first] + x[second]) / 2.0)
        before, after = int(signs[first]), int(signs[second])
        if before > 0 and after < 0:
            extrema.append(CriticalPoint(x=estimate, kind=LOCAL_MAX))
        elif before < 0 and after > 0:
            extrema.append(CriticalPoint(x=estimate, kind=LOCAL_MIN))
        else:
            raise InconsistentDerivative(
                f"Root pair at x={x[first]:.6g}, x={x[second]:.6g} has derivative signs "
                f"({before}, {after}); expected opposite signs"
            )
    return extrema


def assign_labels(x: np.ndarray, boundaries: np.ndarray) -> np.ndarray:
    """Interval index of every ``x``; a value equal to a boundary joins the interval on its left."""
    return np.searchsorted(boundaries, x, side="left").astype(np.int64)


class SimilarityProfileClusterer:
    """Partition a similarity row into contiguous clusters bounded by density minima."""

    def __init__(self, config: ClustererConfig):
        self.config = config

    def cluster(self, row: Sequence[float] | np.ndarray) -> ClusterResult:
        values = self._validate(row)
        cfg = self.config
        curve = estimate_density(values, cfg.bandwidth, cfg.sample_count, cfg.kernel, cfg.cut)

        slopes = finite_difference(curve)
        slope_x = curve.x[1:]
        signs = derivative_signs(slopes)
        roots = flag_roots(signs)
        if roots.size % 2:
            LOGGER.debug("Discarding unpaired trailing root at x=%s", slope_x[roots[-1]])
        extrema = classify_roots(slope_x, signs, roots)

        boundaries = np.array(
            [point.x for point in extrema if point.kind == LOCAL_MIN], dtype=np.float64
        )
        labels = assign_labels(curve.x, boundaries)
        LOGGER.debug(
            "Clustered row of %s values into %s clusters (%s extrema)",
            values.size,
            boundaries.size + 1,
            len(extrema),
        )
        return ClusterResult(curve=curve, extrema=extrema, boundaries=boundaries, labels=labels)

    def _validate(self, row: Sequence[float] | np.ndarray) -> np.ndarray:
        cfg = self.config
        try:
            values = np.asarray(row, dtype=np.float64).ravel()
        except (TypeError, ValueError) as exc:
            raise InvalidInput(f"Similarity row is not numeric: {exc}") from exc
        if values.size < 2:
            raise InvalidInput(f"Similarity row needs at least 2 values, got {values.size}")
        if not np.all(np.isfinite(values)):
            raise InvalidInput("Similarity row contains non-finite values")
        if not np.isfinite(cfg.bandwidth) or cfg.bandwidth <= 0:
            raise InvalidInput(f"Bandwidth must be positive, got {cfg.bandwidth}")
        if cfg.sample_count < 3:
            raise InvalidInput(f"sample_count must be at least 3, got {cfg.sample_count}")
        if cfg.cut < 0:
            raise InvalidInput(f"cut must be non-negative, got {cfg.cut}")
        if values.max() - values.min() + 2 * cfg.cut * cfg.bandwidth <= 0:
            raise InvalidInput("Constant similarity row needs cut > 0 to span a density grid")
        return values


def cluster_similarity_row(
    row: Sequence[float] | np.ndarray, bandwidth: float, sample_count: int
) -> ClusterResult:
    """Cluster ``row`` with a Gaussian density estimate."""
    return SimilarityProfileClusterer(
        ClustererConfig(bandwidth=bandwidth, sample_count=sample_count)
    ).cluster(row)
