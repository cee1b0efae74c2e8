"""Build weighted directed word graphs from record text."""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, List

import networkx as nx

from ..data.models import Record
from ..data.preprocess import bigrams
from ..utils.logging import get_logger

LOGGER = get_logger(__name__)


@dataclass(slots=True)
class GraphBuilderConfig:
    """Configuration for word graph construction."""

    stopwords: FrozenSet[str] = field(default_factory=frozenset)


class GraphBuilder:
    """Turn a record's adjacent-token pairs into a `networkx.DiGraph`.

    Each ordered pair becomes one edge whose ``weight`` is the number of times
    the pair occurs in the record. Pairs with an empty token (punctuation-only
    spans) are dropped, as are pairs touching a configured stopword. A record
    without surviving pairs yields an empty graph.
    """

    def __init__(self, config: GraphBuilderConfig | None = None) -> None:
        self.config = config or GraphBuilderConfig()

    def build(self, record: Record) -> nx.DiGraph:
        stopwords = self.config.stopwords
        pair_counts = Counter(
            (first, second)
            for first, second in bigrams(record.text)
            if first and second and first not in stopwords and second not in stopwords
        )
        graph = nx.DiGraph(record_id=record.id)
        for (first, second), count in pair_counts.items():
            graph.add_edge(first, second, weight=count)
        for node in graph.nodes:
            graph.nodes[node]["label"] = node
        return graph

    def build_many(self, records: Iterable[Record]) -> List[nx.DiGraph]:
        graphs = [self.build(record) for record in records]
        empty = sum(1 for graph in graphs if graph.number_of_nodes() == 0)
        LOGGER.info("Built %s word graphs (%s empty)", len(graphs), empty)
        return graphs
