from datetime import date

from geosentiment.data.models import Record
from geosentiment.data.preprocess import bigrams, normalize_token, tokenize
from geosentiment.graph.word_graph import GraphBuilder, GraphBuilderConfig


def build_record(text: str, record_id: int = 1) -> Record:
    return Record(id=record_id, raw_location=None, text=text, timestamp=date(2021, 5, 1))


def test_repeated_pairs_collapse_into_weighted_edges():
    graph = GraphBuilder().build(build_record("the cat saw the cat"))

    assert set(graph.nodes) == {"the", "cat", "saw"}
    assert graph["the"]["cat"]["weight"] == 2
    assert graph["cat"]["saw"]["weight"] == 1
    assert graph["saw"]["the"]["weight"] == 1
    assert not graph.has_edge("cat", "the")
    assert graph.graph["record_id"] == 1


def test_pairs_with_punctuation_only_tokens_are_dropped():
    graph = GraphBuilder().build(build_record("wow -- really ... yes"))

    assert graph.number_of_edges() == 0
    assert graph.number_of_nodes() == 0


def test_nodes_come_only_from_surviving_pairs():
    graph = GraphBuilder().build(build_record("lonely ! hello world"))

    assert set(graph.nodes) == {"hello", "world"}
    assert list(graph.edges) == [("hello", "world")]


def test_single_word_record_yields_empty_graph():
    graph = GraphBuilder().build(build_record("hello"))
    assert graph.number_of_nodes() == 0
    assert graph.number_of_edges() == 0


def test_stopword_pairs_are_dropped_when_configured():
    builder = GraphBuilder(GraphBuilderConfig(stopwords=frozenset({"the"})))
    graph = builder.build(build_record("the cat chased the dog"))
    assert list(graph.edges) == [("cat", "chased")]


def test_node_labels_are_tokens():
    graph = GraphBuilder().build(build_record("Sunny Day"))
    assert graph.nodes["sunny"]["label"] == "sunny"


def test_build_many_keeps_one_graph_per_record():
    records = [build_record("a b", 1), build_record("", 2), build_record("c d e", 3)]
    graphs = GraphBuilder().build_many(records)
    assert [graph.graph["record_id"] for graph in graphs] == [1, 2, 3]
    assert [graph.number_of_edges() for graph in graphs] == [1, 0, 2]


def test_token_helpers():
    assert normalize_token("Hello!!") == "hello"
    assert normalize_token("...") == ""
    assert normalize_token("don't") == "don't"
    assert bigrams("One, two") == [("one", "two")]
    assert tokenize("It's GREAT -- isn't it?") == ["it's", "great", "isn't", "it"]
