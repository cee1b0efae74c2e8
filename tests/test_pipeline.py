import json
from pathlib import Path

import numpy as np
import pytest
import yaml

from geosentiment.analytics.clustering import InvalidInput
from geosentiment.pipelines.sentiment_pipeline import run_sentiment_pipeline
from geosentiment.pipelines.similarity_pipeline import cluster_rows, run_similarity_pipeline
from geosentiment.pipelines.workflow import run_pipeline

RECORDS = [
    "id,location,text,created_at",
    "1,Austin Texas,good food and great people,2020-03-01",
    "2,TX,bad traffic,2020-03-09",
    "3,Columbus Ohio,awful weather today,2020-03-10",
    "4,Texas and Ohio,good,2020-03-11",
    "5,somewhere,great,2020-03-12",
    "6,Ohio,good people good food,2020-04-02",
]
LEXICON = ["word,sentiment", "good,positive", "great,positive", "bad,negative", "awful,negative"]
SERIES = ["region,date,value", "Texas,2020-03-05,10", "Ohio,2020-03-05,4", "Ohio,2020-04-07,7"]


@pytest.fixture()
def pipeline_config(tmp_path: Path) -> Path:
    (tmp_path / "records.csv").write_text("\n".join(RECORDS) + "\n", encoding="utf-8")
    (tmp_path / "lexicon.csv").write_text("\n".join(LEXICON) + "\n", encoding="utf-8")
    (tmp_path / "series.csv").write_text("\n".join(SERIES) + "\n", encoding="utf-8")
    config = {
        "data": {
            "records": {"path": str(tmp_path / "records.csv")},
            "lexicon": {"path": str(tmp_path / "lexicon.csv")},
            "series": {"path": str(tmp_path / "series.csv")},
        },
        "matching": {"max_workers": 2, "chunk_size": 2},
        "sentiment": {"time_bucket": "month"},
        "graph": {"sample_size": 0},
        "similarity": {"kernel": "edge_overlap", "timeout": 30},
        "clustering": {"bandwidth": 0.1, "sample_count": 64, "exclude_self": True, "on_error": "skip"},
        "analytics": {
            "sentiment_metrics_path": str(tmp_path / "out" / "sentiment.json"),
            "cluster_metrics_path": str(tmp_path / "out" / "clusters.json"),
            "resolved_records_path": str(tmp_path / "out" / "resolved.jsonl"),
        },
    }
    path = tmp_path / "pipeline.yaml"
    path.write_text(yaml.safe_dump(config), encoding="utf-8")
    return path


def test_sentiment_pipeline_writes_metrics(pipeline_config: Path):
    buckets = run_sentiment_pipeline(pipeline_config)

    assert [(b.region, b.bucket, b.positive, b.negative) for b in buckets] == [
        ("Ohio", "2020-03", 0, 1),
        ("Ohio", "2020-04", 2, 0),
        ("Texas", "2020-03", 2, 1),
    ]
    out_dir = pipeline_config.parent / "out"
    metrics = json.loads((out_dir / "sentiment.json").read_text(encoding="utf-8"))
    assert metrics["coverage"]["total"] == 6
    assert metrics["coverage"]["resolved"] == 4
    assert metrics["coverage"]["ambiguous"] == 1
    assert metrics["series"]["matched_buckets"] == 3
    assert metrics["metadata"]["time_bucket"] == "month"

    resolved = [
        json.loads(line)
        for line in (out_dir / "resolved.jsonl").read_text(encoding="utf-8").splitlines()
    ]
    assert [row["resolved_region"] for row in resolved] == [
        "Texas",
        "Texas",
        "Ohio",
        "multiple_states",
        None,
        "Ohio",
    ]


def test_similarity_pipeline_writes_cluster_metrics(pipeline_config: Path):
    run_similarity_pipeline(pipeline_config)

    metrics_path = pipeline_config.parent / "out" / "clusters.json"
    metrics = json.loads(metrics_path.read_text(encoding="utf-8"))
    assert metrics["metadata"]["num_graphs"] == 6
    for profile in metrics["profiles"]:
        assert len(profile["density"]["x"]) == 64


def test_run_pipeline_rejects_unknown_stage(pipeline_config: Path):
    with pytest.raises(ValueError):
        run_pipeline(pipeline_config, stage="train")


def test_run_pipeline_all_stages(pipeline_config: Path):
    run_pipeline(pipeline_config, stage="all")
    out_dir = pipeline_config.parent / "out"
    assert (out_dir / "sentiment.json").exists()
    assert (out_dir / "clusters.json").exists()


def test_cluster_rows_excludes_reference_column():
    matrix = np.array(
        [
            [1.0, 0.1, 0.12, 0.9, 0.92],
            [0.1, 1.0, 0.2, 0.2, 0.2],
            [0.12, 0.2, 1.0, 0.2, 0.2],
            [0.9, 0.2, 0.2, 1.0, 0.2],
            [0.92, 0.2, 0.2, 0.2, 1.0],
        ]
    )
    results = cluster_rows(matrix, {"bandwidth": 0.05, "sample_count": 128, "exclude_self": True})

    assert list(results) == [0]
    assert results[0].cluster_count == 2
    assert results[0].curve.x.max() == pytest.approx(0.92 + 3 * 0.05)


def test_cluster_rows_abort_and_skip():
    matrix = np.array([[1.0, np.nan], [0.5, 1.0]])
    config = {"bandwidth": 0.1, "sample_count": 32, "reference_positions": [0, 1]}

    with pytest.raises(InvalidInput):
        cluster_rows(matrix, config)

    results = cluster_rows(matrix, {**config, "on_error": "skip"})
    assert list(results) == [1]


def test_cluster_rows_requires_bandwidth():
    with pytest.raises(ValueError):
        cluster_rows(np.eye(3), {})
    with pytest.raises(ValueError):
        cluster_rows(np.eye(3), {"bandwidth": 0.1, "on_error": "retry"})
