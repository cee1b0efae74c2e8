"""Streamlit dashboard visualising regional sentiment and similarity clusters."""
from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Dict, Tuple

import altair as alt  # type: ignore[import-not-found]
import polars as pl  # type: ignore[import-not-found]
import streamlit as st  # type: ignore[import-not-found]

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

DEFAULT_SENTIMENT_METRICS_PATH = Path("artifacts/sentiment_metrics.json")
DEFAULT_CLUSTER_METRICS_PATH = Path("artifacts/cluster_metrics.json")
US_STATES_TOPOJSON = "https://cdn.jsdelivr.net/npm/vega-datasets@v1.29.0/data/us-10m.json"


@st.cache_data(show_spinner=False)
def load_metrics(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        return _ensure_dict(json.load(handle))


def _ensure_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _ensure_list_of_dicts(value: Any) -> list[Dict[str, Any]]:
    if isinstance(value, list):
        return [item for item in value if isinstance(item, dict)]
    return []


def _format_percent(value: Any) -> str:
    try:
        return f"{float(value) * 100:.1f}%"
    except (TypeError, ValueError):
        return "–"


def _load_optional(path: Path) -> Tuple[Dict[str, Any], bool]:
    if not path.exists():
        return {}, False
    return load_metrics(path), True


def _render_coverage(coverage: Dict[str, Any]) -> None:
    cols = st.columns(4)
    cols[0].metric("Records", int(coverage.get("total", 0)))
    cols[1].metric("Resolved", int(coverage.get("resolved", 0)))
    cols[2].metric("Ambiguous", int(coverage.get("ambiguous", 0)))
    cols[3].metric("Coverage", _format_percent(coverage.get("coverage", 0.0)))
    if coverage.get("total") and coverage.get("coverage", 0.0) < 1.0:
        st.caption(
            "Records without a single resolved state are excluded from every chart below; "
            "compare counts before and after resolution with that in mind."
        )


def _render_choropleth(region_rows: list[Dict[str, Any]]) -> None:
    st.subheader("Net sentiment by state")
    region_df = pl.DataFrame(region_rows).drop_nulls(["fips"]) if region_rows else pl.DataFrame()
    if region_df.is_empty():
        st.write("No regional sentiment available.")
        return
    states = alt.topo_feature(US_STATES_TOPOJSON, "states")
    chart = (
        alt.Chart(states)
        .mark_geoshape(stroke="white", strokeWidth=0.5)
        .encode(
            color=alt.Color(
                "net_sentiment:Q",
                title="Net sentiment",
                scale=alt.Scale(scheme="redblue", domainMid=0),
            ),
            tooltip=[
                alt.Tooltip("region:N", title="State"),
                alt.Tooltip("positive:Q", title="Positive"),
                alt.Tooltip("negative:Q", title="Negative"),
                alt.Tooltip("net_sentiment:Q", title="Net"),
            ],
        )
        .transform_lookup(
            lookup="id",
            from_=alt.LookupData(
                data=region_df.to_pandas(),
                key="fips",
                fields=["region", "positive", "negative", "net_sentiment"],
            ),
        )
        .project(type="albersUsa")
        .properties(height=480)
    )
    st.altair_chart(chart, use_container_width=True)


def _render_timeline(metrics: Dict[str, Any]) -> None:
    st.subheader("Sentiment over time")
    region_buckets = _ensure_list_of_dicts(metrics.get("region_buckets", []))
    if not region_buckets:
        st.write("No timeline information available.")
        return
    frame = pl.DataFrame(region_buckets)
    regions = sorted(frame["region"].unique().to_list())
    selected = st.multiselect("States", regions, default=regions[:5])
    if selected:
        frame = frame.filter(pl.col("region").is_in(selected))
    chart = (
        alt.Chart(frame.to_pandas())
        .mark_line(point=True)
        .encode(
            x=alt.X("bucket:O", title="Bucket"),
            y=alt.Y("net_sentiment:Q", title="Net sentiment"),
            color=alt.Color("region:N", title="State"),
            tooltip=["region", "bucket", "positive", "negative", "net_sentiment"],
        )
    )
    st.altair_chart(chart, use_container_width=True)

    series = _ensure_dict(metrics.get("series"))
    if series:
        correlation = series.get("correlation")
        st.caption(
            f"Matched {series.get('matched_buckets', 0)} buckets with the companion series; "
            f"correlation with net sentiment: "
            f"{'n/a' if correlation is None else f'{correlation:.3f}'}"
        )


def _render_cluster_profiles(cluster_metrics: Dict[str, Any]) -> None:
    st.subheader("Similarity profile clusters")
    profiles = _ensure_list_of_dicts(cluster_metrics.get("profiles", []))
    if not profiles:
        st.write("No similarity profiles available. Run the similarity stage first.")
        return
    options = {
        f"Record {profile.get('reference_record_id')} (row {profile.get('reference_position')})": profile
        for profile in profiles
    }
    profile = options[st.selectbox("Reference record", list(options))]
    density = _ensure_dict(profile.get("density"))
    density_df = pl.DataFrame(
        {
            "similarity": density.get("x", []),
            "density": density.get("y", []),
            "cluster": [str(label) for label in density.get("label", [])],
        }
    )
    area = (
        alt.Chart(density_df.to_pandas())
        .mark_area(opacity=0.6)
        .encode(
            x=alt.X("similarity:Q", title="Similarity"),
            y=alt.Y("density:Q", title="Density"),
            color=alt.Color("cluster:N", title="Cluster"),
        )
    )
    boundaries = pl.DataFrame({"boundary": profile.get("boundaries", [])}, schema={"boundary": pl.Float64})
    rules = alt.Chart(boundaries.to_pandas()).mark_rule(strokeDash=[4, 4]).encode(x="boundary:Q")
    st.altair_chart(area + rules, use_container_width=True)

    cols = st.columns(2)
    cols[0].metric("Clusters", int(profile.get("cluster_count", 0)))
    cols[1].metric("Boundaries", len(profile.get("boundaries", [])))
    with st.expander("Cluster sizes (density samples)", expanded=False):
        st.json(_ensure_dict(profile.get("label_counts")), expanded=True)


def main() -> None:
    st.set_page_config(page_title="Regional Sentiment Dashboard", layout="wide")
    st.title("Regional Sentiment Insights")
    st.caption("Net sentiment by state and time bucket, plus similarity-profile clusters.")

    sentiment_metrics, has_sentiment = _load_optional(DEFAULT_SENTIMENT_METRICS_PATH)
    with st.expander("Upload custom metrics", expanded=False):
        uploaded_file = st.file_uploader("Choose a sentiment metrics JSON exported by the pipeline")
        if uploaded_file:
            sentiment_metrics = _ensure_dict(json.loads(uploaded_file.read()))
            has_sentiment = True

    if has_sentiment:
        _render_coverage(_ensure_dict(sentiment_metrics.get("coverage")))
        _render_choropleth(_ensure_list_of_dicts(sentiment_metrics.get("regions", [])))
        _render_timeline(sentiment_metrics)
    else:
        st.info(
            f"No sentiment metrics found at `{DEFAULT_SENTIMENT_METRICS_PATH}`. Run the pipeline first."
        )

    cluster_metrics, _ = _load_optional(DEFAULT_CLUSTER_METRICS_PATH)
    _render_cluster_profiles(cluster_metrics)


if __name__ == "__main__":
    main()
