"""CLI entry point: run the sentiment and similarity stages, then optionally open the dashboard."""
from __future__ import annotations

# ruff: noqa: E402

import argparse
import subprocess
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from geosentiment.graph.similarity import SimilarityTimeoutError
from geosentiment.pipelines.workflow import STAGES, run_pipeline
from geosentiment.utils.logging import get_logger, set_log_level

LOGGER = get_logger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Aggregate regional sentiment, cluster similarity profiles and optionally launch the dashboard."
    )
    parser.add_argument("--config", default="config/pipeline.yaml", help="Path to the YAML configuration file")
    parser.add_argument("--stage", choices=STAGES, default="all", help="Which stage to run (default: all)")
    parser.add_argument("--log-level", default=None, help="Override APP_LOG_LEVEL for this run")
    parser.add_argument(
        "--launch-dashboard",
        action="store_true",
        help="Start the Streamlit dashboard once the pipeline has finished.",
    )
    parser.add_argument("--dashboard-port", type=int, default=8501, help="Dashboard port (default: 8501)")
    return parser.parse_args(argv)


def _launch_dashboard(port: int) -> None:
    command = [
        sys.executable,
        "-m",
        "streamlit",
        "run",
        str(PROJECT_ROOT / "apps" / "dashboard.py"),
        f"--server.port={port}",
    ]
    LOGGER.info("Dashboard available on http://localhost:%s", port)
    try:
        subprocess.run(command, check=True)
    except subprocess.CalledProcessError as exc:
        LOGGER.error("Streamlit exited with return code %s; is the dashboard extra installed?", exc.returncode)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    if args.log_level:
        set_log_level(args.log_level)

    exit_code = 0
    try:
        run_pipeline(args.config, stage=args.stage)
    except SimilarityTimeoutError as exc:
        LOGGER.error("Similarity stage timed out: %s", exc)
        exit_code = 2

    if args.launch_dashboard:
        _launch_dashboard(args.dashboard_port)
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
