"""Helpers shared by the sentiment and similarity pipelines."""
from __future__ import annotations

from typing import Any, Dict, List

from ..data.csv_loader import RecordLoader, RecordSourceConfig
from ..data.models import Record
from ..utils.config import get_section
from ..utils.logging import get_logger

LOGGER = get_logger(__name__)


def load_records(config: Dict[str, Any]) -> List[Record]:
    records_cfg = get_section(get_section(config, "data"), "records")
    if not records_cfg.get("path"):
        raise ValueError("data.records.path must be set in the pipeline configuration")
    loader = RecordLoader(
        RecordSourceConfig(
            path=records_cfg["path"],
            limit=records_cfg.get("limit", 0),
            id_column=records_cfg.get("id_column", "id"),
            location_column=records_cfg.get("location_column", "location"),
            text_column=records_cfg.get("text_column", "text"),
            timestamp_column=records_cfg.get("timestamp_column", "created_at"),
            timestamp_format=records_cfg.get("timestamp_format"),
            encoding=records_cfg.get("encoding", "utf-8"),
            separator=records_cfg.get("separator", ","),
        )
    )
    records = list(loader.iter_records())
    LOGGER.info("Loaded %s records", len(records))
    return records
