"""JSON writers for pipeline artifacts."""
from __future__ import annotations

import json
import pathlib
from typing import Any, Iterable

from .logging import get_logger

LOGGER = get_logger(__name__)


def _prepare(path: str | pathlib.Path) -> pathlib.Path:
    data_path = pathlib.Path(path)
    data_path.parent.mkdir(parents=True, exist_ok=True)
    return data_path


def write_jsonl(path: str | pathlib.Path, records: Iterable[dict]) -> int:
    """Write one JSON object per line and return how many were written."""
    data_path = _prepare(path)
    written = 0
    with data_path.open("w", encoding="utf-8") as handle:
        for record in records:
            handle.write(json.dumps(record, ensure_ascii=False) + "\n")
            written += 1
    LOGGER.info("Wrote %s records to %s", written, data_path)
    return written


def write_json(path: str | pathlib.Path, payload: dict[str, Any]) -> None:
    data_path = _prepare(path)
    with data_path.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, ensure_ascii=False, indent=2)
    LOGGER.info("Wrote JSON document to %s", data_path)
