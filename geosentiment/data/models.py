"""Dataclasses describing the core data structures processed by the pipeline."""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from typing import Optional

MULTIPLE_STATES = "multiple_states"
POLARITIES = frozenset({"positive", "negative"})


@dataclass(slots=True, frozen=True)
class Region:
    """A canonical region with its full name and two-letter abbreviation."""

    name: str
    abbreviation: str


@dataclass(slots=True, frozen=True)
class Record:
    """A text record with its free-form location and the region it resolved to."""

    id: int
    raw_location: Optional[str]
    text: str
    timestamp: date
    resolved_region: Optional[str] = None

    def with_region(self, resolved_region: Optional[str]) -> "Record":
        """Return a copy carrying the resolved region."""
        return replace(self, resolved_region=resolved_region)

    @property
    def has_single_region(self) -> bool:
        return self.resolved_region is not None and self.resolved_region != MULTIPLE_STATES


@dataclass(slots=True)
class SentimentBucket:
    """Positive and negative token counts for one (region, time bucket) key."""

    region: str
    bucket: str
    positive: int = 0
    negative: int = 0

    @property
    def net(self) -> int:
        return self.positive - self.negative
