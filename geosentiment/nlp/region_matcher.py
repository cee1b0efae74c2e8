"""Resolve free-text location strings to canonical regions by substring matching."""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple

from ..data.models import MULTIPLE_STATES, Record, Region
from ..data.regions import US_STATES
from ..utils.logging import get_logger

LOGGER = get_logger(__name__)


@dataclass(slots=True)
class RegionMatcherConfig:
    """Configuration for batch region resolution."""

    max_workers: int = 1
    chunk_size: int = 5000


@dataclass(slots=True)
class ResolutionSummary:
    """Counts of how a batch of records resolved."""

    total: int = 0
    resolved: int = 0
    ambiguous: int = 0
    unresolved: int = 0

    @property
    def coverage(self) -> float:
        """Fraction of records that resolved to exactly one region."""
        return self.resolved / self.total if self.total else 0.0

    def as_dict(self) -> dict:
        return {
            "total": self.total,
            "resolved": self.resolved,
            "ambiguous": self.ambiguous,
            "unresolved": self.unresolved,
            "coverage": self.coverage,
        }


def _occurrences(haystack: str, needle: str) -> Iterator[Tuple[int, int]]:
    start = haystack.find(needle)
    while start != -1:
        yield start, start + len(needle)
        start = haystack.find(needle, start + 1)


class RegionMatcher:
    """Match locations against every region's full name and abbreviation.

    Matching is case-sensitive. One matching region resolves to its name,
    several resolve to ``"multiple_states"`` and none (or a missing location)
    resolve to ``None``. A full-name occurrence lying entirely inside an
    occurrence of a longer region name ("Virginia" inside "West Virginia")
    is not counted for the shorter region.
    """

    def __init__(
        self,
        regions: Sequence[Region] = US_STATES,
        config: RegionMatcherConfig | None = None,
    ) -> None:
        if not regions:
            raise ValueError("RegionMatcher requires at least one region")
        self.regions = tuple(regions)
        self.config = config or RegionMatcherConfig()
        # name -> longer region names that embed it
        self._containing_names = {
            region.name: [
                other.name
                for other in self.regions
                if other.name != region.name and region.name in other.name
            ]
            for region in self.regions
        }

    def membership(self, raw_location: str) -> List[bool]:
        """Boolean match vector aligned with ``self.regions``."""
        return [self._matches(raw_location, region) for region in self.regions]

    def resolve(self, raw_location: Optional[str]) -> Optional[str]:
        if not isinstance(raw_location, str):
            return None
        matched = [
            region.name
            for region, hit in zip(self.regions, self.membership(raw_location))
            if hit
        ]
        if len(matched) == 1:
            return matched[0]
        if len(matched) > 1:
            return MULTIPLE_STATES
        return None

    def resolve_records(
        self, records: Sequence[Record]
    ) -> Tuple[List[Record], ResolutionSummary]:
        """Resolve a batch, fanning chunks out over a thread pool when configured."""
        chunk_size = max(1, self.config.chunk_size)
        chunks = [records[i : i + chunk_size] for i in range(0, len(records), chunk_size)]
        if self.config.max_workers > 1 and len(chunks) > 1:
            with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
                resolved_chunks = list(executor.map(self._resolve_chunk, chunks))
        else:
            resolved_chunks = [self._resolve_chunk(chunk) for chunk in chunks]

        resolved = [record for chunk in resolved_chunks for record in chunk]
        summary = summarize_resolution(resolved)
        LOGGER.info(
            "Resolved %s/%s records to a single region (coverage %.1f%%, %s ambiguous, %s unresolved)",
            summary.resolved,
            summary.total,
            summary.coverage * 100,
            summary.ambiguous,
            summary.unresolved,
        )
        return resolved, summary

    def _resolve_chunk(self, chunk: Sequence[Record]) -> List[Record]:
        return [record.with_region(self.resolve(record.raw_location)) for record in chunk]

    def _matches(self, raw_location: str, region: Region) -> bool:
        if region.abbreviation in raw_location:
            return True
        containing = self._containing_names[region.name]
        if not containing:
            return region.name in raw_location
        covered = [
            span
            for other in containing
            for span in _occurrences(raw_location, other)
        ]
        for start, end in _occurrences(raw_location, region.name):
            if not any(c_start <= start and end <= c_end for c_start, c_end in covered):
                return True
        return False


def resolve_location(raw_location: Optional[str], regions: Sequence[Region] = US_STATES) -> Optional[str]:
    """Resolve a single location against ``regions``."""
    return RegionMatcher(regions).resolve(raw_location)


def summarize_resolution(records: Sequence[Record]) -> ResolutionSummary:
    summary = ResolutionSummary(total=len(records))
    for record in records:
        if record.resolved_region is None:
            summary.unresolved += 1
        elif record.resolved_region == MULTIPLE_STATES:
            summary.ambiguous += 1
        else:
            summary.resolved += 1
    return summary
