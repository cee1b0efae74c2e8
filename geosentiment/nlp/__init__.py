"""Natural language processing components."""

from .region_matcher import (
	RegionMatcher,
	RegionMatcherConfig,
	ResolutionSummary,
	resolve_location,
)
from .sentiment import (
	SentimentAggregator,
	get_time_bucket,
	join_with_series,
	monthly_bucket,
)

__all__ = [
	"RegionMatcher",
	"RegionMatcherConfig",
	"ResolutionSummary",
	"SentimentAggregator",
	"get_time_bucket",
	"join_with_series",
	"monthly_bucket",
	"resolve_location",
]
