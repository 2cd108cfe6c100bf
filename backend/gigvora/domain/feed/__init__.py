"""Feed insights: ranked connection, group and live moment suggestions for a viewer."""

from gigvora.domain.feed.exceptions import FeedInsightsError, UpstreamStoreError, ValidationError
from gigvora.domain.feed.schemas import ConnectionSuggestion, FeedInsightsResponse, GroupSuggestion, Moment
from gigvora.domain.feed.service import FeedInsightsService, get_feed_insights

__all__ = [
	"ConnectionSuggestion",
	"FeedInsightsError",
	"FeedInsightsResponse",
	"FeedInsightsService",
	"GroupSuggestion",
	"Moment",
	"UpstreamStoreError",
	"ValidationError",
	"get_feed_insights",
]
