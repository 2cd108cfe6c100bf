"""Response schemas for the feed insights payload."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

SuggestionStatus = Literal["connected", "pending", "available"]


class _Payload(BaseModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ConnectionSuggestion(_Payload):
	id: str
	user_id: int
	name: str
	headline: Optional[str] = None
	location: Optional[str] = None
	mutual_connections: int = 0
	shared_groups: list[str] = Field(default_factory=list)
	status: SuggestionStatus = "available"
	reason: str
	avatar_seed: Optional[str] = None


class GroupSuggestion(_Payload):
	id: str
	group_id: int
	name: str
	summary: Optional[str] = None
	focus: list[str] = Field(default_factory=list, max_length=4)
	location: Optional[str] = None
	member_count: int = 0
	members: int = 0
	status: str = "available"
	join_requires_approval: bool = False
	reason: str


class Moment(_Payload):
	id: str
	post_id: int
	title: str
	preview: Optional[str] = None
	tag: str
	icon: str
	timestamp: Optional[str] = None
	type: str


class FeedInsightsResponse(_Payload):
	generated_at: datetime
	interests: list[str] = Field(default_factory=list)
	connection_suggestions: list[ConnectionSuggestion] = Field(default_factory=list)
	group_suggestions: list[GroupSuggestion] = Field(default_factory=list)
	live_moments: list[Moment] = Field(default_factory=list)

	def to_payload(self) -> dict[str, Any]:
		"""JSON-ready dict using the camelCase keys the web client consumes."""
		return self.model_dump(by_alias=True, mode="json")


__all__ = [
	"ConnectionSuggestion",
	"FeedInsightsResponse",
	"GroupSuggestion",
	"Moment",
	"SuggestionStatus",
]
