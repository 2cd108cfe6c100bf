"""Typed records crossing the store boundary plus the per-request viewer context."""

from __future__ import annotations

import json
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional

import pydantic
from pydantic import BaseModel, ConfigDict, field_validator

from gigvora.domain.feed.exceptions import UpstreamStoreError


class MembershipStatus(str, Enum):
	"""Group membership states tracked in the database."""

	ACTIVE = "active"
	PENDING = "pending"
	INVITED = "invited"
	SUSPENDED = "suspended"


class ConnectionStatus(str, Enum):
	"""Connection edge states tracked in the database."""

	PENDING = "pending"
	ACCEPTED = "accepted"
	REJECTED = "rejected"


def to_plain(record: Any) -> dict[str, Any]:
	"""Flatten a store row (asyncpg record, mapping, model or plain object) into a dict."""
	if record is None:
		return {}
	if isinstance(record, BaseModel):
		return record.model_dump()
	if isinstance(record, Mapping) or hasattr(record, "keys"):
		return dict(record)
	if hasattr(record, "__dict__"):
		return {key: value for key, value in vars(record).items() if not key.startswith("_")}
	raise TypeError(f"cannot convert {type(record).__name__} to a plain mapping")


def _decode_json(value: Any) -> Any:
	# jsonb columns arrive as text unless a codec is registered on the connection
	if isinstance(value, str):
		text = value.strip()
		if text.startswith("[") or text.startswith("{"):
			try:
				return json.loads(text)
			except ValueError:
				return value
	return value


def _as_count(value: Any) -> int:
	try:
		return max(0, int(value))
	except (TypeError, ValueError):
		return 0


class _Record(BaseModel):
	model_config = ConfigDict(from_attributes=True, frozen=True, extra="ignore")

	@classmethod
	def from_row(cls, row: Any):
		try:
			return cls.model_validate(to_plain(row))
		except pydantic.ValidationError as exc:
			raise UpstreamStoreError(f"malformed_row: {cls.__name__}") from exc


class ProfileRecord(_Record):
	user_id: int
	headline: Optional[str] = None
	location: Optional[str] = None
	company: Optional[str] = None
	skills: Any = None
	areas_of_focus: Any = None
	preferred_engagements: Any = None
	collaboration_roles: Any = None
	impact_highlights: Any = None
	followers_count: int = 0
	likes_count: int = 0

	@field_validator(
		"skills",
		"areas_of_focus",
		"preferred_engagements",
		"collaboration_roles",
		"impact_highlights",
		mode="before",
	)
	@classmethod
	def _decode_text_fields(cls, value: Any) -> Any:
		return _decode_json(value)

	@field_validator("followers_count", "likes_count", mode="before")
	@classmethod
	def _coerce_counts(cls, value: Any) -> int:
		return _as_count(value)


def _decode_profile_payload(value: Any) -> Any:
	decoded = _decode_json(value)
	return decoded if isinstance(decoded, (Mapping, BaseModel)) else None


class MembershipRecord(_Record):
	"""A viewer's membership row joined with its group's metadata."""

	group_id: int
	user_id: int
	role: str = "member"
	status: str
	group_name: Optional[str] = None
	group_metadata: dict[str, Any] = {}

	@field_validator("role", mode="before")
	@classmethod
	def _default_role(cls, value: Any) -> Any:
		return "member" if value is None else value

	@field_validator("group_metadata", mode="before")
	@classmethod
	def _decode_metadata(cls, value: Any) -> dict[str, Any]:
		decoded = _decode_json(value)
		return dict(decoded) if isinstance(decoded, Mapping) else {}


class MemberRecord(_Record):
	"""An active member of one of the viewer's groups, joined with user and profile."""

	user_id: int
	group_id: int
	group_name: Optional[str] = None
	email: Optional[str] = None
	first_name: Optional[str] = None
	last_name: Optional[str] = None
	profile: Optional[ProfileRecord] = None

	@field_validator("profile", mode="before")
	@classmethod
	def _decode_profile(cls, value: Any) -> Any:
		return _decode_profile_payload(value)


class UserRecord(_Record):
	id: int
	email: Optional[str] = None
	first_name: Optional[str] = None
	last_name: Optional[str] = None
	profile: Optional[ProfileRecord] = None

	@field_validator("profile", mode="before")
	@classmethod
	def _decode_profile(cls, value: Any) -> Any:
		return _decode_profile_payload(value)


class ConnectionEdge(_Record):
	requester_id: int
	addressee_id: int
	status: str

	def other_party(self, user_id: int) -> int:
		return self.addressee_id if self.requester_id == user_id else self.requester_id


class GroupRecord(_Record):
	id: int
	name: str = ""
	description: Optional[str] = None
	metadata: dict[str, Any] = {}
	member_policy: Optional[str] = None
	member_count: int = 0
	created_at: Optional[datetime] = None

	@field_validator("name", mode="before")
	@classmethod
	def _default_name(cls, value: Any) -> Any:
		return "" if value is None else value

	@field_validator("metadata", mode="before")
	@classmethod
	def _decode_metadata(cls, value: Any) -> dict[str, Any]:
		decoded = _decode_json(value)
		return dict(decoded) if isinstance(decoded, Mapping) else {}

	@field_validator("member_count", mode="before")
	@classmethod
	def _coerce_count(cls, value: Any) -> int:
		return _as_count(value)


class PostRecord(_Record):
	id: int
	user_id: Optional[int] = None
	title: Optional[str] = None
	summary: Optional[str] = None
	content: Optional[str] = None
	type: Optional[str] = None
	published_at: Optional[datetime] = None
	created_at: Optional[datetime] = None
	first_name: Optional[str] = None
	last_name: Optional[str] = None
	profile: Optional[ProfileRecord] = None

	@field_validator("profile", mode="before")
	@classmethod
	def _decode_profile(cls, value: Any) -> Any:
		return _decode_profile_payload(value)


class ActiveMembership(_Record):
	group_id: int
	group_name: str
	focus: tuple[str, ...] = ()
	role: str = "member"
	status: str = MembershipStatus.ACTIVE.value


class ViewerContext(_Record):
	"""Everything known about the requesting viewer for one feed insights call."""

	viewer_id: Optional[int] = None
	profile: Optional[ProfileRecord] = None
	memberships: tuple[ActiveMembership, ...] = ()
	group_statuses: tuple[tuple[int, str], ...] = ()
	connections: tuple[ConnectionEdge, ...] = ()
	interests: tuple[str, ...] = ()

	@property
	def active_group_ids(self) -> list[int]:
		return [membership.group_id for membership in self.memberships]

	@property
	def membership_status(self) -> Mapping[int, str]:
		"""Read-only view of group id to membership status, for every membership row."""
		return MappingProxyType(dict(self.group_statuses))


class Candidate(_Record):
	"""An unscored profile considered for a connection suggestion."""

	user_id: int
	email: Optional[str] = None
	name: str
	headline: Optional[str] = None
	location: Optional[str] = None
	company: Optional[str] = None
	shared_groups: tuple[str, ...] = ()
	profile: Optional[ProfileRecord] = None

	@property
	def followers_count(self) -> int:
		return self.profile.followers_count if self.profile else 0

	@property
	def likes_count(self) -> int:
		return self.profile.likes_count if self.profile else 0


def display_name(first_name: Optional[str], last_name: Optional[str], fallback: str = "Gigvora member") -> str:
	name = " ".join(part.strip() for part in (first_name, last_name) if part and part.strip())
	return name or fallback
