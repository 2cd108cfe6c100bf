"""Interest token extraction from loosely shaped profile and group fields."""

from __future__ import annotations

import re
from typing import Any, Iterable, Iterator, Mapping, Optional

_SPLIT_PATTERN = re.compile(r"[,/|\n]")


def _normalise(value: str) -> Optional[str]:
	token = value.strip().lower()
	return token or None


def _split(text: str) -> Iterator[str]:
	for part in _SPLIT_PATTERN.split(text):
		token = _normalise(part)
		if token:
			yield token


def _iter_elements(items: Iterable[Any]) -> Iterator[str]:
	for item in items:
		if isinstance(item, str):
			label: Any = item
		elif isinstance(item, Mapping):
			label = item.get("name") or item.get("title")
		else:
			continue
		if isinstance(label, str):
			token = _normalise(label)
			if token:
				yield token


def _iter_tokens(value: Any) -> Iterator[str]:
	if isinstance(value, str):
		yield from _split(value)
	elif isinstance(value, Mapping):
		yield from _iter_elements(value.values())
	elif isinstance(value, (list, tuple, set, frozenset)):
		yield from _iter_elements(value)


def extract_tokens(value: Any) -> list[str]:
	"""Return deduplicated lowercase tokens from a string, sequence or mapping.

	Strings are split on commas, slashes, pipes and newlines. Sequence elements may be
	bare strings or objects carrying a ``name``/``title``. Mappings are treated as the
	sequence of their values. Any other shape yields no tokens.
	"""
	return list(dict.fromkeys(_iter_tokens(value)))


def merge_tokens(*sources: Iterable[str], cap: Optional[int] = None) -> list[str]:
	"""Union token lists preserving first-seen order, optionally capped."""
	merged: dict[str, None] = {}
	for source in sources:
		for token in source:
			normalised = _normalise(token) if isinstance(token, str) else None
			if normalised:
				merged.setdefault(normalised, None)
	tokens = list(merged)
	return tokens[:cap] if cap is not None else tokens


__all__ = ["extract_tokens", "merge_tokens"]
