"""Shared data structures for guidance documents."""

from __future__ import annotations

import re
from dataclasses import dataclass

_TOPIC_SPLIT = re.compile(r"[-_.]+")


@dataclass(frozen=True)
class GuidanceDocument:
    """A unit of review guidance keyed by topic."""

    topic: str
    tags: frozenset[str]
    body: str
    title: str | None = None

    def __post_init__(self) -> None:
        normalized = frozenset(tag.strip().lower() for tag in self.tags if tag.strip())
        object.__setattr__(self, "tags", normalized)

    def keywords(self) -> frozenset[str]:
        """Return the tags plus the pieces of the topic identifier."""
        parts = {part for part in _TOPIC_SPLIT.split(self.topic.lower()) if part}
        return self.tags | parts | {self.topic.lower()}

    def summary(self) -> str:
        tag_list = ", ".join(sorted(self.tags)) or "-"
        line = f"{self.topic} [{tag_list}]"
        if self.title:
            line += f": {self.title}"
        return line
