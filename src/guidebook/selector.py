"""Selectors that match free-text queries to guidance documents."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Iterable

from .models import GuidanceDocument

if TYPE_CHECKING:
    from .store import DocumentStore

_TOKEN_SPLIT = re.compile(r"[^\w.\-]+")


def tokenize(query: str) -> list[str]:
    """Lower-case a query and split it into distinct tokens, keeping first-seen order."""
    tokens: list[str] = []
    for token in _TOKEN_SPLIT.split(query.lower()):
        token = token.strip(".-_")
        if token and token not in tokens:
            tokens.append(token)
    return tokens


class Selector(ABC):
    """Abstract selector contract."""

    @abstractmethod
    def select(self, query: str, top_k: int | None = None) -> list[GuidanceDocument]:
        """Return the documents matching a query, best match first."""


class KeywordSelector(Selector):
    """Ranks documents by how many query tokens appear among their tags and topic keywords."""

    def __init__(self, documents: Iterable[GuidanceDocument]) -> None:
        self._documents: list[GuidanceDocument] = sorted(documents, key=lambda document: document.topic)

    @classmethod
    def from_store(cls, store: "DocumentStore") -> "KeywordSelector":
        return cls(store.load())

    def select(self, query: str, top_k: int | None = None) -> list[GuidanceDocument]:  # noqa: D401
        if top_k is not None and top_k < 0:
            raise ValueError("top_k must be zero or positive")

        tokens = tokenize(query)
        if not tokens:
            return self._truncate(list(self._documents), top_k)

        scored = [(self._score_tokens(tokens, document), document) for document in self._documents]
        scored = [(score, document) for score, document in scored if score > 0]
        scored.sort(key=lambda item: (-item[0], item[1].topic))
        return self._truncate([document for _, document in scored], top_k)

    def score(self, query: str, document: GuidanceDocument) -> int:
        return self._score_tokens(tokenize(query), document)

    @staticmethod
    def _score_tokens(tokens: list[str], document: GuidanceDocument) -> int:
        keywords = document.keywords()
        return sum(1 for token in tokens if token in keywords)

    @staticmethod
    def _truncate(documents: list[GuidanceDocument], top_k: int | None) -> list[GuidanceDocument]:
        if top_k is None:
            return documents
        return documents[:top_k]
