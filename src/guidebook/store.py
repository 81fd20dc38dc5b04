"""Read-only store for the bundled guidance documents."""

from __future__ import annotations

import json
import logging
import os
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import Iterable

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .models import GuidanceDocument

logger = logging.getLogger(__name__)

INDEX_FILE = "index.json"
GUIDES_PACKAGE = "guides"
GUIDEBOOK_PATH_ENV = "GUIDEBOOK_PATH"


class LoadError(RuntimeError):
    """Raised when guidance content cannot be read or is malformed."""


class GuideEntryModel(BaseModel):
    topic: str = Field(min_length=1)
    tags: list[str] = Field(default_factory=list)
    title: str | None = None
    path: str | None = None
    body: str | None = None

    @field_validator("topic")
    @classmethod
    def _topic_has_no_whitespace(cls, value: str) -> str:
        if any(char.isspace() for char in value):
            raise ValueError("topic must not contain whitespace")
        return value

    @field_validator("tags")
    @classmethod
    def _normalize_tags(cls, value: list[str]) -> list[str]:
        return [tag.strip().lower() for tag in value if tag.strip()]

    @field_validator("path")
    @classmethod
    def _path_stays_inside_root(cls, value: str | None) -> str | None:
        if value is None:
            return value
        if PurePosixPath(value).is_absolute() or PureWindowsPath(value).is_absolute() or value.startswith("\\"):
            raise ValueError("path must be relative to the guides directory")
        if ".." in PurePosixPath(value.replace("\\", "/")).parts:
            raise ValueError("path must not contain '..'")
        return value

    @model_validator(mode="after")
    def _exactly_one_source(self) -> "GuideEntryModel":
        if (self.path is None) == (self.body is None):
            raise ValueError("exactly one of 'path' or 'body' must be set")
        return self


class DocumentStore:
    """Holds the guidance documents keyed by topic; read-only once loaded."""

    def __init__(self, root: Traversable | Path | None = None) -> None:
        self._root = root
        self._documents: tuple[GuidanceDocument, ...] | None = None

    @classmethod
    def packaged(cls) -> "DocumentStore":
        """Store backed by the guides shipped inside the package."""

        return cls()

    @classmethod
    def from_directory(cls, path: str | os.PathLike[str]) -> "DocumentStore":
        """Store backed by an ``index.json`` in a directory on disk."""

        return cls(Path(path))

    @classmethod
    def from_env(cls) -> "DocumentStore":
        directory = os.getenv(GUIDEBOOK_PATH_ENV)
        if directory:
            return cls.from_directory(directory)
        return cls.packaged()

    @property
    def root(self) -> Traversable | Path:
        if self._root is None:
            self._root = resources.files(__package__).joinpath(GUIDES_PACKAGE)
        return self._root

    def load(self) -> tuple[GuidanceDocument, ...]:
        """Return every document ordered by topic, loading the content on first use."""

        if self._documents is None:
            self._documents = self._read_documents()
            logger.info("Loaded %d guidance documents from %s", len(self._documents), self.root)
        return self._documents

    def get(self, topic: str) -> GuidanceDocument:
        for document in self.load():
            if document.topic == topic:
                return document
        raise KeyError(f"Unknown guidance topic '{topic}'")

    def topics(self) -> list[str]:
        return [document.topic for document in self.load()]

    def _read_documents(self) -> tuple[GuidanceDocument, ...]:
        entries = self._read_index()
        documents: dict[str, GuidanceDocument] = {}
        for entry in entries:
            if entry.topic in documents:
                raise LoadError(f"Duplicate guidance topic '{entry.topic}' in {self._index_location()}")
            documents[entry.topic] = GuidanceDocument(
                topic=entry.topic,
                tags=frozenset(entry.tags),
                body=entry.body if entry.body is not None else self._read_body(entry),
                title=entry.title,
            )
        return tuple(documents[topic] for topic in sorted(documents))

    def _read_index(self) -> list[GuideEntryModel]:
        index = self.root.joinpath(INDEX_FILE)
        try:
            raw = index.read_text(encoding="utf-8")
        except (FileNotFoundError, NotADirectoryError) as exc:
            raise LoadError(f"Cannot locate guidance index '{self._index_location()}'") from exc
        except OSError as exc:
            raise LoadError(f"Cannot read guidance index '{self._index_location()}': {exc}") from exc
        except UnicodeDecodeError as exc:
            raise LoadError(f"Guidance index '{self._index_location()}' is not valid UTF-8: {exc}") from exc

        try:
            specs = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise LoadError(f"Guidance index '{self._index_location()}' is not valid JSON: {exc}") from exc

        if not isinstance(specs, list):
            raise LoadError(f"Guidance index '{self._index_location()}' must be a JSON array")
        return list(self._validate_entries(specs))

    def _validate_entries(self, specs: Iterable[object]) -> Iterable[GuideEntryModel]:
        for position, spec in enumerate(specs):
            try:
                yield GuideEntryModel.model_validate(spec)
            except ValidationError as exc:
                raise LoadError(f"Guidance index entry #{position} is invalid: {exc}") from exc

    def _read_body(self, entry: GuideEntryModel) -> str:
        body_file = self.root.joinpath(entry.path or "")
        try:
            return body_file.read_text(encoding="utf-8")
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as exc:
            raise LoadError(f"Guidance body '{entry.path}' for topic '{entry.topic}' is missing") from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise LoadError(f"Cannot read guidance body '{entry.path}' for topic '{entry.topic}': {exc}") from exc

    def _index_location(self) -> str:
        return str(self.root.joinpath(INDEX_FILE))
