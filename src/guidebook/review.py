"""Review helpers that hand selected guidance and a source file to an LLM."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Protocol, Sequence

try:  # pragma: no cover - optional at test time
    from openai import AzureOpenAI, OpenAI
except ImportError:  # pragma: no cover
    AzureOpenAI = None  # type: ignore[misc]
    OpenAI = None  # type: ignore[misc]

try:  # pragma: no cover - optional
    from anthropic import Anthropic
except ImportError:  # pragma: no cover
    Anthropic = None  # type: ignore[misc]

from .models import GuidanceDocument

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are a senior iOS reviewer. Review the supplied source file strictly against the house guidance provided. "
    "Quote the guidance topic for every finding, suggest a concrete change, and say plainly when the file already "
    "follows the guidance. Do not invent rules that are not in the guidance."
)

NO_GUIDANCE_NOTE = "(no guidance selected; review for general clarity only)"


@dataclass(frozen=True)
class ReviewResult:
    """Outcome of reviewing one source file."""

    file_name: str | None
    topics: tuple[str, ...]
    content: str


def build_review_messages(
    source: str,
    documents: Sequence[GuidanceDocument],
    *,
    file_name: str | None = None,
    system_prompt: str | None = None,
) -> list[dict[str, str]]:
    """
    Build a system + user message pair for chat-style providers.

    The user message lists each guidance body under its topic heading, then the
    source file in a fenced block.
    """
    sections = [f"## Guidance: {document.topic}\n\n{document.body.strip()}" for document in documents]
    guidance = "\n\n".join(sections) or NO_GUIDANCE_NOTE
    label = file_name or "source"

    user_prompt = (
        "House guidance:\n\n"
        f"{guidance}\n\n"
        f"File to review ({label}):\n"
        "```swift\n"
        f"{source.rstrip()}\n"
        "```\n\n"
        "List findings as bullet points grouped by guidance topic."
    )
    return [
        {"role": "system", "content": (system_prompt or DEFAULT_SYSTEM_PROMPT).strip()},
        {"role": "user", "content": user_prompt},
    ]


class Reviewer(Protocol):
    """Protocol for reviewing a source file against guidance documents."""

    def review(
        self,
        source: str,
        documents: Sequence[GuidanceDocument],
        *,
        file_name: str | None = None,
    ) -> ReviewResult:
        ...


class PromptOnlyReviewer(Reviewer):
    """Offline reviewer that returns the rendered prompt instead of calling a model."""

    def __init__(self, system_prompt: str | None = None) -> None:
        self._system_prompt = system_prompt

    def review(
        self,
        source: str,
        documents: Sequence[GuidanceDocument],
        *,
        file_name: str | None = None,
    ) -> ReviewResult:  # noqa: D401
        messages = build_review_messages(source, documents, file_name=file_name, system_prompt=self._system_prompt)
        rendered = "\n\n".join(f"[{message['role']}]\n{message['content']}" for message in messages)
        return ReviewResult(file_name=file_name, topics=_topics(documents), content=rendered)


class OpenAIReviewer(Reviewer):
    """Reviewer powered by OpenAI Chat Completions."""

    def __init__(self, client: OpenAI, model: str | None = None, system_prompt: str | None = None) -> None:
        if OpenAI is None:  # pragma: no cover
            raise ImportError("openai package is required for OpenAIReviewer")
        self._client = client
        self._model = model or os.getenv("OPENAI_MODEL") or "gpt-5.1-mini"
        self._system_prompt = system_prompt

    def review(
        self,
        source: str,
        documents: Sequence[GuidanceDocument],
        *,
        file_name: str | None = None,
    ) -> ReviewResult:  # noqa: D401
        messages = build_review_messages(source, documents, file_name=file_name, system_prompt=self._system_prompt)
        logger.debug("Requesting OpenAI review with model %s", self._model)
        response = self._client.chat.completions.create(model=self._model, messages=messages)
        content = (response.choices[0].message.content or "").strip()
        return ReviewResult(file_name=file_name, topics=_topics(documents), content=content)


class AzureOpenAIReviewer(Reviewer):
    """Reviewer powered by Azure OpenAI."""

    def __init__(self, client: AzureOpenAI, deployment: str, system_prompt: str | None = None) -> None:
        if AzureOpenAI is None:  # pragma: no cover
            raise ImportError("openai package with Azure support is required for AzureOpenAIReviewer")
        self._client = client
        self._deployment = deployment
        self._system_prompt = system_prompt

    def review(
        self,
        source: str,
        documents: Sequence[GuidanceDocument],
        *,
        file_name: str | None = None,
    ) -> ReviewResult:  # noqa: D401
        messages = build_review_messages(source, documents, file_name=file_name, system_prompt=self._system_prompt)
        logger.debug("Requesting Azure OpenAI review with deployment %s", self._deployment)
        response = self._client.chat.completions.create(model=self._deployment, messages=messages)
        content = (response.choices[0].message.content or "").strip()
        return ReviewResult(file_name=file_name, topics=_topics(documents), content=content)


class AnthropicReviewer(Reviewer):
    """Reviewer powered by the Anthropic Messages API."""

    def __init__(
        self,
        client: Anthropic,
        model: str | None = None,
        system_prompt: str | None = None,
        max_tokens: int = 2048,
    ) -> None:
        if Anthropic is None:  # pragma: no cover
            raise ImportError("anthropic package is required for AnthropicReviewer")
        self._client = client
        self._model = model or os.getenv("ANTHROPIC_MODEL") or "claude-sonnet-4-5"
        self._system_prompt = system_prompt
        self._max_tokens = max_tokens

    def review(
        self,
        source: str,
        documents: Sequence[GuidanceDocument],
        *,
        file_name: str | None = None,
    ) -> ReviewResult:  # noqa: D401
        system, user = build_review_messages(
            source, documents, file_name=file_name, system_prompt=self._system_prompt
        )
        logger.debug("Requesting Anthropic review with model %s", self._model)
        response = self._client.messages.create(
            model=self._model,
            max_tokens=self._max_tokens,
            system=system["content"],
            messages=[user],
        )
        # Only text blocks carry the review.
        content = "".join(getattr(block, "text", "") for block in response.content).strip()
        return ReviewResult(file_name=file_name, topics=_topics(documents), content=content)


def build_reviewer_from_env() -> Reviewer:
    """Instantiate a reviewer based on environment configuration."""
    provider = (os.getenv("LLM_PROVIDER") or "openai").lower()

    if provider == "offline":
        return PromptOnlyReviewer()

    if provider == "openai":
        api_key = os.getenv("OPENAI_API_KEY")
        if OpenAI is not None and api_key:
            return OpenAIReviewer(OpenAI(api_key=api_key))
    elif provider == "azure_openai":
        api_key = os.getenv("AZURE_OPENAI_API_KEY")
        endpoint = os.getenv("AZURE_OPENAI_ENDPOINT")
        api_version = os.getenv("AZURE_OPENAI_API_VERSION", "2024-05-01-preview")
        deployment = os.getenv("AZURE_OPENAI_DEPLOYMENT")
        if AzureOpenAI is not None and api_key and endpoint and deployment:
            client = AzureOpenAI(api_key=api_key, azure_endpoint=endpoint, api_version=api_version)
            return AzureOpenAIReviewer(client, deployment=deployment)
    elif provider == "anthropic":
        api_key = os.getenv("ANTHROPIC_API_KEY")
        if Anthropic is not None and api_key:
            return AnthropicReviewer(Anthropic(api_key=api_key))
    else:
        raise ValueError(
            "Unsupported LLM_PROVIDER. Expected one of: openai, azure_openai, anthropic, offline."
        )

    logger.warning("LLM provider '%s' is not configured; falling back to the offline prompt reviewer", provider)
    return PromptOnlyReviewer()


def _topics(documents: Sequence[GuidanceDocument]) -> tuple[str, ...]:
    return tuple(document.topic for document in documents)


__all__ = [
    "ReviewResult",
    "Reviewer",
    "PromptOnlyReviewer",
    "OpenAIReviewer",
    "AzureOpenAIReviewer",
    "AnthropicReviewer",
    "build_review_messages",
    "build_reviewer_from_env",
]
