"""Bundled code-review guidance with keyword lookup."""

from .models import GuidanceDocument
from .review import (
    AnthropicReviewer,
    AzureOpenAIReviewer,
    OpenAIReviewer,
    PromptOnlyReviewer,
    ReviewResult,
    Reviewer,
    build_review_messages,
    build_reviewer_from_env,
)
from .selector import KeywordSelector, Selector, tokenize
from .store import DocumentStore, LoadError

__all__ = [
    "GuidanceDocument",
    "DocumentStore",
    "LoadError",
    "Selector",
    "KeywordSelector",
    "tokenize",
    "Reviewer",
    "ReviewResult",
    "PromptOnlyReviewer",
    "OpenAIReviewer",
    "AzureOpenAIReviewer",
    "AnthropicReviewer",
    "build_review_messages",
    "build_reviewer_from_env",
]
__version__ = "0.1.0"
