from types import SimpleNamespace

import pytest

from guidebook import (
    AnthropicReviewer,
    AzureOpenAIReviewer,
    GuidanceDocument,
    OpenAIReviewer,
    PromptOnlyReviewer,
    build_review_messages,
    build_reviewer_from_env,
)
from guidebook import review as review_module


@pytest.fixture()
def guidance():
    return [
        GuidanceDocument(topic="swift-style", tags=frozenset({"swift"}), body="Prefer let over var.\n"),
        GuidanceDocument(topic="swiftui-views", tags=frozenset({"swiftui"}), body="Keep body short."),
    ]


SOURCE = "var count = 0\n"


class FakeChatCompletions:
    def __init__(self, content):
        self.calls = []
        self._content = content

    def create(self, **kwargs):
        self.calls.append(kwargs)
        message = SimpleNamespace(content=self._content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeAnthropicMessages:
    def __init__(self, text):
        self.calls = []
        self._text = text

    def create(self, **kwargs):
        self.calls.append(kwargs)
        return SimpleNamespace(content=[SimpleNamespace(type="text", text=self._text)])


def test_build_review_messages_includes_guidance_and_source(guidance):
    messages = build_review_messages(SOURCE, guidance, file_name="Counter.swift")

    assert [message["role"] for message in messages] == ["system", "user"]
    user = messages[1]["content"]
    assert "## Guidance: swift-style" in user
    assert "## Guidance: swiftui-views" in user
    assert "Prefer let over var." in user
    assert "Counter.swift" in user
    assert "var count = 0" in user


def test_build_review_messages_without_guidance_notes_it():
    messages = build_review_messages(SOURCE, [], system_prompt="  Custom prompt  ")

    assert messages[0]["content"] == "Custom prompt"
    assert review_module.NO_GUIDANCE_NOTE in messages[1]["content"]


def test_prompt_only_reviewer_renders_prompt(guidance):
    result = PromptOnlyReviewer().review(SOURCE, guidance, file_name="Counter.swift")

    assert result.topics == ("swift-style", "swiftui-views")
    assert result.file_name == "Counter.swift"
    assert "[system]" in result.content
    assert "[user]" in result.content
    assert "var count = 0" in result.content


def test_openai_reviewer_uses_chat_completions(monkeypatch, guidance):
    monkeypatch.setattr(review_module, "OpenAI", object)
    completions = FakeChatCompletions("  - swift-style: use let  ")
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))

    result = OpenAIReviewer(client, model="test-model").review(SOURCE, guidance, file_name="Counter.swift")

    assert result.content == "- swift-style: use let"
    assert completions.calls[0]["model"] == "test-model"
    assert completions.calls[0]["messages"][0]["role"] == "system"


def test_anthropic_reviewer_uses_messages_api(monkeypatch, guidance):
    monkeypatch.setattr(review_module, "Anthropic", object)
    messages = FakeAnthropicMessages("Looks fine.")
    client = SimpleNamespace(messages=messages)

    result = AnthropicReviewer(client, model="test-model").review(SOURCE, guidance)

    assert result.content == "Looks fine."
    call = messages.calls[0]
    assert call["model"] == "test-model"
    assert call["system"] == review_module.DEFAULT_SYSTEM_PROMPT
    assert call["messages"][0]["role"] == "user"


def test_build_reviewer_from_env_offline(monkeypatch):
    monkeypatch.setenv("LLM_PROVIDER", "offline")

    assert isinstance(build_reviewer_from_env(), PromptOnlyReviewer)


def test_build_reviewer_from_env_falls_back_without_credentials(monkeypatch):
    monkeypatch.setenv("LLM_PROVIDER", "anthropic")
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)

    assert isinstance(build_reviewer_from_env(), PromptOnlyReviewer)


def test_build_reviewer_from_env_rejects_unknown_provider(monkeypatch):
    monkeypatch.setenv("LLM_PROVIDER", "mystery")

    with pytest.raises(ValueError):
        build_reviewer_from_env()


class StubClientFactory:
    def __init__(self):
        self.kwargs = None

    def __call__(self, **kwargs):
        self.kwargs = kwargs
        return SimpleNamespace(chat=SimpleNamespace(completions=FakeChatCompletions("ok")))


def test_azure_openai_reviewer_uses_deployment_as_model(monkeypatch, guidance):
    monkeypatch.setattr(review_module, "AzureOpenAI", object)
    completions = FakeChatCompletions("- swiftui-views: extract a subview\n")
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))

    result = AzureOpenAIReviewer(client, deployment="review-deploy").review(SOURCE, guidance, file_name="Row.swift")

    assert result.content == "- swiftui-views: extract a subview"
    assert result.topics == ("swift-style", "swiftui-views")
    assert completions.calls[0]["model"] == "review-deploy"
    assert "Row.swift" in completions.calls[0]["messages"][1]["content"]


def test_build_reviewer_from_env_openai_with_credentials(monkeypatch):
    factory = StubClientFactory()
    monkeypatch.setattr(review_module, "OpenAI", factory)
    monkeypatch.setenv("LLM_PROVIDER", "openai")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

    reviewer = build_reviewer_from_env()

    assert isinstance(reviewer, OpenAIReviewer)
    assert factory.kwargs == {"api_key": "sk-test"}


def test_build_reviewer_from_env_azure_with_credentials(monkeypatch):
    factory = StubClientFactory()
    monkeypatch.setattr(review_module, "AzureOpenAI", factory)
    monkeypatch.setenv("LLM_PROVIDER", "azure_openai")
    monkeypatch.setenv("AZURE_OPENAI_API_KEY", "azure-key")
    monkeypatch.setenv("AZURE_OPENAI_ENDPOINT", "https://example.openai.azure.com")
    monkeypatch.setenv("AZURE_OPENAI_DEPLOYMENT", "review-deploy")
    monkeypatch.delenv("AZURE_OPENAI_API_VERSION", raising=False)

    reviewer = build_reviewer_from_env()

    assert isinstance(reviewer, AzureOpenAIReviewer)
    assert factory.kwargs == {
        "api_key": "azure-key",
        "azure_endpoint": "https://example.openai.azure.com",
        "api_version": "2024-05-01-preview",
    }


def test_build_reviewer_from_env_azure_incomplete_falls_back(monkeypatch):
    monkeypatch.setattr(review_module, "AzureOpenAI", StubClientFactory())
    monkeypatch.setenv("LLM_PROVIDER", "azure_openai")
    monkeypatch.setenv("AZURE_OPENAI_API_KEY", "azure-key")
    monkeypatch.delenv("AZURE_OPENAI_ENDPOINT", raising=False)
    monkeypatch.delenv("AZURE_OPENAI_DEPLOYMENT", raising=False)

    assert isinstance(build_reviewer_from_env(), PromptOnlyReviewer)
