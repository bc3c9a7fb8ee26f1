from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from src.utils.config import LLMConfig
from src.utils.errors import MissingAPIKeyError
from src.utils.llm_client import ClientCache, LLMClient, create_openai_client


@pytest.fixture
def mock_openai():
    with patch("src.utils.llm_client.OpenAI") as mock:
        yield mock


def test_create_client_defaults(mock_openai):
    create_openai_client("sk-test")

    mock_openai.assert_called_once()
    call_kwargs = mock_openai.call_args.kwargs
    assert call_kwargs["api_key"] == "sk-test"
    assert call_kwargs["base_url"] is None
    assert call_kwargs["max_retries"] == 0


def test_create_client_explicit_args(mock_openai):
    create_openai_client(
        api_key="sk-explicit",
        base_url="https://explicit.com",
        timeout=30.0,
        max_retries=5,
    )

    call_kwargs = mock_openai.call_args.kwargs
    assert call_kwargs["api_key"] == "sk-explicit"
    assert call_kwargs["base_url"] == "https://explicit.com"
    assert call_kwargs["timeout"] == 30.0
    assert call_kwargs["max_retries"] == 5


def test_client_cache_reuses_until_key_changes(mock_openai):
    mock_openai.side_effect = lambda **kwargs: MagicMock(name=kwargs["api_key"])
    cache = ClientCache()
    config = LLMConfig(provider="openai")

    first = cache.get("openai", "sk-one", config)
    again = cache.get("openai", "sk-one", config)
    changed = cache.get("openai", "sk-two", config)

    assert first is again
    assert changed is not first
    assert mock_openai.call_count == 2

    cache.reset()
    cache.get("openai", "sk-two", config)
    assert mock_openai.call_count == 3


def test_client_cache_rejects_unknown_provider():
    with pytest.raises(ValueError, match="Unsupported LLM provider"):
        ClientCache().get("mystery", "sk", LLMConfig())


def test_complete_without_key_raises():
    client = LLMClient(LLMConfig(provider="anthropic"), api_key=None)

    with pytest.raises(MissingAPIKeyError):
        client.complete([{"role": "user", "content": "hi"}])


def test_complete_openai_returns_message_content(mock_openai):
    sdk = MagicMock()
    sdk.chat.completions.create.return_value = SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content='{"claims": []}'))]
    )
    mock_openai.return_value = sdk

    client = LLMClient(LLMConfig(provider="openai", model="gpt-test"), api_key="sk-test")
    reply = client.complete([{"role": "user", "content": "extract"}], max_tokens=99)

    assert reply == '{"claims": []}'
    kwargs = sdk.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "gpt-test"
    assert kwargs["max_tokens"] == 99
    assert kwargs["messages"] == [{"role": "user", "content": "extract"}]


def test_complete_anthropic_reads_first_text_block(monkeypatch: pytest.MonkeyPatch):
    sdk = MagicMock()
    sdk.messages.create.return_value = SimpleNamespace(
        content=[SimpleNamespace(type="text", text="hello"), SimpleNamespace(type="text", text="x")]
    )
    monkeypatch.setattr(
        "src.utils.llm_client.create_anthropic_client", lambda *args, **kwargs: sdk
    )

    client = LLMClient(LLMConfig(provider="anthropic", model="claude-test"), api_key="sk-ant")
    reply = client.complete(
        [
            {"role": "user", "content": "a"},
            {"role": "assistant", "content": "b"},
            {"role": "user", "content": "c"},
        ],
        model="claude-override",
    )

    assert reply == "hello"
    kwargs = sdk.messages.create.call_args.kwargs
    assert kwargs["model"] == "claude-override"
    assert [m["role"] for m in kwargs["messages"]] == ["user", "assistant", "user"]


def test_complete_anthropic_non_text_block_returns_empty(monkeypatch: pytest.MonkeyPatch):
    sdk = MagicMock()
    sdk.messages.create.return_value = SimpleNamespace(content=[SimpleNamespace(type="tool_use")])
    monkeypatch.setattr(
        "src.utils.llm_client.create_anthropic_client", lambda *args, **kwargs: sdk
    )

    client = LLMClient(LLMConfig(provider="anthropic"), api_key="sk-ant")

    assert client.complete([{"role": "user", "content": "a"}]) == ""


def test_transport_errors_propagate(mock_openai):
    sdk = MagicMock()
    sdk.chat.completions.create.side_effect = ConnectionError("network down")
    mock_openai.return_value = sdk

    client = LLMClient(LLMConfig(provider="openai"), api_key="sk-test")

    with pytest.raises(ConnectionError, match="network down"):
        client.complete([{"role": "user", "content": "a"}])
