"""Completion oracle client.

This module provides a provider-agnostic ``complete(messages)`` call over the
OpenAI and Anthropic chat APIs. SDK clients are held in an explicit
``ClientCache`` keyed by credential so a changed API key produces a new client
without relying on module-level state.
"""

from __future__ import annotations

import threading
from typing import Any, Dict, List, Literal, Optional, Tuple, TypedDict

from loguru import logger
from openai import OpenAI

from src.utils.config import LLMConfig
from src.utils.errors import MissingAPIKeyError


class ChatMessage(TypedDict):
    role: Literal["user", "assistant"]
    content: str


def _mask(api_key: Optional[str]) -> str:
    if api_key and len(api_key) > 8:
        return f"{api_key[:4]}...{api_key[-4:]}"
    return "None"


def create_openai_client(
    api_key: str,
    base_url: Optional[str] = None,
    timeout: Optional[float] = None,
    max_retries: int = 0,
) -> OpenAI:
    """Create an OpenAI SDK client.

    SDK-level retries default to 0: retry policy belongs to the callers.
    """
    logger.debug(
        f"Creating OpenAI client: base_url={base_url}, api_key={_mask(api_key)}, timeout={timeout}"
    )
    return OpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=max_retries)


def create_anthropic_client(
    api_key: str,
    base_url: Optional[str] = None,
    timeout: Optional[float] = None,
    max_retries: int = 0,
) -> Any:
    """Create an Anthropic SDK client."""
    import anthropic

    logger.debug(
        f"Creating Anthropic client: base_url={base_url}, api_key={_mask(api_key)}, timeout={timeout}"
    )
    client_kwargs: Dict[str, Any] = {
        "api_key": api_key,
        "timeout": timeout,
        "max_retries": max_retries,
    }
    if base_url:
        client_kwargs["base_url"] = base_url
    return anthropic.Anthropic(**client_kwargs)


class ClientCache:
    """Holds at most one SDK client, rebuilt when the credential changes."""

    def __init__(self) -> None:
        self._key: Optional[Tuple[str, str, Optional[str]]] = None
        self._client: Any = None
        self._lock = threading.Lock()

    def get(self, provider: str, api_key: str, config: LLMConfig) -> Any:
        key = (provider, api_key, config.base_url)
        with self._lock:
            if self._client is not None and self._key == key:
                return self._client
            if provider == "openai":
                client = create_openai_client(api_key, config.base_url, config.timeout)
            elif provider == "anthropic":
                client = create_anthropic_client(api_key, config.base_url, config.timeout)
            else:
                raise ValueError(f"Unsupported LLM provider: {provider}")
            self._client = client
            self._key = key
            return client

    def reset(self) -> None:
        """Drop the cached client (e.g. after settings change)."""
        with self._lock:
            self._client = None
            self._key = None


class LLMClient:
    """Single request/response call against the configured provider."""

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        *,
        api_key: Optional[str] = None,
        cache: Optional[ClientCache] = None,
    ) -> None:
        self.config = config or LLMConfig()
        self.api_key = api_key
        self.cache = cache or ClientCache()

    @property
    def model(self) -> str:
        return self.config.model

    def complete(
        self,
        messages: List[ChatMessage],
        *,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """Send a conversation and return the reply text.

        Transport errors from the SDK propagate to the caller.
        """
        if not self.api_key:
            raise MissingAPIKeyError(
                f"No API key configured for provider '{self.config.provider}'."
            )

        model_name = model or self.config.model
        limit = max_tokens or self.config.max_tokens
        client = self.cache.get(self.config.provider, self.api_key, self.config)

        logger.debug(f"Calling {self.config.provider}:{model_name} with {len(messages)} message(s)")

        if self.config.provider == "openai":
            return self._complete_openai(client, messages, model_name, limit)
        return self._complete_anthropic(client, messages, model_name, limit)

    def _complete_openai(
        self, client: OpenAI, messages: List[ChatMessage], model: str, max_tokens: int
    ) -> str:
        response = client.chat.completions.create(
            model=model,
            max_tokens=max_tokens,
            messages=[{"role": m["role"], "content": m["content"]} for m in messages],
        )
        content = response.choices[0].message.content
        if isinstance(content, list):
            parts = []
            for item in content:
                if isinstance(item, dict):
                    parts.append(str(item.get("text", "")))
                else:
                    parts.append(str(item))
            return "\n".join(parts).strip()
        return str(content or "")

    def _complete_anthropic(
        self, client: Any, messages: List[ChatMessage], model: str, max_tokens: int
    ) -> str:
        message = client.messages.create(
            model=model,
            max_tokens=max_tokens,
            messages=[{"role": m["role"], "content": m["content"]} for m in messages],
        )
        blocks = list(getattr(message, "content", None) or [])
        if not blocks or getattr(blocks[0], "type", None) != "text":
            return ""
        return str(getattr(blocks[0], "text", ""))
