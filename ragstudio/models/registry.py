"""Provider registry — hardcoded chat model definitions.

The only place where provider models and credentials are defined.
Requests and pipeline configurations reference providers by key.
"""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator, Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from langchain_core.embeddings import Embeddings
    from langchain_core.language_models import BaseChatModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderDefinition:
    name: str
    description: str
    model: str
    api_key_env: str


PROVIDER_REGISTRY: dict[str, ProviderDefinition] = {
    "openai": ProviderDefinition(
        name="openai",
        description="OpenAI chat completions.",
        model="gpt-4-turbo",
        api_key_env="OPENAI_API_KEY",
    ),
    "anthropic": ProviderDefinition(
        name="anthropic",
        description="Anthropic Messages API.",
        model="claude-3-sonnet-20240229",
        api_key_env="ANTHROPIC_API_KEY",
    ),
    "google": ProviderDefinition(
        name="google",
        description="Google Generative AI (Gemini).",
        model="gemini-1.5-flash",
        api_key_env="GOOGLE_API_KEY",
    ),
}


def extract_text(content: Any) -> str:
    """Normalize message content: providers can stream a list of blocks or a string."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        # Content blocks: [{"type": "text", "text": "..."}]; tool-use blocks carry no text
        parts = []
        for block in content:
            if isinstance(block, dict):
                parts.append(block.get("text", ""))
            else:
                parts.append(str(block))
        return "".join(parts)
    return str(content)


def _require_api_key(provider: ProviderDefinition) -> str:
    api_key = os.environ.get(provider.api_key_env)
    if not api_key:
        raise RuntimeError(f"{provider.api_key_env} environment variable is not set")
    return api_key


# ---------------------------------------------------------------------------
# Model factories
# ---------------------------------------------------------------------------


def build_chat_model(
    provider: ProviderDefinition,
    *,
    model: str | None = None,
    temperature: float = 0.7,
    max_tokens: int | None = None,
) -> BaseChatModel:
    """Create a LangChain chat model for a provider definition."""
    api_key = _require_api_key(provider)
    model_name = model or provider.model

    match provider.name:
        case "openai":
            from langchain_openai import ChatOpenAI

            return ChatOpenAI(
                model=model_name,
                temperature=temperature,
                max_tokens=max_tokens,
                api_key=api_key,
            )
        case "anthropic":
            from langchain_anthropic import ChatAnthropic

            return ChatAnthropic(
                model=model_name,
                temperature=temperature,
                max_tokens=max_tokens or 4096,
                api_key=api_key,
            )
        case "google":
            from langchain_google_genai import ChatGoogleGenerativeAI

            return ChatGoogleGenerativeAI(
                model=model_name,
                temperature=temperature,
                max_output_tokens=max_tokens,
                google_api_key=api_key,
            )
        case _:
            raise ValueError(f"Unknown provider: {provider.name}")


def build_embeddings(provider_key: str, model: str) -> Embeddings:
    """Create a LangChain embeddings client for a provider key."""
    if provider_key not in PROVIDER_REGISTRY:
        raise ValueError(
            f"Unknown embedding provider '{provider_key}'. "
            f"Available: {sorted(PROVIDER_REGISTRY.keys())}"
        )
    provider = PROVIDER_REGISTRY[provider_key]
    api_key = _require_api_key(provider)

    match provider.name:
        case "openai":
            from langchain_openai import OpenAIEmbeddings

            return OpenAIEmbeddings(model=model, api_key=api_key)
        case "google":
            from langchain_google_genai import GoogleGenerativeAIEmbeddings

            return GoogleGenerativeAIEmbeddings(model=model, google_api_key=api_key)
        case _:
            raise ValueError(f"Provider '{provider.name}' does not offer embeddings")


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class ModelRegistry:
    """Maps provider keys to configured chat model instances.

    Provider models are built lazily on first resolution and cached.
    Pre-built models (e.g. fakes in tests) can be supplied via ``models``;
    they take precedence over providers and are never rebuilt.
    """

    def __init__(
        self,
        temperature: float = 0.7,
        providers: Mapping[str, ProviderDefinition] | None = None,
        models: Mapping[str, BaseChatModel] | None = None,
    ) -> None:
        self.temperature = temperature
        self._providers = dict(PROVIDER_REGISTRY if providers is None else providers)
        self._prebuilt: dict[str, BaseChatModel] = dict(models or {})
        self._cache: dict[str, BaseChatModel] = {}

    def keys(self) -> list[str]:
        return sorted(set(self._providers) | set(self._prebuilt))

    def resolve(self, key: str) -> BaseChatModel | None:
        """Return the chat model for ``key``, or None if the key is unknown.

        Raises RuntimeError if the provider is known but has no credentials.
        """
        if key in self._prebuilt:
            return self._prebuilt[key]
        if key in self._cache:
            return self._cache[key]
        provider = self._providers.get(key)
        if provider is None:
            return None

        logger.info(f"Building chat model: provider={key}, model={provider.model}")
        model = build_chat_model(provider, temperature=self.temperature)
        self._cache[key] = model
        return model

    def invalidate(self, temperature: float | None = None) -> None:
        """Drop cached provider models so the next resolve rebuilds them."""
        if temperature is not None:
            self.temperature = temperature
        self._cache.clear()
        logger.info("Model cache invalidated")

    def chat_model(
        self,
        key: str,
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> BaseChatModel:
        """Return a chat model tuned for one pipeline's generation stage.

        Pre-built models are returned as-is; provider models are built fresh
        with the requested sampling settings.
        """
        if key in self._prebuilt:
            return self._prebuilt[key]
        provider = self._providers.get(key)
        if provider is None:
            raise ValueError(
                f"Unknown provider '{key}'. Available: {self.keys()}"
            )
        return build_chat_model(
            provider,
            temperature=self.temperature if temperature is None else temperature,
            max_tokens=max_tokens,
        )

    async def stream_generate(
        self, model: BaseChatModel, messages: Sequence[Any]
    ) -> AsyncIterator[str]:
        """Stream the model's reply as text fragments, in production order.

        ``messages`` are passed to the model unmodified (role/content dicts or
        LangChain messages). Empty fragments are skipped.
        """
        async for chunk in model.astream(messages):
            text = extract_text(chunk.content)
            if text:
                yield text
