"""
LLM Client Abstraction

Provides a unified interface for Perplexity and DeepSeek chat completions.
Handles candidate-model retries, provider switching and fallback.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional
import logging
import re

import openai

from stockanalyst.services.base import (
    AllProvidersExhausted,
    ConfigurationError,
    NoContentError,
    ServiceError,
    UpstreamHttpError,
    UpstreamTimeout,
)
from stockanalyst.services.http import post_json

logger = logging.getLogger(__name__)


class AIProviderName(str, Enum):
    PERPLEXITY = "perplexity"
    DEEPSEEK = "deepseek"


# Tried in order after the configured Perplexity model
PERPLEXITY_FALLBACK_MODELS = [
    "sonar-reasoning",
    "llama-3.1-sonar-large-128k-online",
    "llama-3.1-sonar-small-128k-online",
]

_THINK_BLOCK = re.compile(r"<think>.*?</think>", re.IGNORECASE | re.DOTALL)
_CITATION = re.compile(r"\[\d+(?:,\s*\d+)*\]")
_EXTRA_BLANK_LINES = re.compile(r"\n\s*\n\s*\n")


def clean_analysis_content(content: str) -> str:
    """
    Strip reasoning blocks and citation markers from model output.

    Removes <think>...</think>, [1] / [1,2] / [1][2] markers, and collapses
    runs of blank lines to a single blank line.
    """
    cleaned = _THINK_BLOCK.sub("", content)
    cleaned = _CITATION.sub("", cleaned)
    # Collapsing can expose a new run, so repeat until stable
    previous = None
    while previous != cleaned:
        previous = cleaned
        cleaned = _EXTRA_BLANK_LINES.sub("\n\n", cleaned)
    return cleaned.strip()


@dataclass
class AIConfig:
    """Configuration for the AI provider manager."""

    primary_provider: AIProviderName = AIProviderName.PERPLEXITY
    perplexity_api_key: Optional[str] = None
    perplexity_model: str = "sonar-reasoning"
    perplexity_base_url: str = "https://api.perplexity.ai"
    deepseek_api_key: Optional[str] = None
    deepseek_model: str = "deepseek-reasoner"
    deepseek_base_url: str = "https://api.deepseek.com"
    temperature: float = 0.2
    top_p: float = 0.9
    timeout: float = 180.0


class AIProvider(ABC):
    """Abstract base class for LLM providers."""

    name: AIProviderName
    display_name: str
    fallback_models: list[str] = []

    def __init__(self, config: AIConfig):
        self.config = config

    @property
    @abstractmethod
    def preferred_model(self) -> str:
        """Model configured for this provider."""
        pass

    @abstractmethod
    def ensure_configured(self) -> None:
        """Raise ConfigurationError if credentials are missing."""
        pass

    @abstractmethod
    async def generate(self, prompt: str, model: str) -> str:
        """Return the raw content of the first choice."""
        pass

    def candidate_models(self) -> list[str]:
        """Preferred model first, then fallbacks, without duplicates."""
        models = [self.preferred_model]
        for model in self.fallback_models:
            if model not in models:
                models.append(model)
        return models


class PerplexityClient(AIProvider):
    """Perplexity chat-completions client."""

    name = AIProviderName.PERPLEXITY
    display_name = "Perplexity"
    fallback_models = PERPLEXITY_FALLBACK_MODELS

    @property
    def preferred_model(self) -> str:
        return self.config.perplexity_model or PERPLEXITY_FALLBACK_MODELS[0]

    def ensure_configured(self) -> None:
        if not self.config.perplexity_api_key:
            raise ConfigurationError(self.display_name, "PERPLEXITY_API_KEY not configured")

    async def generate(self, prompt: str, model: str) -> str:
        """Generate a completion using Perplexity."""
        url = f"{self.config.perplexity_base_url.rstrip('/')}/chat/completions"
        body = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.config.temperature,
            "top_p": self.config.top_p,
            "return_images": False,
            "return_related_questions": False,
            "top_k": 0,
            "stream": False,
            "presence_penalty": 0,
            "frequency_penalty": 0,
        }

        try:
            data = await post_json(
                self.display_name,
                url,
                body,
                headers={"Authorization": f"Bearer {self.config.perplexity_api_key}"},
                timeout=self.config.timeout,
            )
        except UpstreamHttpError as e:
            if e.status is None:
                raise
            raise UpstreamHttpError(
                self.display_name,
                f"Perplexity model {model} failed: {e.status} - {e.body or e.message}",
                status=e.status,
                body=e.body,
            ) from e

        choices = data.get("choices") or [{}]
        content = ((choices[0] or {}).get("message") or {}).get("content")
        if not content:
            raise NoContentError(self.display_name, f"No content received from Perplexity model {model}")
        return content


class DeepSeekClient(AIProvider):
    """DeepSeek client over the OpenAI-compatible API."""

    name = AIProviderName.DEEPSEEK
    display_name = "DeepSeek"

    def __init__(self, config: AIConfig):
        super().__init__(config)
        self._client: Optional[openai.AsyncOpenAI] = None

    @property
    def preferred_model(self) -> str:
        return self.config.deepseek_model

    def ensure_configured(self) -> None:
        if not self.config.deepseek_api_key:
            raise ConfigurationError(self.display_name, "DEEPSEEK_API_KEY not configured")

    def _get_client(self) -> openai.AsyncOpenAI:
        """Lazy initialization of the OpenAI-compatible client."""
        if self._client is None:
            self._client = openai.AsyncOpenAI(
                api_key=self.config.deepseek_api_key,
                base_url=self.config.deepseek_base_url,
                timeout=self.config.timeout,
                max_retries=0,
            )
        return self._client

    async def generate(self, prompt: str, model: str) -> str:
        """Generate a completion using DeepSeek."""
        client = self._get_client()

        try:
            response = await client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.config.temperature,
                top_p=self.config.top_p,
                stream=False,
            )
        except openai.APITimeoutError as e:
            raise UpstreamTimeout(
                self.display_name, f"DeepSeek did not respond within {self.config.timeout:.0f}s"
            ) from e
        except openai.APIStatusError as e:
            raise UpstreamHttpError(
                self.display_name,
                f"DeepSeek API failed: {e.status_code} - {e.message}",
                status=e.status_code,
                body=str(e.body or ""),
            ) from e
        except openai.APIConnectionError as e:
            raise UpstreamHttpError(self.display_name, f"DeepSeek request failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise NoContentError(self.display_name, "No content received from DeepSeek API")
        return content


class AIProviderManager:
    """
    Unified LLM entry point with model retries and provider fallback.

    The primary provider tries each of its candidate models in order.
    If all fail, the other provider gets the same treatment.
    """

    def __init__(
        self,
        config: AIConfig,
        providers: Optional[dict[AIProviderName, AIProvider]] = None,
    ):
        self.config = config
        self._providers = providers or {
            AIProviderName.PERPLEXITY: PerplexityClient(config),
            AIProviderName.DEEPSEEK: DeepSeekClient(config),
        }

    @property
    def primary(self) -> AIProviderName:
        return self.config.primary_provider

    @property
    def fallback(self) -> AIProviderName:
        if self.primary == AIProviderName.PERPLEXITY:
            return AIProviderName.DEEPSEEK
        return AIProviderName.PERPLEXITY

    async def _complete_with(self, provider: AIProvider, prompt: str) -> str:
        """Try every candidate model of one provider."""
        provider.ensure_configured()

        models = provider.candidate_models()
        last_error: Optional[Exception] = None

        for i, model in enumerate(models, start=1):
            logger.info(f"{provider.display_name}: attempting model {i}/{len(models)}: {model}")
            try:
                content = clean_analysis_content(await provider.generate(prompt, model))
                if not content:
                    raise NoContentError(
                        provider.display_name, f"{provider.display_name} model {model} returned only reasoning output"
                    )
                logger.info(f"{provider.display_name}: model {model} succeeded ({len(content)} chars)")
                return content
            except Exception as e:
                logger.warning(f"{provider.display_name}: model {model} failed: {e}")
                last_error = e

        if len(models) == 1 and last_error is not None:
            raise last_error
        raise ServiceError(
            provider.display_name,
            f"All {provider.display_name} models failed. Last error: {last_error or 'Unknown error'}",
        )

    async def complete(self, prompt: str) -> str:
        """
        Generate a cleaned completion with automatic fallback.

        Raises:
            AllProvidersExhausted: both providers failed on every model
        """
        attempts: dict[str, str] = {}

        for name in (self.primary, self.fallback):
            provider = self._providers.get(name)
            if provider is None:
                attempts[name.value] = f"Unknown AI provider: {name.value}"
                continue

            try:
                result = await self._complete_with(provider, prompt)
                if name != self.primary:
                    logger.info(f"Fallback provider {provider.display_name} succeeded")
                return result
            except Exception as e:
                logger.error(f"Provider {name.value} failed: {e}")
                attempts[name.value] = str(e) or e.__class__.__name__

        primary_error = attempts.get(self.primary.value, "Unknown error")
        fallback_error = attempts.get(self.fallback.value, "Unknown error")
        raise AllProvidersExhausted(
            f"All AI providers failed. Primary ({self.primary.value}): {primary_error}. "
            f"Fallback ({self.fallback.value}): {fallback_error}",
            attempts,
        )

    async def health_check(self) -> bool:
        """True if at least one provider has credentials."""
        for provider in self._providers.values():
            try:
                provider.ensure_configured()
                return True
            except ConfigurationError:
                continue
        return False


def _configured_credential(settings, field_name: str) -> Optional[str]:
    """Credential value, or None when unset or still a placeholder."""
    try:
        return settings.require(field_name)
    except ConfigurationError:
        return None


# Singleton instance management
_manager: Optional[AIProviderManager] = None


def get_ai_provider_manager() -> AIProviderManager:
    """Get or create the AI provider manager singleton."""
    global _manager
    if _manager is None:
        from stockanalyst.core.config import settings

        try:
            primary = AIProviderName(settings.primary_ai_provider.strip().lower())
        except ValueError:
            raise ConfigurationError(
                "Settings",
                f"Unknown PRIMARY_AI_PROVIDER '{settings.primary_ai_provider}'. "
                f"Use one of: {', '.join(p.value for p in AIProviderName)}.",
            )

        config = AIConfig(
            primary_provider=primary,
            perplexity_api_key=_configured_credential(settings, "perplexity_api_key"),
            perplexity_model=settings.perplexity_model,
            perplexity_base_url=settings.perplexity_base_url,
            deepseek_api_key=_configured_credential(settings, "deepseek_api_key"),
            deepseek_model=settings.deepseek_model,
            deepseek_base_url=settings.deepseek_base_url,
            temperature=settings.llm_temperature,
            timeout=settings.llm_timeout_seconds,
        )
        _manager = AIProviderManager(config)
    return _manager
