"""
LLM Provider Service

CONTRACT:
    Input:  prompt (str)
    Output: cleaned markdown (str)

RESPONSIBILITIES:
    - Perplexity and DeepSeek chat completions
    - Candidate-model retries within a provider
    - Primary -> fallback provider switching
    - Stripping <think> blocks and citation markers

PROVIDERS:
    - Perplexity: aiohttp, bearer auth, model fallback list
    - DeepSeek: OpenAI-compatible SDK, single model

FAILURE:
    - AllProvidersExhausted only when every provider and model failed
"""

from stockanalyst.services.llm.client import (
    AIConfig,
    AIProvider,
    AIProviderName,
    AIProviderManager,
    DeepSeekClient,
    PerplexityClient,
    clean_analysis_content,
    get_ai_provider_manager,
)
from stockanalyst.services.llm.prompts import (
    format_sr_prompt,
    format_strategy_prompt,
    format_trend_prompt,
)

__all__ = [
    # Client
    "AIConfig",
    "AIProvider",
    "AIProviderName",
    "AIProviderManager",
    "DeepSeekClient",
    "PerplexityClient",
    "clean_analysis_content",
    "get_ai_provider_manager",
    # Prompts
    "format_trend_prompt",
    "format_sr_prompt",
    "format_strategy_prompt",
]
