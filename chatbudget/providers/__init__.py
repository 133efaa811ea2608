"""LLM provider abstraction module."""

from chatbudget.providers.base import LLMProvider, LLMResponse
from chatbudget.providers.litellm_provider import LiteLLMProvider
from chatbudget.providers.summarizer import LLMSummarizer

__all__ = ["LLMProvider", "LLMResponse", "LiteLLMProvider", "LLMSummarizer"]
