"""Summarizer backed by an LLM provider."""

from loguru import logger

from chatbudget.agent.summary import Summarizer
from chatbudget.prompts.summary import build_summary_messages
from chatbudget.providers.base import LLMProvider
from chatbudget.session.models import Message


class LLMSummarizer(Summarizer):
    """Asks a chat model for a summary; any failure yields None."""

    def __init__(
        self,
        provider: LLMProvider,
        model: str | None = None,
        temperature: float = 0.3,
    ):
        self.provider = provider
        self.model = model
        self.temperature = temperature

    async def summarize(self, messages: list[Message], max_tokens: int) -> str | None:
        if not messages:
            return None

        request = build_summary_messages(messages, max_tokens)
        try:
            response = await self.provider.chat(
                messages=request,
                model=self.model,
                max_tokens=max_tokens,
                temperature=self.temperature,
            )
        except Exception as e:
            logger.warning(f"Summary request failed: {e}")
            return None

        if response.is_error:
            logger.warning(f"Summary request failed: {response.content}")
            return None

        content = (response.content or "").strip()
        if not content:
            logger.warning("Summary request returned empty content")
            return None

        if response.usage:
            logger.debug(f"Summary usage: {response.usage}")
        return content
