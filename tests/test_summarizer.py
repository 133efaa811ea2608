"""Tests for the LLM-backed summarizer and the LiteLLM provider."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from chatbudget.prompts.summary import format_conversation
from chatbudget.providers.base import LLMResponse
from chatbudget.providers.litellm_provider import LiteLLMProvider
from chatbudget.providers.summarizer import LLMSummarizer
from chatbudget.session.models import Message, Role


def _messages():
    return [
        Message("1", "hello", Role.user, 1),
        Message("2", "hi, how can I help?", Role.assistant, 2),
    ]


def _provider(response):
    provider = MagicMock()
    provider.chat = AsyncMock(return_value=response)
    return provider


class TestFormatConversation:
    def test_labels_roles(self):
        assert format_conversation(_messages()) == (
            "User: hello\n\nAssistant: hi, how can I help?"
        )


class TestLLMSummarizer:
    @pytest.mark.asyncio
    async def test_returns_stripped_content(self):
        provider = _provider(LLMResponse(content="  They greeted each other.\n"))
        summarizer = LLMSummarizer(provider, model="deepseek/deepseek-chat")

        result = await summarizer.summarize(_messages(), 150)

        assert result == "They greeted each other."
        kwargs = provider.chat.call_args.kwargs
        assert kwargs["model"] == "deepseek/deepseek-chat"
        assert kwargs["max_tokens"] == 150
        system, user = kwargs["messages"]
        assert system["role"] == "system"
        assert "150 tokens" in system["content"]
        assert user["content"].startswith("Please summarize the following conversation:")
        assert "User: hello" in user["content"]

    @pytest.mark.asyncio
    async def test_error_response(self):
        provider = _provider(LLMResponse(content="Error calling LLM: boom", finish_reason="error"))
        assert await LLMSummarizer(provider).summarize(_messages(), 150) is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", [None, "", "  "])
    async def test_empty_response(self, content):
        provider = _provider(LLMResponse(content=content))
        assert await LLMSummarizer(provider).summarize(_messages(), 150) is None

    @pytest.mark.asyncio
    async def test_provider_exception(self):
        provider = MagicMock()
        provider.chat = AsyncMock(side_effect=RuntimeError("connection reset"))
        assert await LLMSummarizer(provider).summarize(_messages(), 150) is None

    @pytest.mark.asyncio
    async def test_no_messages(self):
        provider = _provider(LLMResponse(content="unused"))
        assert await LLMSummarizer(provider).summarize([], 150) is None
        provider.chat.assert_not_called()


class TestLiteLLMProvider:
    @pytest.mark.asyncio
    async def test_parses_response(self):
        response = MagicMock()
        response.choices = [MagicMock()]
        response.choices[0].message.content = "summary"
        response.choices[0].finish_reason = "stop"
        response.usage.prompt_tokens = 50
        response.usage.completion_tokens = 10
        response.usage.total_tokens = 60

        with patch(
            "chatbudget.providers.litellm_provider.acompletion",
            new=AsyncMock(return_value=response),
        ) as mock_completion:
            provider = LiteLLMProvider()
            result = await provider.chat([{"role": "user", "content": "hi"}], model="deepseek-chat")

        assert result.content == "summary"
        assert result.finish_reason == "stop"
        assert result.usage["total_tokens"] == 60
        assert mock_completion.call_args.kwargs["model"] == "deepseek/deepseek-chat"

    @pytest.mark.asyncio
    async def test_errors_are_returned(self):
        with patch(
            "chatbudget.providers.litellm_provider.acompletion",
            new=AsyncMock(side_effect=Exception("rate limited")),
        ):
            result = await LiteLLMProvider().chat([{"role": "user", "content": "hi"}])

        assert result.is_error
        assert "rate limited" in result.content

    def test_default_model(self):
        assert LiteLLMProvider().get_default_model() == "deepseek/deepseek-chat"
