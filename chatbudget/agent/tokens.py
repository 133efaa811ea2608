"""Approximate token estimation for context budgeting."""

from chatbudget.session.models import Message

CHARS_PER_TOKEN = 4  # Cross-model estimate, not a real tokenizer


def estimate_tokens(text: str) -> int:
    """Estimate token count from character count.

    Blank text costs nothing; any other text costs at least one token.
    """
    if not text or not text.strip():
        return 0
    return max(1, len(text) // CHARS_PER_TOKEN)


def estimate_messages_tokens(messages: list[Message]) -> int:
    """Sum of content estimates over a message list."""
    return sum(estimate_tokens(m.content) for m in messages)
