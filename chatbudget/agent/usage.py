"""Token usage statistics for the context indicator."""

from dataclasses import dataclass
from enum import Enum

from chatbudget.agent.encoder import estimate_message_tokens
from chatbudget.agent.tokens import estimate_tokens
from chatbudget.session.models import Message

DEFAULT_CONTEXT_LIMIT = 64_000  # DeepSeek V3 context window
WARNING_THRESHOLD_PERCENT = 80
CRITICAL_THRESHOLD_PERCENT = 95


class UsageLevel(str, Enum):
    normal = "normal"  # below 80%
    warning = "warning"  # 80-94%
    critical = "critical"  # 95% and above


def usage_percentage(tokens: int, max_tokens: int) -> float:
    if max_tokens <= 0:
        return 0.0
    return tokens / max_tokens * 100


def get_usage_level(tokens: int, max_tokens: int = DEFAULT_CONTEXT_LIMIT) -> UsageLevel:
    percentage = usage_percentage(tokens, max_tokens)
    if percentage < WARNING_THRESHOLD_PERCENT:
        return UsageLevel.normal
    if percentage < CRITICAL_THRESHOLD_PERCENT:
        return UsageLevel.warning
    return UsageLevel.critical


def format_token_count(tokens: int) -> str:
    """Short display form, e.g. ``950``, ``1.2K``, ``1.5M``."""
    if tokens >= 1_000_000:
        return f"{tokens / 1_000_000:.1f}M"
    if tokens >= 1_000:
        return f"{tokens / 1_000:.1f}K"
    return str(tokens)


@dataclass(frozen=True)
class TokenStats:
    """Token counts shown next to the chat input."""

    input_tokens: int = 0
    history_tokens: int = 0
    last_response_tokens: int = 0
    total_tokens: int = 0

    def usage_percentage(self, max_tokens: int = DEFAULT_CONTEXT_LIMIT) -> float:
        return usage_percentage(self.total_tokens, max_tokens)

    def level(self, max_tokens: int = DEFAULT_CONTEXT_LIMIT) -> UsageLevel:
        return get_usage_level(self.total_tokens, max_tokens)

    def is_warning_level(self, max_tokens: int = DEFAULT_CONTEXT_LIMIT) -> bool:
        return self.level(max_tokens) == UsageLevel.warning

    def is_critical_level(self, max_tokens: int = DEFAULT_CONTEXT_LIMIT) -> bool:
        return self.level(max_tokens) == UsageLevel.critical

    def remaining_tokens(self, max_tokens: int = DEFAULT_CONTEXT_LIMIT) -> int:
        return max(0, max_tokens - self.total_tokens)


def calculate_token_stats(input_text: str, messages: list[Message]) -> TokenStats:
    """Compute indicator values for the pending input and the history.

    Messages with a known ``token_count`` use it; others are estimated from
    their encoded form. The last response is the newest message with a known
    count, and is already part of the history total.
    """
    input_tokens = estimate_tokens(input_text)
    history_tokens = sum(estimate_message_tokens(m) for m in messages)
    last_response_tokens = next(
        (m.token_count for m in reversed(messages) if m.token_count is not None), 0
    )
    return TokenStats(
        input_tokens=input_tokens,
        history_tokens=history_tokens,
        last_response_tokens=last_response_tokens,
        total_tokens=history_tokens + input_tokens,
    )


def warning_message(stats: TokenStats, max_tokens: int = DEFAULT_CONTEXT_LIMIT) -> str | None:
    """User-facing warning for high context usage, or None."""
    remaining = format_token_count(stats.remaining_tokens(max_tokens))
    level = stats.level(max_tokens)
    if level == UsageLevel.critical:
        return (
            f"Critical: Only {remaining} tokens remaining. "
            "Consider starting a new chat or clearing history."
        )
    if level == UsageLevel.warning:
        percentage = int(stats.usage_percentage(max_tokens))
        return f"Warning: {percentage}% of context used. {remaining} tokens remaining."
    return None
