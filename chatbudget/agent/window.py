"""Budget-driven truncation of conversation history."""

from loguru import logger

from chatbudget.agent.encoder import encode
from chatbudget.agent.tokens import estimate_tokens
from chatbudget.session.models import Message, OptimizationStrategy, OptimizedContext


def build_context(
    messages: list[Message],
    strategy: OptimizationStrategy,
    elided_count: int = 0,
) -> OptimizedContext:
    """Encode *messages* and wrap them as an optimized context."""
    encoded = encode(messages)
    return OptimizedContext(
        messages=list(messages),
        encoded=encoded,
        estimated_tokens=estimate_tokens(encoded),
        strategy=strategy,
        elided_count=elided_count,
    )


class WindowSelector:
    """Selects the largest trailing window of history that fits a token budget.

    The last ``keep_recent`` messages are always kept. Older messages are
    added back one at a time, newest first, until the next one would push
    the encoded context over ``max_tokens``.
    """

    DEFAULT_MAX_TOKENS = 4000
    DEFAULT_KEEP_RECENT = 4

    def __init__(
        self,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        keep_recent: int = DEFAULT_KEEP_RECENT,
    ):
        self.max_tokens = max_tokens
        self.keep_recent = max(0, keep_recent)

    def optimize(self, messages: list[Message]) -> OptimizedContext:
        if not messages:
            return OptimizedContext()

        full = build_context(messages, OptimizationStrategy.encoded_only)
        if full.estimated_tokens <= self.max_tokens:
            return full

        split = max(0, len(messages) - self.keep_recent)
        older, tail = messages[:split], messages[split:]
        kept_older = self._fit_older(older, tail)

        if not kept_older and estimate_tokens(encode(tail)) > self.max_tokens:
            logger.warning(
                f"Recent tail of {len(tail)} messages exceeds budget "
                f"of {self.max_tokens} tokens on its own"
            )

        result = build_context(
            kept_older + tail,
            OptimizationStrategy.truncated_with_encoding,
            elided_count=len(older) - len(kept_older),
        )
        logger.debug(result.describe())
        return result

    def _fit_older(self, older: list[Message], tail: list[Message]) -> list[Message]:
        """Longest suffix of *older* that still fits together with *tail*."""
        kept = 0
        for count in range(1, len(older) + 1):
            candidate = older[len(older) - count:] + tail
            if estimate_tokens(encode(candidate)) > self.max_tokens:
                break
            kept = count
        return older[len(older) - kept:] if kept else []
