"""Compaction engine: fits conversation history into the context budget."""

import uuid
from typing import Callable

from loguru import logger

from chatbudget.agent.summary import SummaryCoordinator
from chatbudget.agent.tokens import estimate_messages_tokens
from chatbudget.agent.window import build_context
from chatbudget.config.schema import CompressionConfig
from chatbudget.session.models import (
    Message,
    MessageSummary,
    OptimizationStrategy,
    OptimizedContext,
    Role,
    TokenMetrics,
)
from chatbudget.session.stores import MetricsStore
from chatbudget.utils.helpers import current_time_millis

SUMMARY_PREFIX = "[Previous conversation summary]\n"


def build_summary_message(summary: MessageSummary) -> Message:
    """Synthetic assistant message that stands in for the summarized prefix."""
    return Message(
        id=f"summary_{summary.id}",
        content=SUMMARY_PREFIX + summary.summary,
        role=Role.assistant,
        timestamp=summary.created_at,
    )


class Compactor:
    """Builds the optimized context for a model call.

    Keeps the last ``keep_recent_messages`` verbatim and replaces everything
    older with a summary when one is available. Without a summary it either
    drops the old messages (truncation fallback) or sends the history
    unmodified. Every call that elides messages appends a metrics record.
    """

    def __init__(
        self,
        coordinator: SummaryCoordinator,
        metrics_store: MetricsStore,
        config: CompressionConfig | None = None,
        clock: Callable[[], int] = current_time_millis,
    ):
        self.coordinator = coordinator
        self.metrics_store = metrics_store
        self.config = config or CompressionConfig()
        self.clock = clock

    async def compact(
        self,
        session_id: str,
        messages: list[Message],
        config: CompressionConfig | None = None,
    ) -> OptimizedContext:
        """Return the context to send for *messages* of *session_id*.

        *config* replaces the compactor's configuration for this call only.
        """
        config = config or self.config

        if not config.needs_compression(len(messages)):
            logger.debug(
                f"No compaction needed ({len(messages)} <= {config.keep_recent_messages} messages)"
            )
            return build_context(messages, OptimizationStrategy.none_needed)

        split = config.summary_message_count(len(messages))
        old, recent = messages[:split], messages[split:]
        logger.debug(f"Splitting history: {len(old)} old, {len(recent)} recent")

        summary = None
        if config.enable_summary_generation:
            summary = await self.coordinator.get_or_generate(
                session_id, old, max_tokens=config.summary_max_tokens
            )

        if summary is not None:
            context = build_context(
                [build_summary_message(summary)] + recent,
                OptimizationStrategy.encoded_only,
                elided_count=len(old),
            )
        elif config.fallback_to_truncation:
            logger.warning(
                f"No summary for session {session_id}, truncating {len(old)} old messages"
            )
            context = build_context(
                recent,
                OptimizationStrategy.truncated_with_encoding,
                elided_count=len(old),
            )
        else:
            context = build_context(messages, OptimizationStrategy.none_needed)

        if context.estimated_tokens > config.max_tokens:
            logger.warning(
                f"Optimized context for {session_id} is ~{context.estimated_tokens} tokens, "
                f"over the {config.max_tokens} token budget"
            )

        self._track_metrics(session_id, context, messages)
        return context

    def _track_metrics(
        self, session_id: str, context: OptimizedContext, messages: list[Message]
    ) -> None:
        if context.elided_count == 0:
            return

        tokens_before = estimate_messages_tokens(messages)
        tokens_after = context.estimated_tokens
        ratio = tokens_after / tokens_before if tokens_before > 0 else 1.0

        metrics = TokenMetrics(
            id=str(uuid.uuid4()),
            session_id=session_id,
            tokens_before=tokens_before,
            tokens_after=tokens_after,
            compression_ratio=ratio,
            messages_processed=len(messages),
            strategy=context.strategy,
            timestamp=self.clock(),
        )

        try:
            self.metrics_store.save(metrics)
            logger.debug(f"Metrics saved: {metrics.describe()}")
        except Exception as e:
            logger.warning(f"Failed to save metrics for session {session_id}: {e}")
