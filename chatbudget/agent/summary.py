"""Summary generation and reuse for the old part of a conversation."""

import asyncio
import uuid
from abc import ABC, abstractmethod
from typing import Callable

from loguru import logger

from chatbudget.agent.tokens import estimate_messages_tokens, estimate_tokens
from chatbudget.session.models import Message, MessageSummary
from chatbudget.session.stores import SummaryStore
from chatbudget.utils.helpers import current_time_millis


class Summarizer(ABC):
    """Remote capability that condenses a list of messages into prose."""

    @abstractmethod
    async def summarize(self, messages: list[Message], max_tokens: int) -> str | None:
        """
        Summarize *messages* in at most *max_tokens* tokens.

        Returns:
            Summary text, or None when no summary is available. Failures
            (timeouts, API errors, empty responses) must map to None.
        """
        pass


class SummaryCoordinator:
    """Produces or reuses the summary of a session's old-message prefix.

    At most one summary computation runs per session: a per-session lock is
    held across the read-check-generate-write sequence. Locks are created
    lazily under a short-lived guard that is never held while summarizing,
    so different sessions proceed in parallel.
    """

    MIN_MESSAGES = 3

    def __init__(
        self,
        summarizer: Summarizer,
        store: SummaryStore,
        summary_max_tokens: int = 200,
        clock: Callable[[], int] = current_time_millis,
    ):
        self.summarizer = summarizer
        self.store = store
        self.summary_max_tokens = summary_max_tokens
        self.clock = clock
        self._locks: dict[str, asyncio.Lock] = {}
        self._locks_guard = asyncio.Lock()

    def should_generate(self, messages: list[Message], max_tokens: int | None = None) -> bool:
        """A summary is only worth a round trip for enough, long enough messages."""
        if len(messages) < self.MIN_MESSAGES:
            return False
        ceiling = self.summary_max_tokens if max_tokens is None else max_tokens
        return estimate_messages_tokens(messages) > ceiling

    async def get_or_generate(
        self,
        session_id: str,
        old_messages: list[Message],
        max_tokens: int | None = None,
    ) -> MessageSummary | None:
        """Return a summary covering exactly *old_messages*, or None.

        *max_tokens* overrides the summary ceiling for this call.
        """
        if not old_messages:
            return None

        lock = await self._session_lock(session_id)
        async with lock:
            try:
                existing = self.store.get(session_id)
            except Exception as e:
                logger.warning(f"Failed to read summary for session {session_id}: {e}")
                existing = None
            if existing and existing.covers(old_messages):
                logger.debug(f"Reusing summary {existing.id} for session {session_id}")
                return existing
            return await self._generate(session_id, old_messages, max_tokens)

    async def regenerate(
        self,
        session_id: str,
        old_messages: list[Message],
        max_tokens: int | None = None,
    ) -> MessageSummary | None:
        """Discard the stored summary and generate a fresh one."""
        if not old_messages:
            return None

        lock = await self._session_lock(session_id)
        async with lock:
            logger.info(f"Regenerating summary for session {session_id}")
            self.store.delete(session_id)
            return await self._generate(session_id, old_messages, max_tokens)

    async def forget(self, session_id: str) -> None:
        """Drop the stored summary and the lock of a deleted session.

        A lock that is currently held stays in place; its holder still
        relies on it.
        """
        async with self._locks_guard:
            lock = self._locks.get(session_id)
            if lock is not None and not lock.locked():
                del self._locks[session_id]

        try:
            self.store.delete(session_id)
        except Exception as e:
            logger.warning(f"Failed to delete summary for session {session_id}: {e}")

    async def _session_lock(self, session_id: str) -> asyncio.Lock:
        async with self._locks_guard:
            lock = self._locks.get(session_id)
            if lock is None:
                lock = self._locks[session_id] = asyncio.Lock()
            return lock

    async def _generate(
        self,
        session_id: str,
        old_messages: list[Message],
        max_tokens: int | None = None,
    ) -> MessageSummary | None:
        ceiling = self.summary_max_tokens if max_tokens is None else max_tokens
        if not self.should_generate(old_messages, ceiling):
            logger.debug(
                f"Skipping summary for {len(old_messages)} messages: not enough content"
            )
            return None

        logger.info(f"Generating summary for {len(old_messages)} messages ({session_id})")
        try:
            text = await self.summarizer.summarize(old_messages, ceiling)
        except Exception as e:
            logger.warning(f"Summary generation failed: {e}")
            return None

        if not text or not text.strip():
            logger.warning(f"No summary available for session {session_id}")
            return None

        summary = MessageSummary(
            id=str(uuid.uuid4()),
            session_id=session_id,
            summary=text,
            start_message_id=old_messages[0].id,
            end_message_id=old_messages[-1].id,
            message_count=len(old_messages),
            created_at=self.clock(),
            token_count=estimate_tokens(text),
        )

        try:
            self.store.save(summary)
            logger.info(f"Summary saved for session {session_id}")
        except Exception as e:
            logger.warning(f"Failed to save summary for session {session_id}: {e}")

        return summary
