"""Tests for summary generation and reuse."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from chatbudget.agent.summary import Summarizer, SummaryCoordinator
from chatbudget.session.models import Message, MessageSummary, Role
from chatbudget.session.stores import InMemorySummaryStore


def _history(n, size=400, prefix="m"):
    return [
        Message(
            id=f"{prefix}{i}",
            content="x" * size,
            role=Role.user if i % 2 == 0 else Role.assistant,
            timestamp=i,
        )
        for i in range(n)
    ]


def _summarizer(result="A short summary."):
    summarizer = MagicMock(spec=Summarizer)
    summarizer.summarize = AsyncMock(return_value=result)
    return summarizer


# ── should_generate ─────────────────────────────────────────────


class TestShouldGenerate:
    def _coordinator(self):
        return SummaryCoordinator(_summarizer(), InMemorySummaryStore(), summary_max_tokens=200)

    def test_too_few_messages(self):
        assert self._coordinator().should_generate(_history(2)) is False

    def test_too_little_content(self):
        assert self._coordinator().should_generate(_history(5, size=40)) is False

    def test_worthwhile(self):
        assert self._coordinator().should_generate(_history(3)) is True


# ── get_or_generate ─────────────────────────────────────────────


class TestGetOrGenerate:
    @pytest.mark.asyncio
    async def test_empty_prefix(self):
        summarizer = _summarizer()
        coordinator = SummaryCoordinator(summarizer, InMemorySummaryStore())

        assert await coordinator.get_or_generate("s1", []) is None
        summarizer.summarize.assert_not_called()

    @pytest.mark.asyncio
    async def test_generates_and_saves(self):
        store = InMemorySummaryStore()
        summarizer = _summarizer("A short summary.")
        coordinator = SummaryCoordinator(summarizer, store, clock=lambda: 1234)
        old = _history(5)

        summary = await coordinator.get_or_generate("s1", old)

        assert summary is not None
        assert summary.summary == "A short summary."
        assert summary.session_id == "s1"
        assert summary.start_message_id == "m0"
        assert summary.end_message_id == "m4"
        assert summary.message_count == 5
        assert summary.created_at == 1234
        assert summary.token_count == 4
        assert store.get("s1") == summary
        summarizer.summarize.assert_awaited_once_with(old, 200)

    @pytest.mark.asyncio
    async def test_reuses_matching_summary(self):
        summarizer = _summarizer()
        coordinator = SummaryCoordinator(summarizer, InMemorySummaryStore())
        old = _history(5)

        first = await coordinator.get_or_generate("s1", old)
        second = await coordinator.get_or_generate("s1", old)

        assert first == second
        assert summarizer.summarize.await_count == 1

    @pytest.mark.asyncio
    async def test_regenerates_when_prefix_grows(self):
        summarizer = _summarizer()
        store = InMemorySummaryStore()
        coordinator = SummaryCoordinator(summarizer, store)
        history = _history(6)

        first = await coordinator.get_or_generate("s1", history[:5])
        second = await coordinator.get_or_generate("s1", history)

        assert summarizer.summarize.await_count == 2
        assert second.id != first.id
        assert second.message_count == 6
        assert store.get("s1") == second

    @pytest.mark.asyncio
    async def test_not_worthwhile_skips_summarizer(self):
        summarizer = _summarizer()
        coordinator = SummaryCoordinator(summarizer, InMemorySummaryStore())

        assert await coordinator.get_or_generate("s1", _history(2)) is None
        summarizer.summarize.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("result", [None, "", "   \n"])
    async def test_empty_result_is_no_summary(self, result):
        store = InMemorySummaryStore()
        coordinator = SummaryCoordinator(_summarizer(result), store)

        assert await coordinator.get_or_generate("s1", _history(5)) is None
        assert store.get("s1") is None

    @pytest.mark.asyncio
    async def test_summarizer_exception_is_no_summary(self):
        summarizer = _summarizer()
        summarizer.summarize.side_effect = TimeoutError("too slow")
        coordinator = SummaryCoordinator(summarizer, InMemorySummaryStore())

        assert await coordinator.get_or_generate("s1", _history(5)) is None

    @pytest.mark.asyncio
    async def test_save_failure_still_returns_summary(self):
        store = MagicMock()
        store.get.return_value = None
        store.save.side_effect = OSError("disk full")
        coordinator = SummaryCoordinator(_summarizer(), store)

        summary = await coordinator.get_or_generate("s1", _history(5))

        assert summary is not None
        store.save.assert_called_once()

    @pytest.mark.asyncio
    async def test_read_failure_generates(self):
        store = MagicMock()
        store.get.side_effect = OSError("unreadable")
        summarizer = _summarizer()
        coordinator = SummaryCoordinator(summarizer, store)

        summary = await coordinator.get_or_generate("s1", _history(5))

        assert summary is not None
        summarizer.summarize.assert_awaited_once()


# ── concurrency ─────────────────────────────────────────────────


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_concurrent_calls_summarize_once(self):
        async def slow_summary(messages, max_tokens):
            await asyncio.sleep(0.01)
            return "Concurrent summary."

        summarizer = MagicMock(spec=Summarizer)
        summarizer.summarize = AsyncMock(side_effect=slow_summary)
        coordinator = SummaryCoordinator(summarizer, InMemorySummaryStore())
        old = _history(5)

        results = await asyncio.gather(
            *(coordinator.get_or_generate("s1", old) for _ in range(5))
        )

        assert summarizer.summarize.await_count == 1
        assert len({r.id for r in results}) == 1

    @pytest.mark.asyncio
    async def test_sessions_are_independent(self):
        started = {"s1": asyncio.Event(), "s2": asyncio.Event()}

        async def waiting_summary(messages, max_tokens):
            session = "s1" if messages[0].id.startswith("a") else "s2"
            other = "s2" if session == "s1" else "s1"
            started[session].set()
            # Deadlocks unless both sessions summarize at the same time
            await asyncio.wait_for(started[other].wait(), timeout=1)
            return f"summary of {session}"

        summarizer = MagicMock(spec=Summarizer)
        summarizer.summarize = AsyncMock(side_effect=waiting_summary)
        coordinator = SummaryCoordinator(summarizer, InMemorySummaryStore())

        first, second = await asyncio.gather(
            coordinator.get_or_generate("s1", _history(5, prefix="a")),
            coordinator.get_or_generate("s2", _history(5, prefix="b")),
        )

        assert first.summary == "summary of s1"
        assert second.summary == "summary of s2"


# ── regenerate ──────────────────────────────────────────────────


class TestRegenerate:
    @pytest.mark.asyncio
    async def test_replaces_existing(self):
        store = InMemorySummaryStore()
        summarizer = _summarizer()
        coordinator = SummaryCoordinator(summarizer, store)
        old = _history(5)

        first = await coordinator.get_or_generate("s1", old)
        fresh = await coordinator.regenerate("s1", old)

        assert fresh.id != first.id
        assert store.get("s1") == fresh
        assert summarizer.summarize.await_count == 2

    @pytest.mark.asyncio
    async def test_failure_leaves_no_summary(self):
        store = InMemorySummaryStore()
        store.save(MessageSummary("old", "s1", "stale", "m0", "m4", 5, 0, 1))
        coordinator = SummaryCoordinator(_summarizer(None), store)

        assert await coordinator.regenerate("s1", _history(5)) is None
        assert store.get("s1") is None


# ── forget ──────────────────────────────────────────────────────


class TestForget:
    @pytest.mark.asyncio
    async def test_drops_lock_and_summary(self):
        store = InMemorySummaryStore()
        coordinator = SummaryCoordinator(_summarizer(), store)
        await coordinator.get_or_generate("s1", _history(5))
        assert "s1" in coordinator._locks

        await coordinator.forget("s1")

        assert "s1" not in coordinator._locks
        assert store.get("s1") is None

    @pytest.mark.asyncio
    async def test_keeps_held_lock(self):
        coordinator = SummaryCoordinator(_summarizer(), InMemorySummaryStore())
        lock = await coordinator._session_lock("s1")

        async with lock:
            await coordinator.forget("s1")
            assert coordinator._locks["s1"] is lock

    @pytest.mark.asyncio
    async def test_unknown_session(self):
        coordinator = SummaryCoordinator(_summarizer(), InMemorySummaryStore())
        await coordinator.forget("nope")
        assert coordinator._locks == {}

    @pytest.mark.asyncio
    async def test_store_failure_does_not_raise(self):
        store = MagicMock()
        store.delete.side_effect = OSError("read-only")
        coordinator = SummaryCoordinator(_summarizer(), store)

        await coordinator.forget("s1")

        store.delete.assert_called_once_with("s1")
