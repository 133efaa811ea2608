"""Persistence for message summaries and compaction metrics.

Summaries are kept one per session (the current one supersedes any older
one). Metrics are an append-only audit trail, stored as JSONL per session.
"""

import json
from abc import ABC, abstractmethod
from pathlib import Path

from loguru import logger

from chatbudget.session.models import MessageSummary, TokenMetrics
from chatbudget.utils.helpers import (
    ensure_dir,
    get_metrics_path,
    get_summaries_path,
    safe_filename,
)


class SummaryStore(ABC):
    """Storage for the current summary of each session."""

    @abstractmethod
    def get(self, session_id: str) -> MessageSummary | None:
        pass

    @abstractmethod
    def save(self, summary: MessageSummary) -> None:
        """Save *summary*, replacing any previous one for its session."""
        pass

    @abstractmethod
    def delete(self, session_id: str) -> None:
        pass

    def exists(self, session_id: str) -> bool:
        return self.get(session_id) is not None


class MetricsStore(ABC):
    """Append-only storage for compaction metrics."""

    @abstractmethod
    def save(self, metrics: TokenMetrics) -> None:
        pass

    @abstractmethod
    def for_session(self, session_id: str) -> list[TokenMetrics]:
        """All metrics for a session, newest first."""
        pass

    @abstractmethod
    def all(self) -> list[TokenMetrics]:
        pass

    @abstractmethod
    def delete_for_session(self, session_id: str) -> None:
        pass

    def latest(self, session_id: str) -> TokenMetrics | None:
        records = self.for_session(session_id)
        return records[0] if records else None

    def average_ratio(self, session_id: str) -> float | None:
        records = self.for_session(session_id)
        if not records:
            return None
        return sum(m.compression_ratio for m in records) / len(records)

    def total_saved(self, session_id: str | None = None) -> int:
        records = self.for_session(session_id) if session_id else self.all()
        return sum(m.tokens_saved for m in records)

    def count(self, session_id: str | None = None) -> int:
        records = self.for_session(session_id) if session_id else self.all()
        return len(records)


def _newest_first(records: list[TokenMetrics]) -> list[TokenMetrics]:
    return sorted(records, key=lambda m: m.timestamp, reverse=True)


# ── in-memory ───────────────────────────────────────────────────


class InMemorySummaryStore(SummaryStore):
    def __init__(self):
        self._summaries: dict[str, MessageSummary] = {}

    def get(self, session_id: str) -> MessageSummary | None:
        return self._summaries.get(session_id)

    def save(self, summary: MessageSummary) -> None:
        self._summaries[summary.session_id] = summary

    def delete(self, session_id: str) -> None:
        self._summaries.pop(session_id, None)


class InMemoryMetricsStore(MetricsStore):
    def __init__(self):
        self._records: list[TokenMetrics] = []

    def save(self, metrics: TokenMetrics) -> None:
        self._records.append(metrics)

    def for_session(self, session_id: str) -> list[TokenMetrics]:
        return _newest_first([m for m in self._records if m.session_id == session_id])

    def all(self) -> list[TokenMetrics]:
        return _newest_first(self._records)

    def delete_for_session(self, session_id: str) -> None:
        self._records = [m for m in self._records if m.session_id != session_id]


# ── file-backed ─────────────────────────────────────────────────


class FileSummaryStore(SummaryStore):
    """One JSON file per session under ``summaries/``."""

    def __init__(self, directory: Path | None = None):
        self.directory = ensure_dir(directory) if directory else get_summaries_path()

    def _path(self, session_id: str) -> Path:
        return self.directory / f"{safe_filename(session_id)}.json"

    def get(self, session_id: str) -> MessageSummary | None:
        path = self._path(session_id)
        if not path.exists():
            return None
        try:
            return MessageSummary.from_dict(json.loads(path.read_text(encoding="utf-8")))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring unreadable summary for {session_id}: {e}")
            return None

    def save(self, summary: MessageSummary) -> None:
        path = self._path(summary.session_id)
        path.write_text(
            json.dumps(summary.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8"
        )
        logger.debug(f"Saved summary {summary.id} for session {summary.session_id}")

    def delete(self, session_id: str) -> None:
        path = self._path(session_id)
        if path.exists():
            path.unlink()
            logger.info(f"Deleted summary for session {session_id}")


class FileMetricsStore(MetricsStore):
    """One JSONL file per session under ``metrics/``, one record per line."""

    def __init__(self, directory: Path | None = None):
        self.directory = ensure_dir(directory) if directory else get_metrics_path()

    def _path(self, session_id: str) -> Path:
        return self.directory / f"{safe_filename(session_id)}.jsonl"

    def save(self, metrics: TokenMetrics) -> None:
        with self._path(metrics.session_id).open("a", encoding="utf-8") as f:
            f.write(json.dumps(metrics.to_dict()) + "\n")

    def for_session(self, session_id: str) -> list[TokenMetrics]:
        return _newest_first(self._read(self._path(session_id)))

    def all(self) -> list[TokenMetrics]:
        records: list[TokenMetrics] = []
        for path in self.directory.glob("*.jsonl"):
            records.extend(self._read(path))
        return _newest_first(records)

    def delete_for_session(self, session_id: str) -> None:
        path = self._path(session_id)
        if path.exists():
            path.unlink()
            logger.info(f"Deleted metrics for session {session_id}")

    @staticmethod
    def _read(path: Path) -> list[TokenMetrics]:
        if not path.exists():
            return []
        records = []
        with path.open(encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    records.append(TokenMetrics.from_dict(json.loads(line)))
                except (json.JSONDecodeError, KeyError, ValueError) as e:
                    logger.warning(f"Skipping bad metrics line in {path.name}: {e}")
        return records
