"""Domain types shared by the compaction engine and its stores."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Role(str, Enum):
    user = "user"
    assistant = "assistant"


@dataclass(frozen=True)
class Message:
    """A single chat message. Superseded by new instances, never mutated."""

    id: str
    content: str
    role: Role
    timestamp: int  # epoch millis
    token_count: int | None = None  # Known cost from the API usage, if any

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "content": self.content,
            "role": self.role.value,
            "timestamp": self.timestamp,
        }
        if self.token_count is not None:
            data["token_count"] = self.token_count
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Message":
        try:
            role = Role(data.get("role"))
        except ValueError:
            role = Role.user
        return cls(
            id=str(data["id"]),
            content=data.get("content") or "",
            role=role,
            timestamp=int(data.get("timestamp", 0)),
            token_count=data.get("token_count"),
        )


@dataclass(frozen=True)
class MessageSummary:
    """Summary of an inclusive, contiguous range of old messages.

    A summary is only reusable for a prefix whose first id, last id and
    length all match exactly; anything else means the history drifted.
    """

    id: str
    session_id: str
    summary: str
    start_message_id: str
    end_message_id: str
    message_count: int
    created_at: int
    token_count: int

    def covers(self, messages: list[Message]) -> bool:
        if not messages:
            return False
        return (
            self.start_message_id == messages[0].id
            and self.end_message_id == messages[-1].id
            and self.message_count == len(messages)
        )

    def estimated_savings(self) -> int:
        """Rough token savings, assuming ~50 tokens per summarized message."""
        return self.message_count * 50 - self.token_count

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "summary": self.summary,
            "start_message_id": self.start_message_id,
            "end_message_id": self.end_message_id,
            "message_count": self.message_count,
            "created_at": self.created_at,
            "token_count": self.token_count,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MessageSummary":
        return cls(
            id=data["id"],
            session_id=data["session_id"],
            summary=data["summary"],
            start_message_id=data["start_message_id"],
            end_message_id=data["end_message_id"],
            message_count=int(data["message_count"]),
            created_at=int(data["created_at"]),
            token_count=int(data["token_count"]),
        )


class OptimizationStrategy(str, Enum):
    none_needed = "none_needed"
    encoded_only = "encoded_only"
    truncated_with_encoding = "truncated_with_encoding"


@dataclass
class OptimizedContext:
    """The context actually sent to the model. Recomputed on every call."""

    messages: list[Message] = field(default_factory=list)
    encoded: str = ""
    estimated_tokens: int = 0
    strategy: OptimizationStrategy = OptimizationStrategy.none_needed
    elided_count: int = 0  # Original messages summarized or truncated away

    @property
    def was_truncated(self) -> bool:
        return self.elided_count > 0

    def describe(self) -> str:
        if self.strategy == OptimizationStrategy.none_needed:
            return "No optimization needed"
        if self.strategy == OptimizationStrategy.encoded_only:
            text = f"Compact encoding only ({len(self.messages)} messages, ~{self.estimated_tokens} tokens)"
            if self.elided_count:
                text += f", {self.elided_count} summarized"
            return text
        return (
            f"Truncated {self.elided_count} messages, kept {len(self.messages)} "
            f"(~{self.estimated_tokens} tokens)"
        )


@dataclass(frozen=True)
class TokenMetrics:
    """One compaction event where messages were actually elided."""

    id: str
    session_id: str
    tokens_before: int
    tokens_after: int
    compression_ratio: float
    messages_processed: int
    strategy: OptimizationStrategy
    timestamp: int

    @property
    def tokens_saved(self) -> int:
        return self.tokens_before - self.tokens_after

    @property
    def savings_percentage(self) -> float:
        if self.tokens_before <= 0:
            return 0.0
        return self.tokens_saved / self.tokens_before * 100

    @property
    def was_effective(self) -> bool:
        return self.tokens_saved > 0 and self.compression_ratio < 1.0

    def describe(self) -> str:
        return (
            f"Saved {self.tokens_saved} tokens ({int(self.savings_percentage)}%) "
            f"using {self.strategy.value}"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "tokens_before": self.tokens_before,
            "tokens_after": self.tokens_after,
            "compression_ratio": self.compression_ratio,
            "messages_processed": self.messages_processed,
            "strategy": self.strategy.value,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TokenMetrics":
        return cls(
            id=data["id"],
            session_id=data["session_id"],
            tokens_before=int(data["tokens_before"]),
            tokens_after=int(data["tokens_after"]),
            compression_ratio=float(data["compression_ratio"]),
            messages_processed=int(data["messages_processed"]),
            strategy=OptimizationStrategy(data["strategy"]),
            timestamp=int(data["timestamp"]),
        )
