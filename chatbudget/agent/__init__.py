"""Context budget and compaction engine."""

from chatbudget.agent.compactor import Compactor
from chatbudget.agent.encoder import calculate_savings, decode, encode
from chatbudget.agent.summary import Summarizer, SummaryCoordinator
from chatbudget.agent.tokens import estimate_tokens
from chatbudget.agent.window import WindowSelector

__all__ = [
    "Compactor",
    "Summarizer",
    "SummaryCoordinator",
    "WindowSelector",
    "calculate_savings",
    "decode",
    "encode",
    "estimate_tokens",
]
