"""Outgoing message handling."""

from chatbudget.channels.split import MessagePart, MessageSplitter, SplitResult

__all__ = ["MessagePart", "MessageSplitter", "SplitResult"]
