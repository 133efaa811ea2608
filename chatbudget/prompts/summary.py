"""Prompts for conversation summarization."""

SUMMARY_SYSTEM_PROMPT = """You are a conversation summarizer. Create a concise summary of the conversation.

Requirements:
1. Capture the key topics discussed and the questions the user asked.
2. Keep important facts, names, numbers, decisions and conclusions.
3. Record any open tasks or commitments that are still pending.
4. Write in third person ("The user asked...", "The assistant explained...").
5. Use plain prose without headings, lists or code blocks.
6. Stay within {max_tokens} tokens.

Return only the summary text."""

SUMMARY_USER_PREFIX = "Please summarize the following conversation:\n\n"

ROLE_LABELS = {"user": "User", "assistant": "Assistant"}


def format_conversation(messages: list) -> str:
    """Render messages as ``User: ...`` / ``Assistant: ...`` blocks."""
    blocks = []
    for msg in messages:
        label = ROLE_LABELS.get(msg.role.value, msg.role.value.title())
        blocks.append(f"{label}: {msg.content}")
    return "\n\n".join(blocks)


def build_summary_messages(messages: list, max_tokens: int) -> list[dict[str, str]]:
    """Chat messages for a summarization request."""
    return [
        {"role": "system", "content": SUMMARY_SYSTEM_PROMPT.format(max_tokens=max_tokens)},
        {"role": "user", "content": SUMMARY_USER_PREFIX + format_conversation(messages)},
    ]
