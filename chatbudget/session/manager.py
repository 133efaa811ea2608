"""Session management for conversation history."""

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from loguru import logger

from chatbudget.session.models import Message, Role
from chatbudget.utils.helpers import (
    current_time_millis,
    ensure_dir,
    get_sessions_path,
    safe_filename,
)


@dataclass
class Session:
    """
    A conversation session.

    Stores messages in JSONL format for easy reading and persistence.
    """

    key: str
    messages: list[Message] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)
    metadata: dict[str, Any] = field(default_factory=dict)

    def add_message(
        self, role: Role | str, content: str, token_count: int | None = None
    ) -> Message:
        """Append a new message and return it."""
        msg = Message(
            id=uuid.uuid4().hex,
            content=content or "",
            role=Role(role),
            timestamp=current_time_millis(),
            token_count=token_count,
        )
        self.messages.append(msg)
        self.updated_at = datetime.now()
        return msg

    def clear(self) -> None:
        """Clear all messages in the session."""
        self.messages = []
        self.updated_at = datetime.now()


class SessionManager:
    """
    Manages conversation sessions stored as JSONL files.

    Directory layout:
        ~/.chatbudget/sessions/
        └── {session_id}.jsonl   # metadata line, then one message per line
    """

    def __init__(self, sessions_dir: Path | None = None):
        self.sessions_dir = ensure_dir(sessions_dir) if sessions_dir else get_sessions_path()
        self._cache: dict[str, Session] = {}

    # ── public API ──────────────────────────────────────────────

    def get(self, session_id: str) -> Session | None:
        """Return a cached or stored session, or None if it does not exist."""
        if session_id in self._cache:
            return self._cache[session_id]

        session = self._load(session_id)
        if session:
            self._cache[session_id] = session
        return session

    def get_or_create(self, session_id: str | None = None) -> Session:
        """
        Get an existing session or create a new one.

        Args:
            session_id: Session ID; a fresh one is generated when omitted.

        Returns:
            The session.
        """
        if session_id:
            session = self.get(session_id)
            if session:
                return session

        session = Session(key=session_id or self._generate_session_id())
        self.save(session)
        logger.info(f"Created new session {session.key}")
        return session

    def save(self, session: Session) -> None:
        """Save a session to disk."""
        path = self._get_session_path(session.key)

        with open(path, "w", encoding="utf-8") as f:
            metadata_line = {
                "_type": "metadata",
                "created_at": session.created_at.isoformat(),
                "updated_at": session.updated_at.isoformat(),
                "metadata": session.metadata,
            }
            f.write(json.dumps(metadata_line, ensure_ascii=False) + "\n")

            for msg in session.messages:
                f.write(json.dumps(msg.to_dict(), ensure_ascii=False) + "\n")

        self._cache[session.key] = session

    def delete(self, session_id: str) -> bool:
        """
        Delete a session.

        Returns:
            True if deleted, False if not found.
        """
        self._cache.pop(session_id, None)

        path = self._get_session_path(session_id)
        if path.exists():
            path.unlink()
            return True
        return False

    def list_sessions(self) -> list[dict[str, Any]]:
        """
        List stored sessions.

        Returns:
            List of session info dicts sorted by updated_at descending.
        """
        sessions = []

        for path in self.sessions_dir.glob("*.jsonl"):
            try:
                with open(path, encoding="utf-8") as f:
                    first_line = f.readline().strip()
                if not first_line:
                    continue
                data = json.loads(first_line)
                if data.get("_type") != "metadata":
                    continue
                sessions.append({
                    "session_id": path.stem,
                    "created_at": data.get("created_at"),
                    "updated_at": data.get("updated_at"),
                    "path": str(path),
                })
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Skipping unreadable session file {path.name}: {e}")

        return sorted(sessions, key=lambda x: x.get("updated_at") or "", reverse=True)

    # ── internal helpers ────────────────────────────────────────

    def _generate_session_id(self) -> str:
        date_str = datetime.now().strftime("%Y%m%d")
        return f"chat_{date_str}_{uuid.uuid4().hex[:6]}"

    def _get_session_path(self, session_id: str) -> Path:
        return self.sessions_dir / f"{safe_filename(session_id)}.jsonl"

    def _load(self, session_id: str) -> Session | None:
        path = self._get_session_path(session_id)

        if not path.exists():
            return None

        try:
            messages = []
            metadata = {}
            created_at = None
            updated_at = None

            with open(path, encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if not line:
                        continue

                    data = json.loads(line)

                    if data.get("_type") == "metadata":
                        metadata = data.get("metadata", {})
                        if data.get("created_at"):
                            created_at = datetime.fromisoformat(data["created_at"])
                        if data.get("updated_at"):
                            updated_at = datetime.fromisoformat(data["updated_at"])
                    else:
                        messages.append(Message.from_dict(data))

            return Session(
                key=session_id,
                messages=messages,
                created_at=created_at or datetime.now(),
                updated_at=updated_at or datetime.now(),
                metadata=metadata,
            )
        except (OSError, ValueError, KeyError) as e:
            logger.warning(f"Failed to load session {session_id}: {e}")
            return None
