"""
Chat session documents stored in the key-value namespace.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from advent_backend.kv import KvStore

HISTORY_KEY_PREFIX = "chat-history:"
SESSION_KEY_PREFIX = "session:"
RECENT_MESSAGE_COUNT = 5
MAX_SESSION_MESSAGES = 200
MAX_SESSION_ID_LENGTH = 200
DEFAULT_SESSION_ID = "default"


def history_key(session_id: str) -> str:
    return f"{HISTORY_KEY_PREFIX}{session_id}"


def session_key(session_id: str) -> str:
    return f"{SESSION_KEY_PREFIX}{session_id}"


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def recent_messages(
    kv: KvStore, session_id: str, count: int = RECENT_MESSAGE_COUNT
) -> list:
    """Return the last `count` stored messages, oldest first."""
    history = _as_list(kv.get_json(history_key(session_id)))
    if count <= 0:
        return []
    return history[-count:]


def message_content(message: Any) -> str:
    """Accept either a plain string or a chat message object with `content`."""
    if isinstance(message, str):
        return message
    if isinstance(message, dict):
        content = message.get("content")
        return content if isinstance(content, str) else ""
    return ""


def append_session_message(
    kv: KvStore,
    session_id: str,
    content: str,
    timestamp: Optional[str] = None,
) -> list:
    key = session_key(session_id)
    history = _as_list(kv.get_json(key))
    history.append(
        {
            "timestamp": timestamp or datetime.now(timezone.utc).isoformat(),
            "message": content,
        }
    )
    history = history[-MAX_SESSION_MESSAGES:]
    kv.put_json(key, history)
    return history
