"""Parent-linked conversation history.

Mirrors the remote chat record: an id -> message map, a flat message list
in insertion order and a currentId pointer. The remote protocol permits
branching; this client only ever grows a single chain.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

logger = logging.getLogger(__name__)

Role = Literal["system", "user", "assistant"]
VALID_ROLES = frozenset({"system", "user", "assistant"})


@dataclass
class Message:
    """A single message in a conversation thread."""

    id: str
    role: Role
    content: str
    parent_id: str | None = None
    children_ids: list[str] = field(default_factory=list)
    timestamp: int = field(default_factory=lambda: int(time.time()))
    models: list[str] = field(default_factory=list)

    def to_remote(self) -> dict[str, Any]:
        """Render in the remote camelCase shape."""
        data: dict[str, Any] = {
            "id": self.id,
            "parentId": self.parent_id,
            "childrenIds": list(self.children_ids),
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp,
        }
        if self.models:
            data["models"] = list(self.models)
        return data

    @classmethod
    def from_remote(cls, data: dict[str, Any]) -> Message:
        return cls(
            id=data["id"],
            role=data.get("role", "user"),
            content=data.get("content") or "",
            parent_id=data.get("parentId"),
            children_ids=list(data.get("childrenIds") or []),
            timestamp=int(data.get("timestamp") or 0),
            models=list(data.get("models") or []),
        )


class ConversationThread:
    """Append-only message chain with a current pointer."""

    def __init__(self, model: str | None = None) -> None:
        self._by_id: dict[str, Message] = {}
        self._messages: list[Message] = []
        self._current_id: str | None = None
        self.model = model

    @classmethod
    def new(cls, first_message: str, model: str | None = None) -> ConversationThread:
        """Thread seeded with a single user message."""
        thread = cls(model=model)
        thread.append("user", first_message)
        return thread

    @property
    def current_id(self) -> str | None:
        return self._current_id

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def get(self, message_id: str) -> Message | None:
        return self._by_id.get(message_id)

    def append(self, role: Role, content: str) -> Message:
        """Add a message as child of the current one and make it current."""
        if role not in VALID_ROLES:
            raise ValueError(f"Invalid role: {role!r}")

        message = Message(
            id=str(uuid.uuid4()),
            role=role,
            content=content,
            parent_id=self._current_id,
            models=[self.model] if self.model else [],
        )
        parent = self._by_id.get(self._current_id) if self._current_id else None
        if parent is not None:
            parent.children_ids.append(message.id)

        self._by_id[message.id] = message
        self._messages.append(message)
        self._current_id = message.id
        return message

    def linearize(self) -> list[dict[str, str]]:
        """Role/content pairs in insertion order, as sent to the model."""
        return [{"role": m.role, "content": m.content} for m in self._messages]

    def seed_from(self, remote_state: dict[str, Any]) -> None:
        """Replace local state with a fetched remote chat record.

        Accepts either the full API response ({"chat": {...}}) or the inner
        chat object.
        """
        chat = remote_state.get("chat") or remote_state
        history = chat.get("history") or {}
        history_messages = history.get("messages") or {}
        flat = chat.get("messages")

        if flat is None:
            # Older records only carry the map; dict order is insertion order
            flat = [{"id": mid, **data} for mid, data in history_messages.items()]

        by_id: dict[str, Message] = {}
        for mid, data in history_messages.items():
            by_id[mid] = Message.from_remote({"id": mid, **data})

        messages: list[Message] = []
        for data in flat:
            message = by_id.get(data.get("id")) or Message.from_remote(data)
            by_id.setdefault(message.id, message)
            messages.append(message)

        current_id = history.get("currentId")
        if current_id is None and messages:
            current_id = messages[-1].id

        self._by_id = by_id
        self._messages = messages
        self._current_id = current_id
        logger.debug("Thread seeded with %d messages (current=%s)", len(messages), current_id)

    def to_history(self) -> dict[str, Any]:
        return {
            "messages": {mid: m.to_remote() for mid, m in self._by_id.items()},
            "currentId": self._current_id,
        }

    def to_chat_payload(self, title: str = "New Chat") -> dict[str, Any]:
        """Body for the create-chat endpoint."""
        return {
            "chat": {
                "id": "",
                "title": title,
                "models": [self.model] if self.model else [],
                "params": {},
                "history": self.to_history(),
                "messages": [m.to_remote() for m in self._messages],
                "tags": [],
                "timestamp": int(time.time() * 1000),
            }
        }

    def dump(self, path: str | Path) -> Path:
        """Write the thread as a JSON history dump."""
        target = Path(path)
        record = {
            "model": self.model,
            "history": self.to_history(),
            "messages": [m.to_remote() for m in self._messages],
        }
        target.write_text(json.dumps(record, ensure_ascii=False, indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: str | Path) -> ConversationThread:
        record = json.loads(Path(path).read_text(encoding="utf-8"))
        thread = cls(model=record.get("model"))
        thread.seed_from(record)
        return thread
