"""Remote chat providers.

DialogSession talks to a ChatProvider rather than to HTTP directly, so a
different completion service can be slotted in by implementing the same
calls. K2ThinkProvider is the only implementation shipped.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, runtime_checkable
from zoneinfo import ZoneInfo

from k2think.api.sse import decode_stream
from k2think.api.transport import TransportClient
from k2think.config import Settings
from k2think.dialog.thread import ConversationThread
from k2think.errors import TransportError

logger = logging.getLogger(__name__)

CREATE_CHAT_PATH = "/api/v1/chats/new"
CHAT_PATH = "/api/v1/chats/{chat_id}"
CHAT_LIST_PATH = "/api/v1/chats/?page={page}"
COMPLETIONS_PATH = "/api/chat/completions"


@dataclass
class TurnOptions:
    """Per-turn knobs passed through to a provider."""

    model: str
    chat_id: str | None = None
    params: dict[str, Any] = field(default_factory=dict)
    on_update: Callable[[str], None] | None = None


@runtime_checkable
class ChatProvider(Protocol):
    async def start(self) -> None: ...

    async def create_chat(self, thread: ConversationThread) -> dict[str, Any]: ...

    async def fetch_chat(self, chat_id: str) -> dict[str, Any]: ...

    async def send_turn(self, thread: ConversationThread, options: TurnOptions) -> str: ...

    async def list_chats(self, page: int = 1) -> Any: ...

    async def close(self) -> None: ...


def build_template_variables(settings: Settings, now: datetime | None = None) -> dict[str, str]:
    """Contextual variables the remote prompt template expects, computed at send time."""
    tz = ZoneInfo(settings.timezone)
    now = now.astimezone(tz) if now else datetime.now(tz)
    return {
        "{{USER_NAME}}": settings.user_name,
        "{{USER_LOCATION}}": settings.user_location,
        "{{CURRENT_DATETIME}}": now.strftime("%Y-%m-%d %H:%M:%S"),
        "{{CURRENT_DATE}}": now.strftime("%Y-%m-%d"),
        "{{CURRENT_TIME}}": now.strftime("%H:%M:%S"),
        "{{CURRENT_WEEKDAY}}": now.strftime("%A"),
        "{{CURRENT_TIMEZONE}}": settings.timezone,
        "{{USER_LANGUAGE}}": settings.language,
    }


def build_completion_payload(
    thread: ConversationThread,
    options: TurnOptions,
    settings: Settings,
    now: datetime | None = None,
) -> dict[str, Any]:
    return {
        "stream": True,
        "model": options.model,
        "messages": thread.linearize(),
        "params": dict(options.params),
        "tool_servers": [],
        "features": {
            "image_generation": False,
            "code_interpreter": False,
            "web_search": False,
        },
        "variables": build_template_variables(settings, now),
    }


class K2ThinkProvider:
    """ChatProvider backed by the K2Think web API."""

    def __init__(self, settings: Settings, transport: TransportClient) -> None:
        self._settings = settings
        self._transport = transport

    @property
    def transport(self) -> TransportClient:
        return self._transport

    async def start(self) -> None:
        await self._transport.start()

    async def close(self) -> None:
        await self._transport.close()

    async def create_chat(self, thread: ConversationThread) -> dict[str, Any]:
        data = await self._transport.request_json("POST", CREATE_CHAT_PATH, thread.to_chat_payload())
        if not isinstance(data, dict):
            raise TransportError(200, f"Unexpected create-chat response: {str(data)[:200]}")
        return data

    async def fetch_chat(self, chat_id: str) -> dict[str, Any]:
        data = await self._transport.request_json("GET", CHAT_PATH.format(chat_id=chat_id))
        if not isinstance(data, dict):
            raise TransportError(200, f"Unexpected chat response: {str(data)[:200]}")
        return data

    async def list_chats(self, page: int = 1) -> Any:
        return await self._transport.request_json("GET", CHAT_LIST_PATH.format(page=page))

    async def send_turn(self, thread: ConversationThread, options: TurnOptions) -> str:
        payload = build_completion_payload(thread, options, self._settings)
        logger.debug(
            "Sending %d messages to %s (chat=%s)",
            len(payload["messages"]),
            options.model,
            options.chat_id,
        )
        chunks = self._transport.stream_text(COMPLETIONS_PATH, payload)
        try:
            return await decode_stream(chunks, on_update=options.on_update)
        finally:
            await chunks.aclose()
