"""Dialog session -- the conversation state machine.

Wires ConversationThread to a ChatProvider:

    start_conversation:    new thread -> create chat remotely -> ChatHandle
    continue_conversation: fetch remote chat -> seed thread -> append user
                           message -> stream completion -> answer text

One call in flight per session. Concurrent calls on the same session
interleave thread mutation and are a caller error; separate sessions share
nothing and may run in parallel.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

import httpx

from k2think.api.provider import ChatProvider, K2ThinkProvider, TurnOptions
from k2think.api.transport import TransportClient
from k2think.config import Settings
from k2think.dialog.thread import ConversationThread
from k2think.errors import CredentialError, SessionStateError, TransportError

logger = logging.getLogger(__name__)


class SessionState(StrEnum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    SENDING = "sending"
    CLOSED = "closed"


@dataclass
class ChatHandle:
    """A remote chat plus the local view of its thread."""

    chat_id: str
    thread: ConversationThread
    title: str | None = None


@dataclass
class TurnResult:
    handle: ChatHandle
    response_text: str


class DialogSession:
    """Runs conversations against a remote chat provider.

    Without a provider argument a K2ThinkProvider is built from settings
    and the given cookies. skip_cookies=True allows construction with no
    credentials; every remote call then raises CredentialError.
    """

    def __init__(
        self,
        settings: Settings,
        provider: ChatProvider | None = None,
        *,
        cookies: str | None = None,
        skip_cookies: bool = False,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._skip_cookies = skip_cookies
        raw_cookies = cookies if cookies is not None else (settings.cookies or None)

        if provider is None:
            if not raw_cookies and not skip_cookies:
                raise CredentialError("Cookies are required for DialogSession", reason="missing")
            transport = TransportClient(
                settings,
                None if skip_cookies else raw_cookies,
                transport=http_transport,
            )
            provider = K2ThinkProvider(settings, transport)
            self._has_credentials = transport.has_credentials
        else:
            self._has_credentials = not skip_cookies

        self._provider = provider
        self._state = SessionState.UNINITIALIZED

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def provider(self) -> ChatProvider:
        return self._provider

    @property
    def has_credentials(self) -> bool:
        return self._has_credentials

    async def start(self) -> None:
        if self._state is SessionState.CLOSED:
            raise SessionStateError("Session is closed")
        if self._state is not SessionState.UNINITIALIZED:
            return
        await self._provider.start()
        self._state = SessionState.READY

    async def close(self) -> None:
        if self._state is SessionState.CLOSED:
            return
        await self._provider.close()
        self._state = SessionState.CLOSED

    async def __aenter__(self) -> DialogSession:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Conversation operations
    # ------------------------------------------------------------------

    async def start_conversation(self, first_message: str, model: str | None = None) -> ChatHandle:
        """Create a remote chat holding one user message."""
        self._check_ready()
        model = model or self._settings.model
        thread = ConversationThread.new(first_message, model=model)

        self._state = SessionState.SENDING
        try:
            data = await self._provider.create_chat(thread)
        finally:
            self._state = SessionState.READY

        chat_id = data.get("id") or (data.get("chat") or {}).get("id")
        if not chat_id:
            raise TransportError(None, "create-chat response carried no chat id")
        logger.info("Created chat %s", chat_id)
        return ChatHandle(chat_id=chat_id, thread=thread, title=data.get("title"))

    async def continue_conversation(
        self,
        handle: ChatHandle,
        message: str | None = None,
        model: str | None = None,
        on_update: Callable[[str], None] | None = None,
    ) -> TurnResult:
        """Send a user message on an existing chat and stream back the answer.

        The remote chat is fetched first and the local thread re-seeded from
        it, so the new message is anchored at the remote currentId. With
        message=None nothing is appended and the thread is sent as fetched,
        which answers the user message a chat was created with.
        """
        self._check_ready()
        if not handle.chat_id:
            raise TransportError(None, "Cannot continue a chat without an id")
        model = model or self._settings.model

        self._state = SessionState.SENDING
        try:
            remote = await self._provider.fetch_chat(handle.chat_id)
            handle.thread.seed_from(remote)
            handle.thread.model = model
            if message is not None:
                handle.thread.append("user", message)

            options = TurnOptions(model=model, chat_id=handle.chat_id, on_update=on_update)
            answer = await self._provider.send_turn(handle.thread, options)
        finally:
            self._state = SessionState.READY

        if self._settings.append_assistant_reply:
            handle.thread.append("assistant", answer)

        logger.info("Chat %s: received %d chars", handle.chat_id, len(answer))
        return TurnResult(handle=handle, response_text=answer)

    async def get_chat(self, chat_id: str) -> dict[str, Any]:
        self._check_ready()
        return await self._provider.fetch_chat(chat_id)

    async def list_chats(self, page: int = 1) -> Any:
        self._check_ready()
        return await self._provider.list_chats(page)

    def _check_ready(self) -> None:
        if self._state is SessionState.UNINITIALIZED:
            raise SessionStateError("Session not started -- call start() first")
        if self._state is SessionState.CLOSED:
            raise SessionStateError("Session is closed")
        if self._state is SessionState.SENDING:
            raise SessionStateError("Another call is in flight on this session")
        if not self._has_credentials:
            raise CredentialError(
                "Session has no credentials (skip_cookies=True); remote calls are unavailable",
                reason="missing",
            )
