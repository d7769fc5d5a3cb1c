"""Shared fixtures: settings isolated from the real environment and a fake
K2Think server built on httpx.MockTransport."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator

import httpx
import pytest

from k2think.config import Settings

# ---------------------------------------------------------------------------
# SSE helpers
# ---------------------------------------------------------------------------


def sse_frame(content: str) -> str:
    return "data: " + json.dumps({"content": content}) + "\n"


def answer_frame(answer: str, thinking: str = "") -> str:
    return sse_frame(f"{thinking}<answer>{answer}</answer>")


DONE_FRAME = "data: [DONE]\n"


async def aiter_chunks(*chunks: str | bytes) -> AsyncIterator[str | bytes]:
    for chunk in chunks:
        yield chunk


# ---------------------------------------------------------------------------
# Fake server
# ---------------------------------------------------------------------------


class FakeK2Server:
    """In-memory stand-in for the chat endpoints.

    Stores the chat record posted to /api/v1/chats/new and serves it back
    on GET. Completions stream whatever chunks are queued in
    stream_chunks.
    """

    def __init__(self, chat_id: str = "chat-1") -> None:
        self.chat_id = chat_id
        self.chats: dict[str, dict] = {}
        self.requests: list[httpx.Request] = []
        self.completion_payloads: list[dict] = []
        self.stream_chunks: list[bytes] = [
            answer_frame("42").encode(),
            DONE_FRAME.encode(),
        ]
        self.stream_status = 200
        self.fetch_status = 200
        self.list_status = 200

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "POST" and path == "/api/v1/chats/new":
            body = json.loads(request.content)
            chat = body["chat"]
            chat["id"] = self.chat_id
            self.chats[self.chat_id] = chat
            return httpx.Response(200, json={"id": self.chat_id, "title": chat["title"], "chat": chat})

        if request.method == "GET" and path == "/api/v1/chats/":
            if self.list_status != 200:
                return httpx.Response(self.list_status, text="unauthorized")
            return httpx.Response(200, json=[{"id": cid} for cid in self.chats])

        if request.method == "GET" and path.startswith("/api/v1/chats/"):
            if self.fetch_status != 200:
                return httpx.Response(self.fetch_status, text="fetch failed")
            chat_id = path.rsplit("/", 1)[1]
            chat = self.chats.get(chat_id)
            if chat is None:
                return httpx.Response(404, json={"detail": "Not found"})
            return httpx.Response(200, json={"id": chat_id, "chat": chat})

        if request.method == "POST" and path == "/api/chat/completions":
            self.completion_payloads.append(json.loads(request.content))
            if self.stream_status != 200:
                return httpx.Response(self.stream_status, text="upstream exploded")

            chunks = list(self.stream_chunks)

            async def body() -> AsyncIterator[bytes]:
                for chunk in chunks:
                    yield chunk

            return httpx.Response(
                200,
                headers={"content-type": "text/event-stream"},
                content=body(),
            )

        return httpx.Response(404, text="no route")

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings with test cookies and cookie files under tmp_path."""
    return Settings(
        K2THINK_COOKIES="token=abc/def; lang=en",
        cookie_source_file=str(tmp_path / "Cookie.json"),
        cookie_cache_file=str(tmp_path / "cookies.txt"),
        timezone="UTC",
    )


@pytest.fixture
def no_cookie_settings(tmp_path) -> Settings:
    return Settings(
        K2THINK_COOKIES="",
        cookie_source_file=str(tmp_path / "Cookie.json"),
        cookie_cache_file=str(tmp_path / "cookies.txt"),
    )


@pytest.fixture
def fake_server() -> FakeK2Server:
    return FakeK2Server()
