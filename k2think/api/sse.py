"""Incremental decoder for the completion endpoint's SSE stream.

Frames look like ``data: {"content": "...<answer>TEXT</answer>..."}``.
Each frame resends the answer so far, so the decoder keeps the latest
superset snapshot instead of concatenating deltas. ``data: [DONE]`` ends
the stream.

Frame-level tolerance: a ``data:`` payload that is not valid JSON is
dropped and counted in ``frames_discarded``. Upstream servers emit partial
and malformed frames; they never abort a turn.
"""

from __future__ import annotations

import codecs
import json
import logging
import re
from collections.abc import AsyncIterable, Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"

_ANSWER_RE = re.compile(r"<answer>(.*?)</answer>", re.DOTALL)


@dataclass
class StreamChunk:
    """One decoded ``data:`` line."""

    text: str | None = None  # answer fragment inside the tag, if any
    done: bool = False


def extract_answer(content: str) -> str | None:
    """Return the text inside the first <answer>...</answer> pair, or None."""
    match = _ANSWER_RE.search(content)
    return match.group(1) if match else None


def parse_data_line(line: str) -> StreamChunk | None:
    """Parse one SSE line. None for anything that is not a ``data:`` line.

    Raises json.JSONDecodeError for malformed payloads; the decoder applies
    frame-level tolerance on top of this.
    """
    if not line.startswith(DATA_PREFIX):
        return None
    data = line[len(DATA_PREFIX):]
    if data == DONE_SENTINEL:
        return StreamChunk(done=True)
    parsed = json.loads(data)
    if not isinstance(parsed, dict):
        return StreamChunk()
    content = parsed.get("content")
    if not content or not isinstance(content, str):
        return StreamChunk()
    return StreamChunk(text=extract_answer(content))


class StreamDecoder:
    """Turns arbitrarily split SSE text into the current best answer."""

    def __init__(self, on_update: Callable[[str], None] | None = None) -> None:
        self._buffer = ""
        self._bytes = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._answer = ""
        self._done = False
        self._on_update = on_update
        self.frames_seen = 0
        self.frames_discarded = 0

    @property
    def answer(self) -> str:
        return self._answer

    @property
    def done(self) -> bool:
        return self._done

    def feed(self, chunk: str | bytes) -> bool:
        """Consume a chunk of stream text. Returns True once [DONE] was seen."""
        if self._done:
            return True
        if isinstance(chunk, bytes):
            chunk = self._bytes.decode(chunk)

        self._buffer += chunk
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()

        for line in lines:
            self._handle_line(line)
            if self._done:
                self._buffer = ""
                break
        return self._done

    def finish(self) -> str:
        """End of input. Flushes a trailing unterminated line and returns the answer."""
        if not self._done:
            # Bytes of a truncated multi-byte character come out as U+FFFD
            self._buffer += self._bytes.decode(b"", final=True)
            if self._buffer:
                line, self._buffer = self._buffer, ""
                self._handle_line(line)
        self._done = True
        return self._answer

    def _handle_line(self, line: str) -> None:
        line = line.rstrip("\r")
        try:
            chunk = parse_data_line(line)
        except json.JSONDecodeError:
            self.frames_discarded += 1
            logger.debug("Discarding malformed SSE frame: %.80s", line)
            return
        if chunk is None:
            return

        self.frames_seen += 1
        if chunk.done:
            self._done = True
            return
        if chunk.text is not None:
            self._apply(chunk.text)

    def _apply(self, text: str) -> None:
        # Replacement, not concatenation: only a snapshot the current answer
        # does not already contain can replace it.
        if text in self._answer:
            return
        self._answer = text
        if self._on_update is not None:
            self._on_update(text)


async def decode_stream(
    chunks: AsyncIterable[str | bytes],
    on_update: Callable[[str], None] | None = None,
) -> str:
    """Drive a StreamDecoder over an async chunk iterator until [DONE] or EOF."""
    decoder = StreamDecoder(on_update=on_update)
    async for chunk in chunks:
        if decoder.feed(chunk):
            break
    answer = decoder.finish()
    if decoder.frames_discarded:
        logger.debug(
            "Stream finished: %d frames, %d discarded",
            decoder.frames_seen,
            decoder.frames_discarded,
        )
    return answer
