"""Tests for the SSE stream decoder.

Covers:
- line parsing (parse_data_line / extract_answer pure functions)
- replacement-not-concatenation semantics and substring dedup
- buffering of lines split across chunk deliveries
- frame-level tolerance for malformed frames
- decode_stream() over async chunk iterators
"""

import json

import pytest

from k2think.api.sse import (
    StreamDecoder,
    decode_stream,
    extract_answer,
    parse_data_line,
)
from tests.conftest import DONE_FRAME, aiter_chunks, answer_frame, sse_frame


class TestParseDataLine:
    def test_non_data_lines_ignored(self):
        assert parse_data_line("") is None
        assert parse_data_line("event: message") is None
        assert parse_data_line(": keep-alive") is None
        assert parse_data_line("data:{}") is None  # prefix requires the space

    def test_done_sentinel(self):
        chunk = parse_data_line("data: [DONE]")
        assert chunk is not None
        assert chunk.done is True

    def test_answer_extracted(self):
        chunk = parse_data_line(sse_frame("<think>hmm</think><answer>Hi</answer>").rstrip("\n"))
        assert chunk.text == "Hi"
        assert chunk.done is False

    def test_content_without_tag(self):
        chunk = parse_data_line(sse_frame("still thinking").rstrip("\n"))
        assert chunk.text is None

    def test_json_without_content(self):
        chunk = parse_data_line('data: {"usage": {"tokens": 3}}')
        assert chunk.text is None

    def test_malformed_json_raises(self):
        with pytest.raises(json.JSONDecodeError):
            parse_data_line('data: {"content": "<ans')

    def test_extract_answer_multiline(self):
        assert extract_answer("x<answer>line1\nline2</answer>y") == "line1\nline2"

    def test_extract_answer_missing_close(self):
        assert extract_answer("<answer>partial") is None


class TestStreamDecoder:
    def test_single_answer_then_done(self):
        decoder = StreamDecoder()
        assert decoder.feed(answer_frame("Hi")) is False
        assert decoder.feed(DONE_FRAME) is True
        assert decoder.finish() == "Hi"

    def test_duplicate_frame_ignored(self):
        updates = []
        decoder = StreamDecoder(on_update=updates.append)
        decoder.feed(answer_frame("Hi"))
        decoder.feed(answer_frame("Hi"))
        assert decoder.answer == "Hi"
        assert updates == ["Hi"]

    def test_superset_frame_replaces(self):
        decoder = StreamDecoder()
        decoder.feed(answer_frame("Hi"))
        decoder.feed(answer_frame("Hi there"))
        assert decoder.answer == "Hi there"

    def test_substring_frame_ignored(self):
        """A shorter resend already contained in the answer changes nothing."""
        decoder = StreamDecoder()
        decoder.feed(answer_frame("Hello world"))
        decoder.feed(answer_frame("world"))
        assert decoder.answer == "Hello world"

    def test_divergent_frame_replaces(self):
        decoder = StreamDecoder()
        decoder.feed(answer_frame("abc"))
        decoder.feed(answer_frame("xyz"))
        assert decoder.answer == "xyz"

    def test_line_split_across_chunks(self):
        line = answer_frame("split")
        decoder = StreamDecoder()
        decoder.feed(line[:9])
        assert decoder.answer == ""
        decoder.feed(line[9:])
        assert decoder.answer == "split"

    def test_split_exactly_at_data_prefix(self):
        stream = answer_frame("one") + answer_frame("one two")
        cut = stream.index("data: ", 1)
        decoder = StreamDecoder()
        decoder.feed(stream[:cut])
        decoder.feed(stream[cut:])
        assert decoder.frames_seen == 2
        assert decoder.answer == "one two"

    def test_byte_chunks_with_split_utf8(self):
        # json.dumps escapes non-ASCII; build the frame by hand to keep raw UTF-8
        raw ='data: {"content": "<answer>привет</answer>"}\n'.encode("utf-8")
        middle = raw.index("и".encode("utf-8")) + 1
        decoder = StreamDecoder()
        decoder.feed(raw[:middle])
        decoder.feed(raw[middle:])
        assert decoder.answer == "привет"

    def test_malformed_frames_tolerated(self):
        decoder = StreamDecoder()
        decoder.feed('data: {"content": broken\n')
        decoder.feed("data: not json at all\n")
        decoder.feed(answer_frame("ok"))
        assert decoder.answer == "ok"
        assert decoder.frames_discarded == 2

    def test_keepalive_and_other_lines_ignored(self):
        decoder = StreamDecoder()
        decoder.feed("\n: ping\nevent: message\n")
        decoder.feed(answer_frame("x"))
        assert decoder.frames_seen == 1
        assert decoder.answer == "x"

    def test_crlf_line_endings(self):
        decoder = StreamDecoder()
        decoder.feed(answer_frame("crlf").replace("\n", "\r\n"))
        decoder.feed("data: [DONE]\r\n")
        assert decoder.done
        assert decoder.answer == "crlf"

    def test_input_after_done_ignored(self):
        decoder = StreamDecoder()
        decoder.feed(answer_frame("final") + DONE_FRAME + answer_frame("late"))
        decoder.feed(answer_frame("later still"))
        assert decoder.finish() == "final"

    def test_finish_flushes_unterminated_line(self):
        decoder = StreamDecoder()
        decoder.feed(answer_frame("tail").rstrip("\n"))
        assert decoder.answer == ""
        assert decoder.finish() == "tail"

    def test_truncated_multibyte_tail_is_flushed(self):
        # Stream cut after the first byte of a two-byte character: the
        # pending byte reaches the last line as U+FFFD instead of vanishing
        decoder = StreamDecoder()
        decoder.feed(b'data: {"content": "<answer>ok</answer>"}' + "é".encode("utf-8")[:1])
        assert decoder.finish() == ""
        assert decoder.frames_discarded == 1

    def test_finish_decodes_pending_bytes_in_last_line(self):
        decoder = StreamDecoder()
        decoder.feed('data: {"content": "<answer>'.encode("utf-8"))
        decoder.feed('привет</answer>"}'.encode("utf-8"))
        assert decoder.finish() == "привет"

    def test_empty_stream(self):
        assert StreamDecoder().finish() == ""


class TestDecodeStream:
    @pytest.mark.asyncio
    async def test_done_terminates(self):
        answer = await decode_stream(aiter_chunks(answer_frame("Hi"), DONE_FRAME))
        assert answer == "Hi"

    @pytest.mark.asyncio
    async def test_eof_without_done(self):
        answer = await decode_stream(aiter_chunks(answer_frame("A"), answer_frame("AB")))
        assert answer == "AB"

    @pytest.mark.asyncio
    async def test_empty_stream(self):
        assert await decode_stream(aiter_chunks()) == ""

    @pytest.mark.asyncio
    async def test_on_update_receives_snapshots(self):
        seen = []
        await decode_stream(
            aiter_chunks(answer_frame("4"), answer_frame("4"), answer_frame("42"), DONE_FRAME),
            on_update=seen.append,
        )
        assert seen == ["4", "42"]

    @pytest.mark.asyncio
    async def test_stops_reading_after_done(self):
        consumed = []

        async def chunks():
            for chunk in (answer_frame("x"), DONE_FRAME, answer_frame("never")):
                consumed.append(chunk)
                yield chunk

        assert await decode_stream(chunks()) == "x"
        assert len(consumed) == 2
