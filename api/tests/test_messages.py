import asyncio

import pytest

from inkas.messages import NotificationError, TelegramSink, send_chunked_message, split_message_into_chunks

from conftest import FakeSink


def _long_message():
    lines = [f"line {i:04d} " + "x" * 19 for i in range(299)] + ["z" * 30]
    return "\n".join(lines)


def test_split_short_message_is_one_chunk():
    assert split_message_into_chunks("a\nb", 100) == ["a\nb"]


def test_split_keeps_lines_whole():
    msg = _long_message()
    assert len(msg) == 9000
    chunks = split_message_into_chunks(msg, 4000)
    assert len(chunks) >= 3
    assert all(len(c) <= 4000 for c in chunks)
    assert "\n".join(chunks) == msg


def test_split_hard_splits_single_long_line():
    chunks = split_message_into_chunks("y" * 25, 10)
    assert chunks == ["y" * 10, "y" * 10, "y" * 5]


def test_split_empty():
    assert split_message_into_chunks("", 10) == []


def test_send_chunked_message_in_order_with_suffix():
    sink = FakeSink()
    delays = []

    async def sleep(d):
        delays.append(d)

    msg = _long_message()
    n = asyncio.run(send_chunked_message(sink, "42", msg, max_length=4000, delay=0.5, sleep=sleep))

    assert n == len(sink.sent) >= 3
    assert all(len(text) <= 4000 for _, text in sink.sent)
    assert sink.sent[0][1].endswith(f" (1/{n})")
    assert sink.sent[-1][1].endswith(f" ({n}/{n})")
    bodies = [text.rsplit(" (", 1)[0] for _, text in sink.sent]
    assert "\n".join(bodies) == msg
    assert delays == [0.5] * (n - 1)


def test_send_chunked_single_message_has_no_suffix():
    sink = FakeSink()
    assert asyncio.run(send_chunked_message(sink, "42", "hello", sleep=lambda d: asyncio.sleep(0))) == 1
    assert sink.sent == [("42", "hello")]


def test_send_chunked_raises_on_failed_chunk():
    sink = FakeSink(fail_for={"42"})
    with pytest.raises(RuntimeError):
        asyncio.run(send_chunked_message(sink, "42", "hello"))


def test_telegram_sink_without_token():
    sink = TelegramSink(token="")
    assert not sink.ready()
    with pytest.raises(NotificationError):
        asyncio.run(sink.send("42", "hi"))
