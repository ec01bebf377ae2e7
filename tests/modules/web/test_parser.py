import asyncio

import pytest

from agent_server.modules.web.parser import (
    ConnectionDropped,
    HttpParseError,
    parse_content_length,
    parse_head,
    read_request,
)


class _ChunkedReader:
    """StreamReader stand-in that hands out preset chunks."""

    def __init__(self, *chunks):
        self._chunks = list(chunks)
        self.reads = 0

    async def read(self, n):
        self.reads += 1
        return self._chunks.pop(0) if self._chunks else b""

    async def readexactly(self, n):
        data = b"".join(self._chunks)
        self._chunks = []
        if len(data) < n:
            raise asyncio.IncompleteReadError(data, n)
        return data[:n]


def test_parse_head():
    req = parse_head(b"POST /action HTTP/1.1\r\nHost: x\r\nContent-Length: 12\r\nX-Odd-Line")

    assert req.method == "POST"
    assert req.path == "/action"
    assert req.headers == {"host": "x", "content-length": "12"}
    assert req.content_length == 12


@pytest.mark.parametrize(
    "head,message",
    [(b"", "Empty request"), (b"GARBAGE", "Malformed request line"), (b"\xff\xfe / HTTP/1.1", "Invalid request")],
)
def test_parse_head_errors(head, message):
    with pytest.raises(HttpParseError) as info:
        parse_head(head)
    assert info.value.message == message


@pytest.mark.parametrize("value,expected", [("10", 10), (" 7 ", 7), ("abc", 0), ("-3", 0)])
def test_parse_content_length(value, expected):
    assert parse_content_length({"content-length": value}) == expected


def test_missing_content_length_means_empty_body():
    assert parse_content_length({}) == 0


@pytest.mark.asyncio
async def test_body_arriving_after_headers():
    body = b'{"action":"ping"}'
    reader = _ChunkedReader(
        b"POST /action HTTP/1.1\r\nContent-Length: %d\r\n\r\n" % len(body),
        body,
    )

    req = await read_request(reader)

    assert req.body == body
    assert reader.reads == 1


@pytest.mark.asyncio
async def test_body_split_across_chunks():
    reader = _ChunkedReader(
        b"POST /action HTTP/1.1\r\nContent-Length: 10\r\n\r\n0123",
        b"456789",
    )

    req = await read_request(reader)

    assert req.body == b"0123456789"


@pytest.mark.asyncio
async def test_headers_split_across_chunks():
    reader = _ChunkedReader(b"GET /pi", b"ng HTTP/1.1\r\n", b"\r\n")

    req = await read_request(reader)

    assert (req.method, req.path, req.body) == ("GET", "/ping", b"")


@pytest.mark.asyncio
async def test_short_body_uses_what_arrived():
    reader = _ChunkedReader(b"POST /action HTTP/1.1\r\nContent-Length: 50\r\n\r\n", b"{}")

    req = await read_request(reader)

    assert req.body == b"{}"


@pytest.mark.asyncio
async def test_eof_before_any_data_drops_connection():
    with pytest.raises(ConnectionDropped):
        await read_request(_ChunkedReader())


@pytest.mark.asyncio
async def test_eof_without_terminator_parses_partial_head():
    req = await read_request(_ChunkedReader(b"GET /ping HTTP/1.1"))
    assert req.path == "/ping"


@pytest.mark.asyncio
async def test_oversized_header_drops_connection():
    reader = _ChunkedReader(b"GET /" + b"a" * 200, b"b" * 200, b" HTTP/1.1\r\n\r\n")

    with pytest.raises(ConnectionDropped):
        await read_request(reader, max_header_bytes=256)


@pytest.mark.asyncio
async def test_oversized_body_rejected():
    reader = _ChunkedReader(b"POST /action HTTP/1.1\r\nContent-Length: 2048\r\n\r\n")

    with pytest.raises(HttpParseError) as info:
        await read_request(reader, max_body_bytes=1024)
    assert info.value.message == "Request body too large"


@pytest.mark.asyncio
async def test_body_truncated_to_content_length():
    reader = _ChunkedReader(b'POST /action HTTP/1.1\r\nContent-Length: 17\r\n\r\n{"action":"ping"}\r\n\r\n')

    req = await read_request(reader)

    assert req.body == b'{"action":"ping"}'
