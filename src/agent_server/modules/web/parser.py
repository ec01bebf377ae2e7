"""
HTTP 请求解析

每个连接只承载一个请求：
1. 读到头部结束标记（空行 CRLFCRLF）为止，头部大小有上限
2. 若 Content-Length 表明还有未到达的 body，再做一次按剩余字节数的有界读取
不支持 chunked 传输，不做无界缓冲。
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Dict, Optional

from ...core.config import settings

HEADER_END = b"\r\n\r\n"


class HttpParseError(Exception):
    """请求行或头部不可解析，应回复 400"""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConnectionDropped(Exception):
    """读取失败，静默关闭连接"""


@dataclass
class HttpRequest:
    method: str
    path: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def content_length(self) -> int:
        return parse_content_length(self.headers)


def parse_content_length(headers: Dict[str, str]) -> int:
    try:
        return max(0, int(headers.get("content-length", "0").strip()))
    except ValueError:
        return 0


def parse_head(head: bytes) -> HttpRequest:
    """解析请求行与头部"""
    try:
        text = head.decode("utf-8")
    except UnicodeDecodeError as e:
        raise HttpParseError("Invalid request") from e

    lines = text.split("\r\n")
    if not lines or not lines[0].strip():
        raise HttpParseError("Empty request")

    parts = lines[0].split()
    if len(parts) < 2:
        raise HttpParseError("Malformed request line")

    headers: Dict[str, str] = {}
    for line in lines[1:]:
        if ":" not in line:
            continue
        name, value = line.split(":", 1)
        headers[name.strip().lower()] = value.strip()
    return HttpRequest(method=parts[0], path=parts[1], headers=headers)


async def read_request(
    reader: asyncio.StreamReader,
    *,
    max_header_bytes: Optional[int] = None,
    max_body_bytes: Optional[int] = None,
    chunk_size: Optional[int] = None,
) -> HttpRequest:
    max_header_bytes = max_header_bytes or settings.max_header_bytes
    max_body_bytes = max_body_bytes or settings.max_body_bytes
    chunk_size = chunk_size or settings.read_chunk_bytes

    buf = b""
    while HEADER_END not in buf:
        if len(buf) > max_header_bytes:
            raise ConnectionDropped("请求头过大")
        chunk = await reader.read(chunk_size)
        if not chunk:
            if not buf:
                raise ConnectionDropped("连接在发送请求前关闭")
            # 对端已关闭写方向：按现有内容解析
            break
        buf += chunk

    head, _, body = buf.partition(HEADER_END)
    request = parse_head(head)

    content_length = request.content_length
    if content_length > max_body_bytes:
        raise HttpParseError("Request body too large")
    if content_length > len(body):
        remaining = content_length - len(body)
        try:
            body += await reader.readexactly(remaining)
        except asyncio.IncompleteReadError as e:
            body += e.partial
    # 多出的字节不属于本请求
    request.body = body[:content_length] if content_length > 0 else body
    return request


__all__ = [
    "HttpRequest",
    "HttpParseError",
    "ConnectionDropped",
    "parse_head",
    "parse_content_length",
    "read_request",
]
