"""
HTTP 监听服务

基于 asyncio streams：每个连接一个协程，读取一个请求、写回一个响应后关闭
（Connection: close，不支持 keep-alive）。
"""
from __future__ import annotations

import asyncio
from typing import Optional

from loguru import logger

from ...core.config import settings
from ..actions.dispatcher import CommandDispatcher
from .parser import ConnectionDropped, HttpParseError, read_request
from .router import CommandRouter, error_body

STATUS_TEXT = {
    200: "OK",
    400: "Bad Request",
    404: "Not Found",
    500: "Internal Server Error",
}


def build_response(status: int, body: str) -> bytes:
    payload = body.encode("utf-8")
    head = (
        f"HTTP/1.1 {status} {STATUS_TEXT.get(status, 'Unknown')}\r\n"
        "Content-Type: application/json\r\n"
        f"Content-Length: {len(payload)}\r\n"
        "Connection: close\r\n"
        "\r\n"
    )
    return head.encode("ascii") + payload


class AgentHTTPServer:
    def __init__(
        self,
        dispatcher: CommandDispatcher,
        host: Optional[str] = None,
        port: Optional[int] = None,
    ) -> None:
        self.router = CommandRouter(dispatcher)
        self.host = host or settings.agent_host
        self.port = settings.agent_port if port is None else port
        self._server: Optional[asyncio.AbstractServer] = None
        self._log = logger.bind(module="AgentHTTPServer")

    @property
    def bound_port(self) -> int:
        if self._server is None or not self._server.sockets:
            return self.port
        return self._server.sockets[0].getsockname()[1]

    async def start(self) -> None:
        self._server = await asyncio.start_server(self._handle_connection, self.host, self.port)
        self._log.info("监听 {}:{}", self.host, self.bound_port)

    async def serve_forever(self) -> None:
        if self._server is None:
            await self.start()
        async with self._server:
            await self._server.serve_forever()

    async def stop(self) -> None:
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
            self._log.info("服务已停止")

    async def _send(self, writer: asyncio.StreamWriter, status: int, body: str) -> None:
        writer.write(build_response(status, body))
        await writer.drain()

    async def _handle_connection(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        try:
            try:
                request = await read_request(reader)
            except HttpParseError as e:
                await self._send(writer, 400, error_body(e.message))
                return

            try:
                status, body = await self.router.route(request)
            except Exception:
                self._log.exception("路由处理异常: {} {}", request.method, request.path)
                status, body = 500, error_body("Internal server error")
            await self._send(writer, status, body)
        except (ConnectionDropped, ConnectionError) as e:
            self._log.debug("连接已取消: {}", e)
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except ConnectionError:
                pass


__all__ = ["AgentHTTPServer", "build_response", "STATUS_TEXT"]
