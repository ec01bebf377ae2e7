"""
指令路由

- GET /ping     直接应答，不经过分发器（存活检查不能排在 UI 任务后面）
- POST /action  解码请求 -> 分发器 -> 200 + 响应体（不论指令本身是否成功）
- 其他          404
"""
from __future__ import annotations

import asyncio
import json
from typing import Tuple

from loguru import logger

from ...core.constants import PONG_BODY
from ..actions.dispatcher import CommandDispatcher
from ..protocol.models import AgentRequest, ProtocolError
from .parser import HttpRequest


def error_body(message: str) -> str:
    return json.dumps({"error": message}, separators=(",", ":"))


class CommandRouter:
    def __init__(self, dispatcher: CommandDispatcher) -> None:
        self.dispatcher = dispatcher
        self._log = logger.bind(module="CommandRouter")

    async def route(self, request: HttpRequest) -> Tuple[int, str]:
        if request.method == "GET" and request.path == "/ping":
            return 200, PONG_BODY

        if request.method == "POST" and request.path == "/action":
            try:
                agent_request = AgentRequest.from_json(request.body)
            except ProtocolError as e:
                self._log.warning("请求体解码失败: {}", e)
                return 400, error_body("Invalid JSON body")

            response = await asyncio.wrap_future(self.dispatcher.submit(agent_request))
            if response is None:
                return 500, error_body("No response from handler")
            try:
                return 200, response.to_json()
            except (ValueError, TypeError) as e:
                self._log.error("响应编码失败: {}", e)
                return 500, error_body("Failed to encode response")

        return 404, error_body("Not found")


__all__ = ["CommandRouter", "error_body"]
