"""
Agent Server HTTP 客户端
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from ...core.config import settings


class AgentClientError(RuntimeError):
    """传输层失败（HTTP >= 400 或响应不是 JSON）"""


class AgentClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 60.0,
        trust_env: bool = True,
    ) -> None:
        if base_url is None:
            base_url = f"http://{settings.agent_host}:{settings.agent_port}"
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._trust_env = trust_env

    def _url(self, path: str) -> str:
        if not path.startswith("/"):
            path = "/" + path
        return f"{self._base_url}{path}"

    async def _request(self, method: str, path: str, json_data: Optional[dict] = None) -> Dict[str, Any]:
        async with httpx.AsyncClient(timeout=self._timeout, trust_env=self._trust_env) as client:
            response = await client.request(method=method, url=self._url(path), json=json_data)
        try:
            payload = response.json()
        except ValueError:
            payload = {"error": response.text}
        if response.status_code >= 400:
            detail = payload.get("error") if isinstance(payload, dict) else None
            raise AgentClientError(f"{response.status_code}: {detail or response.text}")
        return payload

    async def ping(self) -> Dict[str, Any]:
        return await self._request("GET", "/ping")

    async def action(
        self,
        action: str,
        params: Optional[Dict[str, Any]] = None,
        observe: bool = False,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {"action": action, "observe": observe}
        if params:
            body["params"] = params
        return await self._request("POST", "/action", body)

    async def chain(self, steps: List[Dict[str, Any]], observe: bool = False) -> Dict[str, Any]:
        return await self._request("POST", "/action", {"action": "chain", "steps": steps, "observe": observe})


__all__ = ["AgentClient", "AgentClientError"]
