"""
主程序入口

    agent-server serve [--host H] [--port P] [--adb-addr ADDR] [--pkg PKG]
    agent-server send <action> [--params JSON] [--observe]
"""
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Optional, Sequence

from .core.config import settings
from .core.logger import logger
from .core.thread_pool import shutdown_pools
from .modules.actions import CommandDispatcher, CommandHandler
from .modules.client import AgentClient, AgentClientError, format_screen_state
from .modules.ui.android import AndroidBackend
from .modules.web import AgentHTTPServer


def build_server(host: Optional[str] = None, port: Optional[int] = None) -> AgentHTTPServer:
    backend = AndroidBackend()
    dispatcher = CommandDispatcher(CommandHandler(backend))
    return AgentHTTPServer(dispatcher, host=host, port=port)


async def _serve(host: Optional[str], port: Optional[int]) -> None:
    server = build_server(host, port)
    await server.start()
    logger.info("Agent 服务已就绪: POST http://{}:{}/action", server.host, server.bound_port)
    try:
        await server.serve_forever()
    finally:
        await server.stop()


async def _send(action: str, params: Optional[dict], observe: bool, base_url: Optional[str]) -> int:
    client = AgentClient(base_url)
    try:
        if action == "ping":
            result = await client.ping()
        else:
            result = await client.action(action, params, observe)
    except AgentClientError as e:
        print(f"请求失败: {e}", file=sys.stderr)
        return 2

    status = "OK" if result.get("success") else "FAILED"
    print(f"[{status}] {result.get('message') or result.get('error') or ''} ({result.get('durationMs', 0)}ms)")
    if result.get("screenState"):
        print(format_screen_state(result["screenState"]))
    return 0 if result.get("success") else 1


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="agent-server", description="远程 UI 自动化控制服务")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="启动 HTTP 服务")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    serve.add_argument("--adb-addr", default=None, help="ADB 设备地址")
    serve.add_argument("--pkg", default=None, help="被控应用包名")

    send = sub.add_parser("send", help="向运行中的服务发送一条指令")
    send.add_argument("action")
    send.add_argument("--params", default=None, help="JSON 对象")
    send.add_argument("--observe", action="store_true")
    send.add_argument("--url", default=None)

    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)

    if args.command == "serve":
        if args.adb_addr is not None:
            settings.adb_addr = args.adb_addr
        if args.pkg is not None:
            settings.pkg_name = args.pkg
        try:
            asyncio.run(_serve(args.host, args.port))
        except KeyboardInterrupt:
            logger.info("收到中断信号，正在退出")
        finally:
            shutdown_pools()
        return

    params = None
    if args.params:
        try:
            params = json.loads(args.params)
        except json.JSONDecodeError as e:
            print(f"--params 不是合法 JSON: {e}", file=sys.stderr)
            sys.exit(2)
        if not isinstance(params, dict):
            print("--params 必须是 JSON 对象", file=sys.stderr)
            sys.exit(2)
    sys.exit(asyncio.run(_send(args.action, params, args.observe, args.url)))


if __name__ == "__main__":
    main()
