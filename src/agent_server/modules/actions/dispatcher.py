"""
指令分发器与线程交接

handle() / submit() 可以从任意线程调用：实际工作投递到唯一的 UI 线程执行，
调用方等待 Future 完成。计时从调用时刻开始，包含排队时间。

- 分发层不设超时：UI 线程卡住时回复会一直挂起
- ping 不交接到 UI 线程，直接在调用线程应答，但同样记录耗时
- chain 的每一步都在 UI 线程上重新进入计时执行路径
- 已经在 UI 线程内的调用直接内联执行
"""
from __future__ import annotations

import threading
import time
from concurrent.futures import Executor, Future
from typing import Optional

from loguru import logger

from ...core.constants import ActionName
from ...core.thread_pool import submit_to_ui
from ..protocol.models import AgentRequest, AgentResponse
from .chain import ChainExecutor
from .handlers import ActionContext, CommandHandler


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


class CommandDispatcher:
    def __init__(self, handler: CommandHandler, executor: Optional[Executor] = None) -> None:
        self.handler = handler
        self.chain = ChainExecutor(self._run_step, handler.capture_state)
        self._executor = executor
        self._local = threading.local()
        self._count_lock = threading.Lock()
        self.handoff_count = 0
        self._log = logger.bind(module="CommandDispatcher")

    def submit(self, request: AgentRequest) -> "Future[AgentResponse]":
        started = time.perf_counter()

        if request.action == ActionName.PING.value or getattr(self._local, "active", False):
            future: Future = Future()
            future.set_result(self._run_top(request, started))
            return future

        with self._count_lock:
            self.handoff_count += 1
        if self._executor is None:
            return submit_to_ui(self._run_top, request, started)
        return self._executor.submit(self._run_top, request, started)

    def handle(self, request: AgentRequest) -> AgentResponse:
        """阻塞直到 UI 线程给出结果（无超时）"""
        return self.submit(request).result()

    def _run_top(self, request: AgentRequest, started: float) -> AgentResponse:
        ctx = ActionContext(observe=request.observe)
        outer = getattr(self._local, "active", False)
        self._local.active = True
        try:
            response = self._execute(request, ctx)
        finally:
            self._local.active = outer
        response.duration_ms = _elapsed_ms(started)
        self._log.info("{}: {}ms success={}", request.action, response.duration_ms, response.success)
        return response

    def _run_step(self, step: AgentRequest, suppressed: bool) -> AgentResponse:
        started = time.perf_counter()
        response = self._execute(step, ActionContext(observe=step.observe, suppressed=suppressed))
        response.duration_ms = _elapsed_ms(started)
        self._log.debug("chain 步骤 {}: {}ms", step.action, response.duration_ms)
        return response

    def _execute(self, request: AgentRequest, ctx: ActionContext) -> AgentResponse:
        try:
            if request.action == ActionName.CHAIN.value:
                return self.chain.run(request)
            return self.handler.execute(request, ctx)
        except Exception as e:
            self._log.exception("指令执行异常: {}", request.action)
            return AgentResponse.failure(f"Internal error: {e}")


__all__ = ["CommandDispatcher"]
