"""
chain 执行器

按顺序执行一批子指令：
- 除最后一步外，每一步都抑制稳定等待与快照采集
- 遇到第一个失败的步骤立即停止，返回该步的错误，并重新采集一份未抑制的完整快照
- 全部成功时按序号拼接各步消息；只有 chain 自身 observe=true 才附带最后一步之后的快照
"""
from __future__ import annotations

from typing import Callable

from loguru import logger

from ..protocol.models import AgentRequest, AgentResponse, ScreenState

StepRunner = Callable[[AgentRequest, bool], AgentResponse]


class ChainExecutor:
    def __init__(self, run_step: StepRunner, capture: Callable[[], ScreenState]) -> None:
        self._run_step = run_step
        self._capture = capture
        self._log = logger.bind(module="ChainExecutor")

    def run(self, request: AgentRequest) -> AgentResponse:
        steps = request.chain_steps()
        if not steps:
            return AgentResponse.failure("chain requires non-empty steps array")

        total = len(steps)
        messages = []
        for index, step in enumerate(steps, start=1):
            result = self._run_step(step, index < total)
            if not result.success:
                self._log.warning("chain 在第 {}/{} 步失败: {} - {}", index, total, step.action, result.error)
                return AgentResponse(
                    success=False,
                    message=f"Failed at step {index}/{total}: {step.action}",
                    screen_state=self._capture(),
                    error=result.error or f"{step.action} failed",
                )
            if result.message:
                messages.append(f"[{index}] {step.action}: {result.message}")

        state = self._capture() if request.observe else None
        return AgentResponse.ok("\n".join(messages), state)


__all__ = ["ChainExecutor"]
