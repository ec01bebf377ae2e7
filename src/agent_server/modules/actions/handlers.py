"""
指令处理器

每个指令名对应一个处理方法，全部只在 UI 线程上执行。

查找元素类指令（tapElement / fillField / longPress / doubleTap / waitForElement /
scrollUntilVisible）在做任何 UI 操作前先校验定位参数；定位失败时附带诊断快照
（作为 chain 中被抑制的中间步骤时除外）；成功执行物理动作后等待固定的稳定时间，
仅在显式要求 observe 时附带快照。
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from loguru import logger

from ...core.config import settings
from ...core.constants import SELECT_ALL_LABEL, SPECIAL_KEYS, ActionName, SwipeDirection
from ..protocol.models import AgentRequest, AgentResponse, ScreenState
from ..ui.locator import ElementLocator
from ..ui.snapshot import ScreenStateBuilder, build_element_info
from ..ui.types import ElementQuery, UIBackend

QueryParams = Tuple[Optional[str], Optional[str], Optional[str]]

VALID_DIRECTIONS = {d.value for d in SwipeDirection}


@dataclass(frozen=True)
class ActionContext:
    """单次执行的观察设置。suppressed 表示 chain 中的非末尾步骤。"""

    observe: bool = False
    suppressed: bool = False


class CommandHandler:
    def __init__(
        self,
        backend: UIBackend,
        *,
        locator: Optional[ElementLocator] = None,
        snapshots: Optional[ScreenStateBuilder] = None,
        settle_delay: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        roots = list(backend.scope_roots())
        self.backend = backend
        self.locator = locator or ElementLocator(roots)
        self.snapshots = snapshots or ScreenStateBuilder(roots)
        self.settle_delay = settings.settle_delay if settle_delay is None else settle_delay
        self._sleep = sleep
        self._log = logger.bind(module="CommandHandler")
        self._actions: Dict[str, Callable[[AgentRequest, ActionContext], AgentResponse]] = {
            ActionName.OBSERVE_SCREEN.value: self.observe_screen,
            ActionName.TAP_ELEMENT.value: self.tap_element,
            ActionName.FILL_FIELD.value: self.fill_field,
            ActionName.TAP_COORDINATE.value: self.tap_coordinate,
            ActionName.SWIPE.value: self.swipe,
            ActionName.SCROLL_UNTIL_VISIBLE.value: self.scroll_until_visible,
            ActionName.WAIT_FOR_ELEMENT.value: self.wait_for_element,
            ActionName.PRESS_KEY.value: self.press_key,
            ActionName.LONG_PRESS.value: self.long_press,
            ActionName.DOUBLE_TAP.value: self.double_tap,
            ActionName.PING.value: self.ping,
        }

    def execute(self, request: AgentRequest, ctx: ActionContext) -> AgentResponse:
        action = self._actions.get(request.action)
        if action is None:
            return AgentResponse.failure(f"Unknown action: {request.action}")
        return action(request, ctx)

    # ── 辅助 ──

    def capture_state(self) -> ScreenState:
        return self.snapshots.capture()

    def _settle(self, ctx: ActionContext) -> None:
        if not ctx.suppressed:
            self._sleep(self.settle_delay)

    def _capture_if_needed(self, ctx: ActionContext) -> Optional[ScreenState]:
        if ctx.observe and not ctx.suppressed:
            return self.capture_state()
        return None

    def _diagnostic(self, ctx: ActionContext) -> Optional[ScreenState]:
        return None if ctx.suppressed else self.capture_state()

    @staticmethod
    def _query_params(request: AgentRequest) -> QueryParams:
        return (
            request.string_param("identifier"),
            request.string_param("label"),
            request.string_param("labelContains"),
        )

    @staticmethod
    def _missing_query(name: str, query: QueryParams) -> Optional[AgentResponse]:
        if all(v is None for v in query):
            return AgentResponse.failure(f"{name} requires identifier, label, or labelContains")
        return None

    def _timeout(self, request: AgentRequest) -> float:
        return request.float_param("timeout", settings.default_timeout)

    def _locate(self, request: AgentRequest, ctx: ActionContext, name: str):
        """校验 + 轮询定位。返回 (element, failure_response)"""
        query = self._query_params(request)
        invalid = self._missing_query(name, query)
        if invalid is not None:
            return None, invalid
        timeout = self._timeout(request)
        identifier, label, label_contains = query
        element = self.locator.wait_and_find(identifier, label, label_contains, timeout=timeout)
        if element is None:
            self._log.warning("{} 定位失败: id={} label={} contains={}", name, identifier, label, label_contains)
            return None, AgentResponse.failure(
                f"Element not found within {timeout}s", self._diagnostic(ctx)
            )
        return element, None

    # ── 指令 ──

    def observe_screen(self, request: AgentRequest, ctx: ActionContext) -> AgentResponse:
        return AgentResponse.ok(screen_state=self.capture_state())

    def tap_element(self, request: AgentRequest, ctx: ActionContext) -> AgentResponse:
        element, failed = self._locate(request, ctx, ActionName.TAP_ELEMENT.value)
        if failed is not None:
            return failed
        info = build_element_info(element, max_depth=0)
        element.tap()
        self._settle(ctx)
        return AgentResponse.ok("Tapped", self._capture_if_needed(ctx), info)

    def fill_field(self, request: AgentRequest, ctx: ActionContext) -> AgentResponse:
        identifier = request.string_param("identifier")
        label = request.string_param("label")
        if identifier is None and label is None:
            return AgentResponse.failure("fillField requires identifier or label")
        text = request.string_param("text") or ""
        clear_first = request.bool_param("clearFirst", False)
        timeout = self._timeout(request)

        element = self.locator.wait_and_find_text_field(identifier, label, timeout=timeout)
        if element is None:
            self._log.warning("fillField 未找到输入框: id={} label={}", identifier, label)
            return AgentResponse.failure(
                f"Text field not found within {timeout}s", self._diagnostic(ctx)
            )

        info = build_element_info(element, max_depth=0)
        element.tap()
        if clear_first:
            element.press(settings.default_press_duration)
            # 菜单项文案大小写因平台而异（"Select All" / "Select all"），类型也不固定
            select_all = self.locator.wait_for_query(ElementQuery(label_folded=SELECT_ALL_LABEL), timeout=1.0)
            if select_all is not None:
                select_all.tap()
                element.type_text(SPECIAL_KEYS["delete"])
            else:
                self._log.debug("fillField 未出现全选菜单，按现有内容长度逐字删除")
                element.type_text(SPECIAL_KEYS["delete"] * max(1, len(info.value or "")))

        element.type_text(text)
        self._settle(ctx)
        return AgentResponse.ok(f"Typed '{text}'", self._capture_if_needed(ctx), info)

    def tap_coordinate(self, request: AgentRequest, ctx: ActionContext) -> AgentResponse:
        x = request.float_param("x")
        y = request.float_param("y")
        if x is None or y is None:
            return AgentResponse.failure("tapCoordinate requires x and y")
        duration = request.float_param("duration", 0.0)

        root = self.locator.primary
        px, py = root.frame.point_at(x, y)
        root.tap_point(px, py, duration)
        self._settle(ctx)
        return AgentResponse.ok(f"Tapped ({x}, {y})", self._capture_if_needed(ctx))

    def swipe(self, request: AgentRequest, ctx: ActionContext) -> AgentResponse:
        direction = request.string_param("direction")
        if direction is None:
            return AgentResponse.failure("swipe requires direction (up/down/left/right)")
        if direction not in VALID_DIRECTIONS:
            return AgentResponse.failure(f"Invalid direction: {direction}")

        identifier = request.string_param("identifier")
        target = self.locator.primary
        if identifier is not None:
            found = self.locator.find(self.locator.primary, identifier=identifier)
            if found is not None:
                target = found
        target.swipe(direction)
        self._settle(ctx)
        return AgentResponse.ok(f"Swiped {direction}", self._capture_if_needed(ctx))

    def scroll_until_visible(self, request: AgentRequest, ctx: ActionContext) -> AgentResponse:
        query = self._query_params(request)
        invalid = self._missing_query(ActionName.SCROLL_UNTIL_VISIBLE.value, query)
        if invalid is not None:
            return invalid
        direction = request.string_param("direction") or SwipeDirection.UP.value
        if direction not in VALID_DIRECTIONS:
            direction = SwipeDirection.UP.value
        max_swipes = request.int_param("maxSwipes", settings.default_max_swipes)

        root = self.locator.primary
        identifier, label, label_contains = query
        for _ in range(max(0, max_swipes)):
            element = self.locator.find(root, identifier, label, label_contains)
            if element is not None and element.is_hittable:
                info = build_element_info(element, max_depth=0)
                return AgentResponse.ok("Found after scrolling", self._capture_if_needed(ctx), info)
            root.swipe(direction)
            self._settle(ctx)

        return AgentResponse.failure(
            f"Element not found after {max_swipes} swipes", self._diagnostic(ctx)
        )

    def wait_for_element(self, request: AgentRequest, ctx: ActionContext) -> AgentResponse:
        element, failed = self._locate(request, ctx, ActionName.WAIT_FOR_ELEMENT.value)
        if failed is not None:
            return failed
        info = build_element_info(element, max_depth=0)
        return AgentResponse.ok("Found", self._capture_if_needed(ctx), info)

    def press_key(self, request: AgentRequest, ctx: ActionContext) -> AgentResponse:
        key = request.string_param("key")
        if key is None:
            return AgentResponse.failure("pressKey requires key")
        self.locator.primary.type_text(SPECIAL_KEYS.get(key, key))
        self._settle(ctx)
        return AgentResponse.ok(f"Pressed {key}", self._capture_if_needed(ctx))

    def long_press(self, request: AgentRequest, ctx: ActionContext) -> AgentResponse:
        element, failed = self._locate(request, ctx, ActionName.LONG_PRESS.value)
        if failed is not None:
            return failed
        duration = request.float_param("duration", settings.default_press_duration)
        info = build_element_info(element, max_depth=0)
        element.press(duration)
        self._settle(ctx)
        return AgentResponse.ok(f"Long pressed for {duration}s", self._capture_if_needed(ctx), info)

    def double_tap(self, request: AgentRequest, ctx: ActionContext) -> AgentResponse:
        element, failed = self._locate(request, ctx, ActionName.DOUBLE_TAP.value)
        if failed is not None:
            return failed
        info = build_element_info(element, max_depth=0)
        element.double_tap()
        self._settle(ctx)
        return AgentResponse.ok("Double tapped", self._capture_if_needed(ctx), info)

    def ping(self, request: AgentRequest, ctx: ActionContext) -> AgentResponse:
        return AgentResponse.ok("pong")


__all__ = ["ActionContext", "CommandHandler"]
