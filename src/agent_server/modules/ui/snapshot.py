"""
界面快照构建

快照只是有上限的采样，不是完整的元素树：
- 主应用按类别白名单逐类采样，每类有固定上限
- 系统浮层用更小的白名单再扫一遍，elementType 加上根标签前缀
- 弹窗/底部表单从所有根单独收集，保留 2 层子结构
- 导航栏只收集标题（identifier 优先，否则 label）
"""
from __future__ import annotations

import time
from typing import List, Optional, Sequence, Tuple

from loguru import logger

from ...core.constants import (
    ALERT_MAX_DEPTH,
    MAX_EXPANDED_CHILDREN,
    OVERLAY_SNAPSHOT_CAPS,
    PRIMARY_SNAPSHOT_CAPS,
    ElementType,
)
from ..protocol.models import ElementInfo, FrameInfo, ScreenState
from .types import ElementQuery, ScopeRoot, UIElement

CategoryCaps = Sequence[Tuple[ElementType, int]]


def _non_empty(text: Optional[str]) -> Optional[str]:
    return text if text else None


def build_element_info(
    element: UIElement,
    depth: int = 0,
    max_depth: int = 3,
    element_type: Optional[str] = None,
) -> ElementInfo:
    """读取元素属性；depth < max_depth 时递归展开子元素"""
    children: Optional[List[ElementInfo]] = None
    if depth < max_depth:
        kids = element.children()
        if 0 < len(kids) < MAX_EXPANDED_CHILDREN:
            children = [
                build_element_info(kid, depth + 1, max_depth)
                for kid in kids
                if kid.exists()
            ]

    frame = element.frame
    return ElementInfo(
        identifier=_non_empty(element.identifier),
        label=_non_empty(element.label),
        value=_non_empty(element.value),
        placeholder_value=_non_empty(element.placeholder_value),
        element_type=element_type or element.element_type,
        frame=FrameInfo(x=frame.x, y=frame.y, width=frame.width, height=frame.height),
        is_enabled=element.is_enabled,
        is_hittable=element.is_hittable,
        is_selected=element.is_selected,
        has_focus=element.has_focus,
        children=children,
    )


class ScreenStateBuilder:
    def __init__(
        self,
        roots: Sequence[ScopeRoot],
        primary_caps: CategoryCaps = PRIMARY_SNAPSHOT_CAPS,
        overlay_caps: CategoryCaps = OVERLAY_SNAPSHOT_CAPS,
    ) -> None:
        self.roots = list(roots)
        self.primary_caps = primary_caps
        self.overlay_caps = overlay_caps
        self._log = logger.bind(module="ScreenStateBuilder")

    def _sample(self, scope: ScopeRoot, caps: CategoryCaps) -> List[ElementInfo]:
        results: List[ElementInfo] = []
        prefix = f"{scope.tag}." if scope.tag else ""
        for element_type, max_count in caps:
            t0 = time.perf_counter()
            candidates = scope.root.find(ElementQuery(element_types=(element_type.value,)), limit=max_count)
            for el in candidates:
                # 元素可能在遍历过程中消失
                if not el.exists():
                    continue
                if not el.identifier and not el.label:
                    continue
                results.append(
                    build_element_info(el, max_depth=0, element_type=prefix + element_type.value)
                )
            if candidates:
                self._log.debug(
                    "采样 {}{}: {} 个, {:.0f}ms",
                    prefix,
                    element_type.value,
                    len(candidates),
                    (time.perf_counter() - t0) * 1000,
                )
        return results

    def _alerts(self) -> List[ElementInfo]:
        query = ElementQuery(element_types=(ElementType.ALERT.value, ElementType.SHEET.value))
        alerts: List[ElementInfo] = []
        for scope in self.roots:
            for el in scope.root.find(query):
                if el.exists():
                    alerts.append(build_element_info(el, depth=0, max_depth=ALERT_MAX_DEPTH))
        return alerts

    def _navigation_titles(self) -> List[str]:
        titles: List[str] = []
        query = ElementQuery(element_types=(ElementType.NAVIGATION_BAR.value,))
        for bar in self.roots[0].root.find(query):
            if not bar.exists():
                continue
            title = bar.identifier or bar.label
            if title:
                titles.append(title)
        return titles

    def capture(self) -> ScreenState:
        t0 = time.perf_counter()
        elements: List[ElementInfo] = []
        for index, scope in enumerate(self.roots):
            caps = self.primary_caps if index == 0 else self.overlay_caps
            elements.extend(self._sample(scope, caps))

        focused = self.roots[0].root.focused_element()
        state = ScreenState(
            elements=elements,
            focused_element=build_element_info(focused, max_depth=0) if focused is not None else None,
            alerts=self._alerts(),
            navigation_bars=self._navigation_titles(),
            timestamp=time.time(),
        )
        self._log.debug(
            "快照完成: {} 个元素, {} 个弹窗, {:.0f}ms",
            len(state.elements),
            len(state.alerts),
            (time.perf_counter() - t0) * 1000,
        )
        return state


__all__ = ["ScreenStateBuilder", "build_element_info"]
