"""
元素定位器

单次尝试内的策略优先级固定（先命中者胜，不做最优匹配）：
1. identifier 精确匹配
2. label 精确匹配
3. label 包含子串
4. 把 identifier 当作 label 再匹配一次（兜底）

带超时的调用按轮询间隔反复执行整套策略，依次覆盖各个作用域根
（主应用在前，系统浮层在后），直到命中或超时。
"""
from __future__ import annotations

import time
from typing import Callable, List, Optional, Sequence

from loguru import logger

from ...core.config import settings
from ...core.constants import TEXT_INPUT_TYPES
from .types import ElementQuery, ScopeRoot, UIElement, UIRoot


def locator_strategies(
    identifier: Optional[str],
    label: Optional[str],
    label_contains: Optional[str],
) -> List[ElementQuery]:
    """按优先级生成单次尝试的查询列表"""
    queries: List[ElementQuery] = []
    if identifier is not None:
        queries.append(ElementQuery(identifier=identifier))
    if label is not None:
        queries.append(ElementQuery(label=label))
    if label_contains is not None:
        queries.append(ElementQuery(label_contains=label_contains))
    if identifier is not None:
        queries.append(ElementQuery(label=identifier))
    return queries


def text_field_strategies(identifier: Optional[str], label: Optional[str]) -> List[ElementQuery]:
    """输入框查询：逐个输入类控件类型尝试 identifier，再尝试 label/placeholder"""
    queries: List[ElementQuery] = []
    for element_type in TEXT_INPUT_TYPES:
        types = (element_type.value,)
        if identifier is not None:
            queries.append(ElementQuery(element_types=types, identifier=identifier))
        if label is not None:
            queries.append(ElementQuery(element_types=types, label_or_placeholder=label))
    return queries


class ElementLocator:
    def __init__(
        self,
        roots: Sequence[ScopeRoot],
        *,
        poll_interval: Optional[float] = None,
        text_field_poll_interval: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if not roots:
            raise ValueError("至少需要一个作用域根")
        self.roots = list(roots)
        self.poll_interval = settings.poll_interval if poll_interval is None else poll_interval
        self.text_field_poll_interval = (
            settings.text_field_poll_interval
            if text_field_poll_interval is None
            else text_field_poll_interval
        )
        self._clock = clock
        self._sleep = sleep
        self._log = logger.bind(module="ElementLocator")

    @property
    def primary(self) -> UIRoot:
        return self.roots[0].root

    @staticmethod
    def _first(root: UIRoot, queries: Sequence[ElementQuery]) -> Optional[UIElement]:
        for query in queries:
            found = root.find(query, limit=1)
            if found:
                return found[0]
        return None

    def find(
        self,
        root: UIRoot,
        identifier: Optional[str] = None,
        label: Optional[str] = None,
        label_contains: Optional[str] = None,
    ) -> Optional[UIElement]:
        """单根、单次、不轮询的定位"""
        return self._first(root, locator_strategies(identifier, label, label_contains))

    def _poll(self, attempt: Callable[[], Optional[UIElement]], timeout: float, interval: float):
        deadline = self._clock() + max(0.0, timeout)
        while True:
            element = attempt()
            if element is not None:
                return element
            remaining = deadline - self._clock()
            if remaining <= 0:
                return None
            self._sleep(min(interval, remaining))

    def wait_and_find(
        self,
        identifier: Optional[str] = None,
        label: Optional[str] = None,
        label_contains: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Optional[UIElement]:
        """在全部作用域根上轮询，直到命中或超时"""
        queries = locator_strategies(identifier, label, label_contains)
        timeout = settings.default_timeout if timeout is None else timeout

        def attempt() -> Optional[UIElement]:
            for scope in self.roots:
                element = self._first(scope.root, queries)
                if element is not None:
                    return element
            return None

        started = self._clock()
        element = self._poll(attempt, timeout, self.poll_interval)
        self._log.debug(
            "定位 id={} label={} contains={} -> {} ({:.0f}ms)",
            identifier,
            label,
            label_contains,
            "命中" if element is not None else "超时",
            (self._clock() - started) * 1000,
        )
        return element

    def wait_for_query(self, query: ElementQuery, timeout: float) -> Optional[UIElement]:
        """在主应用内轮询单个查询"""
        primary = self.primary
        return self._poll(lambda: self._first(primary, [query]), timeout, self.poll_interval)

    def wait_and_find_text_field(
        self,
        identifier: Optional[str] = None,
        label: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Optional[UIElement]:
        """只在主应用内轮询输入框，不回退到系统浮层"""
        queries = text_field_strategies(identifier, label)
        timeout = settings.default_timeout if timeout is None else timeout
        primary = self.primary
        return self._poll(lambda: self._first(primary, queries), timeout, self.text_field_poll_interval)


__all__ = ["ElementLocator", "locator_strategies", "text_field_strategies"]
