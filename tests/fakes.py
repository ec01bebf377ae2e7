from __future__ import annotations

from typing import List, Optional

from agent_server.modules.actions import CommandDispatcher, CommandHandler
from agent_server.modules.protocol import AgentRequest
from agent_server.modules.ui.locator import ElementLocator
from agent_server.modules.ui.types import ElementQuery, Frame, ScopeRoot
from agent_server.modules.web import AgentHTTPServer


class FakeElement:
    def __init__(
        self,
        element_type: str = "button",
        identifier: str = "",
        label: str = "",
        value: Optional[str] = None,
        placeholder_value: Optional[str] = None,
        frame: Frame = Frame(10, 20, 100, 40),
        is_enabled: bool = True,
        is_hittable: bool = True,
        is_selected: bool = False,
        has_focus: bool = False,
        children: Optional[List["FakeElement"]] = None,
    ) -> None:
        self.element_type = element_type
        self.identifier = identifier
        self.label = label
        self.value = value
        self.placeholder_value = placeholder_value
        self.frame = frame
        self.is_enabled = is_enabled
        self.is_hittable = is_hittable
        self.is_selected = is_selected
        self.has_focus = has_focus
        self.kids = list(children or [])
        self.present = True
        self.root: Optional["FakeRoot"] = None

    @property
    def name(self) -> str:
        return self.identifier or self.label

    def _record(self, *event) -> None:
        if self.root is not None:
            self.root.events.append(event)

    def exists(self) -> bool:
        return self.present

    def children(self):
        return self.kids

    def tap(self) -> None:
        self._record("tap", self.name)

    def double_tap(self) -> None:
        self._record("double_tap", self.name)

    def press(self, duration: float) -> None:
        self._record("press", self.name, duration)

    def type_text(self, text: str) -> None:
        self._record("type", self.name, text)

    def swipe(self, direction: str) -> None:
        self._record("swipe", self.name, direction)

    def __repr__(self) -> str:
        return f"<FakeElement {self.element_type} {self.name!r}>"


class FakeRoot:
    def __init__(self, elements=None, frame: Frame = Frame(0, 0, 400, 800)) -> None:
        self.frame = frame
        self.events: list = []
        self.find_calls = 0
        self.elements: List[FakeElement] = []
        for el in elements or []:
            self.add(el)

    def add(self, element: FakeElement) -> FakeElement:
        self.elements.append(element)
        self._adopt(element)
        return element

    def _adopt(self, element: FakeElement) -> None:
        element.root = self
        for kid in element.kids:
            self._adopt(kid)

    def _flatten(self):
        def walk(el):
            yield el
            for kid in el.kids:
                yield from walk(kid)

        for el in self.elements:
            yield from walk(el)

    def find(self, query: ElementQuery, limit=None):
        self.find_calls += 1
        results = []
        for el in self._flatten():
            if el.present and query.matches(el):
                results.append(el)
                if limit is not None and len(results) >= limit:
                    break
        return results

    def count(self, query: ElementQuery) -> int:
        return len(self.find(query))

    def tap_point(self, x: float, y: float, duration: float = 0.0) -> None:
        self.events.append(("tap_point", x, y, duration))

    def type_text(self, text: str) -> None:
        self.events.append(("type_root", text))

    def swipe(self, direction: str) -> None:
        self.events.append(("swipe_root", direction))

    def focused_element(self):
        for el in self._flatten():
            if el.present and el.has_focus:
                return el
        return None


class FakeBackend:
    def __init__(self, primary: Optional[FakeRoot] = None, overlay: Optional[FakeRoot] = None) -> None:
        self.primary = primary or FakeRoot()
        self.overlay = overlay or FakeRoot()

    def scope_roots(self):
        return [
            ScopeRoot(name="app", root=self.primary),
            ScopeRoot(name="system", root=self.overlay, tag="system"),
        ]


SETTLE = 0.25


class HandlerHarness:
    """CommandHandler wired to fake roots, recording settle sleeps instead of sleeping."""

    def __init__(self, primary: Optional[FakeRoot] = None, overlay: Optional[FakeRoot] = None) -> None:
        self.backend = FakeBackend(primary, overlay)
        self.sleeps: list = []
        locator = ElementLocator(
            self.backend.scope_roots(),
            poll_interval=0.01,
            text_field_poll_interval=0.01,
        )
        self.handler = CommandHandler(
            self.backend,
            locator=locator,
            settle_delay=SETTLE,
            sleep=self.sleeps.append,
        )

    @property
    def events(self) -> list:
        return self.backend.primary.events


def make_request(action: str, observe: bool = False, **params):
    return AgentRequest.model_validate({"action": action, "params": params, "observe": observe})


class RunningServer:
    """AgentHTTPServer on an ephemeral port, backed by fake roots."""

    def __init__(self, primary: Optional[FakeRoot] = None, overlay: Optional[FakeRoot] = None) -> None:
        self.harness = HandlerHarness(primary, overlay)
        self.dispatcher = CommandDispatcher(self.harness.handler)
        self.server = AgentHTTPServer(self.dispatcher, host="127.0.0.1", port=0)

    @property
    def url(self) -> str:
        return f"http://127.0.0.1:{self.server.bound_port}"

    async def __aenter__(self) -> "RunningServer":
        await self.server.start()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.server.stop()
