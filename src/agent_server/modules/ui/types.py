"""
UI backend contract used by the locator, the snapshot builder and the action handlers.

This is a typing-only contract; concrete implementations live in `android.py`
(ADB + uiautomator) and in the test fakes. Every method here must only be
called from the UI thread.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Sequence, Tuple


@dataclass(frozen=True)
class Frame:
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def center(self) -> Tuple[float, float]:
        return self.x + self.width / 2, self.y + self.height / 2

    def point_at(self, nx: float, ny: float) -> Tuple[float, float]:
        """Convert a normalized 0..1 offset into an absolute screen point."""
        return self.x + nx * self.width, self.y + ny * self.height


@dataclass(frozen=True)
class ElementQuery:
    """All non-empty predicates must hold for an element to match."""

    element_types: Tuple[str, ...] = ()
    identifier: Optional[str] = None
    label: Optional[str] = None
    label_contains: Optional[str] = None
    label_or_placeholder: Optional[str] = None
    label_folded: Optional[str] = None

    def matches(self, element: "UIElement") -> bool:
        if self.element_types and element.element_type not in self.element_types:
            return False
        if self.identifier is not None and element.identifier != self.identifier:
            return False
        if self.label is not None and element.label != self.label:
            return False
        if self.label_contains is not None and self.label_contains not in (element.label or ""):
            return False
        if self.label_or_placeholder is not None:
            text = self.label_or_placeholder
            if element.label != text and element.placeholder_value != text:
                return False
        if self.label_folded is not None:
            if (element.label or "").casefold() != self.label_folded.casefold():
                return False
        return True


class UIElement(Protocol):
    identifier: str
    label: str
    value: Optional[str]
    placeholder_value: Optional[str]
    element_type: str
    frame: Frame
    is_enabled: bool
    is_hittable: bool
    is_selected: bool
    has_focus: bool

    def exists(self) -> bool:
        """Whether the element is still present in the live UI."""
        ...

    def children(self) -> Sequence["UIElement"]:
        ...

    def tap(self) -> None:
        ...

    def double_tap(self) -> None:
        ...

    def press(self, duration: float) -> None:
        ...

    def type_text(self, text: str) -> None:
        ...

    def swipe(self, direction: str) -> None:
        ...


class UIRoot(Protocol):
    frame: Frame

    def find(self, query: ElementQuery, limit: Optional[int] = None) -> Sequence[UIElement]:
        """Matching descendants in document order."""
        ...

    def count(self, query: ElementQuery) -> int:
        ...

    def tap_point(self, x: float, y: float, duration: float = 0.0) -> None:
        ...

    def type_text(self, text: str) -> None:
        ...

    def swipe(self, direction: str) -> None:
        ...

    def focused_element(self) -> Optional[UIElement]:
        """The element holding input focus, if any."""
        ...


@dataclass(frozen=True)
class ScopeRoot:
    """A named scoping root. `tag` prefixes element types sampled from it."""

    name: str
    root: UIRoot
    tag: str = ""


class UIBackend(Protocol):
    def scope_roots(self) -> Sequence[ScopeRoot]:
        """Ordered roots: the primary application first, then system overlays."""
        ...


__all__ = ["Frame", "ElementQuery", "UIElement", "UIRoot", "ScopeRoot", "UIBackend"]
