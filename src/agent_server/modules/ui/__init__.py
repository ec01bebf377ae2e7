from .types import ElementQuery, Frame, ScopeRoot, UIBackend, UIElement, UIRoot
from .locator import ElementLocator
from .snapshot import ScreenStateBuilder, build_element_info

__all__ = [
    "ElementQuery",
    "Frame",
    "ScopeRoot",
    "UIBackend",
    "UIElement",
    "UIRoot",
    "ElementLocator",
    "ScreenStateBuilder",
    "build_element_info",
]
