"""
Android 后端：ADB + uiautomator dump

把 `uiautomator dump` 的层级 XML 解析成元素树，并把 Android 控件类映射到统一的元素类别。
- 主应用根：package == pkg_name 的节点（pkg_name 为空时取所有非系统浮层节点）
- 系统浮层根：package 属于 overlay_packages 的节点（状态栏、权限弹窗等）

一次 dump 约耗时数百毫秒，解析结果缓存 dump_cache_ttl 秒，任何输入动作之后立即失效。
只能在 UI 线程中调用。
"""
from __future__ import annotations

import re
import time
import xml.etree.ElementTree as ET
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from loguru import logger

from ...core.config import settings
from ...core.constants import ElementType
from ..emu.adb import Adb, AdbError
from .types import ElementQuery, Frame, ScopeRoot

BOUNDS_PATTERN = re.compile(r"\[(-?\d+),(-?\d+)\]\[(-?\d+),(-?\d+)\]")

# 特殊字符 -> Android keycode
KEYCODES = {
    "\n": 66,  # KEYCODE_ENTER
    "\b": 67,  # KEYCODE_DEL
    "\x1b": 111,  # KEYCODE_ESCAPE
    "\t": 61,  # KEYCODE_TAB
}

# 滑动起止点（相对区域的归一化坐标）
SWIPE_VECTORS = {
    "up": ((0.5, 0.7), (0.5, 0.3)),
    "down": ((0.5, 0.3), (0.5, 0.7)),
    "left": ((0.7, 0.5), (0.3, 0.5)),
    "right": ((0.3, 0.5), (0.7, 0.5)),
}
SWIPE_DURATION_MS = 300


def parse_bounds(raw: str) -> Frame:
    m = BOUNDS_PATTERN.search(raw or "")
    if not m:
        return Frame()
    left, top, right, bottom = (int(v) for v in m.groups())
    return Frame(x=left, y=top, width=max(0, right - left), height=max(0, bottom - top))


def short_resource_id(resource_id: str) -> str:
    """com.app:id/login_button -> login_button"""
    if ":id/" in resource_id:
        return resource_id.split(":id/", 1)[1]
    return resource_id


def classify(attrs: Dict[str, str]) -> str:
    """Android 控件类 -> 元素类别"""
    cls = attrs.get("class", "")
    simple = cls.rsplit(".", 1)[-1]
    rid = attrs.get("resource-id", "")
    clickable = attrs.get("clickable") == "true"

    if rid.endswith(":id/parentPanel") or "AlertDialog" in simple:
        return ElementType.ALERT.value
    if "bottom_sheet" in rid or "BottomSheet" in simple:
        return ElementType.SHEET.value
    if "EditText" in simple or "AutoCompleteTextView" in simple:
        if attrs.get("password") == "true":
            return ElementType.SECURE_TEXT_FIELD.value
        if "search" in rid.lower() or "Search" in simple:
            return ElementType.SEARCH_FIELD.value
        if "MultiAutoComplete" in simple:
            return ElementType.TEXT_VIEW.value
        return ElementType.TEXT_FIELD.value
    if "Switch" in simple:
        return ElementType.SWITCH.value
    if simple in ("ToggleButton", "CheckBox", "RadioButton", "CompoundButton", "CheckedTextView"):
        return ElementType.TOGGLE.value
    if simple in ("SeekBar", "RatingBar", "Slider"):
        return ElementType.SLIDER.value
    if simple == "Spinner":
        return ElementType.POP_UP_BUTTON.value
    if "MenuItem" in simple:
        return ElementType.MENU_ITEM.value
    if simple in ("Toolbar", "ActionBar", "MaterialToolbar") or rid.endswith(":id/action_bar"):
        return ElementType.NAVIGATION_BAR.value
    if "Button" in simple:
        return ElementType.BUTTON.value
    if simple in ("TabLayout", "BottomNavigationView", "NavigationBarView"):
        return ElementType.TAB_BAR.value
    if simple in ("ListView", "RecyclerView"):
        return ElementType.TABLE.value
    if simple in ("GridView",):
        return ElementType.COLLECTION_VIEW.value
    if "ScrollView" in simple:
        return ElementType.SCROLL_VIEW.value
    if clickable and simple in ("View", "ImageView", "TextView"):
        return ElementType.BUTTON.value
    if simple == "TextView":
        return ElementType.STATIC_TEXT.value
    if simple == "ImageView":
        return ElementType.IMAGE.value
    if "Layout" in simple or simple == "ViewGroup":
        return ElementType.GROUP.value
    return ElementType.OTHER.value


class AndroidElement:
    """一次 dump 中的节点。身份由 (层级路径, class, resource-id) 决定。"""

    def __init__(self, backend: "AndroidBackend", attrs: Dict[str, str], path: str) -> None:
        self._backend = backend
        self.attrs = attrs
        self.path = path
        self.package = attrs.get("package", "")
        self.kids: List["AndroidElement"] = []

        element_type = classify(attrs)
        text = attrs.get("text", "")
        desc = attrs.get("content-desc", "")
        is_input = element_type in (
            ElementType.TEXT_FIELD.value,
            ElementType.SECURE_TEXT_FIELD.value,
            ElementType.TEXT_VIEW.value,
            ElementType.SEARCH_FIELD.value,
        )

        self.identifier = short_resource_id(attrs.get("resource-id", ""))
        self.label = desc if (desc or is_input) else text
        self.value = text if is_input else None
        self.placeholder_value = attrs.get("hint") or None
        self.element_type = element_type
        self.frame = parse_bounds(attrs.get("bounds", ""))
        self.is_enabled = attrs.get("enabled", "true") == "true"
        self.is_selected = attrs.get("selected") == "true" or attrs.get("checked") == "true"
        self.has_focus = attrs.get("focused") == "true"
        visible = attrs.get("visible-to-user", "true") == "true"
        self.is_hittable = self.is_enabled and visible and self.frame.width > 0 and self.frame.height > 0

    @property
    def key(self) -> Tuple[str, str, str]:
        return self.path, self.attrs.get("class", ""), self.attrs.get("resource-id", "")

    def exists(self) -> bool:
        return self._backend.has_node(self.key)

    def children(self) -> Sequence["AndroidElement"]:
        return self.kids

    def _center(self) -> Tuple[int, int]:
        cx, cy = self.frame.center
        return int(cx), int(cy)

    def tap(self) -> None:
        x, y = self._center()
        self._backend.tap(x, y)

    def double_tap(self) -> None:
        x, y = self._center()
        self._backend.double_tap(x, y)

    def press(self, duration: float) -> None:
        x, y = self._center()
        self._backend.tap(x, y, duration)

    def type_text(self, text: str) -> None:
        # 调用方负责先点击获取焦点；dump 中的 focused 可能已过期
        self._backend.type_text(text)

    def swipe(self, direction: str) -> None:
        self._backend.swipe_in(self.frame, direction)

    def __repr__(self) -> str:
        return f"<AndroidElement {self.element_type} id={self.identifier!r} label={self.label!r}>"


class AndroidRoot:
    def __init__(self, backend: "AndroidBackend", belongs: Callable[[str], bool]) -> None:
        self._backend = backend
        self._belongs = belongs

    @property
    def frame(self) -> Frame:
        return self._backend.screen_frame()

    def _nodes(self) -> List[AndroidElement]:
        return [n for n in self._backend.nodes() if self._belongs(n.package)]

    def find(self, query: ElementQuery, limit: Optional[int] = None) -> List[AndroidElement]:
        results: List[AndroidElement] = []
        for node in self._nodes():
            if query.matches(node):
                results.append(node)
                if limit is not None and len(results) >= limit:
                    break
        return results

    def count(self, query: ElementQuery) -> int:
        return len(self.find(query))

    def tap_point(self, x: float, y: float, duration: float = 0.0) -> None:
        self._backend.tap(int(x), int(y), duration)

    def type_text(self, text: str) -> None:
        self._backend.type_text(text)

    def swipe(self, direction: str) -> None:
        self._backend.swipe_in(self.frame, direction)

    def focused_element(self) -> Optional[AndroidElement]:
        for node in self._nodes():
            if node.has_focus:
                return node
        return None


class AndroidBackend:
    def __init__(
        self,
        adb: Optional[Adb] = None,
        addr: Optional[str] = None,
        pkg_name: Optional[str] = None,
        overlay_packages: Optional[Sequence[str]] = None,
        cache_ttl: Optional[float] = None,
    ) -> None:
        self.adb = adb or Adb(settings.adb_path, timeout=settings.adb_timeout)
        self.addr = settings.adb_addr if addr is None else addr
        self.pkg_name = settings.pkg_name if pkg_name is None else pkg_name
        self.overlay_packages = set(
            settings.overlay_package_list if overlay_packages is None else overlay_packages
        )
        self.cache_ttl = settings.dump_cache_ttl if cache_ttl is None else cache_ttl
        self._nodes: List[AndroidElement] = []
        self._keys: set = set()
        self._dumped_at: Optional[float] = None
        self._screen: Optional[Frame] = None
        self._log = logger.bind(module="AndroidBackend")

        self.primary = AndroidRoot(self, self._is_primary)
        self.overlay = AndroidRoot(self, lambda pkg: pkg in self.overlay_packages)

    def _is_primary(self, package: str) -> bool:
        if self.pkg_name:
            return package == self.pkg_name
        return package not in self.overlay_packages

    def scope_roots(self) -> List[ScopeRoot]:
        return [
            ScopeRoot(name="app", root=self.primary),
            ScopeRoot(name="system", root=self.overlay, tag="system"),
        ]

    # ── 层级缓存 ──

    def invalidate(self) -> None:
        self._dumped_at = None

    def load_xml(self, xml_content: str) -> None:
        """解析层级 XML 并替换缓存"""
        try:
            root = ET.fromstring(xml_content)
        except ET.ParseError as e:
            raise AdbError(f"解析 uiautomator XML 失败: {e}") from e

        nodes: List[AndroidElement] = []

        def walk(xml_node: ET.Element, path: str) -> AndroidElement:
            element = AndroidElement(self, dict(xml_node.attrib), path)
            nodes.append(element)
            for index, child in enumerate(c for c in xml_node if c.tag == "node"):
                element.kids.append(walk(child, f"{path}/{index}"))
            return element

        tops = [root] if root.tag == "node" else [c for c in root if c.tag == "node"]
        for index, top in enumerate(tops):
            walk(top, str(index))

        self._nodes = nodes
        self._keys = {n.key for n in nodes}
        self._dumped_at = time.monotonic()

    def refresh(self) -> None:
        t0 = time.perf_counter()
        self.load_xml(self.adb.dump_ui_xml(self.addr))
        self._log.debug("uiautomator dump: {} 个节点, {:.0f}ms", len(self._nodes), (time.perf_counter() - t0) * 1000)

    def nodes(self) -> List[AndroidElement]:
        if self._dumped_at is None or time.monotonic() - self._dumped_at > self.cache_ttl:
            self.refresh()
        return self._nodes

    def has_node(self, key: Tuple[str, str, str]) -> bool:
        self.nodes()
        return key in self._keys

    def screen_frame(self) -> Frame:
        if self._screen is None:
            w, h = self.adb.screen_size(self.addr)
            self._screen = Frame(0, 0, w, h)
        return self._screen

    # ── 输入动作（执行后缓存失效） ──

    def tap(self, x: int, y: int, duration: float = 0.0) -> None:
        if duration > 0:
            self.adb.long_press(self.addr, x, y, int(duration * 1000))
        else:
            self.adb.tap(self.addr, x, y)
        self.invalidate()

    def double_tap(self, x: int, y: int) -> None:
        self.adb.tap(self.addr, x, y)
        self.adb.tap(self.addr, x, y)
        self.invalidate()

    def type_text(self, text: str) -> None:
        buf: List[str] = []
        for ch in text:
            code = KEYCODES.get(ch)
            if code is None:
                buf.append(ch)
                continue
            if buf:
                self.adb.input_text(self.addr, "".join(buf))
                buf = []
            self.adb.keyevent(self.addr, code)
        if buf:
            self.adb.input_text(self.addr, "".join(buf))
        self.invalidate()

    def swipe_in(self, frame: Frame, direction: str) -> None:
        vector = SWIPE_VECTORS.get(direction)
        if vector is None:
            raise ValueError(f"未知滑动方向: {direction}")
        (sx, sy), (ex, ey) = vector
        x1, y1 = frame.point_at(sx, sy)
        x2, y2 = frame.point_at(ex, ey)
        self.adb.swipe(self.addr, round(x1), round(y1), round(x2), round(y2), SWIPE_DURATION_MS)
        self.invalidate()


__all__ = ["AndroidBackend", "AndroidElement", "AndroidRoot", "classify", "parse_bounds", "KEYCODES"]
