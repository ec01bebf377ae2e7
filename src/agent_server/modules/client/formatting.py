"""
界面快照的文本格式化（供命令行与日志使用）

过滤键盘按键、系统占位等噪声元素，按 identifier / label 去重。
"""
from __future__ import annotations

from typing import Any, Dict, List

# 始终隐藏的系统/键盘 identifier
SYSTEM_IDS = {
    "inputView", "SystemInputAssistantView", "CenterPageView",
    "UIKeyboardLayoutStar Preview", "AdditionalDimmingOverlay",
    "dictation", "shift", "delete", "more", "space", "Return",
    "Done", "Toolbar", "checkmark",
}

INTERACTIVE_TYPES = {
    "button", "textField", "secureTextField", "textView",
    "searchField", "switch", "toggle", "slider", "popUpButton",
    "menuItem", "link", "cell",
}


def format_element(el: Dict[str, Any]) -> str:
    parts: List[str] = []
    if el.get("identifier"):
        parts.append(f"id={el['identifier']}")
    if el.get("label"):
        parts.append(f'label="{el["label"]}"')
    parts.append(f"type={el.get('elementType', 'unknown')}")
    frame = el.get("frame") or {}
    cx = round(frame.get("x", 0) + frame.get("width", 0) / 2)
    cy = round(frame.get("y", 0) + frame.get("height", 0) / 2)
    parts.append(f"center=({cx},{cy})")
    if not el.get("isEnabled", True):
        parts.append("disabled")
    return ", ".join(parts)


def is_relevant(el: Dict[str, Any]) -> bool:
    ident = el.get("identifier") or ""
    label = el.get("label") or ""
    element_type = el.get("elementType", "")

    if ident in SYSTEM_IDS:
        return False
    # 键盘按键：无 id 的单字符
    if not ident and len(label) == 1:
        return False
    if not ident and not label:
        return False
    # 图标名当作 identifier 的情况
    if ident and "-" not in ident and "." in ident and not ident.startswith("qr"):
        return False

    if ident and "-" in ident:
        return True
    if label and element_type in INTERACTIVE_TYPES:
        return True
    if element_type == "staticText" and len(label) > 3:
        return True
    return element_type in ("alert", "sheet")


def format_screen_state(state: Dict[str, Any]) -> str:
    lines: List[str] = []
    seen_ids = set()
    seen_labels = set()
    for el in state.get("elements", []):
        ident = el.get("identifier") or ""
        label = el.get("label") or ""
        if not is_relevant(el):
            continue
        if ident and ident in seen_ids:
            continue
        if not ident and label in seen_labels:
            continue
        if ident:
            seen_ids.add(ident)
        if label:
            seen_labels.add(label)
        disabled = "" if el.get("isEnabled", True) else " (disabled)"
        lines.append(f"  {(ident or '(no id)'):<30} {label:<40} {el.get('elementType', '')}{disabled}")

    alerts = state.get("alerts") or []
    if alerts:
        lines.append("\nAlerts:")
        for alert in alerts:
            lines.append(f"  {alert.get('label') or alert.get('identifier') or 'unknown alert'}")

    bars = state.get("navigationBars") or []
    if bars:
        lines.append("\nNavigation: " + " > ".join(bars))

    return "\n".join(lines)


__all__ = ["format_element", "is_relevant", "format_screen_state"]
