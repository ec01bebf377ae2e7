"""
ADB 适配封装

提供 Android 后端需要的基础操作：
- connect(addr) / devices()
- tap / swipe / long_press
- input_text / keyevent
- dump_ui_xml() -> uiautomator 层级 XML
- screen_size() -> (width, height)

addr 为空时不带 -s，直接使用默认设备。
"""
from __future__ import annotations

import re
import subprocess
from typing import List, Optional, Tuple

UI_DUMP_PATH = "/sdcard/window_dump.xml"

_SIZE_PATTERN = re.compile(r"(\d+)x(\d+)")


class AdbError(RuntimeError):
    pass


def escape_input_text(text: str) -> str:
    """转义 `input text` 参数：空格用 %s，shell 元字符加反斜杠"""
    out = []
    for ch in text:
        if ch == " ":
            out.append("%s")
        elif ch in "\\\"'`$&|;<>()*?~#![]{}%":
            out.append("\\" + ch)
        else:
            out.append(ch)
    return "".join(out)


class Adb:
    def __init__(self, adb_path: str = "adb", timeout: float = 10.0) -> None:
        self.adb = adb_path
        self.timeout = timeout

    def _target(self, addr: Optional[str]) -> List[str]:
        return ["-s", addr] if addr else []

    def _run(self, args: List[str], timeout: Optional[float] = None) -> subprocess.CompletedProcess:
        try:
            cp = subprocess.run(
                [self.adb, *args],
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=timeout or self.timeout,
            )
        except FileNotFoundError as e:
            raise AdbError(f"找不到 ADB 可执行文件: {self.adb}") from e
        except subprocess.TimeoutExpired as e:
            raise AdbError(f"ADB 命令超时: {' '.join(args)}") from e
        return cp

    def _shell(self, addr: Optional[str], *cmd: str, timeout: Optional[float] = None) -> str:
        cp = self._run([*self._target(addr), "shell", *cmd], timeout=timeout)
        if cp.returncode != 0:
            raise AdbError((cp.stderr or b"").decode(errors="ignore").strip() or f"shell 失败: {cmd}")
        return (cp.stdout or b"").decode(errors="ignore")

    def connect(self, addr: str, timeout: float = 10.0) -> bool:
        cp = self._run(["connect", addr], timeout=timeout)
        out = (cp.stdout or b"").decode(errors="ignore").lower()
        return cp.returncode == 0 and ("connected" in out or "already" in out)

    def devices(self, timeout: float = 10.0) -> List[str]:
        cp = self._run(["devices"], timeout=timeout)
        out = (cp.stdout or b"").decode(errors="ignore").splitlines()
        result = []
        for line in out:
            line = line.strip()
            if not line or line.lower().startswith("list of devices"):
                continue
            parts = line.split()
            if len(parts) >= 2 and parts[1] == "device":
                result.append(parts[0])
        return result

    def tap(self, addr: Optional[str], x: int, y: int) -> None:
        self._shell(addr, "input", "tap", str(x), str(y))

    def swipe(self, addr: Optional[str], x1: int, y1: int, x2: int, y2: int, dur_ms: int = 300) -> None:
        self._shell(addr, "input", "swipe", str(x1), str(y1), str(x2), str(y2), str(dur_ms))

    def long_press(self, addr: Optional[str], x: int, y: int, dur_ms: int = 1000) -> None:
        # 原地 swipe 即长按
        self.swipe(addr, x, y, x, y, dur_ms)

    def input_text(self, addr: Optional[str], text: str) -> None:
        if not text:
            return
        self._shell(addr, "input", "text", escape_input_text(text))

    def keyevent(self, addr: Optional[str], keycode: int) -> None:
        self._shell(addr, "input", "keyevent", str(keycode))

    def dump_ui_xml(self, addr: Optional[str], timeout: float = 15.0) -> str:
        """uiautomator dump 到设备文件后 cat 回来"""
        self._shell(addr, "uiautomator", "dump", UI_DUMP_PATH, timeout=timeout)
        out = self._shell(addr, "cat", UI_DUMP_PATH, timeout=timeout)
        start = out.find("<?xml")
        if start < 0:
            start = out.find("<hierarchy")
        if start < 0:
            raise AdbError("uiautomator dump 输出中没有层级 XML")
        return out[start:]

    def screen_size(self, addr: Optional[str]) -> Tuple[int, int]:
        out = self._shell(addr, "wm", "size")
        # 优先 Override size
        sizes = _SIZE_PATTERN.findall(out)
        if not sizes:
            raise AdbError(f"无法解析屏幕尺寸: {out.strip()}")
        w, h = sizes[-1]
        return int(w), int(h)
