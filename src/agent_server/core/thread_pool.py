"""
UI 线程池管理

所有 UI 访问（查询元素、点击、输入、截取界面快照）都必须在同一个线程上串行执行。
这里提供唯一的单线程 UI 池，网络侧只负责投递任务并等待 Future 完成。

- UI 池：max_workers=1，线程名 ui-main，天然保证 FIFO 串行
- 不设队列上限、不做取消：卡住的 UI 任务会让后续请求一直等待
"""
from __future__ import annotations

import asyncio
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional

from .logger import logger

UI_THREAD_NAME_PREFIX = "ui-main"

_ui_pool: Optional[ThreadPoolExecutor] = None
_ui_thread_ids: set[int] = set()
_ui_inflight = 0
_ui_lock = threading.Lock()


def _mark_ui_thread() -> None:
    with _ui_lock:
        _ui_thread_ids.add(threading.get_ident())


def get_ui_pool() -> ThreadPoolExecutor:
    """获取 UI 单线程池（首次调用时创建）。"""
    global _ui_pool
    with _ui_lock:
        if _ui_pool is None:
            _ui_pool = ThreadPoolExecutor(
                max_workers=1,
                thread_name_prefix=UI_THREAD_NAME_PREFIX,
                initializer=_mark_ui_thread,
            )
            logger.info("UI 线程池已创建")
        return _ui_pool


def is_ui_thread() -> bool:
    """当前线程是否为 UI 线程。"""
    with _ui_lock:
        return threading.get_ident() in _ui_thread_ids


def _track(future: Future) -> Future:
    global _ui_inflight
    with _ui_lock:
        _ui_inflight += 1

    def _done(_):
        global _ui_inflight
        with _ui_lock:
            _ui_inflight -= 1

    future.add_done_callback(_done)
    return future


def submit_to_ui(func, *args) -> Future:
    """把同步函数投递到 UI 线程，返回 concurrent Future。"""
    return _track(get_ui_pool().submit(func, *args))


async def run_in_ui(func, *args):
    """在 UI 线程中执行同步函数并 await 结果。"""
    return await asyncio.wrap_future(submit_to_ui(func, *args))


def ui_pool_stats() -> dict:
    """返回 UI 池统计。"""
    with _ui_lock:
        return {
            "created": _ui_pool is not None,
            "inflight": _ui_inflight,
        }


def shutdown_pools() -> None:
    """关闭线程池（在服务退出时调用）。"""
    global _ui_pool
    with _ui_lock:
        pool = _ui_pool
        _ui_pool = None
        _ui_thread_ids.clear()
    if pool:
        pool.shutdown(wait=False)
        logger.info("UI 线程池已关闭")
