import asyncio
import threading
import time

import pytest

from agent_server.core.thread_pool import (
    get_ui_pool,
    is_ui_thread,
    run_in_ui,
    shutdown_pools,
    submit_to_ui,
    ui_pool_stats,
)


@pytest.fixture(autouse=True)
def _reset_pools():
    shutdown_pools()
    yield
    shutdown_pools()


@pytest.mark.asyncio
async def test_ui_jobs_run_serially_on_one_thread():
    events = []

    def _job(idx: int, delay: float):
        events.append(("start", idx))
        time.sleep(delay)
        events.append(("end", idx))
        return threading.get_ident()

    t1, t2, t3 = await asyncio.gather(
        run_in_ui(_job, 1, 0.05),
        run_in_ui(_job, 2, 0.01),
        run_in_ui(_job, 3, 0.0),
    )

    assert t1 == t2 == t3
    assert events == [
        ("start", 1),
        ("end", 1),
        ("start", 2),
        ("end", 2),
        ("start", 3),
        ("end", 3),
    ]


def test_is_ui_thread_only_inside_pool():
    assert is_ui_thread() is False
    assert submit_to_ui(is_ui_thread).result(timeout=2) is True


def test_stats_track_inflight():
    gate = threading.Event()
    future = submit_to_ui(gate.wait, 2)
    assert ui_pool_stats()["inflight"] == 1
    gate.set()
    future.result(timeout=2)
    deadline = time.monotonic() + 1.0
    while ui_pool_stats()["inflight"] and time.monotonic() < deadline:
        time.sleep(0.005)
    assert ui_pool_stats()["inflight"] == 0


def test_shutdown_pools_recreates_ui_pool():
    pool1 = get_ui_pool()
    shutdown_pools()
    pool2 = get_ui_pool()

    assert pool1 is not pool2
