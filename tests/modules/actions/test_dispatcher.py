import asyncio
import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest
from fakes import FakeElement, FakeRoot, HandlerHarness, make_request

from agent_server.core.thread_pool import is_ui_thread
from agent_server.modules.actions import CommandDispatcher


class ProbeElement(FakeElement):
    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.threads = []
        self.on_ui_thread = []

    def tap(self):
        self.threads.append(threading.get_ident())
        self.on_ui_thread.append(is_ui_thread())
        super().tap()


class ExplodingElement(FakeElement):
    def tap(self):
        raise RuntimeError("boom")


def test_ping_answered_without_handoff():
    dispatcher = CommandDispatcher(HandlerHarness().handler)
    resp = dispatcher.handle(make_request("ping"))

    assert resp.success and resp.message == "pong"
    assert dispatcher.handoff_count == 0
    assert "durationMs" in resp.to_wire()


def test_actions_run_on_ui_thread():
    probe = ProbeElement(identifier="p")
    h = HandlerHarness(FakeRoot([probe]))
    dispatcher = CommandDispatcher(h.handler)

    resp = dispatcher.handle(make_request("tapElement", identifier="p"))

    assert resp.success
    assert dispatcher.handoff_count == 1
    assert probe.on_ui_thread == [True]
    assert probe.threads[0] != threading.get_ident()


def test_concurrent_callers_are_serialized():
    probe = ProbeElement(identifier="p")
    h = HandlerHarness(FakeRoot([probe]))
    dispatcher = CommandDispatcher(h.handler)

    with ThreadPoolExecutor(max_workers=8) as callers:
        results = list(callers.map(lambda _: dispatcher.handle(make_request("tapElement", identifier="p")), range(16)))

    assert all(r.success for r in results)
    assert len(probe.threads) == 16
    assert len(set(probe.threads)) == 1
    assert dispatcher.handoff_count == 16


def test_exception_becomes_internal_error():
    h = HandlerHarness(FakeRoot([ExplodingElement(identifier="x")]))
    dispatcher = CommandDispatcher(h.handler)

    resp = dispatcher.handle(make_request("tapElement", identifier="x"))

    assert resp.success is False
    assert resp.error == "Internal error: boom"


def test_duration_includes_queue_time():
    h = HandlerHarness(FakeRoot([FakeElement(identifier="a")]))
    with ThreadPoolExecutor(max_workers=1) as ui:
        dispatcher = CommandDispatcher(h.handler, executor=ui)
        ui.submit(time.sleep, 0.2)
        resp = dispatcher.handle(make_request("tapElement", identifier="a"))

    assert resp.success
    assert resp.duration_ms >= 150


@pytest.mark.asyncio
async def test_submit_can_be_awaited():
    h = HandlerHarness(FakeRoot([FakeElement(identifier="a")]))
    dispatcher = CommandDispatcher(h.handler)

    resp = await asyncio.wrap_future(dispatcher.submit(make_request("tapElement", identifier="a")))

    assert resp.success
    assert h.events == [("tap", "a")]
