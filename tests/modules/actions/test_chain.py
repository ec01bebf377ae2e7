from concurrent.futures import ThreadPoolExecutor

import pytest
from fakes import SETTLE, FakeElement, FakeRoot, HandlerHarness

from agent_server.modules.actions import CommandDispatcher
from agent_server.modules.protocol import AgentRequest


@pytest.fixture
def executor():
    pool = ThreadPoolExecutor(max_workers=1)
    yield pool
    pool.shutdown(wait=True)


def _chain(steps, observe=False, nested=False):
    if nested:
        return AgentRequest.model_validate({"action": "chain", "params": {"steps": steps}, "observe": observe})
    return AgentRequest.model_validate({"action": "chain", "steps": steps, "observe": observe})


def _tap(name, **extra):
    return {"action": "tapElement", "params": {"identifier": name, **extra}}


def _setup(executor, *names):
    h = HandlerHarness(FakeRoot([FakeElement(identifier=n) for n in names]))
    return h, CommandDispatcher(h.handler, executor=executor)


def test_all_steps_succeed(executor):
    h, dispatcher = _setup(executor, "a", "b")
    resp = dispatcher.handle(_chain([_tap("a"), _tap("b")]))

    assert resp.success
    assert resp.message == "[1] tapElement: Tapped\n[2] tapElement: Tapped"
    assert resp.screen_state is None
    assert h.events == [("tap", "a"), ("tap", "b")]
    # only the final step settles
    assert h.sleeps == [SETTLE]


def test_failure_stops_remaining_steps(executor):
    h, dispatcher = _setup(executor, "a", "c")
    resp = dispatcher.handle(_chain([_tap("a"), _tap("missing", timeout=0), _tap("c")]))

    assert resp.success is False
    assert resp.message == "Failed at step 2/3: tapElement"
    assert resp.error == "Element not found within 0.0s"
    assert resp.screen_state is not None
    assert h.events == [("tap", "a")]


def test_chain_observe_attaches_final_snapshot(executor):
    _, dispatcher = _setup(executor, "a")
    resp = dispatcher.handle(_chain([_tap("a")], observe=True))

    assert resp.success
    assert [e.identifier for e in resp.screen_state.elements] == ["a"]


def test_last_step_observe_does_not_leak_into_chain(executor):
    _, dispatcher = _setup(executor, "a")
    step = {**_tap("a"), "observe": True}
    resp = dispatcher.handle(_chain([step]))

    assert resp.success
    assert resp.screen_state is None


def test_steps_nested_in_params(executor):
    h, dispatcher = _setup(executor, "a")
    resp = dispatcher.handle(_chain([{"action": "ping"}, _tap("a")], nested=True))

    assert resp.success
    assert resp.message == "[1] ping: pong\n[2] tapElement: Tapped"
    assert h.events == [("tap", "a")]


def test_empty_chain(executor):
    _, dispatcher = _setup(executor)

    assert dispatcher.handle(_chain([])).error == "chain requires non-empty steps array"
    assert dispatcher.handle(AgentRequest(action="chain")).error == "chain requires non-empty steps array"


def test_unknown_step_action(executor):
    _, dispatcher = _setup(executor)
    resp = dispatcher.handle(_chain([{"action": "teleport"}]))

    assert resp.message == "Failed at step 1/1: teleport"
    assert resp.error == "Unknown action: teleport"


def test_chain_is_a_single_handoff(executor):
    _, dispatcher = _setup(executor, "a", "b")
    dispatcher.handle(_chain([_tap("a"), _tap("b"), {"action": "observeScreen"}]))

    assert dispatcher.handoff_count == 1
