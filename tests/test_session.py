"""Tests for the debouncer and the live planner session."""
import threading

import pytest

from nodeopt.models import AllocationParams
from nodeopt.session import Debouncer, PlannerSession


def test_debouncer_runs_only_last_call(fake_timer):
    calls = []
    d = Debouncer(0.1, calls.append, timer_factory=fake_timer)
    d(1)
    d(2)
    d(3)
    assert len(fake_timer.created) == 3
    assert fake_timer.created[0].cancelled
    assert fake_timer.created[1].cancelled
    assert all(t.daemon for t in fake_timer.created)
    assert d.pending
    fake_timer.created[-1].fire()
    assert calls == [3]
    assert not d.pending


def test_debouncer_ignores_stale_timer(fake_timer):
    """A timer that fires after being superseded does nothing."""
    calls = []
    d = Debouncer(0.1, calls.append, timer_factory=fake_timer)
    d("old")
    d("new")
    fake_timer.created[0].fire()
    assert calls == []
    fake_timer.created[1].fire()
    assert calls == ["new"]


def test_debouncer_flush_and_cancel(fake_timer):
    calls = []
    d = Debouncer(0.1, calls.append, timer_factory=fake_timer)
    assert d.flush() is False
    d("x")
    assert d.flush() is True
    assert calls == ["x"]
    fake_timer.created[0].fire()
    assert calls == ["x"]
    d("y")
    d.cancel()
    assert not d.pending
    fake_timer.created[-1].fire()
    assert calls == ["x"]


def test_debouncer_with_real_timer():
    done = threading.Event()
    calls = []

    def run(v):
        calls.append(v)
        done.set()

    d = Debouncer(0.01, run)
    d("a")
    d("b")
    assert done.wait(2.0)
    assert calls == ["b"]


@pytest.fixture
def session(fake_timer):
    s = PlannerSession(target_max_nodes=3, surface_width=960, debounce_sec=0.1, timer_factory=fake_timer)
    yield s
    s.close()


def test_initial_plan(session):
    assert session.revision == 1
    assert session.inputs == AllocationParams.defaults()
    assert session.plan.distribution.per_node == [4, 4, 3]
    assert not session.pending


def test_update_is_debounced(session, fake_timer):
    session.update(executor_cores=8)
    session.update(executor_memory_gb=16)
    assert session.inputs.executor_cores == 8
    assert session.inputs.executor_memory_gb == 16
    assert session.revision == 1
    assert session.pending
    fake_timer.created[-1].fire()
    assert session.revision == 2
    assert session.plan.params.executor_cores == 8
    assert session.plan.distribution.slots_per_node == 2


def test_update_immediate(session):
    session.update(immediate=True, max_executors=3)
    assert session.revision == 2
    assert not session.pending
    assert session.plan.distribution.per_node == [4]


def test_update_coerces_and_ignores_none(session):
    session.update(immediate=True, executor_cores=-2, node_vcpus=None, target_max_nodes="0", surface_width="abc")
    assert session.inputs.executor_cores == 1
    assert session.inputs.node_vcpus == 16
    assert session.target_max_nodes == 1
    assert session.surface_width == 1


def test_flush(session):
    session.update(num_nodes=5, fixed_nodes_mode=True)
    assert session.flush() is True
    assert session.revision == 2
    assert session.plan.distribution.nodes_needed == 5
    assert session.flush() is False


def test_reset(session):
    session.update(executor_cores=2, target_max_nodes=7)
    plan = session.reset()
    assert not session.pending
    assert session.inputs == AllocationParams.defaults()
    assert session.target_max_nodes == 3
    assert plan.params == AllocationParams.defaults()


def test_apply_sweep_row(session):
    plan = session.apply_sweep_row(4)
    assert session.inputs.executor_cores == 4
    assert session.inputs.executor_memory_gb == 13
    assert session.inputs.max_executors == 11
    assert plan.distribution.per_node == [4, 4, 4]


def test_apply_sweep_row_flushes_pending_first(session):
    session.update(node_vcpus=8)
    session.apply_sweep_row(8)
    assert session.inputs.node_vcpus == 8
    assert session.inputs.executor_cores == 8


def test_apply_unknown_sweep_row(session):
    with pytest.raises(KeyError):
        session.apply_sweep_row(99)
