"""Pytest fixtures for node optimizer tests."""
import pytest

from nodeopt.api import close_session
from nodeopt.models import AllocationParams
from nodeopt.security import reset_rate_limits


@pytest.fixture(autouse=True)
def clean_state():
    """Fresh rate-limit window and live session for every test."""
    reset_rate_limits()
    yield
    close_session()


@pytest.fixture
def scenario_params():
    """4-core/8 GB executors on 16 vCPU/64 GB nodes, no overhead, one AM."""
    return AllocationParams(
        executor_cores=4,
        executor_memory_gb=8,
        executor_overhead_factor=0,
        node_vcpus=16,
        node_memory_gb=64,
        max_executors=10,
        reserved_executors=1,
    )


class FakeTimer:
    """threading.Timer stand-in that only runs when fire() is called."""

    created: list["FakeTimer"] = []

    def __init__(self, interval, function, args=None, kwargs=None):
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.kwargs = kwargs or {}
        self.daemon = False
        self.started = False
        self.cancelled = False
        FakeTimer.created.append(self)

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.function(*self.args, **self.kwargs)


@pytest.fixture
def fake_timer():
    FakeTimer.created = []
    yield FakeTimer
    FakeTimer.created = []
