import pytest
from datetime import datetime
from unittest.mock import MagicMock

from orchestrator import Orchestrator
from store import MemoryStore
from tracer import global_tracer


class ManualCall:
    def __init__(self, delay, callback, args):
        self.delay = delay
        self.callback = callback
        self.args = args
        self.cancelled = False
        self.ran = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """
    Records deferred callbacks instead of running them on a timer, so a test
    decides exactly when simulated latency elapses.
    """

    def __init__(self):
        self.calls = []

    def call_later(self, delay, callback, *args):
        call = ManualCall(delay, callback, args)
        self.calls.append(call)
        return call

    @property
    def pending(self):
        return [c for c in self.calls if not c.cancelled and not c.ran]

    def run_pending(self):
        """Fires every due callback in scheduling order, including ones scheduled while running."""
        while self.pending:
            call = self.pending[0]
            call.ran = True
            call.callback(*call.args)


@pytest.fixture(autouse=True)
def reset_tracer():
    global_tracer.reset()
    yield
    global_tracer.reset()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def renderer():
    return MagicMock()


@pytest.fixture
def make_orchestrator(store, renderer, scheduler):
    """Builds an orchestrator wired to the test collaborators; pass initial store contents as kwargs."""

    def factory(initial=None, hour=10):
        target_store = MemoryStore(initial) if initial is not None else store
        return Orchestrator(
            store=target_store,
            renderer=renderer,
            scheduler=scheduler,
            clock=lambda: 1700000000.0,
            now=lambda: datetime(2025, 8, 7, hour, 0, 0),
        )

    return factory


@pytest.fixture
def orchestrator(make_orchestrator):
    return make_orchestrator()


@pytest.fixture
def signed_in(make_orchestrator, store):
    """An orchestrator for a returning user who is already signed in."""
    store.set("isLoggedIn", "true")
    store.set("userName", "Jane Doe")
    store.set("userEmail", "jane@nairobi.ac.ke")
    orchestrator = make_orchestrator()
    orchestrator.initialize()
    return orchestrator
