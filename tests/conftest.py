import pytest

from scopevars.runtime import ReactiveTracker, UsageGraph, set_tracker, set_usage_graph


@pytest.fixture(autouse=True)
def development_graph():
    """Every test starts in development mode with an empty usage graph."""
    previous = set_usage_graph(UsageGraph())
    yield
    set_usage_graph(previous)


@pytest.fixture(autouse=True)
def fresh_tracker():
    previous = set_tracker(ReactiveTracker())
    yield
    set_tracker(previous)
