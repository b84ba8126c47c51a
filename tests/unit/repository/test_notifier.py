"""
Unit tests for ChangeNotifier registry and fan-out.
"""

import threading

import pytest

from tracking_runtime.failures import FailureContext
from tracking_runtime.repository import (
    ChangeEvent,
    ChangeKind,
    ChangeNotifier,
    RepositoryStore,
    ResourceLoader,
)


@pytest.fixture
def store(tokens_file):
    s = RepositoryStore(str(tokens_file), ResourceLoader(search_path=[]))
    s.load()
    return s


@pytest.fixture
def notifier(store):
    n = ChangeNotifier(source="repo")
    n.attach(store)
    return n


def test_one_event_per_mutation(notifier, store, recorder):
    notifier.register(recorder)

    store.set("c", "3")
    store.set("a", "11")
    store.remove("b")
    store.remove("never-set")
    store.clear_all()

    assert [(e.kind, e.key) for e in recorder.events] == [
        (ChangeKind.ADD, "c"),
        (ChangeKind.SET, "a"),
        (ChangeKind.CLEAR_KEY, "b"),
        (ChangeKind.CLEAR_KEY, "never-set"),
        (ChangeKind.CLEAR_ALL, None),
    ]
    assert all(e.source == "repo" for e in recorder.events)


def test_event_is_immutable(notifier, store, recorder):
    notifier.register(recorder)
    store.set("c", "3")

    with pytest.raises(Exception):
        recorder.events[0].key = "other"  # type: ignore


def test_delivery_in_registration_order(notifier, store):
    order = []
    notifier.register(lambda e: order.append("first"))
    notifier.register(lambda e: order.append("second"))
    notifier.register(lambda e: order.append("third"))

    store.set("c", "3")

    assert order == ["first", "second", "third"]


def test_listener_registered_before_attach(tokens_file, recorder):
    n = ChangeNotifier()
    n.register(recorder)
    s = RepositoryStore(str(tokens_file), ResourceLoader(search_path=[]))
    n.attach(s)

    s.load()

    assert recorder.kinds == [ChangeKind.RELOAD]
    assert recorder.events[0].source is s


def test_register_twice_unregister_once(notifier, store, recorder):
    assert notifier.register(recorder) is True
    adapter = notifier.adapter_for(recorder)
    assert notifier.register(recorder) is False
    assert notifier.adapter_for(recorder) is adapter
    assert store.observer_count == 1

    notifier.unregister(recorder)
    store.set("c", "3")

    assert recorder.events == []
    assert store.observer_count == 0
    assert not notifier.is_registered(recorder)


def test_unregister_unknown_listener_is_noop(notifier, recorder):
    assert notifier.unregister(recorder) is False


def test_failing_listener_is_isolated(notifier, store, recorder):
    failures = []

    def bad(event):
        raise RuntimeError("Intentional error")

    notifier.register(bad)
    notifier.register(recorder)
    notifier.add_failure_listener(lambda ctx, cause: failures.append((ctx, cause)))

    store.set("c", "3")  # must not raise

    assert len(recorder.events) == 1
    assert len(failures) == 1
    ctx, cause = failures[0]
    assert isinstance(ctx, FailureContext)
    assert isinstance(ctx.payload, ChangeEvent)
    assert ctx.payload.key == "c"
    assert isinstance(cause, RuntimeError)


def test_failing_failure_listener_is_isolated(notifier, store, recorder):
    def bad(event):
        raise RuntimeError("listener")

    def bad_failure_listener(ctx, cause):
        raise ValueError("failure listener")

    notifier.register(bad)
    notifier.register(recorder)
    notifier.add_failure_listener(bad_failure_listener)

    store.set("c", "3")

    assert len(recorder.events) == 1


def test_listener_can_unregister_itself_during_fanout(notifier, store, recorder):
    def once(event):
        notifier.unregister(once)

    notifier.register(once)
    notifier.register(recorder)

    store.set("c", "3")
    store.set("d", "4")

    assert [e.key for e in recorder.events] == ["c", "d"]
    assert notifier.listener_count == 1


def test_attach_moves_listeners_between_stores(notifier, store, tokens_file, recorder):
    notifier.register(recorder)
    other = RepositoryStore(str(tokens_file), ResourceLoader(search_path=[]))
    notifier.attach(other)

    store.set("old", "x")
    other.load()

    assert recorder.kinds == [ChangeKind.RELOAD]
    assert store.observer_count == 0
    assert other.observer_count == 1


def test_concurrent_registration_during_fanout(notifier, store, make_recorder):
    stable = make_recorder()
    notifier.register(stable)
    errors = []
    stop = threading.Event()

    def churn():
        try:
            while not stop.is_set():
                r = make_recorder()
                notifier.register(r)
                notifier.unregister(r)
        except Exception as exc:  # pragma: no cover - failure path
            errors.append(exc)

    t = threading.Thread(target=churn)
    t.start()
    try:
        for i in range(200):
            store.set(f"k{i}", str(i))
    finally:
        stop.set()
        t.join()

    assert errors == []
    assert len(stable.events) == 200
