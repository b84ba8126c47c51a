"""
Unit tests for RepositoryStore snapshot handling and raw change stream.
"""

import threading

import pytest

from tracking_runtime.errors import ReloadError, ResourceError
from tracking_runtime.repository import ChangeKind, RepositoryStore, ResourceLoader


@pytest.fixture
def store(tokens_file):
    s = RepositoryStore(str(tokens_file), ResourceLoader(search_path=[]))
    return s


@pytest.fixture
def raw(store):
    changes = []
    store.subscribe(changes.append)
    return changes


def test_unloaded_store_reads_absent(store):
    assert not store.is_loaded
    assert store.get("a") is None
    assert list(store.keys()) == []
    assert len(store) == 0


def test_mutation_on_unloaded_store_raises(store):
    with pytest.raises(ResourceError):
        store.set("a", "1")


def test_load_emits_single_reload(store, raw):
    store.load()

    assert store.is_loaded
    assert store.get("a") == "1"
    assert sorted(store.keys()) == ["a", "b"]
    assert [c.kind for c in raw] == [ChangeKind.RELOAD]


def test_set_emits_before_and_after(store, raw):
    store.load()
    raw.clear()

    store.set("c", "3")
    store.set("a", "10")

    assert [(c.kind, c.key, c.before_update) for c in raw] == [
        (ChangeKind.ADD, "c", True),
        (ChangeKind.ADD, "c", False),
        (ChangeKind.SET, "a", True),
        (ChangeKind.SET, "a", False),
    ]
    assert store.get("a") == "10"


def test_remove_reports_previous_value(store, raw):
    store.load()
    raw.clear()

    store.remove("b")

    post = [c for c in raw if not c.before_update]
    assert len(post) == 1
    assert post[0].kind == ChangeKind.CLEAR_KEY
    assert post[0].key == "b"
    assert post[0].value == "2"
    assert store.get("b") is None


def test_clear_all(store, raw):
    store.load()
    raw.clear()

    store.clear_all()

    assert [c.kind for c in raw if not c.before_update] == [ChangeKind.CLEAR_ALL]
    assert list(store.keys()) == []


def test_reload_replaces_snapshot(store, raw, tokens_file):
    store.load()
    tokens_file.write_text("a=100\nz=26\n")
    raw.clear()

    assert store.reload() is True
    assert store.get("a") == "100"
    assert store.get("b") is None
    assert store.get("z") == "26"
    assert [c.kind for c in raw] == [ChangeKind.RELOAD]


def test_failed_reload_keeps_snapshot(store, raw, tokens_file):
    store.load()
    tokens_file.unlink()
    raw.clear()

    assert store.reload() is False

    assert store.get("a") == "1"
    assert len(raw) == 1
    assert raw[0].kind == ChangeKind.ERROR
    assert isinstance(raw[0].cause, ReloadError)
    assert isinstance(raw[0].cause.__cause__, ResourceError)


def test_keys_iterator_is_stable_under_mutation(store):
    store.load()
    keys = store.keys()
    store.set("c", "3")
    assert sorted(keys) == ["a", "b"]


def test_unsubscribe_by_identity(store):
    changes = []
    observer = changes.append
    store.subscribe(observer)
    store.subscribe(observer)
    assert store.observer_count == 1

    store.unsubscribe(observer)
    store.load()
    assert changes == []


def test_reload_is_atomic_for_readers(store, tokens_file):
    """Concurrent readers see either the old or the new value, never nothing."""
    store.load()
    tokens_file.write_text("a=1\nk=old\n")
    store.reload()

    seen = set()
    stop = threading.Event()

    def reader():
        while not stop.is_set():
            seen.add(store.get("k"))

    t = threading.Thread(target=reader)
    t.start()
    try:
        for i in range(50):
            tokens_file.write_text("a=1\nk=new\n" if i % 2 == 0 else "a=1\nk=old\n")
            assert store.reload()
    finally:
        stop.set()
        t.join()

    assert None not in seen
    assert seen <= {"old", "new"}


def test_concurrent_sets_emit_in_commit_order(store, raw):
    store.load()

    for round_ in range(50):
        raw.clear()
        barrier = threading.Barrier(8)

        def writer(value):
            barrier.wait()
            store.set("k", value)

        threads = [threading.Thread(target=writer, args=(f"{round_}-{i}",)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        committed = [c for c in raw if not c.before_update]
        assert len(committed) == 8
        assert committed[-1].value == store.get("k")
        # each before-update notification is immediately followed by its commit
        pairs = list(zip(raw[::2], raw[1::2]))
        assert all(b.before_update and not a.before_update and b.value == a.value for b, a in pairs)
