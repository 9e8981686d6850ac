import threading

import pytest

from daynotes.core.errors import HydrationError, SaveTimeoutError, WriteError
from daynotes.core.models import NoteRecord
from daynotes.sync.cache import NoteCache
from daynotes.sync.synchronizer import Synchronizer

from support import MemoryStore, process_events, wait_until

D0, D1 = "2026-10-19", "2026-10-18"


@pytest.fixture
def make(pool):
    def _make(store, **kwargs):
        return Synchronizer(store=store, cache=NoteCache(), pool=pool, **kwargs)
    return _make


def test_flush_updates_cache_and_emits_saved(make):
    store = MemoryStore()
    sync = make(store)
    events = []
    sync.saved.connect(lambda req_id, rec: events.append((req_id, rec)))

    req_id = sync.flush(D0, "text")
    assert wait_until(lambda: events)

    assert events[0][0] == req_id
    assert events[0][1].content == "text"
    assert sync.cache.get(D0).content == "text"
    assert not sync.has_pending_writes()


def test_same_day_writes_run_in_issue_order(make):
    store = MemoryStore()
    store.save_gate = threading.Event()
    sync = make(store)

    first = sync.flush(D0, "a")
    second = sync.flush(D0, "b")
    assert second > first
    assert wait_until(lambda: len(store.save_calls) == 1)
    process_events(50)
    assert store.save_calls == [(D0, "a")]
    assert sync.pending_for(D0) == (second, "b")

    store.save_gate.set()
    assert wait_until(lambda: not sync.has_pending_writes())
    assert store.save_calls == [(D0, "a"), (D0, "b")]
    assert sync.cache.get(D0).content == "b"
    assert sync.pending_for(D0) is None


def test_different_days_write_in_parallel(make):
    store = MemoryStore()
    store.save_gate = threading.Event()
    sync = make(store)

    sync.flush(D0, "zero")
    sync.flush(D1, "one")
    assert wait_until(lambda: len(store.save_calls) == 2)

    store.save_gate.set()
    assert wait_until(lambda: not sync.has_pending_writes())
    assert sync.cache.get(D0).content == "zero"
    assert sync.cache.get(D1).content == "one"


def test_failed_write_emits_write_error(make):
    store = MemoryStore()
    store.fail_saves = True
    sync = make(store)
    errors = []
    sync.save_failed.connect(lambda req_id, err: errors.append((req_id, err)))

    req_id = sync.flush(D0, "precious")
    assert wait_until(lambda: errors)

    got_id, err = errors[0]
    assert got_id == req_id
    assert isinstance(err, WriteError)
    assert err.day == D0
    assert err.content == "precious"
    assert D0 not in sync.cache


def test_hydrate_skips_unchanged_window(make):
    store = MemoryStore({D1: "hello"})
    sync = make(store)

    assert sync.hydrate([D0, D1]) is not None
    assert wait_until(lambda: sync.cache.is_hydrated_for([D0, D1]))
    assert sync.hydrate([D1, D0]) is None
    assert sync.hydrate([D0, D1], force=True) is not None
    assert wait_until(lambda: len(store.load_calls) == 2)


def test_superseded_hydration_result_is_dropped(make):
    store = MemoryStore({D0: "zero", D1: "one"})
    store.load_gate = threading.Event()
    sync = make(store)
    hydrated = []
    sync.hydrated.connect(hydrated.append)

    sync.hydrate([D0])
    sync.hydrate([D0, D1])
    store.load_gate.set()

    assert wait_until(lambda: hydrated)
    process_events(50)
    assert hydrated == [[D0, D1]]
    assert sync.cache.window == frozenset({D0, D1})


def test_hydration_does_not_roll_back_newer_write(make):
    store = MemoryStore()
    store.load_gate = threading.Event()
    sync = make(store)

    sync.hydrate([D0])
    assert wait_until(lambda: store.load_calls)
    sync.flush(D0, "fresh")
    assert wait_until(lambda: sync.cache.get(D0) is not None)

    store.load_gate.set()
    assert wait_until(lambda: sync.cache.is_hydrated_for([D0]))
    assert sync.cache.get(D0).content == "fresh"


def test_hydration_failure_emits_error(make):
    store = MemoryStore()
    store.fail_loads = True
    sync = make(store)
    errors = []
    sync.hydration_failed.connect(errors.append)

    sync.hydrate([D0])
    assert wait_until(lambda: errors)
    assert isinstance(errors[0], HydrationError)
    assert "disk unavailable" in str(errors[0])


def test_hydration_timeout_then_late_result_applies(make):
    store = MemoryStore({D0: "late"})
    store.load_gate = threading.Event()
    sync = make(store, timeout_ms=50)
    errors, hydrated = [], []
    sync.hydration_failed.connect(errors.append)
    sync.hydrated.connect(hydrated.append)

    sync.hydrate([D0])
    assert wait_until(lambda: errors)
    assert "timed out" in str(errors[0])

    store.load_gate.set()
    assert wait_until(lambda: hydrated)
    assert sync.cache.get(D0).content == "late"


def test_write_queued_behind_hung_write_times_out(make):
    store = MemoryStore()
    store.save_gate = threading.Event()
    sync = make(store, timeout_ms=50)
    errors = []
    sync.save_failed.connect(lambda req_id, err: errors.append((req_id, err)))

    first = sync.flush(D0, "a")
    second = sync.flush(D0, "b")
    assert wait_until(lambda: len(errors) == 2)

    assert {req_id for req_id, _ in errors} == {first, second}
    assert all(isinstance(err, SaveTimeoutError) for _, err in errors)
    assert store.save_calls == [(D0, "a")]
    assert sync.pending_for(D0) == (second, "b")

    store.save_gate.set()
    assert wait_until(lambda: not sync.has_pending_writes())
    assert store.save_calls == [(D0, "a"), (D0, "b")]
    assert sync.cache.get(D0).content == "b"


def test_load_day_marks_day_known(make):
    store = MemoryStore({D1: "one"})
    sync = make(store)
    loaded = []
    sync.day_loaded.connect(loaded.append)

    sync.load_day(D1)
    sync.load_day(D0)
    assert wait_until(lambda: len(loaded) == 2)

    assert sorted(loaded) == [D1, D0]
    assert sync.cache.get(D1).content == "one"
    assert D0 not in sync.cache
    assert sync.cache.is_known(D0)
    assert not sync.is_loading(D0)


def test_load_day_failure_leaves_day_unknown(make):
    store = MemoryStore({D1: "one"})
    store.fail_loads = True
    sync = make(store)
    errors = []
    sync.day_load_failed.connect(lambda day, err: errors.append((day, err)))

    sync.load_day(D1)
    assert wait_until(lambda: errors)

    day, err = errors[0]
    assert day == D1
    assert isinstance(err, HydrationError)
    assert not sync.cache.is_known(D1)


def test_load_day_does_not_roll_back_newer_write(make):
    store = MemoryStore({D0: "old"})
    store.load_gate = threading.Event()
    sync = make(store)
    loaded = []
    sync.day_loaded.connect(loaded.append)

    sync.load_day(D0)
    assert wait_until(lambda: store.load_calls)
    sync.cache.apply_write(NoteRecord(day=D0, content="fresh", updated_at="t"), 1)

    store.load_gate.set()
    assert wait_until(lambda: loaded)
    assert sync.cache.get(D0).content == "fresh"
