from daynotes.core.models import NoteRecord
from daynotes.sync.cache import NoteCache

D0, D1, D2 = "2026-10-19", "2026-10-18", "2026-10-17"


def rec(day, content, ts="2026-10-19T10:00:00.000Z"):
    return NoteRecord(day=day, content=content, updated_at=ts)


def test_days_missing_from_hydration_are_absent():
    cache = NoteCache()
    cache.replace_window([D0, D1, D2], [rec(D1, "hello")])

    assert D1 in cache
    assert D0 not in cache
    assert cache.get(D0) is None
    assert cache.content_for(D0) == ""
    assert cache.content_for(D1) == "hello"
    assert cache.is_hydrated_for([D2, D1, D0])


def test_replace_not_merge_within_window():
    cache = NoteCache()
    cache.replace_window([D0, D1], [rec(D0, "a"), rec(D1, "b")])
    cache.replace_window([D0, D1], [rec(D1, "b2")])

    assert D0 not in cache
    assert cache.get(D1).content == "b2"


def test_entries_outside_window_are_kept():
    cache = NoteCache()
    cache.replace_window([D1, D2], [rec(D2, "old day")])
    cache.replace_window([D0, D1], [])

    assert cache.get(D2).content == "old day"
    assert cache.window == frozenset({D0, D1})


def test_records_outside_window_are_ignored():
    cache = NoteCache()
    cache.replace_window([D0], [rec(D1, "stray")])
    assert len(cache) == 0


def test_older_write_does_not_override_newer():
    cache = NoteCache()
    assert cache.apply_write(rec(D0, "second"), 2)
    assert not cache.apply_write(rec(D0, "first"), 1)
    assert cache.get(D0).content == "second"


def test_write_after_hydration_issue_survives_replace():
    cache = NoteCache()
    since = cache.write_epoch
    cache.apply_write(rec(D0, "typed"), 1)

    cache.replace_window([D0, D1], [rec(D1, "stored")], since_epoch=since)
    assert cache.get(D0).content == "typed"
    assert cache.get(D1).content == "stored"


def test_snapshot_is_a_copy():
    cache = NoteCache()
    cache.apply_write(rec(D0, "x"), 1)
    snap = cache.snapshot()
    snap.clear()
    assert D0 in cache


def test_days_become_known_by_read_or_write():
    cache = NoteCache()
    assert not cache.is_known(D0)

    cache.replace_window([D0], [])
    cache.apply_write(rec(D1, "w"), 1)
    cache.apply_load(D2, None)

    assert cache.is_known(D0) and cache.is_known(D1) and cache.is_known(D2)
    assert D2 not in cache


def test_single_day_load_does_not_override_newer_write():
    cache = NoteCache()
    since = cache.write_epoch
    cache.apply_write(rec(D0, "typed"), 1)

    cache.apply_load(D0, rec(D0, "stale"), since_epoch=since)
    assert cache.get(D0).content == "typed"

    cache.apply_load(D1, rec(D1, "stored"), since_epoch=cache.write_epoch)
    assert cache.get(D1).content == "stored"
