from __future__ import annotations

from services.user_state import UserState, UserStateStore


def test_record_visit_trims_recent_categories() -> None:
    store = UserStateStore()
    for idx, cat in enumerate(["cafe", "bar", "park"]):
        store.record_visit("u1", f"p{idx}", cat)

    state = store.snapshot("u1")
    assert state.visited_ids == frozenset({"p0", "p1", "p2"})
    assert state.recent_categories == ("bar", "park")


def test_snapshot_is_a_copy() -> None:
    store = UserStateStore()
    store.record_visit("u1", "p0", "cafe")
    before = store.snapshot("u1")
    store.record_visit("u1", "p1", "cafe")
    assert before.visited_ids == frozenset({"p0"})
    assert before.recent_categories == ("cafe",)


def test_no_go_add_and_remove() -> None:
    store = UserStateStore()
    store.add_no_go("u2", "bad")
    assert store.snapshot("u2").no_go_ids == frozenset({"bad"})
    assert store.remove_no_go("u2", "bad") is True
    assert store.remove_no_go("u2", "bad") is False
    assert store.snapshot("u2").no_go_ids == frozenset()


def test_clear_history_keeps_no_go() -> None:
    store = UserStateStore()
    store.record_visit("u3", "p0", "cafe")
    store.add_no_go("u3", "bad")
    store.clear_history("u3")
    state = store.snapshot("u3")
    assert state.visited_ids == frozenset()
    assert state.recent_categories == ()
    assert state.no_go_ids == frozenset({"bad"})


def test_reset_clears_state() -> None:
    store = UserStateStore()
    store.record_visit("u4", "p0", "cafe")
    store.add_no_go("u4", "bad")
    store.reset("u4")
    assert store.snapshot("u4") == UserState()


def test_empty_user_id_is_ignored() -> None:
    store = UserStateStore()
    store.record_visit("", "p0", "cafe")
    store.add_no_go(None, "bad")
    assert store.snapshot("") == UserState()
    assert store._users == {}  # type: ignore[attr-defined]


def test_visit_without_category_leaves_recent_untouched() -> None:
    store = UserStateStore(recent_window=2)
    store.record_visit("u5", "p0", "cafe")
    store.record_visit("u5", "p1", None)
    assert store.snapshot("u5").recent_categories == ("cafe",)
