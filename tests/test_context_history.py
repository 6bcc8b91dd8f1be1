from palaver.session import ContextHistoryStore, ContextRole, ContextTurn


def test_commit_appends_user_then_model() -> None:
    store = ContextHistoryStore()

    store.commit("hello", "Hi there!")

    assert store.turns() == (
        ContextTurn(ContextRole.USER, "hello"),
        ContextTurn(ContextRole.MODEL, "Hi there!"),
    )


def test_snapshot_after_n_turns_has_2n_plus_one_entries() -> None:
    store = ContextHistoryStore()
    for index in range(3):
        store.commit(f"q{index}", f"a{index}")

    snapshot = store.snapshot_for_prompt("next")

    assert len(snapshot) == 7
    assert [turn.role for turn in snapshot[:-1]] == [ContextRole.USER, ContextRole.MODEL] * 3
    assert [turn.content for turn in snapshot[:-1]] == ["q0", "a0", "q1", "a1", "q2", "a2"]
    assert snapshot[-1] == ContextTurn(ContextRole.USER, "next")


def test_snapshot_for_empty_history_is_just_the_prompt() -> None:
    assert ContextHistoryStore().snapshot_for_prompt("hi") == (ContextTurn(ContextRole.USER, "hi"),)


def test_snapshot_is_a_value_copy() -> None:
    store = ContextHistoryStore()
    store.commit("one", "1")
    snapshot = store.snapshot_for_prompt("two")

    store.commit("two", "2")
    store.clear()

    assert [turn.content for turn in snapshot] == ["one", "1", "two"]
    assert len(store) == 0
