import pytest

from stockroom import mutations
from stockroom.history import History


def test_undo_and_redo_walk_the_snapshots(state):
    history = History(state)
    moved = mutations.move_stock(state, "563-11-SAMP", "wh-c", "prod", 10)

    assert history.push(moved) is True
    assert history.can_undo and not history.can_redo

    assert history.undo() == state
    assert history.can_redo
    assert history.redo() == moved


def test_pushing_an_equal_state_is_not_recorded(state):
    history = History(state)
    assert history.push(state.model_copy()) is False
    assert len(history) == 1
    assert not history.can_undo


def test_new_change_discards_redo(state):
    history = History(state)
    first = mutations.delete_item(state, "563-11-SAMP")
    second = mutations.delete_item(state, "563-15-SAMP")

    history.push(first)
    history.undo()
    history.push(second)

    assert history.present == second
    assert not history.can_redo
    assert len(history) == 2


def test_history_is_bounded(state):
    history = History(state, limit=3)
    current = state
    for quantity in (1, 2, 3, 4):
        current = mutations.move_stock(current, "563-11-SAMP", "wh-c", "inspect", quantity)
        history.push(current)

    assert len(history) == 3
    history.undo()
    history.undo()
    assert not history.can_undo
    # The original state fell off the end.
    assert history.present != state


def test_undo_at_start_is_a_no_op(state):
    history = History(state)
    assert history.undo() == state


def test_reset_starts_over(state):
    history = History(state)
    replacement = mutations.delete_item(state, "563-11-SAMP")
    history.push(mutations.delete_item(state, "563-15-SAMP"))

    history.reset(replacement)

    assert history.present == replacement
    assert not history.can_undo and not history.can_redo


def test_limit_must_be_positive(state):
    with pytest.raises(ValueError):
        History(state, limit=0)
