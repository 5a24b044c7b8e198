import pytest
from conftest import FakeSession

from stockroom import mutations
from stockroom.exceptions import InsufficientStockError, StaleStateError, StoreError
from stockroom.schemas import GroupMode, SortDirection, SortKey
from stockroom.session import InventorySession
from stockroom.store import MemoryStore, RemoteDocumentStore


@pytest.fixture
def session(state, locations):
    return InventorySession(MemoryStore(state), locations)


def test_dispatch_saves_and_records_history(session, state):
    session.dispatch(mutations.move_stock, "563-11-SAMP", "wh-c", "prod", 100)

    assert session.store.load() == session.state
    assert session.history.can_undo

    session.undo()
    assert session.state == state
    assert session.store.load() == state

    session.redo()
    assert session.store.load() == session.state
    assert session.state != state


def test_rejected_update_changes_nothing(session, state):
    with pytest.raises(InsufficientStockError):
        session.dispatch(mutations.move_stock, "563-11-SAMP", "prod", "wh-c", 500)
    assert session.state == state
    assert not session.history.can_undo


def test_sync_replaces_state_and_history(session, state):
    session.dispatch(mutations.delete_item, "563-15-SAMP")
    session.store.save(state)

    session.sync()

    assert session.state == state
    assert not session.history.can_undo


def test_deleting_an_item_drops_it_from_the_selection(session):
    session.select(["563-11-SAMP", "563-15-SAMP"])
    session.dispatch(mutations.delete_item, "563-15-SAMP")
    assert session.selected == {"563-11-SAMP"}


def test_view_parameters(session):
    session.sort_by(SortKey.ID)
    assert session.view_state.sort_direction == SortDirection.DESC
    assert [item.id for item in session.view().items] == ["563-15-SAMP", "563-11-SAMP"]

    session.group_by(GroupMode.LOCATION)
    assert [group.key for group in session.view().location_groups] == ["PROD", "WH-C"]

    session.set_filters(search_text="15")
    assert [item.id for item in session.view().items] == ["563-15-SAMP"]


def test_select_all_visible_respects_filters(session):
    session.set_filters(search_text="11")
    assert session.select_all_visible() == {"563-11-SAMP"}
    assert session.select_all_visible(False) == frozenset()


def test_undo_does_not_overwrite_changes_from_another_client(state, locations):
    http = FakeSession(state.model_dump(mode="json", by_alias=True))
    session = InventorySession(RemoteDocumentStore("https://db.example.com", session=http), locations)
    other_client = RemoteDocumentStore("https://db.example.com", session=http)

    session.dispatch(mutations.move_stock, "563-11-SAMP", "wh-c", "prod", 100)
    other_client.apply(mutations.delete_item, "563-15-SAMP")

    with pytest.raises(StaleStateError):
        session.undo()

    assert [item["id"] for item in http.document["items"]] == ["563-11-SAMP"]
    assert [item.id for item in session.state.items] == ["563-11-SAMP"]
    assert not session.history.can_undo


def test_undo_and_redo_go_through_conditional_writes(state, locations):
    http = FakeSession(state.model_dump(mode="json", by_alias=True))
    session = InventorySession(RemoteDocumentStore("https://db.example.com", session=http), locations)

    session.dispatch(mutations.delete_item, "563-15-SAMP")
    session.undo()
    session.redo()

    assert all("If-Match" in headers for headers in http.puts)
    assert len(http.puts) == 3
    assert [item["id"] for item in http.document["items"]] == ["563-11-SAMP"]


def test_failed_undo_write_keeps_history_in_place(session, monkeypatch):
    session.dispatch(mutations.delete_item, "563-15-SAMP")
    after_delete = session.state

    def unreachable(*args, **kwargs):
        raise StoreError("down")

    monkeypatch.setattr(session.store, "apply", unreachable)
    with pytest.raises(StoreError):
        session.undo()

    assert session.state == after_delete
    assert session.history.can_undo
