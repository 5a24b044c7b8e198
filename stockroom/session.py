import logging
from typing import Iterable, Optional, Sequence

from . import mutations
from . import view as view_engine
from .exceptions import StaleStateError, StoreError
from .history import History
from .schemas import AppState, GroupMode, InventoryView, Location, SortKey, ViewState
from .store import InventoryStore, StateUpdate

logger = logging.getLogger(__name__)


class InventorySession:
    """
    Holds everything one user works with: the undoable state history, the
    current view parameters and the selection. All state changes go through
    dispatch() so that the store and the history always agree.
    """

    def __init__(self, store: InventoryStore, locations: Sequence[Location]):
        self.store = store
        self.locations = list(locations)
        self.history = History(store.load())
        self.view_state = ViewState()
        self.selected: frozenset[str] = frozenset()

    @property
    def state(self) -> AppState:
        return self.history.present

    def dispatch(self, update: StateUpdate, *args, **kwargs) -> AppState:
        new_state = self.store.apply(update, *args, **kwargs)
        if self.history.push(new_state):
            self._drop_stale_selection()
        return new_state

    def undo(self) -> AppState:
        if not self.history.can_undo:
            logger.info("Nothing to undo.")
            return self.state
        expected = self.state
        self._persist_snapshot(expected, self.history.undo(), "Undo", self.history.redo)
        return self.state

    def redo(self) -> AppState:
        if not self.history.can_redo:
            logger.info("Nothing to redo.")
            return self.state
        expected = self.state
        self._persist_snapshot(expected, self.history.redo(), "Redo", self.history.undo)
        return self.state

    def _persist_snapshot(
        self, expected: AppState, snapshot: AppState, action: str, rollback
    ) -> None:
        """Writes an undo/redo snapshot through the store's atomic update."""
        try:
            self.store.apply(mutations.restore_snapshot, expected, snapshot)
        except StaleStateError:
            logger.warning(f"⚠️ {action} rejected: the inventory changed elsewhere. Reloading.")
            self.sync()
            raise
        except StoreError:
            rollback()
            raise
        self._drop_stale_selection()

    def sync(self) -> AppState:
        """Takes over a state changed outside this session; local undo history is lost."""
        latest = self.store.load()
        if latest != self.state:
            logger.info("State changed in the store. Reloading.")
            self.history.reset(latest)
            self._drop_stale_selection()
        return self.state

    def _drop_stale_selection(self) -> None:
        existing = {item.id for item in self.state.items}
        self.selected = frozenset(self.selected & existing)

    # --- View parameters ---

    def view(self) -> InventoryView:
        state = self.state
        return view_engine.build_view(
            state.items, state.stock, self.locations, state.category_colors, self.view_state
        )

    def sort_by(self, sort_key: SortKey) -> ViewState:
        self.view_state = view_engine.toggle_sort(self.view_state, sort_key)
        return self.view_state

    def group_by(self, group_mode: GroupMode) -> ViewState:
        self.view_state = view_engine.toggle_group_mode(self.view_state, group_mode)
        return self.view_state

    def set_filters(
        self,
        search_text: Optional[str] = None,
        category_filter: Optional[str] = None,
        location_filter: Optional[str] = None,
    ) -> ViewState:
        changes = {
            field: value
            for field, value in (
                ("search_text", search_text),
                ("category_filter", category_filter),
                ("location_filter", location_filter),
            )
            if value is not None
        }
        self.view_state = self.view_state.model_copy(update=changes)
        return self.view_state

    # --- Selection ---

    def select(self, item_ids: Iterable[str]) -> frozenset[str]:
        for item_id in item_ids:
            self.selected = view_engine.toggle_selection(self.selected, item_id)
        return self.selected

    def select_all_visible(self, select: bool = True) -> frozenset[str]:
        self.selected = view_engine.select_all(self.selected, self.view(), select)
        return self.selected
