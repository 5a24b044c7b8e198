import logging

from . import settings
from .schemas import AppState

logger = logging.getLogger(__name__)


class History:
    """
    Bounded undo/redo stack of whole-state snapshots with a cursor.
    Only effective changes are recorded: pushing a state that is structurally
    equal to the present one is a no-op.
    """

    def __init__(self, initial: AppState, limit: int = settings.HISTORY_LIMIT):
        if limit < 1:
            raise ValueError("History limit must be at least 1")
        self.limit = limit
        self._snapshots: list[AppState] = [initial]
        self._index = 0

    @property
    def present(self) -> AppState:
        return self._snapshots[self._index]

    @property
    def can_undo(self) -> bool:
        return self._index > 0

    @property
    def can_redo(self) -> bool:
        return self._index < len(self._snapshots) - 1

    def __len__(self) -> int:
        return len(self._snapshots)

    def push(self, state: AppState) -> bool:
        if state == self.present:
            return False

        # A new change discards everything that could have been redone.
        self._snapshots = self._snapshots[: self._index + 1]
        self._snapshots.append(state)
        if len(self._snapshots) > self.limit:
            dropped = len(self._snapshots) - self.limit
            self._snapshots = self._snapshots[dropped:]
            logger.debug(f"History full, dropped {dropped} oldest snapshot(s).")
        self._index = len(self._snapshots) - 1
        return True

    def undo(self) -> AppState:
        if self.can_undo:
            self._index -= 1
        return self.present

    def redo(self) -> AppState:
        if self.can_redo:
            self._index += 1
        return self.present

    def reset(self, state: AppState) -> None:
        """Starts over from a state that replaced ours wholesale (e.g. a remote change)."""
        self._snapshots = [state]
        self._index = 0
