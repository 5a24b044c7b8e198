"""Errors raised by the mutation, import and persistence flows.

The view engine itself never raises; these are user-facing rejections.
"""


class InventoryError(ValueError):
    """Base class for rejected inventory operations."""


class MissingFieldError(InventoryError):
    pass


class DuplicateItemError(InventoryError):
    def __init__(self, item_id: str):
        super().__init__(f"Item ID '{item_id}' already exists.")
        self.item_id = item_id


class ItemNotFoundError(InventoryError):
    def __init__(self, item_id: str):
        super().__init__(f"Item ID '{item_id}' does not exist.")
        self.item_id = item_id


class InvalidStockEntryError(InventoryError):
    pass


class InsufficientStockError(InventoryError):
    def __init__(self, requested: int, available: int):
        super().__init__(f"Cannot move more than available stock ({available}).")
        self.requested = requested
        self.available = available


class ImportFormatError(InventoryError):
    """Raised when an import file cannot be parsed at all."""


class StoreError(RuntimeError):
    """Raised when the persistence layer cannot load or save state."""


class ConcurrentUpdateError(StoreError):
    """Raised when a remote write keeps losing the optimistic-concurrency race."""


class StaleStateError(InventoryError):
    """Raised when an undo or redo would overwrite changes made elsewhere."""
