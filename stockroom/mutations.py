"""
Reducer-style updates of the application state.

Each function takes the current AppState and returns a complete new one, or
raises an InventoryError and leaves the input untouched. There is never an
intermediate state for the view engine to observe.
"""

import logging
import re
from typing import Iterable, Optional, Sequence

from .exceptions import (
    DuplicateItemError,
    InsufficientStockError,
    InventoryError,
    InvalidStockEntryError,
    ItemNotFoundError,
    MissingFieldError,
    StaleStateError,
)
from .schemas import AppState, InventoryItem, Location, Stock

logger = logging.getLogger(__name__)

HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}){1,2}$")


def prune_empty_stock(stock: Iterable[Stock]) -> list[Stock]:
    return [row for row in stock if row.quantity > 0]


def _find_item(state: AppState, item_id: str) -> InventoryItem:
    for item in state.items:
        if item.id == item_id:
            return item
    raise ItemNotFoundError(item_id)


def _merge_colors(
    colors: dict[str, str],
    item: InventoryItem,
    category_color: Optional[str],
    sub_category_color: Optional[str],
) -> dict[str, str]:
    merged = dict(colors)
    if item.category and category_color:
        merged[item.category] = category_color
    if item.sub_category and sub_category_color:
        merged[item.sub_category] = sub_category_color
    return merged


def _validate_stock_entries(
    item_id: str, entries: Sequence[Stock], locations: Sequence[Location]
) -> list[Stock]:
    locations_by_id = {location.id: location for location in locations}
    validated = []
    for entry in entries:
        location = locations_by_id.get(entry.location_id)
        if entry.quantity <= 0 or location is None:
            raise InvalidStockEntryError(
                "Every location entry needs a valid quantity and a known location."
            )
        if entry.source == "PO" and not (
            (entry.po_number or "").strip() and (entry.date_received or "").strip()
        ):
            raise MissingFieldError("Provide PO# and Date Received for purchase orders.")
        validated.append(
            entry.model_copy(
                update={
                    "item_id": item_id,
                    # Only locations that prompt for one keep a sub-location detail.
                    "sub_location_detail": (
                        entry.sub_location_detail if location.sub_location_prompt else None
                    ),
                }
            )
        )
    return validated


def add_item(
    state: AppState,
    item: InventoryItem,
    stock_entries: Sequence[Stock],
    locations: Sequence[Location],
    category_color: Optional[str] = None,
    sub_category_color: Optional[str] = None,
) -> AppState:
    """Creates a new item together with its initial stock entries."""
    item_id = item.id.strip()
    if any(existing.id == item_id for existing in state.items):
        raise DuplicateItemError(item_id)
    if not item_id or not item.description.strip():
        raise MissingFieldError("Please fill in Item ID and Description.")

    new_item = item.model_copy(
        update={
            "id": item_id,
            "description": item.description.strip(),
            "category": (item.category or "").strip() or None,
            "sub_category": (item.sub_category or "").strip() or None,
        }
    )
    new_stock = _validate_stock_entries(item_id, stock_entries, locations)

    logger.info(f"Adding item '{item_id}' with {len(new_stock)} stock entries.")
    return AppState(
        items=[*state.items, new_item],
        stock=[*state.stock, *new_stock],
        category_colors=_merge_colors(
            state.category_colors, new_item, category_color, sub_category_color
        ),
    )


def duplicate_item(
    state: AppState,
    source_item_id: str,
    new_item_id: str,
    stock_entries: Sequence[Stock],
    locations: Sequence[Location],
) -> AppState:
    """Adds a copy of an existing item (everything but stock) under a new ID."""
    source = _find_item(state, source_item_id)
    return add_item(
        state, source.model_copy(update={"id": new_item_id}), stock_entries, locations
    )


def edit_item(
    state: AppState,
    updated_item: InventoryItem,
    stock_for_item: Optional[Sequence[Stock]] = None,
    category_color: Optional[str] = None,
    sub_category_color: Optional[str] = None,
) -> AppState:
    _find_item(state, updated_item.id)
    if not updated_item.description.strip():
        raise MissingFieldError("Description cannot be empty.")

    updated_item = updated_item.model_copy(
        update={
            "description": updated_item.description.strip(),
            "category": (updated_item.category or "").strip() or None,
            "sub_category": (updated_item.sub_category or "").strip() or None,
        }
    )
    stock = list(state.stock)
    if stock_for_item is not None:
        other_stock = [row for row in state.stock if row.item_id != updated_item.id]
        stock = other_stock + [
            row.model_copy(update={"item_id": updated_item.id}) for row in stock_for_item
        ]

    return AppState(
        items=[updated_item if item.id == updated_item.id else item for item in state.items],
        stock=prune_empty_stock(stock),
        category_colors=_merge_colors(
            state.category_colors, updated_item, category_color, sub_category_color
        ),
    )


def delete_item(state: AppState, item_id: str) -> AppState:
    """Removes an item and, with it, every stock row that refers to it."""
    _find_item(state, item_id)
    logger.info(f"Deleting item '{item_id}' and its stock records.")
    return state.model_copy(
        update={
            "items": [item for item in state.items if item.id != item_id],
            "stock": [row for row in state.stock if row.item_id != item_id],
        }
    )


def move_stock(
    state: AppState,
    item_id: str,
    from_location_id: str,
    to_location_id: str,
    quantity: int,
    to_sub_location_detail: Optional[str] = None,
) -> AppState:
    """
    Debits the source row and credits the destination row as one unit.
    A destination without a row for the item gets a new one that inherits
    the source's origin (OH/PO) details.
    """
    _find_item(state, item_id)
    if not from_location_id or not to_location_id:
        raise MissingFieldError('Please select both a "from" and a "to" location.')
    if from_location_id == to_location_id:
        raise InvalidStockEntryError('"From" and "To" locations cannot be the same.')
    if quantity <= 0:
        raise InvalidStockEntryError("Quantity must be greater than zero.")

    stock = list(state.stock)
    from_index = next(
        (
            index
            for index, row in enumerate(stock)
            if row.item_id == item_id and row.location_id == from_location_id
        ),
        None,
    )
    available = stock[from_index].quantity if from_index is not None else 0
    if quantity > available:
        raise InsufficientStockError(quantity, available)

    from_row = stock[from_index]
    stock[from_index] = from_row.model_copy(update={"quantity": from_row.quantity - quantity})

    to_index = next(
        (
            index
            for index, row in enumerate(stock)
            if row.item_id == item_id and row.location_id == to_location_id
        ),
        None,
    )
    if to_index is not None:
        to_row = stock[to_index]
        stock[to_index] = to_row.model_copy(
            update={
                "quantity": to_row.quantity + quantity,
                "sub_location_detail": to_sub_location_detail or to_row.sub_location_detail,
            }
        )
    else:
        stock.append(
            Stock(
                item_id=item_id,
                location_id=to_location_id,
                quantity=quantity,
                sub_location_detail=to_sub_location_detail or None,
                source=from_row.source,
                po_number=from_row.po_number,
                date_received=from_row.date_received,
            )
        )

    logger.info(f"Moved {quantity} of '{item_id}' from {from_location_id} to {to_location_id}.")
    return state.model_copy(update={"stock": prune_empty_stock(stock)})


def bulk_update(
    state: AppState,
    item_ids: Iterable[str],
    description: Optional[str] = None,
    category: Optional[str] = None,
    sub_category: Optional[str] = None,
) -> AppState:
    """Applies the given fields to every selected item; None leaves a field unchanged."""
    changes = {
        field: value
        for field, value in (
            ("description", description),
            ("category", category),
            ("sub_category", sub_category),
        )
        if value is not None
    }
    if not changes:
        raise MissingFieldError("Please select at least one field to update.")

    selected = set(item_ids)
    return state.model_copy(
        update={
            "items": [
                item.model_copy(update=changes) if item.id in selected else item
                for item in state.items
            ]
        }
    )


def import_data(
    state: AppState, items: Sequence[InventoryItem], stock: Sequence[Stock]
) -> AppState:
    """
    Merges imported items into the catalogue and replaces the stock of every
    imported item. Stock of items not in the import is kept as is.
    """
    merged: dict[str, InventoryItem] = {item.id: item for item in state.items}
    for item in items:
        existing = merged.get(item.id)
        if existing is not None and not item.prior_usage:
            # An import without usage columns keeps the usage history we had.
            item = item.model_copy(update={"prior_usage": existing.prior_usage})
        merged[item.id] = item

    imported_ids = {item.id for item in items}
    kept_stock = [row for row in state.stock if row.item_id not in imported_ids]

    return state.model_copy(
        update={
            "items": list(merged.values()),
            "stock": prune_empty_stock([*kept_stock, *stock]),
        }
    )


def set_category_color(state: AppState, label: str, color: str) -> AppState:
    if not label.strip():
        raise MissingFieldError("Please select a category.")
    if not HEX_COLOR.match(color):
        raise InventoryError(f"'{color}' is not a hex colour.")
    return state.model_copy(
        update={"category_colors": {**state.category_colors, label.strip(): color}}
    )


def restore_snapshot(state: AppState, expected: AppState, snapshot: AppState) -> AppState:
    """Swaps in a history snapshot, but only over the state it was taken against."""
    if state != expected:
        raise StaleStateError(
            "The inventory was changed by someone else since your last action."
        )
    return snapshot
