"""
The inventory view engine.

build_view() turns raw items, stock, locations and colours plus a ViewState
into the filtered, sorted and optionally grouped structure the table renders.
It is a pure function: identical inputs always give identical output.
"""

import logging
from collections import defaultdict
from functools import cmp_to_key
from typing import AbstractSet, Iterable, Mapping, Sequence

from . import metrics
from .schemas import (
    CategoryGroup,
    DerivedItem,
    GroupMode,
    InventoryItem,
    InventoryView,
    Location,
    LocationGroup,
    LocationRow,
    SortDirection,
    SortKey,
    Stock,
    ViewState,
)
from .utils import locale_compare

logger = logging.getLogger(__name__)


# --- Filter pipeline ---


def matches_search(item: DerivedItem, search_text: str) -> bool:
    query = search_text.upper()
    fields = [item.id, item.description, item.category]
    if item.sub_category:
        fields.append(item.sub_category)
    return any(query in field.upper() for field in fields)


def matches_category(item: DerivedItem, category_filter: str) -> bool:
    """
    "CATEGORY" matches the category alone; "CATEGORY|SUB" also needs the
    sub-category. Only the first "|" separates the two, so a sub-category
    may itself contain "|" ("A|B|C" means category "A", sub-category "B|C").
    """
    if "|" in category_filter:
        category, _, sub_category = category_filter.partition("|")
        return item.category == category and item.sub_category == sub_category
    return item.category == category_filter


def matches_location(item: DerivedItem, location_id: str) -> bool:
    return any(row.location_id == location_id for row in item.locations_with_stock)


def apply_filters(items: Iterable[DerivedItem], view_state: ViewState) -> list[DerivedItem]:
    """Search, then category, then location. Stages are ANDed together."""
    result = list(items)
    if view_state.search_text:
        result = [item for item in result if matches_search(item, view_state.search_text)]
    if view_state.category_filter:
        result = [
            item for item in result if matches_category(item, view_state.category_filter)
        ]
    if view_state.location_filter:
        result = [
            item for item in result if matches_location(item, view_state.location_filter)
        ]
    return result


# --- Sorting ---


def compare_items(a: DerivedItem, b: DerivedItem, sort_key: SortKey) -> int:
    """Ascending three-way comparison of two items by the given key."""
    if sort_key == SortKey.CATEGORY:
        category_compare = locale_compare(a.category or "", b.category or "")
        if category_compare != 0:
            return category_compare
        return locale_compare(a.sub_category or "", b.sub_category or "")

    if sort_key == SortKey.QUANTITY_IN_VIEW:
        return a.quantity_in_view - b.quantity_in_view

    field_name = "id" if sort_key == SortKey.ID else "description"
    value_a, value_b = getattr(a, field_name), getattr(b, field_name)
    return locale_compare(
        "" if value_a is None else str(value_a), "" if value_b is None else str(value_b)
    )


def sort_items(
    items: Iterable[DerivedItem], sort_key: SortKey, direction: SortDirection
) -> list[DerivedItem]:
    # Descending negates the ascending result so ties behave the same way.
    sign = 1 if direction == SortDirection.ASC else -1
    return sorted(items, key=cmp_to_key(lambda a, b: sign * compare_items(a, b, sort_key)))


def toggle_sort(view_state: ViewState, sort_key: SortKey) -> ViewState:
    """Re-selecting the current key flips direction; a new key starts ascending."""
    if view_state.sort_key == sort_key:
        direction = (
            SortDirection.DESC
            if view_state.sort_direction == SortDirection.ASC
            else SortDirection.ASC
        )
        return view_state.model_copy(update={"sort_direction": direction})
    return view_state.model_copy(
        update={"sort_key": sort_key, "sort_direction": SortDirection.ASC}
    )


# --- Grouping ---


def _sorted_keys(keys: Iterable[str]) -> list[str]:
    return sorted(keys, key=cmp_to_key(locale_compare))


def group_by_category(items: Sequence[DerivedItem]) -> list[CategoryGroup]:
    groups: dict[str, list[DerivedItem]] = defaultdict(list)
    for item in items:
        groups[item.category].append(item)
    return [CategoryGroup(key=key, items=groups[key]) for key in _sorted_keys(groups)]


def location_group_key(location_name: str, sub_location_detail: str | None) -> str:
    if sub_location_detail:
        return f"{location_name} - {sub_location_detail}"
    return location_name


def group_by_location(items: Sequence[DerivedItem]) -> list[LocationGroup]:
    """One row per stock entry; an item stocked in three places shows up three times."""
    groups: dict[str, list[LocationRow]] = defaultdict(list)
    for item in items:
        for row in item.locations_with_stock:
            key = location_group_key(row.location_name, row.sub_location_detail)
            groups[key].append(LocationRow(item=item, stock=row, quantity=row.quantity))
    return [LocationGroup(key=key, rows=groups[key]) for key in _sorted_keys(groups)]


def toggle_group_mode(view_state: ViewState, group_mode: GroupMode) -> ViewState:
    """Only one grouping is active; selecting the active one switches grouping off."""
    if view_state.group_mode == group_mode:
        return view_state.model_copy(update={"group_mode": GroupMode.NONE})
    return view_state.model_copy(update={"group_mode": group_mode})


def category_hierarchy(items: Iterable[InventoryItem]) -> dict[str, list[str]]:
    """Category -> sorted sub-categories, as offered by the category filter."""
    hierarchy: dict[str, set[str]] = defaultdict(set)
    for item in items:
        subs = hierarchy[metrics.effective_category(item)]
        if item.sub_category:
            subs.add(item.sub_category)
    return {key: _sorted_keys(hierarchy[key]) for key in _sorted_keys(hierarchy)}


# --- Engine entry point ---


def build_view(
    items: Sequence[InventoryItem],
    stock: Sequence[Stock],
    locations: Sequence[Location],
    category_colors: Mapping[str, str],
    view_state: ViewState | None = None,
) -> InventoryView:
    view_state = view_state or ViewState()

    derived = metrics.derive_items(items, stock, locations, category_colors)
    filtered = apply_filters(derived, view_state)
    ordered = sort_items(filtered, view_state.sort_key, view_state.sort_direction)

    category_groups: list[CategoryGroup] = []
    location_groups: list[LocationGroup] = []
    if view_state.group_mode == GroupMode.CATEGORY:
        category_groups = group_by_category(ordered)
    elif view_state.group_mode == GroupMode.LOCATION:
        location_groups = group_by_location(ordered)

    logger.debug(
        f"View built: {len(ordered)} of {len(derived)} items shown "
        f"(sort={view_state.sort_key.value} {view_state.sort_direction.value}, "
        f"group={view_state.group_mode.value})"
    )

    return InventoryView(
        items=ordered,
        group_mode=view_state.group_mode,
        category_groups=category_groups,
        location_groups=location_groups,
        low_stock_count=sum(1 for item in derived if item.is_low_stock),
        total_items=len(derived),
    )


# --- Selection ---


def visible_item_ids(view: InventoryView) -> list[str]:
    return [item.id for item in view.items]


def toggle_selection(selected: AbstractSet[str], item_id: str) -> frozenset[str]:
    if item_id in selected:
        return frozenset(selected - {item_id})
    return frozenset(selected | {item_id})


def select_all(selected: AbstractSet[str], view: InventoryView, select: bool) -> frozenset[str]:
    """(De)selects every filtered item, never just one group's subset."""
    ids = set(visible_item_ids(view))
    return frozenset(selected | ids) if select else frozenset(selected - ids)


def all_visible_selected(selected: AbstractSet[str], view: InventoryView) -> bool:
    return bool(view.items) and all(item.id in selected for item in view.items)
