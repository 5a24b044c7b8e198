"""
Derived metrics for the inventory view: stock roll-ups, ETR forecasts,
low-stock detection, accent colours and tooltips.

Everything here is pure and total. Unknown locations, empty usage histories
and zero quantities produce fallback values, never exceptions.
"""

from collections import defaultdict
from decimal import Decimal, localcontext
from functools import cmp_to_key
from typing import Iterable, Mapping, Optional, Sequence

from . import settings
from .schemas import (
    DerivedItem,
    InventoryItem,
    Location,
    LocationStock,
    Stock,
    UsageEntry,
)
from .utils import locale_compare, to_fixed


def effective_category(item: InventoryItem) -> str:
    return item.category or settings.UNCATEGORIZED


def average_usage(prior_usage: Optional[Sequence[UsageEntry]]) -> float:
    """Simple (unweighted) mean of the yearly usage figures; 0 when there are none."""
    if not prior_usage:
        return 0.0
    return sum(entry.usage for entry in prior_usage) / len(prior_usage)


def estimate_time_remaining(total_quantity: int, avg_usage: float) -> str:
    """
    Months of stock left at the average monthly burn rate, e.g. "10.6 MONTHS".
    Both inputs must be positive, otherwise the estimate is "N/A".
    """
    if avg_usage > 0 and total_quantity > 0:
        quantity = Decimal(total_quantity)
        with localcontext() as ctx:
            # Exact enough for any stock total; floats overflow past 1e308.
            ctx.prec = max(ctx.prec, quantity.adjusted() + 30)
            months = quantity * 12 / Decimal(avg_usage)
        return f"{to_fixed(months, 1)} MONTHS"
    return settings.ETR_NOT_AVAILABLE


def is_low_stock(item: InventoryItem, total_quantity: int) -> bool:
    # Items without a threshold are never flagged, even at zero.
    return item.low_alert_quantity is not None and total_quantity <= item.low_alert_quantity


def resolve_accent_color(
    item: InventoryItem, category_colors: Mapping[str, str]
) -> Optional[str]:
    if item.sub_category and item.sub_category in category_colors:
        return category_colors[item.sub_category]
    if item.category and item.category in category_colors:
        return category_colors[item.category]
    return None


def build_stock_tooltip(
    total_quantity: int, etr: str, locations_with_stock: Sequence[LocationStock]
) -> str:
    if not locations_with_stock:
        return f"TOTAL: 0 | ETR: {etr} | {settings.NO_STOCK_LABEL}"
    breakdown = ", ".join(
        f"{row.location_name}: {row.quantity}" for row in locations_with_stock
    )
    return f"TOTAL: {total_quantity} | ETR: {etr} | LOCATIONS: {breakdown}"


def location_names(locations: Iterable[Location]) -> dict[str, str]:
    return {location.id: location.name for location in locations}


def join_locations(
    item_stock: Iterable[Stock], names: Mapping[str, str]
) -> list[LocationStock]:
    """Attaches location names and sorts by name (stable for equal names)."""
    joined = [
        LocationStock(
            **row.model_dump(),
            location_name=names.get(row.location_id, settings.UNKNOWN_LOCATION),
        )
        for row in item_stock
    ]
    return sorted(
        joined, key=cmp_to_key(lambda a, b: locale_compare(a.location_name, b.location_name))
    )


def _derive(
    item: InventoryItem,
    item_stock: Sequence[Stock],
    names: Mapping[str, str],
    category_colors: Mapping[str, str],
) -> DerivedItem:
    total_quantity = sum(row.quantity for row in item_stock)
    locations_with_stock = join_locations(item_stock, names)
    avg_usage = average_usage(item.prior_usage)
    etr = estimate_time_remaining(total_quantity, avg_usage)

    return DerivedItem(
        **item.model_dump(exclude={"category"}),
        category=effective_category(item),
        total_quantity=total_quantity,
        # Always the grand total; the location filter narrows the item set instead.
        quantity_in_view=total_quantity,
        locations_with_stock=locations_with_stock,
        average_usage=avg_usage,
        etr=etr,
        is_low_stock=is_low_stock(item, total_quantity),
        accent_color=resolve_accent_color(item, category_colors),
        stock_tooltip=build_stock_tooltip(total_quantity, etr, locations_with_stock),
    )


def derive_item(
    item: InventoryItem,
    stock: Iterable[Stock],
    locations: Iterable[Location],
    category_colors: Mapping[str, str],
) -> DerivedItem:
    """Computes the derived record for a single item."""
    item_stock = [row for row in stock if row.item_id == item.id]
    return _derive(item, item_stock, location_names(locations), category_colors)


def derive_items(
    items: Iterable[InventoryItem],
    stock: Iterable[Stock],
    locations: Iterable[Location],
    category_colors: Mapping[str, str],
) -> list[DerivedItem]:
    """Same as derive_item for a whole list, indexing the stock collection once."""
    stock_by_item: dict[str, list[Stock]] = defaultdict(list)
    for row in stock:
        stock_by_item[row.item_id].append(row)
    names = location_names(locations)
    return [
        _derive(item, stock_by_item.get(item.id, []), names, category_colors)
        for item in items
    ]


def stock_totals(stock: Iterable[Stock]) -> dict[str, int]:
    totals: dict[str, int] = defaultdict(int)
    for row in stock:
        totals[row.item_id] += row.quantity
    return dict(totals)


def low_stock_count(items: Iterable[InventoryItem], stock: Iterable[Stock]) -> int:
    """Number of low-stock items over the full item set, ignoring any view filters."""
    totals = stock_totals(stock)
    return sum(1 for item in items if is_low_stock(item, totals.get(item.id, 0)))
