"""
Assembles the data behind the listings export, the item reports and the
barcode label sheets. Rendering (PDF, barcodes) happens elsewhere.
"""

from typing import AbstractSet, Iterable, Literal, Optional, Sequence

import pandas as pd

from . import metrics, settings
from .exceptions import MissingFieldError
from .schemas import (
    AppState,
    InventoryItem,
    Location,
    PrintableLabel,
    ReportRow,
    Stock,
)
from .utils import to_fixed

ReportType = Literal["all", "category", "selected", "single", "low-alert"]
PrintType = Literal["selected", "category", "location"]

LISTING_BASE_COLUMNS = ["ID", "DESCRIPTION", "CATEGORY", "SUB_CATEGORY", "LOW_ALERT_QTY"]
LISTING_STOCK_COLUMNS = [
    "AVG_USAGE",
    "ETR",
    "LOCATION",
    "SUB_LOCATION",
    "QTY",
    "SOURCE",
    "PO_NUMBER",
    "DATE_RECEIVED",
]


def listing_columns(usage_years: Sequence[int]) -> list[str]:
    return (
        LISTING_BASE_COLUMNS
        + [f"USAGE_{year}" for year in usage_years]
        + LISTING_STOCK_COLUMNS
    )


def _stock_by_item(stock: Iterable[Stock]) -> dict[str, list[Stock]]:
    grouped: dict[str, list[Stock]] = {}
    for row in stock:
        grouped.setdefault(row.item_id, []).append(row)
    return grouped


def build_listing_frame(
    state: AppState,
    locations: Sequence[Location],
    usage_years: Sequence[int] = settings.USAGE_YEARS,
) -> pd.DataFrame:
    """
    The full listings export: one row per stock row, or a single zero-quantity
    row for items without stock. Columns match what the importer reads back.
    """
    names = metrics.location_names(locations)
    stock_by_item = _stock_by_item(state.stock)
    records = []

    for item in state.items:
        item_stock = stock_by_item.get(item.id, [])
        total_quantity = sum(row.quantity for row in item_stock)
        avg_usage = metrics.average_usage(item.prior_usage)
        usage_by_year = {entry.year: entry.usage for entry in item.prior_usage}

        base = {
            "ID": item.id,
            "DESCRIPTION": item.description,
            "CATEGORY": item.category or "",
            "SUB_CATEGORY": item.sub_category or "",
            "LOW_ALERT_QTY": "" if item.low_alert_quantity is None else item.low_alert_quantity,
            **{f"USAGE_{year}": usage_by_year.get(year, "") for year in usage_years},
            "AVG_USAGE": to_fixed(avg_usage, 0) if avg_usage > 0 else "",
            "ETR": metrics.estimate_time_remaining(total_quantity, avg_usage),
        }

        if not item_stock:
            records.append(
                {
                    **base,
                    "LOCATION": "",
                    "SUB_LOCATION": "",
                    "QTY": 0,
                    "SOURCE": "OH",
                    "PO_NUMBER": "",
                    "DATE_RECEIVED": "",
                }
            )
            continue

        for row in item_stock:
            records.append(
                {
                    **base,
                    "LOCATION": names.get(row.location_id, row.location_id),
                    "SUB_LOCATION": row.sub_location_detail or "",
                    "QTY": row.quantity,
                    "SOURCE": row.source,
                    "PO_NUMBER": row.po_number or "",
                    "DATE_RECEIVED": row.date_received or "",
                }
            )

    return pd.DataFrame(records, columns=listing_columns(usage_years))


def select_report_items(
    state: AppState,
    report_type: ReportType,
    value: Optional[str] = None,
    selected_ids: AbstractSet[str] = frozenset(),
) -> list[InventoryItem]:
    if report_type == "all":
        return list(state.items)
    if report_type == "category":
        if not value:
            raise MissingFieldError("Please select a category.")
        return [item for item in state.items if metrics.effective_category(item) == value]
    if report_type == "selected":
        if not selected_ids:
            raise MissingFieldError("No items are selected.")
        return [item for item in state.items if item.id in selected_ids]
    if report_type == "single":
        if not value:
            raise MissingFieldError("Please select an item.")
        return [item for item in state.items if item.id == value]
    if report_type == "low-alert":
        totals = metrics.stock_totals(state.stock)
        return [
            item for item in state.items if metrics.is_low_stock(item, totals.get(item.id, 0))
        ]
    raise ValueError(f"Unknown report type: {report_type}")


def generate_report_data(
    items: Iterable[InventoryItem], stock: Iterable[Stock], locations: Iterable[Location]
) -> list[ReportRow]:
    """One row per stock row; items without stock get a single 'N/A' row."""
    names = metrics.location_names(locations)
    stock_by_item = _stock_by_item(stock)
    report = []

    for item in items:
        base = {
            "id": item.id,
            "description": item.description,
            "category": item.category or "",
            "sub_category": item.sub_category or "",
        }
        item_stock = stock_by_item.get(item.id, [])
        if not item_stock:
            report.append(ReportRow(**base, location_name="N/A", quantity=0, source="OH"))
            continue
        for row in item_stock:
            report.append(
                ReportRow(
                    **base,
                    location_name=names.get(row.location_id, settings.UNKNOWN_LOCATION),
                    sub_location_detail=row.sub_location_detail or "",
                    quantity=row.quantity,
                    source=row.source,
                    po_number=row.po_number or "",
                    date_received=row.date_received or "",
                )
            )
    return report


def report_frame(rows: Sequence[ReportRow]) -> pd.DataFrame:
    """Report rows as a DataFrame whose columns are the report's CSV headers."""
    columns = [info.alias or name for name, info in ReportRow.model_fields.items()]
    return pd.DataFrame(
        [row.model_dump(by_alias=True) for row in rows], columns=columns
    )


def build_labels(
    state: AppState,
    locations: Sequence[Location],
    print_type: PrintType,
    value: Optional[str] = None,
    selected_ids: AbstractSet[str] = frozenset(),
) -> list[PrintableLabel]:
    """
    Label data for a barcode sheet: one label per stock row. For the
    'location' print type only that location's rows are labelled.
    """
    if print_type == "selected":
        if not selected_ids:
            raise MissingFieldError("No items are selected.")
        items = [item for item in state.items if item.id in selected_ids]
    elif print_type == "category":
        if not value:
            raise MissingFieldError("Please select a category.")
        items = [item for item in state.items if metrics.effective_category(item) == value]
    elif print_type == "location":
        if not value:
            raise MissingFieldError("Please select a location.")
        stocked_ids = {row.item_id for row in state.stock if row.location_id == value}
        items = [item for item in state.items if item.id in stocked_ids]
    else:
        raise ValueError(f"Unknown print type: {print_type}")

    names = metrics.location_names(locations)
    stock_by_item = _stock_by_item(state.stock)
    labels = []
    for item in items:
        item_stock = [
            row
            for row in stock_by_item.get(item.id, [])
            if print_type != "location" or row.location_id == value
        ]
        for row in item_stock:
            labels.append(
                PrintableLabel(
                    item_id=item.id,
                    description=item.description,
                    location_name=names.get(row.location_id, settings.UNKNOWN_LOCATION),
                    sub_location_detail=row.sub_location_detail,
                )
            )
        if not item_stock and print_type != "location":
            labels.append(
                PrintableLabel(
                    item_id=item.id,
                    description=item.description,
                    location_name=settings.NO_STOCK_LABEL,
                )
            )
    return labels
