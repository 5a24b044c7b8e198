import logging
import re
from pathlib import Path
from typing import Iterable, Optional

import pandas as pd

from .exceptions import ImportFormatError
from .schemas import (
    ImportedStockRow,
    InventoryItem,
    Location,
    ParsedImport,
    SkippedStockEntry,
    Stock,
    UsageEntry,
)
from .utils import load_csv

logger = logging.getLogger(__name__)

REQUIRED_HEADERS = ["ID", "DESCRIPTION", "LOCATION", "QTY"]
USAGE_HEADER = re.compile(r"^USAGE_(\d{4})$")
LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def _parse_int(value: str) -> Optional[int]:
    """Reads the leading integer of a cell ("12", "12 pcs"); None when there is none."""
    match = LEADING_INT.match(value or "")
    return int(match.group(1)) if match else None


def _usage_columns(columns: Iterable[str]) -> dict[int, str]:
    usage_columns = {}
    for column in columns:
        match = USAGE_HEADER.match(column)
        if match:
            usage_columns[int(match.group(1))] = column
    return dict(sorted(usage_columns.items()))


def parse_inventory_frame(df: pd.DataFrame) -> ParsedImport:
    """
    Turns an import sheet into items and stock rows.
    - Headers are matched case-insensitively; ID, DESCRIPTION, LOCATION and QTY are required.
    - The first row of each ID defines the item; every valid row is a stock row.
    - Invalid rows are skipped with a warning instead of failing the whole import.
    """
    if df is None or df.empty:
        raise ImportFormatError("CSV file must have a header and at least one data row.")

    df = df.rename(columns=lambda column: str(column).strip().upper())
    if not all(header in df.columns for header in REQUIRED_HEADERS):
        raise ImportFormatError(f"CSV header must contain: {', '.join(REQUIRED_HEADERS)}")

    usage_columns = _usage_columns(df.columns)
    items: dict[str, InventoryItem] = {}
    rows: list[ImportedStockRow] = []
    rows_invalid = 0

    # Row numbers count the header as line 1, like a spreadsheet.
    for line_number, record in enumerate(df.to_dict("records"), start=2):

        def cell(column: str) -> str:
            value = record.get(column, "")
            return "" if pd.isna(value) else str(value).strip()

        item_id = cell("ID")
        description = cell("DESCRIPTION")
        location_name = cell("LOCATION")
        quantity = _parse_int(cell("QTY"))

        if not item_id or not description or not location_name or quantity is None or quantity < 0:
            logger.warning(f"  > Skipping invalid row {line_number}: {record}")
            rows_invalid += 1
            continue

        if item_id not in items:
            prior_usage = []
            for year, column in usage_columns.items():
                usage = _parse_int(cell(column))
                if usage is not None:
                    prior_usage.append(UsageEntry(year=year, usage=usage))

            low_alert_quantity = _parse_int(cell("LOW_ALERT_QTY"))
            items[item_id] = InventoryItem(
                id=item_id,
                description=description,
                category=cell("CATEGORY") or None,
                sub_category=cell("SUB_CATEGORY") or None,
                prior_usage=prior_usage,
                low_alert_quantity=(
                    low_alert_quantity
                    if low_alert_quantity is not None and low_alert_quantity >= 0
                    else None
                ),
            )

        source = "PO" if cell("SOURCE").upper() == "PO" else "OH"
        rows.append(
            ImportedStockRow(
                item_id=item_id,
                location_name=location_name,
                quantity=quantity,
                sub_location_detail=cell("SUB_LOCATION") or None,
                source=source,
                po_number=(cell("PO_NUMBER") or None) if source == "PO" else None,
                date_received=(cell("DATE_RECEIVED") or None) if source == "PO" else None,
            )
        )

    return ParsedImport(
        items=list(items.values()),
        rows=rows,
        rows_read=len(df),
        rows_invalid=rows_invalid,
    )


def parse_inventory_csv(file_path: Path) -> ParsedImport | None:
    """Loads an inventory CSV and parses it. Returns None when the file cannot be read."""
    df = load_csv(file_path)
    if df is None:
        return None

    parsed = parse_inventory_frame(df)
    logger.info(
        f"✅ Parsed {file_path.name}: {len(parsed.items)} items, {len(parsed.rows)} stock rows."
    )
    return parsed


def resolve_locations(
    rows: Iterable[ImportedStockRow], locations: Iterable[Location]
) -> tuple[list[Stock], list[SkippedStockEntry]]:
    """
    Maps location names (case-insensitive) to location IDs.
    Rows naming an unknown location are rejected one by one, not the whole import.
    """
    location_ids = {location.name.upper(): location.id for location in locations}
    stock: list[Stock] = []
    skipped: list[SkippedStockEntry] = []

    for row in rows:
        location_id = location_ids.get(row.location_name.upper())
        if location_id is None:
            skipped.append(
                SkippedStockEntry(item_id=row.item_id, location_name=row.location_name)
            )
            continue
        stock.append(
            Stock(
                item_id=row.item_id,
                location_id=location_id,
                quantity=row.quantity,
                sub_location_detail=row.sub_location_detail,
                source=row.source,
                po_number=row.po_number,
                date_received=row.date_received,
            )
        )

    return stock, skipped
