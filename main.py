import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

import pandas as pd

from stockroom import mutations, settings
from stockroom.exceptions import InventoryError, StoreError
from stockroom.logger import setup_logger
from stockroom.pipelines.exports import LabelPipeline, ListingsExportPipeline, ReportPipeline
from stockroom.pipelines.imports import ImportPipeline
from stockroom.schemas import GroupMode, InventoryView, SortDirection, SortKey, ViewState
from stockroom.seed_data import default_locations
from stockroom.session import InventorySession
from stockroom.store import get_store

logger = logging.getLogger("stockroom.main")

TABLE_COLUMNS = ["ID", "DESCRIPTION", "CATEGORY", "SUB_CATEGORY", "QTY", "ETR", "LOW"]

# Commands that change the stored state.
EDIT_COMMANDS = {"import", "move", "delete"}


def _item_ids(value: Optional[str]) -> frozenset[str]:
    if not value:
        return frozenset()
    return frozenset(part.strip() for part in value.split(",") if part.strip())


def view_frame(view: InventoryView) -> pd.DataFrame:
    """The inventory table as printed by the `view` command."""
    if view.group_mode == GroupMode.LOCATION:
        records = [
            {
                "GROUP": group.key,
                "ID": row.item.id,
                "DESCRIPTION": row.item.description,
                "CATEGORY": row.item.category,
                "SUB_CATEGORY": row.item.sub_category or "",
                "QTY": row.quantity,
                "ETR": row.item.etr,
                "LOW": "!" if row.item.is_low_stock else "",
            }
            for group in view.location_groups
            for row in group.rows
        ]
        return pd.DataFrame(records, columns=["GROUP", *TABLE_COLUMNS])

    if view.group_mode == GroupMode.CATEGORY:
        grouped = [(group.key, item) for group in view.category_groups for item in group.items]
    else:
        grouped = [(None, item) for item in view.items]

    records = [
        {
            "GROUP": key,
            "ID": item.id,
            "DESCRIPTION": item.description,
            "CATEGORY": item.category,
            "SUB_CATEGORY": item.sub_category or "",
            "QTY": item.quantity_in_view,
            "ETR": item.etr,
            "LOW": "!" if item.is_low_stock else "",
        }
        for key, item in grouped
    ]
    columns = TABLE_COLUMNS if view.group_mode == GroupMode.NONE else ["GROUP", *TABLE_COLUMNS]
    return pd.DataFrame(records, columns=columns)


def cmd_view(args, session: InventorySession) -> int:
    session.view_state = ViewState(
        search_text=args.search,
        category_filter=args.category,
        location_filter=args.location,
        sort_key=SortKey(args.sort),
        sort_direction=SortDirection.DESC if args.desc else SortDirection.ASC,
        group_mode=GroupMode(args.group),
    )
    view = session.view()
    df = view_frame(view)
    print(df.to_string(index=False) if not df.empty else "No items match the current filters.")
    print(f"\n{len(view.items)} of {view.total_items} items shown. Low stock: {view.low_stock_count}")
    return 0


def cmd_import(args, session: InventorySession) -> int:
    path = Path(args.path)
    # Bare file names are looked up in the input folder.
    if not path.is_absolute() and not path.exists():
        path = settings.INPUT_DIR / path
    pipeline = ImportPipeline(path, session.store, session.locations)
    return 0 if pipeline.run() is not None else 1


def cmd_export(args, session: InventorySession) -> int:
    pipeline = ListingsExportPipeline(session.store, session.locations)
    return 0 if pipeline.run() is not None else 1


def cmd_report(args, session: InventorySession) -> int:
    pipeline = ReportPipeline(
        session.store,
        report_type=args.type,
        value=args.value,
        selected_ids=_item_ids(args.ids),
        locations=session.locations,
        test_mode=args.test_mode,
    )
    return 0 if pipeline.run() is not None else 1


def cmd_labels(args, session: InventorySession) -> int:
    pipeline = LabelPipeline(
        session.store,
        print_type=args.type,
        value=args.value,
        selected_ids=_item_ids(args.ids),
        locations=session.locations,
    )
    return 0 if pipeline.run() is not None else 1


def cmd_move(args, session: InventorySession) -> int:
    session.dispatch(
        mutations.move_stock,
        args.item_id,
        args.from_location,
        args.to_location,
        args.quantity,
        args.sub_location,
    )
    logger.info(f"✅ Moved {args.quantity} of '{args.item_id}'.")
    return 0


def cmd_delete(args, session: InventorySession) -> int:
    session.dispatch(mutations.delete_item, args.item_id)
    logger.info(f"✅ Deleted '{args.item_id}'.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Stockroom inventory tools.")
    parser.add_argument(
        "--backend",
        choices=["memory", "file", "remote"],
        default=settings.STORE_BACKEND,
        help="Where the inventory state lives (default: STORE_BACKEND).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    view = subparsers.add_parser("view", help="Print the inventory table.")
    view.add_argument("--search", default="", help="Substring of ID, description or category.")
    view.add_argument(
        "--category", default="", help='Category, or "CATEGORY|SUB_CATEGORY".'
    )
    view.add_argument("--location", default="", help="Location ID, e.g. wh-c.")
    view.add_argument("--sort", choices=[key.value for key in SortKey], default=SortKey.ID.value)
    view.add_argument("--desc", action="store_true", help="Sort descending.")
    view.add_argument(
        "--group", choices=[mode.value for mode in GroupMode], default=GroupMode.NONE.value
    )
    view.set_defaults(handler=cmd_view)

    import_cmd = subparsers.add_parser("import", help="Import an inventory CSV.")
    import_cmd.add_argument("path", help="CSV file with ID, DESCRIPTION, LOCATION and QTY columns.")
    import_cmd.set_defaults(handler=cmd_import)

    export = subparsers.add_parser("export", help="Export all listings to CSV.")
    export.set_defaults(handler=cmd_export)

    report = subparsers.add_parser("report", help="Generate an inventory report.")
    report.add_argument(
        "--type", choices=["all", "category", "selected", "single", "low-alert"], default="all"
    )
    report.add_argument("--value", help="Category name or item ID, depending on --type.")
    report.add_argument("--ids", help="Comma-separated item IDs for --type selected.")
    report.add_argument("--test-mode", action="store_true", help="Skip the webhook post.")
    report.set_defaults(handler=cmd_report)

    labels = subparsers.add_parser("labels", help="Prepare barcode label data.")
    labels.add_argument("--type", choices=["selected", "category", "location"], default="selected")
    labels.add_argument("--value", help="Category name or location ID, depending on --type.")
    labels.add_argument("--ids", help="Comma-separated item IDs for --type selected.")
    labels.set_defaults(handler=cmd_labels)

    move = subparsers.add_parser("move", help="Move stock between locations.")
    move.add_argument("item_id")
    move.add_argument("from_location", help="Source location ID.")
    move.add_argument("to_location", help="Destination location ID.")
    move.add_argument("quantity", type=int)
    move.add_argument("--sub-location", default=None, help="Shelf, rack or room at the destination.")
    move.set_defaults(handler=cmd_move)

    delete = subparsers.add_parser("delete", help="Delete an item and all of its stock.")
    delete.add_argument("item_id")
    delete.set_defaults(handler=cmd_delete)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logger("stockroom")

    if args.backend == "memory" and args.command in EDIT_COMMANDS:
        logger.warning(
            f"⚠️ The memory backend is discarded on exit, so '{args.command}' would save nothing. "
            "Use --backend file or --backend remote."
        )
        return 1

    try:
        session = InventorySession(get_store(args.backend), default_locations())
        return args.handler(args, session)
    except InventoryError as e:
        logger.error(f"❌ {e}")
        return 1
    except StoreError as e:
        logger.error(f"❌ Storage error: {e}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
