import logging
from pathlib import Path
from typing import Optional, Sequence

import pandas as pd
from pydantic import ValidationError

from stockroom import mutations, parsers, utils
from stockroom.exceptions import ImportFormatError
from stockroom.pipeline import DataPipeline
from stockroom.schemas import AppState, ImportResult, Location
from stockroom.seed_data import default_locations
from stockroom.store import InventoryStore

logger = logging.getLogger(__name__)

# How many skipped stock entries are listed by name.
SKIPPED_EXAMPLES = 5


class ImportPipeline(DataPipeline):
    """
    Reads an inventory CSV and merges it into the stored state: items are
    upserted and the stock of every imported item is replaced.
    """

    posts_to_webhook = False

    def __init__(
        self,
        csv_path: Path,
        store: InventoryStore,
        locations: Optional[Sequence[Location]] = None,
    ):
        super().__init__("import", store)
        self.csv_path = Path(csv_path)
        self.locations = list(locations) if locations is not None else default_locations()
        self.new_state: Optional[AppState] = None

    def extract(self) -> pd.DataFrame | None:
        logger.info(f"--- Reading import file: {self.csv_path.name} ---")
        df = utils.load_csv(self.csv_path)
        if df is not None:
            self.status_summary["File"] = self.csv_path.name
        return df

    def transform(self, df: pd.DataFrame) -> ImportResult | None:
        try:
            parsed = parsers.parse_inventory_frame(df)
        except (ImportFormatError, ValidationError) as e:
            logger.error(f"❌ Import file rejected: {e}")
            return None

        stock, skipped = parsers.resolve_locations(parsed.rows, self.locations)
        self.status_summary.update(
            {
                "Rows read": parsed.rows_read,
                "Invalid rows": parsed.rows_invalid,
                "Items": len(parsed.items),
                "Stock rows": len(stock),
                "Skipped stock rows": len(skipped),
            }
        )
        return ImportResult(
            items=parsed.items,
            stock=stock,
            skipped=skipped,
            rows_read=parsed.rows_read,
            rows_invalid=parsed.rows_invalid,
        )

    def load(self, result: ImportResult) -> ImportResult:
        self.log_status_summary()

        if not result.items:
            logger.warning("⚠️ No valid rows to import. State left unchanged.")
            return result

        self.new_state = self.store.apply(mutations.import_data, result.items, result.stock)

        if result.skipped:
            examples = "\n".join(
                f"  > Item '{entry.item_id}' for location '{entry.location_name}'"
                for entry in result.skipped[:SKIPPED_EXAMPLES]
            )
            logger.warning(
                f"⚠️ Data imported, but {len(result.skipped)} stock entries were skipped "
                f"due to unrecognized warehouse locations.\nExamples:\n{examples}\n"
                f"Please use one of the predefined locations: "
                f"{', '.join(location.name for location in self.locations)}."
            )
        else:
            logger.info("✅ Data imported successfully!")
        return result
