import logging
from datetime import date
from typing import AbstractSet, Any, Optional, Sequence

import pandas as pd
from pydantic import ValidationError

from stockroom import reports, settings
from stockroom.exceptions import MissingFieldError
from stockroom.pipeline import DataPipeline
from stockroom.schemas import Location, PrintableLabel, ReportRow
from stockroom.seed_data import default_locations
from stockroom.store import InventoryStore

logger = logging.getLogger(__name__)


def _validate_rows(df: pd.DataFrame, model) -> list[Any] | None:
    try:
        logger.info("Validating data against schema...")
        validated_data = [model.model_validate(row) for row in df.to_dict("records")]
        logger.info("✅ Data validation successful.")
        return validated_data
    except ValidationError as e:
        logger.error("❌ Data validation failed!")
        logger.error(e)
        return None


class ListingsExportPipeline(DataPipeline):
    """The full listings sheet, in the same layout the importer reads."""

    posts_to_webhook = False

    def __init__(
        self,
        store: InventoryStore,
        locations: Optional[Sequence[Location]] = None,
        usage_years: Optional[Sequence[int]] = None,
    ):
        super().__init__("listings", store, filename_base=settings.LISTINGS_FILENAME_BASE)
        self.locations = list(locations) if locations is not None else default_locations()
        self.usage_years = list(usage_years) if usage_years is not None else settings.USAGE_YEARS

    def extract(self) -> pd.DataFrame | None:
        state = self.store.load()
        if not state.items:
            logger.warning("⚠️ No inventory to export.")
            return None
        self.status_summary = {"Items": len(state.items), "Stock rows": len(state.stock)}
        return reports.build_listing_frame(state, self.locations, self.usage_years)

    def transform(self, df: pd.DataFrame) -> list[dict[str, Any]]:
        return df.to_dict("records")

    def to_frame(self, validated_data: list[dict[str, Any]]) -> pd.DataFrame:
        return pd.DataFrame(validated_data, columns=reports.listing_columns(self.usage_years))


class ReportPipeline(DataPipeline):
    """One report row per stock row of the chosen items; posted to the webhook."""

    def __init__(
        self,
        store: InventoryStore,
        report_type: reports.ReportType = "all",
        value: Optional[str] = None,
        selected_ids: AbstractSet[str] = frozenset(),
        locations: Optional[Sequence[Location]] = None,
        test_mode: bool = False,
    ):
        super().__init__(
            report_type, store, filename_base=settings.REPORT_FILENAME_BASE, test_mode=test_mode
        )
        self.value = value
        self.selected_ids = selected_ids
        self.locations = list(locations) if locations is not None else default_locations()

    def extract(self) -> pd.DataFrame | None:
        state = self.store.load()
        try:
            items = reports.select_report_items(
                state, self.report_type, self.value, self.selected_ids
            )
        except MissingFieldError as e:
            logger.error(f"❌ {e}")
            return None
        if not items:
            logger.warning("⚠️ No items to report.")
            return None

        rows = reports.generate_report_data(items, state.stock, self.locations)
        self.status_summary = {
            "Report type": self.report_type,
            "Filter": self.value or "",
            "Items": len(items),
            "Rows": len(rows),
            "Generated": date.today().isoformat(),
        }
        return reports.report_frame(rows)

    def transform(self, df: pd.DataFrame) -> list[ReportRow] | None:
        return _validate_rows(df, ReportRow)


class LabelPipeline(DataPipeline):
    """Label data for a barcode sheet. Rendering the barcodes is left to the printer software."""

    posts_to_webhook = False

    def __init__(
        self,
        store: InventoryStore,
        print_type: reports.PrintType = "selected",
        value: Optional[str] = None,
        selected_ids: AbstractSet[str] = frozenset(),
        locations: Optional[Sequence[Location]] = None,
    ):
        super().__init__("labels", store, filename_base=settings.LABELS_FILENAME_BASE)
        self.print_type = print_type
        self.value = value
        self.selected_ids = selected_ids
        self.locations = list(locations) if locations is not None else default_locations()

    def extract(self) -> pd.DataFrame | None:
        state = self.store.load()
        try:
            labels = reports.build_labels(
                state, self.locations, self.print_type, self.value, self.selected_ids
            )
        except MissingFieldError as e:
            logger.error(f"❌ {e}")
            return None

        self.status_summary = {
            "Print type": self.print_type,
            "Filter": self.value or "",
            "Labels": len(labels),
        }
        return pd.DataFrame([label.model_dump(by_alias=True) for label in labels])

    def transform(self, df: pd.DataFrame) -> list[PrintableLabel] | None:
        if df.empty:
            return []
        # Labels without a sub-location must come back as None, not NaN.
        df = df.astype(object).where(pd.notna(df), None)
        return _validate_rows(df, PrintableLabel)
