import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import pandas as pd
from pydantic import BaseModel

from . import data_handler
from .store import InventoryStore

logger = logging.getLogger(__name__)


class DataPipeline(ABC):
    """
    Abstract base class for the import, export and report jobs.
    Follows an Extract -> Transform -> Load (ETL) pattern.
    """

    # Set to False for outputs that are only written to disk.
    posts_to_webhook = True

    def __init__(
        self,
        report_type: str,
        store: InventoryStore,
        filename_base: Optional[str] = None,
        test_mode: bool = False,
    ):
        self.report_type = report_type
        self.store = store
        self.filename_base = filename_base or f"{report_type}_report"
        self.test_mode = test_mode
        # Counts and parameters of this run, logged at the end and sent as webhook metadata
        self.status_summary: dict[str, Any] = {}
        self.output_path = None

    def run(self) -> Any:
        """
        Orchestrates the pipeline execution. Returns whatever load() produced,
        or None when the run stopped early.
        """
        logger.info(f"🚀 STEP: {self.report_type.upper()}")
        logger.info("-" * 30)

        # --- 1. EXTRACT ---
        raw_data = self.extract()
        if raw_data is None:
            logger.error(f"❌ Nothing could be extracted for {self.report_type}.")
            return None
        if raw_data.empty:
            logger.warning(f"⚠️ No data extracted for {self.report_type}.")

        # --- 2. TRANSFORM ---
        validated_data = self.transform(raw_data)
        if validated_data is None:
            logger.error(f"❌ Transformation failed for {self.report_type}.")
            return None

        # --- 3. LOAD ---
        result = self.load(validated_data)

        logger.info(f"✅ {self.report_type.capitalize()} pipeline finished.")
        logger.info("=" * 60)
        return result

    @abstractmethod
    def extract(self) -> pd.DataFrame | None:
        """
        Reads the source (an import file or the stored state) into a DataFrame.
        Should also populate self.status_summary.
        """
        pass

    @abstractmethod
    def transform(self, df: pd.DataFrame) -> Any:
        """Validates the extracted rows. Returns None when validation fails."""
        pass

    def to_frame(self, validated_data: list[Any]) -> pd.DataFrame:
        return pd.DataFrame(
            [
                row.model_dump(by_alias=True) if isinstance(row, BaseModel) else row
                for row in validated_data
            ]
        )

    def log_status_summary(self) -> None:
        if self.status_summary:
            logger.info("--- Final Status Summary ---")
            for key, value in self.status_summary.items():
                logger.info(f"{key}: {value}")

    def load(self, validated_data: list[Any]) -> list[Any]:
        """
        Saves data to disk and posts to webhook.
        """
        self.log_status_summary()

        if validated_data:
            self.output_path = data_handler.save_outputs(
                self.to_frame(validated_data), self.filename_base, validated_data
            )
        else:
            logger.warning("No data to save to disk.")

        if not self.posts_to_webhook:
            return validated_data

        if not self.test_mode:
            data_handler.post_to_webhook(
                validated_data,
                metadata=self.status_summary,
                report_type=self.report_type,
            )
        else:
            logger.info("🧪 Test Mode: Skipping webhook post.")
        return validated_data
