import json
import logging
from pathlib import Path
from typing import Any, Optional, Sequence

import pandas as pd
import requests
from pydantic import BaseModel

from . import settings
from . import utils

logger = logging.getLogger(__name__)


def _to_json_records(records: Sequence[Any]) -> list[Any]:
    return [
        record.model_dump(mode="json", by_alias=True) if isinstance(record, BaseModel) else record
        for record in records
    ]


def save_outputs(
    df: pd.DataFrame, filename_base: str, records: Optional[Sequence[Any]] = None
) -> Path:
    """Saves the data to CSV and conditionally to JSON, with dated filenames."""
    settings.OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    date_suffix = utils.get_date_suffix_for_filename()

    csv_path = settings.OUTPUT_DIR / f"{filename_base}_{date_suffix}.csv"
    json_path = settings.OUTPUT_DIR / f"{filename_base}_{date_suffix}.json"

    # The BOM keeps Excel from misreading the file.
    df.to_csv(csv_path, index=False, encoding="utf-8-sig")
    logger.info(f"✅ Report saved to: {csv_path}")

    if settings.SAVE_JSON_OUTPUT:
        json_data = _to_json_records(records) if records is not None else df.to_dict("records")
        with open(json_path, "w", encoding="utf-8") as f:
            json.dump(json_data, f, indent=2, default=str)
        logger.info(f"✅ JSON output saved to: {json_path}")
    else:
        logger.info("INFO: Skipping JSON file save as per configuration.")

    return csv_path


def post_to_webhook(
    records: Sequence[Any], metadata: Optional[dict[str, Any]] = None, report_type: str = "inventory"
) -> bool:
    """
    Posts the records and a metadata summary to the webhook.
    Returns True when the webhook accepted the payload.
    """
    if not settings.WEBHOOK_URL:
        logger.warning("⚠️ WEBHOOK_URL not set. Skipping webhook post.")
        return False

    logger.info(f"🚀 Posting {report_type} data to webhook: {settings.WEBHOOK_URL}")

    payload = {
        "reportType": report_type,
        "reportData": _to_json_records(records),
        "metadata": metadata or {},
    }

    try:
        response = requests.post(settings.WEBHOOK_URL, json=payload, timeout=15)
        response.raise_for_status()
        logger.info("✅ Data successfully posted to webhook.")
        return True
    except requests.exceptions.RequestException as e:
        logger.error(f"❌ Error posting to webhook: {e}")
        return False
