import logging
import json
import pandas as pd
import requests
from pathlib import Path
from typing import Optional

from . import settings
from . import utils
from .schemas import ImportStats, SyncReport

logger = logging.getLogger(__name__)


def save_outputs(report: SyncReport, output_dir: Optional[Path] = None) -> Path:
    """Saves the sync tally to CSV and conditionally to JSON, with dated filenames."""
    output_dir = output_dir or settings.OUTPUT_DIR
    output_dir.mkdir(parents=True, exist_ok=True)
    date_suffix = utils.get_date_suffix_for_filename()

    csv_path = output_dir / f"{settings.SYNC_REPORT_FILENAME_BASE}_{date_suffix}.csv"
    json_path = output_dir / f"{settings.SYNC_REPORT_FILENAME_BASE}_{date_suffix}.json"

    row = report.model_dump(mode="json", by_alias=True)
    row["unbalancedInvoiceIds"] = ";".join(report.unbalanced_invoice_ids)
    row["summary"] = report.summary
    pd.DataFrame([row]).to_csv(csv_path, index=False)
    logger.info(f"✅ Sync report saved to: {csv_path}")

    if settings.SAVE_JSON_OUTPUT:
        with open(json_path, "w", encoding="utf-8") as f:
            payload = report.model_dump(mode="json", by_alias=True)
            payload["summary"] = report.summary
            json.dump(payload, f, indent=2, default=str)
        logger.info(f"✅ JSON output saved to: {json_path}")
    else:
        logger.info("INFO: Skipping JSON file save as per configuration.")

    return csv_path


def post_to_webhook(report: SyncReport | ImportStats, report_type: str) -> bool:
    """
    Posts a run report to the configured webhook.
    Delivery problems are logged, never raised: the store writes already happened.
    """
    if not settings.WEBHOOK_URL:
        logger.warning("⚠️ WEBHOOK_URL not set. Skipping webhook post.")
        return False

    logger.info(f"🚀 Posting {report_type} report to webhook: {settings.WEBHOOK_URL}")

    payload = {
        "reportType": report_type,
        "report": report.model_dump(mode="json", by_alias=True),
    }
    if isinstance(report, SyncReport):
        payload["summary"] = report.summary

    try:
        response = requests.post(settings.WEBHOOK_URL, json=payload, timeout=15)
        response.raise_for_status()
        logger.info("✅ Report successfully posted to webhook.")
        return True
    except requests.exceptions.RequestException as e:
        logger.error(f"❌ Error posting to webhook: {e}")
        return False
