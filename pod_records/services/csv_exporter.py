"""
CSV export of one feature's records.
"""
import csv
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Union

from pod_records.core.datetime_utils import normalise_timestamp
from pod_records.core.exceptions import NotLoggedInError, StoreUnavailableError
from pod_records.core.feature_registry import FeatureDefinition, resolve_feature
from pod_records.core.logging_config import operation_context
from pod_records.models.record import Record
from pod_records.services.record_store import RecordStoreClient
from pod_records.services.record_views import sort_records

logger = logging.getLogger(__name__)


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def record_to_row(feature: FeatureDefinition, record: Record) -> Dict[str, str]:
    """Project a record onto the feature's CSV columns. Missing fields are blank."""
    row = {feature.timestamp_column: normalise_timestamp(record.timestamp)}
    for name in feature.field_names:
        row[name] = _cell(record.fields.get(name))
    return row


def write_csv(feature: FeatureDefinition, records: List[Record], file_path: Path) -> None:
    """
    Write records with a header row of ``feature.csv_columns``.

    Args:
        feature: Feature whose columns are written
        records: Records in the order they should appear
        file_path: Path where the CSV file should be created
    """
    with open(file_path, "w", newline="", encoding="utf-8") as csvfile:
        writer = csv.DictWriter(csvfile, fieldnames=list(feature.csv_columns))
        writer.writeheader()
        for record in records:
            writer.writerow(record_to_row(feature, record))


async def export_to_csv(
    store: RecordStoreClient,
    feature: Union[str, FeatureDefinition],
    destination: Union[str, Path],
) -> bool:
    """
    Export all records of a feature to a CSV file, oldest first.

    Returns:
        True when a file was written. False when there are no records, the
        Pod cannot be reached or no session exists (all logged).
    """
    feature = resolve_feature(feature)
    with operation_context("export_csv"):
        try:
            records = await store.list_records(feature)
        except (StoreUnavailableError, NotLoggedInError) as e:
            logger.error("Export failed", extra={"feature": feature.name, "error": e.detail})
            return False

        if not records:
            logger.warning("No records to export", extra={"feature": feature.name})
            return False

        path = Path(destination)
        write_csv(feature, sort_records(records), path)
        logger.info(
            "Exported records",
            extra={"feature": feature.name, "count": len(records), "path": str(path)},
        )
        return True
