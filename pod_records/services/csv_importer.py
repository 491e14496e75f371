"""
CSV import into one feature's directory.

Import steps:
    1. Read the CSV; header names are trimmed and lower-cased.
    2. Every required column must be present, else MissingColumnsError
       before any row is looked at.
    3. Each row becomes a Record. Rows with a blank or invalid timestamp or
       required value are skipped with a warning.
    4. Rows sharing a canonical timestamp are reported once; the last one wins.
    5. Optionally, existing blobs on the same dates are offered to
       ``on_conflict`` and deleted when it agrees.
    6. Every record is written through RecordStoreClient.save_record.

Import is not transactional. The boolean result says whether every valid
row was saved; details are only in the log.
"""
import csv
import inspect
import io
import logging
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Union

from pod_records.core.datetime_utils import normalise_timestamp, parse_timestamp
from pod_records.core.exceptions import (
    MissingColumnsError,
    RowValidationError,
    StoreUnavailableError,
    ValidationError,
)
from pod_records.core.feature_registry import FeatureDefinition, resolve_feature
from pod_records.core.logging_config import operation_context
from pod_records.models.record import Record
from pod_records.services.record_store import RecordStoreClient

logger = logging.getLogger(__name__)

ConflictHandler = Callable[[List[str]], Union[bool, Awaitable[bool]]]


def read_csv(content: str) -> List[List[str]]:
    """Split CSV text into rows, dropping blank lines."""
    return [row for row in csv.reader(io.StringIO(content)) if any(cell.strip() for cell in row)]


def check_columns(feature: FeatureDefinition, headers: Sequence[str]) -> None:
    """
    Raises:
        MissingColumnsError: If any required column is absent from ``headers``.
    """
    missing = [col for col in feature.required_columns if col.lower() not in headers]
    if missing:
        raise MissingColumnsError(
            missing,
            required=feature.required_columns,
            optional=feature.optional_columns,
            feature=feature.name,
        )


def parse_row(
    feature: FeatureDefinition, headers: Sequence[str], row: Sequence[str], row_number: int
) -> Record:
    """
    Build a Record from one data row.

    Args:
        feature: Feature the row belongs to
        headers: Normalised header names
        row: Cell values, padded or truncated to the header length by the caller
        row_number: 1-based data row number used in messages

    Raises:
        RowValidationError: Blank or invalid timestamp, or a blank or invalid
            required value.
    """
    cells = {header: value.strip() for header, value in zip(headers, row)}

    raw_timestamp = cells.get(feature.timestamp_column.lower(), "")
    if not raw_timestamp:
        raise RowValidationError(row_number, "missing required timestamp")
    try:
        timestamp = parse_timestamp(normalise_timestamp(raw_timestamp))
    except ValueError:
        raise RowValidationError(row_number, f"invalid timestamp '{raw_timestamp}'")

    fields: Dict[str, object] = {}
    for field_def in feature.fields:
        raw = cells.get(field_def.name.lower(), "")
        if field_def.required and not raw:
            raise RowValidationError(row_number, f"missing required field '{field_def.name}'")
        try:
            fields[field_def.name] = field_def.from_csv(raw)
        except ValueError:
            if field_def.required:
                raise RowValidationError(
                    row_number, f"invalid {field_def.type} '{raw}' for '{field_def.name}'"
                )
            logger.warning(
                f"Row {row_number}: invalid {field_def.type} '{raw}' for '{field_def.name}', using default"
            )
            fields[field_def.name] = field_def.default()

    return Record(timestamp=timestamp, fields=fields)


def parse_csv(feature: FeatureDefinition, content: str) -> List[Record]:
    """
    Parse CSV text into records, one per distinct canonical timestamp.

    Raises:
        ValidationError: If the file has no header row.
        MissingColumnsError: If required columns are missing.
    """
    rows = read_csv(content)
    if not rows:
        raise ValidationError("CSV file is empty", feature=feature.name)

    headers = [h.strip().lower() for h in rows[0]]
    check_columns(feature, headers)

    by_timestamp: Dict[str, Record] = {}
    duplicates: List[str] = []
    skipped = 0

    for row_number, row in enumerate(rows[1:], start=1):
        padded = list(row) + [""] * (len(headers) - len(row))
        try:
            record = parse_row(feature, headers, padded, row_number)
        except RowValidationError as e:
            logger.warning(e.detail, extra={"feature": feature.name})
            skipped += 1
            continue

        key = record.timestamp.isoformat()
        if key in by_timestamp and key not in duplicates:
            duplicates.append(key)
        # last row wins, at its own position
        by_timestamp.pop(key, None)
        by_timestamp[key] = record

    if duplicates:
        logger.warning(
            f"Duplicate timestamps found: {', '.join(duplicates)}. "
            "Only the last entry for each timestamp will be saved.",
            extra={"feature": feature.name},
        )
    if skipped:
        logger.info("Skipped invalid rows", extra={"feature": feature.name, "skipped": skipped})

    return list(by_timestamp.values())


async def _confirm_override(on_conflict: ConflictHandler, names: List[str]) -> bool:
    decision = on_conflict(names)
    if inspect.isawaitable(decision):
        decision = await decision
    return bool(decision)


async def import_from_csv(
    store: RecordStoreClient,
    feature: Union[str, FeatureDefinition],
    source: Optional[Union[str, Path]] = None,
    *,
    content: Optional[str] = None,
    on_conflict: Optional[ConflictHandler] = None,
) -> bool:
    """
    Import a CSV file (``source``) or CSV text (``content``) into the Pod.

    Args:
        store: Record store to write through
        feature: Feature (or its name) the rows belong to
        source: Path of the CSV file
        content: CSV text, used instead of ``source``
        on_conflict: Called with the names of existing blobs on the same
            dates. Returning False aborts; True deletes them first.

    Returns:
        True if every valid row was saved and at least one was.

    Raises:
        MissingColumnsError: Required columns are missing; nothing is written.
        ValidationError: The CSV is empty.
        NotLoggedInError: No Pod session.
    """
    feature = resolve_feature(feature)
    if content is None:
        if source is None:
            raise ValueError("Either source or content is required")
        with open(source, "r", newline="", encoding="utf-8-sig") as f:
            content = f.read()

    with operation_context("import_csv"):
        records = parse_csv(feature, content)

        if records and on_conflict is not None:
            try:
                conflicts = await store.find_conflicting_blobs(
                    feature, [record.timestamp for record in records]
                )
            except StoreUnavailableError as e:
                logger.warning(
                    "Unable to check for existing records, importing anyway",
                    extra={"feature": feature.name, "error": e.detail},
                )
                conflicts = []

            if conflicts:
                if not await _confirm_override(on_conflict, conflicts):
                    logger.info("Import cancelled by caller", extra={"feature": feature.name})
                    return False
                deleted = await store.delete_blobs(feature, conflicts)
                logger.info(
                    "Deleted existing records before import",
                    extra={"feature": feature.name, "deleted": deleted},
                )

        all_success = True
        saved = 0
        for record in records:
            try:
                ok = await store.save_record(feature, record)
            except StoreUnavailableError as e:
                logger.error(
                    "Failed to save imported record",
                    extra={"feature": feature.name, "timestamp": record.timestamp.isoformat(), "error": e.detail},
                )
                ok = False
            if ok:
                saved += 1
            else:
                all_success = False

        logger.info(
            "Import finished",
            extra={"feature": feature.name, "saved": saved, "total": len(records)},
        )
        return all_success and saved > 0
