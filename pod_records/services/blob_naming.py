"""
Deterministic blob names.

    <file_prefix>_<YYYY-MM-DDTHH-MM-SS>.json.enc.<ext>

The timestamp part is the record's own wall-clock time to the second with
':' replaced by '-', so the same timestamp always gives the same name.
Blobs written by older clients used an underscore between date and time
(``YYYY-MM-DD_HH-MM-SS``); ``legacy_blob_name`` produces that form.
"""
import re
from datetime import datetime
from typing import Optional

from pod_records.core.config import settings
from pod_records.core.datetime_utils import (
    format_timestamp_for_filename,
    format_timestamp_for_filename_with_underscore,
)

_DATE_RE = re.compile(r"(\d{4}-\d{2}-\d{2})[T_]\d{2}-\d{2}-\d{2}")


def blob_name(prefix: str, timestamp: datetime, extension: Optional[str] = None) -> str:
    """
    Example:
        >>> blob_name("vaccination", datetime(2025, 1, 21, 23, 5, 42))
        'vaccination_2025-01-21T23-05-42.json.enc.ttl'
    """
    ext = extension or settings.pod_blob_extension
    return f"{prefix}_{format_timestamp_for_filename(timestamp)}.json.enc.{ext}"


def legacy_blob_name(prefix: str, timestamp: datetime, extension: Optional[str] = None) -> str:
    ext = extension or settings.pod_blob_extension
    return f"{prefix}_{format_timestamp_for_filename_with_underscore(timestamp)}.json.enc.{ext}"


def blob_date(name: str, prefix: str) -> Optional[str]:
    """
    The ``YYYY-MM-DD`` part of a blob name, or None if the name does not
    start with ``<prefix>_`` followed by a filename timestamp.
    """
    head = f"{prefix}_"
    if not name.startswith(head):
        return None
    match = _DATE_RE.match(name[len(head):])
    return match.group(1) if match else None


def has_store_suffix(name: str, suffix: Optional[str] = None) -> bool:
    """True for blobs written by this client (default suffix ``.enc.ttl``)."""
    return name.endswith(suffix or settings.pod_file_suffix)
