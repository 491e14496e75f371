"""
Read-side helpers for presenting records.

None of these change what is stored. Keeping one record per day, for
example, is a display policy and the store still holds every blob.
"""
import logging
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Tuple, Union

from pod_records.core.datetime_utils import chronological_key
from pod_records.core.exceptions import StoreUnavailableError
from pod_records.core.feature_registry import FeatureDefinition, resolve_feature
from pod_records.models.record import Record
from pod_records.services.record_store import RecordStoreClient

logger = logging.getLogger(__name__)

# (days before now, fields)
SAMPLE_DATA: Dict[str, List[Tuple[int, Dict[str, str]]]] = {
    "vaccination": [
        (5, {
            "vaccine": "COVID-19 Booster",
            "provider": "City Medical Center",
            "professional": "Dr. Smith",
            "cost": "$45.00",
            "notes": "Pfizer booster shot",
        }),
        (180, {
            "vaccine": "Flu Shot",
            "provider": "Community Pharmacy",
            "professional": "Pharmacist Johnson",
            "cost": "$25.00",
            "notes": "Annual influenza vaccine",
        }),
        (365, {
            "vaccine": "COVID-19 Second Dose",
            "provider": "City Medical Center",
            "professional": "Dr. Smith",
            "cost": "$0.00",
            "notes": "Pfizer second dose",
        }),
    ],
}


def sort_records(records: List[Record], descending: bool = False) -> List[Record]:
    """Return a new list ordered by timestamp."""
    return sorted(records, key=lambda r: chronological_key(r.timestamp), reverse=descending)


def latest_per_day(records: List[Record]) -> List[Record]:
    """
    Keep only the latest record of each calendar day, oldest day first.

    On equal timestamps the record appearing later in ``records`` wins.
    """
    latest: Dict[date, Record] = {}
    for record in records:
        day = record.timestamp.date()
        current = latest.get(day)
        if current is None or chronological_key(record.timestamp) >= chronological_key(current.timestamp):
            latest[day] = record
    return [latest[day] for day in sorted(latest)]


def sample_records(
    feature: Union[str, FeatureDefinition], now: Optional[datetime] = None
) -> List[Record]:
    """Demonstration records for a feature. Empty for features without samples."""
    feature = resolve_feature(feature)
    now = now or datetime.now()
    return [
        Record(timestamp=now - timedelta(days=days_ago), fields=dict(fields))
        for days_ago, fields in SAMPLE_DATA.get(feature.name, [])
    ]


async def load_records_with_fallback(
    store: RecordStoreClient, feature: Union[str, FeatureDefinition]
) -> Tuple[List[Record], bool]:
    """
    List a feature's records, falling back to sample data when the Pod is unavailable.

    Returns:
        (records, from_sample). ``from_sample`` is True only when the sample
        set was returned, so an empty list always means "no records".

    Raises:
        NotLoggedInError: Auth failures are not masked by sample data.
    """
    feature = resolve_feature(feature)
    try:
        return await store.list_records(feature), False
    except StoreUnavailableError as e:
        logger.warning(
            "Pod unavailable, showing sample data",
            extra={"feature": feature.name, "error": e.detail},
        )
        return sample_records(feature), True

