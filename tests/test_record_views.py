"""
Tests for record views: sorting, latest-per-day and the sample fallback.
"""
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import httpx

from pod_records.clients.pod_client import SolidPodClient
from pod_records.core.exceptions import NotLoggedInError
from pod_records.models.record import Record
from pod_records.services.record_store import RecordStoreClient
from pod_records.services.record_views import (
    latest_per_day,
    load_records_with_fallback,
    sample_records,
    sort_records,
)


def _record(ts, **fields):
    return Record(timestamp=ts, fields=fields)


def test_sort_records_both_directions():
    a = _record(datetime(2025, 1, 3))
    b = _record(datetime(2025, 1, 1))
    c = _record(datetime(2025, 1, 2))
    assert sort_records([a, b, c]) == [b, c, a]
    assert sort_records([a, b, c], descending=True) == [a, c, b]


def test_latest_per_day_keeps_latest_reading():
    morning = _record(datetime(2025, 1, 21, 8, 0), systolic=130.0)
    evening = _record(datetime(2025, 1, 21, 20, 0), systolic=120.0)
    next_day = _record(datetime(2025, 1, 22, 9, 0), systolic=125.0)

    assert latest_per_day([evening, next_day, morning]) == [evening, next_day]


def test_latest_per_day_tie_goes_to_later_item():
    first = _record(datetime(2025, 1, 21, 8, 0), notes="first")
    second = _record(datetime(2025, 1, 21, 8, 0), notes="second")
    assert latest_per_day([first, second]) == [second]


def test_latest_per_day_empty():
    assert latest_per_day([]) == []


def test_sample_records_vaccination():
    now = datetime(2025, 6, 1, 12, 0)
    samples = sample_records("vaccination", now=now)

    assert [s.fields["vaccine"] for s in samples] == ["COVID-19 Booster", "Flu Shot", "COVID-19 Second Dose"]
    assert samples[0].timestamp == now - timedelta(days=5)
    assert samples[2].fields["cost"] == "$0.00"


def test_sample_records_other_features_empty():
    assert sample_records("blood_pressure") == []


def test_sample_records_are_independent_copies():
    samples = sample_records("vaccination")
    samples[0].fields["vaccine"] = "changed"
    assert sample_records("vaccination")[0].fields["vaccine"] == "COVID-19 Booster"


@pytest.mark.asyncio
async def test_fallback_not_used_when_pod_available(store):
    records, from_sample = await load_records_with_fallback(store, "vaccination")
    assert records == []
    assert from_sample is False


@pytest.mark.asyncio
async def test_fallback_on_unavailable_pod(store, pod):
    pod.unavailable_dirs.add("healthpod/data/vaccination")

    records, from_sample = await load_records_with_fallback(store, "vaccination")

    assert from_sample is True
    assert len(records) == 3


@pytest.mark.asyncio
async def test_fallback_does_not_mask_auth_errors(store, pod):
    pod.logged_in = False
    with pytest.raises(NotLoggedInError):
        await load_records_with_fallback(store, "vaccination")


@pytest.mark.asyncio
async def test_new_pod_without_feature_container_is_not_sample_data():
    client = SolidPodClient(base_url="https://pod.example.org/alice", access_token="token-123")
    store = RecordStoreClient(client, data_root="healthpod/data")
    not_found = httpx.Response(404, request=httpx.Request("GET", "https://pod.example.org/alice/"))

    with patch.object(client, '_request', new_callable=AsyncMock) as mock_request:
        mock_request.return_value = not_found
        records, from_sample = await load_records_with_fallback(store, "vaccination")

    assert records == []
    assert from_sample is False


def test_sort_mixes_offset_and_plain_timestamps():
    aware = _record(datetime(2025, 1, 21, 10, 0, tzinfo=timezone.utc))
    plain = _record(datetime(2025, 1, 22, 10, 0))
    assert sort_records([plain, aware]) == [aware, plain]
    assert sort_records([aware, plain], descending=True) == [plain, aware]


def test_latest_per_day_mixes_offset_and_plain_timestamps():
    morning = _record(datetime(2025, 1, 21, 0, 30, tzinfo=timezone.utc), notes="utc")
    evening = _record(datetime(2025, 1, 21, 23, 30), notes="local")
    assert latest_per_day([evening, morning]) == [evening]
