"""
Tests for CSV export.
"""
import csv
import pytest
from datetime import date, datetime

from pod_records.core.feature_registry import get_feature
from pod_records.models.record import Record
from pod_records.services.csv_exporter import export_to_csv, record_to_row
from pod_records.services.csv_importer import import_from_csv


def _read_rows(path):
    with open(path, newline="", encoding="utf-8") as f:
        return list(csv.reader(f))


@pytest.mark.asyncio
async def test_export_sorted_with_header(store, tmp_path, make_vaccination):
    await store.save_record("vaccination", make_vaccination(datetime(2025, 3, 1, 9, 0), vaccine="MMR"))
    await store.save_record("vaccination", make_vaccination(datetime(2025, 1, 21, 10, 0), cost="$25.00"))
    destination = tmp_path / "vaccinations.csv"

    assert await export_to_csv(store, "vaccination", destination) is True

    rows = _read_rows(destination)
    assert rows == [
        ["date", "vaccine", "provider", "professional", "cost", "notes"],
        ["2025-01-21T10:00:00", "Flu Shot", "Community Pharmacy", "", "$25.00", ""],
        ["2025-03-01T09:00:00", "MMR", "Community Pharmacy", "", "", ""],
    ]


@pytest.mark.asyncio
async def test_n_records_give_n_plus_one_lines(store, tmp_path, make_vaccination):
    for day in range(1, 6):
        await store.save_record("vaccination", make_vaccination(datetime(2025, 1, day)))
    destination = tmp_path / "out.csv"

    await export_to_csv(store, "vaccination", destination)

    assert len(_read_rows(destination)) == 6


@pytest.mark.asyncio
async def test_no_records_returns_false(store, tmp_path):
    destination = tmp_path / "out.csv"
    assert await export_to_csv(store, "vaccination", destination) is False
    assert not destination.exists()


@pytest.mark.asyncio
async def test_unavailable_store_returns_false(store, pod, tmp_path):
    pod.unavailable_dirs.add("healthpod/data/vaccination")
    assert await export_to_csv(store, "vaccination", tmp_path / "out.csv") is False


@pytest.mark.asyncio
async def test_not_logged_in_returns_false(store, pod, tmp_path):
    pod.logged_in = False
    assert await export_to_csv(store, "vaccination", tmp_path / "out.csv") is False


@pytest.mark.asyncio
async def test_export_then_import_reproduces_records(store, pod, tmp_path):
    content = (
        "timestamp,systolic,diastolic,heart_rate,feeling,notes\n"
        "2025-01-21T08:00:00,120,80,70,Good,after walk\n"
        "2025-01-22T08:15:00,118,79,68,,\n"
    )
    assert await import_from_csv(store, "blood_pressure", content=content) is True
    destination = tmp_path / "bp.csv"

    assert await export_to_csv(store, "blood_pressure", destination) is True

    assert destination.read_text(encoding="utf-8").replace("\r\n", "\n") == content


def test_record_to_row_formats_values():
    feature = get_feature("medication")
    record = Record(
        timestamp=datetime(2025, 2, 1, 8, 0, 0, 700000),
        fields={"name": "Metformin", "dosage": "500mg", "frequency": "Daily", "start_date": date(2024, 3, 1)},
    )
    assert record_to_row(feature, record) == {
        "timestamp": "2025-02-01T08:00:01",
        "name": "Metformin",
        "dosage": "500mg",
        "frequency": "Daily",
        "start_date": "2024-03-01",
        "notes": "",
    }


def test_record_to_row_numbers():
    feature = get_feature("blood_pressure")
    record = Record(
        timestamp=datetime(2025, 1, 21, 8, 0),
        fields={"systolic": 120.0, "diastolic": 80.5, "heart_rate": None},
    )
    row = record_to_row(feature, record)
    assert row["systolic"] == "120"
    assert row["diastolic"] == "80.5"
    assert row["heart_rate"] == ""


@pytest.mark.asyncio
async def test_export_mixes_utc_and_plain_timestamps(store, tmp_path):
    content = (
        "date,vaccine,provider\n"
        "2025-01-22 10:00:00,MMR,Clinic\n"
        "2025-01-21T10:00:00Z,Flu Shot,Clinic\n"
    )
    assert await import_from_csv(store, "vaccination", content=content) is True
    destination = tmp_path / "out.csv"

    assert await export_to_csv(store, "vaccination", destination) is True

    rows = _read_rows(destination)
    assert [row[0] for row in rows[1:]] == ["2025-01-21T10:00:00+00:00", "2025-01-22T10:00:00"]
