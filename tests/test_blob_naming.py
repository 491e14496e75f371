"""
Unit tests for services.blob_naming.
"""
from datetime import datetime

from pod_records.services.blob_naming import blob_date, blob_name, has_store_suffix, legacy_blob_name


def test_blob_name_format():
    name = blob_name("vaccination", datetime(2025, 1, 21, 23, 5, 42))
    assert name == "vaccination_2025-01-21T23-05-42.json.enc.ttl"


def test_blob_name_is_deterministic_and_drops_fraction():
    a = blob_name("blood_pressure", datetime(2025, 1, 21, 23, 5, 42, 1))
    b = blob_name("blood_pressure", datetime(2025, 1, 21, 23, 5, 42, 999999))
    assert a == b == "blood_pressure_2025-01-21T23-05-42.json.enc.ttl"
    assert ":" not in a


def test_custom_extension():
    assert blob_name("appointment", datetime(2025, 1, 21), extension="json").endswith(".json.enc.json")


def test_legacy_name_uses_underscore():
    name = legacy_blob_name("medication", datetime(2025, 1, 21, 8, 0, 0))
    assert name == "medication_2025-01-21_08-00-00.json.enc.ttl"


def test_blob_date():
    assert blob_date("vaccination_2025-01-21T23-05-42.json.enc.ttl", "vaccination") == "2025-01-21"
    assert blob_date("vaccination_2025-01-21_23-05-42.json.enc.ttl", "vaccination") == "2025-01-21"
    assert blob_date("appointment_2025-01-21T23-05-42.json.enc.ttl", "vaccination") is None
    assert blob_date("vaccination_latest.json.enc.ttl", "vaccination") is None


def test_store_suffix():
    assert has_store_suffix("vaccination_2025-01-21T23-05-42.json.enc.ttl")
    assert not has_store_suffix("notes.txt")
    assert not has_store_suffix("vaccination.json")
