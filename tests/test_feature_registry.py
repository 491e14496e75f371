"""
Unit tests for core.feature_registry.

Tests cover:
- The bundled features.yaml (columns, prefixes, timestamp columns)
- Field value conversion for CSV cells and stored values
- Validation errors for malformed YAML entries
"""
import pytest
from datetime import date

from pod_records.core.feature_registry import (
    FeatureDefinition,
    FieldDefinition,
    get_feature,
    list_features,
    load_features,
    resolve_feature,
)


# =============================================================================
# TESTS: bundled registry
# =============================================================================

class TestBundledFeatures:

    def test_all_features_present(self):
        names = [f.name for f in list_features()]
        assert names == ["blood_pressure", "vaccination", "medication", "diary"]

    def test_vaccination_columns(self):
        feature = get_feature("vaccination")
        assert feature.csv_columns == ("date", "vaccine", "provider", "professional", "cost", "notes")
        assert feature.required_columns == ("date", "vaccine", "provider")
        assert feature.optional_columns == ("professional", "cost", "notes")

    def test_blood_pressure_numbers_required(self):
        feature = get_feature("blood_pressure")
        assert feature.required_columns == ("timestamp", "systolic", "diastolic", "heart_rate")
        assert feature.get_field("systolic").type == "number"

    def test_diary_uses_appointment_prefix(self):
        assert get_feature("diary").file_prefix == "appointment"

    def test_medication_start_date_is_date(self):
        assert get_feature("medication").get_field("start_date").type == "date"

    def test_lookup_is_case_insensitive(self):
        assert get_feature(" Vaccination ") is get_feature("vaccination")

    def test_unknown_feature_raises_key_error(self):
        with pytest.raises(KeyError):
            get_feature("weight")

    def test_resolve_accepts_definition_or_name(self):
        feature = get_feature("diary")
        assert resolve_feature(feature) is feature
        assert resolve_feature("diary") is feature

    def test_directory(self):
        feature = get_feature("vaccination")
        assert feature.directory("healthpod/data") == "healthpod/data/vaccination"
        assert feature.directory("/healthpod/data/") == "healthpod/data/vaccination"
        assert feature.directory("") == "vaccination"


# =============================================================================
# TESTS: FieldDefinition conversion
# =============================================================================

class TestFieldConversion:

    def test_number_from_csv(self):
        field = FieldDefinition("systolic", "number", True)
        assert field.from_csv("120") == 120.0
        assert field.from_csv("") is None
        with pytest.raises(ValueError):
            field.from_csv("high")

    def test_date_from_csv(self):
        field = FieldDefinition("start_date", "date", True)
        assert field.from_csv("2024-03-01") == date(2024, 3, 1)
        assert field.from_csv("") == ""
        with pytest.raises(ValueError):
            field.from_csv("someday")

    def test_string_from_csv(self):
        field = FieldDefinition("notes")
        assert field.from_csv("arm sore") == "arm sore"
        assert field.from_csv("") == ""

    def test_from_stored(self):
        assert FieldDefinition("start_date", "date").from_stored("2024-03-01") == date(2024, 3, 1)
        assert FieldDefinition("start_date", "date").from_stored("") == ""
        assert FieldDefinition("start_date", "date").from_stored("soon") == "soon"
        assert FieldDefinition("notes").from_stored(None) is None
        assert FieldDefinition("notes").from_stored("") == ""
        assert FieldDefinition("systolic", "number").from_stored(120) == 120

    def test_coerce_stored_fields_passes_unknown_keys(self):
        feature = get_feature("medication")
        coerced = feature.coerce_stored_fields({"start_date": "2024-03-01", "extra": 1})
        assert coerced == {"start_date": date(2024, 3, 1), "extra": 1}


# =============================================================================
# TESTS: YAML validation
# =============================================================================

def _write_yaml(tmp_path, text):
    path = tmp_path / "features.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_load_features_defaults(tmp_path):
    path = _write_yaml(tmp_path, """
features:
  - name: weight
    timestamp_column: timestamp
    fields:
      - {name: kilograms, type: number, required: true}
""")
    (feature,) = load_features(path)
    assert isinstance(feature, FeatureDefinition)
    assert feature.file_prefix == "weight"
    assert feature.display_name == "Weight"
    assert feature.fields == (FieldDefinition("kilograms", "number", True),)


@pytest.mark.parametrize("body, message", [
    ("  - name: weight\n    fields: [{name: kg}]\n", "timestamp_column"),
    ("  - name: Weight\n    timestamp_column: t\n    fields: [{name: kg}]\n", "lower-case"),
    ("  - name: weight\n    timestamp_column: t\n    fields: []\n", "at least one field"),
    ("  - name: weight\n    timestamp_column: t\n    fields: [{name: kg, type: blob}]\n", "invalid type"),
    ("  - name: weight\n    timestamp_column: t\n    fields: [{name: t}]\n", "repeats column"),
])
def test_invalid_entries_raise(tmp_path, body, message):
    path = _write_yaml(tmp_path, "features:\n" + body)
    with pytest.raises(ValueError, match=message):
        load_features(path)


def test_duplicate_feature_names_raise(tmp_path):
    entry = "  - name: weight\n    timestamp_column: t\n    fields: [{name: kg}]\n"
    path = _write_yaml(tmp_path, "features:\n" + entry + entry)
    with pytest.raises(ValueError, match="Duplicate"):
        load_features(path)


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_features(tmp_path / "nope.yaml")
