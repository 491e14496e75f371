"""
Central feature registry - single source of truth for feature definitions.

This module provides:
- YAML-based configuration loading and validation
- FeatureDefinition / FieldDefinition dataclasses
- Per-field value conversion for CSV input and stored blobs
- Read-only lookup by feature name

YAML access is encapsulated here - no other module reads features.yaml.

Usage:
    from pod_records.core.feature_registry import get_feature, list_features

    bp = get_feature("blood_pressure")
    bp.required_columns   # ('timestamp', 'systolic', 'diastolic', 'heart_rate')
    bp.csv_columns        # ('timestamp', 'systolic', ..., 'notes')
"""

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml

from pod_records.core.datetime_utils import parse_date

logger = logging.getLogger(__name__)

FIELD_TYPES = ("number", "string", "date")


# =============================================================================
# DEFINITION DATACLASSES
# =============================================================================

@dataclass(frozen=True)
class FieldDefinition:
    """
    One named field of a feature's records.

    Attributes:
        name: Key under "responses" in the blob and CSV column name
        type: "number", "string" or "date"
        required: Whether a CSV row without a value is skipped
    """
    name: str
    type: str = "string"
    required: bool = False

    def default(self) -> Any:
        """Value used when an optional CSV cell is blank."""
        return None if self.type == "number" else ""

    def from_csv(self, raw: str) -> Any:
        """
        Convert a trimmed CSV cell to the field's value.

        Raises:
            ValueError: If a non-blank number or date cell cannot be parsed.
        """
        if raw == "":
            return self.default()
        if self.type == "number":
            return float(raw)
        if self.type == "date":
            return parse_date(raw)
        return raw

    def from_stored(self, value: Any) -> Any:
        """
        Convert a value read from a blob to its in-memory form.

        Dates come back as ISO strings and are turned into ``date`` objects;
        unparseable dates, blanks, None and everything else are returned
        unchanged, so a saved record reads back equal to itself.
        """
        if self.type == "date" and isinstance(value, str) and value:
            try:
                return parse_date(value)
            except ValueError:
                return value
        return value


@dataclass(frozen=True)
class FeatureDefinition:
    """
    Immutable definition of one record feature.

    Attributes:
        name: Directory name under the data root and registry key
        display_name: Human-readable name
        file_prefix: Prefix of every blob name
        timestamp_column: CSV column that holds the record timestamp
        fields: Ordered field definitions (CSV column order)
    """
    name: str
    display_name: str
    file_prefix: str
    timestamp_column: str
    fields: Tuple[FieldDefinition, ...]

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    @property
    def required_columns(self) -> Tuple[str, ...]:
        """Timestamp column followed by the required fields."""
        return (self.timestamp_column,) + tuple(f.name for f in self.fields if f.required)

    @property
    def optional_columns(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.fields if not f.required)

    @property
    def csv_columns(self) -> Tuple[str, ...]:
        """Timestamp column followed by every field, in definition order."""
        return (self.timestamp_column,) + self.field_names

    def get_field(self, name: str) -> Optional[FieldDefinition]:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def directory(self, data_root: str) -> str:
        """Pod path of this feature's directory, e.g. 'healthpod/data/vaccination'."""
        root = data_root.strip("/")
        return f"{root}/{self.name}" if root else self.name

    def coerce_stored_fields(self, values: Dict[str, Any]) -> Dict[str, Any]:
        """Apply ``FieldDefinition.from_stored`` to known fields; unknown keys pass through."""
        coerced = {}
        for key, value in values.items():
            field_def = self.get_field(key)
            coerced[key] = field_def.from_stored(value) if field_def else value
        return coerced


# =============================================================================
# YAML CONFIGURATION LOADING & VALIDATION
# =============================================================================

def _get_config_path() -> Path:
    """Get the path to the features configuration file."""
    return Path(__file__).parent / "features.yaml"


def _load_yaml_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load and parse the YAML configuration file.

    Raises:
        FileNotFoundError: If the file is not found
        yaml.YAMLError: If YAML parsing fails
    """
    config_path = path or _get_config_path()
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.error("Features config file not found", extra={"path": str(config_path)})
        raise
    except yaml.YAMLError as e:
        logger.error("Failed to parse features config", extra={"path": str(config_path), "error": str(e)})
        raise


def _validate_feature_entry(raw: Dict[str, Any], index: int) -> None:
    """
    Validate a single feature entry from YAML.

    Raises:
        ValueError: If required keys are missing or invalid
    """
    for key in ("name", "timestamp_column", "fields"):
        if key not in raw:
            raise ValueError(f"Feature at index {index} is missing required key: '{key}'")

    name = raw["name"]
    if not re.match(r"^[a-z][a-z0-9_]*$", name):
        raise ValueError(f"Feature name '{name}' must be lower-case letters, digits and underscores")

    fields = raw["fields"]
    if not isinstance(fields, list) or not fields:
        raise ValueError(f"Feature '{name}' must define at least one field")

    seen = {raw["timestamp_column"]}
    for field_raw in fields:
        if "name" not in field_raw:
            raise ValueError(f"Feature '{name}' has a field without a name")
        field_type = field_raw.get("type", "string")
        if field_type not in FIELD_TYPES:
            raise ValueError(
                f"Feature '{name}' field '{field_raw['name']}' has invalid type '{field_type}'"
            )
        if field_raw["name"] in seen:
            raise ValueError(f"Feature '{name}' repeats column '{field_raw['name']}'")
        seen.add(field_raw["name"])


def _parse_feature_entry(raw: Dict[str, Any]) -> FeatureDefinition:
    """Parse a validated feature entry into a FeatureDefinition."""
    name = raw["name"]
    return FeatureDefinition(
        name=name,
        display_name=raw.get("display_name", name.replace("_", " ").capitalize()),
        file_prefix=raw.get("file_prefix", name),
        timestamp_column=raw["timestamp_column"],
        fields=tuple(
            FieldDefinition(
                name=f["name"],
                type=f.get("type", "string"),
                required=bool(f.get("required", False)),
            )
            for f in raw["fields"]
        ),
    )


def load_features(path: Optional[Path] = None) -> Tuple[FeatureDefinition, ...]:
    """
    Load and validate feature definitions from a YAML file.

    Raises:
        ValueError: On invalid or duplicate entries
    """
    config = _load_yaml_config(path)
    features: List[FeatureDefinition] = []
    names = set()
    for i, raw in enumerate(config.get("features", [])):
        _validate_feature_entry(raw, i)
        feature = _parse_feature_entry(raw)
        if feature.name in names:
            raise ValueError(f"Duplicate feature name: '{feature.name}'")
        names.add(feature.name)
        features.append(feature)
    return tuple(features)


@lru_cache(maxsize=1)
def _load_registry() -> Dict[str, FeatureDefinition]:
    """
    Load and cache the bundled feature registry.

    Cached so features.yaml is read exactly once per process.
    """
    return {feature.name: feature for feature in load_features()}


# =============================================================================
# PUBLIC API
# =============================================================================

def get_feature(name: str) -> FeatureDefinition:
    """
    Look up a feature by name.

    Raises:
        KeyError: If no feature has that name
    """
    registry = _load_registry()
    key = name.strip().lower()
    if key not in registry:
        raise KeyError(f"Unknown feature '{name}'. Known features: {', '.join(sorted(registry))}")
    return registry[key]


def list_features() -> List[FeatureDefinition]:
    """All features in definition order."""
    return list(_load_registry().values())


def resolve_feature(feature: Union[str, FeatureDefinition]) -> FeatureDefinition:
    """Accept either a FeatureDefinition or its registry name."""
    if isinstance(feature, FeatureDefinition):
        return feature
    return get_feature(feature)
