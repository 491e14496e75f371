"""
Domain model for a single health record.
"""
import json
import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Dict, Optional

from pydantic import ValidationError as SchemaValidationError

from pod_records.core.datetime_utils import format_iso, parse_timestamp, same_calendar_day
from pod_records.core.exceptions import RecordParseError
from pod_records.schemas.record import RecordDocument

if TYPE_CHECKING:
    from pod_records.core.feature_registry import FeatureDefinition


def serialize_value(value: Any) -> Any:
    """JSON form of a field value. Dates and datetimes become ISO strings."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


@dataclass
class Record:
    """
    One user-entered observation.

    Records have no server-assigned key. Two records are considered the same
    stored entry when their field values and the calendar day of their
    timestamps agree, or, when both carry one, when their ``record_id`` agrees.
    """

    timestamp: datetime
    fields: Dict[str, Any] = field(default_factory=dict)
    record_id: Optional[str] = None

    @staticmethod
    def new_id() -> str:
        return str(uuid.uuid4())

    def serialized_fields(self) -> Dict[str, Any]:
        return {key: serialize_value(value) for key, value in self.fields.items()}

    def to_document(self) -> RecordDocument:
        return RecordDocument(
            timestamp=format_iso(self.timestamp),
            responses=self.serialized_fields(),
            id=self.record_id,
        )

    def to_json(self) -> str:
        """Serialize to the blob format."""
        return json.dumps(self.to_document().to_wire(), ensure_ascii=False)

    @classmethod
    def from_document(
        cls,
        data: Dict[str, Any],
        feature: Optional["FeatureDefinition"] = None,
        blob_name: Optional[str] = None,
    ) -> "Record":
        """
        Build a Record from a decoded blob.

        The timestamp may also be stored under the feature's timestamp column
        (older blobs). Field values are converted by the feature's field types
        when a feature is given.

        Raises:
            RecordParseError: If the document is not a valid record.
        """
        if not isinstance(data, dict):
            raise RecordParseError(blob_name=blob_name, reason="not a JSON object")

        data = dict(data)
        if "timestamp" not in data and feature is not None and feature.timestamp_column in data:
            data["timestamp"] = data[feature.timestamp_column]

        try:
            document = RecordDocument.model_validate(data)
            timestamp = parse_timestamp(document.timestamp)
        except (SchemaValidationError, ValueError) as e:
            raise RecordParseError(blob_name=blob_name, reason=str(e)) from e

        fields = dict(document.responses)
        if feature is not None:
            fields = feature.coerce_stored_fields(fields)
        return cls(timestamp=timestamp, fields=fields, record_id=document.id)

    @classmethod
    def from_json(
        cls,
        content: str,
        feature: Optional["FeatureDefinition"] = None,
        blob_name: Optional[str] = None,
    ) -> "Record":
        """
        Parse blob content.

        Raises:
            RecordParseError: If the content is not JSON or not a valid record.
        """
        try:
            data = json.loads(content)
        except (ValueError, TypeError) as e:
            raise RecordParseError(blob_name=blob_name, reason=f"invalid JSON: {e}") from e
        return cls.from_document(data, feature=feature, blob_name=blob_name)

    def matches(self, other: "Record") -> bool:
        """
        True when ``other`` is the stored form of this record.

        Ids decide when both records have one. Otherwise every field must
        agree in serialized form and the timestamps must share a calendar day.
        """
        if self.record_id and other.record_id:
            return self.record_id == other.record_id
        return (
            self.serialized_fields() == other.serialized_fields()
            and same_calendar_day(self.timestamp, other.timestamp)
        )

    def copy_with(self, **changes: Any) -> "Record":
        """Return a copy with some attributes replaced. ``fields`` is copied, not shared."""
        if "fields" not in changes:
            changes["fields"] = dict(self.fields)
        return replace(self, **changes)
