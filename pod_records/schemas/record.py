"""
Pydantic schema for the serialized record stored in each blob.
"""
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RecordDocument(BaseModel):
    """Wire form of one record.

    ``timestamp`` is an ISO 8601 string and ``responses`` maps field names to
    JSON values. ``id`` is only present for records that carry a stable id.
    """
    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "example": {
                "timestamp": "2025-01-21T23:05:42",
                "responses": {"vaccine": "Flu Shot", "provider": "Community Pharmacy"},
                "id": "2b1c5f0e-8a9d-4f5e-9c7a-0d3e1b2a4c6f",
            }
        },
    )

    timestamp: str = Field(..., min_length=1, description="ISO 8601 timestamp of the record")
    responses: Dict[str, Any] = Field(default_factory=dict, description="Field name to value")
    id: Optional[str] = Field(None, description="Client-generated stable record id")

    @field_validator("timestamp")
    @classmethod
    def timestamp_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("timestamp must not be blank")
        return v.strip()

    def to_wire(self) -> Dict[str, Any]:
        """Dictionary written to the blob; ``id`` is omitted when unset."""
        data: Dict[str, Any] = {"timestamp": self.timestamp, "responses": dict(self.responses)}
        if self.id is not None:
            data["id"] = self.id
        return data
