"""
Pydantic schemas for the serialized blob format.
"""
from pod_records.schemas.record import RecordDocument

__all__ = ["RecordDocument"]
