"""
Domain models for the record store.
"""
from pod_records.models.record import Record

__all__ = ["Record"]
