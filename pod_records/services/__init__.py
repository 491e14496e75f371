"""
Service layer: record reconciliation, CSV import/export and record views.

Note: the CSV services are not re-exported here. Import them directly:
- from pod_records.services.csv_exporter import export_to_csv
- from pod_records.services.csv_importer import import_from_csv
"""
from pod_records.services.record_store import RecordStoreClient

__all__ = ["RecordStoreClient"]
