"""
Health record store client for Solid Pods.

Records of each feature (blood pressure, vaccination, medication, diary) live
as encrypted per-record blobs in one Pod directory. The record store lists,
saves, updates and deletes them without a primary key, and converts them to
and from CSV.
"""

__version__ = "0.1.0"
