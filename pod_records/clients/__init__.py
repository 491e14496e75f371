"""
Remote store clients.
"""
from pod_records.clients.pod_client import (
    DirectoryListing,
    PodCallStatus,
    PodClient,
    SolidPodClient,
)
from pod_records.clients.encryption import BlobCipher

__all__ = [
    "DirectoryListing",
    "PodCallStatus",
    "PodClient",
    "SolidPodClient",
    "BlobCipher",
]
